from fastapi import APIRouter

from procurement.api.routes import approvals, auctions, audit_log, bids, suppliers

api_router = APIRouter()
api_router.include_router(auctions.router)
api_router.include_router(bids.router)
api_router.include_router(approvals.router)
api_router.include_router(suppliers.router)
api_router.include_router(audit_log.router)
