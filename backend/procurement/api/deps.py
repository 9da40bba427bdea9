from fastapi import Request

from procurement.database import get_db
from procurement.services.audit import RequestContext

__all__ = ["RequestContext", "get_db", "get_request_context"]


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        request_id=getattr(request.state, "request_id", None)
        or request.headers.get("X-Request-ID"),
        ip=(request.client.host if request.client else None),
        user_agent=request.headers.get("User-Agent"),
    )
