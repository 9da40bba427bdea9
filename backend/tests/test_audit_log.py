from sqlalchemy.exc import SQLAlchemyError

from procurement import models
from procurement.api.routes import audit_log as audit_log_route
from procurement.services.audit import audit_event


def test_health_endpoints(client):
    for path in ("/health", "/healthz"):
        r = client.get(path)
        assert r.status_code == 200, r.text
        body = r.json()
        assert body["status"] == "ok"
        assert body["environment"] == "test"
        assert r.headers["X-Request-ID"]


def test_request_id_is_propagated(client):
    r = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert r.headers["X-Request-ID"] == "req-123"


def test_audit_log_requires_resource(client):
    r = client.get("/api/audit-log", params={"resource_type": "auction"})
    assert r.status_code == 400, r.text
    assert r.json()["detail"] == "resource_type and resource_id are required"


def test_audit_log_lists_newest_first(client, db_session):
    for action in ("created", "published"):
        audit_event(
            db_session,
            resource_type="auction",
            resource_id="a-1",
            action=action,
            actor_profile_id=None,
            payload={"step": action},
        )
    audit_event(
        db_session,
        resource_type="auction",
        resource_id="a-2",
        action="created",
        actor_profile_id=None,
    )

    r = client.get("/api/audit-log", params={"entity": "auction", "entity_id": "a-1"})
    assert r.status_code == 200, r.text
    events = r.json()["events"]
    assert [e["action"] for e in events] == ["published", "created"]
    assert events[0]["payload"] == {"step": "published"}


def test_audit_write_failure_is_swallowed_and_rolled_back(db_session, monkeypatch):
    def _boom():
        raise SQLAlchemyError("disk full")

    monkeypatch.setattr(db_session, "commit", _boom)

    assert (
        audit_event(
            db_session,
            resource_type="auction",
            resource_id="a-1",
            action="created",
            actor_profile_id=None,
        )
        is None
    )
    monkeypatch.undo()
    assert db_session.query(models.AuditEvent).count() == 0


def test_store_errors_surface_as_500(client, monkeypatch):
    def _boom(*args, **kwargs):
        raise SQLAlchemyError("relation audit_events does not exist")

    monkeypatch.setattr(audit_log_route, "list_audit_events", _boom)

    r = client.get("/api/audit-log", params={"resource_type": "auction", "resource_id": "a-1"})
    assert r.status_code == 500, r.text
    assert r.json()["success"] is False
    assert "relation audit_events does not exist" in r.json()["detail"]
    assert r.json()["request_id"]


def test_supplier_create_list_and_duplicate(client, db_session):
    r = client.post("/api/suppliers", json={"company_name": " Acme Metals ", "country": "US"})
    assert r.status_code == 201, r.text
    supplier = r.json()
    assert supplier["company_name"] == "Acme Metals"
    assert supplier["status"] == "active"

    r = client.post("/api/suppliers", json={"company_name": "Acme Metals"})
    assert r.status_code == 409, r.text
    assert r.json()["detail"] == "Supplier already exists"

    r = client.get("/api/suppliers", params={"q": "acme"})
    assert [s["id"] for s in r.json()] == [supplier["id"]]

    r = client.get(f"/api/suppliers/{supplier['id']}")
    assert r.status_code == 200, r.text

    r = client.get("/api/suppliers/7d0e6f1c-0000-4000-8000-000000000000")
    assert r.status_code == 404, r.text

    events = (
        db_session.query(models.AuditEvent)
        .filter(models.AuditEvent.resource_type == "supplier")
        .all()
    )
    assert [e.action for e in events] == ["created"]
