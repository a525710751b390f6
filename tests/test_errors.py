import pytest
from fastapi import APIRouter
from fastapi.testclient import TestClient

from main import app
from plantstock.core.envelope import paginate
from plantstock.core.errors import ApiError, BadRequest, Conflict, Forbidden, NotFound
from plantstock.db.models.security_audit import SystemLog


def test_health(client):
    r = client.get("/api/health")
    assert r.json() == {"success": True, "message": "ok"}
    assert r.headers["X-Request-Id"]


def test_request_id_is_echoed(client):
    r = client.get("/api/health", headers={"X-Request-Id": "abc-123"})
    assert r.headers["X-Request-Id"] == "abc-123"


def test_unknown_route(client, admin_headers):
    r = client.get("/api/nothing-here", headers=admin_headers)
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "API not found"}


def test_malformed_body_is_400(client, admin_headers):
    r = client.post("/api/materials", content="not json", headers={**admin_headers, "Content-Type": "application/json"})
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["error"] == "Validation failed"


def test_unhandled_exception_is_500_and_logged(db):
    router = APIRouter()

    @router.get("/api/_boom")
    def boom():
        raise RuntimeError("kaboom")

    app.include_router(router)
    try:
        with TestClient(app, raise_server_exceptions=False) as c:
            r = c.get("/api/_boom")
        assert r.status_code == 500
        assert r.json() == {"success": False, "error": "Server internal error"}
        assert db.query(SystemLog).filter(SystemLog.level == "error").count() >= 1
    finally:
        app.router.routes[:] = [route for route in app.router.routes if getattr(route, "path", None) != "/api/_boom"]


@pytest.mark.parametrize(
    "exc, status, detail",
    [
        (BadRequest(), 400, "Bad request"),
        (NotFound("Material not found"), 404, "Material not found"),
        (Conflict(), 409, "Already exists"),
        (Forbidden(), 403, "Insufficient permissions"),
    ],
)
def test_api_errors_carry_status_and_detail(exc, status, detail):
    assert isinstance(exc, ApiError)
    assert exc.status_code == status
    assert exc.detail == detail


def test_paginate_only_when_asked():
    items = list(range(7))
    assert paginate(items, None, None) is items
    page = paginate(items, 3, 3)
    assert page == {"data": [6], "total": 7, "page": 3, "limit": 3, "totalPages": 3}
    assert paginate([], 1, 10)["totalPages"] == 0
