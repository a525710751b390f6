import os
import tempfile

_tmpdir = tempfile.mkdtemp(prefix="plantstock-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{_tmpdir}/test.db"
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")
os.environ["ADMIN_TASK_DELAY_SCALE"] = "0"
os.environ["SEED_DEMO_DATA"] = "false"
os.environ.pop("ADMIN_EMAIL", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest
from fastapi.testclient import TestClient

from main import app
from plantstock.db.base import Base
from plantstock.db.session import engine, SessionLocal


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def register(client, email, password="secret123", **extra):
    r = client.post("/api/auth/register", json={"email": email, "password": password, **extra})
    assert r.status_code == 201, r.text
    return r.json()["data"]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_session(client):
    # first registered user becomes admin
    return register(client, "admin@acmeplant.com", firstName="Ada", lastName="Admin")


@pytest.fixture
def admin_headers(admin_session):
    return bearer(admin_session["token"])


@pytest.fixture
def operator_headers(client, admin_headers):
    r = client.post(
        "/api/admin/users",
        json={"username": "op", "email": "op@acmeplant.com", "password": "secret123", "role": "operator"},
        headers=admin_headers,
    )
    assert r.status_code == 201, r.text
    r = client.post("/api/auth/login", json={"email": "op@acmeplant.com", "password": "secret123"})
    return bearer(r.json()["data"]["token"])


@pytest.fixture
def make_material(client, admin_headers):
    def _make(code="MAT001", **fields):
        body = {"code": code, "name": f"Material {code}", "category": "electrical", "unit": "piece",
                "currentStock": 0, "minStock": 5, "maxStock": 100, "unitPrice": 2}
        body.update(fields)
        r = client.post("/api/materials", json=body, headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()["data"]
    return _make


@pytest.fixture
def make_machine(client, admin_headers):
    def _make(code="MC001", **fields):
        body = {"code": code, "name": f"Machine {code}", "category": "polishing"}
        body.update(fields)
        r = client.post("/api/machines", json=body, headers=admin_headers)
        assert r.status_code == 201, r.text
        return r.json()["data"]
    return _make


@pytest.fixture
def move(client, admin_headers):
    def _move(material_id, type, quantity, **fields):
        return client.post(
            "/api/movements",
            json={"materialId": material_id, "type": type, "quantity": quantity, **fields},
            headers=admin_headers,
        )
    return _move
