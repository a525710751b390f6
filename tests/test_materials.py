from datetime import datetime, timezone

from plantstock.db.models.security_audit import SystemLog


def test_create_and_get_material(client, admin_headers):
    before = datetime.now(timezone.utc)
    r = client.post(
        "/api/materials",
        json={"code": "MAT010", "name": "Test", "category": "X", "unit": "kg", "currentStock": 10, "minStock": 5},
        headers=admin_headers,
    )
    assert r.status_code == 201
    body = r.json()
    assert body["success"] is True
    data = body["data"]
    assert isinstance(data["id"], str)
    last_updated = datetime.fromisoformat(data["lastUpdated"])
    assert last_updated >= before.replace(microsecond=0)
    assert data["currentStock"] == 10
    assert data["minStock"] == 5

    r = client.get(f"/api/materials/{data['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"] == data


def test_create_requires_fields(client, admin_headers):
    r = client.post("/api/materials", json={"code": "X1", "name": "No category"}, headers=admin_headers)
    assert r.status_code == 400
    assert "category" in r.json()["error"]


def test_duplicate_code_conflicts(client, admin_headers, make_material):
    make_material("DUP1")
    r = client.post(
        "/api/materials",
        json={"code": "DUP1", "name": "Again", "category": "x", "unit": "kg"},
        headers=admin_headers,
    )
    assert r.status_code == 409


def test_ids_are_distinct(make_material):
    ids = {make_material(f"M{i}")["id"] for i in range(3)}
    assert len(ids) == 3


def test_min_stock_level_alias_is_accepted(client, admin_headers):
    r = client.post(
        "/api/materials",
        json={"code": "ALIAS", "name": "Alias", "category": "x", "unit": "kg", "minStockLevel": 7, "maxStockLevel": 70},
        headers=admin_headers,
    )
    assert r.status_code == 201
    assert r.json()["data"]["minStock"] == 7
    assert r.json()["data"]["maxStock"] == 70


def test_negative_values_rejected(client, admin_headers):
    r = client.post(
        "/api/materials",
        json={"code": "NEG", "name": "Neg", "category": "x", "unit": "kg", "unitPrice": -1},
        headers=admin_headers,
    )
    assert r.status_code == 400


def test_empty_update_only_touches_timestamp(client, admin_headers, make_material):
    m = make_material("UPD1", description="steel")
    r = client.put(f"/api/materials/{m['id']}", json={}, headers=admin_headers)
    assert r.status_code == 200
    updated = r.json()["data"]
    assert datetime.fromisoformat(updated["lastUpdated"]) >= datetime.fromisoformat(m["lastUpdated"])
    for key in m:
        if key != "lastUpdated":
            assert updated[key] == m[key]


def test_update_merges_fields(client, admin_headers, make_material):
    m = make_material("UPD2")
    r = client.put(f"/api/materials/{m['id']}", json={"name": "Renamed", "location": "B-07"}, headers=admin_headers)
    data = r.json()["data"]
    assert data["name"] == "Renamed"
    assert data["location"] == "B-07"
    assert data["code"] == "UPD2"


def test_update_cannot_blank_required_field(client, admin_headers, make_material):
    m = make_material("UPD3")
    r = client.put(f"/api/materials/{m['id']}", json={"name": ""}, headers=admin_headers)
    assert r.status_code == 400


def test_update_to_existing_code_conflicts(client, admin_headers, make_material):
    make_material("TAKEN")
    m = make_material("FREE")
    r = client.put(f"/api/materials/{m['id']}", json={"code": "TAKEN"}, headers=admin_headers)
    assert r.status_code == 409


def test_manual_stock_change_is_audited(client, admin_headers, make_material, db):
    m = make_material("OVR", currentStock=10)
    r = client.put(f"/api/materials/{m['id']}", json={"currentStock": 4}, headers=admin_headers)
    assert r.json()["data"]["currentStock"] == 4
    row = db.query(SystemLog).filter(SystemLog.action == "material.stock_override").one()
    assert row.level == "warning"
    assert row.payload == {"from": 10.0, "to": 4.0}


def test_delete_and_unknown_ids(client, admin_headers, make_material):
    m = make_material("DEL1")
    make_material("DEL2")
    r = client.delete("/api/materials/does-not-exist", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Material not found"
    assert len(client.get("/api/materials", headers=admin_headers).json()["data"]) == 2

    r = client.delete(f"/api/materials/{m['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert client.get(f"/api/materials/{m['id']}", headers=admin_headers).status_code == 404
    assert len(client.get("/api/materials", headers=admin_headers).json()["data"]) == 1


def test_list_is_newest_first_and_filters(client, admin_headers, make_material):
    make_material("A1", name="Fuse 16A", category="electrical", currentStock=0, minStock=5)
    make_material("B1", name="Panel door", category="panel", currentStock=90, minStock=5, maxStock=100)

    rows = client.get("/api/materials", headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["B1", "A1"]

    rows = client.get("/api/materials", params={"category": "panel"}, headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["B1"]

    rows = client.get("/api/materials", params={"search": "fuse"}, headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["A1"]

    rows = client.get("/api/materials", params={"stockLevel": "critical"}, headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["A1"]

    rows = client.get("/api/materials", params={"stockLevel": "high"}, headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["B1"]


def test_list_paginates_on_request(client, admin_headers, make_material):
    for i in range(5):
        make_material(f"P{i}")
    page = client.get("/api/materials", params={"page": 2, "limit": 2}, headers=admin_headers).json()["data"]
    assert page["total"] == 5
    assert page["page"] == 2
    assert page["totalPages"] == 3
    assert len(page["data"]) == 2


def test_categories(client, admin_headers, make_material):
    make_material("C1", category="panel")
    make_material("C2", category="electrical")
    make_material("C3", category="panel")
    r = client.get("/api/materials/categories/list", headers=admin_headers)
    assert r.json()["data"] == ["electrical", "panel"]


def test_operator_can_read_materials(client, admin_headers, operator_headers, make_material):
    make_material("RO1")
    r = client.get("/api/materials", headers=operator_headers)
    assert r.status_code == 200
    assert len(r.json()["data"]) == 1
