from datetime import datetime, timedelta, timezone

from plantstock.db.models.inventory import MaterialMovement


def _stock(client, headers, material_id):
    return client.get(f"/api/materials/{material_id}", headers=headers).json()["data"]["currentStock"]


def test_in_movement_increases_stock_and_copies_material(client, admin_headers, make_material, move):
    m = make_material("ELK001", name="Fuse 16A", unitPrice=5.5, location="A-01")
    r = move(m["id"], "IN", 10, reason="Purchase")
    assert r.status_code == 201
    mv = r.json()["data"]
    assert mv["materialCode"] == "ELK001"
    assert mv["materialName"] == "Fuse 16A"
    assert mv["unit"] == "piece"
    assert mv["location"] == "A-01"
    assert mv["unitPrice"] == 5.5
    assert mv["totalPrice"] == 55.0
    assert _stock(client, admin_headers, m["id"]) == 10


def test_out_movement_beyond_stock_rejected(client, admin_headers, make_material, move, db):
    m = make_material(currentStock=5)
    r = move(m["id"], "OUT", 6)
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Insufficient stock"}
    assert _stock(client, admin_headers, m["id"]) == 5
    assert db.query(MaterialMovement).count() == 0

    r = move(m["id"], "OUT", 5)
    assert r.status_code == 201
    assert _stock(client, admin_headers, m["id"]) == 0


def test_movement_validation(client, admin_headers, make_material, move):
    m = make_material()
    assert move(m["id"], "SIDEWAYS", 1).status_code == 400
    assert move(m["id"], "IN", 0).status_code == 400
    assert move(m["id"], "IN", -3).status_code == 400
    assert move(m["id"], "IN", "lots").status_code == 400
    assert move("missing", "IN", 1).status_code == 404
    r = client.post("/api/movements", json={"type": "IN", "quantity": 1}, headers=admin_headers)
    assert r.status_code == 400


def test_explicit_unit_price_overrides_material_price(make_material, move):
    m = make_material(unitPrice=2)
    mv = move(m["id"], "IN", 4, unitPrice=3).json()["data"]
    assert mv["unitPrice"] == 3
    assert mv["totalPrice"] == 12


def test_put_only_changes_descriptive_fields(client, admin_headers, make_material, move):
    m = make_material()
    mv = move(m["id"], "IN", 10, reason="Purchase").json()["data"]

    r = client.put(f"/api/movements/{mv['id']}", json={"quantity": 99}, headers=admin_headers)
    assert r.status_code == 400
    r = client.put(f"/api/movements/{mv['id']}", json={"type": "OUT"}, headers=admin_headers)
    assert r.status_code == 400

    r = client.put(
        f"/api/movements/{mv['id']}",
        json={"reason": "Return", "description": "wrong batch", "quantity": 10},
        headers=admin_headers,
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["reason"] == "Return"
    assert data["description"] == "wrong batch"
    assert _stock(client, admin_headers, m["id"]) == 10


def test_put_accepts_unchanged_quantity_in_any_form(client, admin_headers, make_material, move):
    m = make_material()
    mv = move(m["id"], "IN", 5).json()["data"]
    for quantity in ("5", "5.0", 5.0):
        r = client.put(
            f"/api/movements/{mv['id']}",
            json={"quantity": quantity, "type": "IN", "materialId": m["id"], "reason": "Recount"},
            headers=admin_headers,
        )
        assert r.status_code == 200, r.text
    r = client.put(f"/api/movements/{mv['id']}", json={"quantity": "5.5"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot change quantity of a posted movement"


def test_delete_reverses_stock(client, admin_headers, make_material, move):
    m = make_material()
    inbound = move(m["id"], "IN", 10).json()["data"]
    outbound = move(m["id"], "OUT", 4).json()["data"]
    assert _stock(client, admin_headers, m["id"]) == 6

    # removing the IN would leave -4
    r = client.delete(f"/api/movements/{inbound['id']}", headers=admin_headers)
    assert r.status_code == 400
    assert _stock(client, admin_headers, m["id"]) == 6

    assert client.delete(f"/api/movements/{outbound['id']}", headers=admin_headers).status_code == 200
    assert _stock(client, admin_headers, m["id"]) == 10
    assert client.delete(f"/api/movements/{inbound['id']}", headers=admin_headers).status_code == 200
    assert _stock(client, admin_headers, m["id"]) == 0
    assert client.delete(f"/api/movements/{inbound['id']}", headers=admin_headers).status_code == 404


def test_movement_log_survives_material_delete(client, admin_headers, make_material, move):
    m = make_material("GONE")
    mv = move(m["id"], "IN", 3).json()["data"]
    client.delete(f"/api/materials/{m['id']}", headers=admin_headers)
    r = client.get(f"/api/movements/{mv['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["materialCode"] == "GONE"


def test_list_filters(client, admin_headers, make_material, move):
    fuse = make_material("ELK001", name="Fuse 16A")
    screw = make_material("MEK001", name="Screw M8")
    move(fuse["id"], "IN", 10, reason="Purchase")
    move(screw["id"], "IN", 100, reason="Purchase")
    move(fuse["id"], "OUT", 2, reason="Production")

    rows = client.get("/api/movements", headers=admin_headers).json()["data"]
    assert [r["type"] for r in rows] == ["OUT", "IN", "IN"]

    rows = client.get("/api/movements", params={"type": "OUT"}, headers=admin_headers).json()["data"]
    assert len(rows) == 1
    rows = client.get("/api/movements", params={"materialId": screw["id"]}, headers=admin_headers).json()["data"]
    assert [r["materialCode"] for r in rows] == ["MEK001"]
    rows = client.get("/api/movements", params={"search": "fuse"}, headers=admin_headers).json()["data"]
    assert len(rows) == 2

    today = datetime.now(timezone.utc).date()
    rows = client.get("/api/movements", params={"dateFrom": today.isoformat(), "dateTo": today.isoformat()}, headers=admin_headers).json()["data"]
    assert len(rows) == 3
    tomorrow = (today + timedelta(days=1)).isoformat()
    rows = client.get("/api/movements", params={"dateFrom": tomorrow}, headers=admin_headers).json()["data"]
    assert rows == []


def test_stats_summary_and_per_material(client, admin_headers, make_material, move):
    m = make_material()
    move(m["id"], "IN", 10)
    move(m["id"], "OUT", 3)
    summary = client.get("/api/movements/stats/summary", headers=admin_headers).json()["data"]
    assert summary["today"] == {"inbound": 10, "outbound": 3, "total": 2}
    assert summary["monthly"] == {"inbound": 10, "outbound": 3, "total": 2}
    assert summary["total"] == 2

    rows = client.get(f"/api/movements/material/{m['id']}", params={"limit": 1}, headers=admin_headers).json()["data"]
    assert len(rows) == 1
    assert rows[0]["type"] == "OUT"
