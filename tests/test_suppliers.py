def _create(client, headers, code="SUP001", **fields):
    r = client.post("/api/suppliers", json={"code": code, "name": f"Supplier {code}", **fields}, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


def test_supplier_crud(client, admin_headers):
    s = _create(client, admin_headers, contactPerson="Dana Reyes")
    assert s["status"] == "active"
    assert s["contactPerson"] == "Dana Reyes"

    r = client.put(f"/api/suppliers/{s['id']}", json={"status": "inactive", "phone": "555-0100"}, headers=admin_headers)
    assert r.json()["data"]["status"] == "inactive"
    assert r.json()["data"]["phone"] == "555-0100"

    assert client.delete(f"/api/suppliers/{s['id']}", headers=admin_headers).status_code == 200
    r = client.get(f"/api/suppliers/{s['id']}", headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Supplier not found"


def test_supplier_validation(client, admin_headers):
    _create(client, admin_headers, "SUP001")
    r = client.post("/api/suppliers", json={"code": "SUP001", "name": "Again"}, headers=admin_headers)
    assert r.status_code == 409
    r = client.post("/api/suppliers", json={"name": "No code"}, headers=admin_headers)
    assert r.status_code == 400
    r = client.post("/api/suppliers", json={"code": "S2", "name": "Odd", "status": "paused"}, headers=admin_headers)
    assert r.status_code == 400


def test_supplier_filters_and_admin_alias(client, admin_headers, operator_headers):
    _create(client, admin_headers, "SUP001", name="Northline Electrical")
    _create(client, admin_headers, "SUP002", name="Panelworks", status="inactive")

    rows = client.get("/api/suppliers", params={"status": "active"}, headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["SUP001"]
    rows = client.get("/api/suppliers", params={"search": "panel"}, headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["SUP002"]

    rows = client.get("/api/admin/suppliers", headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["SUP002", "SUP001"]
    assert client.get("/api/admin/suppliers", headers=operator_headers).status_code == 403
