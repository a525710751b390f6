def test_machine_crud(client, admin_headers, make_machine):
    m = make_machine("SM-2000", installDate="2024-03-01", specifications={"power": "5kW"})
    assert m["status"] == "active"
    assert m["installDate"] == "2024-03-01"
    assert m["specifications"] == {"power": "5kW"}

    r = client.put(f"/api/machines/{m['id']}", json={"status": "maintenance"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "maintenance"
    assert r.json()["data"]["name"] == m["name"]

    r = client.delete(f"/api/machines/{m['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert client.get(f"/api/machines/{m['id']}", headers=admin_headers).status_code == 404


def test_machine_validation(client, admin_headers, make_machine):
    r = client.post("/api/machines", json={"name": "No code"}, headers=admin_headers)
    assert r.status_code == 400
    r = client.post("/api/machines", json={"code": "X", "name": "Bad", "status": "broken"}, headers=admin_headers)
    assert r.status_code == 400
    make_machine("DUP")
    r = client.post("/api/machines", json={"code": "DUP", "name": "Again"}, headers=admin_headers)
    assert r.status_code == 409


def test_machine_list_filters(client, admin_headers, make_machine):
    make_machine("TM-1500", category="grooving")
    make_machine("YM-3000", category="splitting", status="maintenance")
    rows = client.get("/api/machines", params={"status": "maintenance"}, headers=admin_headers).json()["data"]
    assert [r["code"] for r in rows] == ["YM-3000"]
    cats = client.get("/api/machines/categories/list", headers=admin_headers).json()["data"]
    assert cats == ["grooving", "splitting"]


def test_bom_lifecycle(client, admin_headers, make_machine, make_material):
    machine = make_machine()
    fuse = make_material("ELK001", name="Fuse 16A", unit="piece")

    r = client.post(f"/api/machines/{machine['id']}/bom", json={"materialId": fuse["id"], "quantity": 4}, headers=admin_headers)
    assert r.status_code == 201
    item = r.json()["data"]
    assert item["materialCode"] == "ELK001"
    assert item["materialName"] == "Fuse 16A"
    assert item["unit"] == "piece"
    assert item["quantity"] == 4

    r = client.post(f"/api/machines/{machine['id']}/bom", json={"materialId": fuse["id"], "quantity": 1}, headers=admin_headers)
    assert r.status_code == 409

    r = client.put(f"/api/machines/{machine['id']}/bom/{item['id']}", json={"quantity": 6}, headers=admin_headers)
    assert r.json()["data"]["quantity"] == 6

    detail = client.get(f"/api/machines/{machine['id']}", headers=admin_headers).json()["data"]
    assert [b["materialId"] for b in detail["bom"]] == [fuse["id"]]

    r = client.delete(f"/api/machines/{machine['id']}/bom/{item['id']}", headers=admin_headers)
    assert r.status_code == 200
    assert client.get(f"/api/machines/{machine['id']}/bom", headers=admin_headers).json()["data"] == []


def test_bom_rejects_unknown_material_and_bad_quantity(client, admin_headers, make_machine, make_material):
    machine = make_machine()
    r = client.post(f"/api/machines/{machine['id']}/bom", json={"materialId": "nope", "quantity": 1}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Material not found"

    mat = make_material()
    r = client.post(f"/api/machines/{machine['id']}/bom", json={"materialId": mat["id"], "quantity": 0}, headers=admin_headers)
    assert r.status_code == 400

    r = client.post("/api/machines/unknown/bom", json={"materialId": mat["id"], "quantity": 1}, headers=admin_headers)
    assert r.status_code == 404
    assert r.json()["error"] == "Machine not found"


def test_deleting_material_drops_bom_lines(client, admin_headers, make_machine, make_material):
    machine = make_machine()
    mat = make_material()
    client.post(f"/api/machines/{machine['id']}/bom", json={"materialId": mat["id"], "quantity": 2}, headers=admin_headers)
    client.delete(f"/api/materials/{mat['id']}", headers=admin_headers)
    assert client.get(f"/api/machines/{machine['id']}/bom", headers=admin_headers).json()["data"] == []
