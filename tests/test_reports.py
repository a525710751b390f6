import csv
import io


def test_inventory_report_json_and_filters(client, admin_headers, make_material):
    make_material("A", currentStock=0, minStock=5, unitPrice=2, location="A-01")
    make_material("B", currentStock=3, minStock=5, unitPrice=2, location="A-01")
    make_material("C", currentStock=50, minStock=5, unitPrice=1, location="B-01")

    data = client.get("/api/reports/inventory", headers=admin_headers).json()["data"]
    assert data["summary"]["totalItems"] == 3
    assert data["summary"]["lowStockItems"] == 2
    assert data["summary"]["outOfStockItems"] == 1
    assert data["summary"]["totalValue"] == 56
    assert [m["stockStatus"] for m in data["materials"]] == ["Out of stock", "Low stock", "Normal"]

    low = client.get("/api/reports/stock", params={"stockStatus": "low"}, headers=admin_headers).json()["data"]
    assert [m["code"] for m in low["materials"]] == ["B"]
    located = client.get("/api/reports/inventory", params={"location": "B-01"}, headers=admin_headers).json()["data"]
    assert [m["code"] for m in located["materials"]] == ["C"]


def test_inventory_report_csv(client, admin_headers, make_material):
    make_material("A", name="Fuse, 16A", currentStock=4, unitPrice=2)
    r = client.get("/api/reports/inventory", params={"format": "csv"}, headers=admin_headers)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/csv")
    assert "stock-report.csv" in r.headers["content-disposition"]
    rows = list(csv.reader(io.StringIO(r.text)))
    assert rows[0][:2] == ["Code", "Name"]
    assert rows[1][:2] == ["A", "Fuse, 16A"]


def test_movements_report(client, admin_headers, make_material, move):
    m = make_material(unitPrice=2)
    move(m["id"], "IN", 10)
    move(m["id"], "OUT", 4)
    summary = client.get("/api/reports/movements", headers=admin_headers).json()["data"]["summary"]
    assert summary["totalMovements"] == 2
    assert summary["inboundQuantity"] == 10
    assert summary["outboundValue"] == 8

    r = client.get("/api/reports/movements", params={"format": "csv", "type": "IN"}, headers=admin_headers)
    rows = list(csv.reader(io.StringIO(r.text)))
    assert len(rows) == 2
    assert rows[1][3] == "IN"


def test_workorders_report(client, admin_headers):
    wo = client.post("/api/workorders", json={"title": "one"}, headers=admin_headers).json()["data"]
    client.post("/api/workorders", json={"title": "two"}, headers=admin_headers)
    client.patch(f"/api/workorders/{wo['id']}/start", headers=admin_headers)
    client.patch(f"/api/workorders/{wo['id']}/complete", headers=admin_headers)

    summary = client.get("/api/reports/workorders", headers=admin_headers).json()["data"]["summary"]
    assert summary["totalWorkOrders"] == 2
    assert summary["completedWorkOrders"] == 1
    assert summary["completionRate"] == 50.0
    r = client.get("/api/reports/workorders", params={"format": "csv"}, headers=admin_headers)
    assert r.text.splitlines()[0].startswith("Order Number,Title")


def test_machines_report(client, admin_headers, make_machine, make_material):
    machine = make_machine("M1")
    make_machine("M2", status="inactive")
    mat = make_material(unitPrice=3)
    client.post(f"/api/machines/{machine['id']}/bom", json={"materialId": mat["id"], "quantity": 2}, headers=admin_headers)
    client.post("/api/workorders", json={"title": "x", "machineId": machine["id"]}, headers=admin_headers)

    data = client.get("/api/reports/machines", headers=admin_headers).json()["data"]
    assert data["summary"]["totalMachines"] == 2
    m1 = data["machines"][0]
    assert m1["code"] == "M1"
    assert m1["totalWorkOrders"] == 1
    assert m1["bomItems"] == 1
    assert m1["bomCost"] == 6
    alias = client.get("/api/reports/machine-utilization", params={"status": "inactive"}, headers=admin_headers).json()["data"]
    assert [m["code"] for m in alias["machines"]] == ["M2"]
