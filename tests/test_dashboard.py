from datetime import datetime, timedelta, timezone


def _dash(client, headers, path, **params):
    r = client.get(f"/api/dashboard/{path}", params=params, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]


def test_stats_counts(client, admin_headers, make_material, make_machine, move):
    a = make_material("A", currentStock=0, minStock=5, unitPrice=2)
    make_material("B", currentStock=5, minStock=5, unitPrice=2)
    make_material("C", currentStock=50, minStock=5, unitPrice=1)
    make_machine("M1")
    make_machine("M2", status="maintenance")
    move(a["id"], "IN", 10)
    move(a["id"], "OUT", 4)

    stats = _dash(client, admin_headers, "stats")
    assert stats["materials"] == {"total": 3, "lowStock": 1, "outOfStock": 0, "totalValue": 6 * 2 + 5 * 2 + 50}
    assert stats["machines"] == {"total": 2, "active": 1, "maintenance": 1, "inactive": 0}
    assert stats["movements"] == {"monthlyInbound": 10, "monthlyOutbound": 4, "monthlyNet": 6, "totalMovements": 2}
    assert stats["workOrders"]["total"] == 0


def test_low_stock_tracks_material_changes(client, admin_headers, make_material, move):
    m = make_material("LOW", currentStock=10, minStock=5)
    assert _dash(client, admin_headers, "stats")["materials"]["lowStock"] == 0
    move(m["id"], "OUT", 6)
    assert _dash(client, admin_headers, "stats")["materials"]["lowStock"] == 1
    client.put(f"/api/materials/{m['id']}", json={"minStock": 2}, headers=admin_headers)
    assert _dash(client, admin_headers, "stats")["materials"]["lowStock"] == 0
    client.delete(f"/api/materials/{m['id']}", headers=admin_headers)
    assert _dash(client, admin_headers, "stats")["materials"] == {"total": 0, "lowStock": 0, "outOfStock": 0, "totalValue": 0}


def test_critical_stock_severity_order(client, admin_headers, make_material):
    make_material("MED", currentStock=8, minStock=10)
    make_material("ZERO", currentStock=0, minStock=10)
    make_material("HALF", currentStock=5, minStock=10)
    make_material("OK", currentStock=50, minStock=10)

    alerts = _dash(client, admin_headers, "critical-stock")
    assert [(a["code"], a["severity"]) for a in alerts] == [("ZERO", "critical"), ("HALF", "high"), ("MED", "medium")]
    assert _dash(client, admin_headers, "alerts/critical-stock") == alerts


def test_recent_movements_limit(client, admin_headers, make_material, move):
    m = make_material()
    for qty in (1, 2, 3):
        move(m["id"], "IN", qty)
    rows = _dash(client, admin_headers, "recent-movements", limit=2)
    assert [r["quantity"] for r in rows] == [3, 2]


def test_work_order_stats(client, admin_headers):
    ids = []
    for title in ("a", "b", "c", "d"):
        ids.append(client.post("/api/workorders", json={"title": title}, headers=admin_headers).json()["data"]["id"])
    client.patch(f"/api/workorders/{ids[0]}/start", headers=admin_headers)
    client.patch(f"/api/workorders/{ids[0]}/complete", headers=admin_headers)
    client.patch(f"/api/workorders/{ids[1]}/start", headers=admin_headers)
    client.patch(f"/api/workorders/{ids[2]}/cancel", headers=admin_headers)

    stats = _dash(client, admin_headers, "work-order-stats")
    assert stats["total"] == 4
    assert stats["pending"] == stats["planned"] == 1
    assert stats["inProgress"] == 1
    assert stats["completed"] == 1
    assert stats["cancelled"] == 1
    assert stats["completionRate"] == 25.0


def test_category_distribution(client, admin_headers, make_material):
    make_material("E1", category="electrical", currentStock=10, unitPrice=3)
    make_material("P1", category="panel", currentStock=10, unitPrice=1)
    rows = _dash(client, admin_headers, "category-distribution")
    assert [r["name"] for r in rows] == ["electrical", "panel"]
    assert rows[0]["percentage"] == 75.0
    assert rows[1]["count"] == 1


def test_stock_trends_covers_requested_days(client, admin_headers, make_material, move):
    m = make_material()
    move(m["id"], "IN", 7)
    rows = _dash(client, admin_headers, "stock-trends", days=3)
    assert len(rows) == 3
    today = datetime.now(timezone.utc).date().isoformat()
    assert rows[-1] == {"date": today, "stockIn": 7, "stockOut": 0, "net": 7}
    assert rows[0]["stockIn"] == 0


def test_monthly_trends(client, admin_headers, make_material, move):
    m = make_material(unitPrice=2)
    move(m["id"], "IN", 5)
    rows = _dash(client, admin_headers, "trends/stock-movements", months=3)
    assert len(rows) == 3
    assert rows[-1]["inbound"] == 10
    assert rows[-1]["month"] == datetime.now(timezone.utc).strftime("%Y-%m")
    assert len(_dash(client, admin_headers, "trends/workorder-completion")) == 6


def test_upcoming_and_top_consumed(client, admin_headers, make_material, move):
    soon = (datetime.now(timezone.utc) + timedelta(days=2)).isoformat()
    later = (datetime.now(timezone.utc) + timedelta(days=20)).isoformat()
    client.post("/api/workorders", json={"title": "soon", "plannedStartDate": soon}, headers=admin_headers)
    client.post("/api/workorders", json={"title": "later", "plannedStartDate": later}, headers=admin_headers)
    assert [w["title"] for w in _dash(client, admin_headers, "upcoming-workorders")] == ["soon"]

    cheap = make_material("CHEAP", currentStock=100, unitPrice=1)
    dear = make_material("DEAR", currentStock=100, unitPrice=10)
    move(cheap["id"], "OUT", 20)
    move(dear["id"], "OUT", 5)
    top = _dash(client, admin_headers, "top-consumed-materials")
    assert [t["materialCode"] for t in top] == ["DEAR", "CHEAP"]
    assert top[0]["totalValue"] == 50


def test_dashboard_requires_auth(client):
    assert client.get("/api/dashboard/stats").status_code == 401


def test_trend_ranges_are_bounded(client, admin_headers):
    for path, params in [
        ("stock-trends", {"days": 1000000000}),
        ("stock-trends", {"days": 0}),
        ("stock-trends", {"startDate": "0001-01-01"}),
        ("stock-trends", {"startDate": "2030-01-02", "endDate": "2030-01-01"}),
        ("trends/stock-movements", {"months": 30000}),
        ("trends/workorder-completion", {"months": 61}),
    ]:
        r = client.get(f"/api/dashboard/{path}", params=params, headers=admin_headers)
        assert r.status_code == 400, (path, params, r.text)
        assert r.json()["success"] is False

    assert len(_dash(client, admin_headers, "stock-trends", days=366)) == 366
    assert len(_dash(client, admin_headers, "trends/stock-movements", months=60)) == 60
