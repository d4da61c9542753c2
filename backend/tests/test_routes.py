"""HTTP surface: caller context, status mapping, and happy paths."""

from bevstock.services.persistence import PersistenceError


def test_health_is_open(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"


def test_missing_caller_is_401(client, db_session):
    assert client.get("/api/products").status_code == 401


def test_disallowed_role_is_401(client, db_session):
    resp = client.get("/api/products", headers={"X-User-Id": "u1", "X-User-Role": "cashier"})
    assert resp.status_code == 401


def test_product_lifecycle(client, db_session, auth_headers):
    resp = client.post(
        "/api/products",
        json={"name": "Cola", "category": "Soda", "selling_price_cents": 250, "opening_stock": 5, "reorder_level": 5},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    pid = resp.get_json()["product"]["id"]

    resp = client.get("/api/products", headers=auth_headers)
    item = resp.get_json()["items"][0]
    assert (item["current_stock"], item["status"]) == (5, "LOW")

    assert client.post("/api/products", json={"name": "Cola", "category": "Soda"}, headers=auth_headers).status_code == 409
    assert client.put(f"/api/products/{pid}", json={"category": "Wine"}, headers=auth_headers).status_code == 400
    assert client.get("/api/products/9999", headers=auth_headers).status_code == 404
    assert client.delete(f"/api/products/{pid}", headers=auth_headers).status_code == 200


def test_stock_routes(client, db_session, auth_headers, make_product):
    p = make_product(opening_stock=3)

    resp = client.post("/api/stock/inbound", json={"product_id": p.id, "quantity": 7}, headers=auth_headers)
    assert resp.status_code == 201
    assert resp.get_json()["stock"]["current_stock"] == 10

    resp = client.post("/api/stock/adjustments", json={"product_id": p.id, "quantity": -2}, headers=auth_headers)
    assert resp.status_code == 400

    resp = client.post(
        "/api/stock/adjustments",
        json={"product_id": p.id, "quantity": -2, "reason": "expired"},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    assert resp.get_json()["entry"]["created_by"] == "user-1"

    resp = client.get(f"/api/products/{p.id}/stock-entries", headers=auth_headers)
    assert resp.get_json()["count"] == 2


def test_sale_and_reversal_routes(client, db_session, auth_headers, make_product):
    p = make_product(opening_stock=1)

    resp = client.post(
        "/api/sales",
        json={"lines": [{"product_id": p.id, "quantity": 2}], "payment_type": "Cash"},
        headers=auth_headers,
    )
    assert resp.status_code == 201
    body = resp.get_json()
    sale_id = body["sale"]["id"]
    assert body["sale"]["total_units"] == 2
    assert body["warnings"][0]["projected_stock"] == -1

    resp = client.post(f"/api/sales/{sale_id}/reverse", headers=auth_headers)
    assert resp.status_code == 201
    assert resp.get_json()["reversal"]["total_units"] == -2

    assert client.post(f"/api/sales/{sale_id}/reverse", headers=auth_headers).status_code == 409
    assert client.post("/api/sales/99999/reverse", headers=auth_headers).status_code == 404
    assert client.get(f"/api/sales/{sale_id}", headers=auth_headers).get_json()["sale"]["is_reversed"] is True
    assert client.get("/api/sales?filter=today", headers=auth_headers).get_json()["count"] == 2


def test_invalid_sale_lines_are_400_with_details(client, db_session, auth_headers):
    resp = client.post("/api/sales", json={"lines": [], "payment_type": "Cash"}, headers=auth_headers)
    assert resp.status_code == 400

    resp = client.post(
        "/api/sales",
        json={"lines": [{"product_id": 1, "quantity": 0}], "payment_type": "Cash"},
        headers=auth_headers,
    )
    assert resp.status_code == 400
    assert resp.get_json()["details"]["lines"][0]["index"] == 0


def test_bad_query_datetimes_and_non_object_bodies_are_400(client, db_session, auth_headers):
    resp = client.get("/api/sales?start=garbage", headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "start must be an ISO-8601 datetime"

    resp = client.get("/api/history?end=2026-13-40", headers=auth_headers)
    assert resp.status_code == 400

    ok = client.get("/api/sales?start=2026-03-01T00:00Z&end=2026-03-02T00:00Z", headers=auth_headers)
    assert ok.status_code == 200

    resp = client.post("/api/notes", json=["not", "an", "object"], headers=auth_headers)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Invalid JSON payload"


def test_persistence_error_is_503(client, db_session, auth_headers, make_product, monkeypatch):
    p = make_product()

    def boom(**kwargs):
        raise PersistenceError()

    monkeypatch.setattr("bevstock.services.sales_service.record_sale", boom)
    resp = client.post(
        "/api/sales",
        json={"lines": [{"product_id": p.id, "quantity": 1}], "payment_type": "Cash"},
        headers=auth_headers,
    )
    assert resp.status_code == 503


def test_unexpected_error_is_500(client, db_session, auth_headers, monkeypatch):
    def boom(**kwargs):
        raise RuntimeError("unexpected")

    monkeypatch.setattr("bevstock.services.notes_service.create_note", boom)
    resp = client.post("/api/notes", json={"title": "a", "content": "b"}, headers=auth_headers)
    assert resp.status_code == 500
    assert resp.get_json() == {"error": "Internal server error"}


def test_dashboard_routes(client, db_session, auth_headers, make_product):
    make_product()
    assert client.get("/api/dashboard", headers=auth_headers).status_code == 200
    assert client.get("/api/dashboard/summary", headers=auth_headers).get_json()["total_products"] == 1
    assert len(client.get("/api/dashboard/daily-sales?days=3", headers=auth_headers).get_json()["items"]) == 3
    assert client.get("/api/dashboard/daily-sales?days=0", headers=auth_headers).status_code == 400
    assert client.get("/api/dashboard/top-sellers?days=7&limit=3", headers=auth_headers).status_code == 200
    assert client.get("/api/dashboard/low-stock", headers=auth_headers).status_code == 200


def test_notes_history_audit_routes(client, db_session, auth_headers, make_product):
    resp = client.post("/api/notes", json={"title": "Shift", "content": "All good"}, headers=auth_headers)
    assert resp.status_code == 201
    note_id = resp.get_json()["note"]["id"]
    assert client.put(f"/api/notes/{note_id}", json={"title": "Shift", "content": "Late"}, headers=auth_headers).status_code == 200
    assert client.get("/api/notes", headers=auth_headers).get_json()["count"] == 1
    assert client.delete(f"/api/notes/{note_id}", headers=auth_headers).status_code == 200
    assert client.delete(f"/api/notes/{note_id}", headers=auth_headers).status_code == 404

    p = make_product()
    client.post("/api/stock/inbound", json={"product_id": p.id, "quantity": 2}, headers=auth_headers)
    assert client.get("/api/history?filter=today", headers=auth_headers).get_json()["count"] == 1
    assert client.get("/api/history?filter=nope", headers=auth_headers).status_code == 400

    audit = client.get("/api/audit?entity=note", headers=auth_headers).get_json()
    assert {r["action"] for r in audit["items"]} == {"create", "update", "delete"}


def test_cors_header_for_allowed_origin(client, db_session):
    resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
    assert "X-User-Id" in resp.headers["Access-Control-Allow-Headers"]
