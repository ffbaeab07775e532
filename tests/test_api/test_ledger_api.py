"""
Tests for /earnings, /stats, /top and /snapshots endpoints
"""
from datetime import timedelta

from topledger.application.tops import StartTopUseCase
from topledger.domain.top_period import utcnow


def _post_earning(client, headers, **overrides):
    body = {
        "amount": 10.5,
        "currency": "EUR",
        "durationMinutes": 90,
        "paymentMethod": "Cash",
        "date": utcnow().date().isoformat(),
    }
    body.update(overrides)
    return client.post("/earnings", json=body, headers=headers)


def test_create_and_list_earnings(client, user, auth_headers):
    h = auth_headers(user)
    resp = _post_earning(client, h)
    assert resp.status_code == 201
    created = resp.json()
    assert created["amount"] == 10.5
    assert created["eur_amount"] == 10.5
    assert created["gbp_amount"] == 0
    assert created["currency"] == "EUR"
    assert created["duration_minutes"] == 90

    listed = client.get("/earnings", headers=h).json()
    assert [e["id"] for e in listed] == [created["id"]]


def test_create_accepts_snake_case_fields(client, user, auth_headers):
    resp = client.post("/earnings", json={
        "amount": "3.50", "currency": "USD", "duration_minutes": 30, "payment_method": "Revolut",
    }, headers=auth_headers(user))
    assert resp.status_code == 201
    assert resp.json()["usd_amount"] == 3.5


def test_create_validation_errors(client, user, auth_headers):
    h = auth_headers(user)
    assert _post_earning(client, h, amount=0).status_code == 400
    assert _post_earning(client, h, currency="BRL").status_code == 400
    assert _post_earning(client, h, paymentMethod="Cheque").status_code == 400
    assert _post_earning(client, h, durationMinutes=0).status_code == 400
    resp = client.post("/earnings", json={"amount": 1, "currency": "EUR"}, headers=h)
    assert resp.status_code == 400
    assert "error" in resp.json()


def test_update_and_delete_own_earning(client, user, auth_headers):
    h = auth_headers(user)
    earning_id = _post_earning(client, h).json()["id"]

    resp = client.put(f"/earnings/{earning_id}", json={"amount": 20, "paymentMethod": "Wise"}, headers=h)
    assert resp.status_code == 200
    assert resp.json() == {"success": True}
    updated = client.get("/earnings", headers=h).json()[0]
    assert updated["eur_amount"] == 20.0
    assert updated["payment_method"] == "Wise"

    assert client.delete(f"/earnings/{earning_id}", headers=h).json() == {"success": True}
    assert client.get("/earnings", headers=h).json() == []


def test_cannot_touch_someone_elses_earning(client, user, other_user, auth_headers):
    earning_id = _post_earning(client, auth_headers(user)).json()["id"]
    h = auth_headers(other_user)
    assert client.put(f"/earnings/{earning_id}", json={"amount": 1}, headers=h).status_code == 403
    assert client.delete(f"/earnings/{earning_id}", headers=h).status_code == 403
    assert client.delete("/earnings/999999", headers=h).status_code == 404


def test_weekly_stats(client, user, auth_headers):
    h = auth_headers(user)
    _post_earning(client, h, amount=10, currency="GBP")
    _post_earning(client, h, amount=2.25, currency="GBP")
    rows = client.get("/stats/weekly", headers=h).json()
    assert len(rows) == 1
    assert rows[0]["total_gbp"] == 12.25
    assert rows[0]["earnings_count"] == 2
    assert rows[0]["days_worked"] == 1


def test_top_lifecycle(client, user, auth_headers):
    h = auth_headers(user)
    assert client.get("/top/current", headers=h).json() is None

    started = client.post("/top/start", headers=h)
    assert started.status_code == 201
    top_id = started.json()["id"]
    assert started.json()["current_day"] == 1

    assert client.post("/top/start", headers=h).status_code == 409

    _post_earning(client, h, amount=10, currency="EUR")
    current = client.get("/top/current", headers=h).json()
    assert current["id"] == top_id
    assert 1 <= current["current_day"] <= 7
    assert 0 < current["time_remaining_seconds"] <= 7 * 24 * 3600
    assert current["summary"]["totals"]["eur"] == 10.0

    report = client.get(f"/top/{top_id}/report", headers=h).json()
    assert report["source"] == "live"

    stopped = client.post("/top/stop", headers=h).json()
    assert stopped["success"] is True
    assert stopped["message"] == "Top stopped"

    again = client.post("/top/stop", headers=h)
    assert again.status_code == 200
    assert again.json() == {"success": False, "message": "No active top to stop"}

    report = client.get(f"/top/{top_id}/report", headers=h).json()
    assert report["source"] == "snapshot"
    assert report["summary"]["totals"]["eur"] == 10.0
    assert report["summary"]["days_worked"] == 1

    history = client.get("/top/history", headers=h).json()
    assert [t["status"] for t in history] == ["stopped"]
    assert "current_day" not in history[0]


def test_top_report_of_other_user_forbidden(client, db_session, user, other_user, auth_headers):
    top = StartTopUseCase(db_session).execute(user.id, now=utcnow() - timedelta(days=1))
    resp = client.get(f"/top/{top.id}/report", headers=auth_headers(other_user))
    assert resp.status_code == 403


def test_snapshots_endpoints(client, user, other_user, auth_headers):
    h = auth_headers(user)
    client.post("/top/start", headers=h)
    _post_earning(client, h, amount=5, currency="USD", paymentMethod="PayPal")
    client.post("/top/stop", headers=h)

    snaps = client.get("/snapshots", headers=h).json()
    assert len(snaps) == 1
    snap = snaps[0]
    assert snap["totals"]["usd"] == 5.0
    assert snap["by_payment_method"]["PayPal"]["usd"] == 5.0
    assert snap["days_worked_label"] == "1/7"

    one = client.get(f"/snapshots/{snap['id']}", headers=h)
    assert one.status_code == 200
    assert one.json()["id"] == snap["id"]

    assert client.get(f"/snapshots/{snap['id']}", headers=auth_headers(other_user)).status_code == 403
    assert client.get("/snapshots/424242", headers=h).status_code == 404
