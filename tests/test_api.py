from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import OperationalError

from config import get_settings
from services import TransactionService


def _create(client, **overrides):
    payload = {
        "amount": 25.5,
        "date": "2024-03-04",
        "description": "Groceries",
        "category": "Food",
    }
    payload.update(overrides)
    return client.post("/transactions", json=payload)


def test_missing_database_url_is_fatal(monkeypatch) -> None:
    monkeypatch.delenv("FINANCE_DATABASE_URL", raising=False)
    get_settings.cache_clear()
    with pytest.raises(RuntimeError):
        get_settings()
    get_settings.cache_clear()


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_transaction_crud_round_trip(client) -> None:
    created = _create(client)
    assert created.status_code == 201
    body = created.json()
    assert body["amount"] == 25.5
    assert body["category"] == "Food"
    assert body["description"] == "Groceries"
    assert isinstance(body["id"], str)
    assert body["createdAt"].endswith("Z")

    listed = client.get("/transactions")
    assert listed.status_code == 200
    assert [t["id"] for t in listed.json()] == [body["id"]]

    updated = client.put(
        f"/transactions/{body['id']}",
        json={
            "amount": 30,
            "date": "2024-03-05",
            "description": "Market",
            "category": "Rent",
        },
    )
    assert updated.status_code == 200
    assert updated.json()["amount"] == 30
    assert updated.json()["description"] == "Market"
    assert updated.json()["category"] == "Food"
    assert updated.json()["createdAt"] == body["createdAt"]

    deleted = client.delete(f"/transactions/{body['id']}")
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Transaction deleted successfully"}
    assert client.get("/transactions").json() == []


def test_transactions_listed_newest_first(client) -> None:
    first = _create(client, description="first").json()
    second = _create(client, description="second").json()
    ids = [t["id"] for t in client.get("/transactions").json()]
    assert ids == [second["id"], first["id"]]


@pytest.mark.parametrize(
    "overrides",
    [
        {"amount": 0},
        {"amount": -3},
        {"amount": "abc"},
        {"date": ""},
        {"date": "0001-01-01T00:00:00+05:00"},
        {"amount": 0.004},
        {"description": "   "},
        {"category": "Pets"},
    ],
)
def test_invalid_transaction_is_rejected_with_400(client, overrides) -> None:
    response = _create(client, **overrides)
    assert response.status_code == 400
    assert response.json()["detail"]
    assert client.get("/transactions").json() == []


def test_non_object_body_is_rejected_with_400(client) -> None:
    response = client.post("/transactions", json=[1, 2, 3])
    assert response.status_code == 400


def test_update_and_delete_missing_transaction_is_404(client) -> None:
    response = client.put(
        "/transactions/missing",
        json={"amount": 1, "date": "2024-01-01", "description": "x"},
    )
    assert response.status_code == 404
    assert response.json() == {"detail": "Transaction not found"}
    assert client.delete("/transactions/missing").status_code == 404


def test_budget_post_is_an_upsert(client) -> None:
    first = client.post(
        "/budgets", json={"category": "Food", "month": "2024-03", "budget": 100}
    )
    second = client.post(
        "/budgets", json={"category": "Food", "month": "2024-03", "budget": 175}
    )
    assert first.status_code == 201
    assert second.status_code == 201
    assert second.json()["id"] == first.json()["id"]

    listed = client.get("/budgets", params={"month": "2024-03"}).json()
    assert len(listed) == 1
    assert listed[0]["budget"] == 175


def test_budget_list_filters_by_month(client) -> None:
    client.post("/budgets", json={"category": "Food", "month": "2024-03", "budget": 1})
    client.post("/budgets", json={"category": "Food", "month": "2024-04", "budget": 2})
    assert len(client.get("/budgets").json()) == 2
    april = client.get("/budgets", params={"month": "2024-04"}).json()
    assert [b["budget"] for b in april] == [2]


def test_budget_put_updates_existing_pair_only(client) -> None:
    payload = {"category": "Rent", "month": "2024-03", "budget": 900}
    missing = client.put("/budgets", json=payload)
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Budget not found"}

    created = client.post("/budgets", json=payload).json()
    updated = client.put("/budgets", json={**payload, "budget": 950})
    assert updated.status_code == 200
    assert updated.json()["id"] == created["id"]
    assert updated.json()["budget"] == 950


def test_budget_validation_and_delete(client) -> None:
    invalid = client.post(
        "/budgets", json={"category": "Food", "month": "2024-3", "budget": 10}
    )
    assert invalid.status_code == 400

    created = client.post(
        "/budgets", json={"category": "Food", "month": "2024-03", "budget": 10}
    ).json()
    assert client.delete(f"/budgets/{created['id']}").json() == {
        "message": "Budget deleted successfully"
    }
    assert client.delete(f"/budgets/{created['id']}").status_code == 404


def test_store_failure_is_reported_as_500(client, monkeypatch) -> None:
    def broken(self):
        raise OperationalError("SELECT", {}, Exception("database is gone"))

    monkeypatch.setattr(TransactionService, "list_all", broken)
    response = client.get("/transactions")
    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to fetch transactions"}


def test_insights_endpoint(client) -> None:
    _create(client, amount=50, date="2024-03-01")
    _create(client, amount=150, date="2024-03-15")
    _create(client, amount=30, date="2024-03-20", category="Transport")
    client.post("/budgets", json={"category": "Food", "month": "2024-03", "budget": 150})

    response = client.get("/api/insights", params={"month": "2024-03"})
    assert response.status_code == 200
    body = response.json()
    assert body["month"] == "2024-03"
    assert body["label"] == "March 2024"
    assert body["summary"] == {
        "month": "2024-03",
        "total_budgeted": 150,
        "total_actual": 230,
        "total_remaining": -80,
    }
    statuses = [(i["category"], i["status"]) for i in body["insights"]]
    assert statuses == [("Food", "over"), ("Transport", "no-budget")]
    assert "$50.00" in body["insights"][0]["message"]


def test_budget_comparison_endpoint(client) -> None:
    _create(client, amount=40, date="2024-03-01")
    client.post("/budgets", json={"category": "Rent", "month": "2024-03", "budget": 500})
    rows = client.get("/api/budget-comparison", params={"month": "2024-03"}).json()
    assert [r["category"] for r in rows] == ["Rent", "Food"]
    assert rows[1]["over_budget"] is False

    bad = client.get("/api/budget-comparison", params={"month": "March"})
    assert bad.status_code == 400


def test_breakdown_and_top_categories_endpoints(client) -> None:
    _create(client, amount=10, category="Food")
    _create(client, amount=30, category="Rent")
    _create(client, amount=20, category="Transport")
    _create(client, amount=5, category="Shopping")

    breakdown = client.get("/api/category-breakdown").json()
    assert [r["category"] for r in breakdown] == ["Rent", "Transport", "Food", "Shopping"]
    assert sum(r["percentage"] for r in breakdown) == pytest.approx(100.0)

    top = client.get("/api/top-categories").json()
    assert [r["category"] for r in top] == ["Rent", "Transport", "Food"]


def test_summary_monthly_and_recent_endpoints(client) -> None:
    today = datetime.now(timezone.utc).date()
    this_month = today.replace(day=1).isoformat()
    _create(client, amount=12, date=this_month)
    _create(client, amount=8, date="1999-01-01", category="Rent")

    summary = client.get("/api/summary").json()
    assert summary["total_expenses"] == 20
    assert summary["transaction_count"] == 2
    assert summary["active_categories"] == 2

    months = client.get("/api/monthly-totals").json()
    assert len(months) == 12
    assert sum(m["amount"] for m in months) == 12

    recent = client.get("/api/transactions/recent", params={"limit": 1}).json()
    assert len(recent) == 1
    assert recent[0]["date"] == "1999-01-01"
