"""HTTP client and local working set for the finance tracker API.

``FinanceClient`` wraps the JSON endpoints one method per route.
``WorkingSet`` keeps the transactions and budgets a dashboard session works
with: it only changes after the server has acknowledged a mutation, and then
it stores exactly the entity the server returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

import httpx

import analytics
from periods import DEFAULT_TIMEZONE, resolve_month, today_in
from schemas import BudgetOut, TransactionOut

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:8000"
DEFAULT_TIMEOUT = httpx.Timeout(10.0, connect=5.0)


class ApiError(Exception):
    def __init__(self, status_code: int, detail: str) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail


class FinanceClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        client: Optional[httpx.Client] = None,
        timeout: httpx.Timeout | float = DEFAULT_TIMEOUT,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "FinanceClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        response = self._client.request(method, path, **kwargs)
        if response.is_error:
            try:
                detail = str(response.json().get("detail", response.text))
            except ValueError:
                detail = response.text
            logger.warning(
                f"api_error: method={method} path={path} "
                f"status={response.status_code} detail={detail}"
            )
            raise ApiError(response.status_code, detail)
        return response.json()

    # transactions

    def list_transactions(self) -> list[TransactionOut]:
        data = self._request("GET", "/transactions")
        return [TransactionOut.model_validate(item) for item in data]

    def create_transaction(
        self, amount: float, date: str, description: str, category: str = "Others"
    ) -> TransactionOut:
        payload = {
            "amount": amount,
            "date": date,
            "description": description,
            "category": category,
        }
        return TransactionOut.model_validate(
            self._request("POST", "/transactions", json=payload)
        )

    def update_transaction(
        self, transaction_id: str, amount: float, date: str, description: str
    ) -> TransactionOut:
        payload = {"amount": amount, "date": date, "description": description}
        return TransactionOut.model_validate(
            self._request("PUT", f"/transactions/{transaction_id}", json=payload)
        )

    def delete_transaction(self, transaction_id: str) -> bool:
        try:
            self._request("DELETE", f"/transactions/{transaction_id}")
        except ApiError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True

    # budgets

    def list_budgets(self, month: Optional[str] = None) -> list[BudgetOut]:
        params = {"month": month} if month else None
        data = self._request("GET", "/budgets", params=params)
        return [BudgetOut.model_validate(item) for item in data]

    def save_budget(self, category: str, month: str, budget: float) -> BudgetOut:
        payload = {"category": category, "month": month, "budget": budget}
        return BudgetOut.model_validate(self._request("POST", "/budgets", json=payload))

    def update_budget(self, category: str, month: str, budget: float) -> BudgetOut:
        payload = {"category": category, "month": month, "budget": budget}
        return BudgetOut.model_validate(self._request("PUT", "/budgets", json=payload))

    def delete_budget(self, budget_id: str) -> bool:
        try:
            self._request("DELETE", f"/budgets/{budget_id}")
        except ApiError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True


@dataclass(frozen=True)
class Dashboard:
    month: str
    summary: analytics.DashboardSummary
    recent: list[TransactionOut]
    category_totals: list[analytics.CategoryTotal]
    top_categories: list[analytics.CategoryTotal]
    monthly_totals: list[analytics.MonthlyTotal]
    budget_comparison: list[analytics.BudgetComparison]
    insights: list[analytics.Insight]
    month_summary: analytics.MonthSummary


@dataclass
class WorkingSet:
    client: FinanceClient
    transactions: list[TransactionOut] = field(default_factory=list)
    budgets: list[BudgetOut] = field(default_factory=list)
    # "today" for the dashboard; match the server's FINANCE_TIMEZONE
    timezone: str = DEFAULT_TIMEZONE

    def load(self) -> None:
        transactions = self.client.list_transactions()
        budgets = self.client.list_budgets()
        self.transactions = transactions
        self.budgets = budgets
        logger.info(
            f"working_set_loaded: transactions={len(transactions)} "
            f"budgets={len(budgets)}"
        )

    def add_transaction(
        self, amount: float, date: str, description: str, category: str = "Others"
    ) -> TransactionOut:
        entity = self.client.create_transaction(amount, date, description, category)
        self.transactions.insert(0, entity)
        return entity

    def edit_transaction(
        self, transaction_id: str, amount: float, date: str, description: str
    ) -> TransactionOut:
        entity = self.client.update_transaction(
            transaction_id, amount, date, description
        )
        self.transactions = [
            entity if txn.id == entity.id else txn for txn in self.transactions
        ]
        return entity

    def remove_transaction(self, transaction_id: str) -> bool:
        removed = self.client.delete_transaction(transaction_id)
        if removed:
            self.transactions = [
                txn for txn in self.transactions if txn.id != transaction_id
            ]
        return removed

    def set_budget(self, category: str, month: str, budget: float) -> BudgetOut:
        entity = self.client.save_budget(category, month, budget)
        # the server upserts on (category, month); mirror that locally
        kept = [
            item
            for item in self.budgets
            if item.id != entity.id
            and not (item.category == entity.category and item.month == entity.month)
        ]
        self.budgets = [entity, *kept]
        return entity

    def edit_budget(self, category: str, month: str, budget: float) -> BudgetOut:
        entity = self.client.update_budget(category, month, budget)
        self.budgets = [
            entity if item.id == entity.id else item for item in self.budgets
        ]
        return entity

    def remove_budget(self, budget_id: str) -> bool:
        removed = self.client.delete_budget(budget_id)
        if removed:
            self.budgets = [item for item in self.budgets if item.id != budget_id]
        return removed

    def dashboard(
        self, month: Optional[str] = None, *, today: Optional[date] = None
    ) -> Dashboard:
        today = today or today_in(self.timezone)
        key = resolve_month(month, today=today).key
        transactions = list(self.transactions)
        budgets = list(self.budgets)
        return Dashboard(
            month=key,
            summary=analytics.dashboard_summary(transactions, today=today),
            recent=analytics.recent_transactions(transactions),
            category_totals=analytics.category_totals(transactions),
            top_categories=analytics.top_categories(transactions),
            monthly_totals=analytics.monthly_totals(transactions, today=today),
            budget_comparison=analytics.budget_comparison(transactions, budgets, key),
            insights=analytics.spending_insights(transactions, budgets, key),
            month_summary=analytics.month_summary(transactions, budgets, key),
        )
