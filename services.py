from __future__ import annotations

from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from models import Budget, Transaction, utcnow
from schemas import BudgetIn, TransactionIn, TransactionUpdate


class TransactionNotFound(ValueError):
    pass


class BudgetNotFound(ValueError):
    pass


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Transaction]:
        stmt = select(Transaction).order_by(Transaction.created_at.desc())
        return list(self.session.scalars(stmt).all())

    def recent(self, limit: int = 5) -> list[Transaction]:
        stmt = (
            select(Transaction).order_by(Transaction.created_at.desc()).limit(limit)
        )
        return list(self.session.scalars(stmt).all())

    def get(self, transaction_id: str) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if not txn:
            raise TransactionNotFound("Transaction not found")
        return txn

    def create(self, data: TransactionIn) -> Transaction:
        txn = Transaction(
            amount=data.amount,
            date=data.date,
            description=data.description,
            category=data.category.value,
            created_at=utcnow(),
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def update(self, transaction_id: str, data: TransactionUpdate) -> Transaction:
        # category is fixed once the transaction exists
        txn = self.get(transaction_id)
        txn.amount = data.amount
        txn.date = data.date
        txn.description = data.description
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete(self, transaction_id: str) -> bool:
        result = self.session.execute(
            delete(Transaction).where(Transaction.id == transaction_id)
        )
        self.session.commit()
        return result.rowcount == 1


class BudgetService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self, month: Optional[str] = None) -> list[Budget]:
        stmt = select(Budget).order_by(Budget.created_at.desc())
        if month:
            stmt = stmt.where(Budget.month == month)
        return list(self.session.scalars(stmt).all())

    def find(self, category: str, month: str) -> Optional[Budget]:
        stmt = select(Budget).where(Budget.category == category, Budget.month == month)
        return self.session.scalar(stmt)

    def upsert(self, data: BudgetIn) -> Budget:
        """Find-or-create keyed on (category, month).

        An existing budget for the pair is overwritten in place, amount and
        creation time both, so the pair never holds more than one row.
        """
        existing = self.find(data.category.value, data.month)
        if existing:
            existing.budget = data.budget
            existing.created_at = utcnow()
            self.session.commit()
            self.session.refresh(existing)
            return existing

        budget = Budget(
            category=data.category.value,
            month=data.month,
            budget=data.budget,
            created_at=utcnow(),
        )
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def update(self, data: BudgetIn) -> Budget:
        existing = self.find(data.category.value, data.month)
        if not existing:
            raise BudgetNotFound("Budget not found")
        existing.budget = data.budget
        self.session.commit()
        self.session.refresh(existing)
        return existing

    def delete(self, budget_id: str) -> bool:
        result = self.session.execute(delete(Budget).where(Budget.id == budget_id))
        self.session.commit()
        return result.rowcount == 1
