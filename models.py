import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


class Category(str, Enum):
    food = "Food"
    transport = "Transport"
    utilities = "Utilities"
    rent = "Rent"
    entertainment = "Entertainment"
    shopping = "Shopping"
    healthcare = "Healthcare"
    others = "Others"


DEFAULT_CATEGORY = Category.others


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    # naive UTC; serialized with a trailing "Z"
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    amount: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )
    date: Mapped[str] = mapped_column(String(40), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    # legacy rows may carry no category
    category: Mapped[Optional[str]] = mapped_column(String(32))

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaction_amount_positive"),
        Index("ix_transactions_created_at", "created_at"),
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_id)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    month: Mapped[str] = mapped_column(String(7), nullable=False)
    budget: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )

    __table_args__ = (
        CheckConstraint("budget > 0", name="ck_budget_amount_positive"),
        UniqueConstraint("category", "month", name="uq_budget_category_month"),
        Index("ix_budgets_month", "month"),
    )
