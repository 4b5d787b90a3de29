from datetime import datetime, timezone
from typing import Annotated, Any, Optional, Sequence

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from models import DEFAULT_CATEGORY, Category
from periods import parse_iso_datetime, parse_month

# Numeric(12, 2) columns: ten integer digits, two decimal places
MAX_AMOUNT = 10**10


class _Input(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


def _whole_cents(value: float) -> float:
    if round(value, 2) != value:
        raise ValueError("Amount must have at most two decimal places")
    return value


Amount = Annotated[
    float,
    Field(gt=0, lt=MAX_AMOUNT, allow_inf_nan=False),
    AfterValidator(_whole_cents),
]


class TransactionUpdate(_Input):
    amount: Amount
    date: str = Field(..., min_length=1, max_length=40)
    description: str = Field(..., min_length=1)

    @field_validator("date")
    @classmethod
    def _date_is_iso(cls, value: str) -> str:
        if parse_iso_datetime(value) is None:
            raise ValueError("Date must be an ISO-8601 date or date-time")
        return value


class TransactionIn(TransactionUpdate):
    category: Category = DEFAULT_CATEGORY


class BudgetIn(_Input):
    category: Category
    month: str = Field(..., min_length=1)
    budget: Amount

    @field_validator("month")
    @classmethod
    def _month_format(cls, value: str) -> str:
        return parse_month(value).key


def _iso_utc(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    amount: float
    date: str
    description: str
    category: str = DEFAULT_CATEGORY.value
    created_at: datetime = Field(alias="createdAt")

    @field_validator("category", mode="before")
    @classmethod
    def _legacy_category(cls, value: Optional[str]) -> str:
        if value is None or not str(value).strip():
            return DEFAULT_CATEGORY.value
        return str(getattr(value, "value", value))

    @field_serializer("created_at")
    def _created_at(self, value: datetime) -> str:
        return _iso_utc(value)


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    category: str
    month: str
    budget: float
    created_at: datetime = Field(alias="createdAt")

    @field_serializer("created_at")
    def _created_at(self, value: datetime) -> str:
        return _iso_utc(value)


def first_error_message(errors: Sequence[Any]) -> str:
    """Human-readable message for the first failing field."""
    if not errors:
        return "Invalid input"
    error = errors[0]
    field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = str(error.get("msg", "Invalid input"))
    if message.startswith("Value error, "):
        message = message[len("Value error, ") :]
    if error.get("type") == "missing":
        return f"{field.capitalize()} is required" if field else "Missing field"
    return f"{field}: {message}" if field else message
