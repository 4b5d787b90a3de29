import logging
from collections.abc import AsyncGenerator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import date
from typing import Any, Optional, TypeVar

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import analytics
from config import get_settings
from database import Database
from periods import MonthPeriod, resolve_month, today_in
from schemas import (
    BudgetIn,
    BudgetOut,
    TransactionIn,
    TransactionOut,
    TransactionUpdate,
    first_error_message,
)
from services import (
    BudgetNotFound,
    BudgetService,
    TransactionNotFound,
    TransactionService,
)

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)
    db = Database(settings.database_url)
    db.create_all()
    app.state.db = db
    logger.info("startup: record store ready")
    try:
        yield
    finally:
        db.dispose()
        logger.info("shutdown: record store disposed")


app = FastAPI(title="Personal Finance Tracker", lifespan=lifespan)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    detail = first_error_message(exc.errors())
    return JSONResponse(status_code=400, content={"detail": detail})


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()


def current_date() -> date:
    return today_in(get_settings().timezone)


def month_from_query(month: Optional[str]) -> MonthPeriod:
    try:
        return resolve_month(month, today=current_date())
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def parse_payload(schema: type[SchemaT], payload: dict[str, Any]) -> SchemaT:
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        detail = first_error_message(exc.errors())
        raise HTTPException(status_code=400, detail=detail) from exc


@contextmanager
def store_errors(message: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception(message)
        raise HTTPException(status_code=500, detail=message) from exc


# --- transactions ----------------------------------------------------------


@app.get("/transactions", response_model=list[TransactionOut])
def list_transactions(db: Session = Depends(get_db)):
    with store_errors("Failed to fetch transactions"):
        items = TransactionService(db).list_all()
    return [TransactionOut.model_validate(txn) for txn in items]


@app.post("/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)
):
    data = parse_payload(TransactionIn, payload)
    with store_errors("Failed to create transaction"):
        txn = TransactionService(db).create(data)
    logger.info(f"transaction_created: id={txn.id} category={txn.category}")
    return TransactionOut.model_validate(txn)


@app.put("/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: str,
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    data = parse_payload(TransactionUpdate, payload)
    with store_errors("Failed to update transaction"):
        try:
            txn = TransactionService(db).update(transaction_id, data)
        except TransactionNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
    logger.info(f"transaction_updated: id={transaction_id}")
    return TransactionOut.model_validate(txn)


@app.delete("/transactions/{transaction_id}")
def delete_transaction(transaction_id: str, db: Session = Depends(get_db)):
    with store_errors("Failed to delete transaction"):
        removed = TransactionService(db).delete(transaction_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Transaction not found")
    logger.info(f"transaction_deleted: id={transaction_id}")
    return {"message": "Transaction deleted successfully"}


# --- budgets ---------------------------------------------------------------


@app.get("/budgets", response_model=list[BudgetOut])
def list_budgets(month: Optional[str] = None, db: Session = Depends(get_db)):
    month = month.strip() if month else None
    with store_errors("Failed to fetch budgets"):
        items = BudgetService(db).list_all(month or None)
    return [BudgetOut.model_validate(budget) for budget in items]


@app.post("/budgets", response_model=BudgetOut, status_code=201)
def upsert_budget(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    data = parse_payload(BudgetIn, payload)
    with store_errors("Failed to create budget"):
        budget = BudgetService(db).upsert(data)
    logger.info(
        f"budget_saved: id={budget.id} category={budget.category} month={budget.month}"
    )
    return BudgetOut.model_validate(budget)


@app.put("/budgets", response_model=BudgetOut)
def update_budget(payload: dict[str, Any] = Body(...), db: Session = Depends(get_db)):
    data = parse_payload(BudgetIn, payload)
    with store_errors("Failed to update budget"):
        try:
            budget = BudgetService(db).update(data)
        except BudgetNotFound as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
    logger.info(f"budget_updated: id={budget.id}")
    return BudgetOut.model_validate(budget)


@app.delete("/budgets/{budget_id}")
def delete_budget(budget_id: str, db: Session = Depends(get_db)):
    with store_errors("Failed to delete budget"):
        removed = BudgetService(db).delete(budget_id)
    if not removed:
        raise HTTPException(status_code=404, detail="Budget not found")
    logger.info(f"budget_deleted: id={budget_id}")
    return {"message": "Budget deleted successfully"}


# --- analytics -------------------------------------------------------------


@app.get("/api/summary")
def api_summary(db: Session = Depends(get_db)):
    with store_errors("Failed to fetch transactions"):
        transactions = TransactionService(db).list_all()
    return analytics.dashboard_summary(transactions, today=current_date())


@app.get("/api/transactions/recent", response_model=list[TransactionOut])
def api_recent_transactions(limit: int = 5, db: Session = Depends(get_db)):
    limit = min(max(limit, 1), 50)
    with store_errors("Failed to fetch transactions"):
        items = TransactionService(db).recent(limit)
    return [TransactionOut.model_validate(txn) for txn in items]


@app.get("/api/category-breakdown")
def api_category_breakdown(db: Session = Depends(get_db)):
    with store_errors("Failed to fetch transactions"):
        transactions = TransactionService(db).list_all()
    return analytics.category_totals(transactions)


@app.get("/api/top-categories")
def api_top_categories(limit: int = 3, db: Session = Depends(get_db)):
    with store_errors("Failed to fetch transactions"):
        transactions = TransactionService(db).list_all()
    return analytics.top_categories(transactions, limit)


@app.get("/api/monthly-totals")
def api_monthly_totals(db: Session = Depends(get_db)):
    with store_errors("Failed to fetch transactions"):
        transactions = TransactionService(db).list_all()
    return analytics.monthly_totals(transactions, today=current_date())


@app.get("/api/budget-comparison")
def api_budget_comparison(month: Optional[str] = None, db: Session = Depends(get_db)):
    period = month_from_query(month)
    with store_errors("Failed to fetch budgets"):
        transactions = TransactionService(db).list_all()
        budgets = BudgetService(db).list_all(period.key)
    return analytics.budget_comparison(transactions, budgets, period.key)


@app.get("/api/insights")
def api_insights(month: Optional[str] = None, db: Session = Depends(get_db)):
    period = month_from_query(month)
    with store_errors("Failed to fetch budgets"):
        transactions = TransactionService(db).list_all()
        budgets = BudgetService(db).list_all(period.key)
    return {
        "month": period.key,
        "label": period.label,
        "summary": analytics.month_summary(transactions, budgets, period.key),
        "insights": analytics.spending_insights(transactions, budgets, period.key),
    }


@app.get("/health")
def health():
    return {"status": "ok"}


def main():
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    main()
