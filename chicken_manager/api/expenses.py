"""
Expenses API - upsert, listing and the expenses overview
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional, Union

from chicken_manager.database import get_db
from chicken_manager.models.finance import Expense
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.aggregates import expense_stats
from chicken_manager.services.upsert_mapper import ExpenseIn, map_expense, map_records
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict, delete_owned, storage_errors
from chicken_manager.utils.db_compat import upsert_rows
from chicken_manager.utils.helpers import days_ago
from chicken_manager.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.get("/")
async def list_expenses(
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    query = owned(Expense, current_user).order_by(Expense.date.desc(), Expense.created_at.desc())
    if category:
        query = query.where(Expense.category == category)
    result = await db.execute(query)
    return envelope("Expenses fetched", [row_dict(e) for e in result.scalars().all()])


@router.get("/summary")
async def expenses_summary(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    """Last 90 days of expenses, 12 months of monthly totals, categories and the past week"""
    result = await db.execute(
        owned(Expense, current_user).where(Expense.date >= days_ago(365)).order_by(Expense.date.desc())
    )
    yearly = [row_dict(e) for e in result.scalars().all()]
    since = days_ago(90)
    recent = [e for e in yearly if e["date"] >= since]
    return envelope("Expenses summary", expense_stats(recent, yearly))


@router.post("/")
async def save_expenses(
    data: Union[ExpenseIn, List[ExpenseIn]],
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    rows = map_records(data, current_user.id, map_expense)
    async with storage_errors(db, "saving expenses"):
        saved = await upsert_rows(db, Expense, rows)
        await db.commit()

    logger.info(f"Saved {len(saved)} expenses for user {current_user.id}")
    return envelope("Expenses saved successfully", saved)


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    await delete_owned(db, Expense, expense_id, current_user, "Expense not found")
    await db.commit()
    return envelope("Expense deleted")
