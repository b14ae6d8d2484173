"""
Savings API - twelve months of revenue against expenses
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from chicken_manager.database import get_db
from chicken_manager.models.crm import Sale
from chicken_manager.models.finance import Expense
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.aggregates import savings_summary
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict
from chicken_manager.utils.helpers import month_bounds, recent_month_keys

router = APIRouter()


@router.get("/")
async def get_savings(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    since, _ = month_bounds(recent_month_keys(12)[0])

    result = await db.execute(owned(Sale, current_user).where(Sale.sale_date >= since))
    sales = [row_dict(s) for s in result.scalars().all()]
    result = await db.execute(owned(Expense, current_user).where(Expense.date >= since))
    expenses = [row_dict(e) for e in result.scalars().all()]

    return envelope("Savings data", savings_summary(sales, expenses))
