"""
Dashboard API - headline numbers across production, sales and expenses
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from chicken_manager.database import get_db
from chicken_manager.models.crm import Customer, Sale
from chicken_manager.models.finance import Expense
from chicken_manager.models.production import EggEntry
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.aggregates import dashboard_summary
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict
from chicken_manager.api.production import eggs_in_month
from chicken_manager.utils.helpers import days_ago, month_bounds, month_key, previous_month_key, today

router = APIRouter()


@router.get("/")
async def get_dashboard(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    result = await db.execute(
        select(func.coalesce(func.sum(EggEntry.count), 0)).where(EggEntry.user_id == current_user.id)
    )
    all_time_eggs = result.scalar() or 0

    result = await db.execute(
        owned(EggEntry, current_user).where(EggEntry.date >= days_ago(30)).order_by(EggEntry.date)
    )
    last_30_days = [row_dict(e) for e in result.scalars().all()]

    current_key = month_key(today())
    this_month = await eggs_in_month(db, current_user, current_key)
    last_month = await eggs_in_month(db, current_user, previous_month_key())

    result = await db.execute(owned(Sale, current_user))
    sales = [row_dict(s) for s in result.scalars().all()]

    month_start, _ = month_bounds(current_key)
    result = await db.execute(
        select(func.coalesce(func.sum(Expense.amount), 0))
        .where(Expense.user_id == current_user.id, Expense.date >= month_start)
    )
    month_expenses = result.scalar() or 0

    result = await db.execute(
        select(func.count(Customer.id)).where(Customer.user_id == current_user.id, Customer.is_active == True)
    )
    customer_count = result.scalar() or 0

    return envelope(
        "Dashboard summary",
        dashboard_summary(all_time_eggs, last_30_days, this_month, last_month, sales, month_expenses, customer_count),
    )
