"""
Sales reports API - summary, monthly breakdown and per-customer stats
"""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional

from chicken_manager.database import get_db
from chicken_manager.models.crm import Customer, Sale
from chicken_manager.services.auth_client import Identity
from chicken_manager.services.aggregates import customer_stats, monthly_sales, sales_summary
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict

router = APIRouter()


async def _sales(db: AsyncSession, current_user: Identity, customer_id: Optional[str] = None):
    query = owned(Sale, current_user).order_by(Sale.sale_date)
    if customer_id:
        query = query.where(Sale.customer_id == customer_id)
    result = await db.execute(query)
    return [row_dict(s) for s in result.scalars().all()]


@router.get("/summary")
async def get_sales_summary(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    sales = await _sales(db, current_user)

    result = await db.execute(select(Customer.id, Customer.name).where(Customer.user_id == current_user.id))
    names = {customer_id: name for customer_id, name in result.all()}

    result = await db.execute(
        select(func.count(Customer.id)).where(Customer.user_id == current_user.id, Customer.is_active == True)
    )
    active_customers = result.scalar() or 0

    return envelope("Sales summary", sales_summary(sales, names, active_customers))


@router.get("/monthly")
async def get_monthly_sales(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    return envelope("Monthly sales", monthly_sales(await _sales(db, current_user)))


@router.get("/customer-stats")
async def get_customer_stats(
    customer_id: Optional[str] = Query(None, alias="customerId"),
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    if not customer_id:
        raise HTTPException(status_code=400, detail="customerId parameter required")
    return envelope("Customer stats", customer_stats(await _sales(db, current_user, customer_id)))
