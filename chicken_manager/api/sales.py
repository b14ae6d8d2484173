"""
Egg sales API - a sale with total_amount 0 records eggs given away
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
import datetime as dt
from pydantic import BaseModel, field_validator

from chicken_manager.database import get_db
from chicken_manager.models.crm import Customer, Sale
from chicken_manager.services.auth_client import Identity
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, delete_owned, get_owned, row_dict, update_owned
from chicken_manager.utils.validators import clean_text, validate_non_negative

router = APIRouter()


# --- Pydantic Schemas ---

class SaleCreate(BaseModel):
    customer_id: str
    sale_date: dt.date
    total_amount: float
    dozen_count: int = 0
    individual_count: int = 0
    paid: bool = False
    notes: Optional[str] = None

    @field_validator("total_amount", "dozen_count", "individual_count")
    @classmethod
    def non_negative(cls, v, info):
        return validate_non_negative(v, info.field_name)


class SaleUpdate(BaseModel):
    id: str
    customer_id: Optional[str] = None
    sale_date: Optional[dt.date] = None
    total_amount: Optional[float] = None
    dozen_count: Optional[int] = None
    individual_count: Optional[int] = None
    paid: Optional[bool] = None
    notes: Optional[str] = None

    @field_validator("total_amount", "dozen_count", "individual_count")
    @classmethod
    def non_negative(cls, v, info):
        return v if v is None else validate_non_negative(v, info.field_name)


class SaleRef(BaseModel):
    id: str


# --- Helper ---

async def _check_customer(db: AsyncSession, customer_id: str, current_user: Identity) -> Customer:
    try:
        return await get_owned(db, Customer, customer_id, current_user)
    except HTTPException:
        raise HTTPException(status_code=400, detail="Invalid customer ID")


async def _with_customer(db: AsyncSession, sale: dict) -> dict:
    name = None
    if sale.get("customer_id"):
        result = await db.execute(
            select(Customer.name).where(Customer.id == sale["customer_id"], Customer.user_id == sale["user_id"])
        )
        name = result.scalar_one_or_none()
    return {**sale, "customer_name": name or "Unknown Customer"}


# --- Endpoints ---

@router.get("/")
async def list_sales(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    result = await db.execute(
        select(Sale, Customer.name)
        .outerjoin(Customer, (Sale.customer_id == Customer.id) & (Customer.user_id == current_user.id))
        .where(Sale.user_id == current_user.id)
        .order_by(Sale.sale_date.desc(), Sale.created_at.desc())
        .execution_options(populate_existing=True)
    )
    sales = [
        {**row_dict(sale), "customer_name": name or "Unknown Customer"}
        for sale, name in result.all()
    ]
    return envelope("Sales fetched", sales)


@router.post("/", status_code=201)
async def create_sale(
    data: SaleCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    customer = await _check_customer(db, data.customer_id, current_user)

    sale = Sale(user_id=current_user.id, **data.model_dump(exclude={"notes"}), notes=clean_text(data.notes))
    db.add(sale)
    await db.commit()
    return envelope("Sale recorded", {**row_dict(sale), "customer_name": customer.name})


@router.put("/")
async def update_sale(
    data: SaleUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    if data.customer_id:
        await _check_customer(db, data.customer_id, current_user)

    values = data.model_dump(exclude_none=True, exclude={"id"})
    if "notes" in values:
        values["notes"] = clean_text(values["notes"])

    row = await update_owned(db, Sale, data.id, current_user, values, "Sale not found")
    await db.commit()
    return envelope("Sale updated", await _with_customer(db, row))


@router.delete("/")
async def delete_sale(
    data: SaleRef,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    await delete_owned(db, Sale, data.id, current_user, "Sale not found")
    await db.commit()
    return envelope("Sale deleted")
