"""
Customers API
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from pydantic import BaseModel, field_validator

from chicken_manager.database import get_db
from chicken_manager.models.crm import Customer
from chicken_manager.services.auth_client import Identity
from chicken_manager.api.auth import get_current_user
from chicken_manager.api.common import envelope, owned, row_dict, update_owned
from chicken_manager.utils.validators import clean_text

router = APIRouter()


# --- Pydantic Schemas ---

class CustomerCreate(BaseModel):
    name: str
    phone: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_required(cls, v):
        v = clean_text(v)
        if not v:
            raise ValueError("Customer name is required")
        return v


class CustomerUpdate(BaseModel):
    id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class CustomerRef(BaseModel):
    id: str


# --- Endpoints ---

@router.get("/")
async def list_customers(
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    result = await db.execute(
        owned(Customer, current_user).where(Customer.is_active == True).order_by(Customer.name)
    )
    return envelope("Customers fetched", [row_dict(c) for c in result.scalars().all()])


@router.post("/", status_code=201)
async def create_customer(
    data: CustomerCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    customer = Customer(
        user_id=current_user.id,
        name=data.name,
        phone=clean_text(data.phone),
        notes=clean_text(data.notes),
    )
    db.add(customer)
    await db.commit()
    return envelope("Customer created", row_dict(customer))


@router.put("/")
async def update_customer(
    data: CustomerUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    values = data.model_dump(exclude_none=True, exclude={"id"})
    if "name" in values:
        values["name"] = clean_text(values["name"])
        if not values["name"]:
            raise HTTPException(status_code=400, detail="Customer name is required")
    for key in ("phone", "notes"):
        if key in values:
            values[key] = clean_text(values[key])

    row = await update_owned(db, Customer, data.id, current_user, values, "Customer not found")
    await db.commit()
    return envelope("Customer updated", row)


@router.delete("/")
async def deactivate_customer(
    data: CustomerRef,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user)
):
    """Soft delete so past sales keep their customer"""
    await update_owned(db, Customer, data.id, current_user, {"is_active": False}, "Customer not found")
    await db.commit()
    return envelope("Customer deactivated")
