"""
Expense and feed inventory models
"""
from sqlalchemy import Column, String, Text, Float, Date, DateTime
from chicken_manager.database import Base, new_id, utcnow


class Expense(Base):
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    category = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(Date, nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class FeedInventory(Base):
    __tablename__ = "feed_inventory"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    name = Column(String, nullable=False)  # brand
    quantity = Column(Float, nullable=False)
    unit = Column(String, nullable=False, default="lbs")
    total_cost = Column(Float, nullable=True)
    cost_per_unit = Column(Float, nullable=True)
    purchase_date = Column(Date, nullable=True)
    expiry_date = Column(Date, nullable=True)  # set once the bag is depleted
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
