"""
Daily egg production log
"""
from sqlalchemy import Column, Integer, String, Text, Date, DateTime
from chicken_manager.database import Base, new_id, utcnow


class EggEntry(Base):
    __tablename__ = "egg_entries"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    count = Column(Integer, nullable=False)
    size = Column(String, nullable=True)
    color = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
