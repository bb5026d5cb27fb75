"""SQLAlchemy ORM base + food catalog table."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class FoodRow(Base):
    """Catalog entry: system foods (owner_id NULL) and user-contributed foods."""
    __tablename__ = "foods"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String(300), nullable=False)
    brand = Column(String(200), nullable=True)
    # Stored as entered; display buckets are derived in services.food_catalog
    macro_category = Column(String(50), nullable=True)

    # Reference amount the per-serving values describe (e.g. 100 g)
    serving_qty = Column(Float, nullable=False, default=100)
    serving_unit = Column(String(20), nullable=False, default="g")

    # All four must be present for the food to show up in meal selection
    calories_per_serving = Column(Integer, nullable=True)
    protein_per_serving = Column(Float, nullable=True)
    carbs_per_serving = Column(Float, nullable=True)
    fat_per_serving = Column(Float, nullable=True)

    owner_id = Column(String(36), nullable=True, index=True)
    is_public = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_foods_public_name", "is_public", "name"),
    )
