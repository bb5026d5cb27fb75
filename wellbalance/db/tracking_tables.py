"""Daily nutrition tracking tables: per-day aggregates and per-user targets."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Integer, DateTime, ForeignKey, Index, UniqueConstraint
)

from wellbalance.db.tables import Base


class DailyLogRow(Base):
    """One row per user per day: aggregated nutrition totals.

    log_date is the ISO calendar date (YYYY-MM-DD) kept as a plain string key.
    Totals only ever grow; see services.daily_log.add_meal_amounts.
    """
    __tablename__ = "daily_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    log_date = Column(String(10), nullable=False)

    total_calories = Column(Integer, nullable=False, default=0)
    protein_g = Column(Integer, nullable=False, default=0)
    carbs_g = Column(Integer, nullable=False, default=0)
    fat_g = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "log_date", name="uq_user_daily_log"),
        Index("ix_daily_logs_user_date", "user_id", "log_date"),
    )


class UserTargetsRow(Base):
    """Per-user daily goals. A missing row means the static defaults apply."""
    __tablename__ = "user_targets"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    daily_calories = Column(Integer, nullable=False)
    protein_g = Column(Integer, nullable=False)
    carbs_g = Column(Integer, nullable=False)
    fat_g = Column(Integer, nullable=False)
