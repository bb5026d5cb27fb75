"""Daily log aggregation: one row per (user, calendar date).

add_meal_amounts is the only writer. It folds a meal's rounded amounts into
the day's row with a single INSERT ... ON CONFLICT DO UPDATE that increments
the stored totals, so concurrent adds for the same day all land.
"""
from __future__ import annotations

import logging
import re
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wellbalance.clock import Clock, iso
from wellbalance.db.tracking_tables import DailyLogRow
from wellbalance.errors import AuthenticationRequired, InvalidDate
from wellbalance.models import DailyLog, DailySummary, MealAmounts, round_half_up

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TOTAL_COLUMNS = ("total_calories", "protein_g", "carbs_g", "fat_g")


def round_amounts(amounts: MealAmounts) -> dict[str, int]:
    """Round each amount independently; the total columns are integers."""
    return {
        "total_calories": round_half_up(amounts.calories),
        "protein_g": round_half_up(amounts.protein_g),
        "carbs_g": round_half_up(amounts.carbs_g),
        "fat_g": round_half_up(amounts.fat_g),
    }


def parse_log_date(value: str) -> str:
    """Validate an ISO YYYY-MM-DD date and return it unchanged."""
    if not _ISO_DATE.match(value or ""):
        raise InvalidDate(f"Invalid date {value!r}. Use YYYY-MM-DD")
    try:
        date.fromisoformat(value)
    except ValueError:
        raise InvalidDate(f"Invalid date {value!r}. Use YYYY-MM-DD")
    return value


def _dialect_insert(session: AsyncSession):
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


async def get_daily_log(session: AsyncSession, user_id: str, log_date: str) -> Optional[DailyLogRow]:
    result = await session.execute(
        select(DailyLogRow)
        .where(DailyLogRow.user_id == user_id, DailyLogRow.log_date == log_date)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def add_meal_amounts(
    session: AsyncSession,
    user_id: Optional[str],
    amounts: MealAmounts,
    clock: Clock,
) -> DailyLog:
    """Add one meal's amounts to today's log for the user and return the row.

    Raises AuthenticationRequired before touching the store when there is no
    user, and re-raises store errors after rolling back.
    """
    if not user_id:
        raise AuthenticationRequired()

    added = round_amounts(amounts)
    log_date = iso(clock.today())
    now = datetime.now(timezone.utc)

    table = DailyLogRow.__table__
    insert = _dialect_insert(session)
    stmt = insert(table).values(
        id=str(uuid.uuid4()),
        user_id=user_id,
        log_date=log_date,
        created_at=now,
        updated_at=now,
        **added,
    )
    increments = {col: table.c[col] + stmt.excluded[col] for col in _TOTAL_COLUMNS}
    stmt = stmt.on_conflict_do_update(
        index_elements=[table.c.user_id, table.c.log_date],
        set_={**increments, "updated_at": stmt.excluded.updated_at},
    )

    try:
        await session.execute(stmt)
        row = await get_daily_log(session, user_id, log_date)
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to update daily log for user %s on %s", user_id, log_date)
        raise

    logger.info(
        "Meal amounts added: user=%s date=%s added=%s totals=%s",
        user_id, log_date, added, {c: getattr(row, c) for c in _TOTAL_COLUMNS},
    )
    return DailyLog.model_validate(row)


def _as_int(value) -> int:
    return int(value or 0)


async def get_daily_summary(
    session: AsyncSession,
    user_id: Optional[str],
    clock: Clock,
    log_date: Optional[str] = None,
) -> DailySummary:
    """Totals for an explicit date (or today); zeros when nothing was logged."""
    if not user_id:
        raise AuthenticationRequired()

    target = parse_log_date(log_date) if log_date else iso(clock.today())
    row = await get_daily_log(session, user_id, target)
    if row is None:
        return DailySummary(date=target)

    return DailySummary(
        date=target,
        total_calories=_as_int(row.total_calories),
        protein_g=_as_int(row.protein_g),
        carbs_g=_as_int(row.carbs_g),
        fat_g=_as_int(row.fat_g),
    )


async def get_calorie_history(
    session: AsyncSession, user_id: str, end_date: date, days: int = 7
) -> list[tuple[date, int]]:
    """Calories per day for the `days` days ending at end_date, oldest first."""
    start_date = end_date - timedelta(days=days - 1)
    result = await session.execute(
        select(DailyLogRow.log_date, DailyLogRow.total_calories)
        .where(
            DailyLogRow.user_id == user_id,
            DailyLogRow.log_date >= iso(start_date),
            DailyLogRow.log_date <= iso(end_date),
        )
        .order_by(DailyLogRow.log_date)
    )
    by_date = {log_date: _as_int(calories) for log_date, calories in result.all()}
    return [
        (day, by_date.get(iso(day), 0))
        for day in (start_date + timedelta(days=i) for i in range(days))
    ]
