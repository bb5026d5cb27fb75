"""Dashboard read model: the day's totals against targets plus a 7-day trend.

Read failures degrade to zeros/defaults so the dashboard always renders.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wellbalance.clock import Clock, iso
from wellbalance.errors import AuthenticationRequired, InvalidDate
from wellbalance.models import DailySummary, TargetsResult
from wellbalance.services.daily_log import get_calorie_history, get_daily_summary, parse_log_date
from wellbalance.services.targets import get_targets

logger = logging.getLogger(__name__)

HISTORY_DAYS = 7


class MacroProgress(BaseModel):
    calories: float
    protein: float
    carbs: float
    fat: float


class HistoryPoint(BaseModel):
    date: str
    label: str  # short weekday, e.g. "Mon"
    calories: int


class CalorieHistory(BaseModel):
    days: list[HistoryPoint]
    average: float
    highest: int
    lowest: int


class Dashboard(BaseModel):
    date: str
    totals: DailySummary
    targets: TargetsResult
    progress_pct: MacroProgress
    macro_total_g: int
    history: CalorieHistory


def clamp_percent(value: float, target: float) -> float:
    """value / target as a percentage clamped to [0, 100]; 0 for a zero target."""
    if target <= 0:
        return 0.0
    return round(max(0.0, min(100.0, value / target * 100)), 1)


def resolve_dashboard_date(param: Optional[str], clock: Clock) -> date:
    """A valid ?date=YYYY-MM-DD, otherwise today."""
    if param:
        try:
            return date.fromisoformat(parse_log_date(param))
        except InvalidDate:
            logger.debug("Ignoring invalid dashboard date %r", param)
    return clock.today()


def summarize_history(points: list[tuple[date, int]]) -> CalorieHistory:
    days = [
        HistoryPoint(date=iso(day), label=f"{day:%a}", calories=calories)
        for day, calories in points
    ]
    values = [p.calories for p in days]
    return CalorieHistory(
        days=days,
        average=round(sum(values) / len(values), 1) if values else 0.0,
        highest=max(values, default=0),
        lowest=min(values, default=0),
    )


async def build_dashboard(
    session: AsyncSession,
    user_id: Optional[str],
    clock: Clock,
    date_param: Optional[str] = None,
) -> Dashboard:
    if not user_id:
        raise AuthenticationRequired()

    selected = resolve_dashboard_date(date_param, clock)
    selected_iso = iso(selected)

    try:
        totals = await get_daily_summary(session, user_id, clock, selected_iso)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to load daily log for dashboard")
        totals = DailySummary(date=selected_iso)

    targets = await get_targets(session, user_id)

    try:
        points = await get_calorie_history(session, user_id, selected, HISTORY_DAYS)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to load weekly calorie history")
        points = []

    return Dashboard(
        date=selected_iso,
        totals=totals,
        targets=targets,
        progress_pct=MacroProgress(
            calories=clamp_percent(totals.total_calories, targets.daily_calories),
            protein=clamp_percent(totals.protein_g, targets.protein_g),
            carbs=clamp_percent(totals.carbs_g, targets.carbs_g),
            fat=clamp_percent(totals.fat_g, targets.fat_g),
        ),
        macro_total_g=totals.protein_g + totals.carbs_g + totals.fat_g,
        history=summarize_history(points),
    )
