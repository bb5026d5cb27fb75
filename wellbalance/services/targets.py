"""Targets resolver: a user's daily goals, or the static defaults.

get_targets never fails the caller; target display must not block on the store.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wellbalance.db.tracking_tables import UserTargetsRow
from wellbalance.errors import AuthenticationRequired
from wellbalance.models import DEFAULT_TARGETS, TargetsResult, TargetsSource, UserTargets

logger = logging.getLogger(__name__)


def default_targets(source: TargetsSource = TargetsSource.DEFAULT) -> TargetsResult:
    return TargetsResult(**DEFAULT_TARGETS.model_dump(), source=source)


async def get_targets(session: AsyncSession, user_id: Optional[str]) -> TargetsResult:
    if not user_id:
        return default_targets()
    try:
        row = await session.get(UserTargetsRow, user_id)
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to load user_targets for %s, using defaults", user_id)
        return default_targets(TargetsSource.FALLBACK)

    if row is None:
        return default_targets()
    return TargetsResult(
        daily_calories=row.daily_calories,
        protein_g=row.protein_g,
        carbs_g=row.carbs_g,
        fat_g=row.fat_g,
        source=TargetsSource.STORED,
    )


async def save_targets(
    session: AsyncSession, user_id: Optional[str], targets: UserTargets
) -> TargetsResult:
    """Create or replace the user's targets row."""
    if not user_id:
        raise AuthenticationRequired()

    row = await session.get(UserTargetsRow, user_id)
    if row is None:
        row = UserTargetsRow(user_id=user_id)
        session.add(row)
    row.daily_calories = targets.daily_calories
    row.protein_g = targets.protein_g
    row.carbs_g = targets.carbs_g
    row.fat_g = targets.fat_g

    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to save user_targets for %s", user_id)
        raise

    logger.info("Targets saved: user=%s %s", user_id, targets.model_dump())
    return TargetsResult(**targets.model_dump(), source=TargetsSource.STORED)
