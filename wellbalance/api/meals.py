"""Meal logging API: /api/v1/meal-items."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wellbalance.auth import get_current_user_id
from wellbalance.clock import Clock, get_clock
from wellbalance.db.engine import get_session
from wellbalance.models import MealAmounts
from wellbalance.services.daily_log import add_meal_amounts

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["meals"])


class AddMealItemRequest(BaseModel):
    """Per-amount nutrition the client computed for the chosen grams."""
    model_config = ConfigDict(populate_by_name=True)

    food_id: Optional[str] = Field(None, alias="foodId")
    grams: Optional[float] = Field(None, ge=0)
    calories_total: float = Field(..., alias="caloriesTotal", ge=0)
    protein_total: float = Field(..., alias="proteinTotal", ge=0)
    carbs_total: float = Field(..., alias="carbsTotal", ge=0)
    fat_total: float = Field(..., alias="fatTotal", ge=0)


@router.post("/meal-items")
async def add_meal_item(
    body: AddMealItemRequest,
    user_id: Optional[str] = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
    clock: Clock = Depends(get_clock),
):
    """Add one meal's nutrition to today's daily log."""
    amounts = MealAmounts(
        calories=body.calories_total,
        protein_g=body.protein_total,
        carbs_g=body.carbs_total,
        fat_g=body.fat_total,
    )
    try:
        daily_log = await add_meal_amounts(session, user_id, amounts, clock)
    except SQLAlchemyError:
        raise HTTPException(500, "Failed to update daily log")

    logger.info("Meal item added: user=%s food=%s grams=%s", user_id, body.food_id, body.grams)
    return {"ok": True, "dailyLog": daily_log.model_dump()}
