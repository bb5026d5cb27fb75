"""Food catalog API: listing, grouping, portions, custom foods."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wellbalance.auth import get_current_user_id
from wellbalance.db.engine import get_session
from wellbalance.services.food_catalog import (
    CustomFoodRequest,
    create_custom_food,
    get_food,
    group_by_category,
    list_selectable_foods,
    scale_portion,
    to_selectable,
)

router = APIRouter(prefix="/api/v1/foods", tags=["foods"])


@router.get("")
async def list_foods(
    q: Optional[str] = Query(None, max_length=100),
    session: AsyncSession = Depends(get_session),
):
    """Public foods with complete nutrition, ordered by name."""
    foods = await list_selectable_foods(session, q)
    return {"foods": [f.model_dump(by_alias=True) for f in foods], "count": len(foods)}


@router.get("/by-category")
async def foods_by_category(
    q: Optional[str] = Query(None, max_length=100),
    session: AsyncSession = Depends(get_session),
):
    groups = group_by_category(await list_selectable_foods(session, q))
    return {
        "categories": {
            name: [f.model_dump(by_alias=True) for f in foods]
            for name, foods in groups.items()
        }
    }


@router.get("/{food_id}/portion")
async def food_portion(
    food_id: str,
    grams: float = Query(..., gt=0, le=10_000),
    session: AsyncSession = Depends(get_session),
):
    """Nutrition for a chosen quantity of one food."""
    row = await get_food(session, food_id)
    if row is None:
        raise HTTPException(404, "Food not found")
    food = to_selectable(row)
    if food is None:
        raise HTTPException(400, "Food has incomplete nutrition data")
    return scale_portion(food, grams).model_dump(by_alias=True)


@router.post("/custom", status_code=201)
async def add_custom_food(
    body: CustomFoodRequest,
    user_id: Optional[str] = Depends(get_current_user_id),
    session: AsyncSession = Depends(get_session),
):
    """Add a user-contributed food; signing in is optional."""
    try:
        food = await create_custom_food(session, user_id, body)
    except SQLAlchemyError:
        raise HTTPException(500, "Failed to save product.")
    return {"food": food.model_dump()}
