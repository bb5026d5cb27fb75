"""Food catalog: meal-selection listing, category buckets, custom foods.

Categories are stored as entered and normalized only for display: synonyms
collapse into five buckets and anything else is "uncategorized", which
category-grouped views leave out.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from wellbalance.db.tables import FoodRow
from wellbalance.errors import MissingFields
from wellbalance.models import FoodCategory, FoodItem, PortionNutrition, SelectableFood, round_half_up

logger = logging.getLogger(__name__)

CATEGORY_SYNONYMS: dict[str, FoodCategory] = {
    "protein": FoodCategory.PROTEIN,
    "carbs": FoodCategory.CARBS,
    "fat": FoodCategory.FAT,
    "fats": FoodCategory.FAT,
    "healthy fats": FoodCategory.FAT,
    "vegetables": FoodCategory.VEGETABLES,
    "fruits": FoodCategory.FRUITS,
    "fruit": FoodCategory.FRUITS,
}

DISPLAY_ORDER = [
    FoodCategory.PROTEIN,
    FoodCategory.CARBS,
    FoodCategory.FAT,
    FoodCategory.VEGETABLES,
    FoodCategory.FRUITS,
]

DEFAULT_SERVING_QTY = 100
DEFAULT_SERVING_UNIT = "g"


def normalize_category(raw: Optional[str]) -> FoodCategory:
    if not raw:
        return FoodCategory.UNCATEGORIZED
    return CATEGORY_SYNONYMS.get(raw.strip().lower(), FoodCategory.UNCATEGORIZED)


def has_complete_nutrition(row: FoodRow) -> bool:
    return all(
        value is not None
        for value in (
            row.calories_per_serving,
            row.protein_per_serving,
            row.carbs_per_serving,
            row.fat_per_serving,
        )
    )


def _selectable(row: FoodRow) -> SelectableFood:
    return SelectableFood(
        id=row.id,
        name=row.name or "",
        category=normalize_category(row.macro_category),
        serving_qty=float(row.serving_qty or DEFAULT_SERVING_QTY),
        serving_unit=row.serving_unit or DEFAULT_SERVING_UNIT,
        calories_per_serving=int(row.calories_per_serving),
        protein_per_serving=float(row.protein_per_serving),
        carbs_per_serving=float(row.carbs_per_serving),
        fat_per_serving=float(row.fat_per_serving),
    )


async def list_selectable_foods(
    session: AsyncSession, query: Optional[str] = None
) -> list[SelectableFood]:
    """Public foods usable for meal logging, ordered by name.

    Rows missing any per-serving value stay in the catalog but are skipped here.
    """
    result = await session.execute(
        select(FoodRow).where(FoodRow.is_public.is_(True)).order_by(FoodRow.name)
    )
    foods = [_selectable(row) for row in result.scalars() if has_complete_nutrition(row)]

    q = (query or "").strip().lower()
    if q:
        foods = [f for f in foods if q in f.name.lower()]
    return foods


def group_by_category(foods: Iterable[SelectableFood]) -> dict[str, list[SelectableFood]]:
    groups: dict[str, list[SelectableFood]] = {c.value: [] for c in DISPLAY_ORDER}
    for food in foods:
        if food.category == FoodCategory.UNCATEGORIZED:
            continue
        groups[food.category.value].append(food)
    return groups


class CustomFoodRequest(BaseModel):
    """Body of POST /foods/custom. name and macroCategory are checked by hand
    so a missing one is a 400 naming the field rather than a 422."""
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    macro_category: Optional[str] = Field(None, alias="macroCategory")
    serving_qty: Optional[float] = Field(None, alias="servingQty", gt=0)
    serving_unit: Optional[str] = Field(None, alias="servingUnit", max_length=20)
    calories_per_serving: Optional[int] = Field(None, alias="caloriesPerServing", ge=0)
    protein_per_serving: Optional[float] = Field(None, alias="proteinPerServing", ge=0)
    carbs_per_serving: Optional[float] = Field(None, alias="carbsPerServing", ge=0)
    fat_per_serving: Optional[float] = Field(None, alias="fatPerServing", ge=0)


def validate_custom_food(req: CustomFoodRequest) -> None:
    missing = []
    if not (req.name or "").strip():
        missing.append("name")
    if not (req.macro_category or "").strip():
        missing.append("macroCategory")
    if missing:
        raise MissingFields(missing)


async def create_custom_food(
    session: AsyncSession, owner_id: Optional[str], req: CustomFoodRequest
) -> FoodItem:
    """Insert a user-contributed food. Custom foods are always public."""
    validate_custom_food(req)

    row = FoodRow(
        owner_id=owner_id,
        name=req.name.strip(),
        brand=None,
        macro_category=req.macro_category.strip(),
        serving_qty=req.serving_qty if req.serving_qty is not None else DEFAULT_SERVING_QTY,
        serving_unit=req.serving_unit or DEFAULT_SERVING_UNIT,
        calories_per_serving=req.calories_per_serving,
        protein_per_serving=req.protein_per_serving,
        carbs_per_serving=req.carbs_per_serving,
        fat_per_serving=req.fat_per_serving,
        is_public=True,
    )
    session.add(row)
    try:
        await session.commit()
    except SQLAlchemyError:
        await session.rollback()
        logger.exception("Failed to insert custom food %r", req.name)
        raise
    await session.refresh(row)
    logger.info("Custom food created: id=%s owner=%s name=%r", row.id, owner_id, row.name)
    return FoodItem.model_validate(row)


async def get_food(session: AsyncSession, food_id: str) -> Optional[FoodRow]:
    return await session.get(FoodRow, food_id)


def scale_portion(food: SelectableFood, grams: float) -> PortionNutrition:
    """Nutrition for `grams` of a food: calories to the integer, macros to 0.1 g."""
    factor = grams / food.serving_qty if food.serving_qty > 0 else 0
    return PortionNutrition(
        food_id=food.id,
        grams=grams,
        calories_total=round_half_up(food.calories_per_serving * factor),
        protein_total=round(food.protein_per_serving * factor, 1),
        carbs_total=round(food.carbs_per_serving * factor, 1),
        fat_total=round(food.fat_per_serving * factor, 1),
    )


def to_selectable(row: FoodRow) -> Optional[SelectableFood]:
    """Selectable view of one row, or None if its nutrition is incomplete."""
    if not has_complete_nutrition(row):
        return None
    return _selectable(row)
