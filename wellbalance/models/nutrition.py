"""Nutrition data models: typed read models for every persisted entity."""
from __future__ import annotations

import math
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def round_half_up(value: float) -> int:
    """Nearest integer, .5 rounds up (2.5 -> 3, not banker's 2)."""
    return int(math.floor(value + 0.5))


class MealAmounts(BaseModel):
    """One meal's contribution, already scaled by the caller."""
    calories: float = Field(0, ge=0)
    protein_g: float = Field(0, ge=0)
    carbs_g: float = Field(0, ge=0)
    fat_g: float = Field(0, ge=0)


class DailyTotals(BaseModel):
    total_calories: int = 0
    protein_g: int = 0
    carbs_g: int = 0
    fat_g: int = 0


class DailyLog(DailyTotals):
    """A stored daily aggregate row."""
    id: str
    user_id: str
    log_date: str

    model_config = ConfigDict(from_attributes=True)


class DailySummary(DailyTotals):
    date: str


class UserTargets(BaseModel):
    daily_calories: int
    protein_g: int
    carbs_g: int
    fat_g: int

    model_config = ConfigDict(from_attributes=True)


DEFAULT_TARGETS = UserTargets(daily_calories=2000, protein_g=120, carbs_g=200, fat_g=60)


class TargetsSource(str, Enum):
    STORED = "stored"
    DEFAULT = "default"      # no row for the user
    FALLBACK = "fallback"    # row could not be read


class TargetsResult(UserTargets):
    source: TargetsSource = TargetsSource.STORED


class FoodCategory(str, Enum):
    PROTEIN = "Protein"
    CARBS = "Carbs"
    FAT = "Fat"
    VEGETABLES = "Vegetables"
    FRUITS = "Fruits"
    UNCATEGORIZED = "uncategorized"


class FoodItem(BaseModel):
    """A catalog row as stored."""
    id: str
    name: str
    brand: Optional[str] = None
    macro_category: Optional[str] = None
    serving_qty: float
    serving_unit: str
    calories_per_serving: Optional[int] = None
    protein_per_serving: Optional[float] = None
    carbs_per_serving: Optional[float] = None
    fat_per_serving: Optional[float] = None
    owner_id: Optional[str] = None
    is_public: bool = True

    model_config = ConfigDict(from_attributes=True)


class SelectableFood(BaseModel):
    """A food usable for meal logging: all four nutrition values present."""
    id: str
    name: str
    category: FoodCategory
    serving_qty: float = Field(serialization_alias="servingQty")
    serving_unit: str = Field(serialization_alias="servingUnit")
    calories_per_serving: int = Field(serialization_alias="caloriesPerServing")
    protein_per_serving: float = Field(serialization_alias="proteinPerServing")
    carbs_per_serving: float = Field(serialization_alias="carbsPerServing")
    fat_per_serving: float = Field(serialization_alias="fatPerServing")


class PortionNutrition(BaseModel):
    food_id: str = Field(serialization_alias="foodId")
    grams: float
    calories_total: int = Field(serialization_alias="caloriesTotal")
    protein_total: float = Field(serialization_alias="proteinTotal")
    carbs_total: float = Field(serialization_alias="carbsTotal")
    fat_total: float = Field(serialization_alias="fatTotal")
