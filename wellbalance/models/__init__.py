from wellbalance.models.nutrition import (  # noqa: F401
    DEFAULT_TARGETS,
    DailyLog,
    DailySummary,
    DailyTotals,
    FoodCategory,
    FoodItem,
    MealAmounts,
    PortionNutrition,
    SelectableFood,
    TargetsResult,
    TargetsSource,
    UserTargets,
    round_half_up,
)
from wellbalance.models.chat import ChatRequest, UIMessage  # noqa: F401
