from pydantic import Field
from typing import Iterator, List, Optional, Tuple

from config import MAX_NUM_DAYS
from app.schemas.base import CamelModel
from app.schemas.user_profile import UserHealthProfile

# Fixed slot order used for every iteration over a day
MEAL_SLOTS: Tuple[str, ...] = ("breakfast", "mid_morning_snack", "lunch", "evening_snack", "dinner")


class MealItem(CamelModel):
    name: str
    calories: int
    protein: float
    carbs: float
    fats: float
    portion: str  # "150g"


class DayPlan(CamelModel):
    day_label: str
    breakfast: List[MealItem] = Field(default_factory=list)
    mid_morning_snack: List[MealItem] = Field(default_factory=list)
    lunch: List[MealItem] = Field(default_factory=list)
    evening_snack: List[MealItem] = Field(default_factory=list)
    dinner: List[MealItem] = Field(default_factory=list)
    total_calories: int = 0
    total_protein: float = 0.0
    total_carbs: float = 0.0
    total_fats: float = 0.0

    def slot_items(self, slot: str) -> List[MealItem]:
        if slot not in MEAL_SLOTS:
            raise ValueError(f"Unknown meal slot: {slot}")
        return getattr(self, slot)

    def items(self) -> Iterator[MealItem]:
        for slot in MEAL_SLOTS:
            yield from self.slot_items(slot)

    def with_recomputed_totals(self) -> "DayPlan":
        """Copy whose totals are the exact sums of the contained items."""
        items = list(self.items())
        return self.model_copy(update={
            "total_calories": int(round(sum(i.calories for i in items))),
            "total_protein": round(sum(i.protein for i in items), 1),
            "total_carbs": round(sum(i.carbs for i in items), 1),
            "total_fats": round(sum(i.fats for i in items), 1),
        })


class MacroTargets(CamelModel):
    protein: float
    carbs: float
    fats: float


class MealPlanBundle(CamelModel):
    days: List[DayPlan] = Field(default_factory=list)
    daily_target_calories: int
    macro_targets: MacroTargets
    dietary_notes: List[str] = Field(default_factory=list)


# REQUESTS / RESPONSES
class MealPlanRequest(CamelModel):
    profile: UserHealthProfile
    num_days: Optional[int] = Field(None, ge=1, le=MAX_NUM_DAYS)


class MealPlanResponse(CamelModel):
    meal_plan: MealPlanBundle
