import logging
from typing import Dict, Iterable, List, NamedTuple, Optional, Set, Tuple

from config import DEFAULT_NUM_DAYS
from app.models.food_item import FOOD_DATABASE, FoodEntry, entries_for_category, matches_intolerance
from app.schemas.meal_plan import MEAL_SLOTS, DayPlan, MacroTargets, MealItem, MealPlanBundle
from app.schemas.user_profile import UserHealthProfile
from app.utils.nutrition_calc import (
    MIN_PORTION_G,
    PROTEIN_KCAL_PER_G,
    calorie_deviation,
    format_portion,
    scale_portion,
)

logger = logging.getLogger(__name__)

"""
Meal Plan Service
-----------------
Builds the multi-day meal plan deterministically from the static catalog.
1. Filters the catalog by diet, conditions and intolerances.
2. Picks 1-2 foods per slot with a seeded generator (no repeats from yesterday).
3. Scales each slot to its share of the daily calorie target.
4. Locks day protein to target, then corrects calories (±3%) without touching protein.
"""

MEAL_SLOT_CALORIE_FRACTION: Dict[str, float] = {
    "breakfast": 0.25,
    "mid_morning_snack": 0.10,
    "lunch": 0.30,
    "evening_snack": 0.10,
    "dinner": 0.25,
}

SLOT_CATEGORY: Dict[str, str] = {
    "breakfast": "breakfast",
    "mid_morning_snack": "snack",
    "lunch": "lunch",
    "evening_snack": "snack",
    "dinner": "dinner",
}

SLOT_ITEM_COUNT: Dict[str, int] = {
    "breakfast": 2,
    "mid_morning_snack": 1,
    "lunch": 2,
    "evening_snack": 1,
    "dinner": 2,
}

CALORIE_TOLERANCE = 0.03
PROTEIN_TOLERANCE_G = 5

DEFAULT_DAILY_CALORIES = 2000
DEFAULT_PROTEIN_G = 150
DEFAULT_CARBS_G = 200
DEFAULT_FATS_G = 65


class SeededRandom:
    """Linear congruential generator; same seed, same sequence."""

    def __init__(self, seed: int):
        self.seed = int(seed)

    def next(self) -> float:
        self.seed = (self.seed * 9301 + 49297) % 233280
        return self.seed / 233280

    def shuffle(self, items: Iterable) -> list:
        shuffled = list(items)
        for i in range(len(shuffled) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled


class FoodPool(NamedTuple):
    preferred: Tuple[FoodEntry, ...]
    regular: Tuple[FoodEntry, ...]


def filter_food_pool(profile: UserHealthProfile) -> FoodPool:
    """
    Narrows the catalog to foods this profile can eat.

    1. Diet compatibility
    2. Condition avoidance (substring match against the user's conditions)
    3. Intolerances (allergen tag, or name keywords for untagged foods)
    4. Split: foods relevant to one of the user's conditions are preferred
    """
    diet = (profile.dietary_preference or "veg").lower()
    conditions = [c.lower() for c in profile.medical_conditions]
    intolerances = [i.lower() for i in profile.food_intolerances]

    def is_eligible(food: FoodEntry) -> bool:
        if diet not in food.diet_compatible:
            return False
        for cond in conditions:
            if any(avoid.lower() in cond for avoid in food.avoid_for_conditions):
                return False
        for intolerance in intolerances:
            if matches_intolerance(food.name, intolerance):
                return False
        return True

    def is_preferred(food: FoodEntry) -> bool:
        return any(tag.lower() in cond for cond in conditions for tag in food.conditions)

    pool = [food for food in FOOD_DATABASE if is_eligible(food)]
    preferred = tuple(food for food in pool if is_preferred(food))
    regular = tuple(food for food in pool if food not in preferred)

    logger.info(
        f"[Meal Service] Food pool for diet '{diet}': {len(preferred)} preferred, "
        f"{len(regular)} regular (of {len(FOOD_DATABASE)})"
    )
    return FoodPool(preferred, regular)


def day_seed(profile: UserHealthProfile, day_index: int) -> int:
    gender_offset = 100 if (profile.gender or "").lower() == "male" else 200
    base = (profile.age or 30) + (profile.weight_kg or 70) + gender_offset
    return int(base + day_index * 1000)


def select_meal_items(
    slot: str,
    pool: FoodPool,
    rng: SeededRandom,
    avoid_names: Optional[Set[str]] = None
) -> List[FoodEntry]:
    """
    Picks the foods for one slot: 2 for main meals, 1 for snacks.
    Yesterday's picks for the same slot are skipped while alternatives remain.
    """
    category = SLOT_CATEGORY[slot]
    candidates = [food for food in pool.preferred + pool.regular if food.category == category]

    if avoid_names:
        non_repeat = [food for food in candidates if food.name not in avoid_names]
        if non_repeat:
            candidates = non_repeat

    if not candidates:
        # Every slot gets at least one item, even if it means ignoring the filters
        logger.warning(f"[Meal Service] Empty pool for '{slot}', falling back to full '{category}' catalog")
        candidates = list(entries_for_category(category))

    shuffled = rng.shuffle(candidates)
    return shuffled[:min(SLOT_ITEM_COUNT[slot], len(shuffled))]


def scale_meal_items(foods: List[FoodEntry], target_calories: float) -> List[MealItem]:
    """
    Splits the slot target evenly across foods and converts each share into grams.
    Macros are recomputed from the rounded grams, not from the raw factor.
    """
    if not foods:
        return []

    calories_per_food = target_calories / len(foods)
    items = []

    for food in foods:
        factor = calories_per_food / (food.calories_per_100g or 100)
        grams = max(MIN_PORTION_G, round(100 * factor))
        actual = grams / 100

        items.append(MealItem(
            name=food.name,
            calories=int(round(food.calories_per_100g * actual)),
            protein=round(food.protein_per_100g * actual, 1),
            carbs=round(food.carbs_per_100g * actual, 1),
            fats=round(food.fats_per_100g * actual, 1),
            portion=format_portion(grams),
        ))

    return items


def _map_items(day: DayPlan, transform) -> DayPlan:
    return day.model_copy(update={
        slot: [transform(item) for item in day.slot_items(slot)] for slot in MEAL_SLOTS
    })


def apply_protein_lock(day: DayPlan, protein_target: float) -> DayPlan:
    """
    Pass 1: scale every item's protein so the day hits the protein target.
    Calories move by 4 kcal per gram of protein gained or lost, portions follow the scale.
    """
    current_protein = sum(item.protein for item in day.items())
    p_scale = protein_target / (current_protein or 1)

    def lock(item: MealItem) -> MealItem:
        new_protein = round(item.protein * p_scale, 1)
        return item.model_copy(update={
            "protein": new_protein,
            "calories": int(round(item.calories + (new_protein - item.protein) * PROTEIN_KCAL_PER_G)),
            "portion": scale_portion(item.portion, p_scale),
        })

    return _map_items(day, lock).with_recomputed_totals()


def apply_calorie_correction(day: DayPlan, calorie_target: float) -> DayPlan:
    """
    Pass 2: if calories drifted beyond ±3% after the protein lock, rescale calories
    and portions. Protein stays locked. Carbs and fats are left as they are, so
    the displayed macro split is an approximation after this pass.
    """
    current_calories = sum(item.calories for item in day.items())
    if calorie_deviation(current_calories, calorie_target) <= CALORIE_TOLERANCE:
        return day

    c_scale = calorie_target / (current_calories or 1)

    def correct(item: MealItem) -> MealItem:
        return item.model_copy(update={
            "calories": int(round(item.calories * c_scale)),
            "portion": scale_portion(item.portion, c_scale),
        })

    logger.debug(f"[Meal Service] {day.day_label}: calorie correction x{c_scale:.3f} ({current_calories} -> ~{calorie_target})")
    return _map_items(day, correct).with_recomputed_totals()


def build_day_plan(
    profile: UserHealthProfile,
    pool: FoodPool,
    day_index: int,
    previous_picks: Dict[str, Set[str]],
) -> Tuple[DayPlan, Dict[str, Set[str]]]:
    """Builds one day and returns it with that day's picks per slot."""
    daily_target = profile.tdee or DEFAULT_DAILY_CALORIES
    protein_target = profile.protein_grams or DEFAULT_PROTEIN_G
    rng = SeededRandom(day_seed(profile, day_index))

    slots: Dict[str, List[MealItem]] = {}
    picks: Dict[str, Set[str]] = {}

    for slot in MEAL_SLOTS:
        slot_target = round(daily_target * MEAL_SLOT_CALORIE_FRACTION[slot])
        foods = select_meal_items(slot, pool, rng, previous_picks.get(slot))
        slots[slot] = scale_meal_items(foods, slot_target)
        picks[slot] = {food.name for food in foods}

    day = DayPlan(day_label=f"Day {day_index + 1}", **slots).with_recomputed_totals()
    day = apply_protein_lock(day, protein_target)
    day = apply_calorie_correction(day, daily_target)

    logger.debug(
        f"[Meal Service] {day.day_label}: {day.total_calories} kcal, P {day.total_protein}g, "
        f"C {day.total_carbs}g, F {day.total_fats}g"
    )
    return day, picks


def generate_meal_plan(profile: UserHealthProfile, num_days: int = DEFAULT_NUM_DAYS) -> MealPlanBundle:
    """
    Deterministic multi-day plan: same profile and day count, same output.
    """
    if num_days < 1:
        raise ValueError("numDays must be at least 1")

    daily_target = profile.tdee or DEFAULT_DAILY_CALORIES
    pool = filter_food_pool(profile)

    days: List[DayPlan] = []
    previous_picks: Dict[str, Set[str]] = {slot: set() for slot in MEAL_SLOTS}

    for day_index in range(num_days):
        day, previous_picks = build_day_plan(profile, pool, day_index, previous_picks)
        days.append(day)

    logger.info(f"[Meal Service] Generated {num_days}-day plan at {daily_target} kcal for '{profile.dietary_preference}' diet")

    return MealPlanBundle(
        days=days,
        daily_target_calories=int(daily_target),
        macro_targets=MacroTargets(
            protein=profile.protein_grams or DEFAULT_PROTEIN_G,
            carbs=profile.carbs_grams or DEFAULT_CARBS_G,
            fats=profile.fats_grams or DEFAULT_FATS_G,
        ),
        dietary_notes=[
            f"Plan generated specifically for {profile.dietary_preference} diet.",
            f"Portion sizes calibrated to {daily_target} kcal daily target.",
        ],
    )
