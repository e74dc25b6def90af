import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Pattern, Tuple

ALL_DIETS = frozenset({"veg", "non-veg", "vegan", "eggetarian"})
NON_VEGAN_DIETS = frozenset({"veg", "non-veg", "eggetarian"})
EGG_DIETS = frozenset({"non-veg", "eggetarian"})
MEAT_DIETS = frozenset({"non-veg"})


@dataclass(frozen=True)
class FoodEntry:
    """One row of the static food catalog. Nutrition values are per 100g."""
    name: str
    category: str       # "breakfast", "lunch", "dinner", "snack"
    macro_type: str     # "protein", "carb", "fat", "balanced"
    calories_per_100g: float
    protein_per_100g: float
    carbs_per_100g: float
    fats_per_100g: float
    default_portion_g: int
    diet_compatible: FrozenSet[str] = ALL_DIETS
    conditions: FrozenSet[str] = frozenset()
    avoid_for_conditions: FrozenSet[str] = frozenset()
    intolerance_flags: FrozenSet[str] = field(default_factory=frozenset)


def _tags(*values: str) -> FrozenSet[str]:
    return frozenset(values)


FOOD_DATABASE: Tuple[FoodEntry, ...] = (
    # ==================== BREAKFAST ====================
    FoodEntry("Poha (Flattened Rice)", "breakfast", "carb", 110, 2.5, 21, 1.8, 200,
              conditions=_tags("general-wellness")),
    FoodEntry("Upma (Semolina)", "breakfast", "carb", 130, 3.5, 20, 4, 200,
              conditions=_tags("general-wellness"), intolerance_flags=_tags("gluten")),
    FoodEntry("Idli (Steamed Rice Cake)", "breakfast", "carb", 130, 4, 25, 0.5, 150,
              conditions=_tags("diabetes", "pcos", "thyroid", "general-wellness")),
    FoodEntry("Masala Dosa", "breakfast", "carb", 165, 3.5, 24, 6, 150,
              conditions=_tags("general-wellness")),
    FoodEntry("Aloo Paratha", "breakfast", "carb", 210, 5, 30, 8, 120,
              diet_compatible=NON_VEGAN_DIETS, avoid_for_conditions=_tags("diabetes"),
              intolerance_flags=_tags("gluten", "dairy")),
    FoodEntry("Oats Porridge with Almonds", "breakfast", "balanced", 95, 4, 12, 3.5, 250,
              conditions=_tags("diabetes", "pcos", "thyroid", "general-wellness")),
    FoodEntry("Paneer Bhurji with Roti", "breakfast", "protein", 180, 9, 14, 10, 200,
              diet_compatible=NON_VEGAN_DIETS, conditions=_tags("pcos", "thyroid", "general-wellness"),
              intolerance_flags=_tags("dairy", "gluten")),
    FoodEntry("Boiled Eggs (2) with Toast", "breakfast", "protein", 155, 11, 12, 7, 150,
              diet_compatible=EGG_DIETS, conditions=_tags("pcos", "thyroid", "general-wellness"),
              intolerance_flags=_tags("eggs", "gluten")),
    FoodEntry("Moong Dal Cheela", "breakfast", "protein", 125, 7.5, 18, 3, 180,
              conditions=_tags("diabetes", "pcos", "general-wellness")),
    FoodEntry("Besan Cheela (Gram Flour)", "breakfast", "protein", 135, 8, 19, 3.5, 180,
              conditions=_tags("general-wellness")),

    # ==================== LUNCH ====================
    FoodEntry("Dal Tadka with Steamed Rice", "lunch", "balanced", 120, 4.5, 22, 2.5, 400,
              conditions=_tags("general-wellness")),
    FoodEntry("Rajma (Kidney Beans) with Brown Rice", "lunch", "balanced", 115, 5.5, 19, 1.8, 400,
              conditions=_tags("diabetes", "pcos", "thyroid", "general-wellness")),
    FoodEntry("Chole (Chickpeas) with Roti", "lunch", "balanced", 145, 6, 24, 3, 350,
              conditions=_tags("general-wellness"), intolerance_flags=_tags("gluten")),
    FoodEntry("Palak Paneer with Roti", "lunch", "protein", 160, 8, 15, 9, 350,
              diet_compatible=NON_VEGAN_DIETS, conditions=_tags("pcos", "thyroid", "general-wellness"),
              intolerance_flags=_tags("dairy", "gluten")),
    FoodEntry("Grilled Chicken Breast with Quinoa", "lunch", "protein", 140, 18, 12, 3.5, 300,
              diet_compatible=MEAT_DIETS, conditions=_tags("pcos", "thyroid", "general-wellness")),
    FoodEntry("Fish Curry with Rice", "lunch", "protein", 130, 14, 15, 4, 350,
              diet_compatible=MEAT_DIETS, conditions=_tags("thyroid", "general-wellness"),
              intolerance_flags=_tags("seafood", "fish")),
    FoodEntry("Soya Chunk Curry with Brown Rice", "lunch", "protein", 120, 12, 14, 2, 350,
              conditions=_tags("thyroid", "general-wellness"), avoid_for_conditions=_tags("pcos"),
              intolerance_flags=_tags("soy")),
    FoodEntry("Mix Veg Curry with Bajra Roti", "lunch", "carb", 110, 3.5, 20, 2.5, 350,
              conditions=_tags("diabetes", "general-wellness")),
    FoodEntry("Yellow Moong Dal with Ragi Roti", "lunch", "balanced", 125, 6, 21, 2, 350,
              conditions=_tags("diabetes", "pcos", "general-wellness")),

    # ==================== DINNER ====================
    FoodEntry("Tofu Stir-fry with Broccoli", "dinner", "protein", 90, 9, 6, 4.5, 300,
              conditions=_tags("diabetes", "general-wellness"), avoid_for_conditions=_tags("thyroid"),
              intolerance_flags=_tags("soy")),
    FoodEntry("Lentil Soup (Dal) with Salad", "dinner", "balanced", 80, 5, 12, 1.5, 400,
              conditions=_tags("general-wellness")),
    FoodEntry("Grilled Paneer with Sautéed Veggies", "dinner", "protein", 150, 10, 8, 9, 250,
              diet_compatible=NON_VEGAN_DIETS, conditions=_tags("pcos", "thyroid", "general-wellness"),
              intolerance_flags=_tags("dairy")),
    FoodEntry("Roasted Chicken with Asparagus", "dinner", "protein", 120, 20, 4, 3, 250,
              diet_compatible=MEAT_DIETS, conditions=_tags("pcos", "thyroid", "general-wellness")),
    FoodEntry("Boiled Eggs (3) White with Mixed Veggies", "dinner", "protein", 75, 12, 5, 1, 300,
              diet_compatible=EGG_DIETS, conditions=_tags("diabetes", "pcos", "general-wellness"),
              intolerance_flags=_tags("eggs")),
    FoodEntry("Baked Fish with Lemon and Garlic", "dinner", "protein", 110, 19, 2, 3.5, 250,
              diet_compatible=MEAT_DIETS, conditions=_tags("pcos", "thyroid", "general-wellness"),
              intolerance_flags=_tags("seafood", "fish")),
    FoodEntry("Vegetable Khichdi (Light)", "dinner", "balanced", 95, 3.5, 18, 1.5, 350,
              conditions=_tags("general-wellness")),

    # ==================== SNACKS ====================
    FoodEntry("Roasted Makhana (Fox Nuts)", "snack", "carb", 350, 9, 75, 0.5, 30,
              conditions=_tags("pcos", "thyroid", "general-wellness")),
    FoodEntry("Mixed Nuts (Almonds, Walnuts)", "snack", "fat", 600, 20, 15, 55, 20,
              conditions=_tags("thyroid", "general-wellness"), intolerance_flags=_tags("nuts")),
    FoodEntry("Greek Yogurt with Berries", "snack", "protein", 70, 8, 7, 1, 150,
              diet_compatible=NON_VEGAN_DIETS, conditions=_tags("pcos", "general-wellness"),
              intolerance_flags=_tags("dairy")),
    FoodEntry("Sprouted Moong Salad", "snack", "protein", 105, 7, 16, 0.5, 150,
              conditions=_tags("diabetes", "pcos", "general-wellness")),
    FoodEntry("Roasted Chana (Chickpeas)", "snack", "protein", 360, 19, 58, 6, 40,
              conditions=_tags("general-wellness")),
)

_FOODS_BY_NAME: Dict[str, FoodEntry] = {food.name.lower(): food for food in FOOD_DATABASE}

# Legacy keyword matching for entries that carry no allergen tags.
# Reduced confidence: "egg" also hits "Veggies", "nut" also hits "Coconut".
_DAIRY = re.compile(r"milk|paneer|curd|cheese|yogurt|dahi|whey|butter", re.IGNORECASE)
_GLUTEN = re.compile(r"wheat|roti|bread|maida|semolina|rava|pasta", re.IGNORECASE)
_SEAFOOD = re.compile(r"fish|prawn|shrimp|seafood|crab|lobster", re.IGNORECASE)
_NUTS = re.compile(r"peanut|almond|cashew|walnut|pistachio|nut", re.IGNORECASE)

INTOLERANCE_NAME_PATTERNS: Dict[str, Pattern] = {
    "lactose": _DAIRY,
    "dairy": _DAIRY,
    "gluten": _GLUTEN,
    "seafood": _SEAFOOD,
    "fish": _SEAFOOD,
    "nuts": _NUTS,
    "peanuts": _NUTS,
    "soy": re.compile(r"soy|tofu|edamame|soya", re.IGNORECASE),
    "eggs": re.compile(r"egg|omelette", re.IGNORECASE),
}

# Intolerance keys that share an allergen tag with another key
INTOLERANCE_TAG_ALIASES: Dict[str, str] = {
    "lactose": "dairy",
    "peanuts": "nuts",
    "fish": "seafood",
    "egg": "eggs",
}


def find_food_by_name(name: str):
    """Returns the catalog entry with this exact (case-insensitive) name, or None."""
    if not name:
        return None
    return _FOODS_BY_NAME.get(name.strip().lower())


def entries_for_category(category: str) -> Tuple[FoodEntry, ...]:
    return tuple(food for food in FOOD_DATABASE if food.category == category)


def matches_intolerance(name: str, intolerance: str) -> bool:
    """
    True when the named food conflicts with the intolerance.

    Tagged catalog entries are matched by allergen tag only. Names that are not
    in the catalog, or entries without any tags, fall back to keyword matching.
    """
    key = (intolerance or "").strip().lower()
    if not key:
        return False

    food = find_food_by_name(name)
    if food is not None and food.intolerance_flags:
        tag = INTOLERANCE_TAG_ALIASES.get(key, key)
        return key in food.intolerance_flags or tag in food.intolerance_flags

    pattern = INTOLERANCE_NAME_PATTERNS.get(key)
    return bool(pattern and pattern.search(name or ""))
