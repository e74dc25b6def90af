import re
from typing import Optional

MIN_PORTION_G = 10
# Portions at or below this weight are treated as placeholder output
TRIVIAL_PORTION_G = 1

PROTEIN_KCAL_PER_G = 4


def parse_portion_grams(portion_string: str) -> Optional[float]:
    """
    Extracts the gram value from a portion string.
    Examples:
        "100g" -> 100.0
        "2 pcs (50g)" -> 50.0
        "approx 150 grams" -> 150.0
        "1 cup" -> None
    """
    if not portion_string:
        return None

    s = portion_string.lower().strip()

    # Number followed optionally by space, then 'g', 'gm' or 'gram(s)'
    matches = re.findall(r'(\d+(?:\.\d+)?)\s*(?:g|gm|grams|gram)\b', s)
    if matches:
        return float(matches[0])

    # Without an explicit weight unit we cannot safely guess mass
    return None


def format_portion(grams: float) -> str:
    return f"{int(round(grams))}g"


def scale_portion(portion_string: str, factor: float, floor: int = MIN_PORTION_G) -> str:
    """
    Rescales a gram portion by `factor`, never going below `floor` grams.
    Portions without a gram weight are returned unchanged.
    """
    grams = parse_portion_grams(portion_string)
    if grams is None:
        return portion_string
    return format_portion(max(floor, round(grams * factor)))


def is_trivial_portion(portion_string: str) -> bool:
    grams = parse_portion_grams(portion_string)
    return grams is not None and grams <= TRIVIAL_PORTION_G


def calorie_deviation(actual: float, target: float) -> float:
    """Relative deviation of `actual` from `target` (0.03 == 3%)."""
    if not target:
        return 0.0
    return abs(actual - target) / target


def calculate_bmi(weight_kg: float, height_cm: float) -> float:
    height_m = height_cm / 100
    return round(weight_kg / (height_m * height_m), 1)


def calculate_bmr(weight: float, height: float, age: int, gender: str) -> int:
    """
    Mifflin-St Jeor Equation to calculate BMR.
    """
    s = 5 if (gender or "").lower() == 'male' else -161
    return int(round((10 * weight) + (6.25 * height) - (5 * age) + s))
