import logging
from typing import Dict, List, Optional

from app.schemas.user_profile import ComputedProfile, QuizInput, UserHealthProfile
from app.utils.nutrition_calc import calculate_bmi, calculate_bmr

logger = logging.getLogger(__name__)

"""
Nutrition Service
-----------------
Handles all the mathematical logic for nutrition planning.
This module is pure business logic and does not depend on the API layer.
"""

# Senior target floor: never more than a 15% cut from TDEE
SENIOR_AGE = 60
SENIOR_MAX_DEFICIT = 0.15


def activity_multiplier(activity_score: float) -> float:
    if activity_score < 20:
        return 1.2     # Little or no exercise
    if activity_score < 40:
        return 1.375   # Light exercise
    if activity_score < 60:
        return 1.55    # Moderate exercise
    if activity_score < 80:
        return 1.725   # Hard exercise
    return 1.9         # Very hard exercise & physical job


def classify_bmi(bmi: float) -> str:
    if bmi < 18.5:
        return "underweight"
    if bmi < 25:
        return "normal"
    if bmi < 30:
        return "overweight"
    return "obese"


def _wants(goals: List[str], keywords) -> bool:
    goals_lower = [g.lower() for g in goals]
    return any(k in g for g in goals_lower for k in keywords)


def calculate_calorie_target(tdee: int, bmi_category: str, goals: List[str], age: int, bmr: int) -> int:
    """
    Goal adjustment on top of TDEE, then the safety floors.

    1. Loss goal or obese: -20%. Overweight: -15%.
    2. Gain goal: +10%. Underweight: +15%.
    3. Age >= 60: never below max(BMR, 85% of TDEE).
    4. Nobody goes below BMR.
    """
    wants_loss = _wants(goals, ("lose", "weight loss", "fat loss"))
    wants_gain = _wants(goals, ("gain", "muscle", "build"))

    target = round(tdee)
    if wants_loss or bmi_category == "obese":
        target = round(tdee * 0.80)
    elif bmi_category == "overweight":
        target = round(tdee * 0.85)
    elif wants_gain:
        target = round(tdee * 1.10)
    elif bmi_category == "underweight":
        target = round(tdee * 1.15)

    if age >= SENIOR_AGE:
        floor = max(bmr, round(tdee * (1 - SENIOR_MAX_DEFICIT)))
        if target < floor:
            logger.info(f"[Nutrition Service] Senior floor applied: {target} -> {floor} kcal")
            target = floor

    if target < bmr:
        target = bmr

    return int(target)


def calculate_macros(calorie_target: int, goals: List[str], conditions: List[str]) -> Dict[str, int]:
    """
    Macro split as percentages of calories, converted to grams
    (4 kcal/g protein and carbs, 9 kcal/g fat).
    """
    protein_pct, carbs_pct, fats_pct = 0.25, 0.50, 0.25

    if _wants(goals, ("muscle", "build", "gain")):
        protein_pct, carbs_pct, fats_pct = 0.30, 0.45, 0.25
    elif _wants(goals, ("lose", "fat")):
        protein_pct, carbs_pct, fats_pct = 0.30, 0.40, 0.30

    # Insulin-sensitive conditions override the goal split
    if _wants(conditions, ("diabetes", "pcos")):
        protein_pct, carbs_pct, fats_pct = 0.30, 0.35, 0.35

    total = protein_pct + carbs_pct + fats_pct
    protein_pct, carbs_pct, fats_pct = protein_pct / total, carbs_pct / total, fats_pct / total

    return {
        "protein_grams": round(calorie_target * protein_pct / 4),
        "carbs_grams": round(calorie_target * carbs_pct / 4),
        "fats_grams": round(calorie_target * fats_pct / 9),
        "protein_pct": round(protein_pct * 100),
        "carbs_pct": round(carbs_pct * 100),
        "fats_pct": round(fats_pct * 100),
    }


def build_computed_profile(quiz: QuizInput) -> ComputedProfile:
    """
    Single source of truth for every number in the report.

    Algorithm:
    1. BMI and category
    2. BMR (Mifflin-St Jeor)
    3. TDEE (activity multiplier from the activity score)
    4. Calorie target (goal adjustment + safety floors)
    5. Macro split
    """
    bmi = calculate_bmi(quiz.weight_kg, quiz.height_cm)
    bmi_category = classify_bmi(bmi)
    bmr = calculate_bmr(quiz.weight_kg, quiz.height_cm, quiz.age, quiz.gender)
    tdee = int(round(bmr * activity_multiplier(quiz.activity_score)))
    calorie_target = calculate_calorie_target(tdee, bmi_category, quiz.goals, quiz.age, bmr)
    macros = calculate_macros(calorie_target, quiz.goals, quiz.medical_conditions)

    logger.info(
        f"[Nutrition Service] {quiz.weight_kg}kg, {quiz.height_cm}cm, {quiz.age}yrs, {quiz.gender}: "
        f"BMI {bmi} ({bmi_category}), BMR {bmr}, TDEE {tdee}, target {calorie_target} kcal"
    )

    return ComputedProfile(
        bmi=bmi,
        bmi_category=bmi_category,
        bmr=bmr,
        tdee=tdee,
        calorie_target=calorie_target,
        **macros,
    )


def build_user_profile(quiz: QuizInput, computed: Optional[ComputedProfile] = None) -> UserHealthProfile:
    computed = computed or build_computed_profile(quiz)
    return UserHealthProfile(
        name=quiz.name,
        email=quiz.email,
        age=quiz.age,
        gender=quiz.gender,
        height_cm=quiz.height_cm,
        weight_kg=quiz.weight_kg,
        bmi=computed.bmi,
        bmr=computed.bmr,
        tdee=computed.calorie_target,
        protein_grams=computed.protein_grams,
        carbs_grams=computed.carbs_grams,
        fats_grams=computed.fats_grams,
        stress_score=quiz.stress_score,
        sleep_score=quiz.sleep_score,
        activity_score=quiz.activity_score,
        energy_score=quiz.energy_score,
        medical_conditions=list(quiz.medical_conditions),
        digestive_issues=list(quiz.digestive_issues),
        food_intolerances=list(quiz.food_intolerances),
        skin_concerns=list(quiz.skin_concerns),
        dietary_preference=quiz.dietary_preference,
        exercise_preference=list(quiz.exercise_preference),
        exercise_intensity=quiz.exercise_intensity,
        work_schedule=quiz.work_schedule,
        region=quiz.region,
        goals=list(quiz.goals),
        meal_frequency=quiz.meal_frequency,
        dna_consent=quiz.dna_consent,
    )


def computed_from_profile(profile: UserHealthProfile) -> ComputedProfile:
    """
    Targets for a profile that arrived already computed (no quiz input).
    The profile's `tdee` is the calorie target.
    """
    bmi = profile.bmi or calculate_bmi(profile.weight_kg, profile.height_cm)
    return ComputedProfile(
        bmi=bmi,
        bmi_category=classify_bmi(bmi),
        bmr=int(profile.bmr),
        tdee=int(profile.tdee),
        calorie_target=int(profile.tdee),
        protein_grams=int(round(profile.protein_grams)),
        carbs_grams=int(round(profile.carbs_grams)),
        fats_grams=int(round(profile.fats_grams)),
    )


def with_computed_bmi(profile: UserHealthProfile) -> UserHealthProfile:
    """Fills in BMI from height and weight when the caller did not send one."""
    if profile.bmi:
        return profile
    return profile.model_copy(update={"bmi": calculate_bmi(profile.weight_kg, profile.height_cm)})
