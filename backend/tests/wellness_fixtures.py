from app.schemas.report import ReportBundle
from app.schemas.user_profile import QuizInput, UserHealthProfile
from app.services.meal_service import generate_meal_plan
from app.services.narrative_service import get_default_narratives
from app.services.nutrition_service import computed_from_profile
from app.services.rule_engine import run_rule_engine


def make_profile(**overrides) -> UserHealthProfile:
    values = dict(
        name="Asha Rao",
        email="asha@example.com",
        age=34,
        gender="female",
        height_cm=162,
        weight_kg=68,
        bmi=25.9,
        bmr=1362,
        tdee=2000,
        protein_grams=150,
        carbs_grams=200,
        fats_grams=65,
        sleep_score=55,
        stress_score=45,
        activity_score=45,
        energy_score=55,
        goals=["improve energy"],
        dietary_preference="veg",
        exercise_preference=["yoga", "walking"],
        exercise_intensity="moderate",
        meal_frequency=4,
    )
    values.update(overrides)
    return UserHealthProfile(**values)


def make_bundle(profile: UserHealthProfile = None, num_days: int = 1, tier: str = "premium") -> ReportBundle:
    profile = profile or make_profile()
    rules = run_rule_engine(profile, tier)
    return ReportBundle(
        profile=profile,
        rules=rules,
        narratives=get_default_narratives(profile, rules),
        meal_plan=generate_meal_plan(profile, num_days),
        tier=tier,
        order_id="ORD-1001",
        timestamp="2026-01-01T00:00:00+00:00",
    )


def computed_for(bundle: ReportBundle):
    return computed_from_profile(bundle.profile)


def make_quiz_payload(**overrides) -> dict:
    """Wire-format (camelCase) quiz answers."""
    payload = {
        "name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "9876543210",
        "gender": "female",
        "age": 34,
        "heightCm": 162,
        "weightKg": 68,
        "sleepScore": 45,
        "stressScore": 62,
        "activityScore": 35,
        "energyScore": 50,
        "goals": ["lose weight"],
        "medicalConditions": ["thyroid"],
        "digestiveIssues": [],
        "foodIntolerances": ["lactose"],
        "skinConcerns": [],
        "dietaryPreference": "veg",
        "exercisePreference": ["yoga", "walking"],
        "exerciseIntensity": "moderate",
        "workSchedule": "9-5",
        "region": "South India",
        "mealFrequency": 4,
        "dnaConsent": False,
    }
    payload.update(overrides)
    return payload


def make_quiz(**overrides) -> QuizInput:
    return QuizInput.model_validate(make_quiz_payload(**overrides))
