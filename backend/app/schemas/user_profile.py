# app/schemas/user_profile.py
from pydantic import ConfigDict, Field
from typing import List

from config import DEFAULT_NUM_DAYS, MAX_NUM_DAYS
from app.schemas.base import CamelModel


class QuizInput(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", description="Valid email required")
    phone: str = Field(..., pattern=r"^\d{10,15}$", description="Phone number must be 10-15 digits")
    gender: str = Field(..., pattern="^(male|female|other)$")
    age: int = Field(..., ge=10, le=120)
    height_cm: float = Field(..., ge=100, le=250, description="Height in cm")
    weight_kg: float = Field(..., ge=20, le=300, description="Current weight in kg")

    sleep_score: float = Field(..., ge=0, le=100)
    stress_score: float = Field(..., ge=0, le=100)
    activity_score: float = Field(..., ge=0, le=100)
    energy_score: float = Field(..., ge=0, le=100)

    goals: List[str] = Field(..., min_length=1, description="At least one goal required")
    medical_conditions: List[str] = Field(default_factory=list)
    digestive_issues: List[str] = Field(default_factory=list)
    food_intolerances: List[str] = Field(default_factory=list)
    skin_concerns: List[str] = Field(default_factory=list)

    dietary_preference: str = Field(..., pattern="^(veg|non-veg|vegan|eggetarian)$")
    exercise_preference: List[str] = Field(default_factory=list)
    exercise_intensity: str = Field(..., pattern="^(low|moderate|high)$")
    work_schedule: str = ""
    region: str = ""
    meal_frequency: int = Field(..., ge=2, le=6)
    dna_consent: bool = False

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
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
        }
    )


class ReportRequest(CamelModel):
    profile: QuizInput
    tier: str = Field(..., pattern="^(free|essential|premium|coaching)$")
    add_ons: List[str] = Field(default_factory=list)
    order_id: str = Field(..., min_length=1, description="Order ID required")
    num_days: int = Field(DEFAULT_NUM_DAYS, ge=1, le=MAX_NUM_DAYS)


class ComputedProfile(CamelModel):
    bmi: float
    bmi_category: str
    bmr: int
    tdee: int
    calorie_target: int
    protein_grams: int
    carbs_grams: int
    fats_grams: int
    protein_pct: int = 0
    carbs_pct: int = 0
    fats_pct: int = 0


class UserHealthProfile(CamelModel):
    """
    Merged request profile: quiz answers plus computed energy values.
    `tdee` carries the daily calorie target the meal plan is calibrated to.
    """
    name: str = ""
    email: str = ""
    age: int = 30
    gender: str = "other"
    height_cm: float = 170.0
    weight_kg: float = 70.0
    bmi: float = 0.0
    bmr: int = 0
    tdee: int = 2000
    protein_grams: float = 150
    carbs_grams: float = 200
    fats_grams: float = 65
    stress_score: float = 50
    sleep_score: float = 50
    activity_score: float = 50
    energy_score: float = 50
    medical_conditions: List[str] = Field(default_factory=list)
    digestive_issues: List[str] = Field(default_factory=list)
    food_intolerances: List[str] = Field(default_factory=list)
    skin_concerns: List[str] = Field(default_factory=list)
    dietary_preference: str = "veg"
    exercise_preference: List[str] = Field(default_factory=list)
    exercise_intensity: str = "moderate"
    work_schedule: str = ""
    region: str = ""
    goals: List[str] = Field(default_factory=list)
    recommended_tests: List[str] = Field(default_factory=list)
    supplement_priority: List[str] = Field(default_factory=list)
    meal_frequency: int = 3
    dna_consent: bool = False
