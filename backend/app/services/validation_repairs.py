import logging
import re
from typing import Callable, Dict, List, NamedTuple, Optional

from config import DEFAULT_NUM_DAYS
from app.schemas.meal_plan import MEAL_SLOTS, DayPlan, MealItem
from app.schemas.report import NARRATIVE_SECTIONS, CheckResult, NarrativeOutput, ReportBundle
from app.schemas.user_profile import ComputedProfile
from app.services.meal_service import generate_meal_plan
from app.services.narrative_service import get_default_narratives
from app.services.validation_checks import (
    CALORIE_TOLERANCE,
    ENCODING_ARTIFACTS,
    FEMALE_RESTRICTED_MODULES,
    MALE_RESTRICTED_MODULES,
    PLACEHOLDER_TOKENS,
    PROTEIN_TOLERANCE_G,
    conflicting_intolerance,
    is_beginner,
    supplement_key,
)
from app.utils.nutrition_calc import calorie_deviation, scale_portion

logger = logging.getLogger(__name__)

"""
Validation Repairs
------------------
One repair per check. Every repair takes the current bundle, deep-copies it and
returns the copy; the bundle passed in is never modified.
"""

FEMALE_SPECIFIC_TERMS = re.compile(r"pcos|ovarian|menstrual|\bwomen[']s health\b", re.IGNORECASE)
MALE_SPECIFIC_TERMS = re.compile(r"prostate|testosterone therapy|\bmen[']s performance\b", re.IGNORECASE)

TEMPLATE_MARKERS = re.compile(r"\$\{.*?\}|\$\{")
PLACEHOLDER_PATTERN = re.compile("|".join(re.escape(t) for t in PLACEHOLDER_TOKENS), re.IGNORECASE)


def _rewrite_narratives(
    narratives: NarrativeOutput,
    rewrite: Callable[[str], str],
    drop_condition: Callable[[str], bool] = lambda key: False,
) -> NarrativeOutput:
    """Applies `rewrite` to every section and condition text; drops condition keys matching `drop_condition`."""
    update = {section: rewrite(getattr(narratives, section)) for section in NARRATIVE_SECTIONS}
    update["condition_narratives"] = {
        key: rewrite(text)
        for key, text in narratives.condition_narratives.items()
        if not drop_condition(key)
    }
    return narratives.model_copy(update=update)


def repair_gender_condition(bundle: ReportBundle, computed: ComputedProfile, result: Optional[CheckResult] = None) -> ReportBundle:
    """
    Male: drop PCOS conditions, female-only modules and condition texts; reword female-specific terms.
    Female: drop male-only modules; reword male-specific terms.
    """
    fixed = bundle.model_copy(deep=True)
    gender = (fixed.profile.gender or "").lower()

    if gender == "male":
        fixed.profile.medical_conditions = [
            c for c in fixed.profile.medical_conditions if "pcos" not in c.lower()
        ]
        fixed.rules.active_modules = [m for m in fixed.rules.active_modules if m not in MALE_RESTRICTED_MODULES]
        fixed.narratives = _rewrite_narratives(
            fixed.narratives,
            lambda text: FEMALE_SPECIFIC_TERMS.sub("metabolic balance", text),
            lambda key: bool(FEMALE_SPECIFIC_TERMS.search(key)),
        )

    elif gender == "female":
        fixed.rules.active_modules = [m for m in fixed.rules.active_modules if m not in FEMALE_RESTRICTED_MODULES]
        fixed.narratives = _rewrite_narratives(
            fixed.narratives,
            lambda text: MALE_SPECIFIC_TERMS.sub("hormonal balance", text),
            lambda key: bool(MALE_SPECIFIC_TERMS.search(key)),
        )

    return fixed


def _scale_day(day: DayPlan, scale: float, computed: ComputedProfile) -> DayPlan:
    def scaled(item: MealItem) -> MealItem:
        return item.model_copy(update={
            "calories": int(round(item.calories * scale)),
            "protein": round(item.protein * scale, 1),
            "carbs": round(item.carbs * scale, 1),
            "fats": round(item.fats * scale, 1),
            "portion": scale_portion(item.portion, scale),
        })

    update = {slot: [scaled(item) for item in day.slot_items(slot)] for slot in MEAL_SLOTS}
    # Totals are reported as the targets themselves
    update.update(
        total_calories=computed.calorie_target,
        total_protein=float(computed.protein_grams),
        total_carbs=float(computed.carbs_grams),
        total_fats=float(computed.fats_grams),
    )
    return day.model_copy(update=update)


def repair_macro_accuracy(bundle: ReportBundle, computed: ComputedProfile, result: Optional[CheckResult] = None) -> ReportBundle:
    """Rescales every out-of-tolerance day by target/current calories."""
    fixed = bundle.model_copy(deep=True)
    days: List[DayPlan] = []

    for day in fixed.meal_plan.days:
        off_calories = calorie_deviation(day.total_calories, computed.calorie_target) > CALORIE_TOLERANCE
        off_protein = abs(day.total_protein - computed.protein_grams) > PROTEIN_TOLERANCE_G
        if off_calories or off_protein:
            scale = computed.calorie_target / (day.total_calories or 1)
            logger.debug(f"[Repair] {day.day_label}: scaling by {scale:.3f}")
            day = _scale_day(day, scale, computed)
        days.append(day)

    fixed.meal_plan.days = days
    return fixed


def repair_narrative_score_consistency(bundle: ReportBundle, computed: ComputedProfile, result: Optional[CheckResult] = None) -> ReportBundle:
    """Swaps the offending sleep and/or stress section for its template text."""
    fixed = bundle.model_copy(deep=True)
    defaults = get_default_narratives(fixed.profile, fixed.rules)
    detail = result.detail if result else "sleep stress"

    update = {}
    if re.search(r"sleep", detail, re.IGNORECASE):
        update["sleep_narrative"] = defaults.sleep_narrative
    if re.search(r"stress", detail, re.IGNORECASE):
        update["stress_narrative"] = defaults.stress_narrative

    fixed.narratives = fixed.narratives.model_copy(update=update)
    return fixed


def repair_activity_training_alignment(bundle: ReportBundle, computed: ComputedProfile, result: Optional[CheckResult] = None) -> ReportBundle:
    fixed = bundle.model_copy(deep=True)
    modules = list(fixed.rules.active_modules)

    if is_beginner(fixed):
        modules = [m for m in modules if m != "muscle_building"]
        if "beginner_program" not in modules:
            modules.append("beginner_program")
    elif "beginner_program" in modules and "movement_program" not in modules:
        modules = [m for m in modules if m != "beginner_program"]
        modules.append("movement_program")

    fixed.rules.active_modules = modules
    return fixed


def repair_food_intolerance(bundle: ReportBundle, computed: ComputedProfile, result: Optional[CheckResult] = None) -> ReportBundle:
    """Drops conflicting items from their slots. Nothing is substituted."""
    fixed = bundle.model_copy(deep=True)
    intolerances = [i.lower() for i in fixed.profile.food_intolerances]

    days = []
    for day in fixed.meal_plan.days:
        update = {
            slot: [item for item in day.slot_items(slot) if not conflicting_intolerance(item.name, intolerances)]
            for slot in MEAL_SLOTS
        }
        days.append(day.model_copy(update=update).with_recomputed_totals())

    fixed.meal_plan.days = days
    return fixed


def repair_supplement_dedup(bundle: ReportBundle, computed: ComputedProfile, result: Optional[CheckResult] = None) -> ReportBundle:
    """Keeps the first occurrence of each supplement."""
    fixed = bundle.model_copy(deep=True)
    seen = set()
    unique = []
    for supplement in fixed.profile.supplement_priority:
        key = supplement_key(supplement)
        if key not in seen:
            seen.add(key)
            unique.append(supplement)
    fixed.profile.supplement_priority = unique
    return fixed


def clean_placeholder_text(text: str) -> str:
    text = TEMPLATE_MARKERS.sub("", text)
    text = PLACEHOLDER_PATTERN.sub("", text)
    return ENCODING_ARTIFACTS.sub("", text)


def repair_placeholders(bundle: ReportBundle, computed: ComputedProfile, result: Optional[CheckResult] = None) -> ReportBundle:
    """Strips template markers, placeholder tokens and encoding artifacts from narrative text."""
    fixed = bundle.model_copy(deep=True)
    fixed.narratives = _rewrite_narratives(fixed.narratives, clean_placeholder_text)
    return fixed


def repair_integrity_audit(bundle: ReportBundle, computed: ComputedProfile, result: Optional[CheckResult] = None) -> ReportBundle:
    """
    Structural repair chosen from the audit detail:
    - portion/calorie problems: rebuild the meal plan from scratch
    - module/prefix problems: re-apply the gender filters, dedupe modules
    """
    fixed = bundle.model_copy(deep=True)
    detail = (result.detail if result else "").lower()

    if "portion" in detail or "calorie" in detail:
        num_days = len(fixed.meal_plan.days) or DEFAULT_NUM_DAYS
        logger.info(f"[Repair] Regenerating {num_days}-day meal plan after integrity failure")
        fixed.meal_plan = generate_meal_plan(fixed.profile, num_days)

    if "module" in detail or "prefix" in detail:
        fixed = repair_gender_condition(fixed, computed, result)
        fixed.rules.active_modules = list(dict.fromkeys(fixed.rules.active_modules))

    return fixed


RepairFn = Callable[[ReportBundle, ComputedProfile, CheckResult], ReportBundle]


class Repair(NamedTuple):
    apply: RepairFn
    adjustment: str


REPAIRS: Dict[str, Repair] = {
    "gender_condition": Repair(
        repair_gender_condition, "Gender-condition conflict resolved (gender-specific modules filtered)"),
    "macro_accuracy": Repair(
        repair_macro_accuracy, "Macro targets aligned (±3% cal, ±5g protein)"),
    "narrative_score_consistency": Repair(
        repair_narrative_score_consistency, "Narrative tone realigned with scores"),
    "activity_training_alignment": Repair(
        repair_activity_training_alignment, "Training program matched to activity level"),
    "food_intolerance": Repair(
        repair_food_intolerance, "Food intolerance conflicts removed"),
    "supplement_dedup": Repair(
        repair_supplement_dedup, "Duplicate supplements removed"),
    "placeholder_clean": Repair(
        repair_placeholders, "Placeholder text cleaned"),
    "integrity_audit": Repair(
        repair_integrity_audit, "Structural integrity issues repaired"),
}
