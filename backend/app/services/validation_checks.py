import re
from typing import Callable, List, Tuple

from app.models.food_item import matches_intolerance
from app.schemas.report import NARRATIVE_SECTIONS, CheckResult, NarrativeOutput, ReportBundle
from app.schemas.user_profile import ComputedProfile
from app.utils.nutrition_calc import calorie_deviation, is_trivial_portion

"""
Validation Checks
-----------------
Pure, read-only checks over an assembled report bundle. Each returns a CheckResult;
a failure reports the first offending item it finds.
"""

CALORIE_TOLERANCE = 0.03
PROTEIN_TOLERANCE_G = 5
BEGINNER_ACTIVITY_SCORE = 30
SENIOR_AGE = 60

# Modules that may only appear for the other gender
MALE_RESTRICTED_MODULES = ("pcos_protocol", "ovarian_health", "menstrual_cycle", "women_hormone")
FEMALE_RESTRICTED_MODULES = ("prostate_health", "testosterone_optimization", "men_performance")

FEMALE_TERMS = re.compile(r"\bpcos\b|\bovarian\b|\bmenstrual\b|\bwomen[']s health\b")
MALE_TERMS = re.compile(r"\bprostate\b|\btestosterone therapy\b|\bmen[']s performance\b")

SEVERE_SLEEP_LANGUAGE = re.compile(r"severely disrupted|critical|dangerous|urgent", re.IGNORECASE)
POSITIVE_SLEEP_LANGUAGE = re.compile(r"excellent|great|optimal|well-managed", re.IGNORECASE)
SEVERE_STRESS_LANGUAGE = re.compile(r"severely|critical|dangerous|urgent|high chronic", re.IGNORECASE)
POSITIVE_STRESS_LANGUAGE = re.compile(r"well-managed|low stress|minimal|excellent", re.IGNORECASE)

PLACEHOLDER_TOKENS = ("[Insert", "TODO", "TBD", "PLACEHOLDER", "NARRATIVE_HERE")
TEMPLATE_MARKER = "${"
ENCODING_ARTIFACTS = re.compile("[\ufffdÂÃÅÊ]")


def _pass(check: str, detail: str) -> CheckResult:
    return CheckResult(check=check, status="PASS", detail=detail)


def _fail(check: str, detail: str) -> CheckResult:
    return CheckResult(check=check, status="FAIL", detail=detail)


def _gender(bundle: ReportBundle) -> str:
    return (bundle.profile.gender or "").lower()


def narrative_text(narratives: NarrativeOutput) -> str:
    """Lower-cased serialization of every narrative, condition keys included."""
    return narratives.model_dump_json(by_alias=True).lower()


def check_gender_condition(bundle: ReportBundle, computed: ComputedProfile) -> CheckResult:
    gender = _gender(bundle)

    if gender == "male":
        if any("pcos" in c.lower() for c in bundle.profile.medical_conditions):
            return _fail("gender_condition", "Male profile contains PCOS condition")
        if FEMALE_TERMS.search(narrative_text(bundle.narratives)):
            return _fail("gender_condition", "Male profile narratives contain female-specific terms")

    if gender == "female":
        if MALE_TERMS.search(narrative_text(bundle.narratives)):
            return _fail("gender_condition", "Female profile narratives contain male-specific terms")

    return _pass("gender_condition", "Gender-condition alignment verified")


def check_macro_accuracy(bundle: ReportBundle, computed: ComputedProfile) -> CheckResult:
    days = bundle.meal_plan.days
    if not days:
        return _pass("macro_accuracy", "No meal plan to validate")

    target = computed.calorie_target
    for day in days:
        deviation = calorie_deviation(day.total_calories, target)
        if deviation > CALORIE_TOLERANCE:
            return _fail(
                "macro_accuracy",
                f"{day.day_label}: calories {day.total_calories} deviates {deviation * 100:.1f}% "
                f"from target {target} (max ±3%)"
            )

        protein_diff = abs(day.total_protein - computed.protein_grams)
        if protein_diff > PROTEIN_TOLERANCE_G:
            return _fail(
                "macro_accuracy",
                f"CRITICAL: {day.day_label} protein {day.total_protein:g}g deviates by {protein_diff:.1f}g "
                f"(Target: {computed.protein_grams}g). LIMIT: ±5g. EXPORT BLOCKED."
            )

    return _pass("macro_accuracy", "All days within ±3% calories and ±5g protein")


def check_narrative_score_consistency(bundle: ReportBundle, computed: ComputedProfile) -> CheckResult:
    profile = bundle.profile
    sleep = bundle.narratives.sleep_narrative
    stress = bundle.narratives.stress_narrative

    if profile.sleep_score >= 70 and len(sleep) > 50 and SEVERE_SLEEP_LANGUAGE.search(sleep):
        return _fail("narrative_score_consistency", "High sleep score (≥70) but narrative uses severe language")
    if profile.sleep_score < 30 and sleep and POSITIVE_SLEEP_LANGUAGE.search(sleep):
        return _fail("narrative_score_consistency", "Low sleep score (<30) but narrative uses positive language")

    if profile.stress_score < 30 and len(stress) > 50 and SEVERE_STRESS_LANGUAGE.search(stress):
        return _fail("narrative_score_consistency", "Low stress score (<30) but narrative uses severe language")
    if profile.stress_score >= 70 and stress and POSITIVE_STRESS_LANGUAGE.search(stress):
        return _fail("narrative_score_consistency", "High stress score (≥70) but narrative uses positive language")

    return _pass("narrative_score_consistency", "Narrative tone matches score severity")


def is_beginner(bundle: ReportBundle) -> bool:
    return bundle.profile.activity_score < BEGINNER_ACTIVITY_SCORE


def check_activity_training_alignment(bundle: ReportBundle, computed: ComputedProfile) -> CheckResult:
    modules = bundle.rules.active_modules

    if is_beginner(bundle) and "muscle_building" in modules:
        return _fail("activity_training_alignment", "Beginner activity score (<30) assigned muscle_building module")

    if not is_beginner(bundle) and "beginner_program" in modules and "movement_program" not in modules:
        return _fail("activity_training_alignment", "Non-beginner assigned only beginner_program")

    return _pass("activity_training_alignment", "Activity level matches training program")


def conflicting_intolerance(item_name: str, intolerances: List[str]):
    """First intolerance the item conflicts with, or None."""
    for intolerance in intolerances:
        if matches_intolerance(item_name, intolerance):
            return intolerance
    return None


def check_food_intolerance(bundle: ReportBundle, computed: ComputedProfile) -> CheckResult:
    if not bundle.meal_plan.days:
        return _pass("food_intolerance", "No meal plan to validate")

    intolerances = [i.lower() for i in bundle.profile.food_intolerances]
    if not intolerances:
        return _pass("food_intolerance", "No food intolerances reported")

    for day in bundle.meal_plan.days:
        for item in day.items():
            intolerance = conflicting_intolerance(item.name, intolerances)
            if intolerance:
                return _fail(
                    "food_intolerance",
                    f'{day.day_label}: "{item.name}" conflicts with {intolerance} intolerance'
                )

    return _pass("food_intolerance", "No intolerance conflicts found")


def supplement_key(name: str) -> str:
    return re.sub(r"\s+", "", name.lower().strip())


def check_supplement_dedup(bundle: ReportBundle, computed: ComputedProfile) -> CheckResult:
    supplements = bundle.profile.supplement_priority
    if not supplements:
        return _pass("supplement_dedup", "No supplements to check")

    seen = set()
    for supplement in supplements:
        key = supplement_key(supplement)
        if key in seen:
            return _fail("supplement_dedup", f"Duplicate supplement: {supplement}")
        seen.add(key)

    return _pass("supplement_dedup", "No duplicate supplements")


def check_placeholders(bundle: ReportBundle, computed: ComputedProfile) -> CheckResult:
    text = bundle.model_dump_json(by_alias=True)

    if TEMPLATE_MARKER in text:
        return _fail("placeholder_clean", "Unresolved ${} template found")

    upper = text.upper()
    for token in PLACEHOLDER_TOKENS:
        if token.upper() in upper:
            return _fail("placeholder_clean", f"Placeholder text found: {token}")

    artifact = ENCODING_ARTIFACTS.search(text)
    if artifact:
        return _fail("placeholder_clean", f"Encoding artifact found: {artifact.group(0)!r}")

    return _pass("placeholder_clean", "No placeholders or templates found")


def check_integrity_audit(bundle: ReportBundle, computed: ComputedProfile) -> CheckResult:
    """
    Structural audit. Collects every problem rather than stopping at the first:

    1. Duplicate module ids
    2. Duplicate narrative sections
    3. Name prefix vs gender
    4. Trivial portions or non-positive calories
    5. Modules restricted to the other gender
    6. Seniors: calorie target below BMR
    """
    errors: List[str] = []
    profile = bundle.profile
    modules = bundle.rules.active_modules
    gender = _gender(bundle)

    if len(set(modules)) != len(modules):
        errors.append("Duplicate module IDs detected in activeModules")

    sections = [s for s in NARRATIVE_SECTIONS if getattr(bundle.narratives, s)]
    if len(set(sections)) != len(sections):
        errors.append("Duplicate narrative sections detected")

    name = (profile.name or "").lower()
    if gender == "male" and any(prefix in name for prefix in ("mrs.", "ms.", "miss")):
        errors.append("Gender-name prefix mismatch (Male with Mrs/Ms/Miss)")
    if gender == "female" and any(prefix in name for prefix in ("mr.", "master")):
        errors.append("Gender-name prefix mismatch (Female with Mr/Master)")

    for day in bundle.meal_plan.days:
        for item in day.items():
            if is_trivial_portion(item.portion) or item.calories <= 0:
                errors.append(f"Invalid portion detected: {item.name} ({item.portion})")

    restricted = MALE_RESTRICTED_MODULES if gender == "male" else FEMALE_RESTRICTED_MODULES
    invalid_module = next((m for m in modules if m in restricted), None)
    if invalid_module:
        errors.append(f"Gender-restricted module detected: {invalid_module}")

    if profile.age >= SENIOR_AGE and profile.tdee < profile.bmr:
        errors.append(f"Senior Safety Violation: Calorie target ({profile.tdee}) below BMR ({profile.bmr})")

    if errors:
        return _fail("integrity_audit", "; ".join(errors))
    return _pass("integrity_audit", "Integrity audit passed")


CheckFn = Callable[[ReportBundle, ComputedProfile], CheckResult]

# Evaluation order matters: each repair runs before the next check sees the bundle
CONSISTENCY_CHECKS: Tuple[Tuple[str, CheckFn], ...] = (
    ("gender_condition", check_gender_condition),
    ("macro_accuracy", check_macro_accuracy),
    ("narrative_score_consistency", check_narrative_score_consistency),
    ("activity_training_alignment", check_activity_training_alignment),
    ("food_intolerance", check_food_intolerance),
    ("supplement_dedup", check_supplement_dedup),
    ("placeholder_clean", check_placeholders),
)

ALL_CHECKS: Tuple[Tuple[str, CheckFn], ...] = CONSISTENCY_CHECKS + (
    ("integrity_audit", check_integrity_audit),
)


def run_all_checks(bundle: ReportBundle, computed: ComputedProfile) -> List[CheckResult]:
    """Runs every check against the same bundle, without repairs."""
    return [check(bundle, computed) for _, check in ALL_CHECKS]
