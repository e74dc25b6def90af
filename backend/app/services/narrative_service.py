import logging
from typing import Any, Dict, Optional

from pydantic.alias_generators import to_camel

from app.schemas.report import NARRATIVE_SECTIONS, NarrativeOutput, RuleEngineOutput
from app.schemas.user_profile import UserHealthProfile
from app.services.llm_service import get_llm, invoke_llm_json
from app.utils.score_utils import score_interpretation

logger = logging.getLogger(__name__)

"""
Narrative Service
-----------------
Report prose. Deterministic templates are always computed first; an optional
chat model may rewrite them. Any model failure falls back to the templates.
"""

NARRATIVE_SYSTEM_PROMPT = """You are a clinical wellness expert. Rewrite the provided narratives into clinical but warm, evidence-based text.

CRITICAL CONSTRAINTS:
- You MUST ONLY rewrite the provided sections.
- You CANNOT add, remove, duplicate, or reorder any sections.
- You MUST strictly use the pre-computed numbers provided. NEVER perform your own calculations.
- Maintain the exact JSON structure provided in the template.
- Each section should be 2-4 sentences maximum.
- Tone must match severity: severe scores get urgent language, normal scores get positive language.

Response Template:
{
  "executiveSummary": "Rewrite here",
  "riskInterpretation": "Rewrite here",
  "goalStrategy": "Rewrite here",
  "sleepNarrative": "Rewrite here (only if provided)",
  "stressNarrative": "Rewrite here (only if provided)",
  "nutritionNarrative": "Rewrite here",
  "movementNarrative": "Rewrite here",
  "conditionNarratives": { "conditionName": "Rewrite here" }
}"""


def _join_or_none(values) -> str:
    return ", ".join(values) if values else "None"


def build_narrative_user_prompt(profile: UserHealthProfile, rules: RuleEngineOutput) -> str:
    severity = rules.severity_profile
    risk_lines = "\n".join(
        f"- [{f.severity.upper()}] {f.category}: {f.description}" for f in rules.risk_flags
    )

    return f"""Generate personalized wellness narratives for this user. USE ONLY the pre-computed numbers below. Do NOT recalculate anything.

PROFILE (raw input):
- Name: {profile.name}
- Age: {profile.age}, Gender: {profile.gender}
- Height: {profile.height_cm} cm, Weight: {profile.weight_kg} kg

COMPUTED DATA (use these exact numbers, do not recalculate):
- BMI: {profile.bmi:.1f}, BMR: {profile.bmr} kcal, Daily Calorie Target: {profile.tdee} kcal
- Macros: Protein {profile.protein_grams:g}g, Carbs {profile.carbs_grams:g}g, Fats {profile.fats_grams:g}g
- Dietary Preference: {profile.dietary_preference}
- Meal Frequency: {profile.meal_frequency} meals/day

SCORES:
- Sleep Score: {profile.sleep_score:g}/100 ({score_interpretation('Sleep Quality', profile.sleep_score)})
- Stress Score: {profile.stress_score:g}/100 ({score_interpretation('Stress Resilience', profile.stress_score)})
- Activity Score: {profile.activity_score:g}/100 ({score_interpretation('Physical Activity', profile.activity_score)})
- Energy Score: {profile.energy_score:g}/100 ({score_interpretation('Energy Level', profile.energy_score)})

SEVERITY PROFILE:
- Sleep: {severity.sleep_severity}
- Stress: {severity.stress_severity}
- Weight Risk: {severity.weight_risk}
- Metabolic Risk: {severity.metabolic_risk}

MEDICAL CONDITIONS: {_join_or_none(profile.medical_conditions)}
DIGESTIVE ISSUES: {_join_or_none(profile.digestive_issues)}
FOOD INTOLERANCES: {_join_or_none(profile.food_intolerances)}
SKIN CONCERNS: {_join_or_none(profile.skin_concerns)}

GOALS: {", ".join(profile.goals)}
EXERCISE PREFERENCES: {", ".join(profile.exercise_preference)} at {profile.exercise_intensity} intensity
WORK SCHEDULE: {profile.work_schedule}
REGION: {profile.region}

RISK FLAGS:
{risk_lines}

ACTIVE MODULES: {", ".join(rules.active_modules)}

Remember:
- If sleepSeverity is "normal", set sleepNarrative to ""
- If stressSeverity is "normal", set stressNarrative to ""
- Only include conditions the user actually has in conditionNarratives
- Reference their actual numbers (BMI, TDEE, scores) in the narratives"""


def _condition_narrative(condition: str) -> str:
    cond = condition.lower()
    if "pcos" in cond:
        return ("Your PCOS management plan focuses on insulin sensitivity improvement through low-glycemic "
                "nutrition and regular physical activity. Monitoring key hormonal markers and maintaining a "
                "balanced weight will be essential for managing symptoms effectively.")
    if "thyroid" in cond:
        return ("Your thyroid condition requires ongoing monitoring and nutrition adjustments. Focus on "
                "thyroid-supportive nutrients including selenium and iodine while being mindful of medication "
                "timing with meals.")
    if "diabetes" in cond:
        return ("Your diabetes management centres on glycemic control through careful carbohydrate management "
                "and regular blood sugar monitoring. Regular HbA1c testing and a low-glycemic diet will help "
                "maintain stable blood sugar levels.")
    if "hypertension" in cond or "blood-pressure" in cond:
        return ("Your blood pressure management plan includes sodium restriction, potassium-rich foods, and "
                "regular cardiovascular exercise. Consistent monitoring and stress management will support "
                "healthy blood pressure levels.")
    return (f"Your {condition} management is integrated into your overall wellness strategy. Follow the specific "
            f"dietary and lifestyle recommendations outlined in this blueprint for optimal management.")


def get_default_narratives(profile: UserHealthProfile, rules: RuleEngineOutput) -> NarrativeOutput:
    """
    Template narratives built only from computed numbers.
    Sleep and stress sections stay empty when their severity is normal.
    """
    severity = rules.severity_profile
    bmi = f"{profile.bmi:.1f}"

    bmi_desc = {
        "normal": f"Your BMI of {bmi} falls within the healthy range.",
        "overweight": f"Your BMI of {bmi} indicates you are in the overweight category.",
        "obese": f"Your BMI of {bmi} indicates obesity, which requires focused attention.",
    }.get(severity.weight_risk, f"Your BMI of {bmi} indicates you are underweight.")

    executive_summary = (
        f"{bmi_desc} Your estimated Total Daily Energy Expenditure (TDEE) is {profile.tdee} kcal, which forms "
        f"the foundation of your nutrition plan. Based on your health profile, we have identified "
        f"{len(rules.risk_flags)} area(s) requiring attention. This blueprint is designed to provide you with "
        f"an evidence-based, actionable wellness strategy tailored to your unique needs."
    )

    if rules.risk_flags:
        categories = ", ".join(f.category for f in rules.risk_flags)
        if any(f.severity in ("high", "critical") for f in rules.risk_flags):
            follow_up = "Some of these require immediate attention and are addressed in detail within this blueprint."
        else:
            follow_up = "These are manageable with the lifestyle modifications outlined in this blueprint."
        risk_interpretation = f"Your health assessment has identified risks in the following areas: {categories}. {follow_up}"
    else:
        risk_interpretation = (
            "Your health assessment shows no major risk flags. Focus on maintaining your current healthy habits "
            "while optimizing the areas highlighted in this blueprint."
        )

    goal_strategy = (
        f"Your stated goals include: {', '.join(profile.goals)}. To achieve these, we recommend a structured "
        f"approach combining targeted nutrition ({profile.tdee} kcal/day with {profile.protein_grams:g}g protein, "
        f"{profile.carbs_grams:g}g carbs, {profile.fats_grams:g}g fats), progressive exercise, and lifestyle "
        f"modifications. Consistency over the next 12 weeks will be key to seeing measurable results."
    )

    sleep_narrative = ""
    if severity.sleep_severity != "normal":
        sleep_score = f"{profile.sleep_score:g}"
        if severity.sleep_severity == "severe":
            sleep_desc = (f"Your sleep score of {sleep_score} indicates severely disrupted sleep patterns that are "
                          f"likely impacting your recovery, metabolism, and cognitive function.")
        elif severity.sleep_severity == "moderate":
            sleep_desc = (f"Your sleep score of {sleep_score} suggests moderate sleep disruption that may be "
                          f"affecting your energy levels and recovery.")
        else:
            sleep_desc = f"Your sleep score of {sleep_score} shows mild room for improvement in your sleep quality."
        sleep_narrative = (f"{sleep_desc} Implementing a consistent sleep schedule and optimizing your sleep "
                           f"environment will be important components of your wellness journey.")

    stress_narrative = ""
    if severity.stress_severity != "normal":
        stress_score = f"{profile.stress_score:g}"
        if severity.stress_severity == "severe":
            stress_desc = (f"Your stress score of {stress_score} indicates high chronic stress levels that may be "
                           f"elevating cortisol and impacting weight management, sleep, and immune function.")
        elif severity.stress_severity == "moderate":
            stress_desc = (f"Your stress score of {stress_score} suggests moderate stress levels that could "
                           f"benefit from structured stress management techniques.")
        else:
            stress_desc = (f"Your stress score of {stress_score} shows mild stress that can be managed with daily "
                           f"breathing exercises and mindfulness practices.")
        stress_narrative = (f"{stress_desc} Incorporating daily stress-reduction practices will support your "
                            f"overall health goals.")

    nutrition_narrative = (
        f"Based on your TDEE of {profile.tdee} kcal and {profile.dietary_preference} dietary preference, your "
        f"daily macro targets are {profile.protein_grams:g}g protein, {profile.carbs_grams:g}g carbs, and "
        f"{profile.fats_grams:g}g fats. Your meal plan is structured around {profile.meal_frequency} meals per "
        f"day, incorporating nutrient-dense foods aligned with Indian dietary patterns. Focus on whole grains, "
        f"legumes, seasonal vegetables, and adequate protein sources to meet your nutritional needs."
    )

    if profile.activity_score < 40:
        activity_desc = "low activity level"
    elif profile.activity_score < 70:
        activity_desc = "moderate activity level"
    else:
        activity_desc = "good activity level"

    movement_narrative = (
        f"Your activity score of {profile.activity_score:g} reflects a {activity_desc}. Based on your preferences "
        f"for {', '.join(profile.exercise_preference)} at {profile.exercise_intensity} intensity, we have designed "
        f"a progressive movement program. Aim for consistent weekly sessions, gradually increasing duration and "
        f"intensity as your fitness improves."
    )

    return NarrativeOutput(
        executive_summary=executive_summary,
        risk_interpretation=risk_interpretation,
        goal_strategy=goal_strategy,
        sleep_narrative=sleep_narrative,
        stress_narrative=stress_narrative,
        nutrition_narrative=nutrition_narrative,
        movement_narrative=movement_narrative,
        condition_narratives={c: _condition_narrative(c) for c in profile.medical_conditions},
    )


def merge_narratives(defaults: NarrativeOutput, parsed: Dict[str, Any]) -> NarrativeOutput:
    """
    Field-by-field merge of a model reply over the templates.

    - Sleep and stress accept an empty string (the model may blank a normal-severity section).
    - Every other section needs a non-empty string.
    - Condition narratives are taken only as a non-empty string map.
    """
    merged: Dict[str, Any] = {}

    for section in NARRATIVE_SECTIONS:
        fallback = getattr(defaults, section)
        value = parsed.get(to_camel(section), parsed.get(section))
        if not isinstance(value, str):
            merged[section] = fallback
        elif section in ("sleep_narrative", "stress_narrative"):
            merged[section] = value
        else:
            merged[section] = value or fallback

    conditions = parsed.get("conditionNarratives", parsed.get("condition_narratives"))
    if isinstance(conditions, dict) and conditions and all(
        isinstance(k, str) and isinstance(v, str) for k, v in conditions.items()
    ):
        merged["condition_narratives"] = dict(conditions)
    else:
        merged["condition_narratives"] = dict(defaults.condition_narratives)

    return NarrativeOutput(**merged)


class NarrativeGenerator:
    """
    Produces report narratives. `llm` is any LangChain chat model (anything with
    `.invoke(messages)`); without one, templates are returned as-is.
    """

    def __init__(self, llm=None):
        self.llm = llm

    @classmethod
    def from_config(cls) -> "NarrativeGenerator":
        return cls(llm=get_llm(temperature=0.4, max_tokens=8192, json_mode=True))

    def generate(self, profile: UserHealthProfile, rules: RuleEngineOutput) -> NarrativeOutput:
        defaults = get_default_narratives(profile, rules)

        if self.llm is None:
            logger.info("[Narrative Service] No narrative model configured, using default narratives")
            return defaults

        try:
            parsed: Optional[Any] = invoke_llm_json(
                self.llm, NARRATIVE_SYSTEM_PROMPT, build_narrative_user_prompt(profile, rules)
            )
        except Exception as e:
            logger.warning(f"[Narrative Service] Narrative rewrite failed, using defaults: {e}")
            return defaults

        if not isinstance(parsed, dict) or not parsed:
            logger.warning("[Narrative Service] Empty or malformed narrative reply, using defaults")
            return defaults

        logger.info("[Narrative Service] Narratives rewritten by model")
        return merge_narratives(defaults, parsed)
