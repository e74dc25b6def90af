import logging
import re
from typing import Callable, Dict, List, NamedTuple

from app.schemas.report import LabTest, NarrativeHint, RiskFlag, RuleEngineOutput, SeverityProfile
from app.schemas.user_profile import UserHealthProfile
from app.utils.score_utils import (
    evaluate_sleep_severity,
    evaluate_stress_severity,
    evaluate_weight_risk,
    is_score_low,
)

logger = logging.getLogger(__name__)

"""
Rule Engine
-----------
Deterministic interpretation of the health profile:
risk flags, report modules, prioritized lab tests, narrative hints and the severity profile.
"""

PAID_TIERS = ("premium", "coaching")

SEVERITY_WEIGHT = {"critical": 100, "high": 80, "moderate": 50, "low": 20}


def has_condition(profile: UserHealthProfile, keyword: str) -> bool:
    keyword = keyword.lower()
    return any(keyword in c.lower() for c in profile.medical_conditions)


def _goal_matches(profile: UserHealthProfile, pattern: str) -> bool:
    return any(re.search(pattern, g, re.IGNORECASE) for g in profile.goals)


def evaluate_metabolic_risk(profile: UserHealthProfile) -> str:
    conditions = [c.lower() for c in profile.medical_conditions]
    risk_score = sum([
        profile.bmi > 27,
        evaluate_stress_severity(profile.stress_score) == "severe",
        is_score_low(profile.sleep_score),
        "diabetes" in conditions or "pcos" in conditions,
        "thyroid" in conditions,
    ])
    if risk_score >= 3:
        return "high"
    if risk_score >= 1:
        return "moderate"
    return "low"


def build_risk_flags(profile: UserHealthProfile) -> List[RiskFlag]:
    flags: List[RiskFlag] = []

    sleep_severity = evaluate_sleep_severity(profile.sleep_score)
    if sleep_severity == "severe":
        flags.append(RiskFlag(
            category="Sleep", severity="critical",
            description="Severely disrupted sleep pattern detected. Sleep score indicates chronic sleep deprivation.",
            action_required="Immediate sleep hygiene intervention required. Consider clinical evaluation for sleep disorders.",
        ))
    elif sleep_severity == "moderate":
        flags.append(RiskFlag(
            category="Sleep", severity="high",
            description="Moderate sleep disruption detected. This impacts recovery, metabolism, and cognitive function.",
            action_required="Implement structured sleep protocol with consistent timing and environment optimization.",
        ))
    elif sleep_severity == "mild":
        flags.append(RiskFlag(
            category="Sleep", severity="moderate",
            description="Mild sleep quality concerns. Room for improvement in sleep duration or quality.",
            action_required="Optimize sleep hygiene practices and maintain consistent sleep-wake schedule.",
        ))

    stress_severity = evaluate_stress_severity(profile.stress_score)
    if stress_severity == "severe":
        flags.append(RiskFlag(
            category="Stress", severity="high",
            description="High chronic stress detected. Elevated cortisol impacts weight, sleep, immunity, and metabolic health.",
            action_required="Daily stress management protocol required. Consider cortisol-lowering interventions.",
        ))
    elif stress_severity == "moderate":
        flags.append(RiskFlag(
            category="Stress", severity="moderate",
            description="Moderate stress levels detected. May impact recovery and long-term health outcomes.",
            action_required="Incorporate daily stress-reduction techniques: breathing exercises, meditation, or movement.",
        ))

    weight_risk = evaluate_weight_risk(profile.bmi)
    if weight_risk == "obese":
        flags.append(RiskFlag(
            category="Weight", severity="high",
            description="BMI indicates obesity. Increased risk for metabolic syndrome, cardiovascular disease, and diabetes.",
            action_required="Structured fat-loss program with caloric deficit, resistance training, and metabolic monitoring.",
        ))
    elif weight_risk == "overweight":
        flags.append(RiskFlag(
            category="Weight", severity="moderate",
            description="BMI indicates overweight. Associated with increased cardiometabolic risk.",
            action_required="Implement moderate caloric deficit with progressive exercise program.",
        ))
    elif weight_risk == "underweight":
        flags.append(RiskFlag(
            category="Weight", severity="moderate",
            description="BMI indicates underweight. May indicate nutritional deficiencies or underlying conditions.",
            action_required="Nutritional assessment and caloric surplus plan with nutrient-dense foods.",
        ))

    if has_condition(profile, "pcos"):
        flags.append(RiskFlag(
            category="Hormonal", severity="high",
            description="PCOS detected. Insulin resistance, hormonal imbalance, and metabolic disruption likely.",
            action_required="Insulin-focused management with low-glycemic nutrition and targeted supplementation.",
        ))

    if has_condition(profile, "thyroid"):
        flags.append(RiskFlag(
            category="Endocrine", severity="high",
            description="Thyroid condition detected. Impacts metabolism, energy, weight, and mood.",
            action_required="Thyroid-specific protocol with regular monitoring and nutrition adjustments.",
        ))

    if has_condition(profile, "diabetes"):
        flags.append(RiskFlag(
            category="Metabolic", severity="high",
            description="Diabetes detected. Blood sugar management is critical for all health outcomes.",
            action_required="Blood sugar management protocol with glycemic control nutrition and regular HbA1c monitoring.",
        ))

    if has_condition(profile, "hypertension") or has_condition(profile, "blood-pressure"):
        flags.append(RiskFlag(
            category="Cardiovascular", severity="high",
            description="Hypertension detected. Elevated cardiovascular and stroke risk.",
            action_required="Cardiovascular protocol with sodium management, regular BP monitoring, and cardio exercise.",
        ))

    if profile.digestive_issues:
        flags.append(RiskFlag(
            category="Digestive", severity="moderate",
            description=f"Digestive issues reported: {', '.join(profile.digestive_issues)}. May indicate gut microbiome imbalance.",
            action_required="Gut health protocol with probiotics, fiber optimization, and trigger food identification.",
        ))

    if is_score_low(profile.energy_score):
        flags.append(RiskFlag(
            category="Energy", severity="moderate",
            description="Very low energy levels reported. May indicate nutritional deficiencies or hormonal issues.",
            action_required="Comprehensive blood work to rule out deficiencies. Optimize nutrition and sleep.",
        ))

    return flags


class ModuleDefinition(NamedTuple):
    module_id: str
    render_condition: Callable[[UserHealthProfile, str], bool]


MODULE_DEFINITIONS = (
    ModuleDefinition("executive_summary", lambda p, tier: True),
    ModuleDefinition("metabolic_profile", lambda p, tier: True),
    ModuleDefinition("lab_tests", lambda p, tier: True),
    ModuleDefinition("beginner_program", lambda p, tier: p.activity_score < 30),
    ModuleDefinition("movement_program", lambda p, tier: p.activity_score >= 30),
    ModuleDefinition("sleep_protocol", lambda p, tier: p.sleep_score < 70),
    ModuleDefinition("stress_management", lambda p, tier: p.stress_score > 40),
    ModuleDefinition(
        "fat_loss_program",
        lambda p, tier: p.bmi > 25 or _goal_matches(p, r"weight loss|lose|fat"),
    ),
    ModuleDefinition(
        "muscle_building",
        lambda p, tier: p.activity_score >= 30 and _goal_matches(p, r"muscle|gain|build"),
    ),
    # Clinical modules are premium/coaching only
    ModuleDefinition(
        "insulin_management",
        lambda p, tier: tier in PAID_TIERS and (has_condition(p, "pcos") or has_condition(p, "diabetes")),
    ),
    ModuleDefinition(
        "thyroid_protocol",
        lambda p, tier: tier in PAID_TIERS and has_condition(p, "thyroid"),
    ),
    ModuleDefinition(
        "cardiovascular",
        lambda p, tier: tier in PAID_TIERS and bool(
            re.search(r"hypertension|blood-pressure|cholesterol", ",".join(p.medical_conditions), re.IGNORECASE)
        ),
    ),
    ModuleDefinition("gut_health", lambda p, tier: tier in PAID_TIERS and bool(p.digestive_issues)),
    ModuleDefinition("skin_health", lambda p, tier: tier in PAID_TIERS and bool(p.skin_concerns)),
    ModuleDefinition("nutrition_strategy", lambda p, tier: True),
)


def build_active_modules(profile: UserHealthProfile, tier: str = "free") -> List[str]:
    return [d.module_id for d in MODULE_DEFINITIONS if d.render_condition(profile, tier)]


class _LabTestCollector:
    """Keeps one entry per test name; a later, higher priority replaces priority and reason."""

    def __init__(self):
        self._tests: Dict[str, LabTest] = {}

    def add(self, name: str, priority: int, reason: str, cost: str, frequency: str):
        existing = self._tests.get(name)
        if existing is not None:
            if priority > existing.priority:
                self._tests[name] = existing.model_copy(update={"priority": priority, "reason": reason})
            return
        self._tests[name] = LabTest(
            name=name, priority=priority, reason=reason, estimated_cost_inr=cost, frequency=frequency
        )

    def sorted(self) -> List[LabTest]:
        tests = sorted(self._tests.values(), key=lambda t: t.priority, reverse=True)
        return [t for t in tests if t.priority > 0 and t.reason]


def build_lab_tests(profile: UserHealthProfile, risk_flags: List[RiskFlag]) -> List[LabTest]:
    tests = _LabTestCollector()

    category_weight: Dict[str, int] = {}
    for flag in risk_flags:
        weight = SEVERITY_WEIGHT.get(flag.severity, 20)
        category_weight[flag.category] = max(category_weight.get(flag.category, 0), weight)

    sleep_w = category_weight.get("Sleep", 0)
    stress_w = category_weight.get("Stress", 0)
    weight_w = category_weight.get("Weight", 0)

    if sleep_w >= 50 or stress_w >= 50:
        tests.add("Vitamin D (25-hydroxyvitamin D)", 90 + sleep_w,
                  "Sleep and stress recovery require optimal vitamin D levels", "₹800-1200", "Every 3 months")
        tests.add("Thyroid Panel (TSH, Free T3, Free T4)", 85 + stress_w,
                  "Thyroid dysfunction directly impacts sleep and stress response", "₹500-800", "Every 6 months")

    if weight_w >= 50:
        tests.add("Lipid Profile (Total Cholesterol, LDL, HDL, Triglycerides)", 90 + weight_w,
                  "Weight-related cardiovascular risk assessment", "₹400-600", "Every 6 months")
        tests.add("HbA1c (Glycated Hemoglobin)", 88 + weight_w,
                  "Insulin resistance screening for weight management", "₹400-600", "Every 3 months")
        tests.add("Fasting Blood Glucose", 85 + weight_w,
                  "Metabolic health baseline for weight management", "₹100-200", "Every 3 months")

    if has_condition(profile, "pcos"):
        tests.add("Fasting Insulin", 180,
                  "Insulin resistance assessment critical for PCOS management", "₹400-600", "Every 3 months")
        tests.add("HbA1c (Glycated Hemoglobin)", 175,
                  "Blood sugar control monitoring for PCOS", "₹400-600", "Every 3 months")
        tests.add("Hormonal Panel (LH, FSH, Estradiol, Testosterone)", 160,
                  "Hormonal balance assessment for PCOS", "₹1500-2500", "Every 6 months")

    if has_condition(profile, "thyroid"):
        tests.add("Thyroid Panel (TSH, Free T3, Free T4)", 185,
                  "Regular thyroid monitoring essential for condition management", "₹500-800", "Every 3 months")
        tests.add("Thyroid Antibodies (Anti-TPO, Anti-TG)", 140,
                  "Autoimmune thyroid assessment", "₹800-1200", "Every 6 months")

    if has_condition(profile, "diabetes"):
        tests.add("HbA1c (Glycated Hemoglobin)", 190,
                  "Primary diabetes control marker", "₹400-600", "Every 3 months")
        tests.add("Fasting Blood Glucose", 185,
                  "Daily blood sugar management baseline", "₹100-200", "Monthly")
        tests.add("Kidney Function (Creatinine, BUN, eGFR)", 170,
                  "Diabetes-related kidney damage screening", "₹400-600", "Every 6 months")

    if has_condition(profile, "hypertension") or has_condition(profile, "blood-pressure"):
        tests.add("Lipid Profile (Total Cholesterol, LDL, HDL, Triglycerides)", 175,
                  "Cardiovascular risk assessment", "₹400-600", "Every 6 months")
        tests.add("Kidney Function (Creatinine, BUN, eGFR)", 150,
                  "Hypertension-related kidney impact monitoring", "₹400-600", "Every 6 months")
        tests.add("Electrolytes (Sodium, Potassium, Chloride)", 130,
                  "Electrolyte balance for blood pressure management", "₹300-500", "Every 6 months")

    # Baseline panel for everyone
    tests.add("Complete Blood Count (CBC)", 60,
              "General health screening and anemia detection", "₹300-500", "Every 6 months")
    tests.add("Liver Function Tests (SGOT, SGPT, ALP, Bilirubin)", 55,
              "Liver health and metabolic function assessment", "₹400-600", "Every 6 months")

    if profile.age > 50:
        tests.add("Bone Density (DEXA Scan)", 70,
                  "Age-appropriate bone health screening for 50+", "₹2000-3500", "Annually")
        tests.add("Cardiac Risk Panel (hs-CRP, Homocysteine)", 75,
                  "Age-appropriate cardiovascular screening for 50+", "₹1000-1500", "Annually")
        tests.add("Vitamin B12", 65,
                  "B12 deficiency risk increases with age", "₹600-900", "Every 6 months")

    if profile.age > 40:
        tests.add("Lipid Profile (Total Cholesterol, LDL, HDL, Triglycerides)", 50,
                  "Age-appropriate lipid screening for 40+", "₹400-600", "Every 6 months")
        tests.add("Complete Metabolic Panel", 45,
                  "Comprehensive metabolic screening for 40+", "₹800-1200", "Annually")

    if (profile.gender or "").lower() == "female" and profile.age > 35:
        tests.add("Iron Panel (Serum Iron, Ferritin, TIBC)", 55,
                  "Iron deficiency screening for women over 35", "₹300-500", "Every 6 months")
        tests.add("Hormonal Panel (Estradiol, Progesterone, FSH)", 50,
                  "Hormonal health screening for women over 35", "₹1200-2000", "Annually")

    tests.add("Vitamin D (25-hydroxyvitamin D)", 40,
              "General wellness screening - widespread deficiency in India", "₹800-1200", "Every 6 months")
    tests.add("Vitamin B12", 35,
              "General wellness screening - common deficiency", "₹600-900", "Every 6 months")

    if profile.digestive_issues:
        tests.add("Stool Analysis", 80,
                  "Gut health assessment for reported digestive issues", "₹500-800", "As needed")

    return tests.sorted()


def build_narrative_hints(profile: UserHealthProfile, active_modules: List[str]) -> List[NarrativeHint]:
    conditions = [c.lower() for c in profile.medical_conditions]
    intolerances = [i.lower() for i in profile.food_intolerances]

    global_avoid: List[str] = []
    if "diabetes" in conditions:
        global_avoid += ["high sugar foods", "sugary drinks", "refined carbohydrates"]
    if "hypertension" in conditions or "blood-pressure" in conditions:
        global_avoid += ["high sodium foods", "excessive salt"]
    if "lactose" in intolerances:
        global_avoid.append("dairy products")
    if "gluten" in intolerances:
        global_avoid.append("gluten-containing foods")

    sleep_tone = "urgent" if profile.sleep_score < 30 else "clinical" if profile.sleep_score < 50 else "motivational"
    stress_tone = "urgent" if profile.stress_score > 70 else "motivational"
    movement_avoid = ["heavy isometric exercises", "valsalva maneuver"] if "hypertension" in conditions else []

    # (section, tone, focus areas, topics to avoid), in report order
    hint_table = [
        ("executive_summary", "clinical",
         ["overall health assessment", "key risk areas", "priority action items"], []),
        ("metabolic_profile", "clinical",
         ["BMR and TDEE interpretation", "macronutrient ratios", "metabolic efficiency"], global_avoid),
        ("sleep_protocol", sleep_tone,
         ["sleep hygiene", "circadian rhythm optimization", "recovery enhancement"],
         ["stimulant supplements late in day"]),
        ("stress_management", stress_tone,
         ["cortisol management", "breathing techniques", "lifestyle modifications"],
         ["high-intensity exercise during acute stress periods"]),
        ("fat_loss_program", "motivational",
         ["caloric deficit strategy", "resistance training", "metabolic adaptation prevention"],
         global_avoid + ["crash dieting", "extreme caloric restriction"]),
        ("muscle_building", "motivational",
         ["progressive overload", "protein timing", "recovery optimization"],
         global_avoid + ["steroid use"]),
        ("insulin_management", "clinical",
         ["glycemic control", "insulin sensitivity", "low-GI nutrition"],
         ["high sugar foods", "refined carbohydrates", "fruit juices"]),
        ("thyroid_protocol", "clinical",
         ["thyroid-supportive nutrition", "iodine and selenium balance", "medication timing"],
         ["excessive cruciferous vegetables", "soy interference with medication"]),
        ("cardiovascular", "clinical",
         ["heart-healthy nutrition", "blood pressure management", "aerobic exercise"],
         ["high sodium foods", "trans fats", "excessive caffeine"]),
        ("gut_health", "motivational",
         ["microbiome diversity", "fiber intake", "probiotic foods", "trigger identification"],
         global_avoid + ["processed foods"]),
        ("skin_health", "motivational",
         ["hydration", "antioxidant nutrition", "skin-supportive supplements"],
         ["excessive sugar", "processed foods"]),
        ("nutrition_strategy", "motivational",
         ["meal timing", "portion control", "nutrient density", "regional food options"], global_avoid),
        ("movement_program", "motivational",
         ["exercise progression", "activity variety", "injury prevention"], movement_avoid),
    ]

    return [
        NarrativeHint(section=section, tone=tone, focus_areas=list(focus), avoid_topics=list(avoid))
        for section, tone, focus, avoid in hint_table
        if section in active_modules
    ]


def run_rule_engine(profile: UserHealthProfile, tier: str = "free") -> RuleEngineOutput:
    risk_flags = build_risk_flags(profile)
    active_modules = build_active_modules(profile, tier)
    lab_tests = build_lab_tests(profile, risk_flags)

    output = RuleEngineOutput(
        risk_flags=risk_flags,
        active_modules=active_modules,
        lab_test_priority=lab_tests,
        narrative_hints=build_narrative_hints(profile, active_modules),
        severity_profile=SeverityProfile(
            sleep_severity=evaluate_sleep_severity(profile.sleep_score),
            stress_severity=evaluate_stress_severity(profile.stress_score),
            weight_risk=evaluate_weight_risk(profile.bmi),
            metabolic_risk=evaluate_metabolic_risk(profile),
        ),
    )

    logger.info(
        f"[Rule Engine] tier={tier}: {len(risk_flags)} risk flags, {len(active_modules)} modules, "
        f"{len(lab_tests)} lab tests"
    )
    return output
