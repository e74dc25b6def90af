from pydantic import Field
from typing import Dict, List

from app.schemas.base import CamelModel
from app.schemas.meal_plan import MealPlanBundle
from app.schemas.user_profile import UserHealthProfile


class RiskFlag(CamelModel):
    category: str
    severity: str  # "low", "moderate", "high", "critical"
    description: str
    action_required: str


class LabTest(CamelModel):
    name: str
    priority: int
    reason: str
    estimated_cost_inr: str = Field(..., alias="estimatedCostINR")
    frequency: str


class NarrativeHint(CamelModel):
    section: str
    tone: str
    focus_areas: List[str] = Field(default_factory=list)
    avoid_topics: List[str] = Field(default_factory=list)


class SeverityProfile(CamelModel):
    sleep_severity: str    # normal / mild / moderate / severe
    stress_severity: str   # normal / mild / moderate / severe
    weight_risk: str       # underweight / normal / overweight / obese
    metabolic_risk: str    # low / moderate / high


class RuleEngineOutput(CamelModel):
    risk_flags: List[RiskFlag] = Field(default_factory=list)
    active_modules: List[str] = Field(default_factory=list)
    lab_test_priority: List[LabTest] = Field(default_factory=list)
    narrative_hints: List[NarrativeHint] = Field(default_factory=list)
    severity_profile: SeverityProfile


# Narrative sections in report order
NARRATIVE_SECTIONS = (
    "executive_summary",
    "risk_interpretation",
    "goal_strategy",
    "sleep_narrative",
    "stress_narrative",
    "nutrition_narrative",
    "movement_narrative",
)


class NarrativeOutput(CamelModel):
    executive_summary: str = ""
    risk_interpretation: str = ""
    goal_strategy: str = ""
    sleep_narrative: str = ""
    stress_narrative: str = ""
    nutrition_narrative: str = ""
    movement_narrative: str = ""
    condition_narratives: Dict[str, str] = Field(default_factory=dict)


class ReportBundle(CamelModel):
    profile: UserHealthProfile
    rules: RuleEngineOutput
    narratives: NarrativeOutput
    meal_plan: MealPlanBundle
    tier: str = "free"
    add_ons: List[str] = Field(default_factory=list)
    order_id: str = ""
    timestamp: str = ""
    adjustments: List[str] = Field(default_factory=list)


class CheckResult(CamelModel):
    check: str
    status: str  # "PASS" or "FAIL"
    detail: str

    @property
    def passed(self) -> bool:
        return self.status == "PASS"


class ValidationReport(CamelModel):
    validation_status: str = Field(..., alias="validation_status")
    checks: List[CheckResult] = Field(default_factory=list)
    adjustments: List[str] = Field(default_factory=list)
    iterations: int = 0


# REQUESTS
class NarrativeRequest(CamelModel):
    profile: UserHealthProfile


class NarrativeResponse(CamelModel):
    narratives: NarrativeOutput
    rules: RuleEngineOutput
