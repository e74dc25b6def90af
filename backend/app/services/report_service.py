import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from app.schemas.report import ReportBundle, ValidationReport
from app.schemas.user_profile import ReportRequest
from app.services.meal_service import generate_meal_plan
from app.services.narrative_service import NarrativeGenerator
from app.services.nutrition_service import build_computed_profile, build_user_profile
from app.services.rule_engine import PAID_TIERS, run_rule_engine
from app.services.validation_controller import ValidationSettings, run_validation_controller

logger = logging.getLogger(__name__)


class ValidationExhaustedError(Exception):
    """The validation loop ran out of budget with checks still failing."""

    def __init__(self, report: ValidationReport):
        self.report = report
        super().__init__(f"Report failed validation after {report.iterations} iteration(s)")

    @property
    def failing_details(self) -> List[str]:
        return [c.detail for c in self.report.checks if not c.passed]


def plan_days_for_tier(tier: str, requested_days: int) -> int:
    # Multi-day plans are a premium/coaching feature
    return requested_days if tier in PAID_TIERS else 1


def build_report_bundle(
    request: ReportRequest,
    narrative_generator: NarrativeGenerator,
    settings: Optional[ValidationSettings] = None,
) -> Tuple[ReportBundle, ValidationReport]:
    """
    Full report pipeline for one order.

    1. Computed profile (single source of truth for every number)
    2. Rule engine, narratives, meal plan
    3. Validation loop; raises ValidationExhaustedError on FAIL
    """
    computed = build_computed_profile(request.profile)
    profile = build_user_profile(request.profile, computed)

    rules = run_rule_engine(profile, request.tier)
    narratives = narrative_generator.generate(profile, rules)
    meal_plan = generate_meal_plan(profile, plan_days_for_tier(request.tier, request.num_days))

    bundle = ReportBundle(
        profile=profile,
        rules=rules,
        narratives=narratives,
        meal_plan=meal_plan,
        tier=request.tier,
        add_ons=list(request.add_ons),
        order_id=request.order_id,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )

    validated, report = run_validation_controller(bundle, computed, settings)
    logger.info(
        f"[Report Service] Order {request.order_id}: status={report.validation_status}, "
        f"iterations={report.iterations}, adjustments={len(report.adjustments)}"
    )

    if report.validation_status == "FAIL":
        raise ValidationExhaustedError(report)

    return validated, report
