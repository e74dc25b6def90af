import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from config import FINAL_PASS_INCLUDES_INTEGRITY, INTEGRITY_FAILURE_ITERATION_COST, MAX_VALIDATION_ITERATIONS
from app.schemas.report import CheckResult, ReportBundle, ValidationReport
from app.schemas.user_profile import ComputedProfile
from app.services.nutrition_service import computed_from_profile
from app.services.validation_checks import ALL_CHECKS, CONSISTENCY_CHECKS, check_integrity_audit
from app.services.validation_repairs import REPAIRS

logger = logging.getLogger(__name__)

"""
Validation Controller
---------------------
Bounded check -> repair loop over a report bundle.

The loop owns the current snapshot. Checks only read it; each repair returns a
new snapshot which replaces it. The bundle handed in is never modified.

Per iteration:
1. Run the consistency checks in order, repairing each failure before the next check.
2. Run the integrity audit. On failure: structural repair, charge the extra
   iteration cost, start over without evaluating the all-pass condition.
3. All checks passed: done (PASS).
When the budget runs out, one last read-only pass decides PASS/FAIL.
"""


@dataclass
class ValidationSettings:
    max_iterations: int = MAX_VALIDATION_ITERATIONS
    # Total budget units a failed integrity audit consumes (including its own iteration)
    integrity_failure_cost: int = INTEGRITY_FAILURE_ITERATION_COST
    final_pass_includes_integrity: bool = FINAL_PASS_INCLUDES_INTEGRITY


def _record(adjustments: List[str], adjustment: str) -> None:
    if adjustment not in adjustments:
        adjustments.append(adjustment)


def _finish(
    bundle: ReportBundle,
    status: str,
    checks: List[CheckResult],
    adjustments: List[str],
    iterations: int,
) -> Tuple[ReportBundle, ValidationReport]:
    final_bundle = bundle.model_copy(update={"adjustments": list(adjustments)}, deep=True)
    report = ValidationReport(
        validation_status=status,
        checks=checks,
        adjustments=list(adjustments),
        iterations=iterations,
    )
    logger.info(
        f"[Validation] {status} after {iterations} iteration(s), {len(adjustments)} adjustment(s)"
    )
    return final_bundle, report


def run_validation_controller(
    bundle: ReportBundle,
    computed: Optional[ComputedProfile] = None,
    settings: Optional[ValidationSettings] = None,
) -> Tuple[ReportBundle, ValidationReport]:
    settings = settings or ValidationSettings()
    computed = computed or computed_from_profile(bundle.profile)

    current = bundle
    adjustments: List[str] = []
    iteration = 0

    while iteration < settings.max_iterations:
        iteration += 1
        checks: List[CheckResult] = []

        for name, check in CONSISTENCY_CHECKS:
            result = check(current, computed)
            checks.append(result)
            if not result.passed:
                repair = REPAIRS[name]
                current = repair.apply(current, computed, result)
                _record(adjustments, repair.adjustment)

        audit = check_integrity_audit(current, computed)
        checks.append(audit)
        if not audit.passed:
            logger.warning(f"[Validation] Loop {iteration}: integrity audit failed: {audit.detail}")
            repair = REPAIRS["integrity_audit"]
            current = repair.apply(current, computed, audit)
            _record(adjustments, repair.adjustment)
            iteration += max(settings.integrity_failure_cost - 1, 0)
            continue

        failed = [c for c in checks if not c.passed]
        if not failed:
            return _finish(current, "PASS", checks, adjustments, iteration)

        logger.info(
            f"[Validation] Loop {iteration}: {len(failed)} check(s) failed "
            f"({', '.join(c.check for c in failed)}), auto-correcting..."
        )

    final_suite = ALL_CHECKS if settings.final_pass_includes_integrity else CONSISTENCY_CHECKS
    final_checks = [check(current, computed) for _, check in final_suite]
    status = "PASS" if all(c.passed for c in final_checks) else "FAIL"

    if status == "FAIL":
        logger.warning(
            f"[Validation] Budget exhausted, still failing: "
            f"{'; '.join(c.detail for c in final_checks if not c.passed)}"
        )

    return _finish(current, status, final_checks, adjustments, iteration)
