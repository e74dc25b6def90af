import logging
from functools import lru_cache

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from config import DEFAULT_NUM_DAYS
from app.schemas.meal_plan import MealPlanRequest, MealPlanResponse
from app.schemas.report import NarrativeRequest, NarrativeResponse, ReportBundle
from app.schemas.user_profile import ReportRequest
from app.services.meal_service import generate_meal_plan
from app.services.narrative_service import NarrativeGenerator
from app.services.nutrition_service import with_computed_bmi
from app.services.report_service import ValidationExhaustedError, build_report_bundle
from app.services.rule_engine import run_rule_engine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Wellness Report"]
)


@lru_cache(maxsize=1)
def _configured_generator() -> NarrativeGenerator:
    return NarrativeGenerator.from_config()


def get_narrative_generator() -> NarrativeGenerator:
    return _configured_generator()


@router.post("/generate-meal-plan", response_model=MealPlanResponse)
def generate_meal_plan_endpoint(request: MealPlanRequest):
    num_days = request.num_days or DEFAULT_NUM_DAYS
    logger.info(f"[Wellness API] Generating {num_days}-day meal plan")
    try:
        meal_plan = generate_meal_plan(request.profile, num_days)
    except Exception:
        logger.exception("[Wellness API] Error generating meal plan")
        return JSONResponse(status_code=500, content={"error": "Failed to generate meal plan"})

    return MealPlanResponse(meal_plan=meal_plan)


@router.post("/generate-narratives", response_model=NarrativeResponse)
def generate_narratives_endpoint(
    request: NarrativeRequest,
    generator: NarrativeGenerator = Depends(get_narrative_generator)
):
    try:
        profile = with_computed_bmi(request.profile)
        rules = run_rule_engine(profile)
        narratives = generator.generate(profile, rules)
    except Exception:
        logger.exception("[Wellness API] Error generating narratives")
        return JSONResponse(status_code=500, content={"error": "Failed to generate narratives"})

    return NarrativeResponse(narratives=narratives, rules=rules)


@router.post("/generate-pdf-data", response_model=ReportBundle)
def generate_pdf_data_endpoint(
    request: ReportRequest,
    generator: NarrativeGenerator = Depends(get_narrative_generator)
):
    """
    Assembles the validated report bundle the PDF renderer consumes.
    422 when validation could not converge; the body lists every failing check.
    """
    try:
        bundle, _report = build_report_bundle(request, generator)
    except ValidationExhaustedError as e:
        logger.warning(f"[Wellness API] Order {request.order_id} blocked: {e.failing_details}")
        return JSONResponse(status_code=422, content={
            "error": "PDF generation failed validation checks after multiple attempts",
            "details": e.failing_details,
        })
    except Exception:
        logger.exception("[Wellness API] Error generating PDF data")
        return JSONResponse(status_code=500, content={"error": "Failed to generate PDF data"})

    return bundle
