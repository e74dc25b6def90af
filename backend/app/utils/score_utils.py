"""
Score bucketing shared by the rule engine, the narrative templates and the
validation checks. Scores are 0-100.
"""


def classify_score(score: float) -> str:
    if score >= 70:
        return "high"
    if score >= 40:
        return "moderate"
    return "low"


def is_score_low(score: float) -> bool:
    return score < 40


def evaluate_sleep_severity(sleep_score: float) -> str:
    if sleep_score < 30:
        return "severe"
    if sleep_score < 50:
        return "moderate"
    if sleep_score < 70:
        return "mild"
    return "normal"


def evaluate_stress_severity(stress_score: float) -> str:
    # 0-30 normal, 31-70 moderate, 71-100 severe
    if stress_score >= 71:
        return "severe"
    if stress_score >= 31:
        return "moderate"
    return "normal"


def evaluate_weight_risk(bmi: float) -> str:
    if bmi < 18.5:
        return "underweight"
    if bmi > 30:
        return "obese"
    if bmi > 27:
        return "overweight"
    return "normal"


_INTERPRETATIONS = {
    "Energy Level": {
        "low": "Needs immediate attention: likely linked to sleep, nutrition, or stress",
        "moderate": "Below optimal: targeted changes will help significantly",
        "high": "Good to excellent: focus on maintaining consistency",
    },
    "Sleep Quality": {
        "low": "Critical: sleep is likely impacting all other health areas",
        "moderate": "Moderate: sleep protocol will be transformative for you",
        "high": "Decent to strong: maintain your current sleep habits",
    },
    "Physical Activity": {
        "low": "Sedentary: gradual movement introduction needed",
        "moderate": "Light to moderate activity: structured exercise will boost energy",
        "high": "Active: progressive training will optimize results",
    },
}


def score_interpretation(label: str, score: float) -> str:
    # Stress is inverted: a high score means a high load
    if label == "Stress Resilience":
        if score >= 71:
            return "High stress load: nervous system support is priority"
        if score >= 31:
            return "Elevated stress: daily management techniques are essential"
        return "Well-managed: continue current practices"

    level = classify_score(score)
    return _INTERPRETATIONS.get(label, {}).get(level, f"Score: {score:g}/100")
