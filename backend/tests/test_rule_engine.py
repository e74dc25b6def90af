import unittest

from app.services.rule_engine import (
    build_active_modules,
    build_lab_tests,
    build_narrative_hints,
    build_risk_flags,
    evaluate_metabolic_risk,
    run_rule_engine,
)
from app.utils.score_utils import (
    classify_score,
    evaluate_sleep_severity,
    evaluate_stress_severity,
    evaluate_weight_risk,
    score_interpretation,
)
from wellness_fixtures import make_profile


class TestScoreUtils(unittest.TestCase):

    def test_classify_score(self):
        self.assertEqual(classify_score(39), "low")
        self.assertEqual(classify_score(40), "moderate")
        self.assertEqual(classify_score(70), "high")

    def test_severity_bands(self):
        self.assertEqual(evaluate_sleep_severity(29), "severe")
        self.assertEqual(evaluate_sleep_severity(45), "moderate")
        self.assertEqual(evaluate_sleep_severity(65), "mild")
        self.assertEqual(evaluate_sleep_severity(70), "normal")
        self.assertEqual(evaluate_stress_severity(30), "normal")
        self.assertEqual(evaluate_stress_severity(31), "moderate")
        self.assertEqual(evaluate_stress_severity(71), "severe")

    def test_weight_risk(self):
        self.assertEqual(evaluate_weight_risk(18.0), "underweight")
        self.assertEqual(evaluate_weight_risk(25.9), "normal")
        self.assertEqual(evaluate_weight_risk(28.0), "overweight")
        self.assertEqual(evaluate_weight_risk(31.0), "obese")

    def test_stress_interpretation_is_inverted(self):
        self.assertIn("High stress load", score_interpretation("Stress Resilience", 80))
        self.assertIn("Well-managed", score_interpretation("Stress Resilience", 20))
        self.assertIn("Critical", score_interpretation("Sleep Quality", 20))
        self.assertEqual(score_interpretation("Hydration", 55), "Score: 55/100")


class TestRiskFlags(unittest.TestCase):

    def test_flags_in_category_order(self):
        profile = make_profile(
            sleep_score=25, stress_score=75, bmi=31.0, energy_score=30,
            medical_conditions=["PCOS", "thyroid"], digestive_issues=["bloating"],
        )
        flags = build_risk_flags(profile)

        self.assertEqual(
            [f.category for f in flags],
            ["Sleep", "Stress", "Weight", "Hormonal", "Endocrine", "Digestive", "Energy"],
        )
        self.assertEqual(flags[0].severity, "critical")
        self.assertIn("bloating", flags[5].description)

    def test_healthy_profile_has_no_flags(self):
        profile = make_profile(sleep_score=80, stress_score=20, bmi=22.0, energy_score=75)
        self.assertEqual(build_risk_flags(profile), [])

    def test_metabolic_risk(self):
        self.assertEqual(evaluate_metabolic_risk(make_profile()), "low")
        self.assertEqual(evaluate_metabolic_risk(make_profile(medical_conditions=["thyroid"])), "moderate")
        high = make_profile(bmi=31.0, stress_score=80, sleep_score=30)
        self.assertEqual(evaluate_metabolic_risk(high), "high")


class TestActiveModules(unittest.TestCase):

    def test_default_profile_modules(self):
        self.assertEqual(build_active_modules(make_profile(), "premium"), [
            "executive_summary",
            "metabolic_profile",
            "lab_tests",
            "movement_program",
            "sleep_protocol",
            "stress_management",
            "fat_loss_program",
            "nutrition_strategy",
        ])

    def test_beginner_program_below_activity_threshold(self):
        modules = build_active_modules(make_profile(activity_score=20))
        self.assertIn("beginner_program", modules)
        self.assertNotIn("movement_program", modules)

    def test_muscle_building_needs_activity_and_goal(self):
        self.assertIn("muscle_building", build_active_modules(make_profile(goals=["build muscle"])))
        self.assertNotIn(
            "muscle_building",
            build_active_modules(make_profile(goals=["build muscle"], activity_score=10)),
        )

    def test_clinical_modules_are_paid_only(self):
        profile = make_profile(
            medical_conditions=["PCOS", "hypertension"], digestive_issues=["bloating"], skin_concerns=["acne"]
        )
        clinical = {"insulin_management", "cardiovascular", "gut_health", "skin_health"}

        self.assertFalse(clinical & set(build_active_modules(profile, "free")))
        self.assertFalse(clinical & set(build_active_modules(profile, "essential")))
        self.assertTrue(clinical <= set(build_active_modules(profile, "premium")))
        self.assertTrue(clinical <= set(build_active_modules(profile, "coaching")))


class TestLabTests(unittest.TestCase):

    def test_sorted_unique_and_highest_priority_wins(self):
        profile = make_profile(bmi=31.0, medical_conditions=["PCOS", "diabetes"])
        tests = build_lab_tests(profile, build_risk_flags(profile))

        names = [t.name for t in tests]
        self.assertEqual(len(names), len(set(names)))
        priorities = [t.priority for t in tests]
        self.assertEqual(priorities, sorted(priorities, reverse=True))

        hba1c = next(t for t in tests if t.name == "HbA1c (Glycated Hemoglobin)")
        self.assertEqual(hba1c.priority, 190)
        self.assertEqual(hba1c.reason, "Primary diabetes control marker")

    def test_lower_priority_keeps_first_reason(self):
        profile = make_profile()
        tests = build_lab_tests(profile, build_risk_flags(profile))

        vitamin_d = next(t for t in tests if t.name == "Vitamin D (25-hydroxyvitamin D)")
        # Mild sleep (50) lifts it above the generic screening entry
        self.assertEqual(vitamin_d.priority, 140)
        self.assertEqual(vitamin_d.reason, "Sleep and stress recovery require optimal vitamin D levels")

    def test_age_and_gender_screens(self):
        profile = make_profile(age=55)
        names = {t.name for t in build_lab_tests(profile, [])}

        self.assertIn("Bone Density (DEXA Scan)", names)
        self.assertIn("Complete Metabolic Panel", names)
        self.assertIn("Iron Panel (Serum Iron, Ferritin, TIBC)", names)

    def test_cost_serialized_with_inr_alias(self):
        tests = build_lab_tests(make_profile(), [])
        dumped = tests[0].model_dump(by_alias=True)
        self.assertIn("estimatedCostINR", dumped)


class TestNarrativeHints(unittest.TestCase):

    def test_hints_follow_active_modules(self):
        profile = make_profile(medical_conditions=["diabetes"])
        modules = build_active_modules(profile, "premium")
        hints = build_narrative_hints(profile, modules)

        self.assertTrue({h.section for h in hints} <= set(modules))
        metabolic = next(h for h in hints if h.section == "metabolic_profile")
        self.assertIn("high sugar foods", metabolic.avoid_topics)
        self.assertIn("insulin_management", {h.section for h in hints})

    def test_sleep_tone(self):
        profile = make_profile(sleep_score=20)
        hints = build_narrative_hints(profile, ["sleep_protocol"])
        self.assertEqual(hints[0].tone, "urgent")


class TestRunRuleEngine(unittest.TestCase):

    def test_output_shape(self):
        output = run_rule_engine(make_profile(), "premium")

        self.assertEqual(output.severity_profile.sleep_severity, "mild")
        self.assertEqual(output.severity_profile.stress_severity, "moderate")
        self.assertEqual(output.severity_profile.weight_risk, "normal")
        self.assertEqual(output.severity_profile.metabolic_risk, "low")
        self.assertTrue(output.lab_test_priority)
        self.assertEqual(
            [f.category for f in output.risk_flags], ["Sleep", "Stress"]
        )


if __name__ == '__main__':
    unittest.main()
