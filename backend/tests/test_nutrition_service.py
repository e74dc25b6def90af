import unittest

from app.services.nutrition_service import (
    activity_multiplier,
    build_computed_profile,
    build_user_profile,
    calculate_calorie_target,
    calculate_macros,
    classify_bmi,
    computed_from_profile,
    with_computed_bmi,
)
from wellness_fixtures import make_profile, make_quiz


class TestNutritionService(unittest.TestCase):

    def test_activity_multiplier_bands(self):
        self.assertEqual(activity_multiplier(10), 1.2)
        self.assertEqual(activity_multiplier(35), 1.375)
        self.assertEqual(activity_multiplier(50), 1.55)
        self.assertEqual(activity_multiplier(79), 1.725)
        self.assertEqual(activity_multiplier(95), 1.9)

    def test_classify_bmi(self):
        self.assertEqual(classify_bmi(17.9), "underweight")
        self.assertEqual(classify_bmi(22.9), "normal")
        self.assertEqual(classify_bmi(27.0), "overweight")
        self.assertEqual(classify_bmi(31.2), "obese")

    def test_maintenance_profile(self):
        quiz = make_quiz(gender="male", age=30, heightCm=175, weightKg=70, activityScore=50,
                         goals=["improve energy"], medicalConditions=[], foodIntolerances=[])
        computed = build_computed_profile(quiz)

        self.assertEqual(computed.bmi, 22.9)
        self.assertEqual(computed.bmi_category, "normal")
        self.assertEqual(computed.bmr, 1649)
        self.assertEqual(computed.tdee, 2556)
        self.assertEqual(computed.calorie_target, 2556)
        self.assertEqual(computed.protein_grams, 160)
        self.assertEqual(computed.fats_grams, 71)

    def test_weight_loss_deficit(self):
        self.assertEqual(calculate_calorie_target(2556, "normal", ["lose weight"], 30, 1649), 2045)

    def test_senior_floor(self):
        # 20% cut would give 1070, floor is max(BMR, 85% of TDEE)
        self.assertEqual(calculate_calorie_target(1337, "normal", ["lose weight"], 65, 1114), 1136)

    def test_never_below_bmr(self):
        self.assertEqual(calculate_calorie_target(1400, "obese", [], 40, 1300), 1300)

    def test_macro_split_for_insulin_conditions(self):
        macros = calculate_macros(2000, ["improve energy"], ["PCOS"])
        self.assertEqual(macros["protein_pct"], 30)
        self.assertEqual(macros["carbs_pct"], 35)
        self.assertEqual(macros["fats_pct"], 35)
        self.assertEqual(macros["protein_grams"], 150)

    def test_user_profile_carries_calorie_target_as_tdee(self):
        quiz = make_quiz()
        computed = build_computed_profile(quiz)
        profile = build_user_profile(quiz, computed)

        self.assertEqual(profile.tdee, computed.calorie_target)
        self.assertEqual(profile.bmr, computed.bmr)
        self.assertEqual(profile.protein_grams, computed.protein_grams)
        self.assertEqual(profile.food_intolerances, ["lactose"])

    def test_computed_from_profile(self):
        computed = computed_from_profile(make_profile(tdee=1800, protein_grams=120))
        self.assertEqual(computed.calorie_target, 1800)
        self.assertEqual(computed.protein_grams, 120)

    def test_with_computed_bmi(self):
        profile = with_computed_bmi(make_profile(bmi=0, weight_kg=70, height_cm=175))
        self.assertEqual(profile.bmi, 22.9)


if __name__ == '__main__':
    unittest.main()
