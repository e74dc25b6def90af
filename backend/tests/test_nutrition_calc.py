import unittest
from app.utils.nutrition_calc import (
    calculate_bmi,
    calculate_bmr,
    calorie_deviation,
    format_portion,
    is_trivial_portion,
    parse_portion_grams,
    scale_portion,
)


class TestNutritionCalc(unittest.TestCase):

    def test_parse_portion_grams(self):
        self.assertEqual(parse_portion_grams("100g"), 100.0)
        self.assertEqual(parse_portion_grams("100 g"), 100.0)
        self.assertEqual(parse_portion_grams("200grams"), 200.0)
        self.assertEqual(parse_portion_grams("2 pcs (150g)"), 150.0)
        self.assertEqual(parse_portion_grams("Serving: 50g"), 50.0)
        self.assertIsNone(parse_portion_grams("1 cup"))
        self.assertIsNone(parse_portion_grams(""))

    def test_format_portion(self):
        self.assertEqual(format_portion(236), "236g")
        self.assertEqual(format_portion(99.6), "100g")

    def test_scale_portion(self):
        self.assertEqual(scale_portion("200g", 1.5), "300g")
        # Never below the 10g floor
        self.assertEqual(scale_portion("100g", 0.05), "10g")
        self.assertEqual(scale_portion("100g", 0.05, floor=1), "5g")
        # Non-gram portions pass through untouched
        self.assertEqual(scale_portion("1 cup", 2.0), "1 cup")

    def test_is_trivial_portion(self):
        self.assertTrue(is_trivial_portion("0g"))
        self.assertTrue(is_trivial_portion("1g"))
        self.assertFalse(is_trivial_portion("10g"))
        self.assertFalse(is_trivial_portion("1 cup"))

    def test_calorie_deviation(self):
        self.assertAlmostEqual(calorie_deviation(2060, 2000), 0.03)
        self.assertAlmostEqual(calorie_deviation(1900, 2000), 0.05)
        self.assertEqual(calorie_deviation(100, 0), 0.0)

    def test_bmi_and_bmr(self):
        self.assertEqual(calculate_bmi(70, 175), 22.9)
        # 10*70 + 6.25*175 - 5*30 + 5
        self.assertEqual(calculate_bmr(70, 175, 30, "male"), 1649)
        # 10*60 + 6.25*160 - 5*65 - 161
        self.assertEqual(calculate_bmr(60, 160, 65, "female"), 1114)


if __name__ == '__main__':
    unittest.main()
