import unittest

from app.models.food_item import INTOLERANCE_NAME_PATTERNS, find_food_by_name, matches_intolerance
from app.schemas.meal_plan import DayPlan, MealItem
from app.services.meal_service import (
    FoodPool,
    SeededRandom,
    apply_calorie_correction,
    apply_protein_lock,
    day_seed,
    filter_food_pool,
    generate_meal_plan,
    scale_meal_items,
    select_meal_items,
)
from wellness_fixtures import make_profile


def _item(name, calories, protein, portion):
    return MealItem(name=name, calories=calories, protein=protein, carbs=10, fats=5, portion=portion)


class TestSeededRandom(unittest.TestCase):

    def test_first_value(self):
        self.assertEqual(SeededRandom(1).next(), 58598 / 233280)

    def test_same_seed_same_sequence(self):
        a, b = SeededRandom(200), SeededRandom(200)
        self.assertEqual([a.next() for _ in range(5)], [b.next() for _ in range(5)])

    def test_shuffle_is_a_permutation(self):
        items = list(range(10))
        shuffled = SeededRandom(42).shuffle(items)
        self.assertEqual(sorted(shuffled), items)
        self.assertEqual(items, list(range(10)))

    def test_day_seed(self):
        male = make_profile(gender="male", age=30, weight_kg=70)
        self.assertEqual(day_seed(male, 0), 200)
        self.assertEqual(day_seed(make_profile(), 2), 34 + 68 + 200 + 2000)


class TestPortionScaling(unittest.TestCase):

    def test_scale_to_slot_target(self):
        items = scale_meal_items([find_food_by_name("Idli (Steamed Rice Cake)")], 260)
        self.assertEqual(items[0].portion, "200g")
        self.assertEqual(items[0].calories, 260)
        self.assertEqual(items[0].protein, 8.0)

    def test_portion_floor(self):
        items = scale_meal_items([find_food_by_name("Mixed Nuts (Almonds, Walnuts)")], 30)
        self.assertEqual(items[0].portion, "10g")
        # Macros follow the floored grams
        self.assertEqual(items[0].calories, 60)

    def test_target_split_evenly(self):
        foods = [find_food_by_name("Idli (Steamed Rice Cake)"), find_food_by_name("Masala Dosa")]
        items = scale_meal_items(foods, 500)
        self.assertEqual(len(items), 2)
        self.assertAlmostEqual(sum(i.calories for i in items), 500, delta=2)

    def test_empty_foods(self):
        self.assertEqual(scale_meal_items([], 500), [])


class TestMacroCorrection(unittest.TestCase):

    def setUp(self):
        self.day = DayPlan(
            day_label="Day 1",
            lunch=[_item("A", 400, 20, "200g")],
            dinner=[_item("B", 600, 30, "300g")],
        ).with_recomputed_totals()

    def test_protein_lock(self):
        locked = apply_protein_lock(self.day, 100)

        self.assertEqual(locked.total_protein, 100)
        self.assertEqual([i.protein for i in locked.items()], [40, 60])
        # 4 kcal per gram of added protein
        self.assertEqual([i.calories for i in locked.items()], [480, 720])
        self.assertEqual([i.portion for i in locked.items()], ["400g", "600g"])
        self.assertEqual(locked.total_calories, 1200)

    def test_calorie_correction_keeps_protein(self):
        locked = apply_protein_lock(self.day, 100)
        corrected = apply_calorie_correction(locked, 1000)

        self.assertEqual([i.calories for i in corrected.items()], [400, 600])
        self.assertEqual([i.portion for i in corrected.items()], ["333g", "500g"])
        self.assertEqual(corrected.total_protein, 100)

    def test_calorie_correction_within_tolerance_is_noop(self):
        locked = apply_protein_lock(self.day, 100)
        self.assertIs(apply_calorie_correction(locked, 1210), locked)

    def test_input_day_is_not_mutated(self):
        apply_protein_lock(self.day, 100)
        self.assertEqual(self.day.total_protein, 50)
        self.assertEqual(self.day.lunch[0].portion, "200g")


class TestFoodFiltering(unittest.TestCase):

    def test_condition_avoidance_and_preference(self):
        pool = filter_food_pool(make_profile(medical_conditions=["Type 2 Diabetes"]))
        names = {f.name for f in pool.preferred + pool.regular}

        self.assertNotIn("Aloo Paratha", names)
        self.assertIn("Idli (Steamed Rice Cake)", {f.name for f in pool.preferred})
        self.assertIn("Poha (Flattened Rice)", {f.name for f in pool.regular})

    def test_pcos_excludes_soya(self):
        pool = filter_food_pool(make_profile(medical_conditions=["PCOS"]))
        self.assertNotIn("Soya Chunk Curry with Brown Rice", {f.name for f in pool.preferred + pool.regular})

    def test_diet_compatibility(self):
        pool = filter_food_pool(make_profile(dietary_preference="vegan"))
        names = {f.name for f in pool.preferred + pool.regular}
        self.assertNotIn("Paneer Bhurji with Roti", names)
        self.assertNotIn("Grilled Chicken Breast with Quinoa", names)
        self.assertIn("Tofu Stir-fry with Broccoli", names)

    def test_tagged_entries_ignore_name_keywords(self):
        self.assertFalse(matches_intolerance("Grilled Paneer with Sautéed Veggies", "eggs"))
        self.assertTrue(matches_intolerance("Grilled Paneer with Sautéed Veggies", "lactose"))
        self.assertTrue(matches_intolerance("Masala Omelette", "eggs"))

    def test_empty_pool_falls_back_to_catalog(self):
        with self.assertLogs("app.services.meal_service", level="WARNING"):
            foods = select_meal_items("breakfast", FoodPool((), ()), SeededRandom(7))
        self.assertEqual(len(foods), 2)
        self.assertTrue(all(f.category == "breakfast" for f in foods))


class TestGenerateMealPlan(unittest.TestCase):

    def test_days_and_notes(self):
        plan = generate_meal_plan(make_profile(), 3)

        self.assertEqual([d.day_label for d in plan.days], ["Day 1", "Day 2", "Day 3"])
        self.assertEqual(plan.daily_target_calories, 2000)
        self.assertEqual(plan.dietary_notes, [
            "Plan generated specifically for veg diet.",
            "Portion sizes calibrated to 2000 kcal daily target.",
        ])

    def test_macro_accuracy(self):
        plan = generate_meal_plan(make_profile(), 7)
        for day in plan.days:
            self.assertLessEqual(abs(day.total_calories - 2000), 60, day.day_label)
            self.assertLessEqual(abs(day.total_protein - 150), 5, day.day_label)
            self.assertEqual(day.total_calories, sum(i.calories for i in day.items()))

    def test_every_slot_filled(self):
        plan = generate_meal_plan(make_profile(), 2)
        for day in plan.days:
            self.assertEqual(len(day.breakfast), 2)
            self.assertEqual(len(day.mid_morning_snack), 1)
            self.assertEqual(len(day.lunch), 2)
            self.assertEqual(len(day.evening_snack), 1)
            self.assertEqual(len(day.dinner), 2)

    def test_deterministic(self):
        profile = make_profile()
        self.assertEqual(generate_meal_plan(profile, 3), generate_meal_plan(profile, 3))

    def test_no_repeat_from_previous_day(self):
        plan = generate_meal_plan(make_profile(), 5)
        for yesterday, today in zip(plan.days, plan.days[1:]):
            self.assertFalse(
                {i.name for i in yesterday.breakfast} & {i.name for i in today.breakfast}
            )

    def test_intolerance_and_diet_respected(self):
        profile = make_profile(food_intolerances=["lactose"])
        plan = generate_meal_plan(profile, 7)
        for day in plan.days:
            for item in day.items():
                self.assertFalse(matches_intolerance(item.name, "lactose"), item.name)
                self.assertIn("veg", find_food_by_name(item.name).diet_compatible)

    def test_dairy_names_excluded(self):
        plan = generate_meal_plan(make_profile(food_intolerances=["dairy"]), 7)
        for day in plan.days:
            for item in day.items():
                self.assertFalse(INTOLERANCE_NAME_PATTERNS["dairy"].search(item.name), item.name)

    def test_male_veg_hits_targets(self):
        profile = make_profile(
            gender="male", name="Ravi Kumar", age=30, weight_kg=70,
            dietary_preference="veg", tdee=2000, protein_grams=150,
        )
        day = generate_meal_plan(profile, 1).days[0]

        self.assertGreaterEqual(day.total_calories, 1940)
        self.assertLessEqual(day.total_calories, 2060)
        self.assertGreaterEqual(day.total_protein, 145)
        self.assertLessEqual(day.total_protein, 155)

    def test_rejects_zero_days(self):
        with self.assertRaises(ValueError):
            generate_meal_plan(make_profile(), 0)


if __name__ == '__main__':
    unittest.main()
