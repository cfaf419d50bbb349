import unittest

from services import catalog, shipment_planner
from services.truck_decomposer import InvalidInput

CATALOG = {
    "TPO-10": {"category": "TPO", "rolls_per_pallet": 6, "pallet_length_ft": 10, "weight_lbs": 389},
    "TPO-5": {"category": "TPO", "rolls_per_pallet": 16, "pallet_length_ft": 5, "weight_lbs": 195},
    "ISO-8": {"category": "ISO", "units_per_pallet": 24, "pallet_length_ft": 8, "weight_lbs": 26},
    "KIT": {"category": "Excluded", "weight_lbs": 2},
    "CURB": {"category": "", "weight_lbs": 35, "length_in": 96},
    "BROKEN": {"category": "TPO", "rolls_per_pallet": 0, "pallet_length_ft": 10},
    "HEAVY": {"category": "TPO", "rolls_per_pallet": 1, "pallet_length_ft": 4, "weight_lbs": 11000},
}


class FakeGenerator:
    def __init__(self, estimate=None, commentary=None):
        self.estimate = estimate
        self.commentary = commentary
        self.estimate_calls = []
        self.commentary_calls = []

    def estimate_trucks(self, items):
        self.estimate_calls.append(items)
        return self.estimate

    def packing_commentary(self, context):
        self.commentary_calls.append(context)
        return self.commentary


class ShipmentPlannerTests(unittest.TestCase):
    def setUp(self):
        self.lookup = catalog.mapping_lookup(CATALOG)

    def test_plan_for_single_full_truck(self):
        plan = shipment_planner.plan_shipment([{"sku": "TPO-10", "quantity": 60}], self.lookup)

        # 10 pallets of 10 ft -> 3 slots -> 30 ft
        self.assertEqual(plan["linear_feet"], 30.0)
        self.assertEqual(plan["truck_type"], "FULL")
        self.assertEqual(plan["truck_type_label"], "Full Truck")
        self.assertEqual(plan["trucks_needed"], 1)
        self.assertEqual(plan["summary"], "1 Full Truck(s)")
        self.assertEqual(len(plan["occupancy"]), 1)
        self.assertAlmostEqual(plan["occupancy"][0]["occupancy_fraction"], 30 / 48)
        self.assertIn("Total required linear feet: 30.00", plan["packing_notes"])
        self.assertIn("Final recommendation is: 1 Full Truck(s).", plan["packing_notes"])
        self.assertIsNone(plan["narrative"])

    def test_empty_shipment_is_the_no_truck_plan(self):
        plan = shipment_planner.plan_shipment([], self.lookup)
        self.assertEqual(plan["truck_type"], "NONE")
        self.assertEqual(plan["truck_type_label"], "No Truck")
        self.assertEqual(plan["entries"], [])
        self.assertEqual(plan["occupancy"], [])
        self.assertEqual(plan["linear_feet"], 0)

    def test_mixed_plan_notes_parse_back_to_same_entries(self):
        plan = shipment_planner.plan_shipment(
            [
                {"sku": "TPO-10", "quantity": 96},
                {"sku": "ISO-8", "quantity": 24},
            ],
            self.lookup,
        )
        # 16 roll pallets -> 40 ft, 1 board pallet -> 8 ft, 48 ft total
        self.assertEqual(plan["linear_feet"], 48.0)
        self.assertEqual(plan["truck_type"], "FULL")

        recovered = shipment_planner.recover_plan_from_text(plan["packing_notes"], plan["linear_feet"])
        self.assertEqual(recovered["entries"], plan["entries"])
        self.assertEqual(recovered["recommendation_summary"], plan["summary"])

    def test_merged_estimate_notes_parse_back_to_combined_entries(self):
        generator = FakeGenerator(
            estimate={"truck_class": "LTL", "count": 1, "linear_feet": 6.0, "reasoning": "Curbs fit in a van."},
        )
        plan = shipment_planner.plan_shipment(
            [
                {"sku": "TPO-10", "quantity": 60},
                {"sku": "CURB", "quantity": 2},
            ],
            self.lookup,
            generator=generator,
        )

        recovered = shipment_planner.recover_plan_from_text(plan["packing_notes"], plan["linear_feet"])

        self.assertEqual(recovered["entries"], plan["entries"])
        self.assertEqual(recovered["recommendation_summary"], "1 Full Truck(s) and 1 LTL")

    def test_non_finite_catalog_length_only_affects_that_item(self):
        lookup = catalog.mapping_lookup(
            dict(CATALOG, BADLEN={"category": "TPO", "rolls_per_pallet": 6, "pallet_length_ft": "inf"})
        )
        with self.assertLogs("services.shipment_planner", level="WARNING"):
            plan = shipment_planner.plan_shipment(
                [
                    {"sku": "TPO-10", "quantity": 6},
                    {"sku": "BADLEN", "quantity": 6},
                ],
                lookup,
            )

        self.assertEqual(plan["linear_feet"], 10.0)
        self.assertEqual(plan["summary"], "1 LTL")
        self.assertEqual(plan["unestimated_items"][0]["sku"], "BADLEN")
        self.assertEqual(plan["unestimated_items"][0]["reason"], "Missing pallet length.")

    def test_excluded_and_broken_items_are_reported(self):
        with self.assertLogs("services.pallet_aggregator", level="WARNING"):
            plan = shipment_planner.plan_shipment(
                [
                    {"sku": "TPO-5", "quantity": 16},
                    {"sku": "KIT", "quantity": 4},
                    {"sku": "BROKEN", "quantity": 2},
                ],
                self.lookup,
            )
        self.assertEqual(plan["linear_feet"], 5.0)
        self.assertEqual(plan["truck_type"], "LTL")
        self.assertEqual(plan["excluded_items"], [{"sku": "KIT", "quantity": 4}])
        self.assertEqual(plan["errors"][0]["sku"], "BROKEN")
        self.assertIn("KIT is excluded from truck footage.", plan["packing_notes"])
        self.assertIn("BROKEN skipped:", plan["packing_notes"])

    def test_unpackable_items_without_generator_are_unestimated(self):
        with self.assertLogs("services.shipment_planner", level="WARNING"):
            plan = shipment_planner.plan_shipment(
                [
                    {"sku": "TPO-10", "quantity": 6},
                    {"sku": "CURB", "quantity": 2},
                ],
                self.lookup,
            )
        self.assertEqual(plan["linear_feet"], 10.0)
        self.assertEqual(plan["truck_type"], "LTL")
        self.assertEqual(plan["unestimated_items"][0]["sku"], "CURB")
        self.assertEqual(plan["unestimated_items"][0]["reason"], "Unknown packing category.")
        self.assertIsNone(plan["estimate"])

    def test_generator_estimate_is_merged_into_the_plan(self):
        generator = FakeGenerator(
            estimate={"truck_class": "LTL", "count": 1, "linear_feet": 6.0, "reasoning": "Curbs fit in a van."},
            commentary="Load rolls at the nose.",
        )
        plan = shipment_planner.plan_shipment(
            [
                {"sku": "TPO-10", "quantity": 60},
                {"sku": "CURB", "quantity": 2},
            ],
            self.lookup,
            generator=generator,
        )

        self.assertEqual(len(generator.estimate_calls), 1)
        self.assertEqual(generator.estimate_calls[0][0]["sku"], "CURB")
        self.assertEqual(plan["truck_type"], "MIXED")
        self.assertEqual(plan["truck_type_label"], "Mixed")
        self.assertEqual(plan["summary"], "1 Full Truck(s) and 1 LTL")
        self.assertEqual(plan["linear_feet"], 36.0)
        self.assertEqual(plan["packed_linear_feet"], 30.0)
        self.assertEqual(plan["unestimated_items"], [])
        self.assertIn("--- Detailed Packing Plan ---", plan["packing_notes"])
        self.assertIn("--- Additional Items Estimation ---", plan["packing_notes"])
        self.assertIn("Curbs fit in a van.", plan["packing_notes"])
        self.assertEqual(plan["narrative"], "Load rolls at the nose.")
        self.assertEqual(generator.commentary_calls[0]["summary"], "1 Full Truck(s) and 1 LTL")

    def test_estimate_for_same_class_adds_to_count(self):
        generator = FakeGenerator(estimate={"truck_class": "FULL", "count": 1, "linear_feet": None, "reasoning": ""})
        plan = shipment_planner.plan_shipment(
            [
                {"sku": "TPO-10", "quantity": 60},
                {"sku": "CURB", "quantity": 40},
            ],
            self.lookup,
            generator=generator,
        )
        self.assertEqual(plan["entries"], [{"truck_class": "FULL", "count": 2}])
        self.assertEqual(plan["trucks_needed"], 2)
        self.assertEqual(plan["linear_feet"], 30.0)
        for entry in plan["occupancy"]:
            self.assertLessEqual(entry["occupancy_fraction"], 1.0)

    def test_generator_without_answer_keeps_deterministic_plan(self):
        generator = FakeGenerator(estimate=None, commentary=None)
        with self.assertLogs("services.shipment_planner", level="WARNING"):
            plan = shipment_planner.plan_shipment(
                [
                    {"sku": "TPO-10", "quantity": 6},
                    {"sku": "CURB", "quantity": 1},
                ],
                self.lookup,
                generator=generator,
            )
        self.assertEqual(plan["summary"], "1 LTL")
        self.assertEqual(len(plan["unestimated_items"]), 1)
        self.assertIsNone(plan["narrative"])

    def test_weight_over_limit_is_warned(self):
        plan = shipment_planner.plan_shipment([{"sku": "HEAVY", "quantity": 4}], self.lookup)
        # 4 pallets of 4 ft share one slot, 44,000 lbs on one LTL
        self.assertEqual(plan["trucks_needed"], 1)
        self.assertEqual(plan["total_weight_lbs"], 44000.0)
        self.assertEqual([warning["code"] for warning in plan["warnings"]], ["weight_over_limit"])

    def test_items_are_normalized(self):
        plan = shipment_planner.plan_shipment([{"sku": "  tpo-10 ", "quantity": "6"}], self.lookup)
        self.assertEqual(plan["items"], [{"sku": "TPO-10", "quantity": 6}])

    def test_invalid_items_raise(self):
        for items in [
            [{"sku": "", "quantity": 1}],
            [{"sku": "TPO-10", "quantity": 0}],
            [{"sku": "TPO-10", "quantity": -3}],
            [{"sku": "TPO-10", "quantity": "lots"}],
            [{"sku": "TPO-10", "quantity": 1.5}],
            ["TPO-10"],
        ]:
            with self.subTest(items=items):
                with self.assertRaises(InvalidInput):
                    shipment_planner.plan_shipment(items, self.lookup)

    def test_recover_plan_from_text(self):
        recovered = shipment_planner.recover_plan_from_text("1 Full Truck and 1 LTL", 50)
        self.assertEqual(recovered["truck_type"], "MIXED")
        self.assertEqual(recovered["trucks_needed"], 2)
        self.assertEqual([entry["truck_class"] for entry in recovered["occupancy"]], ["FULL", "LTL"])

        empty = shipment_planner.recover_plan_from_text("", 0)
        self.assertEqual(empty["entries"], [])
        self.assertEqual(empty["occupancy"], [])
        self.assertEqual(empty["truck_type"], "NONE")


if __name__ == "__main__":
    unittest.main()
