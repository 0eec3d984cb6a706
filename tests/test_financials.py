from __future__ import annotations

import logging
import sys
import unittest
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from event_rules import EventInput, compute_financials, normalize_rules  # noqa: E402
from event_rules.financials.api import summarize_financials  # noqa: E402
from event_rules.financials.pricing import distance_fee  # noqa: E402
from event_rules.rules import merge_rules_overrides  # noqa: E402


class PricingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rules = normalize_rules(None)

    def test_primary_event_inside_free_radius(self) -> None:
        result = compute_financials(EventInput(adults=10, event_type="primary", distance_miles=5), self.rules)
        self.assertEqual(result.pricing_slot, "primary")
        self.assertAlmostEqual(result.subtotal, 600.0)
        self.assertAlmostEqual(result.gratuity, 120.0)
        self.assertAlmostEqual(result.distance_fee, 0.0)
        self.assertAlmostEqual(result.total_charged, 720.0)

    def test_distance_fee_counts_started_increments(self) -> None:
        result = compute_financials(EventInput(adults=10, distance_miles=37), self.rules)
        self.assertAlmostEqual(result.distance_fee, 150.0)
        self.assertAlmostEqual(result.total_charged, 870.0)

    def test_distance_fee_boundaries(self) -> None:
        self.assertEqual(distance_fee(20, self.rules), 0.0)
        self.assertEqual(distance_fee(20.5, self.rules), 75.0)
        self.assertEqual(distance_fee(25, self.rules), 75.0)
        self.assertEqual(distance_fee(25.01, self.rules), 100.0)

    def test_children_and_premium_add_on(self) -> None:
        result = compute_financials(EventInput(adults=10, children=4, premium_add_on=5), self.rules)
        self.assertAlmostEqual(result.child_price, 30.0)
        # 10 * 60 + 4 * 30 + 14 * 5
        self.assertAlmostEqual(result.subtotal, 790.0)
        self.assertEqual(result.guest_count, 14)

    def test_pricing_slot_overrides_event_type(self) -> None:
        result = compute_financials(EventInput(adults=10, event_type="primary", pricing_slot="secondary"), self.rules)
        self.assertEqual(result.pricing_slot, "secondary")
        self.assertAlmostEqual(result.subtotal, 320.0)
        self.assertEqual(result.staffing_plan.chef_roles, ["lead"])

    def test_subtotal_override_and_negative_override(self) -> None:
        result = compute_financials(EventInput(adults=10, subtotal_override=1000), self.rules)
        self.assertAlmostEqual(result.subtotal, 1000.0)
        self.assertAlmostEqual(result.gratuity, 200.0)
        ignored = compute_financials(EventInput(adults=10, subtotal_override=-5), self.rules)
        self.assertAlmostEqual(ignored.subtotal, 600.0)

    def test_zero_guests(self) -> None:
        result = compute_financials(EventInput(adults=0), self.rules)
        self.assertEqual(result.subtotal, 0.0)
        self.assertEqual(result.food_cost_percent, 0.0)
        self.assertEqual(result.labor_as_percent_of_revenue, 0.0)


class CostAndProfitTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rules = normalize_rules(None)
        self.result = compute_financials(EventInput(adults=10), self.rules)

    def test_costs_use_configured_percentages(self) -> None:
        self.assertAlmostEqual(self.result.food_cost, 108.0)
        self.assertAlmostEqual(self.result.food_cost_percent, 18.0)
        self.assertAlmostEqual(self.result.supplies_cost, 42.0)
        self.assertAlmostEqual(self.result.transportation_cost, 50.0)
        self.assertAlmostEqual(self.result.total_costs, 200.0)

    def test_labor_and_profit_split(self) -> None:
        self.assertAlmostEqual(self.result.total_labor_paid, 258.0)
        self.assertAlmostEqual(self.result.gross_profit, 262.0)
        self.assertAlmostEqual(self.result.retained_amount, 78.6)
        self.assertAlmostEqual(self.result.distribution_amount, 183.4)
        amounts = {owner.owner_id: owner.amount for owner in self.result.owner_distributions}
        self.assertAlmostEqual(amounts["owner-a"], 73.36)
        self.assertAlmostEqual(amounts["owner-b"], 110.04)

    def test_revenue_is_conserved(self) -> None:
        for adults, event_type in ((10, "primary"), (40, "primary"), (60, "secondary"), (3, "secondary")):
            result = compute_financials(EventInput(adults=adults, event_type=event_type), self.rules)
            self.assertAlmostEqual(
                result.subtotal + result.gratuity,
                result.total_costs + result.total_labor_paid + result.gross_profit,
            )

    def test_food_cost_override_drives_percent_and_warning(self) -> None:
        result = compute_financials(EventInput(adults=10, food_cost_override=300), self.rules)
        self.assertAlmostEqual(result.food_cost, 300.0)
        self.assertAlmostEqual(result.food_cost_percent, 50.0)
        self.assertIn("Food cost (50.0%) exceeds maximum (30%)", result.warnings)


def test_labor_warning_uses_total_revenue():
    result = compute_financials(EventInput(adults=10), normalize_rules(None))
    # 258 / 720
    assert result.warnings == ["Labor cost (35.8%) exceeds maximum (30%) of total revenue"]


def test_warnings_can_be_disabled():
    rules = normalize_rules({"safety_limits": {"warn_when_exceeded": False}})
    result = compute_financials(EventInput(adults=10, food_cost_override=500), rules)
    assert result.warnings == []


def test_identical_inputs_give_identical_results():
    rules = normalize_rules({"staffing": {"profiles": [{"id": "a", "roles": ["lead", "assistant"]}]}})
    event = EventInput(adults=22, children=3, distance_miles=31, premium_add_on=6)
    assert compute_financials(event, rules).to_dict() == compute_financials(event, rules).to_dict()


def test_distance_fee_never_decreases():
    rules = normalize_rules(None)
    fees = [distance_fee(miles / 2, rules) for miles in range(0, 200)]
    assert fees == sorted(fees)


def test_unknown_event_type_takes_secondary_path(caplog):
    with caplog.at_level(logging.WARNING, logger="event_rules.financials.api"):
        result = compute_financials({"adults": 30, "event_type": "gala"}, normalize_rules(None))
    assert result.pricing_slot == "secondary"
    assert result.base_price == 32.0
    assert result.staffing_plan.chef_roles == ["buffet", "buffet"]
    assert "gala" in caplog.text


def test_legacy_event_type_ids_map_to_slots():
    rules = normalize_rules(None)
    assert compute_financials(EventInput(adults=5, event_type="private-dinner"), rules).pricing_slot == "primary"
    assert compute_financials(EventInput(adults=5, event_type="buffet"), rules).pricing_slot == "secondary"


def test_mapping_input_accepts_camel_case():
    result = compute_financials(
        {"adults": 10, "eventType": "primary", "distanceMiles": 37, "staffPayOverrides": [{"role": "lead", "basePayPercent": 20, "gratuitySplitPercent": 50}]},
        normalize_rules(None),
    )
    assert result.distance_fee == 150.0
    lead = result.labor_compensation[0]
    assert lead.base_pay == pytest.approx(120.0)
    assert lead.gratuity_share == pytest.approx(60.0)


@pytest.mark.parametrize(
    "payload",
    [
        {"adults": -1},
        {"adults": 5, "children": -2},
        {"adults": 5, "distance_miles": -1},
        {"adults": 5, "distance_miles": float("nan")},
        {"adults": "many"},
        {"adults": float("inf")},
        {"adults": 10**400},
        {"adults": 2.7},
        {"adults": 5, "children": "1.5"},
        {"adults": True},
        {"adults": 5, "distance_miles": 10**400},
    ],
)
def test_invalid_event_input_is_rejected(payload):
    with pytest.raises(ValueError):
        EventInput.from_dict(payload)


def test_summary_is_rounded():
    rules = merge_rules_overrides(normalize_rules(None), {"pricing": {"primary_base_price": 33.333}})
    summary = summarize_financials(compute_financials(EventInput(adults=3), rules))
    assert summary["subtotal"] == 100.0
    assert summary["staff"] == 2
    assert summary["guests"] == 3


def test_rules_are_not_modified():
    rules = normalize_rules(None)
    snapshot = normalize_rules(rules)
    compute_financials(EventInput(adults=40, staff_pay_overrides=()), rules)
    assert rules == snapshot


def test_whole_number_counts_are_accepted():
    event = EventInput.from_dict({"adults": 10.0, "children": "2"})
    assert (event.adults, event.children) == (10, 2)
    assert isinstance(event.adults, int)


def test_override_mappings_are_coerced_on_construction():
    event = EventInput(
        adults=10,
        staff_pay_overrides=(
            {"role": "lead", "base_pay_percent": 20, "gratuity_split_percent": 50},
            "junk",
            None,
        ),
    )
    assert len(event.staff_pay_overrides) == 1
    assert event.staff_pay_overrides[0].role == "lead"
    result = compute_financials(event, normalize_rules(None))
    assert result.labor_compensation[0].final_pay == pytest.approx(180.0)


def test_non_sequence_overrides_are_ignored():
    event = EventInput(adults=10, staff_pay_overrides="lead")
    assert event.staff_pay_overrides == ()
    result = compute_financials(event, normalize_rules(None))
    assert result.labor_compensation[0].base_pay == pytest.approx(90.0)
