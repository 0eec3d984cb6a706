from __future__ import annotations

import math
import sys
from pathlib import Path

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from event_rules.rules import (  # noqa: E402
    CURRENT_SCHEMA_VERSION,
    OPEN_ENDED_MAX_GUESTS,
    merge_rules_overrides,
    migrate_rules,
    normalize_rules,
    resolve_layers,
)
from event_rules.rules_defaults import SECTION_NAMES, build_default_rules  # noqa: E402


def test_missing_rules_produce_defaults():
    rules = normalize_rules(None)
    defaults = build_default_rules()
    assert rules["name"] == "Default Rules"
    assert rules["schema_version"] == CURRENT_SCHEMA_VERSION
    for section in SECTION_NAMES:
        assert rules[section] == defaults[section]


@pytest.mark.parametrize("stored", ["garbage", 42, [], {"pricing": "nope"}, {"staffing": {"profiles": "x"}}])
def test_malformed_payloads_never_raise(stored):
    rules = normalize_rules(stored)
    assert rules["pricing"]["primary_base_price"] == 60.0
    assert rules["staffing"]["profiles"] == []


def test_camel_case_keys_are_migrated():
    rules = normalize_rules(
        {
            "pricing": {"primaryBasePrice": 70, "childDiscountPercent": 25},
            "staffing": {"maxGuestsPerChefPrimary": 12, "assistantRequired": False},
        }
    )
    assert rules["pricing"]["primary_base_price"] == 70
    assert rules["pricing"]["child_discount_percent"] == 25
    assert rules["staffing"]["max_guests_per_chef_primary"] == 12
    assert rules["staffing"]["assistant_required"] is False


def test_legacy_slot_names_are_renamed():
    rules = normalize_rules(
        {
            "schema_version": 1,
            "pricing": {"private_dinner_base_price": 65, "buffet_base_price": 30},
            "costs": {"food_cost_percent_buffet": 22},
        }
    )
    assert rules["pricing"]["primary_base_price"] == 65
    assert rules["pricing"]["secondary_base_price"] == 30
    assert rules["costs"]["secondary_food_cost_percent"] == 22
    assert "private_dinner_base_price" not in rules["pricing"]


def test_current_field_wins_over_legacy_field():
    payload = migrate_rules(
        {"schema_version": 1, "pricing": {"private_dinner_base_price": 65, "primary_base_price": 80}}
    )
    assert payload["pricing"] == {"primary_base_price": 80}


def test_deprecated_overflow_settings_are_dropped():
    payload = migrate_rules(
        {"schema_version": 2, "private_labor": {"overflow_chef_base_percent": 9, "lead_chef_base_percent": 14}}
    )
    assert payload["private_labor"] == {"lead_chef_base_percent": 14}
    assert payload["schema_version"] == CURRENT_SCHEMA_VERSION


def test_invalid_values_fall_back_to_defaults():
    rules = normalize_rules(
        {
            "pricing": {"primary_base_price": "abc", "secondary_base_price": float("nan"), "child_discount_percent": None},
            "staffing": {"assistant_required": "yes", "max_guests_per_chef_primary": 0},
            "distance": {"increment_miles": -5},
        }
    )
    assert rules["pricing"]["primary_base_price"] == 60.0
    assert rules["pricing"]["secondary_base_price"] == 32.0
    assert rules["pricing"]["child_discount_percent"] == 50.0
    assert rules["staffing"]["assistant_required"] is True
    assert rules["staffing"]["max_guests_per_chef_primary"] == 15
    assert rules["distance"]["increment_miles"] == 5.0


def test_numeric_strings_are_coerced():
    rules = normalize_rules({"pricing": {"primary_base_price": " 75 "}})
    assert rules["pricing"]["primary_base_price"] == 75.0


def test_unknown_keys_are_dropped():
    rules = normalize_rules({"pricing": {"surprise_fee": 10}, "extras": {"a": 1}})
    assert "surprise_fee" not in rules["pricing"]
    assert "extras" not in rules


def test_caps_accept_numbers_and_stay_none_when_unset():
    rules = normalize_rules({"private_labor": {"lead_chef_cap_percent": 20}})
    assert rules["private_labor"]["lead_chef_cap_percent"] == 20
    assert rules["private_labor"]["full_chef_cap_percent"] is None
    assert rules["buffet_labor"]["chef_cap_percent"] is None


def test_profiles_are_cleaned():
    rules = normalize_rules(
        {
            "staffing": {
                "profiles": [
                    {"id": "small", "name": "Small", "event_type": "private-dinner", "min_guests": 1, "max_guests": 10, "roles": ["lead"]},
                    {"name": "No id", "roles": ["lead"]},
                    {"id": "broken", "min_guests": 30, "max_guests": 10, "roles": ["lead"]},
                    {"id": "open", "min_guests": "20", "roles": ["lead", "assistant"]},
                ]
            }
        }
    )
    profiles = rules["staffing"]["profiles"]
    assert [profile["id"] for profile in profiles] == ["small", "open"]
    assert profiles[0]["event_type"] == "primary"
    assert profiles[1]["event_type"] == "any"
    assert profiles[1]["min_guests"] == 20
    assert profiles[1]["max_guests"] == OPEN_ENDED_MAX_GUESTS
    assert profiles[1]["name"] == "open"


def test_protein_add_ons_fall_back_when_invalid():
    rules = normalize_rules({"pricing": {"protein_add_ons": [{"protein": "lobster"}]}})
    assert [item["protein"] for item in rules["pricing"]["protein_add_ons"]] == ["chicken", "filet-mignon", "scallops"]

    rules = normalize_rules({"pricing": {"protein_add_ons": [{"protein": "lobster", "label": "Lobster", "price_per_person": "15"}]}})
    assert rules["pricing"]["protein_add_ons"] == [{"protein": "lobster", "label": "Lobster", "price_per_person": 15.0}]


def test_two_owner_split_becomes_owner_list():
    rules = normalize_rules({"profit_distribution": {"owner_a_equity_percent": 50, "owner_b_equity_percent": 50}})
    owners = rules["profit_distribution"]["owners"]
    assert [owner["equity_percent"] for owner in owners] == [50.0, 50.0]
    assert "owner_a_equity_percent" not in rules["profit_distribution"]


def test_normalization_is_idempotent():
    stored = {
        "name": "Summer",
        "pricing": {"primaryBasePrice": "70"},
        "staffing": {"profiles": [{"id": "p", "eventType": "buffet", "minGuests": 0, "maxGuests": 50, "roles": ["buffet"]}]},
    }
    once = normalize_rules(stored)
    assert once["name"] == "Summer"
    assert normalize_rules(once) == once


def test_resolve_layers_precedence():
    resolved = resolve_layers(
        {"base": 10.0, "cap": None, "enabled": True},
        {"base": 12, "cap": 20, "enabled": "no"},
        {"base": None, "cap": float("inf"), "other": 1},
    )
    assert resolved == {"base": 12, "cap": 20, "enabled": True}


def test_resolve_layers_nullable_keys_can_be_cleared():
    resolved = resolve_layers({"cap": 20.0}, {"cap": None}, nullable=("cap",))
    assert resolved["cap"] is None
    assert resolve_layers() == {}


def test_merge_overrides_keeps_unpatched_values():
    rules = normalize_rules({"pricing": {"primary_base_price": 70}})
    merged = merge_rules_overrides(rules, {"pricing": {"childDiscountPercent": 0}, "staffing": {"assistant_required": False}})
    assert merged["pricing"]["primary_base_price"] == 70
    assert merged["pricing"]["child_discount_percent"] == 0
    assert merged["staffing"]["assistant_required"] is False
    assert merged["profit_distribution"]["owners"] == rules["profit_distribution"]["owners"]
    assert rules["staffing"]["assistant_required"] is True


def test_merge_overrides_replaces_lists_when_given():
    rules = normalize_rules(None)
    merged = merge_rules_overrides(
        rules,
        {
            "staffing": {"profiles": [{"id": "solo", "roles": ["lead"]}]},
            "profit_distribution": {"owners": []},
        },
    )
    assert [profile["id"] for profile in merged["staffing"]["profiles"]] == ["solo"]
    assert merged["profit_distribution"]["owners"] == rules["profit_distribution"]["owners"]
    assert merge_rules_overrides(rules, None) == rules


def test_defaults_are_not_shared_between_calls():
    first = normalize_rules(None)
    first["pricing"]["protein_add_ons"].append({"protein": "x", "label": "X", "price_per_person": 1.0})
    first["profit_distribution"]["owners"][0]["equity_percent"] = 99.0
    second = normalize_rules(None)
    assert len(second["pricing"]["protein_add_ons"]) == 3
    assert not math.isclose(second["profit_distribution"]["owners"][0]["equity_percent"], 99.0)
