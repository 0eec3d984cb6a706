from __future__ import annotations

import copy
from typing import Any, Dict, List


def _protein(protein: str, label: str, price_per_person: float) -> Dict[str, Any]:
    return {"protein": protein, "label": label, "price_per_person": float(price_per_person)}


def _owner(owner_id: str, name: str, equity_percent: float) -> Dict[str, Any]:
    return {"id": owner_id, "name": name, "equity_percent": float(equity_percent)}


def _chef_pay(
    *,
    base: float,
    cap: float | None = None,
) -> Dict[str, float | None]:
    return {"base": max(0.0, base), "cap": cap if cap is None else max(0.0, cap)}


def _private_labor(
    *,
    lead: Dict[str, float | None],
    full: Dict[str, float | None],
    assistant: Dict[str, float | None],
    chef_gratuity_split: float,
    assistant_gratuity_split: float,
) -> Dict[str, Any]:
    return {
        "lead_chef_base_percent": lead["base"],
        "lead_chef_cap_percent": lead["cap"],
        "full_chef_base_percent": full["base"],
        "full_chef_cap_percent": full["cap"],
        "assistant_base_percent": assistant["base"],
        "assistant_cap_percent": assistant["cap"],
        "chef_gratuity_split_percent": chef_gratuity_split,
        "assistant_gratuity_split_percent": assistant_gratuity_split,
    }


DEFAULT_PROTEIN_ADD_ONS: List[Dict[str, Any]] = [
    _protein("chicken", "Chicken", 6),
    _protein("filet-mignon", "Filet Mignon", 10),
    _protein("scallops", "Scallops", 8),
]

DEFAULT_OWNERS: List[Dict[str, Any]] = [
    _owner("owner-a", "Owner A", 40),
    _owner("owner-b", "Owner B", 60),
]

PRICING: Dict[str, Any] = {
    "primary_base_price": 60.0,
    "secondary_base_price": 32.0,
    "premium_add_on_min": 5.0,
    "premium_add_on_max": 20.0,
    "protein_add_ons": DEFAULT_PROTEIN_ADD_ONS,
    "default_gratuity_percent": 20.0,
    "child_discount_percent": 50.0,
    "default_deposit_percent": 30.0,
}

STAFFING: Dict[str, Any] = {
    "max_guests_per_chef_primary": 15,
    "max_guests_per_chef_secondary": 25,
    "assistant_required": True,
    "profiles": [],
}

PRIVATE_LABOR: Dict[str, Any] = _private_labor(
    lead=_chef_pay(base=15.0),
    full=_chef_pay(base=10.0),
    assistant=_chef_pay(base=8.0),
    chef_gratuity_split=55.0,
    assistant_gratuity_split=45.0,
)

BUFFET_LABOR: Dict[str, Any] = {
    "chef_base_percent": 12.0,
    "chef_cap_percent": None,
}

COSTS: Dict[str, Any] = {
    "primary_food_cost_percent": 18.0,
    "secondary_food_cost_percent": 20.0,
    "supplies_cost_percent": 7.0,
    "transportation_stipend": 50.0,
}

DISTANCE: Dict[str, Any] = {
    "free_distance_miles": 20.0,
    "base_distance_fee": 50.0,
    "additional_fee_per_increment": 25.0,
    "increment_miles": 5.0,
}

PROFIT_DISTRIBUTION: Dict[str, Any] = {
    "business_retained_percent": 30.0,
    "owner_distribution_percent": 70.0,
    "owners": DEFAULT_OWNERS,
    "distribution_frequency": "monthly",
}

SAFETY_LIMITS: Dict[str, Any] = {
    "max_total_labor_percent": 30.0,
    "max_food_cost_percent": 30.0,
    "warn_when_exceeded": True,
}

SECTION_NAMES = (
    "pricing",
    "staffing",
    "private_labor",
    "buffet_labor",
    "costs",
    "distance",
    "profit_distribution",
    "safety_limits",
)

# Keys whose value is a divisor somewhere in the calculators.
POSITIVE_KEYS: Dict[str, tuple] = {
    "staffing": ("max_guests_per_chef_primary", "max_guests_per_chef_secondary"),
    "distance": ("increment_miles",),
}

BASELINE_RULES: Dict[str, Any] = {
    "name": "Default Rules",
    "pricing": PRICING,
    "staffing": STAFFING,
    "private_labor": PRIVATE_LABOR,
    "buffet_labor": BUFFET_LABOR,
    "costs": COSTS,
    "distance": DISTANCE,
    "profit_distribution": PROFIT_DISTRIBUTION,
    "safety_limits": SAFETY_LIMITS,
}


def build_default_rules() -> Dict[str, Any]:
    """Return a deepcopy so callers can mutate the rules safely."""
    return copy.deepcopy(BASELINE_RULES)
