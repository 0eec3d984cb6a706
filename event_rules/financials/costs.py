from __future__ import annotations

from typing import Any, Dict

from ..models import EventInput
from ..roles import PRIMARY
from .pricing import valid_override


def configured_food_cost_percent(rules: Dict[str, Any], slot: str) -> float:
    costs = rules["costs"]
    if slot == PRIMARY:
        return float(costs["primary_food_cost_percent"])
    return float(costs["secondary_food_cost_percent"])


def cost(event_input: EventInput, rules: Dict[str, Any], subtotal: float, pricing_slot: str) -> Dict[str, float]:
    costs = rules["costs"]
    override = valid_override(event_input.food_cost_override)
    if override is not None:
        food_cost = override
    else:
        food_cost = subtotal * (configured_food_cost_percent(rules, pricing_slot) / 100)
    # Recomputed so an override flows through to the safety checks.
    food_cost_percent = (food_cost / subtotal) * 100 if subtotal > 0 else 0.0
    supplies_cost = subtotal * (float(costs["supplies_cost_percent"]) / 100)
    transportation_cost = float(costs["transportation_stipend"])
    return {
        "food_cost": food_cost,
        "food_cost_percent": food_cost_percent,
        "supplies_cost": supplies_cost,
        "transportation_cost": transportation_cost,
        "total_costs": food_cost + supplies_cost + transportation_cost,
    }
