from __future__ import annotations

import math
from typing import Any, Dict, Optional

from ..models import EventInput
from ..roles import PRIMARY, resolve_pricing_slot


def valid_override(value: Optional[float]) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        return None
    return float(value)


def base_price_for_slot(rules: Dict[str, Any], slot: str) -> float:
    pricing = rules["pricing"]
    if slot == PRIMARY:
        return float(pricing["primary_base_price"])
    return float(pricing["secondary_base_price"])


def distance_fee(distance_miles: float, rules: Dict[str, Any]) -> float:
    """Flat fee past the free radius plus a charge per started increment."""
    distance = rules["distance"]
    free_miles = float(distance["free_distance_miles"])
    if distance_miles <= free_miles:
        return 0.0
    extra_miles = distance_miles - free_miles
    increments = math.ceil(extra_miles / float(distance["increment_miles"]))
    return float(distance["base_distance_fee"]) + increments * float(distance["additional_fee_per_increment"])


def price(event_input: EventInput, rules: Dict[str, Any]) -> Dict[str, Any]:
    slot = resolve_pricing_slot(event_input.pricing_slot, event_input.event_type)
    pricing = rules["pricing"]
    base_price = base_price_for_slot(rules, slot)
    child_price = base_price * (1 - float(pricing["child_discount_percent"]) / 100)

    computed_subtotal = (
        event_input.adults * base_price
        + event_input.children * child_price
        + event_input.guest_count * event_input.premium_add_on
    )
    override = valid_override(event_input.subtotal_override)
    subtotal = override if override is not None else computed_subtotal

    gratuity_percent = float(pricing["default_gratuity_percent"])
    gratuity = subtotal * (gratuity_percent / 100)
    fee = distance_fee(event_input.distance_miles, rules)
    return {
        "pricing_slot": slot,
        "base_price": base_price,
        "child_price": child_price,
        "subtotal": subtotal,
        "gratuity": gratuity,
        "gratuity_percent": gratuity_percent,
        "distance_fee": fee,
        "total_charged": subtotal + gratuity + fee,
    }
