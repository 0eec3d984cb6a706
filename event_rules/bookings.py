from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from .financials.api import compute_financials
from .menu_pricing import build_menu_pricing_snapshot
from .models import EventInput
from .templates import get_pricing_slot


def _menu_snapshot(booking: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    snapshot = booking.get("menu_pricing_snapshot", booking.get("menuPricingSnapshot"))
    return snapshot if isinstance(snapshot, Mapping) else None


def pricing_source(booking: Mapping[str, Any]) -> str:
    return "menu" if _menu_snapshot(booking) is not None else "rules"


def booking_to_event_input(
    booking: Mapping[str, Any],
    event_types: Optional[List[Dict[str, Any]]] = None,
) -> EventInput:
    """Translate a stored booking record into calculator input.

    With template event types, the booking's event type id (e.g. "tasting-menu")
    is resolved to its pricing slot, which also drives staffing.
    """
    payload: Dict[str, Any] = dict(booking)
    payload.pop("eventType", None)
    payload.pop("pricingSlot", None)
    payload["event_type"] = booking.get("event_type", booking.get("eventType"))
    payload["pricing_slot"] = booking.get("pricing_slot", booking.get("pricingSlot"))
    if event_types:
        slot = get_pricing_slot(event_types, payload["event_type"])
        payload["event_type"] = slot
        if not payload["pricing_slot"]:
            payload["pricing_slot"] = slot

    for key in ("subtotal_override", "subtotalOverride", "food_cost_override", "foodCostOverride"):
        payload.pop(key, None)
    snapshot = _menu_snapshot(booking)
    if snapshot is not None:
        payload["subtotal_override"] = snapshot.get("subtotal_override", snapshot.get("subtotalOverride"))
        payload["food_cost_override"] = snapshot.get("food_cost_override", snapshot.get("foodCostOverride"))
    return EventInput.from_dict(payload)


def attach_menu_snapshot(
    booking: Mapping[str, Any],
    menu_id: str,
    guest_selections: List[Mapping[str, Any]],
    menu_items: List[Mapping[str, Any]],
    rules: Dict[str, Any],
) -> Dict[str, Any]:
    """Return a copy of the booking carrying a fresh menu pricing snapshot.

    Child portions use the rule set's child discount; the booking's premium
    add-on is charged per guest on top of the menu items.
    """
    updated = dict(booking)
    updated.pop("menuPricingSnapshot", None)
    premium = booking.get("premium_add_on", booking.get("premiumAddOn", 0))
    updated["menu_pricing_snapshot"] = build_menu_pricing_snapshot(
        menu_id,
        guest_selections,
        menu_items,
        child_discount_percent=rules["pricing"]["child_discount_percent"],
        premium_add_on_per_guest=premium,
    )
    return updated


def calculate_booking_financials(
    booking: Mapping[str, Any],
    rules: Dict[str, Any],
    event_types: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    event_input = booking_to_event_input(booking, event_types)
    return {
        "financials": compute_financials(event_input, rules),
        "pricing_source": pricing_source(booking),
    }
