from __future__ import annotations

import datetime
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple


PROTEIN_ITEM_IDS: Dict[str, str] = {
    "chicken": "protein-chicken",
    "steak": "protein-steak",
    "shrimp": "protein-shrimp",
    "scallops": "protein-scallops",
    "filet-mignon": "protein-filet-mignon",
}

SIDE_ITEM_IDS: Dict[str, str] = {
    "wants_fried_rice": "side-rice",
    "wants_noodles": "side-noodles",
    "wants_salad": "side-salad",
    "wants_veggies": "side-veggies",
}


def _round_currency(value: float) -> float:
    return round(value, 2)


def _non_negative(value: Any, fallback: float = 0.0) -> float:
    if value is None or isinstance(value, bool):
        return fallback
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(number):
        return fallback
    return max(0.0, number)


def _protein_item_id(protein: Any) -> Optional[str]:
    if not isinstance(protein, str) or not protein.strip():
        return None
    key = protein.strip().lower()
    return PROTEIN_ITEM_IDS.get(key, f"protein-{key}")


def _guest_line_totals(
    guest: Mapping[str, Any],
    catalog: Dict[str, Mapping[str, Any]],
    child_multiplier: float,
    missing: Set[str],
) -> Tuple[float, float]:
    portion = 1.0 if guest.get("is_adult", True) else child_multiplier
    item_ids: List[str] = []
    for key in ("protein1", "protein2"):
        item_id = _protein_item_id(guest.get(key))
        if item_id:
            item_ids.append(item_id)
    for flag, item_id in SIDE_ITEM_IDS.items():
        if guest.get(flag):
            item_ids.append(item_id)

    revenue = 0.0
    food_cost = 0.0
    for item_id in item_ids:
        item = catalog.get(item_id)
        if item is None:
            missing.add(item_id)
            continue
        # Older catalog items may predate price_per_serving.
        revenue += _non_negative(item.get("price_per_serving")) * portion
        food_cost += _non_negative(item.get("cost_per_serving")) * portion
    return revenue, food_cost


def calculate_menu_pricing_breakdown(
    guest_selections: Iterable[Mapping[str, Any]],
    menu_items: Iterable[Mapping[str, Any]],
    *,
    child_discount_percent: Any = 50,
    premium_add_on_per_guest: Any = 0,
) -> Dict[str, Any]:
    """Price a per-guest menu into subtotal/food-cost overrides for the calculator."""
    catalog = {str(item.get("id")): item for item in menu_items if isinstance(item, Mapping)}
    discount = _non_negative(child_discount_percent, 50.0)
    child_multiplier = max(0.0, min(1.0, 1 - discount / 100))
    premium = _non_negative(premium_add_on_per_guest)

    missing: Set[str] = set()
    subtotal = 0.0
    food_cost = 0.0
    guests = [guest for guest in guest_selections if isinstance(guest, Mapping)]
    for guest in guests:
        revenue, cost = _guest_line_totals(guest, catalog, child_multiplier, missing)
        subtotal += revenue
        food_cost += cost
    if premium > 0 and guests:
        subtotal += premium * len(guests)
    return {
        "subtotal_override": _round_currency(subtotal),
        "food_cost_override": _round_currency(food_cost),
        "missing_item_ids": sorted(missing),
    }


def build_menu_pricing_snapshot(
    menu_id: str,
    guest_selections: Iterable[Mapping[str, Any]],
    menu_items: Iterable[Mapping[str, Any]],
    **options: Any,
) -> Dict[str, Any]:
    breakdown = calculate_menu_pricing_breakdown(guest_selections, menu_items, **options)
    return {
        "menu_id": menu_id,
        "subtotal_override": breakdown["subtotal_override"],
        "food_cost_override": breakdown["food_cost_override"],
        "calculated_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
    }
