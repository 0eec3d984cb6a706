from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from .roles import PRIMARY, SECONDARY, SLOTS
from .rules import merge_rules_overrides, normalize_rules


def _event_type(event_type_id: str, label: str, pricing_slot: str, customer_label: str | None = None) -> Dict[str, str]:
    return {
        "id": event_type_id,
        "label": label,
        "customer_label": customer_label or label,
        "pricing_slot": pricing_slot if pricing_slot in SLOTS else PRIMARY,
    }


def _template(
    *,
    business_type: str,
    business_name: str,
    event_types: List[Dict[str, str]],
    labels: Dict[str, str],
    money_rules_overrides: Optional[Dict[str, Any]] = None,
    menu_enabled: bool = False,
) -> Dict[str, Any]:
    return {
        "business_type": business_type,
        "business_name": business_name,
        "event_types": event_types,
        "labels": labels,
        "defaults": {
            "money_rules_overrides": money_rules_overrides or {},
            "menu_enabled": menu_enabled,
            "staffing_enabled": True,
        },
    }


HIBACHI_TEMPLATE = _template(
    business_type="hibachi",
    business_name="My Hibachi Co.",
    event_types=[
        _event_type("private-dinner", "Hibachi Private Event", PRIMARY),
        _event_type("buffet", "Catering", SECONDARY),
    ],
    labels={"guests": "Guests", "premium_add_on": "Premium Add-on", "lead_chef": "Hibachi Chef", "assistant": "Assistant"},
)

PRIVATE_CHEF_TEMPLATE = _template(
    business_type="private_chef",
    business_name="My Private Chef Co.",
    event_types=[
        _event_type("private-dinner", "Private Dinner", PRIMARY),
        _event_type("tasting-menu", "Tasting Menu", SECONDARY),
    ],
    labels={"guests": "Covers", "premium_add_on": "Add-on", "lead_chef": "Chef", "assistant": "Server"},
    money_rules_overrides={
        "staffing": {"assistant_required": False},
        "pricing": {"child_discount_percent": 0},
    },
    menu_enabled=True,
)

WEDDING_CATERING_TEMPLATE = _template(
    business_type="wedding",
    business_name="My Catering Co.",
    event_types=[
        _event_type("plated-dinner", "Plated Dinner", PRIMARY),
        _event_type("buffet-reception", "Buffet Reception", SECONDARY, "Buffet / Reception"),
    ],
    labels={"guests": "Guests", "premium_add_on": "Upgrade", "lead_chef": "Head Chef", "assistant": "Server"},
    money_rules_overrides={
        "pricing": {"default_gratuity_percent": 20, "default_deposit_percent": 50},
    },
    menu_enabled=True,
)

TEMPLATES: Dict[str, Dict[str, Any]] = {
    template["business_type"]: template
    for template in (HIBACHI_TEMPLATE, PRIVATE_CHEF_TEMPLATE, WEDDING_CATERING_TEMPLATE)
}


def get_template(business_type: str) -> Dict[str, Any]:
    """Return a copy of a starter template; unknown types get the hibachi template."""
    return copy.deepcopy(TEMPLATES.get(business_type, HIBACHI_TEMPLATE))


def get_pricing_slot(event_types: List[Dict[str, Any]], event_type_id: str) -> str:
    for entry in event_types or []:
        if entry.get("id") == event_type_id:
            slot = entry.get("pricing_slot")
            return slot if slot in SLOTS else PRIMARY
    return PRIMARY


def rules_for_template(template: Dict[str, Any], stored_rules: Any = None) -> Dict[str, Any]:
    """Normalize stored rules, then layer the template's rule overrides on top."""
    rules = normalize_rules(stored_rules)
    defaults = template.get("defaults") if isinstance(template, dict) else None
    overrides = defaults.get("money_rules_overrides") if isinstance(defaults, dict) else None
    return merge_rules_overrides(rules, overrides)
