from __future__ import annotations

from typing import Any, Dict, Optional, Tuple


PRIMARY = "primary"
SECONDARY = "secondary"
ANY_EVENT_TYPE = "any"
SLOTS: Tuple[str, str] = (PRIMARY, SECONDARY)

LEAD = "lead"
FULL = "full"
BUFFET = "buffet"
ASSISTANT = "assistant"

CHEF_ROLES: Tuple[str, ...] = (LEAD, FULL, BUFFET)
STAFF_ROLES: Tuple[str, ...] = CHEF_ROLES + (ASSISTANT,)

# Deprecated tags folded into a current role.
LEGACY_ROLE_TAGS: Dict[str, str] = {
    "overflow": FULL,
}

# Event type ids stored on older bookings/profiles.
LEGACY_EVENT_TYPES: Dict[str, str] = {
    "private-dinner": PRIMARY,
    "private_dinner": PRIMARY,
    "buffet": SECONDARY,
}

ROLE_LABELS: Dict[str, str] = {
    LEAD: "Lead Chef",
    FULL: "Full Chef",
    BUFFET: "Buffet Chef",
    ASSISTANT: "Assistant",
}

# role -> (labor section, base percent key, cap percent key)
ROLE_PAY_KEYS: Dict[str, Tuple[str, str, str]] = {
    LEAD: ("private_labor", "lead_chef_base_percent", "lead_chef_cap_percent"),
    FULL: ("private_labor", "full_chef_base_percent", "full_chef_cap_percent"),
    ASSISTANT: ("private_labor", "assistant_base_percent", "assistant_cap_percent"),
    BUFFET: ("buffet_labor", "chef_base_percent", "chef_cap_percent"),
}


def normalize_role(role: Any) -> str:
    if not isinstance(role, str):
        return ""
    return role.strip().lower()


def coerce_role_tag(role: Any) -> Optional[str]:
    """Return the current role tag for a stored label, or None if unknown."""
    label = normalize_role(role)
    label = LEGACY_ROLE_TAGS.get(label, label)
    if label in STAFF_ROLES:
        return label
    return None


def is_chef_role(role: str) -> bool:
    return role in CHEF_ROLES


def role_label(role: str) -> str:
    return ROLE_LABELS.get(role, role.title() if role else "Other")


def normalize_event_type(event_type: Any) -> str:
    label = normalize_role(event_type)
    return LEGACY_EVENT_TYPES.get(label, label)


def is_known_event_type(event_type: Any) -> bool:
    return normalize_event_type(event_type) in SLOTS


def resolve_event_type(event_type: Any) -> str:
    """Collapse an event type onto a slot; unknown values take the secondary path."""
    label = normalize_event_type(event_type)
    return PRIMARY if label == PRIMARY else SECONDARY


def resolve_pricing_slot(pricing_slot: Any, event_type: Any) -> str:
    slot = normalize_role(pricing_slot)
    if slot in SLOTS:
        return slot
    return resolve_event_type(event_type)


def role_entry(entry: Any) -> Tuple[Optional[str], Optional[str]]:
    """Split a profile role entry into (role tag, owner id).

    Entries are plain tags ("lead") or mappings such as
    {"role": "lead", "owner_id": "owner-a"}.
    """
    if isinstance(entry, dict):
        owner = entry.get("owner_id") or entry.get("ownerRole") or entry.get("owner_role")
        owner_id = owner.strip() if isinstance(owner, str) and owner.strip() else None
        return coerce_role_tag(entry.get("role")), owner_id
    return coerce_role_tag(entry), None


def role_pay_settings(rules: Dict, role: str) -> Tuple[float, Optional[float]]:
    """Return (base_pay_percent, cap_percent) configured for a role."""
    keys = ROLE_PAY_KEYS.get(role)
    if keys is None:
        return 0.0, None
    section_name, base_key, cap_key = keys
    section = rules.get(section_name) if isinstance(rules, dict) else None
    if not isinstance(section, dict):
        return 0.0, None
    try:
        base = float(section.get(base_key) or 0.0)
    except (TypeError, ValueError):
        base = 0.0
    cap = section.get(cap_key)
    try:
        cap_value = float(cap) if cap is not None else None
    except (TypeError, ValueError):
        cap_value = None
    return base, cap_value

