from __future__ import annotations

import copy
import logging
import math
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .database import get_active_rule_set, upsert_rule_set
from .roles import ANY_EVENT_TYPE, normalize_event_type
from .rules_defaults import (
    BASELINE_RULES,
    DEFAULT_OWNERS,
    DEFAULT_PROTEIN_ADD_ONS,
    POSITIVE_KEYS,
    SECTION_NAMES,
    build_default_rules,
)


logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 3
OPEN_ENDED_MAX_GUESTS = 9999

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# legacy key -> current key, per section
LEGACY_FIELD_NAMES: Dict[str, Dict[str, str]] = {
    "pricing": {
        "private_dinner_base_price": "primary_base_price",
        "buffet_base_price": "secondary_base_price",
    },
    "staffing": {
        "max_guests_per_chef_private": "max_guests_per_chef_primary",
        "max_guests_per_chef_buffet": "max_guests_per_chef_secondary",
    },
    "costs": {
        "food_cost_percent_private": "primary_food_cost_percent",
        "food_cost_percent_buffet": "secondary_food_cost_percent",
    },
}
DEPRECATED_FIELDS: Dict[str, Tuple[str, ...]] = {
    "private_labor": ("overflow_chef_base_percent", "overflow_chef_cap_percent"),
}


def _normalize_record(record) -> Dict:
    if record is None:
        return normalize_rules(None)
    normalized = normalize_rules(record.params_dict())
    normalized["name"] = record.name
    return normalized


def load_active_rules(conn) -> Dict:
    """Return the most recently saved rule set, normalized."""
    if conn is None:
        return normalize_rules(None)
    if callable(conn):
        with conn() as session:
            return _normalize_record(get_active_rule_set(session))
    return _normalize_record(get_active_rule_set(conn))


def ensure_default_rules(session_factory) -> None:
    """Seed the default rule set once so the calculators have something to read."""

    with session_factory() as session:
        if get_active_rule_set(session):
            return
        payload = build_default_rules()
        name = payload.pop("name", "Default Rules")
        payload["schema_version"] = CURRENT_SCHEMA_VERSION
        upsert_rule_set(session, name, payload, edited_by="system")


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _coerce_field(default: Any, value: Any) -> Tuple[bool, Any]:
    """Return (accepted, value) for a stored value against its default's type."""
    if value is None:
        return False, None
    if isinstance(default, bool):
        return (True, value) if isinstance(value, bool) else (False, None)
    if default is None or _is_number(default):
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return False, None
        if not _is_number(value) or not math.isfinite(value):
            return False, None
        return True, value
    if isinstance(default, str):
        return (True, value) if isinstance(value, str) else (False, None)
    if isinstance(default, list):
        return (True, copy.deepcopy(value)) if isinstance(value, list) else (False, None)
    return True, copy.deepcopy(value)


def _merge_section(
    base: Dict[str, Any],
    layer: Any,
    *,
    nullable: Iterable[str] = (),
    label: str = "",
) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    if not isinstance(layer, dict):
        return merged
    allow_none = set(nullable)
    for key, value in layer.items():
        if key not in merged:
            continue
        if value is None and key in allow_none:
            merged[key] = None
            continue
        accepted, coerced = _coerce_field(merged[key], value)
        if not accepted:
            logger.debug("Discarding invalid rule value %s.%s=%r", label or "?", key, value)
            continue
        merged[key] = coerced
    return merged


def resolve_layers(*layers: Any, nullable: Iterable[str] = (), label: str = "") -> Dict[str, Any]:
    """Merge dict layers in precedence order (defaults -> stored -> per-call).

    The first layer fixes the known keys and their types. Later layers only
    replace a key when their value is valid for that type; ``None`` is skipped
    unless the key is listed in ``nullable``.
    """
    if not layers:
        return {}
    base = layers[0] if isinstance(layers[0], dict) else {}
    resolved = copy.deepcopy(base)
    for layer in layers[1:]:
        resolved = _merge_section(resolved, layer, nullable=nullable, label=label)
    return resolved


def _snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _snake_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            (_snake_case(key) if isinstance(key, str) else key): _snake_keys(item)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_snake_keys(item) for item in value]
    return value


def _migrate_camel_case_keys(payload: Dict[str, Any]) -> Dict[str, Any]:
    return _snake_keys(payload)


def _migrate_slot_names(payload: Dict[str, Any]) -> Dict[str, Any]:
    for section_name, renames in LEGACY_FIELD_NAMES.items():
        section = payload.get(section_name)
        if not isinstance(section, dict):
            continue
        for legacy_key, current_key in renames.items():
            if legacy_key not in section:
                continue
            legacy_value = section.pop(legacy_key)
            if section.get(current_key) is None:
                section[current_key] = legacy_value
    return payload


def _migrate_deprecated_roles(payload: Dict[str, Any]) -> Dict[str, Any]:
    for section_name, keys in DEPRECATED_FIELDS.items():
        section = payload.get(section_name)
        if not isinstance(section, dict):
            continue
        for key in keys:
            section.pop(key, None)
    return payload


MIGRATIONS: List[Tuple[int, Callable[[Dict[str, Any]], Dict[str, Any]]]] = [
    (1, _migrate_camel_case_keys),
    (2, _migrate_slot_names),
    (3, _migrate_deprecated_roles),
]


def _stored_version(payload: Dict[str, Any]) -> int:
    raw = payload.get("schema_version", payload.get("schemaVersion", 0))
    try:
        return max(0, int(raw))
    except (TypeError, ValueError):
        return 0


def migrate_rules(stored: Any) -> Dict[str, Any]:
    """Upgrade a stored payload to the current field names without merging defaults."""
    if not isinstance(stored, dict):
        return {"schema_version": CURRENT_SCHEMA_VERSION}
    payload = copy.deepcopy(stored)
    version = _stored_version(payload)
    for target_version, step in MIGRATIONS:
        if version < target_version:
            payload = step(payload)
            version = target_version
    payload.pop("schemaVersion", None)
    payload["schema_version"] = max(version, CURRENT_SCHEMA_VERSION)
    return payload


def _finite_number(value: Any) -> Optional[float]:
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not _is_number(value) or not math.isfinite(value):
        return None
    return float(value)


def _normalize_profiles(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    profiles: List[Dict[str, Any]] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        profile_id = entry.get("id")
        if profile_id is None or str(profile_id).strip() == "":
            logger.debug("Dropping staffing profile without id: %r", entry)
            continue
        min_guests = _finite_number(entry.get("min_guests"))
        max_guests = _finite_number(entry.get("max_guests"))
        min_guests = 0.0 if min_guests is None else min_guests
        max_guests = float(OPEN_ENDED_MAX_GUESTS) if max_guests is None else max_guests
        if min_guests > max_guests:
            logger.debug("Dropping staffing profile %r: min_guests > max_guests", profile_id)
            continue
        roles = entry.get("roles")
        event_type = normalize_event_type(entry.get("event_type")) or ANY_EVENT_TYPE
        profiles.append(
            {
                "id": str(profile_id),
                "name": str(entry.get("name") or profile_id),
                "event_type": event_type,
                "min_guests": int(min_guests) if min_guests.is_integer() else min_guests,
                "max_guests": int(max_guests) if max_guests.is_integer() else max_guests,
                "roles": list(roles) if isinstance(roles, list) else [],
            }
        )
    return profiles


def _normalize_protein_add_ons(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return copy.deepcopy(DEFAULT_PROTEIN_ADD_ONS)
    add_ons: List[Dict[str, Any]] = []
    for entry in value:
        if not isinstance(entry, dict):
            continue
        protein = entry.get("protein")
        label = entry.get("label")
        price = _finite_number(entry.get("price_per_person"))
        if not isinstance(protein, str) or not isinstance(label, str) or price is None:
            continue
        add_ons.append({"protein": protein, "label": label, "price_per_person": price})
    return add_ons or copy.deepcopy(DEFAULT_PROTEIN_ADD_ONS)


def _normalize_owners(stored_section: Any) -> List[Dict[str, Any]]:
    section = stored_section if isinstance(stored_section, dict) else {}
    owners: List[Dict[str, Any]] = []
    raw_owners = section.get("owners")
    if isinstance(raw_owners, list):
        for entry in raw_owners:
            if not isinstance(entry, dict):
                continue
            owner_id = entry.get("id")
            equity = _finite_number(entry.get("equity_percent"))
            if owner_id is None or equity is None:
                continue
            owners.append(
                {"id": str(owner_id), "name": str(entry.get("name") or owner_id), "equity_percent": equity}
            )
    if owners:
        return owners
    # Older payloads only carried a two-way split.
    legacy_a = _finite_number(section.get("owner_a_equity_percent"))
    legacy_b = _finite_number(section.get("owner_b_equity_percent"))
    derived = copy.deepcopy(DEFAULT_OWNERS)
    if legacy_a is not None:
        derived[0]["equity_percent"] = legacy_a
    if legacy_b is not None:
        derived[1]["equity_percent"] = legacy_b
    return derived


def _enforce_positive(section_name: str, section: Dict[str, Any], default: Dict[str, Any]) -> None:
    for key in POSITIVE_KEYS.get(section_name, ()):
        value = section.get(key)
        if not _is_number(value) or value <= 0:
            logger.debug("Discarding non-positive rule value %s.%s=%r", section_name, key, value)
            section[key] = default[key]


def normalize_rules(stored: Any = None) -> Dict[str, Any]:
    """Merge a stored (possibly partial or legacy) rule set over the defaults.

    Invalid values fall back to defaults; this function never raises.
    """
    payload = migrate_rules(stored)
    normalized: Dict[str, Any] = {
        "name": payload.get("name") if isinstance(payload.get("name"), str) else BASELINE_RULES["name"],
        "schema_version": CURRENT_SCHEMA_VERSION,
    }
    for section_name in SECTION_NAMES:
        default = BASELINE_RULES[section_name]
        section = resolve_layers(default, payload.get(section_name), label=section_name)
        _enforce_positive(section_name, section, default)
        normalized[section_name] = section
    stored_staffing = payload.get("staffing") if isinstance(payload.get("staffing"), dict) else {}
    normalized["staffing"]["profiles"] = _normalize_profiles(stored_staffing.get("profiles"))
    stored_pricing = payload.get("pricing") if isinstance(payload.get("pricing"), dict) else {}
    normalized["pricing"]["protein_add_ons"] = (
        _normalize_protein_add_ons(stored_pricing.get("protein_add_ons"))
        if "protein_add_ons" in stored_pricing
        else copy.deepcopy(DEFAULT_PROTEIN_ADD_ONS)
    )
    normalized["profit_distribution"]["owners"] = _normalize_owners(payload.get("profit_distribution"))
    return normalized


def merge_rules_overrides(rules: Dict[str, Any], overrides: Any) -> Dict[str, Any]:
    """Apply a partial rule dict on top of an already normalized rule set."""
    if not isinstance(overrides, dict) or not overrides:
        return copy.deepcopy(rules)
    patch = migrate_rules(overrides)
    merged = copy.deepcopy(rules)
    for section_name in SECTION_NAMES:
        base = merged.get(section_name)
        if not isinstance(base, dict):
            base = copy.deepcopy(BASELINE_RULES[section_name])
        section = resolve_layers(base, patch.get(section_name), label=section_name)
        _enforce_positive(section_name, section, BASELINE_RULES[section_name])
        merged[section_name] = section

    staffing_patch = patch.get("staffing") if isinstance(patch.get("staffing"), dict) else {}
    profiles = staffing_patch.get("profiles")
    merged["staffing"]["profiles"] = (
        _normalize_profiles(profiles)
        if isinstance(profiles, list)
        else _normalize_profiles(rules.get("staffing", {}).get("profiles"))
    )
    pricing_patch = patch.get("pricing") if isinstance(patch.get("pricing"), dict) else {}
    merged["pricing"]["protein_add_ons"] = _normalize_protein_add_ons(
        pricing_patch["protein_add_ons"]
        if "protein_add_ons" in pricing_patch
        else rules.get("pricing", {}).get("protein_add_ons")
    )
    distribution_patch = patch.get("profit_distribution") if isinstance(patch.get("profit_distribution"), dict) else {}
    owners = distribution_patch.get("owners")
    if not isinstance(owners, list) or not owners:
        owners = rules.get("profit_distribution", {}).get("owners")
    merged["profit_distribution"]["owners"] = _normalize_owners({"owners": owners})
    return merged
