from __future__ import annotations

from typing import Any, Dict, List, Tuple

from .roles import normalize_role, role_entry


EPSILON = 1e-6


def validate_rules(rules: Dict[str, Any]) -> Dict[str, Any]:
    """Return data-quality findings for a normalized rule set.

    Nothing here blocks a calculation; the report is for whoever edits the
    rules.
    """
    issues: List[Dict[str, Any]] = []
    warnings: List[Dict[str, Any]] = []
    role_errors, role_warnings = _profile_role_issues(rules)
    issues.extend(role_errors)
    warnings.extend(role_warnings)
    issues.extend(_premium_bounds_issues(rules))
    warnings.extend(_owner_equity_warnings(rules))
    warnings.extend(_profit_split_warnings(rules))
    warnings.extend(_gratuity_split_warnings(rules))
    warnings.extend(_profile_overlap_warnings(rules))
    checks = _build_validation_checklist(issues, warnings)
    return {
        "name": rules.get("name"),
        "checks": checks,
        "issues": issues,
        "warnings": warnings,
    }


def _role_entry_label(entry: Any) -> str:
    raw = entry.get("role") if isinstance(entry, dict) else entry
    return normalize_role(raw) or repr(raw)


def _profile_role_issues(rules: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    issues: List[Dict[str, Any]] = []
    warnings: List[Dict[str, Any]] = []
    for profile in rules["staffing"].get("profiles") or []:
        entries = profile.get("roles") or []
        known = [role for role, _ in (role_entry(entry) for entry in entries) if role]
        unknown = [entry for entry in entries if role_entry(entry)[0] is None]
        if not known:
            issues.append(
                {
                    "type": "profile_roles",
                    "severity": "error",
                    "profile_id": profile["id"],
                    "message": f"Staffing profile '{profile['name']}' has no recognised roles.",
                }
            )
        elif unknown:
            warnings.append(
                {
                    "type": "profile_roles",
                    "severity": "warning",
                    "profile_id": profile["id"],
                    "message": f"Staffing profile '{profile['name']}' lists unknown roles: "
                    + ", ".join(sorted(_role_entry_label(entry) for entry in unknown)),
                }
            )
    return issues, warnings


def _premium_bounds_issues(rules: Dict[str, Any]) -> List[Dict[str, Any]]:
    pricing = rules["pricing"]
    low = float(pricing["premium_add_on_min"])
    high = float(pricing["premium_add_on_max"])
    if low <= high:
        return []
    return [
        {
            "type": "premium_bounds",
            "severity": "error",
            "message": f"Premium add-on minimum ({low:g}) is above the maximum ({high:g}).",
        }
    ]


def _owner_equity_warnings(rules: Dict[str, Any]) -> List[Dict[str, Any]]:
    owners = rules["profit_distribution"].get("owners") or []
    total = sum(float(owner.get("equity_percent", 0.0)) for owner in owners)
    if abs(total - 100.0) <= EPSILON:
        return []
    return [
        {
            "type": "owner_equity",
            "severity": "warning",
            "total": total,
            "message": f"Owner equity adds up to {total:g}% instead of 100%.",
        }
    ]


def _profit_split_warnings(rules: Dict[str, Any]) -> List[Dict[str, Any]]:
    settings = rules["profit_distribution"]
    total = float(settings["business_retained_percent"]) + float(settings["owner_distribution_percent"])
    if abs(total - 100.0) <= EPSILON:
        return []
    return [
        {
            "type": "profit_split",
            "severity": "warning",
            "total": total,
            "message": f"Retained and distributed profit add up to {total:g}% instead of 100%.",
        }
    ]


def _gratuity_split_warnings(rules: Dict[str, Any]) -> List[Dict[str, Any]]:
    labor = rules["private_labor"]
    total = float(labor["chef_gratuity_split_percent"]) + float(labor["assistant_gratuity_split_percent"])
    if total <= 100.0 + EPSILON:
        return []
    return [
        {
            "type": "gratuity_split",
            "severity": "warning",
            "total": total,
            "message": f"Chef and assistant gratuity splits add up to {total:g}%, more than the gratuity collected.",
        }
    ]


def _profile_overlap_warnings(rules: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Same event type, overlapping range and equal width: list order decides the match."""
    warnings: List[Dict[str, Any]] = []
    profiles = rules["staffing"].get("profiles") or []
    for index, first in enumerate(profiles):
        for second in profiles[index + 1:]:
            if first["event_type"] != second["event_type"]:
                continue
            if first["max_guests"] < second["min_guests"] or second["max_guests"] < first["min_guests"]:
                continue
            if (first["max_guests"] - first["min_guests"]) != (second["max_guests"] - second["min_guests"]):
                continue
            warnings.append(
                {
                    "type": "profile_overlap",
                    "severity": "warning",
                    "profile_ids": [first["id"], second["id"]],
                    "message": f"Profiles '{first['name']}' and '{second['name']}' overlap with the same range "
                    f"width; '{first['name']}' wins because it is listed first.",
                }
            )
    return warnings


def _build_validation_checklist(
    issues: List[Dict[str, Any]],
    warnings: List[Dict[str, Any]],
) -> List[Dict[str, str]]:
    def _status(types: set, pool: List[Dict[str, Any]], failing: str) -> str:
        return failing if any(item["type"] in types for item in pool) else "pass"

    return [
        {
            "label": "Staffing profiles usable?",
            "status": _status({"profile_roles"}, issues, "fail"),
        },
        {"label": "Premium add-on bounds ordered?", "status": _status({"premium_bounds"}, issues, "fail")},
        {"label": "Owner equity sums to 100%?", "status": _status({"owner_equity"}, warnings, "warn")},
        {"label": "Profit split sums to 100%?", "status": _status({"profit_split"}, warnings, "warn")},
        {"label": "Gratuity splits within 100%?", "status": _status({"gratuity_split"}, warnings, "warn")},
        {"label": "Profile matching unambiguous?", "status": _status({"profile_overlap"}, warnings, "warn")},
    ]
