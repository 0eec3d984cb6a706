from __future__ import annotations

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

from ..models import StaffingPlan, StaffPosition
from ..roles import (
    ANY_EVENT_TYPE,
    ASSISTANT,
    BUFFET,
    FULL,
    LEAD,
    PRIMARY,
    is_chef_role,
    resolve_event_type,
    role_entry,
    role_pay_settings,
)


logger = logging.getLogger(__name__)


def _range_width(profile: Dict[str, Any]) -> float:
    return float(profile["max_guests"]) - float(profile["min_guests"])


def find_matching_profile(
    profiles: Sequence[Dict[str, Any]],
    event_type: str,
    guest_count: int,
    staffing_profile_id: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Return the explicit profile, else the most specific profile covering the event."""
    if staffing_profile_id:
        for profile in profiles:
            if profile.get("id") == staffing_profile_id:
                return profile
        logger.debug("Staffing profile %r not found; auto-matching instead", staffing_profile_id)

    resolved_type = resolve_event_type(event_type)
    candidates = [
        profile
        for profile in profiles
        if profile.get("event_type") in (resolved_type, ANY_EVENT_TYPE)
        and float(profile["min_guests"]) <= guest_count <= float(profile["max_guests"])
    ]
    if not candidates:
        return None
    # Stable sort keeps configuration order among exact ties.
    candidates.sort(key=lambda profile: (0 if profile.get("event_type") == resolved_type else 1, _range_width(profile)))
    return candidates[0]


def _position(rules: Dict[str, Any], role: str, owner_role: Optional[str] = None) -> StaffPosition:
    base_pay_percent, cap_percent = role_pay_settings(rules, role)
    return StaffPosition(
        role=role,
        base_pay_percent=base_pay_percent,
        cap_percent=cap_percent,
        is_owner=owner_role is not None,
        owner_role=owner_role,
    )


def plan_from_profile(profile: Dict[str, Any], rules: Dict[str, Any]) -> StaffingPlan:
    chef_roles: List[str] = []
    staff: List[StaffPosition] = []
    assistant_needed = False
    for entry in profile.get("roles") or []:
        # role_entry() is where stored "overflow" tags become "full".
        role, owner_role = role_entry(entry)
        if role is None:
            logger.debug("Skipping unknown role %r in staffing profile %r", entry, profile.get("id"))
            continue
        if role == ASSISTANT:
            assistant_needed = True
        elif is_chef_role(role):
            chef_roles.append(role)
        staff.append(_position(rules, role, owner_role))
    return StaffingPlan(
        chef_roles=chef_roles,
        assistant_needed=assistant_needed,
        total_staff_count=len(staff),
        staff=staff,
        matched_profile_id=profile.get("id"),
        matched_profile_name=profile.get("name"),
    )


def _secondary_fallback(guest_count: int, rules: Dict[str, Any]) -> StaffingPlan:
    max_per_chef = float(rules["staffing"]["max_guests_per_chef_secondary"])
    chefs_needed = math.ceil(guest_count / max_per_chef)
    chef_roles = [BUFFET] * chefs_needed
    staff = [_position(rules, role) for role in chef_roles]
    return StaffingPlan(
        chef_roles=chef_roles,
        assistant_needed=False,
        total_staff_count=len(staff),
        staff=staff,
    )


def _primary_fallback(guest_count: int, rules: Dict[str, Any]) -> StaffingPlan:
    staffing = rules["staffing"]
    max_per_chef = float(staffing["max_guests_per_chef_primary"])
    chef_roles = [LEAD]
    if guest_count > max_per_chef:
        additional_chefs = math.ceil((guest_count - max_per_chef) / max_per_chef)
        chef_roles.extend([FULL] * additional_chefs)
    staff = [_position(rules, role) for role in chef_roles]
    assistant_needed = bool(staffing["assistant_required"])
    if assistant_needed:
        staff.append(_position(rules, ASSISTANT))
    return StaffingPlan(
        chef_roles=chef_roles,
        assistant_needed=assistant_needed,
        total_staff_count=len(staff),
        staff=staff,
    )


def plan_staffing(
    guest_count: int,
    event_type: str,
    rules: Dict[str, Any],
    staffing_profile_id: Optional[str] = None,
) -> StaffingPlan:
    profiles = rules["staffing"].get("profiles") or []
    profile = find_matching_profile(profiles, event_type, guest_count, staffing_profile_id)
    if profile is not None:
        return plan_from_profile(profile, rules)
    if resolve_event_type(event_type) == PRIMARY:
        return _primary_fallback(guest_count, rules)
    return _secondary_fallback(guest_count, rules)
