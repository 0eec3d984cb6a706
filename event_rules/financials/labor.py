from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional

from ..models import LaborCompensation, StaffingPlan, StaffPayOverride, StaffPosition
from ..roles import ASSISTANT, PRIMARY, resolve_event_type
from ..rules import resolve_layers


PAY_TERM_NULLABLE = ("cap_percent", "gratuity_split_percent")


def cap_amount_for(total_revenue: float, cap_percent: Optional[float]) -> Optional[float]:
    """Caps are a percent of subtotal + gratuity; a missing or non-positive percent means no cap."""
    if cap_percent is None or isinstance(cap_percent, bool):
        return None
    if not math.isfinite(cap_percent) or cap_percent <= 0:
        return None
    return total_revenue * (cap_percent / 100)


def find_override(overrides: Optional[Iterable[StaffPayOverride]], role: str) -> Optional[StaffPayOverride]:
    for override in overrides or ():
        if override.role == role:
            return override
    return None


def resolve_pay_terms(position: StaffPosition, override: Optional[StaffPayOverride]) -> Dict[str, Any]:
    """Role defaults first, then the per-call override taken verbatim."""
    defaults = {
        "base_pay_percent": position.base_pay_percent,
        "cap_percent": position.cap_percent,
        "gratuity_split_percent": None,
    }
    if override is None:
        return defaults
    layer = {
        "base_pay_percent": override.base_pay_percent,
        "cap_percent": override.cap_percent,
        "gratuity_split_percent": override.gratuity_split_percent,
    }
    return resolve_layers(defaults, layer, nullable=PAY_TERM_NULLABLE, label="staff_pay_override")


def _default_gratuity_share(
    position: StaffPosition,
    gratuity: float,
    plan: StaffingPlan,
    rules: Dict[str, Any],
    primary_event: bool,
) -> float:
    if not primary_event:
        return gratuity / len(plan.staff) if plan.staff else 0.0
    private_labor = rules["private_labor"]
    if position.role == ASSISTANT:
        return gratuity * (float(private_labor["assistant_gratuity_split_percent"]) / 100)
    chef_pool = gratuity * (float(private_labor["chef_gratuity_split_percent"]) / 100)
    return chef_pool / max(1, len(plan.chef_roles))


def compensate(
    subtotal: float,
    gratuity: float,
    event_type: str,
    plan: StaffingPlan,
    rules: Dict[str, Any],
    overrides: Optional[Iterable[StaffPayOverride]] = None,
) -> List[LaborCompensation]:
    total_revenue = subtotal + gratuity
    primary_event = resolve_event_type(event_type) == PRIMARY
    overrides = list(overrides or ())
    compensation: List[LaborCompensation] = []
    for position in plan.staff:
        override = find_override(overrides, position.role)
        terms = resolve_pay_terms(position, override)
        cap_percent = terms["cap_percent"]
        cap_amount = cap_amount_for(total_revenue, cap_percent)

        split_percent = terms["gratuity_split_percent"]
        if override is not None and split_percent is not None:
            gratuity_share = gratuity * (split_percent / 100)
        else:
            gratuity_share = _default_gratuity_share(position, gratuity, plan, rules, primary_event)

        base_pay = subtotal * (float(terms["base_pay_percent"]) / 100)
        total_calculated = base_pay + gratuity_share
        was_capped = cap_amount is not None and total_calculated > cap_amount
        final_pay = cap_amount if was_capped else total_calculated
        compensation.append(
            LaborCompensation(
                role=position.role,
                base_pay=base_pay,
                gratuity_share=gratuity_share,
                total_calculated=total_calculated,
                cap_percent=cap_percent,
                cap_amount=cap_amount,
                final_pay=final_pay,
                was_capped=was_capped,
                excess_to_profit=total_calculated - final_pay if was_capped else 0.0,
                is_owner=position.is_owner,
                owner_role=position.owner_role,
            )
        )
    return compensation
