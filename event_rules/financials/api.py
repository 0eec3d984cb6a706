from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Union

from ..models import EventFinancials, EventInput
from ..roles import is_known_event_type
from .costs import cost
from .labor import compensate
from .pricing import price
from .profit import distribute
from .safety import check_limits
from .staffing import plan_staffing


logger = logging.getLogger(__name__)


def compute_financials(event_input: Union[EventInput, Mapping[str, Any]], rules: Dict[str, Any]) -> EventFinancials:
    """Full financial breakdown for one event.

    ``rules`` should already be normalized (see ``normalize_rules``); it is
    read, never modified.
    """
    if not isinstance(event_input, EventInput):
        event_input = EventInput.from_dict(event_input)
    if not is_known_event_type(event_input.event_type):
        logger.warning("Unknown event type %r; using the secondary pricing and staffing path", event_input.event_type)

    pricing = price(event_input, rules)
    subtotal = pricing["subtotal"]
    gratuity = pricing["gratuity"]
    costs = cost(event_input, rules, subtotal, pricing["pricing_slot"])

    guest_count = event_input.guest_count
    plan = plan_staffing(guest_count, event_input.event_type, rules, event_input.staffing_profile_id)
    labor = compensate(subtotal, gratuity, event_input.event_type, plan, rules, event_input.staff_pay_overrides)

    total_labor_base = sum(item.base_pay for item in labor)
    total_labor_with_gratuity = sum(item.total_calculated for item in labor)
    total_labor_paid = sum(item.final_pay for item in labor)
    total_excess_to_profit = sum(item.excess_to_profit for item in labor)
    total_revenue = subtotal + gratuity
    labor_percent = (total_labor_paid / total_revenue) * 100 if total_revenue > 0 else 0.0

    profit = distribute(subtotal, gratuity, costs["total_costs"], total_labor_paid, rules)
    warnings = check_limits(labor_percent, costs["food_cost_percent"], rules)

    return EventFinancials(
        guest_count=guest_count,
        adult_count=event_input.adults,
        child_count=event_input.children,
        pricing_slot=pricing["pricing_slot"],
        base_price=pricing["base_price"],
        child_price=pricing["child_price"],
        premium_add_on=event_input.premium_add_on,
        subtotal=subtotal,
        gratuity=gratuity,
        gratuity_percent=pricing["gratuity_percent"],
        distance_fee=pricing["distance_fee"],
        total_charged=pricing["total_charged"],
        food_cost=costs["food_cost"],
        food_cost_percent=costs["food_cost_percent"],
        supplies_cost=costs["supplies_cost"],
        transportation_cost=costs["transportation_cost"],
        total_costs=costs["total_costs"],
        staffing_plan=plan,
        labor_compensation=labor,
        total_labor_base=total_labor_base,
        total_labor_with_gratuity=total_labor_with_gratuity,
        total_labor_paid=total_labor_paid,
        total_excess_to_profit=total_excess_to_profit,
        labor_as_percent_of_revenue=labor_percent,
        gross_profit=profit["gross_profit"],
        retained_amount=profit["retained_amount"],
        retained_percent=profit["retained_percent"],
        distribution_amount=profit["distribution_amount"],
        distribution_percent=profit["distribution_percent"],
        owner_distributions=profit["owner_distributions"],
        warnings=warnings,
    )


def summarize_financials(financials: EventFinancials) -> Dict[str, Any]:
    """Compact headline numbers, rounded to cents, for listings and the CLI."""
    return {
        "guests": financials.guest_count,
        "subtotal": round(financials.subtotal, 2),
        "gratuity": round(financials.gratuity, 2),
        "distance_fee": round(financials.distance_fee, 2),
        "total_charged": round(financials.total_charged, 2),
        "total_costs": round(financials.total_costs, 2),
        "total_labor_paid": round(financials.total_labor_paid, 2),
        "gross_profit": round(financials.gross_profit, 2),
        "staff": financials.staffing_plan.total_staff_count,
        "warnings": list(financials.warnings),
    }
