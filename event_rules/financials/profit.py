from __future__ import annotations

from typing import Any, Dict

from ..models import OwnerDistribution


def distribute(
    subtotal: float,
    gratuity: float,
    total_costs: float,
    total_labor_paid: float,
    rules: Dict[str, Any],
) -> Dict[str, Any]:
    """Split gross profit into retained and owner-distributed amounts.

    ``total_labor_paid`` is after caps, so capped excess stays in gross profit.
    Owner equity percentages are applied as configured; they are not required
    to sum to 100.
    """
    settings = rules["profit_distribution"]
    gross_profit = subtotal + gratuity - total_costs - total_labor_paid
    retained_percent = float(settings["business_retained_percent"])
    distribution_percent = float(settings["owner_distribution_percent"])
    retained_amount = gross_profit * (retained_percent / 100)
    distribution_amount = gross_profit * (distribution_percent / 100)
    owner_distributions = [
        OwnerDistribution(
            owner_id=str(owner["id"]),
            owner_name=str(owner["name"]),
            equity_percent=float(owner["equity_percent"]),
            amount=distribution_amount * (float(owner["equity_percent"]) / 100),
        )
        for owner in settings.get("owners") or []
    ]
    return {
        "gross_profit": gross_profit,
        "retained_amount": retained_amount,
        "retained_percent": retained_percent,
        "distribution_amount": distribution_amount,
        "distribution_percent": distribution_percent,
        "owner_distributions": owner_distributions,
    }
