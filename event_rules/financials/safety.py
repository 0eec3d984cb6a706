from __future__ import annotations

from typing import Any, Dict, List


def _format_limit(value: float) -> str:
    return f"{value:g}"


def check_limits(labor_percent: float, food_cost_percent: float, rules: Dict[str, Any]) -> List[str]:
    """Advisory warnings only; amounts are never changed here."""
    limits = rules["safety_limits"]
    warnings: List[str] = []
    if not limits.get("warn_when_exceeded"):
        return warnings
    max_labor = float(limits["max_total_labor_percent"])
    max_food = float(limits["max_food_cost_percent"])
    if labor_percent > max_labor:
        warnings.append(
            f"Labor cost ({labor_percent:.1f}%) exceeds maximum ({_format_limit(max_labor)}%) of total revenue"
        )
    if food_cost_percent > max_food:
        warnings.append(f"Food cost ({food_cost_percent:.1f}%) exceeds maximum ({_format_limit(max_food)}%)")
    return warnings
