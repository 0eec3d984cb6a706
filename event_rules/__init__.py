"""Pricing, staffing, labor and profit rules for catered events."""

from .financials.api import compute_financials
from .models import EventFinancials, EventInput, StaffPayOverride
from .rules import normalize_rules

__all__ = [
    "EventFinancials",
    "EventInput",
    "StaffPayOverride",
    "compute_financials",
    "normalize_rules",
]
