from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple


def _optional_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _pick(payload: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


@dataclass(frozen=True)
class StaffPayOverride:
    role: str
    base_pay_percent: float
    gratuity_split_percent: float
    cap_percent: Optional[float] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "StaffPayOverride":
        return cls(
            role=str(_pick(payload, "role", default="")).strip().lower(),
            base_pay_percent=_optional_number(_pick(payload, "base_pay_percent", "basePayPercent")) or 0.0,
            gratuity_split_percent=_optional_number(
                _pick(payload, "gratuity_split_percent", "gratuitySplitPercent")
            )
            or 0.0,
            cap_percent=_optional_number(_pick(payload, "cap_percent", "capPercent")),
        )


def _guest_count(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{label} must be a whole number.")
    try:
        number = float(value.strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise ValueError(f"Invalid {label}: {exc}") from exc
    if not math.isfinite(number) or not number.is_integer():
        raise ValueError(f"{label} must be a whole number.")
    if number < 0:
        raise ValueError("Guest counts must be non-negative.")
    return int(number)


def _coerce_overrides(raw: Any) -> Tuple[StaffPayOverride, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(
        item if isinstance(item, StaffPayOverride) else StaffPayOverride.from_dict(item)
        for item in raw
        if isinstance(item, (StaffPayOverride, Mapping))
    )


@dataclass(frozen=True)
class EventInput:
    adults: int
    children: int = 0
    event_type: str = "primary"
    distance_miles: float = 0.0
    premium_add_on: float = 0.0
    pricing_slot: Optional[str] = None
    staffing_profile_id: Optional[str] = None
    staff_pay_overrides: Tuple[StaffPayOverride, ...] = ()
    subtotal_override: Optional[float] = None
    food_cost_override: Optional[float] = None

    def __post_init__(self) -> None:
        # Mapping entries become StaffPayOverride; anything else is dropped.
        object.__setattr__(self, "staff_pay_overrides", _coerce_overrides(self.staff_pay_overrides))

    @property
    def guest_count(self) -> int:
        return self.adults + self.children

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "EventInput":
        """Build an input from a booking-shaped mapping (snake_case or camelCase)."""
        if not isinstance(payload, Mapping):
            raise ValueError("Event input must be a mapping.")
        adults = _guest_count(_pick(payload, "adults", default=0), "adults")
        children = _guest_count(_pick(payload, "children", default=0), "children")
        try:
            distance = float(_pick(payload, "distance_miles", "distanceMiles", default=0.0))
            premium = float(_pick(payload, "premium_add_on", "premiumAddOn", default=0.0))
        except (TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"Invalid event input: {exc}") from exc
        if not math.isfinite(distance) or distance < 0:
            raise ValueError("distance_miles must be a non-negative number.")
        if not math.isfinite(premium):
            premium = 0.0
        profile_id = _pick(payload, "staffing_profile_id", "staffingProfileId")
        return cls(
            adults=adults,
            children=children,
            event_type=str(_pick(payload, "event_type", "eventType", default="primary")),
            distance_miles=distance,
            premium_add_on=premium,
            pricing_slot=_pick(payload, "pricing_slot", "pricingSlot"),
            staffing_profile_id=str(profile_id) if profile_id is not None else None,
            staff_pay_overrides=_pick(payload, "staff_pay_overrides", "staffPayOverrides", default=()),
            subtotal_override=_optional_number(_pick(payload, "subtotal_override", "subtotalOverride")),
            food_cost_override=_optional_number(_pick(payload, "food_cost_override", "foodCostOverride")),
        )


@dataclass(frozen=True)
class StaffPosition:
    role: str
    base_pay_percent: float
    cap_percent: Optional[float] = None
    is_owner: bool = False
    owner_role: Optional[str] = None


@dataclass(frozen=True)
class StaffingPlan:
    chef_roles: List[str]
    assistant_needed: bool
    total_staff_count: int
    staff: List[StaffPosition]
    matched_profile_id: Optional[str] = None
    matched_profile_name: Optional[str] = None


@dataclass(frozen=True)
class LaborCompensation:
    role: str
    base_pay: float
    gratuity_share: float
    total_calculated: float
    cap_percent: Optional[float]
    cap_amount: Optional[float]
    final_pay: float
    was_capped: bool
    excess_to_profit: float
    is_owner: bool = False
    owner_role: Optional[str] = None


@dataclass(frozen=True)
class OwnerDistribution:
    owner_id: str
    owner_name: str
    equity_percent: float
    amount: float


@dataclass(frozen=True)
class EventFinancials:
    # Revenue
    guest_count: int
    adult_count: int
    child_count: int
    pricing_slot: str
    base_price: float
    child_price: float
    premium_add_on: float
    subtotal: float
    gratuity: float
    gratuity_percent: float
    distance_fee: float
    total_charged: float
    # Costs
    food_cost: float
    food_cost_percent: float
    supplies_cost: float
    transportation_cost: float
    total_costs: float
    # Labor
    staffing_plan: StaffingPlan
    labor_compensation: List[LaborCompensation]
    total_labor_base: float
    total_labor_with_gratuity: float
    total_labor_paid: float
    total_excess_to_profit: float
    labor_as_percent_of_revenue: float
    # Profit
    gross_profit: float
    retained_amount: float
    retained_percent: float
    distribution_amount: float
    distribution_percent: float
    owner_distributions: List[OwnerDistribution] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
