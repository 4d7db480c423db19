from dataclasses import dataclass, field
from typing import Optional

from .availability import VehicleConstraints
from ..exceptions import ValidationError
from ..utils.constants import ADDON_PRICES, VehicleStatus


def _quantity(d: dict, key: str, default: int) -> int:
    value = d.get(key)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{key}' must be a whole number", reason="invalid_addons")


@dataclass
class Vehicle:
    """
    Rich vehicle model. The Store keeps raw dicts; services wrap them into
    this object for pricing and rental-length rules.
    """
    vehicle_id: str
    make: str
    model: str
    price_per_day: float
    year: Optional[int] = None
    status: str = VehicleStatus.ACTIVE  # "active" | "inactive" | "maintenance"
    min_days: Optional[int] = None
    max_days: Optional[int] = None

    @property
    def label(self) -> str:
        return f"{self.make} {self.model}".strip()

    @property
    def is_bookable(self) -> bool:
        return self.status == VehicleStatus.ACTIVE

    def constraints(self) -> VehicleConstraints:
        return VehicleConstraints(self.min_days, self.max_days)

    def price_for_days(self, days: int) -> float:
        """Base price for the rental length before add-ons."""
        return self.price_per_day * days


@dataclass
class Addons:
    """
    Optional extras chosen at booking time.
    Per-day items scale with the rental length; delivery is a flat fee and
    extra kilometres are charged per km.
    """
    driver: bool = False
    extra_km_qty: int = 0
    delivery: bool = False
    child_seat: bool = False
    child_seat_qty: int = 1
    gps_navigation: bool = False
    insurance: bool = False
    insurance_type: str = "basic"  # "basic" | "full"

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> "Addons":
        d = d or {}
        if not isinstance(d, dict):
            raise ValidationError("Add-ons must be an object", reason="invalid_addons")
        return cls(
            driver=bool(d.get("driver")),
            extra_km_qty=max(0, _quantity(d, "extra_km_qty", 0)),
            delivery=bool(d.get("delivery")),
            child_seat=bool(d.get("child_seat")),
            child_seat_qty=max(1, _quantity(d, "child_seat_qty", 1)),
            gps_navigation=bool(d.get("gps_navigation")),
            insurance=bool(d.get("insurance")),
            insurance_type="full" if d.get("insurance_type") == "full" else "basic",
        )

    def to_dict(self) -> dict:
        return dict(self.__dict__)

    def cost_for(self, days: int) -> float:
        cost = 0.0
        if self.driver:
            cost += ADDON_PRICES["driver"] * days
        if self.extra_km_qty:
            cost += self.extra_km_qty * ADDON_PRICES["extra_km"]
        if self.delivery:
            cost += ADDON_PRICES["delivery"]
        if self.child_seat:
            cost += ADDON_PRICES["child_seat"] * self.child_seat_qty * days
        if self.gps_navigation:
            cost += ADDON_PRICES["gps_navigation"] * days
        if self.insurance:
            key = "insurance_full" if self.insurance_type == "full" else "insurance_basic"
            cost += ADDON_PRICES[key] * days
        return cost


@dataclass
class Quote:
    days: int
    base_amount: float
    addons_amount: float
    addons: dict = field(default_factory=dict)

    @property
    def total_amount(self) -> float:
        return round(self.base_amount + self.addons_amount, 2)
