from __future__ import annotations

import logging

from carrental.exceptions import ValidationError, VehicleNotFoundError
from carrental.services.common import _lc, _store, _text, to_float_safe, to_int_safe
from carrental.utils.constants import BookingStatus, TRANSMISSIONS, VehicleStatus

log = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "make", "model", "year", "price_per_day", "transmission", "seats", "fuel_type",
    "location", "status", "min_days", "max_days", "description", "features", "images",
)


def _clean_vehicle_payload(payload: dict, partial: bool = False) -> dict:
    """
    Validate and normalise vehicle fields from a request body.
    With partial=True only the keys present are checked (PUT semantics).
    """
    data = {k: payload[k] for k in EDITABLE_FIELDS if k in payload}

    for key in ("make", "model"):
        if key in data or not partial:
            data[key] = _text(data.get(key))
            if not data[key]:
                raise ValidationError(f"'{key}' is required")

    if "price_per_day" in data or not partial:
        price = to_float_safe(data.get("price_per_day"))
        if price is None or price < 0:
            raise ValidationError("'price_per_day' must be a non-negative number")
        data["price_per_day"] = price

    if "status" in data or not partial:
        status = _text(data.get("status")).lower() or VehicleStatus.ACTIVE
        if status not in VehicleStatus.ALL:
            raise ValidationError("Invalid vehicle status")
        data["status"] = status

    if data.get("transmission") is not None:
        data["transmission"] = _text(data["transmission"]).lower()
        if data["transmission"] not in TRANSMISSIONS:
            raise ValidationError("Transmission must be manual or automatic")

    for key in ("year", "seats", "min_days", "max_days"):
        if data.get(key) is not None:
            val = to_int_safe(data[key])
            if val is None or val < 0:
                raise ValidationError(f"'{key}' must be a non-negative integer")
            data[key] = val

    lo, hi = data.get("min_days"), data.get("max_days")
    if lo is not None and hi is not None and lo > hi:
        raise ValidationError("'min_days' cannot exceed 'max_days'")
    if lo == 0:
        raise ValidationError("'min_days' must be at least 1")

    for key in ("features", "images"):
        if key in data and not isinstance(data[key], list):
            data[key] = [s.strip() for s in str(data[key] or "").split(",") if s.strip()]

    return data


class VehicleService:
    """Vehicle catalogue: filter, create, update, delete."""

    @staticmethod
    def filter_vehicles(q=None, min_price=None, max_price=None, transmission=None, min_seats=None,
                        location=None, status=None) -> list[dict]:
        """
        Filter vehicles by make/model keyword, price range, transmission,
        seats, location and status. Invalid numeric bounds are ignored.
        """
        res = _store().values("vehicles")

        # 1. Make/model keyword (case-insensitive, partial match)
        kw = _lc(q)
        if kw:
            res = [v for v in res if kw in _lc(v.get("make")) or kw in _lc(v.get("model"))]

        # 2. Price range (swap if reversed)
        min_val = to_float_safe(min_price)
        max_val = to_float_safe(max_price)
        if (min_val is not None) and (max_val is not None) and (min_val > max_val):
            min_val, max_val = max_val, min_val

        if (min_val is not None) or (max_val is not None):
            def within(v):
                p = to_float_safe(v.get("price_per_day"))
                if p is None:
                    return False
                if (min_val is not None) and (p < min_val):
                    return False
                if (max_val is not None) and (p > max_val):
                    return False
                return True

            res = [v for v in res if within(v)]

        # 3. Exact-match attributes
        if transmission and transmission != "all":
            res = [v for v in res if _lc(v.get("transmission")) == _lc(transmission)]
        seats = to_int_safe(min_seats)
        if seats is not None:
            res = [v for v in res if (to_int_safe(v.get("seats")) or 0) >= seats]
        if location:
            res = [v for v in res if _lc(location) in _lc(v.get("location"))]
        if status:
            res = [v for v in res if _lc(v.get("status")) == _lc(status)]

        res.sort(key=lambda v: (_lc(v.get("make")), _lc(v.get("model"))))
        return res

    @staticmethod
    def get_vehicle(vid: str) -> dict:
        """Return a vehicle dict by ID or raise VehicleNotFoundError."""
        v = _store().get_vehicle(vid)
        if v is None:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vid}' not found")
        return v

    @staticmethod
    def admin_create_vehicle(payload: dict) -> dict:
        data = _clean_vehicle_payload(payload)
        data.setdefault("features", [])
        data.setdefault("images", [])
        st = _store()
        vid = st.create_vehicle(data)
        log.info("vehicle %s created (%s %s)", vid, data["make"], data["model"])
        return st.vehicles[vid]

    @staticmethod
    def update_vehicle(vid: str, payload: dict) -> dict:
        VehicleService.get_vehicle(vid)
        data = _clean_vehicle_payload(payload, partial=True)
        st = _store()
        st.update_vehicle(vid, **data)
        return st.vehicles[vid]

    @staticmethod
    def delete_vehicle(vehicle_id: str) -> None:
        """
        Delete a vehicle only when no pending/confirmed booking references it.
        Bookings are the single source of truth, not the vehicle's status.
        """
        st = _store()
        VehicleService.get_vehicle(vehicle_id)

        has_active = any(b.get("status") in BookingStatus.ACTIVE for b in st.bookings_for_vehicle(vehicle_id))
        if has_active:
            raise ValidationError("Cannot delete: active bookings exist")

        st.delete_vehicle(vehicle_id)
        log.info("vehicle %s deleted", vehicle_id)
