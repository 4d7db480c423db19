"""Calendar data for vehicles and back-office unavailability blocks."""

from __future__ import annotations

import logging
from typing import Optional

from carrental.exceptions import RecordNotFoundError, ValidationError, VehicleNotFoundError, error_for
from carrental.models.availability import check_block_creation, compute_blocked_ranges
from carrental.models.user import UserBase
from carrental.services.common import _store, _text, parse_range, vehicle_calendar, vehicle_from_dict
from carrental.utils.constants import BlockType, RejectionReason, VehicleStatus

log = logging.getLogger(__name__)


class AvailabilityService:
    """Read side for booking calendars plus create/delete of blocks."""

    @staticmethod
    def _vehicle(vehicle_id: str):
        veh = vehicle_from_dict(_store().get_vehicle(vehicle_id))
        if veh is None:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")
        return veh

    @staticmethod
    def availability(vehicle_id: str) -> dict:
        """
        Everything a calendar needs to disable dates: blocked ranges (active
        bookings and every block, unmerged) and the rental-length policy.
        """
        veh = AvailabilityService._vehicle(vehicle_id)
        bookings, blocks = vehicle_calendar(_store(), vehicle_id)
        limits = veh.constraints()
        return {
            "carId": vehicle_id,
            "minDays": limits.effective_min,
            "maxDays": limits.effective_max,
            "blockedDates": compute_blocked_ranges(bookings, blocks).to_list(),
            "carStatus": veh.status,
            "isAvailable": veh.status == VehicleStatus.ACTIVE,
        }

    @staticmethod
    def list_blocks(vehicle_id: str) -> list[dict]:
        AvailabilityService._vehicle(vehicle_id)
        return _store().blocks_for_vehicle(vehicle_id)

    @staticmethod
    def create_block(user: UserBase, vehicle_id: str, start, end, reason: Optional[str] = None,
                     type_: Optional[str] = None) -> dict:
        """
        Lay a maintenance hold or manual block over a date range. Refused when a
        confirmed booking already occupies any of those days.
        """
        AvailabilityService._vehicle(vehicle_id)
        rng = parse_range(start, end)
        type_ = _text(type_).lower() or BlockType.OTHER
        reason = _text(reason) or None
        if type_ not in BlockType.ALL:
            raise ValidationError(f"Block type must be one of {', '.join(BlockType.ALL)}")

        st = _store()
        bookings, _ = vehicle_calendar(st, vehicle_id)
        verdict = check_block_creation(rng, bookings)
        if verdict == RejectionReason.DATE_CONFLICT:
            raise error_for(verdict, "Confirmed booking exists in this range")
        if verdict is not None:
            raise error_for(verdict, "End date must be after start date")

        bid = st.create_block({
            "vehicle_id": vehicle_id,
            "start_date": rng.start.isoformat(),
            "end_date": rng.end.isoformat(),
            "reason": reason,
            "type": type_,
            "created_by": user.user_id,
        })
        log.info("block %s (%s) on vehicle %s: %s..%s", bid, type_, vehicle_id, rng.start, rng.end)
        return st.blocks[bid]

    @staticmethod
    def delete_block(vehicle_id: str, block_id: Optional[str]) -> None:
        if not block_id:
            raise ValidationError("block_id required")
        if not _store().delete_block(block_id, vehicle_id):
            raise RecordNotFoundError("Error: block not found")
        log.info("block %s on vehicle %s deleted", block_id, vehicle_id)
