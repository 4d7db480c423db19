"""Customer reviews of cars they have rented."""

from __future__ import annotations

import logging
from typing import Optional

from carrental.exceptions import ReviewNotEligibleError, ValidationError, VehicleNotFoundError
from carrental.models.user import UserBase
from carrental.services.common import _store, _text, to_float_safe, to_int_safe
from carrental.utils.constants import BookingStatus

log = logging.getLogger(__name__)

LATEST_LIMIT = 20


def _score(name: str, value, required: bool = False) -> Optional[int]:
    """A whole number of stars between 1 and 5; optional scores may be left out."""
    if value in (None, "") and not required:
        return None
    val = to_int_safe(value)
    if isinstance(value, bool) or val is None or val != to_float_safe(value) or not 1 <= val <= 5:
        raise ValidationError(f"'{name}' must be a whole number from 1 to 5")
    return val


class ReviewService:

    @staticmethod
    def create_review(user: UserBase, vehicle_id: str, booking_id: str, rating, comment=None,
                      cleanliness=None, comfort=None, value_for_money=None) -> dict:
        """
        Only the customer of a completed booking may review the car, and only
        once per booking.
        """
        st = _store()
        if st.get_vehicle(vehicle_id) is None:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")
        if not _text(booking_id):
            raise ValidationError("'booking_id' is required")
        record = {
            "rating": _score("rating", rating, required=True),
            "cleanliness": _score("cleanliness", cleanliness),
            "comfort": _score("comfort", comfort),
            "value_for_money": _score("value_for_money", value_for_money),
            "comment": _text(comment) or None,
        }

        b = st.bookings.get(_text(booking_id))
        if (not b or not user.owns(b) or b.get("vehicle_id") != vehicle_id
                or b.get("status") != BookingStatus.COMPLETED):
            raise ReviewNotEligibleError()

        rid = st.insert_review(dict(record, vehicle_id=vehicle_id, booking_id=b["booking_id"],
                                    user_id=user.user_id))
        log.info("review %s on vehicle %s by %s (%d stars)", rid, vehicle_id, user.user_id, record["rating"])
        return st.reviews[rid]

    @staticmethod
    def reviews_for_vehicle(vehicle_id: str) -> dict:
        st = _store()
        if st.get_vehicle(vehicle_id) is None:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")

        rows = sorted(st.reviews_for_vehicle(vehicle_id), key=lambda r: r.get("created_at") or "", reverse=True)
        reviews = []
        for r in rows[:LATEST_LIMIT]:
            author = st.get_user(r.get("user_id")) or {}
            reviews.append(dict(r, reviewer=author.get("name") or author.get("username")))

        ratings = [r["rating"] for r in reviews]
        avg = sum(ratings) / len(ratings) if ratings else 0
        return {
            "reviews": reviews,
            "stats": {
                "count": len(reviews),
                "averageRating": round(avg, 1),
                "distribution": [{"star": s, "count": ratings.count(s)} for s in (5, 4, 3, 2, 1)],
            },
        }
