from __future__ import annotations

from collections import Counter, defaultdict

from carrental.services.common import _store
from carrental.utils.constants import BookingStatus, PaymentStatus


class AnalyticsService:
    """Aggregations for the back-office analytics dashboard."""

    @staticmethod
    def analytics(top_n: int = 5) -> dict:
        store = _store()
        bookings = store.values("bookings")

        # Revenue only counts rentals that are finished and paid for
        earned = [b for b in bookings
                  if b.get("status") == BookingStatus.COMPLETED and b.get("payment_status") == PaymentStatus.PAID]
        revenue = round(sum(float(b.get("total_amount") or 0) for b in earned), 2)

        status_cnt = Counter(b.get("status") for b in bookings)

        # Bookings per vehicle (cancelled/rejected do not count as rentals)
        cnt = Counter(b.get("vehicle_id") for b in bookings
                      if b.get("status") not in (BookingStatus.CANCELLED, BookingStatus.REJECTED))
        most_rented = []
        for vid, n in cnt.most_common(top_n):
            v = store.vehicles.get(vid, {})
            label = f"{v.get('make', '')} {v.get('model', '')}".strip()
            most_rented.append({"vehicle_id": vid, "label": label or (vid or "")[:6], "count": n})

        # Monthly bookings and earned revenue, keyed by start month
        monthly = defaultdict(lambda: {"count": 0, "revenue": 0.0})
        for b in bookings:
            month = (b.get("start_date") or "")[:7]
            if not month:
                continue
            monthly[month]["count"] += 1
        for b in earned:
            monthly[(b.get("start_date") or "")[:7]]["revenue"] += float(b.get("total_amount") or 0)
        monthly_bookings = [
            {"month": k, "count": v["count"], "revenue": round(v["revenue"], 2)}
            for k, v in sorted(monthly.items())
        ]

        maintenance_costs = round(sum(float(r.get("cost") or 0) for r in store.values("maintenance")), 2)

        return {
            "totalRevenue": revenue,
            "totalBookings": len(bookings),
            "activeBookings": status_cnt.get(BookingStatus.CONFIRMED, 0),
            "pendingBookings": status_cnt.get(BookingStatus.PENDING, 0),
            "cancelledBookings": status_cnt.get(BookingStatus.CANCELLED, 0),
            "totalCars": len(store.vehicles),
            "totalUsers": len(store.users),
            "mostRentedCars": most_rented,
            "monthlyBookings": monthly_bookings,
            "maintenanceCosts": maintenance_costs,
        }
