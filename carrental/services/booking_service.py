"""Booking use cases: create, manual create, cancel, status and payment changes, invoice."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from carrental.exceptions import (
    BookingNotFoundError,
    PermissionDeniedError,
    PastStartError,
    StorageConflictError,
    ValidationError,
    VehicleNotFoundError,
    error_for,
)
from carrental.models.availability import (
    DateRange,
    can_create_booking,
    check_customer_cancel,
    check_staff_cancel,
    check_transition,
)
from carrental.models.store import Store
from carrental.models.user import UserBase
from carrental.models.vehicle import Addons, Quote, Vehicle
from carrental.services.common import (
    _store,
    _text,
    _today,
    as_date,
    parse_range,
    round2,
    to_float_safe,
    vehicle_calendar,
    vehicle_from_dict,
)
from carrental.services.notification_service import NotificationService
from carrental.utils.constants import (
    BookingSource,
    BookingStatus,
    NotificationType,
    PaymentStatus,
    RejectionReason,
    Role,
)
from carrental.utils.filters import fmt_iso_local
from carrental.utils.security import EMAIL_PATTERN, PHONE_PATTERN, generate_hash

log = logging.getLogger(__name__)

STATUS_NOTIFICATIONS = {
    BookingStatus.CONFIRMED: (NotificationType.BOOKING_CONFIRMED, "Booking confirmed",
                              "Your booking for {car} from {start} has been confirmed!"),
    BookingStatus.REJECTED: (NotificationType.BOOKING_REJECTED, "Booking rejected",
                             "Your booking for {car} was not approved."),
    BookingStatus.COMPLETED: (NotificationType.BOOKING_COMPLETED, "Rental complete",
                              "Thank you! Your rental of {car} is complete."),
}


def invoice_number(booking_id: str, year: int) -> str:
    """INV-{YEAR}-{first 6 chars of the booking id, upper-cased}, e.g. INV-2026-A1B2C3."""
    return f"INV-{year}-{booking_id[:6].upper()}"


def _rejection_message(reason: str, vehicle: Vehicle) -> str:
    limits = vehicle.constraints()
    return {
        RejectionReason.INVALID_RANGE: "End date must be after start date",
        RejectionReason.DURATION_OUT_OF_BOUNDS:
            f"Rental must be between {limits.effective_min} and {limits.effective_max} days",
        RejectionReason.DATE_CONFLICT: "Selected dates overlap with existing bookings",
    }.get(reason, reason)


class BookingService:
    """
    Every write goes through the availability engine first and then through
    Store.insert_booking, which re-checks overlap under the store lock.
    """

    # --------------- helpers ---------------
    @staticmethod
    def _vehicle(st: Store, vehicle_id: str) -> Vehicle:
        veh = vehicle_from_dict(st.get_vehicle(vehicle_id))
        if veh is None:
            raise VehicleNotFoundError(f"Error: vehicle with ID '{vehicle_id}' not found")
        return veh

    @staticmethod
    def _booking(st: Store, booking_id: str) -> dict:
        b = st.bookings.get(booking_id)
        if not b:
            raise BookingNotFoundError()
        return b

    @staticmethod
    def _admit(st: Store, vehicle: Vehicle, rng: DateRange) -> None:
        """Raise the matching RentalError unless the engine accepts the range."""
        if not vehicle.is_bookable:
            raise ValidationError(f"Vehicle is {vehicle.status} and cannot be booked",
                                  reason=RejectionReason.VEHICLE_UNAVAILABLE)
        bookings, blocks = vehicle_calendar(st, vehicle.vehicle_id)
        verdict = can_create_booking(rng, vehicle.constraints(), bookings, blocks)
        if verdict is not None:
            log.info("booking rejected: vehicle=%s range=%s..%s reason=%s",
                     vehicle.vehicle_id, rng.start, rng.end, verdict)
            raise error_for(verdict, _rejection_message(verdict, vehicle))

    @staticmethod
    def quote(vehicle: Vehicle, rng: DateRange, addons: Optional[dict] = None) -> Quote:
        extras = Addons.from_dict(addons)
        return Quote(
            days=rng.days,
            base_amount=round2(vehicle.price_for_days(rng.days)),
            addons_amount=round2(extras.cost_for(rng.days)),
            addons=extras.to_dict(),
        )

    @staticmethod
    def _insert(st: Store, vehicle: Vehicle, rng: DateRange, q: Quote, **fields) -> dict:
        record = {
            "vehicle_id": vehicle.vehicle_id,
            "start_date": rng.start.isoformat(),
            "end_date": rng.end.isoformat(),
            "days": q.days,
            "price_per_day": vehicle.price_per_day,
            "base_amount": q.base_amount,
            "addons": q.addons,
            "addons_amount": q.addons_amount,
            "total_amount": q.total_amount,
        }
        record.update(fields)
        bid = st.insert_booking(record)
        log.info("booking %s created: vehicle=%s %s..%s status=%s",
                 bid, vehicle.vehicle_id, rng.start, rng.end, record.get("status"))
        return st.bookings[bid]

    # --------------- Commands ---------------
    @staticmethod
    def create_booking(user: UserBase, vehicle_id: str, start, end, addons: Optional[dict] = None) -> dict:
        """
        Customer booking. Starts in 'pending' and waits for staff confirmation.
        Rejections, in order: past start date, vehicle not active, then the
        engine's invalid range / duration / date conflict. A lost race at
        insert time surfaces as StorageConflictError.
        """
        st = _store()
        vehicle = BookingService._vehicle(st, vehicle_id)
        rng = parse_range(start, end)
        if rng.start < _today():
            raise PastStartError("Start date cannot be in the past")
        BookingService._admit(st, vehicle, rng)

        q = BookingService.quote(vehicle, rng, addons)
        booking = BookingService._insert(
            st, vehicle, rng, q,
            user_id=user.user_id,
            status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            booking_source=BookingSource.ONLINE,
            created_by_user_id=user.user_id,
        )

        NotificationService.notify_roles(
            Role.BACK_OFFICE, NotificationType.BOOKING_CREATED, "New booking request",
            f"{vehicle.label} booked {rng.start} to {rng.end} by {user.username}",
            href=f"/api/bookings/{booking['booking_id']}")
        NotificationService.notify_user(
            user.user_id, NotificationType.BOOKING_CREATED, "Booking submitted",
            f"Your booking for {vehicle.label} has been submitted and is awaiting confirmation.")
        return booking

    @staticmethod
    def create_manual_booking(user: UserBase, payload: dict) -> dict:
        """
        Back-office booking for a walk-in or phone customer, confirmed at once.
        The customer is looked up by email and created when unknown.
        """
        if not user.is_back_office:
            raise PermissionDeniedError()
        st = _store()

        email = _text(payload.get("email")).lower()
        name = _text(payload.get("name"))
        phone = _text(payload.get("phone"))
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email address")
        if len(name) < 2:
            raise ValidationError("Name must be at least 2 characters")
        if not PHONE_PATTERN.match(phone):
            raise ValidationError("Invalid phone number")

        payment_status = _text(payload.get("payment_status")).lower() or PaymentStatus.PENDING
        if payment_status not in PaymentStatus.ALL:
            raise ValidationError("Invalid payment status")

        vehicle = BookingService._vehicle(st, payload.get("vehicle_id"))
        rng = parse_range(payload.get("start_date"), payload.get("end_date"))
        BookingService._admit(st, vehicle, rng)

        customer = st.find_user_by_email(email) or st.find_user(email)
        created = customer is None
        if customer:
            customer_id = customer["user_id"]
        else:
            customer_id = st.create_user(email, generate_hash(secrets.token_urlsafe(12)), Role.CUSTOMER,
                                         name=name, email=email, phone=phone)
            log.info("customer account %s created for manual booking", customer_id)

        q = BookingService.quote(vehicle, rng, payload.get("addons"))
        total = to_float_safe(payload.get("total_amount"))
        if total is not None and total < 0:
            raise ValidationError("Total amount must be a positive number")

        try:
            booking = BookingService._insert(
                st, vehicle, rng, q,
                user_id=customer_id,
                status=BookingStatus.CONFIRMED,
                payment_status=payment_status,
                booking_source=BookingSource.MANUAL,
                created_by_role=user.role,
                created_by_user_id=user.user_id,
            )
        except StorageConflictError:
            if created:
                st.delete_user(customer_id)
                log.info("customer account %s removed, manual booking lost the race", customer_id)
            raise
        if total is not None:
            st.update_booking(booking["booking_id"], {"total_amount": round2(total)})

        NotificationService.notify_user(
            customer_id, NotificationType.BOOKING_CONFIRMED, "Booking confirmed",
            f"Your booking for {vehicle.label} from {rng.start} has been confirmed!")
        return booking

    @staticmethod
    def cancel_by_customer(user: UserBase, booking_id: str, reason: Optional[str] = None) -> dict:
        """
        Cancel one's own pending/confirmed booking strictly before its start date.
        """
        st = _store()
        b = BookingService._booking(st, booking_id)
        if not user.owns(b):
            raise PermissionDeniedError("Not allowed to cancel this booking")
        reason = _text(reason) or None

        verdict = check_customer_cancel(b.get("status"), as_date(b["start_date"]), _today())
        if verdict == RejectionReason.PAST_START:
            raise error_for(verdict, "Cannot cancel a booking that has already started")
        if verdict is not None:
            raise error_for(verdict)

        st.update_booking(booking_id, {
            "status": BookingStatus.CANCELLED,
            "cancelled_by": Role.CUSTOMER,
            "cancel_reason": reason,
            "cancelled_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        })
        log.info("booking %s cancelled by customer %s", booking_id, user.user_id)

        NotificationService.notify_roles(
            Role.BACK_OFFICE, NotificationType.BOOKING_CANCELLED, "Booking cancelled",
            f"Booking {booking_id} cancelled by customer" + (f": {reason}" if reason else ""),
            href=f"/api/bookings/{booking_id}")
        return b

    @staticmethod
    def cancel_by_staff(user: UserBase, booking_id: str, note: Optional[str]) -> dict:
        """Back-office cancel: any non-finalized booking, note mandatory, no date limit."""
        if not user.is_back_office:
            raise PermissionDeniedError()
        st = _store()
        b = BookingService._booking(st, booking_id)
        note = _text(note)

        verdict = check_staff_cancel(b.get("status"), note)
        if verdict == RejectionReason.NOTE_REQUIRED:
            raise ValidationError("A cancellation note is required", reason=verdict)
        if verdict is not None:
            raise error_for(verdict)

        st.update_booking(booking_id, {
            "status": BookingStatus.CANCELLED,
            "cancelled_by": user.role,
            "cancel_reason": note,
            "cancelled_at": datetime.now(timezone.utc).isoformat(timespec="seconds"),
        })
        log.info("booking %s cancelled by %s %s", booking_id, user.role, user.user_id)

        NotificationService.notify_user(
            b.get("user_id"), NotificationType.BOOKING_CANCELLED, "Booking cancelled",
            f"Your booking was cancelled by {user.role}. Reason: {note}")
        return b

    @staticmethod
    def update_status(user: UserBase, booking_id: str, status: str, note: Optional[str] = None) -> dict:
        """
        Staff moves a booking along pending -> confirmed/rejected and
        confirmed -> completed. Cancelling is routed to cancel_by_staff so the
        note rule applies. Completion only ever happens through this call.
        """
        if not user.is_back_office:
            raise PermissionDeniedError()
        status = _text(status).lower()
        if status not in BookingStatus.ALL:
            raise ValidationError(f"Unknown booking status '{status}'")
        if status == BookingStatus.CANCELLED:
            return BookingService.cancel_by_staff(user, booking_id, note)

        st = _store()
        b = BookingService._booking(st, booking_id)
        verdict = check_transition(b.get("status"), status)
        if verdict is not None:
            raise error_for(verdict, f"Cannot change booking from {b.get('status')} to {status}")

        if status == BookingStatus.CONFIRMED:
            # re-checked under the store lock against blocks laid while pending
            st.confirm_booking(booking_id)
        else:
            st.update_booking(booking_id, {"status": status})
        log.info("booking %s -> %s by %s", booking_id, status, user.user_id)

        if status in STATUS_NOTIFICATIONS:
            type_, title, body = STATUS_NOTIFICATIONS[status]
            veh = vehicle_from_dict(st.get_vehicle(b["vehicle_id"]))
            car = veh.label if veh else "the car"
            NotificationService.notify_user(b.get("user_id"), type_, title,
                                            body.format(car=car, start=b["start_date"]))
        return b

    @staticmethod
    def update_payment(user: UserBase, booking_id: str, payment_status, payment_method=None) -> dict:
        """Record the payment state of a booking; the customer hears when it turns paid."""
        if not user.is_back_office:
            raise PermissionDeniedError()
        payment_status = _text(payment_status).lower()
        if payment_status not in PaymentStatus.ALL:
            raise ValidationError(f"Unknown payment status '{payment_status}'")
        st = _store()
        b = BookingService._booking(st, booking_id)
        was_paid = b.get("payment_status") == PaymentStatus.PAID

        updates = {"payment_status": payment_status}
        method = _text(payment_method)
        if method:
            updates["payment_method"] = method
        if payment_status == PaymentStatus.PAID and not was_paid:
            updates["paid_at"] = datetime.now(timezone.utc).isoformat(timespec="seconds")
        st.update_booking(booking_id, updates)
        log.info("booking %s payment -> %s by %s", booking_id, payment_status, user.user_id)

        if payment_status == PaymentStatus.PAID and not was_paid:
            NotificationService.notify_user(
                b.get("user_id"), NotificationType.PAYMENT_RECEIVED, "Payment received",
                f"We received your payment of {b.get('total_amount', 0.0):.2f} for booking {booking_id}.",
                href=f"/api/bookings/{booking_id}/invoice")
        return b

    # --------------- Queries ---------------
    @staticmethod
    def get_booking(user: UserBase, booking_id: str) -> dict:
        b = BookingService._booking(_store(), booking_id)
        if not (user.is_back_office or user.owns(b)):
            raise PermissionDeniedError()
        return b

    @staticmethod
    def bookings_for_user(user_id: str) -> list[dict]:
        """Return this user's bookings with vehicle info attached, newest start first."""
        st = _store()
        out = []
        for b in st.values("bookings"):
            if b.get("user_id") != user_id:
                continue
            v = st.vehicles.get(b.get("vehicle_id"), {})
            out.append(dict(b, make=v.get("make", ""), model=v.get("model", "")))
        out.sort(key=lambda x: x.get("start_date") or "", reverse=True)
        return out

    @staticmethod
    def list_bookings(status: Optional[str] = None, vehicle_id: Optional[str] = None) -> list[dict]:
        res = _store().values("bookings")
        if status:
            res = [b for b in res if b.get("status") == status]
        if vehicle_id:
            res = [b for b in res if b.get("vehicle_id") == vehicle_id]
        res.sort(key=lambda b: b.get("created_at") or "", reverse=True)
        return res

    @staticmethod
    def invoice(user: UserBase, booking_id: str) -> dict:
        st = _store()
        b = BookingService.get_booking(user, booking_id)
        if b.get("payment_status") != PaymentStatus.PAID:
            raise ValidationError("Booking not paid", reason=RejectionReason.NOT_PAID)
        v = st.vehicles.get(b.get("vehicle_id"), {})
        customer = st.get_user(b.get("user_id")) or {}
        now = datetime.now(timezone.utc)

        lines = [{
            "description": f"{v.get('make', '')} {v.get('model', '')} x {b.get('days')} day(s)".strip(),
            "amount": b.get("base_amount", 0.0),
        }]
        if b.get("addons_amount"):
            lines.append({"description": "Add-ons", "amount": b["addons_amount"]})

        return {
            "invoice_no": invoice_number(b["booking_id"], _today().year),
            "issued_at": fmt_iso_local(now.isoformat(timespec="seconds")),
            "booking_id": b["booking_id"],
            "customer": {"name": customer.get("name") or customer.get("username"),
                         "email": customer.get("email")},
            "vehicle": {"vehicle_id": b.get("vehicle_id"), "make": v.get("make"), "model": v.get("model")},
            "start_date": fmt_iso_local(b["start_date"]),
            "end_date": fmt_iso_local(b["end_date"]),
            "lines": lines,
            "total_amount": b.get("total_amount", 0.0),
            "payment_status": b.get("payment_status"),
            "status": b.get("status"),
        }
