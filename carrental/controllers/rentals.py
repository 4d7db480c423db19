from flask import Blueprint, jsonify, request

from ..services.availability_service import AvailabilityService
from ..services.booking_service import BookingService
from ..services.review_service import ReviewService
from ..services.vehicle_service import VehicleService
from ..utils.constants import Role
from ..utils.context import current_user
from ..utils.decorators import login_required, role_required
from .helpers import body

bp = Blueprint("rentals", __name__, url_prefix="/api")


# ---------------- cars ----------------
@bp.get("/cars")
def list_cars():
    """Catalogue with filters. Empty query params are ignored."""
    args = {k: (v or "").strip() for k, v in request.args.items()}
    cars = VehicleService.filter_vehicles(
        q=args.get("q"),
        min_price=args.get("min_price"),
        max_price=args.get("max_price"),
        transmission=args.get("transmission"),
        min_seats=args.get("min_seats"),
        location=args.get("location"),
        status=args.get("status"),
    )
    return jsonify(cars)


@bp.get("/cars/<vid>")
def car_detail(vid):
    return jsonify(VehicleService.get_vehicle(vid))


@bp.post("/cars")
@role_required(*Role.BACK_OFFICE)
def create_car():
    return jsonify(VehicleService.admin_create_vehicle(body())), 201


@bp.put("/cars/<vid>")
@role_required(*Role.BACK_OFFICE)
def update_car(vid):
    return jsonify(VehicleService.update_vehicle(vid, body()))


@bp.delete("/cars/<vid>")
@role_required(*Role.BACK_OFFICE)
def delete_car(vid):
    VehicleService.delete_vehicle(vid)
    return jsonify({"success": True})


@bp.get("/cars/<vid>/availability")
def car_availability(vid):
    """Blocked ranges plus min/max rental days, for calendar rendering."""
    return jsonify(AvailabilityService.availability(vid))


@bp.get("/cars/<vid>/unavailable")
@role_required(*Role.BACK_OFFICE)
def list_unavailable(vid):
    return jsonify(AvailabilityService.list_blocks(vid))


@bp.post("/cars/<vid>/unavailable")
@role_required(*Role.BACK_OFFICE)
def create_unavailable(vid):
    data = body()
    block = AvailabilityService.create_block(
        current_user(), vid,
        start=data.get("start_date"),
        end=data.get("end_date"),
        reason=data.get("reason"),
        type_=data.get("type"),
    )
    return jsonify(block), 201


@bp.delete("/cars/<vid>/unavailable")
@role_required(*Role.BACK_OFFICE)
def delete_unavailable(vid):
    AvailabilityService.delete_block(vid, request.args.get("block_id"))
    return jsonify({"success": True})


# ---------------- bookings ----------------
@bp.post("/bookings")
@login_required
def create_booking():
    data = body()
    booking = BookingService.create_booking(
        current_user(),
        vehicle_id=data.get("vehicle_id"),
        start=data.get("start_date"),
        end=data.get("end_date"),
        addons=data.get("addons"),
    )
    return jsonify(booking), 201


@bp.get("/bookings/my-bookings")
@login_required
def my_bookings():
    return jsonify(BookingService.bookings_for_user(current_user().user_id))


@bp.get("/bookings")
@role_required(*Role.BACK_OFFICE)
def list_bookings():
    return jsonify(BookingService.list_bookings(
        status=request.args.get("status") or None,
        vehicle_id=request.args.get("vehicle_id") or None,
    ))


@bp.post("/bookings/manual")
@role_required(*Role.BACK_OFFICE)
def manual_booking():
    return jsonify(BookingService.create_manual_booking(current_user(), body())), 201


@bp.get("/bookings/<bid>")
@login_required
def booking_detail(bid):
    return jsonify(BookingService.get_booking(current_user(), bid))


@bp.get("/bookings/<bid>/invoice")
@login_required
def invoice(bid):
    return jsonify(BookingService.invoice(current_user(), bid))


@bp.patch("/bookings/<bid>/cancel")
@login_required
def cancel_booking(bid):
    """Customer cancel: own booking, before the start date."""
    booking = BookingService.cancel_by_customer(current_user(), bid, reason=body().get("reason"))
    return jsonify(booking)


@bp.patch("/bookings/<bid>/admin-cancel")
@role_required(*Role.BACK_OFFICE)
def admin_cancel_booking(bid):
    booking = BookingService.cancel_by_staff(current_user(), bid, note=body().get("admin_note"))
    return jsonify(booking)


@bp.patch("/bookings/<bid>/status")
@role_required(*Role.BACK_OFFICE)
def update_booking_status(bid):
    data = body()
    booking = BookingService.update_status(current_user(), bid, data.get("status"), note=data.get("note"))
    return jsonify(booking)


@bp.patch("/bookings/<bid>/payment")
@role_required(*Role.BACK_OFFICE)
def update_booking_payment(bid):
    data = body()
    booking = BookingService.update_payment(current_user(), bid, data.get("payment_status"),
                                            payment_method=data.get("payment_method"))
    return jsonify(booking)


# ---------------- reviews ----------------
@bp.get("/cars/<vid>/reviews")
def car_reviews(vid):
    return jsonify(ReviewService.reviews_for_vehicle(vid))


@bp.post("/reviews")
@login_required
def create_review():
    data = body()
    review = ReviewService.create_review(
        current_user(),
        vehicle_id=data.get("vehicle_id"),
        booking_id=data.get("booking_id"),
        rating=data.get("rating"),
        comment=data.get("comment"),
        cleanliness=data.get("cleanliness"),
        comfort=data.get("comfort"),
        value_for_money=data.get("value_for_money"),
    )
    return jsonify(review), 201
