from flask import Blueprint, jsonify, request

from ..services.booking_service import BookingService
from ..services.notification_service import NotificationService
from ..services.user_service import UserService
from ..utils.context import current_user
from ..utils.decorators import login_required
from .helpers import body, flag, truthy

bp = Blueprint("views", __name__)


@bp.get("/")
def home():
    user = current_user()
    return jsonify({
        "status": "ok",
        "service": "carrental",
        "user": {"user_id": user.user_id, "role": user.role} if user else None,
    })


@bp.get("/api/users/me")
@login_required
def me():
    """Dashboard data for the logged-in user: profile plus own bookings."""
    user = current_user()
    return jsonify({
        "profile": UserService.profile(user.user_id),
        "bookings": BookingService.bookings_for_user(user.user_id),
    })


@bp.get("/api/notifications")
@login_required
def notifications():
    page = request.args.get("page", default=1, type=int)
    page_size = request.args.get("page_size", default=10, type=int)
    return jsonify(NotificationService.list_for_user(
        current_user().user_id,
        unread_only=flag("unread"),
        q=request.args.get("q") or "",
        page=page,
        page_size=page_size,
    ))


@bp.patch("/api/notifications/<nid>")
@login_required
def mark_notification(nid):
    read = truthy(body().get("read", True))
    return jsonify(NotificationService.mark_read(current_user(), nid, read=read))
