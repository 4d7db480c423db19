from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..services.analytics_service import AnalyticsService
from ..services.maintenance_service import MaintenanceService
from ..services.user_service import UserService
from ..utils.constants import Role
from ..utils.context import current_user
from ..utils.decorators import role_required
from .helpers import body

bp = Blueprint("staff", __name__, url_prefix="/staff")


@bp.before_request
@role_required(*Role.BACK_OFFICE)
def _back_office_only():
    """Every /staff route is for admins and staff."""


# ---------------- users ----------------
@bp.get("/users")
def staff_users():
    return jsonify(UserService.list_users(role=request.args.get("role") or None, q=request.args.get("q")))


@bp.post("/users")
def staff_add_user():
    data = body()
    user = UserService.admin_create_user(
        current_user(),
        username=data.get("username"),
        role=data.get("role") or Role.CUSTOMER,
        password=data.get("password") or "",
        email=data.get("email"),
        name=data.get("name"),
        phone=data.get("phone"),
    )
    return jsonify(user), 201


@bp.delete("/users/<uid>")
def staff_delete_user(uid):
    UserService.admin_delete_user(current_user(), uid)
    return jsonify({"success": True})


@bp.patch("/users/<uid>/role")
@role_required(Role.ADMIN)
def staff_set_role(uid):
    return jsonify(UserService.set_role(current_user(), uid, body().get("role")))


# ---------------- maintenance ----------------
@bp.get("/maintenance")
def staff_maintenance():
    return jsonify(MaintenanceService.list_records(
        vehicle_id=request.args.get("vehicle_id") or None,
        status=request.args.get("status") or None,
    ))


@bp.post("/maintenance")
def staff_add_maintenance():
    return jsonify(MaintenanceService.create_record(body())), 201


@bp.put("/maintenance/<rid>")
def staff_update_maintenance(rid):
    return jsonify(MaintenanceService.update_record(rid, body()))


@bp.delete("/maintenance/<rid>")
def staff_delete_maintenance(rid):
    MaintenanceService.delete_record(rid)
    return jsonify({"success": True})


# ---------------- analytics ----------------
@bp.get("/analytics")
def staff_analytics():
    """Back-office dashboard: revenue, booking counts, most rented cars."""
    return jsonify(AnalyticsService.analytics())
