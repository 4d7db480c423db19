"""Maintenance records and the vehicle status they drive."""

from __future__ import annotations

import logging

from carrental.exceptions import RecordNotFoundError, ValidationError, VehicleNotFoundError
from carrental.services.common import _store, _text, as_date, round2, to_float_safe
from carrental.services.notification_service import NotificationService
from carrental.utils.constants import MaintenanceStatus, NotificationType, Role, VehicleStatus

log = logging.getLogger(__name__)


def vehicle_status_after_maintenance(current: str, maintenance_status: str, open_records: int) -> str:
    """
    An open record (pending/in_progress) puts the vehicle in maintenance.
    A fixed record restores 'active' only when no other record is still open.
    """
    if maintenance_status in MaintenanceStatus.OPEN:
        return VehicleStatus.MAINTENANCE
    if maintenance_status == MaintenanceStatus.FIXED and open_records == 0:
        return VehicleStatus.ACTIVE if current == VehicleStatus.MAINTENANCE else current
    return current


class MaintenanceService:

    @staticmethod
    def _sync_vehicle(vehicle_id: str, maintenance_status: str) -> None:
        st = _store()
        veh = st.get_vehicle(vehicle_id)
        if not veh:
            return
        open_records = sum(
            1 for r in st.values("maintenance")
            if r.get("vehicle_id") == vehicle_id and r.get("status") in MaintenanceStatus.OPEN
        )
        new_status = vehicle_status_after_maintenance(veh.get("status"), maintenance_status, open_records)
        if new_status != veh.get("status"):
            st.update_vehicle(vehicle_id, status=new_status)
            log.info("vehicle %s status %s -> %s", vehicle_id, veh.get("status"), new_status)

    @staticmethod
    def _clean(payload: dict, partial: bool = False) -> dict:
        data = {}
        if "issue" in payload or not partial:
            data["issue"] = _text(payload.get("issue"))
            if not data["issue"]:
                raise ValidationError("'issue' is required")
        if "cost" in payload or not partial:
            cost = to_float_safe(payload.get("cost") or 0)
            if cost is None or cost < 0:
                raise ValidationError("'cost' must be a non-negative number")
            data["cost"] = round2(cost)
        if "date" in payload or not partial:
            try:
                data["date"] = as_date(payload.get("date")).isoformat()
            except ValueError:
                raise ValidationError("Invalid date (YYYY-MM-DD)")
        if "status" in payload or not partial:
            status = _text(payload.get("status")).lower() or MaintenanceStatus.PENDING
            if status not in MaintenanceStatus.ALL:
                raise ValidationError("Invalid maintenance status")
            data["status"] = status
        return data

    @staticmethod
    def list_records(vehicle_id=None, status=None) -> list[dict]:
        res = _store().values("maintenance")
        if vehicle_id:
            res = [r for r in res if r.get("vehicle_id") == vehicle_id]
        if status:
            res = [r for r in res if r.get("status") == status]
        res.sort(key=lambda r: r.get("date") or "", reverse=True)
        return res

    @staticmethod
    def create_record(payload: dict) -> dict:
        st = _store()
        vehicle_id = payload.get("vehicle_id")
        veh = st.get_vehicle(vehicle_id) if vehicle_id else None
        if not veh:
            raise VehicleNotFoundError()
        data = MaintenanceService._clean(payload)
        rid = st.create_maintenance(dict(data, vehicle_id=vehicle_id))
        MaintenanceService._sync_vehicle(vehicle_id, data["status"])

        NotificationService.notify_roles(
            Role.BACK_OFFICE, NotificationType.MAINTENANCE_DUE, "Maintenance scheduled",
            f"Maintenance scheduled for {veh.get('make', '')} {veh.get('model', '')}: {data['issue']}")
        return st.maintenance[rid]

    @staticmethod
    def update_record(record_id: str, payload: dict) -> dict:
        st = _store()
        rec = st.maintenance.get(record_id)
        if not rec:
            raise RecordNotFoundError("Error: maintenance record not found")
        data = MaintenanceService._clean(payload, partial=True)
        st.update_maintenance(record_id, data)
        MaintenanceService._sync_vehicle(rec["vehicle_id"], rec["status"])
        return rec

    @staticmethod
    def delete_record(record_id: str) -> None:
        st = _store()
        rec = st.maintenance.get(record_id)
        if not rec:
            raise RecordNotFoundError("Error: maintenance record not found")
        st.delete_maintenance(record_id)
        # a deleted record no longer holds the vehicle in maintenance
        MaintenanceService._sync_vehicle(rec["vehicle_id"], MaintenanceStatus.FIXED)
