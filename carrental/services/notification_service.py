"""Fire-and-forget notifications to single users or whole roles."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from carrental.exceptions import PermissionDeniedError, RecordNotFoundError
from carrental.models.user import UserBase
from carrental.services.common import _store, _text

log = logging.getLogger(__name__)


class NotificationService:
    """
    Notifications are a side channel: a failure to store one is logged and
    never breaks the booking operation that triggered it.
    """

    @staticmethod
    def notify_user(user_id: str, type_: str, title: str, body: Optional[str] = None,
                    href: Optional[str] = None) -> None:
        NotificationService._insert([user_id], type_, title, body, href)

    @staticmethod
    def notify_roles(roles: Iterable[str], type_: str, title: str, body: Optional[str] = None,
                     href: Optional[str] = None) -> None:
        users = _store().users_with_roles(set(roles))
        if not users:
            return
        NotificationService._insert([u["user_id"] for u in users], type_, title, body, href)

    @staticmethod
    def _insert(user_ids: list[str], type_: str, title: str, body, href) -> None:
        rows = [{
            "user_id": uid,
            "type": type_,
            "title": title,
            "message": body or "",
            "href": href,
        } for uid in user_ids if uid]
        try:
            _store().add_notifications(rows)
        except Exception:
            log.exception("notification insert failed (type=%s, users=%d)", type_, len(rows))

    # --------------- Queries ---------------
    @staticmethod
    def list_for_user(user_id: str, unread_only: bool = False, q: str = "", page: int = 1,
                      page_size: int = 10) -> dict:
        """Newest first, optionally unread only or matching q in title/message."""
        page = max(1, page)
        page_size = min(50, max(5, page_size))
        kw = _text(q).lower()

        items = [n for n in _store().values("notifications") if n.get("user_id") == user_id]
        if unread_only:
            items = [n for n in items if not n.get("read")]
        if kw:
            items = [n for n in items
                     if kw in (n.get("title") or "").lower() or kw in (n.get("message") or "").lower()]
        items.sort(key=lambda n: n.get("created_at") or "", reverse=True)

        total = len(items)
        start = (page - 1) * page_size
        return {
            "items": items[start:start + page_size],
            "meta": {
                "total": total,
                "page": page,
                "pageSize": page_size,
                "totalPages": max(1, -(-total // page_size)),
            },
        }

    @staticmethod
    def mark_read(user: UserBase, notification_id: str, read: bool = True) -> dict:
        st = _store()
        n = st.notifications.get(notification_id)
        if not n:
            raise RecordNotFoundError("Error: notification not found")
        if n.get("user_id") != user.user_id:
            raise PermissionDeniedError()
        st.update_notification(notification_id, {"read": bool(read)})
        return n
