from __future__ import annotations

import logging
from typing import Optional

from carrental.exceptions import AuthenticationError, PermissionDeniedError, UserNotFoundError, ValidationError
from carrental.models.user import UserBase
from carrental.services.common import _store, _text, user_from_dict
from carrental.utils.constants import BookingStatus, Role
from carrental.utils.security import (
    EMAIL_PATTERN,
    USERNAME_PATTERN,
    check_hash,
    generate_hash,
    password_problem,
)

log = logging.getLogger(__name__)


def _public(u: dict) -> dict:
    """User record without the password hash."""
    return {k: v for k, v in u.items() if k != "password_hash"}


class UserService:
    """Registration, login, and user admin operations."""

    @staticmethod
    def _create(username: str, password: str, role: str, email: Optional[str] = None,
                name: Optional[str] = None, phone: Optional[str] = None) -> dict:
        username = _text(username)
        if not username or not password:
            raise ValidationError("Username and password are required.")
        password = str(password)
        if not USERNAME_PATTERN.match(username):
            raise ValidationError("Username must be 3-30 chars (letters, digits, ., _, -, @).")
        problem = password_problem(username, password)
        if problem:
            raise ValidationError(problem)
        email = _text(email).lower() or None
        if email and not EMAIL_PATTERN.match(email):
            raise ValidationError("Invalid email address")

        st = _store()
        if st.user_exists(username):
            raise ValidationError("Username already exists.", reason="duplicate_username")
        if email and st.find_user_by_email(email):
            raise ValidationError("Email already registered.", reason="duplicate_email")
        uid = st.create_user(username, generate_hash(password), role, email=email, name=name, phone=phone)
        log.info("user %s created with role %s", uid, role)
        return _public(st.users[uid])

    @staticmethod
    def register(username: str, password: str, email: Optional[str] = None, name: Optional[str] = None,
                 phone: Optional[str] = None) -> dict:
        """Self-service sign-up always yields a customer account."""
        return UserService._create(username, password, Role.CUSTOMER, email, name, phone)

    @staticmethod
    def authenticate(username: str, password: str) -> UserBase:
        u = _store().find_user(_text(username))
        if not u or not check_hash("" if password is None else str(password), u.get("password_hash")):
            raise AuthenticationError("Invalid credentials")
        return user_from_dict(u)

    @staticmethod
    def admin_create_user(actor: UserBase, username: str, role: str, password: str, **profile) -> dict:
        """Staff may add customers; only admins may add staff or admins."""
        role = _text(role).lower()
        if role not in Role.ALL:
            raise ValidationError("Role must be admin/staff/customer")
        if role != Role.CUSTOMER and not actor.can_manage_roles():
            raise PermissionDeniedError("Only admins can create staff or admin accounts")
        return UserService._create(username, password, role, **profile)

    @staticmethod
    def admin_delete_user(actor: UserBase, user_id: str) -> None:
        st = _store()
        target = st.get_user(user_id)
        if not target:
            raise UserNotFoundError()
        if user_id == actor.user_id:
            raise ValidationError("You cannot delete your own account")
        if target.get("role") != Role.CUSTOMER and not actor.can_manage_roles():
            raise PermissionDeniedError("Only admins can delete staff or admin accounts")
        if any(b.get("user_id") == user_id and b.get("status") in BookingStatus.ACTIVE
               for b in st.values("bookings")):
            raise ValidationError("Cannot delete: user has active bookings")
        st.delete_user(user_id)
        log.info("user %s deleted by %s", user_id, actor.user_id)

    @staticmethod
    def set_role(actor: UserBase, user_id: str, role: str) -> dict:
        if not actor.can_manage_roles():
            raise PermissionDeniedError()
        role = _text(role).lower()
        if role not in Role.ALL:
            raise ValidationError("Role must be admin/staff/customer")
        st = _store()
        if not st.update_user(user_id, role=role):
            raise UserNotFoundError()
        log.info("user %s role -> %s by %s", user_id, role, actor.user_id)
        return _public(st.users[user_id])

    @staticmethod
    def list_users(role: Optional[str] = None, q: Optional[str] = None) -> list[dict]:
        res = [_public(u) for u in _store().values("users")]
        if role:
            res = [u for u in res if u.get("role") == role]
        kw = _text(q).lower()
        if kw:
            res = [u for u in res
                   if kw in (u.get("username") or "").lower()
                   or kw in (u.get("email") or "").lower()
                   or kw in (u.get("name") or "").lower()]
        res.sort(key=lambda u: u.get("username") or "")
        return res

    @staticmethod
    def profile(user_id: str) -> dict:
        u = _store().get_user(user_id)
        if not u:
            raise UserNotFoundError()
        return _public(u)
