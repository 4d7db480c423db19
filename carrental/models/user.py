from dataclasses import dataclass
from typing import Optional

from ..utils.constants import Role


@dataclass
class UserBase:
    """
    Base user model. The Store keeps raw dicts; we wrap them into rich objects
    so permission checks read as methods instead of role string compares.
    """
    user_id: str
    username: str
    role: str  # "admin" | "staff" | "customer"
    email: Optional[str] = None
    name: Optional[str] = None

    @property
    def is_back_office(self) -> bool:
        return False

    def can_manage_roles(self) -> bool:
        return False

    def owns(self, record: dict) -> bool:
        return record.get("user_id") == self.user_id


class CustomerUser(UserBase):
    """Customers only see and cancel their own bookings."""


class StaffUser(UserBase):
    """Staff run the back office: bookings, blocks, maintenance, analytics."""

    @property
    def is_back_office(self) -> bool:
        return True


class AdminUser(StaffUser):
    """Admins can additionally change user roles."""

    def can_manage_roles(self) -> bool:
        return True


ROLE_CLASSES = {
    Role.ADMIN: AdminUser,
    Role.STAFF: StaffUser,
    Role.CUSTOMER: CustomerUser,
}
