"""
Request-scoped caller identity.

The session only remembers *who* logged in. The role is looked up from the
store on every request, so a role change or a deleted account takes effect
immediately instead of living on in a stale cookie.
"""
from typing import Optional

from flask import g, session

from ..models.user import UserBase
from ..services.common import _store, user_from_dict


def current_user() -> Optional[UserBase]:
    if "current_user" not in g:
        uid = session.get("uid")
        g.current_user = user_from_dict(_store().get_user(uid)) if uid else None
    return g.current_user
