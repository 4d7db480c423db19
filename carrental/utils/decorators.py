from functools import wraps

from ..exceptions import AuthenticationError, PermissionDeniedError
from .context import current_user


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if current_user() is None:
            raise AuthenticationError()
        return fn(*args, **kwargs)

    return wrapper


def role_required(*roles):
    def deco(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = current_user()
            if user is None:
                raise AuthenticationError()
            if user.role not in roles:
                raise PermissionDeniedError()
            return fn(*args, **kwargs)

        return wrapper

    return deco
