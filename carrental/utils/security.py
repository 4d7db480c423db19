import re

from werkzeug.security import generate_password_hash, check_password_hash

# Compile once at module import
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{6,}$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.@-]{3,30}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^[+]?[\d\s\-()]{7,20}$")


def generate_hash(password: str) -> str:
    return generate_password_hash(password)


def check_hash(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return check_password_hash(hashed, password)


def password_problem(username: str, password: str) -> str | None:
    """Return a user-facing complaint about the password, or None if acceptable."""
    if not PASSWORD_PATTERN.match(password or ""):
        return "Password must have at least 6 characters, including A-Z, a-z, and 0-9."
    if password.lower() == (username or "").lower():
        return "Password cannot be the same as username."
    return None
