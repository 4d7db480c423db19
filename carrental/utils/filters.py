"""Timezone-aware date helpers for the business calendar."""
from datetime import date, datetime, timezone

import pytz
from flask import current_app, has_app_context

DEFAULT_TZ = "Pacific/Auckland"


def business_tz():
    """Timezone configured as RENTAL_TIMEZONE, falling back to New Zealand."""
    name = DEFAULT_TZ
    if has_app_context():
        name = current_app.config.get("RENTAL_TIMEZONE") or DEFAULT_TZ
    return pytz.timezone(name)


def local_today() -> date:
    """Calendar date 'now' in the business timezone."""
    return datetime.now(timezone.utc).astimezone(business_tz()).date()


def fmt_iso_local(value: str, use_12h: bool = False) -> str:
    """
    Format a date/datetime string in business local time.
    Supports:
      - 'YYYY-MM-DD'
      - 'YYYY-MM-DDTHH:MM:SS'
      - Above with 'Z' or timezone offsets like '+00:00'
    On parse error, returns the original value (so the output never goes blank).
    """
    if value is None:
        return ""

    s = str(value).strip()
    if not s:
        return ""

    s_norm = s.replace("T", " ")
    if s_norm.endswith("Z"):
        s_norm = s_norm[:-1] + "+00:00"

    if ":" not in s_norm:
        # Date-only: nothing to convert
        try:
            return date.fromisoformat(s_norm).strftime("%d/%m/%Y")
        except ValueError:
            return s

    try:
        dt = datetime.fromisoformat(s_norm)
    except ValueError:
        return s

    # If naive datetime, assume UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_local = dt.astimezone(business_tz())

    if use_12h:
        # Avoid %-I (not portable on Windows). Strip any leading zero manually.
        hh = dt_local.strftime("%I").lstrip("0") or "0"
        return f"{dt_local.strftime('%d %b %Y')}, {hh}:{dt_local.strftime('%M %p')}"
    return dt_local.strftime("%d/%m/%Y %H:%M")
