"""Display formatting and form-level validation helpers.

All functions are pure and never raise on bad input: formatters fall back to
a sentinel string, validators simply return ``False``.
"""

from __future__ import annotations

import random
import re
import string
import time
from datetime import date, datetime, time as dt_time
from decimal import Decimal, InvalidOperation
from typing import Any
from zoneinfo import ZoneInfo

from ..core.config import settings

INVALID_DATE = "Invalid Date"
DEFAULT_DATE_FORMAT = "%b %d, %Y"
DEFAULT_DATETIME_FORMAT = "%b %d, %Y %H:%M"

_LOCAL_TZ = ZoneInfo(settings.TZ) if settings.TZ else None

_SEPARATORS_RE = re.compile(r"[\s-]")
_IMEI_RE = re.compile(r"[0-9]{15}")
_SERIAL_RE = re.compile(r"[A-Za-z0-9]{6,20}")
_PHONE_RE = re.compile(r"(\+255|0)[67][0-9]{8}")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_BASE36 = string.digits + string.ascii_lowercase

_DEVICE_KEYWORDS = (
    ("phone", ("iphone", "galaxy", "pixel", "phone")),
    ("laptop", ("macbook", "laptop", "thinkpad", "surface laptop")),
    ("tablet", ("ipad", "tablet", "surface pro")),
)


def parse_timestamp(value: Any) -> datetime | None:
    """Normalise strings, dates and datetimes into aware ``datetime`` objects.

    Naive values are taken to be in the configured local zone. Anything that
    cannot be parsed yields ``None``.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, dt_time.min)
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=_LOCAL_TZ or ZoneInfo("UTC"))
    return dt


def to_local(value: Any) -> datetime | None:
    dt = parse_timestamp(value)
    if dt is None:
        return None
    return dt.astimezone(_LOCAL_TZ) if _LOCAL_TZ else dt


def format_date(value: Any, fmt: str = DEFAULT_DATE_FORMAT) -> str:
    dt = to_local(value)
    return dt.strftime(fmt) if dt else INVALID_DATE


def format_datetime(value: Any) -> str:
    return format_date(value, DEFAULT_DATETIME_FORMAT)


def to_decimal(value: Any) -> Decimal:
    """Best-effort conversion of incoming values to Decimal for currency math."""

    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        cleaned = value.strip().replace(",", "")
        if not cleaned:
            return Decimal("0")
        try:
            return Decimal(cleaned)
        except InvalidOperation:
            return Decimal("0")
    return Decimal("0")


def format_currency(amount: Any, currency: str | None = None) -> str:
    """Render ``amount`` with thousands separators and zero or two decimals."""

    value = to_decimal(amount).quantize(Decimal("0.01"))
    code = currency or settings.CURRENCY
    if value == value.to_integral_value():
        return f"{code} {value:,.0f}"
    return f"{code} {value:,.2f}"


def format_number(value: Any) -> str:
    number = to_decimal(value)
    if number == number.to_integral_value():
        return f"{number:,.0f}"
    return f"{number.normalize():,f}"


def truncate_text(text: str, length: int) -> str:
    return f"{text[:length]}..." if len(text) > length else text


def generate_temp_id() -> str:
    """Identifier for records that have not been saved yet."""

    millis = int(time.time() * 1000)
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"temp_{millis}_{suffix}"


def validate_imei(imei: str) -> bool:
    # Length-only check; no Luhn check digit.
    return bool(_IMEI_RE.fullmatch(_SEPARATORS_RE.sub("", imei or "")))


def validate_serial_number(serial: str) -> bool:
    return bool(_SERIAL_RE.fullmatch(serial or ""))


def validate_phone_number(phone: str) -> bool:
    return bool(_PHONE_RE.fullmatch(_SEPARATORS_RE.sub("", phone or "")))


def validate_email(email: str) -> bool:
    return bool(_EMAIL_RE.fullmatch(email or ""))


def get_device_type(model: str) -> str:
    lowered = (model or "").lower()
    for device_type, keywords in _DEVICE_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return device_type
    return "other"


__all__ = [
    "INVALID_DATE",
    "format_currency",
    "format_date",
    "format_datetime",
    "format_number",
    "generate_temp_id",
    "get_device_type",
    "parse_timestamp",
    "to_decimal",
    "to_local",
    "truncate_text",
    "validate_email",
    "validate_imei",
    "validate_phone_number",
    "validate_serial_number",
]
