# api/utils.py
"""
Utility functions for the API: privacy-preserving log ids and validation of
path/query parameters. Validation failures answer 400 naming the parameter.
"""
import hashlib
import logging
import re
from typing import Optional

from fastapi import HTTPException

from analysis.periods import MAX_MONTHS_RANGE, MONTH_RE, last_day_of_month, parse_date_only

logger = logging.getLogger("mood-api.utils")

USER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")
DAY_RE = re.compile(r"^\d{1,2}$")
YEAR_RE = re.compile(r"^\d{4}$")
MOOD_ID_RE = re.compile(r"^[a-z0-9_-]{1,64}$")
DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def hash_user_id_for_logging(user_id: str) -> str:
    """
    Hash a user ID for privacy-preserving logging.

    Returns:
        First 8 characters of SHA-256 hash
    """
    return hashlib.sha256(user_id.encode()).hexdigest()[:8]


def _bad_request(param_name: str, value) -> HTTPException:
    logger.debug(f"Rejected {param_name}={value!r}")
    return HTTPException(status_code=400, detail=f"Invalid {param_name}: {value}")


def validate_user_id_or_400(value: str, param_name: str = "user_id") -> str:
    if not value or not USER_ID_RE.match(value):
        raise _bad_request(param_name, value)
    return value


def validate_month_or_400(value: str, param_name: str = "month") -> str:
    """``YYYY-MM`` with a month between 01 and 12."""
    if not value or not MONTH_RE.match(value):
        raise _bad_request(param_name, value)
    return value


def validate_year_or_400(value: str, param_name: str = "year") -> int:
    if not value or not YEAR_RE.match(value):
        raise _bad_request(param_name, value)
    return int(value)


def validate_day_or_400(month_id: str, value: str, param_name: str = "day") -> str:
    """
    Day of month (``1``..``31`` or zero padded) that exists in ``month_id``.

    Returns the zero padded ``DD`` form.
    """
    if not value or not DAY_RE.match(value):
        raise _bad_request(param_name, value)
    year, month = (int(part) for part in month_id.split("-"))
    day = int(value)
    if day < 1 or day > last_day_of_month(year, month):
        raise _bad_request(param_name, value)
    return f"{day:02d}"


def validate_mood_id_or_400(value: str, param_name: str = "mood_id") -> str:
    normalized = (value or "").strip().lower()
    if not MOOD_ID_RE.match(normalized):
        raise _bad_request(param_name, value)
    return normalized


def validate_date_or_400(value: Optional[str], param_name: str = "date") -> Optional[str]:
    """Optional ``YYYY-MM-DD``; returns it unchanged when valid."""
    if value is None:
        return None
    if not DATE_ONLY_RE.match(value) or parse_date_only(value) is None:
        raise _bad_request(param_name, value)
    return value


def validate_months_or_400(value: Optional[int], param_name: str = "months") -> Optional[int]:
    if value is None:
        return None
    if value < 1 or value > MAX_MONTHS_RANGE:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid {param_name}: {value} (expected 1..{MAX_MONTHS_RANGE})",
        )
    return value

def user_id_from_path(path: str) -> Optional[str]:
    """User id that follows ``/users/`` or ``/patients/`` in a request path."""
    parts = [part for part in path.split("/") if part]
    for index, part in enumerate(parts[:-1]):
        if part in ("users", "patients") and parts[index + 1] != "grouping":
            return parts[index + 1]
    return None
