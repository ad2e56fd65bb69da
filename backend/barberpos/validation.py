from __future__ import annotations

from datetime import date, timedelta
from typing import Any

from flask import request

from .errors import InvalidInput
from barberpos.time_utils import parse_iso_date, today


# Maximum amount: 9,999,999.99 in major units
# Prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

DEFAULT_REPORT_DAYS = 30


def get_json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def coerce_int(value: Any, label: str, *, required: bool = True) -> int | None:
    """
    Strict integer coercion for request values.

    Rejects floats, booleans, decimals and scientific notation.
    """
    if value is None:
        if required:
            raise InvalidInput(f"{label} is required")
        return None

    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidInput(f"{label} must be an integer")
        if "e" in stripped.lower():
            raise InvalidInput(f"{label} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise InvalidInput(f"{label} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise InvalidInput(f"{label} must be an integer")
    elif isinstance(value, float):
        raise InvalidInput(f"{label} must be an integer, not a decimal")
    else:
        raise InvalidInput(f"{label} must be an integer")

    if abs(result) > MAX_AMOUNT_CENTS:
        raise InvalidInput(f"{label} is out of range")
    return result


def parse_date_arg(name: str) -> date | None:
    raw = request.args.get(name)
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise InvalidInput(f"{name} must be an ISO date (YYYY-MM-DD)")


def parse_period_args() -> tuple[date, date]:
    """start/end query args; defaults to the last 30 days ending today."""
    end = parse_date_arg("end") or today()
    start = parse_date_arg("start") or (end - timedelta(days=DEFAULT_REPORT_DAYS - 1))
    if end < start:
        raise InvalidInput("end must not be before start")
    return start, end


def parse_paging_args(default_limit: int = 50) -> tuple[int, int]:
    limit = request.args.get("limit", default_limit, type=int)
    offset = request.args.get("offset", 0, type=int)
    return limit, offset
