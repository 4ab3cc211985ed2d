from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict
import datetime as dt
import re

from .errors import InvalidValueError
from .models import FilterType

_INT_RE = re.compile(r"^[+-]?\d+$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d{1,6})?)?$")

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


def _to_string(token: str) -> str:
    return token


def _to_bool(token: str) -> bool:
    lowered = token.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise ValueError(token)


def _to_date(token: str) -> dt.date:
    if not _DATE_RE.match(token):
        raise ValueError(token)
    return dt.date.fromisoformat(token)


def _to_datetime(token: str) -> dt.datetime:
    m = _DATETIME_RE.match(token)
    if not m:
        raise ValueError(token)
    fmt = "%Y-%m-%dT%H:%M"
    if m.group(1):
        fmt += ":%S"
    if m.group(2):
        fmt += ".%f"
    return dt.datetime.strptime(token, fmt)


def _to_int(token: str) -> int:
    if not _INT_RE.match(token):
        raise ValueError(token)
    n = int(token)
    if n < INT64_MIN or n > INT64_MAX:
        raise ValueError(token)
    return n


def _to_decimal(token: str) -> Decimal:
    if token != token.strip() or "_" in token:
        raise ValueError(token)
    try:
        d = Decimal(token)
    except InvalidOperation:
        raise ValueError(token) from None
    if not d.is_finite():
        raise ValueError(token)
    return d


_COERCERS: Dict[FilterType, Callable[[str], Any]] = {
    FilterType.STRING: _to_string,
    FilterType.BOOL: _to_bool,
    FilterType.DATE: _to_date,
    FilterType.DATETIME: _to_datetime,
    FilterType.INT: _to_int,
    FilterType.FLOAT: _to_decimal,
}


def coerce_value(field: str, token: str, type_: FilterType) -> Any:
    """
    Convert one raw token to the Python value for `type_`.
    Raises InvalidValueError naming the field, type and token.
    """
    try:
        return _COERCERS[type_](token)
    except ValueError:
        raise InvalidValueError(field, type_, token) from None


def render_value(item: Any, type_: FilterType) -> str:
    """Canonical text for a coerced value; coerce_value(render_value(v)) == v."""
    if type_ is FilterType.BOOL:
        return "true" if item else "false"
    if type_ is FilterType.DATETIME:
        return item.isoformat(timespec="microseconds" if item.microsecond else "seconds")
    if type_ is FilterType.DATE:
        return item.isoformat()
    return str(item)


__all__ = [
    "coerce_value",
    "render_value",
    "INT64_MIN",
    "INT64_MAX",
]
