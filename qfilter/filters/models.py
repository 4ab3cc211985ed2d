from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Sequence, Tuple, Union
import datetime as dt

from .errors import MalformedFilterError, UnknownOperationError, UnknownTypeError

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Operation(str, Enum):
    EQ = "EQ"
    GT = "GT"
    GE = "GE"
    LT = "LT"
    LE = "LE"
    LK = "LK"
    IN = "IN"
    SEARCH = "SEARCH"

    @classmethod
    def from_token(cls, token: Union[str, "Operation"]) -> "Operation":
        if isinstance(token, cls):
            return token
        try:
            return cls[str(token).upper()]
        except KeyError:
            raise UnknownOperationError(str(token)) from None


class FilterType(str, Enum):
    STRING = "STRING"
    BOOL = "BOOL"
    DATE = "DATE"
    DATETIME = "DATETIME"
    INT = "INT"
    FLOAT = "FLOAT"

    @classmethod
    def from_token(cls, token: Union[str, "FilterType", None]) -> "FilterType":
        if token is None:
            return cls.STRING
        if isinstance(token, cls):
            return token
        try:
            return cls[str(token).upper()]
        except KeyError:
            raise UnknownTypeError(str(token)) from None


# Python type(s) each filter type coerces to.
_PY_TYPES: Dict[FilterType, Tuple[type, ...]] = {
    FilterType.STRING: (str,),
    FilterType.BOOL: (bool,),
    FilterType.DATE: (dt.date,),
    FilterType.DATETIME: (dt.datetime,),
    FilterType.INT: (int,),
    FilterType.FLOAT: (Decimal,),
}


def _matches_type(item: Any, type_: FilterType) -> bool:
    # bool is an int and datetime is a date; keep them apart
    if type_ is FilterType.INT and isinstance(item, bool):
        return False
    if type_ is FilterType.DATE and isinstance(item, dt.datetime):
        return False
    return isinstance(item, _PY_TYPES[type_])


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Scalar:
    """A single typed value."""
    item: Any


@dataclass(frozen=True)
class Many:
    """An ordered sequence of typed values, used only by IN."""
    items: Tuple[Any, ...] = ()

    def __post_init__(self):
        # accept any sequence, store a tuple
        object.__setattr__(self, "items", tuple(self.items))


Value = Union[Scalar, Many]


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Filter:
    """
    One parsed `field;operation;value[;type]` unit.

    The value is a Many exactly when the operation is IN, and every element
    carries the Python type matching `type`.
    """
    field: str
    operation: Operation
    value: Value
    type: FilterType = FilterType.STRING

    def __post_init__(self):
        object.__setattr__(self, "operation", Operation.from_token(self.operation))
        object.__setattr__(self, "type", FilterType.from_token(self.type))

        if not self.field:
            raise MalformedFilterError(repr(self), "field must not be empty")
        if not isinstance(self.value, (Scalar, Many)):
            raise MalformedFilterError(repr(self), "value must be Scalar or Many")
        if (self.operation is Operation.IN) != isinstance(self.value, Many):
            raise MalformedFilterError(
                repr(self), "IN takes a multi-value, every other operation a single value"
            )
        for item in self.values:
            if not _matches_type(item, self.type):
                raise MalformedFilterError(
                    repr(self), f"{item!r} is not a {self.type.value} value"
                )

    @property
    def values(self) -> Tuple[Any, ...]:
        if isinstance(self.value, Many):
            return self.value.items
        return (self.value.item,)

    @property
    def is_search(self) -> bool:
        return self.operation is Operation.SEARCH

    # JSON helpers
    def to_dict(self) -> Dict[str, Any]:
        from .coercion import render_value

        if isinstance(self.value, Many):
            value: Any = [render_value(v, self.type) for v in self.value.items]
        else:
            value = render_value(self.value.item, self.type)
        return {
            "field": self.field,
            "operation": self.operation.value,
            "type": self.type.value,
            "value": value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Filter":
        from .parser import make_filter

        missing = [k for k in ("field", "operation") if not data.get(k)]
        if missing:
            raise MalformedFilterError(repr(data), f"missing {', '.join(missing)}")
        raw = data.get("value", "")
        if isinstance(raw, (list, tuple)):
            raw = list(raw)
        return make_filter(data["field"], data["operation"], raw, data.get("type"))


FilterList = Sequence[Filter]


__all__ = [
    "Operation",
    "FilterType",
    "Scalar",
    "Many",
    "Value",
    "Filter",
    "FilterList",
]
