"""
Text encoding of filters: `field;operation;value[;type]`.

`;` separates segments and `~` separates the elements of an IN value. Neither
separator can be escaped, so a STRING element of an IN filter cannot contain
`~` and no segment can contain `;`.
"""

from __future__ import annotations
from typing import Any, Iterable, List, Optional, Sequence, Union
import logging

from .coercion import coerce_value, render_value
from .errors import MalformedFilterError
from .models import Filter, FilterType, Many, Operation, Scalar

log = logging.getLogger("filters")

SEGMENT_SEPARATOR = ";"
VALUE_SEPARATOR = "~"


def _split_segments(raw: str) -> List[str]:
    parts = raw.split(SEGMENT_SEPARATOR)
    # trailing empty segments carry nothing ("a;EQ;b;" has no type segment)
    while parts and parts[-1] == "":
        parts.pop()
    return parts


def make_filter(
    field: str,
    operation: Union[str, Operation],
    raw_value: Union[str, Sequence[str]],
    type_: Union[str, FilterType, None] = None,
) -> Filter:
    """
    Build a Filter from already-separated segments, coercing the raw value.

    For IN, `raw_value` is either the `~`-joined text or a sequence of raw tokens.
    """
    if not field:
        raise MalformedFilterError(f"{field};{operation};{raw_value}", "field must not be empty")
    op = Operation.from_token(operation)
    typ = FilterType.from_token(type_)

    if op is Operation.IN:
        tokens = raw_value.split(VALUE_SEPARATOR) if isinstance(raw_value, str) else list(raw_value)
        value: Any = Many(tuple(coerce_value(field, str(t), typ) for t in tokens))
    else:
        if not isinstance(raw_value, str):
            raise MalformedFilterError(
                f"{field};{op.value};{raw_value!r}", f"{op.value} takes a single value"
            )
        value = Scalar(coerce_value(field, raw_value, typ))

    return Filter(field=field, operation=op, value=value, type=typ)


def parse(raw: str) -> Filter:
    """
    Parse one encoded filter.

    Raises MalformedFilterError, UnknownOperationError, UnknownTypeError or
    InvalidValueError.
    """
    if raw is None:
        raise MalformedFilterError("", "filter must not be empty")
    parts = _split_segments(raw)
    if len(parts) < 3:
        raise MalformedFilterError(raw)
    if len(parts) > 4:
        log.debug("Ignoring extra segments %r in filter %r", parts[4:], raw)

    field, operation, raw_value = parts[0], parts[1], parts[2]
    type_token = parts[3] if len(parts) >= 4 else None

    f = make_filter(field, operation, raw_value, type_token)
    log.debug("Parsed filter %r -> %s %s (%s)", raw, f.field, f.operation.value, f.type.value)
    return f


def parse_all(raws: Optional[Iterable[str]]) -> List[Filter]:
    """Parse every raw filter; the first failure propagates and nothing is returned."""
    if raws is None:
        return []
    return [parse(r) for r in raws]


def encode(
    field: str,
    operation: Union[str, Operation],
    value: Any,
    type_: Union[str, FilterType, None] = None,
) -> str:
    """
    Inverse of parse. `type_` defaults to STRING.

    `value` may be raw text (already `~`-joined for IN), a typed value, or for
    IN a sequence of raw or typed elements.
    """
    op = Operation.from_token(operation)
    typ = FilterType.from_token(type_)

    def _text(item: Any) -> str:
        return item if isinstance(item, str) else render_value(item, typ)

    if op is Operation.IN and not isinstance(value, str):
        if isinstance(value, Many):
            value = value.items
        rendered = VALUE_SEPARATOR.join(_text(v) for v in value)
    else:
        if isinstance(value, Scalar):
            value = value.item
        rendered = _text(value)

    return SEGMENT_SEPARATOR.join([field, op.value, rendered, typ.value])


def encode_filter(f: Filter) -> str:
    return encode(f.field, f.operation, f.value, f.type)


__all__ = [
    "SEGMENT_SEPARATOR",
    "VALUE_SEPARATOR",
    "make_filter",
    "parse",
    "parse_all",
    "encode",
    "encode_filter",
]
