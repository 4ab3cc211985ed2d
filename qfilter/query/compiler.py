"""
Compile a list of filters into one predicate.

The compiler only talks to the host through `FieldResolver` and `Expr`: it
resolves each filter's field, asks the expression for a comparison,
membership or contains predicate, and combines the results with `&` and `|`.
Non-SEARCH filters are ANDed; SEARCH filters are ORed into a single group that
joins the AND.
"""

from __future__ import annotations
from enum import Enum
from functools import reduce
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple
import datetime as dt
import logging
import operator

from ..filters import (
    Filter,
    FilterType,
    Operation,
    UnknownEnumMemberError,
    UnsupportedOperationError,
)

log = logging.getLogger("query")


class ColumnType(str, Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    DATE = "DATE"
    TIMESTAMP = "TIMESTAMP"
    TIME = "TIME"
    ENUM = "ENUM"
    OTHER = "OTHER"


class Predicate(Protocol):
    def __and__(self, other: Any) -> Any: ...
    def __or__(self, other: Any) -> Any: ...


class Expr(Protocol):
    column_type: ColumnType
    enum_name: Optional[str]
    enum_members: Tuple[str, ...]

    @property
    def is_enum(self) -> bool: ...

    def eq(self, value: Any) -> Predicate: ...
    def gt(self, value: Any) -> Predicate: ...
    def ge(self, value: Any) -> Predicate: ...
    def lt(self, value: Any) -> Predicate: ...
    def le(self, value: Any) -> Predicate: ...
    def isin(self, values: Sequence[Any]) -> Predicate: ...

    def upper_like(self, pattern: str) -> Predicate:
        """
        Upper-cased expression LIKE `pattern`. The pattern is already upper case,
        `%` is the wildcard, and literal `\\`, `%`, `_` arrive escaped with `\\`,
        so the host must treat `\\` as the LIKE escape character.
        """
        ...


class FieldResolver(Protocol):
    def resolve(self, field: str) -> Expr: ...


# ---------------------------------------------------------------------------
# Value normalisation
# ---------------------------------------------------------------------------

def _align_temporal(value: Any, column_type: ColumnType) -> Any:
    """Widen a date to midnight on TIMESTAMP columns, narrow a datetime on DATE columns."""
    if column_type is ColumnType.TIMESTAMP:
        if isinstance(value, dt.date) and not isinstance(value, dt.datetime):
            return dt.datetime.combine(value, dt.time.min)
    elif column_type is ColumnType.DATE:
        if isinstance(value, dt.datetime):
            return value.date()
    return value


def escape_like(value: str) -> str:
    """
    Escape \\, %, _ in LIKE patterns. Backends use ESCAPE '\\'.
    """
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%").replace("_", "\\_")
    return value


def contains_pattern(value: str) -> str:
    return f"%{escape_like(value.upper())}%"


def _enum_member(f: Filter, expr: Expr) -> str:
    wanted = str(f.value.item).upper()
    for member in expr.enum_members:
        if member.upper() == wanted:
            return member
    raise UnknownEnumMemberError(f.field, expr.enum_name or f.field, f.value.item)


# ---------------------------------------------------------------------------
# Per-operation compilation
# ---------------------------------------------------------------------------

def _compile_eq(f: Filter, expr: Expr) -> Predicate:
    if expr.is_enum:
        return expr.eq(_enum_member(f, expr))
    return expr.eq(_align_temporal(f.value.item, expr.column_type))


def _comparison(method: Callable[[Expr, Any], Predicate]) -> Callable[[Filter, Expr], Predicate]:
    def _compile(f: Filter, expr: Expr) -> Predicate:
        return method(expr, _align_temporal(f.value.item, expr.column_type))
    return _compile


def _compile_contains(f: Filter, expr: Expr) -> Predicate:
    if f.type is not FilterType.STRING:
        raise UnsupportedOperationError(f.field, f.operation, f.type)
    return expr.upper_like(contains_pattern(f.value.item))


def _compile_in(f: Filter, expr: Expr) -> Predicate:
    tokens = f.value.items
    if expr.is_enum:
        wanted = {str(t) for t in tokens}
        members = [m for m in expr.enum_members if m in wanted]
        dropped = sorted(wanted.difference(members))
        if dropped:
            log.warning(
                "Ignoring values %s for enumerated field %s (%s)",
                dropped, f.field, expr.enum_name or f.field,
            )
        return expr.isin(members)
    return expr.isin([_align_temporal(t, expr.column_type) for t in tokens])


_DISPATCH: Dict[Operation, Callable[[Filter, Expr], Predicate]] = {
    Operation.EQ: _compile_eq,
    Operation.GT: _comparison(lambda e, v: e.gt(v)),
    Operation.GE: _comparison(lambda e, v: e.ge(v)),
    Operation.LT: _comparison(lambda e, v: e.lt(v)),
    Operation.LE: _comparison(lambda e, v: e.le(v)),
    Operation.LK: _compile_contains,
    Operation.SEARCH: _compile_contains,
    Operation.IN: _compile_in,
}


def compile_filter(f: Filter, resolver: FieldResolver) -> Predicate:
    handler = _DISPATCH.get(f.operation)
    if handler is None:
        raise AssertionError(f"No compilation rule for operation {f.operation!r}")
    expr = resolver.resolve(f.field)
    return handler(f, expr)


def compile_filters(
    filters: Optional[Sequence[Filter]],
    resolver: FieldResolver,
) -> Optional[Predicate]:
    """
    Returns AND(p1, ..., pn, OR(s1, ..., sm)), or None when there is nothing to filter.
    The OR group is omitted without SEARCH filters; a lone predicate is returned as-is.
    """
    if not filters:
        return None

    conjuncts: List[Predicate] = []
    searches: List[Predicate] = []
    for f in filters:
        p = compile_filter(f, resolver)
        (searches if f.is_search else conjuncts).append(p)
        log.debug("Compiled filter %s %s", f.field, f.operation.value)

    if searches:
        conjuncts.append(reduce(operator.or_, searches))
    return reduce(operator.and_, conjuncts)


__all__ = [
    "ColumnType",
    "Predicate",
    "Expr",
    "FieldResolver",
    "escape_like",
    "contains_pattern",
    "compile_filter",
    "compile_filters",
]
