from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union
import re

from ..filters import Filter, UnknownFieldError
from .compiler import ColumnType, compile_filters

_UNQUOTED_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*$")


def _quote_identifier(name: str, *, quote_identifiers: bool) -> str:
    """
    Quote an identifier if needed. Doubles internal quotes.
    """
    if not quote_identifiers and _UNQUOTED_IDENT_RE.match(name):
        return name
    escaped = name.replace('"', '""')
    return f'"{escaped}"'


def _quote_dotted_identifier(name: str, *, quote_identifiers: bool) -> str:
    """
    Quote a possibly dotted identifier (e.g., db.schema.table).
    """
    parts = [p.strip() for p in name.split(".")]
    return ".".join(_quote_identifier(p, quote_identifiers=quote_identifiers) for p in parts)


class ParamSink:
    """
    Collects params and returns the correct placeholder per paramstyle.
      - 'qmark'    -> ?, params is a list
      - 'pyformat' -> %(p1)s, params is a dict
    """
    def __init__(self, paramstyle: str = "qmark", *, prefix: str = "p", start_index: int = 1):
        if paramstyle not in {"qmark", "pyformat"}:
            raise ValueError("paramstyle must be 'qmark' or 'pyformat'")
        self.paramstyle = paramstyle
        self.prefix = prefix
        self.next_idx = start_index
        self.params_list: List[Any] = []
        self.params_dict: Dict[str, Any] = {}

    def add(self, value: Any) -> str:
        if self.paramstyle == "qmark":
            self.params_list.append(value)
            return "?"
        else:
            name = f"{self.prefix}{self.next_idx}"
            self.next_idx += 1
            self.params_dict[name] = value
            return f"%({name})s"

    def bundle(self) -> Union[List[Any], Dict[str, Any]]:
        return self.params_list if self.paramstyle == "qmark" else self.params_dict


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Param:
    value: Any


@dataclass(frozen=True)
class SqlPredicate:
    """
    Immutable SQL condition. A leaf holds text fragments and Params; an AND/OR
    node holds children. Placeholders are assigned only when rendered.
    """
    parts: Tuple[Union[str, Param], ...] = ()
    op: Optional[str] = None
    children: Tuple["SqlPredicate", ...] = ()

    def _combine(self, other: "SqlPredicate", op: str) -> "SqlPredicate":
        kids: List[SqlPredicate] = []
        for p in (self, other):
            kids.extend(p.children if p.op == op else (p,))
        return SqlPredicate(op=op, children=tuple(kids))

    def __and__(self, other: "SqlPredicate") -> "SqlPredicate":
        return self._combine(other, "AND")

    def __or__(self, other: "SqlPredicate") -> "SqlPredicate":
        return self._combine(other, "OR")

    def render(self, sink: ParamSink) -> str:
        if self.op is None:
            return "".join(p if isinstance(p, str) else sink.add(p.value) for p in self.parts)
        rendered = []
        for c in self.children:
            text = c.render(sink)
            rendered.append(f"({text})" if c.op is not None else text)
        return f" {self.op} ".join(rendered)

    @property
    def params(self) -> List[Any]:
        if self.op is None:
            return [p.value for p in self.parts if isinstance(p, Param)]
        return [v for c in self.children for v in c.params]


FALSE = SqlPredicate(parts=("1=0",))


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ColumnSpec:
    column_type: ColumnType
    enum_name: Optional[str] = None
    enum_members: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SqlExpr:
    column: str
    column_type: ColumnType = ColumnType.OTHER
    enum_name: Optional[str] = None
    enum_members: Tuple[str, ...] = ()
    quote_identifiers: bool = False

    @property
    def is_enum(self) -> bool:
        return self.column_type is ColumnType.ENUM

    @property
    def sql(self) -> str:
        return _quote_identifier(self.column, quote_identifiers=self.quote_identifiers)

    def _binary(self, sql_op: str, value: Any) -> SqlPredicate:
        return SqlPredicate(parts=(f"{self.sql} {sql_op} ", Param(value)))

    def eq(self, value: Any) -> SqlPredicate:
        return self._binary("=", value)

    def gt(self, value: Any) -> SqlPredicate:
        return self._binary(">", value)

    def ge(self, value: Any) -> SqlPredicate:
        return self._binary(">=", value)

    def lt(self, value: Any) -> SqlPredicate:
        return self._binary("<", value)

    def le(self, value: Any) -> SqlPredicate:
        return self._binary("<=", value)

    def isin(self, values: Sequence[Any]) -> SqlPredicate:
        values = list(values)
        if not values:
            # IN () is always false
            return FALSE
        parts: List[Union[str, Param]] = [f"{self.sql} IN ("]
        for i, v in enumerate(values):
            if i:
                parts.append(", ")
            parts.append(Param(v))
        parts.append(")")
        return SqlPredicate(parts=tuple(parts))

    def upper_like(self, pattern: str) -> SqlPredicate:
        return SqlPredicate(parts=(f"UPPER({self.sql}) LIKE ", Param(pattern), " ESCAPE '\\'"))


class SqlFieldResolver:
    """
    Resolves filter fields against a {COLUMN_NAME: ColumnSpec} mapping.
    Lookups are case-insensitive; column names are stored upper case.
    """
    def __init__(self, columns: Mapping[str, ColumnSpec], *, quote_identifiers: bool = False):
        self.columns = {name.upper(): spec for name, spec in columns.items()}
        self.quote_identifiers = quote_identifiers

    def resolve(self, field: str) -> SqlExpr:
        name = field.upper()
        spec = self.columns.get(name)
        if spec is None:
            raise UnknownFieldError(field)
        return SqlExpr(
            column=name,
            column_type=spec.column_type,
            enum_name=spec.enum_name,
            enum_members=spec.enum_members,
            quote_identifiers=self.quote_identifiers,
        )


# ---------------------------------------------------------------------------
# WHERE / SELECT builders
# ---------------------------------------------------------------------------

def build_where_clause_and_params(
    filters: Optional[Sequence[Filter]],
    resolver: SqlFieldResolver,
    *,
    paramstyle: str = "qmark",        # 'qmark' -> ?,  'pyformat' -> %(p1)s
    default_when_empty: str = "1=1",
    include_where_keyword: bool = True,
    param_name_prefix: str = "p",
    param_start_index: int = 1,
) -> Tuple[str, Union[List[Any], Dict[str, Any]]]:
    """
    Returns (where_sql, params). If `include_where_keyword` is True,
    where_sql will be 'WHERE ...'; otherwise it's just the predicate text.
    """
    sink = ParamSink(paramstyle, prefix=param_name_prefix, start_index=param_start_index)
    predicate = compile_filters(filters, resolver)

    body = predicate.render(sink) if predicate is not None else ""
    if not body:
        body = default_when_empty
    if not body:
        return "", sink.bundle()

    where_sql = f"WHERE {body}" if include_where_keyword else body
    return where_sql, sink.bundle()


def _normalize_columns(columns: Optional[Iterable[str]], *, quote_identifiers: bool) -> str:
    """
    Turn a list of column names into a SELECT list.
    - If empty -> '*'
    - '*' is passed through as-is.
    - Dotted identifiers are quoted segment-by-segment when quoting enabled.
    """
    cols = list(columns or [])
    if not cols:
        return "*"

    out: List[str] = []
    for c in cols:
        s = c.strip()
        if s == "*":
            out.append("*")
        elif "." in s:
            out.append(_quote_dotted_identifier(s, quote_identifiers=quote_identifiers))
        else:
            out.append(_quote_identifier(s, quote_identifiers=quote_identifiers))
    return ", ".join(out)


@dataclass
class SelectBuildResult:
    sql: str
    params: Union[List[Any], Dict[str, Any]]
    count_sql: Optional[str] = None
    count_params: Optional[Union[List[Any], Dict[str, Any]]] = None
    filters: List[Filter] = field(default_factory=list)


def build_select_from_filters(
    view: str,
    filters: Optional[Sequence[Filter]],
    resolver: SqlFieldResolver,
    *,
    columns: Optional[Iterable[str]] = None,
    paramstyle: str = "qmark",
    quote_identifiers: bool = False,
    distinct: bool = False,
    include_count: bool = False,
) -> SelectBuildResult:
    """
    Build a SELECT over `view` restricted by the compiled filters.
    - SELECT list from `columns` (all columns when empty)
    - FROM supports db.schema.table
    - WHERE is omitted when there are no filters
    """
    if not view:
        raise ValueError("view is required")

    select_list = _normalize_columns(columns, quote_identifiers=quote_identifiers)
    distinct_kw = "DISTINCT " if distinct else ""
    from_name = _quote_dotted_identifier(view, quote_identifiers=quote_identifiers)

    where_clause, params = build_where_clause_and_params(
        filters,
        resolver,
        paramstyle=paramstyle,
        default_when_empty="",  # no WHERE 1=1 in SELECT
    )

    sql = f"SELECT {distinct_kw}{select_list} FROM {from_name}"
    if where_clause:
        sql += f" {where_clause}"

    count_sql = None
    count_params = None
    if include_count:
        where_only, count_params = build_where_clause_and_params(
            filters,
            resolver,
            paramstyle=paramstyle,
            default_when_empty="",
        )
        count_sql = f"SELECT COUNT(*) FROM {from_name}"
        if where_only:
            count_sql += f" {where_only}"

    return SelectBuildResult(
        sql=sql,
        params=params,
        count_sql=count_sql,
        count_params=count_params,
        filters=list(filters or []),
    )


__all__ = [
    "ParamSink",
    "Param",
    "SqlPredicate",
    "ColumnSpec",
    "SqlExpr",
    "SqlFieldResolver",
    "build_where_clause_and_params",
    "build_select_from_filters",
    "SelectBuildResult",
]
