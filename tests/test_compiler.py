"""Tests for compiling filters into predicates."""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Any, Tuple

import pytest

from qfilter.filters import (
    Filter,
    FilterType,
    Operation,
    Scalar,
    UnknownEnumMemberError,
    UnknownFieldError,
    UnsupportedOperationError,
    parse,
    parse_all,
)
from qfilter.query import ColumnType, ParamSink, SqlPredicate, compile_filters
from qfilter.query.compiler import contains_pattern, escape_like


def _render(predicate: SqlPredicate) -> Tuple[str, list]:
    sink = ParamSink()
    return predicate.render(sink), sink.bundle()


# A minimal host backend: predicates are nested tuples.
@dataclass(frozen=True)
class Node:
    tree: Any

    def __and__(self, other: "Node") -> "Node":
        return Node(("and", self.tree, other.tree))

    def __or__(self, other: "Node") -> "Node":
        return Node(("or", self.tree, other.tree))


@dataclass(frozen=True)
class TupleExpr:
    name: str
    column_type: ColumnType = ColumnType.OTHER
    enum_name: Any = None
    enum_members: Tuple[str, ...] = ()

    @property
    def is_enum(self) -> bool:
        return bool(self.enum_members)

    def eq(self, v): return Node(("=", self.name, v))
    def gt(self, v): return Node((">", self.name, v))
    def ge(self, v): return Node((">=", self.name, v))
    def lt(self, v): return Node(("<", self.name, v))
    def le(self, v): return Node(("<=", self.name, v))
    def isin(self, vs): return Node(("in", self.name, tuple(vs)))
    def upper_like(self, p): return Node(("like", self.name, p))


class TupleResolver:
    def __init__(self, **types: ColumnType):
        self.types = types
        self.calls = []

    def resolve(self, field: str) -> TupleExpr:
        self.calls.append(field)
        return TupleExpr(field, self.types.get(field, ColumnType.OTHER))


class TestCompileShape:
    def test_empty_and_none(self, resolver) -> None:
        assert compile_filters([], resolver) is None
        assert compile_filters(None, resolver) is None

    def test_single_filter(self, resolver) -> None:
        sql, params = _render(compile_filters([parse("age;GT;30;INT")], resolver))
        assert sql == "AGE > ?"
        assert params == [30]

    def test_conjunction(self, resolver) -> None:
        filters = parse_all(["age;GT;30;INT", "name;LK;john;STRING"])
        sql, params = _render(compile_filters(filters, resolver))
        assert sql == "AGE > ? AND UPPER(NAME) LIKE ? ESCAPE '\\'"
        assert params == [30, "%JOHN%"]

    def test_search_only_is_a_single_or_group(self, resolver) -> None:
        filters = parse_all(["name;SEARCH;john;STRING", "email;SEARCH;john;STRING"])
        sql, params = _render(compile_filters(filters, resolver))
        assert sql == "UPPER(NAME) LIKE ? ESCAPE '\\' OR UPPER(EMAIL) LIKE ? ESCAPE '\\'"
        assert params == ["%JOHN%", "%JOHN%"]

    def test_search_group_joins_the_conjunction(self, resolver) -> None:
        filters = parse_all(["name;SEARCH;jo", "age;GT;30;INT", "email;SEARCH;jo"])
        sql, params = _render(compile_filters(filters, resolver))
        assert sql == (
            "AGE > ? AND (UPPER(NAME) LIKE ? ESCAPE '\\' OR UPPER(EMAIL) LIKE ? ESCAPE '\\')"
        )
        assert params == [30, "%JO%", "%JO%"]

    def test_backend_only_sees_and_or(self) -> None:
        r = TupleResolver(age=ColumnType.NUMBER)
        filters = parse_all(["age;GE;18;INT", "name;SEARCH;a", "age;LT;65;INT", "email;SEARCH;a"])
        assert compile_filters(filters, r).tree == (
            "and",
            ("and", (">=", "age", 18), ("<", "age", 65)),
            ("or", ("like", "name", "%A%"), ("like", "email", "%A%")),
        )
        assert r.calls == ["age", "name", "age", "email"]

    def test_order_does_not_change_meaning(self, resolver) -> None:
        a = parse_all(["age;GT;30;INT", "name;LK;x"])
        _, p1 = _render(compile_filters(a, resolver))
        _, p2 = _render(compile_filters(list(reversed(a)), resolver))
        assert sorted(map(str, p1)) == sorted(map(str, p2))


class TestComparisons:
    @pytest.mark.parametrize("op, sql", [("EQ", "="), ("GT", ">"), ("GE", ">="), ("LT", "<"), ("LE", "<=")])
    def test_operators(self, resolver, op: str, sql: str) -> None:
        text, params = _render(compile_filters([parse(f"age;{op};7;INT")], resolver))
        assert text == f"AGE {sql} ?"
        assert params == [7]

    def test_date_widened_on_timestamp_field(self, resolver) -> None:
        _, params = _render(compile_filters([parse("birthday;LT;2022-01-01;DATE")], resolver))
        assert params == [dt.datetime(2022, 1, 1, 0, 0, 0)]

    def test_datetime_narrowed_on_date_field(self, resolver) -> None:
        _, params = _render(compile_filters([parse("signup_date;GE;2022-03-04T10:30:00;DATETIME")], resolver))
        assert params == [dt.date(2022, 3, 4)]

    def test_matching_temporal_types_untouched(self, resolver) -> None:
        _, params = _render(compile_filters([parse("birthday;GT;2022-03-04T10:30:00;DATETIME")], resolver))
        assert params == [dt.datetime(2022, 3, 4, 10, 30)]

    def test_unknown_field(self, resolver) -> None:
        with pytest.raises(UnknownFieldError):
            compile_filters([parse("nope;EQ;1")], resolver)

    def test_error_aborts_whole_compile(self, resolver) -> None:
        with pytest.raises(UnsupportedOperationError):
            compile_filters(parse_all(["age;GT;30;INT", "age;LK;3;INT"]), resolver)


class TestContains:
    def test_lk_requires_string(self, resolver) -> None:
        with pytest.raises(UnsupportedOperationError) as exc:
            compile_filters([parse("shape;LK;1.5;FLOAT")], resolver)
        assert exc.value.type is FilterType.FLOAT

    def test_search_requires_string(self, resolver) -> None:
        f = Filter("active", Operation.SEARCH, Scalar(True), FilterType.BOOL)
        with pytest.raises(UnsupportedOperationError):
            compile_filters([f], resolver)

    def test_backend_receives_escaped_upper_pattern(self) -> None:
        r = TupleResolver()
        tree = compile_filters([parse("name;LK;50%_off\\x")], r).tree
        assert tree == ("like", "name", "%50\\%\\_OFF\\\\X%")

    def test_sql_backend_declares_escape_character(self, resolver) -> None:
        sql, params = _render(compile_filters([parse("name;LK;a_b")], resolver))
        assert sql.endswith("ESCAPE '\\'")
        assert params == ["%A\\_B%"]

    def test_wildcards_are_escaped(self) -> None:
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
        assert contains_pattern("50%_off") == "%50\\%\\_OFF%"


class TestEnums:
    def test_eq_matches_member_case_insensitively(self, resolver) -> None:
        sql, params = _render(compile_filters([parse("status;EQ;active")], resolver))
        assert sql == "STATUS = ?"
        assert params == ["ACTIVE"]

    def test_eq_unknown_member(self, resolver) -> None:
        with pytest.raises(UnknownEnumMemberError) as exc:
            compile_filters([parse("status;EQ;BOGUS")], resolver)
        assert exc.value.enum_name == "UserStatus"
        assert exc.value.value == "BOGUS"

    def test_in_keeps_matching_members_in_declared_order(self, resolver, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="query"):
            sql, params = _render(compile_filters([parse("status;IN;SUSPENDED~BOGUS~ACTIVE")], resolver))
        assert sql == "STATUS IN (?, ?)"
        assert params == ["ACTIVE", "SUSPENDED"]
        assert "BOGUS" in caplog.text

    def test_in_matches_exact_case_only(self, resolver) -> None:
        sql, params = _render(compile_filters([parse("status;IN;active~inactive")], resolver))
        assert sql == "1=0"
        assert params == []

    def test_in_on_scalar_field(self, resolver) -> None:
        sql, params = _render(compile_filters([parse("age;IN;1~2~3;INT")], resolver))
        assert sql == "AGE IN (?, ?, ?)"
        assert params == [1, 2, 3]

    def test_in_dates_widened_on_timestamp_field(self, resolver) -> None:
        _, params = _render(compile_filters([parse("birthday;IN;2022-01-01~2022-01-02;DATE")], resolver))
        assert params == [dt.datetime(2022, 1, 1), dt.datetime(2022, 1, 2)]
