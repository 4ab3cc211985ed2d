"""
Query building module for the qfilter service.

This module compiles parsed filters into predicates and renders them as SQL.
"""

from .compiler import (
    ColumnType,
    Expr,
    FieldResolver,
    Predicate,
    compile_filter,
    compile_filters,
)
from .sql import (
    ColumnSpec,
    ParamSink,
    SqlExpr,
    SqlFieldResolver,
    SqlPredicate,
    build_where_clause_and_params,
    build_select_from_filters,
    SelectBuildResult,
)

__all__ = [
    "ColumnType",
    "Expr",
    "FieldResolver",
    "Predicate",
    "compile_filter",
    "compile_filters",
    "ColumnSpec",
    "ParamSink",
    "SqlExpr",
    "SqlFieldResolver",
    "SqlPredicate",
    "build_where_clause_and_params",
    "build_select_from_filters",
    "SelectBuildResult",
]
