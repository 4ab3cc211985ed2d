"""
qfilter: a text filter language (`field;operation;value[;type]`) and its
compiler into composable query predicates.
"""

from .filters import (
    Filter,
    FilterError,
    FilterType,
    Operation,
    encode,
    parse,
    parse_all,
    render_filter_docs,
)
from .query import compile_filters

__all__ = [
    "Filter",
    "FilterError",
    "FilterType",
    "Operation",
    "encode",
    "parse",
    "parse_all",
    "render_filter_docs",
    "compile_filters",
]
