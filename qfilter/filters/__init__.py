"""
Filter language for the qfilter service.

This module provides the filter model, the `field;operation;value[;type]`
parser and encoder, value coercion, and the Markdown syntax reference.
"""

from .errors import (
    FilterError,
    MalformedFilterError,
    UnknownOperationError,
    UnknownTypeError,
    InvalidValueError,
    UnsupportedOperationError,
    UnknownEnumMemberError,
    UnknownFieldError,
)
from .models import (
    Operation,
    FilterType,
    Scalar,
    Many,
    Value,
    Filter,
    FilterList,
)
from .coercion import coerce_value, render_value
from .parser import (
    make_filter,
    parse,
    parse_all,
    encode,
    encode_filter,
)
from .docs import render_filter_docs

__all__ = [
    "FilterError",
    "MalformedFilterError",
    "UnknownOperationError",
    "UnknownTypeError",
    "InvalidValueError",
    "UnsupportedOperationError",
    "UnknownEnumMemberError",
    "UnknownFieldError",
    "Operation",
    "FilterType",
    "Scalar",
    "Many",
    "Value",
    "Filter",
    "FilterList",
    "coerce_value",
    "render_value",
    "make_filter",
    "parse",
    "parse_all",
    "encode",
    "encode_filter",
    "render_filter_docs",
]
