from __future__ import annotations
from typing import Any


class FilterError(ValueError):
    """
    Base class for every error raised while parsing or compiling filters.
    Subclasses ValueError so callers that already map bad input to a 400 keep working.
    """


class MalformedFilterError(FilterError):
    def __init__(self, raw: str, reason: str = "expected field;operation;value[;type]"):
        self.raw = raw
        self.reason = reason
        super().__init__(f"Malformed filter {raw!r}: {reason}")


class UnknownOperationError(FilterError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown filter operation: {token!r}")


class UnknownTypeError(FilterError):
    def __init__(self, token: str):
        self.token = token
        super().__init__(f"Unknown filter type: {token!r}")


class InvalidValueError(FilterError):
    def __init__(self, field: str, type_: Any, token: str):
        self.field = field
        self.type = type_
        self.token = token
        name = getattr(type_, "value", type_)
        super().__init__(f"Invalid {name} value for field {field!r}: {token!r}")


class UnsupportedOperationError(FilterError):
    def __init__(self, field: str, operation: Any, type_: Any):
        self.field = field
        self.operation = operation
        self.type = type_
        op = getattr(operation, "value", operation)
        name = getattr(type_, "value", type_)
        super().__init__(f"Operation {op} is not supported for {name} values (field {field!r})")


class UnknownEnumMemberError(FilterError):
    def __init__(self, field: str, enum_name: str, value: Any):
        self.field = field
        self.enum_name = enum_name
        self.value = value
        super().__init__(f"{value!r} is not a member of {enum_name} (field {field!r})")


class UnknownFieldError(FilterError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Unknown filter field: {field!r}")


__all__ = [
    "FilterError",
    "MalformedFilterError",
    "UnknownOperationError",
    "UnknownTypeError",
    "InvalidValueError",
    "UnsupportedOperationError",
    "UnknownEnumMemberError",
    "UnknownFieldError",
]
