from __future__ import annotations
from typing import List, Optional, Sequence, Tuple

from .models import FilterType, Operation
from .parser import SEGMENT_SEPARATOR, VALUE_SEPARATOR, encode

_OPERATION_HELP = {
    Operation.EQ: "equal to; on enumerated fields the value matches a member name case-insensitively",
    Operation.GT: "greater than",
    Operation.GE: "greater than or equal to",
    Operation.LT: "less than",
    Operation.LE: "less than or equal to",
    Operation.LK: "contains the value, case-insensitive (STRING only)",
    Operation.IN: f"one of several values separated by `{VALUE_SEPARATOR}`",
    Operation.SEARCH: "free-text search, case-insensitive contains (STRING only); all SEARCH filters are ORed",
}

_TYPE_HELP = {
    FilterType.STRING: "text, taken verbatim (default)",
    FilterType.BOOL: "`true` or `false`, case-insensitive",
    FilterType.DATE: "calendar date `YYYY-MM-DD`",
    FilterType.DATETIME: "local date-time `YYYY-MM-DDThh:mm:ss`",
    FilterType.INT: "64-bit signed integer",
    FilterType.FLOAT: "decimal number (exact, not binary floating point)",
}

# (description, field, operation, value, type)
DEFAULT_EXAMPLES: Tuple[Tuple[str, str, Operation, object, Optional[FilterType]], ...] = (
    ("Age over 30", "age", Operation.GT, "30", FilterType.INT),
    ("Name contains john", "name", Operation.LK, "john", None),
    ("Status is active", "status", Operation.EQ, "ACTIVE", None),
    ("Born before 2022", "birthday", Operation.LT, "2022-01-01", FilterType.DATE),
    ("Country is one of", "country", Operation.IN, ["NL", "BE", "DE"], None),
    ("Free-text search on name", "name", Operation.SEARCH, "john", None),
)


def _table(header: Sequence[str], rows: List[Sequence[str]]) -> List[str]:
    out = ["| " + " | ".join(header) + " |", "|" + "|".join("---" for _ in header) + "|"]
    out += ["| " + " | ".join(r) + " |" for r in rows]
    return out


def render_filter_docs(examples: Optional[Sequence[tuple]] = None) -> str:
    """
    Markdown reference for the filter encoding: grammar, tokens and worked examples.
    Examples are produced with encode(), so they are always valid input.
    """
    lines: List[str] = [
        "# Filter syntax",
        "",
        f"Each filter is one string: `field{SEGMENT_SEPARATOR}operation{SEGMENT_SEPARATOR}value"
        f"[{SEGMENT_SEPARATOR}type]`.",
        "Operation and type names are case-insensitive. The type defaults to `STRING`.",
        "",
        "All filters are combined with AND, except `SEARCH` filters, which are combined "
        "with OR into a single group that joins the AND.",
        "",
        "## Operations",
        "",
    ]
    lines += _table(["Operation", "Meaning"], [[f"`{op.value}`", _OPERATION_HELP[op]] for op in Operation])
    lines += ["", "## Types", ""]
    lines += _table(["Type", "Value format"], [[f"`{t.value}`", _TYPE_HELP[t]] for t in FilterType])
    lines += [
        "",
        "## Limitations",
        "",
        f"- `{SEGMENT_SEPARATOR}` cannot appear inside any segment.",
        f"- `{VALUE_SEPARATOR}` separates `IN` values and cannot appear inside a `STRING` element of an `IN` filter.",
        "",
        "## Examples",
        "",
    ]
    rows = []
    for description, field, operation, value, type_ in examples or DEFAULT_EXAMPLES:
        rows.append([description, f"`{encode(field, operation, value, type_)}`"])
    lines += _table(["Example", "Filter"], rows)
    lines.append("")
    return "\n".join(lines)


__all__ = ["render_filter_docs", "DEFAULT_EXAMPLES"]
