"""Cell formatting and aggregation rules.

Implements the display conventions of the cash-office documents:
- Currency: 1 234 567,89 (space thousands, comma decimals, 2 decimals)
- Numbers: 1 234,5 (French grouping, up to 2 decimals)
- Dates: dd/mm/yyyy
- Missing values (None, NaN, ""): empty cell
"""

import datetime
import math
from collections.abc import Iterable
from decimal import Decimal
from typing import Any

from src.domain.amounts import format_montant, parse_montant

from .models import Aggregate, ColumnType, TableColumn


def is_missing(value: Any) -> bool:
    """Check if a value is None, NaN or an empty string."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def to_number(value: Any) -> float | None:
    """Interpret a cell value as a number, None if it is not one."""
    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        if not any(ch.isdigit() for ch in value):
            return None
        return parse_montant(value)
    return None


def format_number_fr(value: float | int) -> str:
    """French grouping, at most two decimals: 1234.5 -> '1 234,5'."""
    text = f"{value:,.2f}".rstrip("0").rstrip(".")
    return text.replace(",", " ").replace(".", ",")


def format_date_fr(value: Any) -> str:
    """Format a date, datetime or ISO string as dd/mm/yyyy."""
    if isinstance(value, datetime.datetime):
        value = value.date()
    if isinstance(value, datetime.date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, str):
        try:
            return datetime.date.fromisoformat(value.strip()[:10]).strftime("%d/%m/%Y")
        except ValueError:
            return value
    # pandas Timestamps and similar expose .date()
    if hasattr(value, "date") and callable(value.date):
        return format_date_fr(value.date())
    return str(value)


def format_cell(value: Any, column: TableColumn) -> str:
    """Format a raw row value for display in ``column``.

    A column's own formatter takes precedence. Values that do not fit the
    column type are shown as plain text rather than rejected.
    """
    if is_missing(value):
        return ""
    if column.formatter is not None:
        return column.formatter(value)

    if column.column_type in (ColumnType.CURRENCY, ColumnType.NUMBER):
        number = to_number(value)
        if number is None:
            return str(value)
        if column.column_type == ColumnType.CURRENCY:
            return format_montant(number)
        return format_number_fr(number)
    if column.column_type == ColumnType.DATE:
        return format_date_fr(value)
    return str(value)


def aggregate_values(values: Iterable[Any], aggregate: Aggregate) -> float | int | None:
    """Apply an aggregation to raw column values.

    Non-numeric values count as 0 for SUM (the cash-sheet convention) and
    are ignored by AVERAGE, MIN and MAX. COUNT counts non-missing values.
    """
    values = list(values)
    if aggregate == Aggregate.COUNT:
        return sum(1 for v in values if not is_missing(v))

    numbers = [n for n in (to_number(v) for v in values) if n is not None]
    if aggregate == Aggregate.SUM:
        return sum(numbers) if numbers else 0
    if not numbers:
        return None
    if aggregate == Aggregate.AVERAGE:
        return sum(numbers) / len(numbers)
    if aggregate == Aggregate.MIN:
        return min(numbers)
    if aggregate == Aggregate.MAX:
        return max(numbers)
    raise ValueError(f"Unknown aggregate: {aggregate!r}")


def format_aggregate(value: float | int | None, column: TableColumn) -> str:
    """Format a totals-row value; counts are always plain integers."""
    if value is None:
        return ""
    if column.aggregate == Aggregate.COUNT:
        return format_number_fr(value)
    return format_cell(value, column)


def hex_to_rgb(hex_color: str | None) -> tuple[int, int, int]:
    """Convert '#RRGGBB' or '#RGB' to an (r, g, b) tuple; black if malformed."""
    h = (hex_color or "").strip().lstrip("#")
    if len(h) == 3:
        h = "".join(c * 2 for c in h)
    if len(h) != 6:
        return (0, 0, 0)
    try:
        return tuple(bytes.fromhex(h))
    except ValueError:
        return (0, 0, 0)


def hex_color_code(hex_color: str | None) -> str:
    """Normalized 'RRGGBB' (upper case, no '#') for formats that store raw hex."""
    return "%02X%02X%02X" % hex_to_rgb(hex_color)
