"""Report content — the format-independent document every renderer lays out.

``build_content`` resolves everything that does not depend on the output
format: header and footer lines, the title block, formatted table cells,
the totals row, the running cash balance and the amount-in-words
summary. Renderers only map a
ReportContent onto their own layout model, which keeps content parity
across PDF, Excel and Word.
"""

import dataclasses
import datetime
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.domain.amounts import format_montant, montant_en_lettres
from src.errors import AmountOutOfRangeError
from src.schema.formatting import aggregate_values, format_aggregate, format_cell, to_number
from src.schema.models import Orientation, ReportTemplate, TableColumn, WatermarkSpec
from src.settings.models import DEFAULT_EXPORT_SETTINGS, ExportSettings
from src.settings.resolver import footer_lines, header_lines

logger = logging.getLogger(__name__)

TOTAL_LABEL = "TOTAL"
OUT_OF_RANGE_PLACEHOLDER = "(montant hors limites)"


class RowKind(Enum):
    DATA = "data"
    CATEGORY = "category"      # Bold sub-header, excluded from totals


@dataclass(frozen=True)
class BodyRow:
    """One table row: display strings plus the raw values they came from."""
    kind: RowKind
    cells: tuple[str, ...]
    values: tuple[Any, ...]


@dataclass(frozen=True)
class ReportContent:
    """Everything a renderer needs, in emission order."""
    template: ReportTemplate
    settings: ExportSettings
    generated_at: datetime.datetime
    # Header block
    header_lines: tuple[str, ...]
    reference: str
    # Title block
    title: str
    subtitle: str
    generation_line: str | None
    # Table
    columns: tuple[TableColumn, ...]
    header_row: tuple[str, ...]
    body: tuple[BodyRow, ...]
    totals: dict[str, Any]
    totals_row: tuple[str, ...] | None
    # Closing blocks
    summary_line: str | None
    footer_lines: tuple[str, ...]
    watermark: WatermarkSpec | None
    show_page_numbers: bool
    orientation: Orientation
    # Running cash balance, feuille de caisse only
    opening_balance: float | None = None
    closing_balance: float | None = None
    balance_lines: tuple[str, ...] = ()

    @property
    def data_rows(self) -> list[BodyRow]:
        return [r for r in self.body if r.kind == RowKind.DATA]

    @property
    def is_landscape(self) -> bool:
        return self.orientation == Orientation.LANDSCAPE

    def relative_widths(self) -> list[float]:
        """Column widths normalized to sum to 1."""
        total = sum(c.width for c in self.columns) or 1.0
        return [c.width / total for c in self.columns]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get(row: Any, key: str) -> Any:
    """Read ``key`` from a mapping or an attribute-style record."""
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


_TRUE_STRINGS = {"1", "true", "yes", "oui", "x"}


def _truthy(value: Any) -> bool:
    """Category flags may come from CSV files as text."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


def _reference(template: ReportTemplate, when: datetime.datetime) -> str:
    ref = template.header.reference_number.strip()
    if not ref:
        return ""
    return f"{ref.rstrip('/')}/{when.year}"


def _generation_line(when: datetime.datetime) -> str:
    return f"Généré le {when:%d/%m/%Y} à {when:%H:%M:%S}"


def _watermark(template: ReportTemplate, settings: ExportSettings) -> WatermarkSpec | None:
    """Template watermark geometry with the text from the effective settings."""
    if not settings.show_watermark:
        return None
    if template.watermark is None:
        if not settings.watermark_text:
            return None
        return WatermarkSpec(text=settings.watermark_text)
    if not settings.watermark_text:
        return template.watermark
    return dataclasses.replace(template.watermark, text=settings.watermark_text)


def _balance_lines(template: ReportTemplate, opening: float,
                   closing: float) -> tuple[str, ...]:
    spec = template.balance
    return (
        f"{spec.opening_label} : {format_montant(opening)} FC",
        f"{spec.closing_label} : {format_montant(closing)} FC",
    )


def _summary_line(template: ReportTemplate, totals: dict[str, Any]) -> str | None:
    if template.summary is None:
        return None
    total = totals.get(template.summary.column_key)
    if total is None:
        total = 0
    try:
        words = montant_en_lettres(total)
    except AmountOutOfRangeError as exc:
        logger.warning("Summary of %s: %s", template.id, exc)
        words = OUT_OF_RANGE_PLACEHOLDER
    return f"{template.summary.label} : {words} ({format_montant(total)} FC)."


def _totals_row(columns: tuple[TableColumn, ...], totals: dict[str, Any]) -> tuple[str, ...]:
    cells = []
    for i, col in enumerate(columns):
        if col.key in totals:
            cells.append(format_aggregate(totals[col.key], col))
        elif i == 0:
            cells.append(TOTAL_LABEL)
        else:
            cells.append("")
    return tuple(cells)


# ---------------------------------------------------------------------------
# build_content
# ---------------------------------------------------------------------------

def build_content(
    template: ReportTemplate,
    rows: Iterable[Any],
    title: str,
    subtitle: str = "",
    settings: ExportSettings | None = None,
    generated_at: datetime.datetime | None = None,
    opening_balance: float = 0,
) -> ReportContent:
    """Resolve a template and row records into a ReportContent.

    Parameters
    ----------
    template : ReportTemplate
        Column and layout definition.
    rows : iterable
        Row records (mappings or objects); columns index into them by key.
        Missing keys render as empty cells.
    title, subtitle : str
        Title block text. The title is shown upper-cased.
    settings : ExportSettings, optional
        Effective settings; defaults are used when omitted.
    generated_at : datetime, optional
        Timestamp printed on the document; now if omitted.
    opening_balance : float, optional
        Cash on hand before the first row, for templates that carry a
        running balance. Each data row adds its credit and subtracts its
        debit; category rows do not move the balance.

    Raises
    ------
    TemplateError
        If the template has no columns or duplicate column keys.
    """
    template.validate()
    settings = settings or DEFAULT_EXPORT_SETTINGS
    generated_at = generated_at or datetime.datetime.now()
    columns = template.columns
    keys = [c.key for c in columns]
    balance = template.balance
    opening = float(opening_balance or 0)
    running = opening

    body: list[BodyRow] = []
    for row in rows:
        values = tuple(_get(row, k) for k in keys)
        is_category = bool(template.category_key) and _truthy(_get(row, template.category_key))
        if balance and not is_category:
            running += (to_number(_get(row, balance.credit_key)) or 0)
            running -= (to_number(_get(row, balance.debit_key)) or 0)
            if balance.column_key:
                values = tuple(running if k == balance.column_key else v
                               for k, v in zip(keys, values))
        elif balance and balance.column_key:
            values = tuple(None if k == balance.column_key else v
                           for k, v in zip(keys, values))
        body.append(BodyRow(
            kind=RowKind.CATEGORY if is_category else RowKind.DATA,
            cells=tuple(format_cell(v, c) for v, c in zip(values, columns)),
            values=values,
        ))

    totals: dict[str, Any] = {}
    data_rows = [r for r in body if r.kind == RowKind.DATA]
    for idx, col in enumerate(columns):
        if col.aggregate is not None:
            totals[col.key] = aggregate_values((r.values[idx] for r in data_rows), col.aggregate)

    totals_row = None
    if template.show_totals and totals:
        totals_row = _totals_row(columns, totals)

    summary_totals = dict(totals)
    if template.summary and template.summary.column_key not in summary_totals:
        # Summaries over a column without an aggregate still add it up
        idx = keys.index(template.summary.column_key)
        summary_totals[template.summary.column_key] = sum(
            n for n in (to_number(r.values[idx]) for r in data_rows) if n is not None
        )

    return ReportContent(
        template=template,
        settings=settings,
        generated_at=generated_at,
        header_lines=tuple(header_lines(settings)),
        reference=_reference(template, generated_at),
        title=(title or template.name).upper(),
        subtitle=subtitle or "",
        generation_line=_generation_line(generated_at) if settings.show_generation_date else None,
        columns=columns,
        header_row=tuple(c.header for c in columns),
        body=tuple(body),
        totals=totals,
        totals_row=totals_row,
        summary_line=_summary_line(template, summary_totals),
        footer_lines=tuple(footer_lines(settings)) if settings.show_footer else (),
        watermark=_watermark(template, settings),
        show_page_numbers=settings.show_page_numbers,
        orientation=settings.orientation or template.orientation,
        opening_balance=opening if balance else None,
        closing_balance=running if balance else None,
        balance_lines=_balance_lines(template, opening, running) if balance else (),
    )

