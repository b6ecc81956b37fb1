"""Excel renderer — lays out a ReportContent as an openpyxl worksheet.

Blocks are written top to bottom as rows: header lines, reference, title,
subtitle, generation date, the table (numbers stored as numbers), totals,
summary, footer lines. Page setup carries the orientation and margins; the
print header holds the watermark text and the print footer the page
numbers.
"""

import datetime
import io
import logging

from openpyxl import Workbook
from openpyxl.styles import Alignment as CellAlignment
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.page import PageMargins

from src.schema.formatting import hex_color_code, is_missing, to_number
from src.schema.models import Aggregate, ColumnType, ExportFormat, TableColumn

from .base import DocumentBuilder
from .content import RowKind

logger = logging.getLogger(__name__)

MONEY_FORMAT = "#,##0.00"
INTEGER_FORMAT = "#,##0"
DATE_FORMAT = "DD/MM/YYYY"
PAGE_NUMBER_FOOTER = "Page &P sur &N"
MM_PER_INCH = 25.4


def _argb(hex_color: str) -> str:
    return "FF" + hex_color_code(hex_color)


def _fill(hex_color: str) -> PatternFill:
    return PatternFill(start_color=_argb(hex_color), end_color=_argb(hex_color),
                       fill_type="solid")


def _as_date(value) -> datetime.date | None:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        try:
            return datetime.date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def cell_value(value, column: TableColumn, display: str):
    """Value to store in a worksheet cell.

    Numeric columns keep real numbers so totals stay computable in Excel;
    anything that does not fit the column type is stored as displayed.
    """
    if is_missing(value):
        return None
    if column.formatter is not None:
        return display
    if column.is_numeric:
        number = to_number(value)
        return display if number is None else number
    if column.column_type == ColumnType.DATE:
        return _as_date(value) or display
    return display


def number_format(column: TableColumn, value) -> str | None:
    if column.column_type == ColumnType.CURRENCY:
        return MONEY_FORMAT
    if column.column_type == ColumnType.NUMBER:
        if isinstance(value, float) and not value.is_integer():
            return MONEY_FORMAT
        return INTEGER_FORMAT
    if column.column_type == ColumnType.DATE:
        return DATE_FORMAT
    return None


class ExcelBuilder(DocumentBuilder):
    """Builds an .xlsx workbook from a ReportContent."""

    format = ExportFormat.EXCEL

    def build(self) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = (self.content.template.name or "Rapport")[:31]

        self.header_row_index = self._write(ws)
        self._page_setup(ws)

        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    # -- layout -----------------------------------------------------------

    def _write(self, ws) -> int:
        """Write all blocks; return the row index of the table header."""
        c = self.content
        s = self.settings
        n_cols = len(c.columns)
        last_col = get_column_letter(n_cols)
        size = s.font_size + 1
        row = 1

        def banner(text: str, font: Font) -> None:
            nonlocal row
            cell = ws.cell(row=row, column=1, value=text)
            cell.font = font
            cell.alignment = CellAlignment(horizontal="center")
            if n_cols > 1:
                ws.merge_cells(f"A{row}:{last_col}{row}")
            row += 1

        for line in c.header_lines:
            banner(line, Font(name=s.font_family, bold=True, size=size))
        if c.reference:
            ws.cell(row=row, column=1, value=f"N° {c.reference}").font = Font(size=size)
            row += 1
        row += 1

        banner(c.title, Font(name=s.font_family, bold=True, underline="single",
                             size=c.template.styles.title_size))
        if c.subtitle:
            banner(c.subtitle, Font(name=s.font_family, size=size))
        if c.generation_line:
            banner(c.generation_line, Font(name=s.font_family, italic=True, size=s.font_size,
                                           color="FF4B5563"))
        row += 1

        header_row = row
        self._write_table(ws, header_row)
        row = header_row + 1 + len(c.body) + (1 if c.totals_row is not None else 0)

        if c.balance_lines:
            row += 1
            for line in c.balance_lines:
                cell = ws.cell(row=row, column=1, value=line)
                cell.font = Font(name=s.font_family, bold=True, size=size)
                cell.alignment = CellAlignment(horizontal="right")
                if n_cols > 1:
                    ws.merge_cells(f"A{row}:{last_col}{row}")
                row += 1

        if c.summary_line:
            row += 1
            cell = ws.cell(row=row, column=1, value=c.summary_line)
            cell.font = Font(name=s.font_family, bold=True, size=size)
            cell.alignment = CellAlignment(wrap_text=True, vertical="top")
            if n_cols > 1:
                ws.merge_cells(f"A{row}:{last_col}{row}")
            ws.row_dimensions[row].height = 30
            row += 1

        if c.footer_lines:
            row += 1
            for i, line in enumerate(c.footer_lines):
                banner(line, Font(name=s.font_family, bold=(i == 0), size=max(s.font_size - 2, 6),
                                  color="FF4B5563"))

        for idx, col in enumerate(c.columns, start=1):
            ws.column_dimensions[get_column_letter(idx)].width = max(col.width * 1.2, 8)
        return header_row

    def _write_table(self, ws, header_row: int) -> None:
        c = self.content
        s = self.settings
        side = Side(style="thin", color=_argb(s.border_color))
        border = Border(left=side, right=side, top=side, bottom=side)
        header_font = Font(name=s.font_family, bold=True, size=s.font_size,
                           color=_argb(s.header_text_color))
        body_font = Font(name=s.font_family, size=s.font_size)
        bold_font = Font(name=s.font_family, bold=True, size=s.font_size)
        alt_fill = _fill(s.alternate_row_color)
        category_fill = _fill(c.template.styles.category_row_color)

        for idx, label in enumerate(c.header_row, start=1):
            cell = ws.cell(row=header_row, column=idx, value=label)
            cell.font = header_font
            cell.fill = _fill(s.header_color)
            cell.border = border
            cell.alignment = CellAlignment(horizontal="center", vertical="center", wrap_text=True)

        r = header_row
        for i, body_row in enumerate(c.body):
            r += 1
            is_category = body_row.kind == RowKind.CATEGORY
            for idx, col in enumerate(c.columns, start=1):
                value = cell_value(body_row.values[idx - 1], col, body_row.cells[idx - 1])
                cell = ws.cell(row=r, column=idx, value=value)
                cell.border = border
                cell.font = bold_font if is_category else body_font
                cell.alignment = CellAlignment(horizontal=col.effective_alignment.value,
                                               vertical="center", wrap_text=True)
                fmt = number_format(col, value) if value is not None else None
                if fmt and not isinstance(value, str):
                    cell.number_format = fmt
                if is_category:
                    cell.fill = category_fill
                elif i % 2 == 1:
                    cell.fill = alt_fill

        if c.totals_row is not None:
            r += 1
            total_fill = _fill(c.template.styles.total_row_color)
            for idx, col in enumerate(c.columns, start=1):
                if col.key in c.totals:
                    value = c.totals[col.key]
                    cell = ws.cell(row=r, column=idx, value=value)
                    if value is not None:
                        cell.number_format = (INTEGER_FORMAT if col.aggregate == Aggregate.COUNT
                                              else number_format(col, value) or MONEY_FORMAT)
                else:
                    cell = ws.cell(row=r, column=idx, value=c.totals_row[idx - 1] or None)
                cell.font = bold_font
                cell.fill = total_fill
                cell.border = border
                cell.alignment = CellAlignment(horizontal=col.effective_alignment.value)

        ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

    def _page_setup(self, ws) -> None:
        c = self.content
        m = self.settings.margins
        ws.page_setup.orientation = "landscape" if c.is_landscape else "portrait"
        ws.page_setup.paperSize = ws.PAPERSIZE_A4
        ws.page_setup.fitToWidth = 1
        ws.page_setup.fitToHeight = 0
        ws.sheet_properties.pageSetUpPr.fitToPage = True
        ws.page_margins = PageMargins(
            left=m.left / MM_PER_INCH,
            right=m.right / MM_PER_INCH,
            top=m.top / MM_PER_INCH,
            bottom=m.bottom / MM_PER_INCH,
        )
        ws.print_title_rows = f"{self.header_row_index}:{self.header_row_index}"

        if c.watermark is not None:
            ws.oddHeader.center.text = c.watermark.text
            ws.oddHeader.center.size = 28
            ws.oddHeader.center.color = hex_color_code(c.watermark.color)
        if c.footer_lines:
            ws.oddFooter.left.text = c.footer_lines[0]
            ws.oddFooter.left.size = 7
        if c.show_page_numbers:
            ws.oddFooter.right.text = PAGE_NUMBER_FOOTER
            ws.oddFooter.right.size = 8


def build_excel(content) -> bytes:
    """Convenience function: build an .xlsx workbook in one call."""
    return ExcelBuilder(content).build()
