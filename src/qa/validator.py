"""QA validator — reads a generated document back and checks it against its content.

The three renderers lay out the same ReportContent; this module verifies
content parity on the output itself: header and footer lines present, title
shown, table header labels, one table row per body row, totals row, page
numbering. PDF is read with pdfplumber, Excel with openpyxl and Word with
python-docx.

Usage::

    from src.qa.validator import ExportValidator

    result = ExportValidator(content).validate(data, ExportFormat.EXCEL)
    assert result.passed, result.report()
"""

import io
import re
from dataclasses import dataclass, field

import pdfplumber
from docx import Document
from openpyxl import load_workbook

from src.generator.content import TOTAL_LABEL, ReportContent
from src.schema.models import ExportFormat


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class Issue:
    """A single QA issue found during validation."""
    severity: str       # "error" or "warning"
    section: str        # "header", "title", "table", "footer", "page"
    row_index: int      # Table row (0 = header row), -1 outside the table
    category: str       # e.g. "missing_text", "row_count", "totals"
    message: str

    def __str__(self) -> str:
        loc = self.section
        if self.row_index >= 0:
            loc += f" row {self.row_index}"
        return f"[{self.severity.upper()}] {loc}: {self.message}"


@dataclass
class QAResult:
    """Aggregated result of QA validation."""
    issues: list[Issue] = field(default_factory=list)

    @property
    def errors(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "error"]

    @property
    def warnings(self) -> list[Issue]:
        return [i for i in self.issues if i.severity == "warning"]

    @property
    def passed(self) -> bool:
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def summary(self) -> str:
        """One-line summary string."""
        status = "PASS" if self.passed else "FAIL"
        return (
            f"QA {status}: {self.error_count} error(s), "
            f"{self.warning_count} warning(s)"
        )

    def report(self) -> str:
        """Multi-line report of all issues."""
        lines = [self.summary()]
        for issue in self.issues:
            lines.append(f"  {issue}")
        return "\n".join(lines)

    def error(self, section: str, category: str, message: str, row_index: int = -1) -> None:
        self.issues.append(Issue("error", section, row_index, category, message))

    def warning(self, section: str, category: str, message: str, row_index: int = -1) -> None:
        self.issues.append(Issue("warning", section, row_index, category, message))


# ---------------------------------------------------------------------------
# Read-back helpers
# ---------------------------------------------------------------------------

def _norm(text) -> str:
    """Collapse whitespace for containment checks."""
    return re.sub(r"\s+", " ", str(text or "")).strip()


def pdf_page_texts(data: bytes, watermark_size: float | None = None) -> list[str]:
    """Extract the text of each PDF page, leaving out the watermark.

    Rotated characters are dropped, and so are characters at least as large
    as the watermark font when one is given.
    """
    def keep(obj) -> bool:
        if obj.get("object_type") != "char":
            return True
        if not obj.get("upright", True):
            return False
        if watermark_size and obj.get("size", 0) >= watermark_size * 0.9:
            return False
        return True

    texts = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            texts.append(page.filter(keep).extract_text() or "")
    return texts


def find_header_row(ws, labels: tuple[str, ...]) -> int | None:
    """1-based index of the worksheet row whose first cells equal ``labels``."""
    n = len(labels)
    for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=n):
        values = tuple("" if c.value is None else str(c.value) for c in row)
        if values == tuple(labels):
            return row[0].row
    return None


def excel_table_rows(ws, header_row: int, n_cols: int) -> list[tuple]:
    """Rows below the header up to the first blank row (totals included)."""
    rows = []
    for row in ws.iter_rows(min_row=header_row + 1, max_row=ws.max_row,
                            max_col=n_cols, values_only=True):
        if all(v is None or v == "" for v in row):
            break
        rows.append(row)
    return rows


# ---------------------------------------------------------------------------
# ExportValidator
# ---------------------------------------------------------------------------

class ExportValidator:
    """Validates a generated document against the ReportContent it came from.

    Parameters
    ----------
    content : ReportContent
        The content that was rendered.
    """

    def __init__(self, content: ReportContent) -> None:
        self.content = content

    def validate(self, data: bytes, fmt: ExportFormat) -> QAResult:
        result = QAResult()
        if not data:
            result.error("document", "empty", "Document is empty")
            return result
        checks = {
            ExportFormat.PDF: self._validate_pdf,
            ExportFormat.EXCEL: self._validate_excel,
            ExportFormat.WORD: self._validate_word,
        }
        checks[fmt](data, result)
        return result

    # -- shared -----------------------------------------------------------

    def _check_text_blocks(self, text: str, footer_text: str, result: QAResult) -> None:
        c = self.content
        text = _norm(text)
        for line in c.header_lines:
            if _norm(line) not in text:
                result.error("header", "missing_text", f"Header line missing: {line!r}")
        if _norm(c.title) not in text:
            result.error("title", "missing_text", f"Title missing: {c.title!r}")
        for line in c.balance_lines:
            if _norm(line) not in text:
                result.error("balance", "missing_text", f"Balance line missing: {line!r}")
        if c.subtitle and _norm(c.subtitle) not in text:
            result.warning("title", "missing_text", f"Subtitle missing: {c.subtitle!r}")
        if c.summary_line and _norm(c.summary_line) not in text:
            result.warning("summary", "missing_text", "Summary line missing")
        footer_text = _norm(footer_text)
        for line in c.footer_lines:
            if _norm(line) not in footer_text:
                result.error("footer", "missing_text", f"Footer line missing: {line!r}")

    def _expected_table_rows(self) -> int:
        return len(self.content.body) + (1 if self.content.totals_row is not None else 0)

    # -- PDF --------------------------------------------------------------

    def _validate_pdf(self, data: bytes, result: QAResult) -> None:
        c = self.content
        wm_size = c.watermark.font_size if c.watermark else None
        pages = pdf_page_texts(data, wm_size)
        full = "\n".join(pages)
        self._check_text_blocks(full, full, result)

        flat = _norm(full)
        for label in c.header_row:
            if _norm(label) not in flat:
                result.error("table", "missing_text", f"Column header missing: {label!r}", 0)
        for i, row in enumerate(c.body, start=1):
            for cell in row.cells:
                # Long cells wrap inside the table, so only short ones are checked
                if cell and len(cell) <= 20 and _norm(cell) not in flat:
                    result.warning("table", "missing_text", f"Cell text not found: {cell!r}", i)
        if c.totals_row is not None and TOTAL_LABEL in c.totals_row and TOTAL_LABEL not in flat:
            result.error("table", "totals", "Totals row missing")

        if c.show_page_numbers:
            n = len(pages)
            for idx, text in enumerate(pages, start=1):
                if f"Page {idx} sur {n}" not in text:
                    result.error("page", "page_number", f"Page number missing on page {idx}")

    # -- Excel ------------------------------------------------------------

    def _validate_excel(self, data: bytes, result: QAResult) -> None:
        c = self.content
        wb = load_workbook(io.BytesIO(data))
        ws = wb.active
        texts = [str(v) for row in ws.iter_rows(values_only=True) for v in row if v is not None]
        all_text = "\n".join(texts)
        self._check_text_blocks(all_text, all_text, result)

        header_row = find_header_row(ws, c.header_row)
        if header_row is None:
            result.error("table", "header", "Table header row not found", 0)
            return
        rows = excel_table_rows(ws, header_row, len(c.columns))
        if len(rows) != self._expected_table_rows():
            result.error("table", "row_count",
                         f"Expected {self._expected_table_rows()} table rows below the "
                         f"header, found {len(rows)}")
            return

        if c.totals_row is not None:
            totals = rows[-1]
            for idx, col in enumerate(c.columns):
                expected = c.totals.get(col.key)
                if expected is None:
                    continue
                actual = totals[idx]
                if not isinstance(actual, (int, float)) or abs(actual - expected) > 0.005:
                    result.error("table", "totals",
                                 f"Total of {col.key!r} is {actual!r}, expected {expected!r}",
                                 len(rows))

        if c.show_page_numbers and "&P" not in (ws.oddFooter.right.text or ""):
            result.warning("page", "page_number", "Print footer has no page number")

    # -- Word -------------------------------------------------------------

    def _validate_word(self, data: bytes, result: QAResult) -> None:
        c = self.content
        doc = Document(io.BytesIO(data))
        body_text = "\n".join(p.text for p in doc.paragraphs)
        section = doc.sections[0]
        footer_text = "\n".join(p.text for p in section.footer.paragraphs)
        self._check_text_blocks(body_text, footer_text, result)

        if not doc.tables:
            result.error("table", "missing", "No table in document")
            return
        table = doc.tables[0]
        header = tuple(cell.text for cell in table.rows[0].cells)
        if header != c.header_row:
            result.error("table", "header", f"Header row is {header!r}", 0)
        body_rows = len(table.rows) - 1
        if body_rows != self._expected_table_rows():
            result.error("table", "row_count",
                         f"Expected {self._expected_table_rows()} table rows below the "
                         f"header, found {body_rows}")
            return
        for i, row in enumerate(c.body, start=1):
            cells = tuple(cell.text for cell in table.rows[i].cells)
            if cells != row.cells:
                result.error("table", "cell_mismatch", f"Row is {cells!r}", i)

        if c.show_page_numbers and "NUMPAGES" not in section.footer._element.xml:
            result.error("page", "page_number", "Footer has no page count field")


def validate_export(content: ReportContent, data: bytes, fmt: ExportFormat) -> QAResult:
    """Convenience function: validate a document in one call."""
    return ExportValidator(content).validate(data, fmt)
