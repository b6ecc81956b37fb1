"""Document generator package — PDF, Excel and Word renderers.

Consumes a ReportContent (built from a template, rows and settings) to
produce the document bytes in the requested format.

Modules:
    content: Format-independent report content
    pdf_builder: PDF via reportlab
    excel_builder: .xlsx via openpyxl
    word_builder: .docx via python-docx
"""

from src.schema.models import ExportFormat

from .base import DocumentBuilder
from .content import BodyRow, ReportContent, RowKind, build_content
from .excel_builder import ExcelBuilder, build_excel
from .pdf_builder import PDFBuilder, build_pdf
from .word_builder import WordBuilder, build_word

BUILDERS: dict[ExportFormat, type[DocumentBuilder]] = {
    ExportFormat.PDF: PDFBuilder,
    ExportFormat.EXCEL: ExcelBuilder,
    ExportFormat.WORD: WordBuilder,
}

__all__ = [
    "BUILDERS",
    "BodyRow",
    "DocumentBuilder",
    "ExcelBuilder",
    "PDFBuilder",
    "ReportContent",
    "RowKind",
    "WordBuilder",
    "build_content",
    "build_excel",
    "build_pdf",
    "build_word",
]
