"""QA validation package for the report export pipeline.

Reads generated PDF, Excel and Word output back and checks it against the
ReportContent it was rendered from: header and footer lines, title, table
rows, totals and page numbering.
"""

from .validator import (
    ExportValidator,
    Issue,
    QAResult,
    excel_table_rows,
    find_header_row,
    pdf_page_texts,
    validate_export,
)

__all__ = [
    "ExportValidator",
    "Issue",
    "QAResult",
    "excel_table_rows",
    "find_header_row",
    "pdf_page_texts",
    "validate_export",
]
