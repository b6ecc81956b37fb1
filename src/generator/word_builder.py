"""Word renderer — lays out a ReportContent with python-docx.

The body flows header lines, reference, title, subtitle, generation date,
the table and the summary. The section footer carries the footer lines and
"Page X sur Y" (PAGE / NUMPAGES fields); the section header carries the
watermark text.
"""

import io
import logging
from pathlib import Path

from docx import Document
from docx.enum.section import WD_ORIENT
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Mm, Pt, RGBColor

from src.schema.formatting import hex_color_code, hex_to_rgb
from src.schema.models import Alignment, ExportFormat

from .base import DocumentBuilder
from .content import RowKind

logger = logging.getLogger(__name__)

A4_WIDTH_MM = 210
A4_HEIGHT_MM = 297

# python-docx has no built-in PDF font names; map to their Office equivalents
_WORD_FONTS = {
    "Helvetica": "Arial",
    "Times-Roman": "Times New Roman",
    "Courier": "Courier New",
}

_PARA_ALIGN = {
    Alignment.LEFT: WD_ALIGN_PARAGRAPH.LEFT,
    Alignment.CENTER: WD_ALIGN_PARAGRAPH.CENTER,
    Alignment.RIGHT: WD_ALIGN_PARAGRAPH.RIGHT,
}

_TABLE_ALIGN = {
    Alignment.LEFT: WD_TABLE_ALIGNMENT.LEFT,
    Alignment.CENTER: WD_TABLE_ALIGNMENT.CENTER,
    Alignment.RIGHT: WD_TABLE_ALIGNMENT.RIGHT,
}

MUTED = RGBColor(0x4B, 0x55, 0x63)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _rgb(hex_color: str) -> RGBColor:
    return RGBColor(*hex_to_rgb(hex_color))


def shade_cell(cell, hex_color: str) -> None:
    """Set a table cell's background colour."""
    tc_pr = cell._tc.get_or_add_tcPr()
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), hex_color_code(hex_color))
    tc_pr.append(shd)


def add_field(paragraph, instruction: str) -> None:
    """Append a field (PAGE, NUMPAGES...) to a paragraph."""
    run = paragraph.add_run()
    begin = OxmlElement("w:fldChar")
    begin.set(qn("w:fldCharType"), "begin")
    instr = OxmlElement("w:instrText")
    instr.set(qn("xml:space"), "preserve")
    instr.text = instruction
    separate = OxmlElement("w:fldChar")
    separate.set(qn("w:fldCharType"), "separate")
    placeholder = OxmlElement("w:t")
    placeholder.text = "1"
    end = OxmlElement("w:fldChar")
    end.set(qn("w:fldCharType"), "end")
    for element in (begin, instr, separate, placeholder, end):
        run._r.append(element)


def repeat_as_header(row) -> None:
    """Mark a table row to repeat at the top of each page."""
    tr_pr = row._tr.get_or_add_trPr()
    tbl_header = OxmlElement("w:tblHeader")
    tbl_header.set(qn("w:val"), "true")
    tr_pr.append(tbl_header)


class WordBuilder(DocumentBuilder):
    """Builds a .docx document from a ReportContent."""

    format = ExportFormat.WORD

    def build(self) -> bytes:
        doc = Document()
        self.font = _WORD_FONTS.get(self.settings.font_family, "Arial")
        style = doc.styles["Normal"]
        style.font.name = self.font
        style.font.size = Pt(self.settings.font_size)

        section = doc.sections[0]
        self._page_setup(section)
        self._write_header_block(doc)
        self._write_title_block(doc)
        self._write_table(doc)
        self._write_balance(doc)
        self._write_summary(doc)
        self._write_section_footer(section)
        self._write_watermark(section)

        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    # -- page -------------------------------------------------------------

    def _page_setup(self, section) -> None:
        m = self.settings.margins
        if self.content.is_landscape:
            section.orientation = WD_ORIENT.LANDSCAPE
            section.page_width = Mm(A4_HEIGHT_MM)
            section.page_height = Mm(A4_WIDTH_MM)
        else:
            section.orientation = WD_ORIENT.PORTRAIT
            section.page_width = Mm(A4_WIDTH_MM)
            section.page_height = Mm(A4_HEIGHT_MM)
        section.top_margin = Mm(m.top)
        section.bottom_margin = Mm(m.bottom)
        section.left_margin = Mm(m.left)
        section.right_margin = Mm(m.right)
        self.avail_mm = (A4_HEIGHT_MM if self.content.is_landscape else A4_WIDTH_MM) \
            - m.left - m.right

    # -- body -------------------------------------------------------------

    def _paragraph(self, container, text: str, *, bold: bool = False, size: float | None = None,
                   align=WD_ALIGN_PARAGRAPH.CENTER, underline: bool = False,
                   italic: bool = False, color: RGBColor | None = None):
        p = container.add_paragraph()
        p.alignment = align
        p.paragraph_format.space_after = Pt(0)
        run = p.add_run(text)
        run.bold = bold
        run.italic = italic
        run.underline = underline
        run.font.size = Pt(size or self.settings.font_size)
        if color is not None:
            run.font.color.rgb = color
        return p

    def _write_header_block(self, doc) -> None:
        c = self.content
        logo = self._logo_path()
        if logo is not None:
            p = doc.add_paragraph()
            p.alignment = _PARA_ALIGN[c.template.header.logo_position]
            p.add_run().add_picture(str(logo), width=Mm(18))
        for line in c.header_lines:
            self._paragraph(doc, line, bold=True, size=self.settings.font_size + 1)
        if c.reference:
            self._paragraph(doc, f"N° {c.reference}", align=WD_ALIGN_PARAGRAPH.LEFT)

    def _logo_path(self) -> Path | None:
        s = self.settings
        if not (s.show_logo and self.content.template.header.show_logo):
            return None
        if s.use_default_logo or not s.custom_logo_path:
            return None
        path = Path(s.custom_logo_path)
        if not path.is_file():
            logger.warning("Logo not found, skipping: %s", path)
            return None
        return path

    def _write_title_block(self, doc) -> None:
        c = self.content
        doc.add_paragraph()
        self._paragraph(doc, c.title, bold=True, underline=True,
                        size=c.template.styles.title_size)
        if c.subtitle:
            self._paragraph(doc, c.subtitle, size=self.settings.font_size + 1)
        if c.generation_line:
            self._paragraph(doc, c.generation_line, italic=True, color=MUTED,
                            size=max(self.settings.font_size - 1, 6))
        doc.add_paragraph().paragraph_format.space_after = Pt(self.settings.table_spacing)

    def _write_table(self, doc) -> None:
        c = self.content
        s = self.settings
        table = doc.add_table(rows=1, cols=len(c.columns))
        table.style = "Table Grid"
        table.alignment = _TABLE_ALIGN[s.table_position]
        table.autofit = False
        widths = [Mm(self.avail_mm * w) for w in c.relative_widths()]

        header = table.rows[0]
        repeat_as_header(header)
        for idx, label in enumerate(c.header_row):
            cell = header.cells[idx]
            cell.width = widths[idx]
            cell.text = ""
            run = cell.paragraphs[0].add_run(label)
            run.bold = True
            run.font.color.rgb = _rgb(s.header_text_color)
            cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER
            shade_cell(cell, s.header_color)

        for i, body_row in enumerate(c.body):
            is_category = body_row.kind == RowKind.CATEGORY
            fill = None
            if is_category:
                fill = c.template.styles.category_row_color
            elif i % 2 == 1:
                fill = s.alternate_row_color
            self._add_row(table, body_row.cells, widths, bold=is_category, fill=fill)

        if c.totals_row is not None:
            self._add_row(table, c.totals_row, widths, bold=True,
                          fill=c.template.styles.total_row_color)

    def _add_row(self, table, cells, widths, *, bold: bool, fill: str | None) -> None:
        row = table.add_row()
        for idx, (text, col) in enumerate(zip(cells, self.content.columns)):
            cell = row.cells[idx]
            cell.width = widths[idx]
            para = cell.paragraphs[0]
            para.alignment = _PARA_ALIGN[col.effective_alignment]
            run = para.add_run(text)
            run.bold = bold
            if fill:
                shade_cell(cell, fill)

    def _write_balance(self, doc) -> None:
        if self.content.balance_lines:
            doc.add_paragraph()
        for line in self.content.balance_lines:
            self._paragraph(doc, line, bold=True, align=WD_ALIGN_PARAGRAPH.RIGHT)

    def _write_summary(self, doc) -> None:
        if self.content.summary_line:
            doc.add_paragraph()
            self._paragraph(doc, self.content.summary_line, bold=True,
                            align=WD_ALIGN_PARAGRAPH.LEFT)

    # -- section header / footer -----------------------------------------

    def _write_section_footer(self, section) -> None:
        c = self.content
        footer = section.footer

        def paragraph(i: int):
            # A new footer already holds one empty paragraph
            p = footer.paragraphs[0] if i == 0 else footer.add_paragraph()
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER
            return p

        for i, line in enumerate(c.footer_lines):
            run = paragraph(i).add_run(line)
            run.bold = i == 0
            run.font.size = Pt(7)
            run.font.color.rgb = MUTED
        if c.show_page_numbers:
            p = paragraph(len(c.footer_lines))
            p.add_run("Page ")
            add_field(p, "PAGE")
            p.add_run(" sur ")
            add_field(p, "NUMPAGES")

    def _write_watermark(self, section) -> None:
        wm = self.content.watermark
        if wm is None:
            return
        p = section.header.paragraphs[0]
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = p.add_run(wm.text)
        run.bold = True
        run.font.size = Pt(min(wm.font_size, 40))
        run.font.color.rgb = _rgb(wm.color)


def build_word(content) -> bytes:
    """Convenience function: build a .docx document in one call."""
    return WordBuilder(content).build()
