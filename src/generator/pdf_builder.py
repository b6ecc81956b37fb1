"""PDF renderer — lays out a ReportContent with reportlab platypus.

Page structure:

- every page: watermark (beneath content), footer lines, "Page X sur Y"
- flow: header block (logo + 4 lines), reference, accent separator,
  underlined title, subtitle, generation date, table (header row repeated
  on each page), summary in words

Usage::

    from src.generator import PDFBuilder, build_content

    content = build_content(template, rows, "Feuille de caisse", settings=settings)
    pdf_bytes = PDFBuilder(content).build()
"""

import io
import logging
from pathlib import Path
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER, TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    BaseDocTemplate,
    Frame,
    HRFlowable,
    Image,
    PageTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)

from src.schema.formatting import hex_to_rgb
from src.schema.models import Alignment, ExportFormat, WatermarkPosition, WatermarkSpec

from .base import DocumentBuilder
from .content import ReportContent, RowKind

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_BOLD_FONTS = {
    "Helvetica": "Helvetica-Bold",
    "Times-Roman": "Times-Bold",
    "Courier": "Courier-Bold",
}

_PARA_ALIGN = {
    Alignment.LEFT: TA_LEFT,
    Alignment.CENTER: TA_CENTER,
    Alignment.RIGHT: TA_RIGHT,
}

_TABLE_ALIGN = {
    Alignment.LEFT: "LEFT",
    Alignment.CENTER: "CENTER",
    Alignment.RIGHT: "RIGHT",
}

FOOTER_FONT_SIZE = 7
FOOTER_LEADING = 3.2 * mm
FOOTER_BASE = 10 * mm          # Baseline of the last footer line
PAGE_NUMBER_Y = 5 * mm
LOGO_SIZE = 18 * mm
TEXT_MUTED = colors.HexColor("#4b5563")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _color(hex_color: str) -> colors.Color:
    r, g, b = hex_to_rgb(hex_color)
    return colors.Color(r / 255, g / 255, b / 255)


def bold_font(family: str) -> str:
    return _BOLD_FONTS.get(family, "Helvetica-Bold")


def safe_text(value) -> str:
    if value is None:
        return ""
    return xml_escape(str(value))


def draw_watermark(canvas_obj: canvas.Canvas, page_size: tuple[float, float],
                   wm: WatermarkSpec, font: str) -> None:
    """Draw the watermark text in translucent colour across the page."""
    width, height = page_size
    r, g, b = hex_to_rgb(wm.color)
    canvas_obj.saveState()
    canvas_obj.setFillColorRGB(r / 255, g / 255, b / 255, alpha=max(0, min(wm.opacity, 100)) / 100)
    canvas_obj.setFont(font, wm.font_size)

    if wm.position == WatermarkPosition.TILED:
        step_x = canvas_obj.stringWidth(wm.text, font, wm.font_size) + 40 * mm
        step_y = wm.font_size * 3
        y = 0.0
        while y < height + step_y:
            x = 0.0
            while x < width + step_x:
                canvas_obj.saveState()
                canvas_obj.translate(x, y)
                canvas_obj.rotate(wm.rotation)
                canvas_obj.drawCentredString(0, 0, wm.text)
                canvas_obj.restoreState()
                x += step_x
            y += step_y
    else:
        canvas_obj.translate(width / 2, height / 2)
        if wm.position == WatermarkPosition.DIAGONAL:
            canvas_obj.rotate(wm.rotation)
        canvas_obj.drawCentredString(0, 0, wm.text)
    canvas_obj.restoreState()


def footer_height(content: ReportContent) -> float:
    """Vertical space the footer block needs at the bottom of a page."""
    if not content.footer_lines:
        return 0.0
    return FOOTER_BASE + FOOTER_LEADING * len(content.footer_lines) + 2 * mm


class NumberedCanvas(canvas.Canvas):
    """Canvas that stamps "Page X sur Y" once the page count is known."""

    def __init__(self, *args, **kwargs):
        self._font = kwargs.pop("page_number_font", "Helvetica")
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total_pages = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_page_number(total_pages)
            canvas.Canvas.showPage(self)
        canvas.Canvas.save(self)

    def _draw_page_number(self, total_pages: int):
        page_width, _ = self._pagesize
        self.setFont(self._font, 8)
        self.setFillColor(TEXT_MUTED)
        self.drawCentredString(page_width / 2, PAGE_NUMBER_Y,
                               f"Page {self._pageNumber} sur {total_pages}")


# ---------------------------------------------------------------------------
# PDFBuilder
# ---------------------------------------------------------------------------

class PDFBuilder(DocumentBuilder):
    """Builds a PDF document from a ReportContent."""

    format = ExportFormat.PDF

    def __init__(self, content: ReportContent) -> None:
        super().__init__(content)
        self.font = self.settings.font_family
        self.bold = bold_font(self.font)
        self.page_size = landscape(A4) if content.is_landscape else A4
        m = self.settings.margins
        self.avail_width = self.page_size[0] - (m.left + m.right) * mm
        self._styles = self._build_styles()

    def build(self) -> bytes:
        """Build the PDF and return it as bytes."""
        buffer = io.BytesIO()
        doc = self._doc_template(buffer)
        story = self.build_story()
        if self.content.show_page_numbers:
            font = self.font

            def canvasmaker(*args, **kwargs):
                return NumberedCanvas(*args, page_number_font=font, **kwargs)

            doc.build(story, canvasmaker=canvasmaker)
        else:
            doc.build(story)
        return buffer.getvalue()

    # -- document ---------------------------------------------------------

    def _doc_template(self, buffer: io.BytesIO) -> BaseDocTemplate:
        m = self.settings.margins
        bottom = max(m.bottom * mm, footer_height(self.content))
        doc = BaseDocTemplate(
            buffer,
            pagesize=self.page_size,
            leftMargin=m.left * mm,
            rightMargin=m.right * mm,
            topMargin=m.top * mm,
            bottomMargin=bottom,
            title=self.content.title,
            author=self.content.header_lines[2] if len(self.content.header_lines) > 2 else "",
        )
        frame = Frame(doc.leftMargin, doc.bottomMargin, doc.width, doc.height,
                      id="content", leftPadding=0, rightPadding=0, showBoundary=0)
        doc.addPageTemplates([PageTemplate(id="report", frames=[frame],
                                           onPage=self._draw_page)])
        return doc

    def _draw_page(self, canvas_obj: canvas.Canvas, doc: BaseDocTemplate) -> None:
        """Per-page decorations, drawn before the page's flowables."""
        if self.content.watermark is not None:
            draw_watermark(canvas_obj, doc.pagesize, self.content.watermark, self.bold)
        if self.content.footer_lines:
            self._draw_footer(canvas_obj, doc)

    def _draw_footer(self, canvas_obj: canvas.Canvas, doc: BaseDocTemplate) -> None:
        width, _ = doc.pagesize
        lines = self.content.footer_lines
        top = FOOTER_BASE + FOOTER_LEADING * len(lines)
        canvas_obj.saveState()
        canvas_obj.setStrokeColor(_color(self.content.template.styles.accent_color))
        canvas_obj.setLineWidth(0.5)
        canvas_obj.line(doc.leftMargin, top + 1 * mm, width - doc.rightMargin, top + 1 * mm)
        canvas_obj.setFillColor(TEXT_MUTED)
        for i, line in enumerate(lines):
            canvas_obj.setFont(self.bold if i == 0 else self.font, FOOTER_FONT_SIZE)
            y = top - FOOTER_LEADING * (i + 1) + 1 * mm
            canvas_obj.drawCentredString(width / 2, y, line)
        canvas_obj.restoreState()

    # -- story ------------------------------------------------------------

    def _build_styles(self) -> dict[str, ParagraphStyle]:
        size = self.settings.font_size
        base = ParagraphStyle("RptBody", fontName=self.font, fontSize=size,
                              leading=size * 1.25)
        styles = {
            "body": base,
            "header_line": ParagraphStyle("RptHeaderLine", parent=base, fontName=self.bold,
                                          fontSize=size + 1, leading=(size + 1) * 1.3,
                                          alignment=TA_CENTER),
            "reference": ParagraphStyle("RptReference", parent=base, fontSize=size,
                                        alignment=TA_LEFT),
            "title": ParagraphStyle("RptTitle", parent=base, fontName=self.bold,
                                    fontSize=self.content.template.styles.title_size,
                                    leading=self.content.template.styles.title_size * 1.3,
                                    alignment=TA_CENTER, spaceBefore=4, spaceAfter=2),
            "subtitle": ParagraphStyle("RptSubtitle", parent=base, fontSize=size + 1,
                                       leading=(size + 1) * 1.3, alignment=TA_CENTER),
            "meta": ParagraphStyle("RptMeta", parent=base, fontSize=max(size - 1, 6),
                                   textColor=TEXT_MUTED, alignment=TA_CENTER),
            "summary": ParagraphStyle("RptSummary", parent=base, fontName=self.bold,
                                      spaceBefore=8),
            "balance": ParagraphStyle("RptBalance", parent=base, fontName=self.bold,
                                      alignment=TA_RIGHT, spaceBefore=4),
        }
        for align, ta in _PARA_ALIGN.items():
            styles[f"cell_{align.value}"] = ParagraphStyle(
                f"RptCell{align.value}", parent=base, alignment=ta)
            styles[f"cell_bold_{align.value}"] = ParagraphStyle(
                f"RptCellBold{align.value}", parent=base, fontName=self.bold, alignment=ta)
        return styles

    def build_story(self) -> list:
        """Return the flowables in emission order (no I/O)."""
        c = self.content
        story: list = []
        story.append(self._header_block())
        if c.reference:
            story.append(Paragraph(f"N° {safe_text(c.reference)}", self._styles["reference"]))
        story.append(HRFlowable(width="100%", thickness=1.2,
                                color=_color(c.template.styles.accent_color),
                                spaceBefore=3, spaceAfter=6))
        story.append(Paragraph(f"<u>{safe_text(c.title)}</u>", self._styles["title"]))
        if c.subtitle:
            story.append(Paragraph(safe_text(c.subtitle), self._styles["subtitle"]))
        if c.generation_line:
            story.append(Paragraph(safe_text(c.generation_line), self._styles["meta"]))
        story.append(Spacer(1, self.settings.table_spacing))
        story.append(self.build_table())
        for line in c.balance_lines:
            story.append(Paragraph(safe_text(line), self._styles["balance"]))
        if c.summary_line:
            story.append(Paragraph(safe_text(c.summary_line), self._styles["summary"]))
        return story

    def _logo(self) -> Image | None:
        c = self.content
        if not (self.settings.show_logo and c.template.header.show_logo):
            return None
        if self.settings.use_default_logo or not self.settings.custom_logo_path:
            return None
        path = Path(self.settings.custom_logo_path)
        if not path.is_file():
            logger.warning("Logo not found, skipping: %s", path)
            return None
        img = Image(str(path), width=LOGO_SIZE, height=LOGO_SIZE, kind="proportional")
        return img

    def _header_block(self) -> Table:
        lines = [Paragraph(safe_text(line), self._styles["header_line"])
                 for line in self.content.header_lines]
        logo = self._logo()
        if logo is None:
            block = Table([[line] for line in lines], colWidths=[self.avail_width],
                          hAlign="CENTER")
            block.setStyle(TableStyle([
                ("LEFTPADDING", (0, 0), (-1, -1), 0),
                ("RIGHTPADDING", (0, 0), (-1, -1), 0),
                ("TOPPADDING", (0, 0), (-1, -1), 0),
                ("BOTTOMPADDING", (0, 0), (-1, -1), 1),
            ]))
            return block

        logo_left = self.content.template.header.logo_position != Alignment.RIGHT
        logo_w = LOGO_SIZE + 4 * mm
        text_w = self.avail_width - logo_w
        text = Table([[line] for line in lines], colWidths=[text_w])
        row = [logo, text] if logo_left else [text, logo]
        widths = [logo_w, text_w] if logo_left else [text_w, logo_w]
        block = Table([row], colWidths=widths)
        block.setStyle(TableStyle([("VALIGN", (0, 0), (-1, -1), "MIDDLE")]))
        return block

    def build_table(self) -> Table:
        """The report table: header row, body rows, optional totals row."""
        c = self.content
        s = self.settings
        col_widths = [w * self.avail_width for w in c.relative_widths()]

        def cell(text: str, col, bold: bool = False) -> Paragraph:
            key = f"cell_bold_{col.effective_alignment.value}" if bold \
                else f"cell_{col.effective_alignment.value}"
            return Paragraph(safe_text(text), self._styles[key])

        data: list[list] = [list(c.header_row)]
        for row in c.body:
            bold = row.kind == RowKind.CATEGORY
            data.append([cell(t, col, bold) for t, col in zip(row.cells, c.columns)])
        if c.totals_row is not None:
            data.append([cell(t, col, True) for t, col in zip(c.totals_row, c.columns)])

        table = Table(data, colWidths=col_widths, repeatRows=1,
                      hAlign=_TABLE_ALIGN[s.table_position])
        table.setStyle(TableStyle(self._table_commands(len(data))))
        return table

    def _table_commands(self, n_rows: int) -> list[tuple]:
        c = self.content
        s = self.settings
        styles = c.template.styles
        cmds: list[tuple] = [
            ("GRID", (0, 0), (-1, -1), 0.5, _color(s.border_color)),
            ("BACKGROUND", (0, 0), (-1, 0), _color(s.header_color)),
            ("TEXTCOLOR", (0, 0), (-1, 0), _color(s.header_text_color)),
            ("FONTNAME", (0, 0), (-1, 0), self.bold),
            ("FONTSIZE", (0, 0), (-1, 0), s.font_size),
            ("ALIGN", (0, 0), (-1, 0), "CENTER"),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
        ]
        n_body = len(c.body)
        if n_body:
            cmds.append(("ROWBACKGROUNDS", (0, 1), (-1, n_body),
                         [colors.white, _color(s.alternate_row_color)]))
        for i, row in enumerate(c.body, start=1):
            if row.kind == RowKind.CATEGORY:
                cmds.append(("BACKGROUND", (0, i), (-1, i), _color(styles.category_row_color)))
        if c.totals_row is not None:
            last = n_rows - 1
            cmds.append(("BACKGROUND", (0, last), (-1, last), _color(styles.total_row_color)))
            cmds.append(("LINEABOVE", (0, last), (-1, last), 1.0, colors.black))
        return cmds


def build_pdf(content: ReportContent) -> bytes:
    """Convenience function: build a PDF in one call."""
    return PDFBuilder(content).build()
