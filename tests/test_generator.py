"""Tests for the PDF, Excel and Word renderers."""

import datetime
import io

import pdfplumber
import pytest
from docx import Document
from docx.enum.section import WD_ORIENT
from docx.oxml.ns import qn
from openpyxl import load_workbook

from src.generator import BUILDERS, build_content
from src.generator.excel_builder import (
    MONEY_FORMAT,
    PAGE_NUMBER_FOOTER,
    ExcelBuilder,
    build_excel,
    cell_value,
)
from src.generator.pdf_builder import PDFBuilder, bold_font, build_pdf, footer_height, safe_text
from src.generator.word_builder import WordBuilder, build_word
from src.qa.validator import excel_table_rows, find_header_row, pdf_page_texts
from src.schema.models import ColumnType, ExportFormat, Orientation, TableColumn
from src.schema.templates import FEUILLE_CAISSE_TEMPLATE, SOMMAIRE_TEMPLATE
from src.settings.models import ExportSettings


GENERATED_AT = datetime.datetime(2025, 10, 31, 9, 30, 0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def rows():
    return [
        {"date": "2025-10-01", "numero_ordre": "001", "libelle": "Solde du mois (antérieur)",
         "recette": 150000, "imputation": "707820"},
        {"date": "2025-10-03", "numero_ordre": "002", "libelle": "Achat papier",
         "depense": 25000.5, "imputation": "604100"},
        {"date": "2025-10-05", "numero_ordre": "003", "libelle": "Carburant",
         "depense": 4500, "imputation": "606100"},
    ]


@pytest.fixture
def plain_settings():
    """Settings without watermark so extracted PDF text is clean."""
    return ExportSettings(show_watermark=False)


@pytest.fixture
def content(rows, plain_settings):
    return build_content(FEUILLE_CAISSE_TEMPLATE, rows, "Feuille de caisse",
                         subtitle="Octobre 2025", settings=plain_settings,
                         generated_at=GENERATED_AT)


@pytest.fixture
def sommaire_content(plain_settings):
    rows = [
        {"designation": "RECETTES", "is_category": True},
        {"article": "707820", "designation": "Solde antérieur", "recettes": 1000},
        {"article": "707100", "designation": "Amendes", "recettes": 250},
    ]
    return build_content(SOMMAIRE_TEMPLATE, rows, "Sommaire", settings=plain_settings,
                         generated_at=GENERATED_AT)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestBuilders:
    def test_one_builder_per_format(self):
        assert set(BUILDERS) == set(ExportFormat)
        for fmt, builder in BUILDERS.items():
            assert builder.format == fmt

    def test_build_to_file(self, tmp_path, content):
        path = PDFBuilder(content).build_to_file(tmp_path / "out" / "report.pdf")
        assert path.exists()
        assert path.read_bytes().startswith(b"%PDF")


class TestShortHexColours:
    @pytest.fixture
    def short_hex(self, rows):
        settings = ExportSettings(show_watermark=False, header_color="#fff",
                                  header_text_color="#000", alternate_row_color="#eee")
        return build_content(FEUILLE_CAISSE_TEMPLATE, rows, "X", settings=settings,
                             generated_at=GENERATED_AT)

    @pytest.mark.parametrize("fmt", list(ExportFormat))
    def test_every_format_renders(self, short_hex, fmt):
        assert BUILDERS[fmt](short_hex).build()

    def test_excel_header_fill(self, short_hex):
        ws = load_workbook(io.BytesIO(build_excel(short_hex))).active
        header_row = find_header_row(ws, short_hex.header_row)
        assert ws.cell(row=header_row, column=1).fill.start_color.rgb == "FFFFFFFF"

    def test_word_header_shading(self, short_hex):
        doc = Document(io.BytesIO(build_word(short_hex)))
        cell = doc.tables[0].rows[0].cells[0]
        shd = cell._tc.tcPr.find(qn("w:shd"))
        assert shd.get(qn("w:fill")) == "FFFFFF"


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------

class TestBalanceLines:
    EXPECTED = ("Solde initial : 0,00 FC", "Solde final : 120 499,50 FC")

    def test_pdf(self, content):
        with pdfplumber.open(io.BytesIO(build_pdf(content))) as pdf:
            text = "\n".join(page.extract_text() or "" for page in pdf.pages)
        for line in self.EXPECTED:
            assert line in text

    def test_pdf_after_table(self, content):
        story = PDFBuilder(content).build_story()
        texts = [getattr(f, "text", None) for f in story]
        assert texts[-2:] == list(self.EXPECTED)

    def test_excel(self, content):
        ws = load_workbook(io.BytesIO(build_excel(content))).active
        header_row = find_header_row(ws, content.header_row)
        table = excel_table_rows(ws, header_row, len(content.columns))
        assert [r[6] for r in table[:3]] == pytest.approx([150000, 124999.5, 120499.5])
        after = [ws.cell(row=header_row + len(table) + i, column=1).value for i in (2, 3)]
        assert tuple(after) == self.EXPECTED

    def test_word(self, content):
        doc = Document(io.BytesIO(build_word(content)))
        texts = [p.text for p in doc.paragraphs]
        assert texts[-2:] == list(self.EXPECTED)
        assert doc.tables[0].rows[3].cells[6].text == "120 499,50"


class TestPDFHelpers:
    def test_bold_font(self):
        assert bold_font("Times-Roman") == "Times-Bold"
        assert bold_font("Unknown") == "Helvetica-Bold"

    def test_safe_text_escapes_markup(self):
        assert safe_text("R&D <x>") == "R&amp;D &lt;x&gt;"
        assert safe_text(None) == ""

    def test_footer_height(self, content):
        assert footer_height(content) > 0


class TestPDFBuilder:
    def test_is_pdf(self, content):
        assert build_pdf(content).startswith(b"%PDF")

    def test_table_rows(self, content):
        table = PDFBuilder(content).build_table()
        # header + 3 data rows + totals
        assert len(table._cellvalues) == 5
        assert table._cellvalues[0] == list(content.header_row)

    def test_landscape_page(self, content):
        with pdfplumber.open(io.BytesIO(build_pdf(content))) as pdf:
            page = pdf.pages[0]
            assert page.width > page.height

    def test_portrait_override(self, rows):
        c = build_content(FEUILLE_CAISSE_TEMPLATE, rows, "X",
                          settings=ExportSettings(orientation=Orientation.PORTRAIT,
                                                  show_watermark=False))
        with pdfplumber.open(io.BytesIO(build_pdf(c))) as pdf:
            page = pdf.pages[0]
            assert page.width < page.height

    def test_text_blocks(self, content):
        text = pdf_page_texts(build_pdf(content))[0]
        assert "République Démocratique du Congo" in text
        assert "N° DGDA/3400/DP/KV/SDAF/2025" in text
        assert "FEUILLE DE CAISSE" in text
        assert "Octobre 2025" in text
        assert "Généré le 31/10/2025 à 09:30:00" in text
        assert "TOTAL" in text
        assert "Page 1 sur 1" in text

    def test_footer_on_every_page(self, rows, plain_settings):
        many = rows * 40
        c = build_content(FEUILLE_CAISSE_TEMPLATE, many, "Feuille de caisse",
                          settings=plain_settings, generated_at=GENERATED_AT)
        pages = pdf_page_texts(build_pdf(c))
        assert len(pages) > 1
        for idx, text in enumerate(pages, start=1):
            assert f"Page {idx} sur {len(pages)}" in text
            assert "Tous mobilisés" in text
            # Header row repeats on every page
            assert "RECETTE" in text

    def test_no_page_numbers(self, rows):
        c = build_content(FEUILLE_CAISSE_TEMPLATE, rows, "X",
                          settings=ExportSettings(show_page_numbers=False,
                                                  show_watermark=False))
        assert "Page 1 sur" not in pdf_page_texts(build_pdf(c))[0]

    def test_watermark_left_out_of_extraction(self, rows):
        c = build_content(FEUILLE_CAISSE_TEMPLATE, rows, "Feuille de caisse",
                          settings=ExportSettings(watermark_text="CONFIDENTIEL"))
        data = build_pdf(c)
        assert "CONFIDENTIEL" not in pdf_page_texts(data, c.watermark.font_size)[0]

    def test_summary_line(self, sommaire_content):
        text = " ".join(pdf_page_texts(build_pdf(sommaire_content))[0].split())
        assert "Mille deux cent cinquante francs congolais" in text

    def test_missing_logo_is_skipped(self, rows, caplog):
        c = build_content(FEUILLE_CAISSE_TEMPLATE, rows, "X",
                          settings=ExportSettings(use_default_logo=False,
                                                  custom_logo_path="/nonexistent/logo.png"))
        assert build_pdf(c).startswith(b"%PDF")
        assert "Logo not found" in caplog.text


# ---------------------------------------------------------------------------
# Excel
# ---------------------------------------------------------------------------

class TestExcelHelpers:
    def test_cell_value_keeps_numbers(self):
        col = TableColumn("m", "M", ColumnType.CURRENCY)
        assert cell_value("1 500,00", col, "1 500,00") == 1500.0
        assert cell_value("gratuit", col, "gratuit") == "gratuit"
        assert cell_value(None, col, "") is None

    def test_cell_value_dates(self):
        col = TableColumn("d", "D", ColumnType.DATE)
        assert cell_value("2025-10-31", col, "31/10/2025") == datetime.date(2025, 10, 31)
        assert cell_value("hier", col, "hier") == "hier"


class TestExcelBuilder:
    @pytest.fixture
    def sheet(self, content):
        wb = load_workbook(io.BytesIO(build_excel(content)))
        return wb.active

    def test_sheet_title(self, sheet):
        assert sheet.title == "Feuille de Caisse"

    def test_header_block(self, sheet):
        assert sheet["A1"].value == "République Démocratique du Congo"
        assert sheet["A5"].value == "N° DGDA/3400/DP/KV/SDAF/2025"

    def test_table_rows(self, sheet, content):
        header_row = find_header_row(sheet, content.header_row)
        assert header_row is not None
        table = excel_table_rows(sheet, header_row, len(content.columns))
        # 3 data rows + totals
        assert len(table) == 4
        assert table[0][4] == 150000
        assert table[1][5] == 25000.5
        assert table[-1][0] == "TOTAL"
        assert table[-1][4] == 150000
        assert table[-1][5] == pytest.approx(29500.5)

    def test_number_formats(self, sheet, content):
        header_row = find_header_row(sheet, content.header_row)
        assert sheet.cell(row=header_row + 1, column=5).number_format == MONEY_FORMAT

    def test_freeze_below_header(self, sheet, content):
        header_row = find_header_row(sheet, content.header_row)
        assert sheet.freeze_panes == f"A{header_row + 1}"

    def test_page_setup(self, sheet):
        assert sheet.page_setup.orientation == "landscape"
        assert "&P" in sheet.oddFooter.right.text
        assert "&N" in sheet.oddFooter.right.text

    def test_footer_lines_in_sheet(self, sheet):
        values = [c.value for row in sheet.iter_rows() for c in row if c.value]
        assert "Tous mobilisés pour une douane d'action et d'excellence !" in values

    def test_watermark_in_print_header(self, rows):
        c = build_content(FEUILLE_CAISSE_TEMPLATE, rows, "X", generated_at=GENERATED_AT)
        ws = load_workbook(io.BytesIO(build_excel(c))).active
        assert ws.oddHeader.center.text == "DGDA"

    def test_summary_row(self, sommaire_content):
        ws = load_workbook(io.BytesIO(build_excel(sommaire_content))).active
        values = [c.value for row in ws.iter_rows() for c in row if isinstance(c.value, str)]
        assert sommaire_content.summary_line in values

    def test_page_number_footer_constant(self):
        assert PAGE_NUMBER_FOOTER == "Page &P sur &N"

    def test_header_row_index_recorded(self, content):
        builder = ExcelBuilder(content)
        builder.build()
        assert builder.header_row_index > len(content.header_lines)


# ---------------------------------------------------------------------------
# Word
# ---------------------------------------------------------------------------

class TestWordBuilder:
    @pytest.fixture
    def doc(self, content):
        return Document(io.BytesIO(build_word(content)))

    def test_table_rows(self, doc, content):
        table = doc.tables[0]
        assert len(table.rows) == 5
        assert tuple(c.text for c in table.rows[0].cells) == content.header_row
        assert table.rows[1].cells[3].text == "Solde du mois (antérieur)"
        assert table.rows[-1].cells[0].text == "TOTAL"

    def test_text_blocks(self, doc):
        text = "\n".join(p.text for p in doc.paragraphs)
        assert "Direction Générale des Douanes et Accises" in text
        assert "FEUILLE DE CAISSE" in text
        assert "Généré le 31/10/2025 à 09:30:00" in text

    def test_landscape_section(self, doc):
        section = doc.sections[0]
        assert section.orientation == WD_ORIENT.LANDSCAPE
        assert section.page_width > section.page_height

    def test_footer(self, doc):
        footer = doc.sections[0].footer
        text = "\n".join(p.text for p in footer.paragraphs)
        assert "Tous mobilisés" in text
        assert "NUMPAGES" in footer._element.xml
        assert "PAGE" in footer._element.xml

    def test_font_mapping(self, rows):
        c = build_content(FEUILLE_CAISSE_TEMPLATE, rows, "X",
                          settings=ExportSettings(font_family="Times-Roman"))
        doc = Document(io.BytesIO(build_word(c)))
        assert doc.styles["Normal"].font.name == "Times New Roman"

    def test_watermark_in_header(self, rows):
        c = build_content(FEUILLE_CAISSE_TEMPLATE, rows, "X")
        doc = Document(io.BytesIO(WordBuilder(c).build()))
        header_text = "".join(p.text for p in doc.sections[0].header.paragraphs)
        assert header_text == "DGDA"

    def test_category_rows_bold(self, sommaire_content):
        doc = Document(io.BytesIO(build_word(sommaire_content)))
        run = doc.tables[0].rows[1].cells[1].paragraphs[0].runs[0]
        assert run.text == "RECETTES"
        assert run.bold is True
