"""Built-in report templates and the template registry.

Three official layouts, reproducing the agency's Excel/Word originals:

- Feuille de caisse: landscape cash sheet, recettes and dépenses per line
- Sommaire: portrait summary by budget article, category lines in bold
- Programmation: portrait list of planned expenses

``get_template`` falls back to the feuille de caisse for any unknown kind
(including ``custom`` with no template supplied); this mirrors the
historical behaviour callers rely on.
"""

import dataclasses
import logging
from collections.abc import Iterable, Mapping

from .models import (
    Aggregate,
    Alignment,
    BalanceSpec,
    ColumnType,
    HeaderBlock,
    Orientation,
    ReportKind,
    ReportTemplate,
    SummaryBlock,
    TableColumn,
    TemplateStyles,
    WatermarkSpec,
)

logger = logging.getLogger(__name__)

# Shared blocks
_HEADER = HeaderBlock(reference_number="DGDA/3400/DP/KV/SDAF/", show_logo=True,
                      logo_position=Alignment.LEFT)
_STYLES = TemplateStyles(title_size=14.0, accent_color="#1e40af",
                         total_row_color="#e5e7eb", category_row_color="#f0f0f0")
_WATERMARK = WatermarkSpec(text="ORIGINAL", opacity=15, rotation=45.0,
                           font_size=60.0, color="#cccccc")


# ---------------------------------------------------------------------------
# Feuille de caisse
# ---------------------------------------------------------------------------

FEUILLE_CAISSE_COLUMNS = (
    TableColumn("date", "DATE", ColumnType.DATE, width=12, alignment=Alignment.CENTER),
    TableColumn("numero_ordre", "N° ORD", width=8, alignment=Alignment.CENTER),
    TableColumn("numero_beo", "N° BEO", width=8, alignment=Alignment.CENTER),
    TableColumn("libelle", "LIBELLÉ", width=40),
    TableColumn("recette", "RECETTE", ColumnType.CURRENCY, width=15,
                aggregate=Aggregate.SUM),
    TableColumn("depense", "DÉPENSE", ColumnType.CURRENCY, width=15,
                aggregate=Aggregate.SUM),
    TableColumn("solde", "SOLDE", ColumnType.CURRENCY, width=15),
    TableColumn("imputation", "IMP", width=10, alignment=Alignment.CENTER),
)

FEUILLE_CAISSE_TEMPLATE = ReportTemplate(
    id="feuille_caisse",
    name="Feuille de Caisse",
    kind=ReportKind.FEUILLE_CAISSE,
    description="Feuille de caisse mensuelle avec suivi des recettes et dépenses",
    orientation=Orientation.LANDSCAPE,
    columns=FEUILLE_CAISSE_COLUMNS,
    header=_HEADER,
    styles=_STYLES,
    show_totals=True,
    watermark=_WATERMARK,
    balance=BalanceSpec(credit_key="recette", debit_key="depense", column_key="solde"),
)


# ---------------------------------------------------------------------------
# Sommaire
# ---------------------------------------------------------------------------

SOMMAIRE_COLUMNS = (
    TableColumn("article", "ART.", width=12, alignment=Alignment.CENTER),
    TableColumn("designation", "DESIGNATION", width=50),
    TableColumn("recettes", "RECETTES", ColumnType.CURRENCY, width=18,
                aggregate=Aggregate.SUM),
    TableColumn("depenses", "DEPENSES", ColumnType.CURRENCY, width=18,
                aggregate=Aggregate.SUM),
)

SOMMAIRE_TEMPLATE = ReportTemplate(
    id="sommaire",
    name="Sommaire Mensuel",
    kind=ReportKind.SOMMAIRE,
    description="Sommaire mensuel des opérations par rubrique budgétaire",
    orientation=Orientation.PORTRAIT,
    columns=SOMMAIRE_COLUMNS,
    header=_HEADER,
    styles=dataclasses.replace(_STYLES, total_row_color="#ffffff",
                               category_row_color="#ffffff"),
    show_totals=True,
    category_key="is_category",
    summary=SummaryBlock(
        label="Arrêté le présent sommaire en recettes à la somme de",
        column_key="recettes",
    ),
    watermark=_WATERMARK,
)


# ---------------------------------------------------------------------------
# Programmation
# ---------------------------------------------------------------------------

PROGRAMMATION_COLUMNS = (
    TableColumn("numero_ordre", "N° ORD", ColumnType.NUMBER, width=10,
                alignment=Alignment.CENTER),
    TableColumn("designation", "DÉSIGNATION", width=50),
    TableColumn("montant_prevu", "MONTANT PRÉVU", ColumnType.CURRENCY, width=20,
                aggregate=Aggregate.SUM),
    TableColumn("rubrique", "RUBRIQUE", width=15, alignment=Alignment.CENTER),
    TableColumn("periode", "PÉRIODE", width=15, alignment=Alignment.CENTER),
)

PROGRAMMATION_TEMPLATE = ReportTemplate(
    id="programmation",
    name="Programmation Mensuelle",
    kind=ReportKind.PROGRAMMATION,
    description="Programmation mensuelle des dépenses prévisionnelles",
    orientation=Orientation.PORTRAIT,
    columns=PROGRAMMATION_COLUMNS,
    header=_HEADER,
    styles=_STYLES,
    show_totals=True,
    summary=SummaryBlock(
        label="Arrêtée la présente programmation à la somme de",
        column_key="montant_prevu",
    ),
    watermark=_WATERMARK,
)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

# Order matters: the first entry is the fallback for unknown kinds.
REPORT_TEMPLATES: tuple[ReportTemplate, ...] = (
    FEUILLE_CAISSE_TEMPLATE,
    SOMMAIRE_TEMPLATE,
    PROGRAMMATION_TEMPLATE,
)

_BY_KIND = {t.kind: t for t in REPORT_TEMPLATES}


def list_templates() -> list[ReportTemplate]:
    """Return the built-in templates in registry order."""
    return list(REPORT_TEMPLATES)


def get_template(kind: ReportKind | str) -> ReportTemplate:
    """Return the built-in template for ``kind``.

    Unknown kinds resolve to the first built-in template instead of
    raising.
    """
    if isinstance(kind, str):
        try:
            kind = ReportKind(kind)
        except ValueError:
            logger.warning("Unknown report kind %r, using %s", kind,
                           REPORT_TEMPLATES[0].id)
            return REPORT_TEMPLATES[0]

    template = _BY_KIND.get(kind)
    if template is None:
        logger.warning("No built-in template for %s, using %s", kind.value,
                       REPORT_TEMPLATES[0].id)
        return REPORT_TEMPLATES[0]
    return template


def _as_column(col: TableColumn | Mapping) -> TableColumn:
    if isinstance(col, TableColumn):
        return col
    return TableColumn.from_dict(col)


def with_columns(template: ReportTemplate,
                 columns: Iterable[TableColumn | Mapping]) -> ReportTemplate:
    """Return a copy of ``template`` with its column sequence replaced.

    Columns may be given as TableColumn objects or as dicts in the YAML
    shape (``key``, ``header``, ``type``...).
    """
    new_columns = tuple(_as_column(c) for c in columns)
    summary = template.summary
    keys = {c.key for c in new_columns}
    if summary and summary.column_key not in keys:
        summary = None
    balance = template.balance
    if balance and not {balance.credit_key, balance.debit_key} <= keys:
        balance = None
    elif balance and balance.column_key and balance.column_key not in keys:
        balance = dataclasses.replace(balance, column_key=None)
    return dataclasses.replace(template, columns=new_columns, summary=summary,
                               balance=balance).validate()


def clone_template(template: ReportTemplate, **changes) -> ReportTemplate:
    """Copy a template as a starting point for a custom layout."""
    changes.setdefault("id", f"{template.id}_custom")
    changes.setdefault("kind", ReportKind.CUSTOM)
    return dataclasses.replace(template, **changes).validate()
