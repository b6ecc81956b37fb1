"""Template schema package — typed models for report structure.

Provides the contract between the settings resolver, the content builder
and the format renderers:

- models.py: Core dataclasses (ReportTemplate, TableColumn, WatermarkSpec, etc.)
- formatting.py: Cell formatting and totals aggregation
- templates.py: The three built-in report templates and the registry
- loader.py: YAML serialization/deserialization
"""

from .formatting import (
    aggregate_values,
    format_aggregate,
    format_cell,
    format_date_fr,
    format_number_fr,
    hex_color_code,
    hex_to_rgb,
    is_missing,
    to_number,
)
from .loader import load_template, save_template
from .models import (
    Aggregate,
    Alignment,
    BalanceSpec,
    ColumnType,
    ExportFormat,
    HeaderBlock,
    Orientation,
    ReportKind,
    ReportTemplate,
    SummaryBlock,
    TableColumn,
    TemplateStyles,
    WatermarkPosition,
    WatermarkSpec,
)
from .templates import (
    FEUILLE_CAISSE_TEMPLATE,
    PROGRAMMATION_TEMPLATE,
    REPORT_TEMPLATES,
    SOMMAIRE_TEMPLATE,
    clone_template,
    get_template,
    list_templates,
    with_columns,
)

__all__ = [
    # Models
    "Aggregate",
    "Alignment",
    "BalanceSpec",
    "ColumnType",
    "ExportFormat",
    "HeaderBlock",
    "Orientation",
    "ReportKind",
    "ReportTemplate",
    "SummaryBlock",
    "TableColumn",
    "TemplateStyles",
    "WatermarkPosition",
    "WatermarkSpec",
    # Registry
    "FEUILLE_CAISSE_TEMPLATE",
    "PROGRAMMATION_TEMPLATE",
    "REPORT_TEMPLATES",
    "SOMMAIRE_TEMPLATE",
    "clone_template",
    "get_template",
    "list_templates",
    "with_columns",
    # Loader
    "load_template",
    "save_template",
    # Formatting
    "aggregate_values",
    "format_aggregate",
    "format_cell",
    "format_date_fr",
    "format_number_fr",
    "hex_color_code",
    "hex_to_rgb",
    "is_missing",
    "to_number",
]
