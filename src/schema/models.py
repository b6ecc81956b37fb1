"""Report template models - the contract between registry, settings and renderers.

Defines the typed structure of a report template: which columns the table
has, how each column is formatted and aggregated, how the title block,
summary and watermark look, and the page orientation. Templates are
immutable; variants are produced with ``dataclasses.replace``.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.errors import TemplateError


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class ReportKind(Enum):
    """Known report kinds."""
    FEUILLE_CAISSE = "feuille_caisse"    # Daily/monthly cash sheet
    SOMMAIRE = "sommaire"                # Summary by rubrique
    PROGRAMMATION = "programmation"      # Planned expenses
    CUSTOM = "custom"                    # Caller-supplied template


class ExportFormat(Enum):
    """Closed set of output formats."""
    PDF = "pdf"
    EXCEL = "excel"
    WORD = "word"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def media_type(self) -> str:
        return _MEDIA_TYPES[self]


_EXTENSIONS = {
    ExportFormat.PDF: "pdf",
    ExportFormat.EXCEL: "xlsx",
    ExportFormat.WORD: "docx",
}

_MEDIA_TYPES = {
    ExportFormat.PDF: "application/pdf",
    ExportFormat.EXCEL: "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    ExportFormat.WORD: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


class ColumnType(Enum):
    """How a cell value is formatted for display."""
    TEXT = "text"            # str(value)
    NUMBER = "number"        # 1 234,5
    CURRENCY = "currency"    # 1 234,50
    DATE = "date"            # dd/mm/yyyy


class Alignment(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class Orientation(Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class Aggregate(Enum):
    """Aggregation applied to a column for the totals row."""
    SUM = "sum"
    COUNT = "count"
    AVERAGE = "average"
    MIN = "min"
    MAX = "max"


class WatermarkPosition(Enum):
    CENTER = "center"        # Horizontal, page centre
    DIAGONAL = "diagonal"    # Rotated, page centre
    TILED = "tiled"          # Rotated, repeated across the page


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require(d: Mapping, key: str, where: str) -> Any:
    if key not in d or d[key] in (None, ""):
        raise TemplateError(f"{where}: missing required field '{key}'")
    return d[key]


def _enum(enum_cls, value, where: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise TemplateError(
            f"{where}: invalid value {value!r} (expected one of {allowed})"
        ) from None


# ---------------------------------------------------------------------------
# Column definition
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TableColumn:
    """Definition of a single column in the report table."""
    key: str                               # Key in each row record
    header: str                            # Display header text
    column_type: ColumnType = ColumnType.TEXT
    width: float = 15.0                    # Relative width units
    alignment: Alignment | None = None     # None -> by column type
    aggregate: Aggregate | None = None     # Totals-row aggregation
    formatter: Callable[[Any], str] | None = field(default=None, compare=False)

    @property
    def is_numeric(self) -> bool:
        return self.column_type in (ColumnType.NUMBER, ColumnType.CURRENCY)

    @property
    def effective_alignment(self) -> Alignment:
        if self.alignment is not None:
            return self.alignment
        return Alignment.RIGHT if self.is_numeric else Alignment.LEFT

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "key": self.key,
            "header": self.header,
            "type": self.column_type.value,
            "width": self.width,
        }
        if self.alignment is not None:
            d["align"] = self.alignment.value
        if self.aggregate is not None:
            d["aggregate"] = self.aggregate.value
        return d

    @classmethod
    def from_dict(cls, d: Mapping) -> "TableColumn":
        where = f"column {d.get('key', '?')!r}"
        return cls(
            key=str(_require(d, "key", where)),
            header=str(_require(d, "header", where)),
            column_type=_enum(ColumnType, d.get("type", "text"), where),
            width=float(d.get("width", 15.0)),
            alignment=_enum(Alignment, d["align"], where) if d.get("align") else None,
            aggregate=_enum(Aggregate, d["aggregate"], where) if d.get("aggregate") else None,
        )


# ---------------------------------------------------------------------------
# Section blocks
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HeaderBlock:
    """Title-block metadata above the report title."""
    reference_number: str = ""             # e.g. DGDA/3400/DP/KV/SDAF/
    show_logo: bool = True
    logo_position: Alignment = Alignment.LEFT

    def to_dict(self) -> dict:
        return {
            "reference_number": self.reference_number,
            "show_logo": self.show_logo,
            "logo_position": self.logo_position.value,
        }

    @classmethod
    def from_dict(cls, d: Mapping) -> "HeaderBlock":
        return cls(
            reference_number=d.get("reference_number", ""),
            show_logo=d.get("show_logo", True),
            logo_position=_enum(Alignment, d.get("logo_position", "left"), "header"),
        )


@dataclass(frozen=True)
class SummaryBlock:
    """Closing sentence giving a column total in words."""
    label: str                             # "Arrêté la présente ... à la somme de"
    column_key: str                        # Aggregated column to write out

    def to_dict(self) -> dict:
        return {"label": self.label, "column_key": self.column_key}

    @classmethod
    def from_dict(cls, d: Mapping) -> "SummaryBlock":
        return cls(
            label=str(_require(d, "label", "summary")),
            column_key=str(_require(d, "column_key", "summary")),
        )


@dataclass(frozen=True)
class BalanceSpec:
    """Cash balance carried through the rows: credits add, debits subtract."""
    credit_key: str                        # e.g. recette
    debit_key: str                         # e.g. depense
    column_key: str | None = None          # Column showing the balance after each row
    opening_label: str = "Solde initial"
    closing_label: str = "Solde final"

    def keys(self) -> set[str]:
        keys = {self.credit_key, self.debit_key}
        if self.column_key:
            keys.add(self.column_key)
        return keys

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"credit_key": self.credit_key, "debit_key": self.debit_key}
        if self.column_key:
            d["column_key"] = self.column_key
        d["opening_label"] = self.opening_label
        d["closing_label"] = self.closing_label
        return d

    @classmethod
    def from_dict(cls, d: Mapping) -> "BalanceSpec":
        return cls(
            credit_key=str(_require(d, "credit_key", "balance")),
            debit_key=str(_require(d, "debit_key", "balance")),
            column_key=d.get("column_key"),
            opening_label=d.get("opening_label", "Solde initial"),
            closing_label=d.get("closing_label", "Solde final"),
        )


@dataclass(frozen=True)
class WatermarkSpec:
    """Watermark overlay drawn on every page."""
    text: str = "ORIGINAL"
    opacity: int = 15                      # Percent
    rotation: float = 45.0                 # Degrees
    font_size: float = 60.0
    color: str = "#cccccc"
    position: WatermarkPosition = WatermarkPosition.DIAGONAL

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "opacity": self.opacity,
            "rotation": self.rotation,
            "font_size": self.font_size,
            "color": self.color,
            "position": self.position.value,
        }

    @classmethod
    def from_dict(cls, d: Mapping) -> "WatermarkSpec":
        return cls(
            text=d.get("text", "ORIGINAL"),
            opacity=int(d.get("opacity", 15)),
            rotation=float(d.get("rotation", 45.0)),
            font_size=float(d.get("font_size", 60.0)),
            color=d.get("color", "#cccccc"),
            position=_enum(WatermarkPosition, d.get("position", "diagonal"), "watermark"),
        )


@dataclass(frozen=True)
class TemplateStyles:
    """Template-level styling not covered by the export settings."""
    title_size: float = 14.0
    accent_color: str = "#1e40af"          # Separator under the header block
    total_row_color: str = "#e5e7eb"
    category_row_color: str = "#f0f0f0"

    def to_dict(self) -> dict:
        return {
            "title_size": self.title_size,
            "accent_color": self.accent_color,
            "total_row_color": self.total_row_color,
            "category_row_color": self.category_row_color,
        }

    @classmethod
    def from_dict(cls, d: Mapping) -> "TemplateStyles":
        return cls(
            title_size=float(d.get("title_size", 14.0)),
            accent_color=d.get("accent_color", "#1e40af"),
            total_row_color=d.get("total_row_color", "#e5e7eb"),
            category_row_color=d.get("category_row_color", "#f0f0f0"),
        )


# ---------------------------------------------------------------------------
# ReportTemplate - top-level container
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReportTemplate:
    """Complete declarative description of a report.

    Renderers consume a template along with the row records and the
    effective export settings to produce the final document.
    """
    id: str
    name: str
    kind: ReportKind
    columns: tuple[TableColumn, ...]
    description: str = ""
    orientation: Orientation = Orientation.PORTRAIT
    header: HeaderBlock = field(default_factory=HeaderBlock)
    styles: TemplateStyles = field(default_factory=TemplateStyles)
    show_totals: bool = True
    category_key: str | None = None        # Truthy row value -> category row
    summary: SummaryBlock | None = None
    watermark: WatermarkSpec | None = None
    balance: BalanceSpec | None = None

    def __post_init__(self) -> None:
        # Accept any sequence but always store a tuple
        if not isinstance(self.columns, tuple):
            object.__setattr__(self, "columns", tuple(self.columns))

    def get_column(self, key: str) -> TableColumn | None:
        """Look up a column by its key."""
        for col in self.columns:
            if col.key == key:
                return col
        return None

    def column_keys(self) -> list[str]:
        return [c.key for c in self.columns]

    def has_aggregates(self) -> bool:
        return any(c.aggregate is not None for c in self.columns)

    def validate(self) -> "ReportTemplate":
        """Check structural invariants; return self for chaining."""
        if not self.columns:
            raise TemplateError(f"Template {self.id!r} has no columns")
        seen: set[str] = set()
        for col in self.columns:
            if col.key in seen:
                raise TemplateError(
                    f"Template {self.id!r}: duplicate column key {col.key!r}"
                )
            seen.add(col.key)
        if self.summary and self.summary.column_key not in seen:
            raise TemplateError(
                f"Template {self.id!r}: summary refers to unknown column "
                f"{self.summary.column_key!r}"
            )
        if self.balance:
            missing = self.balance.keys() - seen
            if missing:
                raise TemplateError(
                    f"Template {self.id!r}: balance refers to unknown column(s) "
                    f"{sorted(missing)}"
                )
        return self

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "kind": self.kind.value,
            "description": self.description,
            "orientation": self.orientation.value,
            "header": self.header.to_dict(),
            "styles": self.styles.to_dict(),
            "show_totals": self.show_totals,
            "columns": [c.to_dict() for c in self.columns],
        }
        if self.category_key:
            d["category_key"] = self.category_key
        if self.summary:
            d["summary"] = self.summary.to_dict()
        if self.watermark:
            d["watermark"] = self.watermark.to_dict()
        if self.balance:
            d["balance"] = self.balance.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: Mapping) -> "ReportTemplate":
        if not isinstance(d, Mapping):
            raise TemplateError(
                f"Template must be a mapping, got {type(d).__name__}"
            )
        where = f"template {d.get('id', '?')!r}"
        columns = _require(d, "columns", where)
        if not isinstance(columns, list):
            raise TemplateError(f"{where}: 'columns' must be a list")
        return cls(
            id=str(_require(d, "id", where)),
            name=str(_require(d, "name", where)),
            kind=_enum(ReportKind, d.get("kind", "custom"), where),
            columns=tuple(TableColumn.from_dict(c) for c in columns),
            description=d.get("description", ""),
            orientation=_enum(Orientation, d.get("orientation", "portrait"), where),
            header=HeaderBlock.from_dict(d.get("header", {})),
            styles=TemplateStyles.from_dict(d.get("styles", {})),
            show_totals=d.get("show_totals", True),
            category_key=d.get("category_key"),
            summary=SummaryBlock.from_dict(d["summary"]) if d.get("summary") else None,
            watermark=WatermarkSpec.from_dict(d["watermark"]) if d.get("watermark") else None,
            balance=BalanceSpec.from_dict(d["balance"]) if d.get("balance") else None,
        ).validate()
