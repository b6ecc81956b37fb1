"""Settings models — the persisted report preferences and the rendering record.

Two shapes exist:

- ReportSettings: the record as stored by the application (French field
  names, one row per installation).
- ExportSettings: the flat record the renderers read. Exactly one effective
  instance exists per export call; see resolver.py for how it is produced.

Both are frozen; variants are produced with ``dataclasses.replace``.
"""

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from src.errors import SettingsError
from src.schema.models import Alignment, Orientation


# ---------------------------------------------------------------------------
# Fixed boilerplate
# ---------------------------------------------------------------------------

DEFAULT_HEADER_LINES = (
    "République Démocratique du Congo",
    "Ministère des Finances",
    "Direction Générale des Douanes et Accises",
    "Direction Provinciale de Kinshasa-Ville",
)

DEFAULT_FOOTER_LINES = (
    "Tous mobilisés pour une douane d'action et d'excellence !",
    "Immeuble DGDA, Place LE ROYAL, Bld du 30 Juin, Kinshasa/Gombe",
    "B.P.8248 KIN I / Tél. : +243(0) 818 968 481 - +243 (0) 821 920 215",
    "Email : info@douane.gouv.cd ; contact@douane.gouv.cd - Web : https://www.douanes.gouv.cd",
)

# Persisted position values -> Alignment
_POSITIONS = {
    "gauche": Alignment.LEFT,
    "centre": Alignment.CENTER,
    "droite": Alignment.RIGHT,
}


def position_from_fr(value: str | None, default: Alignment = Alignment.LEFT) -> Alignment:
    """Map a persisted 'gauche'/'centre'/'droite' (or English) value to Alignment."""
    if not value:
        return default
    value = value.strip().lower()
    if value in _POSITIONS:
        return _POSITIONS[value]
    try:
        return Alignment(value)
    except ValueError:
        raise SettingsError(f"Invalid position: {value!r}") from None


# ---------------------------------------------------------------------------
# Margins
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Margins:
    """Page margins in millimetres."""
    top: float = 14.0
    right: float = 14.0
    bottom: float = 40.0
    left: float = 14.0

    @classmethod
    def preset(cls, name: str) -> "Margins":
        try:
            return MARGIN_PRESETS[name]
        except KeyError:
            allowed = ", ".join(MARGIN_PRESETS)
            raise SettingsError(
                f"Unknown margin preset {name!r} (expected one of {allowed})"
            ) from None

    @classmethod
    def coerce(cls, value: Any) -> "Margins":
        """Accept a Margins, a preset name or a mapping of sides."""
        if isinstance(value, Margins):
            return value
        if isinstance(value, str):
            return cls.preset(value)
        if isinstance(value, Mapping):
            unknown = set(value) - {"top", "right", "bottom", "left"}
            if unknown:
                raise SettingsError(f"Unknown margin side(s): {sorted(unknown)}")
            return cls(**{k: float(v) for k, v in value.items()})
        raise SettingsError(f"Invalid margins: {value!r}")

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)


MARGIN_PRESETS = {
    "narrow": Margins(top=10, right=10, bottom=30, left=10),
    "normal": Margins(top=14, right=14, bottom=40, left=14),
    "wide": Margins(top=20, right=25, bottom=45, left=25),
}


# ---------------------------------------------------------------------------
# ExportSettings - what renderers read
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExportSettings:
    """Effective formatting for one export call."""
    # Logo
    show_logo: bool = True
    use_default_logo: bool = True
    custom_logo_path: str | None = None
    # Table colours
    header_color: str = "#3b82f6"
    header_text_color: str = "#ffffff"
    alternate_row_color: str = "#f5f7fa"
    border_color: str = "#e5e7eb"
    # Page
    orientation: Orientation | None = None     # None -> template decides
    font_family: str = "Helvetica"
    font_size: float = 9.0
    margins: Margins = field(default_factory=lambda: MARGIN_PRESETS["normal"])
    # Overlays
    show_watermark: bool = True
    watermark_text: str = "DGDA"
    show_footer: bool = True
    show_generation_date: bool = True
    show_page_numbers: bool = True
    # Header / footer text
    header_line_1: str = DEFAULT_HEADER_LINES[0]
    header_line_2: str = DEFAULT_HEADER_LINES[1]
    header_line_3: str = DEFAULT_HEADER_LINES[2]
    header_line_4: str = DEFAULT_HEADER_LINES[3]
    use_custom_header: bool = False
    footer_line_1: str = DEFAULT_FOOTER_LINES[0]
    footer_line_2: str = DEFAULT_FOOTER_LINES[1]
    footer_line_3: str = DEFAULT_FOOTER_LINES[2]
    footer_line_4: str = DEFAULT_FOOTER_LINES[3]
    use_custom_footer: bool = False
    # Table placement
    table_position: Alignment = Alignment.LEFT
    content_alignment: Alignment = Alignment.LEFT
    table_spacing: float = 10.0

    @classmethod
    def field_names(cls) -> set[str]:
        return {f.name for f in dataclasses.fields(cls)}

    def to_dict(self) -> dict:
        d: dict[str, Any] = {}
        for f in dataclasses.fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Margins):
                value = value.to_dict()
            elif isinstance(value, (Alignment, Orientation)):
                value = value.value
            d[f.name] = value
        return d


DEFAULT_EXPORT_SETTINGS = ExportSettings()


# ---------------------------------------------------------------------------
# ReportSettings - persisted shape
# ---------------------------------------------------------------------------

# Bookkeeping columns of the stored row, ignored when loading
_METADATA_KEYS = {"id", "created_at", "updated_at", "updated_by"}


@dataclass(frozen=True)
class ReportSettings:
    """Report preferences as stored by the application."""
    logo_url: str | None = None
    titre_entete: str = "DIRECTION GÉNÉRALE DES DOUANES ET ACCISES"
    sous_titre: str = "Rapport Financier"
    contenu_pied_page: str = "DGDA - Document officiel"
    afficher_numero_page: bool = True
    afficher_date: bool = True
    afficher_nom_institution: bool = True
    police: str = "helvetica"
    taille_police: float = 10
    couleur_principale: str = "#1e40af"
    marges_haut: float = 15
    marges_bas: float = 15
    marges_gauche: float = 10
    marges_droite: float = 10
    orientation: str = "portrait"
    position_logo: str = "gauche"
    filigrane_actif: bool = True
    filigrane_texte: str = "DGDA"
    ligne_entete_1: str = DEFAULT_HEADER_LINES[0]
    ligne_entete_2: str = DEFAULT_HEADER_LINES[1]
    ligne_entete_3: str = DEFAULT_HEADER_LINES[2]
    ligne_entete_4: str = DEFAULT_HEADER_LINES[3]
    ligne_pied_1: str = DEFAULT_FOOTER_LINES[0]
    ligne_pied_2: str = DEFAULT_FOOTER_LINES[1]
    ligne_pied_3: str = DEFAULT_FOOTER_LINES[2]
    ligne_pied_4: str = DEFAULT_FOOTER_LINES[3]
    position_tableau: str = "gauche"
    alignement_contenu: str = "gauche"
    espacement_tableau: float = 10
    couleur_entete_tableau: str = "#3b82f6"
    couleur_texte_entete: str = "#ffffff"
    couleur_lignes_alternees: str = "#f5f7fa"

    def to_dict(self) -> dict:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, d: Mapping) -> "ReportSettings":
        """Build from a stored record; unknown keys are rejected."""
        if not isinstance(d, Mapping):
            raise SettingsError(
                f"Report settings must be a mapping, got {type(d).__name__}"
            )
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(d) - known - _METADATA_KEYS
        if unknown:
            raise SettingsError(f"Unknown report setting(s): {sorted(unknown)}")
        return cls(**{k: v for k, v in d.items() if k in known})

    def merged(self, partial: Mapping) -> "ReportSettings":
        """Return a copy with ``partial`` applied (used by settings stores)."""
        return ReportSettings.from_dict({**self.to_dict(), **partial})


DEFAULT_REPORT_SETTINGS = ReportSettings()
