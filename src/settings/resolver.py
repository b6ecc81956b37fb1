"""Settings resolver — persisted preferences + per-call override -> ExportSettings.

    resolve_settings(None)            -> DEFAULT_EXPORT_SETTINGS
    resolve_settings(stored)          -> convert_to_export_settings(stored)
    resolve_settings(stored, {...})   -> the above with override fields applied

Pure functions: no I/O, no mutation, equal inputs give equal outputs.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any

from src.errors import SettingsError
from src.schema.models import Alignment, Orientation

from .models import (
    DEFAULT_EXPORT_SETTINGS,
    DEFAULT_FOOTER_LINES,
    DEFAULT_HEADER_LINES,
    ExportSettings,
    Margins,
    ReportSettings,
    position_from_fr,
)


_DEFAULTS = DEFAULT_EXPORT_SETTINGS


def convert_to_export_settings(stored: ReportSettings) -> ExportSettings:
    """Map the persisted record onto the rendering shape.

    Every ExportSettings field gets a value here: either from the record or,
    when the record leaves it empty, from DEFAULT_EXPORT_SETTINGS. An empty
    or unrecognised orientation is left to the template.
    """
    return ExportSettings(
        show_logo=True,
        use_default_logo=not stored.logo_url,
        custom_logo_path=stored.logo_url or None,
        header_color=(stored.couleur_entete_tableau or stored.couleur_principale
                      or _DEFAULTS.header_color),
        header_text_color=stored.couleur_texte_entete or "#ffffff",
        alternate_row_color=stored.couleur_lignes_alternees or "#f5f7fa",
        border_color="#e5e7eb",
        orientation=_orientation(stored.orientation),
        font_family=_font_family(stored.police),
        font_size=_number(stored.taille_police, _DEFAULTS.font_size),
        margins=Margins(
            top=_number(stored.marges_haut, _DEFAULTS.margins.top),
            right=_number(stored.marges_droite, _DEFAULTS.margins.right),
            bottom=_number(stored.marges_bas, _DEFAULTS.margins.bottom),
            left=_number(stored.marges_gauche, _DEFAULTS.margins.left),
        ),
        show_watermark=_flag(stored.filigrane_actif, _DEFAULTS.show_watermark),
        watermark_text=stored.filigrane_texte or _DEFAULTS.watermark_text,
        show_footer=True,
        show_generation_date=_flag(stored.afficher_date, _DEFAULTS.show_generation_date),
        show_page_numbers=_flag(stored.afficher_numero_page, _DEFAULTS.show_page_numbers),
        header_line_1=stored.ligne_entete_1 or "",
        header_line_2=stored.ligne_entete_2 or "",
        header_line_3=stored.ligne_entete_3 or "",
        header_line_4=stored.ligne_entete_4 or "",
        use_custom_header=True,
        footer_line_1=stored.ligne_pied_1 or "",
        footer_line_2=stored.ligne_pied_2 or "",
        footer_line_3=stored.ligne_pied_3 or "",
        footer_line_4=stored.ligne_pied_4 or "",
        use_custom_footer=True,
        table_position=_position(stored.position_tableau),
        content_alignment=_position(stored.alignement_contenu),
        table_spacing=_number(stored.espacement_tableau, _DEFAULTS.table_spacing),
    )


# reportlab built-in families; anything else falls back to Helvetica
_FONT_FAMILIES = {
    "helvetica": "Helvetica",
    "arial": "Helvetica",
    "times": "Times-Roman",
    "times new roman": "Times-Roman",
    "courier": "Courier",
}


def _font_family(police: str | None) -> str:
    return _FONT_FAMILIES.get((police or "").strip().lower(), "Helvetica")


def _number(value: Any, default: float) -> float:
    """Stored numeric field as float; empty or non-numeric gives ``default``."""
    if value is None or value == "":
        return float(default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return float(default)


def _flag(value: Any, default: bool) -> bool:
    return default if value is None else bool(value)


def _position(value: Any) -> Alignment:
    try:
        return position_from_fr(value)
    except (SettingsError, AttributeError):
        return Alignment.LEFT


def _orientation(value: Any) -> Orientation | None:
    if not value:
        return None
    try:
        return Orientation(str(value).strip().lower())
    except ValueError:
        return None


def _coerce_field(name: str, value: Any) -> Any:
    """Normalize override values given as plain YAML/JSON scalars."""
    if name == "margins":
        return Margins.coerce(value)
    if name == "orientation" and value is not None and not isinstance(value, Orientation):
        try:
            return Orientation(value)
        except ValueError:
            raise SettingsError(f"Invalid orientation: {value!r}") from None
    if name in ("table_position", "content_alignment") and not isinstance(value, Alignment):
        return position_from_fr(value)
    return value


def resolve_settings(
    base: ReportSettings | None,
    override: Mapping[str, Any] | ExportSettings | None = None,
) -> ExportSettings:
    """Produce the effective settings for one export.

    Parameters
    ----------
    base : ReportSettings or None
        The stored preferences; None means "use the defaults".
    override : mapping or ExportSettings, optional
        Per-call fragment. Fields present here win over ``base``; an
        ExportSettings override replaces every field.

    Raises
    ------
    SettingsError
        If the override names a field ExportSettings does not have, or a
        value cannot be coerced.
    """
    resolved = DEFAULT_EXPORT_SETTINGS if base is None else convert_to_export_settings(base)
    if not override:
        return resolved

    if isinstance(override, ExportSettings):
        override = {f.name: getattr(override, f.name)
                    for f in dataclasses.fields(override)}

    unknown = set(override) - ExportSettings.field_names()
    if unknown:
        raise SettingsError(f"Unknown export setting(s): {sorted(unknown)}")

    changes = {name: _coerce_field(name, value) for name, value in override.items()}
    return dataclasses.replace(resolved, **changes)


def header_lines(settings: ExportSettings | None) -> list[str]:
    """The four header lines: custom where enabled and set, else boilerplate."""
    if settings is None or not settings.use_custom_header:
        return list(DEFAULT_HEADER_LINES)
    custom = (settings.header_line_1, settings.header_line_2,
              settings.header_line_3, settings.header_line_4)
    return [c or d for c, d in zip(custom, DEFAULT_HEADER_LINES)]


def footer_lines(settings: ExportSettings | None) -> list[str]:
    """The four footer lines, with the same fallback as header_lines."""
    if settings is None or not settings.use_custom_footer:
        return list(DEFAULT_FOOTER_LINES)
    custom = (settings.footer_line_1, settings.footer_line_2,
              settings.footer_line_3, settings.footer_line_4)
    return [c or d for c, d in zip(custom, DEFAULT_FOOTER_LINES)]
