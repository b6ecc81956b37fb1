"""Report settings — persisted preferences and the effective export record.

- models.py: ReportSettings (stored shape), ExportSettings (rendering shape), Margins
- resolver.py: resolve_settings, convert_to_export_settings, header/footer lines
- store.py: settings stores (static, YAML file, disabled)
"""

from .models import (
    DEFAULT_EXPORT_SETTINGS,
    DEFAULT_FOOTER_LINES,
    DEFAULT_HEADER_LINES,
    DEFAULT_REPORT_SETTINGS,
    MARGIN_PRESETS,
    ExportSettings,
    Margins,
    ReportSettings,
)
from .resolver import (
    convert_to_export_settings,
    footer_lines,
    header_lines,
    resolve_settings,
)
from .store import (
    DisabledSettingsStore,
    SettingsStore,
    StaticSettingsStore,
    StoreStatus,
    YamlSettingsStore,
    load_settings,
    save_settings,
)

__all__ = [
    "DEFAULT_EXPORT_SETTINGS",
    "DEFAULT_FOOTER_LINES",
    "DEFAULT_HEADER_LINES",
    "DEFAULT_REPORT_SETTINGS",
    "MARGIN_PRESETS",
    "ExportSettings",
    "Margins",
    "ReportSettings",
    "convert_to_export_settings",
    "footer_lines",
    "header_lines",
    "resolve_settings",
    "DisabledSettingsStore",
    "SettingsStore",
    "StaticSettingsStore",
    "StoreStatus",
    "YamlSettingsStore",
    "load_settings",
    "save_settings",
]
