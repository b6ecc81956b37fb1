"""Settings stores — where the persisted ReportSettings come from.

The export pipeline never reads settings from ambient state: the caller
fetches them from a store and passes them in. Stores report whether the
feature is available so callers can tell "feature off" from "no data".
"""

import logging
from collections.abc import Mapping
from enum import Enum
from pathlib import Path

import yaml

from src.errors import FeatureNotImplementedError, SettingsError

from .models import DEFAULT_REPORT_SETTINGS, ReportSettings

logger = logging.getLogger(__name__)


class StoreStatus(Enum):
    AVAILABLE = "available"
    NOT_IMPLEMENTED = "not_implemented"


class SettingsStore:
    """Base interface: read and (where editable) update report settings."""

    status = StoreStatus.AVAILABLE
    editable = False

    def get_settings(self) -> ReportSettings | None:
        raise NotImplementedError

    def update_settings(self, partial: Mapping) -> ReportSettings:
        raise SettingsError(f"{type(self).__name__} is read-only")


class StaticSettingsStore(SettingsStore):
    """In-memory store, mainly for tests and one-off exports."""

    editable = True

    def __init__(self, settings: ReportSettings | None = DEFAULT_REPORT_SETTINGS):
        self._settings = settings

    def get_settings(self) -> ReportSettings | None:
        return self._settings

    def update_settings(self, partial: Mapping) -> ReportSettings:
        current = self._settings or DEFAULT_REPORT_SETTINGS
        self._settings = current.merged(partial)
        return self._settings


class YamlSettingsStore(SettingsStore):
    """Settings persisted as a YAML mapping of ReportSettings fields.

    A missing file means no stored settings (``get_settings`` returns None).
    """

    editable = True

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def get_settings(self) -> ReportSettings | None:
        if not self.path.exists():
            logger.debug("No settings file at %s", self.path)
            return None
        with open(self.path, encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as exc:
                raise SettingsError(f"{self.path}: invalid YAML ({exc})") from exc
        if data is None:
            return None
        return ReportSettings.from_dict(data)

    def update_settings(self, partial: Mapping) -> ReportSettings:
        current = self.get_settings() or DEFAULT_REPORT_SETTINGS
        updated = current.merged(partial)
        save_settings(updated, self.path)
        logger.info("Updated report settings in %s", self.path)
        return updated


class DisabledSettingsStore(SettingsStore):
    """Placeholder for installations where settings are not yet editable."""

    status = StoreStatus.NOT_IMPLEMENTED

    def get_settings(self) -> ReportSettings | None:
        raise FeatureNotImplementedError("report settings")

    def update_settings(self, partial: Mapping) -> ReportSettings:
        raise FeatureNotImplementedError("report settings")


def save_settings(settings: ReportSettings, path: str | Path) -> None:
    """Serialize ReportSettings to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False,
                  allow_unicode=True, width=120)


def load_settings(path: str | Path) -> ReportSettings | None:
    return YamlSettingsStore(path).get_settings()
