"""Export orchestrator — public entry point of the pipeline.

    exporter = ReportExporter(settings=store.get_settings(), sink=FileSink("out"))
    result = exporter.export_report("pdf", ExportOptions(title="Feuille de caisse",
                                                         rows=rows))

Steps for one call: coerce the format (fail fast), resolve the template and
column overrides, resolve the effective settings, build the content (pure),
render bytes with the format's builder, hand the bytes to the sink, notify.
Failures after the format check are logged, notified and re-raised as is.

Exports are synchronous and share no mutable state. An interrupted call may
leave a partially written file behind; the sink does not clean it up.
"""

import datetime
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from src.domain.sorting import sort_operations_solde_first
from src.errors import UnsupportedFormatError
from src.generator import BUILDERS, ReportContent, build_content
from src.schema.models import ExportFormat, ReportKind, ReportTemplate, TableColumn
from src.schema.templates import get_template, with_columns
from src.settings.models import ExportSettings, ReportSettings
from src.settings.resolver import resolve_settings

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------

@dataclass
class ExportOptions:
    """Per-call bundle; built by the caller and consumed by one export."""
    title: str
    rows: Sequence[Any] = field(default_factory=list)
    subtitle: str = ""
    report_kind: ReportKind | str = ReportKind.FEUILLE_CAISSE
    custom_template: ReportTemplate | Mapping | None = None
    custom_columns: Sequence[TableColumn | Mapping] | None = None
    settings_override: Mapping[str, Any] | ExportSettings | None = None
    sort_solde_first: bool = False
    generated_at: datetime.datetime | None = None
    opening_balance: float = 0            # Cash on hand before the first row
    filename: str | None = None


@dataclass(frozen=True)
class ExportResult:
    format: ExportFormat
    filename: str
    path: Path | None
    size: int
    content: bytes = field(repr=False)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------

class Notifier(Protocol):
    def notify_success(self, message: str) -> None: ...

    def notify_failure(self, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that reports through the logging system."""

    def notify_success(self, message: str) -> None:
        logger.info(message)

    def notify_failure(self, message: str) -> None:
        logger.error(message)


class FileSink:
    """Writes finished documents into a directory."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    def write(self, filename: str, data: bytes) -> Path:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / filename
        with open(path, "wb") as f:
            f.write(data)
        return path


class MemorySink:
    """Keeps finished documents in memory, keyed by filename."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}

    def write(self, filename: str, data: bytes) -> None:
        self.files[filename] = data


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|\s]+')


def coerce_format(value: ExportFormat | str) -> ExportFormat:
    """Map a format selector onto ExportFormat or raise UnsupportedFormatError."""
    if isinstance(value, ExportFormat):
        return value
    if isinstance(value, str):
        try:
            return ExportFormat(value.strip().lower())
        except ValueError:
            pass
    raise UnsupportedFormatError(value)


def default_filename(title: str, fmt: ExportFormat, when: datetime.datetime) -> str:
    """``feuille_de_caisse_2025-10-31.pdf`` from a title and a date."""
    stem = _UNSAFE_FILENAME.sub("_", title.strip()).strip("_").lower() or "rapport"
    return f"{stem}_{when:%Y-%m-%d}.{fmt.extension}"


def success_message(fmt: ExportFormat) -> str:
    return f"Export {fmt.value.upper()} généré avec succès !"


def failure_message(fmt: ExportFormat) -> str:
    return f"Erreur lors de la génération du {fmt.value.upper()}"


# ---------------------------------------------------------------------------
# ReportExporter
# ---------------------------------------------------------------------------

class ReportExporter:
    """Coordinates template, settings, renderer, sink and notifier.

    Parameters
    ----------
    settings : ReportSettings, optional
        Stored preferences for this installation; None means defaults.
    notifier : Notifier, optional
        Receives the success/failure messages. Defaults to logging.
    sink : FileSink or MemorySink, optional
        Materializes the document. Defaults to an in-memory sink.
    """

    def __init__(self, settings: ReportSettings | None = None,
                 notifier: Notifier | None = None, sink=None) -> None:
        self.settings = settings
        self.notifier = notifier or LoggingNotifier()
        self.sink = sink if sink is not None else MemorySink()

    # -- pure steps -------------------------------------------------------

    def resolve_template(self, options: ExportOptions) -> ReportTemplate:
        if options.custom_template is not None:
            template = options.custom_template
            if isinstance(template, Mapping):
                template = ReportTemplate.from_dict(template)
            template = template.validate()
        else:
            template = get_template(options.report_kind)
        if options.custom_columns:
            template = with_columns(template, options.custom_columns)
        return template

    def build_report_content(self, options: ExportOptions) -> ReportContent:
        """Resolve template and settings and build the content, without I/O."""
        template = self.resolve_template(options)
        settings = resolve_settings(self.settings, options.settings_override)
        rows = options.rows
        if options.sort_solde_first:
            rows = sort_operations_solde_first(rows)
        return build_content(template, rows, options.title, options.subtitle,
                             settings=settings, generated_at=options.generated_at,
                             opening_balance=options.opening_balance)

    # -- export -----------------------------------------------------------

    def export_report(self, format: ExportFormat | str, options: ExportOptions) -> ExportResult:
        """Render ``options`` in ``format`` and hand the file to the sink.

        Raises
        ------
        UnsupportedFormatError
            Before any other work if ``format`` is not pdf, excel or word.
        Exception
            Whatever template resolution, rendering or the sink raised,
            after it has been logged and notified.
        """
        fmt = coerce_format(format)
        try:
            content = self.build_report_content(options)
            data = BUILDERS[fmt](content).build()
            filename = options.filename or default_filename(
                options.title or content.template.name, fmt, content.generated_at)
            path = self.sink.write(filename, data)
        except Exception:
            logger.error("Export %s failed for report %r", fmt.value, options.title,
                         exc_info=True)
            self.notifier.notify_failure(failure_message(fmt))
            raise

        logger.info("Exported %s (%d bytes)", filename, len(data))
        self.notifier.notify_success(success_message(fmt))
        return ExportResult(format=fmt, filename=filename, path=path,
                            size=len(data), content=data)

    # -- convenience ------------------------------------------------------

    def _export_kind(self, kind: ReportKind, format, rows, title, subtitle="",
                     **kwargs) -> ExportResult:
        options = ExportOptions(title=title, rows=rows, subtitle=subtitle,
                                report_kind=kind, **kwargs)
        return self.export_report(format, options)

    def export_feuille_caisse(self, format, rows, title="Feuille de caisse",
                              subtitle="", **kwargs) -> ExportResult:
        return self._export_kind(ReportKind.FEUILLE_CAISSE, format, rows, title,
                                 subtitle, **kwargs)

    def export_sommaire(self, format, rows, title="Sommaire mensuel",
                        subtitle="", **kwargs) -> ExportResult:
        return self._export_kind(ReportKind.SOMMAIRE, format, rows, title,
                                 subtitle, **kwargs)

    def export_programmation(self, format, rows, title="Programmation mensuelle",
                             subtitle="", **kwargs) -> ExportResult:
        return self._export_kind(ReportKind.PROGRAMMATION, format, rows, title,
                                 subtitle, **kwargs)

    def export_custom(self, format, template: ReportTemplate | Mapping, rows, title,
                      subtitle="", **kwargs) -> ExportResult:
        return self._export_kind(ReportKind.CUSTOM, format, rows, title, subtitle,
                                 custom_template=template, **kwargs)
