"""Export orchestration — format dispatch, file sinks and notifications."""

from .orchestrator import (
    ExportOptions,
    ExportResult,
    FileSink,
    LoggingNotifier,
    MemorySink,
    Notifier,
    ReportExporter,
    coerce_format,
    default_filename,
    failure_message,
    success_message,
)

__all__ = [
    "ExportOptions",
    "ExportResult",
    "FileSink",
    "LoggingNotifier",
    "MemorySink",
    "Notifier",
    "ReportExporter",
    "coerce_format",
    "default_filename",
    "failure_message",
    "success_message",
]
