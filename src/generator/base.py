"""Shared renderer interface."""

from pathlib import Path

from src.schema.models import ExportFormat

from .content import ReportContent


class DocumentBuilder:
    """Lays out a ReportContent in one output format.

    Subclasses implement ``build`` and return the finished document as
    bytes; nothing touches the filesystem until ``build_to_file``.

    Parameters
    ----------
    content : ReportContent
        The resolved report from ``build_content``.
    """

    format: ExportFormat

    def __init__(self, content: ReportContent) -> None:
        self.content = content
        self.settings = content.settings

    def build(self) -> bytes:
        raise NotImplementedError

    def build_to_file(self, path: str | Path) -> Path:
        """Build and write to ``path``; return the path written."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = self.build()
        with open(path, "wb") as f:
            f.write(data)
        return path
