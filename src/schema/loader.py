"""Template loader — YAML serialization and deserialization for ReportTemplate.

Provides round-trip save/load so custom report layouts can be reviewed,
version-controlled, and edited as human-readable YAML configuration files.
"""

from pathlib import Path

import yaml

from src.errors import TemplateError

from .models import ReportTemplate


def save_template(template: ReportTemplate, path: str | Path) -> None:
    """Serialize a ReportTemplate to a YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = template.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False,
                  allow_unicode=True, width=120)


def load_template(path: str | Path) -> ReportTemplate:
    """Deserialize a ReportTemplate from a YAML file."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise TemplateError(f"{path}: invalid YAML ({exc})") from exc
    return ReportTemplate.from_dict(data)
