"""Project configuration: ``paneldrc.yml`` at the project root."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "paneldrc.yml"


@dataclass(frozen=True)
class DrcConfig:
    """Where a project keeps its files, and evaluation settings.

    Paths are relative to the project root.
    """

    rules: str = "rules.yml"
    design: str = "design.yml"
    components: str = "components.yml"
    combinators: str = "combinators.yml"
    panels: str = "panels.yml"
    panel_spacing: float = 0.0
    component_spacing: float = 10.0
    strict_rules: bool = False


_PATH_FIELDS = ("rules", "design", "components", "combinators", "panels")
_NUMBER_FIELDS = ("panel_spacing", "component_spacing")


def load_config(project_root: Path) -> DrcConfig:
    """Load ``paneldrc.yml``; missing file, keys or bad values fall back to defaults."""
    config_path = project_root / CONFIG_FILENAME
    if not config_path.is_file():
        return DrcConfig()

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using defaults", CONFIG_FILENAME)
        return DrcConfig()

    if not isinstance(data, dict):
        return DrcConfig()

    defaults = DrcConfig()
    kwargs: dict[str, object] = {}

    for name in _PATH_FIELDS:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            kwargs[name] = value

    for name in _NUMBER_FIELDS:
        value = data.get(name)
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning("%s: '%s' must be a number, using default", CONFIG_FILENAME, name)
            continue
        kwargs[name] = float(value)

    if "strict_rules" in data:
        kwargs["strict_rules"] = bool(data["strict_rules"])

    for f in fields(DrcConfig):
        kwargs.setdefault(f.name, getattr(defaults, f.name))

    return DrcConfig(**kwargs)  # type: ignore[arg-type]
