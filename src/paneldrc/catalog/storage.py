"""Key-addressed array store for catalog libraries and rule books.

Each key maps to one YAML file ``<root>/<key>.yml`` holding a list of
plain mappings.  Callers only ever get the current array or replace it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import yaml

from paneldrc.catalog.loader import (
    combinator_to_dict,
    component_to_dict,
    panel_to_dict,
    parse_combinator,
    parse_component,
    parse_panel,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from paneldrc.catalog.models import Combinator, Component, Panel

logger = logging.getLogger(__name__)

COMPONENTS_KEY = "components"
COMBINATORS_KEY = "combinators"
PANELS_KEY = "panels"
RULES_KEY = "rules"


class StorageError(Exception):
    """Raised when a stored array cannot be written."""


class LibraryStore:
    """Get / replace whole arrays by key."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def path_for(self, key: str) -> Path:
        return self.root / f"{key}.yml"

    def get(self, key: str) -> list[dict[str, object]]:
        """Return the stored array for *key* (empty when missing or unreadable)."""
        path = self.path_for(key)
        if not path.is_file():
            return []
        try:
            with path.open("r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh)
        except (OSError, yaml.YAMLError):
            logger.warning("Failed to read %s, treating it as empty", path)
            return []
        if isinstance(data, dict):
            data = data.get(key, [])
        if not isinstance(data, list):
            logger.warning("%s does not hold a list, treating it as empty", path)
            return []
        return [item for item in data if isinstance(item, dict)]

    def replace(self, key: str, items: Sequence[dict[str, object]]) -> None:
        """Overwrite the stored array for *key*."""
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as fh:
                yaml.safe_dump(list(items), fh, sort_keys=False, allow_unicode=True)
        except OSError as exc:
            msg = f"Cannot write {path}: {exc}"
            raise StorageError(msg) from exc

    # -- typed views --------------------------------------------------------

    def components(self) -> list[Component]:
        return [parse_component(item) for item in self.get(COMPONENTS_KEY)]

    def combinators(self) -> list[Combinator]:
        return [parse_combinator(item) for item in self.get(COMBINATORS_KEY)]

    def panels(self) -> list[Panel]:
        return [parse_panel(item) for item in self.get(PANELS_KEY)]

    def replace_components(self, components: Sequence[Component]) -> None:
        self.replace(COMPONENTS_KEY, [component_to_dict(c) for c in components])

    def replace_combinators(self, combinators: Sequence[Combinator]) -> None:
        self.replace(COMBINATORS_KEY, [combinator_to_dict(c) for c in combinators])

    def replace_panels(self, panels: Sequence[Panel]) -> None:
        self.replace(PANELS_KEY, [panel_to_dict(p) for p in panels])
