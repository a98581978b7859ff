"""Parse catalog and design documents (YAML or JSON) into model objects.

Documents use the camelCase keys of the panel designer's JSON
(``componentIds``, ``panelId``, ``requiredComponents``...).  Schema errors
raise ``ValueError`` naming the offending entry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeVar

import yaml

from paneldrc.catalog.models import (
    Combinator,
    Component,
    Design,
    Panel,
    Placement,
    SpecValue,
    parse_number,
)

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _require_str(data: dict[str, object], key: str, context: str) -> str:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        msg = f"{context}: missing required '{key}' field"
        raise ValueError(msg)
    return str(value)


def _require_number(data: dict[str, object], key: str, context: str) -> float:
    value = data.get(key)
    if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{context}: '{key}' must be a number"
        raise ValueError(msg)
    return float(value)


def _optional_number(data: dict[str, object], key: str, context: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    number = parse_number(value)
    if number is None:
        msg = f"{context}: '{key}' must be a number, got {value!r}"
        raise ValueError(msg)
    return number


def _optional_str(data: dict[str, object], key: str) -> str | None:
    value = data.get(key)
    return None if value is None else str(value)


def _str_tuple(data: dict[str, object], key: str, context: str) -> tuple[str, ...]:
    raw = data.get(key)
    if raw is None:
        return ()
    if not isinstance(raw, list):
        msg = f"{context}: '{key}' must be a list"
        raise ValueError(msg)
    return tuple(str(item) for item in raw)


def _mapping(data: dict[str, object], key: str, context: str) -> dict[str, object]:
    raw = data.get(key)
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        msg = f"{context}: '{key}' must be a mapping"
        raise ValueError(msg)
    return {str(k): v for k, v in raw.items()}


# ---------------------------------------------------------------------------
# Entity parsing
# ---------------------------------------------------------------------------


def parse_panel(data: dict[str, object], context: str = "panel") -> Panel:
    panel_id = _require_str(data, "id", context)
    context = f"Panel '{panel_id}'"
    return Panel(
        id=panel_id,
        name=str(data.get("name", panel_id)),
        width=_require_number(data, "width", context),
        height=_require_number(data, "height", context),
        depth=_optional_number(data, "depth", context),
        type=_optional_str(data, "type"),
        category=_optional_str(data, "category"),
        model_2d=_optional_str(data, "model2D"),
        model_3d=_optional_str(data, "model3D"),
    )


def parse_component(data: dict[str, object], context: str = "component") -> Component:
    component_id = _require_str(data, "id", context)
    context = f"Component '{component_id}'"
    specs_raw = _mapping(data, "specs", context)
    specs: dict[str, SpecValue] = {}
    for key, value in specs_raw.items():
        if isinstance(value, (str, int, float)) and not isinstance(value, bool):
            specs[key] = value
        elif value is not None:
            specs[key] = str(value)
    return Component(
        id=component_id,
        name=str(data.get("name", component_id)),
        type=str(data.get("type", "")),
        category=str(data.get("category", "")),
        width=_require_number(data, "width", context),
        height=_require_number(data, "height", context),
        depth=_optional_number(data, "depth", context),
        color=str(data.get("color", "")),
        specs=specs,
        tags=_str_tuple(data, "tags", context),
        required_components=_str_tuple(data, "requiredComponents", context),
    )


def parse_combinator(data: dict[str, object], context: str = "combinator") -> Combinator:
    combinator_id = _require_str(data, "id", context)
    context = f"Combinator '{combinator_id}'"
    component_ids = _str_tuple(data, "componentIds", context)

    gaps: tuple[float, ...] | None = None
    gaps_raw = data.get("gaps")
    if gaps_raw is not None:
        if not isinstance(gaps_raw, list):
            msg = f"{context}: 'gaps' must be a list"
            raise ValueError(msg)
        parsed: list[float] = []
        for idx, gap in enumerate(gaps_raw):
            number = parse_number(gap)
            if number is None:
                msg = f"{context}: gap at index {idx} must be a number"
                raise ValueError(msg)
            parsed.append(number)
        gaps = tuple(parsed)
        if len(gaps) != len(component_ids) + 1:
            logger.warning(
                "%s: expected %d gap(s), found %d; gaps will be padded or truncated",
                context,
                len(component_ids) + 1,
                len(gaps),
            )

    return Combinator(
        id=combinator_id,
        name=str(data.get("name", combinator_id)),
        width=_require_number(data, "width", context),
        height=_require_number(data, "height", context),
        depth=_optional_number(data, "depth", context),
        component_ids=component_ids,
        gaps=gaps,
        brand=str(data.get("brand", "") or ""),
        series=str(data.get("series", "") or ""),
        current_a=str(data.get("currentA", "") or ""),
        pole=str(data.get("pole", "") or ""),
        panel_size=_optional_number(data, "panelSize", context),
    )


def parse_placement(data: dict[str, object], context: str = "placement") -> Placement:
    placement_id = _require_str(data, "id", context)
    context = f"Placement '{placement_id}'"
    return Placement(
        id=placement_id,
        component_id=_require_str(data, "componentId", context),
        panel_id=_require_str(data, "panelId", context),
        x=_require_number(data, "x", context),
        y=_require_number(data, "y", context),
        rotation=_optional_number(data, "rotation", context),
        scale=_optional_number(data, "scale", context),
        properties=_mapping(data, "properties", context),
    )


def _parse_list(
    items: object, parser: Callable[[dict[str, object], str], _T], label: str
) -> list[_T]:
    if not isinstance(items, list):
        msg = f"'{label}' must be a list"
        raise ValueError(msg)
    parsed: list[_T] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            msg = f"{label} at index {idx} must be a mapping"
            raise ValueError(msg)
        parsed.append(parser(item, f"{label} at index {idx}"))
    return parsed


def parse_design(data: dict[str, object], *, default_panel_spacing: float = 0.0) -> Design:
    """Parse a multi-panel design mapping (``panels``, ``components``, ...)."""
    panels = _parse_list(data.get("panels", []), parse_panel, "panels")
    placements = _parse_list(data.get("components", []), parse_placement, "components")
    spacing_raw = data.get("panelSpacing")
    spacing = parse_number(spacing_raw) if spacing_raw is not None else None
    active = data.get("activePanelId")
    return Design(
        panels=tuple(panels),
        placements=tuple(placements),
        active_panel_id=str(active) if active is not None else None,
        panel_spacing=spacing if spacing is not None else default_panel_spacing,
    )


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def read_document(path: Path) -> object:
    """Read a YAML (or JSON) document; an empty file reads as ``None``."""
    with path.open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh)


def _items(document: object, key: str, path: Path) -> list[object]:
    if document is None:
        return []
    if isinstance(document, dict):
        document = document.get(key, [])
    if not isinstance(document, list):
        msg = f"{path.name}: expected a list of {key} or a mapping with a '{key}' list"
        raise ValueError(msg)
    return document


def load_components(path: Path) -> list[Component]:
    return _parse_list(_items(read_document(path), "components", path), parse_component, "components")


def load_combinators(path: Path) -> list[Combinator]:
    return _parse_list(
        _items(read_document(path), "combinators", path), parse_combinator, "combinators"
    )


def load_panels(path: Path) -> list[Panel]:
    return _parse_list(_items(read_document(path), "panels", path), parse_panel, "panels")


def load_design(path: Path, *, default_panel_spacing: float = 0.0) -> Design:
    document = read_document(path)
    if document is None:
        return Design(panel_spacing=default_panel_spacing)
    if not isinstance(document, dict):
        msg = f"{path.name}: design must be a mapping"
        raise ValueError(msg)
    return parse_design(document, default_panel_spacing=default_panel_spacing)


# ---------------------------------------------------------------------------
# Dict conversion (inverse of the parsers)
# ---------------------------------------------------------------------------


def _prune(data: dict[str, object]) -> dict[str, object]:
    return {k: v for k, v in data.items() if v is not None}


def panel_to_dict(panel: Panel) -> dict[str, object]:
    return _prune(
        {
            "id": panel.id,
            "name": panel.name,
            "width": panel.width,
            "height": panel.height,
            "depth": panel.depth,
            "type": panel.type,
            "category": panel.category,
            "model2D": panel.model_2d,
            "model3D": panel.model_3d,
        }
    )


def component_to_dict(component: Component) -> dict[str, object]:
    data: dict[str, object] = {
        "id": component.id,
        "name": component.name,
        "type": component.type,
        "category": component.category,
        "width": component.width,
        "height": component.height,
        "depth": component.depth,
        "color": component.color,
        "specs": dict(component.specs),
    }
    if component.tags:
        data["tags"] = list(component.tags)
    if component.required_components:
        data["requiredComponents"] = list(component.required_components)
    return _prune(data)


def combinator_to_dict(combinator: Combinator) -> dict[str, object]:
    return _prune(
        {
            "id": combinator.id,
            "name": combinator.name,
            "width": combinator.width,
            "height": combinator.height,
            "depth": combinator.depth,
            "componentIds": list(combinator.component_ids),
            "gaps": list(combinator.gaps) if combinator.gaps is not None else None,
            "brand": combinator.brand,
            "series": combinator.series,
            "currentA": combinator.current_a,
            "pole": combinator.pole,
            "panelSize": combinator.panel_size,
        }
    )


def placement_to_dict(placement: Placement) -> dict[str, object]:
    data: dict[str, object] = {
        "id": placement.id,
        "componentId": placement.component_id,
        "panelId": placement.panel_id,
        "x": placement.x,
        "y": placement.y,
        "rotation": placement.rotation,
        "scale": placement.scale,
    }
    if placement.properties:
        data["properties"] = dict(placement.properties)
    return _prune(data)
