"""Catalog and design data model: panels, components, combinators, placements."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

SpecValue = str | float | int

# Placement id used for spacer items that carry ``properties.gapHeight``.
GAP_COMPONENT_ID = "gap"

_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_number(value: object) -> float | None:
    """Parse the leading number of *value* (``"16A"`` -> 16.0).

    Returns ``None`` for values without a numeric prefix, booleans and ``None``.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_NUMBER_RE.match(str(value))
    if match is None:
        return None
    return float(match.group(1))


@dataclass(frozen=True)
class Panel:
    """A rectangular enclosure housing placed components (millimeters)."""

    id: str
    name: str
    width: float
    height: float
    depth: float | None = None
    type: str | None = None
    category: str | None = None
    model_2d: str | None = None
    model_3d: str | None = None


@dataclass(frozen=True)
class Component:
    """A catalog-defined placeable part type.

    ``specs`` is an open mapping (current, voltage, power, rating,
    panelSize, ...); use the typed accessors, keys are often missing.
    """

    id: str
    name: str
    type: str
    category: str
    width: float
    height: float
    depth: float | None = None
    color: str = ""
    specs: dict[str, SpecValue] = field(default_factory=dict)
    tags: tuple[str, ...] = ()
    required_components: tuple[str, ...] = ()

    def spec(self, key: str) -> SpecValue | None:
        return self.specs.get(key)

    def spec_str(self, key: str) -> str | None:
        value = self.specs.get(key)
        return None if value is None else str(value)

    def spec_number(self, key: str) -> float | None:
        return parse_number(self.specs.get(key))


@dataclass(frozen=True)
class Combinator:
    """A named ordered group of catalog components placed as one unit.

    ``component_ids`` may repeat and may only name catalog components,
    never another combinator.  ``gaps`` holds one spacing before the first
    component and one after each component (``len(component_ids) + 1``).
    """

    id: str
    name: str
    width: float
    height: float
    depth: float | None = None
    component_ids: tuple[str, ...] = ()
    gaps: tuple[float, ...] | None = None
    brand: str = ""
    series: str = ""
    current_a: str = ""
    pole: str = ""
    panel_size: float | None = None

    @property
    def gaps_valid(self) -> bool:
        """True when ``gaps`` is absent or has exactly one entry per slot."""
        return self.gaps is None or len(self.gaps) == len(self.component_ids) + 1


@dataclass(frozen=True)
class Placement:
    """One instance of a component or combinator positioned on a panel.

    ``x``/``y`` are the top-left corner relative to the owning panel.
    """

    id: str
    component_id: str
    panel_id: str
    x: float
    y: float
    rotation: float | None = None
    scale: float | None = None
    properties: dict[str, object] = field(default_factory=dict)

    @property
    def is_gap(self) -> bool:
        return self.component_id == GAP_COMPONENT_ID


@dataclass(frozen=True)
class Design:
    """Snapshot of a multi-panel design."""

    panels: tuple[Panel, ...] = ()
    placements: tuple[Placement, ...] = ()
    active_panel_id: str | None = None
    panel_spacing: float = 0.0

    def placements_on(self, panel_id: str) -> list[Placement]:
        return [p for p in self.placements if p.panel_id == panel_id]

    def without_panel(self, panel_id: str) -> Design:
        """Return a copy with the panel and every placement it owns removed."""
        active = None if self.active_panel_id == panel_id else self.active_panel_id
        return Design(
            panels=tuple(p for p in self.panels if p.id != panel_id),
            placements=tuple(p for p in self.placements if p.panel_id != panel_id),
            active_panel_id=active,
            panel_spacing=self.panel_spacing,
        )
