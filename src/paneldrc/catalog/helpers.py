"""Pure derivations over catalog data: stack dimensions, size classes, spec values."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from paneldrc.catalog.models import parse_number

if TYPE_CHECKING:
    from paneldrc.catalog.models import Combinator, Component

logger = logging.getLogger(__name__)


class _Sized(Protocol):
    width: float
    height: float


@dataclass(frozen=True)
class Dimensions:
    """Width/height pair in millimeters."""

    width: float
    height: float


@dataclass(frozen=True)
class SpecDropdowns:
    """Which spec selectors (A/V/P) apply to a component type."""

    show_a: bool = False
    show_v: bool = False
    show_p: bool = False


# ---------------------------------------------------------------------------
# Combinator geometry
# ---------------------------------------------------------------------------


def normalize_gaps(gaps: Sequence[float] | None, component_count: int) -> tuple[float, ...]:
    """Return *gaps* padded with zeros or truncated to ``component_count + 1``."""
    required = component_count + 1
    current = tuple(float(g) for g in gaps) if gaps else ()
    if len(current) == required:
        return current
    if current:
        logger.debug("Adjusting %d gap value(s) to %d slot(s)", len(current), required)
    if len(current) > required:
        return current[:required]
    return current + (0.0,) * (required - len(current))


def calculate_combinator_dimensions(
    components: Sequence[_Sized], gaps: Sequence[float] | None = None
) -> Dimensions:
    """Compute the bounding size of a vertical stack of components.

    Width is the widest component (0 for an empty stack); height is the sum
    of component heights plus every gap.  Gaps of the wrong length are
    zero-padded or truncated rather than rejected.
    """
    normalized = normalize_gaps(gaps, len(components))
    width = max((float(c.width) for c in components), default=0.0)
    height = sum(float(c.height) for c in components) + sum(normalized)
    return Dimensions(width=width, height=height)


def resolve_combinator_members(
    combinator: Combinator,
    components: Sequence[Component],
    combinators: Sequence[Combinator] = (),
) -> list[Component]:
    """Look up the catalog components of *combinator*, in order.

    Unknown ids are skipped.  Ids naming another combinator are skipped
    too: combinators never nest.
    """
    by_id = {c.id: c for c in components}
    combinator_ids = {c.id for c in combinators}
    members: list[Component] = []
    for component_id in combinator.component_ids:
        if component_id in combinator_ids:
            logger.warning(
                "Combinator '%s' references combinator '%s'; nested combinators are not allowed",
                combinator.id,
                component_id,
            )
            continue
        component = by_id.get(component_id)
        if component is None:
            logger.debug("Combinator '%s': unknown component '%s'", combinator.id, component_id)
            continue
        members.append(component)
    return members


def combinator_dimensions_from_catalog(
    combinator: Combinator,
    components: Sequence[Component],
    combinators: Sequence[Combinator] = (),
) -> Dimensions:
    """Recompute a combinator's size from its resolvable members and its gaps."""
    members = resolve_combinator_members(combinator, components, combinators)
    return calculate_combinator_dimensions(members, combinator.gaps)


# ---------------------------------------------------------------------------
# Panel size classes
# ---------------------------------------------------------------------------


def panel_size_from_width(width_mm: float) -> int:
    """Map a panel width in mm to its size class in cm (600 -> 60, 605 -> 61)."""
    return math.floor(width_mm / 10 + 0.5)


def _as_type_set(types: str | Iterable[str] | None) -> set[str]:
    if types is None:
        return set()
    if isinstance(types, str):
        return {types} if types else set()
    return {str(t) for t in types}


def filter_by_size_and_type(
    components: Iterable[Component],
    panel_width_mm: float,
    component_types: str | Iterable[str] | None = None,
    *,
    panel_size: float | None = None,
) -> list[Component]:
    """Return components whose ``specs.panelSize`` fits the panel.

    The size class comes from *panel_width_mm* unless *panel_size* overrides
    it.  When *component_types* is given the component ``type`` must be one
    of them.  No match yields an empty list.
    """
    size = panel_size if panel_size is not None else panel_size_from_width(panel_width_mm)
    wanted = _as_type_set(component_types)
    matches: list[Component] = []
    for component in components:
        component_size = component.spec_number("panelSize")
        if component_size is None or component_size != size:
            continue
        if wanted and component.type not in wanted:
            continue
        matches.append(component)
    return matches


def filter_combinators_by_size(
    combinators: Iterable[Combinator],
    panel_width_mm: float,
    combinator_names: Iterable[str] | None = None,
    *,
    panel_size: float | None = None,
) -> list[Combinator]:
    """Return combinators whose ``panel_size`` fits the panel (optionally by name)."""
    size = panel_size if panel_size is not None else panel_size_from_width(panel_width_mm)
    names = _as_type_set(combinator_names)
    return [
        c
        for c in combinators
        if c.panel_size is not None
        and float(c.panel_size) == size
        and (not names or c.name in names)
    ]


# ---------------------------------------------------------------------------
# Spec value extraction
# ---------------------------------------------------------------------------


def sort_spec_values(values: Iterable[str]) -> list[str]:
    """Sort spec values for stable dropdown ordering.

    Values with a leading number (``"16"``, ``"16A"``, ``"2.5"``) come first in
    ascending numeric order, equal numbers ordered by their text.  Values
    without one follow in plain lexicographic order.
    """
    numeric: list[tuple[float, str]] = []
    textual: list[str] = []
    for value in set(values):
        number = parse_number(value)
        if number is None:
            textual.append(value)
        else:
            numeric.append((number, value))
    numeric.sort()
    return [v for _, v in numeric] + sorted(textual)


def _collect(items: Iterable[object], getters: Sequence[str], *, from_specs: bool) -> list[str]:
    values: set[str] = set()
    for item in items:
        for key in getters:
            raw = item.specs.get(key) if from_specs else getattr(item, key, None)  # type: ignore[attr-defined]
            if raw is None or raw == "":
                continue
            values.add(str(raw))
    return sort_spec_values(values)


def extract_a_values(components: Iterable[Component]) -> list[str]:
    """Distinct amperage values (``current`` and ``rating`` specs)."""
    return _collect(components, ("current", "rating"), from_specs=True)


def extract_v_values(components: Iterable[Component]) -> list[str]:
    """Distinct ``voltage`` spec values."""
    return _collect(components, ("voltage",), from_specs=True)


def extract_p_values(components: Iterable[Component]) -> list[str]:
    """Distinct ``power`` spec values."""
    return _collect(components, ("power",), from_specs=True)


def extract_brand_values(combinators: Iterable[Combinator]) -> list[str]:
    return _collect(combinators, ("brand",), from_specs=False)


def extract_series_values(combinators: Iterable[Combinator]) -> list[str]:
    return _collect(combinators, ("series",), from_specs=False)


def extract_current_a_values(combinators: Iterable[Combinator]) -> list[str]:
    return _collect(combinators, ("current_a",), from_specs=False)


def extract_pole_values(combinators: Iterable[Combinator]) -> list[str]:
    return _collect(combinators, ("pole",), from_specs=False)


# ---------------------------------------------------------------------------
# Type lookups
# ---------------------------------------------------------------------------

_A_TYPES: frozenset[str] = frozenset({"switch", "breaker", "fuse"})
_V_TYPES: frozenset[str] = frozenset({"meter", "relay"})
_P_TYPES: frozenset[str] = frozenset({"power", "transformer"})


def dropdowns_for_type(component_type: str) -> SpecDropdowns:
    """Return which spec selector applies to *component_type* (case-insensitive)."""
    lowered = component_type.lower()
    return SpecDropdowns(
        show_a=lowered in _A_TYPES,
        show_v=lowered in _V_TYPES,
        show_p=lowered in _P_TYPES,
    )


def component_types(components: Iterable[Component]) -> list[str]:
    """Sorted distinct non-empty component types."""
    return sorted({c.type for c in components if c.type})


def find_component_by_type(components: Iterable[Component], component_type: str) -> Component | None:
    """First component of the given type, or None."""
    for component in components:
        if component.type == component_type:
            return component
    return None
