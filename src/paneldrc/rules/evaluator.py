"""Design rule evaluation: rules + design snapshot -> violations.

Evaluation is a pure function of its inputs.  Rules are visited in the
order given and each rule's violations are emitted in entity encounter
order, so two calls on the same snapshot differ only in violation ids and
timestamps.

Scopes:

- ``global`` rules are checked once for the whole design; conditions see a
  design context (``componentCount``, ``panelCount``, and the first panel's
  ``panelWidth`` / ``panelHeight``).
- ``panel`` rules are checked per panel (only ``panelId`` when set);
  conditions see the panel context.
- ``component`` / ``combinator`` rules are checked against the placements
  of ``componentId`` / ``combinatorId``; conditions see each placement.

Bad rule content never raises: a malformed rule yields one ``invalid-rule``
violation, and a placement whose catalog entry cannot be found yields a
``missing-definition`` violation.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from paneldrc.catalog.helpers import panel_size_from_width
from paneldrc.catalog.models import Combinator, Component, parse_number
from paneldrc.geometry import Rect, clearance, is_within, rects_overlap
from paneldrc.rules.conditions import (
    MISSING,
    check_condition_definition,
    conditions_hold,
    resolve_field,
)
from paneldrc.rules.model import (
    CONSTRAINT_CLASSES,
    BoundsConstraint,
    CombinatorPanelSizeMappingConstraint,
    CountConstraint,
    CoUsageConstraint,
    DimensionConstraint,
    GapConstraint,
    GapPlacement,
    InvalidRule,
    MaxComponentHeightConstraint,
    NoIntersectWithPanelBoundsConstraint,
    OverlapConstraint,
    PanelSizeMappingConstraint,
    Rule,
    RuleDefinitionError,
    RuleType,
    RuleViolation,
    Severity,
    SpacingConstraint,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from paneldrc.catalog.models import Panel, Placement
    from paneldrc.rules.model import Constraint, RuleEntry

logger = logging.getLogger(__name__)

# Fixed vertical spacing between stacked items, in mm.
DEFAULT_COMPONENT_SPACING = 10.0

INVALID_RULE_KIND = "invalid-rule"
MISSING_DEFINITION_KIND = "missing-definition"

# ---------------------------------------------------------------------------
# Height budget helpers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class HeightBudget:
    """Vertical budget of a panel: allowed, used and remaining height (mm)."""

    max_height: float
    used: float
    available: float


def _catalog_height(
    component_id: str,
    components: dict[str, Component],
    combinators: dict[str, Combinator],
) -> float | None:
    combinator = combinators.get(component_id)
    if combinator is not None:
        return combinator.height
    component = components.get(component_id)
    if component is not None:
        return component.height
    return None


def calculate_total_component_height(
    panel_id: str,
    placements: Iterable[Placement],
    components: Sequence[Component],
    combinators: Sequence[Combinator] = (),
    *,
    spacing: float = DEFAULT_COMPONENT_SPACING,
    include_spacing: bool = True,
) -> float:
    """Stacked height of everything placed on *panel_id*.

    Combinators count with their own height (their internal gaps are
    already in it), ``gap`` placements with ``properties.gapHeight``, and
    *spacing* is added between consecutive non-gap items.  Placements
    whose catalog entry is unknown are not counted.
    """
    by_id = {c.id: c for c in components}
    comb_by_id = {c.id: c for c in combinators}
    total = 0.0
    stacked = 0
    for placement in placements:
        if placement.panel_id != panel_id:
            continue
        if placement.is_gap:
            total += parse_number(placement.properties.get("gapHeight")) or 0.0
            continue
        height = _catalog_height(placement.component_id, by_id, comb_by_id)
        if height is None:
            continue
        total += height
        stacked += 1
    if include_spacing and stacked > 0:
        total += spacing * (stacked - 1)
    return total


def _panel_rules_for(rules: Iterable[RuleEntry], panel_id: str) -> list[Rule]:
    return [
        r
        for r in rules
        if isinstance(r, Rule)
        and r.enabled
        and r.type is RuleType.PANEL
        and (not r.panel_id or r.panel_id == panel_id)
    ]


def gap_sizes(rules: Iterable[RuleEntry], panel_id: str) -> tuple[float, float]:
    """(top, bottom) gap band sizes declared by the panel rules of *panel_id*.

    The first gap constraint of each placement wins.
    """
    top: float | None = None
    bottom: float | None = None
    for rule in _panel_rules_for(rules, panel_id):
        for constraint in rule.constraints:
            if not isinstance(constraint, GapConstraint):
                continue
            if constraint.placement is GapPlacement.TOP and top is None:
                top = constraint.size
            elif constraint.placement is GapPlacement.BOTTOM and bottom is None:
                bottom = constraint.size
    return top or 0.0, bottom or 0.0


def _height_limit(
    constraint: MaxComponentHeightConstraint, panel: Panel, gaps: tuple[float, float]
) -> float | None:
    if constraint.automatic:
        return panel.height - gaps[0] - gaps[1]
    return constraint.height


def _max_height_constraint(rules: Sequence[Rule]) -> MaxComponentHeightConstraint | None:
    found: MaxComponentHeightConstraint | None = None
    for rule in rules:
        for constraint in rule.constraints:
            if isinstance(constraint, MaxComponentHeightConstraint):
                found = constraint
    return found


def calculate_available_height(
    panel: Panel,
    placements: Iterable[Placement],
    components: Sequence[Component],
    combinators: Sequence[Combinator],
    rules: Sequence[RuleEntry],
    *,
    spacing: float = DEFAULT_COMPONENT_SPACING,
) -> HeightBudget | None:
    """Remaining height on *panel* under its ``maxComponentHeight`` rule.

    Returns ``None`` when no enabled panel rule sets a usable limit.  The
    last ``maxComponentHeight`` constraint found wins.
    """
    panel_rules = _panel_rules_for(rules, panel.id)
    constraint = _max_height_constraint(panel_rules)
    if constraint is None:
        return None
    limit = _height_limit(constraint, panel, gap_sizes(panel_rules, panel.id))
    if limit is None:
        return None
    used = calculate_total_component_height(
        panel.id, placements, components, combinators, spacing=spacing
    )
    return HeightBudget(max_height=limit, used=used, available=max(0.0, limit - used))


def validate_component_height(
    panel: Panel,
    placements: Sequence[Placement],
    components: Sequence[Component],
    combinators: Sequence[Combinator],
    rules: Sequence[RuleEntry],
    new_height: float,
    *,
    is_combinator: bool = False,
    spacing: float = DEFAULT_COMPONENT_SPACING,
) -> str | None:
    """Check whether adding an item of *new_height* keeps *panel* within budget.

    Returns an explanation when the addition would break the panel's
    ``maxComponentHeight`` limit, ``None`` when it fits (or no limit applies).
    """
    panel_rules = _panel_rules_for(rules, panel.id)
    constraint = _max_height_constraint(panel_rules)
    if constraint is None:
        return None
    limit = _height_limit(constraint, panel, gap_sizes(panel_rules, panel.id))
    if limit is None:
        return "Max component height constraint is invalid (height not specified)"

    current = calculate_total_component_height(
        panel.id, placements, components, combinators, spacing=spacing
    )
    has_items = any(p.panel_id == panel.id and not p.is_gap for p in placements)
    after = current + new_height + (spacing if has_items else 0.0)
    if after <= limit:
        return None
    if constraint.message:
        return constraint.message
    label = "combinator" if is_combinator else "component"
    return (
        f"Adding this {label} would exceed maximum component height ({limit:.1f}mm). "
        f"Current: {current:.1f}mm, After adding: {after:.1f}mm"
    )


# ---------------------------------------------------------------------------
# Constraint validation
# ---------------------------------------------------------------------------


def check_constraint_definition(constraint: object) -> None:
    """Raise ``RuleDefinitionError`` if *constraint* cannot be evaluated."""
    if type(constraint) not in CONSTRAINT_CLASSES.values():
        msg = f"unknown constraint type {type(constraint).__name__}"
        raise RuleDefinitionError(msg)
    if isinstance(constraint, DimensionConstraint):
        if not constraint.property:
            msg = "dimension constraint is missing 'property'"
            raise RuleDefinitionError(msg)
        if constraint.min is None and constraint.max is None:
            msg = "dimension constraint needs 'min' or 'max'"
            raise RuleDefinitionError(msg)
    elif isinstance(constraint, CountConstraint):
        if constraint.min is None and constraint.max is None and constraint.value is None:
            msg = "count constraint needs 'min', 'max' or 'value'"
            raise RuleDefinitionError(msg)
    elif isinstance(constraint, SpacingConstraint):
        if constraint.spacing is None:
            msg = "spacing constraint is missing 'spacing'"
            raise RuleDefinitionError(msg)
    elif isinstance(constraint, NoIntersectWithPanelBoundsConstraint):
        if not constraint.panel_ids:
            msg = "noIntersectWithPanelBounds constraint is missing 'panelIds'"
            raise RuleDefinitionError(msg)
    elif isinstance(constraint, GapConstraint):
        if not isinstance(constraint.placement, GapPlacement) or constraint.size is None:
            msg = "gap constraint needs 'placement' and 'size'"
            raise RuleDefinitionError(msg)
    elif (
        isinstance(constraint, MaxComponentHeightConstraint)
        and not constraint.automatic
        and constraint.height is None
    ):
        msg = "maxComponentHeight constraint requires 'height' when not automatic"
        raise RuleDefinitionError(msg)


def _check_rule_definition(rule: Rule) -> None:
    if not isinstance(rule.type, RuleType):
        msg = f"unknown rule type {rule.type!r}"
        raise RuleDefinitionError(msg)
    for constraint in rule.constraints:
        check_constraint_definition(constraint)
    for condition in rule.conditions:
        check_condition_definition(condition)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


@dataclass
class _Scope:
    """Panels a rule is applied to, and optionally the subject placements."""

    panels: list[Panel]
    subjects: list[Placement] | None = None
    entity: dict[str, object] = field(default_factory=dict)
    design_wide: bool = False


class _Evaluation:
    """One evaluation pass over an immutable design snapshot."""

    def __init__(
        self,
        rules: Sequence[RuleEntry],
        panels: Sequence[Panel],
        placements: Sequence[Placement],
        components: Sequence[Component],
        combinators: Sequence[Combinator],
        *,
        panel_spacing: float,
        component_spacing: float,
    ) -> None:
        self.rules = rules
        self.panels = list(panels)
        self.panels_by_id = {p.id: p for p in panels}
        self.placements = list(placements)
        self.component_list = list(components)
        self.combinator_list = list(combinators)
        self.components = {c.id: c for c in components}
        self.combinators = {c.id: c for c in combinators}
        self.component_spacing = component_spacing
        self.timestamp = int(time.time() * 1000)

        # panels are laid out left to right, panel_spacing apart
        self.offsets: dict[str, float] = {}
        cursor = 0.0
        for panel in self.panels:
            self.offsets.setdefault(panel.id, cursor)
            cursor += panel.width + panel_spacing

    # -- lookups ------------------------------------------------------------

    def catalog_entry(self, placement: Placement) -> Component | Combinator | None:
        return self.combinators.get(placement.component_id) or self.components.get(
            placement.component_id
        )

    def footprint(self, placement: Placement) -> Rect | None:
        entry = self.catalog_entry(placement)
        if entry is None:
            return None
        return Rect(placement.x, placement.y, entry.width, entry.height)

    def on_panel(self, panel_id: str) -> list[Placement]:
        return [p for p in self.placements if p.panel_id == panel_id and not p.is_gap]

    def label(self, component_id: str) -> str:
        entry = self.combinators.get(component_id) or self.components.get(component_id)
        return entry.name if entry is not None else component_id

    # -- entity contexts ----------------------------------------------------

    def panel_context(self, panel: Panel) -> dict[str, object]:
        members = self.on_panel(panel.id)
        return {
            "id": panel.id,
            "name": panel.name,
            "width": panel.width,
            "height": panel.height,
            "depth": panel.depth,
            "type": panel.type,
            "category": panel.category,
            "panelSize": panel_size_from_width(panel.width),
            "componentCount": len(members),
            "panelWidth": panel.width,
            "panelHeight": panel.height,
            "componentIds": [p.component_id for p in members],
        }

    def design_context(self) -> dict[str, object]:
        members = [p for p in self.placements if not p.is_gap]
        context: dict[str, object] = {
            "componentCount": len(members),
            "panelCount": len(self.panels),
            "componentIds": [p.component_id for p in members],
        }
        if self.panels:
            context["panelWidth"] = self.panels[0].width
            context["panelHeight"] = self.panels[0].height
        return context

    def placement_context(self, placement: Placement) -> dict[str, object]:
        context: dict[str, object] = {
            "id": placement.id,
            "componentId": placement.component_id,
            "panelId": placement.panel_id,
            "x": placement.x,
            "y": placement.y,
            "rotation": placement.rotation,
            "scale": placement.scale,
            "properties": dict(placement.properties),
        }
        panel = self.panels_by_id.get(placement.panel_id)
        if panel is not None:
            context["panel"] = self.panel_context(panel)
            context["panelWidth"] = panel.width
            context["panelHeight"] = panel.height
        entry = self.catalog_entry(placement)
        if isinstance(entry, Combinator):
            context.update(
                {
                    "name": entry.name,
                    "width": entry.width,
                    "height": entry.height,
                    "depth": entry.depth,
                    "brand": entry.brand,
                    "series": entry.series,
                    "currentA": entry.current_a,
                    "pole": entry.pole,
                    "panelSize": entry.panel_size,
                    "componentIds": list(entry.component_ids),
                    "isCombinator": True,
                }
            )
        elif isinstance(entry, Component):
            context.update(
                {
                    "name": entry.name,
                    "type": entry.type,
                    "category": entry.category,
                    "width": entry.width,
                    "height": entry.height,
                    "depth": entry.depth,
                    "color": entry.color,
                    "specs": dict(entry.specs),
                    "tags": list(entry.tags),
                    "requiredComponents": list(entry.required_components),
                    "isCombinator": False,
                }
            )
        if entry is not None:
            context["component"] = {
                k: v for k, v in context.items() if k not in ("panel", "component")
            }
        return context

    # -- violation construction ---------------------------------------------

    def violation(
        self,
        rule: Rule | InvalidRule,
        kind: str,
        message: str,
        severity: Severity | None = None,
        **details: object,
    ) -> RuleViolation:
        return RuleViolation(
            id=f"violation-{uuid.uuid4().hex}",
            rule_id=rule.id,
            rule_name=rule.name,
            message=message,
            severity=severity or Severity.ERROR,
            timestamp=self.timestamp,
            kind=kind,
            **details,  # type: ignore[arg-type]
        )

    def _emit(
        self,
        out: list[RuleViolation],
        rule: Rule,
        constraint: Constraint,
        default_message: str,
        **details: object,
    ) -> None:
        out.append(
            self.violation(
                rule,
                constraint.kind.value,
                constraint.message or default_message,
                constraint.severity,
                **details,
            )
        )

    # -- driver ---------------------------------------------------------------

    def run(self) -> list[RuleViolation]:
        violations: list[RuleViolation] = []
        for rule in self.rules:
            if not rule.enabled:
                continue
            if isinstance(rule, InvalidRule):
                violations.append(self._invalid(rule, rule.reason))
                continue
            try:
                violations.extend(self._evaluate_rule(rule))
            except RuleDefinitionError as exc:
                logger.warning("Rule '%s' is malformed: %s", rule.id, exc)
                violations.append(self._invalid(rule, str(exc)))
        return violations

    def _invalid(self, rule: Rule | InvalidRule, reason: str) -> RuleViolation:
        return self.violation(
            rule, INVALID_RULE_KIND, f"Rule '{rule.name}' is invalid and was skipped: {reason}"
        )

    def _missing(self, rule: Rule, placement: Placement, what: str, ref: str) -> RuleViolation:
        return self.violation(
            rule,
            MISSING_DEFINITION_KIND,
            f"Placement '{placement.id}' references unknown {what} '{ref}'",
            panel_id=placement.panel_id,
            component_id=placement.id,
        )

    def _evaluate_rule(self, rule: Rule) -> list[RuleViolation]:
        _check_rule_definition(rule)
        out: list[RuleViolation] = []
        for scope in self._scopes(rule, out):
            for constraint in rule.constraints:
                self._check(rule, constraint, scope, out)
        return out

    def _scopes(self, rule: Rule, out: list[RuleViolation]) -> list[_Scope]:
        """Resolve where *rule* applies; dangling references land in *out*."""
        if rule.type is RuleType.GLOBAL:
            for placement in self.placements:
                if placement.is_gap:
                    continue
                if placement.panel_id not in self.panels_by_id:
                    out.append(self._missing(rule, placement, "panel", placement.panel_id))
                elif self.catalog_entry(placement) is None:
                    out.append(self._missing(rule, placement, "component", placement.component_id))
            if not conditions_hold(rule.conditions, self.design_context()):
                return []
            return [_Scope(panels=list(self.panels), design_wide=True)]

        if rule.type is RuleType.PANEL:
            if rule.panel_id:
                panel = self.panels_by_id.get(rule.panel_id)
                if panel is None:
                    logger.debug("Rule '%s': panel '%s' not in design", rule.id, rule.panel_id)
                    return []
                candidates = [panel]
            else:
                candidates = list(self.panels)
            scopes: list[_Scope] = []
            for panel in candidates:
                context = self.panel_context(panel)
                if not conditions_hold(rule.conditions, context):
                    continue
                for placement in self.on_panel(panel.id):
                    if self.catalog_entry(placement) is None:
                        out.append(
                            self._missing(rule, placement, "component", placement.component_id)
                        )
                scopes.append(_Scope(panels=[panel], entity=context))
            return scopes

        target = rule.component_id if rule.type is RuleType.COMPONENT else rule.combinator_id
        if not target:
            msg = f"{rule.type.value} rule has no target id"
            raise RuleDefinitionError(msg)
        subjects: list[Placement] = []
        for placement in self.placements:
            if placement.component_id != target or placement.is_gap:
                continue
            if placement.panel_id not in self.panels_by_id:
                out.append(self._missing(rule, placement, "panel", placement.panel_id))
                continue
            if self.catalog_entry(placement) is None:
                out.append(self._missing(rule, placement, rule.type.value, target))
                continue
            if conditions_hold(rule.conditions, self.placement_context(placement)):
                subjects.append(placement)
        if rule.conditions and not subjects:
            return []
        panel_ids = {p.panel_id for p in subjects}
        panels = [p for p in self.panels if p.id in panel_ids]
        return [_Scope(panels=panels, subjects=subjects)]

    # -- constraint checks ----------------------------------------------------

    def _members(self, scope: _Scope, panel: Panel) -> list[Placement]:
        if scope.subjects is None:
            return self.on_panel(panel.id)
        return [p for p in scope.subjects if p.panel_id == panel.id]

    def _pairs(
        self, scope: _Scope, panel: Panel
    ) -> list[tuple[Placement, Rect, Placement, Rect]]:
        """Placement pairs on *panel* with at least one subject in the pair."""
        located = [
            (p, rect) for p in self.on_panel(panel.id) if (rect := self.footprint(p)) is not None
        ]
        subject_ids = None if scope.subjects is None else {p.id for p in scope.subjects}
        pairs = []
        for i, (first, first_rect) in enumerate(located):
            for second, second_rect in located[i + 1 :]:
                if subject_ids is not None and not (
                    first.id in subject_ids or second.id in subject_ids
                ):
                    continue
                pairs.append((first, first_rect, second, second_rect))
        return pairs

    def _check(
        self, rule: Rule, constraint: Constraint, scope: _Scope, out: list[RuleViolation]
    ) -> None:
        if isinstance(constraint, DimensionConstraint):
            self._check_dimension(rule, constraint, scope, out)
        elif isinstance(constraint, CountConstraint):
            self._check_count(rule, constraint, scope, out)
        elif isinstance(constraint, SpacingConstraint):
            for panel in scope.panels:
                for first, a, second, b in self._pairs(scope, panel):
                    if rects_overlap(a, b):
                        continue
                    distance = clearance(a, b)
                    if distance < constraint.spacing:
                        self._emit(
                            out,
                            rule,
                            constraint,
                            f"Components are too close ({distance:.1f}mm, "
                            f"minimum spacing: {constraint.spacing:g}mm)",
                            panel_id=panel.id,
                            component_ids=(first.id, second.id),
                        )
        elif isinstance(constraint, OverlapConstraint):
            for panel in scope.panels:
                for first, a, second, b in self._pairs(scope, panel):
                    if rects_overlap(a, b):
                        self._emit(
                            out,
                            rule,
                            constraint,
                            "Components overlap",
                            panel_id=panel.id,
                            component_ids=(first.id, second.id),
                        )
        elif isinstance(constraint, BoundsConstraint):
            for panel in scope.panels:
                outline = Rect(0.0, 0.0, panel.width, panel.height)
                for placement in self._members(scope, panel):
                    rect = self.footprint(placement)
                    if rect is not None and not is_within(rect, outline):
                        self._emit(
                            out,
                            rule,
                            constraint,
                            "Component is outside panel bounds",
                            panel_id=panel.id,
                            component_id=placement.id,
                        )
        elif isinstance(constraint, NoIntersectWithPanelBoundsConstraint):
            self._check_panel_intersections(rule, constraint, scope, out)
        elif isinstance(constraint, CoUsageConstraint):
            self._check_co_usage(rule, constraint, scope, out)
        elif isinstance(constraint, PanelSizeMappingConstraint):
            self._check_panel_size(rule, constraint, scope, out)
        elif isinstance(constraint, CombinatorPanelSizeMappingConstraint):
            self._check_combinator_panel_size(rule, constraint, scope, out)
        elif isinstance(constraint, MaxComponentHeightConstraint):
            self._check_max_height(rule, constraint, scope, out)
        # GapConstraint only feeds the height budgets

    def _check_dimension(
        self,
        rule: Rule,
        constraint: DimensionConstraint,
        scope: _Scope,
        out: list[RuleViolation],
    ) -> None:
        entities: list[tuple[dict[str, object], dict[str, object]]] = []
        if scope.subjects is not None:
            for placement in scope.subjects:
                entities.append(
                    (
                        self.placement_context(placement),
                        {"panel_id": placement.panel_id, "component_id": placement.id},
                    )
                )
        else:
            for panel in scope.panels:
                context = scope.entity if not scope.design_wide else self.panel_context(panel)
                entities.append((context, {"panel_id": panel.id}))

        for context, details in entities:
            raw = resolve_field(context, constraint.property)
            value = None if raw is MISSING else parse_number(raw)
            if value is None:
                logger.debug(
                    "Rule '%s': '%s' is not numeric on %s",
                    rule.id,
                    constraint.property,
                    context.get("id"),
                )
                continue
            too_small = constraint.min is not None and value < constraint.min
            too_large = constraint.max is not None and value > constraint.max
            if not (too_small or too_large):
                continue
            if too_small:
                default = f"{constraint.property} must be at least {constraint.min:g}mm (is {value:g})"
            else:
                default = f"{constraint.property} must be at most {constraint.max:g}mm (is {value:g})"
            self._emit(out, rule, constraint, default, **details)

    def _check_count(
        self, rule: Rule, constraint: CountConstraint, scope: _Scope, out: list[RuleViolation]
    ) -> None:
        members = [p for panel in scope.panels for p in self._members(scope, panel)]
        count = len(members)
        panel_id = scope.panels[0].id if len(scope.panels) == 1 and not scope.design_wide else None
        ids = tuple(p.id for p in members)
        if constraint.max is not None and count > constraint.max:
            self._emit(
                out,
                rule,
                constraint,
                f"Too many components ({count}, maximum: {constraint.max})",
                panel_id=panel_id,
                component_ids=ids,
            )
        if constraint.min is not None and count < constraint.min:
            self._emit(
                out,
                rule,
                constraint,
                f"Not enough components ({count}, minimum: {constraint.min})",
                panel_id=panel_id,
                component_ids=ids,
            )
        if constraint.value is not None and count != constraint.value:
            self._emit(
                out,
                rule,
                constraint,
                f"Expected exactly {constraint.value} component(s), found {count}",
                panel_id=panel_id,
                component_ids=ids,
            )

    def _check_panel_intersections(
        self,
        rule: Rule,
        constraint: NoIntersectWithPanelBoundsConstraint,
        scope: _Scope,
        out: list[RuleViolation],
    ) -> None:
        outlines = {
            pid: Rect(self.offsets[pid], 0.0, self.panels_by_id[pid].width, self.panels_by_id[pid].height)
            for pid in constraint.panel_ids
            if pid in self.panels_by_id
        }
        for panel in scope.panels:
            for placement in self._members(scope, panel):
                rect = self.footprint(placement)
                if rect is None:
                    continue
                placed = rect.translated(self.offsets[panel.id], 0.0)
                hit = next(
                    (
                        pid
                        for pid, outline in outlines.items()
                        if pid != panel.id and rects_overlap(placed, outline)
                    ),
                    None,
                )
                if hit is not None:
                    self._emit(
                        out,
                        rule,
                        constraint,
                        f"Component intersects with the bounds of panel '{hit}'",
                        panel_id=panel.id,
                        component_id=placement.id,
                    )

    def _present_ids(self, panel: Panel) -> set[str]:
        present: set[str] = set()
        for placement in self.on_panel(panel.id):
            present.add(placement.component_id)
            combinator = self.combinators.get(placement.component_id)
            if combinator is not None:
                present.update(combinator.component_ids)
        return present

    def _check_co_usage(
        self,
        rule: Rule,
        constraint: CoUsageConstraint,
        scope: _Scope,
        out: list[RuleViolation],
    ) -> None:
        target = constraint.target_component_id or rule.component_id or rule.combinator_id
        for panel in scope.panels:
            present = self._present_ids(panel)
            members = self._members(scope, panel)

            if target:
                required = constraint.required_component_ids
                if not required:
                    component = self.components.get(target)
                    required = component.required_components if component is not None else ()
                if target not in (rule.component_id, rule.combinator_id):
                    members = self.on_panel(panel.id)
                for placement in members:
                    if placement.component_id != target:
                        continue
                    for required_id in required:
                        if required_id in present:
                            continue
                        self._emit(
                            out,
                            rule,
                            constraint,
                            f"{self.label(target)} requires {self.label(required_id)} to be present",
                            panel_id=panel.id,
                            component_id=placement.id,
                            missing_component_id=required_id,
                            required_component_id=target,
                        )
            elif constraint.required_component_ids:
                required_ids = constraint.required_component_ids
                holders = tuple(
                    p.id for p in self.on_panel(panel.id) if p.component_id in required_ids
                )
                for required_id in required_ids:
                    if required_id in present:
                        continue
                    self._emit(
                        out,
                        rule,
                        constraint,
                        f"Panel '{panel.name}' requires {self.label(required_id)}",
                        panel_id=panel.id,
                        component_ids=holders,
                        missing_component_id=required_id,
                    )
            else:
                for placement in members:
                    component = self.components.get(placement.component_id)
                    if component is None:
                        continue
                    for required_id in component.required_components:
                        if required_id in present:
                            continue
                        self._emit(
                            out,
                            rule,
                            constraint,
                            f"{component.name} requires {self.label(required_id)} to be present",
                            panel_id=panel.id,
                            component_id=placement.id,
                            missing_component_id=required_id,
                            required_component_id=component.id,
                        )

    def _check_panel_size(
        self,
        rule: Rule,
        constraint: PanelSizeMappingConstraint,
        scope: _Scope,
        out: list[RuleViolation],
    ) -> None:
        wanted = set(constraint.component_types)
        for panel in scope.panels:
            size = (
                constraint.panel_size
                if constraint.panel_size is not None
                else panel_size_from_width(panel.width)
            )
            for placement in self._members(scope, panel):
                component = self.components.get(placement.component_id)
                if component is None or (wanted and component.type not in wanted):
                    continue
                component_size = component.spec_number("panelSize")
                if component_size is None or component_size == size:
                    continue
                self._emit(
                    out,
                    rule,
                    constraint,
                    f"{component.name} size ({component_size:g}cm) does not match "
                    f"required panel size ({size:g}cm)",
                    panel_id=panel.id,
                    component_id=placement.id,
                )

    def _check_combinator_panel_size(
        self,
        rule: Rule,
        constraint: CombinatorPanelSizeMappingConstraint,
        scope: _Scope,
        out: list[RuleViolation],
    ) -> None:
        wanted = set(constraint.combinator_types)
        for panel in scope.panels:
            size = (
                constraint.panel_size
                if constraint.panel_size is not None
                else panel_size_from_width(panel.width)
            )
            for placement in self._members(scope, panel):
                combinator = self.combinators.get(placement.component_id)
                if combinator is None or combinator.panel_size is None:
                    continue
                if wanted and combinator.name not in wanted and combinator.id not in wanted:
                    continue
                if combinator.panel_size == size:
                    continue
                self._emit(
                    out,
                    rule,
                    constraint,
                    f"{combinator.name} size ({combinator.panel_size:g}cm) does not match "
                    f"required panel size ({size:g}cm)",
                    panel_id=panel.id,
                    component_id=placement.id,
                )

    def _check_max_height(
        self,
        rule: Rule,
        constraint: MaxComponentHeightConstraint,
        scope: _Scope,
        out: list[RuleViolation],
    ) -> None:
        for panel in scope.panels:
            limit = _height_limit(constraint, panel, gap_sizes(self.rules, panel.id))
            if limit is None:
                continue
            total = calculate_total_component_height(
                panel.id,
                self.placements,
                self.component_list,
                self.combinator_list,
                spacing=self.component_spacing,
            )
            if total > limit:
                self._emit(
                    out,
                    rule,
                    constraint,
                    f"Total component height ({total:.1f}mm) exceeds maximum "
                    f"allowed height ({limit:.1f}mm)",
                    panel_id=panel.id,
                    component_ids=tuple(p.id for p in self.on_panel(panel.id)),
                )


def evaluate_rules(
    rules: Sequence[RuleEntry],
    panels: Sequence[Panel],
    placements: Sequence[Placement],
    component_library: Sequence[Component],
    combinator_library: Sequence[Combinator] = (),
    *,
    panel_spacing: float = 0.0,
    component_spacing: float = DEFAULT_COMPONENT_SPACING,
) -> list[RuleViolation]:
    """Evaluate every enabled rule against the design and return violations.

    Never raises for bad rule or design content; see the module docstring
    for scope semantics.  *panel_spacing* positions panels side by side for
    ``noIntersectWithPanelBounds``; *component_spacing* is the stacking gap
    used by ``maxComponentHeight``.
    """
    evaluation = _Evaluation(
        rules,
        panels,
        placements,
        component_library,
        combinator_library,
        panel_spacing=panel_spacing,
        component_spacing=component_spacing,
    )
    violations = evaluation.run()
    logger.debug("Evaluated %d rule(s): %d violation(s)", len(rules), len(violations))
    return violations

