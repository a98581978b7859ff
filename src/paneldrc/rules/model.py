"""Rule book data model: rules, conditions, constraint variants, violations."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class RuleType(enum.Enum):
    """Scope discriminator of a rule."""

    GLOBAL = "global"
    PANEL = "panel"
    COMPONENT = "component"
    COMBINATOR = "combinator"


class ConditionOperator(enum.Enum):
    EQUALS = "equals"
    NOT_EQUALS = "notEquals"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    CONTAINS = "contains"
    IN = "in"


class Severity(enum.Enum):
    ERROR = "error"
    WARNING = "warning"


class ConstraintKind(enum.Enum):
    """Closed set of constraint tags, one per constraint class below."""

    DIMENSION = "dimension"
    COUNT = "count"
    SPACING = "spacing"
    CO_USAGE = "co-usage"
    OVERLAP = "overlap"
    BOUNDS = "bounds"
    NO_INTERSECT_WITH_PANEL_BOUNDS = "noIntersectWithPanelBounds"
    PANEL_SIZE_MAPPING = "panelSizeMapping"
    COMBINATOR_PANEL_SIZE_MAPPING = "combinatorPanelSizeMapping"
    GAP = "gap"
    MAX_COMPONENT_HEIGHT = "maxComponentHeight"


class GapPlacement(enum.Enum):
    TOP = "top"
    BOTTOM = "bottom"


# Sentinel panel id of the synthetic scope that holds non-panel rules.
GLOBAL_SCOPE_ID = "global"

# ---------------------------------------------------------------------------
# Constraint variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DimensionConstraint:
    """A named numeric property must lie within [min, max]."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.DIMENSION

    property: str
    min: float | None = None
    max: float | None = None
    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class CountConstraint:
    """Number of entities in scope must lie within [min, max] / equal value."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.COUNT

    min: int | None = None
    max: int | None = None
    value: int | None = None
    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class SpacingConstraint:
    """Placements on the same panel must keep at least *spacing* mm apart."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.SPACING

    spacing: float
    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class CoUsageConstraint:
    """Placements of a target must share their panel with every required id.

    Without ``required_component_ids`` the target's catalog
    ``requiredComponents`` are used; without a target, the panel itself
    must hold every required id.
    """

    kind: ClassVar[ConstraintKind] = ConstraintKind.CO_USAGE

    required_component_ids: tuple[str, ...] = ()
    target_component_id: str | None = None
    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class OverlapConstraint:
    kind: ClassVar[ConstraintKind] = ConstraintKind.OVERLAP

    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class BoundsConstraint:
    kind: ClassVar[ConstraintKind] = ConstraintKind.BOUNDS

    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class NoIntersectWithPanelBoundsConstraint:
    """Placements must stay clear of the listed panels other than their own."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.NO_INTERSECT_WITH_PANEL_BOUNDS

    panel_ids: tuple[str, ...]
    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class PanelSizeMappingConstraint:
    """``specs.panelSize`` of the listed component types must match the panel."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.PANEL_SIZE_MAPPING

    component_types: tuple[str, ...] = ()
    panel_size: float | None = None
    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class CombinatorPanelSizeMappingConstraint:
    """Combinator ``panelSize`` must match the panel; filter by combinator name."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.COMBINATOR_PANEL_SIZE_MAPPING

    combinator_types: tuple[str, ...] = ()
    panel_size: float | None = None
    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class GapConstraint:
    """Reserved band at the top or bottom of a panel (feeds height budgets)."""

    kind: ClassVar[ConstraintKind] = ConstraintKind.GAP

    placement: GapPlacement
    size: float
    message: str | None = None
    severity: Severity | None = None


@dataclass(frozen=True)
class MaxComponentHeightConstraint:
    """Stacked height of a panel's placements must fit a budget.

    With ``automatic`` the budget is the panel height minus the top and
    bottom gap bands; otherwise ``height`` is the budget.
    """

    kind: ClassVar[ConstraintKind] = ConstraintKind.MAX_COMPONENT_HEIGHT

    automatic: bool = False
    height: float | None = None
    message: str | None = None
    severity: Severity | None = None


Constraint = (
    DimensionConstraint
    | CountConstraint
    | SpacingConstraint
    | CoUsageConstraint
    | OverlapConstraint
    | BoundsConstraint
    | NoIntersectWithPanelBoundsConstraint
    | PanelSizeMappingConstraint
    | CombinatorPanelSizeMappingConstraint
    | GapConstraint
    | MaxComponentHeightConstraint
)

CONSTRAINT_CLASSES: dict[ConstraintKind, type] = {
    ConstraintKind.DIMENSION: DimensionConstraint,
    ConstraintKind.COUNT: CountConstraint,
    ConstraintKind.SPACING: SpacingConstraint,
    ConstraintKind.CO_USAGE: CoUsageConstraint,
    ConstraintKind.OVERLAP: OverlapConstraint,
    ConstraintKind.BOUNDS: BoundsConstraint,
    ConstraintKind.NO_INTERSECT_WITH_PANEL_BOUNDS: NoIntersectWithPanelBoundsConstraint,
    ConstraintKind.PANEL_SIZE_MAPPING: PanelSizeMappingConstraint,
    ConstraintKind.COMBINATOR_PANEL_SIZE_MAPPING: CombinatorPanelSizeMappingConstraint,
    ConstraintKind.GAP: GapConstraint,
    ConstraintKind.MAX_COMPONENT_HEIGHT: MaxComponentHeightConstraint,
}

# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleCondition:
    """Guard on the evaluated entity; ``field`` is a dot-path."""

    field: str
    operator: ConditionOperator
    value: object


@dataclass(frozen=True)
class Rule:
    """A scoped, conditionally applicable bundle of constraints.

    All ``conditions`` must hold (AND) for an entity before the
    ``constraints`` are checked; each failing constraint is its own
    violation.  ``dependencies`` is carried for compatibility with stored
    rule books and is never consulted during evaluation.
    """

    id: str
    name: str
    type: RuleType
    conditions: tuple[RuleCondition, ...] = ()
    constraints: tuple[Constraint, ...] = ()
    panel_id: str | None = None
    component_id: str | None = None
    combinator_id: str | None = None
    dependencies: tuple[str, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class InvalidRule:
    """A rule book entry that could not be parsed.

    Evaluation reports it as a single diagnostic violation instead of
    failing the whole rule book.
    """

    id: str
    name: str
    reason: str
    enabled: bool = True


RuleEntry = Rule | InvalidRule

# ---------------------------------------------------------------------------
# Violations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RuleViolation:
    """One failed check, with enough context to locate and fix it.

    ``kind`` is the constraint tag, ``invalid-rule`` for malformed rules or
    ``missing-definition`` for dangling catalog references.
    ``required_component_id`` names the placement's component that needs
    ``missing_component_id`` (co-usage only).
    """

    id: str
    rule_id: str
    rule_name: str
    message: str
    severity: Severity
    timestamp: int
    kind: str
    panel_id: str | None = None
    component_id: str | None = None
    component_ids: tuple[str, ...] = ()
    missing_component_id: str | None = None
    required_component_id: str | None = None


class RuleDefinitionError(ValueError):
    """Raised when a rule or constraint is missing data its kind requires."""
