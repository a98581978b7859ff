"""Rule book parsing: plain dicts / YAML documents into Rule objects.

The document shape is the designer's JSON (camelCase keys), either a bare
list of rules or a mapping with a ``rules`` list::

    version: 1
    rules:
      - id: max-breakers
        name: At most 12 breakers
        type: panel
        panelId: main
        conditions:
          - {field: panelWidth, operator: greaterThan, value: 500}
        constraints:
          - {type: count, max: 12, severity: warning}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import yaml

from paneldrc.rules.model import (
    BoundsConstraint,
    CombinatorPanelSizeMappingConstraint,
    ConditionOperator,
    Constraint,
    ConstraintKind,
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
    RuleCondition,
    RuleEntry,
    RuleType,
    Severity,
    SpacingConstraint,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from paneldrc.catalog.models import Combinator, Component, Panel

logger = logging.getLogger(__name__)

SUPPORTED_SCHEMA_VERSIONS: frozenset[int] = frozenset({1})

# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------


def _enum_values(enum_cls: type) -> list[str]:
    return sorted(member.value for member in enum_cls)  # type: ignore[attr-defined]


def _number(data: dict[str, object], key: str, context: str) -> float | None:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"{context}: '{key}' must be a number, got {value!r}"
        raise ValueError(msg)
    return float(value)


def _integer(data: dict[str, object], key: str, context: str) -> int | None:
    number = _number(data, key, context)
    if number is None:
        return None
    if not number.is_integer():
        msg = f"{context}: '{key}' must be a whole number, got {number}"
        raise ValueError(msg)
    return int(number)


def _string_list(data: dict[str, object], key: str, context: str) -> tuple[str, ...] | None:
    raw = data.get(key)
    if raw is None:
        return None
    if not isinstance(raw, list):
        msg = f"{context}: '{key}' must be a list"
        raise ValueError(msg)
    return tuple(str(item) for item in raw)


def _optional_id(data: dict[str, object], key: str) -> str | None:
    value = data.get(key)
    if value is None or value == "":
        return None
    return str(value)


# ---------------------------------------------------------------------------
# Constraint / condition parsing
# ---------------------------------------------------------------------------


def _parse_severity(data: dict[str, object], context: str) -> Severity | None:
    raw = data.get("severity")
    if raw is None:
        return None
    try:
        return Severity(str(raw))
    except ValueError:
        msg = (
            f"{context}: invalid severity '{raw}', "
            f"must be one of {_enum_values(Severity)}"
        )
        raise ValueError(msg) from None


def parse_constraint(data: dict[str, object], context: str = "constraint") -> Constraint:
    """Parse one constraint mapping, dispatching on its ``type`` tag.

    Raises ``ValueError`` for an unknown tag or a missing required field.
    """
    raw_type = data.get("type")
    try:
        kind = ConstraintKind(str(raw_type))
    except ValueError:
        msg = (
            f"{context}: unknown constraint type '{raw_type}', "
            f"must be one of {_enum_values(ConstraintKind)}"
        )
        raise ValueError(msg) from None

    message_raw = data.get("message")
    message = str(message_raw) if message_raw else None
    severity = _parse_severity(data, context)

    if kind is ConstraintKind.DIMENSION:
        prop = data.get("property")
        if not isinstance(prop, str) or not prop.strip():
            msg = f"{context}: dimension constraint requires 'property'"
            raise ValueError(msg)
        low = _number(data, "min", context)
        high = _number(data, "max", context)
        if low is None and high is None:
            msg = f"{context}: dimension constraint requires 'min' or 'max'"
            raise ValueError(msg)
        return DimensionConstraint(
            property=prop, min=low, max=high, message=message, severity=severity
        )

    if kind is ConstraintKind.COUNT:
        low_count = _integer(data, "min", context)
        high_count = _integer(data, "max", context)
        exact = _integer(data, "value", context)
        if low_count is None and high_count is None and exact is None:
            msg = f"{context}: count constraint requires 'min', 'max' or 'value'"
            raise ValueError(msg)
        return CountConstraint(
            min=low_count, max=high_count, value=exact, message=message, severity=severity
        )

    if kind is ConstraintKind.SPACING:
        spacing = _number(data, "spacing", context)
        if spacing is None:
            msg = f"{context}: spacing constraint requires 'spacing'"
            raise ValueError(msg)
        return SpacingConstraint(spacing=spacing, message=message, severity=severity)

    if kind is ConstraintKind.CO_USAGE:
        return CoUsageConstraint(
            required_component_ids=_string_list(data, "requiredComponentIds", context) or (),
            target_component_id=_optional_id(data, "targetComponentId"),
            message=message,
            severity=severity,
        )

    if kind is ConstraintKind.OVERLAP:
        return OverlapConstraint(message=message, severity=severity)

    if kind is ConstraintKind.BOUNDS:
        return BoundsConstraint(message=message, severity=severity)

    if kind is ConstraintKind.NO_INTERSECT_WITH_PANEL_BOUNDS:
        panel_ids = _string_list(data, "panelIds", context)
        if not panel_ids:
            msg = f"{context}: noIntersectWithPanelBounds constraint requires 'panelIds'"
            raise ValueError(msg)
        return NoIntersectWithPanelBoundsConstraint(
            panel_ids=panel_ids, message=message, severity=severity
        )

    if kind is ConstraintKind.PANEL_SIZE_MAPPING:
        types = _string_list(data, "componentTypes", context)
        if types is None:
            # single-type spelling used by older rule books
            single = _optional_id(data, "componentType")
            types = (single,) if single else ()
        return PanelSizeMappingConstraint(
            component_types=types,
            panel_size=_number(data, "panelSize", context),
            message=message,
            severity=severity,
        )

    if kind is ConstraintKind.COMBINATOR_PANEL_SIZE_MAPPING:
        return CombinatorPanelSizeMappingConstraint(
            combinator_types=_string_list(data, "combinatorTypes", context) or (),
            panel_size=_number(data, "panelSize", context),
            message=message,
            severity=severity,
        )

    if kind is ConstraintKind.GAP:
        raw_placement = data.get("placement")
        try:
            placement = GapPlacement(str(raw_placement))
        except ValueError:
            msg = f"{context}: gap constraint 'placement' must be 'top' or 'bottom'"
            raise ValueError(msg) from None
        size = _number(data, "size", context)
        if size is None:
            msg = f"{context}: gap constraint requires 'size'"
            raise ValueError(msg)
        return GapConstraint(placement=placement, size=size, message=message, severity=severity)

    automatic = bool(data.get("automatic", False))
    height = _number(data, "height", context)
    if not automatic and height is None:
        msg = f"{context}: maxComponentHeight constraint requires 'height' unless 'automatic'"
        raise ValueError(msg)
    return MaxComponentHeightConstraint(
        automatic=automatic, height=height, message=message, severity=severity
    )


def parse_condition(data: dict[str, object], context: str = "condition") -> RuleCondition:
    field_name = data.get("field")
    if not isinstance(field_name, str) or not field_name.strip():
        msg = f"{context}: missing required 'field'"
        raise ValueError(msg)
    raw_operator = data.get("operator")
    try:
        operator = ConditionOperator(str(raw_operator))
    except ValueError:
        msg = (
            f"{context}: invalid operator '{raw_operator}', "
            f"must be one of {_enum_values(ConditionOperator)}"
        )
        raise ValueError(msg) from None
    value = data.get("value")
    if isinstance(value, list):
        value = tuple(value)
    return RuleCondition(field=field_name, operator=operator, value=value)


# ---------------------------------------------------------------------------
# Rule parsing
# ---------------------------------------------------------------------------


def _parse_items(
    data: dict[str, object], key: str, context: str
) -> list[dict[str, object]]:
    raw = data.get(key, [])
    if raw is None:
        return []
    if not isinstance(raw, list):
        msg = f"{context}: '{key}' must be a list"
        raise ValueError(msg)
    items: list[dict[str, object]] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            msg = f"{context}: {key} entry at index {idx} must be a mapping"
            raise ValueError(msg)
        items.append(item)
    return items


def parse_rule(data: dict[str, object], context: str = "rule") -> Rule:
    """Parse one rule mapping.  Raises ``ValueError`` on any schema error."""
    rule_id = data.get("id")
    if rule_id is None or not str(rule_id).strip():
        msg = f"{context}: missing required 'id' field"
        raise ValueError(msg)
    rule_id = str(rule_id)
    name = str(data.get("name") or rule_id)
    context = f"Rule '{name}'"

    raw_type = data.get("type")
    try:
        rule_type = RuleType(str(raw_type))
    except ValueError:
        msg = f"{context}: invalid type '{raw_type}', must be one of {_enum_values(RuleType)}"
        raise ValueError(msg) from None

    conditions = tuple(
        parse_condition(item, f"{context} condition {idx}")
        for idx, item in enumerate(_parse_items(data, "conditions", context))
    )
    constraints = tuple(
        parse_constraint(item, f"{context} constraint {idx}")
        for idx, item in enumerate(_parse_items(data, "constraints", context))
    )

    return Rule(
        id=rule_id,
        name=name,
        type=rule_type,
        conditions=conditions,
        constraints=constraints,
        panel_id=_optional_id(data, "panelId"),
        component_id=_optional_id(data, "componentId"),
        combinator_id=_optional_id(data, "combinatorId"),
        dependencies=_string_list(data, "dependencies", context) or (),
        enabled=data.get("enabled", True) is not False,
    )


def parse_rule_entry(data: object, index: int) -> RuleEntry:
    """Lenient variant of :func:`parse_rule` used for evaluation.

    A broken entry becomes an :class:`InvalidRule` so that the evaluator can
    report it and carry on with the rest of the rule book.
    """
    if not isinstance(data, dict):
        return InvalidRule(
            id=f"rule-{index}",
            name=f"rule at index {index}",
            reason=f"rule at index {index} must be a mapping",
        )
    try:
        return parse_rule(data, f"rule at index {index}")
    except ValueError as exc:
        rule_id = str(data.get("id") or f"rule-{index}")
        logger.warning("Skipping malformed rule '%s': %s", rule_id, exc)
        return InvalidRule(
            id=rule_id,
            name=str(data.get("name") or rule_id),
            reason=str(exc),
            enabled=data.get("enabled", True) is not False,
        )


def parse_rules(items: object, *, strict: bool = False) -> list[RuleEntry]:
    """Parse a list of rule mappings.

    With *strict* every schema error raises ``ValueError`` (duplicate ids
    included); otherwise broken entries come back as ``InvalidRule``.
    """
    if not isinstance(items, list):
        msg = "rules must be a list"
        raise ValueError(msg)

    if not strict:
        return [parse_rule_entry(item, idx) for idx, item in enumerate(items)]

    seen_ids: set[str] = set()
    rules: list[RuleEntry] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            msg = f"rule at index {idx} must be a mapping"
            raise ValueError(msg)
        rule = parse_rule(item, f"rule at index {idx}")
        if rule.id in seen_ids:
            msg = f"Duplicate rule id '{rule.id}'"
            raise ValueError(msg)
        seen_ids.add(rule.id)
        rules.append(rule)
    return rules


def load_rules(rules_path: Path, *, strict: bool = False) -> list[RuleEntry]:
    """Read a rule book file (YAML or JSON).

    Raises ``ValueError`` when the document itself has the wrong shape, and
    for per-rule errors too when *strict* is set.
    """
    with rules_path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)

    if data is None:
        return []
    if isinstance(data, dict):
        version = data.get("version")
        if version is not None and version not in SUPPORTED_SCHEMA_VERSIONS:
            expected = sorted(SUPPORTED_SCHEMA_VERSIONS)
            msg = f"{rules_path.name}: unsupported version {version}, expected one of {expected}"
            raise ValueError(msg)
        data = data.get("rules", [])
    if not isinstance(data, list):
        msg = f"{rules_path.name}: 'rules' must be a list"
        raise ValueError(msg)
    return parse_rules(data, strict=strict)


# ---------------------------------------------------------------------------
# Reference validation (warnings, not errors)
# ---------------------------------------------------------------------------


def validate_rules(
    rules: Sequence[RuleEntry],
    panels: Sequence[Panel] = (),
    components: Sequence[Component] = (),
    combinators: Sequence[Combinator] = (),
) -> list[str]:
    """Cross-check a rule book against the catalog, returning warning messages.

    Reports duplicate ids, scope targets that resolve to nothing, dependency
    ids naming no rule, and combinators that list another combinator.
    """
    warnings: list[str] = []
    panel_ids = {p.id for p in panels}
    component_ids = {c.id for c in components}
    combinator_ids = {c.id for c in combinators}
    rule_ids = [r.id for r in rules]

    seen: set[str] = set()
    for rule_id in rule_ids:
        if rule_id in seen:
            warnings.append(f"Duplicate rule id '{rule_id}'")
        seen.add(rule_id)

    for rule in rules:
        if isinstance(rule, InvalidRule):
            warnings.append(f"Rule '{rule.id}' is invalid: {rule.reason}")
            continue
        if rule.type is RuleType.PANEL and rule.panel_id and panels and rule.panel_id not in panel_ids:
            warnings.append(f"Rule '{rule.id}' targets unknown panel '{rule.panel_id}'")
        if (
            rule.type is RuleType.COMPONENT
            and rule.component_id
            and rule.component_id not in component_ids
        ):
            warnings.append(f"Rule '{rule.id}' targets unknown component '{rule.component_id}'")
        if (
            rule.type is RuleType.COMBINATOR
            and rule.combinator_id
            and rule.combinator_id not in combinator_ids
        ):
            warnings.append(f"Rule '{rule.id}' targets unknown combinator '{rule.combinator_id}'")
        for dep in rule.dependencies:
            if dep not in seen:
                warnings.append(f"Rule '{rule.id}' depends on unknown rule '{dep}'")

    for combinator in combinators:
        nested = [cid for cid in combinator.component_ids if cid in combinator_ids]
        for cid in nested:
            warnings.append(
                f"Combinator '{combinator.id}' lists combinator '{cid}'; nesting is not supported"
            )

    return warnings
