"""Rules, constraints and violations as plain camelCase dicts."""

from __future__ import annotations

from dataclasses import fields
from typing import TYPE_CHECKING

from paneldrc.rules.model import (
    CombinatorPanelSizeMappingConstraint,
    CoUsageConstraint,
    GapConstraint,
    InvalidRule,
    NoIntersectWithPanelBoundsConstraint,
    PanelSizeMappingConstraint,
)

if TYPE_CHECKING:
    from paneldrc.rules.model import (
        Constraint,
        RuleCondition,
        RuleEntry,
        RuleViolation,
    )

# snake_case attribute -> document key, where they differ
_CONSTRAINT_KEYS: dict[str, str] = {
    "required_component_ids": "requiredComponentIds",
    "target_component_id": "targetComponentId",
    "panel_ids": "panelIds",
    "component_types": "componentTypes",
    "combinator_types": "combinatorTypes",
    "panel_size": "panelSize",
}

_TUPLE_FIELDS = (
    CoUsageConstraint,
    NoIntersectWithPanelBoundsConstraint,
    PanelSizeMappingConstraint,
    CombinatorPanelSizeMappingConstraint,
)


def constraint_to_dict(constraint: Constraint) -> dict[str, object]:
    data: dict[str, object] = {"type": constraint.kind.value}
    for f in fields(constraint):
        value = getattr(constraint, f.name)
        if value is None:
            continue
        if isinstance(value, tuple):
            if not value and isinstance(constraint, _TUPLE_FIELDS):
                continue
            value = list(value)
        elif f.name == "severity":
            value = value.value
        elif isinstance(constraint, GapConstraint) and f.name == "placement":
            value = value.value
        data[_CONSTRAINT_KEYS.get(f.name, f.name)] = value
    return data


def condition_to_dict(condition: RuleCondition) -> dict[str, object]:
    value = condition.value
    if isinstance(value, tuple):
        value = list(value)
    return {"field": condition.field, "operator": condition.operator.value, "value": value}


def rule_to_dict(rule: RuleEntry) -> dict[str, object]:
    """Dict form accepted back by ``parse_rule``.

    An ``InvalidRule`` keeps only its identity and the parse error.
    """
    if isinstance(rule, InvalidRule):
        return {"id": rule.id, "name": rule.name, "enabled": rule.enabled, "error": rule.reason}
    data: dict[str, object] = {"id": rule.id, "name": rule.name, "type": rule.type.value}
    if rule.panel_id is not None:
        data["panelId"] = rule.panel_id
    if rule.component_id is not None:
        data["componentId"] = rule.component_id
    if rule.combinator_id is not None:
        data["combinatorId"] = rule.combinator_id
    data["conditions"] = [condition_to_dict(c) for c in rule.conditions]
    data["constraints"] = [constraint_to_dict(c) for c in rule.constraints]
    if rule.dependencies:
        data["dependencies"] = list(rule.dependencies)
    data["enabled"] = rule.enabled
    return data


def violation_to_dict(violation: RuleViolation) -> dict[str, object]:
    data: dict[str, object] = {
        "id": violation.id,
        "ruleId": violation.rule_id,
        "ruleName": violation.rule_name,
        "kind": violation.kind,
        "message": violation.message,
        "severity": violation.severity.value,
        "timestamp": violation.timestamp,
    }
    if violation.panel_id is not None:
        data["panelId"] = violation.panel_id
    if violation.component_id is not None:
        data["componentId"] = violation.component_id
    if violation.component_ids:
        data["componentIds"] = list(violation.component_ids)
    if violation.missing_component_id is not None:
        data["missingComponentId"] = violation.missing_component_id
    if violation.required_component_id is not None:
        data["requiredComponentId"] = violation.required_component_id
    return data
