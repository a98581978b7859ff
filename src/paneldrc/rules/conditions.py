"""Rule condition evaluation against plain-mapping entity contexts."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import TYPE_CHECKING

from paneldrc.rules.model import ConditionOperator, RuleDefinitionError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from paneldrc.rules.model import RuleCondition


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def resolve_field(entity: Mapping[str, object], path: str) -> object:
    """Walk a dot-path (``specs.current``) into nested mappings.

    Returns :data:`MISSING` when any segment is absent or the value at a
    segment is not a mapping.
    """
    current: object = entity
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return MISSING
        current = current[part]
    return current


def as_number(value: object) -> float | None:
    """Coerce numbers and fully numeric strings to float; anything else is None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None


def _equals(actual: object, expected: object) -> bool:
    left = as_number(actual)
    right = as_number(expected)
    if left is not None and right is not None:
        return left == right
    return actual == expected


def _contains(actual: object, expected: object) -> bool:
    if isinstance(actual, str):
        return str(expected) in actual
    if isinstance(actual, Mapping):
        return str(expected) in actual
    if isinstance(actual, (list, tuple, set, frozenset)):
        return any(_equals(item, expected) for item in actual)
    return False


def _member_of(actual: object, expected: object) -> bool:
    if isinstance(expected, (list, tuple, set, frozenset)):
        return any(_equals(actual, item) for item in expected)
    return _equals(actual, expected)


def check_condition_definition(condition: RuleCondition) -> None:
    """Raise ``RuleDefinitionError`` if *condition* cannot be evaluated."""
    if not isinstance(condition.operator, ConditionOperator):
        msg = f"Condition on '{condition.field}': unknown operator {condition.operator!r}"
        raise RuleDefinitionError(msg)


def evaluate_condition(condition: RuleCondition, entity: Mapping[str, object]) -> bool:
    """Return True if *condition* holds for *entity*.

    A field that does not resolve makes every operator false, ``notEquals``
    included.  Ordering operators need both sides to be numeric.
    """
    check_condition_definition(condition)

    actual = resolve_field(entity, condition.field)
    if actual is MISSING:
        return False

    op = condition.operator
    if op is ConditionOperator.EQUALS:
        return _equals(actual, condition.value)
    if op is ConditionOperator.NOT_EQUALS:
        return not _equals(actual, condition.value)
    if op is ConditionOperator.CONTAINS:
        return _contains(actual, condition.value)
    if op is ConditionOperator.IN:
        return _member_of(actual, condition.value)

    left = as_number(actual)
    right = as_number(condition.value)
    if left is None or right is None:
        return False
    if op is ConditionOperator.GREATER_THAN:
        return left > right
    return left < right


def conditions_hold(conditions: Iterable[RuleCondition], entity: Mapping[str, object]) -> bool:
    """Conjunction of *conditions*; an empty list always holds."""
    return all(evaluate_condition(c, entity) for c in conditions)
