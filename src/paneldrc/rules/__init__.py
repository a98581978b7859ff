"""Rules domain: rule model, parsing, evaluation and the node-graph view."""

from paneldrc.rules.evaluator import (
    HeightBudget,
    calculate_available_height,
    calculate_total_component_height,
    evaluate_rules,
    validate_component_height,
)
from paneldrc.rules.graph import (
    GraphEdge,
    GraphNode,
    NodeGraph,
    graph_from_dict,
    graph_to_dict,
    node_graph_to_rules,
    rules_to_node_graph,
)
from paneldrc.rules.loader import load_rules, parse_rule, parse_rules, validate_rules
from paneldrc.rules.model import (
    ConstraintKind,
    InvalidRule,
    Rule,
    RuleCondition,
    RuleDefinitionError,
    RuleType,
    RuleViolation,
    Severity,
)

__all__ = [
    "ConstraintKind",
    "GraphEdge",
    "GraphNode",
    "HeightBudget",
    "InvalidRule",
    "NodeGraph",
    "Rule",
    "RuleCondition",
    "RuleDefinitionError",
    "RuleType",
    "RuleViolation",
    "Severity",
    "calculate_available_height",
    "calculate_total_component_height",
    "evaluate_rules",
    "graph_from_dict",
    "graph_to_dict",
    "load_rules",
    "node_graph_to_rules",
    "parse_rule",
    "parse_rules",
    "rules_to_node_graph",
    "validate_component_height",
    "validate_rules",
]
