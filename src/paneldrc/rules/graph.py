"""Rule list <-> node graph conversion for the visual rule editor.

The graph has three strictly layered tiers, edges pointing parent to child:

    scope node (panel-{panelId}, panel-global)
      -> constraint node (constraint-{ruleId}-{i})
        -> condition node (condition-{ruleId}-{i}-{k})

Conditions belong to the rule, so every constraint node of a rule fans out
to its own copy of the rule's full condition list.

Going back from the graph yields one rule per (scope, constraint node).
A rule with several constraints therefore comes back as several
single-constraint rules named after their scope.  Downstream editors rely
on this shape, so it is kept as is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from paneldrc.rules.loader import parse_condition, parse_constraint
from paneldrc.rules.model import GLOBAL_SCOPE_ID, InvalidRule, Rule, RuleType
from paneldrc.rules.serialization import condition_to_dict, constraint_to_dict

if TYPE_CHECKING:
    from collections.abc import Sequence

    from paneldrc.catalog.models import Panel
    from paneldrc.rules.model import Constraint, RuleCondition, RuleEntry

logger = logging.getLogger(__name__)

# Layout (pixels); only the id scheme is a stable contract.
SCOPE_ROW_Y = 0.0
CONSTRAINT_ROW_Y = 200.0
CONDITION_ROW_Y = 400.0
CONSTRAINT_NODE_WIDTH = 280.0
CONSTRAINT_SPACING = CONSTRAINT_NODE_WIDTH + 50.0
CONDITION_SPACING = 180.0
MIN_LANE_WIDTH = 400.0

GLOBAL_SCOPE_LABEL = "Global Rules"
NODE_TYPE = "ruleNode"


@dataclass(frozen=True)
class GraphNode:
    """One node of the rule graph.

    Scope nodes carry ``panel_id``; constraint nodes carry ``constraint``
    plus the scope of the rule they came from; condition nodes carry
    ``condition``.
    """

    id: str
    label: str
    x: float = 0.0
    y: float = 0.0
    panel_id: str | None = None
    constraint: Constraint | None = None
    condition: RuleCondition | None = None
    rule_type: RuleType | None = None
    component_id: str | None = None
    combinator_id: str | None = None


@dataclass(frozen=True)
class GraphEdge:
    id: str
    source: str
    target: str


@dataclass(frozen=True)
class NodeGraph:
    nodes: tuple[GraphNode, ...] = ()
    edges: tuple[GraphEdge, ...] = ()


def _edge(source: str, target: str) -> GraphEdge:
    return GraphEdge(id=f"edge-{source}-{target}", source=source, target=target)


def _lane_width(constraint_count: int) -> float:
    if constraint_count <= 1:
        required = CONSTRAINT_SPACING
    else:
        required = (constraint_count - 1) * CONSTRAINT_SPACING + CONSTRAINT_NODE_WIDTH
    return max(required, MIN_LANE_WIDTH)


# ---------------------------------------------------------------------------
# Rules -> graph
# ---------------------------------------------------------------------------


def rules_to_node_graph(rules: Sequence[RuleEntry], panels: Sequence[Panel]) -> NodeGraph:
    """Build the layered node graph for *rules*.

    Panel rules with a ``panelId`` get a lane per panel, in first-seen
    order; every other rule goes to the single global lane, placed last.
    A lane is created for a referenced panel even when *panels* does not
    list it (its id is used as label).
    """
    lanes: dict[str, list[Rule]] = {}
    global_rules: list[Rule] = []
    for rule in rules:
        if isinstance(rule, InvalidRule):
            logger.debug("Not drawing invalid rule '%s'", rule.id)
            continue
        if rule.type is RuleType.PANEL and rule.panel_id:
            lanes.setdefault(rule.panel_id, []).append(rule)
        else:
            global_rules.append(rule)
    if global_rules:
        lanes[GLOBAL_SCOPE_ID] = global_rules

    names = {p.id: p.name for p in panels}
    nodes: list[GraphNode] = []
    constraint_nodes: list[GraphNode] = []
    condition_nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []

    lane_x = 0.0
    for panel_id, lane_rules in lanes.items():
        scope_id = f"panel-{panel_id}"
        if panel_id == GLOBAL_SCOPE_ID:
            label = GLOBAL_SCOPE_LABEL
        else:
            label = names.get(panel_id, panel_id)
        nodes.append(
            GraphNode(id=scope_id, label=label, x=lane_x, y=SCOPE_ROW_Y, panel_id=panel_id)
        )

        count = sum(len(r.constraints) for r in lane_rules)
        x = lane_x - (count - 1) * CONSTRAINT_SPACING / 2 if count > 1 else lane_x
        for rule in lane_rules:
            for index, constraint in enumerate(rule.constraints):
                node_id = f"constraint-{rule.id}-{index}"
                constraint_nodes.append(
                    GraphNode(
                        id=node_id,
                        label=f"Constraint {index + 1}",
                        x=x,
                        y=CONSTRAINT_ROW_Y,
                        constraint=constraint,
                        rule_type=rule.type,
                        component_id=rule.component_id,
                        combinator_id=rule.combinator_id,
                    )
                )
                edges.append(_edge(scope_id, node_id))

                total = len(rule.conditions)
                for k, condition in enumerate(rule.conditions):
                    condition_id = f"condition-{rule.id}-{index}-{k}"
                    condition_nodes.append(
                        GraphNode(
                            id=condition_id,
                            label="Condition" if total == 1 else f"Condition {k + 1}",
                            x=x + (k - (total - 1) / 2) * CONDITION_SPACING,
                            y=CONDITION_ROW_Y,
                            condition=condition,
                        )
                    )
                    edges.append(_edge(node_id, condition_id))
                x += CONSTRAINT_SPACING
        lane_x += _lane_width(count)

    return NodeGraph(
        nodes=tuple(nodes + constraint_nodes + condition_nodes), edges=tuple(edges)
    )


# ---------------------------------------------------------------------------
# Graph -> rules
# ---------------------------------------------------------------------------


def node_graph_to_rules(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    panels: Sequence[Panel] = (),
) -> list[Rule]:
    """Rebuild a rule list from the graph.

    Each constraint node reachable from a scope node becomes its own rule
    (``rule-{panelId}-{constraintNodeId}``) holding that one constraint and
    the conditions hanging off it.  Orphan nodes and dangling edges are
    ignored.  The global scope is recognised by its ``global`` panel id.
    """
    by_id = {n.id: n for n in nodes}
    names = {p.id: p.name for p in panels}
    children: dict[str, list[GraphNode]] = {}
    for edge in edges:
        target = by_id.get(edge.target)
        if target is not None and edge.source in by_id:
            children.setdefault(edge.source, []).append(target)

    scopes = [n for n in nodes if n.panel_id]
    # the global lane is read after every panel lane
    ordered = [n for n in scopes if n.panel_id != GLOBAL_SCOPE_ID] + [
        n for n in scopes if n.panel_id == GLOBAL_SCOPE_ID
    ]

    rules: dict[str, Rule] = {}
    for scope in ordered:
        panel_id = scope.panel_id or ""
        is_global = panel_id == GLOBAL_SCOPE_ID
        for node in children.get(scope.id, []):
            if node.constraint is None:
                continue
            conditions = tuple(
                child.condition
                for child in children.get(node.id, [])
                if child.condition is not None
            )
            if is_global:
                rule_id = f"rule-global-{node.id}"
                rule = Rule(
                    id=rule_id,
                    name="Global Rule",
                    type=node.rule_type or RuleType.GLOBAL,
                    conditions=conditions,
                    constraints=(node.constraint,),
                    component_id=node.component_id,
                    combinator_id=node.combinator_id,
                )
            else:
                rule_id = f"rule-{panel_id}-{node.id}"
                label = scope.label or names.get(panel_id) or panel_id
                rule = Rule(
                    id=rule_id,
                    name=f"Rule for {label}",
                    type=RuleType.PANEL,
                    conditions=conditions,
                    constraints=(node.constraint,),
                    panel_id=panel_id,
                )
            if rule_id in rules:
                existing = rules[rule_id]
                rule = Rule(
                    id=existing.id,
                    name=existing.name,
                    type=existing.type,
                    conditions=existing.conditions + rule.conditions,
                    constraints=existing.constraints + rule.constraints,
                    panel_id=existing.panel_id,
                    component_id=existing.component_id,
                    combinator_id=existing.combinator_id,
                )
            rules[rule_id] = rule
    return list(rules.values())


# ---------------------------------------------------------------------------
# Dict conversion (editor JSON)
# ---------------------------------------------------------------------------


def node_to_dict(node: GraphNode) -> dict[str, object]:
    data: dict[str, object] = {"label": node.label}
    if node.panel_id is not None:
        data["panelId"] = node.panel_id
    if node.constraint is not None:
        data["constraint"] = constraint_to_dict(node.constraint)
    if node.condition is not None:
        data["condition"] = condition_to_dict(node.condition)
    if node.rule_type is not None:
        data["ruleType"] = node.rule_type.value
    if node.component_id is not None:
        data["componentId"] = node.component_id
    if node.combinator_id is not None:
        data["combinatorId"] = node.combinator_id
    return {
        "id": node.id,
        "type": NODE_TYPE,
        "position": {"x": node.x, "y": node.y},
        "data": data,
    }


def graph_to_dict(graph: NodeGraph) -> dict[str, object]:
    return {
        "nodes": [node_to_dict(n) for n in graph.nodes],
        "edges": [{"id": e.id, "source": e.source, "target": e.target} for e in graph.edges],
    }


def node_from_dict(item: dict[str, object], context: str = "node") -> GraphNode:
    node_id = item.get("id")
    if not isinstance(node_id, str) or not node_id:
        msg = f"{context}: missing required 'id'"
        raise ValueError(msg)
    context = f"Node '{node_id}'"
    data = item.get("data") or {}
    if not isinstance(data, dict):
        msg = f"{context}: 'data' must be a mapping"
        raise ValueError(msg)
    position = item.get("position") or {}
    if not isinstance(position, dict):
        msg = f"{context}: 'position' must be a mapping"
        raise ValueError(msg)

    constraint_raw = data.get("constraint")
    condition_raw = data.get("condition")
    rule_type_raw = data.get("ruleType")
    try:
        rule_type = RuleType(rule_type_raw) if rule_type_raw is not None else None
    except ValueError:
        msg = f"{context}: invalid ruleType '{rule_type_raw}'"
        raise ValueError(msg) from None

    panel_id = data.get("panelId")
    component_id = data.get("componentId")
    combinator_id = data.get("combinatorId")
    return GraphNode(
        id=node_id,
        label=str(data.get("label", "")),
        x=float(position.get("x", 0.0)),  # type: ignore[arg-type]
        y=float(position.get("y", 0.0)),  # type: ignore[arg-type]
        panel_id=str(panel_id) if panel_id is not None else None,
        constraint=parse_constraint(constraint_raw, f"{context} constraint")
        if isinstance(constraint_raw, dict)
        else None,
        condition=parse_condition(condition_raw, f"{context} condition")
        if isinstance(condition_raw, dict)
        else None,
        rule_type=rule_type,
        component_id=str(component_id) if component_id is not None else None,
        combinator_id=str(combinator_id) if combinator_id is not None else None,
    )


def graph_from_dict(data: object) -> NodeGraph:
    """Parse editor JSON (``{"nodes": [...], "edges": [...]}``).

    Raises ``ValueError`` on malformed nodes; edges missing an endpoint are
    dropped.
    """
    if not isinstance(data, dict):
        msg = "node graph must be a mapping with 'nodes' and 'edges'"
        raise ValueError(msg)
    nodes_raw = data.get("nodes") or []
    edges_raw = data.get("edges") or []
    if not isinstance(nodes_raw, list) or not isinstance(edges_raw, list):
        msg = "'nodes' and 'edges' must be lists"
        raise ValueError(msg)

    nodes: list[GraphNode] = []
    for idx, item in enumerate(nodes_raw):
        if not isinstance(item, dict):
            msg = f"node at index {idx} must be a mapping"
            raise ValueError(msg)
        nodes.append(node_from_dict(item, f"node at index {idx}"))

    edges: list[GraphEdge] = []
    for item in edges_raw:
        if not isinstance(item, dict) or not item.get("source") or not item.get("target"):
            logger.debug("Dropping incomplete edge %r", item)
            continue
        source = str(item["source"])
        target = str(item["target"])
        edges.append(
            GraphEdge(id=str(item.get("id") or f"edge-{source}-{target}"), source=source, target=target)
        )
    return NodeGraph(nodes=tuple(nodes), edges=tuple(edges))
