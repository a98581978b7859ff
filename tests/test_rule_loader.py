"""Tests for paneldrc.rules.loader: rule book parsing and reference checks."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from paneldrc.catalog.models import Combinator
from paneldrc.rules.loader import (
    load_rules,
    parse_constraint,
    parse_rule,
    parse_rule_entry,
    parse_rules,
    validate_rules,
)
from paneldrc.rules.model import (
    ConditionOperator,
    CountConstraint,
    CoUsageConstraint,
    DimensionConstraint,
    GapConstraint,
    GapPlacement,
    InvalidRule,
    MaxComponentHeightConstraint,
    NoIntersectWithPanelBoundsConstraint,
    PanelSizeMappingConstraint,
    Rule,
    RuleType,
    Severity,
)

if TYPE_CHECKING:
    from pathlib import Path

    from paneldrc.catalog.models import Component, Panel


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------


class TestParseConstraint:
    def test_dimension(self) -> None:
        constraint = parse_constraint({"type": "dimension", "property": "width", "min": 10})
        assert constraint == DimensionConstraint(property="width", min=10.0)

    def test_count_with_severity_and_message(self) -> None:
        constraint = parse_constraint(
            {"type": "count", "max": 12, "severity": "warning", "message": "Too crowded"}
        )
        assert constraint == CountConstraint(
            max=12, message="Too crowded", severity=Severity.WARNING
        )

    def test_co_usage(self) -> None:
        constraint = parse_constraint(
            {"type": "co-usage", "requiredComponentIds": ["sw"], "targetComponentId": "brk"}
        )
        assert constraint == CoUsageConstraint(
            required_component_ids=("sw",), target_component_id="brk"
        )

    def test_no_intersect(self) -> None:
        constraint = parse_constraint(
            {"type": "noIntersectWithPanelBounds", "panelIds": ["main", "aux"]}
        )
        assert constraint == NoIntersectWithPanelBoundsConstraint(panel_ids=("main", "aux"))

    def test_panel_size_legacy_single_type(self) -> None:
        constraint = parse_constraint({"type": "panelSizeMapping", "componentType": "breaker"})
        assert constraint == PanelSizeMappingConstraint(component_types=("breaker",))

    def test_gap_and_height(self) -> None:
        assert parse_constraint({"type": "gap", "placement": "top", "size": 100}) == GapConstraint(
            placement=GapPlacement.TOP, size=100.0
        )
        assert parse_constraint(
            {"type": "maxComponentHeight", "automatic": True}
        ) == MaxComponentHeightConstraint(automatic=True)

    @pytest.mark.parametrize(
        ("data", "match"),
        [
            ({"type": "teleport"}, "unknown constraint type 'teleport'"),
            ({"type": "dimension", "min": 1}, "requires 'property'"),
            ({"type": "dimension", "property": "width"}, "requires 'min' or 'max'"),
            ({"type": "count"}, "requires 'min', 'max' or 'value'"),
            ({"type": "count", "max": 1.5}, "whole number"),
            ({"type": "spacing"}, "requires 'spacing'"),
            ({"type": "spacing", "spacing": "wide"}, "must be a number"),
            ({"type": "noIntersectWithPanelBounds", "panelIds": []}, "requires 'panelIds'"),
            ({"type": "gap", "placement": "left", "size": 1}, "'top' or 'bottom'"),
            ({"type": "gap", "placement": "top"}, "requires 'size'"),
            ({"type": "maxComponentHeight"}, "requires 'height'"),
            ({"type": "overlap", "severity": "fatal"}, "invalid severity 'fatal'"),
        ],
    )
    def test_invalid(self, data: dict[str, object], match: str) -> None:
        with pytest.raises(ValueError, match=match):
            parse_constraint(data)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


class TestParseRule:
    def test_full_rule(self) -> None:
        rule = parse_rule(
            {
                "id": "max-breakers",
                "name": "At most 12 breakers",
                "type": "panel",
                "panelId": "main",
                "conditions": [{"field": "panelWidth", "operator": "greaterThan", "value": 500}],
                "constraints": [{"type": "count", "max": 12}],
                "dependencies": ["other"],
            }
        )
        assert rule.type is RuleType.PANEL
        assert rule.panel_id == "main"
        assert rule.conditions[0].operator is ConditionOperator.GREATER_THAN
        assert rule.constraints == (CountConstraint(max=12),)
        assert rule.dependencies == ("other",)
        assert rule.enabled

    def test_name_defaults_to_id_and_disabled(self) -> None:
        rule = parse_rule({"id": "r1", "type": "global", "enabled": False})
        assert rule.name == "r1"
        assert not rule.enabled
        assert rule.conditions == ()

    def test_in_operator_list_value(self) -> None:
        rule = parse_rule(
            {
                "id": "r1",
                "type": "component",
                "componentId": "brk",
                "conditions": [{"field": "specs.current", "operator": "in", "value": [16, 32]}],
            }
        )
        assert rule.conditions[0].value == (16, 32)

    @pytest.mark.parametrize(
        ("data", "match"),
        [
            ({"type": "global"}, "missing required 'id'"),
            ({"id": "r1", "type": "site"}, "invalid type 'site'"),
            ({"id": "r1", "type": "global", "conditions": "x"}, "'conditions' must be a list"),
            (
                {"id": "r1", "type": "global", "conditions": [{"field": "a", "operator": "~"}]},
                "invalid operator '~'",
            ),
            ({"id": "r1", "type": "global", "constraints": ["overlap"]}, "must be a mapping"),
        ],
    )
    def test_invalid(self, data: dict[str, object], match: str) -> None:
        with pytest.raises(ValueError, match=match):
            parse_rule(data)


class TestLenientParsing:
    def test_broken_entry_becomes_invalid_rule(self, caplog: pytest.LogCaptureFixture) -> None:
        entry = parse_rule_entry(
            {"id": "r1", "name": "Broken", "type": "global", "constraints": [{"type": "zap"}]}, 0
        )
        assert isinstance(entry, InvalidRule)
        assert entry.id == "r1"
        assert entry.name == "Broken"
        assert "zap" in entry.reason
        assert "Skipping malformed rule 'r1'" in caplog.text

    def test_non_mapping_entry(self) -> None:
        entry = parse_rule_entry("overlap", 3)
        assert isinstance(entry, InvalidRule)
        assert entry.id == "rule-3"

    def test_disabled_broken_entry_stays_disabled(self) -> None:
        entry = parse_rule_entry({"id": "r1", "type": "nope", "enabled": False}, 0)
        assert isinstance(entry, InvalidRule)
        assert not entry.enabled

    def test_parse_rules_keeps_order(self) -> None:
        entries = parse_rules(
            [
                {"id": "a", "type": "global"},
                {"id": "b", "type": "nope"},
                {"id": "c", "type": "global"},
            ]
        )
        assert [type(e) for e in entries] == [Rule, InvalidRule, Rule]
        assert [e.id for e in entries] == ["a", "b", "c"]


class TestStrictParsing:
    def test_raises_on_broken_entry(self) -> None:
        with pytest.raises(ValueError, match="invalid type 'nope'"):
            parse_rules([{"id": "b", "type": "nope"}], strict=True)

    def test_duplicate_ids(self) -> None:
        items = [{"id": "a", "type": "global"}, {"id": "a", "type": "global"}]
        with pytest.raises(ValueError, match="Duplicate rule id 'a'"):
            parse_rules(items, strict=True)
        assert len(parse_rules(items)) == 2

    def test_not_a_list(self) -> None:
        with pytest.raises(ValueError, match="rules must be a list"):
            parse_rules({"id": "a"})


class TestLoadRules:
    def test_versioned_document(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yml"
        path.write_text("version: 1\nrules:\n  - {id: a, type: global}\n")
        assert [r.id for r in load_rules(path)] == ["a"]

    def test_bare_list_and_json(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.json"
        path.write_text('[{"id": "a", "type": "global", "constraints": [{"type": "overlap"}]}]')
        rules = load_rules(path)
        assert isinstance(rules[0], Rule)
        assert rules[0].constraints[0].kind.value == "overlap"

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yml"
        path.write_text("")
        assert load_rules(path) == []

    def test_unsupported_version(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yml"
        path.write_text("version: 7\nrules: []\n")
        with pytest.raises(ValueError, match="unsupported version 7"):
            load_rules(path)

    def test_rules_not_a_list(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yml"
        path.write_text("rules: {id: a}\n")
        with pytest.raises(ValueError, match="'rules' must be a list"):
            load_rules(path)


# ---------------------------------------------------------------------------
# Reference validation
# ---------------------------------------------------------------------------


class TestValidateRules:
    def test_clean_rule_book(
        self,
        panels: list[Panel],
        components: list[Component],
        combinators: list[Combinator],
    ) -> None:
        rules = [
            Rule(id="a", name="A", type=RuleType.PANEL, panel_id="main"),
            Rule(id="b", name="B", type=RuleType.COMPONENT, component_id="brk", dependencies=("a",)),
            Rule(id="c", name="C", type=RuleType.COMBINATOR, combinator_id="cmb"),
        ]
        assert validate_rules(rules, panels, components, combinators) == []

    def test_reports_problems(
        self,
        panels: list[Panel],
        components: list[Component],
        combinators: list[Combinator],
    ) -> None:
        rules = [
            Rule(id="a", name="A", type=RuleType.PANEL, panel_id="attic"),
            Rule(id="a", name="A2", type=RuleType.COMPONENT, component_id="ghost"),
            Rule(id="b", name="B", type=RuleType.COMBINATOR, combinator_id="nope"),
            Rule(id="c", name="C", type=RuleType.GLOBAL, dependencies=("zzz",)),
            InvalidRule(id="d", name="D", reason="bad constraint"),
        ]
        nested = Combinator(id="big", name="Big", width=1, height=1, component_ids=("cmb",))
        warnings = validate_rules(rules, panels, components, [*combinators, nested])
        assert warnings == [
            "Duplicate rule id 'a'",
            "Rule 'a' targets unknown panel 'attic'",
            "Rule 'a' targets unknown component 'ghost'",
            "Rule 'b' targets unknown combinator 'nope'",
            "Rule 'c' depends on unknown rule 'zzz'",
            "Rule 'd' is invalid: bad constraint",
            "Combinator 'big' lists combinator 'cmb'; nesting is not supported",
        ]

    def test_panel_check_needs_panel_list(self) -> None:
        rules = [Rule(id="a", name="A", type=RuleType.PANEL, panel_id="attic")]
        assert validate_rules(rules) == []
