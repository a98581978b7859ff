"""Tests for paneldrc.drc: project check orchestration and output formats."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from paneldrc.drc import CheckResult, DrcError, format_json, format_porcelain, format_rich, run_check
from paneldrc.rules.model import RuleViolation, Severity

if TYPE_CHECKING:
    from pathlib import Path


def _violation(severity: Severity = Severity.ERROR, **extra: object) -> RuleViolation:
    return RuleViolation(
        id="violation-1",
        rule_id="brk-needs-switch",
        rule_name="Breakers need a main switch",
        message="Breaker 16A requires Main switch to be present",
        severity=severity,
        timestamp=0,
        kind="co-usage",
        **extra,  # type: ignore[arg-type]
    )


# ---------------------------------------------------------------------------
# run_check
# ---------------------------------------------------------------------------


class TestRunCheck:
    def test_reports_missing_switch(self, tmp_project: Path) -> None:
        result = run_check(tmp_project)

        assert result.rules_evaluated == 1
        assert result.panels_checked == 1
        assert result.placements_checked == 1
        assert result.warnings == []
        assert len(result.violations) == 1
        v = result.violations[0]
        assert v.rule_id == "brk-needs-switch"
        assert v.panel_id == "main"
        assert v.component_id == "p1"
        assert v.missing_component_id == "sw"
        assert result.error_count == 1
        assert result.warning_count == 0

    def test_satisfied_design(self, tmp_project: Path) -> None:
        (tmp_project / "design.yml").write_text(
            "panels:\n"
            "  - {id: main, name: Main, width: 600, height: 800}\n"
            "components:\n"
            "  - {id: p1, componentId: brk, panelId: main, x: 0, y: 0}\n"
            "  - {id: p2, componentId: sw, panelId: main, x: 100, y: 0}\n"
        )
        assert run_check(tmp_project).violations == []

    def test_missing_design(self, tmp_path: Path) -> None:
        with pytest.raises(DrcError, match="Design file not found"):
            run_check(tmp_path)

    def test_invalid_design(self, tmp_project: Path) -> None:
        (tmp_project / "design.yml").write_text("panels:\n  - {id: main}\n")
        with pytest.raises(DrcError, match="Invalid design file design.yml"):
            run_check(tmp_project)

    def test_no_rules_file(self, tmp_project: Path) -> None:
        (tmp_project / "rules.yml").unlink()
        result = run_check(tmp_project)
        assert result.violations == []
        assert result.rules_evaluated == 0
        assert result.panels_checked == 1

    def test_unsupported_rules_version(self, tmp_project: Path) -> None:
        (tmp_project / "rules.yml").write_text("version: 9\nrules: []\n")
        with pytest.raises(DrcError, match="Invalid rules configuration"):
            run_check(tmp_project)

    def test_malformed_rule_lenient_and_strict(self, tmp_project: Path) -> None:
        (tmp_project / "rules.yml").write_text(
            "rules:\n  - {id: bad, type: global, constraints: [{type: zap}]}\n"
        )
        result = run_check(tmp_project)
        assert [v.kind for v in result.violations] == ["invalid-rule"]
        assert len(result.warnings) == 1
        assert result.warnings[0].startswith("Rule 'bad' is invalid: ")
        assert "zap" in result.violations[0].message

        with pytest.raises(DrcError, match="unknown constraint type 'zap'"):
            run_check(tmp_project, strict_rules=True)

    def test_strict_rules_from_config(self, tmp_project: Path) -> None:
        (tmp_project / "paneldrc.yml").write_text("strict_rules: true\n")
        (tmp_project / "rules.yml").write_text(
            "rules:\n  - {id: a, type: global}\n  - {id: a, type: global}\n"
        )
        with pytest.raises(DrcError, match="Duplicate rule id 'a'"):
            run_check(tmp_project)

    def test_configured_paths(self, tmp_project: Path) -> None:
        book = tmp_project / "book"
        book.mkdir()
        (tmp_project / "rules.yml").rename(book / "panel-rules.yml")
        (tmp_project / "paneldrc.yml").write_text("rules: book/panel-rules.yml\n")
        assert len(run_check(tmp_project).violations) == 1

    def test_explicit_paths(self, tmp_project: Path, tmp_path: Path) -> None:
        empty_rules = tmp_path / "none.yml"
        empty_rules.write_text("rules: []\n")
        assert run_check(tmp_project, rules_path=empty_rules).violations == []

    def test_unknown_targets_are_warnings(self, tmp_project: Path) -> None:
        (tmp_project / "rules.yml").write_text(
            "rules:\n"
            "  - {id: r, type: component, componentId: ghost, constraints: [{type: bounds}]}\n"
        )
        result = run_check(tmp_project)
        assert result.warnings == ["Rule 'r' targets unknown component 'ghost'"]
        assert result.violations == []


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class TestFormatRich:
    def test_clean(self) -> None:
        output = format_rich(CheckResult(rules_evaluated=3, panels_checked=1))
        assert "Rules: 3 evaluated" in output
        assert "Design: 1 panels, 0 placements" in output
        assert "No violations found (3 rules evaluated, 0.0s)" in output

    def test_violations_and_warnings(self) -> None:
        result = CheckResult(
            violations=[
                _violation(panel_id="main", component_id="p1"),
                _violation(Severity.WARNING),
            ],
            warnings=["Rule 'x' targets unknown panel 'attic'"],
            rules_evaluated=1,
        )
        output = format_rich(result)
        assert "! Rule 'x' targets unknown panel 'attic'" in output
        assert "[error] Breakers need a main switch" in output
        assert "panel main / p1" in output
        assert "2 violations found (1 errors, 1 warnings" in output


class TestFormatJson:
    def test_structure(self) -> None:
        result = CheckResult(violations=[_violation(panel_id="main")], rules_evaluated=1)
        data = json.loads(format_json(result))
        assert data["violations"][0]["ruleId"] == "brk-needs-switch"
        assert data["violations"][0]["panelId"] == "main"
        assert data["warnings"] == []
        assert data["summary"]["errors"] == 1
        assert data["summary"]["violations_count"] == 1


class TestFormatPorcelain:
    def test_lines(self) -> None:
        result = CheckResult(
            violations=[
                _violation(panel_id="main", component_id="p1"),
                _violation(component_ids=("p1", "p2")),
            ]
        )
        assert format_porcelain(result).splitlines() == [
            "brk-needs-switch:co-usage:error:main:p1:Breaker 16A requires Main switch to be present",
            "brk-needs-switch:co-usage:error::p1,p2:Breaker 16A requires Main switch to be present",
        ]

    def test_empty(self) -> None:
        assert format_porcelain(CheckResult()) == ""
