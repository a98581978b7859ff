"""Check orchestrator: load project files, evaluate rules, format results."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import yaml

from paneldrc.catalog.loader import load_combinators, load_components, load_design, load_panels
from paneldrc.config import load_config
from paneldrc.rules.evaluator import evaluate_rules
from paneldrc.rules.loader import load_rules, validate_rules
from paneldrc.rules.model import Severity
from paneldrc.rules.serialization import violation_to_dict

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from paneldrc.rules.model import RuleViolation

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DrcError(Exception):
    """Raised when a check cannot run because of a configuration problem."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class CheckResult:
    """Result of a check run."""

    violations: list[RuleViolation] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    rules_evaluated: int = 0
    panels_checked: int = 0
    placements_checked: int = 0
    elapsed_ms: float = 0.0

    @property
    def error_count(self) -> int:
        return sum(1 for v in self.violations if v.severity is Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for v in self.violations if v.severity is Severity.WARNING)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def _load_optional(path: Path, loader: Callable[[Path], list], label: str) -> list:
    if not path.is_file():
        logger.debug("No %s file at %s", label, path)
        return []
    try:
        return loader(path)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        msg = f"Invalid {label} file {path.name}: {exc}"
        raise DrcError(msg) from exc


def run_check(
    project_root: Path,
    *,
    rules_path: Path | None = None,
    design_path: Path | None = None,
    strict_rules: bool | None = None,
) -> CheckResult:
    """Load a project and run every rule over its design.

    Parameters
    ----------
    project_root:
        Directory holding ``paneldrc.yml`` and the files it names.
    rules_path / design_path:
        Override the configured rule book / design locations.
    strict_rules:
        Refuse malformed rules instead of reporting them as violations.
        Defaults to the ``strict_rules`` config value.

    Raises
    ------
    DrcError
        When the design is missing or a project file cannot be parsed.
    """
    start = time.monotonic()
    config = load_config(project_root)
    strict = config.strict_rules if strict_rules is None else strict_rules

    rules_path = rules_path or project_root / config.rules
    design_path = design_path or project_root / config.design

    if not design_path.is_file():
        msg = f"Design file not found: {design_path}"
        raise DrcError(msg)
    try:
        design = load_design(design_path, default_panel_spacing=config.panel_spacing)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        msg = f"Invalid design file {design_path.name}: {exc}"
        raise DrcError(msg) from exc

    components = _load_optional(project_root / config.components, load_components, "components")
    combinators = _load_optional(
        project_root / config.combinators, load_combinators, "combinators"
    )
    panel_library = _load_optional(project_root / config.panels, load_panels, "panels")

    if not rules_path.is_file():
        elapsed = (time.monotonic() - start) * 1000
        return CheckResult(
            panels_checked=len(design.panels),
            placements_checked=len(design.placements),
            elapsed_ms=elapsed,
        )

    try:
        rules = load_rules(rules_path, strict=strict)
    except (OSError, yaml.YAMLError, ValueError) as exc:
        msg = f"Invalid rules configuration: {exc}"
        raise DrcError(msg) from exc

    known_panels = list(design.panels) + [
        p for p in panel_library if p.id not in {d.id for d in design.panels}
    ]
    warnings = validate_rules(rules, known_panels, components, combinators)
    for warning in warnings:
        logger.warning(warning)

    violations = evaluate_rules(
        rules,
        design.panels,
        design.placements,
        components,
        combinators,
        panel_spacing=design.panel_spacing,
        component_spacing=config.component_spacing,
    )

    elapsed = (time.monotonic() - start) * 1000
    return CheckResult(
        violations=violations,
        warnings=warnings,
        rules_evaluated=sum(1 for r in rules if r.enabled),
        panels_checked=len(design.panels),
        placements_checked=len(design.placements),
        elapsed_ms=elapsed,
    )


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _location(v: RuleViolation) -> str:
    parts: list[str] = []
    if v.panel_id is not None:
        parts.append(f"panel {v.panel_id}")
    if v.component_id is not None:
        parts.append(v.component_id)
    elif v.component_ids:
        parts.append(", ".join(v.component_ids))
    return " / ".join(parts)


def format_rich(result: CheckResult) -> str:
    """Format a CheckResult as human-readable text.

    Example output::

        Rules: 4 evaluated
        Design: 2 panels, 9 placements

        x [error] Breakers need a main switch
          panel main / p-3 -> Breaker 16A requires Main switch to be present

        1 violation found (1 error, 0 warnings, 0.0s)
    """
    lines: list[str] = [
        f"Rules: {result.rules_evaluated} evaluated",
        f"Design: {result.panels_checked} panels, {result.placements_checked} placements",
        "",
    ]
    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"

    for warning in result.warnings:
        lines.append(f"! {warning}")
    if result.warnings:
        lines.append("")

    if not result.violations:
        lines.append(
            f"✓ No violations found ({result.rules_evaluated} rules evaluated, {elapsed_str})"
        )
        return "\n".join(lines)

    for v in result.violations:
        lines.append(f"✗ [{v.severity.value}] {v.rule_name}")
        location = _location(v)
        lines.append(f"  {location} → {v.message}" if location else f"  {v.message}")
        lines.append("")

    count = len(result.violations)
    noun = "violation" if count == 1 else "violations"
    lines.append(
        f"{count} {noun} found ({result.error_count} errors, "
        f"{result.warning_count} warnings, {elapsed_str})"
    )
    return "\n".join(lines)


def format_json(result: CheckResult) -> str:
    """Format a CheckResult as JSON with ``violations``, ``warnings`` and ``summary``."""
    output: dict[str, object] = {
        "violations": [violation_to_dict(v) for v in result.violations],
        "warnings": list(result.warnings),
        "summary": {
            "rules_evaluated": result.rules_evaluated,
            "violations_count": len(result.violations),
            "errors": result.error_count,
            "warnings": result.warning_count,
            "panels_checked": result.panels_checked,
            "placements_checked": result.placements_checked,
            "elapsed_ms": result.elapsed_ms,
        },
    }
    return json.dumps(output, indent=2)


def format_porcelain(result: CheckResult) -> str:
    """One line per violation: ``rule_id:kind:severity:panel_id:component_ids:message``.

    Missing fields are empty strings; no violations gives an empty string.
    """
    lines: list[str] = []
    for v in result.violations:
        panel_id = v.panel_id or ""
        if v.component_id is not None:
            component_ids = v.component_id
        else:
            component_ids = ",".join(v.component_ids)
        lines.append(
            f"{v.rule_id}:{v.kind}:{v.severity.value}:{panel_id}:{component_ids}:{v.message}"
        )
    return "\n".join(lines)
