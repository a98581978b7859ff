"""Shared test fixtures for paneldrc."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from paneldrc.catalog.models import Combinator, Component, Panel

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture()
def components() -> list[Component]:
    """Small component library: a breaker that needs a main switch, a switch, a meter."""
    return [
        Component(
            id="brk",
            name="Breaker 16A",
            type="breaker",
            category="protection",
            width=20,
            height=50,
            specs={"current": "16", "panelSize": 60},
            required_components=("sw",),
        ),
        Component(
            id="sw",
            name="Main switch",
            type="switch",
            category="protection",
            width=40,
            height=60,
            specs={"current": "63", "panelSize": 60},
        ),
        Component(
            id="mtr",
            name="Energy meter",
            type="meter",
            category="measurement",
            width=30,
            height=40,
            specs={"voltage": "230", "panelSize": 80},
        ),
    ]


@pytest.fixture()
def combinators() -> list[Combinator]:
    return [
        Combinator(
            id="cmb",
            name="Feeder stack",
            width=40,
            height=130,
            component_ids=("brk", "sw"),
            gaps=(5, 10, 5),
            brand="ACME",
            series="S1",
            current_a="63",
            pole="3P",
            panel_size=60,
        ),
    ]


@pytest.fixture()
def panels() -> list[Panel]:
    return [
        Panel(id="main", name="Main", width=600, height=800),
        Panel(id="aux", name="Aux", width=400, height=600),
    ]


# ---------------------------------------------------------------------------
# Project on disk
# ---------------------------------------------------------------------------

COMPONENTS_YML = (
    "components:\n"
    "  - id: brk\n"
    "    name: Breaker 16A\n"
    "    type: breaker\n"
    "    category: protection\n"
    "    width: 20\n"
    "    height: 50\n"
    "    specs: {current: '16', panelSize: 60}\n"
    "    requiredComponents: [sw]\n"
    "  - id: sw\n"
    "    name: Main switch\n"
    "    type: switch\n"
    "    category: protection\n"
    "    width: 40\n"
    "    height: 60\n"
    "    specs: {current: '63', panelSize: 60}\n"
)

COMBINATORS_YML = (
    "combinators:\n"
    "  - id: cmb\n"
    "    name: Feeder stack\n"
    "    width: 40\n"
    "    height: 100\n"
    "    componentIds: [brk, sw]\n"
    "    gaps: [5, 10, 5]\n"
    "    brand: ACME\n"
    "    series: S1\n"
    "    currentA: '63'\n"
    "    pole: 3P\n"
    "    panelSize: 60\n"
)

DESIGN_YML = (
    "panels:\n"
    "  - {id: main, name: Main, width: 600, height: 800}\n"
    "components:\n"
    "  - {id: p1, componentId: brk, panelId: main, x: 0, y: 0}\n"
)

RULES_YML = (
    "version: 1\n"
    "rules:\n"
    "  - id: brk-needs-switch\n"
    "    name: Breakers need a main switch\n"
    "    type: component\n"
    "    componentId: brk\n"
    "    conditions: []\n"
    "    constraints:\n"
    "      - type: co-usage\n"
    "        requiredComponentIds: [sw]\n"
)


@pytest.fixture()
def tmp_project(tmp_path: Path) -> Path:
    """A project whose single breaker is missing its main switch."""
    project = tmp_path / "proj"
    project.mkdir()
    (project / "components.yml").write_text(COMPONENTS_YML)
    (project / "combinators.yml").write_text(COMBINATORS_YML)
    (project / "design.yml").write_text(DESIGN_YML)
    (project / "rules.yml").write_text(RULES_YML)
    return project
