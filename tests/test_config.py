"""Tests for paneldrc.config: paneldrc.yml loading."""

from __future__ import annotations

from typing import TYPE_CHECKING

from paneldrc.config import CONFIG_FILENAME, DrcConfig, load_config

if TYPE_CHECKING:
    from pathlib import Path

    import pytest


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path: Path) -> None:
        config = load_config(tmp_path)
        assert config == DrcConfig()
        assert config.component_spacing == 10.0
        assert config.rules == "rules.yml"

    def test_overrides(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(
            "rules: book/rules.yml\n"
            "design: layouts/main.json\n"
            "panel_spacing: 40\n"
            "component_spacing: 5.5\n"
            "strict_rules: true\n"
        )
        config = load_config(tmp_path)
        assert config.rules == "book/rules.yml"
        assert config.design == "layouts/main.json"
        assert config.components == "components.yml"
        assert config.panel_spacing == 40.0
        assert config.component_spacing == 5.5
        assert config.strict_rules is True

    def test_bad_values_fall_back(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(
            "rules: ''\npanel_spacing: wide\ncomponent_spacing: true\n"
        )
        config = load_config(tmp_path)
        assert config == DrcConfig()
        assert "'panel_spacing' must be a number" in caplog.text
        assert "'component_spacing' must be a number" in caplog.text

    def test_invalid_yaml(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("rules: [unclosed\n")
        assert load_config(tmp_path) == DrcConfig()
        assert "using defaults" in caplog.text

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- rules.yml\n")
        assert load_config(tmp_path) == DrcConfig()
