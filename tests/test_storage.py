"""Tests for paneldrc.catalog.storage: key-addressed array store."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from paneldrc.catalog.storage import (
    COMPONENTS_KEY,
    RULES_KEY,
    LibraryStore,
    StorageError,
)

if TYPE_CHECKING:
    from pathlib import Path

    from paneldrc.catalog.models import Combinator, Component, Panel


class TestLibraryStore:
    def test_missing_key_is_empty(self, tmp_path: Path) -> None:
        store = LibraryStore(tmp_path)
        assert store.get(RULES_KEY) == []
        assert store.components() == []

    def test_replace_then_get(self, tmp_path: Path) -> None:
        store = LibraryStore(tmp_path / "lib")
        store.replace(RULES_KEY, [{"id": "r1"}, {"id": "r2"}])
        assert store.path_for(RULES_KEY).is_file()
        assert store.get(RULES_KEY) == [{"id": "r1"}, {"id": "r2"}]

    def test_replace_overwrites(self, tmp_path: Path) -> None:
        store = LibraryStore(tmp_path)
        store.replace(RULES_KEY, [{"id": "r1"}])
        store.replace(RULES_KEY, [])
        assert store.get(RULES_KEY) == []

    def test_typed_views(
        self,
        tmp_path: Path,
        components: list[Component],
        combinators: list[Combinator],
        panels: list[Panel],
    ) -> None:
        store = LibraryStore(tmp_path)
        store.replace_components(components)
        store.replace_combinators(combinators)
        store.replace_panels(panels)

        assert store.components() == components
        assert store.combinators() == combinators
        assert store.panels() == panels

    def test_wrapped_document(self, tmp_path: Path) -> None:
        (tmp_path / "components.yml").write_text(
            "components:\n  - {id: a, width: 1, height: 1}\n  - not-a-mapping\n"
        )
        store = LibraryStore(tmp_path)
        assert store.get(COMPONENTS_KEY) == [{"id": "a", "width": 1, "height": 1}]

    def test_unreadable_document(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        (tmp_path / "rules.yml").write_text("rules: [unclosed\n")
        assert LibraryStore(tmp_path).get(RULES_KEY) == []
        assert "Failed to read" in caplog.text

    def test_write_failure(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("")
        store = LibraryStore(blocker)
        with pytest.raises(StorageError, match="Cannot write"):
            store.replace(RULES_KEY, [])
