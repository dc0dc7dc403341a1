from __future__ import annotations

import json
from pathlib import Path

import pytest

from services.tarot_catalog import catalog_prompt_lines, load_catalog


def test_shipped_catalog_has_the_major_arcana(catalog) -> None:
    names = catalog.names()
    assert len(names) == 22
    assert names[0] == "The Fool"
    assert names[-1] == "The World"
    assert catalog.contains("The High Priestess")
    assert not catalog.contains("the high priestess")


def test_catalog_prompt_lines_lists_every_card(catalog) -> None:
    lines = catalog_prompt_lines(catalog).splitlines()
    assert len(lines) == 22
    assert lines[17].startswith("- The Star: hope")


def test_duplicate_names_are_rejected(tmp_path: Path) -> None:
    path = tmp_path / "cards.json"
    path.write_text(json.dumps([{"name": "The Sun"}, {"name": "The Sun"}]), encoding="utf-8")
    with pytest.raises(ValueError):
        load_catalog(str(path))
