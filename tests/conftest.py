from __future__ import annotations

import pytest

from models.reading_models import CategoryCatalog, TarotCard
from services.tarot_catalog import load_catalog


@pytest.fixture()
def catalog() -> CategoryCatalog:
    return load_catalog()


@pytest.fixture()
def small_catalog() -> CategoryCatalog:
    return CategoryCatalog(
        tuple(TarotCard(name=name, keywords="") for name in ("The Fool", "The Magician", "The Star", "The Moon"))
    )
