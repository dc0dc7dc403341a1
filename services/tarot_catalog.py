"""Helpers for the Major Arcana catalog used to steer card selection."""

import json
import os

from models.reading_models import CategoryCatalog

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
CATALOG_PATH = os.path.join(BASE_DIR, "public", "data", "major_arcana.json")


def load_catalog(catalog_path: str = CATALOG_PATH) -> CategoryCatalog:
    """Load the card catalog JSON file from disk.

    Args:
        catalog_path: Filesystem path to a JSON list of ``{"name", "keywords"}`` objects.

    Returns:
        The catalog in file order.

    Raises:
        ValueError: If the file is empty or lists a card name twice.
    """
    with open(catalog_path, "r", encoding="utf-8") as catalog_file:
        catalog = CategoryCatalog.from_entries(json.load(catalog_file))

    names = catalog.names()
    if not names:
        raise ValueError(f"Card catalog at {catalog_path} is empty.")
    if len(set(names)) != len(names):
        raise ValueError(f"Card catalog at {catalog_path} contains duplicate names.")
    return catalog


def catalog_prompt_lines(catalog: CategoryCatalog) -> str:
    """Render the catalog as ``- Name: keywords`` lines for prompting."""
    return "\n".join(f"- {card.name}: {card.keywords}" for card in catalog)
