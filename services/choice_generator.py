"""Random selection of second-card choices."""

from __future__ import annotations

import random
from typing import Tuple

from models.reading_models import CategoryCatalog

CHOICE_COUNT = 4


def pick(
    exclude_name: str,
    catalog: CategoryCatalog,
    count: int = CHOICE_COUNT,
    rng: random.Random | None = None,
) -> Tuple[str, ...]:
    """Draw up to ``count`` distinct card names, never ``exclude_name``.

    Each draw takes a uniformly random index into the remaining pool and
    removes that entry, so the result has no duplicates. When fewer than
    ``count`` cards remain after the exclusion, all of them are returned.
    """
    rng = rng or random
    available = [name for name in catalog.names() if name != exclude_name]
    choices = []
    while len(choices) < count and available:
        choices.append(available.pop(rng.randrange(len(available))))
    return tuple(choices)
