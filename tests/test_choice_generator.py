from __future__ import annotations

import random

from services.choice_generator import pick


def test_pick_returns_four_distinct_catalog_names_without_exclusion(catalog) -> None:
    names = set(catalog.names())
    for seed in range(50):
        choices = pick("The Star", catalog, rng=random.Random(seed))
        assert len(choices) == 4
        assert len(set(choices)) == 4
        assert "The Star" not in choices
        assert set(choices) <= names


def test_pick_returns_all_remaining_when_catalog_is_small(small_catalog) -> None:
    choices = pick("The Star", small_catalog, rng=random.Random(3))
    assert sorted(choices) == ["The Fool", "The Magician", "The Moon"]


def test_pick_with_unknown_exclusion_still_draws_four(small_catalog) -> None:
    choices = pick("Death", small_catalog, rng=random.Random(1))
    assert sorted(choices) == sorted(small_catalog.names())


def test_repeated_picks_vary_but_keep_invariants(catalog) -> None:
    rng = random.Random(7)
    draws = {pick("The Fool", catalog, rng=rng) for _ in range(20)}
    assert len(draws) > 1
    for choices in draws:
        assert "The Fool" not in choices
        assert len(set(choices)) == len(choices) == 4
