"""Tests for FallbackPolicy."""

import random

import pytest

from chatbridge.conversation.fallback import FALLBACK_POOLS, FallbackCategory, FallbackPolicy


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("hello there", FallbackCategory.GREETING),
        ("hello bhai", FallbackCategory.GREETING),
        ("Hi, how are you?", FallbackCategory.GREETING),
        ("kya kar raha hai", FallbackCategory.QUESTION),
        ("where are you?", FallbackCategory.QUESTION),
        ("thanks a lot", FallbackCategory.GRATITUDE),
        ("shukriya dost", FallbackCategory.GRATITUDE),
        ("random statement", FallbackCategory.DEFAULT),
        ("going to sleep now", FallbackCategory.DEFAULT),
        ("", FallbackCategory.DEFAULT),
    ],
)
def test_categorize(text: str, expected: FallbackCategory):
    assert FallbackPolicy().categorize(text) is expected


def test_keywords_match_whole_words():
    """'hi' inside 'this' is not a greeting."""
    assert FallbackPolicy().categorize("this is fine") is FallbackCategory.DEFAULT


def test_fallback_draws_from_category_pool():
    policy = FallbackPolicy(rng=random.Random(3))

    for _ in range(20):
        assert policy.fallback("thank you") in FALLBACK_POOLS[FallbackCategory.GRATITUDE]


def test_every_pool_is_non_empty():
    assert all(FALLBACK_POOLS[category] for category in FallbackCategory)
