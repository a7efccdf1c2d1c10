"""Keyword-based category tiers and intersection combinations."""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .config import ClassifierConfig


class Tier(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    TERTIARY = "tertiary"


DEFAULT_PRIMARY_KEYWORDS: tuple[str, ...] = (
    "abhishek",
    "kharcha",
    "papa",
    "priya",
    "mmy",
)
DEFAULT_SECONDARY_KEYWORDS: tuple[str, ...] = (
    "education",
    "home",
    "travel",
    "wedding",
)
DEFAULT_TERTIARY_KEYWORDS: tuple[str, ...] = (
    "grocery",
    "shopping",
    "food",
    "bills",
    "entertainment",
    "eating",
    "hotel",
    "restaurant",
    "give",
    "can be",
    "medicine",
)


class CategoryClassifier:
    """Assigns a category name to a tier from ordered keyword sets.

    Tiers are tested Primary, Secondary, Tertiary; the first keyword that
    equals or is contained in the lower-cased name wins. Unmatched names
    fall through to Tertiary.
    """

    def __init__(
        self,
        primary: Iterable[str] = DEFAULT_PRIMARY_KEYWORDS,
        secondary: Iterable[str] = DEFAULT_SECONDARY_KEYWORDS,
        tertiary: Iterable[str] = DEFAULT_TERTIARY_KEYWORDS,
    ) -> None:
        self._tiers: list[tuple[Tier, frozenset[str]]] = [
            (Tier.PRIMARY, frozenset(k.lower() for k in primary)),
            (Tier.SECONDARY, frozenset(k.lower() for k in secondary)),
            (Tier.TERTIARY, frozenset(k.lower() for k in tertiary)),
        ]

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> CategoryClassifier:
        return cls(config.primary, config.secondary, config.tertiary)

    def keywords(self, tier: Tier) -> frozenset[str]:
        for t, words in self._tiers:
            if t is tier:
                return words
        raise KeyError(tier)

    def classify(self, category: str) -> Tier:
        lowered = category.lower()
        for tier, words in self._tiers:
            if any(w == lowered or w in lowered for w in words):
                return tier
        return Tier.TERTIARY

    def bucketize(
        self, categories: Iterable[str]
    ) -> tuple[list[str], list[str], list[str]]:
        """Partition categories by tier, each bucket sorted alphabetically."""
        buckets: dict[Tier, list[str]] = {t: [] for t in Tier}
        for category in set(categories):
            buckets[self.classify(category)].append(category)
        return (
            sorted(buckets[Tier.PRIMARY]),
            sorted(buckets[Tier.SECONDARY]),
            sorted(buckets[Tier.TERTIARY]),
        )

    def tier_flags(self, categories: Iterable[str] | None) -> dict[Tier, bool]:
        """Which tiers are present among ``categories``."""
        present = {self.classify(c) for c in categories or ()}
        return {t: t in present for t in Tier}


_default = CategoryClassifier()


def classify(category: str) -> Tier:
    return _default.classify(category)


def bucketize(categories: Iterable[str]) -> tuple[list[str], list[str], list[str]]:
    return _default.bucketize(categories)


def combinations(groups: list[list[str]]) -> list[list[str]]:
    """Cartesian product of ``groups``, keeping group order in each tuple.

    >>> combinations([["A", "B"], ["C", "D"]])
    [['A', 'C'], ['A', 'D'], ['B', 'C'], ['B', 'D']]
    >>> combinations([])
    [[]]
    """
    if not groups:
        return [[]]
    rest = combinations(groups[1:])
    return [[element, *combo] for element in groups[0] for combo in rest]
