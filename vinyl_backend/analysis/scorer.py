"""Ranking for trending listings and recommendations.

Both policies add a small random jitter so repeated requests do not return
an identical ordering. The jitter only breaks ties and near-ties; pass a
seeded ``random.Random`` to make ordering reproducible.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

from vinyl_backend.data.models import VinylItem

POPULARITY_JITTER = 10.0

ARTIST_MATCH_POINTS = 20.0
PRICE_SIMILARITY_POINTS = 15.0
PRICE_DIFF_WEIGHT = 20.0
WORD_OVERLAP_POINTS = 2.0
RECOMMEND_JITTER = 3.0
MIN_WORD_LENGTH = 3


def popularity_score(item: VinylItem, rng: Optional[random.Random] = None) -> float:
    """Price plus 0-10 of jitter. Not a real popularity signal."""
    rng = rng or random
    return item.price_value + rng.uniform(0, POPULARITY_JITTER)


@dataclass
class ScoredItem:
    """A normalized item with the score it was ranked by."""

    item: VinylItem
    score: float

    def as_dict(self, score_key: str = "score") -> dict:
        return {**self.item.as_dict(), score_key: self.score}


def rank_by_popularity(
    items: Sequence[VinylItem], rng: Optional[random.Random] = None
) -> list[ScoredItem]:
    scored = [ScoredItem(item=item, score=popularity_score(item, rng)) for item in items]
    return sorted(scored, key=lambda s: s.score, reverse=True)


@dataclass
class RecommendBase:
    """The listing recommendations are measured against."""

    item_id: Optional[str] = None
    title: str = ""
    artist: str = ""
    price: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.item_id,
            "title": self.title,
            "artist": self.artist,
            "price": self.price,
        }


class RecommendScorer:
    """Similarity scoring of candidates against a base listing.

    Points:
    1. ARTIST (20) - candidate artist equals base artist, case-insensitive
    2. PRICE (0-15) - ``15 - relative price difference * 20``, floored at 0;
       contributes nothing when the base has no price
    3. TITLE (2 per word) - base title words longer than two characters that
       also appear in the candidate title
    4. JITTER (0-3)
    """

    def __init__(self, base: RecommendBase, rng: Optional[random.Random] = None) -> None:
        self.base = base
        self.rng = rng or random.Random()
        self.base_words = [
            w for w in base.title.lower().split() if len(w) >= MIN_WORD_LENGTH
        ]

    def artist_score(self, item: VinylItem) -> float:
        if (
            self.base.artist
            and item.artist
            and item.artist.lower() == self.base.artist.lower()
        ):
            return ARTIST_MATCH_POINTS
        return 0.0

    def price_score(self, item: VinylItem) -> float:
        if self.base.price <= 0:
            return 0.0
        diff = abs(item.price_value - self.base.price)
        return max(0.0, PRICE_SIMILARITY_POINTS - (diff / self.base.price) * PRICE_DIFF_WEIGHT)

    def overlap_score(self, item: VinylItem) -> float:
        words = (item.title or "").lower().split()
        overlap = sum(1 for w in self.base_words if w in words)
        return overlap * WORD_OVERLAP_POINTS

    def score(self, item: VinylItem) -> float:
        total = (
            self.artist_score(item)
            + self.price_score(item)
            + self.overlap_score(item)
            + self.rng.uniform(0, RECOMMEND_JITTER)
        )
        return round(total, 2)

    def rank(self, items: Sequence[VinylItem]) -> list[ScoredItem]:
        """Score and sort candidates (highest first)."""
        scored = [ScoredItem(item=item, score=self.score(item)) for item in items]
        return sorted(scored, key=lambda s: s.score, reverse=True)
