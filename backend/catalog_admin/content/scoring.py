"""Trend score calculation for catalog items."""

import math

from ..config import TrendSettings


def compute_trend_score(
    rating: float,
    popularity: int,
    release_year: int,
    current_year: int,
    weights: TrendSettings,
) -> float:
    """
    Combine rating, popularity and recency into a single ranking value.

    Popularity is log-scaled so that a handful of blockbuster titles do not
    drown out everything else. Recency decays with age in whole years and is
    capped at full weight for current and future releases.
    """
    popularity_part = math.log10(max(popularity, 0) + 1)
    age = max(current_year - release_year, 0)
    recency_part = 1 / (1 + age)

    score = (
        rating * weights.rating_weight
        + popularity_part * weights.popularity_weight
        + recency_part * weights.recency_weight
    )
    return round(score, 4)
