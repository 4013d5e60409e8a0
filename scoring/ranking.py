"""
Team ranking: order by final contribution score and assign sequential 1-based ranks.
"""
from typing import List

from normalize.models import ScoreMetrics


def rank_scores(scores: List[ScoreMetrics]) -> List[ScoreMetrics]:
    """Return a new list sorted by final_contribution_score descending with rank set.

    sorted() is stable with reverse=True, so tied users keep their pool order.
    """
    ranked = sorted(scores, key=lambda s: s.final_contribution_score, reverse=True)
    for i, s in enumerate(ranked):
        s.rank = i + 1
    return ranked
