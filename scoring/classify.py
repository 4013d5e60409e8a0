"""
Badge classification.
Compares each user's displayed metrics against team-wide averages and assigns exactly one Badge.
"""
from typing import Callable, Dict, List, Optional, Tuple

from normalize.models import Badge, ScoreMetrics
from .utils import DEFAULT_WEIGHTS, safe_mean


class TeamBaseline:
    """Team-wide averages the classifier compares against."""
    def __init__(self, avg_impact: float, avg_visibility: float):
        self.avg_impact = avg_impact
        self.avg_visibility = avg_visibility

    @classmethod
    def from_scores(cls, scores: List[ScoreMetrics]) -> 'TeamBaseline':
        return cls(
            avg_impact=safe_mean(s.avg_impact for s in scores),
            avg_visibility=safe_mean(s.combined_visibility for s in scores),
        )


Rule = Callable[[ScoreMetrics, TeamBaseline, Dict[str, float]], bool]


def _silent_architect(s: ScoreMetrics, team: TeamBaseline, w: Dict[str, float]) -> bool:
    return s.avg_impact > team.avg_impact and s.combined_visibility < team.avg_visibility


def _high_visibility_low_impact(s: ScoreMetrics, team: TeamBaseline, w: Dict[str, float]) -> bool:
    return s.avg_impact < team.avg_impact and s.combined_visibility > team.avg_visibility


def _star_performer(s: ScoreMetrics, team: TeamBaseline, w: Dict[str, float]) -> bool:
    return s.final_contribution_score > w['star_performer_factor'] * team.avg_impact


# evaluated top to bottom, first match wins
DECISION_TABLE: Tuple[Tuple[Badge, Rule], ...] = (
    (Badge.SILENT_ARCHITECT, _silent_architect),
    (Badge.HIGH_VISIBILITY_LOW_IMPACT, _high_visibility_low_impact),
    (Badge.STAR_PERFORMER, _star_performer),
)
DEFAULT_BADGE = Badge.BALANCED_CONTRIBUTOR


def classify(score: ScoreMetrics, team: TeamBaseline, weights: Optional[Dict[str, float]] = None) -> Badge:
    w = weights or DEFAULT_WEIGHTS
    for badge, rule in DECISION_TABLE:
        if rule(score, team, w):
            return badge
    return DEFAULT_BADGE


def assign_badges(scores: List[ScoreMetrics], weights: Optional[Dict[str, float]] = None) -> List[ScoreMetrics]:
    """Set the badge on every score against the baseline of the whole list. Returns the same list."""
    team = TeamBaseline.from_scores(scores)
    for s in scores:
        s.badge = classify(s, team, weights)
    return scores
