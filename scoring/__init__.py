"""
Scoring package: commit normalization, per-user aggregation, composite score, badges and ranking.
"""

from .metrics import normalize_commit_metrics, aggregate_user, composite_score, resolve_team_pool
from .classify import assign_badges
from .ranking import rank_scores

__all__ = ["normalize_commit_metrics", "aggregate_user", "composite_score", "resolve_team_pool", "assign_badges", "rank_scores"]
