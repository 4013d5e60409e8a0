"""
Team scoring pipeline.
commit source -> normalize -> aggregate per user -> composite score -> badge -> rank -> snapshot store
"""
import logging
from typing import List, Dict, Optional

from normalize.models import (
    ScoredCommit,
    User,
    AttendanceRecord,
    NonTechActivity,
    ClientFeedback,
    ScoreMetrics,
)
from ingest.sources import CommitSource
from scoring.metrics import score_commits, resolve_team_pool, aggregate_user, composite_score, project_display
from scoring.classify import assign_badges
from scoring.ranking import rank_scores
from scoring.utils import load_weights
from storage.store import SnapshotStore

logger = logging.getLogger(__name__)


def score_team(
    team_id: str,
    commits: List[ScoredCommit],
    users: List[User],
    attendance: List[AttendanceRecord],
    activities: List[NonTechActivity],
    feedback: List[ClientFeedback],
    weights: Optional[Dict[str, float]] = None,
) -> List[ScoreMetrics]:
    """Compute the ranked, badged snapshot for a team from in-memory inputs. Pure; an empty pool yields []."""
    weights = weights or load_weights()
    scores: List[ScoreMetrics] = []
    for user in resolve_team_pool(team_id, users, commits):
        agg = aggregate_user(user, commits, attendance, activities, feedback, weights)
        final = composite_score(user, agg, weights)
        scores.append(project_display(user, team_id, agg, final))
    if not scores:
        return []
    assign_badges(scores, weights)
    return rank_scores(scores)


def calculate_team_rankings(team_id: str, store: SnapshotStore, weights: Optional[Dict[str, float]] = None) -> List[ScoreMetrics]:
    """
    Recompute a team's snapshot from the store's current data and replace the stored snapshot.

    Stored commit events are scored again with `weights`, so a preset or weights file applies to the
    commit-level formulas as well as the composite.

    Raises NotFoundError for an unknown team. When no user qualifies for the pool nothing is written
    and the previous snapshot, if any, stays in place.
    """
    store.get_team(team_id)
    weights = weights or load_weights()
    commits = score_commits([c.event for c in store.get_commits(team_id)], weights)
    scores = score_team(
        team_id,
        commits,
        store.get_users(),
        store.get_attendance(),
        store.get_non_tech_activities(),
        store.get_feedback(),
        weights,
    )
    if not scores:
        logger.warning("No users qualify for team %s; keeping the existing snapshot", team_id)
        return []
    store.save_score_snapshot(team_id, scores)
    logger.info("Ranked %d user(s) for team %s", len(scores), team_id)
    return scores


def sync_and_score(team_id: str, commit_source: CommitSource, store: SnapshotStore, weights: Optional[Dict[str, float]] = None) -> List[ScoreMetrics]:
    """
    Fetch the team's commits from commit_source, store them normalized, and recompute the team snapshot.

    Live and demo sources are treated identically.
    """
    team = store.get_team(team_id)
    weights = weights or load_weights()
    events = commit_source.fetch_commits(team)
    scored = score_commits(events, weights)
    store.save_commits(team_id, scored)
    logger.info("Stored %d normalized commit(s) for team %s", len(scored), team_id)
    return calculate_team_rankings(team_id, store, weights)
