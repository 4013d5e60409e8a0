"""
Scoring metrics.
Normalizes raw commit events into per-commit scores, aggregates them per user together with
attendance, non-technical activity and client feedback, and computes the role-aware composite score.
"""
from typing import List, Dict, Optional, Iterable
import logging

from normalize.models import (
    RawCommitEvent,
    NormalizedCommitMetrics,
    ScoredCommit,
    User,
    UserAggregate,
    ScoreMetrics,
    AttendanceRecord,
    AttendanceStatus,
    NonTechActivity,
    ClientFeedback,
)
from .utils import DEFAULT_WEIGHTS, safe_mean, safe_ratio

logger = logging.getLogger(__name__)


def normalize_commit_metrics(event: RawCommitEvent, weights: Optional[Dict[str, float]] = None) -> NormalizedCommitMetrics:
    """Derive the four commit-level scores and the commit final score.

    Visibility is computed but is not part of final_score.
    """
    w = weights or DEFAULT_WEIGHTS
    merged = bool(event.is_pr_merged)

    activity = w['activity_base'] + (w['activity_pr_merged'] if merged else 0.0)
    impact = (
        (w['impact_bug_fix'] if event.is_bug_fix else 0.0)
        + (w['impact_pr_merged'] if merged else 0.0)
        + w['impact_per_file'] * (event.files_changed or 0)
    )
    collaboration = (
        w['collab_pr_review'] * (event.pr_reviews_given or 0)
        + w['collab_review_comment'] * (event.review_comments or 0)
        + w['collab_issue_comment'] * (event.issue_comments or 0)
    )
    visibility = (
        w['visibility_slack_message'] * (event.slack_messages or 0)
        + w['visibility_slack_thread'] * (event.slack_threads or 0)
        + w['visibility_slack_mention'] * (event.slack_mentions or 0)
    )
    final = w['final_activity'] * activity + w['final_impact'] * impact + w['final_collaboration'] * collaboration
    return NormalizedCommitMetrics(activity, impact, collaboration, visibility, final)


def score_commits(events: Iterable[RawCommitEvent], weights: Optional[Dict[str, float]] = None) -> List[ScoredCommit]:
    return [ScoredCommit(e, normalize_commit_metrics(e, weights)) for e in events]


def _find_user(identifier: str, users: List[User]) -> Optional[User]:
    """Return the first user whose id or handle matches identifier (case-insensitive)."""
    needle = (identifier or '').lower()
    for u in users:
        if needle in u.identifiers():
            return u
    return None


def resolve_team_pool(team_id: str, users: List[User], commits: List[ScoredCommit]) -> List[User]:
    """
    Team membership reconciliation policy.

    Candidates are the declared members' ids, then their handles, then commit authors in the order
    they first appear. Each candidate is resolved to a declared User; commit authors without a
    matching declared User in this team are excluded from ranking. Each user appears once.
    """
    members = [u for u in users if u.team_id == team_id]
    candidates: List[str] = [u.user_id for u in members]
    candidates.extend(u.handle for u in members if u.handle)
    candidates.extend(c.author for c in commits)

    pool: List[User] = []
    seen_users = set()
    seen_candidates = set()
    for cand in candidates:
        key = (cand or '').lower()
        if not key or key in seen_candidates:
            continue
        seen_candidates.add(key)
        user = _find_user(cand, users)
        if user is None or user.team_id != team_id:
            logger.info("Excluding commit author %r from team %s: no matching team member", cand, team_id)
            continue
        if user.user_id in seen_users:
            continue
        seen_users.add(user.user_id)
        pool.append(user)
    return pool


def commits_for_user(user: User, commits: List[ScoredCommit]) -> List[ScoredCommit]:
    ids = user.identifiers()
    return [c for c in commits if (c.author or '').lower() in ids]


def _present_share(records: List[AttendanceRecord]) -> float:
    present = sum(1 for r in records if r.status == AttendanceStatus.PRESENT)
    return safe_ratio(present, len(records))


def attendance_score(records: List[AttendanceRecord], weights: Optional[Dict[str, float]] = None) -> float:
    """Share of Present days scaled to attendance_scale; no records scores 0."""
    w = weights or DEFAULT_WEIGHTS
    return _present_share(records) * w['attendance_scale']


def attendance_rate(records: List[AttendanceRecord]) -> float:
    """Percentage of Present days (0-100). Half-Day and Leave count as not present."""
    return _present_share(records) * 100.0


def aggregate_user(
    user: User,
    commits: List[ScoredCommit],
    attendance: List[AttendanceRecord],
    activities: List[NonTechActivity],
    feedback: List[ClientFeedback],
    weights: Optional[Dict[str, float]] = None,
) -> UserAggregate:
    """
    Build the measured metrics for one user.

    `commits` may be the whole team list; it is filtered to the user's commits by id or handle.
    The auxiliary lists may also be unfiltered; they are filtered by user_id.
    """
    w = weights or DEFAULT_WEIGHTS
    own_commits = [c.metrics for c in commits_for_user(user, commits)]
    own_attendance = [a for a in attendance if a.user_id == user.user_id]
    own_activities = [a for a in activities if a.user_id == user.user_id]
    own_feedback = [f for f in feedback if f.user_id == user.user_id]

    return UserAggregate(
        user_id=user.user_id,
        commit_count=len(own_commits),
        avg_activity=safe_mean(m.activity_score for m in own_commits),
        avg_impact=safe_mean(m.impact_score for m in own_commits),
        avg_collaboration=safe_mean(m.collaboration_score for m in own_commits),
        avg_visibility=safe_mean(m.visibility_score for m in own_commits),
        commit_final_base=safe_mean(m.final_score for m in own_commits),
        attendance_score=attendance_score(own_attendance, w),
        activity_points=sum(float(a.impact_points or 0) for a in own_activities),
        feedback_bonus=len(own_feedback) * w['feedback_bonus'],
    )


def composite_score(user: User, aggregate: UserAggregate, weights: Optional[Dict[str, float]] = None) -> float:
    """Role-aware final contribution score.

    Technical: commit share of the commit base plus non-tech share of the non-tech score.
    Non-technical: the non-tech score alone.
    """
    w = weights or DEFAULT_WEIGHTS
    if user.is_technical is False:
        return aggregate.non_tech_score
    return w['technical_commit_share'] * aggregate.commit_final_base + w['technical_non_tech_share'] * aggregate.non_tech_score


def project_display(user: User, team_id: str, aggregate: UserAggregate, final_score: float) -> ScoreMetrics:
    """
    Map a measured aggregate to the snapshot row shown on the impact/visibility chart.

    For non-technical users the impact axis carries activity points plus feedback bonus and the
    visibility axis carries the attendance score, so both populations share one chart.
    Rank and badge are filled in later by the ranker and classifier.
    """
    avg_impact = aggregate.avg_impact
    avg_visibility = aggregate.avg_visibility
    if user.is_technical is False:
        avg_impact = aggregate.activity_points + aggregate.feedback_bonus
        avg_visibility = aggregate.attendance_score
    return ScoreMetrics(
        user_id=user.user_id,
        team_id=team_id,
        avg_impact=avg_impact,
        avg_activity=aggregate.avg_activity,
        avg_collaboration=aggregate.avg_collaboration,
        avg_visibility=avg_visibility,
        non_tech_score=aggregate.non_tech_score,
        final_contribution_score=final_score,
    )
