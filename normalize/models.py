"""
Unified data models for contribution signals, users and score snapshots.
"""

from enum import Enum
from typing import Optional, Dict, Any


class AttendanceStatus(str, Enum):
    PRESENT = 'Present'
    LEAVE = 'Leave'
    HALF_DAY = 'Half-Day'


class Badge(str, Enum):
    """Closed set of behavioral labels assigned by scoring.classify."""
    SILENT_ARCHITECT = 'Silent Architect'
    HIGH_VISIBILITY_LOW_IMPACT = 'High Visibility / Low Impact'
    STAR_PERFORMER = 'Star Performer'
    BALANCED_CONTRIBUTOR = 'Balanced Contributor'


class User:
    """
    Team member. The handle is the external (GitHub) login used to match commit authors.
    """
    def __init__(self, user_id: str, name: str = '', handle: Optional[str] = None, team_id: Optional[str] = None, is_technical: bool = True):
        self.user_id = user_id
        self.name = name or user_id
        self.handle = handle
        self.team_id = team_id
        self.is_technical = is_technical

    def identifiers(self) -> set:
        """Lower-cased identifiers a commit author may use for this user."""
        ids = {self.user_id.lower()}
        if self.handle:
            ids.add(self.handle.lower())
        return ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'name': self.name,
            'handle': self.handle,
            'team_id': self.team_id,
            'is_technical': self.is_technical,
        }


class Team:
    def __init__(self, team_id: str, team_name: str = '', repo_url: str = '', github_token: Optional[str] = None):
        self.team_id = team_id
        self.team_name = team_name or team_id
        self.repo_url = repo_url
        self.github_token = github_token

    def to_dict(self) -> Dict[str, Any]:
        # the token is never exported
        return {'team_id': self.team_id, 'team_name': self.team_name, 'repo_url': self.repo_url}


class RawCommitEvent:
    """
    One commit as delivered by a commit source, already tagged with its author.
    """
    def __init__(
        self,
        commit_hash: str,
        author: str,
        timestamp: str = '',
        message: str = '',
        files_changed: int = 0,
        is_bug_fix: bool = False,
        is_pr_merged: bool = False,
        pr_reviews_given: int = 0,
        review_comments: int = 0,
        issue_comments: int = 0,
        slack_messages: int = 0,
        slack_threads: int = 0,
        slack_mentions: int = 0,
    ):
        self.commit_hash = commit_hash
        self.author = author
        self.timestamp = timestamp
        self.message = message
        self.files_changed = files_changed
        self.is_bug_fix = is_bug_fix
        self.is_pr_merged = is_pr_merged
        self.pr_reviews_given = pr_reviews_given
        self.review_comments = review_comments
        self.issue_comments = issue_comments
        self.slack_messages = slack_messages
        self.slack_threads = slack_threads
        self.slack_mentions = slack_mentions

    def to_dict(self) -> Dict[str, Any]:
        return {
            'commit_hash': self.commit_hash,
            'author': self.author,
            'timestamp': self.timestamp,
            'message': self.message,
            'files_changed': self.files_changed,
            'is_bug_fix': self.is_bug_fix,
            'is_pr_merged': self.is_pr_merged,
            'pr_reviews_given': self.pr_reviews_given,
            'review_comments': self.review_comments,
            'issue_comments': self.issue_comments,
            'slack_messages': self.slack_messages,
            'slack_threads': self.slack_threads,
            'slack_mentions': self.slack_mentions,
        }


class NormalizedCommitMetrics:
    """
    Derived per-commit scores. Computed once by scoring.metrics.normalize_commit_metrics.
    """
    def __init__(self, activity_score: float, impact_score: float, collaboration_score: float, visibility_score: float, final_score: float):
        self.activity_score = activity_score
        self.impact_score = impact_score
        self.collaboration_score = collaboration_score
        self.visibility_score = visibility_score
        self.final_score = final_score

    def to_dict(self) -> Dict[str, float]:
        return {
            'activity_score': self.activity_score,
            'impact_score': self.impact_score,
            'collaboration_score': self.collaboration_score,
            'visibility_score': self.visibility_score,
            'final_score': self.final_score,
        }


class ScoredCommit:
    """A commit event together with its normalized metrics."""
    def __init__(self, event: RawCommitEvent, metrics: NormalizedCommitMetrics):
        self.event = event
        self.metrics = metrics

    @property
    def author(self) -> str:
        return self.event.author

    def to_dict(self) -> Dict[str, Any]:
        data = self.event.to_dict()
        data.update(self.metrics.to_dict())
        return data


class AttendanceRecord:
    def __init__(self, user_id: str, date: str, status: AttendanceStatus):
        self.user_id = user_id
        self.date = date  # YYYY-MM-DD
        self.status = AttendanceStatus(status)


class NonTechActivity:
    def __init__(self, user_id: str, activity_type: str, description: str, impact_points: float):
        self.user_id = user_id
        self.activity_type = activity_type
        self.description = description
        self.impact_points = impact_points


class ClientFeedback:
    def __init__(self, user_id: str, description: str, date: str):
        self.user_id = user_id
        self.description = description
        self.date = date


class WorkSubmission:
    """A work report filed by a team member. Shown as a per-user count; it does not feed the score."""
    def __init__(self, user_id: str, title: str, description: str = '', date: str = '', file_name: str = '',
                 submission_id: Optional[str] = None):
        self.submission_id = submission_id
        self.user_id = user_id
        self.title = title
        self.description = description
        self.date = date
        self.file_name = file_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            'submission_id': self.submission_id,
            'user_id': self.user_id,
            'title': self.title,
            'description': self.description,
            'date': self.date,
            'file_name': self.file_name,
        }


class UserAggregate:
    """
    Measured per-user metrics as produced by the aggregator. Never rewritten for display;
    see scoring.metrics.project_display for the chart-compatible projection.
    """
    def __init__(
        self,
        user_id: str,
        commit_count: int = 0,
        avg_activity: float = 0.0,
        avg_impact: float = 0.0,
        avg_collaboration: float = 0.0,
        avg_visibility: float = 0.0,
        commit_final_base: float = 0.0,
        attendance_score: float = 0.0,
        activity_points: float = 0.0,
        feedback_bonus: float = 0.0,
    ):
        self.user_id = user_id
        self.commit_count = commit_count
        self.avg_activity = avg_activity
        self.avg_impact = avg_impact
        self.avg_collaboration = avg_collaboration
        self.avg_visibility = avg_visibility
        self.commit_final_base = commit_final_base
        self.attendance_score = attendance_score
        self.activity_points = activity_points
        self.feedback_bonus = feedback_bonus

    @property
    def non_tech_score(self) -> float:
        return self.attendance_score + self.activity_points + self.feedback_bonus


SNAPSHOT_FIELDS = (
    'user_id',
    'team_id',
    'avg_impact',
    'avg_activity',
    'avg_collaboration',
    'avg_visibility',
    'non_tech_score',
    'final_contribution_score',
    'rank',
    'badge',
)


class ScoreMetrics:
    """
    One row of a team snapshot.
    """
    def __init__(
        self,
        user_id: str,
        team_id: str,
        avg_impact: float,
        avg_activity: float,
        avg_collaboration: float,
        avg_visibility: float,
        non_tech_score: float,
        final_contribution_score: float,
        rank: int = 0,
        badge: Badge = Badge.BALANCED_CONTRIBUTOR,
    ):
        self.user_id = user_id
        self.team_id = team_id
        self.avg_impact = avg_impact
        self.avg_activity = avg_activity
        self.avg_collaboration = avg_collaboration
        self.avg_visibility = avg_visibility
        self.non_tech_score = non_tech_score
        self.final_contribution_score = final_contribution_score
        self.rank = rank
        self.badge = Badge(badge)

    @property
    def combined_visibility(self) -> float:
        return self.avg_activity + self.avg_visibility

    def to_dict(self) -> Dict[str, Any]:
        data = {k: getattr(self, k) for k in SNAPSHOT_FIELDS}
        data['badge'] = self.badge.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScoreMetrics':
        return cls(**{k: data[k] for k in SNAPSHOT_FIELDS})

    def __eq__(self, other):
        if not isinstance(other, ScoreMetrics):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"ScoreMetrics(user_id={self.user_id!r}, rank={self.rank}, score={self.final_contribution_score:.3f}, badge={self.badge.value!r})"
