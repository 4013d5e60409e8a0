"""
Snapshot store contract used by the scoring pipeline.
Every read is explicitly scoped or global; there is no ambient store instance.
"""
from abc import ABC, abstractmethod
from typing import List

from normalize.models import (
    Team,
    User,
    ScoredCommit,
    AttendanceRecord,
    NonTechActivity,
    ClientFeedback,
    ScoreMetrics,
)


class NotFoundError(LookupError):
    """Raised when a team id does not resolve to a known team."""


class SnapshotStore(ABC):
    @abstractmethod
    def get_team(self, team_id: str) -> Team:
        """Return the team or raise NotFoundError."""

    @abstractmethod
    def get_commits(self, team_id: str) -> List[ScoredCommit]:
        ...

    @abstractmethod
    def save_commits(self, team_id: str, commits: List[ScoredCommit]):
        """Replace the stored commits of a team."""

    @abstractmethod
    def get_users(self) -> List[User]:
        ...

    @abstractmethod
    def get_attendance(self) -> List[AttendanceRecord]:
        ...

    @abstractmethod
    def get_non_tech_activities(self) -> List[NonTechActivity]:
        ...

    @abstractmethod
    def get_feedback(self) -> List[ClientFeedback]:
        ...

    @abstractmethod
    def save_score_snapshot(self, team_id: str, scores: List[ScoreMetrics]):
        """Replace the whole snapshot of a team. Never merges with the previous one."""

    @abstractmethod
    def get_score_snapshot(self, team_id: str) -> List[ScoreMetrics]:
        ...
