"""
Commit sources feed raw commit events into the scoring pipeline.
The pipeline treats every source the same way; only the provenance differs.
"""
from abc import ABC, abstractmethod
from typing import List, Iterable, Any

from normalize.models import RawCommitEvent, Team
from normalize.util import normalize_commit


class CommitSource(ABC):
    """Base class: return the team's commits as RawCommitEvent objects."""

    @abstractmethod
    def fetch_commits(self, team: Team) -> List[RawCommitEvent]:
        ...


class StaticCommitSource(CommitSource):
    """Serves a fixed list of commits regardless of team. Items may be events or raw dicts."""

    def __init__(self, commits: Iterable[Any]):
        self._commits = [c if isinstance(c, RawCommitEvent) else normalize_commit(c) for c in commits]

    def fetch_commits(self, team: Team) -> List[RawCommitEvent]:
        return list(self._commits)
