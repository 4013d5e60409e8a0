"""
GitHub ingestion: repository commits and collaborators.
Commits are mapped to RawCommitEvent; signals GitHub does not expose (slack, review counts) are zero.
"""
import re
import logging
from typing import List, Dict, Any, Optional

from normalize.models import RawCommitEvent, Team
from .retry import get_with_retries
from .sources import CommitSource

logger = logging.getLogger(__name__)

BUG_FIX_PATTERN = re.compile(r"\b(fix(es|ed)?|bug|hotfix|patch)\b", re.IGNORECASE)
MERGE_PREFIX = 'Merge pull request'


class IngestError(RuntimeError):
    """Raised when commit data cannot be fetched from the remote service."""


def clean_repo_path(repo_url: str) -> str:
    """Turn 'https://github.com/owner/repo.git' (or 'owner/repo') into 'owner/repo'."""
    path = (repo_url or '').strip()
    path = re.sub(r'^(https?://)?(www\.)?github\.com/', '', path)
    path = re.sub(r'\.git$', '', path)
    return path.strip('/')


def commit_event_from_item(item: Dict[str, Any], detail: Optional[Dict[str, Any]] = None) -> RawCommitEvent:
    """Map a GitHub commit list item (and optional commit detail) to a RawCommitEvent."""
    commit = item.get('commit') or {}
    git_author = commit.get('author') or {}
    author = (item.get('author') or {}).get('login') or git_author.get('name') or ''
    message = commit.get('message') or ''
    files = (detail or item).get('files') or []
    return RawCommitEvent(
        commit_hash=item.get('sha') or '',
        author=author,
        timestamp=git_author.get('date') or '',
        message=message,
        files_changed=len(files),
        is_bug_fix=bool(BUG_FIX_PATTERN.search(message)),
        is_pr_merged=message.startswith(MERGE_PREFIX),
    )


class GitHubClient:
    """Small GitHub REST client for the endpoints the scorer needs."""

    def __init__(self, token: Optional[str] = None, base_url: str = None, per_page: int = 100, max_pages: int = 10):
        self.token = token
        self.base_url = base_url or "https://api.github.com"
        self.headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"
        self.per_page = per_page
        self.max_pages = max_pages

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None):
        url = f"{self.base_url}{path}"
        res = get_with_retries(url, headers=self.headers, params=params)
        status = res.get('status', 0)
        if status != 200:
            raise IngestError(f"GitHub request {path} failed with status {status}: {res.get('response')}")
        return res.get('response')

    def _get_paged(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        for page in range(1, self.max_pages + 1):
            query = dict(params or {})
            query.update({"page": page, "per_page": self.per_page})
            data = self._get(path, query) or []
            items.extend(d for d in data if isinstance(d, dict))
            if len(data) < self.per_page:
                break
        return items

    def get_commits(self, repo: str, since: Optional[str] = None, until: Optional[str] = None) -> List[Dict[str, Any]]:
        params = {}
        if since:
            params['since'] = since
        if until:
            params['until'] = until
        return self._get_paged(f"/repos/{clean_repo_path(repo)}/commits", params)

    def get_commit(self, repo: str, sha: str) -> Dict[str, Any]:
        return self._get(f"/repos/{clean_repo_path(repo)}/commits/{sha}") or {}

    def get_collaborators(self, repo: str) -> List[Dict[str, Any]]:
        return self._get_paged(f"/repos/{clean_repo_path(repo)}/collaborators")


class GitHubCommitSource(CommitSource):
    """Fetches a team's repository commits. The team's own token wins over the default one."""

    def __init__(self, token: Optional[str] = None, include_stats: bool = False, since: Optional[str] = None, until: Optional[str] = None,
                 client_factory=GitHubClient):
        self.token = token
        self.include_stats = include_stats
        self.since = since
        self.until = until
        self._client_factory = client_factory

    def fetch_commits(self, team: Team) -> List[RawCommitEvent]:
        if not team.repo_url:
            raise IngestError(f"Team {team.team_id} has no repository configured")
        client = self._client_factory(team.github_token or self.token)
        items = client.get_commits(team.repo_url, self.since, self.until)
        events = []
        for item in items:
            detail = client.get_commit(team.repo_url, item.get('sha')) if self.include_stats and item.get('sha') else None
            events.append(commit_event_from_item(item, detail))
        logger.info("Fetched %d commit(s) for team %s from %s", len(events), team.team_id, clean_repo_path(team.repo_url))
        return events
