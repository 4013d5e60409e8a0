"""
Normalization utility helpers.
Small helpers to turn raw payloads (demo data, API-derived dicts, JSON imports) into normalize.models entities.
"""
from typing import Dict, Any
from normalize.models import RawCommitEvent, User


def _as_int(value: Any) -> int:
    """Coerce a count field to int; missing or unparsable values count as zero."""
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'y')
    return bool(value)


def normalize_commit(raw: Dict[str, Any]) -> RawCommitEvent:
    """Create a RawCommitEvent from a raw commit dict.
    Accepts both the internal field names and the short ones used by demo payloads (sha, date).
    """
    return RawCommitEvent(
        commit_hash=str(raw.get('commit_hash') or raw.get('sha') or ''),
        author=str(raw.get('author') or raw.get('author_username') or ''),
        timestamp=str(raw.get('timestamp') or raw.get('date') or ''),
        message=raw.get('message') or raw.get('commit_message') or '',
        files_changed=_as_int(raw.get('files_changed')),
        is_bug_fix=_as_bool(raw.get('is_bug_fix')),
        is_pr_merged=_as_bool(raw.get('is_pr_merged')),
        pr_reviews_given=_as_int(raw.get('pr_reviews_given')),
        review_comments=_as_int(raw.get('review_comments')),
        issue_comments=_as_int(raw.get('issue_comments')),
        slack_messages=_as_int(raw.get('slack_messages')),
        slack_threads=_as_int(raw.get('slack_threads')),
        slack_mentions=_as_int(raw.get('slack_mentions')),
    )


def normalize_user(raw: Dict[str, Any]) -> User:
    """Create a User from an import dict. `github_username` and `login` are accepted as the handle."""
    user_id = raw.get('user_id') or raw.get('id') or raw.get('login') or ''
    handle = raw.get('handle') or raw.get('github_username') or raw.get('login') or None
    is_technical = raw.get('is_technical')
    return User(
        user_id=str(user_id),
        name=raw.get('name') or raw.get('display_name') or '',
        handle=handle,
        team_id=raw.get('team_id') or None,
        # only an explicit false marks a non-technical role
        is_technical=True if is_technical is None else _as_bool(is_technical),
    )
