"""
SQLite-backed snapshot store.
Holds teams, users, per-team commits, attendance, non-technical activities, client feedback,
work submissions and the per-team score snapshots. Snapshot writes replace a team's rows inside one transaction.
"""

import re
import sqlite3
import json
import threading
import logging
from datetime import date as date_cls, datetime, timezone
from typing import Optional, List, Iterable, Union

from normalize.models import (
    Team,
    User,
    ScoredCommit,
    NormalizedCommitMetrics,
    AttendanceRecord,
    AttendanceStatus,
    NonTechActivity,
    ClientFeedback,
    WorkSubmission,
    ScoreMetrics,
    SNAPSHOT_FIELDS,
)
from normalize.util import normalize_commit
from .store import SnapshotStore, NotFoundError

logger = logging.getLogger(__name__)

# noinspection SqlResolve
SQL_CREATE = """
CREATE TABLE IF NOT EXISTS teams (
    team_id TEXT PRIMARY KEY,
    team_name TEXT,
    repo_url TEXT,
    github_token TEXT
);
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    name TEXT,
    handle TEXT,
    team_id TEXT,
    is_technical INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS commits (
    team_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    commit_hash TEXT,
    payload TEXT NOT NULL,
    PRIMARY KEY (team_id, position)
);
CREATE TABLE IF NOT EXISTS attendance (
    user_id TEXT NOT NULL,
    date TEXT NOT NULL,
    status TEXT NOT NULL,
    PRIMARY KEY (user_id, date)
);
CREATE TABLE IF NOT EXISTS non_tech_activities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    activity_type TEXT,
    description TEXT,
    impact_points REAL NOT NULL DEFAULT 0
);
CREATE TABLE IF NOT EXISTS client_feedback (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    description TEXT,
    date TEXT
);
CREATE TABLE IF NOT EXISTS work_submissions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    date TEXT,
    file_name TEXT
);
CREATE TABLE IF NOT EXISTS score_snapshots (
    team_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    avg_impact REAL,
    avg_activity REAL,
    avg_collaboration REAL,
    avg_visibility REAL,
    non_tech_score REAL,
    final_contribution_score REAL,
    rank INTEGER,
    badge TEXT,
    PRIMARY KEY (team_id, user_id)
);
"""

_SNAPSHOT_COLUMNS = ', '.join(SNAPSHOT_FIELDS)
_SNAPSHOT_PLACEHOLDERS = ', '.join('?' for _ in SNAPSHOT_FIELDS)


def _day_string(day: Union[None, str, date_cls, datetime]) -> str:
    """Normalize a day to YYYY-MM-DD; None means today (UTC).

    Strings may be a date or a timestamp, with or without zero padding ('2025-1-5').
    Raises ValueError for anything else.
    """
    if day is None:
        return datetime.now(timezone.utc).date().isoformat()
    if isinstance(day, datetime):
        return day.date().isoformat()
    if isinstance(day, date_cls):
        return day.isoformat()
    head = re.split(r'[T ]', str(day).strip(), maxsplit=1)[0]
    try:
        return datetime.strptime(head, '%Y-%m-%d').date().isoformat()
    except ValueError:
        raise ValueError(f"Invalid date {day!r}; expected YYYY-MM-DD")


class SQLiteStore(SnapshotStore):
    def __init__(self, path: Optional[str] = None):
        """Open (or create) a store.

        :param path: SQLite file path or None for in-memory.
        """
        self.path = path or ':memory:'
        self.conn = sqlite3.connect(self.path, check_same_thread=False)
        self._lock = threading.RLock()
        self._init_db()

    def _init_db(self):
        with self._lock:
            cur = self.conn.cursor()
            cur.executescript(SQL_CREATE)
            self.conn.commit()

    def close(self):
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _query(self, sql: str, params: tuple = ()) -> list:
        with self._lock:
            cur = self.conn.cursor()
            cur.execute(sql, params)
            return cur.fetchall()

    # --- teams ---

    # noinspection SqlResolve
    def save_team(self, team: Team):
        with self._lock, self.conn:
            self.conn.execute(
                'INSERT INTO teams(team_id, team_name, repo_url, github_token) VALUES (?, ?, ?, ?) '
                'ON CONFLICT(team_id) DO UPDATE SET team_name = excluded.team_name, repo_url = excluded.repo_url, '
                'github_token = excluded.github_token',
                (team.team_id, team.team_name, team.repo_url, team.github_token),
            )

    # noinspection SqlResolve
    def get_team(self, team_id: str) -> Team:
        rows = self._query('SELECT team_id, team_name, repo_url, github_token FROM teams WHERE team_id = ?', (team_id,))
        if not rows:
            raise NotFoundError(f"Team not found: {team_id}")
        return Team(*rows[0])

    # noinspection SqlResolve
    def list_teams(self) -> List[Team]:
        rows = self._query('SELECT team_id, team_name, repo_url, github_token FROM teams ORDER BY rowid')
        return [Team(*r) for r in rows]

    # --- users ---

    # noinspection SqlResolve
    def save_users(self, users: Iterable[User]):
        """Insert or update users; existing users keep their position in get_users()."""
        with self._lock, self.conn:
            self.conn.executemany(
                'INSERT INTO users(user_id, name, handle, team_id, is_technical) VALUES (?, ?, ?, ?, ?) '
                'ON CONFLICT(user_id) DO UPDATE SET name = excluded.name, handle = excluded.handle, '
                'team_id = excluded.team_id, is_technical = excluded.is_technical',
                [(u.user_id, u.name, u.handle, u.team_id, 0 if u.is_technical is False else 1) for u in users],
            )

    def upsert_user(self, user: User):
        self.save_users([user])

    # noinspection SqlResolve
    def get_users(self) -> List[User]:
        rows = self._query('SELECT user_id, name, handle, team_id, is_technical FROM users ORDER BY rowid')
        return [User(user_id=r[0], name=r[1], handle=r[2], team_id=r[3], is_technical=bool(r[4])) for r in rows]

    def sync_team_members(self, team_id: str, logins: Iterable[str]) -> List[User]:
        """Assign each login to the team as a technical member, creating users that do not exist yet.

        Existing users are matched by id or handle, case-insensitively.
        """
        with self._lock:
            users = self.get_users()
            changed: List[User] = []
            for login in logins:
                if not login:
                    continue
                existing = next((u for u in users if login.lower() in u.identifiers()), None)
                if existing is None:
                    existing = User(user_id=login, name=login, handle=login)
                    users.append(existing)
                existing.team_id = team_id
                existing.is_technical = True
                changed.append(existing)
            self.save_users(changed)
        logger.info("Synced %d member(s) into team %s", len(changed), team_id)
        return changed

    # --- commits ---

    # noinspection SqlResolve
    def save_commits(self, team_id: str, commits: List[ScoredCommit]):
        with self._lock, self.conn:
            self.conn.execute('DELETE FROM commits WHERE team_id = ?', (team_id,))
            self.conn.executemany(
                'INSERT INTO commits(team_id, position, commit_hash, payload) VALUES (?, ?, ?, ?)',
                [(team_id, i, c.event.commit_hash, json.dumps(c.to_dict())) for i, c in enumerate(commits)],
            )

    # noinspection SqlResolve
    def get_commits(self, team_id: str) -> List[ScoredCommit]:
        rows = self._query('SELECT payload FROM commits WHERE team_id = ? ORDER BY position', (team_id,))
        commits = []
        for (payload,) in rows:
            data = json.loads(payload)
            metrics = NormalizedCommitMetrics(
                data['activity_score'], data['impact_score'], data['collaboration_score'], data['visibility_score'], data['final_score']
            )
            commits.append(ScoredCommit(normalize_commit(data), metrics))
        return commits

    # --- attendance, activities, feedback ---

    # noinspection SqlResolve
    def mark_attendance(self, user_id: str, status: Union[str, AttendanceStatus], day=None) -> AttendanceRecord:
        """Record attendance for a user on a day; a second mark on the same day overwrites the status."""
        record = AttendanceRecord(user_id, _day_string(day), AttendanceStatus(status))
        with self._lock, self.conn:
            self.conn.execute(
                'INSERT INTO attendance(user_id, date, status) VALUES (?, ?, ?) '
                'ON CONFLICT(user_id, date) DO UPDATE SET status = excluded.status',
                (record.user_id, record.date, record.status.value),
            )
        return record

    # noinspection SqlResolve
    def get_attendance(self) -> List[AttendanceRecord]:
        rows = self._query('SELECT user_id, date, status FROM attendance ORDER BY rowid')
        return [AttendanceRecord(*r) for r in rows]

    # noinspection SqlResolve
    def add_non_tech_activity(self, activity: NonTechActivity):
        with self._lock, self.conn:
            self.conn.execute(
                'INSERT INTO non_tech_activities(user_id, activity_type, description, impact_points) VALUES (?, ?, ?, ?)',
                (activity.user_id, activity.activity_type, activity.description, float(activity.impact_points)),
            )

    # noinspection SqlResolve
    def get_non_tech_activities(self) -> List[NonTechActivity]:
        rows = self._query('SELECT user_id, activity_type, description, impact_points FROM non_tech_activities ORDER BY id')
        return [NonTechActivity(*r) for r in rows]

    # noinspection SqlResolve
    def add_feedback(self, feedback: ClientFeedback):
        with self._lock, self.conn:
            self.conn.execute(
                'INSERT INTO client_feedback(user_id, description, date) VALUES (?, ?, ?)',
                (feedback.user_id, feedback.description, _day_string(feedback.date)),
            )

    # noinspection SqlResolve
    def get_feedback(self) -> List[ClientFeedback]:
        rows = self._query('SELECT user_id, description, date FROM client_feedback ORDER BY id')
        return [ClientFeedback(*r) for r in rows]

    # --- work submissions ---

    # noinspection SqlResolve
    def add_work_submission(self, submission: WorkSubmission) -> WorkSubmission:
        """Append a work report; the stored id is returned on the submission as 'ws-<id>'."""
        if not submission.date:
            submission.date = datetime.now(timezone.utc).isoformat()
        with self._lock, self.conn:
            cur = self.conn.execute(
                'INSERT INTO work_submissions(user_id, title, description, date, file_name) VALUES (?, ?, ?, ?, ?)',
                (submission.user_id, submission.title, submission.description, submission.date, submission.file_name),
            )
        submission.submission_id = f"ws-{cur.lastrowid}"
        return submission

    # noinspection SqlResolve
    def get_work_submissions(self, user_id: Optional[str] = None) -> List[WorkSubmission]:
        sql = 'SELECT id, user_id, title, description, date, file_name FROM work_submissions'
        params: tuple = ()
        if user_id is not None:
            sql += ' WHERE user_id = ?'
            params = (user_id,)
        rows = self._query(sql + ' ORDER BY id', params)
        return [WorkSubmission(r[1], r[2], r[3], r[4], r[5], submission_id=f"ws-{r[0]}") for r in rows]

    # --- score snapshots ---

    # noinspection SqlResolve
    def save_score_snapshot(self, team_id: str, scores: List[ScoreMetrics]):
        rows = []
        for s in scores:
            data = s.to_dict()
            data['team_id'] = team_id
            rows.append(tuple(data[k] for k in SNAPSHOT_FIELDS))
        with self._lock, self.conn:
            self.conn.execute('DELETE FROM score_snapshots WHERE team_id = ?', (team_id,))
            self.conn.executemany(f'INSERT INTO score_snapshots({_SNAPSHOT_COLUMNS}) VALUES ({_SNAPSHOT_PLACEHOLDERS})', rows)
        logger.debug("Saved snapshot of %d row(s) for team %s", len(rows), team_id)

    def _snapshot_rows(self, where: str = '', params: tuple = ()) -> List[ScoreMetrics]:
        # teams in registration order; snapshots of unregistered teams last
        columns = ', '.join(f's.{c}' for c in SNAPSHOT_FIELDS)
        rows = self._query(
            f'SELECT {columns} FROM score_snapshots s LEFT JOIN teams t ON t.team_id = s.team_id {where} '
            'ORDER BY t.rowid IS NULL, t.rowid, s.team_id, s.rank',
            params,
        )
        return [ScoreMetrics.from_dict(dict(zip(SNAPSHOT_FIELDS, r))) for r in rows]

    def get_score_snapshot(self, team_id: str) -> List[ScoreMetrics]:
        return self._snapshot_rows('WHERE s.team_id = ?', (team_id,))

    def get_all_scores(self) -> List[ScoreMetrics]:
        """Every team's snapshot, teams in registration order and rows by rank."""
        return self._snapshot_rows()
