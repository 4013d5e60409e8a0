"""
CLI entry point for contrib_rank. Wires the pipeline: ingest -> normalize -> score -> rank -> store -> report
"""

import argparse
import json
import logging
import os
import sys
import webbrowser
from datetime import datetime, timezone

from evaluator import sync_and_score, calculate_team_rankings
from ingest.demo import DemoCommitSource
from ingest.sources import StaticCommitSource
from ingest.github import GitHubClient, GitHubCommitSource, IngestError
from ingest.retry import configure_retry
from logging_config import configure_logging
from normalize.models import Team, NonTechActivity, ClientFeedback, AttendanceStatus, WorkSubmission
from normalize.util import normalize_user
from report.renderer import render, render_attendance, attendance_overview
from scoring.utils import load_weights, load_preset
from storage.sqlite import SQLiteStore
from storage.store import NotFoundError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = 'contrib_rank.db'


def _print_json(obj):
    print(json.dumps(obj, indent=2, default=str))


def _open_file_in_browser(path: str):
    """Open a file URL in the system default web browser."""
    webbrowser.open("file://" + os.path.abspath(path))


def write_output(fmt: str, rendered: str, args, name: str = 'team'):
    """Write output to file (html, md, csv, json) or stdout (text) and optionally open HTML in browser."""
    if fmt not in ("html", "md", "csv", "json"):
        print(rendered)
        return
    out_path = (args.out_file or '').strip() or f"contrib_ranking_{name}_{datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%SZ')}.{fmt}"
    out_dir = os.path.dirname(out_path)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    # newline='' is safe for CSV on Windows and harmless for other formats
    with open(out_path, "w", encoding="utf-8", newline='') as f:
        f.write(rendered)
    print(f"Wrote report to {out_path}")
    if getattr(args, 'open', False) and fmt == "html":
        try:
            _open_file_in_browser(out_path)
        except webbrowser.Error:
            print("Failed to open browser automatically; file saved at", out_path)


def _load_json_file(path: str, description: str):
    """Load a JSON file; raises ValueError with a readable message on failure."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ValueError(f"Failed to read {description} {path}: {e}")


def _resolve_weights(args):
    """Preset takes precedence over a plain weights file."""
    if getattr(args, 'preset', None):
        return load_preset(args.preset, args.weights or None)
    return load_weights(args.weights or None)


def _resolve_github_token(args) -> str:
    return getattr(args, 'github_token', None) or os.getenv('GITHUB_TOKEN') or ''


def _render_scores(args, store: SQLiteStore, scores, team=None):
    fmt = (args.output or 'text').lower()
    rendered = render(
        scores,
        fmt=fmt,
        team=team,
        users=store.get_users(),
        generated_at=datetime.now(timezone.utc).isoformat(),
        scope=team.team_name if team else 'all teams',
        attendance=store.get_attendance(),
        submissions=store.get_work_submissions(),
    )
    write_output(fmt, rendered, args, name=team.team_id if team else 'all')


# --- command handlers ---

def cmd_team_add(args, store: SQLiteStore):
    store.save_team(Team(args.team_id, args.name, args.repo_url, args.github_token or None))
    print(f"Saved team {args.team_id}")


def cmd_teams(args, store: SQLiteStore):
    teams = store.list_teams()
    if not teams:
        print("No teams configured.")
        return
    for team in teams:
        print(f"{team.team_id}\t{team.team_name}\t{team.repo_url or '-'}")


def cmd_users_import(args, store: SQLiteStore):
    raw = _load_json_file(args.file, 'users file')
    if not isinstance(raw, list):
        raise ValueError(f"Invalid users file {args.file}; expected an array of user objects.")
    users = [normalize_user(u) for u in raw if isinstance(u, dict)]
    store.save_users(users)
    print(f"Imported {len(users)} user(s)")


def cmd_members_sync(args, store: SQLiteStore):
    team = store.get_team(args.team_id)
    client = GitHubClient(team.github_token or _resolve_github_token(args))
    logins = [c.get('login') for c in client.get_collaborators(team.repo_url)]
    members = store.sync_team_members(team.team_id, logins)
    print(f"Synced {len(members)} member(s) into team {team.team_id}")


def cmd_sync(args, store: SQLiteStore):
    weights = _resolve_weights(args)
    if args.demo:
        source = DemoCommitSource()
    elif args.commits_file:
        raw = _load_json_file(args.commits_file, 'commits file')
        if not isinstance(raw, list):
            raise ValueError(f"Invalid commits file {args.commits_file}; expected an array of commit objects.")
        source = StaticCommitSource(c for c in raw if isinstance(c, dict))
    else:
        source = GitHubCommitSource(_resolve_github_token(args), include_stats=args.with_stats, since=args.since, until=args.until)
    scores = sync_and_score(args.team_id, source, store, weights)
    if not scores:
        print(f"No team members qualify for ranking in team {args.team_id}; existing snapshot left unchanged.")
        return
    _render_scores(args, store, scores, store.get_team(args.team_id))


def cmd_recompute(args, store: SQLiteStore):
    scores = calculate_team_rankings(args.team_id, store, _resolve_weights(args))
    if not scores:
        print(f"No team members qualify for ranking in team {args.team_id}; existing snapshot left unchanged.")
        return
    _render_scores(args, store, scores, store.get_team(args.team_id))


def cmd_attendance(args, store: SQLiteStore):
    record = store.mark_attendance(args.user, args.status, args.date or None)
    print(f"Marked {record.user_id} as {record.status.value} on {record.date}")


def cmd_activity(args, store: SQLiteStore):
    store.add_non_tech_activity(NonTechActivity(args.user, args.type, args.description, args.points))
    print(f"Recorded {args.type} activity for {args.user} ({args.points} points)")


def cmd_feedback(args, store: SQLiteStore):
    store.add_feedback(ClientFeedback(args.user, args.description, args.date or None))
    print(f"Recorded client feedback for {args.user}")


def cmd_work_submit(args, store: SQLiteStore):
    if not args.title.strip():
        raise ValueError("work-submit requires a non-empty --title")
    submission = store.add_work_submission(WorkSubmission(args.user, args.title.strip(), args.description, file_name=args.file_name))
    print(f"Recorded work report {submission.submission_id} for {submission.user_id}")


def cmd_attendance_report(args, store: SQLiteStore):
    rows = attendance_overview(store.get_users(), store.get_attendance(), store.list_teams())
    fmt = (args.output or 'text').lower()
    rendered = render_attendance(rows, fmt, generated_at=datetime.now(timezone.utc).isoformat())
    write_output(fmt, rendered, args, name='attendance')


def cmd_report(args, store: SQLiteStore):
    if args.all:
        _render_scores(args, store, store.get_all_scores())
        return
    if not args.team_id:
        raise ValueError("report requires --team-id or --all")
    team = store.get_team(args.team_id)
    _render_scores(args, store, store.get_score_snapshot(team.team_id), team)


def _add_output_flags(p):
    p.add_argument("--output", type=str, default="text", help="Output format (text, html, md, csv, json)")
    p.add_argument("--out-file", type=str, default="", help="Output file path (for HTML/MD/CSV/JSON). If omitted a default name will be used")
    p.add_argument("--open", action="store_true", help="Open the generated HTML report in the default browser")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Team contribution scoring and ranking")
    parser.add_argument("--db", type=str, default="", help=f"Path to SQLite store (or env CONTRIB_DB_PATH; default {DEFAULT_DB_PATH})")
    parser.add_argument("--weights", type=str, default="", help="Path to weights YAML (or env CONTRIB_WEIGHTS_FILE; default config/weights.yaml)")
    parser.add_argument("--preset", type=str, default="", help="Named preset from the weights file")
    parser.add_argument("--log-level", type=str, default="", help="Logging level (or env CONTRIB_LOG_LEVEL; default WARNING)")
    # retry/backoff knobs: optional CLI overrides. Environment variables CONTRIB_MAX_RETRIES, CONTRIB_BACKOFF_BASE,
    # CONTRIB_BACKOFF_JITTER, CONTRIB_MAX_BACKOFF may also be used to set defaults.
    parser.add_argument("--max-retries", type=int, default=None, help="Maximum attempts for GitHub requests")
    parser.add_argument("--backoff-base", type=float, default=None, help="Base backoff seconds")
    parser.add_argument("--backoff-jitter", type=float, default=None, help="Jitter seconds added to backoff")
    parser.add_argument("--max-backoff", type=float, default=None, help="Maximum backoff cap in seconds")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("team-add", help="Create or update a team")
    p.add_argument("--team-id", required=True)
    p.add_argument("--name", default="")
    p.add_argument("--repo-url", default="", help="GitHub repository URL or owner/repo")
    p.add_argument("--github-token", default="", help="Token used for this team's repository")
    p.set_defaults(handler=cmd_team_add)

    p = sub.add_parser("teams", help="List configured teams")
    p.set_defaults(handler=cmd_teams)

    p = sub.add_parser("users-import", help="Import users from a JSON array")
    p.add_argument("file")
    p.set_defaults(handler=cmd_users_import)

    p = sub.add_parser("members-sync", help="Register repository collaborators as team members")
    p.add_argument("--team-id", required=True)
    p.add_argument("--github-token", default="", help="GitHub token (or env GITHUB_TOKEN)")
    p.set_defaults(handler=cmd_members_sync)

    p = sub.add_parser("sync", help="Fetch commits and recompute the team ranking")
    p.add_argument("--team-id", required=True)
    p.add_argument("--demo", action="store_true", help="Use the built-in demo commits instead of GitHub")
    p.add_argument("--commits-file", default="", help="Read commits from a JSON array instead of GitHub")
    p.add_argument("--github-token", default="", help="GitHub token (or env GITHUB_TOKEN)")
    p.add_argument("--with-stats", action="store_true", help="Fetch each commit's detail to count changed files")
    p.add_argument("--since", default=None, help="Only commits after this ISO date")
    p.add_argument("--until", default=None, help="Only commits before this ISO date")
    _add_output_flags(p)
    p.set_defaults(handler=cmd_sync)

    p = sub.add_parser("recompute", help="Recompute the team ranking from stored data")
    p.add_argument("--team-id", required=True)
    _add_output_flags(p)
    p.set_defaults(handler=cmd_recompute)

    p = sub.add_parser("attendance", help="Mark attendance for a user (overwrites the same day)")
    p.add_argument("--user", required=True)
    p.add_argument("--status", required=True, choices=[s.value for s in AttendanceStatus])
    p.add_argument("--date", default="", help="YYYY-MM-DD (default today, UTC)")
    p.set_defaults(handler=cmd_attendance)

    p = sub.add_parser("activity", help="Record a non-technical activity")
    p.add_argument("--user", required=True)
    p.add_argument("--type", required=True)
    p.add_argument("--description", default="")
    p.add_argument("--points", type=float, required=True, help="Impact points")
    p.set_defaults(handler=cmd_activity)

    p = sub.add_parser("feedback", help="Record client feedback for a user")
    p.add_argument("--user", required=True)
    p.add_argument("--description", default="")
    p.add_argument("--date", default="", help="YYYY-MM-DD (default today, UTC)")
    p.set_defaults(handler=cmd_feedback)

    p = sub.add_parser("work-submit", help="File a work report for a user")
    p.add_argument("--user", required=True)
    p.add_argument("--title", required=True)
    p.add_argument("--description", default="")
    p.add_argument("--file-name", default="", help="Name of the attached report file, if any")
    p.set_defaults(handler=cmd_work_submit)

    p = sub.add_parser("attendance-report", help="Render the attendance rate of every user")
    _add_output_flags(p)
    p.set_defaults(handler=cmd_attendance_report)

    p = sub.add_parser("report", help="Render a stored snapshot")
    p.add_argument("--team-id", default="")
    p.add_argument("--all", action="store_true", help="Render every team's snapshot")
    _add_output_flags(p)
    p.set_defaults(handler=cmd_report)
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level or None)
    configure_retry(max_retries=args.max_retries, backoff_base=args.backoff_base, backoff_jitter=args.backoff_jitter, max_backoff=args.max_backoff)

    db_path = args.db or os.getenv('CONTRIB_DB_PATH') or DEFAULT_DB_PATH
    with SQLiteStore(db_path) as store:
        try:
            args.handler(args, store)
        except NotFoundError as ex:
            print(f"Error: {ex}", file=sys.stderr)
            return 2
        except (IngestError, ValueError) as ex:
            logger.debug("Command %s failed", args.command, exc_info=True)
            print(f"Error: {ex}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
