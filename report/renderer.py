"""
Report renderer: turn score snapshots into text, Markdown, CSV, JSON or HTML.
Markdown and HTML use the Jinja2 templates in report/templates.
"""

from typing import Optional, List, Dict, Any
import os
import io
import csv
import json

from jinja2 import Environment, FileSystemLoader, select_autoescape

from normalize.models import AttendanceRecord, Badge, ScoreMetrics, SNAPSHOT_FIELDS, User, Team, WorkSubmission
from scoring.metrics import attendance_rate

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), 'templates')


def _env() -> Environment:
    return Environment(loader=FileSystemLoader(TEMPLATES_DIR), autoescape=select_autoescape(['html', 'xml', 'html.j2']))


def _display_name(user_id: str, users: Optional[Dict[str, User]]) -> str:
    user = (users or {}).get(user_id)
    return user.name if user else user_id


def group_by_team(scores: List[ScoreMetrics]) -> Dict[str, List[ScoreMetrics]]:
    """Group scores by team id, keeping first-seen team order and the rank order within a team."""
    groups: Dict[str, List[ScoreMetrics]] = {}
    for s in scores:
        groups.setdefault(s.team_id, []).append(s)
    return groups


def chart_points(scores: List[ScoreMetrics], users: Optional[Dict[str, User]] = None) -> List[Dict[str, Any]]:
    """Impact-vs-visibility scatter data: x is activity + visibility, y is impact."""
    points = []
    for s in scores:
        user = (users or {}).get(s.user_id)
        points.append({
            'name': _display_name(s.user_id, users),
            'team_id': s.team_id,
            'x': round(s.avg_activity + s.avg_visibility, 2),
            'y': round(s.avg_impact, 2),
            'final': round(s.final_contribution_score, 2),
            'badge': s.badge.value,
            'role': 'Operational' if user is not None and user.is_technical is False else 'Technical',
        })
    return points


def badge_summary(scores: List[ScoreMetrics]) -> Dict[str, int]:
    """Count of users per badge, listing every badge even when unused."""
    counts = {b.value: 0 for b in Badge}
    for s in scores:
        counts[s.badge.value] += 1
    return counts


def member_overview(
    scores: List[ScoreMetrics],
    attendance: Optional[List[AttendanceRecord]] = None,
    submissions: Optional[List[WorkSubmission]] = None,
) -> Dict[str, Dict[str, Any]]:
    """Per ranked user: attendance rate (%, 1 decimal) and number of work reports filed."""
    overview = {}
    for s in scores:
        own = [a for a in attendance or [] if a.user_id == s.user_id]
        overview[s.user_id] = {
            'attendance_rate': round(attendance_rate(own), 1),
            'reports': sum(1 for w in submissions or [] if w.user_id == s.user_id),
        }
    return overview


def attendance_overview(
    users: List[User],
    attendance: List[AttendanceRecord],
    teams: Optional[List[Team]] = None,
) -> List[Dict[str, Any]]:
    """One row per user with their team name, number of marked days and attendance rate."""
    team_names = {t.team_id: t.team_name for t in teams or []}
    rows = []
    for u in users:
        own = [a for a in attendance if a.user_id == u.user_id]
        rows.append({
            'user_id': u.user_id,
            'name': u.name,
            'team': team_names.get(u.team_id) or u.team_id or 'N/A',
            'days': len(own),
            'attendance_rate': round(attendance_rate(own), 1),
        })
    return rows


def render_text(scores: List[ScoreMetrics], users: Optional[Dict[str, User]] = None,
                overview: Optional[Dict[str, Dict[str, Any]]] = None) -> str:
    """Render a plain-text ranking."""
    if not scores:
        return 'No scores available.'
    lines = []
    for team_id, rows in group_by_team(scores).items():
        lines.append(f"Team {team_id}")
        for s in rows:
            line = f"  #{s.rank:<3} {_display_name(s.user_id, users):<24} {s.final_contribution_score:8.2f}  {s.badge.value}"
            if overview and s.user_id in overview:
                extra = overview[s.user_id]
                line += f"  ({extra['attendance_rate']:.1f}% attendance, {extra['reports']} reports)"
            lines.append(line)
    return "\n".join(lines)


def render_csv(scores: List[ScoreMetrics]) -> str:
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(SNAPSHOT_FIELDS)
    for s in scores:
        data = s.to_dict()
        writer.writerow([data[k] for k in SNAPSHOT_FIELDS])
    return output.getvalue()


def render_json(scores: List[ScoreMetrics]) -> str:
    return json.dumps([s.to_dict() for s in scores], indent=2)


def _context(scores, team, users, generated_at, scope, overview=None) -> Dict[str, Any]:
    return {
        'team': team,
        'groups': group_by_team(scores),
        'names': {s.user_id: _display_name(s.user_id, users) for s in scores},
        'overview': overview or {},
        'points': chart_points(scores, users),
        'badges': badge_summary(scores),
        'generated_at': generated_at,
        'scope': scope,
    }


def render_markdown(scores: List[ScoreMetrics], team: Optional[Team] = None, users: Optional[Dict[str, User]] = None,
                    generated_at: Optional[str] = None, scope: Optional[str] = None,
                    overview: Optional[Dict[str, Dict[str, Any]]] = None) -> str:
    tmpl = _env().get_template('snapshot.md.j2')
    return tmpl.render(**_context(scores, team, users, generated_at, scope, overview))


def render_html(scores: List[ScoreMetrics], team: Optional[Team] = None, users: Optional[Dict[str, User]] = None,
                generated_at: Optional[str] = None, scope: Optional[str] = None,
                overview: Optional[Dict[str, Dict[str, Any]]] = None) -> str:
    tmpl = _env().get_template('snapshot.html.j2')
    return tmpl.render(**_context(scores, team, users, generated_at, scope, overview))


def render(
    scores: List[ScoreMetrics],
    fmt: str = 'text',
    team: Optional[Team] = None,
    users: Optional[List[User]] = None,
    generated_at: Optional[str] = None,
    scope: Optional[str] = None,
    attendance: Optional[List[AttendanceRecord]] = None,
    submissions: Optional[List[WorkSubmission]] = None,
) -> str:
    """Main render function.

    `users` is only used for display names and roles. When `attendance` or `submissions` are given,
    text, Markdown and HTML add attendance rate and report count per user; CSV and JSON stay the
    plain snapshot rows.
    """
    by_id = {u.user_id: u for u in users or []}
    overview = member_overview(scores, attendance, submissions) if attendance is not None or submissions is not None else None
    fmt_l = (fmt or 'text').lower()
    if fmt_l in ('md', 'markdown'):
        return render_markdown(scores, team, by_id, generated_at, scope, overview)
    if fmt_l == 'csv':
        return render_csv(scores)
    if fmt_l in ('html', 'htm'):
        return render_html(scores, team, by_id, generated_at, scope, overview)
    if fmt_l == 'json':
        return render_json(scores)
    return render_text(scores, by_id, overview)


ATTENDANCE_FIELDS = ('user_id', 'name', 'team', 'days', 'attendance_rate')


def render_attendance(rows: List[Dict[str, Any]], fmt: str = 'text', generated_at: Optional[str] = None) -> str:
    """Render the attendance overview produced by attendance_overview."""
    fmt_l = (fmt or 'text').lower()
    if fmt_l == 'json':
        return json.dumps(rows, indent=2)
    if fmt_l == 'csv':
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=ATTENDANCE_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
        return output.getvalue()
    if fmt_l in ('md', 'markdown', 'html', 'htm'):
        name = 'attendance.md.j2' if fmt_l in ('md', 'markdown') else 'attendance.html.j2'
        return _env().get_template(name).render(rows=rows, generated_at=generated_at)
    if not rows:
        return 'No users registered.'
    return "\n".join(f"{r['name']:<24} {r['team']:<20} {r['attendance_rate']:5.1f}%  ({r['days']} days)" for r in rows)
