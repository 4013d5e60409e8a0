"""
Fixed demo dataset used when a team is synced without live GitHub access.
"""
from .sources import StaticCommitSource

DEMO_COMMITS = [
    {
        'sha': 'a1f3c9e', 'author': 'alice-dev', 'date': '2025-01-06T09:12:00Z',
        'message': 'Fix race in session refresh', 'files_changed': 3, 'is_bug_fix': True, 'is_pr_merged': False,
        'pr_reviews_given': 1, 'review_comments': 2, 'issue_comments': 0,
        'slack_messages': 1, 'slack_threads': 0, 'slack_mentions': 0,
    },
    {
        'sha': 'b72d014', 'author': 'alice-dev', 'date': '2025-01-08T15:40:00Z',
        'message': 'Merge pull request #41 from alice-dev/billing-v2', 'files_changed': 12, 'is_bug_fix': False, 'is_pr_merged': True,
        'pr_reviews_given': 2, 'review_comments': 4, 'issue_comments': 1,
        'slack_messages': 0, 'slack_threads': 1, 'slack_mentions': 0,
    },
    {
        'sha': 'c0e88aa', 'author': 'bob-builds', 'date': '2025-01-07T11:03:00Z',
        'message': 'Update README badges', 'files_changed': 1, 'is_bug_fix': False, 'is_pr_merged': False,
        'pr_reviews_given': 0, 'review_comments': 1, 'issue_comments': 3,
        'slack_messages': 14, 'slack_threads': 5, 'slack_mentions': 6,
    },
    {
        'sha': 'd4419bf', 'author': 'bob-builds', 'date': '2025-01-09T10:27:00Z',
        'message': 'Tweak lint config', 'files_changed': 2, 'is_bug_fix': False, 'is_pr_merged': False,
        'pr_reviews_given': 0, 'review_comments': 0, 'issue_comments': 2,
        'slack_messages': 9, 'slack_threads': 4, 'slack_mentions': 3,
    },
    {
        'sha': 'e9a2d51', 'author': 'carol-q', 'date': '2025-01-10T08:55:00Z',
        'message': 'Merge pull request #44 from carol-q/fix-export-encoding', 'files_changed': 4, 'is_bug_fix': True, 'is_pr_merged': True,
        'pr_reviews_given': 3, 'review_comments': 5, 'issue_comments': 2,
        'slack_messages': 2, 'slack_threads': 1, 'slack_mentions': 1,
    },
]


class DemoCommitSource(StaticCommitSource):
    def __init__(self):
        super().__init__(DEMO_COMMITS)
