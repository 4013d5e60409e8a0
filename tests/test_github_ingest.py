import unittest
from unittest.mock import patch, Mock

import requests

from ingest import retry
from ingest.sources import CommitSource
from ingest.github import GitHubClient, GitHubCommitSource, IngestError, clean_repo_path, commit_event_from_item
from normalize.models import Team


def _resp(status, body, headers=None):
    m = Mock()
    m.status_code = status
    m.json.return_value = body
    m.text = str(body)
    m.headers = headers or {}
    return m


def _item(sha, login, message, date='2025-01-02T03:04:05Z'):
    return {'sha': sha, 'author': {'login': login}, 'commit': {'message': message, 'author': {'name': login.title(), 'date': date}}}


class TestCommitMapping(unittest.TestCase):
    def test_clean_repo_path(self):
        self.assertEqual(clean_repo_path('https://github.com/acme/platform.git'), 'acme/platform')
        self.assertEqual(clean_repo_path('github.com/acme/platform/'), 'acme/platform')
        self.assertEqual(clean_repo_path('acme/platform'), 'acme/platform')

    def test_merge_and_bug_fix_detection(self):
        ev = commit_event_from_item(_item('s1', 'dev', 'Merge pull request #7 from dev/fix-login'))
        self.assertTrue(ev.is_pr_merged)
        self.assertTrue(ev.is_bug_fix)
        self.assertEqual(ev.author, 'dev')
        self.assertEqual(ev.timestamp, '2025-01-02T03:04:05Z')
        plain = commit_event_from_item(_item('s2', 'dev', 'Add prefix option'))
        self.assertFalse(plain.is_pr_merged)
        self.assertFalse(plain.is_bug_fix)

    def test_files_from_detail_and_author_fallback(self):
        item = {'sha': 's3', 'author': None, 'commit': {'message': 'x', 'author': {'name': 'Ghost', 'date': ''}}}
        ev = commit_event_from_item(item, {'files': [{}, {}, {}]})
        self.assertEqual(ev.files_changed, 3)
        self.assertEqual(ev.author, 'Ghost')


class TestGitHubCommitSource(unittest.TestCase):
    def setUp(self):
        retry.configure_retry(max_retries=3, backoff_base=0, backoff_jitter=0)
        self.addCleanup(retry.reset_retry)

    def test_pages_until_short_page(self):
        first = [_item(f's{i}', 'dev', 'work') for i in range(2)]
        second = [_item('s9', 'dev', 'more')]
        with patch('ingest.retry.requests.get', side_effect=[_resp(200, first), _resp(200, second)]) as get:
            client = GitHubClient('tok', per_page=2)
            source = GitHubCommitSource(client_factory=lambda token: client)
            events = source.fetch_commits(Team('t1', repo_url='https://github.com/acme/platform'))
        self.assertEqual([e.commit_hash for e in events], ['s0', 's1', 's9'])
        self.assertEqual(get.call_args_list[0].args[0], 'https://api.github.com/repos/acme/platform/commits')
        self.assertEqual(get.call_args_list[1].kwargs['params']['page'], 2)
        self.assertEqual(get.call_args_list[0].kwargs['headers']['Authorization'], 'Bearer tok')

    def test_team_token_wins(self):
        seen = []

        class FakeClient:
            def __init__(self, token):
                seen.append(token)

            def get_commits(self, repo, since=None, until=None):
                return []

        GitHubCommitSource('default', client_factory=FakeClient).fetch_commits(Team('t1', repo_url='a/b', github_token='team-tok'))
        GitHubCommitSource('default', client_factory=FakeClient).fetch_commits(Team('t2', repo_url='a/b'))
        self.assertEqual(seen, ['team-tok', 'default'])

    def test_commit_source_is_abstract(self):
        with self.assertRaises(TypeError):
            CommitSource()

        class Incomplete(CommitSource):
            pass

        with self.assertRaises(TypeError):
            Incomplete()
        self.assertIsInstance(GitHubCommitSource('tok'), CommitSource)

    def test_missing_repo_raises(self):
        with self.assertRaises(IngestError):
            GitHubCommitSource('tok').fetch_commits(Team('t1'))

    def test_http_error_raises_ingest_error(self):
        with patch('ingest.retry.requests.get', return_value=_resp(404, {'message': 'Not Found'})):
            with self.assertRaises(IngestError):
                GitHubClient('tok').get_commits('acme/missing')


class TestRetry(unittest.TestCase):
    def setUp(self):
        self.addCleanup(retry.reset_retry)

    def test_retries_rate_limited_then_succeeds(self):
        responses = [_resp(429, {}, {'Retry-After': '0'}), _resp(200, [1, 2])]
        with patch('ingest.retry.requests.get', side_effect=responses) as get, patch('ingest.retry.time.sleep') as sleep:
            res = retry.get_with_retries('http://example.com', max_retries=3, backoff_jitter=0)
        self.assertEqual(res, {'response': [1, 2], 'status': 200})
        self.assertEqual(get.call_count, 2)
        sleep.assert_called_once()

    def test_connection_errors_exhaust_attempts(self):
        with patch('ingest.retry.requests.get', side_effect=requests.ConnectionError('down')) as get, patch('ingest.retry.time.sleep'):
            res = retry.get_with_retries('http://example.com', max_retries=2, backoff_base=0, backoff_jitter=0)
        self.assertEqual(res['status'], 0)
        self.assertEqual(get.call_count, 2)

    def test_client_error_is_not_retried(self):
        with patch('ingest.retry.requests.get', return_value=_resp(404, {'message': 'Not Found'})) as get:
            res = retry.get_with_retries('http://example.com', max_retries=5)
        self.assertEqual(res['status'], 404)
        self.assertEqual(get.call_count, 1)

    def test_runtime_configuration(self):
        retry.configure_retry(max_retries=1)
        with patch('ingest.retry.requests.get', return_value=_resp(503, {})) as get, patch('ingest.retry.time.sleep'):
            res = retry.get_with_retries('http://example.com')
        self.assertEqual(res['status'], 503)
        self.assertEqual(get.call_count, 1)

    def test_parse_retry_after(self):
        self.assertEqual(retry._parse_retry_after('2.5'), 2.5)
        self.assertIsNone(retry._parse_retry_after(None))
        self.assertEqual(retry._parse_retry_after('Wed, 21 Oct 2015 07:28:00 GMT'), 0.0)


if __name__ == '__main__':
    unittest.main()
