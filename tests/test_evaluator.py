"""
Pipeline tests: sync_and_score / calculate_team_rankings against an in-memory SQLite store.
"""
import unittest
from unittest.mock import patch

from evaluator import sync_and_score, calculate_team_rankings, score_team
from ingest.demo import DemoCommitSource
from ingest.sources import StaticCommitSource
from normalize.models import RawCommitEvent, Team, User, NonTechActivity, ClientFeedback, Badge, ScoreMetrics
from storage.sqlite import SQLiteStore
from scoring.utils import load_preset
from storage.store import NotFoundError


class TestTeamPipeline(unittest.TestCase):
    def setUp(self):
        self.store = SQLiteStore()
        self.store.save_team(Team('t1', 'Platform', 'acme/platform'))

    def tearDown(self):
        self.store.close()

    def _seed_two_user_scenario(self):
        self.store.save_users([User('userA', team_id='t1'), User('userB', team_id='t1')])
        self.store.mark_attendance('userA', 'Present', '2025-01-01')
        self.store.mark_attendance('userA', 'Present', '2025-01-02')
        self.store.mark_attendance('userA', 'Leave', '2025-01-03')
        self.store.mark_attendance('userB', 'Present', '2025-01-01')
        self.store.add_feedback(ClientFeedback('userA', 'Great release', '2025-01-04'))
        return StaticCommitSource([
            # impact 5.5, activity 1, collaboration 0
            RawCommitEvent('c1', 'userA', is_bug_fix=True, files_changed=1),
            # impact 3.0, activity 3, collaboration 8
            RawCommitEvent('c2', 'userA', is_pr_merged=True, pr_reviews_given=2),
        ])

    def test_two_user_scenario(self):
        scores = sync_and_score('t1', self._seed_two_user_scenario(), self.store)
        by_user = {s.user_id: s for s in scores}
        a, b = by_user['userA'], by_user['userB']

        # commit final scores are 3.5 and 0.6 + 1.8 + 1.6 = 4.0
        commit_final_base = (3.5 + 4.0) / 2
        non_tech_a = (2 / 3) * 5 + 0 + 1.5
        self.assertAlmostEqual(a.non_tech_score, non_tech_a, delta=1e-9)
        self.assertAlmostEqual(a.final_contribution_score, 0.7 * commit_final_base + 0.3 * non_tech_a, delta=1e-9)
        self.assertAlmostEqual(a.avg_impact, 4.25)
        self.assertAlmostEqual(b.non_tech_score, 5.0)
        self.assertAlmostEqual(b.final_contribution_score, 1.5)
        self.assertEqual((a.rank, b.rank), (1, 2))
        self.assertEqual(a.badge, Badge.STAR_PERFORMER)
        self.assertEqual(b.badge, Badge.BALANCED_CONTRIBUTOR)
        self.assertEqual(self.store.get_score_snapshot('t1'), scores)

    def test_commits_are_stored_normalized(self):
        sync_and_score('t1', self._seed_two_user_scenario(), self.store)
        stored = self.store.get_commits('t1')
        self.assertEqual([c.event.commit_hash for c in stored], ['c1', 'c2'])
        self.assertAlmostEqual(stored[0].metrics.final_score, 3.5)
        self.assertAlmostEqual(stored[1].metrics.final_score, 4.0)

    def test_unknown_team_raises_and_writes_nothing(self):
        with patch.object(self.store, 'save_score_snapshot') as save, patch.object(self.store, 'save_commits') as save_commits:
            with self.assertRaises(NotFoundError):
                sync_and_score('missing', DemoCommitSource(), self.store)
            save.assert_not_called()
            save_commits.assert_not_called()
        with self.assertRaises(NotFoundError):
            calculate_team_rankings('missing', self.store)

    def test_empty_pool_keeps_previous_snapshot(self):
        seeded = [ScoreMetrics('old-user', 't1', 1.0, 1.0, 0.0, 0.0, 2.0, 3.0, 1, Badge.STAR_PERFORMER)]
        self.store.save_score_snapshot('t1', seeded)
        before = [s.to_dict() for s in self.store.get_score_snapshot('t1')]

        with patch.object(self.store, 'save_score_snapshot') as save:
            # authors without declared users never enter the pool
            result = sync_and_score('t1', StaticCommitSource([RawCommitEvent('x', 'stranger', files_changed=3)]), self.store)
            save.assert_not_called()
        self.assertEqual(result, [])
        self.assertEqual([s.to_dict() for s in self.store.get_score_snapshot('t1')], before)

    def test_recompute_is_idempotent(self):
        source = self._seed_two_user_scenario()
        self.store.save_users([User('userC', team_id='t1'), User('userD', team_id='t1')])
        first = [s.to_dict() for s in sync_and_score('t1', source, self.store)]
        second = [s.to_dict() for s in sync_and_score('t1', source, self.store)]
        third = [s.to_dict() for s in calculate_team_rankings('t1', self.store)]
        self.assertEqual(first, second)
        self.assertEqual(first, third)
        # userC and userD tie at zero and keep roster order
        self.assertEqual([r['user_id'] for r in first][-2:], ['userC', 'userD'])

    def test_snapshot_is_replaced_not_merged(self):
        self.store.save_users([User('userA', team_id='t1'), User('userB', team_id='t1')])
        sync_and_score('t1', DemoCommitSource(), self.store)
        self.store.save_users([User('userB', team_id='elsewhere')])
        calculate_team_rankings('t1', self.store)
        self.assertEqual([s.user_id for s in self.store.get_score_snapshot('t1')], ['userA'])

    def test_recompute_rescores_commits_with_given_weights(self):
        self.store.save_users([User('dev', team_id='t1')])
        # activity 1, impact 2, collaboration 12
        source = StaticCommitSource([RawCommitEvent('c1', 'dev', files_changed=4, pr_reviews_given=3)])
        synced = sync_and_score('t1', source, self.store)
        self.assertAlmostEqual(synced[0].final_contribution_score, 0.7 * (0.2 * 1 + 0.6 * 2 + 0.2 * 12))

        recomputed = calculate_team_rankings('t1', self.store, load_preset('collaboration_focused'))
        self.assertAlmostEqual(recomputed[0].final_contribution_score, 0.7 * (0.2 * 1 + 0.4 * 2 + 0.4 * 12))
        self.assertEqual(self.store.get_score_snapshot('t1'), recomputed)

    def test_non_technical_score_independent_of_commits(self):
        self.store.save_users([User('ops', handle='ops-gh', team_id='t1', is_technical=False)])
        self.store.mark_attendance('ops', 'Present', '2025-01-01')
        self.store.add_non_tech_activity(NonTechActivity('ops', 'Hiring', 'Ran interviews', 3.0))
        without_commits = sync_and_score('t1', StaticCommitSource([]), self.store)
        with_commits = sync_and_score('t1', StaticCommitSource([
            RawCommitEvent('1', 'ops-gh', is_bug_fix=True, is_pr_merged=True, files_changed=20),
        ]), self.store)
        self.assertEqual(without_commits[0].final_contribution_score, without_commits[0].non_tech_score)
        self.assertEqual(with_commits[0].final_contribution_score, with_commits[0].non_tech_score)
        self.assertEqual(with_commits[0].final_contribution_score, 8.0)

    def test_demo_source_ranks_demo_team(self):
        self.store.save_users([
            User('alice', handle='alice-dev', team_id='t1'),
            User('bob', handle='bob-builds', team_id='t1'),
            User('carol', handle='carol-q', team_id='t1'),
        ])
        scores = sync_and_score('t1', DemoCommitSource(), self.store)
        self.assertEqual(sorted(s.rank for s in scores), [1, 2, 3])
        bob = next(s for s in scores if s.user_id == 'bob')
        self.assertEqual(bob.badge, Badge.HIGH_VISIBILITY_LOW_IMPACT)


class TestScoreTeam(unittest.TestCase):
    def test_empty_inputs(self):
        self.assertEqual(score_team('t1', [], [], [], [], []), [])

    def test_custom_weights_are_applied(self):
        from scoring.utils import DEFAULT_WEIGHTS
        from scoring.metrics import score_commits

        weights = dict(DEFAULT_WEIGHTS, technical_commit_share=1.0, technical_non_tech_share=0.0)
        commits = score_commits([RawCommitEvent('1', 'u1', is_bug_fix=True)], weights)
        scores = score_team('t1', commits, [User('u1', team_id='t1')], [], [], [ClientFeedback('u1', 'x', '2025-01-01')], weights)
        self.assertAlmostEqual(scores[0].final_contribution_score, 0.2 * 1 + 0.6 * 5)


if __name__ == '__main__':
    unittest.main()
