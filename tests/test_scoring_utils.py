import os
import unittest
import tempfile

from scoring.utils import load_weights, load_preset, list_presets, safe_mean, safe_ratio, DEFAULT_WEIGHTS


class TestScoringUtils(unittest.TestCase):
    def _write(self, text):
        tmp = tempfile.NamedTemporaryFile('w', suffix='.yaml', delete=False, encoding='utf-8')
        tmp.write(text)
        tmp.close()
        self.addCleanup(os.remove, tmp.name)
        return tmp.name

    def test_load_weights_defaults_when_file_missing(self):
        weights = load_weights(path='/nonexistent/weights.yaml')
        self.assertEqual(weights, DEFAULT_WEIGHTS)
        self.assertIsNot(weights, DEFAULT_WEIGHTS)

    def test_shipped_config_matches_defaults(self):
        self.assertEqual(load_weights(), DEFAULT_WEIGHTS)

    def test_yaml_overrides_and_ignores_unknown_keys(self):
        path = self._write("final_impact: 0.5\nnot_a_weight: 3\n")
        weights = load_weights(path)
        self.assertEqual(weights['final_impact'], 0.5)
        self.assertEqual(weights['final_activity'], DEFAULT_WEIGHTS['final_activity'])
        self.assertNotIn('not_a_weight', weights)

    def test_non_numeric_weight_raises(self):
        path = self._write("final_impact: lots\n")
        with self.assertRaises(ValueError):
            load_weights(path)

    def test_presets(self):
        path = self._write("attendance_scale: 10\npresets:\n  strict:\n    feedback_bonus: 0.5\n")
        self.assertEqual(list_presets(path), ['strict'])
        merged = load_preset('strict', path)
        self.assertEqual(merged['feedback_bonus'], 0.5)
        self.assertEqual(merged['attendance_scale'], 10.0)
        with self.assertRaises(ValueError):
            load_preset('missing', path)

    def test_safe_helpers(self):
        self.assertEqual(safe_mean([]), 0)
        self.assertEqual(safe_mean(iter([1.0, 2.0, 3.0])), 2.0)
        self.assertEqual(safe_ratio(3, 0), 0)


if __name__ == '__main__':
    unittest.main()
