"""
Scoring utility functions.
Provides weight loading and small numeric helpers used by scoring.metrics and scoring.classify.
"""
from typing import Dict, Iterable, Optional
import logging
import os

import yaml

logger = logging.getLogger(__name__)

# filename used for weight YAML configuration
WEIGHTS_FILENAME = 'weights.yaml'

DEFAULT_WEIGHTS = {
    # commit-level activity
    'activity_base': 1.0,
    'activity_pr_merged': 2.0,
    # commit-level impact
    'impact_bug_fix': 5.0,
    'impact_pr_merged': 3.0,
    'impact_per_file': 0.5,
    # commit-level collaboration
    'collab_pr_review': 4.0,
    'collab_review_comment': 2.0,
    'collab_issue_comment': 1.5,
    # commit-level visibility (not part of the commit final score)
    'visibility_slack_message': 1.0,
    'visibility_slack_thread': 2.0,
    'visibility_slack_mention': 1.5,
    # commit final score blend
    'final_activity': 0.2,
    'final_impact': 0.6,
    'final_collaboration': 0.2,
    # role-aware composite for technical users
    'technical_commit_share': 0.7,
    'technical_non_tech_share': 0.3,
    # non-technical signals
    'attendance_scale': 5.0,
    'feedback_bonus': 1.5,
    # badge thresholds
    'star_performer_factor': 1.2,
}


def default_weights_path() -> str:
    """Return the weights file location: $CONTRIB_WEIGHTS_FILE or config/weights.yaml at the project root."""
    env_path = os.getenv('CONTRIB_WEIGHTS_FILE')
    if env_path:
        return env_path
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', WEIGHTS_FILENAME)


def _read_yaml(path: str) -> dict:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            doc = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as ex:
        raise ValueError(f"Failed to load weights from {path}: {ex}")
    if not isinstance(doc, dict):
        raise ValueError(f"Weights file {path} must contain a mapping")
    return doc


def _merge_weights(base: Dict[str, float], overrides: dict, path: str) -> Dict[str, float]:
    merged = base.copy()
    for k, v in overrides.items():
        if k not in DEFAULT_WEIGHTS:
            continue
        try:
            merged[k] = float(v)
        except (TypeError, ValueError):
            raise ValueError(f"Weight '{k}' in {path} is not numeric: {v!r}")
    return merged


def load_weights(path: Optional[str] = None) -> Dict[str, float]:
    """
    Load scoring weights from a YAML file if present, otherwise return defaults.
    Unknown keys (including the 'presets' section) are ignored; missing keys keep their default.
    """
    path = path or default_weights_path()
    if not os.path.exists(path):
        return DEFAULT_WEIGHTS.copy()
    weights = _merge_weights(DEFAULT_WEIGHTS, _read_yaml(path), path)
    logger.debug("Loaded scoring weights from %s", path)
    return weights


def load_preset(preset_name: str, path: Optional[str] = None) -> Dict[str, float]:
    """
    Return the base weights with the named preset merged over them.

    Example:
        merged = load_preset('collaboration_focused')

    Raises ValueError if the file or the preset does not exist.
    """
    path = path or default_weights_path()
    if not os.path.exists(path):
        raise ValueError(f"Weights config file not found at: {path}")
    base = load_weights(path)
    presets = _read_yaml(path).get('presets') or {}
    if preset_name not in presets:
        raise ValueError(f"Preset '{preset_name}' not found in {path}")
    return _merge_weights(base, presets.get(preset_name) or {}, path)


def list_presets(path: Optional[str] = None) -> list:
    """Return a list of available preset names from the weights YAML (or empty list)."""
    path = path or default_weights_path()
    if not os.path.exists(path):
        return []
    presets = _read_yaml(path).get('presets') or {}
    return list(presets.keys())


def safe_mean(values: Iterable[float]) -> float:
    """Arithmetic mean; an empty input yields 0."""
    values = list(values)
    if not values:
        return 0.0
    return sum(values) / len(values)


def safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0
