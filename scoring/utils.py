"""
Scoring utility functions.
Loads activity weights and tier thresholds used by scoring.metrics.
"""
from typing import Dict, Optional, Tuple
import os
import yaml

# filename used for the YAML configuration
CONFIG_FILENAME = 'activity.yaml'

DEFAULT_WEIGHTS = {
    'commits': 1.0,
    'pull_requests': 2.0,
    'reviews': 1.0,
    'issues': 1.0,
}

# avg activity per day below `low_below` is low, above `high_above` is high; both bounds are exclusive
DEFAULT_THRESHOLDS = {
    'low_below': 0.5,
    'high_above': 3.0,
}


def default_config_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', CONFIG_FILENAME)


def _load_document(path: Optional[str]) -> dict:
    path = path or default_config_path()
    if not os.path.exists(path):
        return {}
    try:
        with open(path, 'r', encoding='utf-8') as f:
            doc = yaml.safe_load(f) or {}
    except yaml.YAMLError as ex:
        raise ValueError(f"Failed to parse activity config {path}: {ex}") from ex
    if not isinstance(doc, dict):
        raise ValueError(f"Activity config {path} must be a mapping")
    return doc


def _merge_numbers(defaults: Dict[str, float], section, name: str) -> Dict[str, float]:
    merged = defaults.copy()
    if not section:
        return merged
    if not isinstance(section, dict):
        raise ValueError(f"'{name}' must be a mapping")
    for k, v in section.items():
        if k not in defaults:
            raise ValueError(f"Unknown {name} key: {k}")
        # bool is an int subclass; `commits: yes` is a typo, not a weight
        if isinstance(v, bool):
            raise ValueError(f"{name}.{k} must be a number, got {v!r}")
        try:
            value = float(v)
        except (TypeError, ValueError) as ex:
            raise ValueError(f"{name}.{k} must be a number, got {v!r}") from ex
        if value < 0:
            raise ValueError(f"{name}.{k} must not be negative")
        merged[k] = value
    return merged


def _weights_from(doc: dict) -> Dict[str, float]:
    return _merge_numbers(DEFAULT_WEIGHTS, doc.get('weights'), 'weights')


def _thresholds_from(doc: dict) -> Dict[str, float]:
    thresholds = _merge_numbers(DEFAULT_THRESHOLDS, doc.get('thresholds'), 'thresholds')
    if thresholds['low_below'] > thresholds['high_above']:
        raise ValueError("thresholds.low_below must not exceed thresholds.high_above")
    return thresholds


def load_weights(path: Optional[str] = None) -> Dict[str, float]:
    """
    Load per-counter weights from the YAML config (section 'weights'), falling back to defaults.
    """
    return _weights_from(_load_document(path))


def load_thresholds(path: Optional[str] = None) -> Dict[str, float]:
    return _thresholds_from(_load_document(path))


def load_config(path: Optional[str] = None) -> Tuple[Dict[str, float], Dict[str, float]]:
    """Weights and thresholds from a single read of the config file."""
    doc = _load_document(path)
    return _weights_from(doc), _thresholds_from(doc)


def compute_weighted_score(counts: Dict[str, int], weights: Dict[str, float]) -> float:
    """
    Weighted sum of counters. Missing counters are treated as zero.
    """
    total = 0.0
    for k, w in weights.items():
        total += float(counts.get(k, 0) or 0) * float(w)
    return total
