"""Persistent settings for River Scorer.

Stores the two game configuration numbers in ~/.river_scorer_settings.json.
No frontend dependency — follows the same pattern as score_history.py.
"""

import json
from pathlib import Path

DEFAULTS = {
    "max_cards_dealt": 7,
    "bid_points": 10,
}

# Smallest value each setting accepts
_MINIMUMS = {
    "max_cards_dealt": 1,
    "bid_points": 0,
}


def _default_path():
    """Return the default path for the settings file."""
    return Path.home() / ".river_scorer_settings.json"


def _valid(key, value):
    return isinstance(value, int) and not isinstance(value, bool) and value >= _MINIMUMS[key]


def load_settings(path=None):
    """Load settings from JSON file. Returns DEFAULTS on missing/corrupt.

    Merges with DEFAULTS so missing keys get default values.
    Unknown keys are ignored, and so are values that are not
    whole numbers in range.
    """
    if path is None:
        path = _default_path()
    path = Path(path)
    try:
        data = json.loads(path.read_text())
        if not isinstance(data, dict):
            return dict(DEFAULTS)
        result = dict(DEFAULTS)
        for key in DEFAULTS:
            if key in data and _valid(key, data[key]):
                result[key] = data[key]
        return result
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return dict(DEFAULTS)


def save_settings(settings, path=None):
    """Write settings dict to JSON. Silently ignores write errors."""
    if path is None:
        path = _default_path()
    path = Path(path)
    try:
        path.write_text(json.dumps(settings, indent=2))
    except OSError:
        pass
