"""Score history persistence for River Scorer.

Stores the final standings of finished games in ~/.river_scorer_scores.json
as a JSON list, capped at 1000 entries. No frontend dependency.
"""

import json
from datetime import datetime
from pathlib import Path

MAX_ENTRIES = 1000


def _default_path():
    """Return the default path for the scores file."""
    return Path.home() / ".river_scorer_scores.json"


def _load_scores(path=None):
    """Load scores from the JSON file. Returns empty list on missing/corrupt."""
    if path is None:
        path = _default_path()
    path = Path(path)
    try:
        data = json.loads(path.read_text())
        if isinstance(data, list):
            return data
        return []
    except (FileNotFoundError, json.JSONDecodeError, OSError):
        return []


def _save_scores(entries, path=None):
    """Write score entries to the JSON file."""
    if path is None:
        path = _default_path()
    path = Path(path)
    path.write_text(json.dumps(entries, indent=2))


def record_game_results(results, rounds_played, path=None):
    """Record the final standings of one game.

    Args:
        results: list of dicts with keys 'name', 'score' and 'rank'.
        rounds_played: number of rounds played before the game ended.

    Creates one entry per player sharing the same date. Drops the oldest
    entries if the list exceeds MAX_ENTRIES.
    """
    entries = _load_scores(path)
    date = datetime.now().isoformat()
    for result in results:
        entries.append({
            "name": result["name"],
            "score": result["score"],
            "rank": result["rank"],
            "rounds": rounds_played,
            "date": date,
        })
    if len(entries) > MAX_ENTRIES:
        entries = entries[-MAX_ENTRIES:]
    _save_scores(entries, path)


def get_high_scores(limit=10, path=None):
    """Return top scores sorted descending.

    Args:
        limit: maximum number of entries to return (default 10).

    Returns:
        List of score entry dicts, highest scores first.
    """
    entries = _load_scores(path)
    entries.sort(key=lambda e: e.get("score", 0), reverse=True)
    return entries[:limit]


def get_all_scores(path=None):
    """Return all score entries."""
    return _load_scores(path)
