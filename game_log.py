"""Game log for River Scorer — records every accepted entry in order.

Pure Python, no frontend dependency. Captures bids, tricks taken, edits of
past values and values cleared by undo.
"""
from __future__ import annotations

from dataclasses import dataclass

EVENT_TYPES = ("bid", "taken", "edit_bid", "edit_taken", "undo_bid", "undo_taken")


@dataclass
class LogEntry:
    """A single logged change to the score sheet."""
    round_number: int
    player_id: str
    event_type: str                 # one of EVENT_TYPES
    value: int | None               # new value (None when cleared)
    previous: int | None = None     # value it replaced


class GameLog:
    """Accumulates LogEntry records during a game."""

    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    def log_entry(self, round_number: int, player_id: str, field: str,
                  value: int | None, previous: int | None = None, edited: bool = False) -> None:
        """Record a bid or taken value. field is "bid" or "taken"."""
        event_type = f"edit_{field}" if edited else field
        self.entries.append(LogEntry(
            round_number=round_number,
            player_id=player_id,
            event_type=event_type,
            value=value,
            previous=previous,
        ))

    def log_undo(self, round_number: int, player_id: str, field: str, previous: int | None) -> None:
        """Record a value cleared by undo."""
        self.entries.append(LogEntry(
            round_number=round_number,
            player_id=player_id,
            event_type=f"undo_{field}",
            value=None,
            previous=previous,
        ))

    def get_round_entries(self, round_number: int) -> list[LogEntry]:
        """Return all entries for a round."""
        return [e for e in self.entries if e.round_number == round_number]

    def get_player_entries(self, player_id: str) -> list[LogEntry]:
        """Return all entries for a player."""
        return [e for e in self.entries if e.player_id == player_id]

    def last_entry(self) -> LogEntry | None:
        return self.entries[-1] if self.entries else None

    def clear(self) -> None:
        """Remove all entries."""
        self.entries = []
