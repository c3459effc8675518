"""
GameCoordinator — Owner of the single live GameState.

Wraps the pure engine actions (game_engine, edit_mode, undo) behind one
object with a bool-returning method per user action, keeps the game log,
remembers why the last action was refused, and autosaves after every
accepted change. Frontends read coordinator properties to decide what to
render and call coordinator methods in response to user input.
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

import edit_mode
import game_engine
import undo
from game_engine import (
    DEFAULT_BID_POINTS,
    DEFAULT_MAX_CARDS_DEALT,
    EditSession,
    GamePhase,
    GameState,
    InputMode,
    LiveCursor,
    Outcome,
    Player,
    PlayerLedger,
    Rejection,
    Round,
    ScoreEntry,
    Turn,
    TurnStatus,
    validate_state,
)
from game_log import GameLog

logger = logging.getLogger(__name__)


class GameCoordinator:
    """Coordinates the live game: actions, game log, last error and autosave.

    Every action method returns True if the action was accepted. A refused
    action leaves the state untouched and records the reason in last_error.
    """

    def __init__(self, bid_points: int = DEFAULT_BID_POINTS,
                 max_cards_dealt: int = DEFAULT_MAX_CARDS_DEALT,
                 autosave_path: str | Path | None = None) -> None:
        """Initialize the coordinator in SETUP.

        Args:
            bid_points: Points for an exact bid, used by the next game.
            max_cards_dealt: Requested max cards per hand, used by the next game.
            autosave_path: File to autosave to after every accepted change.
                           None disables autosave.
        """
        self.state = GameState(bid_points=bid_points, max_cards_dealt_by_user=max_cards_dealt)
        self.autosave_path = Path(autosave_path) if autosave_path is not None else None
        self.game_log = GameLog()
        self.last_error: Rejection | None = None

    # ── Properties ────────────────────────────────────────────────────────

    @property
    def phase(self) -> GamePhase:
        return self.state.phase

    @property
    def players(self) -> tuple[Player, ...]:
        return self.state.players

    @property
    def player_order(self) -> tuple[str, ...]:
        return self.state.player_order

    @property
    def rounds(self) -> tuple[Round, ...]:
        return self.state.rounds

    @property
    def ledgers(self) -> tuple[PlayerLedger, ...]:
        return self.state.ledgers

    @property
    def current_round(self) -> int:
        return self.state.current_round

    @property
    def mode(self) -> InputMode:
        return self.state.mode

    @property
    def dealer_id(self) -> str | None:
        return self.state.dealer_id

    @property
    def first_actor_id(self) -> str | None:
        return self.state.first_actor_id

    @property
    def current_actor_id(self) -> str | None:
        return self.state.current_actor_id

    @property
    def bids_confirmed(self) -> bool:
        return self.state.bids_confirmed

    @property
    def editing(self) -> bool:
        return self.state.editing

    @property
    def editing_player_id(self) -> str | None:
        return self.state.editing_player_id

    @property
    def value_under_active_edit(self) -> bool:
        return self.state.value_under_active_edit

    @property
    def game_over(self) -> bool:
        return self.state.game_over

    @property
    def bid_points(self) -> int:
        return self.state.bid_points

    @property
    def max_cards_dealt(self) -> int:
        return self.state.max_cards_dealt_by_user

    @property
    def can_confirm_bids(self) -> bool:
        return game_engine.confirm_bids(self.state).ok

    @property
    def can_advance_round(self) -> bool:
        """Whether "next round" is available (never on the last round)."""
        return not self.state.is_last_round and game_engine.advance_round(self.state).ok

    @property
    def can_finish_game(self) -> bool:
        """Whether the live round is fully scored, so the game may end here."""
        return game_engine.advance_round(self.state).ok

    @property
    def can_enter_edit(self) -> bool:
        return edit_mode.enter_edit(self.state).ok

    @property
    def can_keep(self) -> bool:
        return edit_mode.can_keep_current_value(self.state)

    @property
    def can_undo(self) -> bool:
        return undo.can_undo(self.state)

    # ── Internal ─────────────────────────────────────────────────────────

    def _apply(self, outcome: Outcome, action: str) -> bool:
        """Commit an accepted outcome, or record why it was refused."""
        if not outcome.ok:
            self.last_error = outcome.error
            logger.info("%s refused: %s", action, outcome.error.message)
            return False
        previous = self.state
        self.state = outcome.state
        self.last_error = None
        self._record_changes(previous, outcome.state, action)
        self._autosave()
        return True

    def _record_changes(self, before: GameState, after: GameState, action: str) -> None:
        """Append a log entry for every bid/taken cell the action changed."""
        if before.ledgers is after.ledgers or before.phase is not GamePhase.SCORING:
            return
        for old_ledger, new_ledger in zip(before.ledgers, after.ledgers):
            for old, new in zip(old_ledger.scores, new_ledger.scores):
                for field in ("bid", "taken"):
                    old_value = getattr(old, field)
                    new_value = getattr(new, field)
                    if old_value == new_value:
                        continue
                    if action == "undo":
                        self.game_log.log_undo(new.round_number, new_ledger.player_id,
                                               field, old_value)
                    else:
                        self.game_log.log_entry(new.round_number, new_ledger.player_id, field,
                                                new_value, previous=old_value,
                                                edited=before.editing)

    def _autosave(self) -> None:
        if self.autosave_path is not None:
            self.save_state()

    # ── Action methods (called by frontends on input) ────────────────────

    def start_game(self, players, max_cards_dealt: int | None = None,
                   bid_points: int | None = None) -> bool:
        """Start a game with a roster of names or Player objects in seating order.

        Configuration defaults to the values this coordinator was created with.
        """
        if max_cards_dealt is None:
            max_cards_dealt = self.state.max_cards_dealt_by_user
        if bid_points is None:
            bid_points = self.state.bid_points
        outcome = game_engine.start_game(self.state, players, max_cards_dealt, bid_points)
        if outcome.ok:
            self.game_log.clear()
        return self._apply(outcome, "start_game")

    def select_dealer(self, player_id: str) -> bool:
        """Choose the dealer of round 1."""
        outcome = game_engine.select_dealer(self.state, player_id)
        if outcome.error is Rejection.NO_PLAYERS:
            logger.warning("select_dealer called with an empty roster")
        return self._apply(outcome, "select_dealer")

    def submit_bid(self, player_id: str, value) -> bool:
        return self._apply(game_engine.submit_bid(self.state, player_id, value), "submit_bid")

    def confirm_bids(self) -> bool:
        return self._apply(game_engine.confirm_bids(self.state), "confirm_bids")

    def submit_taken(self, player_id: str, value) -> bool:
        return self._apply(game_engine.submit_taken(self.state, player_id, value), "submit_taken")

    def advance_round(self) -> bool:
        """Move on to the next round. On the last round this only ends entry."""
        return self._apply(game_engine.advance_round(self.state), "advance_round")

    def enter_edit(self, round_number: int | None = None, mode: InputMode | None = None) -> bool:
        return self._apply(edit_mode.enter_edit(self.state, round_number, mode), "enter_edit")

    def set_active_edit(self, active: bool = True) -> bool:
        return self._apply(edit_mode.set_active_edit(self.state, active), "set_active_edit")

    def keep_and_next(self) -> bool:
        return self._apply(edit_mode.keep_and_next(self.state), "keep_and_next")

    def cancel_edit(self) -> bool:
        return self._apply(edit_mode.cancel_edit(self.state), "cancel_edit")

    def undo_previous_entry(self) -> bool:
        """Reverse the most recent entry. Returns True if something was undone."""
        return self._apply(undo.undo_previous_entry(self.state), "undo")

    def reset_to_setup(self) -> None:
        """Start over ("play again"), keeping only the configuration numbers."""
        if self.autosave_path is not None:
            self.clear_autosave(self.autosave_path)
        self.state = game_engine.reset_to_setup(self.state)
        self.game_log.clear()
        self.last_error = None

    # ── Autosave ──────────────────────────────────────────────────────────

    @staticmethod
    def default_autosave_path() -> Path:
        """Return the default path for the autosave file."""
        return Path.home() / ".river_scorer_autosave.json"

    @staticmethod
    def _ledger_to_dict(ledger: PlayerLedger) -> dict:
        """Serialize a PlayerLedger to a JSON-safe dict."""
        return {
            "player_id": ledger.player_id,
            "name": ledger.name,
            "scores": [
                {"round_number": e.round_number, "bid": e.bid,
                 "taken": e.taken, "round_score": e.round_score}
                for e in ledger.scores
            ],
            "total_score": ledger.total_score,
        }

    @staticmethod
    def _dict_to_ledger(data: dict) -> PlayerLedger:
        """Deserialize a dict back to a PlayerLedger."""
        return PlayerLedger(
            player_id=data["player_id"],
            name=data["name"],
            scores=tuple(
                ScoreEntry(round_number=e["round_number"], bid=e["bid"],
                           taken=e["taken"], round_score=e["round_score"])
                for e in data["scores"]
            ),
            total_score=data["total_score"],
        )

    @staticmethod
    def _edit_to_dict(session: EditSession | None) -> dict | None:
        if session is None:
            return None
        saved = session.saved_cursor
        return {
            "round_number": session.round_number,
            "mode": session.mode.value,
            "dealer_id": session.dealer_id,
            "first_actor_id": session.first_actor_id,
            "editing_player_id": session.editing_player_id,
            "value_under_active_edit": session.value_under_active_edit,
            "saved_cursor": None if saved is None else {
                "round_number": saved.round_number,
                "mode": saved.mode.value,
                "bids_confirmed": saved.bids_confirmed,
            },
        }

    @staticmethod
    def _dict_to_edit(data: dict | None) -> EditSession | None:
        if data is None:
            return None
        saved = data["saved_cursor"]
        return EditSession(
            round_number=data["round_number"],
            mode=InputMode(data["mode"]),
            dealer_id=data["dealer_id"],
            first_actor_id=data["first_actor_id"],
            editing_player_id=data["editing_player_id"],
            value_under_active_edit=data["value_under_active_edit"],
            saved_cursor=None if saved is None else LiveCursor(
                round_number=saved["round_number"],
                mode=InputMode(saved["mode"]),
                bids_confirmed=saved["bids_confirmed"],
            ),
        )

    @classmethod
    def state_to_dict(cls, state: GameState) -> dict:
        """Serialize a full GameState to a JSON-safe dict."""
        return {
            "players": [{"id": p.id, "name": p.name} for p in state.players],
            "player_order": list(state.player_order),
            "rounds": [
                {"round_number": r.round_number, "cards_dealt": r.cards_dealt,
                 "is_up_round": r.is_up_round}
                for r in state.rounds
            ],
            "ledgers": [cls._ledger_to_dict(ledger) for ledger in state.ledgers],
            "phase": state.phase.value,
            "current_round": state.current_round,
            "mode": state.mode.value,
            "first_dealer_index": state.first_dealer_index,
            "turn": {"status": state.turn.status.value, "actor_id": state.turn.actor_id},
            "bids_confirmed": state.bids_confirmed,
            "edit": cls._edit_to_dict(state.edit),
            "bid_points": state.bid_points,
            "max_cards_dealt_by_user": state.max_cards_dealt_by_user,
        }

    @classmethod
    def dict_to_state(cls, data: dict) -> GameState:
        """Deserialize a dict back to a GameState.

        Raises KeyError, TypeError or ValueError on unexpected structure.
        """
        return GameState(
            players=tuple(Player(id=p["id"], name=p["name"]) for p in data["players"]),
            player_order=tuple(data["player_order"]),
            rounds=tuple(
                Round(round_number=r["round_number"], cards_dealt=r["cards_dealt"],
                      is_up_round=r["is_up_round"])
                for r in data["rounds"]
            ),
            ledgers=tuple(cls._dict_to_ledger(ledger) for ledger in data["ledgers"]),
            phase=GamePhase(data["phase"]),
            current_round=data["current_round"],
            mode=InputMode(data["mode"]),
            first_dealer_index=data["first_dealer_index"],
            turn=Turn(status=TurnStatus(data["turn"]["status"]),
                      actor_id=data["turn"]["actor_id"]),
            bids_confirmed=data["bids_confirmed"],
            edit=cls._dict_to_edit(data["edit"]),
            bid_points=data["bid_points"],
            max_cards_dealt_by_user=data["max_cards_dealt_by_user"],
        )

    def save_state(self, path: str | Path | None = None) -> None:
        """Serialize the current game state to JSON.

        Written atomically (temp file + rename). Failures are logged and
        otherwise ignored — autosave is best-effort and never affects the
        in-memory game.
        """
        if path is None:
            path = self.autosave_path or self.default_autosave_path()
        path = Path(path)

        try:
            raw = json.dumps(self.state_to_dict(self.state), indent=2).encode()
            fd, tmp = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            closed = False
            try:
                os.write(fd, raw)
                os.close(fd)
                closed = True
                os.replace(tmp, path)
            except BaseException:
                if not closed:
                    os.close(fd)
                try:
                    os.unlink(tmp)
                except OSError:
                    pass
                raise
        except OSError:
            logger.warning("Autosave to %s failed", path, exc_info=True)

    @classmethod
    def load_state(cls, path: str | Path | None = None,
                   bid_points: int = DEFAULT_BID_POINTS,
                   max_cards_dealt: int = DEFAULT_MAX_CARDS_DEALT) -> GameCoordinator:
        """Restore a coordinator from an autosave, autosaving back to the same file.

        A missing file gives a fresh SETUP coordinator. A file that cannot be
        parsed or fails validate_state() is discarded (deleted), and a fresh
        SETUP coordinator is returned with last_error set to
        CORRUPTED_SNAPSHOT.
        """
        if path is None:
            path = cls.default_autosave_path()
        path = Path(path)
        coord = cls(bid_points=bid_points, max_cards_dealt=max_cards_dealt, autosave_path=path)

        try:
            data = json.loads(path.read_text())
        except FileNotFoundError:
            return coord
        except (json.JSONDecodeError, UnicodeDecodeError, OSError):
            logger.warning("Autosave %s is unreadable; starting a new game", path)
            coord._discard_autosave(path)
            return coord

        try:
            state = cls.dict_to_state(data)
            consistent = validate_state(state)
        except (KeyError, TypeError, ValueError, AttributeError, IndexError):
            consistent = False

        if not consistent:
            logger.warning("Autosave %s failed validation; starting a new game", path)
            coord._discard_autosave(path)
            return coord

        coord.state = state
        return coord

    def _discard_autosave(self, path: Path) -> None:
        self.last_error = Rejection.CORRUPTED_SNAPSHOT
        self.clear_autosave(path)

    @staticmethod
    def has_autosave(path: str | Path | None = None) -> bool:
        """Whether an autosave file exists (it may still fail validation)."""
        if path is None:
            path = GameCoordinator.default_autosave_path()
        return Path(path).exists()

    @staticmethod
    def clear_autosave(path: str | Path | None = None) -> None:
        """Delete the autosave file."""
        if path is None:
            path = GameCoordinator.default_autosave_path()
        path = Path(path)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            logger.warning("Could not delete autosave %s", path, exc_info=True)
