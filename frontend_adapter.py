"""FrontendAdapter — Shared UI state management for River Scorer frontends.

Owns the pre-game roster and configuration form, per-seat number choices
with illegal values flagged, suggested defaults, result ranking, settings
persistence and score saving. Pure Python — no rendering dependency.

Each frontend creates a FrontendAdapter wrapping a GameCoordinator and
delegates UI-state logic here, keeping only rendering and input translation
frontend-specific.
"""

import logging

from game_engine import (
    GamePhase,
    InputMode,
    is_bid_value_invalid,
    is_taken_value_invalid,
)
from score_history import record_game_results
from settings import load_settings, save_settings

logger = logging.getLogger(__name__)

# Limits of the setup form
MAX_PLAYERS = 6
MAX_CARDS_LIMIT = 10


def rank_ledgers(ledgers):
    """Order ledgers by total score, highest first, with competition ranks.

    Tied players share a rank and the next rank is skipped (1, 1, 3).

    Returns:
        List of dicts with player_id, name, total_score and rank.
    """
    ordered = sorted(ledgers, key=lambda l: l.total_score, reverse=True)
    ranked = []
    for position, ledger in enumerate(ordered, start=1):
        if ranked and ranked[-1]["total_score"] == ledger.total_score:
            rank = ranked[-1]["rank"]
        else:
            rank = position
        ranked.append({
            "player_id": ledger.player_id,
            "name": ledger.name,
            "total_score": ledger.total_score,
            "rank": rank,
        })
    return ranked


class FrontendAdapter:
    """Shared UI state for all River Scorer frontends.

    Wraps a GameCoordinator and manages the setup form, number pad choices,
    setup messages, settings and score saving.
    """

    def __init__(self, coordinator, settings_path=None, scores_path=None):
        self.coordinator = coordinator
        self.settings_path = settings_path
        self.scores_path = scores_path

        # Setup form
        self.pending_names = []
        self.max_cards_dealt = coordinator.max_cards_dealt
        self.bid_points = coordinator.bid_points
        self.setup_message = None

        # Set by finish_game(); only play_again leaves the results screen
        self.finished = False

        # One-shot flag for game-over handling
        self._results_saved = False

    # ── Settings ──────────────────────────────────────────────────────────

    def load_settings(self):
        """Load persisted configuration into the setup form."""
        settings = load_settings(self.settings_path)
        self.max_cards_dealt = settings["max_cards_dealt"]
        self.bid_points = settings["bid_points"]

    def _save_settings(self):
        """Persist current configuration to disk."""
        save_settings({
            "max_cards_dealt": self.max_cards_dealt,
            "bid_points": self.bid_points,
        }, self.settings_path)

    # ── Setup form ────────────────────────────────────────────────────────

    def add_player(self, name):
        """Add a name to the roster. Returns True if added."""
        if self.coordinator.phase is not GamePhase.SETUP:
            return False
        name = (name or "").strip()
        if not name:
            self.setup_message = "Player name cannot be empty."
            return False
        if len(self.pending_names) >= MAX_PLAYERS:
            self.setup_message = f"Maximum of {MAX_PLAYERS} players allowed."
            return False
        self.pending_names.append(name)
        self.setup_message = None
        return True

    def remove_player(self, index):
        """Remove a roster entry by position. Returns True if removed."""
        if self.coordinator.phase is not GamePhase.SETUP:
            return False
        if not 0 <= index < len(self.pending_names):
            return False
        del self.pending_names[index]
        return True

    def set_max_cards(self, value):
        """Set max cards per hand (1-10). Returns True if accepted."""
        if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= MAX_CARDS_LIMIT:
            self.setup_message = f"Max cards per hand must be a number between 1 and {MAX_CARDS_LIMIT}."
            return False
        self.max_cards_dealt = value
        self.setup_message = None
        return True

    def set_bid_points(self, value):
        """Set points for an exact bid (>= 0). Returns True if accepted."""
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            self.setup_message = "Bid points must be zero or more."
            return False
        self.bid_points = value
        self.setup_message = None
        return True

    @property
    def can_start_game(self):
        return (self.coordinator.phase is GamePhase.SETUP
                and len(self.pending_names) >= 2
                and 1 <= self.max_cards_dealt <= MAX_CARDS_LIMIT)

    def start_game(self):
        """Start a game from the setup form and remember the configuration."""
        if len(self.pending_names) < 2:
            self.setup_message = "Need at least 2 players to start."
            return False
        if not self.coordinator.start_game(list(self.pending_names),
                                           self.max_cards_dealt, self.bid_points):
            self.setup_message = self.coordinator.last_error.message
            return False
        self.setup_message = None
        self.finished = False
        self._results_saved = False
        self._save_settings()
        return True

    def play_again(self):
        """Back to setup with an empty roster. Saves results first if the game was over."""
        self._save_results()
        self.coordinator.reset_to_setup()
        self.pending_names = []
        self.setup_message = None
        self.finished = False
        self._results_saved = False

    def finish_game(self):
        """Finish & View Results: end the game after the live round, even before the last one.

        Only allowed once every seat has recorded tricks for the live round
        and no edit is open. Results are recorded with the rounds played.
        Returns True if the game was finished.
        """
        if self.finished or not self.coordinator.can_finish_game:
            return False
        self.finished = True
        logger.info("Game finished after round %d", self.coordinator.current_round)
        self._save_results()
        return True

    # ── Game actions ──────────────────────────────────────────────────────

    def after_action(self):
        """Handle side effects of the action just taken (results saving)."""
        if self.coordinator.game_over:
            self._save_results()

    @property
    def active_mode(self):
        """Mode that number input currently applies to (edited or live)."""
        state = self.coordinator.state
        return state.edit.mode if state.editing else state.mode

    @property
    def active_seat(self):
        """The seat that may enter a value now, if any."""
        coord = self.coordinator
        if coord.editing:
            return coord.editing_player_id if coord.value_under_active_edit else None
        return coord.current_actor_id

    @property
    def active_round(self):
        state = self.coordinator.state
        return state.edit.round_number if state.editing else state.current_round

    def submit_value(self, player_id, value):
        """Submit a number for the active mode (bid or taken)."""
        coord = self.coordinator
        if self.active_mode is InputMode.BIDDING:
            accepted = coord.submit_bid(player_id, value)
        else:
            accepted = coord.submit_taken(player_id, value)
        self.after_action()
        return accepted

    def do_undo(self):
        """Undo last entry. Returns True if successful."""
        accepted = self.coordinator.undo_previous_entry()
        self.after_action()
        return accepted

    # ── Data helpers ──────────────────────────────────────────────────────

    def rankings(self):
        return rank_ledgers(self.coordinator.ledgers)

    def number_choices(self, player_id):
        """Every number 0..cards dealt for the active round, with illegal ones flagged."""
        state = self.coordinator.state
        if state.phase is not GamePhase.SCORING:
            return []
        cards = state.round_info(self.active_round).cards_dealt
        if self.active_mode is InputMode.BIDDING:
            check = is_bid_value_invalid
        else:
            check = is_taken_value_invalid
        return [{"value": v, "invalid": check(state, player_id, v)} for v in range(cards + 1)]

    def suggested_taken(self, player_id):
        """Default shown on the taken pad: the player's own bid, if any."""
        state = self.coordinator.state
        if state.phase is not GamePhase.SCORING or self.active_mode is not InputMode.TAKING:
            return None
        return state.ledger_for(player_id).entry(self.active_round).bid

    def header_text(self):
        """One-line title describing where the game is."""
        coord = self.coordinator
        state = coord.state
        if state.phase is GamePhase.SETUP:
            return "Game Setup"
        if state.phase is GamePhase.DEALER_SELECTION:
            return "Select First Dealer"
        if self.finished:
            return "Final Results"
        if coord.game_over and not coord.editing:
            return "Game Over"

        round_info = state.round_info(self.active_round)
        if coord.editing:
            name = state.player_name(coord.editing_player_id)
            what = "bid" if self.active_mode is InputMode.BIDDING else "tricks taken"
            return f"Editing Round {round_info.round_number} {what}: {name}"
        if state.mode is InputMode.BIDDING:
            actor = state.player_name(coord.current_actor_id)
            phase_text = f"Bidding: {actor}'s turn" if actor else "Confirm Bids"
        else:
            actor = state.player_name(coord.current_actor_id)
            phase_text = f"Tricks Taken: {actor}'s turn" if actor else "Round Complete"
        dealer = state.player_name(coord.dealer_id)
        return (f"Round {round_info.round_number} of {len(state.rounds)} "
                f"(Cards: {round_info.cards_dealt}) (Dealer: {dealer}) - {phase_text}")

    # ── Score saving ──────────────────────────────────────────────────────

    def _save_results(self):
        """Persist final standings (idempotent — only saves once per game)."""
        if self._results_saved or not (self.coordinator.game_over or self.finished):
            return
        self._results_saved = True
        results = [{"name": r["name"], "score": r["total_score"], "rank": r["rank"]}
                   for r in self.rankings()]
        try:
            record_game_results(results, self.coordinator.current_round, path=self.scores_path)
        except OSError:
            logger.warning("Could not record game results", exc_info=True)

    # ── Full state snapshot (for web frontend) ────────────────────────────

    def _ledger_snapshot(self):
        ranks = {r["player_id"]: r["rank"] for r in self.rankings()}
        return [{
            "player_id": ledger.player_id,
            "name": ledger.name,
            "scores": [{"round_number": e.round_number, "bid": e.bid,
                        "taken": e.taken, "round_score": e.round_score}
                       for e in ledger.scores],
            "total_score": ledger.total_score,
            "rank": ranks[ledger.player_id],
        } for ledger in self.coordinator.ledgers]

    def get_game_snapshot(self):
        """Return a complete JSON-serializable dict of game + UI state."""
        coord = self.coordinator
        state = coord.state
        in_scoring = state.phase is GamePhase.SCORING

        seat = self.active_seat
        choices = self.number_choices(seat) if (in_scoring and seat is not None) else []
        suggested = self.suggested_taken(seat) if (in_scoring and seat is not None) else None

        saved = state.saved_cursor
        return {
            "phase": state.phase.value,
            "header": self.header_text(),
            "players": [{"id": p.id, "name": p.name} for p in state.players],
            "player_order": list(state.player_order),
            "rounds": [{"round_number": r.round_number, "cards_dealt": r.cards_dealt,
                        "is_up_round": r.is_up_round} for r in state.rounds],
            "ledgers": self._ledger_snapshot(),
            "rankings": self.rankings(),
            "current_round": state.current_round,
            "mode": state.mode.value,
            "dealer_id": state.dealer_id,
            "first_actor_id": state.first_actor_id,
            "current_actor_id": state.current_actor_id,
            "bids_confirmed": state.bids_confirmed,
            "game_over": coord.game_over,
            "finished": self.finished,
            "rounds_played": state.current_round if self.finished else None,
            "editing": coord.editing,
            "editing_player_id": coord.editing_player_id,
            "editing_round": state.edit.round_number if state.editing else None,
            "editing_mode": state.edit.mode.value if state.editing else None,
            "value_under_active_edit": coord.value_under_active_edit,
            "saved_cursor": None if saved is None else {
                "round_number": saved.round_number,
                "mode": saved.mode.value,
                "bids_confirmed": saved.bids_confirmed,
            },
            "active_seat": seat,
            "choices": choices,
            "suggested_value": suggested,
            "can_confirm_bids": coord.can_confirm_bids,
            "can_advance_round": coord.can_advance_round,
            "can_finish_game": coord.can_finish_game and not self.finished,
            "can_enter_edit": coord.can_enter_edit,
            "can_keep": coord.can_keep,
            "can_undo": coord.can_undo,
            "last_error": coord.last_error.message if coord.last_error else None,
            "last_error_kind": coord.last_error.kind.value if coord.last_error else None,
            "setup": {
                "names": list(self.pending_names),
                "max_cards_dealt": self.max_cards_dealt,
                "bid_points": self.bid_points,
                "can_start": self.can_start_game,
                "message": self.setup_message,
            },
            "bid_points": state.bid_points,
        }
