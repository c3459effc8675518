"""
River Scorer Game Engine - Pure scoring logic without any frontend dependency

This module contains the core rules of Up and Down the River scoring: the
round schedule, seat and dealer rotation, bid/taken validation, the score
ledger and the turn cursor state machine that drives BIDDING -> TAKING ->
next round. It uses immutable data structures and pure functions so the
whole game can be unit tested without a GUI.

Every action returns an Outcome. A rejected action carries a Rejection and
the input state, unchanged.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Sequence, Tuple

DECK_SIZE = 52
MIN_PLAYERS = 2
DEFAULT_MAX_CARDS_DEALT = 7
DEFAULT_BID_POINTS = 10


class GamePhase(Enum):
    """Top-level lifecycle of a game"""
    SETUP = "SETUP"
    DEALER_SELECTION = "DEALER_SELECTION"
    SCORING = "SCORING"


class InputMode(Enum):
    """Which value is being collected for the round"""
    BIDDING = "BIDDING"
    TAKING = "TAKING"


class TurnStatus(Enum):
    AWAITING_ACTOR = "AWAITING_ACTOR"
    CYCLE_COMPLETE = "CYCLE_COMPLETE"


class ErrorKind(Enum):
    """Broad family of a rejection"""
    ILLEGAL_VALUE = "illegal_value"
    OUT_OF_TURN = "out_of_turn"
    INVALID_PHASE = "invalid_phase"
    CONFIGURATION = "configuration"
    CORRUPTED_RESTORE = "corrupted_restore"


class Rejection(Enum):
    """Every reason an action can be refused, as (kind, message)"""
    NOT_A_NUMBER = (ErrorKind.ILLEGAL_VALUE, "Value must be a whole number")
    BID_OUT_OF_RANGE = (ErrorKind.ILLEGAL_VALUE, "Bid must be between 0 and the cards dealt")
    DEALER_BID_SUM = (ErrorKind.ILLEGAL_VALUE, "Dealer may not make the bids add up to the cards dealt")
    TAKEN_NEGATIVE = (ErrorKind.ILLEGAL_VALUE, "Tricks taken cannot be negative")
    TAKEN_EXCEEDS_CARDS = (ErrorKind.ILLEGAL_VALUE, "Tricks taken cannot exceed the cards dealt")
    DEALER_TAKEN_MISMATCH = (ErrorKind.ILLEGAL_VALUE, "Dealer's tricks must make the total equal the cards dealt")

    OUT_OF_TURN = (ErrorKind.OUT_OF_TURN, "It is not this player's turn")
    UNKNOWN_PLAYER = (ErrorKind.OUT_OF_TURN, "No such player in this game")

    WRONG_PHASE = (ErrorKind.INVALID_PHASE, "Not available in the current game phase")
    WRONG_MODE = (ErrorKind.INVALID_PHASE, "Not available while collecting the other value")
    NO_PLAYERS = (ErrorKind.INVALID_PHASE, "There are no players to choose a dealer from")
    BIDS_INCOMPLETE = (ErrorKind.INVALID_PHASE, "Not every player has bid yet")
    BIDS_ALREADY_CONFIRMED = (ErrorKind.INVALID_PHASE, "Bids are already confirmed")
    ROUND_INCOMPLETE = (ErrorKind.INVALID_PHASE, "Not every player has entered tricks taken yet")
    ENTRY_IN_PROGRESS = (ErrorKind.INVALID_PHASE, "Finish entering the current round first")
    ROUND_NOT_EDITABLE = (ErrorKind.INVALID_PHASE, "That round has not been played yet")
    EDIT_IN_PROGRESS = (ErrorKind.INVALID_PHASE, "Finish or cancel the edit first")
    NOT_EDITING = (ErrorKind.INVALID_PHASE, "No edit in progress")
    NOT_UNDER_ACTIVE_EDIT = (ErrorKind.INVALID_PHASE, "Choose to change this value first")
    VALUE_UNDER_EDIT = (ErrorKind.INVALID_PHASE, "Enter a new value or go back to review first")
    KEEP_BLOCKED = (ErrorKind.INVALID_PHASE, "The dealer's value breaks the dealer rule and must be changed")
    NOTHING_TO_UNDO = (ErrorKind.INVALID_PHASE, "Nothing to undo")

    TOO_FEW_PLAYERS = (ErrorKind.CONFIGURATION, "At least two players are needed")
    BLANK_PLAYER_NAME = (ErrorKind.CONFIGURATION, "Player names cannot be empty")
    DUPLICATE_PLAYER = (ErrorKind.CONFIGURATION, "Player ids must be unique")
    INVALID_MAX_CARDS = (ErrorKind.CONFIGURATION, "Max cards must be at least 1")
    INVALID_BID_POINTS = (ErrorKind.CONFIGURATION, "Bid points cannot be negative")
    NO_ROUNDS = (ErrorKind.CONFIGURATION, "Could not generate rounds for this player count")

    CORRUPTED_SNAPSHOT = (ErrorKind.CORRUPTED_RESTORE, "Saved game is damaged and was discarded")

    @property
    def kind(self) -> ErrorKind:
        return self.value[0]

    @property
    def message(self) -> str:
        return self.value[1]


# ══════════════════════════════════════════════════════════════════════════════
# Data model
# ══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Player:
    id: str
    name: str


@dataclass(frozen=True)
class Round:
    """One entry of the round schedule"""
    round_number: int   # 1-based, no gaps
    cards_dealt: int
    is_up_round: bool   # True once the card count is climbing back up


@dataclass(frozen=True)
class ScoreEntry:
    """A player's bid, tricks taken and derived score for one round"""
    round_number: int
    bid: Optional[int] = None
    taken: Optional[int] = None
    round_score: int = 0


@dataclass(frozen=True)
class PlayerLedger:
    """All of one player's score entries plus their running total.

    total_score is always the sum of the entries' round_score; use
    with_entry() to change an entry so both stay in step.
    """
    player_id: str
    name: str
    scores: Tuple[ScoreEntry, ...]
    total_score: int = 0

    def entry(self, round_number: int) -> ScoreEntry:
        """Return the entry for a round (KeyError if the round doesn't exist)"""
        for entry in self.scores:
            if entry.round_number == round_number:
                return entry
        raise KeyError(round_number)

    def with_entry(self, round_number: int, bid_points: int, **changes) -> 'PlayerLedger':
        """Return new PlayerLedger with one entry's fields changed and scores recomputed"""
        scores = []
        for entry in self.scores:
            if entry.round_number == round_number:
                entry = replace(entry, **changes)
                entry = replace(entry, round_score=round_score(entry.bid, entry.taken, bid_points))
            scores.append(entry)
        return replace(self,
                       scores=tuple(scores),
                       total_score=sum(e.round_score for e in scores))


@dataclass(frozen=True)
class Turn:
    """Explicit cursor for the current round and mode.

    Either a seat is awaited, or every seat has entered its value
    (the cycle is complete).
    """
    status: TurnStatus
    actor_id: Optional[str] = None

    @staticmethod
    def awaiting(player_id: str) -> 'Turn':
        return Turn(status=TurnStatus.AWAITING_ACTOR, actor_id=player_id)

    @staticmethod
    def complete() -> 'Turn':
        return Turn(status=TurnStatus.CYCLE_COMPLETE)

    @property
    def is_complete(self) -> bool:
        return self.status is TurnStatus.CYCLE_COMPLETE


@dataclass(frozen=True)
class LiveCursor:
    """Where the live game was when an edit relocated to another round/mode"""
    round_number: int
    mode: InputMode
    bids_confirmed: bool


@dataclass(frozen=True)
class EditSession:
    """Edit-mode overlay: walks every seat of one (possibly past) round.

    Kept apart from the live cursor fields so that editing never
    overwrites them; saved_cursor is restored verbatim when the session ends.
    """
    round_number: int
    mode: InputMode
    dealer_id: str
    first_actor_id: str
    editing_player_id: str
    value_under_active_edit: bool = False
    saved_cursor: Optional[LiveCursor] = None


@dataclass(frozen=True)
class GameState:
    """Immutable game state - the whole game at a point in time"""
    players: Tuple[Player, ...] = ()
    player_order: Tuple[str, ...] = ()
    rounds: Tuple[Round, ...] = ()
    ledgers: Tuple[PlayerLedger, ...] = ()
    phase: GamePhase = GamePhase.SETUP
    current_round: int = 1
    mode: InputMode = InputMode.BIDDING
    first_dealer_index: Optional[int] = None
    turn: Turn = Turn(status=TurnStatus.CYCLE_COMPLETE)
    bids_confirmed: bool = False
    edit: Optional[EditSession] = None
    bid_points: int = DEFAULT_BID_POINTS
    max_cards_dealt_by_user: int = DEFAULT_MAX_CARDS_DEALT

    @property
    def dealer_id(self) -> Optional[str]:
        """Dealer of the live round"""
        if self.first_dealer_index is None or not self.player_order:
            return None
        return dealer_for_round(self.player_order, self.first_dealer_index, self.current_round)

    @property
    def first_actor_id(self) -> Optional[str]:
        """First bidder (and first trick recorder) of the live round"""
        if self.first_dealer_index is None or not self.player_order:
            return None
        return first_actor_for_round(self.player_order, self.first_dealer_index, self.current_round)

    @property
    def current_actor_id(self) -> Optional[str]:
        return self.turn.actor_id

    @property
    def current_round_info(self) -> Optional[Round]:
        if not self.rounds:
            return None
        return self.round_info(self.current_round)

    @property
    def is_last_round(self) -> bool:
        return bool(self.rounds) and self.current_round == len(self.rounds)

    @property
    def editing(self) -> bool:
        return self.edit is not None

    @property
    def editing_player_id(self) -> Optional[str]:
        return self.edit.editing_player_id if self.edit else None

    @property
    def value_under_active_edit(self) -> bool:
        return self.edit.value_under_active_edit if self.edit else False

    @property
    def saved_cursor(self) -> Optional[LiveCursor]:
        return self.edit.saved_cursor if self.edit else None

    @property
    def game_over(self) -> bool:
        """Every player's final-round taken is recorded.

        Derived rather than stored so edit and undo keep working on the
        final score sheet.
        """
        if self.phase is not GamePhase.SCORING or not self.rounds or not self.ledgers:
            return False
        last = len(self.rounds)
        return all(ledger.entry(last).taken is not None for ledger in self.ledgers)

    def round_info(self, round_number: int) -> Round:
        return self.rounds[round_number - 1]

    def ledger_for(self, player_id: str) -> PlayerLedger:
        for ledger in self.ledgers:
            if ledger.player_id == player_id:
                return ledger
        raise KeyError(player_id)

    def player_name(self, player_id: Optional[str]) -> Optional[str]:
        for player in self.players:
            if player.id == player_id:
                return player.name
        return None


@dataclass(frozen=True)
class Outcome:
    """Result of an action: the new state, or the old one plus the reason it was refused"""
    state: GameState
    error: Optional[Rejection] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _reject(state: GameState, reason: Rejection) -> Outcome:
    return Outcome(state=state, error=reason)


# ══════════════════════════════════════════════════════════════════════════════
# Round schedule
# ══════════════════════════════════════════════════════════════════════════════

def actual_max_cards(player_count: int, max_cards: int) -> int:
    """Clamp the requested max cards so every player can be dealt from one deck.

    The clamp is skipped when there are no players.
    """
    if player_count <= 0:
        return max_cards
    return min(max_cards, DECK_SIZE // player_count)


def generate_rounds(player_count: int, max_cards: int) -> Tuple[Round, ...]:
    """
    Build the round schedule: down from the max to 1, then back up to the max.

    Args:
        player_count: Number of players at the table
        max_cards: Maximum cards per hand requested by the user

    Returns:
        Tuple of Round, numbered from 1. Empty if not even one card can be dealt.
    """
    actual_max = actual_max_cards(player_count, max_cards)
    if actual_max < 1:
        return ()
    card_counts = list(range(actual_max, 0, -1)) + list(range(2, actual_max + 1))
    return tuple(
        Round(round_number=number, cards_dealt=cards, is_up_round=number > actual_max)
        for number, cards in enumerate(card_counts, start=1)
    )


# ══════════════════════════════════════════════════════════════════════════════
# Turn order
# ══════════════════════════════════════════════════════════════════════════════

def seat_at_offset(order: Sequence[str], seat_id: str, offset: int) -> str:
    """Return the seat `offset` steps from seat_id, wrapping around the table"""
    index = list(order).index(seat_id)
    return order[(index + offset) % len(order)]


def next_seat(order: Sequence[str], seat_id: str) -> str:
    return seat_at_offset(order, seat_id, 1)


def previous_seat(order: Sequence[str], seat_id: str) -> str:
    return seat_at_offset(order, seat_id, -1)


def dealer_for_round(order: Sequence[str], first_dealer_index: int, round_number: int) -> str:
    """Dealer of any round, computed directly from the first dealer's seat"""
    return order[(first_dealer_index + round_number - 1) % len(order)]


def first_actor_for_round(order: Sequence[str], first_dealer_index: int, round_number: int) -> str:
    """The seat after the dealer bids and records tricks first"""
    return next_seat(order, dealer_for_round(order, first_dealer_index, round_number))


def turn_order_for_round(order: Sequence[str], first_dealer_index: int,
                         round_number: int) -> Tuple[str, ...]:
    """Every seat once, starting with the first actor and ending with the dealer"""
    first = first_actor_for_round(order, first_dealer_index, round_number)
    start = list(order).index(first)
    return tuple(order[(start + i) % len(order)] for i in range(len(order)))


# ══════════════════════════════════════════════════════════════════════════════
# Score ledger
# ══════════════════════════════════════════════════════════════════════════════

def round_score(bid: Optional[int], taken: Optional[int], bid_points: int) -> int:
    """Points for one round: bid_points + bid when the bid is made exactly, else 0"""
    if bid is None or taken is None:
        return 0
    if bid == taken:
        return bid_points + bid
    return 0


def new_ledgers(players: Sequence[Player], rounds: Sequence[Round]) -> Tuple[PlayerLedger, ...]:
    """A zeroed ledger for every (player, round) pair"""
    return tuple(
        PlayerLedger(
            player_id=player.id,
            name=player.name,
            scores=tuple(ScoreEntry(round_number=r.round_number) for r in rounds),
            total_score=0,
        )
        for player in players
    )


def _update_entry(ledgers, player_id, round_number, bid_points, **changes):
    updated = []
    found = False
    for ledger in ledgers:
        if ledger.player_id == player_id:
            ledger = ledger.with_entry(round_number, bid_points, **changes)
            found = True
        updated.append(ledger)
    if not found:
        raise KeyError(player_id)
    return tuple(updated)


def set_bid(ledgers, player_id, round_number, value, bid_points):
    """Write a bid and recompute that player's scores. No legality checks."""
    return _update_entry(ledgers, player_id, round_number, bid_points, bid=value)


def set_taken(ledgers, player_id, round_number, value, bid_points):
    """Write tricks taken and recompute that player's scores. No legality checks."""
    return _update_entry(ledgers, player_id, round_number, bid_points, taken=value)


def clear_bid(ledgers, player_id, round_number, bid_points):
    return _update_entry(ledgers, player_id, round_number, bid_points, bid=None)


def clear_taken(ledgers, player_id, round_number, bid_points):
    return _update_entry(ledgers, player_id, round_number, bid_points, taken=None)


def clear_round_taken(ledgers, round_number, bid_points):
    """Clear every player's tricks taken for one round"""
    return tuple(ledger.with_entry(round_number, bid_points, taken=None) for ledger in ledgers)


# ══════════════════════════════════════════════════════════════════════════════
# Validation rules
# ══════════════════════════════════════════════════════════════════════════════

def is_count(value) -> bool:
    """A whole number; bools are rejected even though they subclass int."""
    return isinstance(value, int) and not isinstance(value, bool)


def check_bid(round_info: Round, value, player_id: str, dealer_id: str,
              ledgers: Sequence[PlayerLedger]) -> Optional[Rejection]:
    """
    Check whether a bid is legal.

    Any bid from 0 to the cards dealt is allowed, except that the dealer may
    not bid the amount that makes all bids add up to the cards dealt
    ("screw the dealer").

    Returns:
        None if legal, otherwise the Rejection naming the failed rule
    """
    if not is_count(value):
        return Rejection.NOT_A_NUMBER
    if not 0 <= value <= round_info.cards_dealt:
        return Rejection.BID_OUT_OF_RANGE
    if player_id == dealer_id:
        others = 0
        for ledger in ledgers:
            if ledger.player_id == player_id:
                continue
            bid = ledger.entry(round_info.round_number).bid
            if bid is not None:
                others += bid
        if others + value == round_info.cards_dealt:
            return Rejection.DEALER_BID_SUM
    return None


def check_taken(round_info: Round, value, player_id: str, order: Sequence[str],
                ledgers: Sequence[PlayerLedger]) -> Optional[Rejection]:
    """
    Check whether a tricks-taken value is legal.

    Only the tricks of seats before player_id in the round's turn order are
    counted. The dealer (last in order) must bring the total exactly to the
    cards dealt; everyone else may not push it past the cards dealt.

    Args:
        order: The round's turn order, first actor first and dealer last

    Returns:
        None if legal, otherwise the Rejection naming the failed rule
    """
    if not is_count(value):
        return Rejection.NOT_A_NUMBER
    if value < 0:
        return Rejection.TAKEN_NEGATIVE
    preceding = set(order[:list(order).index(player_id)])
    preceding_sum = 0
    for ledger in ledgers:
        if ledger.player_id in preceding:
            taken = ledger.entry(round_info.round_number).taken
            if taken is not None:
                preceding_sum += taken
    if player_id == order[-1]:
        if preceding_sum + value != round_info.cards_dealt:
            return Rejection.DEALER_TAKEN_MISMATCH
    elif preceding_sum + value > round_info.cards_dealt:
        return Rejection.TAKEN_EXCEEDS_CARDS
    return None


def _round_order(state: GameState, round_number: int) -> Tuple[str, ...]:
    return turn_order_for_round(state.player_order, state.first_dealer_index, round_number)


def check_entry(state: GameState, mode: InputMode, round_number: int,
                player_id: str, value) -> Optional[Rejection]:
    """Run the bid or taken rule for a seat of any round of this game"""
    round_info = state.round_info(round_number)
    order = _round_order(state, round_number)
    if mode is InputMode.BIDDING:
        return check_bid(round_info, value, player_id, order[-1], state.ledgers)
    return check_taken(round_info, value, player_id, order, state.ledgers)


def _active_round(state: GameState) -> int:
    """Round that submissions apply to: the edited round, or the live one"""
    return state.edit.round_number if state.edit else state.current_round


def is_bid_value_invalid(state: GameState, player_id: str, value) -> bool:
    """Whether a displayed bid choice would be refused for this seat.

    Used to grey out choices; evaluated on the edited round while editing.
    """
    if state.phase is not GamePhase.SCORING or player_id not in state.player_order:
        return True
    return check_entry(state, InputMode.BIDDING, _active_round(state), player_id, value) is not None


def is_taken_value_invalid(state: GameState, player_id: str, value) -> bool:
    """Whether a displayed tricks-taken choice would be refused for this seat"""
    if state.phase is not GamePhase.SCORING or player_id not in state.player_order:
        return True
    return check_entry(state, InputMode.TAKING, _active_round(state), player_id, value) is not None


# ══════════════════════════════════════════════════════════════════════════════
# Turn cursor state machine
# ══════════════════════════════════════════════════════════════════════════════

def start_game(state: GameState, players: Sequence, max_cards_dealt_by_user: int,
               bid_points: int) -> Outcome:
    """
    Start a game from SETUP: build the schedule and a zeroed ledger.

    Args:
        state: Current state (must be in SETUP)
        players: Player instances or plain names, in seating order.
                 Names get a generated id.
        max_cards_dealt_by_user: Requested maximum cards per hand (>= 1)
        bid_points: Points for making a bid exactly (>= 0)

    Returns:
        Outcome with phase DEALER_SELECTION, or a CONFIGURATION rejection
        leaving the state in SETUP
    """
    if state.phase is not GamePhase.SETUP:
        return _reject(state, Rejection.WRONG_PHASE)

    roster = []
    for player in players:
        if not isinstance(player, Player):
            player = Player(id=uuid.uuid4().hex, name=str(player).strip())
        if not player.name.strip():
            return _reject(state, Rejection.BLANK_PLAYER_NAME)
        roster.append(player)

    if len(roster) < MIN_PLAYERS:
        return _reject(state, Rejection.TOO_FEW_PLAYERS)
    if len({p.id for p in roster}) != len(roster):
        return _reject(state, Rejection.DUPLICATE_PLAYER)
    if not is_count(max_cards_dealt_by_user) or max_cards_dealt_by_user < 1:
        return _reject(state, Rejection.INVALID_MAX_CARDS)
    if not is_count(bid_points) or bid_points < 0:
        return _reject(state, Rejection.INVALID_BID_POINTS)

    rounds = generate_rounds(len(roster), max_cards_dealt_by_user)
    if not rounds:
        return _reject(state, Rejection.NO_ROUNDS)

    return Outcome(GameState(
        players=tuple(roster),
        player_order=tuple(p.id for p in roster),
        rounds=rounds,
        ledgers=new_ledgers(roster, rounds),
        phase=GamePhase.DEALER_SELECTION,
        bid_points=bid_points,
        max_cards_dealt_by_user=max_cards_dealt_by_user,
    ))


def select_dealer(state: GameState, player_id: str) -> Outcome:
    """Fix the first dealer and open bidding for round 1"""
    if state.phase is not GamePhase.DEALER_SELECTION:
        return _reject(state, Rejection.WRONG_PHASE)
    if not state.player_order:
        return _reject(state, Rejection.NO_PLAYERS)
    if player_id not in state.player_order:
        return _reject(state, Rejection.UNKNOWN_PLAYER)

    first_dealer_index = state.player_order.index(player_id)
    first_actor = first_actor_for_round(state.player_order, first_dealer_index, 1)
    return Outcome(replace(state,
                           phase=GamePhase.SCORING,
                           first_dealer_index=first_dealer_index,
                           current_round=1,
                           mode=InputMode.BIDDING,
                           bids_confirmed=False,
                           turn=Turn.awaiting(first_actor)))


def _advance_turn(state: GameState, player_id: str) -> Turn:
    following = next_seat(state.player_order, player_id)
    if following == state.first_actor_id:
        return Turn.complete()
    return Turn.awaiting(following)


def _write_value(state: GameState, mode: InputMode, player_id: str,
                 round_number: int, value: int) -> Tuple[PlayerLedger, ...]:
    if mode is InputMode.BIDDING:
        return set_bid(state.ledgers, player_id, round_number, value, state.bid_points)
    return set_taken(state.ledgers, player_id, round_number, value, state.bid_points)


def _submit_edited_value(state: GameState, mode: InputMode, player_id: str, value) -> Outcome:
    """Replace the edited seat's value and return to review for the same seat"""
    session = state.edit
    if session.mode is not mode:
        return _reject(state, Rejection.WRONG_MODE)
    if player_id != session.editing_player_id:
        return _reject(state, Rejection.OUT_OF_TURN)
    if not session.value_under_active_edit:
        return _reject(state, Rejection.NOT_UNDER_ACTIVE_EDIT)

    error = check_entry(state, mode, session.round_number, player_id, value)
    if error is not None:
        return _reject(state, error)

    ledgers = _write_value(state, mode, player_id, session.round_number, value)
    return Outcome(replace(state,
                           ledgers=ledgers,
                           edit=replace(session, value_under_active_edit=False)))


def _submit_live_value(state: GameState, mode: InputMode, player_id: str, value) -> Outcome:
    if state.phase is not GamePhase.SCORING:
        return _reject(state, Rejection.WRONG_PHASE)
    if state.mode is not mode:
        return _reject(state, Rejection.WRONG_MODE)
    if mode is InputMode.TAKING and not state.bids_confirmed:
        return _reject(state, Rejection.WRONG_MODE)
    if player_id not in state.player_order:
        return _reject(state, Rejection.UNKNOWN_PLAYER)
    if state.turn.is_complete or player_id != state.turn.actor_id:
        return _reject(state, Rejection.OUT_OF_TURN)

    error = check_entry(state, mode, state.current_round, player_id, value)
    if error is not None:
        return _reject(state, error)

    ledgers = _write_value(state, mode, player_id, state.current_round, value)
    return Outcome(replace(state, ledgers=ledgers, turn=_advance_turn(state, player_id)))


def submit_bid(state: GameState, player_id: str, value) -> Outcome:
    """
    Record a bid for the seat whose turn it is (or the seat being edited).

    On success the cursor moves to the next seat; after the dealer bids the
    cycle is complete and bids wait for confirm_bids(). While editing, the
    session returns to review for the same seat instead.
    """
    if state.edit is not None:
        return _submit_edited_value(state, InputMode.BIDDING, player_id, value)
    return _submit_live_value(state, InputMode.BIDDING, player_id, value)


def submit_taken(state: GameState, player_id: str, value) -> Outcome:
    """Record tricks taken for the seat whose turn it is (or the seat being edited)"""
    if state.edit is not None:
        return _submit_edited_value(state, InputMode.TAKING, player_id, value)
    return _submit_live_value(state, InputMode.TAKING, player_id, value)


def _live_dealer_error(state: GameState, mode: InputMode) -> Optional[Rejection]:
    """Re-check the dealer's stored value for the live round.

    An edit cancelled half way can change other seats' values after the
    dealer entered theirs.
    """
    dealer = state.dealer_id
    entry = state.ledger_for(dealer).entry(state.current_round)
    value = entry.bid if mode is InputMode.BIDDING else entry.taken
    return check_entry(state, mode, state.current_round, dealer, value)


def confirm_bids(state: GameState) -> Outcome:
    """Lock in a complete set of bids and start recording tricks taken"""
    if state.edit is not None:
        return _reject(state, Rejection.EDIT_IN_PROGRESS)
    if state.phase is not GamePhase.SCORING:
        return _reject(state, Rejection.WRONG_PHASE)
    if state.mode is not InputMode.BIDDING or state.bids_confirmed:
        return _reject(state, Rejection.BIDS_ALREADY_CONFIRMED)
    if not state.turn.is_complete:
        return _reject(state, Rejection.BIDS_INCOMPLETE)
    error = _live_dealer_error(state, InputMode.BIDDING)
    if error is not None:
        return _reject(state, error)
    return Outcome(replace(state,
                           bids_confirmed=True,
                           mode=InputMode.TAKING,
                           turn=Turn.awaiting(state.first_actor_id)))


def advance_round(state: GameState) -> Outcome:
    """
    Move to the next round once every seat has recorded tricks taken.

    The dealer moves one seat on and bidding reopens. On the last round there
    is nothing to advance to: the game is over and only edit and undo can
    change it further.
    """
    if state.edit is not None:
        return _reject(state, Rejection.EDIT_IN_PROGRESS)
    if state.phase is not GamePhase.SCORING:
        return _reject(state, Rejection.WRONG_PHASE)
    if state.mode is not InputMode.TAKING or not state.bids_confirmed or not state.turn.is_complete:
        return _reject(state, Rejection.ROUND_INCOMPLETE)
    error = _live_dealer_error(state, InputMode.TAKING)
    if error is not None:
        return _reject(state, error)

    if state.is_last_round:
        return Outcome(replace(state, turn=Turn.complete()))

    next_round = state.current_round + 1
    first_actor = first_actor_for_round(state.player_order, state.first_dealer_index, next_round)
    return Outcome(replace(state,
                           current_round=next_round,
                           mode=InputMode.BIDDING,
                           bids_confirmed=False,
                           turn=Turn.awaiting(first_actor)))


def reset_to_setup(state: GameState) -> GameState:
    """Fresh SETUP state keeping only the two configuration scalars ("play again")"""
    return GameState(bid_points=state.bid_points,
                     max_cards_dealt_by_user=state.max_cards_dealt_by_user)


# ══════════════════════════════════════════════════════════════════════════════
# Structural validation (restored snapshots)
# ══════════════════════════════════════════════════════════════════════════════

def _ledgers_consistent(state: GameState) -> bool:
    for round_info in state.rounds:
        if not (is_count(round_info.round_number) and is_count(round_info.cards_dealt)
                and isinstance(round_info.is_up_round, bool)):
            return False
    if [l.player_id for l in state.ledgers] != [p.id for p in state.players]:
        return False
    for ledger in state.ledgers:
        if [e.round_number for e in ledger.scores] != [r.round_number for r in state.rounds]:
            return False
        for entry, round_info in zip(ledger.scores, state.rounds):
            for value in (entry.bid, entry.taken):
                if value is not None and (not is_count(value) or not 0 <= value <= round_info.cards_dealt):
                    return False
            if not is_count(entry.round_number) or not is_count(entry.round_score):
                return False
            if entry.round_score != round_score(entry.bid, entry.taken, state.bid_points):
                return False
        if not is_count(ledger.total_score):
            return False
        if ledger.total_score != sum(e.round_score for e in ledger.scores):
            return False
    return True


def _edit_consistent(state: GameState) -> bool:
    session = state.edit
    if session is None:
        return True
    if not is_count(session.round_number) or not 1 <= session.round_number <= state.current_round:
        return False
    if not isinstance(session.mode, InputMode) or not isinstance(session.value_under_active_edit, bool):
        return False
    # the live cursor never moves while a session is open
    live = LiveCursor(round_number=state.current_round, mode=state.mode,
                      bids_confirmed=state.bids_confirmed)
    saved = session.saved_cursor
    if saved is not None:
        if not is_count(saved.round_number) or not isinstance(saved.bids_confirmed, bool):
            return False
        if saved != live:
            return False
    order = _round_order(state, session.round_number)
    if session.dealer_id != order[-1] or session.first_actor_id != order[0]:
        return False
    return session.editing_player_id in order


def validate_state(state: GameState) -> bool:
    """
    Check that a state (typically restored from disk) is internally consistent.

    Returns:
        True if every invariant of the data model holds
    """
    if not is_count(state.bid_points) or state.bid_points < 0:
        return False
    if not is_count(state.max_cards_dealt_by_user) or state.max_cards_dealt_by_user < 1:
        return False

    if state.phase is GamePhase.SETUP:
        return not state.rounds and not state.ledgers and state.edit is None

    ids = [p.id for p in state.players]
    if len(ids) < MIN_PLAYERS or len(set(ids)) != len(ids):
        return False
    if sorted(state.player_order) != sorted(ids):
        return False
    if state.rounds != generate_rounds(len(ids), state.max_cards_dealt_by_user):
        return False
    if not _ledgers_consistent(state):
        return False

    if state.phase is GamePhase.DEALER_SELECTION:
        return state.first_dealer_index is None and state.edit is None

    if not is_count(state.first_dealer_index) or not 0 <= state.first_dealer_index < len(ids):
        return False
    if not is_count(state.current_round) or not 1 <= state.current_round <= len(state.rounds):
        return False
    if not isinstance(state.bids_confirmed, bool):
        return False
    if state.bids_confirmed != (state.mode is InputMode.TAKING):
        return False
    if state.turn.is_complete:
        if state.turn.actor_id is not None:
            return False
    elif state.turn.actor_id not in state.player_order:
        return False
    if state.edit is not None and not state.turn.is_complete:
        return False
    return _edit_consistent(state)
