"""
Edit mode - review and correct every seat of a completed round.

An edit session walks the seats of one round in turn order. For each seat
the stored value is shown first (review); the user either keeps it and moves
on, or switches to active edit and submits a replacement through the normal
submit_bid()/submit_taken() actions, which then return to review for the
same seat. Passing the last seat, or cancelling, ends the session and puts
the live cursor back exactly where it was.

The ledger is only touched by accepted submissions; walking or cancelling a
session never changes a score.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Optional

from game_engine import (
    EditSession,
    GamePhase,
    GameState,
    InputMode,
    LiveCursor,
    Outcome,
    Rejection,
    check_bid,
    check_taken,
    is_count,
    next_seat,
    turn_order_for_round,
)


def _reject(state: GameState, reason: Rejection) -> Outcome:
    return Outcome(state=state, error=reason)


def enter_edit(state: GameState, round_number: Optional[int] = None,
               mode: Optional[InputMode] = None) -> Outcome:
    """
    Open an edit session on a completed round.

    Args:
        state: Current game state. The live round must have no entry in
               progress (its cycle is complete) and no session may be open.
        round_number: Round to edit; defaults to the live round.
        mode: Which value to walk; defaults to the live mode for the live
              round and to TAKING for past rounds.

    Returns:
        Outcome with a session in review on the round's first actor
    """
    if state.phase is not GamePhase.SCORING:
        return _reject(state, Rejection.WRONG_PHASE)
    if state.edit is not None:
        return _reject(state, Rejection.EDIT_IN_PROGRESS)
    if not state.turn.is_complete:
        return _reject(state, Rejection.ENTRY_IN_PROGRESS)

    if round_number is None:
        round_number = state.current_round
    if mode is None:
        mode = state.mode if round_number == state.current_round else InputMode.TAKING
    if not is_count(round_number):
        return _reject(state, Rejection.NOT_A_NUMBER)
    if not isinstance(mode, InputMode):
        return _reject(state, Rejection.WRONG_MODE)

    if not 1 <= round_number <= state.current_round:
        return _reject(state, Rejection.ROUND_NOT_EDITABLE)
    if (round_number == state.current_round and mode is InputMode.TAKING
            and state.mode is not InputMode.TAKING):
        return _reject(state, Rejection.ROUND_NOT_EDITABLE)

    saved_cursor = None
    if (round_number, mode) != (state.current_round, state.mode):
        saved_cursor = LiveCursor(round_number=state.current_round,
                                  mode=state.mode,
                                  bids_confirmed=state.bids_confirmed)

    order = turn_order_for_round(state.player_order, state.first_dealer_index, round_number)
    session = EditSession(
        round_number=round_number,
        mode=mode,
        dealer_id=order[-1],
        first_actor_id=order[0],
        editing_player_id=order[0],
        value_under_active_edit=False,
        saved_cursor=saved_cursor,
    )
    return Outcome(replace(state, edit=session))


def set_active_edit(state: GameState, active: bool = True) -> Outcome:
    """Switch the current seat between review and active edit"""
    if state.edit is None:
        return _reject(state, Rejection.NOT_EDITING)
    return Outcome(replace(state, edit=replace(state.edit, value_under_active_edit=active)))


def can_keep_current_value(state: GameState) -> bool:
    """
    Whether the seat under review may be kept as it is.

    Only the dealer can be blocked: their stored bid must still respect the
    dealer rule, and their stored taken must still make the round's tricks
    add up to the cards dealt, given any changes made to the other seats.
    """
    session = state.edit
    if session is None:
        return False
    if session.editing_player_id != session.dealer_id:
        return True

    round_info = state.round_info(session.round_number)
    entry = state.ledger_for(session.dealer_id).entry(session.round_number)
    if session.mode is InputMode.BIDDING:
        return check_bid(round_info, entry.bid, session.dealer_id,
                         session.dealer_id, state.ledgers) is None
    order = turn_order_for_round(state.player_order, state.first_dealer_index,
                                 session.round_number)
    return check_taken(round_info, entry.taken, session.dealer_id, order, state.ledgers) is None


def _finish(state: GameState) -> GameState:
    saved = state.edit.saved_cursor
    if saved is None:
        return replace(state, edit=None)
    return replace(state,
                   edit=None,
                   current_round=saved.round_number,
                   mode=saved.mode,
                   bids_confirmed=saved.bids_confirmed)


def keep_and_next(state: GameState) -> Outcome:
    """
    Keep the reviewed value and move to the next seat.

    Moving past the round's last seat ends the session.
    """
    session = state.edit
    if session is None:
        return _reject(state, Rejection.NOT_EDITING)
    if session.value_under_active_edit:
        return _reject(state, Rejection.VALUE_UNDER_EDIT)
    if not can_keep_current_value(state):
        return _reject(state, Rejection.KEEP_BLOCKED)

    following = next_seat(state.player_order, session.editing_player_id)
    if following == session.first_actor_id:
        return Outcome(_finish(state))
    return Outcome(replace(state, edit=replace(session, editing_player_id=following)))


def cancel_edit(state: GameState) -> Outcome:
    """End the session now. Values already submitted stay submitted."""
    if state.edit is None:
        return _reject(state, Rejection.NOT_EDITING)
    return Outcome(_finish(state))
