"""
Undo - step the live cursor back by exactly one entry.

The position of the cursor decides what the previous entry was:

- a seat is awaited mid-round: the seat before it entered last
- the cycle is complete (bids awaiting confirmation, round fully taken or
  the game is over): the dealer entered last
- the first trick recorder is awaited: the bids were just confirmed, so
  bidding reopens on the dealer and the round's tricks are cleared; the
  dealer's bid stays until they bid again or undo moves past them
- the first bidder is awaited: the previous round's dealer recorded tricks
  last, so the cursor goes back to that round and clears them

Each call clears exactly one stored value (or the round's tricks, in the
confirm case) through the ledger, so scores and totals stay in step.
"""
from __future__ import annotations

from dataclasses import replace

from game_engine import (
    GamePhase,
    GameState,
    InputMode,
    Outcome,
    Rejection,
    Turn,
    clear_bid,
    clear_round_taken,
    clear_taken,
    dealer_for_round,
    previous_seat,
)


def _clear_seat(state: GameState, player_id: str) -> Outcome:
    if state.mode is InputMode.BIDDING:
        ledgers = clear_bid(state.ledgers, player_id, state.current_round, state.bid_points)
    else:
        ledgers = clear_taken(state.ledgers, player_id, state.current_round, state.bid_points)
    return Outcome(replace(state, ledgers=ledgers, turn=Turn.awaiting(player_id)))


def undo_previous_entry(state: GameState) -> Outcome:
    """Reverse the most recent entry. Not available while editing."""
    if state.edit is not None:
        return Outcome(state, error=Rejection.EDIT_IN_PROGRESS)
    if state.phase is not GamePhase.SCORING:
        return Outcome(state, error=Rejection.WRONG_PHASE)

    if state.turn.is_complete:
        return _clear_seat(state, state.dealer_id)

    actor = state.turn.actor_id
    if actor != state.first_actor_id:
        if state.mode is InputMode.BIDDING and actor == state.dealer_id:
            # A bid kept from before the confirm was undone goes with the cursor
            state = replace(state, ledgers=clear_bid(state.ledgers, actor,
                                                     state.current_round, state.bid_points))
        return _clear_seat(state, previous_seat(state.player_order, actor))

    if state.mode is InputMode.TAKING:
        ledgers = clear_round_taken(state.ledgers, state.current_round, state.bid_points)
        return Outcome(replace(state,
                               ledgers=ledgers,
                               mode=InputMode.BIDDING,
                               bids_confirmed=False,
                               turn=Turn.awaiting(state.dealer_id)))

    if state.current_round == 1:
        return Outcome(state, error=Rejection.NOTHING_TO_UNDO)

    # Back into the previous round: its dealer recorded tricks last.
    previous_round = state.current_round - 1
    dealer = dealer_for_round(state.player_order, state.first_dealer_index, previous_round)
    ledgers = clear_taken(state.ledgers, dealer, previous_round, state.bid_points)
    return Outcome(replace(state,
                           ledgers=ledgers,
                           current_round=previous_round,
                           mode=InputMode.TAKING,
                           bids_confirmed=True,
                           turn=Turn.awaiting(dealer)))


def can_undo(state: GameState) -> bool:
    return undo_previous_entry(state).ok
