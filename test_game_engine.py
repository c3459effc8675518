"""
River Scorer Rules Test Suite

Covers the pure engine: every rule has positive tests (what IS allowed)
and negative tests (what is NOT allowed).

Sections:
    1. Round Schedule — shape, clamping, edge cases
    2. Turn Order — seat offsets, dealer rotation, first actor
    3. Score Ledger — round score formula, totals, clearing
    4. Validation — bid range, dealer bid rule, taken sums, choice checks
    5. Game Setup — start_game configuration errors, dealer selection
    6. Bidding & Taking — turn cycling, out-of-turn, confirmation
    7. Round Progression — advance, last round, game over
    8. Full Game — totals invariant over random legal play
    9. Structural Validation — validate_state
"""
import random
from dataclasses import replace

import pytest

from game_engine import (
    DEFAULT_BID_POINTS,
    DEFAULT_MAX_CARDS_DEALT,
    ErrorKind,
    GamePhase,
    GameState,
    InputMode,
    Player,
    Rejection,
    Round,
    ScoreEntry,
    Turn,
    TurnStatus,
    actual_max_cards,
    advance_round,
    check_bid,
    check_taken,
    clear_bid,
    clear_round_taken,
    clear_taken,
    confirm_bids,
    dealer_for_round,
    first_actor_for_round,
    generate_rounds,
    is_bid_value_invalid,
    is_taken_value_invalid,
    new_ledgers,
    next_seat,
    previous_seat,
    reset_to_setup,
    round_score,
    seat_at_offset,
    select_dealer,
    set_bid,
    set_taken,
    start_game,
    submit_bid,
    submit_taken,
    turn_order_for_round,
    validate_state,
)


# ── Helpers ──────────────────────────────────────────────────────────────────

PLAYERS = (Player("A", "Alice"), Player("B", "Bob"), Player("C", "Cara"))


def started(players=PLAYERS, max_cards=2, bid_points=10):
    """A game in DEALER_SELECTION."""
    outcome = start_game(GameState(), players, max_cards, bid_points)
    assert outcome.ok, outcome.error
    return outcome.state


def scoring(dealer="A", **kwargs):
    """A game in SCORING with round 1 bidding open."""
    outcome = select_dealer(started(**kwargs), dealer)
    assert outcome.ok, outcome.error
    return outcome.state


def apply_ok(state, action, *args):
    """Run an action that must be accepted and return the new state."""
    outcome = action(state, *args)
    assert outcome.ok, outcome.error
    return outcome.state


def bids(state, *pairs):
    for player_id, value in pairs:
        state = apply_ok(state, submit_bid, player_id, value)
    return state


def takens(state, *pairs):
    for player_id, value in pairs:
        state = apply_ok(state, submit_taken, player_id, value)
    return state


def legal_values(state, player_id, check):
    cards = state.current_round_info.cards_dealt
    return [v for v in range(cards + 1) if not check(state, player_id, v)]


def assert_totals_consistent(state):
    for ledger in state.ledgers:
        for entry in ledger.scores:
            assert entry.round_score == round_score(entry.bid, entry.taken, state.bid_points)
        assert ledger.total_score == sum(e.round_score for e in ledger.scores)


# ═══════════════════════════════════════════════════════════════════════════════
# 1. ROUND SCHEDULE
#    Rule: cards go down from the max to 1, then back up to the max.
#    Rule: the max is clamped to 52 // players.
# ═══════════════════════════════════════════════════════════════════════════════

class TestRoundSchedule:

    @pytest.mark.parametrize("players", range(2, 11))
    @pytest.mark.parametrize("max_cards", range(1, 14))
    def test_schedule_shape(self, players, max_cards):
        rounds = generate_rounds(players, max_cards)
        actual_max = min(max_cards, 52 // players)
        cards = [r.cards_dealt for r in rounds]
        bottom = cards.index(1)
        assert cards[0] == actual_max
        assert cards[-1] == actual_max
        assert all(a > b for a, b in zip(cards[:bottom], cards[1:bottom + 1]))
        assert all(a < b for a, b in zip(cards[bottom:], cards[bottom + 1:]))
        assert [r.round_number for r in rounds] == list(range(1, len(rounds) + 1))
        assert len(rounds) == 2 * actual_max - 1

    def test_seven_cards_gives_thirteen_rounds(self):
        rounds = generate_rounds(4, 7)
        assert [r.cards_dealt for r in rounds] == [7, 6, 5, 4, 3, 2, 1, 2, 3, 4, 5, 6, 7]

    def test_up_rounds_are_flagged(self):
        rounds = generate_rounds(3, 3)
        assert [r.is_up_round for r in rounds] == [False, False, False, True, True]

    def test_single_card_gives_single_round(self):
        assert generate_rounds(4, 1) == (Round(round_number=1, cards_dealt=1, is_up_round=False),)

    def test_three_players_two_cards(self):
        rounds = generate_rounds(3, 2)
        assert [(r.round_number, r.cards_dealt) for r in rounds] == [(1, 2), (2, 1), (3, 2)]

    def test_max_clamped_by_deck(self):
        assert actual_max_cards(6, 10) == 8
        assert actual_max_cards(10, 13) == 5
        assert [r.cards_dealt for r in generate_rounds(10, 13)][0] == 5

    def test_clamp_skipped_without_players(self):
        assert actual_max_cards(0, 20) == 20
        assert len(generate_rounds(0, 20)) == 39

    def test_too_many_players_gives_no_rounds(self):
        assert generate_rounds(53, 5) == ()

    def test_zero_max_gives_no_rounds(self):
        assert generate_rounds(3, 0) == ()


# ═══════════════════════════════════════════════════════════════════════════════
# 2. TURN ORDER
#    Rule: the dealer rotates one seat per round; the seat after the dealer
#          acts first; the dealer acts last.
# ═══════════════════════════════════════════════════════════════════════════════

class TestTurnOrder:
    ORDER = ("A", "B", "C", "D")

    def test_seat_at_offset_wraps(self):
        assert seat_at_offset(self.ORDER, "D", 1) == "A"
        assert seat_at_offset(self.ORDER, "A", -1) == "D"
        assert seat_at_offset(self.ORDER, "B", 6) == "D"

    def test_next_and_previous_seat(self):
        assert next_seat(self.ORDER, "B") == "C"
        assert previous_seat(self.ORDER, "B") == "A"

    def test_unknown_seat_raises(self):
        with pytest.raises(ValueError):
            next_seat(self.ORDER, "Z")

    def test_dealer_rotates_each_round(self):
        dealers = [dealer_for_round(self.ORDER, 2, r) for r in range(1, 7)]
        assert dealers == ["C", "D", "A", "B", "C", "D"]

    def test_first_actor_follows_dealer(self):
        assert first_actor_for_round(self.ORDER, 3, 1) == "A"
        assert first_actor_for_round(self.ORDER, 0, 2) == "C"

    def test_turn_order_ends_with_dealer(self):
        order = turn_order_for_round(self.ORDER, 1, 1)
        assert order == ("C", "D", "A", "B")
        assert order[-1] == dealer_for_round(self.ORDER, 1, 1)

    def test_turn_order_visits_every_seat_once(self):
        for round_number in range(1, 9):
            order = turn_order_for_round(self.ORDER, 0, round_number)
            assert sorted(order) == sorted(self.ORDER)


# ═══════════════════════════════════════════════════════════════════════════════
# 3. SCORE LEDGER
#    Rule: round score = bid points + bid when bid == taken, else 0.
#    Rule: total is always the sum of round scores.
# ═══════════════════════════════════════════════════════════════════════════════

class TestScoreLedger:

    def setup_method(self):
        self.rounds = generate_rounds(3, 2)
        self.ledgers = new_ledgers(PLAYERS, self.rounds)

    def test_round_score_exact_bid(self):
        assert round_score(3, 3, 10) == 13

    def test_round_score_zero_bid_made(self):
        assert round_score(0, 0, 10) == 10

    def test_round_score_missed_bid(self):
        assert round_score(2, 1, 10) == 0

    def test_round_score_missing_values(self):
        assert round_score(None, 1, 10) == 0
        assert round_score(1, None, 10) == 0
        assert round_score(None, None, 10) == 0

    def test_new_ledgers_are_zeroed(self):
        assert len(self.ledgers) == 3
        for ledger in self.ledgers:
            assert ledger.total_score == 0
            assert [e.round_number for e in ledger.scores] == [1, 2, 3]
            assert all(e.bid is None and e.taken is None and e.round_score == 0
                       for e in ledger.scores)

    def test_set_bid_alone_scores_nothing(self):
        ledgers = set_bid(self.ledgers, "B", 1, 1, 10)
        assert ledgers[1].entry(1).bid == 1
        assert ledgers[1].total_score == 0

    def test_set_taken_scores_and_totals(self):
        ledgers = set_bid(self.ledgers, "B", 1, 1, 10)
        ledgers = set_taken(ledgers, "B", 1, 1, 10)
        ledgers = set_bid(ledgers, "B", 2, 0, 10)
        ledgers = set_taken(ledgers, "B", 2, 0, 10)
        assert ledgers[1].entry(1).round_score == 11
        assert ledgers[1].entry(2).round_score == 10
        assert ledgers[1].total_score == 21

    def test_other_players_untouched(self):
        ledgers = set_bid(self.ledgers, "B", 1, 1, 10)
        assert ledgers[0] == self.ledgers[0]
        assert ledgers[2] == self.ledgers[2]

    def test_clear_taken_recomputes(self):
        ledgers = set_bid(self.ledgers, "A", 1, 2, 10)
        ledgers = set_taken(ledgers, "A", 1, 2, 10)
        ledgers = clear_taken(ledgers, "A", 1, 10)
        assert ledgers[0].entry(1).taken is None
        assert ledgers[0].entry(1).round_score == 0
        assert ledgers[0].total_score == 0

    def test_clear_bid_recomputes(self):
        ledgers = set_bid(self.ledgers, "A", 1, 0, 10)
        ledgers = set_taken(ledgers, "A", 1, 0, 10)
        ledgers = clear_bid(ledgers, "A", 1, 10)
        assert ledgers[0].entry(1).bid is None
        assert ledgers[0].total_score == 0

    def test_clear_round_taken_clears_everyone(self):
        ledgers = self.ledgers
        for pid in ("A", "B", "C"):
            ledgers = set_bid(ledgers, pid, 1, 0, 10)
            ledgers = set_taken(ledgers, pid, 1, 0, 10)
        ledgers = clear_round_taken(ledgers, 1, 10)
        for ledger in ledgers:
            assert ledger.entry(1).taken is None
            assert ledger.entry(1).bid == 0
            assert ledger.total_score == 0

    def test_unknown_player_raises(self):
        with pytest.raises(KeyError):
            set_bid(self.ledgers, "Z", 1, 1, 10)

    def test_ledger_is_immutable(self):
        with pytest.raises(Exception):
            self.ledgers[0].total_score = 5


# ═══════════════════════════════════════════════════════════════════════════════
# 4. VALIDATION
#    Rule: bids are 0..cards; the dealer may not make bids sum to the cards.
#    Rule: tricks never exceed the cards; the dealer's tricks are forced.
# ═══════════════════════════════════════════════════════════════════════════════

class TestBidValidation:

    def setup_method(self):
        self.round = Round(round_number=1, cards_dealt=5, is_up_round=False)
        ledgers = new_ledgers(PLAYERS, generate_rounds(3, 5))
        ledgers = set_bid(ledgers, "B", 1, 2, 10)
        self.ledgers = set_bid(ledgers, "C", 1, 1, 10)

    def test_dealer_may_not_make_bids_sum_to_cards(self):
        assert check_bid(self.round, 2, "A", "A", self.ledgers) is Rejection.DEALER_BID_SUM

    @pytest.mark.parametrize("value", [0, 1, 3, 4, 5])
    def test_dealer_other_bids_accepted(self, value):
        assert check_bid(self.round, value, "A", "A", self.ledgers) is None

    def test_non_dealer_has_no_sum_constraint(self):
        ledgers = set_bid(self.ledgers, "C", 1, None, 10)
        assert check_bid(self.round, 3, "C", "A", ledgers) is None

    def test_bid_above_cards_rejected(self):
        assert check_bid(self.round, 6, "B", "A", self.ledgers) is Rejection.BID_OUT_OF_RANGE

    def test_negative_bid_rejected(self):
        assert check_bid(self.round, -1, "B", "A", self.ledgers) is Rejection.BID_OUT_OF_RANGE

    def test_non_integer_bid_rejected(self):
        assert check_bid(self.round, "2", "B", "A", self.ledgers) is Rejection.NOT_A_NUMBER
        assert check_bid(self.round, 1.0, "B", "A", self.ledgers) is Rejection.NOT_A_NUMBER
        assert check_bid(self.round, True, "B", "A", self.ledgers) is Rejection.NOT_A_NUMBER

    def test_rejections_are_illegal_value_kind(self):
        assert Rejection.DEALER_BID_SUM.kind is ErrorKind.ILLEGAL_VALUE
        assert Rejection.BID_OUT_OF_RANGE.kind is ErrorKind.ILLEGAL_VALUE


class TestTakenValidation:

    def setup_method(self):
        self.round = Round(round_number=1, cards_dealt=4, is_up_round=False)
        self.order = ("B", "C", "A")
        ledgers = new_ledgers(PLAYERS, generate_rounds(3, 4))
        ledgers = set_taken(ledgers, "B", 1, 2, 10)
        self.ledgers = set_taken(ledgers, "C", 1, 1, 10)

    def test_dealer_taken_is_forced(self):
        assert check_taken(self.round, 1, "A", self.order, self.ledgers) is None

    @pytest.mark.parametrize("value", [0, 2, 3, 4])
    def test_dealer_other_values_rejected(self, value):
        assert check_taken(self.round, value, "A", self.order,
                           self.ledgers) is Rejection.DEALER_TAKEN_MISMATCH

    def test_non_dealer_may_not_exceed_cards(self):
        ledgers = set_taken(self.ledgers, "C", 1, None, 10)
        assert check_taken(self.round, 2, "C", self.order, ledgers) is None
        assert check_taken(self.round, 3, "C", self.order, ledgers) is Rejection.TAKEN_EXCEEDS_CARDS

    def test_only_preceding_seats_count(self):
        # C's stored 1 comes after B in turn order, so B may still take all 4
        assert check_taken(self.round, 4, "B", self.order, self.ledgers) is None

    def test_negative_taken_rejected(self):
        assert check_taken(self.round, -1, "B", self.order, self.ledgers) is Rejection.TAKEN_NEGATIVE

    def test_non_integer_taken_rejected(self):
        assert check_taken(self.round, None, "B", self.order, self.ledgers) is Rejection.NOT_A_NUMBER


class TestChoiceChecks:

    def test_dealer_bid_choice_flagged(self):
        state = bids(scoring(), ("B", 1), ("C", 0))
        assert is_bid_value_invalid(state, "A", 1) is True
        assert is_bid_value_invalid(state, "A", 0) is False
        assert is_bid_value_invalid(state, "A", 2) is False
        assert is_bid_value_invalid(state, "A", 3) is True

    def test_taken_choice_flagged(self):
        state = apply_ok(bids(scoring(), ("B", 1), ("C", 0), ("A", 2)), confirm_bids)
        state = takens(state, ("B", 1))
        assert [v for v in range(3) if not is_taken_value_invalid(state, "C", v)] == [0, 1]

    def test_unknown_player_always_invalid(self):
        assert is_bid_value_invalid(scoring(), "Z", 0) is True

    def test_outside_scoring_always_invalid(self):
        assert is_bid_value_invalid(started(), "A", 0) is True
        assert is_taken_value_invalid(GameState(), "A", 0) is True


# ═══════════════════════════════════════════════════════════════════════════════
# 5. GAME SETUP
#    Rule: start_game needs >= 2 players, max cards >= 1, bid points >= 0.
#    Rule: a refused start leaves the game in SETUP.
# ═══════════════════════════════════════════════════════════════════════════════

class TestGameSetup:

    def test_default_state_is_setup(self):
        state = GameState()
        assert state.phase is GamePhase.SETUP
        assert state.bid_points == DEFAULT_BID_POINTS
        assert state.max_cards_dealt_by_user == DEFAULT_MAX_CARDS_DEALT
        assert state.dealer_id is None
        assert state.current_actor_id is None

    def test_start_game_builds_schedule_and_ledger(self):
        state = started()
        assert state.phase is GamePhase.DEALER_SELECTION
        assert state.player_order == ("A", "B", "C")
        assert len(state.rounds) == 3
        assert [l.player_id for l in state.ledgers] == ["A", "B", "C"]
        assert all(l.total_score == 0 for l in state.ledgers)

    def test_names_get_generated_ids(self):
        state = apply_ok(GameState(), start_game, ["Ann", " Ben "], 3, 10)
        assert [p.name for p in state.players] == ["Ann", "Ben"]
        assert len(set(state.player_order)) == 2

    def test_too_few_players(self):
        outcome = start_game(GameState(), [Player("A", "Alice")], 5, 10)
        assert outcome.error is Rejection.TOO_FEW_PLAYERS
        assert outcome.error.kind is ErrorKind.CONFIGURATION
        assert outcome.state.phase is GamePhase.SETUP

    def test_blank_name(self):
        assert start_game(GameState(), ["Ann", "  "], 5, 10).error is Rejection.BLANK_PLAYER_NAME

    def test_duplicate_ids(self):
        players = [Player("A", "Alice"), Player("A", "Again")]
        assert start_game(GameState(), players, 5, 10).error is Rejection.DUPLICATE_PLAYER

    def test_invalid_max_cards(self):
        assert start_game(GameState(), PLAYERS, 0, 10).error is Rejection.INVALID_MAX_CARDS

    def test_invalid_bid_points(self):
        assert start_game(GameState(), PLAYERS, 5, -1).error is Rejection.INVALID_BID_POINTS

    def test_no_rounds(self):
        players = [Player(str(i), f"P{i}") for i in range(53)]
        outcome = start_game(GameState(), players, 5, 10)
        assert outcome.error is Rejection.NO_ROUNDS
        assert outcome.state.phase is GamePhase.SETUP

    def test_start_only_from_setup(self):
        assert start_game(started(), PLAYERS, 5, 10).error is Rejection.WRONG_PHASE

    def test_select_dealer_opens_bidding(self):
        state = scoring(dealer="A")
        assert state.phase is GamePhase.SCORING
        assert state.dealer_id == "A"
        assert state.first_actor_id == "B"
        assert state.current_actor_id == "B"
        assert state.mode is InputMode.BIDDING
        assert state.bids_confirmed is False

    def test_select_dealer_unknown_player(self):
        assert select_dealer(started(), "Z").error is Rejection.UNKNOWN_PLAYER

    def test_select_dealer_wrong_phase(self):
        assert select_dealer(scoring(), "B").error is Rejection.WRONG_PHASE

    def test_select_dealer_empty_roster(self):
        state = GameState(phase=GamePhase.DEALER_SELECTION)
        outcome = select_dealer(state, "A")
        assert outcome.error is Rejection.NO_PLAYERS
        assert outcome.state is state

    def test_reset_keeps_only_configuration(self):
        state = reset_to_setup(scoring(max_cards=2, bid_points=5))
        assert state == GameState(bid_points=5, max_cards_dealt_by_user=2)


# ═══════════════════════════════════════════════════════════════════════════════
# 6. BIDDING & TAKING
#    Rule: every seat acts once per mode, first actor first, dealer last.
#    Rule: bids must be confirmed before tricks are recorded.
# ═══════════════════════════════════════════════════════════════════════════════

class TestBidding:

    def test_turn_cycling_single_card(self):
        state = scoring(max_cards=1)
        assert state.current_round_info.cards_dealt == 1
        seen = []
        for value in (0, 0, 0):
            seen.append(state.current_actor_id)
            state = apply_ok(state, submit_bid, state.current_actor_id, value)
        assert seen == ["B", "C", "A"]
        assert state.current_actor_id is None
        assert state.turn.status is TurnStatus.CYCLE_COMPLETE

    def test_no_automatic_switch_to_taking(self):
        state = bids(scoring(), ("B", 1), ("C", 0), ("A", 2))
        assert state.mode is InputMode.BIDDING
        assert state.bids_confirmed is False

    def test_out_of_turn_bid_rejected(self):
        state = scoring()
        outcome = submit_bid(state, "C", 1)
        assert outcome.error is Rejection.OUT_OF_TURN
        assert outcome.error.kind is ErrorKind.OUT_OF_TURN
        assert outcome.state is state

    def test_bid_after_cycle_complete_rejected(self):
        state = bids(scoring(), ("B", 1), ("C", 0), ("A", 2))
        assert submit_bid(state, "B", 0).error is Rejection.OUT_OF_TURN

    def test_illegal_bid_leaves_state_unchanged(self):
        state = bids(scoring(), ("B", 1), ("C", 0))
        outcome = submit_bid(state, "A", 1)
        assert outcome.error is Rejection.DEALER_BID_SUM
        assert outcome.state is state

    def test_bid_before_dealer_selection_rejected(self):
        assert submit_bid(started(), "B", 1).error is Rejection.WRONG_PHASE

    def test_taken_during_bidding_rejected(self):
        assert submit_taken(scoring(), "B", 1).error is Rejection.WRONG_MODE


class TestConfirmAndTaking:

    def setup_method(self):
        self.bid_in = bids(scoring(), ("B", 1), ("C", 0), ("A", 2))

    def test_confirm_requires_all_bids(self):
        partial = bids(scoring(), ("B", 1))
        assert confirm_bids(partial).error is Rejection.BIDS_INCOMPLETE

    def test_confirm_switches_to_taking(self):
        state = apply_ok(self.bid_in, confirm_bids)
        assert state.mode is InputMode.TAKING
        assert state.bids_confirmed is True
        assert state.current_actor_id == "B"

    def test_confirm_twice_rejected(self):
        state = apply_ok(self.bid_in, confirm_bids)
        assert confirm_bids(state).error is Rejection.BIDS_ALREADY_CONFIRMED

    def test_taking_cycle(self):
        state = apply_ok(self.bid_in, confirm_bids)
        state = takens(state, ("B", 1), ("C", 0))
        assert state.current_actor_id == "A"
        assert submit_taken(state, "A", 0).error is Rejection.DEALER_TAKEN_MISMATCH
        state = apply_ok(state, submit_taken, "A", 1)
        assert state.current_actor_id is None

    def test_taken_out_of_turn(self):
        state = apply_ok(self.bid_in, confirm_bids)
        assert submit_taken(state, "A", 1).error is Rejection.OUT_OF_TURN

    def test_end_to_end_round_scores(self):
        assert submit_bid(bids(scoring(), ("B", 1), ("C", 0)), "A", 1).error is Rejection.DEALER_BID_SUM
        state = apply_ok(self.bid_in, confirm_bids)
        state = takens(state, ("B", 1), ("C", 0), ("A", 1))
        totals = {l.player_id: l.total_score for l in state.ledgers}
        assert totals == {
            "B": round_score(1, 1, 10),
            "C": round_score(0, 0, 10),
            "A": round_score(2, 1, 10),
        }
        assert totals == {"B": 11, "C": 10, "A": 0}


# ═══════════════════════════════════════════════════════════════════════════════
# 7. ROUND PROGRESSION
#    Rule: advance only after every trick is recorded; dealer moves on one.
#    Rule: game over is derived from the final round's tricks.
# ═══════════════════════════════════════════════════════════════════════════════

def play_round(state, bid_values, taken_values):
    """Play the live round with values given in turn order."""
    for value in bid_values:
        state = apply_ok(state, submit_bid, state.current_actor_id, value)
    state = apply_ok(state, confirm_bids)
    for value in taken_values:
        state = apply_ok(state, submit_taken, state.current_actor_id, value)
    return state


class TestRoundProgression:

    def test_advance_requires_complete_round(self):
        state = apply_ok(bids(scoring(), ("B", 1), ("C", 0), ("A", 2)), confirm_bids)
        assert advance_round(state).error is Rejection.ROUND_INCOMPLETE
        assert advance_round(scoring()).error is Rejection.ROUND_INCOMPLETE

    def test_advance_rotates_dealer(self):
        state = play_round(scoring(), [1, 0, 2], [1, 0, 1])
        state = apply_ok(state, advance_round)
        assert state.current_round == 2
        assert state.dealer_id == "B"
        assert state.first_actor_id == "C"
        assert state.current_actor_id == "C"
        assert state.mode is InputMode.BIDDING
        assert state.bids_confirmed is False

    def test_dealer_invariant_across_rounds(self):
        state = play_round(scoring(dealer="B"), [1, 0, 2], [1, 0, 1])
        state = apply_ok(state, advance_round)
        assert state.dealer_id == dealer_for_round(state.player_order, 1, 2) == "C"

    def test_full_game_reaches_game_over(self):
        state = play_round(scoring(), [1, 0, 2], [1, 0, 1])
        assert state.game_over is False
        state = apply_ok(state, advance_round)
        state = play_round(state, [0, 0, 0], [0, 0, 1])
        state = apply_ok(state, advance_round)
        assert state.is_last_round
        state = play_round(state, [2, 0, 1], [2, 0, 0])
        assert state.game_over is True

    def test_advance_on_last_round_is_noop(self):
        state = play_round(scoring(max_cards=1), [0, 0, 0], [0, 0, 1])
        assert state.game_over
        outcome = advance_round(state)
        assert outcome.ok
        assert outcome.state == state

    def test_advance_before_scoring(self):
        assert advance_round(started()).error is Rejection.WRONG_PHASE


# ═══════════════════════════════════════════════════════════════════════════════
# 8. FULL GAME
#    Rule: after every accepted action the totals invariant holds.
# ═══════════════════════════════════════════════════════════════════════════════

class TestFullGame:

    @pytest.mark.parametrize("seed", range(5))
    def test_totals_invariant_random_play(self, seed):
        rng = random.Random(seed)
        players = tuple(Player(f"p{i}", f"Player {i}") for i in range(4))
        state = select_dealer(started(players=players, max_cards=5, bid_points=7), "p2").state
        while True:
            while not state.turn.is_complete:
                pid = state.current_actor_id
                state = apply_ok(state, submit_bid, pid,
                                 rng.choice(legal_values(state, pid, is_bid_value_invalid)))
                assert_totals_consistent(state)
            state = apply_ok(state, confirm_bids)
            while not state.turn.is_complete:
                pid = state.current_actor_id
                state = apply_ok(state, submit_taken, pid,
                                 rng.choice(legal_values(state, pid, is_taken_value_invalid)))
                assert_totals_consistent(state)
            round_info = state.current_round_info
            taken = [l.entry(round_info.round_number).taken for l in state.ledgers]
            assert sum(taken) == round_info.cards_dealt
            if state.is_last_round:
                break
            state = apply_ok(state, advance_round)
        assert state.game_over
        assert validate_state(state)


# ═══════════════════════════════════════════════════════════════════════════════
# 9. STRUCTURAL VALIDATION
# ═══════════════════════════════════════════════════════════════════════════════

class TestValidateState:

    def test_fresh_states_are_valid(self):
        assert validate_state(GameState())
        assert validate_state(started())
        assert validate_state(scoring())

    def test_played_state_is_valid(self):
        assert validate_state(play_round(scoring(), [1, 0, 2], [1, 0, 1]))

    def test_wrong_total_is_invalid(self):
        state = play_round(scoring(), [1, 0, 2], [1, 0, 1])
        ledgers = (replace(state.ledgers[0], total_score=99),) + state.ledgers[1:]
        assert not validate_state(replace(state, ledgers=ledgers))

    def test_wrong_round_score_is_invalid(self):
        state = scoring()
        ledger = state.ledgers[0]
        scores = (replace(ledger.scores[0], round_score=5),) + ledger.scores[1:]
        ledgers = (replace(ledger, scores=scores, total_score=5),) + state.ledgers[1:]
        assert not validate_state(replace(state, ledgers=ledgers))

    def test_order_not_a_permutation_is_invalid(self):
        assert not validate_state(replace(scoring(), player_order=("A", "B", "B")))

    def test_schedule_mismatch_is_invalid(self):
        assert not validate_state(replace(scoring(), max_cards_dealt_by_user=5))

    def test_unknown_actor_is_invalid(self):
        assert not validate_state(replace(scoring(), turn=Turn.awaiting("Z")))

    def test_mode_and_confirmation_must_agree(self):
        assert not validate_state(replace(scoring(), bids_confirmed=True))

    def test_round_out_of_range_is_invalid(self):
        assert not validate_state(replace(scoring(), current_round=9))

    def test_value_above_cards_is_invalid(self):
        state = scoring()
        ledgers = set_bid(state.ledgers, "A", 2, 5, state.bid_points)
        assert not validate_state(replace(state, ledgers=ledgers))

    def test_setup_with_rounds_is_invalid(self):
        assert not validate_state(GameState(rounds=(Round(1, 1, False),)))

    def test_score_entry_defaults(self):
        entry = ScoreEntry(round_number=1)
        assert (entry.bid, entry.taken, entry.round_score) == (None, None, 0)
