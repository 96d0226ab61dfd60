"""
Unit tests for the Dealer's Dilemma game engine.
"""

import numpy as np
import pytest

from trickengine.game.base import Card, Move
from trickengine.game.constants import (
    BID_TYPE_DIFFERENCE,
    BID_TYPE_EASY,
    BID_TYPE_TOP,
    BID_TYPE_ZERO,
)
from trickengine.game.dealers_dilemma import (
    BID_CARD,
    BID_TYPE,
    DEALER_SELECT,
    HIDDEN_BID_CARD,
    PLAY,
    DealersDilemmaGame,
    score_for_tricks,
)


def bid(game, bid_type):
    """Declare bid_type and place the first two hand cards as bid cards."""
    game = game.apply(Move('bid_type', value=bid_type))
    for _ in range(2):
        game = game.apply(game.legal_moves()[0])
    return game


@pytest.fixture
def selected_game():
    """Single-hand game right after the dealer took the first face-up card."""
    return DealersDilemmaGame(seed=21, dealer=0, num_hands=1).apply(Move('select', value=0))


class TestScoreForTricks:
    """Test per-player hand scoring."""

    def test_easy(self):
        """Test Easy scores 4 on the face-up card and 2 on the face-down card."""
        cards = [Card(3, 'Red'), Card(5, 'Blue')]
        assert score_for_tricks(BID_TYPE_EASY, cards, 3) == 4
        assert score_for_tricks(BID_TYPE_EASY, cards, 5) == 2
        assert score_for_tricks(BID_TYPE_EASY, cards, 1) == -2
        assert score_for_tricks(BID_TYPE_EASY, cards, 8) == -5

    def test_top(self):
        """Test Top scores 8 exactly and -2 per trick off."""
        cards = [Card(4, 'Red'), Card(9, 'Blue')]
        assert score_for_tricks(BID_TYPE_TOP, cards, 4) == 8
        assert score_for_tricks(BID_TYPE_TOP, cards, 6) == -4

    def test_difference(self):
        """Test Difference bids the gap between the two cards."""
        cards = [Card(7, 'Red'), Card(3, 'Green')]
        assert score_for_tricks(BID_TYPE_DIFFERENCE, cards, 4) == 8
        assert score_for_tricks(BID_TYPE_DIFFERENCE, cards, 2) == -4

    def test_zero(self):
        """Test Zero scores 6 for no tricks and -2 per trick taken."""
        cards = [Card(4, 'Red'), Card(9, 'Blue')]
        assert score_for_tricks(BID_TYPE_ZERO, cards, 0) == 6
        assert score_for_tricks(BID_TYPE_ZERO, cards, 2) == -4

    def test_unknown_bid_type(self):
        """Test an unknown bid type raises ValueError."""
        with pytest.raises(ValueError, match="Unknown bid type"):
            score_for_tricks(9, [Card(4, 'Red'), Card(9, 'Blue')], 2)


class TestDealerSelect:
    """Test the dealer's face-up card choice."""

    def test_deal(self):
        """Test the dealer holds ten cards plus two face-up cards."""
        game = DealersDilemmaGame(seed=21, dealer=1)
        assert game.phase == DEALER_SELECT
        assert game.current_player() == 1
        assert [len(hand) for hand in game.hands] == [12, 10, 12]
        assert len(game.dealer_select) == 2

    def test_select_moves_card_to_hand_and_leads_other(self):
        """Test the taken card joins the hand and names trump; the other is led."""
        game = DealersDilemmaGame(seed=21, dealer=0, num_hands=1)
        taken, led = game.dealer_select
        after = game.apply(Move('select', value=0))

        assert taken in after.hands[0]
        assert after.trump == taken.suit
        assert after.current_trick[0] == led
        assert after.lead_suit == led.suit
        assert after.phase == BID_TYPE

    def test_taken_card_is_public(self, selected_game):
        """Test the taken card is known to the other players."""
        taken = DealersDilemmaGame(seed=21, dealer=0, num_hands=1).dealer_select[0]
        assert selected_game.revealed_cards(0) == frozenset({taken})

    def test_no_trump_requires_matching_suits(self):
        """Test no-trump is offered only when both face-up cards share a suit."""
        game = DealersDilemmaGame(seed=21, dealer=0, num_hands=1)
        game.dealer_select = [Card(3, 'Red'), Card(7, 'Blue')]
        assert [m.kind for m in game.legal_moves()] == ['select', 'select']

        game.dealer_select = [Card(3, 'Red'), Card(7, 'Red')]
        moves = game.legal_moves()
        assert Move('select_no_trump', value=1) in moves
        after = game.apply(Move('select_no_trump', value=1))
        assert after.trump is None


class TestBidding:
    """Test bid declarations and bid cards."""

    def test_bid_card_phase(self, selected_game):
        """Test declaring a bid type moves to placing bid cards."""
        game = selected_game.apply(Move('bid_type', value=BID_TYPE_TOP))
        assert game.phase == BID_CARD
        assert len(game.legal_moves()) == len(game.hands[0])

    def test_easy_face_down_card_is_hidden(self, selected_game):
        """Test only the second card of an Easy bid stays concealed."""
        game = bid(selected_game, BID_TYPE_EASY)
        assert game.hidden_extras(0) == (game.bid_cards[0][1],)
        assert game.current_player() == 1
        assert game.phase == BID_TYPE

    def test_other_bids_are_public(self, selected_game):
        """Test non-Easy bid cards are not concealed."""
        game = bid(selected_game, BID_TYPE_DIFFERENCE)
        assert game.hidden_extras(0) == ()

    def test_face_down_card_is_anonymous_to_opponents(self, selected_game):
        """Test every face-down Easy card looks the same to the other seats."""
        game = selected_game.apply(Move('bid_type', value=BID_TYPE_EASY))
        first = game.legal_moves()[0]
        assert game.public_move(first, observer=1) == first

        game = game.apply(first)
        public = {game.public_move(m, observer=1) for m in game.legal_moves()}
        assert public == {HIDDEN_BID_CARD}
        assert {game.public_move(m, observer=2) for m in game.legal_moves()} == public
        assert [game.public_move(m, observer=0) for m in game.legal_moves()] == game.legal_moves()

    def test_face_up_bid_cards_stay_public(self, selected_game):
        """Test the second card of a Top bid is seen as itself."""
        game = selected_game.apply(Move('bid_type', value=BID_TYPE_TOP))
        game = game.apply(game.legal_moves()[0])
        assert [game.public_move(m, observer=1) for m in game.legal_moves()] == game.legal_moves()

    def test_play_starts_after_dealer(self, selected_game):
        """Test play begins with the player after the dealer."""
        game = selected_game
        for bid_type in (BID_TYPE_TOP, BID_TYPE_ZERO, BID_TYPE_EASY):
            game = bid(game, bid_type)
        assert game.phase == PLAY
        assert game.current_player() == 1
        assert all(len(cards) == 2 for cards in game.bid_cards)

    def test_follow_suit_and_voids(self, selected_game):
        """Test players must follow the lead and are recorded void otherwise."""
        game = selected_game
        for bid_type in (BID_TYPE_TOP, BID_TYPE_ZERO, BID_TYPE_EASY):
            game = bid(game, bid_type)
        lead = game.lead_suit
        other = next(s for s in ('Red', 'Blue', 'Yellow', 'Green') if s != lead)

        game.hands[1] = [Card(2, lead), Card(9, other)]
        assert game.legal_moves() == [Move('play', card=Card(2, lead))]

        game.hands[1] = [Card(9, other)]
        after = game.apply(Move('play', card=Card(9, other)))
        assert lead in after.void_suits(1)


class TestGameFlow:
    """Test full games."""

    def test_random_playout(self):
        """Test a random single-hand game plays ten tricks and scores."""
        rng = np.random.default_rng(0)
        game = DealersDilemmaGame(seed=4, num_hands=1)
        while not game.is_terminal():
            moves = game.legal_moves()
            game = game.apply(moves[int(rng.integers(len(moves)))])
        assert sum(game.tricks_won) == 10
        assert game.scores() == game.last_hand_points
        assert game.hands_played == 1

    def test_dealer_rotates(self):
        """Test the deal passes to the left after each hand."""
        rng = np.random.default_rng(1)
        game = DealersDilemmaGame(seed=4, dealer=2, num_hands=2)
        while game.hands_played == 0:
            moves = game.legal_moves()
            game = game.apply(moves[int(rng.integers(len(moves)))])
        assert game.dealer == 0
        assert game.phase == DEALER_SELECT
        assert not game.is_terminal()

    def test_invalid_num_hands(self):
        """Test num_hands must be positive."""
        with pytest.raises(ValueError, match="num_hands must be positive"):
            DealersDilemmaGame(seed=0, num_hands=0)
