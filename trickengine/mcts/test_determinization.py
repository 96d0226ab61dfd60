"""
Tests for information sets and determinization sampling.
"""

import numpy as np
import pytest

from trickengine.game.base import Card, Move
from trickengine.game.constants import BID_TYPE_EASY
from trickengine.game.dealers_dilemma import DealersDilemmaGame
from trickengine.game.kaibosh import KaiboshGame
from trickengine.mcts import determinization
from trickengine.mcts.determinization import DeterminizationInfeasibleException, Determinizer
from trickengine.mcts.information_set import InformationSet


@pytest.fixture
def kaibosh_info_set():
    """Seat 0's view of a fresh Kaibosh deal."""
    return InformationSet(KaiboshGame(seed=13), observer=0)


@pytest.fixture
def easy_bid_game():
    """Dealer's Dilemma hand where the dealer (seat 0) has made an Easy bid."""
    game = DealersDilemmaGame(seed=17, dealer=0, num_hands=1)
    game = game.apply(Move('select', value=0))
    game = game.apply(Move('bid_type', value=BID_TYPE_EASY))
    game = game.apply(game.legal_moves()[0])
    game = game.apply(game.legal_moves()[0])
    return game


# ============================================================================
# Information set
# ============================================================================


class TestInformationSet:
    """Test building an observer's view."""

    def test_own_cards_known(self, kaibosh_info_set):
        """Test the observer's hand is known exactly."""
        assert kaibosh_info_set.known_cards == set(kaibosh_info_set.state.hands[0])

    def test_unseen_pool(self, kaibosh_info_set):
        """Test the unseen pool is every other card in the deck."""
        assert len(kaibosh_info_set.unseen_cards) == 18
        assert not set(kaibosh_info_set.unseen_cards) & kaibosh_info_set.known_cards
        assert kaibosh_info_set.hidden_card_count() == 18

    def test_constraints(self, kaibosh_info_set):
        """Test opponents get hand sizes and no voids at the start."""
        constraints = kaibosh_info_set.player_constraints
        assert sorted(constraints) == [1, 2, 3]
        assert all(c.cards_in_hand == 6 for c in constraints.values())
        assert all(not c.cannot_have_suits for c in constraints.values())

    def test_invalid_observer(self):
        """Test an out-of-range observer raises ValueError."""
        with pytest.raises(ValueError, match="observer must be"):
            InformationSet(KaiboshGame(seed=0), observer=4)

    def test_voids_restrict_possible_cards(self, kaibosh_info_set):
        """Test a recorded void rules out that suit."""
        kaibosh_info_set.state.voids[1].add('♣')
        kaibosh_info_set._refresh()
        possible = kaibosh_info_set.get_possible_cards(1)
        assert possible
        assert all(card.suit != '♣' for card in possible)
        assert not kaibosh_info_set.can_have_card(1, Card(14, '♣'))

    def test_observe(self):
        """Test observing a move advances the view."""
        info_set = InformationSet(KaiboshGame(seed=13, dealer=3), observer=2)
        assert not info_set.is_observer_to_act
        info_set.observe(Move('pass'))
        info_set.observe(Move('pass'))
        assert info_set.is_observer_to_act

    def test_revealed_card_is_known(self):
        """Test the dealer's taken face-up card is public."""
        game = DealersDilemmaGame(seed=17, dealer=0, num_hands=1)
        taken = game.dealer_select[0]
        info_set = InformationSet(game.apply(Move('select', value=0)), observer=1)
        assert info_set.player_constraints[0].known_cards == {taken}
        assert taken not in info_set.unseen_cards
        assert info_set.player_constraints[0].unknown_slots == 10

    def test_face_down_card_is_unseen(self, easy_bid_game):
        """Test the Easy face-down card is concealed from opponents."""
        face_down = easy_bid_game.bid_cards[0][1]
        info_set = InformationSet(easy_bid_game, observer=1)
        assert info_set.player_constraints[0].extra_hidden == 1
        assert face_down in info_set.unseen_cards

        own_view = InformationSet(easy_bid_game, observer=0)
        assert face_down in own_view.known_cards

    def test_belief_summary(self, kaibosh_info_set):
        """Test the summary mentions every opponent."""
        summary = kaibosh_info_set.get_belief_summary()
        assert "Observer: Player 0" in summary
        for pos in (1, 2, 3):
            assert f"Player {pos}:" in summary


# ============================================================================
# Determinization
# ============================================================================


class TestSampleDeterminization:
    """Test sampling consistent deals."""

    def test_hand_sizes_and_disjoint(self, kaibosh_info_set):
        """Test every opponent gets the right number of distinct unseen cards."""
        hands, extras = Determinizer().sample_determinization(
            kaibosh_info_set, np.random.default_rng(0)
        )
        assert sorted(hands) == [1, 2, 3]
        assert all(len(hand) == 6 for hand in hands.values())
        assert all(extras[pos] == [] for pos in hands)
        dealt = [card for hand in hands.values() for card in hand]
        assert sorted(dealt) == kaibosh_info_set.unseen_cards

    def test_reproducible(self, kaibosh_info_set):
        """Test the same generator seed gives the same sample."""
        det = Determinizer()
        first = det.sample_determinization(kaibosh_info_set, np.random.default_rng(5))
        second = det.sample_determinization(kaibosh_info_set, np.random.default_rng(5))
        assert first == second

    def test_samples_vary(self, kaibosh_info_set):
        """Test different seeds explore different deals."""
        det = Determinizer()
        samples = {
            tuple(det.sample_determinization(kaibosh_info_set, np.random.default_rng(s))[0][1])
            for s in range(10)
        }
        assert len(samples) > 1

    def test_voids_respected(self):
        """Test no opponent receives a suit they are void in."""
        game = KaiboshGame(seed=13)
        game.voids[1] = {'♣', '♦'}
        game.voids[3] = {'♠'}
        info_set = InformationSet(game, observer=0)
        det = Determinizer(validate=True)
        for seed in range(30):
            hands, _ = det.sample_determinization(info_set, np.random.default_rng(seed))
            assert all(card.suit not in ('♣', '♦') for card in hands[1])
            assert all(card.suit != '♠' for card in hands[3])

    def test_voids_follow_effective_suit(self):
        """Test a void in trump also rules out the left bower."""
        game = KaiboshGame(seed=13)
        game.trump = '♥'
        game.voids[2] = {'♥'}
        info_set = InformationSet(game, observer=0)
        for seed in range(20):
            hands, _ = Determinizer().sample_determinization(
                info_set, np.random.default_rng(seed)
            )
            assert Card(11, '♦') not in hands[2]

    def test_infeasible_raises(self):
        """Test impossible void patterns raise instead of looping."""
        game = KaiboshGame(seed=13)
        game.voids[1] = {'♣', '♦', '♥'}
        game.voids[2] = {'♣', '♦', '♥'}
        info_set = InformationSet(game, observer=0)
        with pytest.raises(DeterminizationInfeasibleException, match="Recorded voids"):
            Determinizer().sample_determinization(info_set, np.random.default_rng(0))

    def test_revealed_card_stays_with_holder(self):
        """Test a publicly known card is always dealt to its holder."""
        game = DealersDilemmaGame(seed=17, dealer=0, num_hands=1)
        taken = game.dealer_select[0]
        game = game.apply(Move('select', value=0))
        info_set = InformationSet(game, observer=1)
        for seed in range(10):
            hands, _ = Determinizer().sample_determinization(
                info_set, np.random.default_rng(seed)
            )
            assert taken in hands[0]
            assert taken not in hands[2]

    def test_face_down_card_resampled(self, easy_bid_game):
        """Test the Easy face-down card is drawn from the unseen pool."""
        info_set = InformationSet(easy_bid_game, observer=2)
        det = Determinizer(validate=True)
        seen = set()
        for seed in range(20):
            hands, extras = det.sample_determinization(info_set, np.random.default_rng(seed))
            assert len(extras[0]) == 1
            assert extras[0][0] not in hands[0]
            seen.add(extras[0][0])
        assert len(seen) > 1


class TestDeterminize:
    """Test building determinized game states."""

    def test_observer_view_unchanged(self, kaibosh_info_set):
        """Test the observer's cards and the public state are preserved."""
        state = Determinizer().determinize(kaibosh_info_set, np.random.default_rng(1))
        original = kaibosh_info_set.state
        assert state.hands[0] == original.hands[0]
        assert state.current_player() == original.current_player()
        assert state.legal_moves() == original.legal_moves()
        assert state is not original

    def test_original_untouched(self, easy_bid_game):
        """Test determinizing never modifies the real game."""
        before = [list(hand) for hand in easy_bid_game.hands]
        face_down = easy_bid_game.bid_cards[0][1]
        info_set = InformationSet(easy_bid_game, observer=1)
        Determinizer().determinize(info_set, np.random.default_rng(3))
        assert easy_bid_game.hands == before
        assert easy_bid_game.bid_cards[0][1] == face_down

    def test_determinized_state_playable(self, easy_bid_game):
        """Test a determinized state can be played to the end."""
        info_set = InformationSet(easy_bid_game, observer=1)
        state = Determinizer().determinize(info_set, np.random.default_rng(3))
        rng = np.random.default_rng(0)
        while not state.is_terminal():
            moves = state.legal_moves()
            state = state.apply(moves[int(rng.integers(len(moves)))])
        assert len(state.scores()) == 3


class TestMetrics:
    """Test determinization instrumentation."""

    def test_metrics_counted_when_enabled(self, kaibosh_info_set):
        """Test calls and assigned cards are counted."""
        determinization.enable_metrics(True)
        try:
            determinization.reset_metrics()
            det = Determinizer()
            det.sample_determinization(kaibosh_info_set, np.random.default_rng(0))
            det.sample_determinization(kaibosh_info_set, np.random.default_rng(1))
            metrics = determinization.get_metrics()
        finally:
            determinization.enable_metrics(False)
            determinization.reset_metrics()

        assert metrics['sample_determinization_calls'] == 2
        assert metrics['cards_assigned'] == 36
        assert metrics['avg_sample_ms'] >= 0.0

    def test_metrics_off_by_default(self, kaibosh_info_set):
        """Test nothing is counted while instrumentation is off."""
        determinization.reset_metrics()
        Determinizer().sample_determinization(kaibosh_info_set, np.random.default_rng(0))
        assert determinization.get_metrics()['sample_determinization_calls'] == 0
