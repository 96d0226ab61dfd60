"""
Tests for ISMCTS tree nodes.
"""

import math

import numpy as np
import pytest

from trickengine.game.base import Move
from trickengine.mcts import node as node_module
from trickengine.mcts.node import ISMCTSNode

A = Move('bid', value=1)
B = Move('bid', value=2)
C = Move('bid', value=3)


@pytest.fixture
def root():
    """Root with children A and B, both available twice and visited once."""
    root = ISMCTSNode()
    root.add_child(A, player=0)
    root.add_child(B, player=0)
    root.mark_available([A, B])
    root.mark_available([A, B])
    root.children[A].update(1.0)
    root.children[B].update(-1.0)
    return root


class TestNodeBasics:
    """Test node bookkeeping."""

    def test_root(self):
        """Test a fresh node is an empty root."""
        node = ISMCTSNode()
        assert node.is_root()
        assert node.visit_count == 0
        assert node.mean_reward == 0.0
        assert node.tree_size() == 1

    def test_add_child(self):
        """Test children are keyed by move and remember the mover."""
        root = ISMCTSNode()
        child = root.add_child(A, player=2)
        assert root.children[A] is child
        assert child.parent is root
        assert child.player == 2
        assert not child.is_root()

    def test_duplicate_child(self):
        """Test adding the same move twice raises ValueError."""
        root = ISMCTSNode()
        root.add_child(A, player=0)
        with pytest.raises(ValueError, match="already exists"):
            root.add_child(A, player=0)

    def test_untried_moves(self, root):
        """Test untried moves keep legal-move order."""
        assert root.untried_moves([C, A, B]) == [C]

    def test_mark_available_only_counts_legal(self, root):
        """Test availability is counted only for children legal in the world."""
        before = root.children[B].availability_count
        root.mark_available([A, C])
        assert root.children[A].availability_count == 3
        assert root.children[B].availability_count == before

    def test_update(self):
        """Test update accumulates visits and reward."""
        node = ISMCTSNode()
        node.update(1.0)
        node.update(0.0)
        assert node.visit_count == 2
        assert node.mean_reward == 0.5


class TestSelection:
    """Test availability-aware UCB1 selection."""

    def test_unvisited_first(self, root):
        """Test an unvisited child scores infinity and is selected."""
        root.add_child(C, player=0)
        assert root.children[C].ucb_score(0.7) == math.inf
        assert root.select_child([A, B, C], 0.7) is root.children[C]

    def test_ucb_formula(self, root):
        """Test the score uses availability as the parent count."""
        child = root.children[A]
        expected = 1.0 + 0.7 * math.sqrt(math.log(child.availability_count) / 1)
        assert child.ucb_score(0.7) == pytest.approx(expected)

    def test_prefers_higher_reward(self, root):
        """Test the better child wins at equal visits and availability."""
        assert root.select_child([A, B], 0.7) is root.children[A]

    def test_skips_illegal_children(self, root):
        """Test children illegal in this world are never selected."""
        assert root.select_child([B], 0.7) is root.children[B]

    def test_no_expanded_legal_child(self, root):
        """Test selecting with no expanded legal move raises ValueError."""
        with pytest.raises(ValueError, match="no legal move has been expanded"):
            root.select_child([C], 0.7)

    def test_virtual_loss_discourages(self, root):
        """Test pending virtual losses lower a child's score."""
        child = root.children[A]
        before = child.ucb_score(0.7)
        child.add_virtual_loss()
        assert child.ucb_score(0.7) < before
        child.remove_virtual_loss()
        assert child.ucb_score(0.7) == pytest.approx(before)

    def test_remove_virtual_loss_without_pending(self):
        """Test removing a missing virtual loss raises ValueError."""
        with pytest.raises(ValueError, match="none pending"):
            ISMCTSNode().remove_virtual_loss()


class TestFinalMove:
    """Test the final move choice."""

    def test_most_visits(self, root):
        """Test the most visited child is chosen."""
        root.children[B].update(-1.0)
        assert root.best_move([A, B]) == B

    def test_tie_goes_to_mean_reward(self, root):
        """Test equal visits are broken by mean reward."""
        assert root.best_move([B, A]) == A

    def test_full_tie_goes_to_move_order(self):
        """Test a complete tie keeps the earliest move."""
        root = ISMCTSNode()
        for move in (A, B):
            root.add_child(move, player=0).update(0.5)
        assert root.best_move([B, A]) == B
        assert root.best_move([A, B]) == A

    def test_nothing_expanded(self):
        """Test no children gives no move."""
        assert ISMCTSNode().best_move([A]) is None

    def test_action_distribution(self, root):
        """Test visit distribution aligned with move order."""
        root.children[A].update(1.0)
        dist = root.action_distribution([A, B, C])
        np.testing.assert_allclose(dist, [2 / 3, 1 / 3, 0.0])

    def test_visit_counts(self, root):
        """Test visit and mean reward maps."""
        assert root.visit_counts() == {A: 1, B: 1}
        assert root.mean_rewards() == {A: 1.0, B: -1.0}


class TestNodeMetrics:
    """Test node instrumentation."""

    def test_select_child_counted(self, root):
        """Test select_child calls are counted when enabled."""
        node_module.enable_metrics(True)
        try:
            node_module.reset_metrics()
            root.select_child([A, B], 0.7)
            assert node_module.get_metrics()['select_child_calls'] == 1
        finally:
            node_module.enable_metrics(False)
            node_module.reset_metrics()
