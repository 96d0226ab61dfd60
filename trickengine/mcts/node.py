"""
ISMCTS tree node with availability-aware UCB1 selection.

The tree is keyed purely by public move sequences: a node is the path of
moves from the root, never a concrete hidden state. The same node is
reached by many determinizations, each of which may allow a different
subset of its children (an opponent card that exists in one sampled world
may not exist in the next). Each child therefore tracks, besides visits
and total reward, how often it was *available*: the number of times its
parent was visited while the child's move was legal. That count stands in
for the parent visit count in UCB1:

    UCB(child) = mean_reward + C * sqrt(ln(availability) / visits)

Unvisited children score +inf and are always tried first.

Rewards are stored from the point of view of the player who made the move
leading into the node, so selection maximises the mover's own reward.
"""

import math
import time
from typing import Dict, Iterable, List, Optional

import numpy as np

from trickengine.game.base import Move


class ISMCTSNode:
    """
    Node in the ISMCTS tree.

    Attributes:
        parent: Parent node (None for root)
        move: Public move that led to this node from parent
        player: Seat that made move (None for root)
        children: Mapping public move → child node
        visit_count: Number of completed iterations through this node
        total_reward: Sum of backpropagated rewards for player
        availability_count: Parent visits in which move was legal
        virtual_losses: Pending (in-flight) iterations through this node
    """

    __slots__ = (
        'parent', 'move', 'player', 'children', 'visit_count',
        'total_reward', 'availability_count', 'virtual_losses',
    )

    def __init__(
        self,
        parent: Optional["ISMCTSNode"] = None,
        move: Optional[Move] = None,
        player: Optional[int] = None,
    ):
        self.parent = parent
        self.move = move
        self.player = player
        self.children: Dict[Move, ISMCTSNode] = {}
        self.visit_count = 0
        self.total_reward = 0.0
        self.availability_count = 0
        self.virtual_losses = 0

    def is_root(self) -> bool:
        return self.parent is None

    @property
    def mean_reward(self) -> float:
        """Average reward per visit (0.0 when unvisited)."""
        if self.visit_count == 0:
            return 0.0
        return self.total_reward / self.visit_count

    def untried_moves(self, legal_moves: Iterable[Move]) -> List[Move]:
        """Legal moves with no child yet, in legal-move order."""
        return [move for move in legal_moves if move not in self.children]

    def add_child(self, move: Move, player: int) -> "ISMCTSNode":
        """
        Create and attach the child for move.

        Args:
            move: Move leading to the child
            player: Seat making the move

        Returns:
            The new child node

        Raises:
            ValueError: If move already has a child
        """
        if move in self.children:
            raise ValueError(f"Child for {move} already exists")
        child = ISMCTSNode(parent=self, move=move, player=player)
        self.children[move] = child
        return child

    def mark_available(self, legal_moves: Iterable[Move]) -> None:
        """Count one availability for every existing child legal in this world."""
        for move in legal_moves:
            child = self.children.get(move)
            if child is not None:
                child.availability_count += 1

    def select_child(self, legal_moves: List[Move], exploration: float) -> "ISMCTSNode":
        """
        Select the legal child with the highest UCB1 score.

        Children whose moves are illegal in the current determinization are
        skipped. Ties keep the earliest move in legal-move order.

        Args:
            legal_moves: Moves legal under the current determinization
            exploration: Exploration constant C

        Returns:
            Selected child

        Raises:
            ValueError: If no legal move has a child
        """
        _start = time.perf_counter() if _NODE_PROFILING_ENABLED else 0.0
        best_score = -float("inf")
        best_child = None
        for move in legal_moves:
            child = self.children.get(move)
            if child is None:
                continue
            score = child.ucb_score(exploration)
            if best_child is None or score > best_score:
                best_score = score
                best_child = child

        if _NODE_PROFILING_ENABLED:
            _NODE_METRICS['select_child_calls'] += 1
            _NODE_METRICS['select_child_total_sec'] += time.perf_counter() - _start

        if best_child is None:
            raise ValueError("Cannot select child: no legal move has been expanded")
        return best_child

    def ucb_score(self, exploration: float) -> float:
        """
        UCB1 score of this node as seen from its parent.

        Virtual losses count as visits with zero reward, which makes a path
        that is already in flight less attractive to the next selection.
        """
        effective_visits = self.visit_count + self.virtual_losses
        if effective_visits == 0:
            return math.inf
        mean = self.total_reward / effective_visits
        availability = max(self.availability_count, 1)
        return mean + exploration * math.sqrt(math.log(availability) / effective_visits)

    def update(self, reward: float) -> None:
        """Record one completed iteration through this node."""
        self.visit_count += 1
        self.total_reward += reward

    def add_virtual_loss(self) -> None:
        self.virtual_losses += 1

    def remove_virtual_loss(self) -> None:
        """
        Remove a virtual loss from this node.

        Raises:
            ValueError: If there is no pending virtual loss
        """
        if self.virtual_losses <= 0:
            raise ValueError("Cannot remove virtual loss: none pending")
        self.virtual_losses -= 1

    def visit_counts(self) -> Dict[Move, int]:
        """Visit count per child move."""
        return {move: child.visit_count for move, child in self.children.items()}

    def mean_rewards(self) -> Dict[Move, float]:
        """Mean reward per child move."""
        return {move: child.mean_reward for move, child in self.children.items()}

    def best_move(self, move_order: List[Move]) -> Optional[Move]:
        """
        Pick the final move from this node.

        Most visits wins; ties go to the higher mean reward, then to the
        earlier move in move_order. Never random.

        Args:
            move_order: Deterministic ordering of candidate moves

        Returns:
            Best move, or None if no candidate has a child
        """
        candidates = [m for m in move_order if m in self.children]
        if not candidates:
            return None
        rank = {move: i for i, move in enumerate(move_order)}
        return max(
            candidates,
            key=lambda m: (
                self.children[m].visit_count,
                self.children[m].mean_reward,
                -rank[m],
            ),
        )

    def action_distribution(self, move_order: List[Move]) -> np.ndarray:
        """
        Visit-count distribution over move_order.

        Returns:
            Array of probabilities aligned with move_order (uniform when
            nothing was visited)
        """
        counts = np.array(
            [self.children[m].visit_count if m in self.children else 0 for m in move_order],
            dtype=np.float64,
        )
        total = counts.sum()
        if total == 0:
            return np.full(len(move_order), 1.0 / max(len(move_order), 1))
        return counts / total

    def tree_size(self) -> int:
        """Number of nodes in the subtree rooted here."""
        return 1 + sum(child.tree_size() for child in self.children.values())

    def __repr__(self) -> str:
        return (
            f"ISMCTSNode(move={self.move}, player={self.player}, "
            f"visits={self.visit_count}, mean={self.mean_reward:.3f}, "
            f"avail={self.availability_count}, children={len(self.children)})"
        )


# -------------------
# Lightweight metrics
# -------------------

_NODE_PROFILING_ENABLED = False
_NODE_METRICS = {
    'select_child_calls': 0,
    'select_child_total_sec': 0.0,
}


def enable_metrics(enabled: bool = True) -> None:
    """Enable or disable node instrumentation for this process."""
    global _NODE_PROFILING_ENABLED
    _NODE_PROFILING_ENABLED = bool(enabled)


def reset_metrics() -> None:
    """Reset node metrics counters for this process."""
    for k in list(_NODE_METRICS.keys()):
        _NODE_METRICS[k] = 0.0 if k.endswith('_sec') else 0


def get_metrics() -> dict:
    """Return a shallow copy of current node metrics."""
    return dict(_NODE_METRICS)
