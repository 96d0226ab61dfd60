"""
Information-Set Monte Carlo Tree Search (ISMCTS) for trickengine.

This package provides the game-agnostic search layer:
- InformationSet: one player's view of a game state
- Determinizer: samples concrete worlds consistent with an information set
- ISMCTSNode: shared tree node keyed by public move path
- ISMCTS: search driver (iteration/time budget, optional parallel rollouts)
- Reward functions: terminal scores → bounded search signal

Example:
    >>> from trickengine.game import DealersDilemmaGame
    >>> from trickengine.mcts import InformationSet, ISMCTS
    >>>
    >>> game = DealersDilemmaGame(seed=3, num_hands=1)
    >>> info_set = InformationSet(game, observer=game.current_player())
    >>> search = ISMCTS(num_iterations=200, reward_function='winner_takes_all', seed=1)
    >>> move = search.best_move(info_set)
"""

from trickengine.mcts.determinization import Determinizer, DeterminizationInfeasibleException
from trickengine.mcts.information_set import InformationSet, PlayerConstraints
from trickengine.mcts.node import ISMCTSNode
from trickengine.mcts.rewards import (
    Exponential,
    LinearNormalized,
    RankBased,
    ScoreDifference,
    WinnerTakesAll,
    get_reward_function,
)
from trickengine.mcts.search import ISMCTS, SearchResult, random_rollout_policy, simulate

__all__ = [
    "InformationSet",
    "PlayerConstraints",
    "Determinizer",
    "DeterminizationInfeasibleException",
    "ISMCTSNode",
    "ISMCTS",
    "SearchResult",
    "random_rollout_policy",
    "simulate",
    "LinearNormalized",
    "WinnerTakesAll",
    "ScoreDifference",
    "Exponential",
    "RankBased",
    "get_reward_function",
]
