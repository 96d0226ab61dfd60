"""
Reward shaping for ISMCTS backpropagation.

A reward function turns the absolute terminal scores of a game into a
bounded signal for one player. The same game can be searched with any of
them; the choice belongs to the search configuration, never to the game.

Every function returns None when given None (the state is not terminal).

Available functions (S = all scores, p = the player's score):
    - linear_normalized: 0 if max(S) == min(S), else 2*(p-min)/(max-min) - 1
    - winner_takes_all:  1 for a unique top score, 0 for a shared top score,
                         -1 otherwise
    - score_difference:  clamp((p - mean(S)) / scale, -1, 1)
    - exponential:       sign(x) * |x|**power with x = linear_normalized
    - rank_based:        fixed reward per finishing position
"""

from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

Scores = Optional[Sequence[int]]


class LinearNormalized:
    """Linear rescale of the score range to [-1, 1]."""

    name = 'linear_normalized'

    def __call__(self, scores: Scores, player: int) -> Optional[float]:
        if scores is None:
            return None
        low = min(scores)
        high = max(scores)
        if high == low:
            return 0.0
        return 2.0 * (scores[player] - low) / (high - low) - 1.0

    def __repr__(self) -> str:
        return "LinearNormalized()"


class WinnerTakesAll:
    """Win/draw/loss signal: unique top score 1, shared top 0, else -1."""

    name = 'winner_takes_all'

    def __call__(self, scores: Scores, player: int) -> Optional[float]:
        if scores is None:
            return None
        high = max(scores)
        if scores[player] != high:
            return -1.0
        if sum(1 for s in scores if s == high) > 1:
            return 0.0
        return 1.0

    def __repr__(self) -> str:
        return "WinnerTakesAll()"


class ScoreDifference:
    """
    Distance from the table average, scaled and clamped to [-1, 1].

    Args:
        scale: Score difference that maps to a full +/-1 (game specific)
    """

    name = 'score_difference'

    def __init__(self, scale: float = 25.0):
        if scale <= 0:
            raise ValueError(f"scale must be positive, got {scale}")
        self.scale = scale

    def __call__(self, scores: Scores, player: int) -> Optional[float]:
        if scores is None:
            return None
        mean = float(np.mean(scores))
        return float(np.clip((scores[player] - mean) / self.scale, -1.0, 1.0))

    def __repr__(self) -> str:
        return f"ScoreDifference(scale={self.scale})"


class Exponential:
    """
    Sharpened LinearNormalized: sign(x) * |x|**power.

    Args:
        power: Exponent applied to the magnitude (2 squares it)
    """

    name = 'exponential'

    def __init__(self, power: float = 2.0):
        if power <= 0:
            raise ValueError(f"power must be positive, got {power}")
        self.power = power
        self._linear = LinearNormalized()

    def __call__(self, scores: Scores, player: int) -> Optional[float]:
        x = self._linear(scores, player)
        if x is None:
            return None
        return float(np.sign(x) * abs(x) ** self.power)

    def __repr__(self) -> str:
        return f"Exponential(power={self.power})"


def rank_based_default_table(num_players: int) -> List[float]:
    """
    Default per-rank rewards for a player count.

    Rewards are spread evenly from 1.0 down to -1.0 and rounded to two
    decimals.

    Args:
        num_players: Number of players (>= 2)

    Returns:
        Rewards indexed by finishing position

    Raises:
        ValueError: If num_players < 2

    Example:
        >>> rank_based_default_table(4)
        [1.0, 0.33, -0.33, -1.0]
    """
    if num_players < 2:
        raise ValueError(f"num_players must be at least 2, got {num_players}")
    return [round(float(x), 2) for x in np.linspace(1.0, -1.0, num_players)]


class RankBased:
    """
    Fixed reward per finishing position.

    Players are ranked by score, highest first. Tied players share the
    mean of the table entries their group spans, so partners credited
    with the same team total get the same reward whatever their seats.

    Args:
        table: Rewards by position; defaults to rank_based_default_table
            for the number of players scored
    """

    name = 'rank_based'

    def __init__(self, table: Optional[Sequence[float]] = None):
        self.table = list(table) if table is not None else None

    def __call__(self, scores: Scores, player: int) -> Optional[float]:
        if scores is None:
            return None
        table = self.table or rank_based_default_table(len(scores))
        if len(table) != len(scores):
            raise ValueError(
                f"Rank table has {len(table)} entries for {len(scores)} players"
            )
        ordered = sorted(scores, reverse=True)
        first = ordered.index(scores[player])
        tied = ordered.count(scores[player])
        return float(np.mean(table[first:first + tied]))

    def __repr__(self) -> str:
        return f"RankBased(table={self.table})"


RewardFunction = Callable[[Scores, int], Optional[float]]

REWARD_FUNCTIONS: Dict[str, type] = {
    LinearNormalized.name: LinearNormalized,
    WinnerTakesAll.name: WinnerTakesAll,
    ScoreDifference.name: ScoreDifference,
    Exponential.name: Exponential,
    RankBased.name: RankBased,
}


def get_reward_function(name: str, **params) -> RewardFunction:
    """
    Build a reward function by name.

    Args:
        name: One of REWARD_FUNCTIONS
        **params: Constructor arguments (scale, power, table)

    Returns:
        Reward function instance

    Raises:
        ValueError: If name is unknown

    Example:
        >>> get_reward_function('score_difference', scale=10)([10, 0], 0)
        0.5
    """
    if name not in REWARD_FUNCTIONS:
        raise ValueError(
            f"Unknown reward function '{name}'. Must be one of {sorted(REWARD_FUNCTIONS)}"
        )
    return REWARD_FUNCTIONS[name](**params)


def player_rewards(reward_fn: RewardFunction, scores: Scores) -> Optional[List[float]]:
    """Reward for every seat, or None when scores is None."""
    if scores is None:
        return None
    return [reward_fn(scores, p) for p in range(len(scores))]
