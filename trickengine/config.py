"""
Search Configuration System

Centralized configuration for ISMCTS searches and reward-function experiments.
"""

import json
from dataclasses import dataclass, asdict, field
from typing import Dict, Any, List, Optional

from trickengine.mcts.rewards import REWARD_FUNCTIONS, RewardFunction, get_reward_function


@dataclass
class SearchConfig:
    """Configuration for ISMCTS searches."""

    # Budget (at least one must be set)
    num_iterations: Optional[int] = 1000
    time_limit: Optional[float] = None  # seconds per decision

    # Tree policy
    exploration: float = 0.7  # UCB1 constant C (rewards lie in [-1, 1])

    # Reward shaping
    reward_function: str = 'linear_normalized'
    score_scale: float = 25.0  # score_difference divisor
    exponent: float = 2.0  # exponential power
    rank_rewards: Optional[List[float]] = None  # rank_based table (None = default for player count)

    # Parallel rollouts
    num_workers: int = 1
    batch_size: int = 8

    # Reproducibility
    seed: Optional[int] = None

    # Rollouts
    max_rollout_moves: int = 10_000

    # Experiment settings
    game: str = 'kaibosh'
    game_options: Dict[str, Any] = field(default_factory=dict)
    games_per_match: int = 20

    def build_reward_function(self) -> RewardFunction:
        """
        Instantiate the configured reward function.

        Returns:
            Reward function with its configured parameters
        """
        if self.reward_function == 'score_difference':
            return get_reward_function('score_difference', scale=self.score_scale)
        if self.reward_function == 'exponential':
            return get_reward_function('exponential', power=self.exponent)
        if self.reward_function == 'rank_based':
            return get_reward_function('rank_based', table=self.rank_rewards)
        return get_reward_function(self.reward_function)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert config to dictionary.

        Returns:
            Dictionary representation of config
        """
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'SearchConfig':
        """
        Create config from dictionary.

        Args:
            config_dict: Dictionary of configuration values

        Returns:
            SearchConfig instance
        """
        # Filter out keys that aren't valid config fields
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_dict = {k: v for k, v in config_dict.items() if k in valid_keys}
        return cls(**filtered_dict)

    @classmethod
    def from_file(cls, filepath: str) -> 'SearchConfig':
        """
        Load config from JSON file.

        Args:
            filepath: Path to JSON config file

        Returns:
            SearchConfig instance
        """
        with open(filepath, 'r') as f:
            config_dict = json.load(f)
        return cls.from_dict(config_dict)

    def save(self, filepath: str):
        """
        Save config to JSON file.

        Args:
            filepath: Path to save config to
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if config is valid

        Raises:
            ValueError: If config values are invalid
        """
        if self.num_iterations is None and self.time_limit is None:
            raise ValueError("Either num_iterations or time_limit must be set")

        if self.num_iterations is not None and self.num_iterations <= 0:
            raise ValueError(
                f"num_iterations must be positive, got {self.num_iterations}"
            )

        if self.time_limit is not None and self.time_limit <= 0:
            raise ValueError(f"time_limit must be positive, got {self.time_limit}")

        if self.exploration < 0:
            raise ValueError(f"exploration must be non-negative, got {self.exploration}")

        if self.reward_function not in REWARD_FUNCTIONS:
            raise ValueError(
                f"reward_function must be one of {sorted(REWARD_FUNCTIONS)}, "
                f"got {self.reward_function}"
            )

        if self.score_scale <= 0:
            raise ValueError(f"score_scale must be positive, got {self.score_scale}")

        if self.exponent <= 0:
            raise ValueError(f"exponent must be positive, got {self.exponent}")

        if self.num_workers <= 0:
            raise ValueError(f"num_workers must be positive, got {self.num_workers}")

        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

        if self.max_rollout_moves <= 0:
            raise ValueError(
                f"max_rollout_moves must be positive, got {self.max_rollout_moves}"
            )

        if self.games_per_match <= 0:
            raise ValueError(
                f"games_per_match must be positive, got {self.games_per_match}"
            )

        return True

    def __str__(self) -> str:
        """String representation of config."""
        budget = []
        if self.num_iterations is not None:
            budget.append(f"{self.num_iterations} iterations")
        if self.time_limit is not None:
            budget.append(f"{self.time_limit}s")
        lines = ["Search Configuration:"]
        lines.append(f"  Budget: {' / '.join(budget)}, C={self.exploration}")
        lines.append(f"  Reward: {self.build_reward_function()!r}")
        lines.append(f"  Workers: {self.num_workers} (batch={self.batch_size}), seed={self.seed}")
        lines.append(f"  Experiment: {self.game}, {self.games_per_match} games")
        return "\n".join(lines)


def get_fast_config() -> SearchConfig:
    """
    Get a fast search config for testing/debugging.

    Returns:
        SearchConfig with reduced computational requirements
    """
    return SearchConfig(
        num_iterations=50,
        games_per_match=4,
        seed=0,
    )


def get_strong_config() -> SearchConfig:
    """
    Get a heavier search config for final comparisons.

    Returns:
        SearchConfig with a larger iteration budget and parallel rollouts
    """
    return SearchConfig(
        num_iterations=5000,
        num_workers=4,
        batch_size=16,
        games_per_match=200,
    )
