"""
Tests for the search configuration.
"""

import json

import pytest

from trickengine.config import SearchConfig, get_fast_config, get_strong_config
from trickengine.mcts.rewards import Exponential, LinearNormalized, RankBased, ScoreDifference


class TestSearchConfig:
    """Test SearchConfig defaults, validation and persistence."""

    def test_defaults_valid(self):
        """Test the default config validates."""
        config = SearchConfig()
        assert config.validate()
        assert config.num_iterations == 1000
        assert config.exploration == 0.7
        assert config.reward_function == 'linear_normalized'

    def test_presets_valid(self):
        """Test the preset configs validate."""
        assert get_fast_config().validate()
        assert get_strong_config().validate()
        assert get_fast_config().num_iterations < get_strong_config().num_iterations

    @pytest.mark.parametrize("overrides, message", [
        ({'num_iterations': None, 'time_limit': None}, "Either num_iterations"),
        ({'num_iterations': 0}, "num_iterations must be positive"),
        ({'time_limit': -1.0}, "time_limit must be positive"),
        ({'exploration': -0.1}, "exploration must be non-negative"),
        ({'reward_function': 'elo'}, "reward_function must be one of"),
        ({'score_scale': 0}, "score_scale must be positive"),
        ({'num_workers': 0}, "num_workers must be positive"),
        ({'batch_size': 0}, "batch_size must be positive"),
        ({'games_per_match': 0}, "games_per_match must be positive"),
    ])
    def test_invalid(self, overrides, message):
        """Test invalid values raise ValueError."""
        with pytest.raises(ValueError, match=message):
            SearchConfig(**overrides).validate()

    def test_build_reward_function(self):
        """Test reward parameters flow into the reward function."""
        assert isinstance(SearchConfig().build_reward_function(), LinearNormalized)

        scaled = SearchConfig(reward_function='score_difference', score_scale=10.0)
        assert isinstance(scaled.build_reward_function(), ScoreDifference)
        assert scaled.build_reward_function().scale == 10.0

        sharp = SearchConfig(reward_function='exponential', exponent=3.0)
        assert isinstance(sharp.build_reward_function(), Exponential)
        assert sharp.build_reward_function().power == 3.0

        ranked = SearchConfig(reward_function='rank_based', rank_rewards=[1.0, 0.0, -1.0])
        fn = ranked.build_reward_function()
        assert isinstance(fn, RankBased)
        assert fn([0, 5, 3], 2) == 0.0

    def test_from_dict_ignores_unknown_keys(self):
        """Test unknown keys are dropped when loading."""
        config = SearchConfig.from_dict({'num_iterations': 77, 'learning_rate': 0.1})
        assert config.num_iterations == 77

    def test_save_and_load(self, tmp_path):
        """Test configs survive a JSON round trip."""
        path = tmp_path / 'config.json'
        config = SearchConfig(num_iterations=12, game='trick_or_bid',
                              game_options={'num_hands': 1}, seed=3)
        config.save(str(path))

        assert json.loads(path.read_text())['game'] == 'trick_or_bid'
        assert SearchConfig.from_file(str(path)) == config

    def test_str(self):
        """Test the readable summary mentions the budget and reward."""
        text = str(SearchConfig(num_iterations=50, time_limit=1.5))
        assert "50 iterations" in text
        assert "1.5s" in text
        assert "LinearNormalized" in text
