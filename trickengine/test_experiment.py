"""
Tests for the experiment command line.
"""

import pytest
from rich.console import Console

from trickengine.experiment import build_config, parse_args, print_results


class TestParseArgs:
    """Test argument parsing and config overrides."""

    def test_defaults(self):
        """Test the default matchup."""
        args = parse_args([])
        assert args.challenger == 'winner_takes_all'
        assert args.baseline == 'linear_normalized'
        assert args.log_level == 'INFO'

    def test_unknown_reward_rejected(self):
        """Test unknown reward functions are rejected by the parser."""
        with pytest.raises(SystemExit):
            parse_args(['--challenger', 'elo'])

    def test_overrides(self):
        """Test command line values override the config."""
        config = build_config(parse_args([
            '--fast', '--game', 'trick_or_bid', '--games', '6',
            '--iterations', '25', '--time-limit', '0.5', '--workers', '2', '--seed', '9',
        ]))
        assert config.game == 'trick_or_bid'
        assert config.games_per_match == 6
        assert config.num_iterations == 25
        assert config.time_limit == 0.5
        assert config.num_workers == 2
        assert config.seed == 9

    def test_invalid_override(self):
        """Test overridden values are validated."""
        with pytest.raises(ValueError, match="num_workers must be positive"):
            build_config(parse_args(['--workers', '0']))


class TestPrintResults:
    """Test the summary table."""

    def test_table(self):
        """Test the table shows both sides and the win rate."""
        results = {
            'challenger_wins': 3,
            'baseline_wins': 1,
            'draws': 0,
            'challenger_avg_score': 4.5,
            'baseline_avg_score': 2.25,
            'challenger_avg_reward': 0.25,
            'baseline_avg_reward': -0.25,
            'win_rate': 0.75,
            'games_played': 4,
        }
        console = Console(record=True, width=100)
        print_results(results, 'winner_takes_all', 'random', console=console)
        text = console.export_text()
        assert 'winner_takes_all' in text
        assert 'random' in text
        assert '4.50' in text
        assert 'Challenger win rate: 75.0% over 4 games' in text
