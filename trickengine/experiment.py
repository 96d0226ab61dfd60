"""
Reward Function Experiment Script

Entry point for comparing two reward functions (or a reward function
against random play) over a batch of games.

Usage:
    # Winner-takes-all vs linear normalized in Kaibosh
    trickengine-experiment --challenger winner_takes_all --baseline linear_normalized

    # Search against random play in Dealer's Dilemma, one hand per game
    trickengine-experiment --game dealers_dilemma --baseline random --games 10

    # Use custom config
    trickengine-experiment --config configs/my_config.json

    # Fast test run
    trickengine-experiment --fast --games 2
"""

import argparse
import dataclasses
import logging
import sys
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from trickengine.config import SearchConfig, get_fast_config
from trickengine.evaluation.arena import Arena, RandomPlayer, SearchPlayer
from trickengine.game import GAMES
from trickengine.mcts.rewards import REWARD_FUNCTIONS
from trickengine.mcts.search import ISMCTS

RANDOM_BASELINE = 'random'


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Compare ISMCTS reward functions over a batch of games",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Experiment
    parser.add_argument(
        '--game',
        type=str,
        choices=sorted(GAMES),
        default=None,
        help='Game to play (overrides config)',
    )
    parser.add_argument(
        '--games',
        type=int,
        default=None,
        help='Number of games in the match (overrides config)',
    )
    parser.add_argument(
        '--challenger',
        type=str,
        choices=sorted(REWARD_FUNCTIONS),
        default='winner_takes_all',
        help='Reward function under test',
    )
    parser.add_argument(
        '--baseline',
        type=str,
        choices=sorted(REWARD_FUNCTIONS) + [RANDOM_BASELINE],
        default='linear_normalized',
        help='Reference reward function, or random play',
    )

    # Search budget
    parser.add_argument(
        '--iterations',
        type=int,
        default=None,
        help='ISMCTS iterations per decision (overrides config)',
    )
    parser.add_argument(
        '--time-limit',
        type=float,
        default=None,
        help='Seconds per decision (overrides config)',
    )
    parser.add_argument(
        '--workers',
        type=int,
        default=None,
        help='Parallel rollout workers (overrides config)',
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Base seed for deals and searches (overrides config)',
    )

    # Config
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to JSON search config file',
    )
    parser.add_argument(
        '--fast',
        action='store_true',
        help='Use fast config for testing',
    )

    # Logging
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level',
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write the log to this file',
    )

    return parser.parse_args(argv)


def setup_logging(log_level: str = 'INFO', log_file: Optional[str] = None):
    """
    Setup logging (console and optional file).

    Args:
        log_level: Logging level
        log_file: Optional path of a log file
    """
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, log_level),
        format=log_format,
        datefmt=date_format,
        handlers=handlers,
        force=True,
    )


def build_config(args: argparse.Namespace) -> SearchConfig:
    """Load the base config and apply command line overrides."""
    if args.config:
        config = SearchConfig.from_file(args.config)
    elif args.fast:
        config = get_fast_config()
    else:
        config = SearchConfig()

    if args.game is not None:
        config.game = args.game
    if args.games is not None:
        config.games_per_match = args.games
    if args.iterations is not None:
        config.num_iterations = args.iterations
    if args.time_limit is not None:
        config.time_limit = args.time_limit
    if args.workers is not None:
        config.num_workers = args.workers
    if args.seed is not None:
        config.seed = args.seed

    config.validate()
    return config


def run_experiment(
    config: SearchConfig,
    challenger: str,
    baseline: str,
) -> Dict[str, Any]:
    """
    Run one reward-function match.

    Args:
        config: Search and experiment settings shared by both sides
        challenger: Reward function name for the challenger
        baseline: Reward function name for the baseline, or 'random'

    Returns:
        Match results from Arena.play_match
    """
    logger = logging.getLogger(__name__)

    challenger_config = dataclasses.replace(config, reward_function=challenger)
    challenger_search = ISMCTS.from_config(challenger_config)
    searches = [challenger_search]
    challenger_player = SearchPlayer(challenger_search, name=challenger)

    if baseline == RANDOM_BASELINE:
        baseline_player = RandomPlayer()
    else:
        baseline_search = ISMCTS.from_config(dataclasses.replace(config, reward_function=baseline))
        searches.append(baseline_search)
        baseline_player = SearchPlayer(baseline_search, name=baseline)

    arena = Arena(
        game_name=config.game,
        game_options=config.game_options,
        reward_function=challenger_config.build_reward_function(),
    )
    try:
        results = arena.play_match(
            challenger_player,
            baseline_player,
            num_games=config.games_per_match,
            seed=config.seed if config.seed is not None else 0,
        )
    finally:
        for search in searches:
            search.shutdown()

    logger.info(
        f"{challenger} vs {baseline}: {results['challenger_wins']}-"
        f"{results['baseline_wins']}-{results['draws']} "
        f"(win rate {results['win_rate']:.1%})"
    )
    return results


def print_results(
    results: Dict[str, Any],
    challenger: str,
    baseline: str,
    console: Optional[Console] = None,
):
    """
    Print a match summary table.

    Args:
        results: Match results from Arena.play_match
        challenger: Challenger label
        baseline: Baseline label
        console: Console to print to (default stdout)
    """
    console = console or Console()

    table = Table(title=f"{challenger} vs {baseline}", padding=(0, 2))
    table.add_column("Metric", style="cyan", no_wrap=True)
    table.add_column(challenger, style="white", justify="right")
    table.add_column(baseline, style="white", justify="right")

    table.add_row("Wins", str(results['challenger_wins']), str(results['baseline_wins']))
    table.add_row("Draws", str(results['draws']), str(results['draws']))
    table.add_row(
        "Avg score",
        f"{results['challenger_avg_score']:.2f}",
        f"{results['baseline_avg_score']:.2f}",
    )
    table.add_row(
        "Avg reward",
        f"{results['challenger_avg_reward']:+.3f}",
        f"{results['baseline_avg_reward']:+.3f}",
    )

    console.print(table)
    win_rate = results['win_rate']
    colour = "green" if win_rate > 0.5 else "red" if win_rate < 0.5 else "yellow"
    console.print(
        f"[{colour}]Challenger win rate: {win_rate:.1%} "
        f"over {results['games_played']} games[/{colour}]"
    )


def run(argv: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Parse arguments, run the match and print the summary.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Match results from Arena.play_match
    """
    args = parse_args(argv)

    setup_logging(args.log_level, args.log_file)
    logger = logging.getLogger(__name__)

    config = build_config(args)

    logger.info("=" * 80)
    logger.info("trickengine - Reward Function Experiment")
    logger.info("=" * 80)
    for line in str(config).splitlines():
        logger.info(line)

    results = run_experiment(config, args.challenger, args.baseline)
    print_results(results, args.challenger, args.baseline)
    return results


def main(argv: Optional[List[str]] = None):
    """Main experiment entry point."""
    run(argv)


if __name__ == '__main__':
    main()
