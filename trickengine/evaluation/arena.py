"""
Arena system for search configuration vs search configuration evaluation.

This module plays full games between two kinds of players (a challenger
and a baseline, e.g. ISMCTS with two different reward functions) and
reports which one performs better. Every decision is made from the acting
player's own information set, so players never see hidden cards.

Seating:
    - Even player counts: challenger takes the odd seats and baseline the
      even seats, swapped every other game (in Kaibosh this makes them
      partnerships).
    - Odd player counts: challenger takes a single seat that rotates
      around the table.
    Consecutive game pairs share a deal seed, so both sides see the same
    cards from both seatings.
"""

import logging
from typing import Any, Dict, List, Optional

import numpy as np

from trickengine.game import GAMES, create_game
from trickengine.game.base import Move
from trickengine.mcts.information_set import InformationSet
from trickengine.mcts.rewards import RewardFunction, get_reward_function
from trickengine.mcts.search import ISMCTS

logger = logging.getLogger(__name__)


class SearchPlayer:
    """Player choosing moves with an ISMCTS search."""

    def __init__(self, search: ISMCTS, name: Optional[str] = None):
        self.search = search
        self.name = name or f"ismcts[{search.reward_function!r}]"

    def choose_move(self, info_set: InformationSet, seed: int) -> Move:
        return self.search.best_move(info_set, seed=seed)

    def __repr__(self) -> str:
        return f"SearchPlayer({self.name})"


class RandomPlayer:
    """Player choosing uniformly among legal moves."""

    def __init__(self, name: str = "random"):
        self.name = name

    def choose_move(self, info_set: InformationSet, seed: int) -> Move:
        moves = info_set.legal_moves()
        return moves[int(np.random.default_rng(seed).integers(len(moves)))]

    def __repr__(self) -> str:
        return f"RandomPlayer({self.name})"


class Arena:
    """
    Tournament system for comparing two players over many games.

    Attributes:
        game_name: Registry name of the game to play
        game_options: Extra constructor arguments for the game
        reward_function: Reward used to report average reward per side
    """

    def __init__(
        self,
        game_name: str = 'kaibosh',
        game_options: Optional[Dict[str, Any]] = None,
        reward_function: RewardFunction = None,
    ):
        """
        Initialize arena.

        Args:
            game_name: One of trickengine.game.GAMES
            game_options: Extra game constructor arguments (e.g. num_hands)
            reward_function: Reward used for reporting (default linear_normalized)

        Raises:
            ValueError: If game_name is unknown
        """
        if game_name not in GAMES:
            raise ValueError(f"Unknown game '{game_name}'. Must be one of {sorted(GAMES)}")
        self.game_name = game_name
        self.game_options = dict(game_options or {})
        self.reward_function = reward_function or get_reward_function('linear_normalized')

    def play_game(self, players: List[Any], seed: int) -> List[int]:
        """
        Play one full game.

        Args:
            players: One player per seat
            seed: Seed for the deal and for every decision

        Returns:
            Final scores per seat

        Raises:
            ValueError: If the number of players does not match the game
        """
        rng = np.random.default_rng(seed)
        game = create_game(self.game_name, seed=int(rng.integers(2**31)), **self.game_options)
        if len(players) != game.num_players:
            raise ValueError(
                f"{self.game_name} needs {game.num_players} players, got {len(players)}"
            )

        while not game.is_terminal():
            seat = game.current_player()
            info_set = InformationSet(game, seat)
            move = players[seat].choose_move(info_set, seed=int(rng.integers(2**31)))
            game = game.apply(move)

        return game.scores()

    @staticmethod
    def challenger_seats(game_index: int, num_players: int) -> List[int]:
        """Seats the challenger occupies in the given game."""
        if num_players % 2 == 0:
            parity = 1 if game_index % 2 == 0 else 0
            return [p for p in range(num_players) if p % 2 == parity]
        return [game_index % num_players]

    def play_match(
        self,
        challenger: Any,
        baseline: Any,
        num_games: int = 20,
        seed: int = 0,
    ) -> Dict[str, Any]:
        """
        Play a match between two players.

        Args:
            challenger: Player under test
            baseline: Reference player
            num_games: Number of games to play
            seed: Base seed for the match

        Returns:
            Match results:
            - challenger_wins / baseline_wins / draws: game outcomes, comparing
              the best challenger seat against the best baseline seat
            - challenger_avg_score / baseline_avg_score: mean seat score
            - challenger_avg_reward / baseline_avg_reward: mean reward per seat
            - win_rate: challenger wins / games played
            - games_played: total games
        """
        logger.info(
            f"Starting match: {num_games} games of {self.game_name}, "
            f"{challenger!r} vs {baseline!r}"
        )
        num_players = create_game(self.game_name, seed=0, **self.game_options).num_players

        challenger_scores, baseline_scores = [], []
        challenger_rewards, baseline_rewards = [], []
        challenger_wins = baseline_wins = draws = 0

        for game_idx in range(num_games):
            seats = self.challenger_seats(game_idx, num_players)
            players = [challenger if p in seats else baseline for p in range(num_players)]
            game_seed = int(np.random.SeedSequence([seed, game_idx // 2]).generate_state(1)[0])
            scores = self.play_game(players, seed=game_seed)

            others = [p for p in range(num_players) if p not in seats]
            challenger_scores.extend(scores[p] for p in seats)
            baseline_scores.extend(scores[p] for p in others)
            challenger_rewards.extend(self.reward_function(scores, p) for p in seats)
            baseline_rewards.extend(self.reward_function(scores, p) for p in others)

            best_challenger = max(scores[p] for p in seats)
            best_baseline = max(scores[p] for p in others)
            if best_challenger > best_baseline:
                challenger_wins += 1
            elif best_challenger < best_baseline:
                baseline_wins += 1
            else:
                draws += 1

            games_played = game_idx + 1
            if games_played % 10 == 0:
                logger.info(
                    f"  Progress: {games_played}/{num_games} games, "
                    f"challenger win rate: {challenger_wins / games_played:.1%}"
                )

        games_played = num_games
        results = {
            'challenger_wins': challenger_wins,
            'baseline_wins': baseline_wins,
            'draws': draws,
            'challenger_avg_score': float(np.mean(challenger_scores)) if challenger_scores else 0.0,
            'baseline_avg_score': float(np.mean(baseline_scores)) if baseline_scores else 0.0,
            'challenger_avg_reward': float(np.mean(challenger_rewards)) if challenger_rewards else 0.0,
            'baseline_avg_reward': float(np.mean(baseline_rewards)) if baseline_rewards else 0.0,
            'win_rate': challenger_wins / games_played if games_played > 0 else 0.0,
            'games_played': games_played,
        }

        logger.info("Match complete!")
        logger.info(f"  Challenger wins: {challenger_wins}")
        logger.info(f"  Baseline wins: {baseline_wins}")
        logger.info(f"  Draws: {draws}")
        logger.info(f"  Challenger win rate: {results['win_rate']:.1%}")
        logger.info(
            f"  Avg score: challenger {results['challenger_avg_score']:.2f}, "
            f"baseline {results['baseline_avg_score']:.2f}"
        )
        logger.info(
            f"  Avg reward: challenger {results['challenger_avg_reward']:+.3f}, "
            f"baseline {results['baseline_avg_reward']:+.3f}"
        )
        return results
