"""
Information-Set Monte Carlo Tree Search (ISMCTS).

This module implements single-observer ISMCTS for imperfect information
card games. One search builds one tree for one decision of the observer.
The tree is shared by every iteration, while each iteration plays in its
own freshly sampled world:

    1. Determinize: sample a concrete state consistent with the observer's
       information set.
    2. Select: walk down the tree, at each node choosing among the
       children whose moves are legal in this world by availability-aware
       UCB1.
    3. Expand: add one untried legal move as a new child.
    4. Simulate: play the world out with the rollout policy.
    5. Backpropagate: convert terminal scores to rewards and credit each
       node on the path with the reward of the player who moved into it.

After the budget runs out the root child with the most visits is played
(ties: higher mean reward, then the root's legal-move order).

Budget and cancellation:
    - num_iterations and/or time_limit (seconds); the deadline is checked
      before each iteration (before each batch in parallel mode)
    - running out of budget is never an error; a search with zero completed
      iterations returns the first legal move

Reproducibility:
    Iteration i draws all of its randomness from
    numpy.random.default_rng([seed, i]), independent of tree state and of
    the number of workers used for rollouts.

Parallelism:
    With num_workers > 1 the main thread stays the only writer of tree
    statistics. It selects and expands a batch of iterations, marking each
    path with a virtual loss, ships the rollouts to a worker pool and
    backpropagates the returned scores in iteration order.

Example:
    >>> from trickengine.game import KaiboshGame
    >>> from trickengine.mcts import InformationSet, ISMCTS
    >>>
    >>> game = KaiboshGame(seed=7)
    >>> info_set = InformationSet(game, observer=game.current_player())
    >>> search = ISMCTS(num_iterations=500, seed=42)
    >>> result = search.search(info_set)
    >>> result.move in info_set.legal_moves()
    True
"""

import concurrent.futures
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np

from trickengine.game.base import GameState, GameStateException, Move
from trickengine.mcts.determinization import Determinizer
from trickengine.mcts.information_set import InformationSet
from trickengine.mcts.node import ISMCTSNode
from trickengine.mcts.rewards import RewardFunction, get_reward_function, player_rewards

logger = logging.getLogger(__name__)

RolloutPolicy = Callable[[GameState, np.random.Generator], Move]


def random_rollout_policy(state: GameState, rng: np.random.Generator) -> Move:
    """
    Uniform random choice among legal moves.

    Raises:
        GameStateException: If a non-terminal state has no legal moves
    """
    moves = state.legal_moves()
    if not moves:
        raise GameStateException(
            f"{type(state).__name__} has no legal moves but is not terminal"
        )
    return moves[int(rng.integers(len(moves)))]


def simulate(
    state: GameState,
    rollout_policy: RolloutPolicy,
    rng: np.random.Generator,
    max_moves: int = 10_000,
) -> GameState:
    """
    Play state out to the end of the game.

    Args:
        state: Starting state (not modified)
        rollout_policy: Chooses each move
        rng: Random generator for the policy
        max_moves: Safety cap on rollout length

    Returns:
        Terminal state

    Raises:
        IllegalMoveException: If the policy returns an illegal move
        GameStateException: If the game does not end within max_moves
    """
    for _ in range(max_moves):
        if state.is_terminal():
            return state
        state = state.apply(rollout_policy(state, rng))
    if state.is_terminal():
        return state
    raise GameStateException(f"Rollout did not finish within {max_moves} moves")


def _rollout_worker(
    state: GameState,
    rollout_policy: RolloutPolicy,
    seed: int,
    max_moves: int,
) -> List[int]:
    """Run one rollout in a worker and return the terminal scores."""
    terminal = simulate(state, rollout_policy, np.random.default_rng(seed), max_moves)
    return terminal.scores()


def _pick(moves: List[Move], rng: np.random.Generator) -> Move:
    """Choose among concrete moves that look the same to the observer."""
    if len(moves) == 1:
        return moves[0]
    return moves[int(rng.integers(len(moves)))]


@dataclass
class SearchResult:
    """
    Outcome of one search.

    Attributes:
        move: Chosen move
        visit_counts: Visits per root move
        mean_rewards: Mean reward per root move (observer's perspective)
        iterations: Completed iterations
        elapsed: Wall-clock seconds spent
        tree_size: Nodes in the search tree
    """

    move: Move
    visit_counts: Dict[Move, int] = field(default_factory=dict)
    mean_rewards: Dict[Move, float] = field(default_factory=dict)
    iterations: int = 0
    elapsed: float = 0.0
    tree_size: int = 1

    def summary(self, top: int = 5) -> str:
        """One line per most-visited root move."""
        ranked = sorted(self.visit_counts.items(), key=lambda item: -item[1])[:top]
        lines = [
            f"Search: {self.iterations} iterations in {self.elapsed:.3f}s, "
            f"{self.tree_size} nodes, chose {self.move}"
        ]
        for move, visits in ranked:
            lines.append(f"  {move}: visits={visits}, mean={self.mean_rewards[move]:+.3f}")
        return "\n".join(lines)


class ISMCTS:
    """
    Single-observer ISMCTS search driver.

    Attributes:
        num_iterations: Iteration budget (None = time budget only)
        time_limit: Wall-clock budget in seconds (None = iterations only)
        exploration: UCB1 exploration constant C
        reward_function: Maps terminal scores to a per-player reward
        rollout_policy: Chooses moves beyond the tree frontier
        num_workers: Rollout workers (1 = everything in this thread)
        batch_size: Iterations selected per batch in parallel mode
        seed: Base seed (None = fresh entropy per search)
        max_rollout_moves: Safety cap on rollout length
        determinizer: Samples worlds from information sets
    """

    def __init__(
        self,
        num_iterations: Optional[int] = 1000,
        time_limit: Optional[float] = None,
        exploration: float = 0.7,
        reward_function: Union[str, RewardFunction] = 'linear_normalized',
        rollout_policy: Optional[RolloutPolicy] = None,
        num_workers: int = 1,
        batch_size: int = 8,
        seed: Optional[int] = None,
        max_rollout_moves: int = 10_000,
        use_processes: bool = True,
        determinizer: Optional[Determinizer] = None,
    ):
        """
        Initialize the search driver.

        Args:
            num_iterations: Iteration budget (None = time budget only)
            time_limit: Wall-clock budget in seconds (None = iterations only)
            exploration: UCB1 exploration constant C
            reward_function: Reward function or its registry name
            rollout_policy: Rollout move chooser (default uniform random)
            num_workers: Rollout workers; > 1 enables batched parallel search
            batch_size: Iterations per batch in parallel mode
            seed: Base seed for reproducible searches
            max_rollout_moves: Safety cap on rollout length
            use_processes: Use a process pool (True) or thread pool (False)
                for parallel rollouts
            determinizer: Custom determinizer

        Raises:
            ValueError: If no budget is given or a parameter is out of range
        """
        if num_iterations is None and time_limit is None:
            raise ValueError("Either num_iterations or time_limit must be set")
        if num_iterations is not None and num_iterations < 0:
            raise ValueError(f"num_iterations must be non-negative, got {num_iterations}")
        if time_limit is not None and time_limit < 0:
            raise ValueError(f"time_limit must be non-negative, got {time_limit}")
        if exploration < 0:
            raise ValueError(f"exploration must be non-negative, got {exploration}")
        if num_workers < 1:
            raise ValueError(f"num_workers must be positive, got {num_workers}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        if isinstance(reward_function, str):
            reward_function = get_reward_function(reward_function)

        self.num_iterations = num_iterations
        self.time_limit = time_limit
        self.exploration = exploration
        self.reward_function = reward_function
        self.rollout_policy = rollout_policy or random_rollout_policy
        self.num_workers = num_workers
        self.batch_size = batch_size
        self.seed = seed
        self.max_rollout_moves = max_rollout_moves
        self.use_processes = use_processes
        self.determinizer = determinizer or Determinizer()
        self._executor: Optional[concurrent.futures.Executor] = None

    @classmethod
    def from_config(cls, config, **overrides) -> "ISMCTS":
        """
        Build a search driver from a SearchConfig.

        Args:
            config: trickengine.config.SearchConfig
            **overrides: Constructor arguments taking precedence over config

        Returns:
            Configured ISMCTS
        """
        config.validate()
        kwargs = dict(
            num_iterations=config.num_iterations,
            time_limit=config.time_limit,
            exploration=config.exploration,
            reward_function=config.build_reward_function(),
            num_workers=config.num_workers,
            batch_size=config.batch_size,
            seed=config.seed,
            max_rollout_moves=config.max_rollout_moves,
        )
        kwargs.update(overrides)
        return cls(**kwargs)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def search(self, info_set: InformationSet, seed: Optional[int] = None) -> SearchResult:
        """
        Choose a move for the observer of info_set.

        Args:
            info_set: Observer's information set; the observer must be to act
            seed: Base seed for this call (defaults to self.seed, then fresh entropy)

        Returns:
            SearchResult with the chosen move and root statistics

        Raises:
            ValueError: If it is not the observer's turn
            DeterminizationInfeasibleException: If no consistent world exists
        """
        if not info_set.is_observer_to_act:
            raise ValueError(
                f"Player {info_set.observer} is not to act in {info_set.state!r}"
            )

        start_t = time.perf_counter()
        move_order = info_set.legal_moves()
        if len(move_order) == 1:
            return SearchResult(move=move_order[0], visit_counts={move_order[0]: 0},
                                mean_rewards={move_order[0]: 0.0})

        if seed is None:
            seed = self.seed
        if seed is None:
            seed = int(np.random.SeedSequence().generate_state(1)[0])

        deadline = start_t + self.time_limit if self.time_limit is not None else None
        root = ISMCTSNode()
        if self.num_workers > 1:
            iterations = self._run_parallel(root, info_set, seed, deadline)
        else:
            iterations = self._run_serial(root, info_set, seed, deadline)

        move = root.best_move(move_order)
        if move is None:
            move = move_order[0]

        result = SearchResult(
            move=move,
            visit_counts={m: root.children[m].visit_count if m in root.children else 0
                          for m in move_order},
            mean_rewards={m: root.children[m].mean_reward if m in root.children else 0.0
                          for m in move_order},
            iterations=iterations,
            elapsed=time.perf_counter() - start_t,
            tree_size=root.tree_size(),
        )
        logger.debug(result.summary())
        return result

    def best_move(self, info_set: InformationSet, seed: Optional[int] = None) -> Move:
        """Run a search and return only the chosen move."""
        return self.search(info_set, seed=seed).move

    def shutdown(self) -> None:
        """Shut down the rollout worker pool, if any."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "ISMCTS":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Search loops
    # ------------------------------------------------------------------

    def _budget_left(self, iteration: int, deadline: Optional[float]) -> bool:
        if self.num_iterations is not None and iteration >= self.num_iterations:
            return False
        if deadline is not None and time.perf_counter() >= deadline:
            return False
        return True

    def _run_serial(
        self, root: ISMCTSNode, info_set: InformationSet, seed: int, deadline: Optional[float]
    ) -> int:
        iteration = 0
        while self._budget_left(iteration, deadline):
            rng = np.random.default_rng([seed, iteration])

            # PHASE 1: DETERMINIZATION
            state = self.determinizer.determinize(info_set, rng)

            # PHASE 2 & 3: SELECTION & EXPANSION
            path, leaf_state = self._select_and_expand(root, state, info_set.observer, rng)

            # PHASE 4: SIMULATION
            rollout_seed = int(rng.integers(2**31))
            scores = self._leaf_scores(leaf_state, rollout_seed)

            # PHASE 5: BACKPROPAGATION
            self._backpropagate(root, path, scores)
            iteration += 1
        return iteration

    def _run_parallel(
        self, root: ISMCTSNode, info_set: InformationSet, seed: int, deadline: Optional[float]
    ) -> int:
        executor = self._get_executor()
        iteration = 0
        while self._budget_left(iteration, deadline):
            batch: List[Tuple[List[ISMCTSNode], Union[List[int], concurrent.futures.Future]]] = []
            for _ in range(self.batch_size):
                if self.num_iterations is not None and iteration >= self.num_iterations:
                    break
                rng = np.random.default_rng([seed, iteration])
                state = self.determinizer.determinize(info_set, rng)
                path, leaf_state = self._select_and_expand(root, state, info_set.observer, rng)
                for node in path[1:]:
                    node.add_virtual_loss()

                rollout_seed = int(rng.integers(2**31))
                if leaf_state.is_terminal():
                    pending = leaf_state.scores()
                else:
                    pending = executor.submit(
                        _rollout_worker, leaf_state, self.rollout_policy,
                        rollout_seed, self.max_rollout_moves,
                    )
                batch.append((path, pending))
                iteration += 1

            for path, pending in batch:
                scores = pending.result() if isinstance(pending, concurrent.futures.Future) else pending
                for node in path[1:]:
                    node.remove_virtual_loss()
                self._backpropagate(root, path, scores)
        return iteration

    def _get_executor(self) -> concurrent.futures.Executor:
        if self._executor is None:
            if self.use_processes:
                self._executor = concurrent.futures.ProcessPoolExecutor(
                    max_workers=self.num_workers
                )
            else:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self.num_workers
                )
        return self._executor

    # ------------------------------------------------------------------
    # Iteration phases
    # ------------------------------------------------------------------

    def _select_and_expand(
        self, root: ISMCTSNode, state: GameState, observer: int, rng: np.random.Generator
    ) -> Tuple[List[ISMCTSNode], GameState]:
        """
        Descend the tree in the given world and expand one child.

        Children are keyed by the move as the observer sees it. When several
        concrete moves share one public move (a card the observer cannot
        see), one of them is drawn uniformly and applied to the world.

        Returns:
            Tuple of (path of nodes from root, state at the end of the path)
        """
        node = root
        path = [root]
        while not state.is_terminal():
            legal = state.legal_moves()
            if not legal:
                raise GameStateException(
                    f"{type(state).__name__} has no legal moves but is not terminal"
                )

            by_public: Dict[Move, List[Move]] = {}
            for move in legal:
                by_public.setdefault(state.public_move(move, observer), []).append(move)
            public = list(by_public)

            untried = node.untried_moves(public)
            if untried:
                key = untried[int(rng.integers(len(untried)))]
                child = node.add_child(key, state.current_player())
                node.mark_available(public)
                path.append(child)
                return path, state.apply(_pick(by_public[key], rng))

            node.mark_available(public)
            node = node.select_child(public, self.exploration)
            state = state.apply(_pick(by_public[node.move], rng))
            path.append(node)
        return path, state

    def _leaf_scores(self, state: GameState, rollout_seed: int) -> List[int]:
        if state.is_terminal():
            return state.scores()
        return _rollout_worker(state, self.rollout_policy, rollout_seed, self.max_rollout_moves)

    def _backpropagate(self, root: ISMCTSNode, path: List[ISMCTSNode], scores: List[int]) -> None:
        rewards = player_rewards(self.reward_function, scores)
        if rewards is None:
            raise GameStateException("Rollout ended without terminal scores")
        root.visit_count += 1
        for node in path[1:]:
            node.update(rewards[node.player])
