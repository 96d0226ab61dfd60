"""
Determinization sampling for information-set MCTS.

A determinization is one concrete, fully specified game state consistent
with an observer's information set: the observer's cards are exact, public
state is unchanged, and every card concealed from the observer is handed to
some opponent such that:
    - every opponent keeps their exact hand size (and extra concealed slots)
    - nobody receives a card of a suit they are recorded void in
    - publicly known cards stay with their holder

Sampling Strategy:

Rejection sampling can spin forever under tight void patterns, so cards are
placed one at a time instead:
    1. Split every opponent into slot groups: the hand (void constrained)
       and extra concealed slots (unconstrained).
    2. Walk the unseen pool in a random order. Each card goes to a group
       that can hold its suit, chosen with probability proportional to the
       slots the group still needs.
    3. A group is only eligible if, after taking the card, the remaining
       cards can still be split consistently. This is Hall's condition on
       the suit-by-group supply and demand and is cheap to check because
       only void-constrained groups can violate it.

Without voids this is exactly a uniform random deal. With voids it never
fails when a consistent deal exists, and it raises
DeterminizationInfeasibleException when none does.

The search draws a fresh determinization every iteration; nothing here is
cached.
"""

import time
from collections import Counter
from itertools import combinations
from typing import Dict, List, Optional, Tuple

import numpy as np

from trickengine.game.base import Card, GameState
from trickengine.mcts.information_set import InformationSet


class DeterminizationInfeasibleException(Exception):
    """Raised when no deal is consistent with the recorded constraints."""

    pass


class _SlotGroup:
    """Concealed slots of one opponent that share the same constraints."""

    __slots__ = ('player', 'is_extra', 'remaining', 'voids', 'cards')

    def __init__(self, player: int, is_extra: bool, needed: int, voids: frozenset):
        self.player = player
        self.is_extra = is_extra
        self.remaining = needed
        self.voids = voids
        self.cards: List[Card] = []


def _hall_condition_holds(groups: List[_SlotGroup], suit_counts: Counter) -> bool:
    """
    Check that the remaining cards can still fill the remaining slots.

    For every set S of void-constrained groups, the slots S needs must not
    exceed the cards of suits at least one member of S may hold. Sets that
    include an unconstrained group reach every suit and always pass.
    """
    constrained = [g for g in groups if g.remaining > 0 and g.voids]
    if not constrained:
        return True
    total_supply = sum(suit_counts.values())

    for size in range(1, len(constrained) + 1):
        for subset in combinations(constrained, size):
            blocked = frozenset.intersection(*(g.voids for g in subset))
            supply = total_supply - sum(suit_counts[s] for s in blocked)
            need = sum(g.remaining for g in subset)
            if need > supply:
                return False
    return True


class Determinizer:
    """
    Samples concrete deals consistent with an information set.

    Attributes:
        validate: Re-check every sample against the information set
    """

    def __init__(self, validate: bool = False):
        """
        Initialize determinizer.

        Args:
            validate: Re-check every sample against all constraints (slow;
                useful while developing a new game)
        """
        self.validate = validate
        # Instrumentation toggle (module-level control functions below)
        self._profiling_enabled = _DET_PROFILING_ENABLED

    def sample_determinization(
        self,
        info_set: InformationSet,
        rng: np.random.Generator,
    ) -> Tuple[Dict[int, List[Card]], Dict[int, List[Card]]]:
        """
        Sample a consistent assignment of unseen cards to opponents.

        Args:
            info_set: Observer's information set
            rng: Random generator for this sample

        Returns:
            Tuple of (hands, extras): concealed cards per opponent seat,
            split into void-constrained hand and extra concealed slots

        Raises:
            DeterminizationInfeasibleException: If constraints admit no deal
        """
        start_t = time.perf_counter() if self._profiling_enabled else 0.0
        suit_of = info_set.state.suit_of
        groups = self._build_groups(info_set)

        pool = info_set.unseen_cards
        needed = sum(g.remaining for g in groups)
        if len(pool) != needed:
            raise DeterminizationInfeasibleException(
                f"Unseen pool has {len(pool)} cards but opponents conceal {needed}"
            )

        suit_counts = Counter(suit_of(card) for card in pool)
        if not _hall_condition_holds(groups, suit_counts):
            raise DeterminizationInfeasibleException(
                "Recorded voids leave too few cards for some opponents: "
                + info_set.get_belief_summary().replace("\n", " ")
            )

        for idx in rng.permutation(len(pool)):
            card = pool[idx]
            suit = suit_of(card)
            suit_counts[suit] -= 1
            group = self._choose_group(groups, suit, suit_counts, rng)
            if group is None:
                raise DeterminizationInfeasibleException(
                    f"No opponent can take {card} without breaking a constraint"
                )
            group.remaining -= 1
            group.cards.append(card)

        hands: Dict[int, List[Card]] = {}
        extras: Dict[int, List[Card]] = {}
        for pos, constraints in info_set.player_constraints.items():
            hands[pos] = sorted(constraints.known_cards)
            extras[pos] = []
        for group in groups:
            target = extras if group.is_extra else hands
            target[group.player].extend(group.cards)
        for pos in hands:
            hands[pos].sort()

        if self.validate:
            self._validate_sample(hands, extras, info_set)

        if self._profiling_enabled:
            _DET_METRICS['sample_determinization_calls'] += 1
            _DET_METRICS['cards_assigned'] += len(pool)
            _DET_METRICS['sample_determinization_total_sec'] += (
                time.perf_counter() - start_t
            )
        return hands, extras

    def _build_groups(self, info_set: InformationSet) -> List[_SlotGroup]:
        suit_of = info_set.state.suit_of
        groups = []
        for pos in sorted(info_set.player_constraints):
            constraints = info_set.player_constraints[pos]
            voids = frozenset(constraints.cannot_have_suits)
            for card in constraints.known_cards:
                if suit_of(card) in voids:
                    raise DeterminizationInfeasibleException(
                        f"Player {pos} is void in {suit_of(card)} but publicly holds {card}"
                    )
            if constraints.unknown_slots > 0:
                groups.append(_SlotGroup(pos, False, constraints.unknown_slots, voids))
            if constraints.extra_hidden > 0:
                groups.append(_SlotGroup(pos, True, constraints.extra_hidden, frozenset()))
        return groups

    def _choose_group(
        self,
        groups: List[_SlotGroup],
        suit: str,
        suit_counts: Counter,
        rng: np.random.Generator,
    ) -> Optional[_SlotGroup]:
        """Pick a group for a card of suit, weighted by slots still needed."""
        candidates = []
        weights = []
        for group in groups:
            if group.remaining == 0 or suit in group.voids:
                continue
            group.remaining -= 1
            feasible = _hall_condition_holds(groups, suit_counts)
            group.remaining += 1
            if self._profiling_enabled:
                _DET_METRICS['feasibility_checks'] += 1
            if feasible:
                candidates.append(group)
                weights.append(group.remaining)

        if not candidates:
            return None
        pick = int(rng.integers(sum(weights)))
        for group, weight in zip(candidates, weights):
            if pick < weight:
                return group
            pick -= weight
        return candidates[-1]

    def _validate_sample(
        self,
        hands: Dict[int, List[Card]],
        extras: Dict[int, List[Card]],
        info_set: InformationSet,
    ) -> None:
        """
        Check a sample against the information set.

        Raises:
            DeterminizationInfeasibleException: If any constraint is violated
        """
        for pos in info_set.player_constraints:
            if not info_set.is_consistent_hand(pos, hands[pos], extras[pos]):
                raise DeterminizationInfeasibleException(
                    f"Sampled cards for player {pos} violate constraints: {hands[pos]}"
                )
        assigned = [card for cards in hands.values() for card in cards]
        assigned += [card for cards in extras.values() for card in cards]
        if len(assigned) != len(set(assigned)):
            raise DeterminizationInfeasibleException("A card was dealt twice")

    def create_determinized_game(
        self,
        info_set: InformationSet,
        hands: Dict[int, List[Card]],
        extras: Dict[int, List[Card]],
        rng: np.random.Generator,
    ) -> GameState:
        """
        Build a concrete game state from sampled concealed cards.

        Future deals in the copy are reseeded from rng, since the observer
        cannot know the order of cards not yet dealt.

        Args:
            info_set: Observer's information set
            hands: Sampled hand per opponent seat
            extras: Sampled extra concealed cards per opponent seat
            rng: Random generator for this sample

        Returns:
            Determinized game state
        """
        return info_set.state.with_hidden_cards(
            hands, extras, redeal_seed=int(rng.integers(2**31))
        )

    def determinize(self, info_set: InformationSet, rng: np.random.Generator) -> GameState:
        """Sample concealed cards and build the resulting game state."""
        hands, extras = self.sample_determinization(info_set, rng)
        return self.create_determinized_game(info_set, hands, extras, rng)


# -------------------
# Lightweight metrics
# -------------------

_DET_PROFILING_ENABLED = False
_DET_METRICS = {
    'sample_determinization_calls': 0,
    'sample_determinization_total_sec': 0.0,
    'cards_assigned': 0,
    'feasibility_checks': 0,
}


def enable_metrics(enabled: bool = True) -> None:
    """Enable or disable determinization instrumentation for this process."""
    global _DET_PROFILING_ENABLED
    _DET_PROFILING_ENABLED = bool(enabled)


def reset_metrics() -> None:
    """Reset determinization metrics counters for this process."""
    for k in list(_DET_METRICS.keys()):
        _DET_METRICS[k] = 0.0 if k.endswith('_sec') else 0


def get_metrics() -> dict:
    """Return a shallow copy of current determinization metrics."""
    metrics = dict(_DET_METRICS)
    calls = metrics['sample_determinization_calls']
    metrics['avg_sample_ms'] = (
        1000.0 * metrics['sample_determinization_total_sec'] / calls if calls else 0.0
    )
    return metrics
