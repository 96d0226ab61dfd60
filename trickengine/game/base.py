"""
Core abstractions shared by every searchable card game.

This module defines the immutable Card and Move value types, the game
exception hierarchy, and the GameState contract that the ISMCTS engine
relies on. A concrete game implements the contract once; nothing in the
search layer knows about a particular rule set.

Contract summary:
    - legal_moves(): ordered, deterministic, empty only when terminal
    - apply(move): pure, returns a new state, raises IllegalMoveException
    - current_player(), is_terminal(), scores()
    - hidden-information hooks used to build determinizations

States are snapshots. apply() always clones first and mutates only the
clone, so a pre-move state can be shared by sibling tree branches.
"""

import copy
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple


# ============================================================================
# Custom Exceptions
# ============================================================================


class GameException(Exception):
    """Base exception for card game errors."""

    pass


class IllegalMoveException(GameException):
    """Raised when a move is applied that is not in legal_moves()."""

    def __init__(self, player: int, move: "Move", reason: str):
        self.player = player
        self.move = move
        self.reason = reason
        super().__init__(f"Player {player} attempted {move} illegally: {reason}")


class GameStateException(GameException):
    """Raised when game is in invalid state for requested action."""

    pass


# ============================================================================
# Card and Move
# ============================================================================


@dataclass(frozen=True, order=True)
class Card:
    """
    Immutable playing card.

    Cards order by rank, then suit, then copy, which gives every game a
    stable sort for hands and move lists.

    Attributes:
        rank: Ordered numeric rank (e.g. 9-14 in Kaibosh, 0-9 in Trick or Bid)
        suit: Suit name from the game's fixed suit list
        copy: Index distinguishing physical duplicates of the same rank/suit
    """

    rank: int
    suit: str
    copy: int = 0

    def __str__(self) -> str:
        """Human-readable representation (e.g. '11♠', '3Green')."""
        return f"{self.rank}{self.suit}"

    def __repr__(self) -> str:
        if self.copy:
            return f"Card({self.rank}, '{self.suit}', copy={self.copy})"
        return f"Card({self.rank}, '{self.suit}')"


@dataclass(frozen=True)
class Move:
    """
    A discriminated game action.

    Attributes:
        kind: Action type (e.g. 'bid', 'pass', 'trump', 'play', 'misdeal')
        value: Optional integer payload (bid amount, suit index, slot index)
        card: Optional card payload for card-based actions

    Example:
        >>> Move('play', card=Card(11, '♠'))
        Move(play 11♠)
    """

    kind: str
    value: Optional[int] = None
    card: Optional[Card] = None

    def __repr__(self) -> str:
        parts = [self.kind]
        if self.value is not None:
            parts.append(str(self.value))
        if self.card is not None:
            parts.append(str(self.card))
        return f"Move({' '.join(parts)})"


def make_deck(suits: Sequence[str], ranks: Sequence[int]) -> List[Card]:
    """
    Build a deck with one card per (suit, rank) entry.

    Ranks may repeat; repeated ranks within a suit get increasing copy
    indices so every physical card stays distinct.

    Args:
        suits: Suit names
        ranks: Rank values per suit, duplicates allowed

    Returns:
        List of cards in suit-major order
    """
    deck = []
    for suit in suits:
        seen: Dict[int, int] = {}
        for rank in ranks:
            deck.append(Card(rank, suit, seen.get(rank, 0)))
            seen[rank] = seen.get(rank, 0) + 1
    return deck


# ============================================================================
# GameState contract
# ============================================================================


class GameState(ABC):
    """
    Searchable game state.

    Subclasses hold all hands (exact, whether real or determinized), trick
    and bid history, trump, scores and a phase tag. Hidden-information hooks
    describe which cards are concealed from other players and which
    constraints apply to them.

    Attributes:
        num_players: Number of seats at the table
        hands: Cards held by each seat
        voids: Suits each seat is known not to hold (within the current hand)
        tricks_won: Tricks taken by each seat in the current hand
        tricks_played: Completed tricks in the current hand
    """

    num_players: int
    hands: List[List[Card]]
    voids: List[set]
    tricks_won: List[int]
    tricks_played: int

    # ------------------------------------------------------------------
    # Search contract
    # ------------------------------------------------------------------

    @abstractmethod
    def legal_moves(self) -> List[Move]:
        """Return the legal moves for the player to act, in a fixed order."""

    @abstractmethod
    def current_player(self) -> int:
        """Return the seat whose turn it is."""

    @abstractmethod
    def is_terminal(self) -> bool:
        """Return True once the game is over."""

    @abstractmethod
    def scores(self) -> Optional[List[int]]:
        """Return per-seat totals when terminal, otherwise None."""

    @abstractmethod
    def _apply_in_place(self, move: Move) -> None:
        """Mutate this state by one (already validated) move."""

    def apply(self, move: Move) -> "GameState":
        """
        Apply a move and return the successor state.

        The receiver is never modified.

        Args:
            move: Move to apply

        Returns:
            New state after the move

        Raises:
            IllegalMoveException: If move is not currently legal
        """
        if self.is_terminal():
            raise IllegalMoveException(
                self.current_player(), move, "game is already over"
            )
        if move not in self.legal_moves():
            raise IllegalMoveException(
                self.current_player(), move, "move is not in legal_moves()"
            )
        new_state = self.copy()
        new_state._apply_in_place(move)
        return new_state

    def copy(self) -> "GameState":
        """
        Clone the state so the copy shares no mutable containers.

        Cards and moves are immutable, so only the containers are copied.
        """
        new_state = copy.copy(self)
        new_state.hands = [list(hand) for hand in self.hands]
        new_state.voids = [set(v) for v in self.voids]
        new_state.tricks_won = list(self.tricks_won)
        self._copy_extra_state(new_state)
        return new_state

    def _copy_extra_state(self, new_state: "GameState") -> None:
        """Copy game-specific mutable containers onto new_state."""

    # ------------------------------------------------------------------
    # Hidden-information hooks
    # ------------------------------------------------------------------

    def hidden_hand(self, player: int) -> Tuple[Card, ...]:
        """Concealed cards of player that are subject to void constraints."""
        return tuple(self.hands[player])

    def hidden_extras(self, player: int) -> Tuple[Card, ...]:
        """Concealed cards of player that are not subject to void constraints."""
        return ()

    def revealed_cards(self, player: int) -> FrozenSet[Card]:
        """Concealed cards of player whose identity is public."""
        return frozenset()

    def void_suits(self, player: int) -> FrozenSet[str]:
        """Suits player has shown out of during the current hand."""
        return frozenset(self.voids[player])

    def suit_of(self, card: Card) -> str:
        """Effective suit of card for following and void inference."""
        return card.suit

    def public_move(self, move: Move, observer: int) -> Move:
        """
        The move as observer sees it when the player to act makes it.

        Moves that conceal a card from observer must all map to the same
        public move, since observer cannot tell them apart.
        """
        return move

    def with_hidden_cards(
        self,
        hands: Dict[int, List[Card]],
        extras: Optional[Dict[int, List[Card]]] = None,
        redeal_seed: Optional[int] = None,
    ) -> "GameState":
        """
        Return a copy with replacement concealed cards.

        Args:
            hands: Replacement void-constrained hand per seat (seats omitted keep theirs)
            extras: Replacement unconstrained concealed cards per seat
            redeal_seed: Seed for any future deals in the copy

        Returns:
            New state with the given concealed cards
        """
        new_state = self.copy()
        for player, hand in hands.items():
            new_state.hands[player] = list(hand)
        if extras:
            for player, cards in extras.items():
                new_state._set_hidden_extras(player, list(cards))
        if redeal_seed is not None:
            new_state._reseed(redeal_seed)
        return new_state

    def _set_hidden_extras(self, player: int, cards: List[Card]) -> None:
        if cards:
            raise GameStateException(
                f"{type(self).__name__} has no hidden extra cards for player {player}"
            )

    def _reseed(self, seed: int) -> None:
        """Replace the seed used for future deals."""
