"""
Information sets for imperfect information search.

An information set is everything one player (the observer) can legally
know about the game: their own concealed cards exactly, the public state
(bids, trump, tricks, scores), and for every opponent the number of
concealed cards they hold plus the constraints revealed by play.

Constraints per opponent:
    - cards_in_hand: hand size (always public)
    - extra_hidden: concealed cards outside the hand (e.g. a face-down bid card)
    - cannot_have_suits: suits the player failed to follow (voids)
    - known_cards: concealed cards whose identity is public

The unseen pool is every card concealed from the observer that is not
publicly known. It equals the deck minus the observer's cards minus all
cards out of play, so building it from the wrapped snapshot leaks nothing
about how the pool is split between opponents.

Invariant: observer cards + opponents' concealed cards + cards out of play
equals the game's deck size at every point.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from trickengine.game.base import Card, GameState, Move


@dataclass
class PlayerConstraints:
    """
    Constraints on what concealed cards an opponent can hold.

    Attributes:
        player_position: Seat of this player
        cards_in_hand: Number of cards in hand (void constrained)
        extra_hidden: Number of concealed cards outside the hand
        cannot_have_suits: Suits they've revealed they don't have
        known_cards: Concealed cards whose identity is public
    """

    player_position: int
    cards_in_hand: int
    extra_hidden: int = 0
    cannot_have_suits: Set[str] = field(default_factory=set)
    known_cards: Set[Card] = field(default_factory=set)

    @property
    def unknown_slots(self) -> int:
        """Hand slots not filled by known cards."""
        return self.cards_in_hand - len(self.known_cards)

    def can_hold_suit(self, suit: str) -> bool:
        return suit not in self.cannot_have_suits


class InformationSet:
    """
    One player's view of a game state.

    The wrapped state supplies public information and the observer's own
    cards. Opponent hands inside it are never read individually; they are
    only pooled.

    Attributes:
        state: Snapshot the view was taken from
        observer: Seat whose perspective this is
        num_players: Number of seats
        known_cards: Observer's concealed cards
        unseen_cards: Sorted pool of cards concealed from the observer
        player_constraints: Constraints per opponent seat
    """

    def __init__(self, state: GameState, observer: int):
        """
        Build the information set of observer.

        Args:
            state: Current game state
            observer: Seat whose perspective we're tracking

        Raises:
            ValueError: If observer is not a seat of state
        """
        if not 0 <= observer < state.num_players:
            raise ValueError(
                f"observer must be in [0, {state.num_players}), got {observer}"
            )
        self.state = state
        self.observer = observer
        self.num_players = state.num_players
        self._refresh()

    def _refresh(self):
        state = self.state
        self.known_cards: Set[Card] = set(state.hidden_hand(self.observer))
        self.known_cards.update(state.hidden_extras(self.observer))

        self.player_constraints: Dict[int, PlayerConstraints] = {}
        unseen: Set[Card] = set()
        for pos in range(self.num_players):
            if pos == self.observer:
                continue
            hand = state.hidden_hand(pos)
            extras = state.hidden_extras(pos)
            known = set(state.revealed_cards(pos)).intersection(hand)
            self.player_constraints[pos] = PlayerConstraints(
                player_position=pos,
                cards_in_hand=len(hand),
                extra_hidden=len(extras),
                cannot_have_suits=set(state.void_suits(pos)),
                known_cards=known,
            )
            unseen.update(card for card in hand if card not in known)
            unseen.update(extras)

        self.unseen_cards: List[Card] = sorted(unseen)

    def observe(self, move: Move) -> None:
        """
        Advance the view by a publicly observed move.

        Hand counts, voids and revealed cards are recomputed from the
        successor state; voids recorded earlier in the hand persist because
        the game keeps them for the rest of the hand.

        Args:
            move: Move made by the player to act

        Raises:
            IllegalMoveException: If move is not legal in the current state
        """
        self.state = self.state.apply(move)
        self._refresh()

    @property
    def is_observer_to_act(self) -> bool:
        return (
            not self.state.is_terminal()
            and self.state.current_player() == self.observer
        )

    def legal_moves(self) -> List[Move]:
        """Legal moves of the player to act (independent of hidden cards)."""
        return self.state.legal_moves()

    def hidden_card_count(self) -> int:
        """Total concealed cards across opponents, known ones included."""
        return sum(c.cards_in_hand + c.extra_hidden for c in self.player_constraints.values())

    def can_have_card(self, player_position: int, card: Card) -> bool:
        """
        Check if a player can possibly hold card in hand.

        Args:
            player_position: Seat to query
            card: Card to check

        Returns:
            True if card is consistent with all constraints
        """
        if player_position == self.observer:
            return card in self.known_cards
        constraints = self.player_constraints[player_position]
        if card in constraints.known_cards:
            return True
        if card not in self.unseen_cards:
            return False
        return constraints.can_hold_suit(self.state.suit_of(card))

    def get_possible_cards(self, player_position: int) -> Set[Card]:
        """Cards a player could hold in hand, given all constraints."""
        if player_position == self.observer:
            return set(self.known_cards)
        constraints = self.player_constraints[player_position]
        possible = set(constraints.known_cards)
        possible.update(
            card for card in self.unseen_cards
            if constraints.can_hold_suit(self.state.suit_of(card))
        )
        return possible

    def is_consistent_hand(
        self, player_position: int, hand: Sequence[Card], extras: Sequence[Card] = ()
    ) -> bool:
        """
        Check if a proposed assignment is consistent with constraints.

        Args:
            player_position: Seat of the player
            hand: Proposed hand
            extras: Proposed concealed cards outside the hand

        Returns:
            True if sizes, voids and known cards all match
        """
        if player_position == self.observer:
            return set(hand) | set(extras) == self.known_cards

        constraints = self.player_constraints[player_position]
        if len(hand) != constraints.cards_in_hand or len(extras) != constraints.extra_hidden:
            return False
        if not constraints.known_cards.issubset(hand):
            return False
        for card in hand:
            if not constraints.can_hold_suit(self.state.suit_of(card)):
                return False
        return True

    def get_belief_summary(self) -> str:
        """
        Get human-readable summary of the information set.

        Returns:
            Multi-line string describing constraints per opponent
        """
        lines = ["Information Set Summary:"]
        lines.append(f"Observer: Player {self.observer}")
        lines.append(f"Own concealed cards: {len(self.known_cards)}")
        lines.append(f"Unseen cards: {len(self.unseen_cards)}")

        for pos, constraints in self.player_constraints.items():
            lines.append(f"\nPlayer {pos}:")
            lines.append(f"  Cards in hand: {constraints.cards_in_hand}")
            if constraints.extra_hidden:
                lines.append(f"  Other concealed cards: {constraints.extra_hidden}")
            lines.append(f"  Cannot have suits: {sorted(constraints.cannot_have_suits)}")
            if constraints.known_cards:
                lines.append(f"  Known cards: {sorted(constraints.known_cards)}")

        return "\n".join(lines)
