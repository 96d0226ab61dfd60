"""
Dealer's Dilemma game engine.

Three players, a 36-card deck (2-10 in four suits), six hands per game.

Hand flow:
    1. Dealer select: the dealer is dealt ten cards plus two face-up cards.
       The dealer takes one face-up card into hand and leads the other to
       the first trick. Taking a card normally names its suit trump; when
       both face-up cards share a suit the dealer may instead play no-trump.
    2. Bidding: starting with the dealer, each player picks a bid type and
       places two cards from hand as bid cards. For an Easy bid the second
       card is placed face down and stays hidden until scoring.
    3. Play: the player after the dealer follows the dealer's lead card;
       players must follow the led suit when able; highest trump, else
       highest card of the led suit, wins; the winner leads next.

Scoring per hand (see score_for_tricks):
    - Easy: 4 for tricks equal to the face-up card, 2 for tricks equal to
      the face-down card, else minus the distance from the lower card.
    - Top: 8 for tricks equal to the face-up card, else -2 per trick off.
    - Difference: bid is |face-up - sideways|; 8 if exact, else -2 per trick off.
    - Zero: 6 for taking no tricks, else -2 per trick taken.
"""

from typing import List, Optional, Tuple

import numpy as np

from trickengine.game.base import Card, GameState, GameStateException, Move, make_deck
from trickengine.game.constants import (
    BID_TYPE_DIFFERENCE,
    BID_TYPE_EASY,
    BID_TYPE_NAMES,
    BID_TYPE_TOP,
    BID_TYPE_ZERO,
    DD_HAND_SIZE,
    DD_PLAYERS,
    DD_RANKS,
    DD_ROUNDS,
    DD_SUITS,
    EASY_FACE_DOWN_POINTS,
    EASY_FACE_UP_POINTS,
    EXACT_BID_POINTS,
    LEAD_OFFSET,
    MISSED_TRICK_PENALTY,
    TRUMP_OFFSET,
    ZERO_BID_POINTS,
)

DEALER_SELECT = 'dealer_select'
BID_TYPE = 'bid_type'
BID_CARD = 'bid_card'
PLAY = 'play'
GAME_OVER = 'game_over'

HIDDEN_BID_CARD = Move('bid_card_hidden')


def score_for_tricks(bid_type: int, bid_cards: List[Card], tricks: int) -> int:
    """
    Score one player's hand from their bid and tricks taken.

    Args:
        bid_type: One of the BID_TYPE_* constants
        bid_cards: [face-up card, second card]
        tricks: Tricks the player took

    Returns:
        Points for the hand (may be negative)

    Raises:
        ValueError: If bid_type is unknown

    Examples:
        >>> score_for_tricks(BID_TYPE_TOP, [Card(4, 'Red'), Card(9, 'Blue')], 4)
        8
        >>> score_for_tricks(BID_TYPE_ZERO, [Card(4, 'Red'), Card(9, 'Blue')], 2)
        -4
    """
    face_up = bid_cards[0].rank
    if bid_type == BID_TYPE_EASY:
        face_down = bid_cards[1].rank
        if tricks == face_up:
            return EASY_FACE_UP_POINTS
        if tricks == face_down:
            return EASY_FACE_DOWN_POINTS
        return -abs(min(face_up, face_down) - tricks)
    if bid_type == BID_TYPE_TOP:
        if tricks == face_up:
            return EXACT_BID_POINTS
        return -MISSED_TRICK_PENALTY * abs(tricks - face_up)
    if bid_type == BID_TYPE_DIFFERENCE:
        bid = abs(face_up - bid_cards[1].rank)
        if tricks == bid:
            return EXACT_BID_POINTS
        return -MISSED_TRICK_PENALTY * abs(tricks - bid)
    if bid_type == BID_TYPE_ZERO:
        if tricks == 0:
            return ZERO_BID_POINTS
        return -MISSED_TRICK_PENALTY * tricks
    raise ValueError(f"Unknown bid type: {bid_type}")


class DealersDilemmaGame(GameState):
    """
    Dealer's Dilemma game state.

    Attributes:
        dealer: Seat of the current dealer
        dealer_select: The dealer's two face-up cards before selection
        trump: Trump suit (None for no-trump)
        lead_suit: Suit led to the current trick
        lead_player: Seat that led the current trick
        current_trick: Card per seat in the current trick (None = not played)
        bid_types: Bid type per seat this hand
        bid_cards: Placed bid cards per seat ([face-up, second])
        revealed: Cards still in hand whose identity is public
        game_scores: Running totals
        last_hand_points: Points per seat on the last scored hand
        hands_played: Number of scored hands
        num_hands: Hands in a full game
        deal_seed: Seed for the next deal
    """

    def __init__(self, seed: Optional[int] = None, dealer: int = 0, num_hands: int = DD_ROUNDS):
        """
        Initialize a game and deal the first hand.

        Args:
            seed: Seed for the deal sequence (random if None)
            dealer: Dealer of the first hand
            num_hands: Hands to play before the game ends

        Raises:
            ValueError: If dealer or num_hands is invalid
        """
        if not 0 <= dealer < DD_PLAYERS:
            raise ValueError(f"dealer must be in [0, {DD_PLAYERS}), got {dealer}")
        if num_hands < 1:
            raise ValueError(f"num_hands must be positive, got {num_hands}")
        if seed is None:
            seed = int(np.random.SeedSequence().generate_state(1)[0])

        self.num_players = DD_PLAYERS
        self.num_hands = num_hands
        self.dealer = dealer
        self.deal_seed = seed
        self.game_scores = [0] * DD_PLAYERS
        self.last_hand_points = [0] * DD_PLAYERS
        self.hands_played = 0
        self._start_hand()

    def _start_hand(self):
        rng = np.random.default_rng(self.deal_seed)
        deck = make_deck(DD_SUITS, DD_RANKS)
        order = [deck[i] for i in rng.permutation(len(deck))]
        self.deal_seed = int(rng.integers(2**31))

        self.hands = []
        for p in range(self.num_players):
            dealt = order[p * DD_HAND_SIZE:(p + 1) * DD_HAND_SIZE]
            if p == self.dealer:
                self.dealer_select = dealt[-2:]
                dealt = dealt[:-2]
            self.hands.append(sorted(dealt))

        self.voids = [set() for _ in range(self.num_players)]
        self.tricks_won = [0] * self.num_players
        self.tricks_played = 0
        self.trump: Optional[str] = None
        self.lead_suit: Optional[str] = None
        self.lead_player = self.dealer
        self.current_trick: List[Optional[Card]] = [None] * self.num_players
        self.bid_types: List[Optional[int]] = [None] * self.num_players
        self.bid_cards: List[List[Card]] = [[] for _ in range(self.num_players)]
        self.revealed: List[set] = [set() for _ in range(self.num_players)]
        self.phase = DEALER_SELECT
        self.current_player_index = self.dealer

    def _reseed(self, seed: int) -> None:
        self.deal_seed = seed

    def _copy_extra_state(self, new_state: "DealersDilemmaGame") -> None:
        new_state.dealer_select = list(self.dealer_select)
        new_state.current_trick = list(self.current_trick)
        new_state.bid_types = list(self.bid_types)
        new_state.bid_cards = [list(cards) for cards in self.bid_cards]
        new_state.revealed = [set(cards) for cards in self.revealed]
        new_state.game_scores = list(self.game_scores)
        new_state.last_hand_points = list(self.last_hand_points)

    # ------------------------------------------------------------------
    # Hidden information
    # ------------------------------------------------------------------

    def hidden_extras(self, player: int) -> Tuple[Card, ...]:
        """The face-down card of an Easy bid."""
        if self.bid_types[player] == BID_TYPE_EASY and len(self.bid_cards[player]) == 2:
            return (self.bid_cards[player][1],)
        return ()

    def _set_hidden_extras(self, player: int, cards: List[Card]) -> None:
        if len(cards) != len(self.hidden_extras(player)):
            raise GameStateException(
                f"Player {player} conceals {len(self.hidden_extras(player))} bid cards, "
                f"got {len(cards)}"
            )
        if cards:
            self.bid_cards[player][1] = cards[0]

    def revealed_cards(self, player: int):
        return frozenset(self.revealed[player])

    def public_move(self, move: Move, observer: int) -> Move:
        """An opponent's face-down Easy card is seen only as 'a card was placed'."""
        player = self.current_player_index
        if (
            self.phase == BID_CARD
            and player != observer
            and self.bid_types[player] == BID_TYPE_EASY
            and len(self.bid_cards[player]) == 1
        ):
            return HIDDEN_BID_CARD
        return move

    # ------------------------------------------------------------------
    # Search contract
    # ------------------------------------------------------------------

    def current_player(self) -> int:
        return self.current_player_index

    def is_terminal(self) -> bool:
        return self.phase == GAME_OVER

    def scores(self) -> Optional[List[int]]:
        if not self.is_terminal():
            return None
        return list(self.game_scores)

    def legal_moves(self) -> List[Move]:
        if self.phase == DEALER_SELECT:
            moves = [Move('select', value=0), Move('select', value=1)]
            if self.dealer_select[0].suit == self.dealer_select[1].suit:
                moves += [Move('select_no_trump', value=0), Move('select_no_trump', value=1)]
            return moves
        if self.phase == BID_TYPE:
            return [Move('bid_type', value=t) for t in sorted(BID_TYPE_NAMES)]

        hand = self.hands[self.current_player_index]
        if self.phase == BID_CARD:
            return [Move('bid_card', card=c) for c in hand]
        if self.phase == PLAY:
            if self.lead_suit is not None:
                following = [c for c in hand if c.suit == self.lead_suit]
                if following:
                    return [Move('play', card=c) for c in following]
            return [Move('play', card=c) for c in hand]
        return []

    def _apply_in_place(self, move: Move) -> None:
        player = self.current_player_index

        if self.phase == DEALER_SELECT:
            to_hand = self.dealer_select[move.value]
            to_play = self.dealer_select[1 - move.value]
            self.trump = to_hand.suit if move.kind == 'select' else None
            self.hands[player].append(to_hand)
            self.hands[player].sort()
            self.revealed[player].add(to_hand)
            self.current_trick[player] = to_play
            self.lead_suit = to_play.suit
            self.lead_player = player
            self.dealer_select = []
            self.phase = BID_TYPE

        elif self.phase == BID_TYPE:
            self.bid_types[player] = move.value
            self.phase = BID_CARD

        elif self.phase == BID_CARD:
            self.hands[player].remove(move.card)
            self.revealed[player].discard(move.card)
            self.bid_cards[player].append(move.card)
            if len(self.bid_cards[player]) == 2:
                next_player = (player + 1) % self.num_players
                if len(self.bid_cards[next_player]) == 2:
                    # Everyone has bid; the dealer's lead card is already out
                    self.current_player_index = (next_player + 1) % self.num_players
                    self.phase = PLAY
                else:
                    self.current_player_index = next_player
                    self.phase = BID_TYPE

        elif self.phase == PLAY:
            self._apply_play(move.card)

        else:
            raise GameStateException(f"Cannot apply {move} in phase {self.phase}")

    def card_value(self, card: Card) -> int:
        """Strength of card within the current trick."""
        if card.suit == self.trump:
            return TRUMP_OFFSET + card.rank
        if card.suit == self.lead_suit:
            return LEAD_OFFSET + card.rank
        return card.rank

    def _apply_play(self, card: Card) -> None:
        player = self.current_player_index
        self.hands[player].remove(card)
        self.revealed[player].discard(card)

        if self.lead_suit is None:
            self.lead_suit = card.suit
            self.lead_player = player
        elif card.suit != self.lead_suit:
            self.voids[player].add(self.lead_suit)

        self.current_trick[player] = card
        self.current_player_index = (player + 1) % self.num_players
        if any(c is None for c in self.current_trick):
            return

        winner = max(range(self.num_players), key=lambda p: self.card_value(self.current_trick[p]))
        self.tricks_won[winner] += 1
        self.tricks_played += 1
        self.current_trick = [None] * self.num_players
        self.lead_suit = None
        self.lead_player = winner
        self.current_player_index = winner

        if all(not hand for hand in self.hands):
            self._end_hand()

    def _end_hand(self) -> None:
        self.last_hand_points = [
            score_for_tricks(self.bid_types[p], self.bid_cards[p], self.tricks_won[p])
            for p in range(self.num_players)
        ]
        for p in range(self.num_players):
            self.game_scores[p] += self.last_hand_points[p]
        self.hands_played += 1

        if self.hands_played >= self.num_hands:
            self.phase = GAME_OVER
            return

        self.dealer = (self.dealer + 1) % self.num_players
        self._start_hand()

    def __repr__(self) -> str:
        return (
            f"DealersDilemmaGame(phase={self.phase}, dealer={self.dealer}, "
            f"trump={self.trump}, scores={self.game_scores})"
        )
