"""
Trick or Bid game engine.

Four players, a 52-card deck of four suits each holding the values
0, 1, 1, 2, 2, 3, 3, 4, 5, 6, 7, 8, 9. Each player deals once, so a full
game is four hands of thirteen tricks.

Rules:
    - Players must follow the led suit when able.
    - Identical cards (same value and suit) played to one trick cancel out.
      Of the remaining cards, the highest trump wins, else the highest card
      of the led suit. A trick with no eligible winner is set aside and goes
      to the winner of the next trick with a winner.
    - A trick winner without a bid either takes the trick or picks one of
      the other players' cards from it as their bid card; the rest of the
      trick is discarded. The first bid card chosen in a hand names trump.
    - Scoring uses TRICK_OR_BID_SCORE_TABLE on the distance between tricks
      taken and the bid card's value; no bid scores NO_BID_PENALTY.
"""

from collections import Counter
from typing import List, Optional

import numpy as np

from trickengine.game.base import Card, GameState, GameStateException, Move, make_deck
from trickengine.game.constants import (
    NO_BID_PENALTY,
    TOB_HAND_SIZE,
    TOB_PLAYERS,
    TOB_SUIT_VALUES,
    TOB_SUITS,
    TRICK_OR_BID_SCORE_TABLE,
)

PLAY = 'play'
SELECT_BID = 'select_bid'
GAME_OVER = 'game_over'


def calculate_score(bid_card: Optional[Card], tricks_won: int) -> int:
    """
    Score a hand from the bid card and tricks won.

    Examples:
        >>> calculate_score(Card(3, 'Green'), 3)
        3
        >>> calculate_score(Card(3, 'Green'), 5)
        0
        >>> calculate_score(None, 2)
        -1
    """
    if bid_card is None:
        return NO_BID_PENALTY
    return TRICK_OR_BID_SCORE_TABLE.get(abs(tricks_won - bid_card.rank), 0)


def trick_winner(lead_player: int, trick: List[Card], trump: Optional[str]) -> Optional[int]:
    """
    Determine the seat winning a complete trick.

    Args:
        lead_player: Seat that led the trick
        trick: Card per seat
        trump: Trump suit, or None before any bid card was picked

    Returns:
        Winning seat, or None if every card cancelled or no eligible card
        followed the led suit
    """
    counts = Counter((card.rank, card.suit) for card in trick)
    eligible = [
        (seat, card) for seat, card in enumerate(trick)
        if counts[(card.rank, card.suit)] == 1
    ]

    for suit in (trump, trick[lead_player].suit):
        if suit is None:
            continue
        candidates = [(seat, card) for seat, card in eligible if card.suit == suit]
        if candidates:
            return max(candidates, key=lambda played: played[1].rank)[0]
    return None


class TrickOrBidGame(GameState):
    """
    Trick or Bid game state.

    Attributes:
        dealer: Seat of the current dealer
        lead_player: Seat leading the current trick
        current_trick: Card per seat in the current trick (None = not played)
        accumulated: Cards from tricks that had no winner
        bid_cards: Bid card per seat this hand
        trump: Trump suit, set by the first bid card of the hand
        game_scores: Running totals
        last_hand_points: Points per seat on the last scored hand
        hands_played: Number of scored hands
        num_hands: Hands in a full game
        deal_seed: Seed for the next deal
    """

    def __init__(self, seed: Optional[int] = None, dealer: int = 0, num_hands: int = TOB_PLAYERS):
        if not 0 <= dealer < TOB_PLAYERS:
            raise ValueError(f"dealer must be in [0, {TOB_PLAYERS}), got {dealer}")
        if num_hands < 1:
            raise ValueError(f"num_hands must be positive, got {num_hands}")
        if seed is None:
            seed = int(np.random.SeedSequence().generate_state(1)[0])

        self.num_players = TOB_PLAYERS
        self.num_hands = num_hands
        self.dealer = dealer
        self.deal_seed = seed
        self.game_scores = [0] * TOB_PLAYERS
        self.last_hand_points = [0] * TOB_PLAYERS
        self.hands_played = 0
        self._start_hand()

    def _start_hand(self):
        rng = np.random.default_rng(self.deal_seed)
        deck = make_deck(TOB_SUITS, TOB_SUIT_VALUES)
        order = [deck[i] for i in rng.permutation(len(deck))]
        self.deal_seed = int(rng.integers(2**31))

        self.hands = [
            sorted(order[p * TOB_HAND_SIZE:(p + 1) * TOB_HAND_SIZE])
            for p in range(self.num_players)
        ]
        self.voids = [set() for _ in range(self.num_players)]
        self.tricks_won = [0] * self.num_players
        self.tricks_played = 0
        self.current_trick: List[Optional[Card]] = [None] * self.num_players
        self.accumulated: List[Card] = []
        self.bid_cards: List[Optional[Card]] = [None] * self.num_players
        self.trump: Optional[str] = None
        self.lead_player = self.dealer
        self.current_player_index = self.dealer
        self.phase = PLAY

    def _reseed(self, seed: int) -> None:
        self.deal_seed = seed

    def _copy_extra_state(self, new_state: "TrickOrBidGame") -> None:
        new_state.current_trick = list(self.current_trick)
        new_state.accumulated = list(self.accumulated)
        new_state.bid_cards = list(self.bid_cards)
        new_state.game_scores = list(self.game_scores)
        new_state.last_hand_points = list(self.last_hand_points)

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

    def led_suit(self) -> Optional[str]:
        lead_card = self.current_trick[self.lead_player]
        return lead_card.suit if lead_card is not None else None

    def legal_moves(self) -> List[Move]:
        player = self.current_player_index
        if self.phase == PLAY:
            hand = self.hands[player]
            led = self.led_suit()
            if led is not None:
                following = [c for c in hand if c.suit == led]
                if following:
                    return [Move('play', card=c) for c in following]
            return [Move('play', card=c) for c in hand]
        if self.phase == SELECT_BID:
            moves = [Move('pass')]
            moves += [
                Move('bid_card', card=card)
                for seat, card in enumerate(self.current_trick)
                if seat != player
            ]
            return moves
        return []

    def _apply_in_place(self, move: Move) -> None:
        player = self.current_player_index
        if self.phase == PLAY:
            self._apply_play(move.card)
        elif self.phase == SELECT_BID:
            if move.kind == 'pass':
                self._take_trick(player)
            else:
                if self.trump is None:
                    self.trump = move.card.suit
                self.bid_cards[player] = move.card
                self.current_trick = [None] * self.num_players
                self._continue_hand()
        else:
            raise GameStateException(f"Cannot apply {move} in phase {self.phase}")

    def _apply_play(self, card: Card) -> None:
        player = self.current_player_index
        led = self.led_suit()
        if led is not None and card.suit != led:
            self.voids[player].add(led)
        self.hands[player].remove(card)
        self.current_trick[player] = card

        if any(c is None for c in self.current_trick):
            self.current_player_index = (player + 1) % self.num_players
            return

        self.tricks_played += 1
        winner = trick_winner(self.lead_player, self.current_trick, self.trump)
        if winner is None:
            self.accumulated.extend(self.current_trick)
            self.current_trick = [None] * self.num_players
            self.current_player_index = self.lead_player
            if all(not hand for hand in self.hands):
                self.accumulated = []
                self._end_hand()
            return

        self.lead_player = winner
        self.current_player_index = winner
        if self.accumulated:
            self.tricks_won[winner] += len(self.accumulated) // self.num_players
            self.accumulated = []

        if self.bid_cards[winner] is not None:
            self._take_trick(winner)
        else:
            self.phase = SELECT_BID

    def _take_trick(self, player: int) -> None:
        self.tricks_won[player] += 1
        self.current_trick = [None] * self.num_players
        self._continue_hand()

    def _continue_hand(self) -> None:
        if any(self.hands):
            self.phase = PLAY
        else:
            self._end_hand()

    def _end_hand(self) -> None:
        self.last_hand_points = [
            calculate_score(self.bid_cards[p], self.tricks_won[p])
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
            f"TrickOrBidGame(phase={self.phase}, dealer={self.dealer}, "
            f"trump={self.trump}, scores={self.game_scores})"
        )
