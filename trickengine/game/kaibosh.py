"""
Kaibosh game engine.

Kaibosh is a four-player partnership Euchre variant played with a 24-card
deck (9 through ace in four suits). Partners sit opposite each other
(seats 0/2 and 1/3).

Hand flow:
    1. Bidding: starting left of the dealer, each player passes or bids
       higher than the current high bid (1-6 tricks). A bid of 12
       ("kaibosh") promises all six tricks alone and ends bidding at once.
       A hand holding four nines, or three nines and two tens, may call a
       misdeal before anyone has bid; the deal passes to the next dealer
       with no score change. If the first three players pass, the dealer
       must bid.
       With bid conventions on, a bid of 1 shows two or more aces and a bid
       of 2 shows a black and a red jack; both are open only before the
       bidder's partner has bid.
    2. Naming trump: the high bidder names trump.
    3. Play: six tricks. Players must follow the led suit when able. The
       jack of trump (right bower) is the highest card, the other jack of
       the same colour (left bower) the second highest. With the bower rule
       on, the left bower belongs to the trump suit for following. On a
       kaibosh the bidder's partner sits out and the bidder leads.

Scoring per hand:
    - Bidders taking at least their bid score the tricks they took.
    - Otherwise bidders lose their bid and defenders score their tricks.
    - Kaibosh scores +12 if all six tricks are taken, else -12.
"""

from typing import List, Optional, Tuple

import numpy as np

from trickengine.game.base import Card, GameState, GameStateException, Move, make_deck
from trickengine.game.constants import (
    ACE,
    ACES_CONVENTION_BID,
    BLACK_SUITS,
    CONVENTION_MIN_ACES,
    JACK,
    JACKS_CONVENTION_BID,
    KAIBOSH_BID,
    KAIBOSH_HAND_SIZE,
    KAIBOSH_PLAYERS,
    KAIBOSH_POINTS,
    KAIBOSH_RANKS,
    KAIBOSH_SUITS,
    LEAD_OFFSET,
    LEFT_BOWER_VALUE,
    MAX_BID,
    NINE,
    PASS_BID,
    RIGHT_BOWER_VALUE,
    SAME_COLOUR_SUIT,
    TEN,
    TRUMP_OFFSET,
)

BIDDING = 'bidding'
NAME_TRUMP = 'name_trump'
PLAY = 'play'
GAME_OVER = 'game_over'


def score_hand(bid: int, bidding_tricks: int, defending_tricks: int) -> Tuple[int, int]:
    """
    Score one Kaibosh hand.

    Args:
        bid: Winning bid (1-6 or KAIBOSH_BID)
        bidding_tricks: Tricks taken by the bidding team
        defending_tricks: Tricks taken by the defending team

    Returns:
        Tuple of (bidding team points, defending team points)

    Examples:
        >>> score_hand(4, 5, 1)
        (5, 0)
        >>> score_hand(4, 2, 4)
        (-4, 4)
        >>> score_hand(KAIBOSH_BID, 6, 0)
        (12, 0)
    """
    if bid == KAIBOSH_BID:
        if bidding_tricks == KAIBOSH_HAND_SIZE:
            return KAIBOSH_POINTS, 0
        return -KAIBOSH_POINTS, defending_tricks

    if bidding_tricks >= bid:
        return bidding_tricks, 0
    return -bid, defending_tricks


def is_misdeal_hand(hand: List[Card]) -> bool:
    """Return True if hand holds four nines, or three nines and two tens."""
    nines = sum(1 for card in hand if card.rank == NINE)
    tens = sum(1 for card in hand if card.rank == TEN)
    return nines == 4 or (nines == 3 and tens >= 2)


class KaiboshGame(GameState):
    """
    Kaibosh game state.

    Attributes:
        dealer: Seat of the current dealer
        bids: Bid per seat this hand (None = not yet bid, 0 = pass)
        bidder: Seat holding the winning bid, once bidding is over
        high_bid: Highest bid so far
        trump: Trump suit once named
        current_trick: (seat, card) pairs in play order
        team_scores: Running score for teams 0 (seats 0/2) and 1 (seats 1/3)
        last_hand_points: Points each team earned on the last scored hand
        hands_played: Number of scored hands
        misdeals: Number of misdeals called
        target_score: Game ends when a team reaches this; None = one hand
        bower_follows_trump: Whether the left bower counts as trump for following
        bid_conventions: Whether bids of 1 and 2 are reserved for convention hands
        deal_seed: Seed for the next deal
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        dealer: int = 3,
        target_score: Optional[int] = None,
        bower_follows_trump: bool = True,
        bid_conventions: bool = False,
    ):
        """
        Initialize a game and deal the first hand.

        Args:
            seed: Seed for the deal sequence (random if None)
            dealer: Dealer of the first hand
            target_score: Play hands until a team reaches this score;
                None ends the game after one scored hand
            bower_follows_trump: Treat the left bower as trump when following
            bid_conventions: Allow a bid of 1 only with two or more aces and
                a bid of 2 only with a black and a red jack, both only before
                the bidder's partner has bid

        Raises:
            ValueError: If dealer is not a valid seat
        """
        if not 0 <= dealer < KAIBOSH_PLAYERS:
            raise ValueError(f"dealer must be in [0, {KAIBOSH_PLAYERS}), got {dealer}")
        if seed is None:
            seed = int(np.random.SeedSequence().generate_state(1)[0])

        self.num_players = KAIBOSH_PLAYERS
        self.target_score = target_score
        self.bower_follows_trump = bower_follows_trump
        self.bid_conventions = bid_conventions
        self.dealer = dealer
        self.deal_seed = seed
        self.team_scores = [0, 0]
        self.last_hand_points = [0, 0]
        self.hands_played = 0
        self.misdeals = 0
        self.phase = BIDDING
        self._start_hand()

    # ------------------------------------------------------------------
    # Dealing
    # ------------------------------------------------------------------

    def _start_hand(self):
        """Shuffle with deal_seed and deal six cards to every seat."""
        rng = np.random.default_rng(self.deal_seed)
        deck = make_deck(KAIBOSH_SUITS, KAIBOSH_RANKS)
        order = rng.permutation(len(deck))
        self.deal_seed = int(rng.integers(2**31))

        self.hands = [
            sorted(deck[i] for i in order[p * KAIBOSH_HAND_SIZE:(p + 1) * KAIBOSH_HAND_SIZE])
            for p in range(self.num_players)
        ]
        self.voids = [set() for _ in range(self.num_players)]
        self.tricks_won = [0] * self.num_players
        self.tricks_played = 0
        self.bids: List[Optional[int]] = [None] * self.num_players
        self.bidder: Optional[int] = None
        self.high_bid = PASS_BID
        self.trump: Optional[str] = None
        self.current_trick: List[Tuple[int, Card]] = []
        self.phase = BIDDING
        self.current_player_index = (self.dealer + 1) % self.num_players

    def _reseed(self, seed: int) -> None:
        self.deal_seed = seed

    def _copy_extra_state(self, new_state: "KaiboshGame") -> None:
        new_state.bids = list(self.bids)
        new_state.current_trick = list(self.current_trick)
        new_state.team_scores = list(self.team_scores)
        new_state.last_hand_points = list(self.last_hand_points)

    # ------------------------------------------------------------------
    # Rules helpers
    # ------------------------------------------------------------------

    @staticmethod
    def team_of(player: int) -> int:
        """Team index (0 or 1) for a seat."""
        return player % 2

    @property
    def is_kaibosh(self) -> bool:
        return self.high_bid == KAIBOSH_BID

    def sitting_out(self) -> Optional[int]:
        """Seat of the partner who sits out a kaibosh, or None."""
        if self.is_kaibosh and self.bidder is not None:
            return (self.bidder + 2) % self.num_players
        return None

    def is_left_bower(self, card: Card) -> bool:
        return (
            self.trump is not None
            and card.rank == JACK
            and card.suit == SAME_COLOUR_SUIT[self.trump]
        )

    def is_right_bower(self, card: Card) -> bool:
        return self.trump is not None and card.rank == JACK and card.suit == self.trump

    def suit_of(self, card: Card) -> str:
        """Effective suit: the left bower follows as trump when the rule is on."""
        if self.bower_follows_trump and self.is_left_bower(card):
            return self.trump
        return card.suit

    def led_suit(self) -> Optional[str]:
        if not self.current_trick:
            return None
        return self.suit_of(self.current_trick[0][1])

    def card_value(self, card: Card, led_suit: Optional[str]) -> int:
        """Strength of card within a trick led with led_suit."""
        if self.is_right_bower(card):
            return RIGHT_BOWER_VALUE
        if self.is_left_bower(card):
            return LEFT_BOWER_VALUE
        if card.suit == self.trump:
            return TRUMP_OFFSET + card.rank
        if card.suit == led_suit:
            return LEAD_OFFSET + card.rank
        return card.rank

    def _next_seat(self, player: int) -> int:
        seat = (player + 1) % self.num_players
        if seat == self.sitting_out():
            seat = (seat + 1) % self.num_players
        return seat

    def _players_in_trick(self) -> int:
        return self.num_players - 1 if self.is_kaibosh else self.num_players

    # ------------------------------------------------------------------
    # Search contract
    # ------------------------------------------------------------------

    def current_player(self) -> int:
        return self.current_player_index

    def is_terminal(self) -> bool:
        return self.phase == GAME_OVER

    def scores(self) -> Optional[List[int]]:
        """Team score for every seat once the game is over."""
        if not self.is_terminal():
            return None
        return [self.team_scores[self.team_of(p)] for p in range(self.num_players)]

    def legal_moves(self) -> List[Move]:
        if self.phase == BIDDING:
            return self._legal_bids()
        if self.phase == NAME_TRUMP:
            return [Move('trump', value=i) for i in range(len(KAIBOSH_SUITS))]
        if self.phase == PLAY:
            hand = self.hands[self.current_player_index]
            led = self.led_suit()
            if led is not None:
                following = [c for c in hand if self.suit_of(c) == led]
                if following:
                    return [Move('play', card=c) for c in following]
            return [Move('play', card=c) for c in hand]
        return []

    def _legal_bids(self) -> List[Move]:
        player = self.current_player_index
        moves = []
        others_passed = all(
            self.bids[p] == PASS_BID for p in range(self.num_players) if p != player
        )
        stuck_dealer = player == self.dealer and others_passed
        if not stuck_dealer:
            moves.append(Move('pass'))
        for bid in range(self.high_bid + 1, MAX_BID + 1):
            if self.bid_conventions and not self._convention_allows(player, bid):
                continue
            moves.append(Move('bid', value=bid))
        moves.append(Move('bid', value=KAIBOSH_BID))
        if self.high_bid == PASS_BID and is_misdeal_hand(self.hands[player]):
            moves.append(Move('misdeal'))
        return moves

    def _convention_allows(self, player: int, bid: int) -> bool:
        """Whether a convention bid is open to player; other bids always are."""
        if bid not in (ACES_CONVENTION_BID, JACKS_CONVENTION_BID):
            return True
        if self.bids[(player + 2) % self.num_players] is not None:
            return False
        hand = self.hands[player]
        if bid == ACES_CONVENTION_BID:
            return sum(1 for c in hand if c.rank == ACE) >= CONVENTION_MIN_ACES
        jacks = {c.suit in BLACK_SUITS for c in hand if c.rank == JACK}
        return jacks == {True, False}

    def _apply_in_place(self, move: Move) -> None:
        if self.phase == BIDDING:
            self._apply_bid(move)
        elif self.phase == NAME_TRUMP:
            self._apply_name_trump(move)
        elif self.phase == PLAY:
            self._apply_play(move.card)
        else:
            raise GameStateException(f"Cannot apply {move} in phase {self.phase}")

    def _apply_bid(self, move: Move) -> None:
        player = self.current_player_index

        if move.kind == 'misdeal':
            self.misdeals += 1
            self.dealer = (self.dealer + 1) % self.num_players
            self._start_hand()
            return

        bid = PASS_BID if move.kind == 'pass' else move.value
        self.bids[player] = bid
        if bid > self.high_bid:
            self.high_bid = bid
            self.bidder = player

        if bid == KAIBOSH_BID or all(b is not None for b in self.bids):
            self.phase = NAME_TRUMP
            self.current_player_index = self.bidder
        else:
            self.current_player_index = (player + 1) % self.num_players

    def _apply_name_trump(self, move: Move) -> None:
        self.trump = KAIBOSH_SUITS[move.value]
        self.phase = PLAY
        if self.is_kaibosh:
            self.current_player_index = self.bidder
        else:
            self.current_player_index = (self.dealer + 1) % self.num_players

    def _apply_play(self, card: Card) -> None:
        player = self.current_player_index
        led = self.led_suit()
        if led is not None and self.suit_of(card) != led:
            self.voids[player].add(led)

        self.hands[player].remove(card)
        self.current_trick.append((player, card))

        if len(self.current_trick) < self._players_in_trick():
            self.current_player_index = self._next_seat(player)
            return

        led = self.led_suit()
        winner, _ = max(
            self.current_trick, key=lambda played: self.card_value(played[1], led)
        )
        self.tricks_won[winner] += 1
        self.tricks_played += 1
        self.current_trick = []
        self.current_player_index = winner

        if self.tricks_played == KAIBOSH_HAND_SIZE:
            self._end_hand()

    def _end_hand(self) -> None:
        bidding_team = self.team_of(self.bidder)
        bidding_tricks = sum(
            self.tricks_won[p] for p in range(self.num_players)
            if self.team_of(p) == bidding_team
        )
        defending_tricks = self.tricks_played - bidding_tricks
        bidding_points, defending_points = score_hand(
            self.high_bid, bidding_tricks, defending_tricks
        )

        self.last_hand_points = [0, 0]
        self.last_hand_points[bidding_team] = bidding_points
        self.last_hand_points[1 - bidding_team] = defending_points
        for team in range(2):
            self.team_scores[team] += self.last_hand_points[team]
        self.hands_played += 1

        if self.target_score is None or max(self.team_scores) >= self.target_score:
            self.phase = GAME_OVER
            return

        self.dealer = (self.dealer + 1) % self.num_players
        self._start_hand()

    def __repr__(self) -> str:
        return (
            f"KaiboshGame(phase={self.phase}, dealer={self.dealer}, "
            f"bid={self.high_bid}, trump={self.trump}, scores={self.team_scores})"
        )
