"""
Game constants for the supported trick-taking games.

This module defines the card definitions, seat counts and scoring tables
used by the Kaibosh, Dealer's Dilemma and Trick or Bid engines.
"""

from typing import Dict

# ============================================================================
# Kaibosh (Euchre variant, 24-card deck)
# ============================================================================

# Order also defines the trump-naming moves (0=Clubs ... 3=Spades)
KAIBOSH_SUITS = ['♣', '♦', '♥', '♠']
KAIBOSH_RANKS = [9, 10, 11, 12, 13, 14]
KAIBOSH_PLAYERS = 4
KAIBOSH_HAND_SIZE = 6

NINE = 9
TEN = 10
JACK = 11
ACE = 14

BLACK_SUITS = ('♣', '♠')

# Suit sharing colour with each suit (source of the left bower)
SAME_COLOUR_SUIT = {'♣': '♠', '♠': '♣', '♦': '♥', '♥': '♦'}

PASS_BID = 0
MAX_BID = 6
KAIBOSH_BID = 12
KAIBOSH_POINTS = 12
KAIBOSH_WINNING_SCORE = 25

# Convention bids: 1 shows two or more aces, 2 shows a black and a red jack
ACES_CONVENTION_BID = 1
JACKS_CONVENTION_BID = 2
CONVENTION_MIN_ACES = 2

# Card strength offsets used to rank a trick
RIGHT_BOWER_VALUE = 1000
LEFT_BOWER_VALUE = 500
TRUMP_OFFSET = 200
LEAD_OFFSET = 100

# ============================================================================
# Dealer's Dilemma (3 players, 36-card deck)
# ============================================================================

DD_SUITS = ['Red', 'Blue', 'Yellow', 'Green']
DD_RANKS = list(range(2, 11))
DD_PLAYERS = 3
DD_HAND_SIZE = 12
DD_ROUNDS = 6

BID_TYPE_EASY = 0
BID_TYPE_TOP = 1
BID_TYPE_DIFFERENCE = 2
BID_TYPE_ZERO = 3
BID_TYPE_NAMES = {
    BID_TYPE_EASY: 'Easy',
    BID_TYPE_TOP: 'Top',
    BID_TYPE_DIFFERENCE: 'Difference',
    BID_TYPE_ZERO: 'Zero',
}

EASY_FACE_UP_POINTS = 4
EASY_FACE_DOWN_POINTS = 2
EXACT_BID_POINTS = 8
ZERO_BID_POINTS = 6
MISSED_TRICK_PENALTY = 2

# ============================================================================
# Trick or Bid (4 players, 52-card deck with duplicate values)
# ============================================================================

TOB_SUITS = ['Purple', 'Green', 'Orange', 'Black']
TOB_SUIT_VALUES = [0, 1, 1, 2, 2, 3, 3, 4, 5, 6, 7, 8, 9]
TOB_PLAYERS = 4
TOB_HAND_SIZE = 13

# Points by distance between tricks taken and bid value; anything else scores 0
TRICK_OR_BID_SCORE_TABLE: Dict[int, int] = {
    0: 3,
    1: 1,
}
NO_BID_PENALTY = -1

