"""
trickengine game engines.

This package contains the searchable game contract and the concrete rule
sets (Kaibosh, Dealer's Dilemma, Trick or Bid) that implement it.
"""

from typing import Dict, Type

from trickengine.game.base import (
    Card,
    GameException,
    GameState,
    GameStateException,
    IllegalMoveException,
    Move,
    make_deck,
)
from trickengine.game.dealers_dilemma import DealersDilemmaGame
from trickengine.game.kaibosh import KaiboshGame
from trickengine.game.trick_or_bid import TrickOrBidGame

GAMES: Dict[str, Type[GameState]] = {
    'kaibosh': KaiboshGame,
    'dealers_dilemma': DealersDilemmaGame,
    'trick_or_bid': TrickOrBidGame,
}


def create_game(name: str, **kwargs) -> GameState:
    """
    Create a new game by registry name.

    Args:
        name: One of the keys of GAMES
        **kwargs: Passed to the game constructor (seed, dealer, ...)

    Returns:
        Freshly dealt game state

    Raises:
        ValueError: If name is not a registered game
    """
    if name not in GAMES:
        raise ValueError(f"Unknown game '{name}'. Must be one of {sorted(GAMES)}")
    return GAMES[name](**kwargs)


__all__ = [
    "Card",
    "Move",
    "GameState",
    "GameException",
    "GameStateException",
    "IllegalMoveException",
    "make_deck",
    "KaiboshGame",
    "DealersDilemmaGame",
    "TrickOrBidGame",
    "GAMES",
    "create_game",
]
