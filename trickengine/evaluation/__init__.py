"""Batch evaluation of search configurations."""

from trickengine.evaluation.arena import Arena, RandomPlayer, SearchPlayer

__all__ = ['Arena', 'RandomPlayer', 'SearchPlayer']
