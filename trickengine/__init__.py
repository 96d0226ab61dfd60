"""
trickengine: ISMCTS decision engine for trick-taking card games.

Subpackages:
    game: searchable game contract and concrete rule sets
    mcts: information sets, determinization, tree search and reward shaping
    evaluation: batch harness for pitting search configurations against each other
"""

__version__ = "0.1.0"
