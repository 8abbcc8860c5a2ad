"""
Evoibs Games Package

This package provides reference payoff functions. Any object providing
'payoff(a, b)' (and optionally 'group_scores(me, others)') can serve as
a game.

Modules:
    matrix_game: MatrixGame class
    snowdrift:   ContinuousSnowdrift class

Exported Classes:
    MatrixGame:          Game between discrete strategy types
    ContinuousSnowdrift: Snowdrift game with continuous investments
"""

from evoibs.games.matrix_game import MatrixGame
from evoibs.games.snowdrift   import ContinuousSnowdrift

__all__ = ['ContinuousSnowdrift',
           'MatrixGame']
