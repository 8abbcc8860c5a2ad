"""
Evoibs Strategies Package

This package implements the storage of strategies and everything that
depends on how strategies are represented: mutations, tie-breaks,
payoff evaluation against a game and trait statistics.

Modules:
    representation: StrategyRepresentation abstract base class
    discrete:       DiscreteStrategies class
    continuous:     ContinuousStrategies class, MutationType and InitType enumerations

Exported Classes:
    StrategyRepresentation: Abstract base class for strategy representations
    DiscreteStrategies:     Finite number of strategy types
    ContinuousStrategies:   Continuous traits
    MutationType:           Mutation kernels of continuous traits
    InitType:               Initial distributions of continuous traits
"""

from evoibs.strategies.continuous     import ContinuousStrategies, InitType, MutationType
from evoibs.strategies.discrete       import DiscreteStrategies
from evoibs.strategies.representation import StrategyRepresentation

__all__ = ['ContinuousStrategies',
           'DiscreteStrategies',
           'InitType',
           'MutationType',
           'StrategyRepresentation']
