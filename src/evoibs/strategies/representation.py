"""
Strategy Representation Module

This module defines the abstract base class for the storage and handling of
the strategies of all individuals in a population. The population engine is
generic over the representation: it never accesses strategies directly.

Strategies are double buffered. Updates are written to a scratch buffer
('update_from_model_at()', 'mutate_at()', 'swap_at()') and only take effect
once committed ('commit_at()' or 'commit()').

Classes:
    StrategyRepresentation: Abstract base class for strategy representations
"""

import numpy as np
from abc    import ABC, abstractmethod
from typing import Any

class StrategyRepresentation(ABC):
    """
    Abstract base class for strategy representations.

    Subclasses must implement:
    - n_traits:             Number of traits per individual
    - _allocate(size):      Allocate strategy storage
    - init():               Initial strategies
    - value_at(index):      Strategy of an individual as passed to games
    - mutate_at(me, switched): Mutate the (updated) strategy of an individual
    - distance(a, b):       Distance between the strategies of two individuals
    - encode(), decode():   (De)serialisation to normalised vectors
    - min_score(game), max_score(game), min_mono_score(game), max_mono_score(game)
    - mean_traits(), histogram(bins)

    Public Attributes:
        size:       Number of individuals
        strategies: Committed strategies
        scratch:    Scratch buffer for proposed strategies

    Public Methods:
        alloc(size):                    Allocate storage (if needed)
        prepare():                      Copy committed strategies to the scratch buffer
        commit():                       Commit all strategies
        commit_at(me):                  Commit the strategy of one individual
        update_from_model_at(me, model): Propose the strategy of 'model' for 'me'
        swap_at(a, b):                  Propose to swap the strategies of 'a' and 'b'
        is_same_strategy(me):           Whether the proposed strategy equals the committed one
        have_same_strategy(a, b):       Whether 'a' and 'b' have the same strategy
        preferred_best(me, best, sample): Tie-break between equally fit models
        pair_scores(me, group, game):   Payoffs of pairwise interactions
        group_scores(me, group, game):  Payoffs of a group interaction
        is_monomorphic():               Whether all individuals share one strategy
    """

    # whether best-reply dynamics are well defined
    supports_best_reply: bool = False

    def __init__(self, rng: np.random.Generator):
        """
        Parameters:
            rng: random number generator (shared with the population)
        """
        self._rng      : np.random.Generator = rng
        self.size      : int                 = 0
        self.strategies: np.ndarray          = None
        self.scratch   : np.ndarray          = None

    @property
    @abstractmethod
    def n_traits(self) -> int:
        pass

    def alloc(self, size: int) -> bool:
        """
        Allocate storage for 'size' individuals. Existing storage is
        kept if the size and the number of traits are unchanged.

        Returns:
            True if storage was (re)allocated
        """
        if self.strategies is not None and self.size == size and self._shape_matches():
            return False
        self.size = size
        self._allocate(size)
        return True

    def _shape_matches(self) -> bool:
        return True

    @abstractmethod
    def _allocate(self, size: int):
        pass

    @abstractmethod
    def init(self):
        """
        Set the initial strategies (committed and scratch).
        """
        pass

    @abstractmethod
    def value_at(self, index: int) -> Any:
        """
        The strategy of individual 'index' as passed to the payoff functions.
        """
        pass

    def prepare(self):
        self.scratch[...] = self.strategies

    def commit(self):
        self.strategies, self.scratch = self.scratch, self.strategies

    def commit_at(self, me: int):
        self.strategies[me] = self.scratch[me]

    def update_from_model_at(self, me: int, model: int):
        self.scratch[me] = self.strategies[model]

    def swap_at(self, a: int, b: int):
        self.scratch[a] = self.strategies[b]
        self.scratch[b] = self.strategies[a]

    @abstractmethod
    def mutate_at(self, me: int, switched: bool):
        """
        Mutate the strategy of 'me'. If 'switched' is True the strategy was already
        updated and the mutation applies to the proposed strategy in the scratch buffer.
        """
        pass

    @abstractmethod
    def distance(self, a: int, b: int) -> float:
        pass

    def is_same_strategy(self, me: int) -> bool:
        return bool(np.all(np.abs(self.strategies[me] - self.scratch[me]) < 1e-8))

    def have_same_strategy(self, a: int, b: int) -> bool:
        return self.distance(a, b) < 1e-8

    def preferred_best(self, me: int, best: int, sample: int) -> bool:
        """
        Tie-break for the best update: whether 'me' prefers the strategy of
        'sample' over that of the current 'best'. The strategy closer to the
        strategy of 'me' is preferred.
        """
        dist_sample = self.distance(me, sample)
        if dist_sample < 1e-8:
            return True
        return dist_sample < self.distance(me, best)

    def pair_scores(self, me: int, group, game) -> tuple[float, np.ndarray]:
        """
        Pairwise interactions of 'me' with every member of 'group'.

        Returns:
            (accumulated payoff of 'me', array of payoffs of the group members)
        """
        mine   = self.value_at(me)
        total  = 0.0
        theirs = np.empty(len(group))
        for i, you in enumerate(group):
            yours      = self.value_at(you)
            total     += game.payoff(mine, yours)
            theirs[i]  = game.payoff(yours, mine)
        return total, theirs

    def group_scores(self, me: int, group, game) -> tuple[float, np.ndarray]:
        """
        Group interaction of 'me' with all members of 'group'. Games without
        a group capability are treated as averages of pairwise interactions.

        Returns:
            (payoff of 'me', array of payoffs of the group members)
        """
        if len(group) == 0:
            return 0.0, np.zeros(0)
        if hasattr(game, 'group_scores'):
            return game.group_scores(self.value_at(me), [self.value_at(you) for you in group])
        total, theirs = self.pair_scores(me, group, game)
        return total / len(group), theirs

    def best_reply_at(self, me: int, group, game) -> bool:
        raise RuntimeError("best-reply dynamics ill defined for this strategy representation")

    def is_monomorphic(self) -> bool:
        return bool(np.all(np.abs(self.strategies - self.strategies[0]) < 1e-8))

    @abstractmethod
    def encode(self) -> list[list[float]]:
        pass

    @abstractmethod
    def decode(self, data: list[list[float]]) -> bool:
        pass

    @abstractmethod
    def min_score(self, game) -> float:
        pass

    @abstractmethod
    def max_score(self, game) -> float:
        pass

    @abstractmethod
    def min_mono_score(self, game) -> float:
        pass

    @abstractmethod
    def max_mono_score(self, game) -> float:
        pass

    @abstractmethod
    def mean_traits(self) -> tuple[np.ndarray, np.ndarray]:
        pass

    @abstractmethod
    def histogram(self, bins: int) -> np.ndarray:
        pass
