"""
Discrete Strategies Module

Classes:
    DiscreteStrategies: Strategy representation for a finite number of strategy types
"""

import numpy as np
from typing import TYPE_CHECKING

from evoibs.strategies.representation import StrategyRepresentation
if TYPE_CHECKING:
    from evoibs.games import MatrixGame

class DiscreteStrategies(StrategyRepresentation):
    """
    Individuals adopt one of 'n_types' strategy types.

    Initial types are drawn according to (relative) initial frequencies.
    Mutations switch to one of the other types, chosen uniformly at random.
    Encoded strategies are one-hot vectors.

    Public Attributes:
        n_types:       Number of strategy types
        init_freqs:    Relative initial frequencies of the types
    """

    supports_best_reply = True

    def __init__(self, rng: np.random.Generator, n_types: int, init_freqs=None):
        """
        Parameters:
            rng:        random number generator
            n_types:    number of strategy types
            init_freqs: relative initial frequencies (uniform if None)
        """
        super().__init__(rng)
        self.n_types   : int        = n_types
        freqs = np.ones(n_types) if init_freqs is None else np.asarray(init_freqs, dtype=float)
        if len(freqs) != n_types or np.any(freqs < 0.0) or freqs.sum() <= 0.0:
            raise ValueError(f"bad initial frequencies {list(freqs)} for {n_types} strategy types")
        self.init_freqs: np.ndarray = freqs / freqs.sum()

    @property
    def n_traits(self) -> int:
        return 1

    def _allocate(self, size: int):
        self.strategies = np.zeros(size, dtype=int)
        self.scratch    = np.zeros(size, dtype=int)

    def init(self):
        self.strategies[:] = self._rng.choice(self.n_types, size=self.size, p=self.init_freqs)
        self.scratch[:]    = self.strategies

    def value_at(self, index: int) -> int:
        return int(self.strategies[index])

    def mutate_at(self, me: int, switched: bool):
        current = self.scratch[me] if switched else self.strategies[me]
        if self.n_types < 2:
            self.scratch[me] = current
            return
        mutant = int(self._rng.integers(self.n_types - 1))
        self.scratch[me] = mutant + 1 if mutant >= current else mutant

    def distance(self, a: int, b: int) -> float:
        return 0.0 if self.strategies[a] == self.strategies[b] else 1.0

    def frequencies(self) -> np.ndarray:
        """Frequencies of all strategy types."""
        return np.bincount(self.strategies, minlength=self.n_types) / self.size

    def pair_scores(self, me: int, group, game: 'MatrixGame') -> tuple[float, np.ndarray]:
        mine  = self.strategies[me]
        yours = self.strategies[np.asarray(group, dtype=int)]
        return float(game.matrix[mine, yours].sum()), game.matrix[yours, mine]

    def best_reply_at(self, me: int, group, game: 'MatrixGame') -> bool:
        """
        Switch to the type with the highest payoff against the reference group,
        or against the rest of the population if the group is empty (well-mixed
        populations). Ties keep the current type.

        Returns:
            True if the type changed
        """
        if len(group) == 0:
            counts = np.bincount(self.strategies, minlength=self.n_types).astype(float)
            counts[self.strategies[me]] -= 1.0
        else:
            counts = np.bincount(self.strategies[np.asarray(group, dtype=int)],
                                 minlength=self.n_types).astype(float)
        payoffs = game.matrix @ counts
        current = self.strategies[me]
        best    = int(np.argmax(payoffs))
        if payoffs[best] - payoffs[current] < 1e-8:
            self.scratch[me] = current
            return False
        self.scratch[me] = best
        return True

    def min_score(self, game: 'MatrixGame') -> float:
        return game.min_payoff()

    def max_score(self, game: 'MatrixGame') -> float:
        return game.max_payoff()

    def min_mono_score(self, game: 'MatrixGame') -> float:
        return float(game.mono_payoffs().min())

    def max_mono_score(self, game: 'MatrixGame') -> float:
        return float(game.mono_payoffs().max())

    def encode(self) -> list[list[float]]:
        onehot = np.zeros((self.size, self.n_types))
        onehot[np.arange(self.size), self.strategies] = 1.0
        return onehot.tolist()

    def decode(self, data: list[list[float]]) -> bool:
        """
        Restore strategies from one-hot vectors.

        Returns:
            False if the data does not match the population (nothing changes)
        """
        vectors = np.asarray(data, dtype=float)
        if vectors.shape != (self.size, self.n_types):
            return False
        if not np.allclose(vectors.sum(axis=1), 1.0) or not np.all(np.isin(vectors, (0.0, 1.0))):
            return False
        self.strategies[:] = np.argmax(vectors, axis=1)
        self.scratch[:]    = self.strategies
        return True

    def mean_traits(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Mean and standard deviation of the type frequencies (the standard
        deviation of frequencies of a single population is zero).
        """
        return self.frequencies(), np.zeros(self.n_types)

    def histogram(self, bins: int = 0) -> np.ndarray:
        return self.frequencies()[np.newaxis, :]
