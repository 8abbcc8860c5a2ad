"""
Continuous Strategies Module

This module implements strategies consisting of one or more continuous traits.
Traits are stored normalised to [0, 1] and scaled to [trait_min, trait_max]
whenever they are passed to a game.

Classes:
    MutationType:         Enumeration of mutation kernels (UNIFORM, GAUSSIAN)
    InitType:             Enumeration of initial trait distributions (UNIFORM, GAUSSIAN)
    ContinuousStrategies: Strategy representation for continuous traits
"""

import itertools
import numpy as np
from enum import Enum

from evoibs.strategies.representation import StrategyRepresentation

# Grid search for extremal scores: number of bins per trait interval and refinement rounds
MINMAX_STEPS = 10
MINMAX_ITER  = 5

class MutationType(Enum):
    """
    Mutations either draw a new trait uniformly at random or perturb the
    trait with Gaussian noise (truncated to [0, 1] by resampling).
    """
    UNIFORM  = "uniform"
    GAUSSIAN = "gaussian"

class InitType(Enum):
    """
    Initial traits are drawn uniformly at random or from a truncated
    Gaussian around the initial mean.
    """
    UNIFORM  = "uniform"
    GAUSSIAN = "gaussian"

class ContinuousStrategies(StrategyRepresentation):
    """
    Strategies consisting of 'n_traits' continuous traits.

    Mutations affect a single, randomly chosen trait. The extremal payoffs
    (for resident/mutant pairs and for monomorphic populations) are found
    by a coarse to fine grid search and cached.

    Public Attributes:
        trait_min:     Lower bound of every trait
        trait_max:     Upper bound of every trait
        init_type:     Initial trait distribution (InitType)
        init_mean:     Mean of the initial traits (in trait units)
        init_sdev:     Standard deviation of the initial traits (in trait units)
        mutation_type: Mutation kernel (MutationType)
        mutation_sdev: Standard deviation of Gaussian mutations (normalised units)
    """

    def __init__(self, rng: np.random.Generator,
                 n_traits     : int          = 1,
                 trait_min                   = 0.0,
                 trait_max                   = 1.0,
                 init_type    : InitType     = InitType.GAUSSIAN,
                 init_mean                   = 0.5,
                 init_sdev                   = 0.0,
                 mutation_type: MutationType = MutationType.GAUSSIAN,
                 mutation_sdev               = 0.01):
        """
        Parameters:
            rng:           random number generator
            n_traits:      number of traits
            trait_min:     lower trait bound(s), scalar or one per trait
            trait_max:     upper trait bound(s), scalar or one per trait
            init_type:     initial trait distribution
            init_mean:     initial mean trait(s), in trait units
            init_sdev:     standard deviation(s) of initial traits, in trait units
            mutation_type: mutation kernel
            mutation_sdev: standard deviation(s) of Gaussian mutations, normalised units
        """
        super().__init__(rng)
        self._n_traits: int = n_traits

        def per_trait(value):
            return np.broadcast_to(np.asarray(value, dtype=float), (n_traits,)).copy()

        self.trait_min    : np.ndarray   = per_trait(trait_min)
        self.trait_max    : np.ndarray   = per_trait(trait_max)
        if np.any(self.trait_max <= self.trait_min):
            raise ValueError("trait_max must exceed trait_min")
        self.init_type    : InitType     = init_type
        self.init_mean    : np.ndarray   = per_trait(init_mean)
        self.init_sdev    : np.ndarray   = per_trait(init_sdev)
        self.mutation_type: MutationType = mutation_type
        self.mutation_sdev: np.ndarray   = per_trait(mutation_sdev)

        self._extremal: dict[int, tuple[float, float, float, float]] = {}

    @property
    def n_traits(self) -> int:
        return self._n_traits

    @property
    def trait_range(self) -> np.ndarray:
        return self.trait_max - self.trait_min

    def _shape_matches(self) -> bool:
        return self.strategies.shape[1] == self._n_traits

    def _allocate(self, size: int):
        self.strategies = np.zeros((size, self._n_traits))
        self.scratch    = np.zeros((size, self._n_traits))

    def _truncated_gaussian(self, mean: np.ndarray, sdev: np.ndarray, count: int) -> np.ndarray:
        """
        Draw 'count' samples per trait, resampling until all lie within [0, 1].
        """
        samples = self._rng.normal(mean, sdev, size=(count, len(mean)))
        invalid = (samples < 0.0) | (samples > 1.0)
        while np.any(invalid):
            samples[invalid] = self._rng.normal(np.broadcast_to(mean, samples.shape)[invalid],
                                                np.broadcast_to(sdev, samples.shape)[invalid])
            invalid = (samples < 0.0) | (samples > 1.0)
        return samples

    def init(self):
        if self.init_type is InitType.UNIFORM:
            self.strategies[...] = self._rng.random((self.size, self._n_traits))
        elif self.init_type is InitType.GAUSSIAN:
            mean = np.clip((self.init_mean - self.trait_min) / self.trait_range, 0.0, 1.0)
            sdev = self.init_sdev / self.trait_range
            if np.all(sdev <= 0.0):
                self.strategies[...] = mean
            else:
                self.strategies[...] = self._truncated_gaussian(mean, np.maximum(sdev, 0.0), self.size)
        else:
            raise RuntimeError("bad initialization type")
        self.scratch[...] = self.strategies
        self._extremal.clear()

    def value_at(self, index: int) -> np.ndarray:
        return self.trait_min + self.strategies[index] * self.trait_range

    def scaled(self, normalised) -> np.ndarray:
        return self.trait_min + np.asarray(normalised) * self.trait_range

    def mutate_at(self, me: int, switched: bool):
        loc = int(self._rng.integers(self._n_traits)) if self._n_traits > 1 else 0
        if not switched:
            # all traits need to be proposed, not only the mutated one
            self.scratch[me] = self.strategies[me]
        if self.mutation_type is MutationType.UNIFORM:
            self.scratch[me, loc] = self._rng.random()
            return
        if self.mutation_type is MutationType.GAUSSIAN:
            mean = self.scratch[me, loc]
            sdev = self.mutation_sdev[loc]
            mutant = self._rng.normal(mean, sdev)
            while mutant < 0.0 or mutant > 1.0:
                mutant = self._rng.normal(mean, sdev)
            self.scratch[me, loc] = mutant
            return
        raise RuntimeError("bad mutation type")

    def distance(self, a: int, b: int) -> float:
        return float(np.linalg.norm(self.strategies[a] - self.strategies[b]))

    def encode(self) -> list[list[float]]:
        return self.strategies.tolist()

    def decode(self, data: list[list[float]]) -> bool:
        """
        Restore strategies from normalised trait vectors.

        Returns:
            False if the data does not match the population (nothing changes)
        """
        vectors = np.asarray(data, dtype=float)
        if vectors.shape != (self.size, self._n_traits):
            return False
        if np.any(vectors < 0.0) or np.any(vectors > 1.0):
            return False
        self.strategies[...] = vectors
        self.scratch[...]    = vectors
        return True

    # ------------------------------------------------------------------
    # extremal scores
    # ------------------------------------------------------------------

    def _grid_search(self, score, n_dims: int, maximum: bool) -> float:
        """
        Coarse to fine grid search for the extremum of 'score' over the unit
        hypercube of dimension 'n_dims'. Each round evaluates all grid points
        (MINMAX_STEPS bins per dimension) and shrinks every interval around the
        best grid point.

        Parameters:
            score:   function of a point (array of length 'n_dims')
            n_dims:  number of dimensions
            maximum: search for the maximum (True) or minimum (False)
        """
        sign  = 1.0 if maximum else -1.0
        lower = np.zeros(n_dims)
        upper = np.ones(n_dims)
        found = -np.inf
        for _ in range(MINMAX_ITER):
            scale     = (upper - lower) / MINMAX_STEPS
            best      = -np.inf
            best_idx  = np.zeros(n_dims, dtype=int)
            for idx in itertools.product(range(MINMAX_STEPS + 1), repeat=n_dims):
                value = sign * score(lower + np.asarray(idx) * scale)
                if value > best:
                    best     = value
                    best_idx = np.asarray(idx)
            found = max(found, best)
            for d in range(n_dims):
                if best_idx[d] == 0:
                    upper[d] = lower[d] + scale[d]
                elif best_idx[d] == MINMAX_STEPS:
                    lower[d] += (MINMAX_STEPS - 1) * scale[d]
                else:
                    lower[d] += (best_idx[d] - 1) * scale[d]
                    upper[d]  = lower[d] + 2.0 * scale[d]
        return sign * found

    def _extremal_scores(self, game) -> tuple[float, float, float, float]:
        key = id(game)
        if key not in self._extremal:
            n = self._n_traits

            def pair(point):
                return game.payoff(self.scaled(point[:n]), self.scaled(point[n:]))

            def mono(point):
                trait = self.scaled(point)
                return game.payoff(trait, trait)

            self._extremal[key] = (self._grid_search(pair, 2 * n, False),
                                   self._grid_search(pair, 2 * n, True),
                                   self._grid_search(mono, n, False),
                                   self._grid_search(mono, n, True))
        return self._extremal[key]

    def min_score(self, game) -> float:
        return self._extremal_scores(game)[0]

    def max_score(self, game) -> float:
        return self._extremal_scores(game)[1]

    def min_mono_score(self, game) -> float:
        return self._extremal_scores(game)[2]

    def max_mono_score(self, game) -> float:
        return self._extremal_scores(game)[3]

    # ------------------------------------------------------------------
    # statistics
    # ------------------------------------------------------------------

    def mean_traits(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Mean and standard deviation of every trait (in trait units).
        """
        values = self.trait_min + self.strategies * self.trait_range
        return values.mean(axis=0), values.std(axis=0)

    def histogram(self, bins: int = 100) -> np.ndarray:
        """
        Frequencies of the traits in 'bins' equally sized bins, one row per trait.
        """
        hist = np.empty((self._n_traits, bins))
        for t in range(self._n_traits):
            counts, _ = np.histogram(self.strategies[:, t], bins=bins, range=(0.0, 1.0))
            hist[t] = counts / self.size
        return hist
