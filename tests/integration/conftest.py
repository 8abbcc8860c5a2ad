"""
Shared fixtures for integration tests.
"""

import pytest
import numpy as np

from evoibs.run.config import Config
from evoibs.pool.population import Population
from evoibs.pool.update_types import PlayerUpdateType, PopulationUpdateType
from evoibs.topology import GeometryType


SEED = 42


@pytest.fixture(autouse=True)
def set_random_seeds():
    """Seed the legacy global generator in case any library falls back on it."""
    np.random.seed(SEED)
    yield
    np.random.seed(None)


@pytest.fixture
def seeded_rng():
    """Random number generator with a fixed seed."""
    return np.random.default_rng(SEED)


@pytest.fixture
def lattice_config():
    """Asynchronous imitation on a 10x10 von Neumann lattice (prisoner's dilemma)."""
    config = Config()
    config.population_size     = 100
    config.seed                = SEED
    config.geometry            = GeometryType.SQUARE
    config.connectivity        = 4
    config.population_update   = PopulationUpdateType.ASYNC
    config.player_update       = PlayerUpdateType.IMITATE
    config.player_update_noise = 0.1
    config.mutation_prob       = 0.01
    config.payoff_matrix       = [1.0, -0.2, 1.2, 0.0]
    return config


@pytest.fixture
def build_population():
    """Factory that checks, resets and initializes a population."""
    def build(config, seed=SEED, **kwargs):
        population = Population(config, rng=np.random.default_rng(seed), **kwargs)
        population.check()
        population.reset()
        population.init()
        return population
    return build
