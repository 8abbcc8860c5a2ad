"""
Integration tests for basic evolutionary dynamics.

These tests run complete populations for many updates and verify that the
bookkeeping of scores and fitness stays consistent, that runs are
reproducible and that well known outcomes are recovered.

NOTE: These tests use a fixed random seed (42) for reproducibility.
"""

import pytest
import numpy as np
import networkx as nx

from evoibs.pool.update_types import MigrationType, PopulationUpdateType
from evoibs.run.config        import Config
from evoibs.sampling          import SamplingType
from evoibs.topology          import GeometryType


def recompute(population):
    """Scores and interaction counts of a full recalculation (population unchanged)."""
    saved = (population.scores.copy(), population.interactions.copy(),
             population.fitness.copy(), population.sum_fitness, population._max_idx)
    population.reset_scores()
    population.update_scores()
    result = population.scores.copy(), population.interactions.copy()
    (population.scores[:], population.interactions[:],
     population.fitness[:], population.sum_fitness, population._max_idx) = saved
    return result


def assert_consistent(population):
    """Verify fitness and total fitness against the scores."""
    fitness = population.fitness_map(population.scores)
    assert population.fitness == pytest.approx(fitness)
    assert population.sum_fitness == pytest.approx(fitness.sum(), rel=1e-6)


# ============================================================================
# Test Lattice Evolution
# ============================================================================

class TestLatticeEvolution:
    """Asynchronous imitation on a von Neumann lattice."""

    def test_lattice_geometry(self, lattice_config, build_population):
        """Test that the lattice is a connected 4-regular graph."""
        population = build_population(lattice_config)
        graph = population.interaction.to_networkx()

        assert population.size == 100
        assert nx.is_connected(graph)
        assert {degree for _, degree in graph.degree()} == {4}
        assert population.interaction.check_connections() == []

    def test_long_run_bookkeeping(self, lattice_config, build_population):
        """Test that the total fitness stays consistent after each of 10,000 updates."""
        population = build_population(lattice_config)
        for _ in range(10000):
            population.step()
            assert_consistent(population)

        assert population.generation == pytest.approx(100.0)

    def test_adjusted_scores_match_recalculation(self, lattice_config, build_population):
        """Test that incrementally adjusted scores equal a full recalculation."""
        population = build_population(lattice_config)
        assert population.adjust_scores
        population.advance(20.0)

        scores, interactions = recompute(population)
        assert population.scores == pytest.approx(scores)
        assert population.interactions.tolist() == interactions.tolist()

    def test_accumulated_scores_match_recalculation(self, lattice_config, build_population):
        """Test adjusted accumulated scores on a Moore lattice."""
        lattice_config.connectivity   = 8
        lattice_config.score_averaged = False
        population = build_population(lattice_config)
        population.advance(10.0)

        scores, _ = recompute(population)
        assert population.scores == pytest.approx(scores)
        assert population.max_score == pytest.approx(8 * 2 * 1.2)

    def test_group_games_match_recalculation(self, lattice_config, build_population):
        """Test adjusted scores of group interactions with all neighbours."""
        lattice_config.interaction_group_size = 5
        population = build_population(lattice_config)
        assert not population.pairwise
        population.advance(10.0)

        scores, interactions = recompute(population)
        assert population.scores == pytest.approx(scores)
        assert population.interactions.tolist() == interactions.tolist()

    def test_directed_graph_matches_recalculation(self, build_population):
        """Test adjusted scores on directed random graphs."""
        config = Config()
        config.population_size = 60
        config.geometry        = GeometryType.RANDOM_GRAPH_DIRECTED
        config.connectivity    = 4
        config.mutation_prob   = 0.05
        population = build_population(config)
        population.advance(10.0)

        scores, _ = recompute(population)
        assert population.scores == pytest.approx(scores)

    def test_diffusion(self, lattice_config, build_population):
        """Test that migration keeps the bookkeeping consistent."""
        lattice_config.migration_type = MigrationType.DIFFUSION
        lattice_config.migration_prob = 0.2
        population = build_population(lattice_config)
        population.advance(10.0)

        assert_consistent(population)
        scores, _ = recompute(population)
        assert population.scores == pytest.approx(scores)


# ============================================================================
# Test Reproducibility
# ============================================================================

class TestReproducibility:
    """Identical seeds produce identical runs."""

    def test_same_seed(self, lattice_config, build_population):
        """Test that two runs with the same seed are identical."""
        first, second = build_population(lattice_config), build_population(lattice_config)
        first.advance(5.0)
        second.advance(5.0)

        assert first.strategies.strategies.tolist() == second.strategies.strategies.tolist()
        assert first.scores.tolist() == second.scores.tolist()
        assert first.tags.tolist() == second.tags.tolist()
        assert first.realtime == second.realtime

    def test_different_seeds(self, lattice_config, build_population):
        """Test that different seeds produce different runs."""
        first, second = build_population(lattice_config, seed=1), build_population(lattice_config, seed=2)
        first.advance(5.0)
        second.advance(5.0)
        assert first.strategies.strategies.tolist() != second.strategies.strategies.tolist()

    def test_rewired_graphs_reproducible(self, lattice_config, build_population):
        """Test that randomized geometries are reproducible."""
        lattice_config.p_undirected = 0.1
        first, second = build_population(lattice_config), build_population(lattice_config)
        assert first.interaction.out == second.interaction.out


# ============================================================================
# Test Selection
# ============================================================================

class TestSelection:
    """Fitness proportional selection in large populations."""

    def test_selection_frequencies(self, build_population):
        """Test that selection frequencies match relative fitness."""
        config = Config()
        config.population_size = 200
        population = build_population(config)
        scores = np.where(np.arange(200) % 4 == 0, 3.0, 0.0)
        population.set_scores(scores, np.ones(200, dtype=int))

        picks = np.array([population.pick_fit_focal() for _ in range(20000)])
        # 50 individuals with fitness 4, 150 with fitness 1
        assert np.mean(picks % 4 == 0) == pytest.approx(200.0 / 350.0, abs=0.015)


# ============================================================================
# Test Population Updates
# ============================================================================

class TestPopulationUpdates:
    """Moran, synchronous and best-reply dynamics."""

    @pytest.mark.parametrize("update", [PopulationUpdateType.MORAN_BIRTHDEATH,
                                        PopulationUpdateType.MORAN_DEATHBIRTH])
    def test_moran_fixation(self, update, build_population):
        """Test that neutral Moran processes without mutations end monomorphic."""
        config = Config()
        config.population_size    = 10
        config.population_update  = update
        config.payoff_matrix      = [1.0, 1.0, 1.0, 1.0]
        population = build_population(config)

        for _ in range(200):
            if population.is_monomorphic():
                break
            population.advance(10.0)
        assert population.is_monomorphic()
        assert_consistent(population)

    def test_moran_on_lattice(self, lattice_config, build_population):
        """Test death-birth updates with adjusted scores."""
        lattice_config.population_update = PopulationUpdateType.MORAN_DEATHBIRTH
        population = build_population(lattice_config)
        population.advance(10.0)
        scores, _ = recompute(population)
        assert population.scores == pytest.approx(scores)

    def test_synchronous_updates(self, lattice_config, build_population):
        """Test synchronous sweeps."""
        lattice_config.population_update = PopulationUpdateType.SYNC
        population = build_population(lattice_config)
        population.advance(10.0)

        assert population.generation == pytest.approx(10.0)
        assert_consistent(population)

    def test_random_interactions(self, lattice_config, build_population):
        """Test random sampling of interaction partners."""
        lattice_config.interaction_sampling = SamplingType.COUNT
        lattice_config.n_interactions       = 2
        population = build_population(lattice_config)
        assert not population.adjust_scores
        population.advance(5.0)
        assert_consistent(population)


# ============================================================================
# Test Continuous Strategies
# ============================================================================

class TestContinuousSnowdrift:
    """Continuous traits playing the continuous snowdrift game."""

    def test_run(self, build_population):
        """Test that continuous traits evolve within their range."""
        config = Config()
        config.population_size = 50
        config.strategy_type   = 'continuous'
        config.init_sdev       = 0.05
        config.mutation_prob   = 0.1
        population = build_population(config)
        population.advance(20.0)

        mean, _ = population.mean_traits()
        assert 0.0 <= mean[0] <= 1.0
        assert_consistent(population)
        assert population.trait_histogram(20).sum() == pytest.approx(1.0)
