"""
Unit tests for evoibs.pool.update_rules module.

The rules are tested against a mocked population: only the attributes
that the rules read are provided.
"""

import pytest
import numpy as np
from unittest.mock import Mock

from evoibs.pool import update_rules
from evoibs.pool.fitness import FitnessMap, FitnessMapType
from evoibs.pool.population import Population
from evoibs.pool.update_types import PlayerUpdateType


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def population(rng):
    """A mocked population of four individuals with scores in [0, 4]."""
    pop = Mock(spec=Population)
    pop.rng            = rng
    pop.fitness        = np.array([1.0, 2.0, 3.0, 1.0])
    pop.min_score      = 0.0
    pop.max_score      = 4.0
    pop.fitness_map    = FitnessMap(FitnessMapType.NONE)
    pop.player_error   = 0.0
    pop.inv_noise      = -1.0
    pop.score_averaged = True
    pop.interactions   = np.ones(4, dtype=int)
    pop.strategies     = Mock()
    pop.game           = Mock()
    return pop


# ============================================================================
# Test Best Updates
# ============================================================================

class TestUpdateBest:
    """Test update_best and update_best_random."""

    def test_best_adopts_fittest(self, population):
        """Test that the fittest model is adopted."""
        assert update_rules.update_best(population, 0, np.array([1, 2]))
        population.update_from_model_at.assert_called_once_with(0, 2)

    def test_best_keeps_own_strategy(self, population):
        """Test that the focal individual keeps its strategy if it is the fittest."""
        assert not update_rules.update_best(population, 2, np.array([0, 1]))
        population.update_from_model_at.assert_not_called()

    def test_best_neutral(self, population):
        """Test that neutral games never change strategies."""
        population.max_score = population.min_score
        assert not update_rules.update_best(population, 0, np.array([2]))

    def test_best_tie_break_by_strategy(self, population):
        """Test that ties are resolved by the strategy representation."""
        population.strategies.preferred_best.return_value = True
        assert update_rules.update_best(population, 0, np.array([3]))
        population.update_from_model_at.assert_called_once_with(0, 3)

    def test_best_random_adopts_fittest(self, population):
        """Test that the random tie-break variant adopts the fittest model."""
        assert update_rules.update_best_random(population, 0, np.array([2, 1]))
        population.update_from_model_at.assert_called_once_with(0, 2)


# ============================================================================
# Test Best Reply
# ============================================================================

class TestUpdateBestReply:
    """Test update_best_reply."""

    def test_delegates_to_strategies(self, population):
        """Test that best replies are computed by the strategy representation."""
        population.strategies.best_reply_at.return_value = True
        group = np.array([1, 2])
        assert update_rules.update_best_reply(population, 0, group)
        population.strategies.best_reply_at.assert_called_once_with(0, group, population.game)


# ============================================================================
# Test Proportional Updates
# ============================================================================

class TestUpdateProportional:
    """Test update_proportional."""

    def test_minimal_fitness_always_switches(self, population):
        """Test that an individual with minimal fitness always adopts a model."""
        population.fitness[0] = 0.0
        for _ in range(20):
            population.update_from_model_at.reset_mock()
            assert update_rules.update_proportional(population, 0, np.array([1, 2]))
            model = population.update_from_model_at.call_args[0][1]
            assert model in (1, 2)

    def test_frequencies_proportional(self, population):
        """Test that models are adopted proportional to their fitness."""
        population.fitness = np.array([0.0, 1.0, 3.0, 0.0])
        counts = {1: 0, 2: 0}
        for _ in range(2000):
            update_rules.update_proportional(population, 0, np.array([1, 2]))
            counts[population.update_from_model_at.call_args[0][1]] += 1
        assert counts[2] / 2000 == pytest.approx(0.75, abs=0.05)


# ============================================================================
# Test Imitation Updates
# ============================================================================

class TestUpdateImitate:
    """Test update_imitate and update_imitate_better."""

    def test_deterministic_imitation_of_better(self, population):
        """Test that zero noise always imitates better models."""
        assert update_rules.update_imitate(population, 0, np.array([2]))
        population.update_from_model_at.assert_called_once_with(0, 2)

    def test_deterministic_rejects_worse(self, population):
        """Test that zero noise never imitates worse models."""
        assert not update_rules.update_imitate(population, 2, np.array([0]))

    def test_errors(self, population):
        """Test that errors cause imitation of worse models."""
        population.player_error = 1.0
        assert update_rules.update_imitate(population, 2, np.array([0]))

    def test_noisy_imitation_probability(self, population):
        """Test that noisy imitation is linear in the fitness difference."""
        population.inv_noise = 1.0
        adopted = sum(update_rules.update_imitate(population, 0, np.array([2])) for _ in range(4000))
        # 0.5 + 0.5 * (3 - 1) / (4 - 0)
        assert adopted / 4000 == pytest.approx(0.75, abs=0.03)

    def test_imitate_better_ignores_worse(self, population):
        """Test that imitate-better never adopts worse models."""
        population.inv_noise = 1.0
        for _ in range(50):
            assert not update_rules.update_imitate_better(population, 2, np.array([0, 1]))

    def test_multiple_models(self, population):
        """Test that one of several qualifying models is adopted."""
        assert update_rules.update_imitate(population, 0, np.array([1, 2]))
        assert population.update_from_model_at.call_args[0][1] in (1, 2)


# ============================================================================
# Test Thermal Updates
# ============================================================================

class TestUpdateThermal:
    """Test update_thermal."""

    def test_low_temperature(self, population):
        """Test that low temperatures imitate better models almost surely."""
        population.inv_noise = 1000.0
        assert update_rules.update_thermal(population, 0, np.array([2]))

    def test_equal_fitness_is_coin_flip(self, population):
        """Test that equally fit models are imitated with probability one half."""
        population.inv_noise = 1.0
        adopted = sum(update_rules.update_thermal(population, 0, np.array([3])) for _ in range(4000))
        assert adopted / 4000 == pytest.approx(0.5, abs=0.03)

    def test_no_overflow(self, population):
        """Test that huge fitness differences do not overflow."""
        population.inv_noise = 1e6
        assert not update_rules.update_thermal(population, 2, np.array([0]))


# ============================================================================
# Test Rule Table
# ============================================================================

class TestRules:
    """Test the table of update rules."""

    def test_every_player_update_has_a_rule(self):
        """Test that all player update types are covered."""
        assert set(update_rules.RULES) == set(PlayerUpdateType)
