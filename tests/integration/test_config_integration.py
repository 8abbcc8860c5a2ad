"""
Integration tests for the configuration system.

These tests verify that configuration files are loaded and that their
parameters control the simulation through complete trials and experiments.
"""

import pytest
import numpy as np
from joblib import parallel_config

from evoibs.pool.fitness      import FitnessMapType
from evoibs.pool.update_types import PopulationUpdateType
from evoibs.run.config        import Config
from evoibs.run.experiment    import Experiment
from evoibs.run.state         import load_state, save_state
from evoibs.run.trial         import Trial


# ============================================================================
# Helper Classes
# ============================================================================

class TrialConfigTest(Trial):
    """Simplified trial recording the mean fitness of each report."""

    def __init__(self, config, seed=None, suppress_output=False):
        super().__init__(config, seed, suppress_output)
        self.reports = []

    def _reset(self):
        super()._reset()
        self.reports = []

    def _report_progress(self):
        self.reports.append(self._population.mean_fitness()[0])

    def _final_report(self):
        pass


class ExperimentConfigTest(Experiment):
    """Simplified experiment collecting the final strategy frequencies."""

    def _reset(self):
        super()._reset()

    def _prepare_trial(self, trial, trial_number):
        pass

    def _extract_trial_results(self, trial, trial_number):
        return super()._extract_trial_results(trial, trial_number)

    def _analyze_trial_results(self, results):
        super()._analyze_trial_results(results)

    def _final_report(self):
        pass


def write_config(path, **sections):
    """Write an INI file from keyword arguments (one dictionary per section)."""
    lines = []
    for section, options in sections.items():
        lines.append(f"[{section}]")
        lines.extend(f"{key} = {value}" for key, value in options.items())
        lines.append("")
    path.write_text("\n".join(lines))
    return str(path)


@pytest.fixture
def lattice_file(tmp_path):
    """Configuration file for a prisoner's dilemma on a square lattice."""
    return write_config(tmp_path / "lattice.ini",
                        POPULATION  = {"population_size": 64, "seed": 11, "strategy_type": "discrete"},
                        GEOMETRY    = {"geometry": "square", "connectivity": 4},
                        UPDATE      = {"population_update": "async", "player_update": "imitate"},
                        MUTATION    = {"mutation_prob": 0.01},
                        TERMINATION = {"max_number_generations": 6, "report_interval": 2})


# ============================================================================
# Test Trials From Files
# ============================================================================

class TestConfigTrials:
    """Trials configured by INI files."""

    def test_trial_from_file(self, lattice_file):
        """Test that a trial runs with the parameters of the configuration file."""
        trial = TrialConfigTest(Config(lattice_file))
        trial.run()

        population = trial._population
        assert population.size == 64
        assert population.interaction.max_out == 4
        assert population.generation == pytest.approx(6.0)
        assert len(trial.reports) == 4

    def test_seed_from_file(self, lattice_file):
        """Test that the configured seed makes trials reproducible."""
        first, second = TrialConfigTest(Config(lattice_file)), TrialConfigTest(Config(lattice_file))
        first.run()
        second.run()
        assert first.reports == second.reports

    def test_size_correction(self, tmp_path):
        """Test that infeasible sizes in files are corrected for the geometry."""
        filename = write_config(tmp_path / "size.ini",
                                POPULATION  = {"population_size": 60, "strategy_type": "discrete"},
                                GEOMETRY    = {"geometry": "square", "connectivity": 4},
                                UPDATE      = {"population_update": "async", "player_update": "imitate"},
                                TERMINATION = {"max_number_generations": 1})
        trial = TrialConfigTest(Config(filename), suppress_output=True)
        trial.run()
        assert trial._population.size == 64

    def test_moran_with_identity_map(self, tmp_path):
        """Test Moran updates with the identity fitness map and negative payoffs."""
        filename = write_config(tmp_path / "moran.ini",
                                POPULATION  = {"population_size": 30, "seed": 3, "strategy_type": "discrete"},
                                GEOMETRY    = {"geometry": "meanfield"},
                                UPDATE      = {"population_update": "moran_birthdeath", "player_update": "imitate"},
                                FITNESS     = {"fitness_map": "none"},
                                TERMINATION = {"max_number_generations": 5})
        config = Config(filename)
        assert config.fitness_map is FitnessMapType.NONE
        assert config.population_update is PopulationUpdateType.MORAN_BIRTHDEATH

        trial = TrialConfigTest(config, suppress_output=True)
        trial.run()
        # the payoff -0.2 requires a shifted baseline
        assert trial._population.fitness_map.type is FitnessMapType.STATIC
        assert np.all(trial._population.fitness >= 0.0)

    def test_continuous_from_file(self, tmp_path):
        """Test continuous strategies configured in a file."""
        filename = write_config(tmp_path / "continuous.ini",
                                POPULATION  = {"population_size": 40, "seed": 5, "strategy_type": "continuous"},
                                GEOMETRY    = {"geometry": "random_regular", "connectivity": 4},
                                UPDATE      = {"population_update": "async", "player_update": "thermal"},
                                MUTATION    = {"mutation_prob": 0.05, "mutation_sdev": 0.02},
                                STRATEGIES  = {"init_mean": 0.2, "init_sdev": 0.01,
                                               "benefit_coeffs": "6.0, -1.4", "cost_coeffs": "4.56, -1.6"},
                                TERMINATION = {"max_number_generations": 5})
        trial = TrialConfigTest(Config(filename), suppress_output=True)
        trial.run()
        mean, sdev = trial._population.mean_traits()
        assert 0.0 <= mean[0] <= 1.0
        assert sdev[0] >= 0.0


# ============================================================================
# Test Experiments From Files
# ============================================================================

class TestConfigExperiments:
    """Experiments configured by INI files."""

    def test_experiment(self, lattice_file):
        """Test that all trials of an experiment complete."""
        experiment = ExperimentConfigTest(TrialConfigTest, 3, Config(lattice_file))
        experiment.run()
        assert experiment._number_generations == [6, 6, 6]
        assert len(experiment._mean_traits) == 3

    def test_parallel_matches_serial(self, lattice_file):
        """Test that parallel and serial experiments produce identical results."""
        serial   = ExperimentConfigTest(TrialConfigTest, 2, Config(lattice_file))
        parallel = ExperimentConfigTest(TrialConfigTest, 2, Config(lattice_file))
        serial.run(num_jobs_trials=1)
        # threads avoid pickling the trial classes of this module
        with parallel_config(backend="threading"):
            parallel.run(num_jobs_trials=2)
        assert serial._mean_fitness == pytest.approx(parallel._mean_fitness)


# ============================================================================
# Test Saved States
# ============================================================================

class TestConfigStates:
    """Saving and restoring populations of configured trials."""

    def test_resume(self, lattice_file, tmp_path):
        """Test that a saved trial population can be restored into a new trial population."""
        trial = TrialConfigTest(Config(lattice_file), suppress_output=True)
        trial.run()
        filename = tmp_path / "state.json"
        save_state(trial._population, filename)

        other = TrialConfigTest(Config(lattice_file), seed=1, suppress_output=True)
        other.run()
        assert load_state(other._population, filename)
        assert other._population.scores == pytest.approx(trial._population.scores)
        assert other._population.generation == pytest.approx(trial._population.generation)
