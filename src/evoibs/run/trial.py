"""
Trial Module

This module defines the abstract base class for trials. A trial represents
one independent run of an individual based simulation: a population is
created, validated and initialized, and then evolves generation by generation
until a termination condition is met.
"""

import numpy as np
from abc    import ABC, abstractmethod

from evoibs.pool.population  import Population
from evoibs.run.config       import Config
from evoibs.run.id_allocator import IdAllocator

class Trial(ABC):
    """
    Abstract base class for implementing a trial.

    Subclasses must implement:
    - _report_progress(): Display progress every 'report_interval' generations
    - _final_report(): Display final results

    Subclasses can override:
    - _reset(): Reset trial-specific state (must call super()._reset())
    - _create_population(): Custom populations (e.g. other games or strategy representations)
    - _terminate(): Custom termination logic (default: max generations + criterion)

    Public Attributes:
        failed: Whether the termination criterion was not met

    Public Methods:
        run(): Execute a complete trial
    """

    def __init__(self, config: Config, seed: int | np.random.SeedSequence | None = None,
                 suppress_output: bool = False):
        """
        Parameters:
            config:          Configuration parameters
            seed:            Seed of the random number generator of this trial
                             (defaults to the seed in the configuration)
            suppress_output: If True, suppress progress and final reports
                             (useful when running multiple trials in experiments)
        """
        self._config            : Config              = config
        self._seed                                    = seed if seed is not None else config.seed
        self._rng               : np.random.Generator = None
        self._ids               : IdAllocator         = IdAllocator()
        self._generation_counter: int                 = 0
        self._population        : Population          = None
        self._suppress_output   : bool                = suppress_output
        self.failed             : bool                = True

    def run(self):
        """
        Run the trial.

        Resets the trial state, builds the population and lets it
        evolve until the terminate condition is met.
        """
        self._reset()

        self._population = self._create_population()
        self._population.check()
        self._population.reset()
        self._population.init()

        if not self._suppress_output:
            self._report_progress()

        while not self._terminate():
            self._generation_counter += 1
            self._population.advance(1.0)

            if not self._suppress_output and self._generation_counter % self._config.report_interval == 0:
                self._report_progress()

        if not self._suppress_output:
            self._final_report()

    def _reset(self):
        """
        Reset the trial state before starting a new run.
        """
        self._rng = np.random.default_rng(self._seed)
        self._ids.reset()
        self._generation_counter = 0
        self.failed = True

    def _create_population(self) -> Population:
        return Population(self._config, rng=self._rng, ids=self._ids)

    @abstractmethod
    def _report_progress(self):
        """
        Report trial progress.

        This method is suppressed by setting 'self._suppress_output' to 'True',
        which we might do when running many trials, as part of an experiment.
        """
        pass

    @abstractmethod
    def _final_report(self):
        """
        Produce final report at the end of the trial.
        """
        pass

    def _terminate(self) -> bool:
        """
        Determine whether the trial should terminate.

        This default implementation stops the trial after a maximum number of
        generations and (optionally) also stops it once the population is
        monomorphic or its mean fitness has reached a given threshold.

        Returns:
            bool: True if the trial should stop, False otherwise
        """
        terminate = self._generation_counter >= self._config.max_number_generations

        if self._config.termination_check:
            if self._config.termination_criterion == "monomorphic":
                success = self._population.is_monomorphic()
            elif self._config.termination_criterion == "mean_fitness":
                success = self._population.mean_fitness()[0] >= self._config.termination_threshold
            else:
                raise RuntimeError("bad 'termination_criterion' in configuration file")

            terminate = terminate or success
            if terminate:
                self.failed = not success

        return terminate
