"""
Experiment Module

This module defines the abstract base class for experiments with built-in
support for CPU-based parallelization using joblib.

An experiment represents a collection of independent trials (replicate runs),
used to gather statistics about the outcome of the evolutionary process,
e.g. fixation probabilities or mean trait values at the end of each run.
"""

import numpy as np
from abc    import ABC, abstractmethod
from joblib import Parallel, delayed
from sys    import stdout
from typing import Type

from evoibs.run.config import Config
from evoibs.run.trial  import Trial

class Experiment(ABC):
    """
    Abstract base class for implementing an experiment.

    Every trial owns its own random number generator. The seeds are spawned
    from a single 'numpy.random.SeedSequence' (rooted at 'config.seed'), hence
    results are reproducible and identical for serial and parallel execution.

    Subclasses must implement:
    - _reset(): Reset experiment-specific state and call super()._reset()
    - _prepare_trial(trial, trial_number): Configure each trial before execution
    - _extract_trial_results(trial, trial_number): Extract results after trial completes
    - _analyze_trial_results(results): Process the results of individual trials
    - _final_report(): Produce aggregated statistical report for entire experiment

    Public Methods:
        run(num_jobs_trials=1): Execute the complete experiment

    Parallelization (num_jobs_trials):
        1:  Serial trial execution (no parallelization)
       >1:  Use specified number of parallel processes for trials
       -1:  Use all available CPU cores for trials
    """

    def __init__(self, trial_class: Type[Trial], num_trials: int, config: Config,
                 *args, **kwargs):
        """
        Parameters:
            trial_class: the class describing the trials in this experiment
            num_trials:  number of trials in this experiment
            config:      configuration parameters
            *args:       positional arguments to pass to trial class constructor
            **kwargs:    keyword arguments to pass to trial class constructor
        """
        self._num_trials : int         = num_trials
        self._trial_class: Type[Trial] = trial_class
        self._config     : Config      = config
        self._trial_args               = args
        self._trial_kwargs             = kwargs
        self._seeds      : list        = []

        # progress counters
        self._trial_counter  : int = 0  # how many trials we've run so far
        self._success_counter: int = 0  # how many trials met the termination criterion

        # for each trial, some stats
        self._number_generations: list[int]        = []
        self._mean_fitness      : list[float]      = []
        self._mean_traits       : list[np.ndarray] = []

    @abstractmethod
    def _reset(self):
        """
        Reset experiment state before starting a new run.
        """
        self._seeds              = np.random.SeedSequence(self._config.seed).spawn(self._num_trials)
        self._trial_counter      = 0
        self._success_counter    = 0
        self._number_generations = []
        self._mean_fitness       = []
        self._mean_traits        = []

    def run(self, num_jobs_trials: int = 1):
        """
        Run the experiment.

        Resets the experiment state and runs the necessary number of trials.
        Trials can be run serially or in parallel based on num_jobs_trials.

        Parameters:
            num_jobs_trials: Number of parallel processes for running trials
                              1 = serial trial execution (default)
                             -1 = use all available CPU cores for trials
                             >1 = use specified number of processes for trials
        """
        self._reset()

        serialize = num_jobs_trials == 1

        if serialize:
            results = []
            while self._trial_counter < self._num_trials:
                self._trial_counter += 1
                results.append(self._run_trial(self._trial_counter))
        else:
            results = Parallel(num_jobs_trials)(
                delayed(self._run_trial)(n)
                for n in range(1, self._num_trials + 1)
            )
            self._trial_counter = self._num_trials

        for r in results:
            self._analyze_trial_results(r)
        self._final_report()

    def _run_trial(self, trial_number: int) -> dict:
        """
        Prepare, run, analyze one trial.
        Returns the relevant data generated by the trial.

        Parameters:
            trial_number: The trial number (1-indexed)
        """
        trial = self._trial_class(*self._trial_args,
                                  config          = self._config,
                                  seed            = self._seeds[trial_number - 1],
                                  suppress_output = True,
                                  **self._trial_kwargs)

        self._prepare_trial(trial, trial_number)
        trial.run()
        return self._extract_trial_results(trial, trial_number)

    @abstractmethod
    def _prepare_trial(self, trial: Trial, trial_number: int):
        """
        Configure the experiment in preparation for the next run.
        The default implementation prints a progress report.
        Derived implementations need not call this method.
        """
        s = f"Starting trial {trial_number:03d} of {self._num_trials}..."
        stdout.write(s + '\r')
        stdout.flush()

    @abstractmethod
    def _extract_trial_results(self, trial: Trial, trial_number: int) -> dict:
        """
        Extract relevant results at the end of a trial.
        Derived implementations MUST call this method.
        """
        population = trial._population

        results = {"trial_number": trial_number}
        results["number_generations"] = trial._generation_counter
        results["mean_fitness"]       = population.mean_fitness()[0]
        results["mean_traits"]        = population.mean_traits()[0]
        results["success"]            = not trial.failed
        return results

    @abstractmethod
    def _analyze_trial_results(self, results: dict):
        """
        Analyze the results of each trial.
        Derived implementations MUST call this method.
        """
        if results["success"]:
            self._success_counter += 1
        self._number_generations.append(results["number_generations"])
        self._mean_fitness.append(results["mean_fitness"])
        self._mean_traits.append(results["mean_traits"])

    @abstractmethod
    def _final_report(self):
        """
        Produce the final report, aggregating the data obtained from each trial.
        """
        pass
