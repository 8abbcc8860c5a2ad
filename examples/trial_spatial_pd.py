"""
Spatial Prisoner's Dilemma

This module implements the spatial prisoner's dilemma on a square lattice,
the classic demonstration that population structure can support cooperation.

The Game:
    Cooperators (type 0) pay a cost to benefit their partner, defectors
    (type 1) do not. With the weak prisoner's dilemma payoffs

                    cooperate   defect
        cooperate       1          0
        defect          b          0

    defection dominates (b > 1) and well-mixed populations end up with
    defectors only. On lattices cooperators form clusters: interior
    cooperators earn more than defectors and, for b close to 1, both
    types coexist.

Classes:
    Trial_SpatialPD:      A single run on a lattice
    Experiment_SpatialPD: Replicate runs, estimating the fraction of cooperators

Usage:
    Single Trial:
        config = Config("configs/config_spatial_pd.ini")
        trial = Trial_SpatialPD(config)
        trial.run()

    Experiment (Multiple Trials):
        config = Config("configs/config_spatial_pd.ini")
        experiment = Experiment_SpatialPD(num_trials=20, config=config)
        experiment.run(num_jobs_trials=-1)
"""

from pathlib    import Path
from statistics import mean, stdev

from evoibs.run.config     import Config
from evoibs.run.experiment import Experiment
from evoibs.run.trial      import Trial

class Trial_SpatialPD(Trial):
    """
    Prisoner's dilemma on the geometry given in the configuration file.

    Success Criteria:
        The trial succeeds once the population is monomorphic (either
        cooperators or defectors took over); otherwise it runs for the
        maximum number of generations.

    Implemented Methods:
        _report_progress(): Display the frequency of cooperators and the mean payoff
        _final_report(): Display the final state and the lineage diversity
    """

    def _cooperators(self) -> float:
        return float(self._population.mean_traits()[0][0])

    def _report_progress(self):
        """
        Print a report describing the current generation.

        This method is suppressed by setting 'self._suppress_output' to 'True',
        which we might do when running many trials, as part of an experiment.
        """
        mean_score, sdev_score = self._population.mean_score()

        s  = f"GENERATION {self._generation_counter:05d}: "
        s += f"cooperators = {self._cooperators():.4f}, "
        s += f"payoff = {mean_score:.4f} ± {sdev_score:.4f}, "
        s += f"time = {self._population.realtime:.2f}"
        print(s)

    def _final_report(self):
        """
        Display results at the end of the trial.
        """
        lineages = len(set(self._population.tags.tolist()))

        s  = "\nFINAL STATE:\n"
        s += f"geometry    = {self._population.interaction!r}\n"
        s += f"generations = {self._generation_counter}\n"
        s += f"cooperators = {self._cooperators():.4f}\n"
        s += f"lineages    = {lineages}\n"
        if not self.failed:
            winner = "cooperators" if self._cooperators() > 0.5 else "defectors"
            s += f"fixation of {winner}\n"
        print(s)

class Experiment_SpatialPD(Experiment):

    def __init__(self, num_trials: int, config: Config):
        """
        Parameters:
            num_trials: Number of trials in this experiment
            config:     Configuration parameters
        """
        super().__init__(Trial_SpatialPD, num_trials, config)
        self._cooperators: list[float] = []

    def _reset(self):
        super()._reset()
        self._cooperators = []

    def _prepare_trial(self, trial: Trial_SpatialPD, trial_number: int):
        # the default implementation prints a progress report.
        super()._prepare_trial(trial, trial_number)

    def _extract_trial_results(self, trial: Trial_SpatialPD, trial_number: int) -> dict:
        return super()._extract_trial_results(trial, trial_number)

    def _analyze_trial_results(self, results: dict):
        """
        Extract results of each trial, once complete.
        """
        super()._analyze_trial_results(results)
        cooperators = float(results['mean_traits'][0])
        self._cooperators.append(cooperators)

        s  = f"Trial {results['trial_number']:03d}: "
        s += f"cooperators={cooperators:.3f}, "
        s += f"generations={results['number_generations']:4} "
        s += "[FIXATION]" if results['success'] else "[COEXISTENCE]"
        print(s)

    def _final_report(self):
        """
        Produce the final report, aggregating the data obtained from each trial.
        """
        s  = "\nSUMMARY:\n"
        s += f"Total trials          = {self._trial_counter}\n"
        s += f"Fixation rate         = {100 * self._success_counter / self._trial_counter:.0f}%\n"
        s += f"Avg # generations     = {mean(self._number_generations):.0f}\n"
        s += f"Avg cooperators       = {mean(self._cooperators):.3f}"
        if len(self._cooperators) > 1:
            s += f" ± {stdev(self._cooperators):.3f}"
        print(s + "\n")

if __name__ == "__main__":
    config = Config(str(Path(__file__).parent / "configs" / "config_spatial_pd.ini"))
    trial  = Trial_SpatialPD(config)
    trial.run()
