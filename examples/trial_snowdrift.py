"""
Continuous Snowdrift Game

Individuals invest a continuous amount x in a common good. The benefit
B(x + y) is shared by both partners, the cost C(x) is paid by the investor:

    payoff(x, y) = B(x + y) - C(x)

For quadratic benefit and cost functions the population first converges
to a singular investment level and then splits into high and low investors
(evolutionary branching, the tragedy of the commune).

Classes:
    Trial_Snowdrift: A single run tracking the distribution of investments

Usage:
    config = Config("configs/config_snowdrift.ini")
    trial = Trial_Snowdrift(config)
    trial.run()
"""

import numpy as np
from pathlib import Path

from evoibs.run.config import Config
from evoibs.run.trial  import Trial

class Trial_Snowdrift(Trial):
    """
    Continuous snowdrift game in the population given in the configuration file.

    Implemented Methods:
        _report_progress(): Display mean and spread of the investments
        _final_report(): Display the final distribution of investments
    """

    def __init__(self, config: Config, seed=None, suppress_output: bool = False, bins: int = 20):
        """
        Parameters:
            config:          Configuration parameters
            seed:            Seed of the random number generator (defaults to the configured seed)
            suppress_output: If True, suppress progress and final reports
            bins:            Number of bins of the final histogram
        """
        super().__init__(config, seed, suppress_output)
        self._bins = bins

    def _report_progress(self):
        mean, sdev = self._population.mean_traits()
        print(f"GENERATION {self._generation_counter:06d}: investment = {mean[0]:.4f} ± {sdev[0]:.4f}")

    def _final_report(self):
        """
        Print the histogram of investments. Two separate peaks indicate branching.
        """
        hist  = self._population.trait_histogram(self._bins)[0]
        edges = np.linspace(self._config.trait_min, self._config.trait_max, self._bins + 1)

        s = "\nINVESTMENTS:\n"
        for low, freq in zip(edges[:-1], hist):
            s += f"{low:5.2f} | {'#' * int(round(100 * freq))}\n"
        print(s)

if __name__ == "__main__":
    config = Config(str(Path(__file__).parent / "configs" / "config_snowdrift.ini"))
    Trial_Snowdrift(config).run()
