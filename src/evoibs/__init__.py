"""
evoibs - Individual based simulations of evolutionary games on graphs.

This package provides an engine for evolutionary dynamics in structured
populations: individuals on a graph (lattices, random and scale-free graphs,
stars, hierarchical demes, ...) play games with their neighbours, and update
their strategies by imitation, best-response or Moran birth-death processes.

Main components:
- topology: Graph structures for interactions and reproduction
- sampling: Interaction and reference groups
- strategies: Discrete and continuous strategy representations
- games: Reference payoff functions
- pool: Population engine, update rules and fitness maps
- run: Configuration, trials, experiments and state persistence

Example:
    >>> from evoibs import Config, Trial
    >>> config = Config("config.ini")
    >>> class MyTrial(Trial):
    ...     def _report_progress(self):
    ...         print(self._population.mean_traits())
    ...     def _final_report(self):
    ...         pass
    >>> trial = MyTrial(config)
    >>> trial.run()
"""

__version__ = "0.1.0"

# Import main classes for convenient access
from evoibs.run.config         import Config
from evoibs.run.trial          import Trial
from evoibs.run.experiment     import Experiment
from evoibs.run.id_allocator   import IdAllocator
from evoibs.run.state          import encode_state, restore_state, save_state, load_state
from evoibs.pool.population    import Population
from evoibs.pool.fitness       import FitnessMap, FitnessMapType
from evoibs.pool.update_types  import MigrationType, PlayerUpdateType, PopulationUpdateType
from evoibs.topology           import Geometry, GeometryType
from evoibs.sampling           import Group, SamplingType
from evoibs.strategies         import ContinuousStrategies, DiscreteStrategies, StrategyRepresentation
from evoibs.games              import ContinuousSnowdrift, MatrixGame

__all__ = [
    "Config",
    "Trial",
    "Experiment",
    "IdAllocator",
    "encode_state",
    "restore_state",
    "save_state",
    "load_state",
    "Population",
    "FitnessMap",
    "FitnessMapType",
    "MigrationType",
    "PlayerUpdateType",
    "PopulationUpdateType",
    "Geometry",
    "GeometryType",
    "Group",
    "SamplingType",
    "ContinuousStrategies",
    "DiscreteStrategies",
    "StrategyRepresentation",
    "ContinuousSnowdrift",
    "MatrixGame",
]
