"""
Update Types Module

This module defines the enumerations that select how a population evolves.

Classes:
    PopulationUpdateType: Which individuals are updated, and when
    PlayerUpdateType:     How an individual picks a model to imitate
    MigrationType:        How individuals move between sites
"""

from enum import Enum

class PopulationUpdateType(Enum):
    """
    SYNC:             all individuals are updated simultaneously
    ASYNC:            one random individual is updated at a time
    MORAN_BIRTHDEATH: a fit individual reproduces, its offspring replaces a neighbour
    MORAN_DEATHBIRTH: a random individual dies, fit neighbours compete for the vacancy
    ECOLOGY:          ecological updates (provided by subclasses)
    CUSTOM:           custom updates (provided by subclasses)
    """
    SYNC             = "sync"
    ASYNC            = "async"
    MORAN_BIRTHDEATH = "moran_birthdeath"
    MORAN_DEATHBIRTH = "moran_deathbirth"
    ECOLOGY          = "ecology"
    CUSTOM           = "custom"

    @property
    def is_moran(self) -> bool:
        return self in (PopulationUpdateType.MORAN_BIRTHDEATH, PopulationUpdateType.MORAN_DEATHBIRTH)

class PlayerUpdateType(Enum):
    """
    BEST:           adopt the strategy of the fittest model (deterministic tie-break)
    BEST_RANDOM:    adopt the strategy of the fittest model (ties broken at random)
    BEST_REPLY:     adopt the best reply to the reference group
    PROPORTIONAL:   adopt a strategy with probability proportional to fitness
    IMITATE:        imitate models with probability linear in the fitness difference
    IMITATE_BETTER: imitate only better models
    THERMAL:        imitate models according to the Fermi function
    """
    BEST           = "best"
    BEST_RANDOM    = "best_random"
    BEST_REPLY     = "best_reply"
    PROPORTIONAL   = "proportional"
    IMITATE        = "imitate"
    IMITATE_BETTER = "imitate_better"
    THERMAL        = "thermal"

class MigrationType(Enum):
    """
    NONE:        no migration
    DIFFUSION:   a random individual swaps places with a random neighbour
    BIRTH_DEATH: a fit individual sends its offspring to a random site
    DEATH_BIRTH: a random site is vacated and filled by the offspring of a fit individual
    """
    NONE        = "none"
    DIFFUSION   = "diffusion"
    BIRTH_DEATH = "birth_death"
    DEATH_BIRTH = "death_birth"
