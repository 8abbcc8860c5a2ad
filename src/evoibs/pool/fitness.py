"""
Fitness Module

Classes:
    FitnessMapType: Enumeration of payoff to fitness maps
    FitnessMap:     Conversion of payoffs (scores) to reproductive fitness
"""

import numpy as np
from enum import Enum

class FitnessMapType(Enum):
    """
    NONE:        fitness equals the score
    STATIC:      baseline + selection * score
    CONVEX:      baseline + selection * (score - baseline)
    EXPONENTIAL: baseline * exp(selection * score)
    """
    NONE        = "none"
    STATIC      = "static"
    CONVEX      = "convex"
    EXPONENTIAL = "exponential"

class FitnessMap:
    """
    Maps scores to fitness. Works on scalars and numpy arrays alike.

    Public Attributes:
        type:      The map (FitnessMapType)
        baseline:  Baseline fitness
        selection: Strength of selection
    """

    def __init__(self,
                 map_type : FitnessMapType = FitnessMapType.STATIC,
                 baseline : float          = 1.0,
                 selection: float          = 1.0):
        self.type     : FitnessMapType = map_type
        self.baseline : float          = baseline
        self.selection: float          = selection

    def __call__(self, score):
        if self.type is FitnessMapType.STATIC:
            return self.baseline + self.selection * score
        if self.type is FitnessMapType.CONVEX:
            return self.baseline + self.selection * (score - self.baseline)
        if self.type is FitnessMapType.EXPONENTIAL:
            return self.baseline * np.exp(self.selection * score)
        if self.type is FitnessMapType.NONE:
            return score
        raise RuntimeError("bad fitness map type")

    def __repr__(self) -> str:
        return f"FitnessMap({self.type.value}, baseline={self.baseline:g}, selection={self.selection:g})"
