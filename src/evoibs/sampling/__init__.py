"""
Evoibs Sampling Package

This package implements the sampling of interaction and reference groups
from the neighbourhood of a focal individual, including hierarchical
sampling in deme structured populations.

Modules:
    group: SamplingType enumeration and Group class

Exported Classes:
    SamplingType: Enumeration of sampling modes (NONE, ALL, COUNT)
    Group:        Reusable group sampler
"""

from evoibs.sampling.group import Group, SamplingType

__all__ = ['Group',
           'SamplingType']
