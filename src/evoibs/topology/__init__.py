"""
Evoibs Topology Package

This package implements the topology engine: the graph structures on which
the individuals of a population interact and reproduce.

Modules:
    geometry_type: GeometryType enumeration of the supported graph families
    geometry:      Geometry class (validation, construction, analysis, serialisation)
    lattices:      Builders for regular lattices
    graphs:        Builders for deterministic graphs
    random_graphs: Builders for randomized graphs
    rewiring:      Degree preserving rewiring and addition of links

Exported Classes:
    GeometryType: Enumeration of graph families
    Geometry:     Graph structure of a population
"""

from evoibs.topology.geometry      import Geometry
from evoibs.topology.geometry_type import GeometryType

__all__ = ['Geometry',
           'GeometryType']
