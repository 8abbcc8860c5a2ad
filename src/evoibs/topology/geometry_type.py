"""
Geometry Type Module

This module defines the enumeration of all graph families that the
topology engine is able to build.

Classes:
    GeometryType: Enumeration of supported graph families
"""

from enum import Enum

class GeometryType(Enum):
    """
    The graph families supported by the topology engine.
    The values double as the names used in configuration files.
    """
    MEANFIELD             = "meanfield"
    COMPLETE              = "complete"
    HIERARCHY             = "hierarchy"
    LINEAR                = "linear"
    SQUARE                = "square"
    CUBE                  = "cube"
    HONEYCOMB             = "honeycomb"
    TRIANGULAR            = "triangular"
    FRUCHT                = "frucht"
    TIETZE                = "tietze"
    FRANKLIN              = "franklin"
    HEAWOOD               = "heawood"
    ICOSAHEDRON           = "icosahedron"
    DODECAHEDRON          = "dodecahedron"
    DESARGUES             = "desargues"
    STAR                  = "star"
    WHEEL                 = "wheel"
    SUPER_STAR            = "superstar"
    STRONG_AMPLIFIER      = "amplifier"
    STRONG_SUPPRESSOR     = "suppressor"
    RANDOM_GRAPH          = "random"
    RANDOM_GRAPH_DIRECTED = "random_directed"
    RANDOM_REGULAR_GRAPH  = "random_regular"
    SCALEFREE             = "scalefree"
    SCALEFREE_BA          = "scalefree_ba"
    SCALEFREE_KLEMM       = "scalefree_klemm"

    @property
    def is_lattice(self) -> bool:
        """Whether the family is a regular lattice (complete graphs included)."""
        return self in _LATTICES

    @property
    def is_named_graph(self) -> bool:
        """Whether the family is one of the small named symmetric graphs."""
        return self in NAMED_GRAPHS

# Fixed (size, connectivity) of the named symmetric graphs
NAMED_GRAPHS = {
    GeometryType.FRUCHT      : (12, 3),
    GeometryType.TIETZE      : (12, 3),
    GeometryType.FRANKLIN    : (12, 3),
    GeometryType.HEAWOOD     : (14, 3),
    GeometryType.ICOSAHEDRON : (12, 5),
    GeometryType.DODECAHEDRON: (20, 3),
    GeometryType.DESARGUES   : (20, 3),
}

_LATTICES = {
    GeometryType.LINEAR,
    GeometryType.SQUARE,
    GeometryType.CUBE,
    GeometryType.HONEYCOMB,
    GeometryType.TRIANGULAR,
    GeometryType.COMPLETE,
}

# Families whose adjacency is fully determined by their parameters
_DETERMINISTIC = _LATTICES | set(NAMED_GRAPHS) | {
    GeometryType.MEANFIELD,
    GeometryType.STAR,
    GeometryType.WHEEL,
    GeometryType.SUPER_STAR,
}
