"""
Graphs Module

Builders for deterministic graphs: well-mixed and complete populations,
hierarchical demes, the small named symmetric graphs, stars, wheels,
super-stars and strong suppressors of selection.

Functions:
    init_meanfield(geometry, rng):   Well-mixed population (no links)
    init_complete(geometry, rng):    Complete graph
    init_hierarchy(geometry, rng):   Nested demes of well-mixed or square lattice units
    init_named_graph(geometry, rng): Frucht, Tietze, Franklin, Heawood, icosahedron,
                                     dodecahedron or Desargues graph
    init_star(geometry, rng):        Star with hub 0
    init_wheel(geometry, rng):       Ring whose sites all link to hub 0
    init_superstar(geometry, rng):   Directed super-star (amplifier of selection)
    init_suppressor(geometry, rng):  Strong suppressor of selection
"""

import math
from typing import TYPE_CHECKING

from evoibs.topology               import lattices
from evoibs.topology.geometry_type import GeometryType
if TYPE_CHECKING:
    import numpy as np
    from evoibs.topology.geometry import Geometry

def _ring(size: int) -> list[tuple[int, int]]:
    return [(i, (i + 1) % size) for i in range(size)]

def _chain(size: int) -> list[tuple[int, int]]:
    return [(i - 1, i) for i in range(1, size)]

# Edge lists of the named graphs
NAMED_EDGES = {
    GeometryType.FRUCHT: _chain(7) + [
        (6, 0), (0, 7), (1, 7), (2, 8), (3, 8), (4, 9), (5, 9),
        (6, 10), (7, 10), (8, 11), (9, 11), (10, 11)],
    GeometryType.TIETZE: _chain(12) + [
        (0, 4), (0, 8), (1, 6), (2, 10), (3, 7), (5, 11), (9, 11)],
    GeometryType.FRANKLIN: _ring(12) + [
        (0, 7), (1, 6), (2, 9), (3, 8), (4, 11), (5, 10)],
    GeometryType.HEAWOOD: _ring(14) + [
        (0, 5), (2, 7), (4, 9), (6, 11), (8, 13), (10, 1), (12, 3)],
    GeometryType.ICOSAHEDRON: _chain(12) + [
        (0, 4), (0, 5), (0, 6), (1, 6), (1, 7), (1, 8), (2, 0), (2, 4), (2, 8), (3, 8),
        (3, 9), (3, 10), (4, 10), (5, 10), (5, 11), (6, 11), (7, 9), (7, 11), (9, 11)],
    GeometryType.DODECAHEDRON: [(i, (i - 2) % 20) for i in range(0, 20, 2)] +
                               [(i, i + 1) for i in range(0, 20, 2)] + [
        (1, 5), (3, 7), (5, 9), (7, 11), (9, 13), (11, 15), (13, 17), (15, 19), (17, 1), (19, 3)],
    GeometryType.DESARGUES: _ring(20) + [
        (0, 9), (1, 12), (2, 7), (3, 18), (4, 13), (5, 16), (6, 11), (8, 17), (10, 15), (14, 19)],
}

def init_meanfield(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Well-mixed population, there are no explicit links.
    """
    geometry.is_lattice = False

def init_complete(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Every site links to every other site.
    """
    size = geometry.size
    geometry.connectivity = size - 1
    geometry.is_regular   = True
    for i in range(size):
        others = [j for j in range(size) if j != i]
        geometry.out[i] = others
        geometry.in_[i] = list(others)

def init_named_graph(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    One of the small named symmetric graphs (all regular and undirected).
    """
    geometry.is_regular = True
    for a, b in NAMED_EDGES[geometry.type]:
        geometry.add_edge_at(a, b)

def init_star(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    All leaves link to the hub, site 0.
    """
    for i in range(1, geometry.size):
        geometry.add_edge_at(0, i)

def init_wheel(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Sites 1..N-1 form a ring and every ring site links to the hub, site 0.
    """
    rim = geometry.size - 1
    for i in range(rim):
        geometry.add_edge_at(i + 1, (i + 1) % rim + 1)
        geometry.add_edge_at(0, i + 1)

def init_superstar(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Directed super-star: the hub (site 0) links to all reservoir sites, the
    reservoir sites of each petal link to the start of a chain of petal sites
    and the end of each chain links back to the hub.
    Sites 1..p are the outermost petal sites, reservoir sites follow the chains.
    """
    petals = geometry.petals_count
    pnodes = petals * (geometry.petals_amplification - 2)
    geometry.is_undirected = False

    # hub to reservoirs, reservoirs to outermost petal sites
    for i in range(pnodes + 1, geometry.size):
        geometry.add_link_at(0, i)
        geometry.add_link_at(i, (i - pnodes - 1) % petals + 1)
    # chain petal sites, outer to inner
    for i in range(1, pnodes - petals + 1):
        geometry.add_link_at(i, i + petals)
    # innermost petal sites to hub
    for i in range(1, petals + 1):
        geometry.add_link_at(pnodes - petals + i, 0)

def init_suppressor(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Strong suppressor of selection with three classes of sites:
    unit^4 sites in V (first), unit^2 in W (next) and unit^3 in U (last).
    Each site in V links to one site in U and to all sites in W.
    """
    unit = max(2, int(math.floor(geometry.size ** 0.25)))
    v_end   = unit ** 4
    w_end   = v_end + unit * unit
    u_start = w_end
    for v in range(v_end):
        geometry.add_edge_at(v, u_start + v // unit)
        for w in range(v_end, w_end):
            geometry.add_edge_at(v, w)

def init_hierarchy(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Hierarchical structure: demes (the last hierarchy entry) are well-mixed
    (complete within the deme) or square lattices. Interactions across levels
    are handled through group sampling, not links.
    """
    geometry.is_lattice = False
    _init_level(geometry, 0, 0)

def _init_level(geometry: 'Geometry', level: int, start: int):
    hierarchy = geometry.hierarchy
    square    = geometry.subgeometry is GeometryType.SQUARE

    if level == len(hierarchy) - 1:
        n_indiv = hierarchy[level]
        if square:
            lattices.link_square(geometry, math.isqrt(n_indiv), math.isqrt(geometry.size), start,
                                 lattices.square_offsets(int(round(geometry.connectivity))))
            return
        for i in range(start, start + n_indiv):
            others = [j for j in range(start, start + n_indiv) if j != i]
            geometry.out[i] = others
            geometry.in_[i] = list(others)
        return

    if square:
        side  = math.isqrt(geometry.size)
        hskip = math.prod(math.isqrt(h) for h in hierarchy[level + 1:])
        hside = math.isqrt(hierarchy[level])
        for i in range(hside):
            for j in range(hside):
                _init_level(geometry, level + 1, start + (i + j * side) * hskip)
        return

    hskip = math.prod(hierarchy[level + 1:])
    for d in range(hierarchy[level]):
        _init_level(geometry, level + 1, start + d * hskip)
