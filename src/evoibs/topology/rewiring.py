"""
Rewiring Module

Degree preserving rewiring and random addition of links. Rewiring of
undirected graphs swaps pairs of edges (a-an, b-bn) -> (a-bn, b-an) and
verifies after each swap that the graph remains connected. A swap that
disconnects the graph is reverted and the cross swap (a-b, an-bn) is
tried instead.

The number of rewired links is chosen such that the expected fraction of
links that get rewired at least once equals the rewiring probability p:
touching L*q links at random leaves a fraction e^(-q) untouched, hence
q = -ln(1-p) (capped at 1).

Functions:
    rewire(geometry, rng):            Apply the rewiring/addition configured in the geometry
    rewire_undirected(geometry, rng): Degree preserving rewiring of undirected edges
    rewire_directed(geometry, rng):   Degree preserving rewiring of directed links
    add_undirected(geometry, rng):    Add random undirected edges
    add_directed(geometry, rng):      Add random directed links
"""

import logging
import math
import numpy as np
from typing import TYPE_CHECKING

from evoibs.topology.geometry_type import GeometryType
if TYPE_CHECKING:
    from evoibs.topology.geometry import Geometry

logger = logging.getLogger(__name__)

# Maximum number of attempts per link to be rewired or added
MAX_ATTEMPTS_PER_LINK = 100

def _rand(rng: np.random.Generator, n: int) -> int:
    return int(rng.integers(n))

def _rewire_fraction(p: float) -> float:
    return 1.0 if p >= 1.0 else min(1.0, -math.log(1.0 - p))

def _snapshot(geometry: 'Geometry') -> tuple[list[list[int]], list[list[int]]]:
    return [list(links) for links in geometry.out], [list(links) for links in geometry.in_]

def _restore(geometry: 'Geometry', snapshot: tuple[list[list[int]], list[list[int]]]):
    geometry.alloc()
    geometry.out, geometry.in_ = snapshot

def rewire(geometry: 'Geometry', rng: np.random.Generator):
    """
    Rewire (or add) undirected and directed links according to the
    probabilities 'p_undirected' and 'p_directed' of the geometry.
    Klemm-Eguiluz graphs use 'p_undirected' during construction instead.
    """
    if geometry.type is GeometryType.MEANFIELD:
        return

    if geometry.p_undirected > 0.0 and geometry.type is not GeometryType.SCALEFREE_KLEMM:
        if geometry.add_undirected:
            success = add_undirected(geometry, rng)
            if success:
                geometry.is_regular = False
                geometry.is_lattice = False
        else:
            success = rewire_undirected(geometry, rng)
            if not success:
                logger.warning("undirected rewiring failed")
        geometry.is_rewired |= success

    if geometry.p_directed > 0.0:
        if geometry.add_directed:
            success = add_directed(geometry, rng)
            if success:
                geometry.is_regular = False
                geometry.is_lattice = False
        else:
            success = rewire_directed(geometry, rng)
            if not success:
                logger.warning("directed rewiring failed")
        if success:
            geometry.is_rewired    = True
            geometry.is_undirected = False
    geometry.evaluate()

def rewire_undirected(geometry: 'Geometry', rng: np.random.Generator) -> bool:
    """
    Degree preserving rewiring of undirected edges, maintaining connectedness.

    Returns:
        False if rewiring is infeasible or did not complete within the
        maximum number of attempts (all links are restored)
    """
    if not geometry.is_undirected:
        return False
    size = geometry.size
    k    = geometry.connectivity
    if int(k + 1e-6) <= 1:
        logger.error(f"rewiring needs higher connectivity (should be >3 instead of {k:.2f})")
        return False
    if int(k + 1e-6) == 2:
        logger.warning(f"consider higher connectivity for rewiring (should be >3 instead of {k:.2f})")
    if k > size / 2:
        logger.warning(f"consider lower connectivity for rewiring ({k:.2f})")
        return False
    if k > size - 2:
        logger.error("complete graph, rewiring impossible")
        return False

    geometry.evaluate()
    in_        = geometry.in_
    n_links    = int(math.floor(int(geometry.avg_out * size + 0.5) / 2.0 * _rewire_fraction(geometry.p_undirected) + 0.5))
    candidates = [n for n in range(size) if 1 < len(in_[n]) < size - 1]
    if len(candidates) < 2:
        return False

    snapshot = _snapshot(geometry)
    done     = 0
    attempts = 0
    while done < n_links:
        attempts += 1
        if attempts > MAX_ATTEMPTS_PER_LINK * n_links:
            logger.warning(f"rewiring stopped after {attempts} attempts ({done} of {n_links} links)")
            _restore(geometry, snapshot)
            return False
        i = _rand(rng, len(candidates))
        j = _rand(rng, len(candidates) - 1)
        if j >= i:
            j += 1
        first, second = candidates[i], candidates[j]
        first_neighbor  = in_[first][_rand(rng, len(in_[first]))]
        second_neighbor = in_[second][_rand(rng, len(in_[second]))]

        if not geometry.swap_edges(first, first_neighbor, second, second_neighbor):
            continue
        if not geometry.is_connected():
            # revert, then try the cross swap first-second, first_neighbor-second_neighbor
            geometry.swap_edges(first, second_neighbor, second, first_neighbor)
            if not geometry.swap_edges(first, first_neighbor, second_neighbor, second):
                continue
            if not geometry.is_connected():
                geometry.swap_edges(first, second, second_neighbor, first_neighbor)
                continue
        done += 2
    return True

def rewire_directed(geometry: 'Geometry', rng: np.random.Generator) -> bool:
    """
    Degree preserving rewiring of directed links: the links a->an and b->bn
    are replaced by a->bn and b->an, which preserves all in- and out-degrees.
    Undirected graphs become directed.

    Returns:
        False if rewiring is infeasible or did not complete within the
        maximum number of attempts (all links are restored)
    """
    size = geometry.size
    geometry.evaluate()
    if geometry.type in (GeometryType.COMPLETE, GeometryType.STAR) or geometry.avg_out > size - 2:
        logger.error(f"{geometry.type.value} graph, directed rewiring impossible")
        return False

    out     = geometry.out
    sources = [n for n in range(size) if out[n]]
    if len(sources) < 2:
        return False
    n_links = int(math.floor(int(geometry.avg_out * size + 0.5) * _rewire_fraction(geometry.p_directed) + 0.5))

    snapshot = _snapshot(geometry)
    done     = 0
    attempts = 0
    while done < n_links:
        attempts += 1
        if attempts > MAX_ATTEMPTS_PER_LINK * n_links:
            logger.warning(f"directed rewiring stopped after {attempts} attempts ({done} of {n_links} links)")
            _restore(geometry, snapshot)
            return False
        a  = sources[_rand(rng, len(sources))]
        b  = sources[_rand(rng, len(sources))]
        an = out[a][_rand(rng, len(out[a]))]
        bn = out[b][_rand(rng, len(out[b]))]
        if a == b or a == bn or b == an or an == bn:
            continue
        if geometry.is_neighbor_of(a, bn) or geometry.is_neighbor_of(b, an):
            continue
        geometry.remove_link_at(a, an)
        geometry.remove_link_at(b, bn)
        geometry.add_link_at(a, bn)
        geometry.add_link_at(b, an)
        done += 2
    return True

def _add_links(geometry: 'Geometry', rng: np.random.Generator, n_links: int, undirected: bool) -> bool:
    size = geometry.size
    geometry.evaluate()
    existing = geometry.avg_out * size / (2.0 if undirected else 1.0)
    possible = size * (size - 1) / (2.0 if undirected else 1.0)
    n_links  = min(n_links, int(possible - existing))
    while n_links > 0:
        a = _rand(rng, size)
        b = _rand(rng, size - 1)
        if b >= a:
            b += 1
        if geometry.is_neighbor_of(a, b):
            continue
        if undirected:
            geometry.add_edge_at(a, b)
        else:
            geometry.add_link_at(a, b)
        n_links -= 1
    return True

def add_undirected(geometry: 'Geometry', rng: np.random.Generator) -> bool:
    """
    Add a fraction 'p_undirected' of random undirected edges.

    Returns:
        False for complete graphs (nothing changes)
    """
    if geometry.type is GeometryType.COMPLETE:
        return False
    geometry.evaluate()
    n_links = int(math.floor(geometry.avg_out * geometry.size * geometry.p_undirected / 2.0 + 0.5))
    return _add_links(geometry, rng, n_links, undirected=True)

def add_directed(geometry: 'Geometry', rng: np.random.Generator) -> bool:
    """
    Add a fraction 'p_directed' of random directed links.

    Returns:
        False for complete graphs (nothing changes)
    """
    if geometry.type is GeometryType.COMPLETE:
        return False
    geometry.evaluate()
    n_links = int(math.floor(geometry.avg_out * geometry.size * geometry.p_directed + 0.5))
    return _add_links(geometry, rng, n_links, undirected=False)
