"""
Random Graphs Module

Builders for randomly generated graphs. All constructions that are
connected by construction first grow a spanning core and then saturate
the remaining links. Constructions that fail are retried a bounded number
of times before the geometry degrades to a well-mixed population.

Functions:
    init_random_graph(geometry, rng):          Connected random graph with average degree k
    init_random_graph_directed(geometry, rng): Directed random graph with average out-degree k
    init_random_regular_graph(geometry, rng):  Connected random regular graph
    init_scalefree(geometry, rng):             Connected graph with power law degree distribution
    init_scalefree_ba(geometry, rng):          Barabasi-Albert preferential attachment
    init_scalefree_klemm(geometry, rng):       Klemm-Eguiluz growth with active sites
    init_amplifier(geometry, rng):             Strong amplifier of selection
    realize_degree_sequence(...):              Connected undirected graph with a given degree sequence
"""

import logging
import math
import numpy as np
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from evoibs.topology.geometry import Geometry

logger = logging.getLogger(__name__)

# Maximum number of attempts for randomized constructions
MAX_TRIALS = 10

# Maximum number of consecutive failed attempts to place a link
MAX_ESCAPE = 10

def _rand(rng: np.random.Generator, n: int) -> int:
    """Uniform random integer in [0, n)."""
    return int(rng.integers(n))

def _spanning_tree(geometry: 'Geometry', rng: np.random.Generator, directed: bool) -> int:
    """
    Attach every isolated site to a random, already connected site.
    Returns the number of links created.
    """
    isolated  = list(range(geometry.size))
    connected = [isolated.pop(_rand(rng, len(isolated)))]
    while isolated:
        parent = connected[_rand(rng, len(connected))]
        child  = isolated.pop(_rand(rng, len(isolated)))
        if directed:
            geometry.add_link_at(parent, child)
        else:
            geometry.add_edge_at(parent, child)
        connected.append(child)
    return geometry.size - 1

def init_random_graph(geometry: 'Geometry', rng: np.random.Generator):
    """
    Connected random graph: a random spanning tree, completed
    by random edges until the average degree is reached.
    """
    size    = geometry.size
    n_links = int(math.floor(geometry.connectivity * size + 0.5))
    n_links = (n_links - n_links % 2) // 2
    n_links -= _spanning_tree(geometry, rng, directed=False)

    while n_links > 0:
        a = _rand(rng, size)
        b = _rand(rng, size - 1)
        if b >= a:
            b += 1
        if geometry.is_neighbor_of(a, b):
            continue
        geometry.add_edge_at(a, b)
        n_links -= 1

def init_random_graph_directed(geometry: 'Geometry', rng: np.random.Generator):
    """
    Directed random graph: a random directed spanning tree (rooted at a
    random site), completed by random links until the average out-degree is reached.
    """
    geometry.is_undirected = False
    size    = geometry.size
    n_links = int(math.floor(geometry.connectivity * size + 0.5))
    n_links -= _spanning_tree(geometry, rng, directed=True)

    while n_links > 0:
        a = _rand(rng, size)
        b = _rand(rng, size - 1)
        if b >= a:
            b += 1
        if geometry.is_neighbor_of(a, b):
            continue
        geometry.add_link_at(a, b)
        n_links -= 1

def init_random_regular_graph(geometry: 'Geometry', rng: np.random.Generator):
    """
    Connected random regular graph. Gives up after MAX_TRIALS attempts
    and reverts to a well-mixed population.
    """
    degrees = [int(geometry.connectivity)] * geometry.size
    for _ in range(MAX_TRIALS):
        if realize_degree_sequence(geometry, degrees, rng):
            geometry.is_regular = True
            return
    geometry.fall_back_to_meanfield("random regular graph construction failed")

def realize_degree_sequence(geometry: 'Geometry', degrees: list[int], rng: np.random.Generator) -> bool:
    """
    Build a connected undirected graph with the given degree sequence.

    Phase 1 grows a connected core: unsaturated sites of the core are linked
    to not yet connected sites (leaves, i.e. sites of degree 1, are excluded).
    Leaves are then attached to open slots of the core, never to each other.
    Phase 2 saturates the remaining degrees by linking random pairs of
    unsaturated sites. If a pair is already linked, an edge C-D between saturated
    sites is broken and replaced by A-C and B-D (or A-D and B-C).

    Parameters:
        geometry: the geometry to build (all links are discarded first)
        degrees:  the target degree of each site
        rng:      random number generator

    Returns:
        False if the construction got stuck or the result is not connected
    """
    geometry.alloc()
    out  = geometry.out
    full = []

    def saturated(node):
        return len(out[node]) >= degrees[node]

    # phase 1: connected core
    core   = [n for n in range(geometry.size) if degrees[n] > 1]
    leaves = [n for n in range(geometry.size) if degrees[n] == 1]
    active = []
    if core:
        active.append(core.pop(_rand(rng, len(core))))
    while core:
        idxa = _rand(rng, len(active))
        a    = active[idxa]
        b    = core.pop(_rand(rng, len(core)))
        geometry.add_edge_at(a, b)
        if saturated(a):
            full.append(a)
            active[idxa] = active[-1]
            active.pop()
        if saturated(b):
            full.append(b)
        else:
            active.append(b)

    # leaves take open slots of the core, sites with more open slots are more likely
    if leaves:
        slots = [node for node in active for _ in range(degrees[node] - len(out[node]))]
        if len(slots) < len(leaves):
            logger.debug("not enough open slots in the core for all leaves - retry")
            return False
        for leaf, idx in zip(leaves, rng.choice(len(slots), size=len(leaves), replace=False)):
            geometry.add_edge_at(slots[int(idx)], leaf)
        full.extend(leaves)
        full.extend(node for node in active if saturated(node))
        active = [node for node in active if not saturated(node)]

    # phase 2: saturate remaining degrees
    todo   = active
    escape = 0
    while len(todo) > 1:
        idxa = _rand(rng, len(todo))
        idxb = _rand(rng, len(todo) - 1)
        if idxb >= idxa:
            idxb += 1
        a, b = todo[idxa], todo[idxb]

        if geometry.is_neighbor_of(a, b):
            if not full or not _break_edge(geometry, rng, full, a, b):
                escape += 1
                if escape > MAX_ESCAPE:
                    logger.debug("degree sequence construction appears stuck - retry")
                    return False
                continue
        else:
            geometry.add_edge_at(a, b)
        escape = 0

        for node in (a, b):
            if saturated(node):
                full.append(node)
                todo.remove(node)

    # a single site may remain with an even number of open slots
    if todo:
        a = todo[0]
        while degrees[a] - len(out[a]) >= 2:
            c = full[_rand(rng, len(full))]
            d = out[c][_rand(rng, len(out[c]))]
            if d == a or c == a or geometry.is_neighbor_of(a, c) or geometry.is_neighbor_of(a, d):
                escape += 1
                if escape > MAX_ESCAPE:
                    return False
                continue
            geometry.remove_edge_at(c, d)
            geometry.add_edge_at(a, c)
            geometry.add_edge_at(a, d)

    return geometry.is_connected()

def _break_edge(geometry: 'Geometry', rng: np.random.Generator, full: list[int], a: int, b: int) -> bool:
    """
    Break a random edge C-D of a saturated site C and reconnect A-C, B-D (or A-D, B-C).
    """
    out = geometry.out
    c   = full[_rand(rng, len(full))]
    d   = out[c][_rand(rng, len(out[c]))]
    if d in (a, b) or c in (a, b):
        return False
    if not geometry.is_neighbor_of(a, c) and not geometry.is_neighbor_of(b, d):
        geometry.remove_edge_at(c, d)
        geometry.add_edge_at(a, c)
        geometry.add_edge_at(b, d)
        return True
    if not geometry.is_neighbor_of(a, d) and not geometry.is_neighbor_of(b, c):
        geometry.remove_edge_at(c, d)
        geometry.add_edge_at(a, d)
        geometry.add_edge_at(b, c)
        return True
    return False

def _degree_distribution(geometry: 'Geometry') -> np.ndarray:
    """
    Probabilities of degrees 0..N-1 (degree 0 never occurs). A power law with
    exponent 'sf_exponent' (or uniform for exponent 0), adjusted such that
    the average degree matches the connectivity.
    """
    size  = geometry.size
    k     = geometry.connectivity
    n     = np.arange(size, dtype=float)
    distr = np.zeros(size)
    if abs(geometry.sf_exponent) > 1e-8:
        distr[1:] = (n[1:] / size) ** geometry.sf_exponent
    else:
        # uniform on 1..2k-1 has mean k, non-integer 2k is lifted below
        distr[1:max(2, min(size, int(2.0 * k)))] = 1.0

    norm   = distr[1:].sum()
    conn   = (n[1:] * distr[1:]).sum() / norm
    distr /= norm

    if conn < k + 1e-8:
        # lift the distribution
        half = size / 2.0
        if k >= half:
            distr[1:] = 1.0 / (size - 1)
            geometry.connectivity = half
        elif k - conn > 1e-8:
            x    = 1.0 - (k - conn) / (half - conn)
            lift = (1.0 - x) / (size - 1)
            distr[1:] = x * distr[1:] + lift
        return distr

    # truncate the tail
    km, pm, m = 0.0, 0.0, 1
    sump  = distr[1]
    sumpi = sump
    while km < k and m < size - 1:
        m     += 1
        pm     = distr[m]
        sump  += pm
        sumpi += pm * m
        km     = (sumpi - pm * ((m * (m + 1)) // 2)) / (sump - m * pm)
    distr[m:] = 0.0
    decr      = distr[m - 1]
    newnorm   = sump - pm - (m - 1) * decr
    distr[1:m] = (distr[1:m] - decr) / newnorm
    conn = (n[1:m] * distr[1:m]).sum()
    if m > 2 and abs(m / 2.0 - conn) > 1e-12:
        x    = 1.0 - (k - conn) / (m / 2.0 - conn)
        lift = (1.0 - x) / (m - 1)
        distr[1:m] = x * distr[1:m] + lift
    return distr

def _draw_degrees(cdf: np.ndarray, rng: np.random.Generator, count: int) -> np.ndarray:
    """Draw 'count' degrees from the cumulative distribution of degrees 1, 2, ..."""
    idx = np.searchsorted(cdf, rng.random(count))
    return np.minimum(idx, len(cdf) - 1) + 1

def init_scalefree(geometry: 'Geometry', rng: np.random.Generator):
    """
    Connected graph with a power law degree distribution. A degree sequence
    is drawn, adjusted to the desired number of links and realized. Gives up
    after MAX_TRIALS attempts and reverts to a well-mixed population.
    """
    size  = geometry.size
    distr = _degree_distribution(geometry)
    k     = geometry.connectivity
    # degrees range from 1 to N-2
    cdf = np.cumsum(distr[1:max(2, size - 1)])

    for _ in range(MAX_TRIALS):
        degrees = _draw_degrees(cdf, rng, size)
        links   = int(degrees.sum())

        # adjust link count
        adj = 0
        if k > 0.0:
            if k * size > links:
                adj = int(math.floor(k * size + 0.5)) - links
            if max(2.0, k) * size < links:
                adj = int(math.floor(max(2.0, k) * size + 0.5)) - links
            if (links + adj) % 2 == 1:
                adj += 1
        logger.debug(f"adjusting link count {links} by {adj}")
        attempts = 0
        while adj != 0 and attempts < 100 * size:
            attempts += 1
            node = _rand(rng, size)
            new  = int(_draw_degrees(cdf, rng, 1)[0])
            dd   = new - degrees[node]
            if abs(adj) <= abs(adj - dd):
                continue
            degrees[node] = new
            adj -= dd

        # enough non-leaf links for a spanning tree and an even number of link ends
        leaflinks    = int(np.sum(degrees == 1))
        nonleaflinks = int(degrees[degrees > 1].sum())
        links        = int(degrees.sum())
        while nonleaflinks < 2 * (size - 1) - leaflinks or links % 2 == 1:
            node = _rand(rng, size)
            if degrees[node] == 1:
                leaflinks    -= 1
                nonleaflinks += 1
            degrees[node] += 1
            nonleaflinks  += 1
            links         += 1

        sequence = sorted((int(d) for d in degrees), reverse=True)
        for _ in range(MAX_TRIALS):
            if realize_degree_sequence(geometry, sequence, rng):
                return
    geometry.fall_back_to_meanfield("scale-free graph construction failed")

def _complete_core(geometry: 'Geometry', n_start: int):
    for i in range(1, n_start):
        for j in range(i):
            geometry.add_edge_at(i, j)

def init_scalefree_ba(geometry: 'Geometry', rng: np.random.Generator):
    """
    Barabasi-Albert graph: starting from a complete core, each new site
    attaches k/2 links to existing sites with probability proportional
    to their degree.
    """
    out      = geometry.out
    my_links = min(int(geometry.connectivity / 2.0 + 0.5), geometry.size - 1)
    n_start  = max(my_links, 2)
    _complete_core(geometry, n_start)
    n_links = n_start * (n_start - 1)

    for n in range(n_start, geometry.size):
        for _ in range(my_links):
            # exclude current neighbours from the draw
            taken = sum(len(out[j]) for j in out[n])
            dice  = _rand(rng, n_links - taken)
            for j in range(n):
                if geometry.is_neighbor_of(n, j):
                    continue
                dice -= len(out[j])
                if dice < 0:
                    break
            geometry.add_edge_at(n, j)
            n_links += 1
        n_links += my_links

def _preferential_pick(geometry: 'Geometry', rng: np.random.Generator, n: int) -> int:
    """Random site below 'n', not yet linked to 'n', with probability proportional to its degree."""
    out   = geometry.out
    links = sum(len(out[j]) for j in range(n))
    while True:
        dice = _rand(rng, links)
        for j in range(n):
            dice -= len(out[j])
            if dice < 0:
                break
        if not geometry.is_neighbor_of(n, j):
            return j

def init_scalefree_klemm(geometry: 'Geometry', rng: np.random.Generator):
    """
    Klemm-Eguiluz graph: each new site links to the k/2 active sites (or,
    with probability 'p_undirected', to a site picked by preferential
    attachment), becomes active and deactivates one site with probability
    inversely proportional to its degree (possibly itself).
    """
    out      = geometry.out
    p        = geometry.p_undirected
    n_active = min(int(geometry.connectivity / 2.0 + 0.5), geometry.size)
    active   = list(range(n_active))
    _complete_core(geometry, max(n_active, 2))

    for n in range(max(n_active, 2), geometry.size):
        for i in range(n_active):
            target = active[i]
            if p > 1e-8 and (p > 1.0 - 1e-8 or rng.random() < p or geometry.is_neighbor_of(n, target)):
                target = _preferential_pick(geometry, rng, n)
            geometry.add_edge_at(n, target)

        weights = [1.0 / len(out[a]) for a in active]
        hit_new = 1.0 / len(out[n])
        dice    = rng.random() * (sum(weights) + hit_new) - hit_new
        if dice < 0.0:
            # new site is deactivated right away
            continue
        for i, weight in enumerate(weights):
            dice -= weight
            if dice < 0.0:
                break
        active[i] = n

def _rrg_core(geometry: 'Geometry', rng: np.random.Generator, start: int, end: int, degree: int):
    """
    Approximate random regular graph of the given degree on sites [start, end).
    """
    out     = geometry.out
    todo    = list(range(start, end))
    n_links = len(todo) * degree

    # connected core
    active = [todo.pop(_rand(rng, len(todo)))]
    while todo:
        idxa = _rand(rng, len(active))
        a    = active[idxa]
        b    = todo.pop(_rand(rng, len(todo)))
        geometry.add_edge_at(a, b)
        if len(out[a]) == degree:
            active.pop(idxa)
        if len(out[b]) < degree:
            active.append(b)
    n_links -= 2 * (end - start - 1)

    # link open slots; a single site with a different degree is acceptable
    todo   = active
    escape = 0
    while len(todo) > 1 and n_links > 1 and escape < MAX_ESCAPE * len(todo) ** 2:
        slots = np.array([degree - len(out[node]) for node in todo], dtype=float)
        a, b  = rng.choice(len(todo), size=2, replace=False, p=slots / slots.sum())
        nodea, nodeb = todo[a], todo[b]
        if geometry.is_neighbor_of(nodea, nodeb):
            escape += 1
            continue
        escape = 0
        geometry.add_edge_at(nodea, nodeb)
        n_links -= 2
        todo = [node for node in todo if len(out[node]) < degree]

def init_amplifier(geometry: 'Geometry', rng: np.random.Generator):
    """
    Strong amplifier of selection with three classes of sites: a random
    regular core W (degree unit^2), followed by unit^2 hub sites in V and
    unit^3 leaves in U. Each site in V has unit leaves in U and
    links to unit^2 random sites in W.
    """
    size   = geometry.size
    unit13 = max(5, int((size // 4) ** (1.0 / 3.0)))
    unit23 = unit13 * unit13
    n_v    = unit23
    n_w    = size - unit23 * unit13 - n_v

    _rrg_core(geometry, rng, 0, n_w, unit23)
    leaf = n_w + n_v
    for v in range(n_w, n_w + n_v):
        for _ in range(unit13):
            geometry.add_edge_at(v, leaf)
            leaf += 1
        remaining = unit23
        while remaining > 0:
            w = _rand(rng, n_w)
            if geometry.is_neighbor_of(v, w):
                continue
            geometry.add_edge_at(v, w)
            remaining -= 1
