"""
Geometry Module

This module implements the Geometry class, the topology engine of the
individual based simulations. A geometry describes who interacts with whom
(interaction geometry) or who may replace whom (reproduction geometry).

Every site keeps two neighbour lists:
- out[i]: outgoing neighbours, i.e. the sites that 'i' affects or replaces
- in_[i]: incoming neighbours, i.e. the sites that affect 'i'
Undirected graphs keep identical (but separate) lists.

Classes:
    Geometry: Graph structure of a population, with validation, generation and rewiring
"""

import logging
import math
import networkx as nx
import numpy as np
import warnings
from typing import TYPE_CHECKING

from evoibs.topology               import graphs, lattices, random_graphs, rewiring
from evoibs.topology.geometry_type import GeometryType, NAMED_GRAPHS, _DETERMINISTIC
if TYPE_CHECKING:
    from evoibs.run.config import Config

logger = logging.getLogger(__name__)

class Geometry:
    """
    The graph structure of a population.

    A geometry is first configured (family, size, connectivity and family
    specific parameters), then validated with 'check()' and finally built
    with 'init()'. Validation is self-healing: infeasible combinations of
    parameters are rounded to the nearest admissible configuration and the
    correction is logged. A structural parameter change requires a rebuild.

    Public Attributes:
        type:                 The graph family (GeometryType)
        name:                 Descriptive name used in log messages
        size:                 Number of sites
        connectivity:         (Average) number of neighbours
        out:                  Outgoing neighbour lists
        in_:                  Incoming neighbour lists
        is_undirected:        Whether all links are bidirectional
        is_regular:           Whether all sites have the same degree
        is_lattice:           Whether the graph is a lattice
        is_rewired:           Whether links were rewired or added after construction
        fixed_boundary:       Lattices with fixed instead of periodic boundaries
        linear_asymmetry:     Difference between left and right neighbours in linear lattices
        petals_count:         Number of petals of super-stars
        petals_amplification: Amplification of super-stars (>= 3)
        sf_exponent:          Exponent of the power law degree distribution of scale-free graphs
        p_undirected:         Fraction of undirected links to rewire (or add)
        p_directed:           Fraction of directed links to rewire (or add)
        add_undirected:       Add instead of rewire undirected links
        add_directed:         Add instead of rewire directed links
        hierarchy:            Units per hierarchical level, the last entry is the deme size
        hierarchy_weight:     Interaction weight between adjacent hierarchical levels
        subgeometry:          Structure of the demes in hierarchical geometries
        min_in, max_in, avg_in, min_out, max_out, avg_out, min_tot, max_tot, avg_tot:
                              Degree statistics (see 'evaluate()')

    Public Methods:
        from_config(config, reproduction): Create a geometry from configuration parameters
        check():                            Validate and self-heal the parameters
        init(rng):                          Build the graph
        rewire(rng):                        Rewire or add links
        evaluate():                         Compute the degree statistics
        check_connections():                Audit the consistency of the links
        is_connected():                     Whether all sites are reachable from site 0
        derive_reproduction(reproduction):  Share this geometry if both are equal
        encode(), decode(adjacency):        (De)serialise the adjacency of unique geometries
        to_networkx():                      Export to a networkx graph
    """

    def __init__(self,
                 geometry_type       : GeometryType = GeometryType.MEANFIELD,
                 size                : int          = 0,
                 connectivity        : float        = 0.0,
                 name                : str          = "structure",
                 fixed_boundary      : bool         = False,
                 linear_asymmetry    : int          = 0,
                 petals_count        : int          = 1,
                 petals_amplification: int          = 3,
                 sf_exponent         : float        = -2.0,
                 p_undirected        : float        = 0.0,
                 p_directed          : float        = 0.0,
                 add_undirected      : bool         = False,
                 add_directed        : bool         = False,
                 hierarchy           : list[int] | None = None,
                 hierarchy_weight    : float        = 0.0,
                 subgeometry         : GeometryType = GeometryType.MEANFIELD):
        """
        Configure a geometry. Nothing is built until 'init()' is called.

        Parameters:
            geometry_type: the graph family
            size:          number of sites
            connectivity:  (average) number of neighbours
            name:          descriptive name used in log messages
            all others:    family specific parameters (see class documentation)
        """
        self.type        : GeometryType = geometry_type
        self.name        : str          = name
        self.size        : int          = size
        self.connectivity: float        = float(connectivity)

        self.fixed_boundary      : bool  = fixed_boundary
        self.linear_asymmetry    : int   = linear_asymmetry
        self.petals_count        : int   = petals_count
        self.petals_amplification: int   = petals_amplification
        self.sf_exponent         : float = sf_exponent
        self.p_undirected        : float = p_undirected
        self.p_directed          : float = p_directed
        self.add_undirected      : bool  = add_undirected
        self.add_directed        : bool  = add_directed

        self.raw_hierarchy   : list[int]    = list(hierarchy) if hierarchy else []
        self.hierarchy       : list[int]    = []
        self.hierarchy_weight: float        = hierarchy_weight
        self.subgeometry     : GeometryType = subgeometry

        self.out: list[list[int]] = []
        self.in_: list[list[int]] = []

        self.is_undirected: bool = True
        self.is_regular   : bool = False
        self.is_lattice   : bool = False
        self.is_rewired   : bool = False

        self._reset_statistics()
        self._evaluated: bool = False

    @classmethod
    def from_config(cls, config: 'Config', reproduction: bool = False) -> 'Geometry':
        """
        Create a geometry from configuration parameters.

        Parameters:
            config:       Stores configuration parameters
            reproduction: If True, read the reproduction geometry parameters
                          (which default to the interaction geometry parameters)

        Returns:
            The configured (but not yet built) geometry
        """
        prefix = "reproduction_" if reproduction else ""

        def option(key):
            value = getattr(config, prefix + key, None) if reproduction else None
            return getattr(config, key) if value is None else value

        geometry_type = option('geometry')
        subgeometry   = option('subgeometry')
        return cls(geometry_type        = GeometryType(geometry_type) if isinstance(geometry_type, str) else geometry_type,
                   size                 = config.population_size,
                   connectivity         = option('connectivity'),
                   name                 = "reproduction" if reproduction else "interaction",
                   fixed_boundary       = option('fixed_boundary'),
                   linear_asymmetry     = option('linear_asymmetry'),
                   petals_count         = option('petals_count'),
                   petals_amplification = option('petals_amplification'),
                   sf_exponent          = option('sf_exponent'),
                   p_undirected         = option('p_undirected'),
                   p_directed           = option('p_directed'),
                   add_undirected       = option('add_undirected'),
                   add_directed         = option('add_directed'),
                   hierarchy            = option('hierarchy'),
                   hierarchy_weight     = option('hierarchy_weight'),
                   subgeometry          = GeometryType(subgeometry) if isinstance(subgeometry, str) else subgeometry)

    # ------------------------------------------------------------------
    # validation
    # ------------------------------------------------------------------

    def _set_size(self, size: int) -> bool:
        """
        Change the number of sites. Returns True if the size changed.
        """
        if self.size == size:
            return False
        self.size = size
        return True

    def check(self) -> bool:
        """
        Validate the configuration and round infeasible sizes or parameters to
        the nearest admissible configuration. Each correction is logged.

        Returns:
            True if the corrections require a reset of the population
        """
        reset = False
        k     = self.connectivity
        gt    = GeometryType

        if self.type is gt.COMPLETE:
            self.connectivity = self.size - 1

        elif self.type is gt.HIERARCHY:
            reset = self._check_hierarchy()

        elif self.type is gt.LINEAR:
            k = max(1.0, float(round(k)))
            if abs(k - 1.0) < 1e-8 or int(k) % 2 == 1 or k >= self.size:
                k = min(max(2.0, k + 1.0), float(self.size - 1 - (self.size - 1) % 2))
                logger.warning(f"linear {self.name} geometry requires even integer number of neighbours - using {k:g}")
                reset = True
            self.connectivity = k
            if abs(self.linear_asymmetry) > int(k):
                self.linear_asymmetry = int(math.copysign(int(k), self.linear_asymmetry))
                logger.warning(f"linear {self.name} geometry asymmetry limited to {self.linear_asymmetry}")
                reset = True

        elif self.type is gt.STAR:
            self.connectivity = 2.0 * (self.size - 1) / self.size

        elif self.type is gt.WHEEL:
            self.connectivity = 4.0 * (self.size - 1) / self.size

        elif self.type is gt.SUPER_STAR:
            if self.petals_amplification < 3:
                self.petals_amplification = 3
                logger.warning(f"super-star {self.name} geometry requires amplification of >=3 - using 3")
            self.petals_count = max(1, self.petals_count)
            pnodes = self.petals_count * (self.petals_amplification - 2)
            n_reservoir = max(1, (self.size - 1 - pnodes) // self.petals_count)
            if self._set_size(n_reservoir * self.petals_count + pnodes + 1):
                logger.warning(f"super-star {self.name} geometry requires special size - using {self.size}")
                reset = True
            self.connectivity = (2 * n_reservoir * self.petals_count + pnodes) / self.size

        elif self.type is gt.STRONG_SUPPRESSOR:
            unit = max(2, int(math.floor(self.size ** 0.25)))
            if self._set_size(unit * unit * (1 + unit * (1 + unit))):
                logger.warning(f"strong suppressor {self.name} geometry requires special size - using {self.size}")
                reset = True

        elif self.type is gt.STRONG_AMPLIFIER:
            # unit13 >= 5 ensures that epsilon < 1
            unit13 = max(5, int((self.size // 4) ** (1.0 / 3.0)))
            unit23 = unit13 * unit13
            lnunit = 3.0 * math.log(unit13)
            alpha  = 3.0 * lnunit / math.log(1.0 + lnunit / unit13)
            if self._set_size(int(unit23 * unit13 + (1.0 + alpha) * unit23 + 0.5)):
                logger.warning(f"strong amplifier {self.name} geometry requires special size - using {self.size}")
                reset = True

        elif self.type is gt.SQUARE:
            side = max(3, int(math.floor(math.sqrt(self.size) + 0.5)))
            if self._set_size(side * side):
                logger.warning(f"square {self.name} geometry requires integer square size - using {self.size}")
                reset = True
            # valid neighbourhoods: 4 (von Neumann), 8 (Moore), 24, 48, ... ((2r+1)^2-1)
            radius = min((side - 1) // 2, max(1, int(math.sqrt(k + 1.5) / 2.0)))
            count  = (2 * radius + 1) ** 2 - 1
            if abs(count - k) > 1e-8 and abs(4.0 - k) > 1e-8:
                self.connectivity = count if count < self.size else 4
                logger.warning(f"square {self.name} geometry has invalid connectivity - using {self.connectivity:g}")
                reset = True

        elif self.type is gt.CUBE:
            if self.size != lattices.CUBE_SPECIAL_SIZE:
                side = max(3, int(math.floor(self.size ** (1.0 / 3.0) + 0.5)))
                if self._set_size(side ** 3):
                    logger.warning(f"cubic {self.name} geometry requires integer cube size - using {self.size}")
                    reset = True
                radius = min((side - 1) // 2, max(1, int((k + 1.5) ** (1.0 / 3.0) / 2.0)))
            else:
                radius = min(4, max(1, int((k + 1.5) ** (1.0 / 3.0) / 2.0)))
            count = (2 * radius + 1) ** 3 - 1
            if abs(count - k) > 1e-8 and abs(6.0 - k) > 1e-8:
                self.connectivity = count if count < self.size else 6
                logger.warning(f"cubic {self.name} geometry has invalid connectivity - using {self.connectivity:g}")
                reset = True

        elif self.type in (gt.HONEYCOMB, gt.TRIANGULAR):
            kind   = "hexagonal" if self.type is gt.HONEYCOMB else "triangular"
            degree = 6 if self.type is gt.HONEYCOMB else 3
            side   = int(math.floor(math.sqrt(self.size) + 0.5))
            if self.size != side * side or side % 2 == 1 or side < 4:
                side = max(4, side + side % 2)
                self._set_size(side * side)
                logger.warning(f"{kind} {self.name} geometry requires even integer square size - using {self.size}")
                reset = True
            if abs(k - degree) > 1e-8:
                self.connectivity = degree
                logger.warning(f"{kind} {self.name} geometry requires connectivity {degree}")

        elif self.type is gt.RANDOM_REGULAR_GRAPH:
            k = min(math.floor(k), self.size - 1)
            if k < 2:
                k = 2
                logger.warning(f"random regular {self.name} geometry requires connectivity >=2 - using 2")
                reset = True
            self.connectivity = float(k)
            if (self.size * int(k)) % 2 == 1:
                self._set_size(self.size + 1)
                logger.warning(f"random regular {self.name} geometry requires even link count - set size to {self.size}")
                reset = True

        elif self.type in NAMED_GRAPHS:
            size, degree = NAMED_GRAPHS[self.type]
            if self._set_size(size):
                logger.warning(f"{self.type.value} graph {self.name} geometry requires size {size}")
                reset = True
            self.connectivity = float(degree)

        elif self.type in (gt.RANDOM_GRAPH, gt.RANDOM_GRAPH_DIRECTED,
                           gt.SCALEFREE, gt.SCALEFREE_BA, gt.SCALEFREE_KLEMM):
            if k > self.size - 1:
                self.connectivity = float(self.size - 1)
                logger.warning(f"{self.type.value} {self.name} geometry connectivity limited to {self.connectivity:g}")
                reset = True
            # growth models attach at least one link per site
            if self.type in (gt.SCALEFREE_BA, gt.SCALEFREE_KLEMM) and self.connectivity < 2.0:
                self.connectivity = 2.0
                logger.warning(f"{self.type.value} {self.name} geometry requires connectivity >=2 - using 2")
                reset = True

        elif self.type is not gt.MEANFIELD:
            raise RuntimeError("bad geometry type")

        return reset

    def _check_hierarchy(self) -> bool:
        """
        Validate the levels of a hierarchical geometry.
        Levels with a single unit are collapsed.
        """
        gt     = GeometryType
        reset  = False
        levels = [h for h in self.raw_hierarchy if h > 1]

        if not levels:
            # no hierarchies remain
            if self.subgeometry in (gt.MEANFIELD, gt.COMPLETE) or self.hierarchy_weight <= 0.0:
                self.type = self.subgeometry
                logger.warning(f"hierarchies must encompass >=2 levels - collapsed to geometry '{self.type.value}'")
                self.check()
                return True
            # structured demes: maintain a single level
            levels = [1]
        if len(levels) != len(self.raw_hierarchy):
            logger.warning(f"hierarchy levels must include >1 units - collapsed to {len(levels) + 1} levels")

        if self.subgeometry is gt.SQUARE:
            # demes use von Neumann or Moore neighbourhoods only
            if self.connectivity not in (4.0, 8.0):
                self.connectivity = 4.0
                logger.warning(f"hierarchical {self.name} geometry with square demes requires connectivity 4 or 8 - using 4")
                reset = True
            prod = 1
            if levels != [1]:
                # every level must be a square grid of at least 2x2 units
                levels = [max(4, math.isqrt(h) ** 2) for h in levels]
                prod   = math.prod(levels)
            # at least 3x3 individuals per deme
            n_indiv = max(9, math.isqrt(self.size // prod) ** 2)
        else:
            if self.subgeometry not in (gt.MEANFIELD, gt.COMPLETE):
                logger.warning(f"subgeometry '{self.subgeometry.value}' not supported - well-mixed demes forced")
                reset = True
            self.subgeometry  = gt.MEANFIELD
            prod              = math.prod(levels)
            n_indiv           = max(2, self.size // prod)
            self.connectivity = float(n_indiv - 1)

        self.hierarchy = levels + [n_indiv]
        if self._set_size(prod * n_indiv):
            logger.warning(f"hierarchical {self.name} geometry with levels {self.hierarchy} requires size {self.size}")
            reset = True
        return reset

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    def alloc(self):
        """
        Discard all links and allocate empty neighbour lists.
        """
        self.out = [[] for _ in range(self.size)]
        self.in_ = [[] for _ in range(self.size)]
        self._evaluated = False

    def init(self, rng: np.random.Generator):
        """
        Build the graph. Assumes that 'check()' has been called.

        Parameters:
            rng: random number generator for randomized constructions
        """
        gt = GeometryType
        builders = {
            gt.MEANFIELD            : graphs.init_meanfield,
            gt.COMPLETE             : graphs.init_complete,
            gt.HIERARCHY            : graphs.init_hierarchy,
            gt.STAR                 : graphs.init_star,
            gt.WHEEL                : graphs.init_wheel,
            gt.SUPER_STAR           : graphs.init_superstar,
            gt.STRONG_SUPPRESSOR    : graphs.init_suppressor,
            gt.LINEAR               : lattices.init_linear,
            gt.SQUARE               : lattices.init_square,
            gt.CUBE                 : lattices.init_cube,
            gt.HONEYCOMB            : lattices.init_honeycomb,
            gt.TRIANGULAR           : lattices.init_triangular,
            gt.STRONG_AMPLIFIER     : random_graphs.init_amplifier,
            gt.RANDOM_GRAPH         : random_graphs.init_random_graph,
            gt.RANDOM_GRAPH_DIRECTED: random_graphs.init_random_graph_directed,
            gt.RANDOM_REGULAR_GRAPH : random_graphs.init_random_regular_graph,
            gt.SCALEFREE            : random_graphs.init_scalefree,
            gt.SCALEFREE_BA         : random_graphs.init_scalefree_ba,
            gt.SCALEFREE_KLEMM      : random_graphs.init_scalefree_klemm,
        }
        builders.update({named: graphs.init_named_graph for named in NAMED_GRAPHS})

        # defaults, builders only change what differs
        self.is_undirected = True
        self.is_regular    = False
        self.is_lattice    = self.type.is_lattice
        self.is_rewired    = False
        self.alloc()

        builders[self.type](self, rng)
        self._evaluated = False

    def fall_back_to_meanfield(self, reason: str):
        """
        Give up on a randomized construction and revert to a well-mixed population.

        Parameters:
            reason: description of the failure
        """
        warnings.warn(f"{reason} - {self.name} geometry reverts to well-mixed", RuntimeWarning)
        self.type          = GeometryType.MEANFIELD
        self.is_undirected = True
        self.is_regular    = False
        self.is_lattice    = False
        self.alloc()

    def rewire(self, rng: np.random.Generator):
        """
        Rewire (or add) undirected and directed links according
        to 'p_undirected' and 'p_directed'.

        Parameters:
            rng: random number generator
        """
        rewiring.rewire(self, rng)

    # ------------------------------------------------------------------
    # links
    # ------------------------------------------------------------------

    def add_link_at(self, source: int, target: int):
        """Add a directed link from 'source' to 'target'."""
        self.out[source].append(target)
        self.in_[target].append(source)
        self._evaluated = False

    def add_edge_at(self, a: int, b: int):
        """Add an undirected edge between 'a' and 'b'."""
        self.add_link_at(a, b)
        self.add_link_at(b, a)

    def remove_link_at(self, source: int, target: int):
        """Remove the directed link from 'source' to 'target'."""
        self.out[source].remove(target)
        self.in_[target].remove(source)
        self._evaluated = False

    def remove_edge_at(self, a: int, b: int):
        """Remove the undirected edge between 'a' and 'b'."""
        self.remove_link_at(a, b)
        self.remove_link_at(b, a)

    def is_neighbor_of(self, focal: int, check: int) -> bool:
        """Whether 'check' is an outgoing neighbour of 'focal'."""
        return check in self.out[focal]

    def swap_edges(self, a: int, an: int, b: int, bn: int) -> bool:
        """
        Replace the undirected edges a-an and b-bn by a-bn and b-an.
        Degrees of all four sites are preserved.

        Returns:
            False if the swap would create a self-loop or a double edge (nothing changes)
        """
        if a == bn or b == an or an == bn:
            return False
        if self.is_neighbor_of(a, bn) or self.is_neighbor_of(b, an):
            return False

        def replace(links, old, new):
            links[links.index(old)] = new

        replace(self.out[a],  an, bn)
        replace(self.out[b],  bn, an)
        replace(self.in_[a],  an, bn)
        replace(self.in_[b],  bn, an)
        replace(self.out[an], a,  b)
        replace(self.out[bn], b,  a)
        replace(self.in_[an], a,  b)
        replace(self.in_[bn], b,  a)
        return True

    # ------------------------------------------------------------------
    # analysis
    # ------------------------------------------------------------------

    def _reset_statistics(self):
        self.min_in : int   = 0
        self.max_in : int   = 0
        self.avg_in : float = 0.0
        self.min_out: int   = 0
        self.max_out: int   = 0
        self.avg_out: float = 0.0
        self.min_tot: int   = 0
        self.max_tot: int   = 0
        self.avg_tot: float = 0.0

    def evaluate(self):
        """
        Compute the minimum, maximum and average in-, out- and total degrees.
        The statistics are cached until links change.
        Well-mixed populations have no links and all statistics are zero.
        """
        if self._evaluated:
            return
        self._evaluated = True
        if self.type is GeometryType.MEANFIELD or not self.out:
            self._reset_statistics()
            return

        kout = np.fromiter((len(links) for links in self.out), dtype=int, count=self.size)
        kin  = np.fromiter((len(links) for links in self.in_), dtype=int, count=self.size)
        ktot = kout + kin
        self.min_out, self.max_out, self.avg_out = int(kout.min()), int(kout.max()), float(kout.mean())
        self.min_in,  self.max_in,  self.avg_in  = int(kin.min()),  int(kin.max()),  float(kin.mean())
        self.min_tot, self.max_tot, self.avg_tot = int(ktot.min()), int(ktot.max()), float(ktot.mean())

    def check_connections(self) -> list[str]:
        """
        Audit the consistency of all links.

        Returns:
            List of problems found, empty if all links are consistent
        """
        problems = []
        for i in range(self.size):
            out_i, in_i = self.out[i], self.in_[i]
            if len(set(out_i)) != len(out_i):
                problems.append(f"node {i} has double out-links")
            if len(set(in_i)) != len(in_i):
                problems.append(f"node {i} has double in-links")
            if i in out_i or i in in_i:
                problems.append(f"node {i} has a self-loop")
            for j in out_i:
                if i not in self.in_[j]:
                    problems.append(f"node {i} has out-link to node {j} without matching in-link")
                if self.is_undirected and i not in self.out[j]:
                    problems.append(f"node {i} has out-link to node {j} but not vice versa")

        if self.is_regular and self.size > 0:
            self.evaluate()
            for i in range(self.size):
                if len(self.out[i]) != self.min_out or len(self.in_[i]) != self.min_in:
                    problems.append(f"node {i} violates regularity")

        for problem in problems:
            logger.debug(problem)
        return problems

    def is_connected(self) -> bool:
        """
        Whether every site is reachable from site 0 along outgoing links.
        """
        if self.size == 0 or self.type is GeometryType.MEANFIELD:
            return True
        seen  = [False] * self.size
        stack = [0]
        seen[0] = True
        while stack:
            node = stack.pop()
            for neighbor in self.out[node]:
                if not seen[neighbor]:
                    seen[neighbor] = True
                    stack.append(neighbor)
        return all(seen)

    @property
    def is_unique(self) -> bool:
        """
        Whether the graph is randomly generated (or rewired) and
        hence needs to be serialised to be restored.
        """
        if self.is_rewired:
            return True
        if self.type is GeometryType.HIERARCHY:
            return self.subgeometry not in _DETERMINISTIC
        return self.type not in _DETERMINISTIC

    def derive_reproduction(self, reproduction: 'Geometry | None') -> 'Geometry':
        """
        Return the reproduction geometry. If it is not specified or if it is
        configured identically to this (interaction) geometry, both share
        this geometry instance.

        Parameters:
            reproduction: the configured reproduction geometry (or None)
        """
        if reproduction is None or self._same_parameters(reproduction):
            return self
        return reproduction

    def _same_parameters(self, other: 'Geometry') -> bool:
        keys = ('type', 'size', 'connectivity', 'fixed_boundary', 'linear_asymmetry',
                'petals_count', 'petals_amplification', 'sf_exponent', 'p_undirected',
                'p_directed', 'add_undirected', 'add_directed', 'raw_hierarchy',
                'hierarchy_weight', 'subgeometry')
        return all(getattr(self, key) == getattr(other, key) for key in keys)

    # ------------------------------------------------------------------
    # serialisation
    # ------------------------------------------------------------------

    def encode(self) -> list[list[int]] | None:
        """
        Encode the outgoing links of unique geometries.

        Returns:
            The outgoing neighbour lists, or None for geometries
            that are fully determined by their parameters
        """
        if not self.is_unique:
            return None
        return [list(links) for links in self.out]

    def decode(self, adjacency: list[list[int]]) -> bool:
        """
        Restore the links from encoded outgoing neighbour lists.
        Incoming lists are reconstructed.

        Parameters:
            adjacency: outgoing neighbour lists (as produced by 'encode()')

        Returns:
            False if the adjacency does not match the size of the geometry (nothing changes)
        """
        if len(adjacency) != self.size:
            return False
        if any(not 0 <= j < self.size for links in adjacency for j in links):
            return False
        self.alloc()
        for i, links in enumerate(adjacency):
            for j in links:
                self.add_link_at(i, int(j))
        self.is_undirected = all(i in self.out[j] for i in range(self.size) for j in self.out[i])
        self.evaluate()
        self.is_regular = self.min_out == self.max_out and self.min_in == self.max_in
        # links of deterministic families only differ from their construction if rewired
        if self.type in _DETERMINISTIC:
            self.is_rewired = True
        return True

    def to_networkx(self) -> nx.Graph | nx.DiGraph:
        """
        Export the links to a networkx graph (directed graphs become 'DiGraph').
        Well-mixed populations are exported as complete graphs.
        """
        if self.type is GeometryType.MEANFIELD:
            return nx.complete_graph(self.size)
        graph = nx.Graph() if self.is_undirected else nx.DiGraph()
        graph.add_nodes_from(range(self.size))
        graph.add_edges_from((i, j) for i in range(self.size) for j in self.out[i])
        return graph

    def __repr__(self) -> str:
        return f"Geometry({self.type.value}, size={self.size}, connectivity={self.connectivity:g})"
