"""
Group Module

This module implements the sampling of interaction and reference groups:
the neighbourhood of a focal individual that is consulted in one update.

Classes:
    SamplingType: Enumeration of sampling modes (NONE, ALL, COUNT)
    Group:        Reusable sampler returning a transient view of the sampled neighbours
"""

import math
import numpy as np
from enum   import Enum
from typing import TYPE_CHECKING

from evoibs.topology.geometry_type import GeometryType
if TYPE_CHECKING:
    from evoibs.topology.geometry import Geometry

class SamplingType(Enum):
    """
    How groups are sampled from the neighbourhood of the focal individual.
    """
    NONE  = "none"
    ALL   = "all"
    COUNT = "count"

class Group:
    """
    Sampler of groups from the neighbourhood of a focal individual.

    The sampled indices are written to a scratch buffer owned by the group.
    The view in 'group' is only valid until the next call to 'pick_at()' or
    'set_group_at()' and must never be modified or retained by the caller.
    An empty neighbourhood yields an empty group ('size' is 0).

    Public Attributes:
        sampling:  Sampling mode (SamplingType)
        n_sampled: Requested number of group members for COUNT sampling
        group:     Indices of the group members (view into the scratch buffer)
        size:      Number of group members
        focal:     Index of the focal individual

    Public Methods:
        alloc(capacity):                    Make sure the scratch buffer holds 'capacity' indices
        pick_at(focal, geometry, out):      Sample a group
        set_group_at(focal, neighbours):    Use an explicit group
    """

    def __init__(self, rng: np.random.Generator,
                 sampling : SamplingType = SamplingType.ALL,
                 n_sampled: int          = 1):
        """
        Parameters:
            rng:       random number generator (shared with the population)
            sampling:  sampling mode
            n_sampled: number of group members for COUNT sampling
        """
        self._rng     : np.random.Generator = rng
        self.sampling : SamplingType        = sampling
        self.n_sampled: int                 = n_sampled
        self.focal    : int                 = -1
        self.size     : int                 = 0
        self._mem     : np.ndarray          = np.empty(max(1, n_sampled), dtype=int)
        self.group    : np.ndarray          = self._mem[:0]

    def alloc(self, capacity: int):
        """
        Make sure the scratch buffer holds at least 'capacity' indices.
        """
        if len(self._mem) < capacity:
            self._mem  = np.empty(capacity, dtype=int)
            self.group = self._mem[:0]

    def _set(self, size: int) -> 'Group':
        self.size  = size
        self.group = self._mem[:size]
        return self

    def _rand(self, n: int) -> int:
        return int(self._rng.integers(n))

    def set_group_at(self, focal: int, neighbours) -> 'Group':
        """
        Use the explicit list of 'neighbours' as the group of 'focal'.
        None or an empty list results in an empty group.
        """
        self.focal = focal
        if neighbours is None or len(neighbours) == 0:
            return self._set(0)
        self.alloc(len(neighbours))
        self._mem[:len(neighbours)] = neighbours
        return self._set(len(neighbours))

    def pick_at(self, focal: int, geometry: 'Geometry', out: bool = True) -> 'Group':
        """
        Sample a group for 'focal'.

        Parameters:
            focal:    index of the focal individual
            geometry: the structure to sample from
            out:      sample outgoing (True) or incoming (False) neighbours

        Returns:
            This group, holding a view of the sampled indices
        """
        self.focal = focal

        if self.sampling is SamplingType.NONE:
            return self._set(0)

        if geometry.type is GeometryType.MEANFIELD:
            if self.sampling is SamplingType.ALL:
                self.alloc(geometry.size - 1)
                self._mem[:geometry.size - 1] = [i for i in range(geometry.size) if i != focal]
                return self._set(geometry.size - 1)
            return self._pick_random(geometry.size)

        links = geometry.out[focal] if out else geometry.in_[focal]

        if self.sampling is SamplingType.ALL:
            return self.set_group_at(focal, links)

        if self.sampling is not SamplingType.COUNT:
            raise RuntimeError("bad group sampling type")

        if geometry.type is GeometryType.HIERARCHY:
            return self._pick_hierarchy(geometry, links)

        n_links = len(links)
        if n_links <= self.n_sampled:
            return self.set_group_at(focal, links)
        if self.n_sampled == 1:
            self._mem[0] = links[self._rand(n_links)]
            return self._set(1)
        self.alloc(self.n_sampled)
        picks = self._rng.choice(n_links, size=self.n_sampled, replace=False)
        self._mem[:self.n_sampled] = [links[p] for p in picks]
        return self._set(self.n_sampled)

    def _pick_random(self, population_size: int) -> 'Group':
        """
        Draw distinct random members of a well-mixed population, excluding the focal.
        """
        size = min(self.n_sampled, population_size - 1)
        if size <= 0:
            return self._set(0)
        self.alloc(size)
        if size == 1:
            pick = self._rand(population_size - 1)
            self._mem[0] = pick + 1 if pick >= self.focal else pick
            return self._set(1)
        picks = self._rng.choice(population_size - 1, size=size, replace=False)
        picks[picks >= self.focal] += 1
        self._mem[:size] = picks
        return self._set(size)

    def _pick_hierarchy(self, geometry: 'Geometry', links: list[int]) -> 'Group':
        """
        Hierarchical sampling of a single reference: with probability w the
        reference is drawn from the next higher level, with probability w^2
        from the level above and so on. Members of the focal's own sub-unit
        are excluded at every level above the deme.
        """
        if self.n_sampled != 1:
            raise RuntimeError("bad group size for hierarchical sampling (must be 1)")

        hierarchy  = geometry.hierarchy
        max_level  = len(hierarchy) - 1
        unit_size  = hierarchy[max_level]
        level      = 0
        level_size = 1
        excl_size  = 1
        prob       = geometry.hierarchy_weight
        if prob > 0.0:
            if int(round(geometry.connectivity)) == unit_size - 1:
                # complete demes: the deme level coincides with the neighbourhood
                max_level -= 1
                level_size = unit_size
            rand = self._rng.random()
            while rand < prob and level <= max_level:
                factor = hierarchy[max_level - level]
                if factor <= 1:
                    break
                excl_size   = level_size
                level_size *= factor
                level      += 1
                prob       *= geometry.hierarchy_weight

        if level == 0:
            if not links:
                return self._set(0)
            self._mem[0] = links[self._rand(len(links))]
            return self._set(1)

        focal = self.focal
        if geometry.subgeometry is GeometryType.SQUARE:
            side       = math.isqrt(geometry.size)
            level_side = math.isqrt(level_size)
            level_x    = ((focal % side) // level_side) * level_side
            level_y    = ((focal // side) // level_side) * level_side
            excl_side  = math.isqrt(excl_size)
            excl_x     = ((focal % side) // excl_side) * excl_side
            excl_y     = ((focal // side) // excl_side) * excl_side
            # start of excluded block relative to the level block
            excl_start = (excl_y - level_y) * level_side + excl_x - level_x
            model = self._rand(level_size - excl_size)
            for _ in range(excl_side):
                if model < excl_start:
                    break
                model      += excl_side
                excl_start += level_side
            self._mem[0] = level_y * side + level_x + (model // level_side) * side + model % level_side
            return self._set(1)

        level_size  = max(level_size, unit_size)
        level_start = (focal // level_size) * level_size
        excl_start  = (focal // excl_size) * excl_size
        model = level_start + self._rand(level_size - excl_size)
        if model >= excl_start:
            model += excl_size
        self._mem[0] = model
        return self._set(1)

    def __len__(self) -> int:
        return self.size
