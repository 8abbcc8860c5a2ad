"""
Lattices Module

Builders for regular lattices: linear, square, cubic, honeycomb and
triangular. Neighbourhoods are expressed as lists of offsets; with
periodic boundaries the offsets wrap around, with fixed boundaries
out-of-range neighbours are dropped (and the lattice is no longer regular).

Functions:
    init_linear(geometry, rng):     Ring with 'left' and 'right' neighbours
    init_square(geometry, rng):     Square lattice (von Neumann, Moore or larger ranges)
    init_cube(geometry, rng):       Cubic lattice
    init_honeycomb(geometry, rng):  Hexagonal lattice (6 neighbours)
    init_triangular(geometry, rng): Triangular lattice (3 neighbours)
    square_offsets(connectivity):   Neighbourhood offsets in square lattices
    link_square(...):               Link a (sub-)square lattice, used for hierarchical demes
"""

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np
    from evoibs.topology.geometry import Geometry

# Special cubic lattice of 50x50x10 sites
CUBE_SPECIAL_SIZE = 25000

# Neighbourhood offsets (row, column) in clockwise order, starting from 'up'
VON_NEUMANN = [(-1, 0), (0, 1), (1, 0), (0, -1)]
MOORE       = [(-1, 0), (-1, 1), (0, 1), (1, 1), (1, 0), (1, -1), (0, -1), (-1, -1)]

# Honeycomb offsets depend on the parity of the row
HONEYCOMB_EVEN = [(-1, 0), (0, 1), (1, 0), (1, -1), (0, -1), (-1, -1)]
HONEYCOMB_ODD  = [(-1, 0), (-1, 1), (0, 1), (1, 1), (1, 0), (0, -1)]

def init_linear(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Ring lattice where each site links to 'left' neighbours on one side and 'right'
    neighbours on the other. Links are undirected only if 'left' equals 'right'.
    """
    k     = int(geometry.connectivity + 0.5)
    left  = (k + geometry.linear_asymmetry) // 2
    right = (k - geometry.linear_asymmetry) // 2
    size  = geometry.size

    geometry.is_undirected = left == right
    geometry.is_regular    = not geometry.fixed_boundary
    for i in range(size):
        for j in range(-left, right + 1):
            if j == 0:
                continue
            if geometry.fixed_boundary and not 0 <= i + j < size:
                continue
            geometry.add_link_at(i, (i + j) % size)

def square_offsets(connectivity: int) -> list[tuple[int, int]]:
    """
    Neighbourhood offsets in square lattices.

    Parameters:
        connectivity: 4 (von Neumann), 8 (Moore) or (2r+1)^2-1 (range r)
    """
    if connectivity == 4:
        return VON_NEUMANN
    if connectivity == 8:
        return MOORE
    radius = int(round((math.sqrt(connectivity + 1) - 1) / 2))
    return [(dy, dx) for dy in range(-radius, radius + 1)
                     for dx in range(-radius, radius + 1) if dy or dx]

def link_square(geometry: 'Geometry', side: int, fullside: int, offset: int,
                offsets: list[tuple[int, int]]):
    """
    Link a square lattice of 'side' x 'side' sites embedded in a
    square lattice with 'fullside' columns, starting at site 'offset'.

    Parameters:
        geometry: the geometry to link
        side:     side length of the (sub-)lattice
        fullside: side length of the embedding lattice
        offset:   index of the top left site of the (sub-)lattice
        offsets:  neighbourhood offsets
    """
    fixed = geometry.fixed_boundary
    for row in range(side):
        for col in range(side):
            me = offset + row * fullside + col
            for dy, dx in offsets:
                r, c = row + dy, col + dx
                if fixed and not (0 <= r < side and 0 <= c < side):
                    continue
                geometry.add_link_at(me, offset + (r % side) * fullside + c % side)

def init_square(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Square lattice with von Neumann, Moore or larger neighbourhoods.
    """
    side = int(math.floor(math.sqrt(geometry.size) + 0.5))
    geometry.is_regular = not geometry.fixed_boundary
    link_square(geometry, side, side, 0, square_offsets(int(round(geometry.connectivity))))

def _cube_dimensions(size: int) -> tuple[int, int, int]:
    """(depth, rows, columns) of a cubic lattice."""
    if size == CUBE_SPECIAL_SIZE:
        return 10, 50, 50
    side = int(math.floor(size ** (1.0 / 3.0) + 0.5))
    return side, side, side

def init_cube(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Cubic lattice with 6 nearest neighbours or (2r+1)^3-1 neighbours in range r.
    """
    depth, rows, cols = _cube_dimensions(geometry.size)
    k = int(round(geometry.connectivity))
    if k == 6:
        # north, east, south, west, up, down
        offsets = [(0, -1, 0), (0, 0, 1), (0, 1, 0), (0, 0, -1), (1, 0, 0), (-1, 0, 0)]
    else:
        radius  = int(round((round((k + 1) ** (1.0 / 3.0)) - 1) / 2))
        offsets = [(dz, dy, dx) for dz in range(-radius, radius + 1)
                                for dy in range(-radius, radius + 1)
                                for dx in range(-radius, radius + 1) if dz or dy or dx]

    fixed = geometry.fixed_boundary
    geometry.is_regular = not fixed
    layer = rows * cols
    for z in range(depth):
        for y in range(rows):
            for x in range(cols):
                me = z * layer + y * cols + x
                for dz, dy, dx in offsets:
                    nz, ny, nx = z + dz, y + dy, x + dx
                    if fixed and not (0 <= nz < depth and 0 <= ny < rows and 0 <= nx < cols):
                        continue
                    geometry.add_link_at(me, (nz % depth) * layer + (ny % rows) * cols + nx % cols)

def _link_by_row(geometry: 'Geometry', offsets_of):
    side  = int(math.floor(math.sqrt(geometry.size) + 0.5))
    fixed = geometry.fixed_boundary
    geometry.is_regular = not fixed
    for row in range(side):
        for col in range(side):
            me = row * side + col
            for dy, dx in offsets_of(row, col):
                r, c = row + dy, col + dx
                if fixed and not (0 <= r < side and 0 <= c < side):
                    continue
                geometry.add_link_at(me, (r % side) * side + c % side)

def init_honeycomb(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Hexagonal lattice, every site has six neighbours. Requires an even side length.
    """
    _link_by_row(geometry, lambda row, col: HONEYCOMB_ODD if row % 2 else HONEYCOMB_EVEN)

def init_triangular(geometry: 'Geometry', rng: 'np.random.Generator' = None):
    """
    Triangular lattice, every site has three neighbours: left, right and
    either the site below (if row+column is even) or above (otherwise).
    """
    def offsets(row, col):
        vertical = 1 if (row + col) % 2 == 0 else -1
        return [(0, 1), (0, -1), (vertical, 0)]
    _link_by_row(geometry, offsets)
