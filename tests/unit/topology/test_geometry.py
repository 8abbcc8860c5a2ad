"""
Unit tests for evoibs.topology.geometry module.

This module contains tests for the validation, construction, rewiring
and serialisation of geometries.
"""

import logging
import pytest
import networkx as nx
import numpy as np
from unittest.mock import Mock, patch

from evoibs.run.config import Config
from evoibs.topology import Geometry, GeometryType, rewiring


def built(geometry_type, size, connectivity=0.0, rng=None, **kwargs):
    """Check, build and evaluate a geometry."""
    geometry = Geometry(geometry_type, size, connectivity, **kwargs)
    geometry.check()
    geometry.init(rng if rng is not None else np.random.default_rng(1))
    geometry.rewire(rng if rng is not None else np.random.default_rng(1))
    geometry.evaluate()
    return geometry


# ============================================================================
# Test Validation
# ============================================================================

class TestGeometryCheck:
    """Test Geometry.check method."""

    def test_square_size_rounds_to_square(self):
        """Test that square lattices round the size to the nearest square number."""
        geometry = Geometry(GeometryType.SQUARE, 99, 4)
        assert geometry.check()
        assert geometry.size == 100
        assert geometry.connectivity == 4

    def test_square_exact_size_needs_no_reset(self):
        """Test that a valid square lattice requires no reset."""
        geometry = Geometry(GeometryType.SQUARE, 100, 4)
        assert not geometry.check()

    def test_square_invalid_connectivity(self):
        """Test that invalid square neighbourhoods are corrected."""
        geometry = Geometry(GeometryType.SQUARE, 100, 5)
        assert geometry.check()
        assert geometry.connectivity in (4, 8)

    def test_linear_requires_even_connectivity(self):
        """Test that odd connectivities of linear lattices are rounded up."""
        geometry = Geometry(GeometryType.LINEAR, 50, 3)
        assert geometry.check()
        assert geometry.connectivity == 4

    def test_complete_connectivity(self):
        """Test that complete graphs have connectivity size-1."""
        geometry = Geometry(GeometryType.COMPLETE, 10)
        geometry.check()
        assert geometry.connectivity == 9

    def test_named_graph_size(self):
        """Test that named graphs force their size."""
        geometry = Geometry(GeometryType.DODECAHEDRON, 7)
        assert geometry.check()
        assert geometry.size == 20
        assert geometry.connectivity == 3

    def test_random_regular_even_link_count(self):
        """Test that random regular graphs with odd size * degree grow by one."""
        geometry = Geometry(GeometryType.RANDOM_REGULAR_GRAPH, 11, 3)
        assert geometry.check()
        assert geometry.size == 12

    def test_hierarchy_levels(self):
        """Test that hierarchical geometries append the deme size."""
        geometry = Geometry(GeometryType.HIERARCHY, 100, hierarchy=[4], hierarchy_weight=0.1)
        geometry.check()
        assert geometry.hierarchy == [4, 25]
        assert geometry.size == 100
        assert geometry.connectivity == 24

    def test_hierarchy_without_levels_collapses(self):
        """Test that hierarchies without levels collapse to the subgeometry."""
        geometry = Geometry(GeometryType.HIERARCHY, 100, hierarchy=[1])
        assert geometry.check()
        assert geometry.type is GeometryType.MEANFIELD

    def test_random_graph_connectivity_limited(self):
        """Test that the connectivity of random graphs is limited to size-1."""
        geometry = Geometry(GeometryType.RANDOM_GRAPH, 10, 20)
        assert geometry.check()
        assert geometry.connectivity == 9


# ============================================================================
# Test Construction
# ============================================================================

class TestGeometryInit:
    """Test Geometry.init method."""

    def test_von_neumann_lattice(self):
        """Test that every site of a von Neumann lattice has four neighbours."""
        geometry = built(GeometryType.SQUARE, 100, 4)

        assert all(len(links) == 4 for links in geometry.out)
        assert all(len(links) == 4 for links in geometry.in_)
        assert geometry.is_undirected
        assert geometry.is_regular
        assert geometry.check_connections() == []

    def test_moore_lattice(self):
        """Test that every site of a Moore lattice has eight neighbours."""
        geometry = built(GeometryType.SQUARE, 100, 8)
        assert geometry.min_out == geometry.max_out == 8

    def test_lattice_is_connected(self):
        """Test that lattices are connected (cross-checked with networkx)."""
        geometry = built(GeometryType.SQUARE, 100, 4)
        assert geometry.is_connected()
        assert nx.is_connected(geometry.to_networkx())

    def test_star(self):
        """Test that the hub of a star links to all leaves."""
        geometry = built(GeometryType.STAR, 10)
        assert sorted(geometry.out[0]) == list(range(1, 10))
        assert all(geometry.out[i] == [0] for i in range(1, 10))

    def test_complete(self):
        """Test that complete graphs link every pair of sites."""
        geometry = built(GeometryType.COMPLETE, 6)
        assert all(len(links) == 5 for links in geometry.out)

    def test_named_graph_regular(self):
        """Test that named graphs are regular and undirected."""
        geometry = built(GeometryType.HEAWOOD, 14)
        assert geometry.min_out == geometry.max_out == 3
        assert geometry.check_connections() == []

    def test_random_regular_graph(self):
        """Test that random regular graphs are regular and connected."""
        geometry = built(GeometryType.RANDOM_REGULAR_GRAPH, 50, 4)
        if geometry.type is GeometryType.MEANFIELD:
            pytest.skip("construction reverted to well-mixed")
        assert geometry.min_out == geometry.max_out == 4
        assert nx.is_connected(geometry.to_networkx())

    def test_random_graph_average_degree(self):
        """Test that random graphs are connected with the requested number of links."""
        geometry = built(GeometryType.RANDOM_GRAPH, 60, 4)
        assert geometry.is_connected()
        assert geometry.avg_out == pytest.approx(4.0, abs=0.1)

    def test_meanfield_has_no_links(self):
        """Test that well-mixed populations have no explicit links."""
        geometry = built(GeometryType.MEANFIELD, 10)
        assert geometry.max_out == 0
        assert geometry.avg_tot == 0.0

    def test_degree_invariant_total(self):
        """Test that the total out-degree equals the total in-degree."""
        geometry = built(GeometryType.SCALEFREE_BA, 80, 4)
        total_out = sum(len(links) for links in geometry.out)
        total_in  = sum(len(links) for links in geometry.in_)
        assert total_out == total_in

    def test_same_seed_same_graph(self):
        """Test that randomized constructions are reproducible."""
        first  = built(GeometryType.RANDOM_GRAPH, 40, 3, rng=np.random.default_rng(7))
        second = built(GeometryType.RANDOM_GRAPH, 40, 3, rng=np.random.default_rng(7))
        assert first.out == second.out

    def test_hierarchy_demes(self):
        """Test that hierarchical demes are complete and not linked to each other."""
        geometry = built(GeometryType.HIERARCHY, 100, hierarchy=[4], hierarchy_weight=0.1)
        assert all(len(links) == 24 for links in geometry.out)
        assert all(j // 25 == i // 25 for i in range(100) for j in geometry.out[i])
        assert geometry.check_connections() == []


# ============================================================================
# Test Graph Families
# ============================================================================

FAMILIES = [
    (GeometryType.LINEAR,                20,  4,   {}),
    (GeometryType.LINEAR,                20,  4,   {"fixed_boundary": True}),
    (GeometryType.LINEAR,                20,  4,   {"linear_asymmetry": 2}),
    (GeometryType.SQUARE,                25,  4,   {"fixed_boundary": True}),
    (GeometryType.SQUARE,                49,  24,  {}),
    (GeometryType.CUBE,                  64,  6,   {}),
    (GeometryType.CUBE,                  27,  6,   {"fixed_boundary": True}),
    (GeometryType.CUBE,                  125, 26,  {}),
    (GeometryType.HONEYCOMB,             36,  6,   {}),
    (GeometryType.HONEYCOMB,             36,  6,   {"fixed_boundary": True}),
    (GeometryType.TRIANGULAR,            36,  3,   {}),
    (GeometryType.TRIANGULAR,            36,  3,   {"fixed_boundary": True}),
    (GeometryType.FRUCHT,                12,  3,   {}),
    (GeometryType.TIETZE,                12,  3,   {}),
    (GeometryType.FRANKLIN,              12,  3,   {}),
    (GeometryType.ICOSAHEDRON,           12,  5,   {}),
    (GeometryType.DODECAHEDRON,          20,  3,   {}),
    (GeometryType.DESARGUES,             20,  3,   {}),
    (GeometryType.STAR,                  15,  0,   {}),
    (GeometryType.WHEEL,                 15,  0,   {}),
    (GeometryType.SUPER_STAR,            21,  0,   {"petals_count": 2, "petals_amplification": 4}),
    (GeometryType.STRONG_SUPPRESSOR,     28,  0,   {}),
    (GeometryType.STRONG_AMPLIFIER,      686, 0,   {}),
    (GeometryType.RANDOM_GRAPH_DIRECTED, 40,  3,   {}),
    (GeometryType.SCALEFREE,             100, 4,   {"sf_exponent": 0.0}),
    (GeometryType.SCALEFREE,             100, 4,   {"sf_exponent": -1.0}),
    (GeometryType.SCALEFREE_BA,          60,  4,   {}),
    (GeometryType.SCALEFREE_KLEMM,       60,  4,   {}),
    (GeometryType.SCALEFREE_KLEMM,       60,  4,   {"p_undirected": 0.3}),
]


class TestGeometryFamilies:
    """Test that every graph family builds a consistent graph."""

    @pytest.mark.parametrize("geometry_type, size, connectivity, options", FAMILIES,
                             ids=lambda value: value.value if isinstance(value, GeometryType) else None)
    def test_family(self, geometry_type, size, connectivity, options):
        """Test links, degrees and connectedness of a graph family."""
        geometry = built(geometry_type, size, connectivity, **options)
        assert geometry.type is geometry_type
        assert geometry.check_connections() == []

        kout = [len(links) for links in geometry.out]
        kin  = [len(links) for links in geometry.in_]
        assert sum(kout) == sum(kin)
        assert min(kout) > 0 or not geometry.is_undirected
        if geometry.is_regular:
            assert len(set(kout)) == 1
            assert len(set(kin)) == 1

        graph = geometry.to_networkx()
        if geometry.is_undirected:
            assert nx.is_connected(graph)
        else:
            assert nx.is_weakly_connected(graph)

    def test_scalefree_uniform_degrees(self):
        """Test that a vanishing exponent draws degrees uniformly around the connectivity."""
        geometry = built(GeometryType.SCALEFREE, 100, 4, sf_exponent=0.0)
        assert geometry.type is GeometryType.SCALEFREE
        assert geometry.is_connected()
        assert geometry.avg_out == pytest.approx(4.0, abs=0.5)
        assert geometry.max_out <= 8

    def test_periodic_lattices_are_regular(self):
        """Test that lattices with periodic boundaries are regular with the expected degree."""
        for geometry_type, size, connectivity in ((GeometryType.CUBE, 64, 6),
                                                  (GeometryType.HONEYCOMB, 36, 6),
                                                  (GeometryType.TRIANGULAR, 36, 3)):
            geometry = built(geometry_type, size, connectivity)
            assert geometry.is_regular
            assert geometry.min_out == geometry.max_out == connectivity

    def test_fixed_boundary_drops_links(self):
        """Test that fixed boundaries remove the links across the boundary."""
        geometry = built(GeometryType.SQUARE, 25, 4, fixed_boundary=True)
        assert not geometry.is_regular
        assert geometry.min_out == 2
        assert geometry.max_out == 4
        assert sum(len(links) for links in geometry.out) == 2 * 2 * 5 * 4


# ============================================================================
# Test Rewiring
# ============================================================================

class TestGeometryRewire:
    """Test Geometry.rewire method."""

    def test_rewiring_preserves_degrees(self):
        """Test that undirected rewiring preserves all degrees."""
        geometry = Geometry(GeometryType.RANDOM_REGULAR_GRAPH, 50, 4, p_undirected=0.5)
        geometry.check()
        rng = np.random.default_rng(3)
        geometry.init(rng)
        if geometry.type is GeometryType.MEANFIELD:
            pytest.skip("construction reverted to well-mixed")
        degrees = [len(links) for links in geometry.out]
        geometry.rewire(rng)

        assert [len(links) for links in geometry.out] == degrees
        assert geometry.is_connected()
        assert geometry.check_connections() == []

    def test_rewiring_marks_geometry_unique(self):
        """Test that rewired lattices need to be serialised."""
        geometry = built(GeometryType.SQUARE, 100, 4, p_undirected=0.2)
        assert geometry.is_rewired
        assert geometry.is_unique

    def test_adding_links(self):
        """Test that adding undirected links increases the number of links."""
        geometry = built(GeometryType.SQUARE, 100, 4, p_undirected=0.5, add_undirected=True)
        assert geometry.avg_out > 4.0
        assert not geometry.is_regular

    def test_directed_rewiring(self):
        """Test that directed rewiring makes the graph directed."""
        geometry = built(GeometryType.SQUARE, 100, 4, p_directed=0.3)
        assert not geometry.is_undirected
        assert sum(len(links) for links in geometry.out) == 400

    @pytest.mark.parametrize("option", ["p_undirected", "p_directed"])
    def test_failed_rewiring_restores_links(self, option, caplog):
        """Test that rewiring which runs out of attempts leaves the graph unchanged."""
        geometry = Geometry(GeometryType.SQUARE, 100, 4, **{option: 0.9})
        geometry.check()
        rng = np.random.default_rng(5)
        geometry.init(rng)
        out = [list(links) for links in geometry.out]
        in_ = [list(links) for links in geometry.in_]

        # too few attempts to complete, but enough to swap some links
        with patch.object(rewiring, 'MAX_ATTEMPTS_PER_LINK', 0.25), caplog.at_level(logging.WARNING):
            geometry.rewire(rng)

        assert "rewiring stopped" in caplog.text
        assert geometry.out == out
        assert geometry.in_ == in_
        assert geometry.is_undirected
        assert not geometry.is_rewired
        assert geometry.encode() is None
        assert geometry.check_connections() == []


# ============================================================================
# Test Failures
# ============================================================================

class TestGeometryFallback:
    """Test degradation to well-mixed populations."""

    def test_fall_back_to_meanfield_warns(self):
        """Test that giving up on a construction warns and reverts to well-mixed."""
        geometry = Geometry(GeometryType.SCALEFREE, 20, 3)
        geometry.check()
        with pytest.warns(RuntimeWarning, match="reverts to well-mixed"):
            geometry.fall_back_to_meanfield("construction failed")

        assert geometry.type is GeometryType.MEANFIELD
        assert all(links == [] for links in geometry.out)


# ============================================================================
# Test Serialisation
# ============================================================================

class TestGeometrySerialisation:
    """Test Geometry.encode and Geometry.decode methods."""

    def test_deterministic_geometry_not_encoded(self):
        """Test that lattices are not encoded."""
        geometry = built(GeometryType.SQUARE, 100, 4)
        assert geometry.encode() is None

    def test_encode_decode_random_graph(self):
        """Test that decoding an encoded random graph restores its links."""
        geometry  = built(GeometryType.RANDOM_GRAPH, 30, 4)
        adjacency = geometry.encode()

        restored = Geometry(GeometryType.RANDOM_GRAPH, 30, 4)
        restored.check()
        assert restored.decode(adjacency)
        assert restored.out == geometry.out
        assert [sorted(links) for links in restored.in_] == [sorted(links) for links in geometry.in_]
        assert restored.is_undirected

    def test_decode_rejects_wrong_size(self):
        """Test that adjacencies of the wrong size are rejected."""
        geometry = built(GeometryType.RANDOM_GRAPH, 30, 4)
        before   = [list(links) for links in geometry.out]
        assert not geometry.decode([[1], [0]])
        assert geometry.out == before

    def test_decode_rejects_bad_indices(self):
        """Test that adjacencies with out of range indices are rejected."""
        geometry = Geometry(GeometryType.RANDOM_GRAPH, 3, 1)
        assert not geometry.decode([[1], [5], [0]])


# ============================================================================
# Test Configuration
# ============================================================================

class TestGeometryFromConfig:
    """Test Geometry.from_config and Geometry.derive_reproduction methods."""

    @pytest.fixture
    def mock_config(self):
        config = Mock(spec=Config)
        config.population_size      = 100
        config.geometry             = GeometryType.SQUARE
        config.connectivity         = 4.0
        config.fixed_boundary       = False
        config.linear_asymmetry     = 0
        config.petals_count         = 1
        config.petals_amplification = 3
        config.sf_exponent          = -2.0
        config.p_undirected         = 0.0
        config.p_directed           = 0.0
        config.add_undirected       = False
        config.add_directed         = False
        config.hierarchy            = None
        config.hierarchy_weight     = 0.0
        config.subgeometry          = GeometryType.MEANFIELD
        for key in ('geometry', 'connectivity', 'fixed_boundary', 'linear_asymmetry',
                    'petals_count', 'petals_amplification', 'sf_exponent',
                    'p_undirected', 'p_directed', 'add_undirected', 'add_directed',
                    'hierarchy', 'hierarchy_weight', 'subgeometry'):
            setattr(config, 'reproduction_' + key, None)
        return config

    def test_from_config(self, mock_config):
        """Test that the interaction geometry reads the geometry options."""
        geometry = Geometry.from_config(mock_config)
        assert geometry.type is GeometryType.SQUARE
        assert geometry.size == 100
        assert geometry.connectivity == 4.0

    def test_reproduction_inherits_options(self, mock_config):
        """Test that an unspecified reproduction geometry shares the interaction geometry."""
        interaction  = Geometry.from_config(mock_config)
        reproduction = interaction.derive_reproduction(Geometry.from_config(mock_config, reproduction=True))
        assert reproduction is interaction

    def test_distinct_reproduction_geometry(self, mock_config):
        """Test that a differing reproduction geometry is kept separately."""
        mock_config.reproduction_geometry = GeometryType.MEANFIELD
        interaction  = Geometry.from_config(mock_config)
        reproduction = interaction.derive_reproduction(Geometry.from_config(mock_config, reproduction=True))
        assert reproduction is not interaction
        assert reproduction.type is GeometryType.MEANFIELD
