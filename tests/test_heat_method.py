import logging

import numpy as np
import pytest
from scipy import sparse

from heat_py import backend, shapes
from heat_py.errors import BackendNotReadyError, FactorizationError
from heat_py.geometry import Geometry
from heat_py.halfedge import Mesh
from heat_py.heat_method import READY, HeatMethod
from heat_py.options import HeatOptions


def unit_source(n, i):
    delta = np.zeros(n)
    delta[i] = 1.0
    return delta


# =============================================================================
# Construction
# =============================================================================

def test_constructor_factors_once(icosahedron):
    heat = HeatMethod(icosahedron)
    assert heat.state == READY
    assert np.array_equal(heat.vertex_index, np.arange(12))
    assert heat.t == pytest.approx(icosahedron.mean_edge_length() ** 2)


def test_time_coefficient(icosahedron):
    heat = HeatMethod(icosahedron, HeatOptions(t_coef=2.0))
    assert heat.t == pytest.approx(2.0 * icosahedron.mean_edge_length() ** 2)


def test_needs_backend(icosahedron):
    backend.reset()
    with pytest.raises(BackendNotReadyError):
        HeatMethod(icosahedron)


def test_degenerate_triangle_fails_factorization():
    V, F = shapes.grid(2, 2)
    V[4] = [0.5, 0.5, 0.0]  # center vertex on the diagonal 1-3: face (3, 1, 4) collapses
    geometry = Geometry(Mesh.from_soup(V, F), V)
    with pytest.raises(FactorizationError):
        HeatMethod(geometry)


# =============================================================================
# Source vector handling
# =============================================================================

def test_zero_source_gives_no_result(plane, caplog):
    heat = HeatMethod(plane)
    n = plane.mesh.n_vertices
    with caplog.at_level(logging.WARNING):
        assert heat.compute(np.zeros(n)) is None
    assert "no vertex" in caplog.text
    assert heat.compute(sparse.csc_matrix((n, 1))) is None


def test_source_shapes_agree(icosphere):
    heat = HeatMethod(icosphere)
    n = icosphere.mesh.n_vertices
    delta = unit_source(n, 7)
    phi = heat.compute(delta)
    assert phi.shape == (n,)
    assert np.allclose(heat.compute(delta.reshape(-1, 1)), phi)
    assert np.allclose(heat.compute(sparse.csc_matrix(delta.reshape(-1, 1))), phi)
    assert np.allclose(heat.distance_from(7), phi)


def test_wrong_source_length(icosahedron):
    heat = HeatMethod(icosahedron)
    with pytest.raises(ValueError):
        heat.compute(np.ones(5))


# =============================================================================
# Distance fields
# =============================================================================

def test_distances_are_non_negative_with_zero_minimum(bumpy_plane):
    heat = HeatMethod(bumpy_plane)
    phi = heat.distance_from(17)
    assert phi.min() == 0.0
    assert np.all(np.isfinite(phi))
    assert np.argmin(phi) == 17


def test_ribbon_distance_increases_along_strip():
    n = 10
    V, F = shapes.ribbon(n)
    heat = HeatMethod(Geometry(Mesh.from_soup(V, F), V))
    phi = heat.distance_from(0)
    bottom = phi[: n + 1]
    top = phi[n + 1:]
    assert np.all(np.diff(bottom) >= -1e-9)
    assert np.all(np.diff(top) >= -1e-9)
    assert bottom[0] == pytest.approx(0.0, abs=1e-9)
    assert 0.8 * n < bottom[-1] < 1.2 * n


def test_plane_matches_euclidean_distance(plane):
    heat = HeatMethod(plane)
    src = 10 * 21 + 10
    phi = heat.distance_from(src)
    assert phi[src] == pytest.approx(0.0, abs=1e-2 * phi.max())

    r = np.linalg.norm(plane.positions - plane.positions[src], axis=1)
    near = (r >= 0.1) & (r <= 0.35)
    rel = np.abs(phi[near] - r[near]) / r[near]
    assert rel.mean() < 0.08
    assert rel.max() < 0.15


def test_sphere_matches_great_circle_distance(icosphere):
    heat = HeatMethod(icosphere)
    V = icosphere.positions
    phi = heat.distance_from(0)
    exact = np.arccos(np.clip(V @ V[0], -1.0, 1.0))
    antipode = int(np.argmax(exact))
    assert phi[antipode] == pytest.approx(np.pi, rel=0.1)
    assert np.abs(phi - exact).mean() < 0.1


def test_multiple_sources(plane):
    heat = HeatMethod(plane)
    phi = heat.distance_from([0, 20])
    assert phi[0] < 0.05 * phi.max()
    assert phi[20] < 0.05 * phi.max()
    # Bottom edge midpoint is equally far from both corners.
    assert phi[10] == pytest.approx(0.5, rel=0.15)


def test_repeated_compute_reuses_factorization(icosphere):
    heat = HeatMethod(icosphere)
    heat_factor, poisson_factor = heat._heat, heat._poisson
    first = heat.distance_from(3)
    second = heat.distance_from(40)
    again = heat.distance_from(3)
    assert heat._heat is heat_factor and heat._poisson is poisson_factor
    assert np.array_equal(first, again)
    assert np.allclose(second, HeatMethod(icosphere).distance_from(40))


# =============================================================================
# Intermediate stages
# =============================================================================

def test_vector_field_is_unit_length(bumpy_plane):
    heat = HeatMethod(bumpy_plane)
    u = heat.diffuse(unit_source(bumpy_plane.mesh.n_vertices, 20))
    X = heat.compute_vector_field(u)
    assert X.shape == (bumpy_plane.mesh.n_faces, 3)
    assert np.allclose(np.linalg.norm(X, axis=1), 1.0)
    # Tangent to each face.
    assert np.allclose(np.einsum("ij,ij->i", X, bumpy_plane.face_normals()), 0.0, atol=1e-10)


def test_vector_field_of_linear_function(plane):
    heat = HeatMethod(plane)
    X = heat.compute_vector_field(2.0 * plane.positions[:, 0])
    assert np.allclose(X, [-1.0, 0.0, 0.0])


def test_heat_decays_away_from_source(plane):
    heat = HeatMethod(plane)
    src = 10 * 21 + 10
    u = heat.diffuse(unit_source(plane.mesh.n_vertices, src))
    assert np.argmax(u) == src
    assert np.all(u > 0)


def test_divergence_sums_to_zero(bumpy_plane):
    heat = HeatMethod(bumpy_plane)
    X = np.random.default_rng(0).standard_normal((bumpy_plane.mesh.n_faces, 3))
    assert heat.compute_divergence(X).sum() == pytest.approx(0.0, abs=1e-10)
