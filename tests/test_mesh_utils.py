import numpy as np
import pytest

from heat_py import mesh_utils, shapes


def test_tri_areas():
    V, F = shapes.grid(2, 3, 0.5)
    A = mesh_utils.tri_areas(V, F)
    assert A.shape == (12,)
    assert np.allclose(A, 0.125)


def test_normalize_unit_area():
    V, F = shapes.icosphere(2)
    V2, scale = mesh_utils.normalize_unit_area(3.0 * V, F)
    assert mesh_utils.tri_areas(V2, F).sum() == pytest.approx(1.0)
    assert scale > 0


def test_normalize_rejects_flat_mesh():
    V = np.zeros((3, 3))
    with pytest.raises(ValueError):
        mesh_utils.normalize_unit_area(V, np.array([[0, 1, 2]]))


def test_center_vertices():
    V, _ = shapes.grid(4, 4)
    assert np.allclose(mesh_utils.center_vertices(V + 7.0).mean(axis=0), 0.0)
    assert np.allclose(np.median(mesh_utils.center_vertices(V, "median"), axis=0), 0.0)


def test_weld_vertices():
    P = np.array([
        [1.0, 0.0, 0.0],
        [0.0, -0.0, 0.0],
        [1.0, 1e-12, 0.0],
        [0.0, 0.0, 0.0],
        [0.0, 1.0, 0.0],
    ])
    V, inverse = mesh_utils.weld_vertices(P)
    assert np.allclose(V, [[1, 0, 0], [0, 0, 0], [0, 1, 0]])
    assert inverse.tolist() == [0, 1, 0, 1, 2]


def test_remove_isolated_vertices():
    V = np.arange(15, dtype=float).reshape(5, 3)
    F = np.array([[0, 2, 4]])
    V_new, F_new, idx_map = mesh_utils.remove_isolated_vertices(V, F)
    assert idx_map.tolist() == [0, 2, 4]
    assert F_new.tolist() == [[0, 1, 2]]
    assert np.array_equal(V_new, V[[0, 2, 4]])
