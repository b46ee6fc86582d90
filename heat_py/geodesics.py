# heat_py/geodesics.py
from __future__ import annotations
from scipy.sparse.csgraph import dijkstra
import numpy as np

from heat_py import backend
from heat_py.halfedge import Mesh
from heat_py.heat_method import HeatMethod


def edge_graph_distances(mesh: Mesh, positions: np.ndarray, sources) -> np.ndarray:
    """
    Shortest paths restricted to mesh edges (Dijkstra).

    An upper bound of the true geodesic distance, used as a baseline for the
    heat method. Returns (n_sources, V), or (V,) for a single source.
    """
    E = mesh.edges_array()
    w = np.linalg.norm(positions[E[:, 1]] - positions[E[:, 0]], axis=1)
    n = mesh.n_vertices
    adj = backend.sparse_from_triplets(
        np.concatenate([E[:, 0], E[:, 1]]),
        np.concatenate([E[:, 1], E[:, 0]]),
        np.concatenate([w, w]),
        (n, n),
    )
    return dijkstra(adj, indices=sources, directed=False)


def farthest_point_sampling(heat: HeatMethod, n_samples: int, start_idx: int = 0) -> np.ndarray:
    """Geodesic farthest point sampling; one factorization serves every sample."""
    n_vert = heat.n
    if n_samples >= n_vert:
        return np.arange(n_vert)

    fps_indices = [start_idx]
    dists = heat.distance_from(start_idx)

    for _ in range(n_samples - 1):
        new_idx = int(np.argmax(dists))
        fps_indices.append(new_idx)
        dists = np.minimum(dists, heat.distance_from(new_idx))

    return np.array(fps_indices)
