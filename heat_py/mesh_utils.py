# heat_py/mesh_utils.py
from __future__ import annotations
import numpy as np


# ---------- Basic geometry utilities ----------

def tri_areas(V: np.ndarray, F: np.ndarray) -> np.ndarray:
    """
    Compute area of each triangular face.

    Formula: A_f = 0.5 * || (v1 - v0) x (v2 - v0) ||
    """
    v0, v1, v2 = V[F[:, 0]], V[F[:, 1]], V[F[:, 2]]
    return 0.5 * np.linalg.norm(np.cross(v1 - v0, v2 - v0), axis=1)


def normalize_unit_area(V: np.ndarray, F: np.ndarray) -> tuple[np.ndarray, float]:
    """
    Scale mesh so that the total surface area is 1.

    Distances computed on the scaled mesh are comparable across shapes.

    Returns
    -------
    V_scaled : (n,3) array
    scale : float
        The scale factor applied to vertices.
    """
    A_total = float(tri_areas(V, F).sum())
    if A_total <= 0:
        raise ValueError("Mesh area is non-positive. Check face orientation or degeneracy.")
    scale = (1.0 / A_total) ** 0.5  # because area scales with length^2
    return V * scale, scale


def center_vertices(V: np.ndarray, method: str = "barycenter") -> np.ndarray:
    """
    Translate vertices so that the mesh is centered at the origin.

    method : {'barycenter', 'median'}
    """
    if method == "median":
        c = np.median(V, axis=0)
    else:
        c = V.mean(axis=0)
    return V - c


# ---------- Connectivity utilities ----------

def weld_vertices(P: np.ndarray, decimals: int = 9) -> tuple[np.ndarray, np.ndarray]:
    """
    Merge positions that coincide after rounding to `decimals` digits.

    Returns
    -------
    V : (n_unique, 3) array
        Welded positions, in order of first appearance.
    inverse : (len(P),) int array
        P[i] was merged into V[inverse[i]].
    """
    P = np.asarray(P, dtype=float)
    keys = np.round(P, decimals=decimals)
    keys[keys == 0.0] = 0.0  # -0.0 and 0.0 must weld
    _, first, inverse = np.unique(keys, axis=0, return_index=True, return_inverse=True)
    inverse = inverse.reshape(-1)

    # np.unique sorts lexicographically; relabel by first appearance.
    order = np.argsort(first)
    rank = np.empty_like(order)
    rank[order] = np.arange(len(order))
    return P[first[order]], rank[inverse]


def remove_isolated_vertices(V: np.ndarray, F: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Remove isolated (unused) vertices that are not referenced by any face.

    Returns
    -------
    V_new : (n_new, 3)
        Filtered vertex array.
    F_new : (m, 3)
        Faces with updated vertex indices.
    idx_map : (n_new,)
        Mapping new_index -> old_index
    """
    used = np.zeros(len(V), dtype=bool)
    used[F.reshape(-1)] = True
    idx_map = np.flatnonzero(used)
    new_index = -np.ones(len(V), dtype=int)
    new_index[idx_map] = np.arange(len(idx_map))
    F_new = new_index[F]
    V_new = V[idx_map]
    return V_new, F_new, idx_map
