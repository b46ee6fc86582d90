# heat_py/shapes.py
"""Procedural triangle meshes: (V, F) pairs with outward, counter-clockwise faces."""
from __future__ import annotations
import numpy as np


def tetrahedron() -> tuple[np.ndarray, np.ndarray]:
    V = np.array([
        [0, 0, 0],
        [1, 0, 0],
        [0, 1, 0],
        [0, 0, 1],
    ], dtype=float)
    F = np.array([
        [0, 2, 1],
        [0, 1, 3],
        [0, 3, 2],
        [1, 2, 3],
    ])
    return V, F


def icosahedron() -> tuple[np.ndarray, np.ndarray]:
    """Regular icosahedron inscribed in the unit sphere."""
    t = (1.0 + 5.0 ** 0.5) / 2.0
    V = np.array([
        [-1, t, 0], [1, t, 0], [-1, -t, 0], [1, -t, 0],
        [0, -1, t], [0, 1, t], [0, -1, -t], [0, 1, -t],
        [t, 0, -1], [t, 0, 1], [-t, 0, -1], [-t, 0, 1],
    ], dtype=float)
    V /= np.linalg.norm(V, axis=1, keepdims=True)
    F = np.array([
        [0, 11, 5], [0, 5, 1], [0, 1, 7], [0, 7, 10], [0, 10, 11],
        [1, 5, 9], [5, 11, 4], [11, 10, 2], [10, 7, 6], [7, 1, 8],
        [3, 9, 4], [3, 4, 2], [3, 2, 6], [3, 6, 8], [3, 8, 9],
        [4, 9, 5], [2, 4, 11], [6, 2, 10], [8, 6, 7], [9, 8, 1],
    ])
    return V, F


def icosphere(subdivisions: int = 2) -> tuple[np.ndarray, np.ndarray]:
    """Unit sphere from an icosahedron, each subdivision splits a triangle in four."""
    V, F = icosahedron()
    V = list(V)
    for _ in range(subdivisions):
        midpoint = {}

        def mid(i, j):
            key = (i, j) if i < j else (j, i)
            if key not in midpoint:
                p = V[i] + V[j]
                V.append(p / np.linalg.norm(p))
                midpoint[key] = len(V) - 1
            return midpoint[key]

        new_faces = []
        for a, b, c in F:
            ab, bc, ca = mid(a, b), mid(b, c), mid(c, a)
            new_faces += [[a, ab, ca], [b, bc, ab], [c, ca, bc], [ab, bc, ca]]
        F = np.array(new_faces)
    return np.array(V), F


def grid(nx: int, ny: int, size: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
    """
    Planar (nx x ny)-cell grid in z = 0 with spacing `size`, two triangles
    per cell. Vertex (i, j) has index j * (nx + 1) + i.
    """
    xs, ys = np.meshgrid(np.arange(nx + 1) * size, np.arange(ny + 1) * size)
    V = np.stack([xs.ravel(), ys.ravel(), np.zeros(xs.size)], axis=1)

    i, j = np.meshgrid(np.arange(nx), np.arange(ny))
    v00 = (j * (nx + 1) + i).ravel()
    v10 = v00 + 1
    v01 = v00 + nx + 1
    v11 = v01 + 1
    F = np.vstack([
        np.stack([v00, v10, v01], axis=1),
        np.stack([v01, v10, v11], axis=1),
    ])
    return V, F


def ribbon(n: int, size: float = 1.0) -> tuple[np.ndarray, np.ndarray]:
    """Single strip of 2n triangles along +x; vertices 0..n on y = 0, n+1..2n+1 on y = size."""
    return grid(n, 1, size)
