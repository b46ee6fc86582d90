# heat_py/geometry.py
"""
Geometric quantities of a half-edge mesh embedded in R^3, and the two global
operators used by the heat method:

    L : cotangent Laplace-Beltrami matrix (positive semi-definite sign)
        L_ij = -1/2 (cot a_ij + cot b_ij)   for an edge ij
        L_ii = -sum_{j != i} L_ij
    M : lumped mass matrix, M_ii = 1/3 sum of the areas of the faces around i

Positions are kept outside the topology so one Mesh can be paired with several
embeddings.
"""
from __future__ import annotations

import logging

import numpy as np
from scipy import sparse

from heat_py import backend
from heat_py.halfedge import Mesh

logger = logging.getLogger(__name__)


class Geometry:
    def __init__(self, mesh: Mesh, positions):
        P = np.asarray(positions, dtype=float)
        if P.ndim != 2 or P.shape[1] != 3:
            raise ValueError(f"Positions must have shape (n, 3), got {P.shape}.")
        if P.shape[0] != mesh.n_vertices:
            raise ValueError(f"Got {P.shape[0]} positions for a mesh with {mesh.n_vertices} vertices.")
        self.mesh = mesh
        self.positions = P

    # ---------- Per half-edge ----------

    def vector(self, h: int) -> np.ndarray:
        m = self.mesh
        return self.positions[m.he_vertex[m.he_next[h]]] - self.positions[m.he_vertex[h]]

    def halfedge_vectors(self) -> np.ndarray:
        m = self.mesh
        return self.positions[m.he_vertex[m.he_next]] - self.positions[m.he_vertex]

    def cotan(self, h: int) -> float:
        """Cotangent of the angle opposite h in its face, 0 for boundary half-edges."""
        m = self.mesh
        if m.he_on_boundary[h]:
            return 0.0
        u = self.vector(m.he_prev[h])
        v = -self.vector(m.he_next[h])
        return float(np.dot(u, v) / np.linalg.norm(np.cross(u, v)))

    def halfedge_cotans(self) -> np.ndarray:
        """
        Vectorized `cotan` over all half-edges.

        Zero-area faces give non-finite values; they are left as is so the
        factorization step rejects the operator instead of solving a
        meaningless system.
        """
        m = self.mesh
        X = self.halfedge_vectors()
        u = X[m.he_prev]
        v = -X[m.he_next]
        with np.errstate(divide="ignore", invalid="ignore"):
            cot = np.einsum("ij,ij->i", u, v) / np.linalg.norm(np.cross(u, v), axis=1)
        cot[m.he_on_boundary] = 0.0
        return cot

    # ---------- Per edge ----------

    def length(self, e: int) -> float:
        return float(np.linalg.norm(self.vector(self.mesh.edge_halfedge[e])))

    def edge_lengths(self) -> np.ndarray:
        return np.linalg.norm(self.halfedge_vectors()[self.mesh.edge_halfedge], axis=1)

    def mean_edge_length(self) -> float:
        if self.mesh.n_edges == 0:
            return 0.0
        return float(self.edge_lengths().mean())

    # ---------- Per face ----------

    def _face_cross(self) -> np.ndarray:
        m = self.mesh
        X = self.halfedge_vectors()
        h = m.face_halfedge
        return np.cross(X[h], -X[m.he_prev[h]])

    def face_normal(self, f: int) -> np.ndarray:
        h = self.mesh.face_halfedge[f]
        n = np.cross(self.vector(h), -self.vector(self.mesh.he_prev[h]))
        return n / np.linalg.norm(n)

    def face_normals(self) -> np.ndarray:
        N = self._face_cross()
        return N / np.linalg.norm(N, axis=1, keepdims=True)

    def area(self, f: int) -> float:
        h = self.mesh.face_halfedge[f]
        return 0.5 * float(np.linalg.norm(np.cross(self.vector(h), -self.vector(self.mesh.he_prev[h]))))

    def face_areas(self) -> np.ndarray:
        return 0.5 * np.linalg.norm(self._face_cross(), axis=1)

    def total_area(self) -> float:
        return float(self.face_areas().sum())

    # ---------- Per corner ----------

    def angle(self, c: int) -> float:
        """Interior angle at the apex (origin vertex) of corner c."""
        m = self.mesh
        h = m.corner_halfedge[c]
        u = self.vector(h)
        v = -self.vector(m.he_prev[h])
        return float(np.arctan2(np.linalg.norm(np.cross(u, v)), np.dot(u, v)))

    def corner_angles(self) -> np.ndarray:
        m = self.mesh
        X = self.halfedge_vectors()
        h = m.corner_halfedge
        u = X[h]
        v = -X[m.he_prev[h]]
        return np.arctan2(np.linalg.norm(np.cross(u, v), axis=1), np.einsum("ij,ij->i", u, v))

    # ---------- Per vertex ----------

    def barycentric_dual_area(self, v: int) -> float:
        return sum(self.area(f) for f in self.mesh.vertex_faces(v)) / 3.0

    def dual_areas(self) -> np.ndarray:
        m = self.mesh
        n_interior = 3 * m.n_faces
        A = self.face_areas()
        return np.bincount(m.he_vertex[:n_interior], weights=A[m.he_face[:n_interior]] / 3.0,
                           minlength=m.n_vertices)

    def vertex_normal(self, v: int) -> np.ndarray:
        """Angle-weighted average of the normals of the faces around v."""
        m = self.mesh
        n = np.zeros(3)
        for c in m.vertex_corners(v):
            n += self.angle(c) * self.face_normal(m.he_face[m.corner_halfedge[c]])
        return n / np.linalg.norm(n)

    def angle_defect(self, v: int) -> float:
        """2*pi minus the angle sum at v (pi minus for boundary vertices)."""
        total = sum(self.angle(c) for c in self.mesh.vertex_corners(v))
        full = np.pi if self.mesh.on_boundary(v) else 2.0 * np.pi
        return full - total

    def total_angle_defect(self) -> float:
        """Equals 2*pi*chi for any triangulated surface (discrete Gauss-Bonnet)."""
        m = self.mesh
        angle_sum = np.bincount(m.he_vertex[m.corner_halfedge], weights=self.corner_angles(),
                                minlength=m.n_vertices)
        boundary = np.zeros(m.n_vertices, dtype=bool)
        boundary[m.he_vertex[m.he_on_boundary]] = True
        full = np.where(boundary, np.pi, 2.0 * np.pi)
        return float((full - angle_sum).sum())

    # ---------- Global operators ----------

    def _rows(self, vertex_index) -> np.ndarray:
        if vertex_index is None:
            return np.arange(self.mesh.n_vertices)
        return np.asarray(vertex_index, dtype=np.int64)

    def laplace_matrix(self, vertex_index=None) -> sparse.csr_matrix:
        """
        Cotangent Laplacian, V x V, symmetric, rows summing to zero.

        vertex_index : (V,) int array, optional
            Row of each mesh vertex. Defaults to the mesh vertex order.
        """
        m = self.mesh
        idx = self._rows(vertex_index)
        interior = np.flatnonzero(~m.he_on_boundary)
        w = 0.5 * self.halfedge_cotans()[interior]
        i = idx[m.he_vertex[interior]]
        j = idx[m.he_vertex[m.he_next[interior]]]

        # Each edge receives 1/2 cot from both of its interior half-edges.
        rows = np.concatenate([i, j, i, j])
        cols = np.concatenate([j, i, i, j])
        vals = np.concatenate([-w, -w, w, w])
        n = m.n_vertices
        L = backend.sparse_from_triplets(rows, cols, vals, (n, n))
        logger.debug("Assembled Laplacian (nnz=%d).", L.nnz)
        return L

    def mass_matrix(self, vertex_index=None) -> sparse.csr_matrix:
        """Diagonal lumped mass matrix of barycentric dual areas."""
        idx = self._rows(vertex_index)
        n = self.mesh.n_vertices
        return backend.sparse_from_triplets(idx, idx, self.dual_areas(), (n, n))
