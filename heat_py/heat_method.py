# heat_py/heat_method.py
"""
Geodesic distance with the Heat Method (Crane, Weischedel, Wardetzky 2013).

    1. diffuse       (M + t L) u = delta
    2. vector field  X = -grad(u) / |grad(u)|         per face
    3. divergence    b = div(X)                        per vertex
    4. potential     L phi = -b
    5. shift         phi -= min(phi)

Both factorizations are computed once in the constructor; `compute` can then
be called for any number of source sets. An instance is not thread-safe:
serialize calls to `compute`, or build one instance per worker from the same
read-only Geometry.
"""
from __future__ import annotations

import logging

import numpy as np
from scipy import sparse

from heat_py import backend
from heat_py.geometry import Geometry
from heat_py.options import HeatOptions

logger = logging.getLogger(__name__)

UNINITIALIZED = "uninitialized"
READY = "ready"


class HeatMethod:
    def __init__(self, geometry: Geometry, opts: HeatOptions | None = None):
        self.state = UNINITIALIZED
        self.geometry = geometry
        self.opts = opts if opts is not None else HeatOptions()

        mesh = geometry.mesh
        self.n = mesh.n_vertices
        self.vertex_index = np.arange(self.n)

        h = geometry.mean_edge_length()
        self.t = self.opts.t_coef * h * h

        self.L = geometry.laplace_matrix(self.vertex_index)
        self.M = geometry.mass_matrix(self.vertex_index)
        I = sparse.identity(self.n, format="csr")

        self._heat = backend.factorize(self.M + self.t * self.L, name="M + tL")
        self._poisson = backend.factorize(self.L + self.opts.laplacian_shift * I, name="L")

        # Per half-edge quantities reused by every solve.
        self._X = geometry.halfedge_vectors()
        self._cot = geometry.halfedge_cotans()
        self._N = geometry.face_normals()
        self._A = geometry.face_areas()

        self.state = READY
        logger.info("Heat method ready: %d vertices, t = %.6g (mean edge length %.6g).", self.n, self.t, h)

    def _indicator(self, delta) -> np.ndarray:
        if sparse.issparse(delta):
            delta = delta.toarray()
        d = np.asarray(delta, dtype=float).reshape(-1)
        if d.shape[0] != self.n:
            raise ValueError(f"Source vector has {d.shape[0]} entries, mesh has {self.n} vertices.")
        return d

    def diffuse(self, delta) -> np.ndarray:
        """Heat distribution after time t, starting from `delta`."""
        return self._heat.solve(self._indicator(delta))

    def compute_vector_field(self, u: np.ndarray) -> np.ndarray:
        """
        Unit vector per face pointing against the gradient of u.

        grad(u) on face f is  1/(2A) sum_h u_{opposite(h)} (N x e_h),
        where opposite(h) is the vertex not on half-edge h.
        """
        m = self.geometry.mesh
        n_interior = 3 * m.n_faces
        h = np.arange(n_interior)
        f = m.he_face[h]
        u_opp = u[self.vertex_index[m.he_vertex[m.he_prev[h]]]]
        contrib = u_opp[:, None] * np.cross(self._N[f], self._X[h])
        grad = contrib.reshape(-1, 3, 3).sum(axis=1) / (2.0 * self._A[:, None])

        norm = np.linalg.norm(grad, axis=1, keepdims=True)
        return -grad / np.maximum(norm, self.opts.normalize_eps)

    def compute_divergence(self, X: np.ndarray) -> np.ndarray:
        """
        Integrated divergence of a face vector field at each vertex:

            div_i = 1/2 sum_{f ~ i} cot(a1) (e1 . X_f) + cot(a2) (e2 . X_f)

        with e1, e2 the two edges of f leaving i and a1, a2 their opposite angles.
        """
        m = self.geometry.mesh
        n_interior = 3 * m.n_faces
        h = np.arange(n_interior)
        p = m.he_prev[h]
        Xf = X[m.he_face[h]]
        e1 = self._X[h]
        e2 = -self._X[p]
        contrib = (self._cot[h] * np.einsum("ij,ij->i", e1, Xf)
                   + self._cot[p] * np.einsum("ij,ij->i", e2, Xf))
        div = np.zeros(self.n)
        np.add.at(div, self.vertex_index[m.he_vertex[h]], 0.5 * contrib)
        return div

    def compute(self, delta) -> np.ndarray | None:
        """
        Distance from the marked source vertices.

        Parameters
        ----------
        delta : (V,) or (V, 1) array, or sparse column
            Positive at the source vertices, zero elsewhere.

        Returns
        -------
        phi : (V,) array or None
            Approximate geodesic distances, min(phi) == 0. None when `delta`
            marks no source.
        """
        d = self._indicator(delta)
        if d.sum() <= 0:
            logger.warning("Source vector marks no vertex; no distance field computed.")
            return None

        u = self._heat.solve(d)
        X = self.compute_vector_field(u)
        div = self.compute_divergence(X)
        phi = self._poisson.solve(-div)
        return phi - phi.min()

    def distance_from(self, sources) -> np.ndarray | None:
        """Distance from a vertex id or a list of vertex ids."""
        delta = np.zeros(self.n)
        delta[self.vertex_index[np.atleast_1d(np.asarray(sources, dtype=np.int64))]] = 1.0
        return self.compute(delta)
