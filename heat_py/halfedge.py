# heat_py/halfedge.py
"""
Half-edge mesh built from a triangle soup.

All connectivity lives in flat integer arrays indexed by element id (-1 means
"not set"). Half-edges 3f, 3f+1, 3f+2 belong to interior face f, in the cyclic
order of the input triangle. Boundary half-edges come after them, one chain per
boundary loop, linked clockwise so that every half-edge has a twin and boundary
loops can be walked like ordinary faces.
"""
from __future__ import annotations

import logging
from typing import Iterator

import numpy as np

from heat_py.errors import (
    InvalidSoupError,
    IsolatedFaceError,
    IsolatedVertexError,
    NonManifoldEdgeError,
    NonManifoldVertexError,
    TopologyError,
)
from heat_py.mesh_utils import weld_vertices

logger = logging.getLogger(__name__)


def _as_triangles(faces) -> np.ndarray:
    F = np.asarray(faces)
    if F.size == 0:
        return np.zeros((0, 3), dtype=np.int64)
    if not np.issubdtype(F.dtype, np.integer):
        if not np.all(np.mod(F, 1) == 0):
            raise InvalidSoupError("Face indices must be integers.")
    if F.ndim == 1:
        if F.shape[0] % 3 != 0:
            raise InvalidSoupError(f"Flat index list has {F.shape[0]} entries, not a multiple of 3.")
        F = F.reshape(-1, 3)
    if F.ndim != 2 or F.shape[1] != 3:
        raise InvalidSoupError(f"Expected triangles of shape (m, 3), got {F.shape}.")
    return F.astype(np.int64)


class Mesh:
    def __init__(self):
        self.n_vertices = 0
        self.n_faces = 0

        self.he_vertex = np.zeros(0, dtype=np.int64)
        self.he_edge = np.zeros(0, dtype=np.int64)
        self.he_face = np.zeros(0, dtype=np.int64)
        self.he_boundary = np.zeros(0, dtype=np.int64)
        self.he_next = np.zeros(0, dtype=np.int64)
        self.he_prev = np.zeros(0, dtype=np.int64)
        self.he_twin = np.zeros(0, dtype=np.int64)
        self.he_corner = np.zeros(0, dtype=np.int64)
        self.he_on_boundary = np.zeros(0, dtype=bool)

        self.vertex_halfedge = np.zeros(0, dtype=np.int64)
        self.edge_halfedge = np.zeros(0, dtype=np.int64)
        self.face_halfedge = np.zeros(0, dtype=np.int64)
        self.boundary_halfedge = np.zeros(0, dtype=np.int64)
        self.corner_halfedge = np.zeros(0, dtype=np.int64)

        # Homology generators, lists of half-edge ids. Not computed.
        self.generators: list[list[int]] = []

    # ---------- Construction ----------

    @classmethod
    def build(cls, faces, n_vertices: int | None = None) -> Mesh:
        """
        Build the half-edge connectivity of a triangle soup.

        Parameters
        ----------
        faces : (m, 3) int array or flat sequence of 3m indices
            Triangle vertex indices, consistently oriented.
        n_vertices : int, optional
            Number of vertices. Defaults to max index + 1. Vertices that no
            face references make the build fail.

        Returns
        -------
        mesh : Mesh

        Raises
        ------
        TopologyError
            InvalidSoupError, NonManifoldEdgeError, IsolatedVertexError,
            IsolatedFaceError or NonManifoldVertexError. No partially built
            mesh is ever returned.
        """
        F = _as_triangles(faces)
        if n_vertices is None:
            n_vertices = int(F.max()) + 1 if F.size else 0
        if F.size:
            if F.min() < 0 or F.max() >= n_vertices:
                raise InvalidSoupError(
                    f"Face indices must lie in [0, {n_vertices}), got [{F.min()}, {F.max()}]."
                )
            degenerate = (F[:, 0] == F[:, 1]) | (F[:, 1] == F[:, 2]) | (F[:, 2] == F[:, 0])
            if degenerate.any():
                raise InvalidSoupError(f"Face {int(np.flatnonzero(degenerate)[0])} repeats a vertex.")

        mesh = cls()
        mesh.n_vertices = int(n_vertices)
        mesh.n_faces = len(F)
        mesh._link(F)
        mesh._validate()

        logger.info(
            "Built mesh: %d vertices, %d edges, %d faces, %d boundary loops (chi=%d).",
            mesh.n_vertices, mesh.n_edges, mesh.n_faces, mesh.n_boundaries,
            mesh.euler_characteristic(),
        )
        return mesh

    @classmethod
    def from_soup(cls, vertices, faces) -> Mesh:
        return cls.build(faces, n_vertices=len(vertices))

    @classmethod
    def from_buffer(cls, positions, decimals: int = 9) -> tuple[Mesh, np.ndarray]:
        """
        Build from a renderer-style buffer where every three consecutive
        positions form a triangle and no index is shared between faces.

        Coincident positions are welded first, so edges shared in space become
        shared in the connectivity. Returns the mesh and the welded positions.
        """
        P = np.asarray(positions, dtype=float).reshape(-1, 3)
        if P.shape[0] % 3 != 0:
            raise InvalidSoupError(f"Buffer has {P.shape[0]} positions, not a multiple of 3.")
        V, inverse = weld_vertices(P, decimals=decimals)
        return cls.build(inverse.reshape(-1, 3), n_vertices=len(V)), V

    def _link(self, F: np.ndarray):
        n_interior = 3 * len(F)

        he_vertex = F.reshape(-1).tolist()
        he_face = np.repeat(np.arange(len(F)), 3).tolist()
        local = np.tile(np.arange(3), len(F))
        base = 3 * np.repeat(np.arange(len(F)), 3)
        he_next = (base + (local + 1) % 3).tolist()
        he_prev = (base + (local + 2) % 3).tolist()
        he_twin = [-1] * n_interior
        he_edge = [-1] * n_interior
        edge_halfedge = []

        vertex_halfedge = [-1] * self.n_vertices

        # Twin discovery: key is the unordered vertex pair.
        first_seen = {}
        for h in range(n_interior):
            i = he_vertex[h]
            j = he_vertex[he_next[h]]
            vertex_halfedge[i] = h
            key = (i, j) if i < j else (j, i)
            other = first_seen.get(key)
            if other is None:
                first_seen[key] = h
                he_edge[h] = len(edge_halfedge)
                edge_halfedge.append(h)
                continue
            if he_twin[other] != -1:
                raise NonManifoldEdgeError(f"Edge {key} is shared by more than two faces.")
            if he_vertex[other] == i:
                raise NonManifoldEdgeError(
                    f"Edge {key} appears twice with the same orientation (inconsistent winding)."
                )
            he_twin[h] = other
            he_twin[other] = h
            he_edge[h] = he_edge[other]

        # Boundary loops: close every twin-less chain with a clockwise loop.
        has_twin = [t != -1 for t in he_twin]
        he_boundary = [-1] * n_interior
        he_on_boundary = [False] * n_interior
        boundary_halfedge = []

        for h in range(n_interior):
            if has_twin[h]:
                continue
            b = len(boundary_halfedge)
            cycle = []
            he = h
            while True:
                nxt = he_next[he]
                steps = 0
                while has_twin[nxt]:
                    nxt = he_next[he_twin[nxt]]
                    steps += 1
                    if steps > n_interior:
                        raise NonManifoldVertexError(
                            f"Boundary walk around vertex {he_vertex[he_next[he]]} does not close."
                        )

                bh = len(he_vertex)
                he_vertex.append(he_vertex[nxt])
                he_edge.append(he_edge[he])
                he_face.append(-1)
                he_boundary.append(b)
                he_on_boundary.append(True)
                has_twin.append(False)
                he_twin.append(he)
                he_next.append(-1)
                he_prev.append(-1)
                he_twin[he] = bh
                cycle.append(bh)

                he = nxt
                if he == h:
                    break
                if len(cycle) > n_interior:
                    raise NonManifoldVertexError(f"Boundary loop starting at half-edge {h} does not close.")

            n = len(cycle)
            for j in range(n):
                he_next[cycle[j]] = cycle[(j + n - 1) % n]
                he_prev[cycle[j]] = cycle[(j + 1) % n]
                has_twin[cycle[j]] = True
                has_twin[he_twin[cycle[j]]] = True
            boundary_halfedge.append(cycle[0])

        n_halfedges = len(he_vertex)

        self.he_vertex = np.asarray(he_vertex, dtype=np.int64)
        self.he_edge = np.asarray(he_edge, dtype=np.int64)
        self.he_face = np.asarray(he_face, dtype=np.int64)
        self.he_boundary = np.asarray(he_boundary, dtype=np.int64)
        self.he_next = np.asarray(he_next, dtype=np.int64)
        self.he_prev = np.asarray(he_prev, dtype=np.int64)
        self.he_twin = np.asarray(he_twin, dtype=np.int64)
        self.he_on_boundary = np.asarray(he_on_boundary, dtype=bool)

        # One corner per interior half-edge, apex at the half-edge's origin.
        self.corner_halfedge = np.arange(n_interior, dtype=np.int64)
        self.he_corner = np.full(n_halfedges, -1, dtype=np.int64)
        self.he_corner[:n_interior] = self.corner_halfedge

        self.vertex_halfedge = np.asarray(vertex_halfedge, dtype=np.int64)
        self.edge_halfedge = np.asarray(edge_halfedge, dtype=np.int64)
        self.face_halfedge = 3 * np.arange(len(F), dtype=np.int64)
        self.boundary_halfedge = np.asarray(boundary_halfedge, dtype=np.int64)

    def _validate(self):
        isolated = np.flatnonzero(self.vertex_halfedge < 0)
        if isolated.size:
            raise IsolatedVertexError(
                f"Mesh has {isolated.size} isolated vertices (first: {int(isolated[0])})."
            )

        n_interior = 3 * self.n_faces
        twin_on_boundary = self.he_on_boundary[self.he_twin[:n_interior]].reshape(-1, 3)
        isolated_faces = np.flatnonzero(twin_on_boundary.all(axis=1))
        if isolated_faces.size:
            raise IsolatedFaceError(
                f"Mesh has {isolated_faces.size} isolated faces (first: {int(isolated_faces[0])})."
            )

        # Every half-edge is one (face or boundary loop, vertex) incidence, so
        # counting origins gives the number of faces around each vertex.
        incident = np.bincount(self.he_vertex, minlength=self.n_vertices)
        for v in range(self.n_vertices):
            if incident[v] != self.degree(v):
                raise NonManifoldVertexError(
                    f"Vertex {v} is non-manifold ({incident[v]} incident faces, degree {self.degree(v)})."
                )

    # ---------- Counts ----------

    @property
    def n_halfedges(self) -> int:
        return len(self.he_vertex)

    @property
    def n_edges(self) -> int:
        return len(self.edge_halfedge)

    @property
    def n_corners(self) -> int:
        return len(self.corner_halfedge)

    @property
    def n_boundaries(self) -> int:
        return len(self.boundary_halfedge)

    def euler_characteristic(self) -> int:
        return self.n_vertices - self.n_edges + self.n_faces

    def genus(self) -> int:
        """Genus of an orientable surface, counting each boundary loop as a removed disk."""
        return (2 - self.euler_characteristic() - self.n_boundaries) // 2

    # ---------- Element relations ----------

    def halfedge_tip(self, h: int) -> int:
        return int(self.he_vertex[self.he_next[h]])

    def edge_vertices(self, e: int) -> tuple[int, int]:
        h = self.edge_halfedge[e]
        return int(self.he_vertex[h]), int(self.he_vertex[self.he_twin[h]])

    def edge_faces(self, e: int) -> list[int]:
        """Interior faces on either side of edge e (one for boundary edges)."""
        h = self.edge_halfedge[e]
        return [int(self.he_face[k]) for k in (h, self.he_twin[h]) if not self.he_on_boundary[k]]

    def edge_on_boundary(self, e: int) -> bool:
        h = self.edge_halfedge[e]
        return bool(self.he_on_boundary[h] or self.he_on_boundary[self.he_twin[h]])

    def face_on_boundary(self, f: int) -> bool:
        return any(self.he_on_boundary[self.he_twin[h]] for h in self.face_halfedges(f))

    def is_isolated(self, v: int) -> bool:
        return self.vertex_halfedge[v] < 0

    def on_boundary(self, v: int) -> bool:
        return any(self.he_on_boundary[h] for h in self.vertex_halfedges(v))

    def degree(self, v: int) -> int:
        return sum(1 for _ in self.vertex_halfedges(v))

    # ---------- Traversals ----------

    def _loop(self, start: int) -> Iterator[int]:
        h = start
        while True:
            yield int(h)
            h = self.he_next[h]
            if h == start:
                return

    def face_halfedges(self, f: int) -> Iterator[int]:
        return self._loop(self.face_halfedge[f])

    def face_vertices(self, f: int) -> Iterator[int]:
        for h in self.face_halfedges(f):
            yield int(self.he_vertex[h])

    def face_edges(self, f: int) -> Iterator[int]:
        for h in self.face_halfedges(f):
            yield int(self.he_edge[h])

    def boundary_halfedges(self, b: int) -> Iterator[int]:
        return self._loop(self.boundary_halfedge[b])

    def boundary_vertices(self, b: int) -> Iterator[int]:
        for h in self.boundary_halfedges(b):
            yield int(self.he_vertex[h])

    def vertex_halfedges(self, v: int) -> Iterator[int]:
        """Outgoing half-edges of v, clockwise, boundary ones included."""
        start = self.vertex_halfedge[v]
        if start < 0:
            return
        h = start
        while True:
            yield int(h)
            h = self.he_next[self.he_twin[h]]
            if h == start:
                return

    def vertex_vertices(self, v: int) -> Iterator[int]:
        for h in self.vertex_halfedges(v):
            yield self.halfedge_tip(h)

    def vertex_edges(self, v: int) -> Iterator[int]:
        for h in self.vertex_halfedges(v):
            yield int(self.he_edge[h])

    def vertex_faces(self, v: int) -> Iterator[int]:
        for h in self.vertex_halfedges(v):
            if not self.he_on_boundary[h]:
                yield int(self.he_face[h])

    def vertex_corners(self, v: int) -> Iterator[int]:
        for h in self.vertex_halfedges(v):
            if not self.he_on_boundary[h]:
                yield int(self.he_corner[h])

    # ---------- Array views ----------

    def faces_array(self) -> np.ndarray:
        return self.he_vertex[: 3 * self.n_faces].reshape(-1, 3).copy()

    def edges_array(self) -> np.ndarray:
        h = self.edge_halfedge
        return np.stack([self.he_vertex[h], self.he_vertex[self.he_twin[h]]], axis=1)

    def boundary_edges(self) -> np.ndarray:
        """(k, 2) vertex pairs of the edges on a boundary loop."""
        h = np.flatnonzero(self.he_on_boundary)
        return np.stack([self.he_vertex[h], self.he_vertex[self.he_next[h]]], axis=1)

    def check_invariants(self):
        """Raise TopologyError if the twin/next/prev/face links are inconsistent."""
        H = np.arange(self.n_halfedges)
        if np.any(self.he_twin[self.he_twin] != H):
            raise TopologyError("twin(twin(h)) != h")
        if np.any(self.he_twin == H):
            raise TopologyError("half-edge is its own twin")
        if np.any(self.he_prev[self.he_next] != H):
            raise TopologyError("prev(next(h)) != h")
        if np.any(self.he_next[self.he_prev] != H):
            raise TopologyError("next(prev(h)) != h")
        has_face = self.he_face >= 0
        has_loop = self.he_boundary >= 0
        if np.any(has_face == has_loop) or np.any(has_loop != self.he_on_boundary):
            raise TopologyError("half-edge must belong to exactly one face or boundary loop")
        if np.any(self.he_edge[self.he_twin] != self.he_edge):
            raise TopologyError("twins must share an edge")
        if np.any(self.he_vertex[self.he_twin] != self.he_vertex[self.he_next]):
            raise TopologyError("twin must start where h ends")
