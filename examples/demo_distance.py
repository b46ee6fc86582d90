import numpy as np
from heat_py import backend, shapes
from heat_py import mesh_utils as mu
from heat_py.geometry import Geometry
from heat_py.halfedge import Mesh
from heat_py.heat_method import HeatMethod

backend.init()

# operators on a small open mesh
V = np.array([[0, 0, 0], [1, 0, 0], [0, 1, 0], [0, 0, 1]], dtype=float)
F = np.array([[0, 1, 2], [0, 3, 1]])
mesh = Mesh.from_soup(V, F)
geo = Geometry(mesh, V)

print("Euler characteristic:", mesh.euler_characteristic(), "boundary loops:", mesh.n_boundaries)
print("Face areas:", geo.face_areas(), "==", mu.tri_areas(V, F))
M = geo.mass_matrix()
L = geo.laplace_matrix()
print("Trace(M) =", M.diagonal().sum(), " total area =", geo.total_area())
print("Row sums of L:", np.asarray(L.sum(axis=1)).ravel())

# distance on the unit sphere: vertex 0 to its antipode should be close to pi
V, F = shapes.icosphere(3)
heat = HeatMethod(Geometry(Mesh.from_soup(V, F), V))
phi = heat.distance_from(0)
exact = np.arccos(np.clip(V @ V[0], -1.0, 1.0))
print("Antipode distance:", phi[np.argmax(exact)], "(pi =", np.pi, ")")
print("Mean absolute error:", np.abs(phi - exact).mean())

# same factorization, another source
phi2 = heat.distance_from(100)
print("Min/max from vertex 100:", phi2.min(), phi2.max())
