# heat_py/viz.py
from __future__ import annotations
import os
import numpy as np

from heat_py.mesh_utils import center_vertices


def distance_colors(phi: np.ndarray, cmap: str = "hot") -> np.ndarray:
    """
    Per-vertex RGB colors for a distance field: the source reads brightest,
    the farthest vertex darkest. Returns (V, 3) floats in [0, 1].
    """
    import matplotlib.pyplot as plt

    phi = np.asarray(phi, dtype=float)
    max_phi = float(phi.max()) if phi.size else 0.0
    if max_phi <= 0:
        return np.tile(plt.get_cmap(cmap)(1.0)[:3], (len(phi), 1))
    return plt.get_cmap(cmap)((max_phi - phi) / max_phi)[:, :3]


def plot_distance_field(vertices, faces, phi, out_path, source=None, boundary_edges=None,
                        title="Heat method distance"):
    """
    Render the distance field with matplotlib and save it to `out_path`.

    boundary_edges : (k, 2) int array, optional
        Vertex pairs drawn as black lines, e.g. `Mesh.boundary_edges()`.
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib as mpl
    import matplotlib.pyplot as plt
    from mpl_toolkits.mplot3d.art3d import Poly3DCollection

    V = center_vertices(np.asarray(vertices, dtype=float))
    F = np.asarray(faces)

    colors = distance_colors(phi)
    facecols = colors[F].mean(axis=1)
    poly = [V[f] for f in F]

    bbox_min, bbox_max = V.min(0), V.max(0)
    bbox_center = (bbox_max + bbox_min) / 2
    lim = (bbox_max - bbox_min).max() / 2 * 1.1

    fig = plt.figure(figsize=(7, 6))
    ax = fig.add_subplot(1, 1, 1, projection='3d')
    pc = Poly3DCollection(poly, facecolors=facecols, linewidths=0, edgecolor=None, shade=True,
                          lightsource=mpl.colors.LightSource(azdeg=315, altdeg=45))
    ax.add_collection3d(pc)
    edges = np.zeros((0, 2), dtype=int) if boundary_edges is None else np.asarray(boundary_edges)
    for edge in edges:
        pts = V[edge]
        ax.plot3D(pts[:, 0], pts[:, 1], pts[:, 2], 'k-', linewidth=1.5)
    if source is not None:
        p = V[np.atleast_1d(source)]
        ax.scatter(p[:, 0], p[:, 1], p[:, 2], c='b', s=30)

    ax.set_xlim([bbox_center[0] - lim, bbox_center[0] + lim])
    ax.set_ylim([bbox_center[1] - lim, bbox_center[1] + lim])
    ax.set_zlim([bbox_center[2] - lim, bbox_center[2] + lim])
    ax.set_box_aspect([1, 1, 1])
    ax.view_init(elev=20, azim=45)
    ax.grid(False)
    ax.set_title(title)

    sm = plt.cm.ScalarMappable(cmap=plt.get_cmap("hot_r"), norm=plt.Normalize(vmin=0, vmax=float(np.max(phi))))
    sm.set_array([])
    plt.colorbar(sm, ax=ax, shrink=0.6, label="distance")

    plt.tight_layout()
    os.makedirs(os.path.dirname(os.path.abspath(out_path)), exist_ok=True)
    plt.savefig(out_path, dpi=200)
    plt.close(fig)
    return out_path
