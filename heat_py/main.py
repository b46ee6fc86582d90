from heat_py import backend
from heat_py.geometry import Geometry
from heat_py.halfedge import Mesh
from heat_py.heat_method import HeatMethod
from heat_py.logging_config import setup_logging
from heat_py.mesh_utils import normalize_unit_area, remove_isolated_vertices
from heat_py.options import HeatOptions
from heat_py import shapes

import numpy as np
import os
import argparse
import logging
import json


DEMOS = {
    "icosphere": lambda: shapes.icosphere(3),
    "grid": lambda: shapes.grid(30, 30, 1.0 / 30),
    "ribbon": lambda: shapes.ribbon(40, 0.1),
}


def load_mesh(path):
    """Read a triangle mesh file (OBJ, OFF, PLY, STL) into (V, F) arrays."""
    import open3d as o3d

    if not os.path.exists(path):
        raise FileNotFoundError(path)
    mesh = o3d.io.read_triangle_mesh(path)
    V, F = np.asarray(mesh.vertices, dtype=float), np.asarray(mesh.triangles, dtype=np.int64)
    if len(F) == 0:
        raise ValueError(f"{path} contains no triangles.")
    return V, F


def run(V, F, sources, output_folder, opts: HeatOptions, plot=True, normalize=False):
    n_input = len(V)
    sources = np.atleast_1d(np.asarray(sources, dtype=np.int64))
    bad = sources[(sources < 0) | (sources >= n_input)]
    if bad.size:
        raise ValueError(f"Source vertex {int(bad[0])} out of range [0, {n_input}).")
    os.makedirs(output_folder, exist_ok=True)

    # Stray vertices would make the build fail; drop them and remap the sources.
    V, F, idx_map = remove_isolated_vertices(V, F)
    if len(idx_map) < n_input:
        print(f"Removed {n_input - len(idx_map)} isolated vertices")
    new_index = -np.ones(n_input, dtype=int)
    new_index[idx_map] = np.arange(len(idx_map))
    sources = new_index[sources]
    if np.any(sources < 0):
        raise ValueError("A source vertex is not referenced by any face.")

    scale = 1.0
    if normalize:
        V, scale = normalize_unit_area(V, F)
        print(f"Scaled to unit area (factor {scale:.6g})")

    mesh = Mesh.from_soup(V, F)
    geometry = Geometry(mesh, V)
    heat = HeatMethod(geometry, opts)

    phi = heat.distance_from(sources)
    if phi is None:
        raise ValueError("No source vertex given.")

    # Distances back in input vertex order, NaN for dropped vertices.
    phi_input = np.full(n_input, np.nan)
    phi_input[idx_map] = phi
    dist_path = os.path.join(output_folder, "distances.npy")
    np.save(dist_path, phi_input)
    print(f"Saved distances to {dist_path}")

    summary = {
        'n_vertices': mesh.n_vertices,
        'n_faces': mesh.n_faces,
        'euler_characteristic': mesh.euler_characteristic(),
        'boundary_loops': mesh.n_boundaries,
        't': float(heat.t),
        'sources': [int(s) for s in np.atleast_1d(sources)],
        'max_distance': float(phi.max()),
        'scale': float(scale),
    }
    with open(os.path.join(output_folder, 'summary.json'), 'w', encoding='utf-8') as f:
        json.dump(summary, f, indent=2)

    if plot:
        from heat_py.viz import plot_distance_field
        png_path = plot_distance_field(V, F, phi, os.path.join(output_folder, "distance_field.png"),
                                       source=sources, boundary_edges=mesh.boundary_edges())
        print(f"Saved visualization to {png_path}")

    return phi, summary


def build_parser():
    parser = argparse.ArgumentParser(
        description='Geodesic distance on triangle meshes with the heat method',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m heat_py.main bunny.obj --source 0            # distance from vertex 0
  python -m heat_py.main bunny.obj --source 0 12 --no-plot
  python -m heat_py.main --demo icosphere --out results
    """
    )
    parser.add_argument('mesh', nargs='?', help='Path to a triangle mesh file')
    parser.add_argument('--demo', choices=sorted(DEMOS), help='Use a procedural mesh instead of a file')
    parser.add_argument('--source', type=int, nargs='+', default=[0], help='Source vertex ids (default: 0)')
    parser.add_argument('--out', type=str, default='results', help='Output directory (default: results)')
    parser.add_argument('--t-coef', type=float, default=1.0,
                        help='Diffusion time as a multiple of the squared mean edge length (default: 1.0)')
    parser.add_argument('--normalize', action='store_true', help='Scale the mesh to unit surface area first')
    parser.add_argument('--no-plot', action='store_true', help='Skip the matplotlib rendering')
    parser.add_argument('--log-level', type=str, default='INFO', help='Logging level (default: INFO)')
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if (args.mesh is None) == (args.demo is None):
        parser.error("give either a mesh file or --demo")

    setup_logging(level=getattr(logging, args.log_level.upper(), logging.INFO))
    backend.init()

    if args.demo:
        V, F = DEMOS[args.demo]()
        print(f"Demo mesh: {args.demo}")
    else:
        V, F = load_mesh(args.mesh)
        print(f"Mesh: {args.mesh}")

    opts = HeatOptions(t_coef=args.t_coef)
    phi, summary = run(V, F, args.source, args.out, opts, plot=not args.no_plot,
                       normalize=args.normalize)
    print(f"Max distance: {summary['max_distance']:.6f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
