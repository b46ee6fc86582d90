import json
import os

import numpy as np
import pytest

from heat_py import shapes
from heat_py.main import build_parser, main, run
from heat_py.options import HeatOptions


def test_demo_writes_outputs(tmp_path):
    out = tmp_path / "grid"
    assert main(["--demo", "grid", "--source", "0", "--no-plot", "--out", str(out)]) == 0

    phi = np.load(out / "distances.npy")
    assert phi.shape == (31 * 31,)
    assert phi[0] == pytest.approx(0.0, abs=1e-3)

    with open(out / "summary.json", encoding="utf-8") as f:
        summary = json.load(f)
    assert summary["n_vertices"] == 31 * 31
    assert summary["euler_characteristic"] == 1
    assert summary["boundary_loops"] == 1
    assert summary["sources"] == [0]
    assert summary["max_distance"] == pytest.approx(np.sqrt(2.0), rel=0.15)


def test_needs_exactly_one_input(tmp_path):
    with pytest.raises(SystemExit):
        main(["--no-plot"])
    with pytest.raises(SystemExit):
        main(["mesh.obj", "--demo", "grid"])


def test_parser_defaults():
    args = build_parser().parse_args(["--demo", "icosphere"])
    assert args.source == [0]
    assert args.out == "results"
    assert args.t_coef == 1.0
    assert not args.no_plot
    assert not args.normalize


def test_run_drops_isolated_vertices(tmp_path):
    V, F = shapes.grid(3, 3)
    V = np.vstack([V, [[10.0, 10.0, 0.0]]])  # unreferenced
    phi, summary = run(V, F, [5], str(tmp_path), HeatOptions(), plot=False)
    assert summary["n_vertices"] == 16
    saved = np.load(tmp_path / "distances.npy")
    assert saved.shape == (17,)
    assert np.isnan(saved[16])
    assert np.allclose(saved[:16], phi)


def test_run_rejects_isolated_source(tmp_path):
    V, F = shapes.grid(2, 2)
    V = np.vstack([V, [[5.0, 5.0, 0.0]]])
    with pytest.raises(ValueError):
        run(V, F, [9], str(tmp_path), HeatOptions(), plot=False)


@pytest.mark.parametrize("source", [5000, -1])
def test_run_rejects_out_of_range_source(tmp_path, source):
    V, F = shapes.grid(2, 2)
    with pytest.raises(ValueError, match="out of range"):
        run(V, F, [0, source], str(tmp_path), HeatOptions(), plot=False)
    assert not (tmp_path / "summary.json").exists()


def test_cli_rejects_out_of_range_source(tmp_path):
    with pytest.raises(ValueError):
        main(["--demo", "grid", "--source", "-1", "--no-plot", "--out", str(tmp_path)])


def test_run_normalizes_to_unit_area(tmp_path):
    V, F = shapes.grid(4, 4)  # area 16
    phi, summary = run(V, F, [0], str(tmp_path), HeatOptions(), plot=False, normalize=True)
    assert summary["scale"] == pytest.approx(0.25)
    assert summary["max_distance"] == pytest.approx(np.sqrt(2.0), rel=0.2)


def test_plot_open_mesh(tmp_path):
    pytest.importorskip("matplotlib")
    out = tmp_path / "grid"
    assert main(["--demo", "grid", "--normalize", "--out", str(out)]) == 0
    assert os.path.getsize(out / "distance_field.png") > 0


def test_plot(tmp_path):
    pytest.importorskip("matplotlib")
    out = tmp_path / "sphere"
    assert main(["--demo", "icosphere", "--source", "0", "3", "--out", str(out)]) == 0
    assert os.path.getsize(out / "distance_field.png") > 0


def test_mesh_file(tmp_path):
    pytest.importorskip("open3d")
    path = tmp_path / "square.off"
    path.write_text(
        "OFF\n4 2 0\n"
        "0 0 0\n1 0 0\n1 1 0\n0 1 0\n"
        "3 0 1 2\n3 0 2 3\n"
    )
    out = tmp_path / "square"
    assert main([str(path), "--no-plot", "--out", str(out)]) == 0
    with open(out / "summary.json", encoding="utf-8") as f:
        assert json.load(f)["n_faces"] == 2
