import numpy as np
import pytest

from heat_py import backend, shapes
from heat_py.geometry import Geometry
from heat_py.halfedge import Mesh


@pytest.fixture(autouse=True)
def numerical_backend():
    backend.init()
    yield
    backend.init()


def make_geometry(V, F):
    return Geometry(Mesh.from_soup(V, F), V)


@pytest.fixture
def icosahedron():
    return make_geometry(*shapes.icosahedron())


@pytest.fixture
def icosphere():
    return make_geometry(*shapes.icosphere(3))


@pytest.fixture
def plane():
    """20 x 20 grid on the unit square."""
    return make_geometry(*shapes.grid(20, 20, 1.0 / 20))


@pytest.fixture
def bumpy_plane():
    V, F = shapes.grid(8, 6, 0.25)
    rng = np.random.default_rng(0)
    V = V + rng.uniform(-0.05, 0.05, size=V.shape)
    return make_geometry(V, F)
