# heat_py/errors.py


class TopologyError(ValueError):
    """Raised when a triangle soup cannot be turned into a manifold half-edge mesh."""


class InvalidSoupError(TopologyError):
    pass


class IsolatedVertexError(TopologyError):
    pass


class IsolatedFaceError(TopologyError):
    pass


class NonManifoldVertexError(TopologyError):
    pass


class NonManifoldEdgeError(TopologyError):
    pass


class FactorizationError(RuntimeError):
    """Raised when an operator cannot be factored or a solve returns non-finite values."""


class BackendNotReadyError(RuntimeError):
    """Raised when the numerical backend is used before `backend.init()`."""
