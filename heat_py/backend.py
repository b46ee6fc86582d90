# heat_py/backend.py
"""
Numerical backend: sparse matrix construction and factorization.

Everything that touches scipy's linear algebra goes through this module so the
rest of the package only ever sees two operations:

    sparse_from_triplets(rows, cols, vals, shape) -> csr_matrix
    factorize(A).solve(rhs)                        -> ndarray

The backend has to be initialized once per process with `init()` before any of
them is used. Calling into it earlier is a programming error and raises
`BackendNotReadyError` instead of computing something.
"""
from __future__ import annotations

import logging
import threading

import numpy as np
from scipy import sparse

from heat_py.errors import BackendNotReadyError, FactorizationError

logger = logging.getLogger(__name__)

_lock = threading.Lock()
_state = {"ready": False, "splu": None}


def init() -> None:
    """Load the sparse direct solver. Safe to call more than once."""
    with _lock:
        if _state["ready"]:
            return
        from scipy.sparse.linalg import splu
        _state["splu"] = splu
        _state["ready"] = True
    logger.info("Numerical backend initialized (scipy %s).", _scipy_version())


def is_ready() -> bool:
    return _state["ready"]


def reset() -> None:
    """Return to the uninitialized state. Only meant for tests."""
    with _lock:
        _state["ready"] = False
        _state["splu"] = None


def _require() -> None:
    if not _state["ready"]:
        raise BackendNotReadyError(
            "Numerical backend used before initialization; call heat_py.backend.init() first."
        )


def _scipy_version() -> str:
    import scipy
    return scipy.__version__


def sparse_from_triplets(rows, cols, vals, shape: tuple[int, int]) -> sparse.csr_matrix:
    """
    Assemble a sparse matrix from (row, col, value) triplets.

    Duplicate (row, col) pairs are summed, which is what operator assembly
    relies on when several faces contribute to the same entry.
    """
    _require()
    A = sparse.coo_matrix((np.asarray(vals, dtype=float),
                           (np.asarray(rows), np.asarray(cols))), shape=shape)
    return A.tocsr()


class Factorization:
    """Cached sparse factorization of a symmetric (semi-)definite matrix."""

    def __init__(self, A: sparse.spmatrix, name: str = "A"):
        _require()
        self.name = name
        self.shape = A.shape

        if A.shape[0] != A.shape[1]:
            raise FactorizationError(f"{name}: matrix must be square, got {A.shape}")
        A = sparse.csc_matrix(A, dtype=float)
        if not np.all(np.isfinite(A.data)):
            raise FactorizationError(f"{name}: matrix has non-finite entries")
        diag = A.diagonal()
        if diag.size and diag.min() <= 0.0:
            raise FactorizationError(
                f"{name}: matrix is not positive definite (min diagonal = {diag.min():.3e})"
            )

        # Symmetric mode with a minimum degree ordering on A^T + A keeps the
        # pivots on the diagonal, i.e. an LDL^T-style factorization.
        try:
            self._lu = _state["splu"](
                A,
                permc_spec="MMD_AT_PLUS_A",
                diag_pivot_thresh=0.0,
                options=dict(SymmetricMode=True),
            )
        except RuntimeError as e:
            raise FactorizationError(f"{name}: factorization failed ({e})") from e
        logger.debug("Factored %s (%d x %d, nnz=%d).", name, A.shape[0], A.shape[1], A.nnz)

    def solve(self, rhs) -> np.ndarray:
        """Solve A x = rhs using the cached factors."""
        _require()
        b = np.asarray(rhs, dtype=float)
        if b.shape[0] != self.shape[0]:
            raise ValueError(f"{self.name}: rhs has {b.shape[0]} rows, expected {self.shape[0]}")
        x = self._lu.solve(b)
        if not np.all(np.isfinite(x)):
            raise FactorizationError(f"{self.name}: solve produced non-finite values")
        return x


def factorize(A: sparse.spmatrix, name: str = "A") -> Factorization:
    return Factorization(A, name=name)
