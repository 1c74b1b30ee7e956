"""
LOBPCG Eigenvalue Solver

Locally Optimal Block Preconditioned Conjugate Gradient through
`scipy.sparse.linalg.lobpcg`, for Hermitian problems with B symmetric
positive definite. Unlike the ARPACK backends, the preconditioner built from
the preconditioning operator is used directly as LOBPCG's `M`.

Only extremal eigenvalues can be requested: LARGEST_* positions iterate for
the largest, SMALLEST_* for the smallest algebraic eigenvalues.

References:
    A. V. Knyazev, "Toward the Optimal Preconditioned Eigensolver: LOBPCG",
    SIAM J. Sci. Comput. 23 (2001).
"""

import warnings
from typing import Optional

import numpy as np
import scipy.linalg as scipy_linalg
from scipy.sparse.linalg import lobpcg
from numpy.typing import NDArray

from .definitions import (
    EigenSolverType, EigenProblemType, PositionOfSpectrum,
    EigenSolverError, EigenSolverErrorMsg
)
from .result import EigenResult, EigenSolver, residual_norms

# ----------------------------------------------------------------------------------------

_LARGEST = {
    PositionOfSpectrum.LARGEST_MAGNITUDE    : True,
    PositionOfSpectrum.LARGEST_REAL         : True,
    PositionOfSpectrum.SMALLEST_MAGNITUDE   : False,
    PositionOfSpectrum.SMALLEST_REAL        : False,
}

class LobpcgEigensolver(EigenSolver):
    """
    Block preconditioned eigensolver (scipy.sparse.linalg.lobpcg).

    A pair counts as converged when ||A v - lambda B v|| <= tol * max(1, |lambda|).
    The iteration count is the length of LOBPCG's residual history.

    Args (in addition to EigenSolver):
        seed:
            Seed of the random initial block (the initial space, when set,
            replaces its first column).

    Example:
        >>> solver = LobpcgEigensolver(position=PositionOfSpectrum.SMALLEST_REAL)
        >>> n_conv, n_its = solver.solve(A, precond=P, nev=4, tol=1e-8)
    """

    _type           = EigenSolverType.LOBPCG
    _name           = "LOBPCG Eigensolver"
    _supported      = (EigenProblemType.HEP, EigenProblemType.GHEP)

    def __init__(self, *args, problem_type: EigenProblemType = EigenProblemType.HEP, seed: int = 0, **kwargs):
        super().__init__(*args, problem_type=problem_type, **kwargs)
        self._seed = seed

    def _initial_block(self, n: int, nev: int, dtype, v0: Optional[NDArray]) -> NDArray:
        rng = np.random.default_rng(self._seed)
        X   = rng.standard_normal((n, nev))
        if np.issubdtype(dtype, np.complexfloating):
            X = X + 1j * rng.standard_normal((n, nev))
        if v0 is not None:
            X[:, 0] = v0
        return X

    def _solve(self, A, B, precond, nev: int, ncv: Optional[int], tol: float,
            max_iter: int, v0: Optional[NDArray]) -> EigenResult:
        largest = _LARGEST.get(self._position)
        if largest is None:
            raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                                f"{self._name} cannot target {self._position.name}")
        n = A.shape[0]
        if nev > n:
            raise EigenSolverError(EigenSolverErrorMsg.INVALID_INPUT, f"nev={nev} exceeds the dimension n={n}")

        X       = self._initial_block(n, nev, A.dtype, v0)
        prec    = self._make_preconditioner(precond)
        M       = None if prec is None else prec.as_linear_operator()

        try:
            with warnings.catch_warnings():
                # non-convergence is reported through the result
                warnings.simplefilter("ignore")
                out = lobpcg(A, X, B=B, M=M, tol=tol, maxiter=max_iter, largest=largest,
                            retResidualNormsHistory=True)
        except (scipy_linalg.LinAlgError, ValueError) as err:
            raise EigenSolverError(EigenSolverErrorMsg.BACKEND_FAILURE, f"LOBPCG failed: {err}") from err

        eigenvalues, eigenvectors = np.asarray(out[0]), np.asarray(out[1]).reshape(n, -1)
        history     = out[2] if len(out) > 2 else []
        iterations  = max(len(history), 1)

        residuals   = residual_norms(A, B, eigenvalues, eigenvectors)
        mask        = residuals <= tol * np.maximum(1.0, np.abs(eigenvalues))
        eigenvalues, eigenvectors, residuals = eigenvalues[mask], eigenvectors[:, mask], residuals[mask]

        idx = self._select(eigenvalues, len(eigenvalues))
        return EigenResult(
            eigenvalues     = eigenvalues[idx],
            eigenvectors    = eigenvectors[:, idx],
            iterations      = iterations,
            converged       = len(idx) >= nev,
            residual_norms  = residuals[idx],
            n_requested     = nev
        )

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
