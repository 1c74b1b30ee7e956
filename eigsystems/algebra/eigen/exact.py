"""
Exact Diagonalization (Full Eigenvalue Decomposition)

LAPACK backend. Both operators are densified and handed to
`scipy.linalg.eigh` (Hermitian kinds with SPD B) or `scipy.linalg.eig`.
Suitable for small to medium-sized problems, and used by the ARPACK
backends when the requested number of eigenpairs is too close to n.

Mathematical Background:
    For Hermitian A and SPD B: A Q = B Q Lambda, Q^H B Q = I
    For general A, B: A V = B V Lambda (not necessarily orthogonal)

References:
    - Golub & Van Loan, "Matrix Computations" (4th ed.), Chapter 8
"""

from typing import Optional

import numpy as np
import scipy.linalg as scipy_linalg
from numpy.typing import NDArray

from .definitions import (
    EigenSolverType, EigenProblemType, PositionOfSpectrum,
    EigenSolverError, EigenSolverErrorMsg
)
from .result import EigenResult, EigenSolver, select_eigenvalues, residual_norms
from ..matrices import densify

# ----------------------------------------------------------------------------------------
#! Dense solve
# ----------------------------------------------------------------------------------------

def dense_eigenpairs(A,
                    B,
                    nev             : int,
                    problem_type    : EigenProblemType,
                    position        : PositionOfSpectrum,
                    target          : complex = 0.0) -> EigenResult:
    """
    Full decomposition followed by selection of nev eigenpairs.

    Non-finite eigenvalues (infinite ones from a singular B) are dropped.

    Args:
        A, B:
            SciPy operators (B None for standard problems).
        nev:
            Number of requested eigenpairs.

    Returns:
        EigenResult with iterations=1.
    """
    Ad = densify(A)
    Bd = None if B is None else densify(B)

    # GHIEP has an indefinite B, eigh requires it SPD
    use_eigh = problem_type in (EigenProblemType.HEP, EigenProblemType.GHEP)
    try:
        if use_eigh:
            eigenvalues, eigenvectors = scipy_linalg.eigh(Ad, Bd)
        else:
            eigenvalues, eigenvectors = scipy_linalg.eig(Ad, Bd)
    except (scipy_linalg.LinAlgError, ValueError) as err:
        raise EigenSolverError(EigenSolverErrorMsg.BACKEND_FAILURE, f"LAPACK decomposition failed: {err}") from err

    finite          = np.isfinite(eigenvalues)
    eigenvalues     = eigenvalues[finite]
    eigenvectors    = eigenvectors[:, finite]

    idx             = select_eigenvalues(eigenvalues, nev, position, target)
    eigenvalues     = eigenvalues[idx]
    eigenvectors    = eigenvectors[:, idx]

    return EigenResult(
        eigenvalues     = eigenvalues,
        eigenvectors    = eigenvectors,
        iterations      = 1,
        converged       = len(eigenvalues) >= min(nev, Ad.shape[0]),
        residual_norms  = residual_norms(A, B, eigenvalues, eigenvectors),
        n_requested     = nev
    )

# ----------------------------------------------------------------------------------------
#! Exact Eigensolver
# ----------------------------------------------------------------------------------------

class ExactEigensolver(EigenSolver):
    """
    Full eigenvalue decomposition using SciPy's LAPACK bindings.

    Shell operators are densified by applying them to the identity, so this
    backend is meant for small problems. `ncv`, `tol` and `max_iter` are
    accepted and ignored.

    Example:
        >>> A = np.array([[4., -1.], [-1., 3.]])
        >>> solver = ExactEigensolver(problem_type=EigenProblemType.HEP)
        >>> solver.solve(A, nev=2)
        (2, 1)
    """

    _type = EigenSolverType.LAPACK
    _name = "LAPACK Eigensolver"

    def _solve(self, A, B, precond, nev: int, ncv: Optional[int], tol: float,
            max_iter: int, v0: Optional[NDArray]) -> EigenResult:
        if precond is not None:
            self.log("Direct decomposition does not use the preconditioning operator", log='debug', lvl=1)
        return dense_eigenpairs(A, B, nev, self._problem_type, self._position, self._target_value())

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
