"""
Lanczos Eigenvalue Solver (ARPACK)

Implicitly restarted Lanczos iteration through `scipy.sparse.linalg.eigsh`
for Hermitian problems (HEP, and GHEP with B symmetric positive definite).
Shares the shift-invert, counting and fallback machinery of the Arnoldi
backend.

Key Features:
    - Real eigenvalues, ordered by the requested position of spectrum
    - LARGEST/SMALLEST_REAL map to ARPACK's algebraic 'LA'/'SA'
    - Imaginary positions are meaningless for Hermitian problems
"""

from .definitions import EigenSolverType, EigenProblemType, PositionOfSpectrum
from .arnoldi import ArpackEigensolver

from scipy.sparse.linalg import eigsh

# ----------------------------------------------------------------------------------------

class LanczosEigensolver(ArpackEigensolver):
    """
    Implicitly restarted Lanczos (scipy.sparse.linalg.eigsh).

    Example:
        >>> solver = LanczosEigensolver(problem_type=EigenProblemType.HEP,
        ...                             position=PositionOfSpectrum.SMALLEST_REAL)
        >>> n_conv, n_its = solver.solve(A, nev=3)
    """

    _type           = EigenSolverType.LANCZOS
    _name           = "Lanczos Eigensolver"
    _supported      = (EigenProblemType.HEP, EigenProblemType.GHEP)
    _ncv_gap        = 1
    _unsupported_positions = (PositionOfSpectrum.LARGEST_IMAGINARY,
                              PositionOfSpectrum.SMALLEST_IMAGINARY,
                              PositionOfSpectrum.TARGET_IMAGINARY)
    _which_map      = {
        PositionOfSpectrum.LARGEST_MAGNITUDE    : 'LM',
        PositionOfSpectrum.SMALLEST_MAGNITUDE   : 'SM',
        PositionOfSpectrum.LARGEST_REAL         : 'LA',
        PositionOfSpectrum.SMALLEST_REAL        : 'SA',
    }

    def __init__(self, *args, problem_type: EigenProblemType = EigenProblemType.HEP, **kwargs):
        super().__init__(*args, problem_type=problem_type, **kwargs)

    def _needs_dense(self, n: int, nev: int) -> bool:
        return nev >= n

    def _arpack(self, A, **kwargs):
        return eigsh(A, **kwargs)

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
