"""
Unified Eigenvalue Solver Interface

Factory that builds the solver adapter for a given `EigenSolverType`, and a
helper choosing a type from the problem characteristics (matrix size,
symmetry, number of eigenvalues needed).

----------------------------------------------
File        : eigsystems/algebra/eigen/factory.py
----------------------------------------------
"""

from typing import Optional, Union

from .definitions import EigenSolverType
from .result import EigenSolver
from .exact import ExactEigensolver
from .arnoldi import ArnoldiEigensolver
from .lanczos import LanczosEigensolver
from .lobpcg import LobpcgEigensolver

# ----------------------------------------------------------------------------------------
#! Factory
# ----------------------------------------------------------------------------------------

def choose_eigensolver(solver_type: Union[EigenSolverType, str] = EigenSolverType.KRYLOVSCHUR, **kwargs) -> EigenSolver:
    r"""
    Build the eigensolver adapter for a solver type.

    Parameters:
    -----------
        solver_type:
            EigenSolverType or its name ('lapack', 'arnoldi', 'krylovschur',
            'krylov-schur', 'lanczos', 'lobpcg').
        **kwargs:
            Passed to the adapter constructor (problem_type, position,
            target, preconditioner, logger, and backend specific options
            such as inner_tol or seed).

    Returns:
        EigenSolver

    Example:
        >>> solver = choose_eigensolver('lanczos', position=PositionOfSpectrum.SMALLEST_REAL)
    """
    if isinstance(solver_type, str):
        solver_type = EigenSolverType.from_str(solver_type)

    if solver_type is EigenSolverType.LAPACK:
        return ExactEigensolver(**kwargs)
    if solver_type in (EigenSolverType.ARNOLDI, EigenSolverType.KRYLOVSCHUR):
        return ArnoldiEigensolver(solver_type=solver_type, **kwargs)
    if solver_type is EigenSolverType.LANCZOS:
        return LanczosEigensolver(**kwargs)
    if solver_type is EigenSolverType.LOBPCG:
        return LobpcgEigensolver(**kwargs)
    raise ValueError(f"Unknown eigensolver type: {solver_type!r}")

# ----------------------------------------------------------------------------------------

def decide_method(n         : int,
                hermitian   : bool          = True,
                k           : Optional[int] = None,
                dense_limit : int           = 500) -> EigenSolverType:
    """
    Decide which eigensolver type to use based on problem characteristics.

    Parameters:
    -----------
        n:
            Dimension of the matrix
        hermitian:
            Whether the problem is symmetric/Hermitian
        k:
            Number of eigenvalues needed (None = all eigenvalues)
        dense_limit:
            Largest n handled by the dense decomposition

    Returns:
        EigenSolverType

    Example:
        >>> decide_method(n=10000, hermitian=True, k=10)
        <EigenSolverType.LANCZOS: 4>
    """
    if k is None or k > n * 0.5 or n <= dense_limit:
        return EigenSolverType.LAPACK
    return EigenSolverType.LANCZOS if hermitian else EigenSolverType.KRYLOVSCHUR

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
