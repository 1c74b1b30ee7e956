"""
Eigenvalue Solvers Module

Solver adapters for the standard problem A x = l x and the generalized
problem A x = l B x, with stored or matrix-free operators.

Available Solvers:
    - Exact Diagonalization: LAPACK full decomposition for small-medium systems
    - Arnoldi / Krylov-Schur: ARPACK for general matrices
    - Lanczos: ARPACK for symmetric/Hermitian matrices
    - LOBPCG: block preconditioned solver for Hermitian problems

Factory Function:
    - choose_eigensolver: build the adapter for an EigenSolverType
    - decide_method: automatically choose a type from problem characteristics

Standard Result:
    - EigenResult: Standardized return type (eigenvalues, eigenvectors, iterations, converged)

This module uses lazy imports to minimize startup overhead.
"""

from typing import TYPE_CHECKING
import importlib

# -----------------------------------------------------------------------------------------------
# Lazy Import Configuration
# -----------------------------------------------------------------------------------------------

_LAZY_IMPORTS = {
    # Definitions
    'EigenSolverType'               : ('.definitions', 'EigenSolverType'),
    'EigenProblemType'              : ('.definitions', 'EigenProblemType'),
    'PositionOfSpectrum'            : ('.definitions', 'PositionOfSpectrum'),
    'EigenSolverError'              : ('.definitions', 'EigenSolverError'),
    'EigenSolverErrorMsg'           : ('.definitions', 'EigenSolverErrorMsg'),
    # Result type and adapter base
    'EigenResult'                   : ('.result', 'EigenResult'),
    'EigenSolver'                   : ('.result', 'EigenSolver'),
    # Backends
    'ExactEigensolver'              : ('.exact', 'ExactEigensolver'),
    'ArnoldiEigensolver'            : ('.arnoldi', 'ArnoldiEigensolver'),
    'LanczosEigensolver'            : ('.lanczos', 'LanczosEigensolver'),
    'LobpcgEigensolver'             : ('.lobpcg', 'LobpcgEigensolver'),
    # Factory interface
    'choose_eigensolver'            : ('.factory', 'choose_eigensolver'),
    'decide_method'                 : ('.factory', 'decide_method'),
}

_LAZY_CACHE = {}

# For type checking only
if TYPE_CHECKING:
    from .definitions   import (EigenSolverType, EigenProblemType, PositionOfSpectrum,
                                EigenSolverError, EigenSolverErrorMsg)
    from .result        import EigenResult, EigenSolver
    from .exact         import ExactEigensolver
    from .arnoldi       import ArnoldiEigensolver
    from .lanczos       import LanczosEigensolver
    from .lobpcg        import LobpcgEigensolver
    from .factory       import choose_eigensolver, decide_method

# -----------------------------------------------------------------------------------------------

def __getattr__(name: str):
    """
    Module-level __getattr__ for lazy imports.
    """
    if name in _LAZY_CACHE:
        return _LAZY_CACHE[name]

    if name not in _LAZY_IMPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_path, attr_name = _LAZY_IMPORTS[name]
    module = importlib.import_module(module_path, package=__name__)
    result = module if attr_name is None else getattr(module, attr_name)

    _LAZY_CACHE[name] = result
    return result

__all__ = list(_LAZY_IMPORTS.keys())

# ------------------------------------------------------------------------------------------------
#! EOF
# ------------------------------------------------------------------------------------------------
