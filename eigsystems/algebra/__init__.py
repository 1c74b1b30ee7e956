"""
Operators and solvers of the eigenvalue systems.

Key functionalities provided include:
    - Stored (sparse) and matrix-free (shell) operator representations.
    - Preconditioners for the inner linear solves of the eigensolvers.
    - Eigensolver adapters over LAPACK, ARPACK and LOBPCG (`eigen` submodule).

This module uses lazy imports to minimize startup overhead.
"""

from typing import TYPE_CHECKING
import importlib

# -----------------------------------------------------------------------------------------------
# Lazy Import Configuration
# -----------------------------------------------------------------------------------------------

_LAZY_IMPORTS = {
    # Operators
    'SparseMatrix'          : ('.matrices', 'SparseMatrix'),
    'ShellMatrix'           : ('.matrices', 'ShellMatrix'),
    'ParallelType'          : ('.matrices', 'ParallelType'),
    'MatrixBuildType'       : ('.matrices', 'MatrixBuildType'),
    'to_operator'           : ('.matrices', 'to_operator'),
    # Preconditioners
    'Preconditioner'        : ('.preconditioners', 'Preconditioner'),
    'PreconditionerType'    : ('.preconditioners', 'PreconditionerType'),
    'choose_precond'        : ('.preconditioners', 'choose_precond'),
    # Utility imports from common
    'get_logger'            : ('..common.flog', 'get_global_logger'),
    # Submodules (lazy)
    'matrices'              : ('.matrices', None),
    'preconditioners'       : ('.preconditioners', None),
    'eigen'                 : ('.eigen', None),
}

# Cache for lazily loaded modules/attributes
_LAZY_CACHE = {}

if TYPE_CHECKING:
    from .matrices import SparseMatrix, ShellMatrix, ParallelType, MatrixBuildType, to_operator
    from .preconditioners import Preconditioner, PreconditionerType, choose_precond

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
