"""
Eigenvalue-system controller and its collaborators.

    - EigenSystem           : lifecycle, operator ownership, solve and results
    - EigenSystemParameters : nev / ncv / tolerance / max iterations
    - DofMap                : DOF space sizing vectors and operators
    - OperatorStorage,
      MatrixRegistry        : tagged operator slots (stored | shell)

This module uses lazy imports to minimize startup overhead.
"""

from typing import TYPE_CHECKING
import importlib

_LAZY_IMPORTS = {
    'EigenSystem'               : ('.eigen_system', 'EigenSystem'),
    'SystemState'               : ('.eigen_system', 'SystemState'),
    'EigenSystemParameters'     : ('.parameters', 'EigenSystemParameters'),
    'EigenSystemError'          : ('.errors', 'EigenSystemError'),
    'EigenSystemErrorMsg'       : ('.errors', 'EigenSystemErrorMsg'),
    'DofMap'                    : ('.dof_map', 'DofMap'),
    'OperatorKind'              : ('.operators', 'OperatorKind'),
    'OperatorSlot'              : ('.operators', 'OperatorSlot'),
    'OperatorStorage'           : ('.operators', 'OperatorStorage'),
    'MatrixRegistry'            : ('.operators', 'MatrixRegistry'),
}

_LAZY_CACHE = {}

if TYPE_CHECKING:
    from .eigen_system  import EigenSystem, SystemState
    from .parameters    import EigenSystemParameters
    from .errors        import EigenSystemError, EigenSystemErrorMsg
    from .dof_map       import DofMap
    from .operators     import OperatorKind, OperatorSlot, OperatorStorage, MatrixRegistry

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
