# eigsystems/__init__.py

"""
eigsystems - algebraic eigenvalue problems from discretized operators.

This package sets up and solves the standard problem A x = l x and the
generalized problem A x = l B x. It owns the operators (stored sparse or
matrix-free), hands the numerical solve to a pluggable SciPy backend and
returns the converged eigenpairs.

Modules:
--------
- algebra   : Stored/shell operators, preconditioners and eigensolver adapters
- systems   : The EigenSystem controller, its parameters, DOF space and operator storage
- io        : Legacy Exodus II attribute reader
- common    : Logging

Examples:
---------
>>> from eigsystems import EigenSystem, DofMap, EigenProblemType
>>> system = EigenSystem(DofMap(100), solver_type='lanczos')
>>> system.set_eigenproblem_type(EigenProblemType.HEP)
>>> system.attach_assemble_function(assemble)
>>> system.init()
>>> n_conv, n_its = system.solve()
"""

import importlib

# Package metadata
__version__         = "0.1.0"

MODULE_DESCRIPTION  = "Eigenvalue systems: operator storage, solver adapters and a legacy mesh-attribute reader."

_SUBMODULES         = ["algebra", "common", "io", "systems"]

# Convenience re-exports, resolved lazily
_LAZY_IMPORTS = {
    'EigenSystem'               : ('.systems.eigen_system', 'EigenSystem'),
    'SystemState'               : ('.systems.eigen_system', 'SystemState'),
    'EigenSystemParameters'     : ('.systems.parameters', 'EigenSystemParameters'),
    'EigenSystemError'          : ('.systems.errors', 'EigenSystemError'),
    'DofMap'                    : ('.systems.dof_map', 'DofMap'),
    'SparseMatrix'              : ('.algebra.matrices', 'SparseMatrix'),
    'ShellMatrix'               : ('.algebra.matrices', 'ShellMatrix'),
    'EigenSolverType'           : ('.algebra.eigen.definitions', 'EigenSolverType'),
    'EigenProblemType'          : ('.algebra.eigen.definitions', 'EigenProblemType'),
    'PositionOfSpectrum'        : ('.algebra.eigen.definitions', 'PositionOfSpectrum'),
    'EigenSolverError'          : ('.algebra.eigen.definitions', 'EigenSolverError'),
    'choose_eigensolver'        : ('.algebra.eigen.factory', 'choose_eigensolver'),
    'ExodusFile'                : ('.io.exodus', 'ExodusFile'),
    'get_global_logger'         : ('.common.flog', 'get_global_logger'),
}

__all__             = _SUBMODULES + list(_LAZY_IMPORTS.keys())

def list_available_modules():
    """
    List all available modules in the eigsystems package.
    """
    return list(_SUBMODULES)

# Lazy import subpackages on attribute access (PEP 562)
def __getattr__(name):
    if name in _SUBMODULES:
        return importlib.import_module(f".{name}", __name__)
    if name in _LAZY_IMPORTS:
        module_path, attr_name = _LAZY_IMPORTS[name]
        value = getattr(importlib.import_module(module_path, __name__), attr_name)
        globals()[name] = value
        return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

def __dir__():
    return sorted(list(globals().keys()) + __all__)
