"""
Legacy mesh file readers.

    - ExodusFile : attribute reader for Exodus II (netCDF-4/HDF5) files
"""

from typing import TYPE_CHECKING
import importlib

_LAZY_IMPORTS = {
    'ExodusFile'    : ('.exodus', 'ExodusFile'),
    'ObjectType'    : ('.exodus', 'ObjectType'),
    'ExStatus'      : ('.exodus', 'ExStatus'),
    'ExErrorCode'   : ('.exodus', 'ExErrorCode'),
    'ExResult'      : ('.exodus', 'ExResult'),
}

_LAZY_CACHE = {}

if TYPE_CHECKING:
    from .exodus import ExodusFile, ObjectType, ExStatus, ExErrorCode, ExResult

def __getattr__(name: str):
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
