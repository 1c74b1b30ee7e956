"""
Common utilities shared by the eigenvalue-system components.

**Logging and Monitoring:**
- Console and file logging with verbosity control and indentation levels

Example:
    >>> from eigsystems.common import get_global_logger
    >>> logger = get_global_logger()
    >>> logger.info("ready")
"""

import  importlib
from    typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .flog          import Logger, get_global_logger

# Lazy loading registry
_LAZY_IMPORTS = {
    # logging
    'Logger'                    : ('.flog', 'Logger'),
    'Colors'                    : ('.flog', 'Colors'),
    'get_global_logger'         : ('.flog', 'get_global_logger'),
}

_LOADED = {}

def __getattr__(name: str):
    if name in _LOADED:
        return _LOADED[name]

    if name not in _LAZY_IMPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_path, attr_name  = _LAZY_IMPORTS[name]
    module                  = importlib.import_module(module_path, package=__name__)
    result                  = module if attr_name is None else getattr(module, attr_name)
    _LOADED[name]           = result
    return result

__all__ = list(_LAZY_IMPORTS.keys())

# ------------------------------------------------------------------------------------------------
#! EOF
# ------------------------------------------------------------------------------------------------
