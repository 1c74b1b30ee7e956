'''
Solve parameters of an eigenvalue system.

Defaults can be overridden process-wide through environment variables,
read once at import:

    EIGSYS_NEV      number of requested eigenpairs      (default 5)
    EIGSYS_NCV      number of basis vectors             (default: backend choice)
    EIGSYS_TOL      convergence tolerance               (default 1e-10)
    EIGSYS_MAXITS   maximum number of iterations        (default 1000)
'''

import  os
from    typing import Optional, Dict, Any, Mapping
from    dataclasses import dataclass, asdict, replace

# ------------------------------------------------------------------------------
#! os environment variables
# ------------------------------------------------------------------------------

EIGSYS_NEV_STR          = "EIGSYS_NEV"
EIGSYS_NCV_STR          = "EIGSYS_NCV"
EIGSYS_TOL_STR          = "EIGSYS_TOL"
EIGSYS_MAXITS_STR       = "EIGSYS_MAXITS"

DEFAULT_NEV             = 5
DEFAULT_TOL             = 1e-10
DEFAULT_MAXITS          = 1000

def _env_defaults(environ: Mapping[str, str]) -> Dict[str, Any]:
    ncv = environ.get(EIGSYS_NCV_STR, "")
    return {
        'n_eigenpairs'      : int(environ.get(EIGSYS_NEV_STR, DEFAULT_NEV)),
        'n_basis_vectors'   : int(ncv) if ncv.strip() else None,
        'tolerance'         : float(environ.get(EIGSYS_TOL_STR, DEFAULT_TOL)),
        'max_iterations'    : int(environ.get(EIGSYS_MAXITS_STR, DEFAULT_MAXITS)),
    }

_ENV_DEFAULTS           = _env_defaults(os.environ)
EIGSYS_NEV      : int           = _ENV_DEFAULTS['n_eigenpairs']
EIGSYS_NCV      : Optional[int] = _ENV_DEFAULTS['n_basis_vectors']
EIGSYS_TOL      : float         = _ENV_DEFAULTS['tolerance']
EIGSYS_MAXITS   : int           = _ENV_DEFAULTS['max_iterations']

# ------------------------------------------------------------------------------
#! Parameters
# ------------------------------------------------------------------------------

# names used by the equation-systems parameter map
_ALIASES = {
    'eigenpairs'                    : 'n_eigenpairs',
    'basis vectors'                 : 'n_basis_vectors',
    'linear solver tolerance'       : 'tolerance',
    'linear solver maximum iterations' : 'max_iterations',
    'tolerance'                     : 'tolerance',
    'max iterations'                : 'max_iterations',
}

@dataclass
class EigenSystemParameters:
    """
    Parameters read by `EigenSystem.solve()`.

    Attributes
    ----------
    n_eigenpairs : int
        Number of requested eigenpairs (nev).
    n_basis_vectors : int, optional
        Number of basis vectors (ncv), None lets the backend choose.
    tolerance : float
        Convergence tolerance passed to the backend.
    max_iterations : int
        Maximum number of backend iterations.
    """
    n_eigenpairs        : int               = EIGSYS_NEV
    n_basis_vectors     : Optional[int]     = EIGSYS_NCV
    tolerance           : float             = EIGSYS_TOL
    max_iterations      : int               = EIGSYS_MAXITS

    def __post_init__(self):
        if self.n_eigenpairs < 1:
            raise ValueError(f"n_eigenpairs must be >= 1, got {self.n_eigenpairs}")
        if self.n_basis_vectors is not None and self.n_basis_vectors <= self.n_eigenpairs:
            raise ValueError(f"n_basis_vectors must exceed n_eigenpairs={self.n_eigenpairs}, got {self.n_basis_vectors}")
        if not self.tolerance > 0.0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")

    # --------------------------------------------------------------------------

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> 'EigenSystemParameters':
        '''
        Build from a parameter map. Accepts field names and the
        equation-systems names ("eigenpairs", "basis vectors", ...).
        Unknown keys raise ValueError.
        '''
        kwargs = {}
        fields = set(cls.__dataclass_fields__)
        for key, value in params.items():
            name = key if key in fields else _ALIASES.get(key.strip().lower())
            if name is None:
                raise ValueError(f"Unknown eigen system parameter: {key!r}")
            kwargs[name] = value
        return cls(**kwargs)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> 'EigenSystemParameters':
        '''
        Build from the current environment (EIGSYS_* variables), then apply overrides.
        '''
        values = _env_defaults(os.environ if environ is None else environ)
        values.update(overrides)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def update(self, **kwargs) -> 'EigenSystemParameters':
        '''
        Copy with the given fields replaced (validated again).
        '''
        return replace(self, **kwargs)
