"""
Eigenvalue Problem Definitions

Enumerations describing the eigenvalue problem, the solver backend and the
part of the spectrum of interest, together with the error type raised by the
solver adapters.

Problem kinds:
    - NHEP  : Non-Hermitian standard problem            A x = l x
    - HEP   : Hermitian standard problem                A x = l x
    - GNHEP : Generalized non-Hermitian problem         A x = l B x
    - GHEP  : Generalized Hermitian problem             A x = l B x, B SPD
    - GHIEP : Generalized Hermitian-indefinite problem  A x = l B x
"""

from enum import Enum, auto, unique
from typing import Optional

# ----------------------------------------------------------------------------------------
#! Enumerations
# ----------------------------------------------------------------------------------------

@unique
class EigenSolverType(Enum):
    """
    Enumeration of the supported eigensolver backends.
    """
    LAPACK          = auto()    # dense decomposition, all eigenpairs
    ARNOLDI         = auto()    # ARPACK implicitly restarted Arnoldi
    KRYLOVSCHUR     = auto()    # restarted Krylov method (ARPACK)
    LANCZOS         = auto()    # ARPACK implicitly restarted Lanczos
    LOBPCG          = auto()    # locally optimal block preconditioned CG

    @classmethod
    def from_str(cls, name: str) -> 'EigenSolverType':
        key = name.strip().upper().replace('-', '').replace('_', '')
        for member in cls:
            if member.name.replace('_', '') == key:
                return member
        raise ValueError(f"Unknown eigensolver type: {name!r}")

@unique
class EigenProblemType(Enum):
    """
    Enumeration of the eigenvalue problem kinds.
    """
    NHEP            = auto()
    HEP             = auto()
    GNHEP           = auto()
    GHEP            = auto()
    GHIEP           = auto()

    @property
    def generalized(self) -> bool:
        return self in (EigenProblemType.GNHEP, EigenProblemType.GHEP, EigenProblemType.GHIEP)

    @property
    def hermitian(self) -> bool:
        return self in (EigenProblemType.HEP, EigenProblemType.GHEP, EigenProblemType.GHIEP)

@unique
class PositionOfSpectrum(Enum):
    """
    Which part of the spectrum the solver should converge to.
    TARGET_* positions are relative to a user target (shift-invert).
    """
    LARGEST_MAGNITUDE   = auto()
    SMALLEST_MAGNITUDE  = auto()
    TARGET_MAGNITUDE    = auto()
    LARGEST_REAL        = auto()
    SMALLEST_REAL       = auto()
    TARGET_REAL         = auto()
    LARGEST_IMAGINARY   = auto()
    SMALLEST_IMAGINARY  = auto()
    TARGET_IMAGINARY    = auto()

    @property
    def is_target(self) -> bool:
        return self.name.startswith('TARGET')

# ----------------------------------------------------------------------------------------
#! Errors
# ----------------------------------------------------------------------------------------

class EigenSolverErrorMsg(Enum):
    '''
    Enumeration class for eigensolver error messages.
    '''
    INVALID_INPUT       = 201
    DIM_MISMATCH        = 202
    INDEX_OUT_OF_RANGE  = 203
    BACKEND_FAILURE     = 204
    INNER_SOLVE_FAILED  = 205
    NOT_SOLVED          = 206
    UNSUPPORTED         = 207

    def __str__(self):
        return self.name.replace('_', ' ').title()

    def __repr__(self):
        return f"<{self.__class__.__name__}.{self.name}: '{str(self)}'>"

class EigenSolverError(Exception):
    '''
    Raised by the eigensolver adapters. Backend failures are wrapped and
    propagated unchanged to the caller, never retried.
    '''
    def __init__(self, code: EigenSolverErrorMsg, message: Optional[str] = None):
        self.code       = code
        self.message    = message if message else str(code)
        super().__init__(self.message)

    def __str__(self):
        return f"[EigenSolverError {self.code.name} ({self.code.value})]: {self.message}"

    def __repr__(self):
        return self.__str__()

# ------------------------------------------------------------------------------------------------
#! EOF
# ------------------------------------------------------------------------------------------------
