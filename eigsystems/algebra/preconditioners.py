'''
file:       eigsystems/algebra/preconditioners.py

Preconditioners built from the optional preconditioning operator of an
eigenvalue system. They are never part of the eigenproblem itself, the
backends use them to accelerate inner linear solves:

    - shift-invert ARPACK   : GMRES on (A - sigma B)
    - generalized ARPACK    : CG on B
    - LOBPCG                : the `M` argument

A preconditioner M approximates the operator P it is set up from,
M ~ P + sigma I, and `apply(r)` returns M^{-1} r.
'''

from abc import ABC, abstractmethod
from typing import Union, Optional, Any
from enum import Enum, auto, unique

import numpy as np
import scipy.sparse as sps
import scipy.sparse.linalg as spsla
from scipy.sparse.linalg import LinearOperator
from numpy.typing import NDArray

from .matrices import ShellMatrix, to_operator
from .eigen.definitions import EigenSolverError, EigenSolverErrorMsg
from ..common.flog import get_global_logger, Logger

# ---------------------------------------------------------------------

_TOLERANCE_SMALL        = 1e-13
_TOLERANCE_BIG          = 1e13

@unique
class PreconditionerType(Enum):
    '''
    Available preconditioners.
    '''
    IDENTITY    = auto()
    JACOBI      = auto()
    ILU         = auto()

# ---------------------------------------------------------------------
#! Preconditioners
# ---------------------------------------------------------------------

class Preconditioner(ABC):
    """
    Abstract base class for preconditioners M used in inner linear solves.

    Subclasses implement `_set_up(operator, sigma)` and `_apply(r)`.
    `set_up` accepts stored matrices, shell matrices and raw SciPy operators.

    Attributes:
        sigma (float):
            Shift added during set up, M ~ P + sigma I.
        type (PreconditionerType):
            The specific type of the preconditioner. Set by subclass.
    """

    _type : Optional[PreconditionerType]    = None
    _name : str                             = "General Preconditioner"
    _dcol : str                             = "yellow"

    def __init__(self, logger: Optional[Logger] = None):
        self._logger    : Logger    = logger if logger is not None else get_global_logger()
        self._sigma     : float     = 0.0
        self._n         : int       = 0
        self._dtype                 = np.dtype(np.float64)
        self._is_set    : bool      = False

    # -----------------------------------------------------------------
    #! Logging
    # -----------------------------------------------------------------

    def log(self, msg : str, log : Union[int, str] = Logger.LEVELS_R['info'],
        lvl : int = 0, color : str = "white", append_msg = True):
        """
        Log the message, prefixed with the preconditioner name.
        """
        if isinstance(log, str):
            log = Logger.LEVELS_R[log]
        if append_msg:
            msg = f"[{self._name}] {msg}"
        msg = self._logger.colorize(msg, color) if self._logger.has_colors else msg
        self._logger.say(msg, log=log, lvl=lvl)

    # -----------------------------------------------------------------
    #! Set up / apply
    # -----------------------------------------------------------------

    def set_up(self, operator: Any, sigma: float = 0.0) -> 'Preconditioner':
        '''
        Build the preconditioner from an operator.

        Parameters:
            operator:
                SparseMatrix, ShellMatrix, scipy.sparse matrix, ndarray or LinearOperator.
            sigma (float):
                Shift, the preconditioner approximates operator + sigma I.
        '''
        if operator is None:
            raise EigenSolverError(EigenSolverErrorMsg.INVALID_INPUT, "Cannot set up a preconditioner without an operator")
        if operator.shape[0] != operator.shape[1]:
            raise EigenSolverError(EigenSolverErrorMsg.DIM_MISMATCH,
                                f"Preconditioning operator must be square, got {operator.shape}")
        self._n         = operator.shape[0]
        self._dtype     = np.dtype(operator.dtype)
        self._sigma     = sigma
        self._set_up(operator, sigma)
        self._is_set    = True
        self.log(f"Set up for n={self._n} with sigma={sigma}", log='debug', lvl=1, color=self._dcol)
        return self

    @abstractmethod
    def _set_up(self, operator: Any, sigma: float):
        pass

    @abstractmethod
    def _apply(self, r: NDArray) -> NDArray:
        pass

    def apply(self, r: NDArray) -> NDArray:
        '''
        Return M^{-1} r for a vector (n,) or a block of vectors (n, k).
        '''
        if not self._is_set:
            raise RuntimeError(f"Preconditioner data not available - ({self._name}) not set up. Call set_up() first.")
        return self._apply(np.asarray(r))

    def __call__(self, r: NDArray) -> NDArray:
        return self.apply(r)

    def as_linear_operator(self) -> LinearOperator:
        if not self._is_set:
            raise RuntimeError(f"Preconditioner ({self._name}) not set up. Call set_up() first.")
        return LinearOperator((self._n, self._n), matvec=self.apply, matmat=self.apply, dtype=self._dtype)

    # -----------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def type(self) -> Optional[PreconditionerType]:
        return self._type

    @property
    def sigma(self) -> float:
        return self._sigma

    @property
    def is_set(self) -> bool:
        return self._is_set

    def __repr__(self) -> str:
        return f"{self._name}(sigma={self._sigma}, n={self._n}, set={self._is_set})"

# ---------------------------------------------------------------------

class IdentityPreconditioner(Preconditioner):
    """
    Identity preconditioner, M^{-1} r = r.
    """
    _name = "Identity Preconditioner"
    _type = PreconditionerType.IDENTITY

    def _set_up(self, operator: Any, sigma: float):
        pass

    def _apply(self, r: NDArray) -> NDArray:
        return r.copy()

# ---------------------------------------------------------------------

class JacobiPreconditioner(Preconditioner):
    """
    Jacobi (Diagonal) Preconditioner. M = diag(P + sigma*I).

    Math:
        M^{-1}r = [1 / (P_ii + sigma)] * r_i

    Works for stored operators and for shell operators with an attached
    diagonal function. Near-zero diagonal entries leave the corresponding
    component at zero.

    References:
        - Saad, Y. (2003). Iterative Methods for Sparse Linear Systems (2nd ed.). SIAM. Chapter 10.
    """
    _name = "Jacobi Preconditioner"
    _type = PreconditionerType.JACOBI

    def __init__(self,
                tol_small       : float             = _TOLERANCE_SMALL,
                logger          : Optional[Logger]  = None):
        super().__init__(logger=logger)
        self._tol_small                     = tol_small
        self._inv_diag : Optional[NDArray]  = None

    @staticmethod
    def _compute_inv_diag(diag: NDArray, sigma: float, tol_small: float) -> NDArray:
        reg_diag    = diag + sigma
        is_small    = np.abs(reg_diag) < tol_small
        safe_diag   = np.where(is_small, 1.0, reg_diag)
        return np.where(is_small, 0.0, 1.0 / safe_diag)

    @staticmethod
    def extract_diagonal(operator: Any) -> NDArray:
        '''
        Diagonal of a stored or shell operator.
        '''
        if isinstance(operator, ShellMatrix):
            return operator.get_diagonal()
        op = to_operator(operator)
        if sps.issparse(op):
            return np.asarray(op.diagonal())
        if isinstance(op, np.ndarray):
            return np.diag(op).copy()
        raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                            "Jacobi preconditioner needs the diagonal of the operator")

    def _set_up(self, operator: Any, sigma: float):
        diag            = self.extract_diagonal(operator)
        self._inv_diag  = self._compute_inv_diag(diag, sigma, self._tol_small)

    def _apply(self, r: NDArray) -> NDArray:
        if r.ndim == 2:
            return self._inv_diag[:, None] * r
        return self._inv_diag * r.reshape(-1)

# ---------------------------------------------------------------------

class IncompleteLUPreconditioner(Preconditioner):
    """
    Incomplete LU preconditioner (scipy.sparse.linalg.spilu).
    Only stored operators can be factorized.
    """
    _name = "Incomplete LU Preconditioner"
    _type = PreconditionerType.ILU

    def __init__(self,
                drop_tol        : float             = 1e-4,
                fill_factor     : float             = 10.0,
                logger          : Optional[Logger]  = None):
        super().__init__(logger=logger)
        self._drop_tol      = drop_tol
        self._fill_factor   = fill_factor
        self._ilu           = None

    def _set_up(self, operator: Any, sigma: float):
        if isinstance(operator, ShellMatrix):
            raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                                "Incomplete LU needs a stored preconditioning operator")
        op = to_operator(operator)
        if not (sps.issparse(op) or isinstance(op, np.ndarray)):
            raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                                "Incomplete LU needs a stored preconditioning operator")
        mat = sps.csc_matrix(op)
        if sigma != 0.0:
            mat = (mat + sigma * sps.identity(mat.shape[0], dtype=mat.dtype, format='csc')).tocsc()
        try:
            self._ilu = spsla.spilu(mat, drop_tol=self._drop_tol, fill_factor=self._fill_factor)
        except RuntimeError as err:
            raise EigenSolverError(EigenSolverErrorMsg.BACKEND_FAILURE, f"Incomplete LU failed: {err}") from err

    def _apply(self, r: NDArray) -> NDArray:
        if r.ndim == 2 and r.shape[1] == 1:
            return self._ilu.solve(r.reshape(-1)).reshape(-1, 1)
        return self._ilu.solve(r)

# ---------------------------------------------------------------------
#! Factory
# ---------------------------------------------------------------------

_PRECOND_CLASSES = {
    PreconditionerType.IDENTITY : IdentityPreconditioner,
    PreconditionerType.JACOBI   : JacobiPreconditioner,
    PreconditionerType.ILU      : IncompleteLUPreconditioner,
}

def choose_precond(precond_id: Any, **kwargs) -> Optional[Preconditioner]:
    """
    Factory function to select and instantiate a preconditioner.

    Args:
        precond_id (Any): Identifier (None, instance, PreconditionerType or str).
        **kwargs: Additional arguments for the constructor.

    Returns:
        Preconditioner: An instance of the selected preconditioner, or None.
    """
    if precond_id is None:
        return None

    if isinstance(precond_id, Preconditioner):
        return precond_id

    if isinstance(precond_id, str):
        key = precond_id.strip().upper()
        key = 'ILU' if key in ('ILU', 'INCOMPLETE_LU', 'INCOMPLETELU') else key
        try:
            precond_id = PreconditionerType[key]
        except KeyError as err:
            raise ValueError(f"Unknown preconditioner: {precond_id!r}") from err

    if not isinstance(precond_id, PreconditionerType):
        raise TypeError(f"Invalid preconditioner identifier type: {type(precond_id).__name__}")

    return _PRECOND_CLASSES[precond_id](**kwargs)

# =====================================================================
#! End of File
# =====================================================================
