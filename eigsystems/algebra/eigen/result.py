"""
Eigenvalue Solver Result Types and Adapter Base

Standardized result container for eigenvalue computations and the abstract
adapter every backend implements. The eigenvalue-system controller only
talks to `EigenSolver`, never to a backend directly.
"""

from abc import ABC, abstractmethod
from typing import Optional, NamedTuple, Tuple, Union, Any

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from .definitions import (
    EigenSolverType, EigenProblemType, PositionOfSpectrum,
    EigenSolverError, EigenSolverErrorMsg
)
from ..matrices import to_operator, is_stored
from ..preconditioners import Preconditioner, choose_precond
from ...common.flog import get_global_logger, Logger

# ---------------------------------------------------------------------------------

class EigenResult(NamedTuple):
    r"""
    Standardized result from eigenvalue solvers.

    Only converged eigenpairs are stored, so `n_converged == len(eigenvalues)`.

    Attributes:
        eigenvalues:
            Converged eigenvalues, ordered by the requested position of spectrum
        eigenvectors:
            Corresponding eigenvectors as columns
        iterations:
            Number of iterations performed (operator applications for ARPACK)
        converged:
            Whether all requested eigenpairs converged
        residual_norms:
            Residual norms ||A v - \lambda B v|| for each eigenpair
        n_requested:
            Number of eigenpairs that were requested
    """
    eigenvalues     : NDArray
    eigenvectors    : NDArray
    iterations      : int               = 0
    converged       : bool              = True
    residual_norms  : Optional[NDArray] = None
    n_requested     : int               = 0

    @property
    def n_converged(self) -> int:
        return 0 if self.eigenvalues is None else len(self.eigenvalues)

    def __repr__(self):
        return (f"EigenResult(n_eigenvalues={self.n_converged}, n_requested={self.n_requested}, "
                f"converged={self.converged}, iterations={self.iterations})")

    def __str__(self):
        return f'converged={self.converged}, iterations={self.iterations}'

# ---------------------------------------------------------------------------------

class EigenSolver(ABC):
    """
    Abstract eigensolver adapter.

    Holds the problem configuration (problem type, position of spectrum,
    target, preconditioner kind, initial space) and the result of the latest
    solve. Subclasses implement `_solve`, which receives SciPy operators for
    A and B and the raw preconditioning operator.

    Example:
        >>> solver = choose_eigensolver('lapack')
        >>> n_conv, n_its = solver.solve(A, nev=3)
        >>> re, im, vec = solver.get_eigenpair(0)
    """

    _type           : Optional[EigenSolverType] = None
    _name           : str                       = "Eigen Solver"
    _dcol           : str                       = "blue"
    _supported      : Tuple[EigenProblemType, ...] = tuple(EigenProblemType)

    def __init__(self,
                problem_type    : EigenProblemType      = EigenProblemType.NHEP,
                position        : PositionOfSpectrum    = PositionOfSpectrum.LARGEST_MAGNITUDE,
                target          : Optional[complex]     = None,
                preconditioner  : Any                   = 'jacobi',
                logger          : Optional[Logger]      = None):
        self._logger        : Logger                = logger if logger is not None else get_global_logger()
        self._problem_type  : EigenProblemType      = problem_type
        self._position      : PositionOfSpectrum    = position
        self._target        : Optional[complex]     = target
        self._precond_id                            = preconditioner
        self._initial_space : Optional[NDArray]     = None
        self._result        : Optional[EigenResult] = None
        self._A                                     = None
        self._B                                     = None

    # -----------------------------------------------------------------
    #! Logging
    # -----------------------------------------------------------------

    def log(self, msg : str, log : Union[int, str] = 'info', lvl : int = 0, color : str = "white"):
        if isinstance(log, str):
            log = Logger.LEVELS_R[log]
        msg = f"[{self._name}] {msg}"
        if self._logger.has_colors:
            msg = self._logger.colorize(msg, color)
        self._logger.say(msg, log=log, lvl=lvl)

    # -----------------------------------------------------------------
    #! Configuration
    # -----------------------------------------------------------------

    @property
    def solver_type(self) -> Optional[EigenSolverType]:
        return self._type

    @property
    def eigenproblem_type(self) -> EigenProblemType:
        return self._problem_type

    def set_eigenproblem_type(self, kind: EigenProblemType):
        self._problem_type = kind

    @property
    def position_of_spectrum(self) -> PositionOfSpectrum:
        return self._position

    @property
    def target(self) -> Optional[complex]:
        return self._target

    def set_position_of_spectrum(self, position: PositionOfSpectrum, target: Optional[complex] = None):
        '''
        Select the part of the spectrum. TARGET_* positions use `target`
        (0.0 when never given).
        '''
        self._position = position
        if target is not None:
            self._target = target

    def set_initial_space(self, vector: Optional[NDArray]):
        self._initial_space = None if vector is None else np.array(vector, copy=True).reshape(-1)

    @property
    def initial_space(self) -> Optional[NDArray]:
        return self._initial_space

    @property
    def preconditioner(self):
        return self._precond_id

    def set_preconditioner(self, precond_id: Any):
        self._precond_id = precond_id

    def clear(self):
        '''
        Drop the results of the latest solve. Configuration is kept.
        '''
        self._result    = None
        self._A         = None
        self._B         = None

    # -----------------------------------------------------------------
    #! Solve
    # -----------------------------------------------------------------

    def solve(self,
            A,
            B               = None,
            precond         = None,
            nev             : int               = 5,
            ncv             : Optional[int]     = None,
            tol             : float             = 1e-10,
            max_iter        : int               = 1000) -> Tuple[int, int]:
        '''
        Solve the configured eigenproblem.

        Parameters:
            A, B:
                Stored, shell or raw SciPy operators. B is used only for
                generalized problem types and is required for them.
            precond:
                Optional preconditioning operator.
            nev (int):
                Number of requested eigenpairs.
            ncv (int):
                Number of basis vectors (backend default when None).
            tol (float):
                Convergence tolerance.
            max_iter (int):
                Maximum number of iterations.

        Returns:
            (n_converged, n_iterations)
        '''
        if nev < 1:
            raise EigenSolverError(EigenSolverErrorMsg.INVALID_INPUT, f"nev must be >= 1, got {nev}")
        if self._problem_type not in self._supported:
            raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                                f"{self._name} does not support {self._problem_type.name} problems")

        op_A = to_operator(A)
        if op_A is None:
            raise EigenSolverError(EigenSolverErrorMsg.INVALID_INPUT, "Operator A is required")
        n = op_A.shape[0]
        if op_A.shape[1] != n:
            raise EigenSolverError(EigenSolverErrorMsg.DIM_MISMATCH, f"A must be square, got shape {op_A.shape}")

        op_B = None
        if self._problem_type.generalized:
            op_B = to_operator(B)
            if op_B is None:
                raise EigenSolverError(EigenSolverErrorMsg.INVALID_INPUT,
                                    f"Operator B is required for {self._problem_type.name} problems")
            if op_B.shape != op_A.shape:
                raise EigenSolverError(EigenSolverErrorMsg.DIM_MISMATCH,
                                    f"B has shape {op_B.shape}, expected {op_A.shape}")
        elif B is not None:
            self.log("Ignoring B for a standard eigenproblem", log='debug', lvl=1)

        if self._problem_type.hermitian:
            for label, op in (('A', op_A), ('B', op_B)):
                if op is not None and is_stored(op) and not is_hermitian(op):
                    raise EigenSolverError(EigenSolverErrorMsg.INVALID_INPUT,
                                        f"Operator {label} of a {self._problem_type.name} problem is not Hermitian")

        if precond is not None and tuple(precond.shape) != tuple(op_A.shape):
            raise EigenSolverError(EigenSolverErrorMsg.DIM_MISMATCH,
                                f"Preconditioning operator has shape {precond.shape}, expected {op_A.shape}")

        v0 = self._initial_space
        if v0 is not None and v0.shape[0] != n:
            raise EigenSolverError(EigenSolverErrorMsg.DIM_MISMATCH,
                                f"Initial space has length {v0.shape[0]}, expected {n}")

        self._result = None
        self.log(f"Solving {self._problem_type.name} (n={n}, nev={nev}, tol={tol:.1e}, "
                f"position={self._position.name})", log='debug', lvl=1, color=self._dcol)

        result          = self._solve(op_A, op_B, precond, nev, ncv, tol, max_iter, v0)
        self._result    = result
        self._A         = op_A
        self._B         = op_B

        if result.n_converged < nev:
            self.log(f"Only {result.n_converged} of {nev} requested eigenpairs converged "
                    f"after {result.iterations} iterations", log='warning', lvl=1, color='yellow')
        return result.n_converged, result.iterations

    @abstractmethod
    def _solve(self, A, B, precond, nev: int, ncv: Optional[int], tol: float,
            max_iter: int, v0: Optional[NDArray]) -> EigenResult:
        pass

    # -----------------------------------------------------------------
    #! Results
    # -----------------------------------------------------------------

    @property
    def result(self) -> Optional[EigenResult]:
        return self._result

    @property
    def n_converged(self) -> int:
        return 0 if self._result is None else self._result.n_converged

    @property
    def n_iterations(self) -> int:
        return 0 if self._result is None else self._result.iterations

    def _check_index(self, i: int):
        if self._result is None:
            raise EigenSolverError(EigenSolverErrorMsg.NOT_SOLVED, "No eigenpairs available, call solve() first")
        if not 0 <= i < self._result.n_converged:
            raise EigenSolverError(EigenSolverErrorMsg.INDEX_OUT_OF_RANGE,
                                f"Eigenpair index {i} out of range, {self._result.n_converged} converged")

    def get_eigenvalue(self, i: int) -> Tuple[float, float]:
        self._check_index(i)
        value = self._result.eigenvalues[i]
        return float(np.real(value)), float(np.imag(value))

    def get_eigenpair(self, i: int) -> Tuple[float, float, NDArray]:
        self._check_index(i)
        re, im = self.get_eigenvalue(i)
        return re, im, self._result.eigenvectors[:, i]

    def get_relative_error(self, i: int) -> float:
        '''
        ||A v - lambda B v|| / (|lambda| ||v||), or the absolute residual when lambda = 0.
        '''
        self._check_index(i)
        value   = self._result.eigenvalues[i]
        vec     = self._result.eigenvectors[:, i]
        res     = residual_norms(self._A, self._B, np.array([value]), vec.reshape(-1, 1))[0]
        scale   = abs(value) * np.linalg.norm(vec)
        return float(res / scale) if scale > 0 else float(res)

    # -----------------------------------------------------------------
    #! Helpers shared by backends
    # -----------------------------------------------------------------

    def _make_preconditioner(self, precond, sigma: float = 0.0) -> Optional[Preconditioner]:
        '''
        Build the configured preconditioner from the preconditioning operator.
        '''
        if precond is None:
            return None
        prec = choose_precond(self._precond_id, logger=self._logger) \
            if not isinstance(self._precond_id, Preconditioner) else self._precond_id
        if prec is None:
            return None
        return prec.set_up(precond, sigma=sigma)

    def _target_value(self) -> complex:
        return 0.0 if self._target is None else self._target

    def _select(self, eigenvalues: NDArray, k: int) -> NDArray:
        """Indices of the k eigenvalues selected by the position of spectrum."""
        return select_eigenvalues(eigenvalues, k, self._position, self._target_value())

    def __repr__(self):
        return f"{self.__class__.__name__}(problem={self._problem_type.name}, position={self._position.name})"

# ---------------------------------------------------------------------------------

def select_eigenvalues(eigenvalues: NDArray, k: int, position: PositionOfSpectrum, target: complex = 0.0) -> NDArray:
    """Select k eigenvalue indices according to the position of spectrum."""
    P = PositionOfSpectrum
    if position is P.LARGEST_MAGNITUDE:
        order = np.argsort(-np.abs(eigenvalues), kind='stable')
    elif position is P.SMALLEST_MAGNITUDE:
        order = np.argsort(np.abs(eigenvalues), kind='stable')
    elif position is P.LARGEST_REAL:
        order = np.argsort(-np.real(eigenvalues), kind='stable')
    elif position is P.SMALLEST_REAL:
        order = np.argsort(np.real(eigenvalues), kind='stable')
    elif position is P.LARGEST_IMAGINARY:
        order = np.argsort(-np.imag(eigenvalues), kind='stable')
    elif position is P.SMALLEST_IMAGINARY:
        order = np.argsort(np.imag(eigenvalues), kind='stable')
    elif position is P.TARGET_MAGNITUDE:
        order = np.argsort(np.abs(eigenvalues - target), kind='stable')
    elif position is P.TARGET_REAL:
        order = np.argsort(np.abs(np.real(eigenvalues) - np.real(target)), kind='stable')
    else:
        order = np.argsort(np.abs(np.imag(eigenvalues) - np.imag(target)), kind='stable')
    return order[:k]

def residual_norms(A, B, eigenvalues: NDArray, eigenvectors: NDArray) -> NDArray:
    """Residual norms ||A v_i - lambda_i B v_i|| (B = I when None)."""
    if eigenvectors.size == 0:
        return np.zeros(0)
    AV  = np.asarray(A @ eigenvectors)
    BV  = eigenvectors if B is None else np.asarray(B @ eigenvectors)
    AV  = AV.reshape(eigenvectors.shape)
    BV  = BV.reshape(eigenvectors.shape)
    return np.linalg.norm(AV - BV * eigenvalues[None, :], axis=0)

def is_hermitian(A, tol=1e-12) -> bool:
    """Check if A is symmetric/Hermitian, works for dense and sparse. tol is relative to max|A|."""
    if sp.issparse(A):
        diff    = (A - A.T.conjugate()).tocoo()
        scale   = max(1.0, abs(A).max()) if A.nnz else 1.0
        return diff.nnz == 0 or bool(np.all(np.abs(diff.data) <= tol * scale))
    A       = np.asarray(A)
    scale   = max(1.0, float(np.abs(A).max())) if A.size else 1.0
    return bool(np.allclose(A, A.T.conj(), rtol=0.0, atol=tol * scale))

# ------------------------------------------------------------------------------------------------
#! EOF
# ------------------------------------------------------------------------------------------------
