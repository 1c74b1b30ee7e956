'''
file:       eigsystems/systems/eigen_system.py

Eigenvalue system controller.

An `EigenSystem` owns the operators of the standard problem A x = l x or the
generalized problem A x = l B x, an optional preconditioning operator and a
registry of named auxiliary matrices. Operators are either stored sparse
matrices or matrix-free shell operators. Assembly is delegated to a user
callback, the numerical solve to an `EigenSolver` adapter.

Lifecycle:
    UNINITIALIZED --init--> READY --assemble--> ASSEMBLED --solve--> SOLVED
    clear()  returns to UNINITIALIZED from any state
    reinit() returns to READY from any state
'''

from typing import Optional, Union, Callable, Any, Tuple
from enum import IntEnum, unique

import numpy as np
from numpy.typing import NDArray

from ..algebra.matrices import SparseMatrix, ShellMatrix, ParallelType, MatrixBuildType
from ..algebra.eigen.definitions import EigenSolverType, EigenProblemType
from ..algebra.eigen.result import EigenSolver
from ..algebra.eigen.factory import choose_eigensolver
from ..common.flog import get_global_logger, Logger
from .errors import EigenSystemError, EigenSystemErrorMsg
from .parameters import EigenSystemParameters
from .dof_map import DofMap
from .operators import OperatorStorage, OperatorKind, MatrixRegistry

AssembleFunc = Callable[['EigenSystem'], Any]

@unique
class SystemState(IntEnum):
    UNINITIALIZED   = 0
    READY           = 1
    ASSEMBLED       = 2
    SOLVED          = 3

# ----------------------------------------------------------------------

class EigenSystem:
    """
    Controller of an algebraic eigenvalue problem on a DOF space.

    Parameters:
        dof_map (DofMap):
            DOF space, sets the dimension of all operators and vectors.
        name (str):
            System name, used in log messages.
        number (int):
            System number within its parent collection.
        solver_type (EigenSolverType | str):
            Backend of the owned solver adapter.
        parameters (EigenSystemParameters):
            nev, ncv, tolerance and maximum iterations read by `solve()`.
        logger (Logger):
            Defaults to the global logger.

    Reading `precond_matrix` or `shell_precond_matrix` requests the
    preconditioning operator, allocating it when the system is initialized.

    Example:
        >>> system = EigenSystem(DofMap(100))
        >>> system.set_eigenproblem_type(EigenProblemType.GHEP)
        >>> system.attach_assemble_function(assemble_laplacian)
        >>> system.init()
        >>> n_conv, n_its = system.solve()
        >>> re, im = system.get_eigenpair(0)     # system.solution holds the vector
    """

    _dcol = "green"

    def __init__(self,
                dof_map         : DofMap,
                name            : str                                   = "EigenSystem",
                number          : int                                   = 0,
                solver_type     : Union[EigenSolverType, str]           = EigenSolverType.KRYLOVSCHUR,
                parameters      : Optional[EigenSystemParameters]       = None,
                logger          : Optional[Logger]                      = None):
        self._dof_map                               = dof_map
        self._name                                  = name
        self._number                                = number
        self._logger        : Logger                = logger if logger is not None else get_global_logger()
        self.parameters     : EigenSystemParameters = parameters if parameters is not None else EigenSystemParameters()

        self._eigen_solver  : EigenSolver           = choose_eigensolver(solver_type, logger=self._logger)
        self._problem_type  : EigenProblemType      = EigenProblemType.NHEP
        self._generalized   : bool                  = False
        self._eigen_solver.set_eigenproblem_type(self._problem_type)

        self._use_shell_matrices                    = False
        self._use_shell_precond                     = False
        self._precond_requested                     = False
        self.assemble_before_solve                  = True

        self._storage                               = OperatorStorage()
        self._registry                              = MatrixRegistry()
        self._solution      : NDArray               = np.zeros(0, dtype=dof_map.dtype)
        self._assemble_fn   : Optional[Callable]    = None

        self._n_converged                           = 0
        self._n_iterations                          = 0
        self._state                                 = SystemState.UNINITIALIZED

    # ------------------------------------------------------------------
    #! Logging
    # ------------------------------------------------------------------

    def log(self, msg: str, log: Union[int, str] = 'info', lvl: int = 0, color: str = "white"):
        if isinstance(log, str):
            log = Logger.LEVELS_R[log]
        msg = f"[{self._name}] {msg}"
        if self._logger.has_colors:
            msg = self._logger.colorize(msg, color)
        self._logger.say(msg, log=log, lvl=lvl)

    # ------------------------------------------------------------------
    #! Lifecycle
    # ------------------------------------------------------------------

    def clear(self):
        '''
        Release all operators and results. Configuration is kept.
        '''
        self._storage.release_all()
        self._registry.clear()
        self._eigen_solver.clear()
        self._eigen_solver.set_initial_space(None)
        self._solution      = np.zeros(0, dtype=self._dof_map.dtype)
        self._n_converged   = 0
        self._n_iterations  = 0
        self._state         = SystemState.UNINITIALIZED
        self.log("Cleared", log='debug', lvl=1)

    def init(self):
        self.init_data()

    def init_data(self):
        '''
        Size the solution vector and allocate the operators.
        '''
        self._solution  = self._dof_map.build_vector()
        self.init_matrices()
        self._state     = SystemState.READY
        self.log(f"Initialized with n_dofs={self.n_dofs}", log='debug', lvl=1)

    def reinit(self):
        '''
        Rebuild everything at the current DOF count. Operators are fresh,
        auxiliary matrices keep their names and are zeroed.
        An initial space of a different length is dropped.
        '''
        self._solution      = self._dof_map.build_vector()
        self.init_matrices()
        self._eigen_solver.clear()
        v0 = self._eigen_solver.initial_space
        if v0 is not None and v0.shape[0] != self.n_dofs:
            self._eigen_solver.set_initial_space(None)
        self._n_converged   = 0
        self._n_iterations  = 0
        self._state         = SystemState.READY
        self.log(f"Reinitialized with n_dofs={self.n_dofs}", log='debug', lvl=1)

    def init_matrices(self):
        '''
        Allocate A, B (generalized problems only) and the preconditioning
        operator (only when requested), in the representation selected by
        the shell flags.
        '''
        n       = self.n_dofs
        kind    = OperatorKind.SHELL if self._use_shell_matrices else OperatorKind.STORED

        self._storage.allocate('A', kind, n, builder=self._builder(kind))
        if self._generalized:
            self._storage.allocate('B', kind, n, builder=self._builder(kind))
        else:
            self._storage.release('B')

        if self._precond_requested:
            self._allocate_precond()
        else:
            self._storage.release('precond')

        self._registry.reinit(n)

    def _builder(self, kind: OperatorKind):
        if kind is OperatorKind.SHELL:
            return lambda n: self._dof_map.build_shell_matrix()
        return lambda n: self._dof_map.build_matrix()

    def _allocate_precond(self):
        kind = OperatorKind.SHELL if self._use_shell_precond else OperatorKind.STORED
        self._storage.allocate('precond', kind, self.n_dofs, builder=self._builder(kind))

    # ------------------------------------------------------------------
    #! Assembly
    # ------------------------------------------------------------------

    def attach_assemble_function(self, fn: AssembleFunc):
        '''
        Register `fn(system)`, called by `assemble()` to fill the operators.
        '''
        self._assemble_fn = fn

    def attach_assemble_object(self, obj: Any):
        '''
        Register an object whose `assemble(system)` fills the operators.
        '''
        if not callable(getattr(obj, 'assemble', None)):
            raise TypeError(f"{type(obj).__name__} has no assemble(system) method")
        self._assemble_fn = obj.assemble

    def assemble(self):
        '''
        Run the assembly callback and close the stored operators. Stored A, B
        and the preconditioning operator are zeroed before the callback,
        auxiliary matrices are not.
        '''
        if self._state < SystemState.READY:
            raise EigenSystemError(EigenSystemErrorMsg.NOT_INITIALIZED,
                                f"System {self._name!r} must be initialized before assembly")
        if self._assemble_fn is not None:
            for role in self._storage:
                handle = self._storage.get(role, OperatorKind.STORED)
                if handle is not None:
                    handle.zero()
            self._assemble_fn(self)
        for role in self._storage:
            handle = self._storage.get(role, OperatorKind.STORED)
            if handle is not None:
                handle.close()
        for _, handle in self._registry.items():
            if isinstance(handle, SparseMatrix):
                handle.close()
        self._state = SystemState.ASSEMBLED
        self.log("Assembled", log='debug', lvl=1)

    # ------------------------------------------------------------------
    #! Solve
    # ------------------------------------------------------------------

    def solve(self) -> Tuple[int, int]:
        '''
        Solve the eigenproblem with the current parameters.

        Returns:
            (n_converged, n_iterations)
        '''
        if self._state < SystemState.READY:
            raise EigenSystemError(EigenSystemErrorMsg.NOT_INITIALIZED,
                                f"System {self._name!r} must be initialized before solving")
        if self.assemble_before_solve:
            self.assemble()
        elif self._state < SystemState.ASSEMBLED:
            raise EigenSystemError(EigenSystemErrorMsg.NOT_ASSEMBLED,
                                f"System {self._name!r} must be assembled before solving")

        if self._generalized and self._storage.kind('B') is OperatorKind.EMPTY:
            raise EigenSystemError(EigenSystemErrorMsg.INCONSISTENT_STORAGE,
                                f"{self._problem_type.name} problem without a B operator, "
                                f"call reinit() after set_eigenproblem_type()")

        p                   = self.parameters
        n_conv, n_its       = self._eigen_solver.solve(
                                    self._storage.get('A'),
                                    self._storage.get('B') if self._generalized else None,
                                    self._storage.get('precond'),
                                    nev         = p.n_eigenpairs,
                                    ncv         = p.n_basis_vectors,
                                    tol         = p.tolerance,
                                    max_iter    = p.max_iterations)
        self._set_n_converged(n_conv)
        self._set_n_iterations(n_its)
        self._state         = SystemState.SOLVED
        self.log(f"Solved: {n_conv} of {p.n_eigenpairs} eigenpairs converged in {n_its} iterations",
                log='info', color=self._dcol)
        return n_conv, n_its

    # ------------------------------------------------------------------
    #! Results
    # ------------------------------------------------------------------

    def _check_eigenpair_index(self, i: int):
        if not 0 <= i < self._n_converged:
            raise EigenSystemError(EigenSystemErrorMsg.INDEX_OUT_OF_RANGE,
                                f"Eigenpair index {i} out of range, {self._n_converged} converged")

    def get_eigenpair(self, i: int) -> Tuple[float, float]:
        '''
        Eigenvalue i as (real, imag). Copies eigenvector i into `solution`
        (its real part when the solution vector is real).
        '''
        self._check_eigenpair_index(i)
        re, im, vec = self._eigen_solver.get_eigenpair(i)
        if np.iscomplexobj(self._solution):
            self._solution[:] = vec
        else:
            self._solution[:] = np.real(vec)
        return re, im

    def get_eigenvalue(self, i: int) -> Tuple[float, float]:
        self._check_eigenpair_index(i)
        return self._eigen_solver.get_eigenvalue(i)

    def get_relative_error(self, i: int) -> float:
        self._check_eigenpair_index(i)
        return self._eigen_solver.get_relative_error(i)

    def get_n_converged(self) -> int:
        return self._n_converged

    def get_n_iterations(self) -> int:
        return self._n_iterations

    def _set_n_converged(self, n: int):
        self._n_converged = n

    def _set_n_iterations(self, n: int):
        self._n_iterations = n

    # ------------------------------------------------------------------
    #! Configuration
    # ------------------------------------------------------------------

    def set_eigenproblem_type(self, kind: EigenProblemType):
        '''
        Set the problem kind. After initialization, call reinit() so that
        B is allocated or released accordingly.
        '''
        self._problem_type  = kind
        self._generalized   = kind.generalized
        self._eigen_solver.set_eigenproblem_type(kind)

    def get_eigenproblem_type(self) -> EigenProblemType:
        return self._problem_type

    def set_initial_space(self, vector: NDArray):
        self._eigen_solver.set_initial_space(vector)

    def use_shell_matrices(self, flag: Optional[bool] = None) -> bool:
        if flag is not None:
            self._use_shell_matrices = bool(flag)
        return self._use_shell_matrices

    def use_shell_precond_matrix(self, flag: Optional[bool] = None) -> bool:
        '''
        Select the representation of the preconditioning operator. Setting
        the flag also requests the operator.
        '''
        if flag is not None:
            self._use_shell_precond = bool(flag)
            self._precond_requested = True
        return self._use_shell_precond

    def request_precond_matrix(self):
        '''
        Request a preconditioning operator. Allocated now when the system is
        initialized, otherwise by the next init_matrices().
        '''
        self._precond_requested = True
        if self._state >= SystemState.READY and self._storage.kind('precond') is OperatorKind.EMPTY:
            self._allocate_precond()

    def generalized(self) -> bool:
        return self._generalized

    def n_matrices(self) -> int:
        return 2 if self._generalized else 1

    def system_type(self) -> str:
        return "Eigen"

    # ------------------------------------------------------------------
    #! Auxiliary matrices
    # ------------------------------------------------------------------

    def add_matrix(self,
                name            : str,
                parallel_type   : ParallelType      = ParallelType.PARALLEL,
                build_type      : MatrixBuildType   = MatrixBuildType.AUTOMATIC) -> SparseMatrix:
        '''
        Register a named auxiliary matrix, sized now if the system is initialized.
        '''
        if self._registry.have(name):
            raise EigenSystemError(EigenSystemErrorMsg.DUPLICATE_MATRIX,
                                f"Cannot add matrix {name!r}: duplicate name")
        matrix = SparseMatrix(dtype=self._dof_map.dtype, parallel_type=parallel_type, build_type=build_type)
        if self._state >= SystemState.READY:
            matrix.init(self.n_dofs)
        self.log(f"Added matrix {name!r}", log='debug', lvl=1)
        return self._registry.add(name, matrix)

    def have_matrix(self, name: str) -> bool:
        return self._registry.have(name)

    def get_matrix(self, name: str) -> SparseMatrix:
        return self._registry.get(name)

    @property
    def matrices(self) -> MatrixRegistry:
        return self._registry

    # ------------------------------------------------------------------
    #! Operator handles
    # ------------------------------------------------------------------

    @property
    def matrix_A(self) -> Optional[SparseMatrix]:
        return self._storage.get('A', OperatorKind.STORED)

    @property
    def matrix_B(self) -> Optional[SparseMatrix]:
        return self._storage.get('B', OperatorKind.STORED)

    @property
    def shell_matrix_A(self) -> Optional[ShellMatrix]:
        return self._storage.get('A', OperatorKind.SHELL)

    @property
    def shell_matrix_B(self) -> Optional[ShellMatrix]:
        return self._storage.get('B', OperatorKind.SHELL)

    @property
    def precond_matrix(self) -> Optional[SparseMatrix]:
        self.request_precond_matrix()
        return self._storage.get('precond', OperatorKind.STORED)

    @property
    def shell_precond_matrix(self) -> Optional[ShellMatrix]:
        self.request_precond_matrix()
        return self._storage.get('precond', OperatorKind.SHELL)

    @property
    def storage(self) -> OperatorStorage:
        return self._storage

    # ------------------------------------------------------------------
    #! Queries
    # ------------------------------------------------------------------

    @property
    def eigen_solver(self) -> EigenSolver:
        return self._eigen_solver

    @property
    def solution(self) -> NDArray:
        return self._solution

    @property
    def state(self) -> SystemState:
        return self._state

    @property
    def n_dofs(self) -> int:
        return self._dof_map.n_dofs

    @property
    def dof_map(self) -> DofMap:
        return self._dof_map

    @property
    def name(self) -> str:
        return self._name

    @property
    def number(self) -> int:
        return self._number

    def __repr__(self):
        return (f"EigenSystem(name={self._name!r}, n_dofs={self.n_dofs}, problem={self._problem_type.name}, "
                f"state={self._state.name}, n_converged={self._n_converged})")
