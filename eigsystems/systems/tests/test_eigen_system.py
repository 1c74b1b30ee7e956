'''
Tests for the eigenvalue-system controller: lifecycle, operator storage
selection, the auxiliary matrix registry and solves through the adapters.
'''

import pytest
import numpy as np
import scipy.linalg as scipy_linalg

from eigsystems.algebra.matrices import SparseMatrix, ShellMatrix
from eigsystems.algebra.eigen.definitions import (
    EigenSolverType, EigenProblemType, PositionOfSpectrum
)
from eigsystems.systems.dof_map import DofMap
from eigsystems.systems.eigen_system import EigenSystem, SystemState
from eigsystems.systems.errors import EigenSystemError, EigenSystemErrorMsg
from eigsystems.systems.operators import OperatorKind
from eigsystems.systems.parameters import EigenSystemParameters

# ----------------------------------------------------------------------

def banded_entries(n, offset=1.0, coupling=0.1):
    """(i, j, value) triplets of a symmetric tridiagonal matrix."""
    for i in range(n):
        yield i, i, offset + i
        if i + 1 < n:
            yield i, i + 1, coupling
            yield i + 1, i, coupling

def banded_dense(n, offset=1.0, coupling=0.1):
    out = np.zeros((n, n))
    for i, j, v in banded_entries(n, offset, coupling):
        out[i, j] = v
    return out

def assemble_identity(system):
    for i in range(system.n_dofs):
        system.matrix_A.set(i, i, 1.0)

def accumulate_identity(system):
    for i in range(system.n_dofs):
        system.matrix_A.add(i, i, 1.0)

def assemble_banded(system):
    for i, j, v in banded_entries(system.n_dofs):
        system.matrix_A.set(i, j, v)
    if system.generalized():
        for i in range(system.n_dofs):
            system.matrix_B.set(i, i, 1.0 + i / system.n_dofs)

class BandedShellAssembler:
    """Matrix-free assembly of the banded operator."""

    def assemble(self, system):
        dense = banded_dense(system.n_dofs)
        system.shell_matrix_A.attach_apply(lambda x: dense @ x)
        system.shell_matrix_A.attach_diagonal(lambda: np.diag(dense).copy())

def make_system(n=10, nev=3, **kwargs):
    params = EigenSystemParameters(n_eigenpairs=nev)
    return EigenSystem(DofMap(n), parameters=params, **kwargs)

# ----------------------------------------------------------------------
#! Lifecycle
# ----------------------------------------------------------------------

class TestLifecycle:

    def test_defaults(self):
        system = make_system()
        assert system.state is SystemState.UNINITIALIZED
        assert system.get_eigenproblem_type() is EigenProblemType.NHEP
        assert not system.generalized()
        assert system.n_matrices() == 1
        assert system.system_type() == "Eigen"
        assert not system.use_shell_matrices()
        assert not system.use_shell_precond_matrix()
        assert system.matrix_A is None

    def test_init_allocates_stored_a(self):
        system = make_system(n=6)
        system.init()
        assert system.state is SystemState.READY
        assert isinstance(system.matrix_A, SparseMatrix)
        assert system.matrix_A.shape == (6, 6)
        assert system.matrix_B is None
        assert system.storage.kind('precond') is OperatorKind.EMPTY
        assert system.solution.shape == (6,)

    def test_generalized_allocates_b(self):
        system = make_system(n=6)
        system.set_eigenproblem_type(EigenProblemType.GHEP)
        system.init()
        assert system.generalized()
        assert system.n_matrices() == 2
        assert system.matrix_B.shape == (6, 6)

    def test_solve_before_init(self):
        system = make_system()
        with pytest.raises(EigenSystemError) as exc:
            system.solve()
        assert exc.value.code is EigenSystemErrorMsg.NOT_INITIALIZED

    def test_assemble_before_init(self):
        with pytest.raises(EigenSystemError) as exc:
            make_system().assemble()
        assert exc.value.code is EigenSystemErrorMsg.NOT_INITIALIZED

    def test_solve_without_assembly(self):
        system = make_system()
        system.attach_assemble_function(assemble_identity)
        system.assemble_before_solve = False
        system.init()
        with pytest.raises(EigenSystemError) as exc:
            system.solve()
        assert exc.value.code is EigenSystemErrorMsg.NOT_ASSEMBLED

        system.assemble()
        assert system.state is SystemState.ASSEMBLED
        n_conv, _ = system.solve()
        assert n_conv >= 3

    def test_clear_is_idempotent(self):
        system = make_system()
        system.use_shell_matrices(True)
        system.init()
        system.add_matrix("mass")
        system.clear()
        system.clear()
        assert system.state is SystemState.UNINITIALIZED
        assert system.shell_matrix_A is None
        assert not system.have_matrix("mass")
        assert system.get_n_converged() == 0
        assert system.use_shell_matrices()

    def test_problem_type_change_needs_reinit(self):
        system = make_system()
        system.attach_assemble_function(assemble_identity)
        system.init()
        system.set_eigenproblem_type(EigenProblemType.GNHEP)
        with pytest.raises(EigenSystemError) as exc:
            system.solve()
        assert exc.value.code is EigenSystemErrorMsg.INCONSISTENT_STORAGE

        system.reinit()
        assert system.matrix_B is not None

    def test_attach_assemble_object_requires_method(self):
        with pytest.raises(TypeError):
            make_system().attach_assemble_object(object())

# ----------------------------------------------------------------------
#! Solve
# ----------------------------------------------------------------------

class TestSolve:

    def test_identity(self):
        system = make_system(n=10, nev=3)
        system.attach_assemble_function(assemble_identity)
        system.init()
        n_conv, n_its = system.solve()

        assert n_conv >= 3
        assert n_its > 0
        assert system.state is SystemState.SOLVED
        assert system.get_n_converged() == n_conv
        assert system.get_n_iterations() == n_its
        for i in range(3):
            re, im = system.get_eigenvalue(i)
            assert re == pytest.approx(1.0)
            assert im == pytest.approx(0.0, abs=1e-12)

    def test_eigenvalue_and_eigenpair_agree(self):
        system = make_system(n=30, nev=2, solver_type=EigenSolverType.LAPACK)
        system.attach_assemble_function(assemble_banded)
        system.init()
        system.solve()

        before = system.solution.copy()
        re, im = system.get_eigenvalue(0)
        np.testing.assert_array_equal(system.solution, before)

        assert system.get_eigenpair(0) == (re, im)
        A   = banded_dense(30)
        x   = system.solution
        assert np.linalg.norm(x) > 0
        assert np.linalg.norm(A @ x - re * x) < 1e-8 * np.linalg.norm(x) * abs(re)
        assert system.get_relative_error(0) < 1e-10

    def test_index_out_of_range(self):
        system = make_system(n=10, nev=2, solver_type='lapack')
        system.attach_assemble_function(assemble_identity)
        system.init()
        n_conv, _ = system.solve()
        for getter in (system.get_eigenpair, system.get_eigenvalue, system.get_relative_error):
            with pytest.raises(EigenSystemError) as exc:
                getter(n_conv)
            assert exc.value.code is EigenSystemErrorMsg.INDEX_OUT_OF_RANGE

    def test_generalized_hermitian(self):
        n       = 25
        system  = make_system(n=n, nev=3, solver_type=EigenSolverType.LAPACK)
        system.set_eigenproblem_type(EigenProblemType.GHEP)
        system.eigen_solver.set_position_of_spectrum(PositionOfSpectrum.SMALLEST_REAL)
        system.attach_assemble_function(assemble_banded)
        system.init()
        n_conv, _ = system.solve()

        assert n_conv == 3
        B        = np.diag(1.0 + np.arange(n) / n)
        expected = scipy_linalg.eigh(banded_dense(n), B, eigvals_only=True)[:3]
        got      = np.array([system.get_eigenvalue(i)[0] for i in range(3)])
        np.testing.assert_allclose(got, expected, rtol=1e-10)

    def test_shell_operator_with_lanczos(self):
        n       = 60
        system  = make_system(n=n, nev=2, solver_type='lanczos')
        system.set_eigenproblem_type(EigenProblemType.HEP)
        system.eigen_solver.set_position_of_spectrum(PositionOfSpectrum.SMALLEST_REAL)
        system.use_shell_matrices(True)
        system.attach_assemble_object(BandedShellAssembler())
        system.init()
        assert isinstance(system.shell_matrix_A, ShellMatrix)
        assert system.matrix_A is None

        n_conv, _ = system.solve()
        assert n_conv == 2
        expected = np.linalg.eigvalsh(banded_dense(n))[:2]
        got      = np.array([system.get_eigenvalue(i)[0] for i in range(2)])
        np.testing.assert_allclose(got, expected, rtol=1e-8)

    def test_shift_invert_with_shell_preconditioner(self):
        n       = 40
        target  = 10.3
        system  = make_system(n=n, nev=2)
        system.eigen_solver.set_position_of_spectrum(PositionOfSpectrum.TARGET_MAGNITUDE, target)
        system.use_shell_precond_matrix(True)
        dense   = banded_dense(n)

        def assemble(sys_):
            assemble_banded(sys_)
            sys_.shell_precond_matrix.attach_apply(lambda x: dense @ x)
            sys_.shell_precond_matrix.attach_diagonal(lambda: np.diag(dense).copy())

        system.attach_assemble_function(assemble)
        system.parameters = system.parameters.update(tolerance=1e-8)
        system.init()
        assert isinstance(system.storage.get('precond'), ShellMatrix)

        n_conv, _ = system.solve()
        assert n_conv == 2
        evals    = np.linalg.eigvalsh(dense)
        expected = evals[np.argsort(np.abs(evals - target))][:2]
        got      = np.array([system.get_eigenvalue(i)[0] for i in range(2)])
        np.testing.assert_allclose(got, expected, rtol=1e-6)

    def test_initial_space(self):
        system = make_system(n=10, nev=2)
        system.attach_assemble_function(assemble_banded)
        system.init()
        system.set_initial_space(np.ones(10))
        n_conv, _ = system.solve()
        assert n_conv >= 2

    def test_repeated_assembly_with_add(self):
        system = make_system(n=10, nev=2, solver_type='lapack')
        system.attach_assemble_function(accumulate_identity)
        system.init()
        system.assemble()
        for _ in range(2):
            system.solve()
            assert system.get_eigenvalue(0) == (pytest.approx(1.0), pytest.approx(0.0))
        np.testing.assert_allclose(system.matrix_A.csr.toarray(), np.eye(10))

    def test_reinit_drops_initial_space_of_old_size(self):
        system = make_system(n=10, nev=2)
        system.attach_assemble_function(assemble_banded)
        system.init()
        system.set_initial_space(np.ones(10))

        system.reinit()
        assert system.eigen_solver.initial_space is not None

        system.dof_map.distribute_dofs(12)
        system.reinit()
        assert system.eigen_solver.initial_space is None
        n_conv, _ = system.solve()
        assert n_conv >= 2

# ----------------------------------------------------------------------
#! Operator storage and auxiliary matrices
# ----------------------------------------------------------------------

class TestOperatorSelection:

    def test_shell_to_stored_releases_shell(self):
        system = make_system(n=8)
        system.use_shell_matrices(True)
        system.init()
        shell = system.shell_matrix_A
        assert shell.initialized

        system.use_shell_matrices(False)
        system.init_matrices()
        assert isinstance(system.matrix_A, SparseMatrix)
        assert system.shell_matrix_A is None
        assert not shell.initialized

    def test_precond_requested_through_property(self):
        system = make_system(n=5)
        assert system.precond_matrix is None
        system.init()
        precond = system.precond_matrix
        assert isinstance(precond, SparseMatrix)
        assert precond.shape == (5, 5)
        assert system.shell_precond_matrix is None

    def test_shell_precond_flag(self):
        system = make_system(n=5)
        system.use_shell_precond_matrix(True)
        system.init()
        assert isinstance(system.shell_precond_matrix, ShellMatrix)
        assert system.storage.kind('precond') is OperatorKind.SHELL

class TestMatrixRegistry:

    def test_add_and_get(self):
        system = make_system(n=4)
        system.init()
        mass = system.add_matrix("mass")
        assert system.have_matrix("mass")
        assert system.get_matrix("mass") is mass
        assert mass.shape == (4, 4)

    def test_add_before_init_is_sized_by_init(self):
        system = make_system(n=4)
        mass = system.add_matrix("mass")
        assert not mass.initialized
        system.init()
        assert mass.shape == (4, 4)

    def test_duplicate_name(self):
        system = make_system()
        system.add_matrix("mass")
        with pytest.raises(EigenSystemError) as exc:
            system.add_matrix("mass")
        assert exc.value.code is EigenSystemErrorMsg.DUPLICATE_MATRIX
        assert "duplicate name" in str(exc.value)

    def test_unknown_name(self):
        with pytest.raises(EigenSystemError) as exc:
            make_system().get_matrix("stiffness")
        assert exc.value.code is EigenSystemErrorMsg.MATRIX_NOT_FOUND
        assert "not found" in str(exc.value)

    def test_reinit_keeps_names_and_resizes(self):
        system = make_system(n=10)
        system.attach_assemble_function(assemble_identity)
        system.init()
        mass = system.add_matrix("mass")
        mass.set(0, 0, 2.0)
        old_A = system.matrix_A

        system.dof_map.distribute_dofs(12)
        system.reinit()

        assert system.state is SystemState.READY
        assert system.have_matrix("mass")
        assert system.get_matrix("mass").shape == (12, 12)
        assert system.get_matrix("mass").nnz == 0
        assert system.matrix_A is not old_A
        assert system.matrix_A.shape == (12, 12)
        assert system.solution.shape == (12,)
        assert system.get_n_converged() == 0

    def test_assemble_closes_registry_matrices(self):
        system = make_system(n=3)
        system.init()
        mass = system.add_matrix("mass")
        mass.set(1, 1, 1.0)
        system.assemble()
        assert mass.closed
