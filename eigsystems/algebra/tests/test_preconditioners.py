import pytest
import numpy as np
import scipy.sparse as sps

from eigsystems.algebra.matrices import SparseMatrix, ShellMatrix
from eigsystems.algebra.preconditioners import (
    Preconditioner, IdentityPreconditioner, JacobiPreconditioner,
    IncompleteLUPreconditioner, PreconditionerType, choose_precond
)
from eigsystems.algebra.eigen.definitions import EigenSolverError, EigenSolverErrorMsg

def tridiagonal(n, diag=4.0, off=-1.0):
    return sps.diags([off * np.ones(n - 1), diag * np.ones(n), off * np.ones(n - 1)], [-1, 0, 1], format='csr')

class TestJacobi:

    def test_stored_operator(self):
        A = tridiagonal(5)
        P = JacobiPreconditioner().set_up(A)
        r = np.arange(1.0, 6.0)
        np.testing.assert_allclose(P(r), r / 4.0)

    def test_shift(self):
        A = tridiagonal(4)
        P = JacobiPreconditioner().set_up(A, sigma=1.0)
        np.testing.assert_allclose(P.apply(np.ones(4)), np.full(4, 0.2))

    def test_small_diagonal_is_zeroed(self):
        A = sps.diags([1.0, 0.0, 2.0], format='csr')
        P = JacobiPreconditioner().set_up(A)
        np.testing.assert_allclose(P(np.ones(3)), [1.0, 0.0, 0.5])

    def test_block_apply(self):
        P = JacobiPreconditioner().set_up(tridiagonal(3, diag=2.0))
        R = np.ones((3, 2))
        np.testing.assert_allclose(P.as_linear_operator().matmat(R), 0.5 * R)

    def test_shell_with_diagonal(self):
        S = ShellMatrix(3, apply=lambda x: 2.0 * x, diagonal=lambda: np.full(3, 2.0))
        P = JacobiPreconditioner().set_up(S)
        np.testing.assert_allclose(P(np.ones(3)), np.full(3, 0.5))

    def test_shell_without_diagonal(self):
        S = ShellMatrix(3, apply=lambda x: x)
        with pytest.raises(EigenSolverError) as exc:
            JacobiPreconditioner().set_up(S)
        assert exc.value.code is EigenSolverErrorMsg.UNSUPPORTED

    def test_sparse_matrix_wrapper(self):
        M = SparseMatrix(2)
        M.set(0, 0, 4.0)
        M.set(1, 1, 8.0)
        P = JacobiPreconditioner().set_up(M)
        np.testing.assert_allclose(P(np.ones(2)), [0.25, 0.125])

class TestIncompleteLU:

    def test_tridiagonal_is_exact(self):
        A = tridiagonal(20)
        P = IncompleteLUPreconditioner(drop_tol=0.0).set_up(A)
        r = np.linspace(0.0, 1.0, 20)
        np.testing.assert_allclose(A @ P(r), r, atol=1e-10)

    def test_shell_unsupported(self):
        with pytest.raises(EigenSolverError) as exc:
            IncompleteLUPreconditioner().set_up(ShellMatrix(3, apply=lambda x: x))
        assert exc.value.code is EigenSolverErrorMsg.UNSUPPORTED

class TestPreconditionerBase:

    def test_apply_before_set_up(self):
        with pytest.raises(RuntimeError):
            JacobiPreconditioner().apply(np.ones(3))

    def test_identity(self):
        P = IdentityPreconditioner().set_up(tridiagonal(3))
        r = np.array([1.0, 2.0, 3.0])
        out = P(r)
        np.testing.assert_allclose(out, r)
        assert out is not r

    def test_non_square_operator(self):
        with pytest.raises(EigenSolverError) as exc:
            JacobiPreconditioner().set_up(np.ones((2, 3)))
        assert exc.value.code is EigenSolverErrorMsg.DIM_MISMATCH

class TestChoosePrecond:

    def test_by_name_and_type(self):
        assert choose_precond(None) is None
        assert isinstance(choose_precond('jacobi'), JacobiPreconditioner)
        assert isinstance(choose_precond('ILU'), IncompleteLUPreconditioner)
        assert isinstance(choose_precond(PreconditionerType.IDENTITY), IdentityPreconditioner)

    def test_instance_passthrough(self):
        P = JacobiPreconditioner()
        assert choose_precond(P) is P

    def test_kwargs_forwarded(self):
        P = choose_precond('ilu', drop_tol=1e-2)
        assert isinstance(P, Preconditioner)
        assert P._drop_tol == pytest.approx(1e-2)

    def test_invalid(self):
        with pytest.raises(ValueError):
            choose_precond('multigrid')
        with pytest.raises(TypeError):
            choose_precond(3.5)
