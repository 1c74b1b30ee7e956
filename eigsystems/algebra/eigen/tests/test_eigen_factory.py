import pytest

from eigsystems.algebra.eigen.definitions import (
    EigenSolverType, EigenProblemType, PositionOfSpectrum
)
from eigsystems.algebra.eigen.factory import choose_eigensolver, decide_method
from eigsystems.algebra.eigen.exact import ExactEigensolver
from eigsystems.algebra.eigen.arnoldi import ArnoldiEigensolver
from eigsystems.algebra.eigen.lanczos import LanczosEigensolver
from eigsystems.algebra.eigen.lobpcg import LobpcgEigensolver

class TestChooseEigensolver:

    @pytest.mark.parametrize("solver_type, cls", [
        (EigenSolverType.LAPACK,        ExactEigensolver),
        (EigenSolverType.ARNOLDI,       ArnoldiEigensolver),
        (EigenSolverType.KRYLOVSCHUR,   ArnoldiEigensolver),
        (EigenSolverType.LANCZOS,       LanczosEigensolver),
        (EigenSolverType.LOBPCG,        LobpcgEigensolver),
    ])
    def test_by_type(self, solver_type, cls):
        solver = choose_eigensolver(solver_type)
        assert isinstance(solver, cls)
        assert solver.solver_type is solver_type

    def test_by_name(self):
        assert choose_eigensolver('krylov-schur').solver_type is EigenSolverType.KRYLOVSCHUR
        assert choose_eigensolver('Krylov_Schur').solver_type is EigenSolverType.KRYLOVSCHUR
        assert isinstance(choose_eigensolver('lapack'), ExactEigensolver)

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            choose_eigensolver('jacobi-davidson')

    def test_kwargs_forwarded(self):
        solver = choose_eigensolver('lanczos', position=PositionOfSpectrum.SMALLEST_REAL)
        assert solver.position_of_spectrum is PositionOfSpectrum.SMALLEST_REAL
        assert solver.eigenproblem_type is EigenProblemType.HEP

class TestDecideMethod:

    def test_all_eigenvalues_dense(self):
        assert decide_method(10000, k=None) is EigenSolverType.LAPACK

    def test_small_problem_dense(self):
        assert decide_method(100, k=5) is EigenSolverType.LAPACK

    def test_many_eigenvalues_dense(self):
        assert decide_method(2000, k=1500) is EigenSolverType.LAPACK

    def test_large_sparse(self):
        assert decide_method(10000, hermitian=True, k=10) is EigenSolverType.LANCZOS
        assert decide_method(10000, hermitian=False, k=10) is EigenSolverType.KRYLOVSCHUR

class TestDefinitions:

    def test_problem_type_flags(self):
        assert EigenProblemType.GHEP.generalized and EigenProblemType.GHEP.hermitian
        assert not EigenProblemType.NHEP.generalized
        assert EigenProblemType.GHIEP.generalized

    def test_target_positions(self):
        targets = {p for p in PositionOfSpectrum if p.is_target}
        assert targets == {PositionOfSpectrum.TARGET_MAGNITUDE,
                        PositionOfSpectrum.TARGET_REAL,
                        PositionOfSpectrum.TARGET_IMAGINARY}
