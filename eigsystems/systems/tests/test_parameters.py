import pytest

from eigsystems.systems.parameters import (
    EigenSystemParameters, DEFAULT_NEV, DEFAULT_TOL, DEFAULT_MAXITS,
    EIGSYS_NEV_STR, EIGSYS_NCV_STR, EIGSYS_TOL_STR, EIGSYS_MAXITS_STR
)

class TestEigenSystemParameters:

    def test_validation(self):
        with pytest.raises(ValueError):
            EigenSystemParameters(n_eigenpairs=0)
        with pytest.raises(ValueError):
            EigenSystemParameters(n_eigenpairs=4, n_basis_vectors=4)
        with pytest.raises(ValueError):
            EigenSystemParameters(tolerance=0.0)
        with pytest.raises(ValueError):
            EigenSystemParameters(max_iterations=0)

    def test_from_dict_accepts_aliases(self):
        params = EigenSystemParameters.from_dict({
            'eigenpairs'                : 4,
            'basis vectors'             : 12,
            'linear solver tolerance'   : 1e-8,
            'max_iterations'            : 50,
        })
        assert params.n_eigenpairs == 4
        assert params.n_basis_vectors == 12
        assert params.tolerance == pytest.approx(1e-8)
        assert params.max_iterations == 50

    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError):
            EigenSystemParameters.from_dict({'shift': 1.0})

    def test_from_env(self):
        environ = {
            EIGSYS_NEV_STR      : "7",
            EIGSYS_NCV_STR      : "30",
            EIGSYS_TOL_STR      : "1e-6",
        }
        params = EigenSystemParameters.from_env(environ, max_iterations=20)
        assert params.n_eigenpairs == 7
        assert params.n_basis_vectors == 30
        assert params.tolerance == pytest.approx(1e-6)
        assert params.max_iterations == 20

    def test_from_empty_env(self):
        params = EigenSystemParameters.from_env({})
        assert params.n_eigenpairs == DEFAULT_NEV
        assert params.n_basis_vectors is None
        assert params.tolerance == pytest.approx(DEFAULT_TOL)
        assert params.max_iterations == DEFAULT_MAXITS

    def test_env_variables_read(self, monkeypatch):
        monkeypatch.setenv(EIGSYS_MAXITS_STR, "99")
        monkeypatch.delenv(EIGSYS_NEV_STR, raising=False)
        monkeypatch.delenv(EIGSYS_NCV_STR, raising=False)
        params = EigenSystemParameters.from_env()
        assert params.max_iterations == 99

    def test_update_and_to_dict(self):
        params  = EigenSystemParameters(n_eigenpairs=3)
        updated = params.update(n_eigenpairs=6)
        assert params.n_eigenpairs == 3
        assert updated.to_dict()['n_eigenpairs'] == 6
        with pytest.raises(ValueError):
            params.update(tolerance=-1.0)
