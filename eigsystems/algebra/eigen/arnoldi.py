"""
Arnoldi Eigenvalue Solver (ARPACK)

Implicitly restarted Arnoldi iteration through `scipy.sparse.linalg.eigs`,
for general (non-Hermitian) standard and generalized problems. This module
also holds the machinery shared with the Lanczos backend:

    - choice of the number of basis vectors (ncv)
    - dense fallback when nev is too close to n for ARPACK
    - iteration counting (operator applications)
    - shift-invert around a target:
        sparse LU of (A - sigma B) for stored operators without a
        preconditioner, preconditioned GMRES otherwise
    - preconditioned CG on B for generalized problems

Mathematical Background:
    Starting from v_1, build Krylov subspace K_m(OP, v_1) = span{v_1, OP v_1, OP^2 v_1, ...}
    with OP = A (regular), B^{-1} A (generalized) or (A - sigma B)^{-1} B (shift-invert).

References:
    [1] R. B. Lehoucq, D. C. Sorensen, C. Yang, "ARPACK Users' Guide", SIAM (1998).
"""

from typing import Optional, Dict

import numpy as np
import scipy.sparse as sps
from scipy.sparse.linalg import (
    LinearOperator, aslinearoperator, eigs, splu, gmres, cg,
    ArpackNoConvergence, ArpackError
)
from numpy.typing import NDArray

from .definitions import (
    EigenSolverType, PositionOfSpectrum,
    EigenSolverError, EigenSolverErrorMsg
)
from .result import EigenResult, EigenSolver, residual_norms
from .exact import dense_eigenpairs
from ..matrices import is_stored

# ----------------------------------------------------------------------------------------
#! Operator wrappers
# ----------------------------------------------------------------------------------------

class CountingOperator(LinearOperator):
    """
    LinearOperator that counts how many vectors it has been applied to.
    """

    def __init__(self, op):
        self._op    = aslinearoperator(op)
        self.count  = 0
        super().__init__(dtype=self._op.dtype, shape=self._op.shape)

    def _matvec(self, x):
        self.count += 1
        return self._op.matvec(x)

    def _matmat(self, X):
        self.count += X.shape[1]
        return self._op.matmat(X)

# ----------------------------------------------------------------------------------------
#! Shared ARPACK machinery
# ----------------------------------------------------------------------------------------

class ArpackEigensolver(EigenSolver):
    """
    Common base of the ARPACK backends.

    Args (in addition to EigenSolver):
        inner_tol:
            Relative tolerance of inner GMRES/CG solves.
        inner_max_iter:
            Maximum iterations of inner GMRES/CG solves.
    """

    _name           = "ARPACK Eigensolver"
    # ARPACK requires k + _ncv_gap <= ncv <= n
    _ncv_gap        : int = 2
    _which_map      : Dict[PositionOfSpectrum, str] = {}
    _unsupported_positions : tuple = ()

    def __init__(self, *args, inner_tol: float = 1e-10, inner_max_iter: int = 1000, **kwargs):
        super().__init__(*args, **kwargs)
        self._inner_tol         = inner_tol
        self._inner_max_iter    = inner_max_iter

    # -----------------------------------------------------------------

    def _arpack(self, A, **kwargs):
        raise NotImplementedError("ARPACK driver must be provided by subclasses.")

    def _needs_dense(self, n: int, nev: int) -> bool:
        return nev >= n - 1

    def _choose_ncv(self, n: int, nev: int, ncv: Optional[int]) -> int:
        ncv = max(2 * nev + 1, 20) if ncv is None else ncv
        return max(min(ncv, n), nev + self._ncv_gap)

    def _which(self) -> str:
        which = self._which_map.get(self._position)
        if which is None:
            raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                                f"{self._name} cannot target {self._position.name}")
        return which

    def _sigma(self, A):
        sigma = self._target_value()
        if np.iscomplexobj(sigma) and np.imag(sigma) != 0:
            if not np.issubdtype(A.dtype, np.complexfloating):
                raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                                    "Complex shift-invert targets need a complex operator")
            return complex(sigma)
        return float(np.real(sigma))

    # -----------------------------------------------------------------
    #! Inner solves
    # -----------------------------------------------------------------

    def _shift_invert_operator(self, A, B, precond, sigma) -> LinearOperator:
        '''
        Operator x -> (A - sigma B)^{-1} x.
        '''
        n       = A.shape[0]
        dtype   = np.result_type(A.dtype, np.asarray(sigma).dtype, *( [] if B is None else [B.dtype]))

        if precond is None and is_stored(A) and (B is None or is_stored(B)):
            Bs      = sps.identity(n, dtype=dtype, format='csc') if B is None else sps.csc_matrix(B)
            shifted = (sps.csc_matrix(A) - sigma * Bs).tocsc()
            try:
                lu = splu(shifted)
            except RuntimeError as err:
                raise EigenSolverError(EigenSolverErrorMsg.BACKEND_FAILURE,
                                    f"Factorization of (A - sigma B) failed for sigma={sigma}: {err}") from err
            self.log(f"Shift-invert with sparse LU, sigma={sigma}", log='debug', lvl=2)
            return LinearOperator((n, n), matvec=lu.solve, dtype=dtype)

        opA = aslinearoperator(A)
        opB = None if B is None else aslinearoperator(B)

        def shifted_matvec(x):
            Bx = x if opB is None else opB.matvec(x)
            return opA.matvec(x) - sigma * Bx

        shifted = LinearOperator((n, n), matvec=shifted_matvec, dtype=dtype)
        prec    = self._make_preconditioner(precond, sigma=-np.real(sigma))
        M       = None if prec is None else prec.as_linear_operator()
        self.log(f"Shift-invert with preconditioned GMRES, sigma={sigma}", log='debug', lvl=2)

        def solve(b):
            x, info = gmres(shifted, b, rtol=self._inner_tol, atol=0.0, maxiter=self._inner_max_iter, M=M)
            if info != 0:
                raise EigenSolverError(EigenSolverErrorMsg.INNER_SOLVE_FAILED,
                                    f"GMRES on (A - sigma B) did not converge (info={info})")
            return x

        return LinearOperator((n, n), matvec=solve, dtype=dtype)

    def _mass_inverse_operator(self, B, precond) -> LinearOperator:
        '''
        Operator x -> B^{-1} x by preconditioned CG.
        '''
        n       = B.shape[0]
        prec    = self._make_preconditioner(precond)
        M       = None if prec is None else prec.as_linear_operator()

        def solve(b):
            x, info = cg(B, b, rtol=self._inner_tol, atol=0.0, maxiter=self._inner_max_iter, M=M)
            if info != 0:
                raise EigenSolverError(EigenSolverErrorMsg.INNER_SOLVE_FAILED,
                                    f"CG on B did not converge (info={info})")
            return x

        return LinearOperator((n, n), matvec=solve, dtype=B.dtype)

    # -----------------------------------------------------------------
    #! Solve
    # -----------------------------------------------------------------

    def _solve(self, A, B, precond, nev: int, ncv: Optional[int], tol: float,
            max_iter: int, v0: Optional[NDArray]) -> EigenResult:
        if self._position in self._unsupported_positions:
            raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                                f"{self._name} cannot target {self._position.name}")
        n = A.shape[0]
        if self._needs_dense(n, nev):
            self.log(f"nev={nev} too large for ARPACK with n={n}, using dense decomposition", log='debug', lvl=1)
            return dense_eigenpairs(A, B, nev, self._problem_type, self._position, self._target_value())

        kwargs = dict(k=nev, ncv=self._choose_ncv(n, nev, ncv), tol=tol, maxiter=max_iter,
                    v0=v0, return_eigenvectors=True)

        if self._position.is_target:
            sigma               = self._sigma(A)
            counter             = CountingOperator(self._shift_invert_operator(A, B, precond, sigma))
            kwargs['sigma']     = sigma
            kwargs['which']     = 'LM'
            kwargs['OPinv']     = counter
            if B is not None:
                kwargs['M']     = B
            operator            = A
        else:
            kwargs['which']     = self._which()
            counter             = CountingOperator(A)
            operator            = counter
            if B is not None:
                kwargs['M']     = B
                if precond is not None:
                    kwargs['Minv'] = self._mass_inverse_operator(B, precond)

        converged = True
        try:
            eigenvalues, eigenvectors = self._arpack(operator, **kwargs)
        except ArpackNoConvergence as err:
            eigenvalues     = np.asarray(err.eigenvalues)
            eigenvectors    = np.asarray(err.eigenvectors).reshape(n, -1)
            converged       = False
        except (ArpackError, ValueError) as err:
            raise EigenSolverError(EigenSolverErrorMsg.BACKEND_FAILURE, f"ARPACK failed: {err}") from err

        idx             = self._select(eigenvalues, len(eigenvalues))
        eigenvalues     = eigenvalues[idx]
        eigenvectors    = eigenvectors[:, idx]

        return EigenResult(
            eigenvalues     = eigenvalues,
            eigenvectors    = eigenvectors,
            iterations      = counter.count,
            converged       = converged and len(eigenvalues) >= nev,
            residual_norms  = residual_norms(A, B, eigenvalues, eigenvectors),
            n_requested     = nev
        )

# ----------------------------------------------------------------------------------------
#! Arnoldi
# ----------------------------------------------------------------------------------------

class ArnoldiEigensolver(ArpackEigensolver):
    """
    Implicitly restarted Arnoldi (scipy.sparse.linalg.eigs), any problem type.

    Used for both ARNOLDI and KRYLOVSCHUR solver types; ARPACK's restarted
    Arnoldi is the Krylov-Schur method up to the restart strategy.

    Example:
        >>> solver = ArnoldiEigensolver(position=PositionOfSpectrum.LARGEST_REAL)
        >>> n_conv, n_its = solver.solve(A, nev=4)
    """

    _type           = EigenSolverType.ARNOLDI
    _name           = "Arnoldi Eigensolver"
    _ncv_gap        = 2
    _which_map      = {
        PositionOfSpectrum.LARGEST_MAGNITUDE    : 'LM',
        PositionOfSpectrum.SMALLEST_MAGNITUDE   : 'SM',
        PositionOfSpectrum.LARGEST_REAL         : 'LR',
        PositionOfSpectrum.SMALLEST_REAL        : 'SR',
        PositionOfSpectrum.LARGEST_IMAGINARY    : 'LI',
        PositionOfSpectrum.SMALLEST_IMAGINARY   : 'SI',
    }

    def __init__(self, *args, solver_type: EigenSolverType = EigenSolverType.ARNOLDI, **kwargs):
        super().__init__(*args, **kwargs)
        self._type = solver_type

    def _arpack(self, A, **kwargs):
        return eigs(A, **kwargs)

# ----------------------------------------------------------------------------------------
#! EOF
# ----------------------------------------------------------------------------------------
