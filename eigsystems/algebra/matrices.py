'''
file:       eigsystems/algebra/matrices.py

Operator representations used by the eigenvalue systems.

Two representations of an n x n operator are supported:

    - SparseMatrix : explicitly stored entries. Assembled in LIL format
                     (cheap random insertion), converted to CSR on close().
    - ShellMatrix  : matrix-free operator, defined only by its action
                     y = A x (and optionally its diagonal).

Both expose `to_operator()`-compatible handles, so the eigensolver backends
only ever see SciPy sparse matrices or LinearOperators.
'''

from typing import Optional, Callable, Sequence, Union, Any
from enum import Enum, auto, unique

import numpy as np
import scipy.sparse as sps
from scipy.sparse.linalg import LinearOperator
from numpy.typing import NDArray

from .eigen.definitions import EigenSolverError, EigenSolverErrorMsg

# ---------------------------------------------------------------------
#! Matrix metadata
# ---------------------------------------------------------------------

@unique
class ParallelType(Enum):
    '''
    Distribution kind of a matrix. Storage is process-local, the value is
    kept as metadata for the DOF-space collaborator.
    '''
    AUTOMATIC   = auto()
    SERIAL      = auto()
    PARALLEL    = auto()
    GHOSTED     = auto()

@unique
class MatrixBuildType(Enum):
    '''
    How the sparsity of a stored matrix is built.
    DIAGONAL matrices only accept entries on the main diagonal.
    '''
    AUTOMATIC   = auto()
    DIAGONAL    = auto()

ApplyFunc       = Callable[[NDArray], NDArray]
DiagonalFunc    = Callable[[], NDArray]

# ---------------------------------------------------------------------
#! Stored sparse matrix
# ---------------------------------------------------------------------

class SparseMatrix:
    """
    Explicitly stored sparse matrix.

    Entries are inserted with `set`, `add` or `add_matrix` (element
    contributions scattered by DOF indices). `close()` finalizes the storage
    to CSR; any later insertion reopens it.

    Example:
        >>> M = SparseMatrix(3)
        >>> M.add_matrix(np.array([[2., -1.], [-1., 2.]]), [0, 1])
        >>> M.close().csr.toarray()
    """

    def __init__(self,
                m               : int                   = 0,
                n               : Optional[int]         = None,
                dtype           : Any                   = np.float64,
                parallel_type   : ParallelType          = ParallelType.PARALLEL,
                build_type      : MatrixBuildType       = MatrixBuildType.AUTOMATIC):
        self.dtype          = np.dtype(dtype)
        self.parallel_type  = parallel_type
        self.build_type     = build_type
        self._m             = 0
        self._n             = 0
        self._lil           : Optional[sps.lil_matrix] = None
        self._csr           : Optional[sps.csr_matrix] = None
        if m > 0:
            self.init(m, n)

    # -----------------------------------------------------------------

    def init(self, m: int, n: Optional[int] = None) -> 'SparseMatrix':
        '''
        (Re)allocate an empty m x n matrix. Previous entries are dropped.
        '''
        n = m if n is None else n
        if m < 0 or n < 0:
            raise ValueError(f"Matrix dimensions must be non-negative, got ({m}, {n})")
        self._m, self._n    = m, n
        self._lil           = sps.lil_matrix((m, n), dtype=self.dtype)
        self._csr           = None
        return self

    def clear(self):
        '''
        Release the storage, the matrix becomes uninitialized.
        '''
        self._m, self._n    = 0, 0
        self._lil           = None
        self._csr           = None

    @property
    def initialized(self) -> bool:
        return self._lil is not None or self._csr is not None

    @property
    def closed(self) -> bool:
        return self._csr is not None

    @property
    def m(self) -> int:
        return self._m

    @property
    def n(self) -> int:
        return self._n

    @property
    def shape(self):
        return (self._m, self._n)

    @property
    def nnz(self) -> int:
        if not self.initialized:
            return 0
        return self._csr.nnz if self._csr is not None else self._lil.nnz

    # -----------------------------------------------------------------
    #! Insertion
    # -----------------------------------------------------------------

    def _writable(self) -> sps.lil_matrix:
        if self._csr is not None:
            self._lil = self._csr.tolil()
            self._csr = None
        if self._lil is None:
            raise ValueError("Matrix is not initialized, call init() first")
        return self._lil

    def _check_entry(self, i: int, j: int, value):
        if not (0 <= i < self._m and 0 <= j < self._n):
            raise IndexError(f"Entry ({i}, {j}) outside matrix of shape {self.shape}")
        if self.build_type is MatrixBuildType.DIAGONAL and i != j and value != 0:
            raise ValueError(f"Diagonal matrix cannot hold off-diagonal entry ({i}, {j})")

    def set(self, i: int, j: int, value):
        self._check_entry(i, j, value)
        self._writable()[i, j] = value

    def add(self, i: int, j: int, value):
        self._check_entry(i, j, value)
        lil         = self._writable()
        lil[i, j]   = lil[i, j] + value

    def add_matrix(self, dense: NDArray, rows: Sequence[int], cols: Optional[Sequence[int]] = None):
        '''
        Add a dense element matrix at the given global row/column DOF indices.
        Repeated indices accumulate.
        '''
        cols    = rows if cols is None else cols
        dense   = np.asarray(dense)
        if dense.shape != (len(rows), len(cols)):
            raise ValueError(f"Element matrix of shape {dense.shape} does not match {len(rows)} x {len(cols)} indices")
        for a, i in enumerate(rows):
            for b, j in enumerate(cols):
                if dense[a, b] != 0:
                    self.add(int(i), int(j), dense[a, b])

    def zero(self):
        '''
        Remove all entries, keep the dimensions.
        '''
        if not self.initialized:
            return
        self._lil = sps.lil_matrix((self._m, self._n), dtype=self.dtype)
        self._csr = None

    def close(self) -> 'SparseMatrix':
        if self._lil is not None:
            self._csr = self._lil.tocsr()
            self._lil = None
        return self

    # -----------------------------------------------------------------
    #! Access
    # -----------------------------------------------------------------

    @property
    def csr(self) -> sps.csr_matrix:
        if not self.initialized:
            raise ValueError("Matrix is not initialized")
        return self.close()._csr

    def diagonal(self) -> NDArray:
        if not self.initialized:
            raise ValueError("Matrix is not initialized")
        return self._csr.diagonal() if self._csr is not None else self._lil.diagonal()

    def toarray(self) -> NDArray:
        return self.csr.toarray()

    def __matmul__(self, x):
        return self.csr @ x

    def __repr__(self):
        return (f"SparseMatrix(shape={self.shape}, nnz={self.nnz}, closed={self.closed}, "
                f"parallel_type={self.parallel_type.name}, build_type={self.build_type.name})")

# ---------------------------------------------------------------------
#! Shell (matrix-free) operator
# ---------------------------------------------------------------------

class ShellMatrix:
    """
    Matrix-free operator defined by its action y = A x.

    The apply function receives a 1D array of length n and must return an
    array of length m. An optional diagonal function enables Jacobi
    preconditioning of the operator.

    Example:
        >>> S = ShellMatrix(100)
        >>> S.attach_apply(lambda x: 2.0 * x)
        >>> S.attach_diagonal(lambda: np.full(100, 2.0))
    """

    def __init__(self,
                m           : int                       = 0,
                n           : Optional[int]             = None,
                dtype       : Any                       = np.float64,
                apply       : Optional[ApplyFunc]       = None,
                diagonal    : Optional[DiagonalFunc]    = None):
        self.dtype          = np.dtype(dtype)
        self._m             = 0
        self._n             = 0
        self._initialized   = False
        self._apply         = apply
        self._diagonal      = diagonal
        if m > 0:
            self.init(m, n)

    def init(self, m: int, n: Optional[int] = None) -> 'ShellMatrix':
        n = m if n is None else n
        if m < 0 or n < 0:
            raise ValueError(f"Matrix dimensions must be non-negative, got ({m}, {n})")
        self._m, self._n    = m, n
        self._initialized   = True
        return self

    def clear(self):
        self._m, self._n    = 0, 0
        self._initialized   = False
        self._apply         = None
        self._diagonal      = None

    def attach_apply(self, func: ApplyFunc):
        self._apply = func

    def attach_diagonal(self, func: DiagonalFunc):
        self._diagonal = func

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def has_apply(self) -> bool:
        return self._apply is not None

    @property
    def m(self) -> int:
        return self._m

    @property
    def n(self) -> int:
        return self._n

    @property
    def shape(self):
        return (self._m, self._n)

    # -----------------------------------------------------------------

    def vector_mult(self, x: NDArray) -> NDArray:
        '''
        Apply the operator. Accepts (n,) or (n, 1) inputs, as SciPy's
        LinearOperator may pass either.
        '''
        if self._apply is None:
            raise EigenSolverError(EigenSolverErrorMsg.INVALID_INPUT,
                                "Shell matrix has no apply action attached")
        x = np.asarray(x)
        if x.shape[0] != self._n:
            raise EigenSolverError(EigenSolverErrorMsg.DIM_MISMATCH,
                                f"Shell matrix expects vectors of length {self._n}, got {x.shape[0]}")
        y = np.asarray(self._apply(x.reshape(-1)))
        return y.reshape((self._m,) + x.shape[1:])

    def get_diagonal(self) -> NDArray:
        if self._diagonal is None:
            raise EigenSolverError(EigenSolverErrorMsg.UNSUPPORTED,
                                "Shell matrix has no diagonal function attached")
        return np.asarray(self._diagonal()).reshape(-1)

    def as_linear_operator(self) -> LinearOperator:
        return LinearOperator(self.shape, matvec=self.vector_mult, dtype=self.dtype)

    def __matmul__(self, x):
        return self.vector_mult(x)

    def __repr__(self):
        return f"ShellMatrix(shape={self.shape}, has_apply={self.has_apply})"

# ---------------------------------------------------------------------
#! Conversion to backend operators
# ---------------------------------------------------------------------

Operator = Union[SparseMatrix, ShellMatrix, sps.spmatrix, LinearOperator, NDArray]

def to_operator(obj: Optional[Operator]):
    '''
    Turn a stored/shell matrix into what the SciPy backends consume.

    Returns:
        None, a scipy.sparse matrix, a dense ndarray or a LinearOperator.
    '''
    if obj is None:
        return None
    if isinstance(obj, SparseMatrix):
        return obj.csr
    if isinstance(obj, ShellMatrix):
        return obj.as_linear_operator()
    if sps.issparse(obj) or isinstance(obj, (LinearOperator, np.ndarray)):
        return obj
    raise EigenSolverError(EigenSolverErrorMsg.INVALID_INPUT,
                        f"Unsupported operator type: {type(obj).__name__}")

def is_stored(op) -> bool:
    '''
    True if the backend operator has explicit entries.
    '''
    return sps.issparse(op) or isinstance(op, np.ndarray)

def densify(op) -> NDArray:
    '''
    Dense copy of an operator. Matrix-free operators are applied to the identity.
    '''
    if sps.issparse(op):
        return op.toarray()
    if isinstance(op, np.ndarray):
        return op
    return np.asarray(op.matmat(np.eye(op.shape[1], dtype=op.dtype)))

# ---------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------
