'''
Degree-of-freedom space of an eigenvalue system.

A single process owns the whole DOF range. The map sizes the solution vector
and builds operators of the matching dimension.
'''

from typing import Any

import numpy as np
from numpy.typing import NDArray

from ..algebra.matrices import SparseMatrix, ShellMatrix, ParallelType, MatrixBuildType

class DofMap:
    """
    DOF numbering of a discretized problem.

    Example:
        >>> dof_map = DofMap(100)
        >>> A       = dof_map.build_matrix()
        >>> x       = dof_map.build_vector()
    """

    def __init__(self, n_dofs: int = 0, dtype: Any = np.float64):
        self.dtype      = np.dtype(dtype)
        self._n_dofs    = 0
        self.distribute_dofs(n_dofs)

    def distribute_dofs(self, n_dofs: int) -> int:
        '''
        (Re)number the DOFs. Existing vectors and operators keep their old size
        until the owning system is reinitialized.
        '''
        if n_dofs < 0:
            raise ValueError(f"Number of DOFs must be non-negative, got {n_dofs}")
        self._n_dofs = int(n_dofs)
        return self._n_dofs

    @property
    def n_dofs(self) -> int:
        return self._n_dofs

    @property
    def first_dof(self) -> int:
        return 0

    @property
    def end_dof(self) -> int:
        return self._n_dofs

    @property
    def n_local_dofs(self) -> int:
        return self.end_dof - self.first_dof

    # ---------------------------------------------------------------

    def build_vector(self) -> NDArray:
        return np.zeros(self._n_dofs, dtype=self.dtype)

    def build_matrix(self,
                    parallel_type   : ParallelType      = ParallelType.PARALLEL,
                    build_type      : MatrixBuildType   = MatrixBuildType.AUTOMATIC) -> SparseMatrix:
        matrix = SparseMatrix(dtype=self.dtype, parallel_type=parallel_type, build_type=build_type)
        return matrix.init(self._n_dofs)

    def build_shell_matrix(self) -> ShellMatrix:
        return ShellMatrix(dtype=self.dtype).init(self._n_dofs)

    def __repr__(self):
        return f"DofMap(n_dofs={self._n_dofs}, dtype={self.dtype})"
