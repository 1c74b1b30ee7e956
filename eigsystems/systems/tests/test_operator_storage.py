import pytest
import numpy as np

from eigsystems.algebra.matrices import SparseMatrix, ShellMatrix
from eigsystems.systems.dof_map import DofMap
from eigsystems.systems.errors import EigenSystemError, EigenSystemErrorMsg
from eigsystems.systems.operators import (
    OperatorKind, OperatorSlot, OperatorStorage, MatrixRegistry
)

class TestOperatorSlot:

    def test_starts_empty(self):
        slot = OperatorSlot()
        assert slot.is_empty
        assert slot.kind is OperatorKind.EMPTY
        assert slot.get() is None

    def test_allocate_replaces_and_releases(self):
        slot    = OperatorSlot()
        shell   = ShellMatrix(3, apply=lambda x: x)
        slot.allocate(OperatorKind.SHELL, shell)
        stored  = SparseMatrix(3)
        slot.allocate(OperatorKind.STORED, stored)

        assert slot.kind is OperatorKind.STORED
        assert slot.get(OperatorKind.STORED) is stored
        assert slot.get(OperatorKind.SHELL) is None
        assert not shell.initialized

    def test_type_checks(self):
        slot = OperatorSlot()
        with pytest.raises(TypeError):
            slot.allocate(OperatorKind.STORED, ShellMatrix(2))
        with pytest.raises(ValueError):
            slot.allocate(OperatorKind.EMPTY, SparseMatrix(2))

    def test_release(self):
        slot    = OperatorSlot()
        matrix  = slot.allocate(OperatorKind.STORED, SparseMatrix(2))
        slot.release()
        assert slot.is_empty
        assert not matrix.initialized

class TestOperatorStorage:

    def test_roles(self):
        storage = OperatorStorage()
        assert storage.names() == ('A', 'B', 'precond')
        assert all(storage.kind(role) is OperatorKind.EMPTY for role in storage)
        with pytest.raises(KeyError):
            storage.kind('C')

    def test_allocate_default_builder(self):
        storage = OperatorStorage()
        A       = storage.allocate('A', OperatorKind.SHELL, 4)
        assert isinstance(A, ShellMatrix)
        assert A.shape == (4, 4)
        B       = storage.allocate('B', OperatorKind.STORED, 0)
        assert B.shape == (0, 0)

    def test_allocate_with_dof_map_builder(self):
        dof_map = DofMap(6, dtype=np.complex128)
        storage = OperatorStorage()
        A       = storage.allocate('A', OperatorKind.STORED, 6, builder=lambda n: dof_map.build_matrix())
        assert A.dtype == np.complex128
        assert storage.get('A') is A

    def test_release_all(self):
        storage = OperatorStorage()
        storage.allocate('A', OperatorKind.STORED, 3)
        storage.allocate('precond', OperatorKind.SHELL, 3)
        storage.release_all()
        assert all(storage.kind(role) is OperatorKind.EMPTY for role in storage)

class TestMatrixRegistry:

    def test_add_have_get(self):
        registry = MatrixRegistry()
        matrix   = registry.add("mass", SparseMatrix(3))
        assert registry.have("mass")
        assert registry.get("mass") is matrix
        assert registry.kind("mass") is OperatorKind.STORED
        assert len(registry) == 1

    def test_errors(self):
        registry = MatrixRegistry()
        registry.add("mass", SparseMatrix(3))
        with pytest.raises(EigenSystemError) as exc:
            registry.add("mass", SparseMatrix(3))
        assert exc.value.code is EigenSystemErrorMsg.DUPLICATE_MATRIX
        with pytest.raises(EigenSystemError) as exc:
            registry.get("damping")
        assert exc.value.code is EigenSystemErrorMsg.MATRIX_NOT_FOUND

    def test_reinit_resizes(self):
        registry = MatrixRegistry()
        matrix   = registry.add("mass", SparseMatrix(3))
        matrix.set(2, 2, 1.0)
        registry.reinit(5)
        assert matrix.shape == (5, 5)
        assert matrix.nnz == 0

    def test_clear(self):
        registry = MatrixRegistry()
        matrix   = registry.add("mass", SparseMatrix(3))
        registry.clear()
        assert not registry.have("mass")
        assert not matrix.initialized

class TestDofMap:

    def test_distribution(self):
        dof_map = DofMap()
        assert dof_map.n_dofs == 0
        dof_map.distribute_dofs(7)
        assert (dof_map.first_dof, dof_map.end_dof, dof_map.n_local_dofs) == (0, 7, 7)
        assert dof_map.build_vector().shape == (7,)

    def test_negative(self):
        with pytest.raises(ValueError):
            DofMap().distribute_dofs(-1)
