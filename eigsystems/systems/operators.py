'''
Operator storage of an eigenvalue system.

Every operator lives in an `OperatorSlot`, a tagged variant that is empty,
holds a stored `SparseMatrix` or holds a matrix-free `ShellMatrix`, never
both. Slots are grouped in `OperatorTable`s:

    - OperatorStorage : the fixed roles A, B and precond
    - MatrixRegistry  : named auxiliary matrices
'''

from typing import Optional, Dict, Iterator, Callable, Union, Tuple
from enum import Enum, auto, unique

from ..algebra.matrices import SparseMatrix, ShellMatrix
from .errors import EigenSystemError, EigenSystemErrorMsg

Handle  = Union[SparseMatrix, ShellMatrix]
Builder = Callable[[int], Handle]

@unique
class OperatorKind(Enum):
    EMPTY   = auto()
    STORED  = auto()
    SHELL   = auto()

_HANDLE_TYPES = {
    OperatorKind.STORED : SparseMatrix,
    OperatorKind.SHELL  : ShellMatrix,
}

# ----------------------------------------------------------------------

class OperatorSlot:
    """
    Exclusively owned operator handle with its representation tag.
    """
    __slots__ = ('_kind', '_handle')

    def __init__(self):
        self._kind      : OperatorKind      = OperatorKind.EMPTY
        self._handle    : Optional[Handle]  = None

    @property
    def kind(self) -> OperatorKind:
        return self._kind

    @property
    def handle(self) -> Optional[Handle]:
        return self._handle

    @property
    def is_empty(self) -> bool:
        return self._kind is OperatorKind.EMPTY

    def allocate(self, kind: OperatorKind, handle: Handle) -> Handle:
        '''
        Take ownership of a handle, releasing the one held before.
        '''
        expected = _HANDLE_TYPES.get(kind)
        if expected is None:
            raise ValueError("Cannot allocate an EMPTY operator slot")
        if not isinstance(handle, expected):
            raise TypeError(f"{kind.name} slot needs a {expected.__name__}, got {type(handle).__name__}")
        self.release()
        self._kind, self._handle = kind, handle
        return handle

    def release(self):
        if self._handle is not None:
            self._handle.clear()
        self._kind, self._handle = OperatorKind.EMPTY, None

    def get(self, kind: Optional[OperatorKind] = None) -> Optional[Handle]:
        '''
        Active handle, or None when empty or of another representation than `kind`.
        '''
        if kind is not None and kind is not self._kind:
            return None
        return self._handle

    def __repr__(self):
        return f"OperatorSlot({self._kind.name}, {self._handle!r})"

# ----------------------------------------------------------------------

class OperatorTable:
    """
    Name -> slot table.
    """

    def __init__(self):
        self._slots : Dict[str, OperatorSlot] = {}

    def _slot(self, name: str) -> OperatorSlot:
        return self._slots[name]

    def kind(self, name: str) -> OperatorKind:
        return self._slot(name).kind

    def get(self, name: str, kind: Optional[OperatorKind] = None) -> Optional[Handle]:
        return self._slot(name).get(kind)

    def release(self, name: str):
        self._slot(name).release()

    def release_all(self):
        for slot in self._slots.values():
            slot.release()

    def names(self) -> Tuple[str, ...]:
        return tuple(self._slots)

    def __contains__(self, name: str) -> bool:
        return name in self._slots

    def __iter__(self) -> Iterator[str]:
        return iter(self._slots)

    def __len__(self) -> int:
        return len(self._slots)

    def __repr__(self):
        slots = ', '.join(f"{name}={slot.kind.name}" for name, slot in self._slots.items())
        return f"{self.__class__.__name__}({slots})"

# ----------------------------------------------------------------------

class OperatorStorage(OperatorTable):
    """
    Primary operator slots of an eigenvalue system: A, B and precond.

    Example:
        >>> storage = OperatorStorage()
        >>> A = storage.allocate('A', OperatorKind.SHELL, 10)
        >>> storage.allocate('A', OperatorKind.STORED, 10)   # releases the shell
    """

    ROLES = ('A', 'B', 'precond')

    def __init__(self):
        super().__init__()
        for role in self.ROLES:
            self._slots[role] = OperatorSlot()

    def _slot(self, name: str) -> OperatorSlot:
        if name not in self._slots:
            raise KeyError(f"Unknown operator role {name!r}, expected one of {self.ROLES}")
        return self._slots[name]

    def allocate(self, role: str, kind: OperatorKind, size: int, builder: Optional[Builder] = None) -> Handle:
        '''
        Allocate a fresh size x size operator of the given representation.
        `builder(size)` creates the handle; by default an empty float64 one.
        '''
        slot = self._slot(role)
        if builder is None:
            cls = _HANDLE_TYPES.get(kind)
            if cls is None:
                raise ValueError("Cannot allocate an EMPTY operator slot")
            builder = lambda n: cls(n) if n > 0 else cls().init(0)
        return slot.allocate(kind, builder(size))

# ----------------------------------------------------------------------

class MatrixRegistry(OperatorTable):
    """
    Named auxiliary matrices. Names are unique; entries survive `reinit`
    (resized and zeroed) and are dropped by `clear`.
    """

    def add(self, name: str, handle: Handle) -> Handle:
        if name in self._slots:
            raise EigenSystemError(EigenSystemErrorMsg.DUPLICATE_MATRIX,
                                f"Cannot add matrix {name!r}: duplicate name")
        kind = OperatorKind.SHELL if isinstance(handle, ShellMatrix) else OperatorKind.STORED
        slot = OperatorSlot()
        slot.allocate(kind, handle)
        self._slots[name] = slot
        return handle

    def have(self, name: str) -> bool:
        return name in self._slots

    def _slot(self, name: str) -> OperatorSlot:
        if name not in self._slots:
            raise EigenSystemError(EigenSystemErrorMsg.MATRIX_NOT_FOUND,
                                f"Matrix {name!r} not found")
        return self._slots[name]

    def get(self, name: str, kind: Optional[OperatorKind] = None) -> Handle:
        return self._slot(name).get(kind)

    def reinit(self, n: int):
        '''
        Resize every entry to n x n, dropping its entries.
        '''
        for slot in self._slots.values():
            slot.handle.init(n)

    def clear(self):
        self.release_all()
        self._slots.clear()

    def items(self):
        return ((name, slot.handle) for name, slot in self._slots.items())
