'''
Attribute reader for Exodus II mesh files.

Exodus II files are netCDF files. In the netCDF-4 flavour they are HDF5 files,
read here with h5py: a netCDF variable is a dataset of the same name, and a
netCDF dimension is a dimension-scale dataset whose length is the dimension
length.

Every call returns an `ExResult` (status, error code, message, values)
instead of setting process-wide error state. Warnings and errors are also
logged.

Example:
    >>> with ExodusFile("mesh.e") as exo:
    ...     res = exo.get_attr(ObjectType.ELEM_BLOCK, 10)
    ...     if res.ok:
    ...         thickness = res.values[:, 0]
'''

from typing import Optional, NamedTuple, Any, Tuple, Union
from enum import Enum, IntEnum, unique

import h5py
import numpy as np
from numpy.typing import NDArray

from ..common.flog import get_global_logger, Logger

# ---------------------------------------------------------------------
#! Status and result
# ---------------------------------------------------------------------

@unique
class ExStatus(IntEnum):
    NOERR   = 0
    WARN    = 1
    FATAL   = -1

@unique
class ExErrorCode(Enum):
    NOERR           = 0
    BADPARAM        = 1000
    LOOKUPFAIL      = 1004
    NULLENTITY      = -1006
    MSG             = -1000
    DIM_NOT_FOUND   = 2001
    VAR_NOT_FOUND   = 2002
    READ_FAILED     = 2003

class ExResult(NamedTuple):
    '''
    Outcome of a reader call.

    Attributes:
        status  : NOERR, WARN or FATAL
        code    : the error code behind a non-NOERR status
        message : human readable description (empty on success)
        values  : the data read, None when nothing was read
    '''
    status  : ExStatus
    code    : ExErrorCode   = ExErrorCode.NOERR
    message : str           = ""
    values  : Any           = None

    @property
    def ok(self) -> bool:
        return self.status is ExStatus.NOERR

    @property
    def is_warning(self) -> bool:
        return self.status is ExStatus.WARN

    @property
    def is_fatal(self) -> bool:
        return self.status is ExStatus.FATAL

# ---------------------------------------------------------------------
#! Object types and their netCDF names
# ---------------------------------------------------------------------

class _Naming(NamedTuple):
    name        : str
    id_var      : Optional[str]
    status_var  : Optional[str]
    entries_dim : str
    attr_dim    : str
    attr_var    : str

@unique
class ObjectType(IntEnum):
    '''
    Mesh objects that carry attributes, valued as the Exodus II EX_* constants.
    '''
    ELEM_BLOCK  = 1
    NODE_SET    = 2
    EDGE_BLOCK  = 6
    EDGE_SET    = 7
    FACE_BLOCK  = 8
    FACE_SET    = 9
    ELEM_SET    = 10
    NODAL       = 14

    @property
    def naming(self) -> _Naming:
        return _NAMING[self]

    @property
    def display_name(self) -> str:
        return _NAMING[self].name

# entry/attribute dimension and variable names take the 1-based object index
_NAMING = {
    ObjectType.NODE_SET     : _Naming("node set",       "ns_prop1",  "ns_status",  "num_nod_ns%d",     "num_att_in_ns%d",   "nsattrb%d"),
    ObjectType.EDGE_SET     : _Naming("edge set",       "es_prop1",  "es_status",  "num_edge_es%d",    "num_att_in_es%d",   "esattrb%d"),
    ObjectType.FACE_SET     : _Naming("face set",       "fs_prop1",  "fs_status",  "num_face_fs%d",    "num_att_in_fs%d",   "fsattrb%d"),
    ObjectType.ELEM_SET     : _Naming("element set",    "els_prop1", "els_status", "num_ele_els%d",    "num_att_in_els%d",  "elsattrb%d"),
    ObjectType.NODAL        : _Naming("node block",     None,        None,         "num_nodes",        "num_att_in_nblk",   "nattrb"),
    ObjectType.EDGE_BLOCK   : _Naming("edge block",     "ed_prop1",  "ed_status",  "num_ed_in_blk%d",  "num_att_in_eblk%d", "eattrb%d"),
    ObjectType.FACE_BLOCK   : _Naming("face block",     "fa_prop1",  "fa_status",  "num_fa_in_blk%d",  "num_att_in_fblk%d", "fattrb%d"),
    ObjectType.ELEM_BLOCK   : _Naming("element block",  "eb_prop1",  "eb_status",  "num_el_in_blk%d",  "num_att_in_blk%d",  "attrib%d"),
}

def _format(template: str, index: int) -> str:
    return template % index if '%d' in template else template

# ---------------------------------------------------------------------
#! Reader
# ---------------------------------------------------------------------

class ExodusFile:
    """
    Read-only access to the attributes of an Exodus II (netCDF-4) file.

    Args:
        path (str):
            File to open. Ignored when `h5file` is given.
        h5file (h5py.File):
            Already open file; it is not closed by this object.
        logger (Logger):
            Defaults to the global logger.
    """

    def __init__(self, path: Optional[str] = None, h5file: Optional[h5py.File] = None, logger: Optional[Logger] = None):
        if h5file is None and path is None:
            raise ValueError("Either a path or an open h5py.File is required")
        self._logger    = logger if logger is not None else get_global_logger()
        self._owns      = h5file is None
        self._h5        = h5py.File(path, "r") if h5file is None else h5file
        self.path       = path if path is not None else h5file.filename

    @classmethod
    def from_h5(cls, h5file: h5py.File, logger: Optional[Logger] = None) -> 'ExodusFile':
        return cls(h5file=h5file, logger=logger)

    def close(self):
        if self._owns and self._h5:
            self._h5.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # -----------------------------------------------------------------
    #! Reporting
    # -----------------------------------------------------------------

    def _report(self, func: str, status: ExStatus, code: ExErrorCode, message: str, values: Any = None) -> ExResult:
        if status is ExStatus.WARN:
            self._logger.warning(f"[{func}] {message}")
        elif status is ExStatus.FATAL:
            self._logger.error(f"[{func}] {message} (code {code.value})")
        return ExResult(status, code, message, values)

    @staticmethod
    def _resolve_type(obj_type: Union[ObjectType, int]) -> Optional[ObjectType]:
        if isinstance(obj_type, ObjectType):
            return obj_type
        try:
            return ObjectType(int(obj_type))
        except (ValueError, TypeError):
            return None

    # -----------------------------------------------------------------
    #! netCDF access
    # -----------------------------------------------------------------

    def dim_length(self, name: str) -> Optional[int]:
        '''
        Length of a netCDF dimension, None when it is not defined.
        '''
        ds = self._h5.get(name)
        if not isinstance(ds, h5py.Dataset):
            return None
        return int(ds.shape[0]) if ds.shape else 0

    def has_var(self, name: str) -> bool:
        return isinstance(self._h5.get(name), h5py.Dataset)

    # -----------------------------------------------------------------
    #! Lookup
    # -----------------------------------------------------------------

    def lookup_id(self, obj_type: Union[ObjectType, int], obj_id: int) -> Tuple[int, ExResult]:
        '''
        1-based index of `obj_id` in the id array of its object type.

        Returns:
            (index, result). The index is -1 when the id was not found; a NULL
            entity (status 0) still returns its index with NULLENTITY.
        '''
        func    = "ex_id_lkup"
        kind    = self._resolve_type(obj_type)
        if kind is None:
            return -1, self._report(func, ExStatus.FATAL, ExErrorCode.BADPARAM,
                                f"Error: Invalid object type ({obj_type}) specified for file {self.path}")
        naming  = kind.naming
        if naming.id_var is None:
            return 0, ExResult(ExStatus.NOERR)

        if not self.has_var(naming.id_var):
            return -1, ExResult(ExStatus.FATAL, ExErrorCode.LOOKUPFAIL,
                                f"Error: failed to locate {naming.id_var} array in file {self.path}")
        try:
            ids = np.asarray(self._h5[naming.id_var][()]).reshape(-1)
        except (OSError, KeyError) as err:
            return -1, ExResult(ExStatus.FATAL, ExErrorCode.READ_FAILED,
                                f"Error: failed to read {naming.id_var} array in file {self.path}: {err}")

        matches = np.flatnonzero(ids == obj_id)
        if matches.size == 0:
            return -1, ExResult(ExStatus.FATAL, ExErrorCode.LOOKUPFAIL,
                                f"Error: {naming.name} id {obj_id} not found in {naming.id_var} array in file {self.path}")
        index = int(matches[0]) + 1

        if naming.status_var is not None and self.has_var(naming.status_var):
            stat = np.asarray(self._h5[naming.status_var][()]).reshape(-1)
            if index - 1 < stat.size and stat[index - 1] == 0:
                return index, ExResult(ExStatus.WARN, ExErrorCode.NULLENTITY,
                                f"Warning: {naming.name} id {obj_id} is a NULL entity in file {self.path}")
        return index, ExResult(ExStatus.NOERR)

    def _locate(self, func: str, obj_type, obj_id: int) -> Tuple[Optional[ObjectType], int, Optional[ExResult]]:
        '''
        Resolve type and index, or return the failure result of `func`.
        '''
        kind = self._resolve_type(obj_type)
        if kind is None:
            return None, -1, self._report(func, ExStatus.FATAL, ExErrorCode.BADPARAM,
                                f"Error: Invalid object type ({obj_type}) specified for file {self.path}")
        if kind is ObjectType.NODAL:
            return kind, 0, None

        index, res = self.lookup_id(kind, obj_id)
        if res.code is ExErrorCode.NULLENTITY:
            return kind, index, self._report(func, ExStatus.WARN, ExErrorCode.NULLENTITY,
                                f"Warning: no attributes found for NULL {kind.display_name} {obj_id} in file {self.path}")
        if not res.ok:
            return kind, index, self._report(func, ExStatus.WARN, res.code,
                                f"Warning: failed to locate {kind.display_name} id {obj_id} in "
                                f"{kind.naming.id_var} array in file {self.path}")
        return kind, index, None

    # -----------------------------------------------------------------
    #! Attributes
    # -----------------------------------------------------------------

    def get_attr_param(self, obj_type: Union[ObjectType, int], obj_id: int) -> ExResult:
        '''
        Number of attributes of an object; 0 when none are defined or the
        object is NULL.
        '''
        func = "ex_get_attr_param"
        kind, index, failure = self._locate(func, obj_type, obj_id)
        if failure is not None:
            if failure.code is ExErrorCode.NULLENTITY:
                return ExResult(ExStatus.NOERR, values=0)
            return failure

        n_attr = self.dim_length(_format(kind.naming.attr_dim, index))
        return ExResult(ExStatus.NOERR, values=0 if n_attr is None else n_attr)

    def get_attr(self, obj_type: Union[ObjectType, int], obj_id: int) -> ExResult:
        '''
        Read all attributes of an object.

        Returns:
            ExResult whose values are a float64 array of shape
            (num_entries, num_attr) on success, and an empty
            (num_entries, 0) array when the object defines no attributes.
        '''
        func = "ex_get_attr"
        kind, index, failure = self._locate(func, obj_type, obj_id)
        if failure is not None:
            return failure

        naming  = kind.naming
        tname   = naming.name
        n_ent   = self.dim_length(_format(naming.entries_dim, index))
        if n_ent is None:
            return self._report(func, ExStatus.FATAL, ExErrorCode.DIM_NOT_FOUND,
                                f"Error: failed to locate number of entries for {tname} {obj_id} in file {self.path}")

        n_attr  = self.dim_length(_format(naming.attr_dim, index))
        if n_attr is None:
            return self._report(func, ExStatus.WARN, ExErrorCode.MSG,
                                f"Warning: no attributes found for {tname} {obj_id} in file {self.path}",
                                values=np.zeros((n_ent, 0), dtype=np.float64))

        var = _format(naming.attr_var, index)
        if not self.has_var(var):
            return self._report(func, ExStatus.FATAL, ExErrorCode.VAR_NOT_FOUND,
                                f"Error: failed to locate attributes for {tname} {obj_id} in file {self.path}")

        try:
            ds      = self._h5[var]
            values  = np.asarray(ds[:n_ent, :n_attr] if ds.ndim == 2 else ds[()], dtype=np.float64)
        except (OSError, ValueError, TypeError) as err:
            return self._report(func, ExStatus.FATAL, ExErrorCode.READ_FAILED,
                                f"Error: failed to get attributes for {tname} {obj_id} in file {self.path}: {err}")
        if values.shape != (n_ent, n_attr):
            return self._report(func, ExStatus.FATAL, ExErrorCode.READ_FAILED,
                                f"Error: failed to get attributes for {tname} {obj_id} in file {self.path}: "
                                f"expected shape {(n_ent, n_attr)}, found {values.shape}")
        return ExResult(ExStatus.NOERR, values=values)

    def get_one_attr(self, obj_type: Union[ObjectType, int], obj_id: int, attrib_index: int) -> ExResult:
        '''
        Read one attribute (1-based `attrib_index`) of an object, as a
        float64 array of length num_entries.
        '''
        func = "ex_get_one_attr"
        res  = self.get_attr(obj_type, obj_id)
        if not res.ok:
            return res
        n_attr = res.values.shape[1]
        if not 1 <= attrib_index <= n_attr:
            return self._report(func, ExStatus.FATAL, ExErrorCode.BADPARAM,
                                f"Error: Invalid attribute index specified: {attrib_index}. "
                                f"Valid range is 1 to {n_attr} for {self._resolve_type(obj_type).display_name} "
                                f"{obj_id} in file {self.path}")
        return ExResult(ExStatus.NOERR, values=res.values[:, attrib_index - 1].copy())

    def __repr__(self):
        return f"ExodusFile({self.path!r})"

# ---------------------------------------------------------------------
#! EOF
# ---------------------------------------------------------------------
