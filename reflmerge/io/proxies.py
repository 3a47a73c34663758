'''
Row/column proxies over origin tables.

A proxy presents a table as a flat row-major buffer: `size()` numbers in
rows of `stride()` fields, with the Miller index in the first three fields
of each row. Offsets are flat positions in that buffer, so the field at
column j of row i sits at offset i * stride() + j.

One proxy class per physical layout lets the ingestion code in
Intensities.read_data serve MTZ, mmCIF and XDS_ASCII alike.
'''

import numpy as np
from typing import Tuple


class DataProxy:
    """
    Flat view of a 2D table whose first three columns are h, k, l.
    """

    def __init__(self, table: np.ndarray):
        table = np.asarray(table)
        if table.ndim != 2 or table.shape[1] < 3:
            raise ValueError(f"Expected a 2D table with at least 3 columns, got shape {table.shape}")
        self._table = table
        self._flat = table.reshape(-1)

    def size(self) -> int:
        return self._flat.size

    def stride(self) -> int:
        return self._table.shape[1]

    def row_count(self) -> int:
        return self._table.shape[0]

    def get_hkl(self, offset: int) -> Tuple[int, int, int]:
        return tuple(int(x) for x in self._flat[offset:offset + 3])

    def get_num(self, offset: int) -> float:
        return float(self._flat[offset])

    def hkl_array(self) -> np.ndarray:
        '''Miller indices of all rows, shape (N, 3), int32.'''
        return self._table[:, :3].astype(np.int32)

    def num_array(self, idx: int) -> np.ndarray:
        '''Field idx of all rows, shape (N,), float64.'''
        return self._table[:, idx].astype(np.float64)

    def __len__(self) -> int:
        return self.row_count()


class MtzDataProxy(DataProxy):
    """Proxy over the reflection array of an MTZ file; columns 0-2 are H, K, L."""

    def __init__(self, mtz):
        super().__init__(mtz.data)


class ReflnDataProxy(DataProxy):
    """
    Proxy over an mmCIF reflection loop.

    The Miller indices are moved to the front, so field positions are shifted
    by three relative to ReflectionCIF.columns; use column_index() to look them up.
    """

    def __init__(self, refln):
        super().__init__(np.column_stack([refln.miller_array(), refln.data]))
        self._refln = refln

    def column_index(self, label: str) -> int:
        return 3 + self._refln.get_column_index(label)


class XdsDataProxy(DataProxy):
    """Proxy over XDS_ASCII observations laid out as h, k, l, iobs, sigma."""

    IOBS_IDX = 3
    SIGMA_IDX = 4

    def __init__(self, xds):
        super().__init__(np.column_stack([xds.hkl, xds.iobs, xds.sigma]))
