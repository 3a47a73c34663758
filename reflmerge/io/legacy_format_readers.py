'''
Origin datasets for the binary MTZ format and the XDS_ASCII observation list.

File parsing itself is done by gemmi; these classes hold what the
intensity readers need (reflection table, column labels, cell, symmetry,
wavelengths, batch headers) and can also be filled from in-memory arrays.
'''

import numpy as np
import gemmi
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from reflmerge.math_functions.math_numpy import cell_parameters
from reflmerge.merging.intensities import IntensitiesError


@dataclass
class MtzColumn:
    label: str
    type: str
    idx: int
    dataset_id: int = 0


class MTZ:
    '''
    A class holding the contents of an MTZ file
    '''

    def __init__(self, verbose=0):
        self.verbose = verbose
        self.columns: List[MtzColumn] = []
        self.data: Optional[np.ndarray] = None
        self.cell: Optional[np.ndarray] = None
        self.spacegroup: Optional[gemmi.SpaceGroup] = None
        self.wavelengths: Dict[int, float] = {}
        self.batch_cells: List[np.ndarray] = []

    def read(self, filepath: str):
        '''
        Read an MTZ file with gemmi
        '''
        if self.verbose > 1:
            print(f"Reading MTZ file: {filepath}")
        return self.load_gemmi(gemmi.read_mtz_file(str(filepath)))

    def load_gemmi(self, mtz: gemmi.Mtz):
        '''
        Copy columns, data and headers out of a gemmi.Mtz object
        '''
        self.columns = [MtzColumn(col.label, col.type, col.idx, col.dataset_id) for col in mtz.columns]
        self.data = np.array(mtz, copy=True).reshape(-1, len(self.columns))
        self.cell = cell_parameters(mtz.cell)
        self.spacegroup = mtz.spacegroup
        self.wavelengths = {ds.id: ds.wavelength for ds in mtz.datasets}
        self.batch_cells = [np.array(list(batch.floats)[:6], dtype=np.float64) for batch in mtz.batches]
        if self.verbose > 0:
            print(f"MTZ: {len(self.data)} reflections, {len(self.columns)} columns, "
                  f"{len(self.batch_cells)} batches, space group {self.spacegroup_str()}")
        return self

    def set_data(self, columns: Sequence, data, cell, spacegroup=None,
                 wavelengths: Optional[Dict[int, float]] = None,
                 batch_cells: Optional[Sequence] = None):
        '''
        Fill from in-memory arrays.

        Args:
            columns: sequence of (label, type) or (label, type, dataset_id);
                     the first three must be H, K, L
            data: array of shape (nreflections, ncolumns)
            cell: [a, b, c, alpha, beta, gamma] or gemmi.UnitCell
            spacegroup: gemmi.SpaceGroup, name, or None if unknown
            wavelengths: {dataset_id: wavelength}
            batch_cells: one cell per batch header (unmerged files only)
        '''
        data = np.asarray(data, dtype=np.float32)
        if data.ndim != 2 or data.shape[1] != len(columns):
            raise ValueError(f"Data shape {data.shape} does not match {len(columns)} columns")
        self.columns = []
        for idx, col in enumerate(columns):
            label, col_type = col[0], col[1]
            dataset_id = col[2] if len(col) > 2 else 0
            self.columns.append(MtzColumn(label, col_type, idx, dataset_id))
        self.data = data
        self.cell = cell_parameters(cell)
        if isinstance(spacegroup, str):
            spacegroup = gemmi.SpaceGroup(spacegroup)
        self.spacegroup = spacegroup
        self.wavelengths = dict(wavelengths) if wavelengths else {0: np.nan}
        self.batch_cells = [cell_parameters(c) for c in (batch_cells or [])]
        return self

    @property
    def has_batches(self) -> bool:
        return len(self.batch_cells) > 0

    @property
    def labels(self) -> List[str]:
        return [col.label for col in self.columns]

    def column_with_label(self, label: str) -> Optional[MtzColumn]:
        for col in self.columns:
            if col.label == label:
                return col
        return None

    def column_with_one_of_labels(self, labels: Sequence[str]) -> Optional[MtzColumn]:
        for label in labels:
            col = self.column_with_label(label)
            if col is not None:
                return col
        return None

    def get_column_with_label(self, label: str) -> MtzColumn:
        col = self.column_with_label(label)
        if col is None:
            raise IntensitiesError(
                f"Column label not found: {label}\n"
                f"Available columns: {self.labels}"
            )
        return col

    def dataset_wavelength(self, dataset_id: int) -> float:
        if dataset_id not in self.wavelengths:
            raise IntensitiesError(f"MTZ dataset not found: {dataset_id}")
        return float(self.wavelengths[dataset_id])

    def average_batch_cell(self) -> np.ndarray:
        '''
        Mean of the cells stored in the batch headers.
        Falls back to the global cell when the batch headers carry no cell.
        '''
        if not self.batch_cells:
            return self.cell
        avg = np.mean(np.stack(self.batch_cells), axis=0)
        if np.any(avg <= 0):
            return self.cell
        return avg

    def spacegroup_str(self) -> str:
        return self.spacegroup.xhm() if self.spacegroup is not None else "none"

    def __len__(self) -> int:
        return 0 if self.data is None else len(self.data)


class XDSAscii:
    '''
    Per-observation data from an XDS_ASCII.HKL file (XDS, XSCALE)
    '''

    def __init__(self, verbose=0):
        self.verbose = verbose
        self.hkl = np.zeros((0, 3), dtype=np.int32)
        self.iobs = np.zeros(0, dtype=np.float64)
        self.sigma = np.zeros(0, dtype=np.float64)
        self.cell: Optional[np.ndarray] = None
        self.spacegroup_number: int = 0
        self.wavelength: float = np.nan

    def read(self, filepath: str):
        if self.verbose > 1:
            print(f"Reading XDS_ASCII file: {filepath}")
        return self.load_gemmi(gemmi.read_xds_ascii(str(filepath)))

    def load_gemmi(self, xds):
        '''
        Copy observations and header values out of a gemmi.XdsAscii object
        '''
        self.hkl = np.asarray(xds.miller_array(), dtype=np.int32).reshape(-1, 3)
        self.iobs = np.asarray(xds.iobs_array(), dtype=np.float64)
        self.sigma = np.asarray(xds.sigma_array(), dtype=np.float64)
        self.cell = cell_parameters(list(xds.cell_constants))
        self.spacegroup_number = int(xds.spacegroup_number)
        self.wavelength = float(xds.wavelength)
        if self.verbose > 0:
            print(f"XDS_ASCII: {len(self.iobs)} observations, space group number {self.spacegroup_number}")
        return self

    def set_data(self, hkl, iobs, sigma, cell, spacegroup_number: int, wavelength: float = np.nan):
        self.hkl = np.asarray(hkl, dtype=np.int32).reshape(-1, 3)
        self.iobs = np.asarray(iobs, dtype=np.float64)
        self.sigma = np.asarray(sigma, dtype=np.float64)
        if not (len(self.hkl) == len(self.iobs) == len(self.sigma)):
            raise ValueError("hkl, iobs and sigma must have the same length")
        self.cell = cell_parameters(cell)
        self.spacegroup_number = int(spacegroup_number)
        self.wavelength = float(wavelength)
        return self

    def find_spacegroup(self) -> Optional[gemmi.SpaceGroup]:
        if self.spacegroup_number <= 0:
            return None
        return gemmi.find_spacegroup_by_number(self.spacegroup_number)

    def __len__(self) -> int:
        return len(self.iobs)
