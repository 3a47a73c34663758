'''
Intensities: a set of reflection intensities with symmetry and cell metadata.

Populated once by a source adapter (see reflmerge.io.intensity_readers),
then reduced in place: systematic absences removed, indices switched to the
reciprocal asymmetric unit, sorted and merged with inverse-variance weights.
'''

import copy
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple

import numpy as np
import pandas as pd

from reflmerge.math_functions.math_numpy import CellGeometry
from reflmerge.symmetry.symmetry import as_symmetry


class IntensitiesError(ValueError):
    """Raised when input data is structurally unusable (missing columns, unknown symmetry, ...)."""
    pass


@dataclass(order=True)
class Refl:
    '''
    A single reflection record.

    Records compare on (h, k, l, isign) only; value and sigma do not take
    part in sorting or equality.
    '''
    hkl: Tuple[int, int, int]
    isign: int = 0  # 1 for I(+), -1 for I(-), 0 if not tracked
    value: float = field(default=np.nan, compare=False)
    sigma: float = field(default=np.nan, compare=False)

    def __post_init__(self):
        self.hkl = tuple(int(x) for x in self.hkl)


def valid_mask(value, sigma) -> np.ndarray:
    '''
    Rows worth keeping: value is not NaN and sigma is strictly positive.
    XDS marks rejected observations with negative sigma, and sigma 0 is unusable.
    '''
    value = np.asarray(value, dtype=np.float64)
    sigma = np.asarray(sigma, dtype=np.float64)
    with np.errstate(invalid='ignore'):
        return ~np.isnan(value) & (sigma > 0)


class Intensities:
    """
    Reflection intensities stored column-wise in numpy arrays.

    Attributes:
        hkl: Miller indices, shape (N, 3), int32
        isign: Friedel sign per record, shape (N,), int8
        value: intensities, shape (N,), float64
        sigma: standard deviations, shape (N,), float64
        spacegroup: symmetry capability (reflmerge.symmetry.Symmetry or compatible)
        unit_cell: CellGeometry
        wavelength: wavelength of the originating dataset
        n_offered: rows offered for ingestion
        n_rejected: rows dropped by the NaN / non-positive sigma filter
    """

    def __init__(self, verbose: int = 0):
        self.verbose = verbose
        self.hkl = np.zeros((0, 3), dtype=np.int32)
        self.isign = np.zeros(0, dtype=np.int8)
        self.value = np.zeros(0, dtype=np.float64)
        self.sigma = np.zeros(0, dtype=np.float64)
        self.spacegroup = None
        self.unit_cell: Optional[CellGeometry] = None
        self.wavelength: float = np.nan
        self.n_offered = 0
        self.n_rejected = 0

    # ------------------------------------------------------------------
    # container protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.value)

    def __getitem__(self, i: int) -> Refl:
        return Refl(tuple(self.hkl[i].tolist()), int(self.isign[i]),
                    float(self.value[i]), float(self.sigma[i]))

    def __iter__(self) -> Iterator[Refl]:
        for i in range(len(self)):
            yield self[i]

    @property
    def records(self):
        return list(self)

    @property
    def n_accepted(self) -> int:
        return self.n_offered - self.n_rejected

    def copy(self) -> 'Intensities':
        """
        Independent copy of the records; take one before merging if the raw
        observations are still needed. The symmetry capability is shared.
        """
        other = copy.copy(self)
        other.hkl = self.hkl.copy()
        other.isign = self.isign.copy()
        other.value = self.value.copy()
        other.sigma = self.sigma.copy()
        return other

    def have_sign(self) -> bool:
        return len(self) > 0 and bool(self.isign[0] != 0)

    def spacegroup_str(self) -> str:
        return self.spacegroup.xhm() if self.spacegroup is not None else "none"

    # ------------------------------------------------------------------
    # metadata and ingestion
    # ------------------------------------------------------------------

    def set_metadata(self, unit_cell, spacegroup, wavelength: float = np.nan) -> 'Intensities':
        """
        Copy cell, symmetry and wavelength from an origin dataset.

        Raises:
            IntensitiesError: If the space group is unknown
        """
        if spacegroup is None:
            raise IntensitiesError("unknown space group")
        self.spacegroup = as_symmetry(spacegroup)
        self.unit_cell = unit_cell if isinstance(unit_cell, CellGeometry) else CellGeometry(unit_cell)
        self.wavelength = float(wavelength)
        return self

    def add_if_valid(self, refl: Refl) -> bool:
        '''
        Append a single record unless its value is NaN or its sigma is not positive.
        Returns True if the record was stored.
        '''
        return self.extend([refl.hkl], refl.isign, [refl.value], [refl.sigma]) == 1

    def extend(self, hkl, isign, value, sigma) -> int:
        '''
        Append many records at once, applying the same filter as add_if_valid.

        Args:
            hkl: (N, 3) Miller indices
            isign: scalar or (N,) Friedel signs
            value: (N,) intensities
            sigma: (N,) standard deviations

        Returns:
            Number of records stored
        '''
        hkl = np.asarray(hkl, dtype=np.int32).reshape(-1, 3)
        value = np.asarray(value, dtype=np.float64).reshape(-1)
        sigma = np.asarray(sigma, dtype=np.float64).reshape(-1)
        isign = np.broadcast_to(np.asarray(isign, dtype=np.int8), value.shape)
        keep = valid_mask(value, sigma)
        self.hkl = np.concatenate([self.hkl, hkl[keep]])
        self.isign = np.concatenate([self.isign, isign[keep]])
        self.value = np.concatenate([self.value, value[keep]])
        self.sigma = np.concatenate([self.sigma, sigma[keep]])
        n_kept = int(keep.sum())
        self.n_offered += len(value)
        self.n_rejected += len(value) - n_kept
        return n_kept

    def read_data(self, proxy, value_idx: int, sigma_idx: int, isign: int = 0) -> int:
        '''
        Stream every row of a DataProxy into this set.

        Args:
            proxy: row/column proxy over the origin table
            value_idx: position of the intensity field within a row
            sigma_idx: position of the sigma field within a row
            isign: sign given to every record read in this pass
        '''
        return self.extend(proxy.hkl_array(), isign,
                           proxy.num_array(value_idx), proxy.num_array(sigma_idx))

    # ------------------------------------------------------------------
    # reductions, all in place
    # ------------------------------------------------------------------

    def _keep(self, mask: np.ndarray) -> None:
        self.hkl = self.hkl[mask]
        self.isign = self.isign[mask]
        self.value = self.value[mask]
        self.sigma = self.sigma[mask]

    def remove_systematic_absences(self) -> int:
        '''
        Drop reflections forbidden by the space group.
        Does nothing when no symmetry is set. Returns the number removed.
        '''
        if self.spacegroup is None or len(self) == 0:
            return 0
        unique_hkl, inverse = np.unique(self.hkl, axis=0, return_inverse=True)
        absent = np.array([self.spacegroup.is_systematic_absence(h) for h in unique_hkl], dtype=bool)
        mask = ~absent[inverse.reshape(-1)]
        n_removed = len(self) - int(mask.sum())
        self._keep(mask)
        if self.verbose > 0:
            print(f"Removed {n_removed} systematic absences ({self.spacegroup_str()})")
        return n_removed

    def switch_to_asu_indices(self, merged: bool = False) -> None:
        '''
        Replace every index outside the reciprocal ASU by its ASU representative.

        Args:
            merged: If False (per-observation data), isign is set from the parity
                of the symmetry operation used: odd -> +1, even -> -1.
                If True, isign already carries Friedel information and is kept.

        Raises:
            IntensitiesError: If no space group is set
        '''
        if self.spacegroup is None:
            raise IntensitiesError("unknown space group")
        if len(self) == 0:
            return
        unique_hkl, inverse = np.unique(self.hkl, axis=0, return_inverse=True)
        inverse = inverse.reshape(-1)
        new_hkl = unique_hkl.copy()
        isym = np.zeros(len(unique_hkl), dtype=np.int64)
        outside = np.zeros(len(unique_hkl), dtype=bool)
        for i, h in enumerate(unique_hkl):
            if self.spacegroup.is_in_asu(h):
                continue
            outside[i] = True
            new_hkl[i], isym[i] = self.spacegroup.to_asu(h)
        moved = outside[inverse]
        self.hkl[moved] = new_hkl[inverse][moved]
        if not merged:
            self.isign[moved] = np.where(isym[inverse][moved] % 2 == 0, -1, 1)
        if self.verbose > 1:
            print(f"Moved {int(moved.sum())} of {len(self)} reflections into the ASU")

    def sort(self) -> None:
        '''Sort by (h, k, l, isign).'''
        order = np.lexsort((self.isign, self.hkl[:, 2], self.hkl[:, 1], self.hkl[:, 0]))
        self._keep(order)

    def merge_in_place(self, output_plus_minus: bool = False) -> None:
        '''
        Merge records sharing (hkl, isign) with inverse-variance weights:
        w = 1/sigma^2, value = sum(w*I)/sum(w), sigma = 1/sqrt(sum(w)).

        Args:
            output_plus_minus: If False, signs are discarded first so that the
                result is I(mean). If True, I(+) and I(-) are merged separately.
        '''
        if len(self) == 0:
            return
        if not output_plus_minus:
            # discard signs so that merging produces Imean
            self.isign[:] = 0
        self.sort()
        starts = np.ones(len(self), dtype=bool)
        starts[1:] = np.any(self.hkl[1:] != self.hkl[:-1], axis=1) | (self.isign[1:] != self.isign[:-1])
        starts = np.flatnonzero(starts)
        w = 1.0 / (self.sigma * self.sigma)
        sum_w = np.add.reduceat(w, starts)
        sum_wI = np.add.reduceat(w * self.value, starts)
        n_before = len(self)
        self.hkl = self.hkl[starts]
        self.isign = self.isign[starts]
        self.value = sum_wI / sum_w
        self.sigma = 1.0 / np.sqrt(sum_w)
        if self.verbose > 0:
            print(f"Merged {n_before} observations into {len(self)} unique reflections")

    def resolution_range(self) -> Tuple[float, float]:
        '''
        Returns:
            (d_max, d_min) in the units of the cell, d_max >= d_min

        Raises:
            IntensitiesError: If the set is empty, has no cell or holds only (0,0,0)
        '''
        if len(self) == 0:
            raise IntensitiesError("resolution range of an empty set is undefined")
        if self.unit_cell is None:
            raise IntensitiesError("unit cell not set")
        inv_d2 = self.unit_cell.reciprocal_spacing_squared(self.hkl)
        # (0,0,0) has no spacing
        inv_d2 = inv_d2[inv_d2 > 0]
        if len(inv_d2) == 0:
            raise IntensitiesError("resolution range needs a reflection other than (0,0,0)")
        return 1 / np.sqrt(inv_d2.min()), 1 / np.sqrt(inv_d2.max())

    # ------------------------------------------------------------------
    # consumer views
    # ------------------------------------------------------------------

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame({
            'H': self.hkl[:, 0], 'K': self.hkl[:, 1], 'L': self.hkl[:, 2],
            'isign': self.isign.astype(np.int32), 'I': self.value, 'SIGI': self.sigma,
        })

    def to_dataset(self):
        '''
        Reflections as a reciprocalspaceship DataSet indexed by H, K, L,
        with cell and space group attached. Nothing is written to disk.
        '''
        import reciprocalspaceship as rs
        ds = rs.DataSet(self.to_dataframe())
        ds = ds.set_index(['H', 'K', 'L'])
        if self.unit_cell is not None:
            ds.cell = self.unit_cell.to_gemmi()
        if self.spacegroup is not None and hasattr(self.spacegroup, 'spacegroup'):
            ds.spacegroup = self.spacegroup.spacegroup
        return ds.infer_mtz_dtypes()

    def to_tensors(self, device: str = 'cpu') -> Dict[str, 'torch.Tensor']:
        '''
        Reflections as torch tensors for refinement code:
        'hkl' (int32), 'isign' (int8), 'I' and 'SIGI' (float32).
        '''
        import torch
        device = torch.device(device)
        return {
            'hkl': torch.tensor(self.hkl, dtype=torch.int32, device=device),
            'isign': torch.tensor(self.isign, dtype=torch.int8, device=device),
            'I': torch.tensor(self.value, dtype=torch.float32, device=device),
            'SIGI': torch.tensor(self.sigma, dtype=torch.float32, device=device),
        }

    def summary(self):
        print(f"Intensities: {len(self)} reflections")
        print(f"  Space group: {self.spacegroup_str()}")
        print(f"  Cell: {self.unit_cell}")
        print(f"  Wavelength: {self.wavelength}")
        print(f"  Rows read: {self.n_offered}, rejected: {self.n_rejected}")
        if len(self) > 0:
            d_max, d_min = self.resolution_range()
            print(f"  Resolution: {d_max:.2f} - {d_min:.2f}")
            print(f"  Anomalous: {self.have_sign()}")

    def __repr__(self) -> str:
        return (f"Intensities(n={len(self)}, spacegroup={self.spacegroup_str()!r}, "
                f"wavelength={self.wavelength})")
