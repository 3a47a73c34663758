"""
Source adapters: one function per (origin format, measurement kind).

Each adapter checks the shape of the origin dataset (batch headers, required
columns and their positions, space group) and only then fills the target
Intensities. Rows with a NaN value or a non-positive sigma are dropped and
counted, never reported as errors.

    mtz = MTZ().read('scaled_unmerged.mtz')
    intensities = read_unmerged_intensities_from_mtz(mtz)
    intensities.merge_in_place()
"""

from typing import Optional

import numpy as np

from reflmerge.io.cif_readers import ReflectionCIF
from reflmerge.io.legacy_format_readers import MTZ, XDSAscii
from reflmerge.io.proxies import MtzDataProxy, ReflnDataProxy, XdsDataProxy
from reflmerge.merging.intensities import Intensities, IntensitiesError
from reflmerge.symmetry.symmetry import as_symmetry


MEAN_LABELS = ['IMEAN', 'I']
ANOMALOUS_LABELS = ['I(+)', 'I(-)']
ANOMALOUS_SIGMA_LABELS = ['SIGI(+)', 'SIGI(-)']
MMCIF_ANOMALOUS_LABELS = ['pdbx_I_plus', 'pdbx_I_minus']
MMCIF_ANOMALOUS_SIGMA_LABELS = ['pdbx_I_plus_sigma', 'pdbx_I_minus_sigma']
SIGNS = [1, -1]


def _check_spacegroup(spacegroup):
    if spacegroup is None:
        raise IntensitiesError("unknown space group")
    try:
        return as_symmetry(spacegroup)
    except ValueError as e:
        raise IntensitiesError(f"unknown space group: {e}") from e


def _target(intensities: Optional[Intensities], verbose: int) -> Intensities:
    if intensities is None:
        return Intensities(verbose=verbose)
    if len(intensities) > 0 or intensities.n_offered > 0:
        raise IntensitiesError("target Intensities is already populated")
    return intensities


def _report(name: str, intensities: Intensities, verbose: int):
    if verbose > 0:
        print(f"{name}: accepted {intensities.n_accepted} of {intensities.n_offered} rows "
              f"({intensities.n_rejected} rejected), space group {intensities.spacegroup_str()}")


def read_unmerged_intensities_from_mtz(mtz: MTZ, intensities: Optional[Intensities] = None,
                                       verbose: int = 0) -> Intensities:
    """
    Per-observation intensities from an unmerged MTZ file (Aimless, XSCALE output).

    The sign of each observation comes from the parity of M/ISYM
    (odd -> I(+), even -> I(-)); indices outside the ASU are then reduced,
    which also covers files written with original indices and ISYM = 1.

    Raises:
        IntensitiesError: if the file has no batches, M/ISYM is not the 4th
            column, I or SIGI is missing, or the space group is unknown
    """
    if not mtz.has_batches:
        raise IntensitiesError("expected unmerged file")
    isym_col = mtz.column_with_label('M/ISYM')
    if isym_col is None or isym_col.idx != 3:
        raise IntensitiesError("unmerged file should have M/ISYM as 4th column")
    col = mtz.get_column_with_label('I')
    sigma_idx = mtz.get_column_with_label('SIGI').idx
    symmetry = _check_spacegroup(mtz.spacegroup)
    wavelength = mtz.dataset_wavelength(col.dataset_id)
    intensities = _target(intensities, verbose)

    intensities.set_metadata(mtz.average_batch_cell(), symmetry, wavelength)
    proxy = MtzDataProxy(mtz)
    isym = np.nan_to_num(proxy.num_array(isym_col.idx)).astype(np.int64)
    isign = np.where(isym % 2 == 0, -1, 1)
    intensities.extend(proxy.hkl_array(), isign, proxy.num_array(col.idx), proxy.num_array(sigma_idx))
    intensities.switch_to_asu_indices(merged=False)
    _report("unmerged MTZ", intensities, verbose)
    return intensities


def read_mean_intensities_from_mtz(mtz: MTZ, intensities: Optional[Intensities] = None,
                                   verbose: int = 0) -> Intensities:
    """
    Merged mean intensities (IMEAN, or I) with SIGIMEAN / SIGI.
    """
    if mtz.has_batches:
        raise IntensitiesError("expected merged file")
    col = mtz.column_with_one_of_labels(MEAN_LABELS)
    if col is None:
        raise IntensitiesError(f"Mean intensities (IMEAN or I) not found.\n"
                               f"Available columns: {mtz.labels}")
    sigma_idx = mtz.get_column_with_label('SIG' + col.label).idx
    symmetry = _check_spacegroup(mtz.spacegroup)
    wavelength = mtz.dataset_wavelength(col.dataset_id)
    intensities = _target(intensities, verbose)

    intensities.set_metadata(mtz.cell, symmetry, wavelength)
    intensities.read_data(MtzDataProxy(mtz), col.idx, sigma_idx)
    _report("mean MTZ", intensities, verbose)
    return intensities


def read_anomalous_intensities_from_mtz(mtz: MTZ, intensities: Optional[Intensities] = None,
                                        verbose: int = 0) -> Intensities:
    """
    Merged I(+) and I(-) as separate records with isign +1 and -1.
    """
    if mtz.has_batches:
        raise IntensitiesError("expected merged file")
    cols = [mtz.get_column_with_label(label) for label in ANOMALOUS_LABELS]
    sigma_idx = [mtz.get_column_with_label(label).idx for label in ANOMALOUS_SIGMA_LABELS]
    symmetry = _check_spacegroup(mtz.spacegroup)
    wavelength = mtz.dataset_wavelength(cols[0].dataset_id)
    intensities = _target(intensities, verbose)

    intensities.set_metadata(mtz.cell, symmetry, wavelength)
    proxy = MtzDataProxy(mtz)
    for col, sig, isign in zip(cols, sigma_idx, SIGNS):
        intensities.read_data(proxy, col.idx, sig, isign=isign)
    _report("anomalous MTZ", intensities, verbose)
    return intensities


def read_unmerged_intensities_from_mmcif(refln: ReflectionCIF, intensities: Optional[Intensities] = None,
                                         verbose: int = 0) -> Intensities:
    """
    Per-observation intensities from a _diffrn_refln loop (intensity_net).
    """
    proxy = ReflnDataProxy(refln)
    value_idx = proxy.column_index('intensity_net')
    sigma_idx = proxy.column_index('intensity_sigma')
    symmetry = _check_spacegroup(refln.spacegroup)
    intensities = _target(intensities, verbose)

    intensities.set_metadata(refln.cell, symmetry, refln.wavelength)
    intensities.read_data(proxy, value_idx, sigma_idx)
    intensities.switch_to_asu_indices(merged=False)
    _report("unmerged mmCIF", intensities, verbose)
    return intensities


def read_mean_intensities_from_mmcif(refln: ReflectionCIF, intensities: Optional[Intensities] = None,
                                     verbose: int = 0) -> Intensities:
    """
    Merged intensities from a _refln loop (intensity_meas).
    """
    proxy = ReflnDataProxy(refln)
    value_idx = proxy.column_index('intensity_meas')
    sigma_idx = proxy.column_index('intensity_sigma')
    symmetry = _check_spacegroup(refln.spacegroup)
    intensities = _target(intensities, verbose)

    intensities.set_metadata(refln.cell, symmetry, refln.wavelength)
    intensities.read_data(proxy, value_idx, sigma_idx)
    _report("mean mmCIF", intensities, verbose)
    return intensities


def read_anomalous_intensities_from_mmcif(refln: ReflectionCIF, intensities: Optional[Intensities] = None,
                                          verbose: int = 0) -> Intensities:
    """
    pdbx_I_plus / pdbx_I_minus as separate records with isign +1 and -1.
    """
    proxy = ReflnDataProxy(refln)
    value_idx = [proxy.column_index(label) for label in MMCIF_ANOMALOUS_LABELS]
    sigma_idx = [proxy.column_index(label) for label in MMCIF_ANOMALOUS_SIGMA_LABELS]
    symmetry = _check_spacegroup(refln.spacegroup)
    intensities = _target(intensities, verbose)

    intensities.set_metadata(refln.cell, symmetry, refln.wavelength)
    for val, sig, isign in zip(value_idx, sigma_idx, SIGNS):
        intensities.read_data(proxy, val, sig, isign=isign)
    _report("anomalous mmCIF", intensities, verbose)
    return intensities


def read_unmerged_intensities_from_xds(xds: XDSAscii, intensities: Optional[Intensities] = None,
                                       verbose: int = 0) -> Intensities:
    """
    Observations from XDS_ASCII.HKL. Rejected observations (negative sigma)
    are dropped by the usual filter.
    """
    spacegroup = xds.find_spacegroup()
    if spacegroup is None:
        raise IntensitiesError(f"unknown space group number: {xds.spacegroup_number}")
    symmetry = _check_spacegroup(spacegroup)
    intensities = _target(intensities, verbose)

    intensities.set_metadata(xds.cell, symmetry, xds.wavelength)
    intensities.read_data(XdsDataProxy(xds), XdsDataProxy.IOBS_IDX, XdsDataProxy.SIGMA_IDX)
    intensities.switch_to_asu_indices(merged=False)
    _report("XDS_ASCII", intensities, verbose)
    return intensities
