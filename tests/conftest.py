"""
In-memory origin datasets shared by the test modules.
"""

import numpy as np
import pandas as pd
import pytest

from reflmerge.io.cif_readers import ReflectionCIF
from reflmerge.io.legacy_format_readers import MTZ, XDSAscii


CELL = [50.0, 60.0, 70.0, 90.0, 90.0, 90.0]
BATCH_CELL = [50.5, 60.5, 70.5, 90.0, 90.0, 90.0]
NAN = float('nan')


@pytest.fixture
def unmerged_mtz():
    """
    P 21 21 21 unmerged file: (1,2,3) observed twice (once as (-1,2,3)),
    one systematic absence and two rows that must be rejected.
    """
    columns = _column_dataset([('H', 'H'), ('K', 'H'), ('L', 'H'), ('M/ISYM', 'Y'),
                               ('BATCH', 'B'), ('I', 'J'), ('SIGI', 'Q')])
    data = [
        [1, 2, 3, 1, 1, 10.0, 1.0],
        [-1, 2, 3, 1, 2, 20.0, 2.0],
        [1, 0, 0, 1, 1, 5.0, 1.0],
        [2, 2, 2, 1, 1, NAN, 1.0],
        [3, 3, 3, 1, 2, 7.0, 0.0],
    ]
    return MTZ().set_data(columns, data, CELL, 'P 21 21 21',
                          wavelengths={0: 0.0, 1: 0.9793},
                          batch_cells=[BATCH_CELL, BATCH_CELL])


def _column_dataset(columns, dataset_id=1):
    return [(label, col_type, 0 if label in ('H', 'K', 'L') else dataset_id)
            for label, col_type in columns]


@pytest.fixture
def mean_mtz():
    columns = _column_dataset([('H', 'H'), ('K', 'H'), ('L', 'H'), ('IMEAN', 'J'), ('SIGIMEAN', 'Q')])
    data = [
        [1, 2, 3, 100.0, 5.0],
        [2, 0, 0, 50.0, 2.0],
        [0, 0, 5, 8.0, 1.0],
        [4, 4, 4, NAN, 1.0],
    ]
    return MTZ().set_data(columns, data, CELL, 'P 21 21 21', wavelengths={0: 0.0, 1: 1.54})


@pytest.fixture
def anomalous_mtz():
    columns = _column_dataset([('H', 'H'), ('K', 'H'), ('L', 'H'),
                               ('I(+)', 'K'), ('SIGI(+)', 'M'), ('I(-)', 'K'), ('SIGI(-)', 'M')])
    data = [
        [1, 2, 3, 100.0, 5.0, 90.0, 5.0],
        [2, 1, 1, 40.0, 2.0, NAN, NAN],
    ]
    return MTZ().set_data(columns, data, CELL, 'P 21 21 21', wavelengths={0: 0.0, 1: 1.0})


def make_refln(frame, category='refln', spacegroup='P 21 21 21', wavelength=1.0):
    return ReflectionCIF().set_frame(pd.DataFrame(frame), CELL, spacegroup, wavelength, category=category)


@pytest.fixture
def mean_refln():
    return make_refln({
        'index_h': ['1', '2', '1'],
        'index_k': ['2', '0', '1'],
        'index_l': ['3', '0', '1'],
        'intensity_meas': ['100.0', '50.0', '?'],
        'intensity_sigma': ['5.0', '2.0', '1.0'],
        'status': ['o', 'o', 'f'],
    })


@pytest.fixture
def anomalous_refln():
    return make_refln({
        'index_h': [1, 2],
        'index_k': [2, 1],
        'index_l': [3, 1],
        'pdbx_I_plus': [100.0, 40.0],
        'pdbx_I_plus_sigma': [5.0, 2.0],
        'pdbx_I_minus': [90.0, '.'],
        'pdbx_I_minus_sigma': [5.0, '.'],
    })


@pytest.fixture
def unmerged_refln():
    return make_refln({
        'index_h': [1, -1, -1],
        'index_k': [2, -2, 2],
        'index_l': [3, -3, 3],
        'intensity_net': [10.0, 12.0, 20.0],
        'intensity_sigma': [1.0, 1.0, 2.0],
    }, category='diffrn_refln')


@pytest.fixture
def xds():
    return XDSAscii().set_data(
        hkl=[[1, 2, 3], [-1, 2, 3], [1, 2, 3], [2, 2, 2]],
        iobs=[10.0, 20.0, 30.0, 5.0],
        sigma=[1.0, 2.0, -1.0, 1.0],
        cell=CELL,
        spacegroup_number=19,
        wavelength=0.9793,
    )


@pytest.fixture
def cubic_cell():
    return np.array([10.0, 10.0, 10.0, 90.0, 90.0, 90.0])
