"""
Unit tests for the row/column proxies.
"""

import numpy as np
import pytest

from reflmerge.io.proxies import DataProxy, MtzDataProxy, ReflnDataProxy, XdsDataProxy
from reflmerge.merging import IntensitiesError


class TestDataProxy:
    """Test the flat row-major view."""

    def test_size_and_stride(self):
        """Test size is rows * stride"""
        proxy = DataProxy(np.arange(12).reshape(3, 4))
        assert proxy.stride() == 4
        assert proxy.size() == 12
        assert proxy.row_count() == 3
        assert len(proxy) == 3

    def test_offsets(self):
        """Test get_hkl / get_num at row offsets"""
        table = np.array([[1, 2, 3, 10.5], [4, 5, 6, 20.5]])
        proxy = DataProxy(table)
        offsets = range(0, proxy.size(), proxy.stride())
        assert [proxy.get_hkl(i) for i in offsets] == [(1, 2, 3), (4, 5, 6)]
        assert [proxy.get_num(i + 3) for i in offsets] == [10.5, 20.5]

    def test_column_views(self):
        """Test hkl_array and num_array"""
        proxy = DataProxy(np.array([[1, 2, 3, 10.5], [-4, 5, 6, 20.5]], dtype=np.float32))
        assert proxy.hkl_array().dtype == np.int32
        assert proxy.hkl_array().tolist() == [[1, 2, 3], [-4, 5, 6]]
        assert proxy.num_array(3).dtype == np.float64

    def test_bad_shape(self):
        """Test that a table without three index columns is rejected"""
        with pytest.raises(ValueError):
            DataProxy(np.zeros((4, 2)))


class TestFormatProxies:
    """Test the per-format layouts."""

    def test_mtz(self, mean_mtz):
        """Test MTZ columns are used as stored"""
        proxy = MtzDataProxy(mean_mtz)
        assert proxy.stride() == len(mean_mtz.columns)
        assert proxy.get_hkl(0) == (1, 2, 3)
        assert proxy.get_num(mean_mtz.get_column_with_label('IMEAN').idx) == 100.0

    def test_refln(self, mean_refln):
        """Test mmCIF value columns follow the Miller indices"""
        proxy = ReflnDataProxy(mean_refln)
        assert proxy.stride() == 3 + len(mean_refln.columns)
        idx = proxy.column_index('intensity_meas')
        assert proxy.num_array(idx)[:2].tolist() == [100.0, 50.0]
        assert np.isnan(proxy.num_array(idx)[2])

    def test_refln_missing_column(self, mean_refln):
        """Test a missing mmCIF column raises"""
        with pytest.raises(IntensitiesError, match="intensity_net"):
            ReflnDataProxy(mean_refln).column_index('intensity_net')

    def test_xds(self, xds):
        """Test the h, k, l, iobs, sigma layout"""
        proxy = XdsDataProxy(xds)
        assert proxy.stride() == 5
        assert proxy.get_hkl(proxy.stride()) == (-1, 2, 3)
        assert proxy.num_array(XdsDataProxy.SIGMA_IDX).tolist() == [1.0, 2.0, -1.0, 1.0]
