"""
Unit tests for cell geometry (1/d^2 and resolution).
"""

import gemmi
import numpy as np
import pytest

from reflmerge.math_functions import CellGeometry, cell_parameters, reciprocal_basis_matrix


class TestCellParameters:
    """Test cell parameter normalisation."""

    def test_from_list(self):
        """Test a plain list is converted to a float array"""
        cell = cell_parameters([10, 20, 30, 90, 90, 90])
        assert cell.dtype == np.float64
        assert cell.tolist() == [10.0, 20.0, 30.0, 90.0, 90.0, 90.0]

    def test_from_gemmi(self):
        """Test a gemmi.UnitCell is converted"""
        cell = cell_parameters(gemmi.UnitCell(10, 20, 30, 90, 100, 90))
        np.testing.assert_allclose(cell, [10, 20, 30, 90, 100, 90])

    def test_wrong_length(self):
        """Test that anything but six parameters is rejected"""
        with pytest.raises(ValueError):
            cell_parameters([10, 20, 30])


class TestReciprocalSpacing:
    """Test 1/d^2 computation."""

    def test_cubic(self, cubic_cell):
        """Test 1/d^2 = (h^2+k^2+l^2)/a^2 for a cubic cell"""
        geom = CellGeometry(cubic_cell)
        assert geom.reciprocal_spacing_squared((1, 2, 3)) == pytest.approx(14 / 100)

    def test_orthorhombic(self):
        """Test 1/d^2 = h^2/a^2 + k^2/b^2 + l^2/c^2"""
        geom = CellGeometry([10, 20, 40, 90, 90, 90])
        expected = 1 / 100 + 4 / 400 + 9 / 1600
        assert geom.reciprocal_spacing_squared((1, 2, 3)) == pytest.approx(expected)

    def test_array_input(self, cubic_cell):
        """Test that an (N, 3) array gives an (N,) array"""
        geom = CellGeometry(cubic_cell)
        d2 = geom.reciprocal_spacing_squared(np.array([[1, 0, 0], [1, 1, 1], [0, 0, 2]]))
        np.testing.assert_allclose(d2, [0.01, 0.03, 0.04])

    def test_scalar_returns_float(self, cubic_cell):
        """Test that a single index gives a plain float"""
        assert isinstance(CellGeometry(cubic_cell).reciprocal_spacing_squared((1, 0, 0)), float)

    @pytest.mark.parametrize("hkl", [(1, 2, 3), (-4, 0, 7), (5, -3, 1)])
    def test_monoclinic_matches_gemmi(self, hkl):
        """Test agreement with gemmi for a monoclinic cell"""
        params = [35.0, 47.0, 58.0, 90.0, 104.5, 90.0]
        ours = CellGeometry(params).reciprocal_spacing_squared(hkl)
        assert ours == pytest.approx(gemmi.UnitCell(*params).calculate_1_d2(list(hkl)))

    def test_resolution(self, cubic_cell):
        """Test d = a / |hkl| for a cubic cell"""
        assert CellGeometry(cubic_cell).resolution((2, 0, 0)) == pytest.approx(5.0)

    def test_reciprocal_basis(self):
        """Test the reciprocal basis of an orthorhombic cell is diag(1/a, 1/b, 1/c)"""
        np.testing.assert_allclose(reciprocal_basis_matrix([10, 20, 40, 90, 90, 90]),
                                   np.diag([0.1, 0.05, 0.025]), atol=1e-12)


class TestCellGeometry:
    """Test value semantics of CellGeometry."""

    def test_equality(self):
        """Test cells with the same parameters compare equal"""
        assert CellGeometry([10, 20, 30, 90, 90, 90]) == CellGeometry(gemmi.UnitCell(10, 20, 30, 90, 90, 90))

    def test_to_gemmi(self):
        """Test conversion back to gemmi"""
        cell = CellGeometry([10, 20, 30, 90, 95, 90]).to_gemmi()
        assert cell.b == pytest.approx(20)
        assert cell.beta == pytest.approx(95)
