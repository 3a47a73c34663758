"""
Unit tests for the Symmetry capability.
"""

import gemmi
import pytest

from reflmerge.symmetry import Symmetry, as_symmetry


class TestSpaceGroupLookup:
    """Test resolving space groups from names, numbers and gemmi objects."""

    def test_from_name(self):
        """Test H-M name lookup"""
        assert Symmetry('P 21 21 21').xhm() == 'P 21 21 21'

    def test_from_number(self):
        """Test International Tables number lookup"""
        assert Symmetry(19).xhm() == 'P 21 21 21'

    def test_from_gemmi(self):
        """Test that a gemmi.SpaceGroup is used as given"""
        sg = gemmi.SpaceGroup('P 1')
        assert Symmetry(sg).spacegroup.xhm() == 'P 1'

    def test_unknown_name(self):
        """Test that an unknown space group raises ValueError"""
        with pytest.raises(ValueError, match="not recognized"):
            Symmetry('Q 99')

    def test_unknown_number(self):
        """Test that space group number 0 is rejected"""
        with pytest.raises(ValueError):
            Symmetry(0)


class TestReciprocalAsu:
    """Test ASU membership and mapping."""

    def test_p1_in_asu(self):
        """Test that (1,2,3) is in the P1 ASU"""
        assert Symmetry('P 1').is_in_asu((1, 2, 3))

    def test_p1_friedel_mate(self):
        """Test that (-1,-2,-3) maps to (1,2,3) through the Friedel mate (even isym)"""
        sym = Symmetry('P 1')
        assert not sym.is_in_asu((-1, -2, -3))
        hkl, isym = sym.to_asu((-1, -2, -3))
        assert hkl == (1, 2, 3)
        assert isym == 2

    def test_orthorhombic_mapping(self):
        """Test that (-1,2,3) in P 21 21 21 maps to (1,2,3) with an even isym"""
        hkl, isym = Symmetry('P 21 21 21').to_asu((-1, 2, 3))
        assert hkl == (1, 2, 3)
        assert isym % 2 == 0

    def test_proper_operation_is_odd(self):
        """Test that (-1,-2,3) in P 21 21 21 maps with a proper rotation (odd isym)"""
        hkl, isym = Symmetry('P 21 21 21').to_asu((-1, -2, 3))
        assert hkl == (1, 2, 3)
        assert isym % 2 == 1

    def test_numpy_indices(self):
        """Test that numpy integer indices are accepted"""
        import numpy as np
        assert Symmetry('P 1').is_in_asu(np.array([1, 2, 3], dtype=np.int32))


class TestSystematicAbsences:
    """Test systematic absence queries."""

    @pytest.mark.parametrize("hkl", [(1, 0, 0), (0, 1, 0), (0, 0, 1), (0, 0, 3)])
    def test_screw_axis_absences(self, hkl):
        """Test odd axial reflections are absent in P 21 21 21"""
        assert Symmetry('P 21 21 21').is_systematic_absence(hkl)

    @pytest.mark.parametrize("hkl", [(2, 0, 0), (1, 1, 0), (1, 2, 3), (0, 0, 4)])
    def test_present_reflections(self, hkl):
        """Test that other reflections are present in P 21 21 21"""
        assert not Symmetry('P 21 21 21').is_systematic_absence(hkl)

    def test_p1_has_no_absences(self):
        """Test P1 has no systematic absences"""
        assert not Symmetry('P 1').is_systematic_absence((1, 0, 0))


class TestAsSymmetry:
    """Test wrapping of symmetry descriptions."""

    def test_none_passes_through(self):
        """Test None stays None"""
        assert as_symmetry(None) is None

    def test_capability_passes_through(self):
        """Test that an object with the capability methods is not wrapped"""
        sym = Symmetry('P 1')
        assert as_symmetry(sym) is sym

    def test_wraps_name(self):
        """Test that a name is wrapped in a Symmetry"""
        assert isinstance(as_symmetry('C 1 2 1'), Symmetry)
