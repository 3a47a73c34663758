import gemmi
from typing import Tuple, Union, Optional


class Symmetry:
    """
    Reciprocal-space symmetry of one space group.

    Wraps gemmi's space group tables and answers the three questions the
    merging code asks about a Miller index:
    - is it inside the reciprocal asymmetric unit (ASU)
    - what is its ASU representative and which operation maps it there
    - is it a systematic absence

    Any object exposing is_in_asu / to_asu / is_systematic_absence can be
    used in place of this class.
    """

    def __init__(self, space_group: Union[str, int, gemmi.SpaceGroup]):
        self.spacegroup = self._resolve_space_group(space_group)
        self.operations = self.spacegroup.operations()
        self.asu = gemmi.ReciprocalAsu(self.spacegroup)

    @staticmethod
    def _resolve_space_group(space_group) -> gemmi.SpaceGroup:
        """
        Resolve a space group given as a gemmi object, an H-M/Hall name or
        an International Tables number.

        Raises:
            ValueError: If the space group is not recognized
        """
        if isinstance(space_group, gemmi.SpaceGroup):
            return space_group
        if isinstance(space_group, int):
            sg = gemmi.find_spacegroup_by_number(space_group) if space_group > 0 else None
        else:
            sg = gemmi.find_spacegroup_by_name(str(space_group).strip())
        if sg is None:
            raise ValueError(f'Space group "{space_group}" not recognized.')
        return sg

    def is_in_asu(self, hkl) -> bool:
        return self.asu.is_in([int(x) for x in hkl])

    def to_asu(self, hkl) -> Tuple[Tuple[int, int, int], int]:
        """
        Map an index to its ASU representative.

        Returns:
            (asu_hkl, isym) where isym follows the MTZ M/ISYM convention:
            odd for a proper operation, even when the Friedel mate was used.
        """
        asu_hkl, isym = self.asu.to_asu([int(x) for x in hkl], self.operations)
        return tuple(int(x) for x in asu_hkl), int(isym)

    def is_systematic_absence(self, hkl) -> bool:
        return self.operations.is_systematically_absent([int(x) for x in hkl])

    def xhm(self) -> str:
        return self.spacegroup.xhm()

    def __repr__(self):
        return f"Symmetry({self.spacegroup.xhm()!r})"


def as_symmetry(space_group) -> Optional[Symmetry]:
    """Wrap a space group description in a Symmetry, passing through None and capabilities."""
    if space_group is None:
        return None
    if hasattr(space_group, 'to_asu') and hasattr(space_group, 'is_in_asu'):
        return space_group
    return Symmetry(space_group)
