"""
Reflection tables from mmCIF and mmJSON files.

ReflectionCIF holds one reflection loop (_refln or _diffrn_refln) of one
data block together with the cell, space group and wavelength of that block.
Both formats are parsed by gemmi into a cif.Document and read through
gemmi.as_refln_blocks, so block selection and metadata lookup are shared.
"""

from pathlib import Path
from typing import Any, List, Optional, Union

import gemmi
import numpy as np
import pandas as pd

from reflmerge.math_functions.math_numpy import cell_parameters
from reflmerge.merging.intensities import IntensitiesError


MISSING_VALUES = ['?', '.']


def as_cif_value(value: Any) -> str:
    """
    Format a JSON scalar as a CIF token.

    Args:
        value: int, float, None or str

    Returns:
        decimal text for int, six decimals for float, '?' for None,
        text quoted with gemmi.cif.quote for str

    Raises:
        ValueError: for any other type, bool included
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot format boolean as CIF value: {value!r}")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return f"{value:f}"
    if value is None:
        return '?'
    if isinstance(value, str):
        return gemmi.cif.quote(value)
    raise ValueError(f"Cannot format {type(value).__name__} as CIF value: {value!r}")


def to_numeric(tokens: pd.Series) -> pd.Series:
    """CIF tokens to floats; '?', '.' and anything non-numeric become NaN."""
    return pd.to_numeric(tokens.astype(object), errors='coerce')


class ReflectionCIF:
    """
    One reflection loop with its block metadata.

    Attributes:
        columns: loop tags without the category prefix, Miller index tags excluded
        data: float array of shape (nreflections, len(columns))
        hkl: Miller indices, shape (nreflections, 3)
        cell: six cell parameters
        spacegroup: gemmi.SpaceGroup or None if not given or not recognised
        wavelength: first wavelength of the block, NaN if absent
        category: 'refln' (merged) or 'diffrn_refln' (unmerged)
    """

    INDEX_TAGS = ['index_h', 'index_k', 'index_l']
    # tried when the block has no Hermann-Mauguin name
    SPACEGROUP_NUMBER_TAGS = ['_symmetry.Int_Tables_number', '_space_group.IT_number']

    def __init__(self, verbose: int = 0):
        self.verbose = verbose
        self.columns: List[str] = []
        self.data = np.zeros((0, 0), dtype=np.float64)
        self.hkl = np.zeros((0, 3), dtype=np.int32)
        self.cell: Optional[np.ndarray] = None
        self.spacegroup: Optional[gemmi.SpaceGroup] = None
        self.wavelength: float = np.nan
        self.block_name: Optional[str] = None
        self.category: str = 'refln'

    def read(self, filepath: Union[str, Path], data_block: Optional[str] = None):
        """
        Read an mmCIF or mmJSON file.

        Args:
            filepath: path to the file; '.json' selects the mmJSON parser
            data_block: name of the block to read (default: first block with reflections)

        Returns:
            self for method chaining
        """
        filepath = Path(filepath)
        if filepath.suffix.lower() == '.json':
            return self.load_mmjson(filepath, data_block=data_block)
        if self.verbose > 1:
            print(f"Reading mmCIF file: {filepath}")
        return self.load_document(gemmi.cif.read(str(filepath)), data_block=data_block)

    def load_mmjson(self, filepath: Union[str, Path], data_block: Optional[str] = None):
        """
        Read an mmJSON file. gemmi turns every JSON value into a CIF token,
        so the result is the same document an mmCIF file would give.

        Raises:
            RuntimeError: from gemmi if the file is not mmJSON
        """
        if self.verbose > 1:
            print(f"Reading mmJSON file: {filepath}")
        return self.load_document(gemmi.cif.read_mmjson(str(filepath)), data_block=data_block)

    def load_document(self, doc: gemmi.cif.Document, data_block: Optional[str] = None):
        """
        Pick the requested (or first) block with a reflection loop.

        Raises:
            IntensitiesError: if no block has reflections
        """
        # as_refln_blocks takes the blocks out of doc
        block_names = [block.name for block in doc]
        source = doc.source
        blocks = [rb for rb in gemmi.as_refln_blocks(doc) if rb]
        if data_block is not None:
            blocks = [rb for rb in blocks if rb.block.name == data_block]
        if not blocks:
            raise IntensitiesError(
                f"File {source} does not contain reflection data"
                + (f" in data block '{data_block}'" if data_block else "")
                + f".\nAvailable data blocks in file: {block_names}"
            )
        return self.load_gemmi(blocks[0])

    def load_gemmi(self, rb):
        """
        Copy the default reflection loop out of a gemmi.ReflnBlock.

        Raises:
            IntensitiesError: if the block has no unit cell
        """
        if rb.block.find_value('_cell.length_a') is None:
            raise IntensitiesError(f"Unit cell parameters not found in data block '{rb.block.name}'")
        labels = [label for label in rb.column_labels() if label not in self.INDEX_TAGS]
        self.columns = labels
        self.hkl = np.array(rb.make_miller_array(), dtype=np.int32).reshape(-1, 3)
        if labels:
            self.data = np.column_stack([np.array(rb.make_float_array(label), dtype=np.float64)
                                         for label in labels])
        else:
            self.data = np.zeros((len(self.hkl), 0), dtype=np.float64)
        self.cell = cell_parameters(rb.cell)
        self.spacegroup = rb.spacegroup or self._spacegroup_from_number(rb.block)
        self.wavelength = float(rb.wavelength) if rb.wavelength else np.nan
        self.block_name = rb.block.name
        self.category = 'diffrn_refln' if rb.is_unmerged() else 'refln'
        self._report()
        return self

    def _spacegroup_from_number(self, block) -> Optional[gemmi.SpaceGroup]:
        for tag in self.SPACEGROUP_NUMBER_TAGS:
            value = block.find_value(tag)
            if value is None or value in MISSING_VALUES:
                continue
            number = gemmi.cif.as_string(value)
            if number.isdigit():
                return gemmi.find_spacegroup_by_number(int(number))
        return None

    def set_frame(self, frame: pd.DataFrame, cell, spacegroup=None, wavelength: float = np.nan,
                  category: str = 'refln', block_name: Optional[str] = None):
        """
        Fill from a table of CIF tokens or numbers keyed by tag (without category).

        Args:
            frame: DataFrame with index_h, index_k, index_l and any number of value columns
            cell: [a, b, c, alpha, beta, gamma] or gemmi.UnitCell
            spacegroup: gemmi.SpaceGroup, name, or None if unknown
            wavelength: wavelength of the block
            category: 'refln' for merged data, 'diffrn_refln' for unmerged
        """
        missing = [tag for tag in self.INDEX_TAGS if tag not in frame.columns]
        if missing:
            raise IntensitiesError(
                f"Miller index columns not found: {missing}\n"
                f"Available columns: {list(frame.columns)}"
            )
        hkl = pd.concat([to_numeric(frame[tag].astype(object)) for tag in self.INDEX_TAGS], axis=1)
        if hkl.isna().to_numpy().any():
            raise IntensitiesError("Miller indices must be integers")
        self.hkl = hkl.to_numpy().astype(np.int32).reshape(-1, 3)
        self.columns = [tag for tag in frame.columns if tag not in self.INDEX_TAGS]
        if self.columns:
            self.data = np.column_stack([to_numeric(frame[tag].astype(object)).to_numpy(dtype=np.float64)
                                         for tag in self.columns])
        else:
            self.data = np.zeros((len(self.hkl), 0), dtype=np.float64)
        self.cell = cell_parameters(cell)
        if isinstance(spacegroup, str):
            spacegroup = gemmi.find_spacegroup_by_name(spacegroup)
        self.spacegroup = spacegroup
        self.wavelength = float(wavelength)
        self.category = category
        self.block_name = block_name
        self._report()
        return self

    @property
    def is_unmerged(self) -> bool:
        return self.category == 'diffrn_refln'

    def miller_array(self) -> np.ndarray:
        return self.hkl

    def get_column_index(self, label: str) -> int:
        """
        Position of a value column in self.columns.

        Raises:
            IntensitiesError: if the column is not present
        """
        if label not in self.columns:
            raise IntensitiesError(
                f"Column not found: _{self.category}.{label}\n"
                f"Available columns: {self.columns}"
            )
        return self.columns.index(label)

    def _report(self):
        if self.verbose > 0:
            sg = self.spacegroup.xhm() if self.spacegroup is not None else "none"
            print(f"mmCIF block {self.block_name}: {len(self)} rows in _{self.category}, space group {sg}")
        if self.verbose > 1:
            print(f"  Columns: {self.columns}")
            print(f"  Cell: {self.cell}")
            print(f"  Wavelength: {self.wavelength}")

    def __len__(self) -> int:
        return len(self.hkl)
