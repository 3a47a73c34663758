"""
Data Router - Automatic file type detection and intensity reader selection.

This module detects the origin format of a reflection file, opens it with the
matching reader and picks the source adapter for the requested (or detected)
measurement kind.

Supported file types:
- MTZ: .mtz (unmerged, mean or anomalous)
- mmCIF: .cif, .mmcif, .ent (unmerged, mean or anomalous)
- mmJSON: .json (same kinds as mmCIF)
- XDS_ASCII: .hkl or any file named XDS_ASCII* (unmerged)

Usage:
    from reflmerge.io import DataRouter, read_intensities

    router = DataRouter("scaled.mtz")
    intensities = router.get_intensities()      # kind detected from the file
    kind = router.kind                           # 'unmerged', 'mean' or 'anomalous'

    # Or in one call
    intensities = read_intensities("data.cif", kind='anomalous')
"""

from pathlib import Path
from typing import Any, Optional, Tuple, Union

from reflmerge.io import cif_readers, intensity_readers, legacy_format_readers
from reflmerge.merging.intensities import Intensities


KINDS = ('unmerged', 'mean', 'anomalous')


class DataRouterError(Exception):
    """Exception raised when file type cannot be determined or is unsupported."""
    pass


class DataRouter:
    """
    Automatic file type detection and adapter selection.

    Attributes:
        filepath: Path to the file to read
        verbose: Verbosity level for logging
        file_format: 'mtz', 'mmcif', 'mmjson' or 'xds'
        kind: measurement kind detected from the file (after get_reader())
        reader: origin dataset (MTZ, ReflectionCIF or XDSAscii), once created
    """

    MTZ_EXTENSIONS = {'.mtz'}
    CIF_EXTENSIONS = {'.cif', '.mmcif', '.ent'}
    MMJSON_EXTENSIONS = {'.json'}
    XDS_EXTENSIONS = {'.hkl'}
    XDS_NAME_PREFIX = 'XDS_ASCII'

    # mmJSON shares the mmCIF adapters
    ADAPTERS = {
        ('mtz', 'unmerged'): intensity_readers.read_unmerged_intensities_from_mtz,
        ('mtz', 'mean'): intensity_readers.read_mean_intensities_from_mtz,
        ('mtz', 'anomalous'): intensity_readers.read_anomalous_intensities_from_mtz,
        ('mmcif', 'unmerged'): intensity_readers.read_unmerged_intensities_from_mmcif,
        ('mmcif', 'mean'): intensity_readers.read_mean_intensities_from_mmcif,
        ('mmcif', 'anomalous'): intensity_readers.read_anomalous_intensities_from_mmcif,
        ('xds', 'unmerged'): intensity_readers.read_unmerged_intensities_from_xds,
    }

    def __init__(self, filepath: Union[str, Path], verbose: int = 1):
        """
        Initialize the DataRouter.

        Args:
            filepath: Path to the data file
            verbose: Verbosity level (0=quiet, 1=normal, 2+=debug)
        """
        self.filepath = Path(filepath)
        self.verbose = verbose
        self.file_format: Optional[str] = None
        self.kind: Optional[str] = None
        self.reader: Optional[Any] = None

        if not self.filepath.exists():
            raise FileNotFoundError(f"File not found: {self.filepath}")

        self._detect_file_type()

    def _detect_file_type(self) -> None:
        """
        Detect the file format from the extension (or the XDS_ASCII file name).
        """
        extension = self.filepath.suffix.lower()

        if self.verbose > 1:
            print(f"DataRouter: Analyzing {self.filepath.name}")
            print(f"  Extension: {extension}")

        if extension in self.MTZ_EXTENSIONS:
            self.file_format = 'mtz'
        elif extension in self.CIF_EXTENSIONS:
            self.file_format = 'mmcif'
        elif extension in self.MMJSON_EXTENSIONS:
            self.file_format = 'mmjson'
        elif extension in self.XDS_EXTENSIONS or self.filepath.name.upper().startswith(self.XDS_NAME_PREFIX):
            self.file_format = 'xds'
        else:
            raise DataRouterError(
                f"Unsupported file extension: {extension}\n"
                f"Supported extensions: .mtz, .cif, .mmcif, .ent, .json, .hkl"
            )

        if self.verbose > 1:
            print(f"  Detected: {self.file_format}")

    @property
    def adapter_format(self) -> str:
        return 'mmcif' if self.file_format == 'mmjson' else self.file_format

    def get_reader(self) -> Any:
        """
        Open the file with the reader for its format and detect the measurement kind.

        Returns:
            MTZ, ReflectionCIF or XDSAscii instance
        """
        if self.reader is not None:
            return self.reader

        if self.file_format == 'mtz':
            self.reader = legacy_format_readers.MTZ(verbose=self.verbose).read(str(self.filepath))
        elif self.file_format in ('mmcif', 'mmjson'):
            self.reader = cif_readers.ReflectionCIF(verbose=self.verbose).read(str(self.filepath))
        elif self.file_format == 'xds':
            self.reader = legacy_format_readers.XDSAscii(verbose=self.verbose).read(str(self.filepath))
        else:
            raise DataRouterError(f"Unknown format: {self.file_format}")

        self.kind = self.detect_kind(self.reader)

        if self.verbose > 0:
            print(f"Created {self.reader.__class__.__name__} for {self.filepath.name} ({self.kind} intensities)")

        return self.reader

    @staticmethod
    def detect_kind(reader: Any) -> str:
        """
        Guess the measurement kind from the shape of an origin dataset.

        MTZ files with batch headers are unmerged; otherwise mean intensities
        are preferred over I(+)/I(-). mmCIF blocks are unmerged when they
        come from _diffrn_refln or carry intensity_net.

        Raises:
            DataRouterError: if no intensities are recognised
        """
        if isinstance(reader, legacy_format_readers.XDSAscii):
            return 'unmerged'
        if isinstance(reader, legacy_format_readers.MTZ):
            if reader.has_batches:
                return 'unmerged'
            if reader.column_with_one_of_labels(intensity_readers.MEAN_LABELS) is not None:
                return 'mean'
            if all(reader.column_with_label(label) is not None for label in intensity_readers.ANOMALOUS_LABELS):
                return 'anomalous'
            raise DataRouterError(
                f"MTZ file does not contain recognizable intensities.\n"
                f"Available columns: {reader.labels}"
            )
        if isinstance(reader, cif_readers.ReflectionCIF):
            if reader.is_unmerged or 'intensity_net' in reader.columns:
                return 'unmerged'
            if 'intensity_meas' in reader.columns:
                return 'mean'
            if all(label in reader.columns for label in intensity_readers.MMCIF_ANOMALOUS_LABELS):
                return 'anomalous'
            raise DataRouterError(
                f"mmCIF block {reader.block_name} does not contain recognizable intensities.\n"
                f"Available columns: {reader.columns}"
            )
        raise DataRouterError(f"Unknown reader type: {reader.__class__.__name__}")

    def get_intensities(self, kind: Optional[str] = None,
                        intensities: Optional[Intensities] = None) -> Intensities:
        """
        Read intensities through the adapter for (format, kind).

        Args:
            kind: 'unmerged', 'mean' or 'anomalous'; detected from the file if None
            intensities: optional empty set to populate

        Raises:
            DataRouterError: if the kind is unknown or not available for this format
        """
        reader = self.get_reader()
        kind = kind or self.kind
        if kind not in KINDS:
            raise DataRouterError(f"Unknown kind: {kind}. Expected one of {KINDS}")
        adapter = self.ADAPTERS.get((self.adapter_format, kind))
        if adapter is None:
            raise DataRouterError(f"Cannot read {kind} intensities from {self.file_format} file {self.filepath.name}")
        return adapter(reader, intensities=intensities, verbose=self.verbose)

    @classmethod
    def route(cls, filepath: Union[str, Path], verbose: int = 1) -> Tuple[Any, str]:
        """
        Factory method to quickly route a file to the appropriate reader.

        Returns:
            Tuple of (reader, kind)

        Example:
            reader, kind = DataRouter.route("XDS_ASCII.HKL")
        """
        router = cls(filepath, verbose=verbose)
        reader = router.get_reader()
        return reader, router.kind

    def __repr__(self) -> str:
        return (
            f"DataRouter(filepath={self.filepath.name}, "
            f"file_format={self.file_format}, "
            f"kind={self.kind})"
        )


def read_intensities(filepath: Union[str, Path], kind: Optional[str] = None, verbose: int = 0) -> Intensities:
    """
    Read intensities from any supported file.

    Args:
        filepath: MTZ, mmCIF, mmJSON or XDS_ASCII file
        kind: 'unmerged', 'mean' or 'anomalous'; detected from the file if None
        verbose: Verbosity level

    Returns:
        Populated Intensities (not yet merged)
    """
    return DataRouter(filepath, verbose=verbose).get_intensities(kind=kind)
