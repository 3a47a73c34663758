"""
I/O module for reading diffraction intensities.

This module provides readers for the origin formats:
- MTZ files (unmerged, mean or anomalous intensities)
- mmCIF / mmJSON reflection blocks
- XDS_ASCII.HKL observation lists

and one source adapter per (format, kind). The DataRouter class detects
the file type and selects the appropriate reader and adapter.
"""

from .legacy_format_readers import (
    MTZ,
    MtzColumn,
    XDSAscii,
)

from .cif_readers import (
    ReflectionCIF,
    as_cif_value,
)

from .proxies import (
    DataProxy,
    MtzDataProxy,
    ReflnDataProxy,
    XdsDataProxy,
)

from .intensity_readers import (
    read_unmerged_intensities_from_mtz,
    read_mean_intensities_from_mtz,
    read_anomalous_intensities_from_mtz,
    read_unmerged_intensities_from_mmcif,
    read_mean_intensities_from_mmcif,
    read_anomalous_intensities_from_mmcif,
    read_unmerged_intensities_from_xds,
)

from .data_router import (
    DataRouter,
    DataRouterError,
    read_intensities,
)

__all__ = [
    # Origin datasets
    'MTZ',
    'MtzColumn',
    'XDSAscii',
    'ReflectionCIF',
    'as_cif_value',
    # Proxies
    'DataProxy',
    'MtzDataProxy',
    'ReflnDataProxy',
    'XdsDataProxy',
    # Source adapters
    'read_unmerged_intensities_from_mtz',
    'read_mean_intensities_from_mtz',
    'read_anomalous_intensities_from_mtz',
    'read_unmerged_intensities_from_mmcif',
    'read_mean_intensities_from_mmcif',
    'read_anomalous_intensities_from_mmcif',
    'read_unmerged_intensities_from_xds',
    # Router
    'DataRouter',
    'DataRouterError',
    'read_intensities',
]
