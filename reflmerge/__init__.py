"""
reflmerge: reading, reducing and merging X-ray diffraction intensities.
"""

from reflmerge.merging.intensities import Intensities, IntensitiesError, Refl
from reflmerge.io.data_router import DataRouter, DataRouterError, read_intensities

__all__ = [
    'Intensities',
    'IntensitiesError',
    'Refl',
    'DataRouter',
    'DataRouterError',
    'read_intensities',
]
