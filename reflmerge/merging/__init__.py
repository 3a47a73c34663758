from .intensities import Intensities, IntensitiesError, Refl, valid_mask

__all__ = [
    'Intensities',
    'IntensitiesError',
    'Refl',
    'valid_mask',
]
