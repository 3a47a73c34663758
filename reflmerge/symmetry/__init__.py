"""
Reciprocal-space symmetry capability backed by gemmi.
"""

from .symmetry import Symmetry, as_symmetry

__all__ = [
    'Symmetry',
    'as_symmetry',
]
