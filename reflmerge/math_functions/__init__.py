from .math_numpy import (
    CellGeometry,
    cell_parameters,
    reciprocal_basis_matrix,
)

__all__ = [
    'CellGeometry',
    'cell_parameters',
    'reciprocal_basis_matrix',
]
