import numpy as np
import gemmi


def cell_parameters(unit_cell):
    '''
    Return the six cell parameters [a, b, c, alpha, beta, gamma] as a float array.
    Accepts a gemmi.UnitCell or any sequence of six numbers.
    '''
    if isinstance(unit_cell, gemmi.UnitCell):
        unit_cell = unit_cell.parameters
    cell = np.asarray(unit_cell, dtype=np.float64)
    if cell.shape != (6,):
        raise ValueError(f"Unit cell needs 6 parameters, got shape {cell.shape}")
    return cell

def reciprocal_basis_matrix(unit_cell):
    # Extract unit cell parameters
    a, b, c, alpha, beta, gamma = cell_parameters(unit_cell)
    alpha, beta, gamma = np.radians([alpha, beta, gamma])
    # Compute real-space basis vectors
    cos_alpha, cos_beta, cos_gamma = np.cos(alpha), np.cos(beta), np.cos(gamma)
    sin_gamma = np.sin(gamma)
    volume = np.sqrt(1 - cos_alpha**2 - cos_beta**2 - cos_gamma**2 + 2 * cos_alpha * cos_beta * cos_gamma)
    a_vec = np.array([a, 0, 0])
    b_vec = np.array([b * cos_gamma, b * sin_gamma, 0])
    c_vec = np.array([
        c * cos_beta,
        c * (cos_alpha - cos_beta * cos_gamma) / sin_gamma,
        c * volume / sin_gamma
    ])
    # Compute reciprocal basis vectors
    volume_real = np.dot(a_vec, np.cross(b_vec, c_vec))
    a_star = np.cross(b_vec, c_vec) / volume_real
    b_star = np.cross(c_vec, a_vec) / volume_real
    c_star = np.cross(a_vec, b_vec) / volume_real
    # Assemble reciprocal basis matrix
    return np.array([a_star, b_star, c_star])


class CellGeometry:
    '''
    Unit-cell geometry used to put reflections on a resolution scale.

    Holds the cell parameters by value and caches the reciprocal basis.
    '''

    def __init__(self, unit_cell):
        self.parameters = cell_parameters(unit_cell)
        self._recB = reciprocal_basis_matrix(self.parameters)

    def reciprocal_spacing_squared(self, hkl):
        '''
        1/d^2 for a single index (returns float) or an (N, 3) array (returns (N,) array).
        '''
        s = np.dot(np.asarray(hkl, dtype=np.float64), self._recB)
        d2 = np.sum(s**2, axis=-1)
        if np.ndim(d2) == 0:
            return float(d2)
        return d2

    def resolution(self, hkl):
        return 1.0 / np.sqrt(self.reciprocal_spacing_squared(hkl))

    def to_gemmi(self) -> gemmi.UnitCell:
        return gemmi.UnitCell(*self.parameters.tolist())

    def __eq__(self, other):
        if not isinstance(other, CellGeometry):
            return NotImplemented
        return np.allclose(self.parameters, other.parameters)

    def __repr__(self):
        return "CellGeometry(" + ", ".join(f"{p:.3f}" for p in self.parameters) + ")"
