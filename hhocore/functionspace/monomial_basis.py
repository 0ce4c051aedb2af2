import numpy as np

from .. import logger
from ..typing import TensorLike


def multi_index_matrix(p: int, nvar: int) -> TensorLike:
    """
    Exponents of the monomials of total degree <= p in `nvar` variables.

    Parameters:
        p : int
            The maximal total degree.
        nvar : int
            1, 2 or 3.

    Returns:
        TensorLike: shape (ldof, nvar). The rows are sorted by total degree,
        then lexicographically on the leading exponents; the last exponent
        is fixed by the total degree. For nvar=3 and p=1 the rows are
        (0, 0, 0), (0, 0, 1), (0, 1, 0), (1, 0, 0).
    """
    if p < 0:
        raise ValueError(f"The degree should be non negative, but it is {p}!")
    if nvar == 3:
        index = [(i, j, l-i-j) for l in range(p+1)
                 for i in range(l+1) for j in range(l-i+1)]
    elif nvar == 2:
        index = [(i, l-i) for l in range(p+1) for i in range(l+1)]
    elif nvar == 1:
        index = [(l, ) for l in range(p+1)]
    else:
        raise ValueError(f"The number of variables should be 1, 2 or 3, but it is {nvar}!")
    return np.array(index, dtype=np.int_)


def _monomial_values(y, powers):
    """Products of powers of the local coordinates y (..., nvar)."""
    return np.prod(y[..., None, :]**powers, axis=-1)


def _monomial_local_gradients(y, powers):
    """Derivatives with respect to the local coordinates, shape
    (..., n, nvar). A zero exponent gives an exact zero derivative."""
    nvar = powers.shape[-1]
    pw = y[..., None, :]**powers
    shape = pw.shape
    grad = np.zeros(shape, dtype=np.float64)
    for k in range(nvar):
        flag = powers[:, k] > 0
        if not np.any(flag):
            continue
        other = np.prod(np.delete(pw[..., flag, :], k, axis=-1), axis=-1)
        yk = y[..., k][..., None]
        grad[..., flag, k] = powers[flag, k]*yk**(powers[flag, k] - 1)*other
    return grad


class MonomialScalarBasis():
    """
    Scaled monomials on one mesh entity.

    The point `x` is mapped to the local coordinates
    `y = jacobian @ (x - center)`, where the rows of `jacobian` are the
    local frame divided by the diameter of the entity, and the i-th basis
    function is the product of the powers `y**powers[i]`.

    The basis is a plain record of the exponents and the affine map, every
    evaluation is a pure function of them.
    """
    nvar = None

    def __init__(self, degree: int, center: TensorLike, scale: float,
                 frame: TensorLike):
        if degree < 0:
            raise ValueError(f"The degree should be non negative, but it is {degree}!")
        self.degree = degree
        self.center = np.array(center, dtype=np.float64)
        self.scale = float(scale)
        self.frame = np.array(frame, dtype=np.float64).reshape(self.nvar, 3)
        self.jacobian = self.frame/self.scale
        self.powers = multi_index_matrix(degree, self.nvar)
        for a in (self.center, self.frame, self.jacobian, self.powers):
            a.flags.writeable = False

    def dimension(self) -> int:
        return self.powers.shape[0]

    def __len__(self) -> int:
        return self.dimension()

    def coordinate_transform(self, x: TensorLike) -> TensorLike:
        """Local normalized coordinates of the points x (..., 3)."""
        x = np.asarray(x, dtype=np.float64)
        return (x - self.center) @ self.jacobian.T

    def _check(self, i):
        if not (0 <= i < self.dimension()):
            raise IndexError(f"basis index {i} is out of range [0, {self.dimension()})")
        return self.powers[i:i+1]

    def function(self, i: int, x: TensorLike) -> TensorLike:
        """Value of the i-th monomial at x, shape x.shape[:-1]."""
        powers = self._check(i)
        return _monomial_values(self.coordinate_transform(x), powers)[..., 0]

    def gradient(self, i: int, x: TensorLike) -> TensorLike:
        """Gradient of the i-th monomial at x in the world frame, shape
        x.shape."""
        powers = self._check(i)
        g = _monomial_local_gradients(self.coordinate_transform(x), powers)
        return (g @ self.jacobian)[..., 0, :]

    def values(self, x: TensorLike) -> TensorLike:
        """Values of all the monomials at x (..., 3), shape (..., ldof)."""
        return _monomial_values(self.coordinate_transform(x), self.powers)

    def gradients(self, x: TensorLike) -> TensorLike:
        """Gradients of all the monomials at x (..., 3), shape (..., ldof, 3)."""
        g = _monomial_local_gradients(self.coordinate_transform(x), self.powers)
        return g @ self.jacobian


class MonomialScalarBasisCell(MonomialScalarBasis):
    """Scaled monomials `((x - xT)/hT)**a` of the cell T, a in N^3."""
    nvar = 3

    def __init__(self, cell, degree: int):
        super().__init__(degree, cell.center_mass, cell.diam, np.eye(3))
        self.entity = cell


class MonomialScalarBasisFace(MonomialScalarBasis):
    """
    Scaled monomials of the face F in the local frame (tE, nE) made of the
    tangent of the first edge E of F and the in-plane normal to E pointing
    out of F.
    """
    nvar = 2

    def __init__(self, face, degree: int):
        tE = face.edge(0).tangent
        nE = face.edge_normal(0)
        nF = face.normal
        if abs(np.dot(tE, nF)) > 1e-8:
            logger.warning(f"The first edge of face {face.global_index} is not "
                           f"orthogonal to its normal, the face is not planar.")
        super().__init__(degree, face.center_mass, face.diam, np.array([tE, nE]))
        self.normal = np.array(nF, dtype=np.float64)
        self.normal.flags.writeable = False
        self.entity = face

    def curl(self, i: int, x: TensorLike) -> TensorLike:
        """`gradient(i, x) x nF`."""
        return np.cross(self.gradient(i, x), self.normal)

    def curls(self, x: TensorLike) -> TensorLike:
        return np.cross(self.gradients(x), self.normal)


class MonomialScalarBasisEdge(MonomialScalarBasis):
    """Scaled monomials `((x - xE).tE/hE)**l` of the edge E."""
    nvar = 1

    def __init__(self, edge, degree: int):
        super().__init__(degree, edge.center_mass, edge.diam, edge.tangent)
        self.tangent = self.frame[0]
        self.entity = edge


def monomial_basis(entity, degree: int) -> MonomialScalarBasis:
    """The monomial basis of degree `degree` matching the type of `entity`."""
    etype = getattr(entity, 'etype', None)
    if etype == 'cell':
        return MonomialScalarBasisCell(entity, degree)
    elif etype == 'face':
        return MonomialScalarBasisFace(entity, degree)
    elif etype == 'edge':
        return MonomialScalarBasisEdge(entity, degree)
    raise ValueError(f"Can not build a monomial basis on {entity!r}")
