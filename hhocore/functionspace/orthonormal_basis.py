import numpy as np
from scipy.linalg import cholesky, solve_triangular, LinAlgError

from .. import logger
from ..typing import TensorLike
from .utils import NumericalInstabilityError, PIVOT_RTOL, check_pivots
from .gram_matrix import compute_gram_matrix
from .monomial_basis import MonomialScalarBasis


def orthonormalize(gram: TensorLike, rtol: float=PIVOT_RTOL) -> TensorLike:
    """
    Change of basis which orthonormalizes a family with Gram matrix `gram`.

    Parameters:
        gram : TensorLike
            Symmetric positive definite matrix of shape (n, n).
        rtol : float
            Smallest accepted ratio between two diagonal entries of the
            Cholesky factor.

    Returns:
        TensorLike: the lower triangular T = L^{-1}, where G = L L^t, so that
        T G T^t = I. The i-th new function only combines the first i+1 old
        ones.

    Raises:
        NumericalInstabilityError: if `gram` is not numerically symmetric
        positive definite.
    """
    gram = np.asarray(gram, dtype=np.float64)
    n = gram.shape[0]
    if gram.shape != (n, n):
        raise ValueError(f"The Gram matrix should be square, but its shape is {gram.shape}!")
    try:
        L = cholesky(gram, lower=True, check_finite=True)
    except (LinAlgError, ValueError) as e:
        raise NumericalInstabilityError(
                "The Gram matrix is not positive definite, try a quadrature "
                "rule with a higher degree of exactness.") from e
    check_pivots(L, "The Gram matrix", rtol)
    return solve_triangular(L, np.eye(n), lower=True)


class TransformedBasis():
    """
    The family `matrix @ monomials`: the i-th function is
    `sum_j matrix[i, j]*monomials[j]`.

    It has the evaluation interface of the monomial bases, the matrix is
    stored read-only.
    """
    def __init__(self, monomials: MonomialScalarBasis, matrix: TensorLike):
        matrix = np.array(matrix, dtype=np.float64)
        n = monomials.dimension()
        if matrix.ndim != 2 or matrix.shape[1] != n:
            raise ValueError(f"The transformation should have {n} columns, "
                             f"but its shape is {matrix.shape}!")
        matrix.flags.writeable = False
        self.monomials = monomials
        self.matrix = matrix
        self.degree = monomials.degree
        self.entity = getattr(monomials, 'entity', None)

    def dimension(self) -> int:
        return self.matrix.shape[0]

    def __len__(self) -> int:
        return self.dimension()

    def _check(self, i):
        if not (0 <= i < self.dimension()):
            raise IndexError(f"basis index {i} is out of range [0, {self.dimension()})")

    def function(self, i: int, x: TensorLike) -> TensorLike:
        self._check(i)
        return self.monomials.values(x) @ self.matrix[i]

    def gradient(self, i: int, x: TensorLike) -> TensorLike:
        self._check(i)
        return np.einsum('...jk, j->...k', self.monomials.gradients(x), self.matrix[i])

    def values(self, x: TensorLike) -> TensorLike:
        """Values of all the functions at x (..., 3), shape (..., ldof)."""
        return self.monomials.values(x) @ self.matrix.T

    def gradients(self, x: TensorLike) -> TensorLike:
        """Gradients of all the functions at x (..., 3), shape (..., ldof, 3)."""
        return np.einsum('...jk, ij->...ik', self.monomials.gradients(x), self.matrix)

    def curls(self, x: TensorLike) -> TensorLike:
        """Tangential curls on a face, `gradients(x) x nF`."""
        return np.cross(self.gradients(x), self.monomials.normal)


def orthonormal_basis(monomials: MonomialScalarBasis, rule) -> TransformedBasis:
    """
    The L2 orthonormal family spanning the same space as `monomials`.

    `rule` is the quadrature rule on the entity of the monomials; it must be
    exact to twice their degree.
    """
    phi = monomials.values(rule.points).T
    n = monomials.dimension()
    G = compute_gram_matrix(phi, phi, rule, n, n, sym=True)
    T = orthonormalize(G)
    logger.debug(f"Orthonormalized {n} monomials on {monomials.entity!r} "
                 f"with {len(rule)} quadrature nodes.")
    return TransformedBasis(monomials, T)
