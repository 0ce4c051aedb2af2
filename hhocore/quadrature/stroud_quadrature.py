from functools import lru_cache

import numpy as np
from scipy.special import roots_jacobi

from .quadrature import Quadrature


class StroudQuadrature(Quadrature):
    """Conical product rule on the reference `dim`-simplex.

    The collapsed coordinates of the simplex are integrated by Gauss-Jacobi
    rules with `n` points each, so the rule is exact for polynomials of
    degree `2n-1`. Points are barycentric, shape (n**dim, dim+1), and the
    weights sum to 1.
    """
    def __init__(self, dim: int, n: int, *, dtype=np.float64) -> None:
        if dim not in {1, 2, 3}:
            raise ValueError(f"Unsupported simplex dimension: {dim}")
        if n < 1:
            raise ValueError("The number of points per direction must be positive.")
        self.dim = dim
        self.n = n
        super().__init__(dtype=dtype)

    def make(self):
        p, weights = _conical_product(self.dim, self.n)
        return self._to_simplex(p).astype(self.dtype), weights.astype(self.dtype)

    def _to_simplex(self, points):
        d = self.dim
        shape = points.shape[:-1]
        bcs = np.zeros(shape+(d+1, ), dtype=np.float64)
        bcs[:, 0] = points[:, 0]
        for i in range(1, d):
            bcs[:, i] = points[:, i] * (1-bcs[:, :i].sum(axis=-1))
        bcs[:, d] = 1-bcs[:, :d].sum(axis=-1)
        return bcs

    @classmethod
    def from_degree(cls, dim: int, q: int):
        """The cheapest rule of this family exact for degree `q`."""
        return cls(dim, max(q, 0)//2 + 1)


@lru_cache(maxsize=None)
def _conical_product(d, n):
    points = []
    weights = []
    for i in range(1, d+1):
        p, w, s = roots_jacobi(n, d-i, 0, mu=True)
        points.append((p+1)/2)
        weights.append(w/s)
    points = np.meshgrid(*points)
    weights = np.meshgrid(*weights)

    points = np.array([p.flatten() for p in points]).T
    weights = np.prod([w.flatten() for w in weights], axis=0)
    points.flags.writeable = False
    weights.flags.writeable = False
    return points, weights
