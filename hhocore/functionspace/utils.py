import numpy as np


class NumericalInstabilityError(Exception):
    """A Gram or mass matrix is not numerically symmetric positive definite.

    Usually the quadrature rule used to assemble it is not exact enough for
    the polynomial degree, or the entity is badly shaped. Use a quadrature
    rule of higher exactness.
    """
    pass


# smallest accepted ratio between two diagonal entries of a Cholesky factor
PIVOT_RTOL = 1e-8


def check_pivots(L, what: str, rtol: float=PIVOT_RTOL):
    """
    Reject a nearly singular matrix from the diagonal of its Cholesky factor.

    Parameters:
        L : TensorLike
            The Cholesky factor (n, n).
        what : str
            Name of the factorized matrix, used in the error message.
        rtol : float
            Smallest accepted ratio min(diag(L))/max(diag(L)).

    Raises:
        NumericalInstabilityError: if the ratio is at or below `rtol`.
    """
    d = np.diag(L)
    if len(d) > 0 and (np.min(d) <= rtol*np.max(d)):
        raise NumericalInstabilityError(
                f"{what} is nearly singular (pivot ratio "
                f"{np.min(d)/np.max(d):.3e}), try a quadrature rule with a "
                f"higher degree of exactness.")


def dim_Pcell(m: int) -> int:
    """Dimension of the 3-variate polynomials of total degree <= m."""
    if m < 0:
        return 0
    return (m+1)*(m+2)*(m+3)//6


def dim_Pface(m: int) -> int:
    """Dimension of the 2-variate polynomials of total degree <= m."""
    if m < 0:
        return 0
    return (m+1)*(m+2)//2


def dim_Pedge(m: int) -> int:
    """Dimension of the 1-variate polynomials of degree <= m."""
    if m < 0:
        return 0
    return m+1
