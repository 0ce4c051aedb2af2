"""
Gram (mass) matrices of function families evaluated at quadrature nodes.

An evaluation table of a scalar family has the shape (nfun, NQ), the one of a
vector valued family the shape (nfun, NQ, 3): one row per function, one
column per node of the quadrature rule. The matrices are

    M[i, j] = sum_q w_q <B1[i](x_q), B2[j](x_q)>,

accumulated in float64 by unoptimized `einsum` contractions. The result is
deterministic: identical inputs always give identical matrices.
"""
from typing import Optional, Union

import numpy as np

from ..typing import TensorLike
from ..quadrature import QuadratureRule


def _weights(qr: Union[QuadratureRule, TensorLike]) -> TensorLike:
    if isinstance(qr, QuadratureRule):
        return qr.weights
    return np.asarray(qr, dtype=np.float64)


def _check_tables(B1, B2, NQ, nrows, ncols):
    if B1.shape[1] != NQ or B2.shape[1] != NQ:
        raise ValueError(f"The evaluation tables have {B1.shape[1]} and "
                         f"{B2.shape[1]} nodes, but the quadrature rule has {NQ}!")
    nrows = B1.shape[0] if nrows is None else nrows
    ncols = B2.shape[0] if ncols is None else ncols
    if nrows > B1.shape[0] or ncols > B2.shape[0]:
        raise ValueError(f"Asking for a ({nrows}, {ncols}) matrix from families "
                         f"of {B1.shape[0]} and {B2.shape[0]} functions!")
    return nrows, ncols


def _check_sym(B1, B2, nrows, ncols):
    if nrows > ncols:
        raise ValueError("The symmetric path needs nrows <= ncols!")
    if (B1 is not B2) and (not np.array_equal(B1[:nrows], B2[:nrows])):
        raise ValueError("The symmetric path needs the row family to be a "
                         "prefix of the column family!")


def gram_scalar(B1: TensorLike, B2: TensorLike, qr,
                nrows: Optional[int]=None, ncols: Optional[int]=None,
                sym: bool=False, weight: Optional[TensorLike]=None) -> TensorLike:
    """Gram matrix of two scalar families, `weight` (NQ, ) is an optional
    scalar weight at the nodes."""
    w = _weights(qr)
    nrows, ncols = _check_tables(B1, B2, len(w), nrows, ncols)
    if weight is not None:
        w = w*np.asarray(weight, dtype=np.float64)
    wB1 = B1[:nrows]*w
    if not sym:
        return np.einsum('iq, jq->ij', wB1, B2[:ncols], optimize=False)

    _check_sym(B1, B2, nrows, ncols)
    M = np.zeros((nrows, ncols), dtype=np.float64)
    for i in range(nrows):
        M[i, :i] = M[:i, i]
        M[i, i:] = np.einsum('q, jq->j', wB1[i], B2[i:ncols], optimize=False)
    return M


def gram_vector(B1: TensorLike, B2: TensorLike, qr,
                nrows: Optional[int]=None, ncols: Optional[int]=None,
                sym: bool=False, weight: Optional[TensorLike]=None) -> TensorLike:
    """Gram matrix of two vector families for the dot product, `weight`
    (NQ, 3, 3) is an optional tensor weight: `B1[i] . (W B2[j])`."""
    w = _weights(qr)
    nrows, ncols = _check_tables(B1, B2, len(w), nrows, ncols)
    wB1 = B1[:nrows]*w[None, :, None]
    if weight is not None:
        wB1 = np.einsum('iqk, qkm->iqm', wB1, np.asarray(weight, dtype=np.float64))
    if not sym:
        return np.einsum('iqk, jqk->ij', wB1, B2[:ncols], optimize=False)

    _check_sym(B1, B2, nrows, ncols)
    M = np.zeros((nrows, ncols), dtype=np.float64)
    for i in range(nrows):
        M[i, :i] = M[:i, i]
        M[i, i:] = np.einsum('qk, jqk->j', wB1[i], B2[i:ncols], optimize=False)
    return M


def gram_vector_scalar(B1: TensorLike, B2: TensorLike, qr,
                       nrows: Optional[int]=None,
                       ncols: Optional[int]=None) -> TensorLike:
    """
    Matrix between a vector family B1 and the scalar family B2 tensorized
    along the three Cartesian directions.

    Returns:
        TensorLike: shape (nrows, 3*ncols), the column `k*ncols + j` holds
        the products of B1[i] with `B2[j] e_k`.
    """
    w = _weights(qr)
    nrows, ncols = _check_tables(B1, B2, len(w), nrows, ncols)
    M = np.einsum('iqk, q, jq->ikj', B1[:nrows], w, B2[:ncols], optimize=False)
    return M.reshape(nrows, 3*ncols)


def compute_gram_matrix(B1: TensorLike, B2: TensorLike, qr,
                        nrows: Optional[int]=None, ncols: Optional[int]=None,
                        sym: bool=False,
                        weight: Optional[TensorLike]=None) -> TensorLike:
    """
    Gram matrix of the families B1 and B2 evaluated on the rule `qr`.

    Parameters:
        B1, B2 : TensorLike
            Evaluation tables, (nfun, NQ) for scalar families and
            (nfun, NQ, 3) for vector ones. A vector B1 with a scalar B2 gives
            the tensorized matrix of `gram_vector_scalar`.
        qr : QuadratureRule or TensorLike
            The rule, or directly its weights.
        nrows, ncols : int, optional
            Number of functions of B1 and B2 to use, all of them by default.
        sym : bool
            The caller asserts nrows <= ncols and B1[:nrows] == B2[:nrows].
            Only the upper triangle is computed, the rest is mirrored.
        weight : TensorLike, optional
            Weight at the nodes, (NQ, ) for scalars, (NQ, 3, 3) for vectors.

    Raises:
        ValueError: when the tables do not match the rule, when more
        functions than available are requested, or on unsupported shapes.
    """
    B1 = np.asarray(B1)
    B2 = np.asarray(B2)
    if B1.ndim == 2 and B2.ndim == 2:
        return gram_scalar(B1, B2, qr, nrows, ncols, sym, weight)
    elif B1.ndim == 3 and B2.ndim == 3:
        return gram_vector(B1, B2, qr, nrows, ncols, sym, weight)
    elif B1.ndim == 3 and B2.ndim == 2:
        if sym or (weight is not None):
            raise ValueError("The tensorized matrix has no symmetric or weighted path!")
        return gram_vector_scalar(B1, B2, qr, nrows, ncols)
    raise ValueError(f"Unsupported evaluation tables of shapes {B1.shape} and {B2.shape}")


def scalar_product(basis_quad: TensorLike, v: TensorLike) -> TensorLike:
    """Dot products of the vector table (nfun, NQ, 3) with v, (3, ) or
    (NQ, 3)."""
    return np.einsum('iqk, qk->iq', basis_quad, np.broadcast_to(v, basis_quad.shape[1:]))


def vector_product(basis_quad: TensorLike, v: TensorLike) -> TensorLike:
    """Cross products of the vector table (nfun, NQ, 3) with v, (3, ) or
    (NQ, 3)."""
    return np.cross(basis_quad, v)
