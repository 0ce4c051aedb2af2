from .utils import NumericalInstabilityError, PIVOT_RTOL, check_pivots, dim_Pcell, dim_Pface, dim_Pedge
from .monomial_basis import (
        multi_index_matrix,
        MonomialScalarBasis,
        MonomialScalarBasisCell,
        MonomialScalarBasisFace,
        MonomialScalarBasisEdge,
        monomial_basis)
from .gram_matrix import compute_gram_matrix, scalar_product, vector_product
from .orthonormal_basis import orthonormalize, TransformedBasis, orthonormal_basis
from .hybrid_core import HybridDof3d, HybridCore
