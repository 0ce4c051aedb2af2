import numpy as np
import pytest

from hhocore.mesh import PolyhedronMesh
from hhocore.quadrature import generate_quadrature_rule
from hhocore.functionspace import (
        NumericalInstabilityError,
        PIVOT_RTOL,
        check_pivots,
        MonomialScalarBasisCell,
        MonomialScalarBasisFace,
        compute_gram_matrix,
        orthonormalize,
        orthonormal_basis,
        TransformedBasis)


def get_mesh(name):
    if name == 'box':
        return PolyhedronMesh.from_box([0, 1, 0, 1.5, 0, 1], 1, 1, 1)
    elif name == 'prism':
        return PolyhedronMesh.from_one_prism(height=0.8)
    return PolyhedronMesh.from_one_tetrahedron(meshtype='equ')


class TestOrthonormalBasis:
    @pytest.mark.parametrize("name", ['box', 'prism', 'tetrahedron'])
    @pytest.mark.parametrize("degree", [0, 1, 2, 3])
    def test_cell_identity(self, name, degree):
        mesh = get_mesh(name)
        cell = mesh.get_cell(0)
        mon = MonomialScalarBasisCell(cell, degree)
        basis = orthonormal_basis(mon, generate_quadrature_rule(cell, 2*degree))
        qr = generate_quadrature_rule(cell, 2*degree + 2)
        phi = basis.values(qr.points).T
        n = basis.dimension()
        M = compute_gram_matrix(phi, phi, qr, n, n, sym=True)
        np.testing.assert_allclose(M, np.eye(n), atol=1e-10)

    @pytest.mark.parametrize("name", ['prism', 'tetrahedron'])
    def test_face_identity(self, name):
        mesh = get_mesh(name)
        for iF in range(mesh.number_of_faces()):
            face = mesh.get_face(iF)
            mon = MonomialScalarBasisFace(face, 3)
            qr = generate_quadrature_rule(face, 6)
            basis = orthonormal_basis(mon, qr)
            phi = basis.values(qr.points).T
            M = compute_gram_matrix(phi, phi, qr, sym=True)
            np.testing.assert_allclose(M, np.eye(10), atol=1e-10)
            assert basis.curls(qr.points).shape == (len(qr), 10, 3)

    def test_hierarchical(self):
        mesh = get_mesh('prism')
        cell = mesh.get_cell(0)
        mon = MonomialScalarBasisCell(cell, 3)
        basis = orthonormal_basis(mon, generate_quadrature_rule(cell, 6))
        T = basis.matrix
        np.testing.assert_array_equal(np.triu(T, 1), 0.0)
        # the first function is the normalized constant
        x = np.random.default_rng(2).random((5, 3))
        np.testing.assert_allclose(basis.values(x)[:, 0], 1/np.sqrt(cell.measure), rtol=1e-12)
        np.testing.assert_allclose(basis.gradients(x)[:, 0], 0.0, atol=1e-12)
        # the first four functions span the affine functions
        qr = generate_quadrature_rule(cell, 4)
        phi = basis.values(qr.points)[:, :4]
        A = np.c_[np.ones(len(qr)), qr.points]
        c = np.linalg.lstsq(phi, A, rcond=None)[0]
        np.testing.assert_allclose(phi @ c, A, atol=1e-12)

    def test_evaluation(self):
        mesh = get_mesh('box')
        cell = mesh.get_cell(0)
        mon = MonomialScalarBasisCell(cell, 2)
        T = np.tril(np.random.default_rng(3).random((10, 10))) + np.eye(10)
        basis = TransformedBasis(mon, T)
        x = np.array([0.2, 1.1, 0.4])
        np.testing.assert_allclose(basis.values(x), T @ mon.values(x), rtol=1e-14)
        np.testing.assert_allclose(basis.gradients(x), T @ mon.gradients(x), rtol=1e-14)
        for i in range(10):
            np.testing.assert_allclose(basis.function(i, x), basis.values(x)[i], rtol=1e-14)
            np.testing.assert_allclose(basis.gradient(i, x), basis.gradients(x)[i], rtol=1e-14)
        with pytest.raises(IndexError):
            basis.function(10, x)
        with pytest.raises(ValueError):
            TransformedBasis(mon, T[:, :4])

    def test_not_positive_definite(self):
        with pytest.raises(NumericalInstabilityError):
            orthonormalize(np.array([[1.0, 2.0], [2.0, 1.0]]))
        with pytest.raises(NumericalInstabilityError):
            orthonormalize(np.array([[1.0, 1.0], [1.0, 1.0 + 1e-20]]))
        with pytest.raises(ValueError):
            orthonormalize(np.ones((2, 3)))

    def test_pivot_ratio(self):
        L = np.diag([1.0, 1e-3])
        check_pivots(L, "L")
        with pytest.raises(NumericalInstabilityError, match="L is nearly singular"):
            check_pivots(L, "L", rtol=1e-2)
        check_pivots(np.zeros((0, 0)), "empty")
        # a positive definite matrix whose factor has the pivots 1 and 1e-10
        G = np.diag([1.0, 1e-20])
        assert 1e-10 <= PIVOT_RTOL
        with pytest.raises(NumericalInstabilityError, match="Gram matrix is nearly singular"):
            orthonormalize(G)
        T = orthonormalize(G, rtol=1e-12)
        np.testing.assert_allclose(T, np.diag([1.0, 1e10]))

    def test_insufficient_quadrature(self):
        mesh = get_mesh('tetrahedron')
        cell = mesh.get_cell(0)
        mon = MonomialScalarBasisCell(cell, 4)
        # 12 nodes can not separate 35 monomials
        qr = generate_quadrature_rule(cell, 0)
        with pytest.raises(NumericalInstabilityError):
            orthonormal_basis(mon, qr)


if __name__ == "__main__":
    pytest.main(["./test_orthonormal_basis.py"])
