import numpy as np
import pytest

from hhocore.mesh import PolyhedronMesh
from hhocore.quadrature import QuadratureRule, generate_quadrature_rule

from polyhedron_quadrature_data import *


def get_mesh(name):
    if name == 'box':
        return PolyhedronMesh.from_box([0, 1, 0, 1, 0, 1], 1, 1, 1)
    elif name == 'box222':
        return PolyhedronMesh.from_box([0, 1, 0, 2, 0, 1], 2, 2, 2)
    elif name == 'prism':
        return PolyhedronMesh.from_one_prism()
    return PolyhedronMesh.from_one_tetrahedron(meshtype='iso')


class TestPolyhedronQuadrature:
    @pytest.mark.parametrize("data", cell_moment_data)
    def test_cell_moments(self, data):
        mesh = get_mesh(data['mesh'])
        doe = data['doe']
        qr = generate_quadrature_rule(mesh.get_cell(0), doe)
        x, y, z = qr.points[:, 0], qr.points[:, 1], qr.points[:, 2]
        for a in range(doe+1):
            for b in range(doe+1-a):
                for c in range(doe+1-a-b):
                    val = qr.integral(x**a*y**b*z**c)
                    np.testing.assert_allclose(val, data['moment'](a, b, c), rtol=1e-12)

    @pytest.mark.parametrize("data", measure_data)
    def test_measure(self, data):
        mesh = get_mesh(data['mesh'])
        doe = data['doe']
        for iT in range(mesh.number_of_cells()):
            cell = mesh.get_cell(iT)
            qr = generate_quadrature_rule(cell, doe)
            np.testing.assert_allclose(qr.weights.sum(), cell.measure, rtol=1e-13)
            if doe > 0:
                np.testing.assert_allclose(qr.integral(qr.points)/cell.measure,
                                           cell.center_mass, atol=1e-13)
        for iF in range(mesh.number_of_faces()):
            face = mesh.get_face(iF)
            qr = generate_quadrature_rule(face, doe)
            np.testing.assert_allclose(qr.weights.sum(), face.measure, rtol=1e-13)
            # the nodes lie on the plane of the face
            np.testing.assert_allclose((qr.points - face.center_mass) @ face.normal, 0.0, atol=1e-13)
            if doe > 0:
                np.testing.assert_allclose(qr.integral(qr.points)/face.measure,
                                           face.center_mass, atol=1e-13)
        for iE in range(mesh.number_of_edges()):
            edge = mesh.get_edge(iE)
            qr = generate_quadrature_rule(edge, doe)
            np.testing.assert_allclose(qr.weights.sum(), edge.measure, rtol=1e-13)

    @pytest.mark.parametrize("data", face_moment_data)
    def test_face_moments(self, data):
        mesh = PolyhedronMesh.from_one_prism()
        doe = data['doe']
        qr = generate_quadrature_rule(mesh.get_face(data['face']), doe)
        i, j = data['plane']
        s, t = qr.points[:, i], qr.points[:, j]
        for a in range(doe+1):
            for b in range(doe+1-a):
                np.testing.assert_allclose(qr.integral(s**a*t**b), 1/((a+1)*(b+1)), rtol=1e-12)

    @pytest.mark.parametrize("doe", [0, 3, 7])
    def test_edge_moments(self, doe):
        mesh = PolyhedronMesh.from_box([0, 2, 0, 1, 0, 1], 1, 1, 1)
        for iE in range(mesh.number_of_edges()):
            edge = mesh.get_edge(iE)
            qr = generate_quadrature_rule(edge, doe)
            v0, v1 = edge.vertices
            s = (qr.points - v0) @ edge.tangent
            for k in range(doe+1):
                np.testing.assert_allclose(qr.integral(s**k), edge.measure**(k+1)/(k+1), rtol=1e-12)

    def test_rule_interface(self):
        mesh = PolyhedronMesh.from_one_tetrahedron()
        qr = generate_quadrature_rule(mesh.get_face(0), 2)
        assert len(qr) == qr.size() == qr.weights.shape[0]
        points, weights = qr.get_quadrature_points_and_weights()
        for q, (x, w) in enumerate(qr):
            np.testing.assert_array_equal(x, points[q])
            assert w == weights[q]
        x, w = qr[0]
        np.testing.assert_array_equal(x, points[0])
        with pytest.raises(ValueError):
            points[0, 0] = 1.0

    def test_invalid(self):
        with pytest.raises(ValueError):
            QuadratureRule(np.zeros((3, 2)), np.ones(3))
        with pytest.raises(ValueError):
            QuadratureRule(np.zeros((3, 3)), np.ones(2))
        with pytest.raises(ValueError):
            generate_quadrature_rule(np.zeros(3), 2)


if __name__ == "__main__":
    pytest.main(["./test_polyhedron_quadrature.py"])
