import numpy as np
import pytest

from hhocore.mesh import PolyhedronMesh, Cell, Face, Edge

from polyhedron_mesh_data import *


def single_cell_mesh(meshtype):
    if meshtype == 'tetrahedron-iso':
        return PolyhedronMesh.from_one_tetrahedron(meshtype='iso')
    elif meshtype == 'tetrahedron-equ':
        return PolyhedronMesh.from_one_tetrahedron(meshtype='equ')
    return PolyhedronMesh.from_one_prism()


class TestPolyhedronMesh:
    @pytest.mark.parametrize("data", from_box_data)
    def test_from_box(self, data):
        mesh = PolyhedronMesh.from_box(data['box'], data['nx'], data['ny'], data['nz'])

        assert mesh.number_of_nodes() == data["NN"]
        assert mesh.number_of_edges() == data["NE"]
        assert mesh.number_of_faces() == data["NF"]
        assert mesh.number_of_cells() == data["NC"]
        assert len(mesh.boundary_face_index()) == data["NBF"]
        np.testing.assert_array_equal(mesh.number_of_faces_of_cells(), 6)
        np.testing.assert_array_equal(mesh.number_of_vertices_of_cells(), 8)

        np.testing.assert_allclose(mesh.entity_measure('cell'), data["cellmeasure"], atol=1e-14)
        np.testing.assert_allclose(mesh.entity_barycenter('cell'), data["cellbarycenter"], atol=1e-14)
        np.testing.assert_allclose(mesh.entity_diameter('cell'), data["celldiameter"], atol=1e-14)

    @pytest.mark.parametrize("data", box_face2cell_data)
    def test_face_to_cell(self, data):
        mesh = PolyhedronMesh.from_box([0, 1, 0, 1, 0, 1], data['nx'], data['ny'], data['nz'])
        face2cell = mesh.face_to_cell()
        np.testing.assert_array_equal(face2cell[data['face']], data['face2cell'])

    @pytest.mark.parametrize("data", single_cell_data)
    def test_single_cell(self, data):
        mesh = single_cell_mesh(data['meshtype'])

        assert mesh.number_of_nodes() == data["NN"]
        assert mesh.number_of_edges() == data["NE"]
        assert mesh.number_of_faces() == data["NF"]
        assert mesh.number_of_cells() == data["NC"]
        np.testing.assert_allclose(mesh.entity_measure('cell'), data["cellmeasure"], atol=1e-14)
        np.testing.assert_allclose(mesh.entity_barycenter('cell')[0], data["cellbarycenter"], atol=1e-14)
        np.testing.assert_allclose(mesh.entity_measure('face'), data["facemeasure"], atol=1e-14)

        assert mesh.geo_dimension() == 3
        assert mesh.top_dimension() == 3
        face2node = mesh.face_to_node()
        assert face2node.shape == (data["NF"], data["NN"])
        np.testing.assert_array_equal(face2node.sum(axis=1).A1, mesh.number_of_vertices_of_faces())
        np.testing.assert_array_equal(mesh.cell_to_node().toarray(), 1)
        assert np.all(mesh.boundary_face_flag())

    @pytest.mark.parametrize("meshtype", ['tetrahedron-iso', 'tetrahedron-equ', 'prism'])
    def test_face_orientation(self, meshtype):
        mesh = single_cell_mesh(meshtype)
        cell = mesh.get_cell(0)
        xT = cell.center_mass
        s = np.zeros(3)
        for i in range(cell.n_faces):
            face = cell.face(i)
            nTF = cell.face_normal(i)
            # every cell is convex, so outward normals point away from xT
            assert np.dot(face.center_mass - xT, nTF) > 0
            s += face.measure*nTF
        np.testing.assert_allclose(s, 0.0, atol=1e-14)

    def test_box_outward_normals(self):
        mesh = PolyhedronMesh.from_box([0, 1, 0, 2, 0, 1], 2, 3, 2)
        for iT in range(mesh.number_of_cells()):
            cell = mesh.get_cell(iT)
            s = np.zeros(3)
            for i in range(cell.n_faces):
                nTF = cell.face_normal(i)
                assert np.dot(cell.face(i).center_mass - cell.center_mass, nTF) > 0
                s += cell.face(i).measure*nTF
            np.testing.assert_allclose(s, 0.0, atol=1e-14)

        # interior faces are seen with opposite signs by their two cells
        face2cell = mesh.face_to_cell()
        cell, cellLocation = mesh.cell_to_face()
        sign = mesh.cell_face_orientation()
        isInFace = face2cell[:, 0] != face2cell[:, 1]
        s0 = sign[cellLocation[face2cell[isInFace, 0]] + face2cell[isInFace, 2]]
        s1 = sign[cellLocation[face2cell[isInFace, 1]] + face2cell[isInFace, 3]]
        np.testing.assert_array_equal(s0, 1)
        np.testing.assert_array_equal(s1, -1)

    def test_reversed_face_input(self):
        node = np.array([
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, 0.0, 1.0]], dtype=np.float64)
        # all the faces are given with inward normals
        face = np.array([[1, 3, 2], [0, 2, 3], [0, 3, 1], [0, 1, 2]])
        mesh = PolyhedronMesh(node, face, np.array([[0, 1, 2, 3]]))
        cell = mesh.get_cell(0)
        for i in range(cell.n_faces):
            assert cell.face_orientation(i) == 1
            assert np.dot(cell.face(i).center_mass - cell.center_mass, cell.face_normal(i)) > 0
        np.testing.assert_allclose(mesh.entity_measure('cell'), [1/6], atol=1e-14)

    def test_face_edges(self):
        mesh = PolyhedronMesh.from_one_prism()
        for iF in range(mesh.number_of_faces()):
            face = mesh.get_face(iF)
            assert face.n_edges == len(face.node_index)
            for i in range(face.n_edges):
                edge = face.edge(i)
                assert isinstance(edge, Edge)
                nE = face.edge_normal(i)
                np.testing.assert_allclose(np.linalg.norm(nE), 1.0, atol=1e-14)
                np.testing.assert_allclose(np.dot(nE, face.normal), 0.0, atol=1e-14)
                np.testing.assert_allclose(np.dot(nE, edge.tangent), 0.0, atol=1e-14)
                assert np.dot(nE, edge.center_mass - face.center_mass) > 0

        edge = mesh.entity('edge')
        assert np.all(edge[:, 0] != edge[:, 1])
        assert len(np.unique(np.sort(edge, axis=1), axis=0)) == mesh.number_of_edges()

    def test_entity_views(self):
        mesh = PolyhedronMesh.from_box([0, 1, 0, 1, 0, 1], 2, 1, 1)
        f = mesh.get_face(1)
        assert isinstance(f, Face)
        assert not f.is_boundary
        assert [c.global_index for c in f.cells()] == [0, 1]
        assert mesh.get_face(0).is_boundary
        assert len(mesh.get_face(0).cells()) == 1
        assert mesh.get_cell(1) == Cell(mesh, 1)
        assert mesh.get_cell(0) != mesh.get_cell(1)
        assert len({mesh.get_cell(0), Cell(mesh, 0)}) == 1
        np.testing.assert_allclose(mesh.get_cell(0).vertices.mean(axis=0), [0.25, 0.5, 0.5])

    def test_out_of_range(self):
        mesh = PolyhedronMesh.from_one_tetrahedron()
        with pytest.raises(IndexError):
            mesh.get_cell(1)
        with pytest.raises(IndexError):
            mesh.get_face(-1)
        with pytest.raises(IndexError):
            mesh.get_edge(6)
        with pytest.raises(IndexError):
            mesh.get_cell(0).face(4)
        with pytest.raises(IndexError):
            mesh.get_face(0).edge(3)

    @pytest.mark.parametrize("data", invalid_input_data)
    def test_invalid_input(self, data):
        with pytest.raises(ValueError):
            PolyhedronMesh(data['node'], data['face'], data['cell'])


if __name__ == "__main__":
    pytest.main(["./test_polyhedron_mesh.py", "-k", "test_from_box"])
