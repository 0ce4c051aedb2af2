"""
Read-only views of single mesh entities.

The views do not copy any data: every property reads the geometric arrays
computed once by `PolyhedronMesh.construct`.
"""
import numpy as np

from ..typing import TensorLike, EntityName


def _check_index(i, n, name):
    if not (0 <= i < n):
        raise IndexError(f"{name} index {i} is out of range [0, {n})")
    return int(i)


class Entity():
    etype: EntityName = None

    def __init__(self, mesh, i: int):
        self.mesh = mesh
        self.index = _check_index(i, mesh.number_of(self.etype), self.etype)

    @property
    def global_index(self) -> int:
        return self.index

    @property
    def center_mass(self) -> TensorLike:
        return self.mesh.entity_barycenter(self.etype, index=self.index)

    @property
    def diam(self) -> float:
        return float(self.mesh.entity_diameter(self.etype, index=self.index))

    @property
    def measure(self) -> float:
        return float(self.mesh.entity_measure(self.etype, index=self.index))

    def __eq__(self, other):
        return (type(self) is type(other)) and (self.mesh is other.mesh) \
                and (self.index == other.index)

    def __hash__(self):
        return hash((self.etype, id(self.mesh), self.index))

    def __repr__(self):
        return f"{type(self).__name__}({self.index})"


class Edge(Entity):
    etype = 'edge'

    @property
    def tangent(self) -> TensorLike:
        """Unit vector from the first node to the second one."""
        return self.mesh.edge_unit_tangent(index=self.index)

    @property
    def node_index(self) -> TensorLike:
        return self.mesh.edge[self.index]

    @property
    def vertices(self) -> TensorLike:
        return self.mesh.node[self.node_index]


class Face(Entity):
    etype = 'face'

    @property
    def normal(self) -> TensorLike:
        """Unit normal, pointing out of `face2cell[i, 0]`."""
        return self.mesh.face_unit_normal(index=self.index)

    @property
    def node_index(self) -> TensorLike:
        face, faceLocation = self.mesh.face
        return face[faceLocation[self.index]:faceLocation[self.index+1]]

    @property
    def vertices(self) -> TensorLike:
        return self.mesh.node[self.node_index]

    @property
    def n_edges(self) -> int:
        face, faceLocation = self.mesh.face
        return int(faceLocation[self.index+1] - faceLocation[self.index])

    @property
    def is_boundary(self) -> bool:
        f2c = self.mesh.face2cell[self.index]
        return bool(f2c[0] == f2c[1])

    def edge(self, i: int) -> Edge:
        i = _check_index(i, self.n_edges, 'local edge')
        face2edge, faceLocation = self.mesh.face_to_edge()
        return Edge(self.mesh, face2edge[faceLocation[self.index] + i])

    def edge_normal(self, i: int) -> TensorLike:
        """In-plane unit normal to the local edge `i`, pointing out of the
        face."""
        E = self.edge(i)
        n = np.cross(E.tangent, self.normal)
        n /= np.sqrt(np.sum(n**2))
        if np.dot(n, E.center_mass - self.center_mass) < 0:
            n = -n
        return n

    def cells(self):
        f2c = self.mesh.face2cell[self.index]
        if f2c[0] == f2c[1]:
            return [Cell(self.mesh, f2c[0])]
        return [Cell(self.mesh, f2c[0]), Cell(self.mesh, f2c[1])]


class Cell(Entity):
    etype = 'cell'

    def _face_range(self):
        cell, cellLocation = self.mesh.cell
        return cellLocation[self.index], cellLocation[self.index+1]

    @property
    def n_faces(self) -> int:
        start, stop = self._face_range()
        return int(stop - start)

    @property
    def face_index(self) -> TensorLike:
        start, stop = self._face_range()
        return self.mesh.cell[0][start:stop]

    def face(self, i: int) -> Face:
        i = _check_index(i, self.n_faces, 'local face')
        return Face(self.mesh, self.face_index[i])

    def face_orientation(self, i: int) -> int:
        """+1 if the normal of the local face `i` points out of the cell."""
        i = _check_index(i, self.n_faces, 'local face')
        start, _ = self._face_range()
        return int(self.mesh.cell_face_orientation()[start + i])

    def face_normal(self, i: int) -> TensorLike:
        """Outward unit normal of the local face `i`."""
        return self.face_orientation(i)*self.face(i).normal

    @property
    def node_index(self) -> TensorLike:
        c2n = self.mesh.cell2node
        return c2n.indices[c2n.indptr[self.index]:c2n.indptr[self.index+1]]

    @property
    def vertices(self) -> TensorLike:
        return self.mesh.node[self.node_index]
