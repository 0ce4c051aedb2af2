from typing import Union, Optional, Tuple, Sequence

import numpy as np
from scipy.sparse import csr_matrix

from .. import logger
from ..typing import TensorLike, Index, _S
from .utils import ranges, estr2dim, max_distance
from .entity import Cell, Face, Edge


def _to_location(entity, name):
    """Normalize `entity` into the `(flat, location)` pair."""
    if isinstance(entity, tuple):
        flat, location = entity
        if location is None:
            entity = flat
        else:
            return np.asarray(flat, dtype=np.int_), np.asarray(location, dtype=np.int_)
    entity = np.asarray(entity, dtype=np.int_)
    if entity.ndim != 2:
        raise ValueError(f"Miss the location array of `{name}`!")
    N, NV = entity.shape
    return entity.reshape(-1), np.arange(0, (N+1)*NV, NV)


class PolyhedronMesh():
    """
    Polyhedral mesh in R^3 stored as faces (lists of nodes) and cells (lists
    of faces).

    Parameters:
        node : TensorLike
            The node coordinates, shape (NN, 3).
        face : (face, faceLocation) or TensorLike
            Flat node list of all faces with the offsets `faceLocation` of
            shape (NF+1, ), or a (NF, NV) array when all faces have NV
            vertices. The nodes of a face are given in cyclic order.
        cell : (cell, cellLocation) or TensorLike
            Flat face list of all cells with the offsets `cellLocation` of
            shape (NC+1, ), or a (NC, NFC) array.

    Notes:
        The nodes of every face are reordered, if needed, so that the face
        normal points out of `face2cell[:, 0]`. The test uses the vertex
        average of the cell, so cells must be star-shaped with respect to
        it.
    """
    def __init__(self, node: TensorLike,
                 face: Union[Tuple[TensorLike, Optional[TensorLike]], TensorLike],
                 cell: Union[Tuple[TensorLike, Optional[TensorLike]], TensorLike]) -> None:
        node = np.asarray(node, dtype=np.float64)
        if node.ndim != 2 or node.shape[1] != 3:
            raise ValueError("The shape of `node` should be (NN, 3)!")
        self.node = node
        self.face = _to_location(face, 'face')
        self.cell = _to_location(cell, 'cell')
        self.meshtype = 'polyhedron'
        self.itype = np.int_
        self.ftype = np.float64

        self.construct()

    def construct(self):
        NN = self.number_of_nodes()
        face, faceLocation = self.face
        cell, cellLocation = self.cell
        NF = len(faceLocation) - 1
        NC = len(cellLocation) - 1

        if len(face) and (face.min() < 0 or face.max() >= NN):
            raise ValueError("`face` refers to nodes that do not exist!")
        if len(cell) and (cell.min() < 0 or cell.max() >= NF):
            raise ValueError("`cell` refers to faces that do not exist!")
        NVF = np.diff(faceLocation)
        if np.any(NVF < 3):
            raise ValueError("Every face needs at least 3 nodes!")

        NFC = np.diff(cellLocation)
        cellIdx = np.repeat(np.arange(NC), NFC)
        localIdx = ranges(NFC)

        count = np.bincount(cell, minlength=NF)
        if np.any(count == 0) or np.any(count > 2):
            raise ValueError("Every face must belong to one or two cells!")
        order = np.argsort(cell, kind='stable')
        start = np.zeros(NF+1, dtype=self.itype)
        start[1:] = np.cumsum(count)
        first = order[start[:-1]]
        last = order[start[1:]-1]

        self.face2cell = np.zeros((NF, 4), dtype=self.itype)
        self.face2cell[:, 0] = cellIdx[first]
        self.face2cell[:, 1] = cellIdx[last]
        self.face2cell[:, 2] = localIdx[first]
        self.face2cell[:, 3] = localIdx[last]
        isTwice = (count == 2) & (self.face2cell[:, 0] == self.face2cell[:, 1])
        if np.any(isTwice):
            raise ValueError("A face appears twice in the same cell!")

        self.cell2node = self.cell_to_node()

        # orient the faces outward of their left cell
        center = self._cell_vertex_average()
        fc0, nvec = self._face_newell()
        lc = center[self.face2cell[:, 0]]
        isReversed = np.einsum('ij, ij->i', nvec, fc0 - lc) < 0
        if np.any(isReversed):
            faceIdx = np.repeat(np.arange(NF), NVF)
            local = ranges(NVF)
            rev = faceLocation[faceIdx+1] - 1 - local
            pos = np.where(isReversed[faceIdx], rev, np.arange(len(face)))
            self.face = (face[pos], faceLocation)
            face = self.face[0]

        # the left cell sees every face with the sign +1
        self.cellFaceSign = np.where(
                (self.face2cell[cell, 0] == cellIdx) &
                (self.face2cell[cell, 2] == localIdx), 1, -1)

        totalEdge = self.total_edge()
        _, i0, j = np.unique(np.sort(totalEdge, axis=1), axis=0,
                return_index=True, return_inverse=True)
        self.edge = totalEdge[i0]
        self.face2edge = j.reshape(-1)

        self._init_geometry()

        logger.info(f"Mesh topology relation constructed, with {NC} cells, {NF} "
                    f"faces, {self.number_of_edges()} edges, {NN} nodes.")

    def total_edge(self) -> TensorLike:
        """The edges of every face in local order, local edge `k` joins local
        nodes `k` and `k+1`."""
        face, faceLocation = self.face
        NVF = np.diff(faceLocation)
        faceIdx = np.repeat(np.arange(len(NVF)), NVF)
        local = ranges(NVF)
        totalEdge = np.zeros((len(face), 2), dtype=self.itype)
        totalEdge[:, 0] = face
        totalEdge[:, 1] = face[faceLocation[faceIdx] + (local+1) % NVF[faceIdx]]
        return totalEdge

    def _cell_vertex_average(self) -> TensorLike:
        NV = np.asarray(self.cell2node.sum(axis=1)).reshape(-1, 1)
        return (self.cell2node @ self.node)/NV

    def _face_newell(self):
        """Vertex averages and area vectors (Newell) of the faces."""
        node = self.node
        face, faceLocation = self.face
        NF = len(faceLocation) - 1
        NVF = np.diff(faceLocation)
        faceIdx = np.repeat(np.arange(NF), NVF)
        totalEdge = self.total_edge()

        fc0 = np.zeros((NF, 3), dtype=self.ftype)
        np.add.at(fc0, faceIdx, node[face])
        fc0 /= NVF[:, None]

        v0 = node[totalEdge[:, 0]] - fc0[faceIdx]
        v1 = node[totalEdge[:, 1]] - fc0[faceIdx]
        av = 0.5*np.cross(v0, v1)
        nvec = np.zeros((NF, 3), dtype=self.ftype)
        np.add.at(nvec, faceIdx, av)
        return fc0, nvec

    def _init_geometry(self):
        node = self.node
        face, faceLocation = self.face
        cell, cellLocation = self.cell
        NF = self.number_of_faces()
        NC = self.number_of_cells()
        NVF = np.diff(faceLocation)
        faceIdx = np.repeat(np.arange(NF), NVF)
        totalEdge = self.total_edge()

        # faces: triangle fan around the vertex average
        fc0, nvec = self._face_newell()
        self.facemeasure = np.sqrt(np.sum(nvec**2, axis=-1))
        if np.any(self.facemeasure == 0.0):
            raise ValueError("The mesh has faces with zero area!")
        self.facenormal = nvec/self.facemeasure[:, None]
        a = fc0[faceIdx]
        b = node[totalEdge[:, 0]]
        c = node[totalEdge[:, 1]]
        sa = 0.5*np.einsum('ij, ij->i', np.cross(b - a, c - a), self.facenormal[faceIdx])
        self.facebarycenter = np.zeros((NF, 3), dtype=self.ftype)
        np.add.at(self.facebarycenter, faceIdx, sa[:, None]*(a + b + c)/3)
        self.facebarycenter /= self.facemeasure[:, None]

        # cells: tetrahedra between the vertex average and the face triangles
        NFC = np.diff(cellLocation)
        cellIdx = np.repeat(np.arange(NC), NFC)
        entry = np.repeat(np.arange(len(cell)), NVF[cell])
        local = ranges(NVF[cell])
        tri = faceLocation[cell[entry]] + local
        x0 = self._cell_vertex_average()[cellIdx[entry]]
        a = self.facebarycenter[cell[entry]]
        b = node[totalEdge[tri, 0]]
        c = node[totalEdge[tri, 1]]
        vol = self.cellFaceSign[entry]*np.einsum(
                'ij, ij->i', a - x0, np.cross(b - x0, c - x0))/6
        self.cellmeasure = np.bincount(cellIdx[entry], weights=vol, minlength=NC)
        if np.any(self.cellmeasure <= 0.0):
            raise ValueError("The mesh has cells with non positive volume!")
        self.cellbarycenter = np.zeros((NC, 3), dtype=self.ftype)
        np.add.at(self.cellbarycenter, cellIdx[entry], vol[:, None]*(x0 + a + b + c)/4)
        self.cellbarycenter /= self.cellmeasure[:, None]

        # edges
        edge = self.edge
        t = node[edge[:, 1]] - node[edge[:, 0]]
        self.edgemeasure = np.sqrt(np.sum(t**2, axis=-1))
        self.edgetangent = t/self.edgemeasure[:, None]
        self.edgebarycenter = np.mean(node[edge], axis=1)

        # diameters
        self.facediameter = np.array([
            max_distance(node[face[faceLocation[i]:faceLocation[i+1]]])
            for i in range(NF)], dtype=self.ftype)
        c2n = self.cell2node
        self.celldiameter = np.array([
            max_distance(node[c2n.indices[c2n.indptr[i]:c2n.indptr[i+1]]])
            for i in range(NC)], dtype=self.ftype)

    ## counts
    def geo_dimension(self) -> int:
        return 3

    def top_dimension(self) -> int:
        return 3

    def number_of_nodes(self) -> int:
        return self.node.shape[0]

    def number_of_edges(self) -> int:
        return self.edge.shape[0]

    def number_of_faces(self) -> int:
        return len(self.face[1]) - 1

    def number_of_cells(self) -> int:
        return len(self.cell[1]) - 1

    def number_of_faces_of_cells(self) -> TensorLike:
        return np.diff(self.cell[1])

    def number_of_vertices_of_faces(self) -> TensorLike:
        return np.diff(self.face[1])

    def number_of_vertices_of_cells(self) -> TensorLike:
        return np.asarray(self.cell2node.sum(axis=1)).reshape(-1)

    def number_of(self, etype: Union[int, str]) -> int:
        etype = estr2dim(etype)
        return [self.number_of_nodes, self.number_of_edges,
                self.number_of_faces, self.number_of_cells][etype]()

    ## topology
    def cell_to_face(self) -> Tuple[TensorLike, TensorLike]:
        return self.cell

    def face_to_cell(self) -> TensorLike:
        return self.face2cell

    def face_to_edge(self) -> Tuple[TensorLike, TensorLike]:
        return self.face2edge, self.face[1]

    def cell_to_node(self) -> csr_matrix:
        """The (NC, NN) sparse incidence matrix between cells and nodes."""
        face, faceLocation = self.face
        cell, cellLocation = self.cell
        NC = self.number_of_cells()
        NN = self.number_of_nodes()
        NVF = np.diff(faceLocation)
        NFC = np.diff(cellLocation)
        cellIdx = np.repeat(np.arange(NC), NFC)
        entry = np.repeat(np.arange(len(cell)), NVF[cell])
        nodeIdx = face[faceLocation[cell[entry]] + ranges(NVF[cell])]
        val = np.ones(len(nodeIdx), dtype=self.itype)
        cell2node = csr_matrix((val, (cellIdx[entry], nodeIdx)), shape=(NC, NN))
        cell2node.sum_duplicates()
        cell2node.data[:] = 1
        return cell2node

    def face_to_node(self) -> csr_matrix:
        """The (NF, NN) sparse incidence matrix between faces and nodes."""
        face, faceLocation = self.face
        NF = self.number_of_faces()
        val = np.ones(len(face), dtype=self.itype)
        return csr_matrix((val, face, faceLocation), shape=(NF, self.number_of_nodes()))

    def boundary_face_flag(self) -> TensorLike:
        return self.face2cell[:, 0] == self.face2cell[:, 1]

    def boundary_face_index(self) -> TensorLike:
        return np.nonzero(self.boundary_face_flag())[0]

    ## geometry
    def entity(self, etype: Union[int, str], index: Index=_S):
        etype = estr2dim(etype)
        if etype == 0:
            return self.node[index]
        elif etype == 1:
            return self.edge[index]
        elif etype == 2:
            return self.face
        elif etype == 3:
            return self.cell
        raise ValueError(f"entity type: {etype} is wrong!")

    def entity_measure(self, etype: Union[int, str]='cell', index: Index=_S) -> TensorLike:
        etype = estr2dim(etype)
        if etype == 3:
            return self.cellmeasure[index]
        elif etype == 2:
            return self.facemeasure[index]
        elif etype == 1:
            return self.edgemeasure[index]
        elif etype == 0:
            return np.zeros(self.number_of_nodes(), dtype=self.ftype)[index]
        raise ValueError(f"Unsupported entity or top-dimension: {etype}")

    def entity_barycenter(self, etype: Union[int, str]='cell', index: Index=_S) -> TensorLike:
        etype = estr2dim(etype)
        if etype == 3:
            return self.cellbarycenter[index]
        elif etype == 2:
            return self.facebarycenter[index]
        elif etype == 1:
            return self.edgebarycenter[index]
        elif etype == 0:
            return self.node[index]
        raise ValueError(f"Unsupported entity or top-dimension: {etype}")

    def entity_diameter(self, etype: Union[int, str]='cell', index: Index=_S) -> TensorLike:
        etype = estr2dim(etype)
        if etype == 3:
            return self.celldiameter[index]
        elif etype == 2:
            return self.facediameter[index]
        elif etype == 1:
            return self.edgemeasure[index]
        raise ValueError(f"Unsupported entity or top-dimension: {etype}")

    def face_unit_normal(self, index: Index=_S) -> TensorLike:
        return self.facenormal[index]

    def edge_unit_tangent(self, index: Index=_S) -> TensorLike:
        return self.edgetangent[index]

    def cell_face_orientation(self) -> TensorLike:
        """Flat array aligned with `cell[0]`: +1 when the normal of the face
        points out of the cell, -1 otherwise."""
        return self.cellFaceSign

    ## entity views
    def get_cell(self, i: int) -> Cell:
        return Cell(self, i)

    def get_face(self, i: int) -> Face:
        return Face(self, i)

    def get_edge(self, i: int) -> Edge:
        return Edge(self, i)

    ## factories
    @classmethod
    def from_box(cls, box: Sequence[float]=[0, 1, 0, 1, 0, 1],
                 nx: int=1, ny: int=1, nz: int=1):
        """Hexahedral mesh of the box `[x0, x1]x[y0, y1]x[z0, z1]`.

        Node `(i, j, k)` has index `i*(ny+1)*(nz+1) + j*(nz+1) + k`. The faces
        normal to x come first, then those normal to y and z.
        """
        x = np.linspace(box[0], box[1], nx+1)
        y = np.linspace(box[2], box[3], ny+1)
        z = np.linspace(box[4], box[5], nz+1)
        node = np.stack(np.meshgrid(x, y, z, indexing='ij'), axis=-1).reshape(-1, 3)

        NN = (nx+1)*(ny+1)*(nz+1)
        idx = np.arange(NN).reshape(nx+1, ny+1, nz+1)
        xface = np.stack([idx[:, :-1, :-1], idx[:, 1:, :-1],
                          idx[:, 1:, 1:], idx[:, :-1, 1:]], axis=-1).reshape(-1, 4)
        yface = np.stack([idx[:-1, :, :-1], idx[:-1, :, 1:],
                          idx[1:, :, 1:], idx[1:, :, :-1]], axis=-1).reshape(-1, 4)
        zface = np.stack([idx[:-1, :-1, :], idx[1:, :-1, :],
                          idx[1:, 1:, :], idx[:-1, 1:, :]], axis=-1).reshape(-1, 4)
        face = np.concatenate([xface, yface, zface], axis=0)

        NXF = len(xface)
        NYF = len(yface)
        xf = np.arange(NXF).reshape(nx+1, ny, nz)
        yf = NXF + np.arange(NYF).reshape(nx, ny+1, nz)
        zf = NXF + NYF + np.arange(len(zface)).reshape(nx, ny, nz+1)
        cell = np.stack([xf[:-1], xf[1:], yf[:, :-1], yf[:, 1:],
                         zf[:, :, :-1], zf[:, :, 1:]], axis=-1).reshape(-1, 6)
        return cls(node, face, cell)

    @classmethod
    def from_one_tetrahedron(cls, meshtype: str='iso'):
        """Mesh with the single tetrahedron, the reference one when
        `meshtype='iso'` and the regular one with unit edges for 'equ'."""
        if meshtype == 'equ':
            node = np.array([
                [0.0, 0.0, 0.0],
                [1.0, 0.0, 0.0],
                [0.5, np.sqrt(3)/2, 0.0],
                [0.5, np.sqrt(3)/6, np.sqrt(2/3)]], dtype=np.float64)
        elif meshtype == 'iso':
            node = np.array([
                [0.0, 0.0, 0.0],
                [1.0, 0.0, 0.0],
                [0.0, 1.0, 0.0],
                [0.0, 0.0, 1.0]], dtype=np.float64)
        else:
            raise ValueError(f"Unknown meshtype: {meshtype}")
        face = np.array([[1, 2, 3], [0, 3, 2], [0, 1, 3], [0, 2, 1]], dtype=np.int_)
        cell = np.array([[0, 1, 2, 3]], dtype=np.int_)
        return cls(node, face, cell)

    @classmethod
    def from_one_prism(cls, height: float=1.0):
        """Mesh with the single right prism over the reference triangle, two
        triangular and three quadrilateral faces."""
        node = np.array([
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [0.0, 0.0, height],
            [1.0, 0.0, height],
            [0.0, 1.0, height]], dtype=np.float64)
        face = np.array([0, 2, 1, 3, 4, 5, 0, 1, 4, 3, 1, 2, 5, 4, 2, 0, 3, 5],
                        dtype=np.int_)
        faceLocation = np.array([0, 3, 6, 10, 14, 18], dtype=np.int_)
        cell = np.array([[0, 1, 2, 3, 4]], dtype=np.int_)
        return cls(node, (face, faceLocation), cell)
