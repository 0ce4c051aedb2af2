"""
Quadrature rules on the cells, faces and edges of a `PolyhedronMesh`.

Every entity is split into simplices and the conical product rule of
`StroudQuadrature` is mapped onto each of them:

* an edge is a 1-simplex;
* a face is split into the triangles joining its center of mass to its
  edges;
* a cell is split into the tetrahedra joining its center of mass to the
  triangles of its faces.

The simplex measures are signed with respect to the orientation of the
entity, so the rules stay exact for star-shaped non convex entities.
"""
import numpy as np

from ..mesh import Cell, Face, Edge
from ..typing import TensorLike
from .quadrature import QuadratureRule
from .stroud_quadrature import StroudQuadrature


def _map_simplices(qf: StroudQuadrature, simplex: TensorLike, measure: TensorLike):
    """Map the reference rule on the simplices `simplex` (NS, dim+1, 3) with
    signed measures `measure` (NS, )."""
    bcs, ws = qf.get_quadrature_points_and_weights()
    ps = np.einsum('qi, sij->sqj', bcs, simplex)
    w = measure[:, None]*ws[None, :]
    return QuadratureRule(ps.reshape(-1, 3), w.reshape(-1))


def _face_triangles(face: Face):
    """Triangles of the fan of `face` around its center of mass, oriented
    with the face normal, and their signed areas."""
    v = face.vertices
    xF = face.center_mass
    tri = np.zeros((len(v), 3, 3), dtype=np.float64)
    tri[:, 0] = xF
    tri[:, 1] = v
    tri[:, 2] = np.roll(v, -1, axis=0)
    a = 0.5*np.cross(tri[:, 1] - tri[:, 0], tri[:, 2] - tri[:, 0]) @ face.normal
    return tri, a


def edge_quadrature_rule(edge: Edge, doe: int) -> QuadratureRule:
    qf = StroudQuadrature.from_degree(1, doe)
    simplex = edge.vertices[None, :, :]
    return _map_simplices(qf, simplex, np.array([edge.measure]))


def face_quadrature_rule(face: Face, doe: int) -> QuadratureRule:
    qf = StroudQuadrature.from_degree(2, doe)
    tri, a = _face_triangles(face)
    return _map_simplices(qf, tri, a)


def cell_quadrature_rule(cell: Cell, doe: int) -> QuadratureRule:
    qf = StroudQuadrature.from_degree(3, doe)
    xT = cell.center_mass
    tets = []
    vols = []
    for i in range(cell.n_faces):
        tri, _ = _face_triangles(cell.face(i))
        tet = np.zeros((len(tri), 4, 3), dtype=np.float64)
        tet[:, 0] = xT
        tet[:, 1:] = tri
        v = tet[:, 1:] - xT
        vol = np.einsum('ij, ij->i', v[:, 0], np.cross(v[:, 1], v[:, 2]))/6
        tets.append(tet)
        vols.append(cell.face_orientation(i)*vol)
    return _map_simplices(qf, np.concatenate(tets), np.concatenate(vols))


def generate_quadrature_rule(entity, doe: int) -> QuadratureRule:
    """Quadrature rule on `entity`, exact for polynomials of total degree up
    to `doe`.

    Parameters:
        entity : Cell, Face or Edge
        doe : int
            The degree of exactness, negative values are treated as 0.

    Returns:
        QuadratureRule: nodes in Cartesian coordinates and weights scaled by
        the measure of the entity.
    """
    if isinstance(entity, Cell):
        return cell_quadrature_rule(entity, doe)
    elif isinstance(entity, Face):
        return face_quadrature_rule(entity, doe)
    elif isinstance(entity, Edge):
        return edge_quadrature_rule(entity, doe)
    raise ValueError(f"Can not build a quadrature rule on {entity!r}")
