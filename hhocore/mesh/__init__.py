from .entity import Cell, Face, Edge
from .polyhedron_mesh import PolyhedronMesh
