from .quadrature import Quadrature, QuadratureRule
from .stroud_quadrature import StroudQuadrature
from .polyhedron_quadrature import (
        generate_quadrature_rule,
        cell_quadrature_rule,
        face_quadrature_rule,
        edge_quadrature_rule)
