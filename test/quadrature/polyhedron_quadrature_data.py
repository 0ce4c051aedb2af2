import numpy as np
from math import factorial


def box_moment(a, b, c):
    """Integral of x**a y**b z**c on the unit cube."""
    return 1/((a+1)*(b+1)*(c+1))


def prism_moment(a, b, c, height=1.0):
    """Integral of x**a y**b z**c on the prism of `PolyhedronMesh.from_one_prism`."""
    return factorial(a)*factorial(b)/factorial(a+b+2)*height**(c+1)/(c+1)


def tetrahedron_moment(a, b, c):
    """Integral of x**a y**b z**c on the reference tetrahedron."""
    return factorial(a)*factorial(b)*factorial(c)/factorial(a+b+c+3)


cell_moment_data = [
    {"mesh": "box", "moment": box_moment, "doe": 0},
    {"mesh": "box", "moment": box_moment, "doe": 3},
    {"mesh": "box", "moment": box_moment, "doe": 6},
    {"mesh": "prism", "moment": prism_moment, "doe": 2},
    {"mesh": "prism", "moment": prism_moment, "doe": 5},
    {"mesh": "tetrahedron", "moment": tetrahedron_moment, "doe": 1},
    {"mesh": "tetrahedron", "moment": tetrahedron_moment, "doe": 4},
    {"mesh": "tetrahedron", "moment": tetrahedron_moment, "doe": 7},
]

measure_data = [
    {"mesh": "box", "doe": 0},
    {"mesh": "box", "doe": 4},
    {"mesh": "prism", "doe": 3},
    {"mesh": "tetrahedron", "doe": 2},
    {"mesh": "box222", "doe": 5},
]

face_moment_data = [
    # the quadrilateral face of the prism in the plane y = 0
    {"face": 2, "plane": (0, 2), "doe": 2},
    {"face": 2, "plane": (0, 2), "doe": 5},
    {"face": 2, "plane": (0, 2), "doe": 8},
]
