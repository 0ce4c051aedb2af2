import numpy as np


data = [
    {"dim": 1, "n": 1, "NQ": 1,
     "bcs": np.array([[0.5, 0.5]]), "ws": np.array([1.0])},
    {"dim": 1, "n": 2, "NQ": 2,
     "bcs": np.array([[0.5 - np.sqrt(3)/6, 0.5 + np.sqrt(3)/6],
                      [0.5 + np.sqrt(3)/6, 0.5 - np.sqrt(3)/6]]),
     "ws": np.array([0.5, 0.5])},
    {"dim": 2, "n": 1, "NQ": 1,
     "bcs": np.array([[1/3, 1/3, 1/3]]), "ws": np.array([1.0])},
    {"dim": 3, "n": 1, "NQ": 1,
     "bcs": np.array([[0.25, 0.25, 0.25, 0.25]]), "ws": np.array([1.0])},
]

exactness_data = [
    {"dim": 1, "n": 3},
    {"dim": 1, "n": 5},
    {"dim": 2, "n": 2},
    {"dim": 2, "n": 4},
    {"dim": 3, "n": 2},
    {"dim": 3, "n": 3},
    {"dim": 3, "n": 5},
]

from_degree_data = [
    {"dim": 3, "q": -2, "n": 1},
    {"dim": 3, "q": 0, "n": 1},
    {"dim": 3, "q": 1, "n": 1},
    {"dim": 2, "q": 2, "n": 2},
    {"dim": 2, "q": 3, "n": 2},
    {"dim": 1, "q": 8, "n": 5},
]
