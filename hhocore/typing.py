from typing import Tuple, Union, Literal, Callable

import numpy as np


### Types

TensorLike = np.ndarray
Index = Union[int, slice, Tuple[int, ...], TensorLike]
EntityName = Literal['cell', 'face', 'edge', 'node']
BasisChoice = Literal['Mon', 'ON']
BasisType = Literal['basis', 'monomial']
CartesianFunction = Callable[[TensorLike], TensorLike]


### Constants

_S = slice(None)
