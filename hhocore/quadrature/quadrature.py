from typing import Tuple, Iterator

import numpy as np

from ..typing import TensorLike


class Quadrature():
    r"""Base class for quadrature generators on reference simplices."""
    def __init__(self, *, dtype=np.float64) -> None:
        self.dtype = dtype
        self.quadpts, self.weights = self.make()

    def __len__(self) -> int:
        return self.number_of_quadrature_points()

    def __getitem__(self, i: int) -> Tuple[TensorLike, TensorLike]:
        return self.get_quadrature_point_and_weight(i)

    def make(self) -> Tuple[TensorLike, TensorLike]:
        raise NotImplementedError

    def number_of_quadrature_points(self) -> int:
        return self.weights.shape[0]

    def get_quadrature_points_and_weights(self) -> Tuple[TensorLike, TensorLike]:
        """Get all quadrature points and weights in the formula.

        Returns:
            (Tensor, Tensor): Quadrature points and weights.
        """
        return self.quadpts, self.weights

    def get_quadrature_point_and_weight(self, i: int) -> Tuple[TensorLike, TensorLike]:
        return self.quadpts[i, :], self.weights[i]


class QuadratureRule():
    """Quadrature nodes and weights on one mesh entity, in Cartesian
    coordinates.

    Parameters:
        points : TensorLike
            The nodes, shape (NQ, 3).
        weights : TensorLike
            The weights, shape (NQ, ). They already contain the measure of
            the entity, so `weights.sum()` is its volume, area or length.

    The order of the nodes is fixed once the rule is built, every table
    evaluated on the rule follows it.
    """
    def __init__(self, points: TensorLike, weights: TensorLike) -> None:
        points = np.asarray(points, dtype=np.float64)
        weights = np.asarray(weights, dtype=np.float64)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError("The shape of `points` should be (NQ, 3)!")
        if weights.shape != (points.shape[0], ):
            raise ValueError("`points` and `weights` have different lengths!")
        self.points = points
        self.weights = weights
        self.points.flags.writeable = False
        self.weights.flags.writeable = False

    def __len__(self) -> int:
        return self.weights.shape[0]

    size = __len__

    def __getitem__(self, i: int) -> Tuple[TensorLike, float]:
        return self.points[i], self.weights[i]

    def __iter__(self) -> Iterator[Tuple[TensorLike, float]]:
        return zip(self.points, self.weights)

    def get_quadrature_points_and_weights(self) -> Tuple[TensorLike, TensorLike]:
        return self.points, self.weights

    def integral(self, values: TensorLike) -> TensorLike:
        """Sum of `weights[q]*values[q, ...]` over the nodes."""
        return np.einsum('q, q...->...', self.weights, values)
