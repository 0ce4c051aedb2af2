import numpy as np

from ..typing import TensorLike


def ranges(nv: TensorLike, start: int=0) -> TensorLike:
    """Local position of every item inside its block, for blocks of sizes `nv`.

    Example:
        >>> ranges(np.array([2, 3]))
        array([0, 1, 0, 1, 2])
    """
    nv = np.asarray(nv)
    starts = np.cumsum(nv) - nv
    return np.arange(nv.sum()) - np.repeat(starts, nv) + start


def estr2dim(name) -> int:
    if isinstance(name, int):
        return name
    if name == 'cell':
        return 3
    elif name == 'face':
        return 2
    elif name == 'edge':
        return 1
    elif name == 'node':
        return 0
    else:
        raise ValueError(f"entity type: {name} is wrong!")


def max_distance(points: TensorLike) -> float:
    """Largest distance between two points of the `(N, 3)` array `points`."""
    v = points[:, None, :] - points[None, :, :]
    return np.sqrt(np.max(np.sum(v**2, axis=-1)))
