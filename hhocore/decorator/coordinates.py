"""

Notes
-----
The `cartesian` decorator tags a function with a `coordtype` attribute. The
hybrid core only evaluates functions at Cartesian points `p` of shape
`(..., 3)`, and uses the tag to reject functions written for barycentric
input.
"""
from functools import wraps


def cartesian(func):
    @wraps(func)
    def add_attribute(*args, **kwargs):
        return func(*args, **kwargs)
    add_attribute.__dict__['coordtype'] = 'cartesian'
    return add_attribute


def barycentric(func):
    @wraps(func)
    def add_attribute(*args, **kwargs):
        return func(*args, **kwargs)
    add_attribute.__dict__['coordtype'] = 'barycentric'
    return add_attribute


def check_cartesian(func):
    """Raise `ValueError` if `func` is tagged with a coordinate type other
    than cartesian. Untagged callables are accepted as cartesian."""
    coordtype = getattr(func, 'coordtype', 'cartesian')
    if coordtype != 'cartesian':
        raise ValueError(f"expected a function of cartesian points, got a "
                         f"{coordtype} one")
    return func
