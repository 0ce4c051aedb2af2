from .coordinates import cartesian, barycentric, check_cartesian
