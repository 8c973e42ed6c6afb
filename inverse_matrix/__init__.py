from .gauss_jordan import (
    PIVOT_EPSILON,
    PivotStrategy,
    ShapeError,
    SingularMatrixError,
    invert,
    invert_matrix,
)

__all__ = [
    "PIVOT_EPSILON",
    "PivotStrategy",
    "ShapeError",
    "SingularMatrixError",
    "invert",
    "invert_matrix",
]
