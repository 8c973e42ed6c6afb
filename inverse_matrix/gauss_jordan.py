# In-place Gauss-Jordan inversion

import enum
from typing import Optional, Union

import numpy as np
import torch

# Twice the smallest positive subnormal double: a pivot at or below this is zero.
PIVOT_EPSILON = 2.0 * float(np.finfo(np.float64).smallest_subnormal)


class ShapeError(ValueError):
    """Raised when a matrix argument has the wrong shape.

    ``argument`` names the offending parameter ("source" or "destination"),
    or is None when the two matrices are individually fine but differ in size.
    """

    def __init__(self, message: str, argument: Optional[str] = None):
        super().__init__(message)
        self.argument = argument


class SingularMatrixError(ValueError):
    """Raised by invert_matrix when no inverse could be found."""


class PivotStrategy(enum.Enum):
    """How invert() picks a replacement when the diagonal pivot is zero.

    LEGACY keeps the historical behaviour: it swaps in the first lower row
    whose entry in the pivot column is *also* zero, so some invertible
    matrices (e.g. a permutation) are reported as singular.
    PARTIAL is textbook partial pivoting on the largest magnitude entry.
    """

    LEGACY = "legacy"
    PARTIAL = "partial"


Matrix = Union[np.ndarray, torch.Tensor]


def _check_container(m, name):
    if isinstance(m, np.ndarray):
        floating = np.issubdtype(m.dtype, np.floating)
    elif isinstance(m, torch.Tensor):
        floating = m.is_floating_point()
    else:
        raise TypeError(f"{name} must be a numpy array or torch tensor, got {type(m).__name__}")
    if not floating:
        raise TypeError(f"{name} must have a floating point dtype, got {m.dtype}")


def _square_dimension(m, name):
    if m.ndim != 2:
        raise ShapeError(f"{name} must be two-dimensional, got shape {tuple(m.shape)}", name)
    rows, cols = m.shape
    if rows == 0:
        raise ShapeError(f"{name} must not be empty", name)
    if rows != cols:
        raise ShapeError(f"{name} is not a square matrix: {rows}x{cols}", name)
    return rows


def _shares_memory(a, b):
    if a is b:
        return True
    if isinstance(a, np.ndarray) and isinstance(b, np.ndarray):
        return bool(np.shares_memory(a, b))
    if isinstance(a, torch.Tensor) and isinstance(b, torch.Tensor):
        return (a.device == b.device
                and a.untyped_storage().data_ptr() == b.untyped_storage().data_ptr())
    # A CPU tensor can wrap an array buffer (torch.from_numpy)
    t, arr = (a, b) if isinstance(a, torch.Tensor) else (b, a)
    if t.device.type != "cpu" or t.dtype == torch.bfloat16:
        return False
    return bool(np.shares_memory(t.detach().numpy(), arr))


def _swap_rows(m, cols, r0, r1):
    m[[r0, r1], :cols] = m[[r1, r0], :cols]


def _scale_row(m, cols, a, r):
    m[r, :cols] *= a


def _scale_add_row(m, cols, a, r0, r1):
    # m[r1] = a * m[r0] + m[r1]
    m[r1, :cols] += a * m[r0, :cols]


def _legacy_pivot(source, n, c):
    if not abs(float(source[c, c])) <= PIVOT_EPSILON:
        return c
    for r in range(c + 1, n):
        if abs(float(source[r, c])) <= PIVOT_EPSILON:
            return r
    return None


def _partial_pivot(source, n, c):
    r = int(abs(source[c:n, c]).argmax()) + c
    if abs(float(source[r, c])) <= PIVOT_EPSILON:
        return None
    return r


_PIVOT_SEARCH = {
    PivotStrategy.LEGACY: _legacy_pivot,
    PivotStrategy.PARTIAL: _partial_pivot,
}


def invert(source: Matrix, destination: Matrix,
           pivoting: Union[PivotStrategy, str] = PivotStrategy.LEGACY) -> bool:
    """
    Invert ``source`` into ``destination`` using Gauss-Jordan elimination.

    Both matrices are caller-allocated and mutated in place: ``destination``
    is reset to the identity and receives the inverse, ``source`` is used as
    scratch space and ends up as (roughly) the identity. Nothing else is
    allocated.

    Args:
        source: n x n floating point numpy array or torch tensor to invert
        destination: n x n floating point array/tensor for the result
        pivoting: PivotStrategy (or its string value) used when a pivot is zero

    Returns:
        True on success. False if the matrix is singular, in which case both
        matrices are left partially reduced and must be discarded.

    Raises:
        TypeError: an argument is None, not an array/tensor, or not floating point
        ShapeError: an argument is not square, or the sizes differ
        ValueError: source and destination overlap, or pivoting is unknown
    """
    if source is None:
        raise TypeError("source must not be None")
    if destination is None:
        raise TypeError("destination must not be None")
    _check_container(source, "source")
    _check_container(destination, "destination")
    n = _square_dimension(source, "source")
    m = _square_dimension(destination, "destination")
    if n != m:
        raise ShapeError(
            f"source and destination must have identical sizes: {n}x{n} vs {m}x{m}")
    if _shares_memory(source, destination):
        raise ValueError("source and destination must not share memory")
    find_pivot = _PIVOT_SEARCH[PivotStrategy(pivoting)]

    destination[:, :] = 0.0
    for i in range(n):
        destination[i, i] = 1.0

    # Columns must be reduced left to right
    for c in range(n):
        r = find_pivot(source, n, c)
        if r is None:
            return False
        if r != c:
            _swap_rows(source, n, c, r)
            _swap_rows(destination, n, c, r)
        pivot = float(source[c, c])
        if abs(pivot) <= PIVOT_EPSILON:
            return False

        # Normalize row
        scale = 1.0 / pivot
        _scale_row(source, n, scale, c)
        _scale_row(destination, n, scale, c)

        # Eliminate column
        for r in range(n):
            if r != c:
                scale = -float(source[r, c])
                _scale_add_row(source, n, scale, c, r)
                _scale_add_row(destination, n, scale, c, r)

    return True


def invert_matrix(A, pivoting: Union[PivotStrategy, str] = PivotStrategy.LEGACY) -> Matrix:
    """Return the inverse of ``A`` without touching it.

    Lists and arrays come back as float64 numpy arrays, tensors as tensors on
    the same device. Raises SingularMatrixError if ``A`` is singular.
    """
    if isinstance(A, torch.Tensor):
        source = A.clone() if A.is_floating_point() else A.to(torch.get_default_dtype())
        destination = torch.empty_like(source)
    elif A is None:
        raise TypeError("A must not be None")
    else:
        source = np.array(A, dtype=np.float64)
        destination = np.empty_like(source)

    if not invert(source, destination, pivoting):
        raise SingularMatrixError("Singular matrix")
    return destination
