"""
Small dense linear algebra for the regression predictor.

Matrices are lists of rows. The routines are deliberately explicit
(Gauss-Jordan with partial pivoting) so a singular normal-equation
matrix is reported as SingularMatrixError instead of producing
inf/nan coefficients.
"""
from typing import List, Sequence

from utils.error_handler import SingularMatrixError

Matrix = List[List[float]]

# Pivots smaller than this fraction of the largest entry count as zero
PIVOT_TOLERANCE = 1e-10


def transpose(a: Sequence[Sequence[float]]) -> Matrix:
    """Transpose of an m x n matrix."""
    if not a:
        return []
    return [list(col) for col in zip(*a)]


def multiply(a: Sequence[Sequence[float]], b: Sequence[Sequence[float]]) -> Matrix:
    """
    Matrix product a·b.

    Raises:
        ValueError: if the inner dimensions disagree
    """
    if not a or not b:
        return []
    inner = len(a[0])
    if inner != len(b):
        raise ValueError(f"Cannot multiply {len(a)}x{inner} by {len(b)}x{len(b[0])}")

    b_cols = transpose(b)
    return [
        [sum(x * y for x, y in zip(row, col)) for col in b_cols]
        for row in a
    ]


def identity(n: int) -> Matrix:
    return [[1.0 if i == j else 0.0 for j in range(n)] for i in range(n)]


def inverse(a: Sequence[Sequence[float]]) -> Matrix:
    """
    Inverse of a square matrix by Gauss-Jordan elimination.

    Each column is pivoted on the row with the largest absolute entry.
    A pivot below PIVOT_TOLERANCE * max|a| means the matrix is singular
    (or too ill-conditioned to trust).

    Raises:
        ValueError: if the matrix is not square
        SingularMatrixError: if no usable pivot exists for some column
    """
    n = len(a)
    if any(len(row) != n for row in a):
        raise ValueError("Matrix must be square")
    if n == 0:
        return []

    scale = max(abs(x) for row in a for x in row)
    if scale == 0:
        raise SingularMatrixError("Zero matrix has no inverse")
    tolerance = PIVOT_TOLERANCE * scale

    # Augmented [A | I]
    aug = [list(map(float, row)) + ident for row, ident in zip(a, identity(n))]

    for col in range(n):
        pivot_row = max(range(col, n), key=lambda r: abs(aug[r][col]))
        pivot = aug[pivot_row][col]
        if abs(pivot) < tolerance:
            raise SingularMatrixError(f"Singular matrix: no pivot in column {col}")

        if pivot_row != col:
            aug[col], aug[pivot_row] = aug[pivot_row], aug[col]

        pivot_values = aug[col]
        aug[col] = [x / pivot for x in pivot_values]

        for r in range(n):
            if r == col:
                continue
            factor = aug[r][col]
            if factor != 0.0:
                aug[r] = [x - factor * y for x, y in zip(aug[r], aug[col])]

    return [row[n:] for row in aug]
