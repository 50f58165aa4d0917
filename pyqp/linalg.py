"""
Dense exact linear algebra on numpy object arrays of Fractions.
"""
from fractions import Fraction
import numpy as np
from numpy.linalg import LinAlgError
from .arithmetic import exact_array, to_exact

ZERO = Fraction(0)
ONE = Fraction(1)


def zeros(shape):
    out = np.empty(shape, dtype=object)
    out.fill(ZERO)
    return out


def identity(n):
    out = zeros((n, n))
    for i in range(n):
        out[i, i] = ONE
    return out


def inverse(M):
    """
    Inverse of a square exact matrix by Gauss-Jordan elimination.

    Raises LinAlgError if M is singular.
    """
    n = M.shape[0]
    if M.shape != (n, n):
        raise ValueError("Matrix must be square.")
    aug = np.concatenate((exact_array(M), identity(n)), axis=1)
    for col in range(n):
        pivot = None
        for row in range(col, n):
            if aug[row, col] != 0:
                pivot = row
                break
        if pivot is None:
            raise LinAlgError("Singular matrix")
        if pivot != col:
            aug[[col, pivot], :] = aug[[pivot, col], :]
        aug[col, :] = aug[col, :] / aug[col, col]
        for row in range(n):
            if row != col and aug[row, col] != 0:
                aug[row, :] = aug[row, :] - aug[row, col]*aug[col, :]
    return aug[:, n:]


def insert_update(Minv, u, v, d, pos):
    """
    Inverse of the matrix M grown by one row and column, given Minv = M^-1.

    The new column u (without its diagonal entry d) and the new row v are
    inserted at index pos. With z = Minv u, w = v^T Minv and the Schur
    complement sigma = d - v^T Minv u the bordered inverse is

        .. math:
            \\begin{bmatrix} M^{-1} + z w / \\sigma & -z / \\sigma \\\\
            -w / \\sigma & 1 / \\sigma \\end{bmatrix}

    Raises LinAlgError if sigma is zero.
    """
    s = Minv.shape[0]
    z = Minv.dot(u)
    w = v.dot(Minv)
    sigma = to_exact(d - v.dot(z))
    if sigma == 0:
        raise LinAlgError("Singular matrix")
    out = zeros((s + 1, s + 1))
    out[:s, :s] = Minv + np.outer(z, w)/sigma
    out[:s, s] = -z/sigma
    out[s, :s] = -w/sigma
    out[s, s] = ONE/sigma
    order = list(range(pos)) + [s] + list(range(pos, s))
    return out[np.ix_(order, order)]


def remove_update(Minv, pos):
    """
    Inverse of M with row and column pos removed, given Minv = M^-1.

    Raises LinAlgError if the smaller matrix is singular, which is the case
    exactly when Minv[pos, pos] is zero.
    """
    pivot = Minv[pos, pos]
    if pivot == 0:
        raise LinAlgError("Singular matrix")
    keep = [i for i in range(Minv.shape[0]) if i != pos]
    return Minv[np.ix_(keep, keep)] - np.outer(Minv[keep, pos], Minv[pos, keep])/pivot


def pivot_update(Binv, alpha, r):
    """
    Update the basis inverse in place after the column at position r is
    replaced by a column whose representation in the current basis is alpha.

    Elementary row operations: the pivot row is divided by alpha[r] and
    eliminated from every other row.
    """
    k = alpha[r]
    if k == 0:
        raise LinAlgError("Zero pivot element")
    Binv[r, :] = Binv[r, :] / k
    for i in range(Binv.shape[0]):
        if i != r and alpha[i] != 0:
            Binv[i, :] = Binv[i, :] - alpha[i]*Binv[r, :]
    return Binv
