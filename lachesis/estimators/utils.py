""" Utility definitions for the linear algebra used by estimators """
from typing import Optional, Sequence, Union

import numpy as np


def ensure_positive_semi_definite(Sig: np.ndarray) -> np.ndarray:
    """
    Function to ensure the matrix is positive semi-definite. If the matrix is positive semi-definite, it simply returns
    the original matrix. Otherwise, it returns the "closest" positive semidefinite matrix to the original one provided.

    Args:
        Sig: matrix to check for positive semi-definiteness

    Returns:
        "Closest" (most similar) positive semi-definite matrix
    """
    if np.allclose(Sig, Sig.T):  # checking if it is symmetric
        if np.all(np.linalg.eigvalsh(Sig) >= -1e-12 * max(np.abs(Sig).max(), 1.)):
            return Sig.copy()
    return enforce_positive_semi_definiteness(Sig)


def enforce_positive_semi_definiteness(Sig: np.ndarray) -> np.ndarray:
    """
    Finds nearest positive semi-definite matrix to the one provided.

    Ref.: Nicholas J. Higham, “Computing a Nearest Symmetric Positive
    Semidefinite Matrix,” Linear Algebra and its Applications, 103,
    103–118, 1988

    Args:
        Sig: matrix that should be positive semi-definite but isn't
    """
    # Perform singular value decomposition
    _, S_diagonal, V_complex_conjugate = np.linalg.svd(Sig)
    H_matrix = np.matmul(V_complex_conjugate.T, np.matmul(np.diag(S_diagonal), V_complex_conjugate))
    return (Sig + Sig.T + H_matrix + H_matrix.T) / 4


def matrix_square_root(Sig: np.ndarray) -> np.ndarray:
    """
    Compute a lower-triangular square root of a covariance matrix, :math:`L L^T = \\Sigma`

    Uses the Cholesky decomposition when the matrix is positive definite and falls back
    to an eigendecomposition for singular matrices (e.g., dimensions known exactly).

    Args:
        Sig: positive semi-definite matrix
    Returns:
        Matrix ``L`` such that ``L @ L.T`` equals ``Sig``
    """
    try:
        return np.linalg.cholesky(Sig)
    except np.linalg.LinAlgError:
        eigvals, eigvecs = np.linalg.eigh(Sig)
        return eigvecs * np.sqrt(np.clip(eigvals, 0, None))


def calculate_gain_matrix(cov_xy: np.ndarray, cov_y: np.ndarray) -> np.ndarray:
    """
    Function to calculate Kálmán gain, defined as
    L = cov_xy * (cov_y^(-1))

    Args:
        cov_xy: covariance between x and y (hidden states and outputs, respectively)
        cov_y: variance of y (output)
    """
    return np.matmul(cov_xy, np.linalg.inv(cov_y))


def as_covariance(value: Optional[Union[float, Sequence[float], np.ndarray]], dim: int, default: float) -> np.ndarray:
    """
    Build a covariance matrix from a variance, a list of variances, or a full matrix

    Args:
        value: A single variance used for all dimensions, one variance per dimension, or a full matrix.
            ``None`` to use the default variance for all dimensions
        dim: Number of dimensions
        default: Variance used if no value is provided
    Returns:
        A ``(dim, dim)`` covariance matrix
    """
    if value is None:
        return default * np.eye(dim)
    value = np.array(value, dtype=float)
    if value.ndim == 2:
        if value.shape != (dim, dim):
            raise ValueError(f'Covariance matrix must have shape ({dim}, {dim}), found {value.shape}')
        return value
    value = np.atleast_1d(value)
    if len(value) == 1:
        return value[0] * np.eye(dim)
    if len(value) != dim:
        raise ValueError(f'Expected 1 or {dim} variances, found {len(value)}')
    return np.diag(value)
