# gpbcm/core/linalg.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Linear-algebra utilities shared across gpbcm.core modules.

Everything above this file (likelihood, projected-process experts)
obtains inverses and log-determinants of covariance matrices through
`logdet_and_inverse`, which works from a Cholesky factor and never
calls a general matrix inverse.
"""
import gpbcm.num as gnp
from gpbcm.errors import NumericalError


def cholesky(K):
    """Lower Cholesky factor of a symmetric positive-definite matrix.

    Raises
    ------
    NumericalError
        If K has non-finite entries or a non-positive pivot is met.
    """
    if not gnp.all(gnp.isfinite(K)):
        raise NumericalError("matrix has non-finite entries")
    try:
        C = gnp.cholesky(K)
    except gnp.numpy.linalg.LinAlgError as exc:
        raise NumericalError(f"matrix is not positive definite ({exc})") from exc
    if not gnp.all(gnp.diag(C) > 0.0):
        raise NumericalError("matrix is not positive definite (zero pivot)")
    return C


def logdet_and_inverse(K):
    """Return (log det K, K^{-1}) from a Cholesky factorization.

    Parameters
    ----------
    K : array_like, shape (n, n)
        Symmetric positive-definite matrix.

    Returns
    -------
    logdet : float
        2 * sum(log(diag(C))) where K = C Cᵀ.
    Kinv : array_like, shape (n, n)
        K^{-1} = C^{-T} C^{-1}, computed with two triangular solves.

    Raises
    ------
    NumericalError
        If K is not numerically positive definite.
    """
    K = gnp.asarray(K)
    if K.ndim != 2 or K.shape[0] != K.shape[1]:
        raise ValueError("K must be a square matrix")
    C = cholesky(K)
    logdet = 2.0 * gnp.sum(gnp.log(gnp.diag(C)))
    n = C.shape[0]
    # T = C^{-1}, then K^{-1} = C^{-T} T
    T = gnp.solve_triangular(C, gnp.eye(n), lower=True)
    Kinv = gnp.solve_triangular(C.T, T, lower=False)
    # symmetrize round-off
    Kinv = 0.5 * (Kinv + Kinv.T)
    return float(logdet), Kinv


def regularize(K, jitter):
    """Return K + jitter * I."""
    return K + jitter * gnp.eye(K.shape[0])
