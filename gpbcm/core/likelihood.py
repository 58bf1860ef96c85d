# gpbcm/core/likelihood.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Negative log marginal likelihood of a zero-mean GP and its gradient.

The additive constant n/2 log(2 pi) is omitted: it does not depend on
the covariance parameters and therefore does not affect their
selection.
"""
import gpbcm.num as gnp
from .linalg import logdet_and_inverse
from . import utils


def negative_log_likelihood_and_gradient(kernel, covparam, xi, zi):
    """Negative log-likelihood and its gradient with respect to covparam.

    Parameters
    ----------
    kernel : gpbcm.kernel.StationaryKernel
        Covariance function providing `covariance_and_gradient`.
    covparam : gnp.array, shape (p,)
        Covariance parameters.
    xi : ndarray(n, d)
        Observation points.
    zi : ndarray(n, )
        Observed values.

    Returns
    -------
    nll : float
        0.5 * zi' K^{-1} zi + 0.5 * log det K
    gradient : gnp.array, shape (p,)
        Component i is -0.5 * trace(dK_i (alpha alpha' - K^{-1})) with
        alpha = K^{-1} zi.

    Raises
    ------
    DimensionMismatchError
        If shapes of xi, zi and covparam are inconsistent.
    NumericalError
        If K is not numerically positive definite.
    """
    xi, zi = utils.check_xi_zi(xi, zi)
    covparam = kernel.check_covparam(covparam, xi.shape[1])

    K, dK = kernel.covariance_and_gradient(xi, covparam)
    logdet, Kinv = logdet_and_inverse(K)
    alpha = gnp.matmul(Kinv, zi)
    nll = 0.5 * gnp.einsum("i,i", zi, alpha) + 0.5 * logdet

    W = gnp.outer(alpha, alpha) - Kinv
    # trace(A B) = sum(A * B) for symmetric B
    gradient = -0.5 * gnp.einsum("kij,ij->k", dK, W)
    return float(nll), gradient


def negative_log_likelihood(kernel, covparam, xi, zi):
    """Value-only version of `negative_log_likelihood_and_gradient`."""
    xi, zi = utils.check_xi_zi(xi, zi)
    covparam = kernel.check_covparam(covparam, xi.shape[1])
    K = kernel.covariance(xi, None, covparam)
    logdet, Kinv = logdet_and_inverse(K)
    nll = 0.5 * gnp.einsum("i,ij,j", zi, Kinv, zi) + 0.5 * logdet
    return float(nll)
