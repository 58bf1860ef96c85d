# gpbcm/kernel/squared_exponential.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
import gpbcm.num as gnp
from .stationary import StationaryKernel


def squared_exponential_kernel(h):
    """Squared exponential (Gaussian) kernel.

    .. math::
        k(h) = \\exp(-h^2 / 2)

    Parameters
    ----------
    h : gnp.array
        Scaled distances between points.

    Returns
    -------
    gnp.array
        Kernel values.
    """
    return gnp.exp(-0.5 * h * h)


def squared_exponential_kernel_dh_over_h(h):
    """k'(h) / h for the squared exponential kernel, i.e. -exp(-h^2/2)."""
    return -gnp.exp(-0.5 * h * h)


class SquaredExponentialKernel(StationaryKernel):
    """Anisotropic squared exponential covariance plus white noise."""

    name = "squared_exponential"

    def profile(self, h):
        return squared_exponential_kernel(h)

    def profile_dh_over_h(self, h):
        return squared_exponential_kernel_dh_over_h(h)
