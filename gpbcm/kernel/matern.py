# gpbcm/kernel/matern.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
from math import sqrt
import gpbcm.num as gnp
from .stationary import StationaryKernel

_C32 = 2.0 * sqrt(3.0 / 2.0)


def matern32_kernel(h):
    """Matérn 3/2 kernel.

    .. math::
        K(h) = (1 + 2\\sqrt{3/2}\\,h) \\exp(-2\\sqrt{3/2}\\,h)

    Parameters
    ----------
    h : gnp.array, shape (n,)
        Distances between points.

    Returns
    -------
    gnp.array, shape (n,)
        Kernel values.
    """
    t = _C32 * h
    return (1.0 + t) * gnp.exp(-t)


def matern32_kernel_dh_over_h(h):
    """K'(h) / h for the Matérn 3/2 kernel.

    With c = 2 sqrt(3/2), K'(h) = -c^2 h exp(-c h), so the ratio is
    finite at h = 0.
    """
    return -(_C32**2) * gnp.exp(-_C32 * h)


class Matern32Kernel(StationaryKernel):
    """Anisotropic Matérn 3/2 covariance plus white noise."""

    name = "matern32"

    def profile(self, h):
        return matern32_kernel(h)

    def profile_dh_over_h(self, h):
        return matern32_kernel_dh_over_h(h)
