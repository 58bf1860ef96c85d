# gpbcm/kernel/init.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Initialization heuristics for covariance parameters.
"""
import gpbcm.num as gnp
from .utils import prepare_data


def anisotropic_parameters_initial_guess(
    kernel, xi=None, zi=None, dataset=None, noise_fraction=1e-2
):
    """Anisotropic initialization from the data range and label variance.

    Length scales are proportional to the extent of the data in each
    direction, the signal variance is the empirical label variance and
    the noise variance is `noise_fraction` times that variance.
    """
    source = prepare_data(xi, zi, dataset)
    if source == "arrays":
        xi_ = gnp.asarray(xi)
        zi_ = gnp.asarray(zi).reshape(-1)
        d = xi_.shape[1]
        delta = gnp.max(xi_, axis=0) - gnp.min(xi_, axis=0)
        var_z = gnp.var(zi_)
    else:
        d = dataset.dim
        delta = dataset.x_max() - dataset.x_min()
        var_z = dataset.z_var()
    delta = gnp.where(delta > 0.0, delta, 1.0)
    var_z = var_z if var_z > 0.0 else 1.0
    rho = gnp.exp(gnp.gammaln(d / 2 + 1) / d) / (gnp.pi**0.5) * delta
    covparam = gnp.concatenate(
        (
            gnp.array([gnp.log(var_z)]),
            -gnp.log(rho),
            gnp.array([gnp.log(noise_fraction * var_z)]),
        )
    )
    kernel.check_covparam(covparam, d)
    return covparam
