# gpbcm/kernel/stationary.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Stationary anisotropic covariance functions with a white-noise term.

Parameter vector (length d + 2):

    covparam = [log(sigma2), log(1/rho_1), ..., log(1/rho_d), log(noise2)]

A kernel object holds no hyperparameter state: every method receives
`covparam` explicitly, so the same kernel can be shared by all experts
of a committee and evaluated from several threads.
"""
import gpbcm.num as gnp
from gpbcm.errors import DimensionMismatchError


class StationaryKernel:
    """Base class. Subclasses define the radial profile k(h) and k'(h)/h.

    Covariances follow the calling convention

        K = kernel.covariance(x, y, covparam, pairwise)

    where `y is None` (or `y is x`) selects the covariance of noisy
    observations at x, and a distinct `y` the noise-free
    cross-covariance. With `pairwise=True` a vector of variances
    k(x_i, y_i) is returned instead of a matrix.
    """

    name = "stationary"

    def __init__(self, default_noise_variance=1e-2):
        self.default_noise_variance = default_noise_variance

    def __repr__(self):
        return f"<{self.__class__.__name__}>"

    def __eq__(self, other):
        return (
            type(self) is type(other)
            and self.default_noise_variance == other.default_noise_variance
        )

    def __hash__(self):
        return hash((type(self), self.default_noise_variance))

    # ------------------------------------------------------------------
    # Radial profile, overridden by subclasses
    # ------------------------------------------------------------------
    def profile(self, h):
        raise NotImplementedError

    def profile_dh_over_h(self, h):
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------
    @staticmethod
    def param_length(d: int) -> int:
        return d + 2

    def default_covparam(self, d: int):
        """Unit variance, unit length scales, default noise variance."""
        covparam = gnp.zeros((self.param_length(d),))
        covparam[-1] = gnp.log(self.default_noise_variance)
        return covparam

    def check_covparam(self, covparam, d: int):
        """Return covparam as a 1D array, or raise DimensionMismatchError."""
        covparam = gnp.asarray(covparam)
        if covparam.ndim != 1 or covparam.shape[0] != self.param_length(d):
            raise DimensionMismatchError(
                f"covparam should have length {self.param_length(d)} for "
                f"{d}-dimensional inputs, got shape {covparam.shape}"
            )
        return covparam

    @staticmethod
    def split_covparam(covparam):
        """Return (sigma2, loginvrho, noise2)."""
        return gnp.exp(covparam[0]), covparam[1:-1], gnp.exp(covparam[-1])

    def signal_variance(self, covparam):
        return gnp.exp(covparam[0])

    def noise_variance(self, covparam):
        return gnp.exp(covparam[-1])

    def length_scales(self, covparam):
        return gnp.exp(-covparam[1:-1])

    # ------------------------------------------------------------------
    # Covariances
    # ------------------------------------------------------------------
    def covariance(self, x, y, covparam, pairwise=False):
        """Covariance matrix (or vector of variances if pairwise)."""
        sigma2, loginvrho, noise2 = self.split_covparam(covparam)
        if y is x or y is None:
            if pairwise:
                # latent prior variance
                return sigma2 * gnp.ones((x.shape[0],))
            nugget = 10.0 * sigma2 * gnp.eps
            H = gnp.scaled_distance(loginvrho, x, x)
            return sigma2 * self.profile(H) + (noise2 + nugget) * gnp.eye(x.shape[0])
        if pairwise:
            invrho = gnp.exp(loginvrho)
            h = gnp.sqrt(gnp.sum((invrho * (x - y)) ** 2, axis=1))
            return sigma2 * self.profile(h)
        H = gnp.scaled_distance(loginvrho, x, y)
        return sigma2 * self.profile(H)

    def latent_covariance(self, x, covparam):
        """Noise-free covariance matrix sigma2 * k(x_i, x_j) at x."""
        sigma2, loginvrho, _ = self.split_covparam(covparam)
        H = gnp.scaled_distance(loginvrho, x, x)
        return sigma2 * self.profile(H)

    def covariance_and_gradient(self, x, covparam):
        """Covariance of noisy observations at x and its parameter derivatives.

        Parameters
        ----------
        x : gnp.array, shape (n, d)
        covparam : gnp.array, shape (d + 2,)

        Returns
        -------
        K : gnp.array, shape (n, n)
        dK : gnp.array, shape (d + 2, n, n)
            dK[i] is the derivative of K with respect to covparam[i].
        """
        sigma2, loginvrho, noise2 = self.split_covparam(covparam)
        n = x.shape[0]
        S = gnp.scaled_sqdiff(loginvrho, x, x)  # (d, n, n)
        H = gnp.sqrt(gnp.sum(S, axis=0))
        Kf = sigma2 * self.profile(H)
        nugget = 10.0 * sigma2 * gnp.eps
        K = Kf + (noise2 + nugget) * gnp.eye(n)

        dK = gnp.empty((self.param_length(x.shape[1]), n, n))
        dK[0] = Kf
        # d h / d log(1/rho_j) = S_j / h
        dK[1:-1] = (sigma2 * self.profile_dh_over_h(H))[None, :, :] * S
        dK[-1] = noise2 * gnp.eye(n)
        return K, dK
