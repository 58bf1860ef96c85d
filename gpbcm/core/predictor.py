# gpbcm/core/predictor.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Projected-process experts combined by a Bayesian Committee Machine.

Each expert e owns an active set X_m of m points and summarizes its
whole shard (X_n, y) with the projected-process approximation
(Rasmussen & Williams, 2006, Sec. 8.3.4):

    mu_e(x)   = k_m(x)' (s2 K_mm + K_mn K_nm)^{-1} K_mn y
    var_e(x)  = k(x,x) - k_m(x)' K_mm^{-1} k_m(x)
                + s2 k_m(x)' (s2 K_mm + K_mn K_nm)^{-1} k_m(x)

where s2 is the noise variance. With K_mm = L L' and V = L^{-1} K_mn,
s2 K_mm + K_mn K_nm = L Q L' with Q = s2 I + V V', and for
u = L^{-1} k_m(x)

    mu_e(x)  = u' Q^{-1} V y
    var_e(x) = k(x,x) - u' (I - s2 Q^{-1}) u

Q is well conditioned (its eigenvalues are at least s2), so only L,
Q^{-1} V y and I - s2 Q^{-1} are stored. A query costs one triangular
solve and one quadratic form per expert, O(m^2), whatever the shard
size. When the active set is the whole shard these are the exact local
GP equations.

Neighbouring experts of the committee are merged into at most
isqrt(active_set_size) predicting experts that share the active set
budget (see `gpbcm.core.active_set`), so a query costs at most
O(active_set_size^2) whatever the number of experts.

Local predictions are merged with the BCM rule (Tresp, 2000)

    tau(x) = sum_e var_e(x)^{-1} - (M - 1) k(x,x)^{-1}
    mu(x)  = tau(x)^{-1} sum_e var_e(x)^{-1} mu_e(x)

or with the robust BCM of Deisenroth & Ng (2015).
"""
from typing import NamedTuple
import gpbcm.num as gnp
from gpbcm.config import get_config, get_logger
from .linalg import cholesky, logdet_and_inverse, regularize
from .active_set import active_set_sizes, predictor_groups, select_active_set
from . import utils

_logger = get_logger()


# --------------------------------------------------------------------------
# Aggregation rules
# --------------------------------------------------------------------------
def bcm_combine(means, variances, prior_variance):
    """Bayesian Committee Machine combination.

    Parameters
    ----------
    means, variances : gnp.array, shape (M, t)
        Local predictive means and variances of M experts at t points.
    prior_variance : gnp.array, shape (t,)
        Prior variance k(x, x) at the t points.

    Returns
    -------
    mean, variance : gnp.array, shape (t,)
    """
    M = means.shape[0]
    precisions = 1.0 / variances
    tau = gnp.sum(precisions, axis=0) - (M - 1) / prior_variance
    mean = gnp.sum(precisions * means, axis=0) / tau
    return mean, 1.0 / tau


def rbcm_combine(means, variances, prior_variance):
    """Robust BCM: experts weighted by their differential entropy gain

    beta_e = 0.5 * (log k(x,x) - log var_e(x)).
    """
    beta = 0.5 * (gnp.log(prior_variance)[None, :] - gnp.log(variances))
    precisions = beta / variances
    tau = gnp.sum(precisions, axis=0) + (1.0 - gnp.sum(beta, axis=0)) / prior_variance
    mean = gnp.sum(precisions * means, axis=0) / tau
    return mean, 1.0 / tau


AGGREGATIONS = {
    "bcm": bcm_combine,
    "rbcm": rbcm_combine,
}


# --------------------------------------------------------------------------
# Projected-process experts
# --------------------------------------------------------------------------
class ProjectedProcessExpert(NamedTuple):
    """Precomputed projected process of one expert."""

    active: gnp.ndarray  # (m, d) active points
    chol: gnp.ndarray  # (m, m) lower Cholesky factor of K_mm
    mean_weights: gnp.ndarray  # (m,) Q^{-1} V y
    var_matrix: gnp.ndarray  # (m, m) I - s2 Q^{-1}


def projected_process_group(kernel, covparam, blocks, active, jitter):
    """Build one projected process over several blocks of data.

    V V' and V y are sums over the data points, so they are accumulated
    block by block and only one (m, n_b) matrix is held at a time.

    Parameters
    ----------
    kernel : gpbcm.kernel.StationaryKernel
    covparam : gnp.array
        Selected covariance parameters.
    blocks : iterable of (xi, zi)
        Points and labels, typically the experts of a group.
    active : gnp.array, shape (m, d)
        Active points.
    jitter : float
        Diagonal jitter added to K_mm, relative to the signal variance.

    Raises
    ------
    NumericalError
        If K_mm or Q is not numerically positive definite.
    """
    m = active.shape[0]
    noise2 = kernel.noise_variance(covparam)
    Kmm = kernel.latent_covariance(active, covparam)
    C = cholesky(regularize(Kmm, jitter * kernel.signal_variance(covparam)))
    Q = noise2 * gnp.eye(m)
    Vy = gnp.zeros((m,))
    for xi, zi in blocks:
        V = gnp.solve_triangular(C, kernel.covariance(active, xi, covparam), lower=True)
        Q += gnp.matmul(V, V.T)
        Vy += gnp.matmul(V, zi)
    _, Qinv = logdet_and_inverse(Q)
    mean_weights = gnp.matmul(Qinv, Vy)
    var_matrix = gnp.eye(m) - noise2 * Qinv
    return ProjectedProcessExpert(active, C, mean_weights, var_matrix)


def projected_process_expert(kernel, covparam, xi, zi, active, jitter):
    """Build the projected process of one expert (see `projected_process_group`)."""
    return projected_process_group(kernel, covparam, [(xi, zi)], active, jitter)


def local_predictions(kernel, covparam, pp_expert, xt, prior_variance):
    """Local projected-process mean and variance of one expert at xt."""
    Kmt = kernel.covariance(pp_expert.active, xt, covparam)
    U = gnp.solve_triangular(pp_expert.chol, Kmt, lower=True)
    mean = gnp.matmul(U.T, pp_expert.mean_weights)
    reduction = gnp.einsum("it,ij,jt->t", U, pp_expert.var_matrix, U)
    # 0 < var_e(x) <= k(x,x)
    variance = gnp.clip(
        prior_variance - reduction, 10.0 * gnp.eps * prior_variance, prior_variance
    )
    return mean, variance


# --------------------------------------------------------------------------
# Predictor
# --------------------------------------------------------------------------
class ProjectedProcessPredictor:
    """Fitted committee predictor.

    Immutable once constructed: attributes cannot be reassigned and every
    stored array is read-only, so concurrent `predict` calls need no
    coordination. Instances can be pickled; the unpickled object predicts
    identically.

    Attributes
    ----------
    kernel : gpbcm.kernel.StationaryKernel
    covparam : gnp.array
        Selected covariance parameters shared by all experts.
    experts : tuple of ProjectedProcessExpert
    aggregation : str
        'bcm' or 'rbcm'.
    dim : int
        Input dimension.
    """

    def __init__(self, kernel, covparam, experts, aggregation="bcm"):
        if aggregation not in AGGREGATIONS:
            raise ValueError(
                f"Invalid aggregation {aggregation}. "
                f"Supported rules are {sorted(AGGREGATIONS)}."
            )
        if len(experts) == 0:
            raise ValueError("A predictor needs at least one expert")
        dim = experts[0].active.shape[1]
        covparam = kernel.check_covparam(covparam, dim)
        object.__setattr__(self, "kernel", kernel)
        object.__setattr__(self, "covparam", gnp.asreadonly(covparam))
        experts = tuple(
            ProjectedProcessExpert(*(gnp.asreadonly(a) for a in e)) for e in experts
        )
        object.__setattr__(self, "experts", experts)
        object.__setattr__(self, "aggregation", aggregation)
        object.__setattr__(self, "dim", dim)

    def __setattr__(self, name, value):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def __delattr__(self, name):
        raise AttributeError(f"{self.__class__.__name__} is immutable")

    def __reduce__(self):
        return (
            self.__class__,
            (self.kernel, self.covparam, self.experts, self.aggregation),
        )

    def __repr__(self):
        return (
            f"<gpbcm.core.ProjectedProcessPredictor experts={self.n_experts} "
            f"active={sum(self.active_set_sizes)} aggregation={self.aggregation}>"
        )

    @property
    def n_experts(self):
        return len(self.experts)

    @property
    def active_set_sizes(self):
        return [e.active.shape[0] for e in self.experts]

    def predict_experts(self, xt):
        """Local predictions of every expert.

        Returns
        -------
        means, variances : gnp.array, shape (M, t)
        prior_variance : gnp.array, shape (t,)
        """
        xt = utils.check_xt(xt, self.dim)
        prior_variance = self.kernel.covariance(xt, None, self.covparam, pairwise=True)
        means = gnp.empty((self.n_experts, xt.shape[0]))
        variances = gnp.empty((self.n_experts, xt.shape[0]))
        for k, pp_expert in enumerate(self.experts):
            means[k], variances[k] = local_predictions(
                self.kernel, self.covparam, pp_expert, xt, prior_variance
            )
        return means, variances, prior_variance

    def predict(self, xt, return_variance=True):
        """Committee posterior mean (and variance) of the latent function.

        Parameters
        ----------
        xt : array_like, shape (t, d)
            Query points. For d == 1 a 1D array of points is accepted.
        return_variance : bool, optional
            Whether to return the posterior variance (default True).

        Returns
        -------
        mean : gnp.array, shape (t,)
        variance : gnp.array, shape (t,) or None
        """
        means, variances, prior_variance = self.predict_experts(xt)
        mean, variance = AGGREGATIONS[self.aggregation](means, variances, prior_variance)
        return mean, (variance if return_variance else None)

    def __call__(self, x):
        """Point estimate at a single feature vector."""
        x = gnp.asarray(x).reshape(1, -1)
        mean, _ = self.predict(x, return_variance=False)
        return float(mean[0])


def build_predictor(
    committee,
    covparam,
    active_set_size=100,
    active_set="random",
    aggregation="bcm",
    seed=None,
    jitter=None,
):
    """Build the projected-process predictor of a committee at covparam.

    Parameters
    ----------
    committee : gpbcm.core.Committee
        Experts to summarize. Local projected processes are built in the
        committee's thread pool.
    covparam : array_like
        Selected covariance parameters, handed to every expert.
    active_set_size : int, optional
        Total active set budget. Experts are merged into at most
        isqrt(active_set_size) groups that share it evenly (see
        `predictor_groups` and `active_set_sizes`).
    active_set : str or callable, optional
        Active set policy (see `gpbcm.core.active_set`).
    aggregation : {'bcm', 'rbcm'}, optional
        Combination rule.
    seed : int, optional
        Base seed of the active set policy; group k uses seed + k.
        Defaults to ``config.seed``.
    jitter : float, optional
        Relative diagonal jitter for K_mm. Defaults to ``config.jitter``.

    Returns
    -------
    ProjectedProcessPredictor
    """
    config = get_config()
    seed = config.seed if seed is None else int(seed)
    jitter = config.jitter if jitter is None else float(jitter)
    if aggregation not in AGGREGATIONS:
        raise ValueError(
            f"Invalid aggregation {aggregation}. "
            f"Supported rules are {sorted(AGGREGATIONS)}."
        )

    theta = committee.broadcast(covparam)
    kernel = committee.kernel
    groups = [
        [committee.experts[i] for i in group]
        for group in predictor_groups(len(committee), active_set_size)
    ]
    sizes = active_set_sizes([sum(e.n for e in group) for group in groups], active_set_size)
    jobs = list(zip(range(len(sizes)), groups, sizes))
    # resolve policy names before any work
    select_active_set(active_set, committee.experts[0].xi[:1], 1, theta, seed)

    def build(job):
        k, group, m = job
        xi = gnp.concatenate([e.xi for e in group])
        active = select_active_set(active_set, xi, m, theta, seed + k)
        return projected_process_group(
            kernel, theta, [(e.xi, e.zi) for e in group], active, jitter
        )

    pp_experts = committee.map(build, jobs)
    _logger.info(
        "Built projected-process predictor: %d experts in %d groups, "
        "%d active points, %s",
        len(committee), len(pp_experts),
        sum(e.active.shape[0] for e in pp_experts), aggregation,
    )
    return ProjectedProcessPredictor(kernel, theta, pp_experts, aggregation)
