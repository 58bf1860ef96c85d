# gpbcm/core/model.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Distributed Gaussian Process model class.
"""
import gpbcm.num as gnp
from gpbcm.config import get_logger
from gpbcm.dataloader import Dataset
from gpbcm.kernel.init import anisotropic_parameters_initial_guess
from gpbcm.kernel.parameter_selection import select_parameters_with_committee
from gpbcm.kernel.utils import prepare_data
from .committee import Committee
from .expert import partition
from .predictor import AGGREGATIONS, build_predictor

_logger = get_logger()


class Model:
    """Distributed zero-mean GP regression with a committee of experts.

    The training set is split into experts, the covariance parameters
    shared by all experts are selected by maximizing the sum of the local
    log marginal likelihoods, and a projected-process predictor is built
    on every expert and combined with a Bayesian Committee Machine.

    Attributes
    ----------
    kernel : gpbcm.kernel.StationaryKernel
        Covariance function, shared by every expert.
    n_experts : int or None
        Number of experts. When None, experts of `expert_size` points are
        cut out of every shard of the dataset.
    expert_size : int
        Target number of points per expert (default 100).
    active_set_size : int
        Total number of active points across all experts (default 100).
        Experts are merged into at most isqrt(active_set_size) predicting
        experts, so the cost of a prediction does not grow with the data.
    active_set : str or callable
        Active set policy: 'random', 'maximin' or 'kmeans'.
    aggregation : str
        Combination rule: 'bcm' or 'rbcm'.
    n_jobs : int or None
        Worker threads for fitting (default ``config.n_jobs``).
    seed : int or None
        Base seed of the active set policy (default ``config.seed``).
    covparam : gnp.array or None
        Selected covariance parameters, set by `fit`.
    experts : list of gpbcm.core.Expert or None
        Experts of the last fit.
    predictor : gpbcm.core.ProjectedProcessPredictor or None
        Fitted predictor.
    info : scipy.optimize.OptimizeResult or None
        Diagnostics of the last parameter selection.

    Examples
    --------
    >>> import gpbcm as gp
    >>> import gpbcm.num as gnp
    >>> xi = gnp.linspace(0.0, 10.0, 500).reshape(-1, 1)
    >>> zi = gnp.sin(xi[:, 0]) + 0.1 * gnp.randn(500)
    >>> model = gp.Model(gp.kernel.SquaredExponentialKernel(), n_experts=5)
    >>> predictor = model.fit(xi, zi)
    >>> zt_mean, zt_var = model.predict(gnp.array([[2.5], [7.0]]))
    """

    def __init__(
        self,
        kernel,
        n_experts=None,
        expert_size=100,
        active_set_size=100,
        active_set="random",
        aggregation="bcm",
        n_jobs=None,
        seed=None,
    ):
        if aggregation not in AGGREGATIONS:
            raise ValueError(
                f"Invalid aggregation {aggregation}. "
                f"Supported rules are {sorted(AGGREGATIONS)}."
            )
        self.kernel = kernel
        self.n_experts = n_experts
        self.expert_size = expert_size
        self.active_set_size = active_set_size
        self.active_set = active_set
        self.aggregation = aggregation
        self.n_jobs = n_jobs
        self.seed = seed

        self.covparam = None
        self.experts = None
        self.predictor = None
        self.info = None

    def __repr__(self):
        output = str("<gpbcm.core.Model object> " + hex(id(self)))
        return output

    def __str__(self):
        partition_desc = (
            f"{self.n_experts} experts"
            if self.n_experts is not None
            else f"experts of {self.expert_size} points"
        )
        return (
            f"Distributed GP Model:\n"
            f"  Kernel: {self.kernel.name}\n"
            f"  Partition: {partition_desc}\n"
            f"  Active Set: {self.active_set_size} points ({self.active_set})\n"
            f"  Aggregation: {self.aggregation}\n"
            f"  Covariance Parameters: {self.covparam}"
        )

    def fit(
        self,
        xi=None,
        zi=None,
        dataset=None,
        covparam0=None,
        maxiter=None,
        method="L-BFGS-B",
        bounds=None,
        bounds_auto=True,
        bounds_delta=10.0,
        verbosity=0,
    ):
        """Select the covariance parameters and build the predictor.

        Parameters
        ----------
        xi, zi : array_like, optional
            Training points (n, d) and labels (n,). Exclusive with `dataset`.
        dataset : gpbcm.dataloader.Dataset, optional
            Training data, possibly sharded.
        covparam0 : array_like, optional
            Starting point of the optimizer. Defaults to
            `anisotropic_parameters_initial_guess`.
        maxiter : int, optional
            Iteration budget of the optimizer.
        method : str, optional
            'L-BFGS-B' (default) or 'SLSQP'.
        bounds, bounds_auto, bounds_delta :
            Bounds configuration, see `autoselect_parameters`.
        verbosity : int, optional
            0: silent, 1: INFO messages, 2: solver output as well.

        Returns
        -------
        predictor : gpbcm.core.ProjectedProcessPredictor

        Raises
        ------
        NumericalError
            If the selected parameters give a singular active-set matrix.
        """
        if prepare_data(xi, zi, dataset) == "arrays":
            dataset = Dataset(xi, zi)

        experts = partition(
            dataset,
            self.kernel,
            n_experts=self.n_experts,
            expert_size=None if self.n_experts is not None else self.expert_size,
        )
        if covparam0 is None:
            covparam0 = anisotropic_parameters_initial_guess(
                self.kernel, dataset=dataset
            )

        with Committee(experts, n_jobs=self.n_jobs) as committee:
            covparam, info = select_parameters_with_committee(
                committee,
                covparam0,
                info=True,
                verbosity=verbosity,
                bounds=bounds,
                bounds_auto=bounds_auto,
                bounds_delta=bounds_delta,
                method=method,
                maxiter=maxiter,
            )
            predictor = build_predictor(
                committee,
                covparam,
                active_set_size=self.active_set_size,
                active_set=self.active_set,
                aggregation=self.aggregation,
                seed=self.seed,
            )

        self.covparam = predictor.covparam
        self.experts = experts
        self.predictor = predictor
        self.info = info
        if verbosity >= 1:
            _logger.info(
                "Selected length scales %s, noise variance %.3g",
                gnp.numpy.array2string(self.kernel.length_scales(self.covparam)),
                self.kernel.noise_variance(self.covparam),
            )
        return predictor

    def predict(self, xt, return_variance=True):
        """Posterior mean (and variance) of the latent function at xt.

        Raises
        ------
        RuntimeError
            If the model has not been fitted.
        """
        if self.predictor is None:
            raise RuntimeError("The model must be fitted before calling predict")
        return self.predictor.predict(xt, return_variance=return_variance)

    def negative_log_likelihood(self, covparam):
        """Committee negative log-likelihood of the fitted experts at covparam."""
        if self.experts is None:
            raise RuntimeError("The model must be fitted first")
        with Committee(self.experts, n_jobs=self.n_jobs) as committee:
            return committee.negative_log_likelihood(covparam)
