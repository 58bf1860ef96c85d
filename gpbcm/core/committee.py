# gpbcm/core/committee.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Committee of experts: the combined selection criterion.

The criterion of the committee is the sum of the local negative
log-likelihoods of its experts, and its gradient the sum of the local
gradients. Each evaluation is a map over experts followed by a sum.
Every expert of one map receives the same read-only copy of the
covariance parameters, and the map returns only once every expert is
done, so no expert ever runs with a stale proposal.
"""
from concurrent.futures import ThreadPoolExecutor
import gpbcm.num as gnp
from gpbcm.config import get_config
from gpbcm.errors import DimensionMismatchError


class Committee:
    """Sum of expert criteria, evaluated sequentially or in a thread pool.

    Parameters
    ----------
    experts : list of gpbcm.core.Expert
        Experts sharing the same kernel and input dimension.
    n_jobs : int, optional
        Number of worker threads (default: ``config.n_jobs``). With
        ``n_jobs == 1`` experts are evaluated in the calling thread.

    Examples
    --------
    >>> with Committee(experts, n_jobs=4) as committee:
    ...     nll, grad = committee.negative_log_likelihood_and_gradient(covparam)
    """

    def __init__(self, experts, n_jobs=None):
        if len(experts) == 0:
            raise ValueError("A committee needs at least one expert")
        dims = {e.dim for e in experts}
        if len(dims) != 1:
            raise DimensionMismatchError("experts must share the input dimension")
        self.experts = list(experts)
        self.dim = dims.pop()
        self.kernel = self.experts[0].kernel
        self.n_jobs = get_config().n_jobs if n_jobs is None else int(n_jobs)
        if self.n_jobs < 1:
            raise ValueError("n_jobs must be >= 1")
        self._executor = None

    def __repr__(self):
        return (
            f"<gpbcm.core.Committee experts={len(self.experts)} "
            f"n={self.n} n_jobs={self.n_jobs}>"
        )

    def __len__(self):
        return len(self.experts)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def n(self):
        return sum(e.n for e in self.experts)

    def close(self):
        """Shut the thread pool down (it is recreated on demand)."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def map(self, fn, items=None):
        """Apply fn to every expert (or to every item) and return the results.

        Results are in expert order. With ``n_jobs > 1`` the calls run in
        the committee's thread pool; an exception raised by any call is
        re-raised here.
        """
        items = self.experts if items is None else list(items)
        if self.n_jobs == 1 or len(items) <= 1:
            return [fn(item) for item in items]
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=min(self.n_jobs, len(self.experts)),
                thread_name_prefix="gpbcm-expert",
            )
        # list() waits for every call: barrier before the reduction
        return list(self._executor.map(fn, items))

    def broadcast(self, covparam):
        """Validated read-only copy of covparam handed to every expert."""
        covparam = self.kernel.check_covparam(covparam, self.dim)
        return gnp.asreadonly(covparam)

    def negative_log_likelihood_and_gradient(self, covparam):
        """Sum of the experts' negative log-likelihoods and gradients.

        Raises
        ------
        NumericalError
            If the covariance matrix of any expert is not positive definite.
        """
        theta = self.broadcast(covparam)
        results = self.map(lambda e: e.negative_log_likelihood_and_gradient(theta))
        nll = 0.0
        gradient = gnp.zeros(theta.shape)
        for nll_e, gradient_e in results:
            nll += nll_e
            gradient += gradient_e
        return nll, gradient

    def negative_log_likelihood(self, covparam):
        theta = self.broadcast(covparam)
        return sum(self.map(lambda e: e.negative_log_likelihood(theta)))
