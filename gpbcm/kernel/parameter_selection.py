# gpbcm/kernel/parameter_selection.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Covariance parameter selection by maximum likelihood over a committee.
"""

import time
import warnings
import numpy as np
from scipy.optimize import minimize
import gpbcm.num as gnp
from gpbcm.config import get_logger
from gpbcm.errors import NumericalError, NonConvergenceWarning

_logger = get_logger()


# ---------------------- criterion + gradient maker --------------------
def make_selection_criterion_with_gradient(committee):
    """
    Build criterion wrappers for value/gradient optimization and diagnostics.

    Parameters
    ----------
    committee : gpbcm.core.Committee
        Experts whose negative log-likelihoods are summed.

    Returns
    -------
    evaluate : callable
        ``evaluate(covparam) -> (value, gradient)``, suited to SciPy
        ``minimize(..., jac=True)``.
    evaluate_no_grad : callable
        ``evaluate_no_grad(covparam) -> value``.

    Notes
    -----
    Both callables raise `NumericalError` when a covariance matrix is not
    positive definite; `autoselect_parameters` turns that into a rejected
    proposal.
    """

    def evaluate(covparam):
        return committee.negative_log_likelihood_and_gradient(covparam)

    def evaluate_no_grad(covparam):
        return committee.negative_log_likelihood(covparam)

    return evaluate, evaluate_no_grad


# ------------------------------ optimizer -----------------------------
def autoselect_parameters(
    p0,
    criterion,
    bounds=None,
    bounds_auto=True,
    bounds_delta=10.0,
    silent=True,
    info=False,
    method="L-BFGS-B",
    method_options=None,
):
    """
    Minimize a scalar selection criterion with SciPy.

    Parameters
    ----------
    p0 : array_like
        Initial parameter vector.
    criterion : callable
        ``criterion(p) -> (value, gradient)``.
    bounds : sequence of tuple, optional
        Bounds passed to SciPy.
    bounds_auto : bool, default=True
        If True and ``bounds`` is None, construct local bounds around ``p0``
        using ``bounds_delta`` and internal safety limits.
    bounds_delta : float, default=10.0
        Half-width used for automatic local bounds.
    silent : bool, default=True
        If False, enable solver output.
    info : bool, default=False
        If True, return the full SciPy result object.
    method : {"L-BFGS-B", "SLSQP"}, default="L-BFGS-B"
        Optimization method.
    method_options : dict, optional
        Additional options passed to SciPy ``minimize`` (e.g. ``maxiter``,
        ``gtol``, ``ftol``).

    Returns
    -------
    p_opt : array_like
        Best parameter vector found.
    info_ret : scipy.optimize.OptimizeResult or None
        Optimization diagnostics if ``info=True``, else None.

    Warns
    -----
    NonConvergenceWarning
        If SciPy stops without reporting success (iteration budget
        exhausted, or line search failure). The best visited point is
        still returned.

    Raises
    ------
    NumericalError
        If the criterion could not be evaluated at any visited point.

    Notes
    -----
    1. Builds SciPy options from method-specific defaults and user
       ``method_options``.
    2. Tracks full optimization history (parameter vectors and criterion values).
    3. If the final SciPy result is worse than the best visited point, replaces
       the returned solution by the best seen one and sets
       ``best_value_returned=False`` in the result object.

    Criterion evaluation exceptions caused by linear-algebra failures are
    mapped to ``+inf`` (with a zero gradient) inside
    ``criterion_with_history``, so that the line search rejects the
    proposal and optimization continues. Other exceptions are re-raised.

    Added fields in returned ``OptimizeResult`` (when ``info=True``):
    ``history_params``, ``history_criterion``, ``initial_params``,
    ``final_params``, ``bounds``, ``converged``, ``n_rejected``,
    ``total_time`` and ``best_value_returned``.
    """
    if method_options is None:
        method_options = {}
    tic = time.time()
    p0 = np.asarray(p0, dtype=float)

    # local tube if needed
    safe_lower, safe_upper = -500, 500
    if bounds is None and bounds_auto:
        bounds = [
            (
                max(param - bounds_delta, safe_lower),
                min(param + bounds_delta, safe_upper),
            )
            for param in p0
        ]

    history_params, history_criterion = [], []
    best_params, best_criterion = None, float("inf")
    n_rejected = 0

    def record(p, J):
        nonlocal best_params, best_criterion
        history_params.append(p.copy())
        history_criterion.append(J)
        if J < best_criterion:
            best_criterion, best_params = J, p.copy()

    def criterion_with_history(p):
        nonlocal n_rejected
        try:
            J, G = criterion(p)
        except Exception as exc:
            if gnp._is_linalg_exception(exc):
                n_rejected += 1
                _logger.debug("Rejected proposal %s: %s", p, exc)
                J, G = np.inf, np.zeros_like(p)
            else:
                raise
        J = float(J)
        record(p, J)
        return J, np.asarray(G, dtype=float)

    options = {"disp": not silent}
    if method == "L-BFGS-B":
        options.update(
            dict(
                maxcor=20,
                ftol=1e-6,
                gtol=1e-5,
                maxfun=15000,
                maxiter=15000,
                maxls=40,
            )
        )
    elif method == "SLSQP":
        options.update(dict(ftol=1e-6, maxiter=15000))
    else:
        raise ValueError("Optimization method not implemented.")
    options.update(method_options)

    r = minimize(
        criterion_with_history,
        p0,
        method=method,
        jac=True,
        bounds=bounds,
        options=options,
    )

    if best_params is None:
        raise NumericalError(
            "selection criterion could not be evaluated at any visited point"
        )

    # ensure returning best seen
    if not r.fun <= best_criterion:
        r.x, r.fun, r.best_value_returned = best_params, best_criterion, False
    else:
        r.best_value_returned = True

    r.converged = bool(r.success)
    if not r.converged:
        msg = (
            f"Parameter selection did not converge after {r.nit} iterations "
            f"({r.message}); using the best parameters found."
        )
        _logger.warning(msg)
        warnings.warn(msg, NonConvergenceWarning, stacklevel=2)

    r.history_params = history_params
    r.history_criterion = history_criterion
    r.initial_params = p0
    r.final_params = r.x
    r.bounds = bounds
    r.n_rejected = n_rejected
    r.total_time = time.time() - tic

    return (r.x, r) if info else (r.x, None)


# -------------------- high-level parameter selection procedure ---------
def select_parameters_with_committee(
    committee,
    covparam0=None,
    info=False,
    verbosity=0,
    *,
    bounds=None,
    bounds_auto=True,
    bounds_delta=10.0,
    method="L-BFGS-B",
    maxiter=None,
    method_options=None,
):
    """
    Select covariance parameters minimizing the committee likelihood.

    Parameters
    ----------
    committee : gpbcm.core.Committee
        Experts whose negative log-likelihoods are summed.
    covparam0 : array_like, optional
        Initial parameters. Defaults to ``kernel.default_covparam(d)``.
    info : bool, default False
        If True, return optimization diagnostics.
    verbosity : int, default 0
        0: silent, 1: progress messages at INFO level, 2: SciPy solver
        output as well.
    bounds, bounds_auto, bounds_delta :
        Bounds configuration, forwarded to ``autoselect_parameters``.
    method : str, default "L-BFGS-B"
        Optimization method ("L-BFGS-B" or "SLSQP").
    maxiter : int, optional
        Iteration budget. Exhausting it emits a `NonConvergenceWarning`.
    method_options : dict, optional
        Extra options passed to SciPy ``minimize``.

    Returns
    -------
    covparam : gnp.array
        Selected covariance parameters.
    info_ret : scipy.optimize.OptimizeResult | None
        Diagnostics if ``info=True``, else None.
    """
    method_options = dict(method_options or {})
    if maxiter is not None:
        method_options["maxiter"] = int(maxiter)

    tic = time.time()
    kernel = committee.kernel
    if covparam0 is None:
        covparam0 = kernel.default_covparam(committee.dim)
    covparam0 = kernel.check_covparam(covparam0, committee.dim)

    crit, crit_no_grad = make_selection_criterion_with_gradient(committee)

    if verbosity >= 1:
        _logger.info(
            "Parameter selection over %d experts (%d points)...",
            len(committee), committee.n,
        )

    covparam_opt, info_ret = autoselect_parameters(
        covparam0,
        crit,
        bounds=bounds,
        bounds_auto=bounds_auto,
        bounds_delta=bounds_delta,
        silent=not (verbosity == 2),
        info=True,
        method=method,
        method_options=method_options,
    )

    if verbosity >= 1:
        _logger.info(
            "done: criterion %.6g after %d iterations (%d rejected proposals, %.2fs)",
            info_ret.fun, info_ret.nit, info_ret.n_rejected, info_ret.total_time,
        )

    covparam_opt = gnp.asarray(covparam_opt)
    if info:
        info_ret["covparam0"] = covparam0
        info_ret["covparam"] = covparam_opt
        info_ret["selection_criterion"] = crit
        info_ret["selection_criterion_nograd"] = crit_no_grad
        info_ret["time"] = time.time() - tic
        return covparam_opt, info_ret
    return covparam_opt, None
