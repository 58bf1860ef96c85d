# gpbcm/core/active_set.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Active set selection for projected-process experts.

The total active set budget bounds the cost of one prediction. At most
isqrt(active_set_size) predicting experts are formed, by merging
neighbouring experts of the committee into groups, and the budget is
split evenly across them. The total number of active points never
exceeds the budget, whatever the number of experts.

A policy picks, inside one group, the m points on which its projected
process is built. Every policy is deterministic for a given seed and is
applied once, before any prediction.

Policies
--------
random
    Uniform subset of the group's points, without replacement.
maximin
    Greedy farthest-point subset in the input space scaled by the
    selected length scales. Fewer than m points are returned when the
    group has fewer than m distinct points.
kmeans
    k-means++ centres of the scaled inputs (inducing points that need
    not coincide with training points).
"""
import math
from scipy.cluster.vq import kmeans2
import gpbcm.num as gnp


def predictor_groups(n_experts, active_set_size):
    """Split expert indices into contiguous groups, one per predicting expert.

    Returns min(n_experts, max(1, isqrt(active_set_size))) groups of
    consecutive indices, with sizes differing by at most one.
    """
    if active_set_size < 1:
        raise ValueError("active_set_size must be >= 1")
    n_groups = min(n_experts, max(1, math.isqrt(int(active_set_size))))
    return [g.tolist() for g in gnp.array_split(gnp.arange(n_experts), n_groups)]


def active_set_sizes(expert_sizes, active_set_size):
    """Split a total active set budget evenly across predicting experts.

    Each one gets min(n_e, active_set_size // M) points, so the sizes sum
    to at most active_set_size. There cannot be more predicting experts
    than active points (see `predictor_groups`).
    """
    if active_set_size < 1:
        raise ValueError("active_set_size must be >= 1")
    if len(expert_sizes) > active_set_size:
        raise ValueError(
            f"{len(expert_sizes)} predicting experts exceed the active set "
            f"budget of {active_set_size} points"
        )
    per_expert = int(active_set_size) // len(expert_sizes)
    return [min(n_e, per_expert) for n_e in expert_sizes]


def random_active_set(xi, m, loginvrho, seed):
    rng = gnp.default_rng(seed)
    idx = gnp.sort(rng.choice(xi.shape[0], size=m, replace=False))
    return xi[idx]


def maximin_active_set(xi, m, loginvrho, seed):
    xs = gnp.exp(loginvrho) * xi
    # start from the point closest to the centroid
    centroid = gnp.mean(xs, axis=0, keepdims=True)
    first = int(gnp.argmin(gnp.cdist(xs, centroid)[:, 0]))
    selected = [first]
    mindist = gnp.cdist(xs, xs[first : first + 1])[:, 0]
    for _ in range(m - 1):
        nxt = int(gnp.argmax(mindist))
        if mindist[nxt] <= 0.0:
            # every remaining point duplicates a selected one
            break
        selected.append(nxt)
        mindist = gnp.minimum(mindist, gnp.cdist(xs, xs[nxt : nxt + 1])[:, 0])
    return xi[gnp.sort(gnp.asarray(selected))]


def kmeans_active_set(xi, m, loginvrho, seed):
    invrho = gnp.exp(loginvrho)
    centres, _ = kmeans2(invrho * xi, m, minit="++", seed=gnp.default_rng(seed))
    return centres / invrho


ACTIVE_SET_POLICIES = {
    "random": random_active_set,
    "maximin": maximin_active_set,
    "kmeans": kmeans_active_set,
}


def select_active_set(policy, xi, m, covparam, seed):
    """Return the active points (at most m rows) of one predicting expert.

    Parameters
    ----------
    policy : str or callable
        Name in ``ACTIVE_SET_POLICIES`` or a callable with the same
        signature ``f(xi, m, loginvrho, seed) -> (m, d) array``.
    xi : gnp.array, shape (n, d)
        Points of the predicting expert.
    m : int
        Number of active points; all points are used when m >= n.
    covparam : gnp.array
        Selected covariance parameters; the length scales define the
        metric used by 'maximin' and 'kmeans'.
    seed : int
        Seed of the policy's random generator.
    """
    if callable(policy):
        fn = policy
    else:
        try:
            fn = ACTIVE_SET_POLICIES[policy]
        except KeyError:
            raise ValueError(
                f"Unknown active set policy '{policy}'. "
                f"Supported policies are {sorted(ACTIVE_SET_POLICIES)}."
            ) from None
    if m >= xi.shape[0]:
        return gnp.copy(xi)
    loginvrho = covparam[1:-1]
    return gnp.asarray(fn(xi, m, loginvrho, seed))
