# gpbcm/core/expert.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Experts and the expert partitioner.

An expert is a shard of the training set with its own local GP. Its
points and labels are frozen at construction; covariance parameters are
never stored on the expert and are passed to every evaluation.
"""
from math import ceil
import gpbcm.num as gnp
from gpbcm.config import get_logger
from gpbcm.errors import DimensionMismatchError
from . import likelihood
from . import utils

_logger = get_logger()


class Expert:
    """Local GP model over one shard of the data.

    Attributes
    ----------
    xi : gnp.array, shape (n, d), read-only
        Points owned by the expert.
    zi : gnp.array, shape (n,), read-only
        Labels owned by the expert.
    indices : gnp.array, shape (n,), read-only
        Global row indices of the points in the dataset.
    kernel : gpbcm.kernel.StationaryKernel
        Covariance function (stateless, may be shared).
    """

    def __init__(self, xi, zi, kernel, indices=None):
        xi, zi = utils.check_xi_zi(xi, zi)
        if indices is None:
            indices = gnp.arange(xi.shape[0])
        indices = gnp.asarray(indices)
        if indices.shape != (xi.shape[0],):
            raise DimensionMismatchError("indices must have one entry per point")
        self.xi = gnp.asreadonly(xi)
        self.zi = gnp.asreadonly(zi)
        self.indices = indices.copy()
        self.indices.setflags(write=False)
        self.kernel = kernel

    def __repr__(self):
        return f"<gpbcm.core.Expert n={self.n} d={self.dim}>"

    def __len__(self):
        return self.n

    @property
    def n(self):
        return self.xi.shape[0]

    @property
    def dim(self):
        return self.xi.shape[1]

    def negative_log_likelihood_and_gradient(self, covparam):
        """Local negative log-likelihood and gradient at covparam."""
        return likelihood.negative_log_likelihood_and_gradient(
            self.kernel, covparam, self.xi, self.zi
        )

    def negative_log_likelihood(self, covparam):
        return likelihood.negative_log_likelihood(
            self.kernel, covparam, self.xi, self.zi
        )


def _block_bounds(n, n_blocks):
    """Boundaries of n_blocks contiguous blocks whose sizes differ by at most one."""
    base, r = divmod(n, n_blocks)
    sizes = [base + 1] * r + [base] * (n_blocks - r)
    bounds = [0]
    for s in sizes:
        bounds.append(bounds[-1] + s)
    return bounds


def partition(dataset, kernel, n_experts=None, expert_size=None):
    """Split a dataset into disjoint experts covering every row once.

    Parameters
    ----------
    dataset : gpbcm.dataloader.Dataset
        Training data, possibly sharded.
    kernel : gpbcm.kernel.StationaryKernel
        Covariance function given to every expert.
    n_experts : int, optional
        Number of experts. Rows, in natural order, are cut into
        `n_experts` contiguous blocks of near-equal size, ignoring shard
        boundaries.
    expert_size : int, optional
        Target number of points per expert, used when `n_experts` is not
        given (default 100). Each shard is cut independently into
        ceil(n_shard / expert_size) contiguous blocks of near-equal size.

    Returns
    -------
    experts : list of Expert

    Raises
    ------
    ValueError
        If both `n_experts` and `expert_size` are given, or if either is
        out of range.
    """
    if n_experts is not None and expert_size is not None:
        raise ValueError("Provide either n_experts or expert_size, not both.")

    n = len(dataset)
    experts = []
    if n_experts is not None:
        n_experts = int(n_experts)
        if not 1 <= n_experts <= n:
            raise ValueError(
                f"n_experts must be between 1 and the number of points ({n})"
            )
        x, z = dataset.concatenated()
        bounds = _block_bounds(n, n_experts)
        for start, end in zip(bounds[:-1], bounds[1:]):
            experts.append(
                Expert(x[start:end], z[start:end], kernel, gnp.arange(start, end))
            )
    else:
        expert_size = 100 if expert_size is None else int(expert_size)
        if expert_size < 1:
            raise ValueError("expert_size must be >= 1")
        for offset, xs, zs in dataset.shards():
            n_shard = xs.shape[0]
            if n_shard == 0:
                continue
            bounds = _block_bounds(n_shard, ceil(n_shard / expert_size))
            for start, end in zip(bounds[:-1], bounds[1:]):
                experts.append(
                    Expert(
                        xs[start:end],
                        zs[start:end],
                        kernel,
                        gnp.arange(offset + start, offset + end),
                    )
                )

    sizes = [e.n for e in experts]
    _logger.info(
        "Partitioned %d points into %d experts (sizes %d to %d)",
        n, len(experts), min(sizes), max(sizes),
    )
    return experts
