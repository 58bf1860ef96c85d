"""
Data helpers

Components
----------
Dataset
    Lightweight container for covariates *x* and labels *z*.
    Accepts either a single array or a list of array “shards”, or an
    iterable of ``(feature vector, label)`` pairs.  Shards are the
    natural partition boundary used by the expert partitioner.
    Provides random train/test split, row sub-selection, iteration over
    pairs and shard-wise statistics.

Design note
-----------
* Sharded datasets are concatenated lazily; consistency across shards
  is asserted at construction.

Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
Copyright (c) 2022-2026, CentraleSupelec
License: GPLv3 (see LICENSE)
"""

import bisect
import gpbcm.num as gnp
from gpbcm.errors import DimensionMismatchError
from typing import Tuple, List, Iterable, Iterator, Optional, Union


Array = gnp.ndarray
Idx = gnp.ndarray
ArrayOrList = Union[Array, List[Array]]


# ======================================================================
#                               Dataset
# ======================================================================
class Dataset:
    """Dataset storing covariates *x* and labels *z*.

    *x* and *z* may each be a single array or a list of arrays (shards)
    that share the same first-dimension length.  Labels are stored as
    1D arrays.

    Shards are retained at construction and indexing is performed
    lazily, without concatenation, with O(log(#shards)) index lookup.

    """

    def __init__(self, x: ArrayOrList, z: ArrayOrList) -> None:
        """
        Parameters
        ----------
        x : Array or list of Array
            Covariates, ``(n_samples, n_features)`` or list of such arrays.
        z : Array or list of Array
            Labels, ``(n_samples,)`` or ``(n_samples, 1)``, or list of such
            arrays.
        """
        # normalise to lists
        x_list = x if isinstance(x, list) else [x]
        z_list = z if isinstance(z, list) else [z]

        if len(x_list) != len(z_list):
            raise DimensionMismatchError("x and z shard counts differ")
        if len(x_list) == 0:
            raise ValueError("Dataset needs at least one shard")

        self.x_list = []
        self.z_list = []
        for xi, zi in zip(x_list, z_list):
            xi = gnp.asarray(xi, dtype=gnp.float64)
            zi = gnp.asarray(zi, dtype=gnp.float64)
            if xi.ndim != 2:
                raise DimensionMismatchError("x shards should be 2D arrays")
            if zi.ndim == 2 and zi.shape[1] == 1:
                zi = zi.reshape(-1)
            if zi.ndim != 1:
                raise DimensionMismatchError("z shards should be 1D arrays")
            if xi.shape[0] != zi.shape[0]:
                raise DimensionMismatchError("shard length mismatch")
            self.x_list.append(xi)
            self.z_list.append(zi)

        dims = {xi.shape[1] for xi in self.x_list}
        if len(dims) != 1:
            raise DimensionMismatchError("all x shards must have the same number of columns")
        self.dim = dims.pop()

        self.size = sum(xi.shape[0] for xi in self.x_list)
        self._shard_bounds = self._compute_shard_bounds()

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[Iterable[float], float]]) -> "Dataset":
        """Build a single-shard dataset from ``(feature vector, label)`` pairs."""
        xs, zs = [], []
        for features, label in pairs:
            xs.append(gnp.asarray(features, dtype=gnp.float64).reshape(-1))
            zs.append(float(label))
        if not xs:
            raise ValueError("Cannot build a Dataset from an empty iterable")
        if len({x.shape[0] for x in xs}) != 1:
            raise DimensionMismatchError("feature vectors must all have the same length")
        return cls(gnp.stack(xs), gnp.asarray(zs, dtype=gnp.float64))

    def _compute_shard_bounds(self) -> List[int]:
        """Compute cumulative sample bounds across shards."""
        bounds = []
        cumsum = 0
        for xi in self.x_list:
            cumsum += xi.shape[0]
            bounds.append(cumsum)
        return bounds

    # ------------------------------------------------------------- special methods
    def __len__(self) -> int:
        """Return total number of samples."""
        return self.size

    def __getitem__(self, idx: int) -> Tuple[Array, float]:
        """Return ``(x[idx], z[idx])`` without full-array concatenation."""
        if idx < 0:
            idx += self.size
        if not 0 <= idx < self.size:
            raise IndexError("Dataset index out of range")
        shard_idx = bisect.bisect_right(self._shard_bounds, idx)
        start = 0 if shard_idx == 0 else self._shard_bounds[shard_idx - 1]
        local_idx = idx - start
        return self.x_list[shard_idx][local_idx], self.z_list[shard_idx][local_idx]

    def __iter__(self) -> Iterator[Tuple[Array, float]]:
        """Iterate over ``(feature vector, label)`` pairs in natural order."""
        for xi, zi in zip(self.x_list, self.z_list):
            for row, label in zip(xi, zi):
                yield row, label

    def __repr__(self) -> str:
        shards = len(self.x_list)
        return (
            f"{self.__class__.__name__}(size={self.size}, "
            f"shards={shards}, "
            f"x_shape={[x.shape for x in self.x_list]}, "
            f"z_shape={[z.shape for z in self.z_list]})"
        )

    # ------------------------------------------------------------- shards
    @property
    def n_shards(self) -> int:
        return len(self.x_list)

    def shards(self) -> Iterator[Tuple[int, Array, Array]]:
        """Yield ``(offset, x_shard, z_shard)`` where offset is the global
        index of the first row of the shard."""
        start = 0
        for xi, zi in zip(self.x_list, self.z_list):
            yield start, xi, zi
            start += xi.shape[0]

    def concatenated(self) -> Tuple[Array, Array]:
        """Return all rows as a single ``(x, z)`` pair of arrays."""
        return gnp.concatenate(self.x_list, 0), gnp.concatenate(self.z_list, 0)

    # ------------------------------------------------------------- slice
    def subset(self, indices: Idx) -> "Dataset":
        """Return a dataset restricted to *indices*.

        Shard structure is preserved if possible.
        """
        indices = gnp.asarray(indices)
        if indices.ndim != 1:
            raise ValueError("Subset indices must be 1D")

        indices = gnp.sort(indices)  # enforce increasing order
        xs = []
        zs = []

        shard_starts = [0] + self._shard_bounds[:-1]
        shard_ends = self._shard_bounds

        for shard_idx, (start, end) in enumerate(zip(shard_starts, shard_ends)):
            mask = (indices >= start) & (indices < end)
            if mask.any():
                local_idx = indices[mask] - start
                xs.append(self.x_list[shard_idx][local_idx])
                zs.append(self.z_list[shard_idx][local_idx])

        return Dataset(xs, zs)

    # ------------------------------------------------------------- split
    @staticmethod
    def split(
        dataset: "Dataset",
        ratios: Tuple[float, float] = (0.8, 0.2),
        seed: Optional[int] = None,
    ) -> Tuple["Dataset", ...]:
        """Return one dataset per ratio (e.g. train, test).

        Samples are randomly shuffled before splitting.
        """
        assert gnp.isclose(sum(ratios), 1.0), "Ratios must sum to 1"
        rng = gnp.default_rng(seed)

        n = len(dataset)
        idx = rng.permutation(n)
        bounds = [int(r * n) for r in gnp.cumsum(ratios)[:-1]]
        return tuple(dataset.subset(part) for part in gnp.split(idx, bounds))

    # ................................................... internal methods
    def _reduce_min(self, x_or_z: str) -> Array:
        lst = getattr(self, f"{x_or_z}_list")
        first = True
        for data in lst:
            shard_min = gnp.min(data, axis=0)
            if first:
                global_min = shard_min
                first = False
            else:
                global_min = gnp.minimum(global_min, shard_min)
        return global_min

    def _reduce_max(self, x_or_z: str) -> Array:
        lst = getattr(self, f"{x_or_z}_list")
        first = True
        for data in lst:
            shard_max = gnp.max(data, axis=0)
            if first:
                global_max = shard_max
                first = False
            else:
                global_max = gnp.maximum(global_max, shard_max)
        return global_max

    def _reduce_mean(self, x_or_z: str) -> Array:
        lst = getattr(self, f"{x_or_z}_list")
        total_sum = None
        n = 0
        for data in lst:
            shard_sum = gnp.sum(data, axis=0)
            if total_sum is None:
                total_sum = shard_sum
            else:
                total_sum = total_sum + shard_sum
            n += data.shape[0]
        return total_sum / n

    def _reduce_var(self, x_or_z: str) -> Array:
        """Population variance (divides by n), like ``gnp.var``."""
        mean = self._reduce_mean(x_or_z)
        lst = getattr(self, f"{x_or_z}_list")
        total_var = None
        n = 0
        for data in lst:
            x_centered = data - mean
            shard_var = gnp.sum(x_centered**2, axis=0)
            if total_var is None:
                total_var = shard_var
            else:
                total_var = total_var + shard_var
            n += data.shape[0]
        return total_var / n


# -----------------------------------------------------------------------
# Auto-generate x_* and z_* methods
# -----------------------------------------------------------------------

for field in ("x", "z"):
    for stat in ("min", "max", "mean", "var"):

        def make_method(field=field, stat=stat):
            def method(self, *args, **kwargs):
                return getattr(self, f"_reduce_{stat}")(field, *args, **kwargs)

            method.__name__ = f"{field}_{stat}"
            return method

        setattr(Dataset, f"{field}_{stat}", make_method())
