# gpbcm/core/utils.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Shape validation helpers used across `gpbcm.core` modules.

All checks raise `DimensionMismatchError` and run before any matrix is
formed.
"""
import gpbcm.num as gnp
from gpbcm.errors import DimensionMismatchError


def check_xi_zi(xi, zi):
    """Return (xi, zi) as (n, d) and (n,) arrays.

    `zi` may be given as a single-column 2D array, which is flattened.
    """
    xi = gnp.asarray(xi)
    zi = gnp.asarray(zi)
    if xi.ndim != 2:
        raise DimensionMismatchError(f"xi should be a 2D array, got shape {xi.shape}")
    if zi.ndim == 2:
        if zi.shape[1] != 1:
            raise DimensionMismatchError(
                "zi should only have one column if it's a 2D array"
            )
        zi = zi.reshape(-1)
    elif zi.ndim != 1:
        raise DimensionMismatchError("zi should be 1D or a 2D column array")
    if xi.shape[0] != zi.shape[0]:
        raise DimensionMismatchError(
            f"xi and zi must have the same number of rows "
            f"({xi.shape[0]} != {zi.shape[0]})"
        )
    if xi.shape[0] == 0:
        raise DimensionMismatchError("xi and zi must contain at least one point")
    return xi, zi


def check_xt(xt, d):
    """Return query points as an (m, d) array.

    For d == 1 a 1D array is read as a column of query points;
    otherwise a 1D array of length d is read as a single query point.
    """
    xt = gnp.asarray(xt)
    if xt.ndim == 1:
        xt = xt.reshape(-1, 1) if d == 1 else xt.reshape(1, -1)
    if xt.ndim != 2 or xt.shape[1] != d:
        raise DimensionMismatchError(
            f"query points should have shape (m, {d}), got {xt.shape}"
        )
    return xt
