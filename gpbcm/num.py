# gpbcm/num.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""Numerical namespace for gpbcm.

All array operations, linear algebra routines and random sampling used
by the package go through this module, imported as

    import gpbcm.num as gnp

Arrays are NumPy float64 arrays; dense linear algebra relies on
NumPy/SciPy LAPACK bindings, which release the GIL and therefore let
experts be evaluated from a thread pool.
"""

import builtins
from typing import Any, Callable, Optional, Union
from gpbcm.config import get_config

Scalar = Union[int, float]
ArrayLike = Any

_config = get_config()

_LINALG_ERROR_KEYWORDS = (
    "singular",
    "not positive definite",
    "not positive-definite",
    "cholesky",
    "decomposition",
    "factorization",
    "matrix is not invertible",
    "ill-conditioned",
    "linalg",
    "lapack",
    "array must not contain infs or nans",
)


# -----------------------------------------------------
#
#                      NUMPY
#
# -----------------------------------------------------

import numpy
from numpy.typing import NDArray

_np_dtype = numpy.float64

ndarray = NDArray[numpy.floating]
from numpy import (
    copy,
    where,
    all,
    isfinite,
    isclose,
    allclose,
    stack,
    concatenate,
    array_split,
    split,
    diag,
    arange,
    cumsum,
    abs,
    sqrt,
    exp,
    log,
    sin,
    cos,
    sort,
    diff,
    sum,
    mean,
    var,
    min,
    max,
    argmin,
    argmax,
    minimum,
    maximum,
    clip,
    einsum,
    matmul,
    outer,
)
from numpy.linalg import cholesky
from numpy import pi
from numpy import finfo, float64
from scipy.special import gammaln
from scipy.linalg import solve_triangular
from scipy.spatial.distance import cdist

# ..................................................

eps = finfo(_np_dtype).eps

# ..................................................

def _is_linalg_exception(exc: Exception) -> bool:
    if isinstance(exc, numpy.linalg.LinAlgError):
        return True
    msg = str(exc).lower()
    return builtins.any(keyword in msg for keyword in _LINALG_ERROR_KEYWORDS)

# ..................................................

def array(x, dtype=None):
    if dtype is not None:
        return numpy.array(x, dtype=dtype)
    out = numpy.array(x)
    if numpy.issubdtype(out.dtype, numpy.floating):
        return out.astype(_np_dtype, copy=False)
    return out

def asarray(x, dtype=None):
    if dtype is not None:
        return numpy.asarray(x, dtype=dtype)
    if isinstance(x, numpy.ndarray):
        if numpy.issubdtype(x.dtype, numpy.floating):
            return x.astype(_np_dtype, copy=False)
        return x
    elif isinstance(x, (int, float)):
        dt = _np_dtype if isinstance(x, float) else None
        return numpy.array([x], dtype=dt)
    else:
        out = numpy.asarray(x)
        if numpy.issubdtype(out.dtype, numpy.floating):
            return out.astype(_np_dtype, copy=False)
        return out

def asreadonly(x):
    """Return a float64 copy of x that cannot be written to."""
    out = numpy.array(x, dtype=_np_dtype)
    out.setflags(write=False)
    return out

def empty(shape, dtype=None):
    return numpy.empty(shape, dtype=_np_dtype if dtype is None else dtype)

def zeros(shape, dtype=None):
    return numpy.zeros(shape, dtype=_np_dtype if dtype is None else dtype)

def ones(shape, dtype=None):
    return numpy.ones(shape, dtype=_np_dtype if dtype is None else dtype)

def full(shape, fill_value, dtype=None):
    return numpy.full(
        shape, fill_value, dtype=_np_dtype if dtype is None else dtype
    )

def eye(n, m=None, k=0, dtype=None):
    return numpy.eye(n, M=m, k=k, dtype=_np_dtype if dtype is None else dtype)

def linspace(start, stop, num=50, endpoint=True, dtype=None):
    return numpy.linspace(
        start, stop, num=num, endpoint=endpoint,
        dtype=_np_dtype if dtype is None else dtype,
    )

# ..................................................

def derivative_finite_diff(
    f: Callable[[Scalar], ArrayLike], x: Scalar, h: Scalar
) -> ArrayLike:
    """
    5-point central difference derivative of f w.r.t. scalar x.
    f(x) must return a NumPy (or similar) array/matrix/tensor.
    """
    f_x_p2 = f(x + 2 * h)
    f_x_p1 = f(x + h)
    f_x_m1 = f(x - h)
    f_x_m2 = f(x - 2 * h)
    return (-f_x_p2 + 8 * f_x_p1 - 8 * f_x_m1 + f_x_m2) / (12.0 * h)

def grad_finite_diff(f: Callable[[ArrayLike], Scalar], x: ArrayLike, h: Scalar = 1e-5):
    """Gradient of a scalar function of a vector by 5-point central differences."""
    x = asarray(x)
    g = zeros(x.shape)
    x_tmp = x.copy()
    for idx in range(x.shape[0]):

        def f_i(xi_scalar):
            x_tmp[idx] = xi_scalar
            return f(x_tmp)

        g[idx] = derivative_finite_diff(f_i, x[idx], h)
        x_tmp[idx] = x[idx]  # restore
    return g

# ..................................................

def scaled_distance(loginvrho: ArrayLike, x: ArrayLike, y: ArrayLike) -> ArrayLike:
    invrho = exp(loginvrho)
    xs = invrho * x
    ys = invrho * y
    return cdist(xs, ys)

def scaled_sqdiff(loginvrho: ArrayLike, x: ArrayLike, y: ArrayLike) -> ArrayLike:
    """Componentwise squared scaled differences, shape (d, nx, ny).

    Entry [j, a, b] is (x[a, j] - y[b, j])^2 / rho_j^2, so that the
    squared scaled distance is the sum over the first axis.
    """
    invrho = exp(loginvrho)
    delta = (invrho * x)[:, None, :] - (invrho * y)[None, :, :]
    return numpy.moveaxis(delta * delta, -1, 0)

# ..................................................

# Build one global RNG (or let the user set the seed somewhere):
_np_rng = numpy.random.default_rng(seed=_config.seed)

def set_seed(seed: int) -> None:
    """Set the global NumPy generator seed."""
    global _np_rng
    _np_rng = numpy.random.default_rng(seed=seed)

def default_rng(seed: Optional[int] = None):
    """Return an independent generator (seeded from the config if None)."""
    return numpy.random.default_rng(_config.seed if seed is None else seed)

def randn(*shape: int) -> ArrayLike:
    return _np_rng.normal(loc=0, scale=1, size=shape).astype(_np_dtype, copy=False)

