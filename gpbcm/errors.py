# gpbcm/errors.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Exceptions and warnings raised by gpbcm.

NumericalError
    A covariance matrix is not numerically positive definite. Inside
    hyperparameter optimization the offending proposal is rejected;
    elsewhere the error propagates.
DimensionMismatchError
    Labels, points or hyperparameters have inconsistent shapes. Raised
    before any matrix work.
NonConvergenceWarning
    The optimizer stopped before meeting its tolerance. The best
    parameters found are still used.
"""
import numpy


class NumericalError(numpy.linalg.LinAlgError):
    """Matrix is not numerically positive definite."""


class DimensionMismatchError(ValueError):
    """Shapes of labels, points or hyperparameters disagree."""


class NonConvergenceWarning(RuntimeWarning):
    """Optimizer budget exhausted before convergence."""
