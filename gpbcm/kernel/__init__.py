# gpbcm/kernel/__init__.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------
"""
Gaussian Process kernels and related utilities.

This subpackage provides stationary covariance functions and the
parameter selection tools used to fit a committee of experts.

Modules
-------
stationary
    Base class of stationary anisotropic kernels with a noise term.
squared_exponential
    Squared exponential (Gaussian) kernel.
matern
    Matérn kernel with regularity 3/2.
init
    Initialization heuristics for covariance parameters.
parameter_selection
    Maximum likelihood parameter selection over a committee.
utils
    Internal helper functions for data preparation and validation.

Public API
-----------
- Kernels:
    StationaryKernel, SquaredExponentialKernel, Matern32Kernel
- Radial profiles:
    squared_exponential_kernel, matern32_kernel
- Parameter selection:
    anisotropic_parameters_initial_guess
    make_selection_criterion_with_gradient
    autoselect_parameters
    select_parameters_with_committee
"""

from .stationary import StationaryKernel
from .squared_exponential import SquaredExponentialKernel, squared_exponential_kernel
from .matern import Matern32Kernel, matern32_kernel
from .init import anisotropic_parameters_initial_guess
from .parameter_selection import (
    make_selection_criterion_with_gradient,
    autoselect_parameters,
    select_parameters_with_committee,
)

__all__ = [
    "StationaryKernel",
    "SquaredExponentialKernel",
    "squared_exponential_kernel",
    "Matern32Kernel",
    "matern32_kernel",
    "anisotropic_parameters_initial_guess",
    "make_selection_criterion_with_gradient",
    "autoselect_parameters",
    "select_parameters_with_committee",
]
