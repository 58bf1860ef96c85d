# gpbcm/core/__init__.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------

"""
Core components of the gpbcm package.

This subpackage contains the numerical routines of distributed GP
regression: Cholesky-based linear algebra, the local likelihood and its
gradient, experts and their partitioner, the committee criterion,
active set policies and the projected-process BCM predictor.

Public API
----------
Model : class
    Distributed GP model façade combining all core routines.
Expert, partition
    Local GP over a shard of the data, and the partitioner.
Committee : class
    Sum of the experts' negative log-likelihoods and gradients.
ProjectedProcessPredictor, build_predictor
    Fitted predictor, and its construction from a committee.
bcm_combine, rbcm_combine
    Aggregation rules.
"""

from .expert import Expert, partition
from .committee import Committee
from .predictor import (
    ProjectedProcessPredictor,
    build_predictor,
    bcm_combine,
    rbcm_combine,
)
from .model import Model

__all__ = [
    "Model",
    "Expert",
    "partition",
    "Committee",
    "ProjectedProcessPredictor",
    "build_predictor",
    "bcm_combine",
    "rbcm_combine",
]
