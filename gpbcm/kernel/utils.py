# gpbcm/kernel/utils.py
# --------------------------------------------------------------
# Author: Emmanuel Vazquez <emmanuel.vazquez@centralesupelec.fr>
# Copyright (c) 2022-2026, CentraleSupelec
# License: GPLv3 (see LICENSE)
# --------------------------------------------------------------


def prepare_data(xi=None, zi=None, dataset=None):
    """Validate arguments and determine data source."""
    arrays_provided = xi is not None and zi is not None
    dataset_provided = dataset is not None
    if arrays_provided and dataset_provided:
        raise ValueError("Provide either (xi, zi) or dataset, not both.")
    if not arrays_provided and not dataset_provided:
        raise ValueError("Provide either (xi, zi) or dataset.")
    return "arrays" if arrays_provided else "dataset"
