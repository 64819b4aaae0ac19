"""
Condensedband: cross-validated bandwidth selection for condensed summaries.

This package chooses how much to smooth a binned, pre-aggregated summary of a
large dataset. It estimates the leave-one-out cross-validation (LOOCV)
root-mean-squared error of an external smoothing function and minimises it
with bound-constrained L-BFGS-B, keeping every bandwidth at least as large as
the corresponding bin width.

Key Features
------------
- Condensed summaries with bin widths validated at construction
- LOOCV RMSE for any smoother, skipping missing data and missing predictions
- Error surfaces over bandwidth grids for plotting
- Bound-constrained optimisation with convergence and boundary diagnostics

Main Functions
--------------
best_bandwidth : Find the bandwidth minimising LOOCV RMSE
rmse_cv : LOOCV RMSE for one bandwidth
rmse_for_grid : LOOCV RMSE for every bandwidth of a grid
bandwidth_grid : Candidate bandwidths as multiples of the bin widths

Example
-------
>>> import pandas as pd
>>> from condensedband import CondensedSummary, best_bandwidth
>>> data = pd.DataFrame({"x": [0.05, 0.15, 0.25, 0.35], "count": [3, 5, 4, 2]})
>>> xsum = CondensedSummary(data, {"x": 0.1})
>>> res = best_bandwidth(xsum, my_smoother)  # doctest: +SKIP
>>> res.h, res.iterations  # doctest: +SKIP
"""

import logging

from .condensed import CondensedSummary, is_condensed
from .cv import LoocvOptions, LoocvScorer, rmse_cv, rmse_for_grid
from .selectors import (
    BandwidthResult,
    BoundaryWarning,
    bandwidth_grid,
    best_bandwidth,
    rel_dist,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CondensedSummary",
    "is_condensed",
    "LoocvOptions",
    "LoocvScorer",
    "rmse_cv",
    "rmse_for_grid",
    "bandwidth_grid",
    "best_bandwidth",
    "rel_dist",
    "BandwidthResult",
    "BoundaryWarning",
]
