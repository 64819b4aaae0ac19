from __future__ import annotations

import itertools
import logging
import numbers
import warnings
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd
from scipy.optimize import minimize  # type: ignore
from sklearn.exceptions import ConvergenceWarning  # type: ignore

from .condensed import CondensedSummary
from .cv import LoocvOptions, LoocvScorer, SmoothFn, _as_bandwidth, _check_condensed

__all__ = [
    "BandwidthResult",
    "BoundaryWarning",
    "bandwidth_grid",
    "best_bandwidth",
    "rel_dist",
]

logger = logging.getLogger(__name__)


class BoundaryWarning(UserWarning):
    """The selected bandwidth sits on the bin-width lower bound."""


@dataclass(frozen=True, eq=False)
class BandwidthResult:
    """Bandwidth chosen by ``best_bandwidth``.

    Attributes:
        h: Selected bandwidth, one value per group variable.
        iterations: Number of LOOCV objective evaluations performed.
        rmse: Leave-one-out RMSE at ``h``.
        converged: Whether the optimiser reported convergence.
        message: Termination message of the optimiser.
    """

    h: np.ndarray
    iterations: int
    rmse: float
    converged: bool
    message: str

    def __array__(self, dtype=None, copy=None):
        return np.asarray(self.h, dtype=dtype)


# ----------------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------------


def rel_dist(x, y) -> float:
    """Mean elementwise relative distance ``|x - y| / |x + y|``."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    return float(np.mean(np.abs(x - y) / np.abs(x + y)))


def bandwidth_grid(
    summary: CondensedSummary, n: int = 50, max_multiple: float = 20
) -> pd.DataFrame:
    """Generates a grid of plausible bandwidths for a condensed summary.

    Each group variable gets ``n`` evenly spaced bandwidths from 2 to
    ``max_multiple`` times its bin width; the grid is their Cartesian
    product, with the first group variable varying fastest. The grid has
    ``n ** d`` rows for ``d`` group variables.

    Args:
        summary: A condensed summary.
        n: Number of bandwidths to generate in each dimension.
        max_multiple: Largest bandwidth, as a multiple of the bin width.

    Returns:
        DataFrame with one column per group variable.
    """
    _check_condensed(summary)
    if isinstance(n, bool) or not isinstance(n, numbers.Integral) or n <= 0:
        raise ValueError(f"`n` must be a positive integer, got {n!r}")
    if (
        isinstance(max_multiple, bool)
        or not isinstance(max_multiple, numbers.Real)
        or not np.isfinite(max_multiple)
        or max_multiple <= 0
    ):
        raise ValueError(f"`max_multiple` must be positive, got {max_multiple!r}")

    hs = [w * np.linspace(2.0, float(max_multiple), int(n)) for w in summary.bin_widths()]
    rows = [combo[::-1] for combo in itertools.product(*reversed(hs))]
    return pd.DataFrame(rows, columns=summary.group_vars(), dtype=float)


# ----------------------------------------------------------------------------
# High-level interface
# ----------------------------------------------------------------------------


def best_bandwidth(
    summary: CondensedSummary,
    smooth: SmoothFn,
    initial=None,
    tolerance: float = 1e-2,
    optimizer_options: Mapping[str, Any] | None = None,
    options: LoocvOptions | None = None,
) -> BandwidthResult:
    """Finds the bandwidth minimising the leave-one-out RMSE.

    L-BFGS-B is used to constrain each bandwidth to be at least its bin
    width: below the bin width no smoothing occurs and the RMSE cannot be
    computed. The default tolerance is coarse since the precise bandwidth
    makes little visual difference, and there is rarely enough data to make
    a statistically significant choice anyway.

    Args:
        summary: Condensed summary to smooth.
        smooth: Smoothing function (see ``LoocvScorer``).
        initial: Starting bandwidths. Defaults to 5 times each bin width.
        tolerance: Relative tolerance on the RMSE, 1% by default.
        optimizer_options: Options for ``scipy.optimize.minimize`` with the
            L-BFGS-B method (``maxiter``, ``maxfun``, ``gtol``, ...). They
            override the options derived from ``tolerance``. Progress is
            reported through the ``condensedband.selectors`` logger at DEBUG
            level.
        options: Response variable and smoother keyword arguments.

    Returns:
        The selected bandwidth with its evaluation count.

    Warns:
        ConvergenceWarning: The optimiser did not converge; the best
            bandwidth found is still returned.
        BoundaryWarning: The bandwidth is within 0.1% of the bin widths,
            suggesting that smoothing is not needed.
    """
    _check_condensed(summary)
    widths = summary.bin_widths()
    h0 = widths * 5 if initial is None else _as_bandwidth(initial, summary)
    h0 = np.maximum(h0, widths)

    if (
        isinstance(tolerance, bool)
        or not isinstance(tolerance, numbers.Real)
        or not np.isfinite(tolerance)
        or tolerance <= 0
    ):
        raise ValueError(f"`tolerance` must be positive, got {tolerance!r}")
    if optimizer_options is not None and not isinstance(optimizer_options, Mapping):
        raise ValueError("`optimizer_options` must be a mapping")
    opts = {"ftol": float(tolerance), **dict(optimizer_options or {})}

    scorer = LoocvScorer(summary, smooth, options)

    def objective(h: np.ndarray) -> float:
        err = scorer.score(h)
        logger.debug("eval %d: h=%s rmse=%.6g", scorer.evals, h, err)
        return err

    res = minimize(
        objective,
        h0,
        method="L-BFGS-B",
        bounds=[(w, None) for w in widths],
        options=opts,
    )
    # L-BFGS-B keeps iterates feasible up to round-off
    h = np.maximum(np.asarray(res.x, dtype=float), widths)
    message = str(res.message)
    logger.debug(
        "L-BFGS-B finished after %d evaluations: %s", scorer.evals, message
    )

    if not res.success:
        warnings.warn(f"Failed to converge: {message}", ConvergenceWarning, stacklevel=2)
    elif rel_dist(h, widths) < 1e-3:
        warnings.warn(
            "h close to lower bound: smoothing not needed", BoundaryWarning, stacklevel=2
        )
    return BandwidthResult(
        h=h,
        iterations=scorer.evals,
        rmse=float(res.fun),
        converged=bool(res.success),
        message=message,
    )
