"""
Leave-one-out cross-validation for smoothers of condensed summaries.

This module defines a LoocvScorer class that evaluates the leave-one-out
root-mean-squared prediction error of an external smoothing function for a
given bandwidth vector, plus functional wrappers for scoring one bandwidth
(``rmse_cv``) or a whole grid of them (``rmse_for_grid``).
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from sklearn.metrics import mean_squared_error  # type: ignore
from sklearn.model_selection import LeaveOneOut  # type: ignore

from .condensed import CondensedSummary, is_condensed

__all__ = ["LoocvOptions", "LoocvScorer", "rmse_cv", "rmse_for_grid"]

logger = logging.getLogger(__name__)

# smooth(training, query, h, var, **smooth_kwargs) -> predictions for query rows
SmoothFn = Callable[..., Any]


@dataclass(frozen=True)
class LoocvOptions:
    """Options forwarded to the estimator and the smoothing function.

    Args:
        var: Summary column to predict. Defaults to the first summary
            variable of the condensed summary.
        smooth_kwargs: Extra keyword arguments for the smoothing function.
    """

    var: str | None = None
    smooth_kwargs: Mapping[str, Any] = field(default_factory=dict)


def _check_condensed(x: object) -> None:
    if not is_condensed(x):
        raise TypeError(
            f"expected a condensed summary, got {type(x).__name__}"
        )


def _as_bandwidth(h, summary: CondensedSummary) -> np.ndarray:
    """Validates ``h`` as one positive bandwidth per group variable."""
    try:
        h = np.asarray(h, dtype=float)
    except (TypeError, ValueError):
        raise ValueError(f"bandwidth must be numeric, got {h!r}") from None
    h = np.atleast_1d(h)
    d = len(summary.widths)
    if h.ndim != 1 or h.shape[0] != d:
        raise ValueError(f"bandwidth must have {d} element(s), got shape {h.shape}")
    if not np.all(np.isfinite(h)) or np.any(h <= 0):
        raise ValueError(f"bandwidth must be finite and positive, got {h}")
    return h


class LoocvScorer:
    """Leave-one-out RMSE scorer for a condensed summary.

    Rows with missing values in the group variables or the response are
    dropped once, up front; the summary passed in is not modified.

    Args:
        summary: Condensed summary to cross-validate.
        smooth: Smoothing function called as
            ``smooth(training, query, h, var, **smooth_kwargs)``; must return
            one prediction (possibly NaN) per query row.
        options: Response variable and smoother keyword arguments.
    """

    def __init__(
        self,
        summary: CondensedSummary,
        smooth: SmoothFn,
        options: LoocvOptions | None = None,
    ) -> None:
        _check_condensed(summary)
        options = options or LoocvOptions()
        var = options.var if options.var is not None else summary.summary_vars()[0]
        if var not in summary.summary_vars():
            raise ValueError(
                f"`var` must be one of {summary.summary_vars()}, got '{var}'"
            )
        self.summary = summary.complete([*summary.group_vars(), var])
        self.smooth = smooth
        self.var = var
        self.smooth_kwargs = dict(options.smooth_kwargs)
        self.X = self.summary.group_values()
        self.y = self.summary.data[var].to_numpy(dtype=float)
        self.loo = LeaveOneOut()
        self.evals = 0

    def predict(self, h) -> np.ndarray:
        """Leave-one-out predictions, one per retained row."""
        h = _as_bandwidth(h, self.summary)
        pred = np.full(len(self.y), np.nan)
        if len(self.y) < 2:
            # nothing left to train on
            return pred
        for train_idx, test_idx in self.loo.split(self.X):
            out = self.smooth(
                self.summary.take(train_idx),
                self.X[test_idx],
                h,
                self.var,
                **self.smooth_kwargs,
            )
            out = np.asarray(out, dtype=float).ravel()
            if out.shape[0] != len(test_idx):
                raise ValueError(
                    f"smoother returned {out.shape[0]} values for "
                    f"{len(test_idx)} query point(s)"
                )
            pred[test_idx] = out
        return pred

    def score(self, h) -> float:
        """Computes the leave-one-out RMSE for bandwidth ``h``.

        Predictions that come back missing are left out of the mean. Returns
        NaN when no prediction is available at all, including when fewer
        than two complete rows remain.
        """
        pred = self.predict(h)
        self.evals += 1
        ok = ~np.isnan(pred)
        if not ok.any():
            return float("nan")
        if np.isinf(pred[ok]).any():
            return float("inf")
        return float(np.sqrt(mean_squared_error(self.y[ok], pred[ok])))


def rmse_cv(
    summary: CondensedSummary,
    h,
    smooth: SmoothFn,
    options: LoocvOptions | None = None,
) -> float:
    """Estimates smoothing RMSE using leave-one-out cross-validation.

    Args:
        summary: Condensed summary to smooth.
        h: Bandwidth, one value per group variable.
        smooth: Smoothing function (see ``LoocvScorer``).
        options: Response variable and smoother keyword arguments.

    Returns:
        Root-mean-squared leave-one-out prediction error.
    """
    return LoocvScorer(summary, smooth, options).score(h)


def rmse_for_grid(
    summary: CondensedSummary,
    smooth: SmoothFn,
    grid=None,
    options: LoocvOptions | None = None,
) -> pd.DataFrame:
    """Computes the leave-one-out RMSE for every bandwidth in a grid.

    Useful for plotting the error surface; use ``best_bandwidth`` to pick a
    bandwidth.

    Args:
        summary: Condensed summary to smooth.
        smooth: Smoothing function (see ``LoocvScorer``).
        grid: DataFrame with a column named after each group variable, or
            an ``(m, d)`` array in group-variable order. Defaults to
            ``bandwidth_grid(summary)``.
        options: Response variable and smoother keyword arguments.

    Returns:
        The grid with an extra ``err`` column, rows in grid order.
    """
    from .selectors import bandwidth_grid

    _check_condensed(summary)
    gvars = summary.group_vars()
    if grid is None:
        grid = bandwidth_grid(summary)
    if isinstance(grid, pd.DataFrame):
        missing = [v for v in gvars if v not in grid.columns]
        if missing:
            raise ValueError(f"grid is missing bandwidth column(s) {missing}")
        grid = grid[gvars]
    hs = np.asarray(grid, dtype=float)
    if hs.ndim == 1 and len(gvars) == 1:
        hs = hs[:, None]
    if hs.ndim != 2 or hs.shape[1] != len(gvars):
        raise ValueError(
            f"grid must have {len(gvars)} column(s), got shape {hs.shape}"
        )
    scorer = LoocvScorer(summary, smooth, options)
    err = [scorer.score(h) for h in hs]
    out = pd.DataFrame(hs, columns=gvars)
    out["err"] = err
    return out
