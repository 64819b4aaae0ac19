"""
Condensed summaries: binned, pre-aggregated tables with fixed bin widths.

A condensed summary holds one row per distinct combination of binned group
coordinates together with one or more summary columns (counts, means, ...).
Each group variable carries the width of the bins it was discretised with.
The widths are part of the record and are checked once, at construction.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import numpy as np
import pandas as pd

__all__ = ["CondensedSummary", "is_condensed"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class CondensedSummary:
    """Aggregate table plus the bin width of each group variable.

    Args:
        data: One row per bin combination. Must contain every group variable
            and at least one summary column.
        widths: Ordered mapping from group-variable name to bin width. The
            order defines the order of bandwidth vectors.
    """

    data: pd.DataFrame
    widths: Mapping[str, float]

    def __post_init__(self) -> None:
        if not isinstance(self.data, pd.DataFrame):
            raise TypeError(
                f"`data` must be a pandas DataFrame, got {type(self.data).__name__}"
            )
        widths = {str(k): v for k, v in dict(self.widths).items()}
        if not widths:
            raise ValueError("a condensed summary needs at least one group variable")
        for name, w in widths.items():
            if name not in self.data.columns:
                raise ValueError(f"group variable '{name}' is not a column of `data`")
            try:
                w = float(w)
            except (TypeError, ValueError):
                raise ValueError(
                    f"bin width of '{name}' must be numeric, got {w!r}"
                ) from None
            if not np.isfinite(w) or w <= 0:
                raise ValueError(f"bin width of '{name}' must be positive, got {w}")
            if not pd.api.types.is_numeric_dtype(self.data[name]):
                raise ValueError(f"group variable '{name}' must be numeric")
            widths[name] = w
        if len(self.data.columns) <= len(widths):
            raise ValueError("a condensed summary needs at least one summary column")
        object.__setattr__(self, "widths", widths)

    def __len__(self) -> int:
        return len(self.data)

    def group_vars(self) -> list[str]:
        """Group-variable names, in bandwidth order."""
        return list(self.widths)

    def summary_vars(self) -> list[str]:
        """Non-group columns, in table order."""
        return [str(c) for c in self.data.columns if c not in self.widths]

    def bin_widths(self) -> np.ndarray:
        return np.array(list(self.widths.values()), dtype=float)

    def group_values(self) -> np.ndarray:
        """Group coordinates as an ``(n, d)`` float array."""
        return self.data[self.group_vars()].to_numpy(dtype=float)

    def complete(self, columns: Iterable[str] | None = None) -> CondensedSummary:
        """Returns a copy without rows that have missing values in ``columns``.

        Defaults to all columns. The receiver is left untouched.
        """
        subset = list(self.data.columns) if columns is None else list(columns)
        kept = self.data.dropna(subset=subset)
        dropped = len(self.data) - len(kept)
        if dropped:
            logger.debug("dropped %d incomplete rows on %s", dropped, subset)
        return CondensedSummary(kept.reset_index(drop=True), self.widths)

    def take(self, indices) -> CondensedSummary:
        """Returns the rows at positional ``indices`` as a new summary."""
        return CondensedSummary(
            self.data.iloc[np.asarray(indices)].reset_index(drop=True), self.widths
        )


def is_condensed(x: object) -> bool:
    """Whether ``x`` is a validated condensed summary."""
    return isinstance(x, CondensedSummary)
