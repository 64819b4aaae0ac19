import numpy as np
import pandas as pd
import pytest

from condensedband import CondensedSummary


def mean_smoother(training, query, h, var):
    """Predicts the training mean regardless of location and bandwidth."""
    return np.full(len(query), training.data[var].mean())


def nw_smoother(training, query, h, var, kernel="gaussian"):
    """Count-weighted product-kernel Nadaraya-Watson smoother.

    Returns NaN where no training row gets positive weight.
    """
    X = training.group_values()
    y = training.data[var].to_numpy(dtype=float)
    counts = (
        training.data["count"].to_numpy(dtype=float)
        if "count" in training.data
        else np.ones_like(y)
    )
    u = (np.asarray(query)[:, None, :] - X[None, :, :]) / h
    if kernel == "gaussian":
        K = np.exp(-0.5 * u * u)
    else:
        K = 0.75 * np.maximum(0.0, 1.0 - u * u)
    w = K.prod(axis=2) * counts
    denom = w.sum(axis=1)
    with np.errstate(invalid="ignore", divide="ignore"):
        return np.where(denom > 0, (w * y).sum(axis=1) / denom, np.nan)


@pytest.fixture
def xsum():
    rng = np.random.default_rng(1014)
    x = np.arange(20) * 0.1 + 0.05
    mean = np.sin(3 * x) + 0.1 * rng.standard_normal(len(x))
    count = rng.integers(5, 50, size=len(x))
    data = pd.DataFrame({"x": x, "count": count, "mean": mean})
    return CondensedSummary(data, {"x": 0.1})


@pytest.fixture
def xysum():
    rng = np.random.default_rng(7)
    gx, gy = np.meshgrid(np.arange(6) * 0.1 + 0.05, np.arange(4) * 0.5 + 0.25)
    x, y = gx.ravel(), gy.ravel()
    data = pd.DataFrame(
        {
            "x": x,
            "y": y,
            "count": rng.integers(1, 20, size=x.size),
            "mean": x + np.cos(y) + 0.05 * rng.standard_normal(x.size),
        }
    )
    return CondensedSummary(data, {"x": 0.1, "y": 0.5})
