import numpy as np
import pandas as pd


def _quantile_edges(expected: np.ndarray, bins: int) -> np.ndarray:
    edges = np.unique(np.percentile(expected, np.linspace(0, 100, bins + 1)))
    if edges.size < 2:
        return np.array([-np.inf, np.inf])
    # Open both ends so test values outside the train range still land in a bin
    edges[0] = -np.inf
    edges[-1] = np.inf
    return edges


def psi(expected, actual, bins: int = 10) -> float:
    """Population Stability Index of ``actual`` against the ``expected`` baseline."""
    eps = 1e-6

    expected = np.asarray(expected, dtype=float)
    actual = np.asarray(actual, dtype=float)
    expected = expected[~np.isnan(expected)]
    actual = actual[~np.isnan(actual)]

    if expected.size == 0 or actual.size == 0:
        return float("nan")

    edges = _quantile_edges(expected, bins)
    e = np.histogram(expected, bins=edges)[0] / expected.size
    a = np.histogram(actual, bins=edges)[0] / actual.size
    return float(np.sum((e - a) * np.log((e + eps) / (a + eps))))


def split_psi(train: pd.DataFrame, test: pd.DataFrame, bins: int = 10) -> pd.Series:
    """PSI of every shared numeric column, test measured against train."""
    cols = (
        train.select_dtypes(include=[np.number]).columns
        .intersection(test.select_dtypes(include=[np.number]).columns)
    )
    values = {c: psi(train[c].to_numpy(), test[c].to_numpy(), bins=bins) for c in cols}
    return pd.Series(values, name="psi", dtype=float).dropna().sort_values(ascending=False)
