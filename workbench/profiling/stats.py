"""
Descriptive statistics shared by the profiling report and the cleaning steps.

Every function here is total: degenerate input (no values, a single value,
zero spread) gets a neutral result instead of an exception or a numpy warning.
"""
import math
from collections import Counter
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np

from workbench.values import is_finite_number, is_missing, to_text


class MinMax(NamedTuple):
    min: float
    max: float


class ChiSquare(NamedTuple):
    chi2: float
    df: int


class IqrOutliers(NamedTuple):
    indices: List[int]
    lower: float
    upper: float


def _array(arr: Iterable[float]) -> np.ndarray:
    """Finite values of `arr` as a float array; NaN and infinities are dropped."""
    a = np.asarray(list(arr), dtype=float)
    return a[np.isfinite(a)]


def _indexed(arr: Iterable[float]) -> Tuple[np.ndarray, np.ndarray]:
    """Finite values of `arr` together with their positions in `arr`."""
    a = np.asarray(list(arr), dtype=float)
    positions = np.flatnonzero(np.isfinite(a))
    return a[positions], positions


def mean(arr: Sequence[float]) -> float:
    a = _array(arr)
    if a.size == 0:
        return 0.0
    return float(a.mean())


def median(arr: Sequence[float]) -> float:
    a = _array(arr)
    if a.size == 0:
        return 0.0
    return float(np.median(a))


def variance(arr: Sequence[float]) -> float:
    """Sample variance (n - 1 denominator)."""
    a = _array(arr)
    if a.size < 2:
        return 0.0
    return float(a.var(ddof=1))


def std_dev(arr: Sequence[float]) -> float:
    return math.sqrt(variance(arr))


def min_max(arr: Sequence[float]) -> MinMax:
    a = _array(arr)
    if a.size == 0:
        return MinMax(0.0, 0.0)
    return MinMax(float(a.min()), float(a.max()))


def mode(values: Sequence[Any]) -> Optional[Any]:
    """Most frequent value; ties go to the value seen first."""
    if not values:
        return None
    return Counter(values).most_common(1)[0][0]


def skewness(arr: Sequence[float]) -> float:
    """Adjusted Fisher-Pearson coefficient G1."""
    a = _array(arr)
    n = a.size
    if n < 3:
        return 0.0
    d = a - a.mean()
    m2 = float(np.mean(d ** 2))
    if m2 == 0:
        return 0.0
    m3 = float(np.mean(d ** 3))
    g1 = m3 / m2 ** 1.5
    return math.sqrt(n * (n - 1)) / (n - 2) * g1


def kurtosis_excess(arr: Sequence[float]) -> float:
    """Excess kurtosis G2 with the small-sample bias correction."""
    a = _array(arr)
    n = a.size
    if n < 4:
        return 0.0
    d = a - a.mean()
    m2 = float(np.mean(d ** 2))
    if m2 == 0:
        return 0.0
    m4 = float(np.mean(d ** 4))
    g2 = m4 / m2 ** 2 - 3
    return (n - 1) / ((n - 2) * (n - 3)) * ((n + 1) * g2 + 6)


def pearson(x: Sequence[Any], y: Sequence[Any]) -> float:
    """Pearson r over index-aligned pairs where both sides are finite numbers."""
    pairs = [(a, b) for a, b in zip(x, y) if is_finite_number(a) and is_finite_number(b)]
    if len(pairs) < 2:
        return 0.0
    xs = _array(p[0] for p in pairs)
    ys = _array(p[1] for p in pairs)
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    den = math.sqrt(float(np.sum(dx ** 2)) * float(np.sum(dy ** 2)))
    num = float(np.sum(dx * dy))
    if den == 0 or not math.isfinite(den) or not math.isfinite(num):
        return 0.0
    return num / den


def contingency_table(xs: Sequence[Any], ys: Sequence[Any], max_levels: int = 12) -> List[List[int]]:
    """
    Counts of (x, y) level pairs. Levels are the first `max_levels` distinct
    non-missing values of each side in first-seen order; pairs outside the
    capped levels are ignored.
    """
    x_levels: Dict[str, int] = {}
    y_levels: Dict[str, int] = {}
    for v in xs:
        if not is_missing(v) and len(x_levels) < max_levels:
            x_levels.setdefault(to_text(v), len(x_levels))
    for v in ys:
        if not is_missing(v) and len(y_levels) < max_levels:
            y_levels.setdefault(to_text(v), len(y_levels))
    table = [[0] * len(y_levels) for _ in x_levels]
    for a, b in zip(xs, ys):
        if is_missing(a) or is_missing(b):
            continue
        i = x_levels.get(to_text(a))
        j = y_levels.get(to_text(b))
        if i is not None and j is not None:
            table[i][j] += 1
    return table


def chi_square_stat(table: Sequence[Sequence[float]]) -> ChiSquare:
    r = len(table)
    c = len(table[0]) if r else 0
    if not r or not c:
        return ChiSquare(0.0, 0)
    observed = np.asarray(table, dtype=float)
    row_sums = observed.sum(axis=1)
    col_sums = observed.sum(axis=0)
    total = float(observed.sum()) or 1.0
    expected = np.outer(row_sums, col_sums) / total
    mask = expected > 0
    chi2 = float(np.sum((observed[mask] - expected[mask]) ** 2 / expected[mask]))
    return ChiSquare(chi2, (r - 1) * (c - 1))


def entropy(values: Iterable[Any]) -> float:
    """Shannon entropy in bits of the non-missing values."""
    counts = Counter(to_text(v) for v in values if not is_missing(v))
    n = sum(counts.values())
    if n == 0:
        return 0.0
    p = np.asarray(list(counts.values()), dtype=float) / n
    return float(-np.sum(p * np.log2(p)))


def z_score_outliers(arr: Sequence[float], threshold: float = 2.5) -> List[int]:
    """Positions in `arr` whose |z| exceeds `threshold`; non-finite entries are skipped."""
    a, positions = _indexed(arr)
    if a.size < 2:
        return []
    s = std_dev(a)
    if s == 0:
        return []
    z = np.abs((a - a.mean()) / s)
    return [int(positions[i]) for i in np.flatnonzero(z > threshold)]


def iqr_outliers(arr: Sequence[float]) -> IqrOutliers:
    """
    Tukey fences from nearest-rank quartiles: Q1 = sorted[floor(n * 0.25)],
    Q3 = sorted[floor(n * 0.75)]. No interpolation, so quartiles (and fences)
    differ from numpy.percentile / textbook methods on small samples.
    Indices refer to positions in `arr`; non-finite entries are skipped.
    """
    a, positions = _indexed(arr)
    n = a.size
    if n == 0:
        return IqrOutliers([], 0.0, 0.0)
    s = np.sort(a)
    q1 = float(s[math.floor(n * 0.25)])
    q3 = float(s[math.floor(n * 0.75)])
    iqr = q3 - q1
    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr
    idx = np.flatnonzero((a < lower) | (a > upper))
    return IqrOutliers([int(positions[i]) for i in idx], lower, upper)
