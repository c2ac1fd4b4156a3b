"""Calibration statistics: predicted probability vs realized outcome.

Inputs are :class:`CalibrationSample` records built from settled legs or
slips.  A sample is **valid** when both its prediction and its outcome are
defined numbers.  Invalid samples are dropped from every metric but still
counted by :func:`summary_stats`.

Before aggregation each valid sample is normalised:

* the prediction is clamped into ``[0, 1]``;
* the outcome is thresholded: ``≤ 0`` → 0 (miss), anything else → 1 (hit).

Binning uses half-open intervals ``[lo, hi)`` except the final bin, which
is closed ``[lo, hi]`` so a prediction of exactly 1.0 is counted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from backend.core.odds_math import is_undefined
from backend.core.slip_config import (
    DEFAULT_CONFIG,
    LEG_HIT,
    LEG_MISS,
    SLIP_LOSS,
    SLIP_WIN,
    SOURCE_ALL,
    SlipConfig,
)

#: Default edges: 0.00, 0.05, … 1.00 (21 edges, 20 bins).
DEFAULT_BIN_EDGES: Tuple[float, ...] = DEFAULT_CONFIG.bin_edges()

_HIT_RESULTS = (LEG_HIT, SLIP_WIN)
_MISS_RESULTS = (LEG_MISS, SLIP_LOSS)


@dataclass(frozen=True)
class CalibrationSample:
    predicted: Optional[float]
    outcome: Optional[float]
    source: Optional[str] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class BinResult:
    range_label: str
    count: int
    avg_predicted: Optional[float]
    hit_rate: Optional[float]
    delta: Optional[float]    # hit_rate − avg_predicted


@dataclass(frozen=True)
class SummaryStats:
    count: int
    hit_rate: Optional[float]
    avg_predicted: Optional[float]
    delta: Optional[float]
    brier: Optional[float]


# ---------------------------------------------------------------------------
# Sample helpers
# ---------------------------------------------------------------------------


def outcome_from_result(result: Union[str, float, int, None]) -> Optional[int]:
    """Map ``hit``/``win`` → 1, ``miss``/``loss`` → 0, numbers by threshold."""
    if isinstance(result, str):
        if result in _HIT_RESULTS:
            return 1
        if result in _MISS_RESULTS:
            return 0
        return None
    if is_undefined(result):
        return None
    return 0 if result <= 0 else 1


def _normalised(sample: CalibrationSample) -> Optional[Tuple[float, int]]:
    """``(clamped_p, thresholded_y)`` or None for an invalid sample."""
    p, y = sample.predicted, sample.outcome
    if is_undefined(p) or is_undefined(y):
        return None
    return max(0.0, min(1.0, float(p))), (0 if y <= 0 else 1)


def _valid_pairs(samples: Iterable[CalibrationSample]) -> List[Tuple[float, int]]:
    pairs = []
    for s in samples:
        norm = _normalised(s)
        if norm is not None:
            pairs.append(norm)
    return pairs


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


def brier_score(samples: Iterable[CalibrationSample]) -> Optional[float]:
    """Mean squared error of the probability forecast; None if no valid samples."""
    pairs = _valid_pairs(samples)
    if not pairs:
        return None
    return sum((p - y) ** 2 for p, y in pairs) / len(pairs)


def summary_stats(samples: Sequence[CalibrationSample]) -> SummaryStats:
    """Hit rate, mean prediction, delta and Brier over the valid subset.

    ``count`` is the total number of samples supplied, valid or not.
    """
    count = len(samples)
    pairs = _valid_pairs(samples)
    if not pairs:
        return SummaryStats(count, None, None, None, None)

    n = len(pairs)
    avg_predicted = sum(p for p, _ in pairs) / n
    hit_rate = sum(y for _, y in pairs) / n
    return SummaryStats(
        count=count,
        hit_rate=hit_rate,
        avg_predicted=avg_predicted,
        delta=hit_rate - avg_predicted,
        brier=sum((p - y) ** 2 for p, y in pairs) / n,
    )


def bin_by_probability(
    samples: Iterable[CalibrationSample],
    edges: Sequence[float] = DEFAULT_BIN_EDGES,
) -> List[BinResult]:
    """Bucket valid samples by predicted probability.

    Args:
        samples: Samples to bin.
        edges: Ascending bin edges; ``len(edges) − 1`` bins are produced.

    Raises:
        ValueError: If fewer than two edges are given.
    """
    if len(edges) < 2:
        raise ValueError("bins must have at least two edges")

    n_bins = len(edges) - 1
    sum_p = [0.0] * n_bins
    sum_y = [0] * n_bins
    counts = [0] * n_bins

    for p, y in _valid_pairs(samples):
        for i in range(n_bins):
            lo, hi = edges[i], edges[i + 1]
            last = i == n_bins - 1
            if lo <= p < hi or (last and lo <= p <= hi):
                sum_p[i] += p
                sum_y[i] += y
                counts[i] += 1
                break

    results = []
    for i in range(n_bins):
        label = f"{edges[i]:.2f}–{edges[i + 1]:.2f}"
        if counts[i] == 0:
            results.append(BinResult(label, 0, None, None, None))
            continue
        avg_p = sum_p[i] / counts[i]
        hit_rate = sum_y[i] / counts[i]
        results.append(BinResult(label, counts[i], avg_p, hit_rate, hit_rate - avg_p))
    return results


# ---------------------------------------------------------------------------
# Segment filters
# ---------------------------------------------------------------------------


def filter_by_segments(
    samples: Iterable[CalibrationSample],
    source: Optional[str] = None,
    date_range_days: Optional[int] = None,
    now: Optional[datetime] = None,
    config: SlipConfig = DEFAULT_CONFIG,
) -> List[CalibrationSample]:
    """Keep samples matching the probability source and look-back window.

    ``source=None`` or ``"all"`` disables the source filter.  With a date
    window, samples lacking a timestamp are excluded.  Naive timestamps
    are treated as UTC.

    Raises:
        ValueError: If *date_range_days* is not an allowed window.
    """
    cutoff = None
    if date_range_days:
        if date_range_days not in config.date_range_windows:
            raise ValueError(
                f"date_range_days must be one of {config.date_range_windows}, "
                f"got {date_range_days!r}"
            )
        now = now or datetime.now(timezone.utc)
        cutoff = _as_utc(now) - timedelta(days=date_range_days)

    kept = []
    for s in samples:
        if source and source != SOURCE_ALL and s.source != source:
            continue
        if cutoff is not None:
            if s.timestamp is None or _as_utc(s.timestamp) < cutoff:
                continue
        kept.append(s)
    return kept


def _as_utc(ts: datetime) -> datetime:
    return ts.replace(tzinfo=timezone.utc) if ts.tzinfo is None else ts
