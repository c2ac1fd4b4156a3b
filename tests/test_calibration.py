"""Tests for calibration: binning, Brier score, summary stats and segment filters."""

import math
from datetime import datetime, timedelta, timezone

import pytest

from backend.core.calibration import (
    DEFAULT_BIN_EDGES,
    CalibrationSample,
    bin_by_probability,
    brier_score,
    filter_by_segments,
    outcome_from_result,
    summary_stats,
)

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def _s(p, y, source=None, timestamp=NOW):
    return CalibrationSample(predicted=p, outcome=y, source=source, timestamp=timestamp)


SAMPLES = [
    _s(0.1, 0, "singleOdds"),
    _s(0.2, 0, "devigPair"),
    _s(0.3, 1, "override"),
    _s(0.7, 1, "devigPair"),
    _s(0.9, 1, "override"),
]


# ---------------------------------------------------------------------------
# Default edges
# ---------------------------------------------------------------------------

def test_default_edges():
    assert len(DEFAULT_BIN_EDGES) == 21
    assert DEFAULT_BIN_EDGES[0] == 0.0
    assert DEFAULT_BIN_EDGES[-1] == 1.0
    assert DEFAULT_BIN_EDGES[1] == pytest.approx(0.05)


def test_default_bins_count_and_labels():
    bins = bin_by_probability([])
    assert len(bins) == 20
    assert bins[0].range_label == "0.00–0.05"
    assert bins[-1].range_label == "0.95–1.00"


# ---------------------------------------------------------------------------
# bin_by_probability
# ---------------------------------------------------------------------------

def test_bins_quartiles():
    bins = bin_by_probability(SAMPLES, [0, 0.25, 0.5, 0.75, 1.0])
    assert len(bins) == 4

    assert bins[0].count == 2
    assert bins[0].avg_predicted == pytest.approx(0.15)
    assert bins[0].hit_rate == 0
    assert bins[0].delta == pytest.approx(-0.15)

    assert bins[1].count == 1
    assert bins[2].count == 1
    assert bins[2].hit_rate == 1
    assert bins[3].count == 1


def test_empty_bin_metrics_are_none():
    bins = bin_by_probability([], [0, 0.5, 1.0])
    assert bins[0].count == 0
    assert bins[0].avg_predicted is None
    assert bins[0].hit_rate is None
    assert bins[0].delta is None


def test_last_bin_is_closed_and_others_half_open():
    bins = bin_by_probability([_s(1.0, 1), _s(0.5, 0)], [0, 0.5, 1.0])
    assert bins[0].count == 0
    assert bins[1].count == 2


def test_predictions_clamped_and_outcomes_thresholded():
    bins = bin_by_probability([_s(1.4, 7), _s(-0.2, -1)], [0, 0.5, 1.0])
    assert bins[0].count == 1
    assert bins[0].avg_predicted == 0.0
    assert bins[0].hit_rate == 0
    assert bins[1].avg_predicted == 1.0
    assert bins[1].hit_rate == 1


def test_invalid_samples_dropped():
    bins = bin_by_probability(
        [_s(None, 1), _s(0.3, None), _s(math.nan, 0), _s(0.3, math.nan), _s(0.3, 1)],
        [0, 0.5, 1.0],
    )
    assert sum(b.count for b in bins) == 1


def test_too_few_edges():
    with pytest.raises(ValueError):
        bin_by_probability(SAMPLES, [0.5])


# ---------------------------------------------------------------------------
# brier_score
# ---------------------------------------------------------------------------

def test_brier_known():
    assert brier_score([_s(0.2, 0), _s(0.8, 1)]) == pytest.approx(0.04)


def test_brier_perfect():
    assert brier_score([_s(1.0, 1), _s(0.0, 0)]) == 0.0


def test_brier_empty_and_all_invalid():
    assert brier_score([]) is None
    assert brier_score([_s(None, 1)]) is None


# ---------------------------------------------------------------------------
# summary_stats
# ---------------------------------------------------------------------------

def test_summary_stats():
    stats = summary_stats(SAMPLES)
    avg = (0.1 + 0.2 + 0.3 + 0.7 + 0.9) / 5
    assert stats.count == 5
    assert stats.hit_rate == pytest.approx(0.6)
    assert stats.avg_predicted == pytest.approx(avg)
    assert stats.delta == pytest.approx(0.6 - avg)
    assert stats.brier == pytest.approx(brier_score(SAMPLES))


def test_summary_empty():
    stats = summary_stats([])
    assert stats.count == 0
    assert stats.hit_rate is None
    assert stats.brier is None


def test_summary_counts_invalid_but_skips_metrics():
    stats = summary_stats([_s(None, 1), _s(0.4, None)])
    assert stats.count == 2
    assert stats.hit_rate is None
    assert stats.avg_predicted is None
    assert stats.delta is None
    assert stats.brier is None


def test_summary_mixed_validity():
    stats = summary_stats([_s(None, 1), _s(0.4, 1)])
    assert stats.count == 2
    assert stats.hit_rate == 1.0
    assert stats.avg_predicted == pytest.approx(0.4)


# ---------------------------------------------------------------------------
# filter_by_segments
# ---------------------------------------------------------------------------

def test_filter_source():
    kept = filter_by_segments(SAMPLES, source="override")
    assert [s.predicted for s in kept] == [0.3, 0.9]


@pytest.mark.parametrize("source", [None, "all", ""])
def test_filter_source_disabled(source):
    assert len(filter_by_segments(SAMPLES, source=source)) == len(SAMPLES)


def test_filter_date_window():
    recent = _s(0.5, 1, timestamp=NOW)
    old = _s(0.5, 0, timestamp=NOW - timedelta(days=40))
    kept = filter_by_segments([recent, old], date_range_days=30, now=NOW)
    assert kept == [recent]


def test_filter_date_window_excludes_missing_timestamp():
    kept = filter_by_segments([_s(0.5, 1, timestamp=None)], date_range_days=90, now=NOW)
    assert kept == []


def test_filter_naive_timestamps_treated_as_utc():
    naive = _s(0.5, 1, timestamp=datetime(2026, 3, 10, 12, 0))
    assert filter_by_segments([naive], date_range_days=7, now=NOW) == [naive]


def test_filter_combined():
    samples = [
        _s(0.3, 1, "override", NOW - timedelta(days=2)),
        _s(0.4, 1, "override", NOW - timedelta(days=10)),
        _s(0.5, 1, "devigPair", NOW - timedelta(days=2)),
    ]
    kept = filter_by_segments(samples, source="override", date_range_days=7, now=NOW)
    assert [s.predicted for s in kept] == [0.3]


def test_filter_rejects_unknown_window():
    with pytest.raises(ValueError):
        filter_by_segments(SAMPLES, date_range_days=14, now=NOW)


def test_filter_defaults_to_current_time():
    today = _s(0.5, 1, timestamp=datetime.now(timezone.utc))
    long_ago = _s(0.5, 1, timestamp=datetime.now(timezone.utc) - timedelta(days=40))
    assert filter_by_segments([today, long_ago], date_range_days=30) == [today]


# ---------------------------------------------------------------------------
# outcome_from_result
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("result, expected", [
    ("hit", 1),
    ("win", 1),
    ("miss", 0),
    ("loss", 0),
    (1, 1),
    (0, 0),
    (-1, 0),
    (0.4, 1),
    ("push", None),
    (None, None),
    (math.nan, None),
])
def test_outcome_from_result(result, expected):
    assert outcome_from_result(result) == expected
