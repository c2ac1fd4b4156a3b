"""
Calibration and journal reporting.

All public functions receive a SQLAlchemy Session and a username and
return plain dicts so they can be called from FastAPI endpoints or scripts
without importing any web-layer code.

Two calibration views are produced from the same settled slips:
  leg level   predicted = leg p_chosen, actual = leg hit
  slip level  predicted = slip p_slip,  actual = slip win
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from backend.core.calibration import (
    DEFAULT_BIN_EDGES,
    CalibrationSample,
    bin_by_probability,
    filter_by_segments,
    outcome_from_result,
    summary_stats,
)
from backend.core.slip_config import SLIP_WIN, SOURCE_ALL, STATUS_SETTLED
from backend.models import Slip
from backend.services.slip_store import load_slips

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _settled(slips: Iterable[Slip]) -> List[Slip]:
    return [s for s in slips if s.status == STATUS_SETTLED and s.slip_result]


def leg_samples(slips: Iterable[Slip]) -> List[CalibrationSample]:
    """One sample per leg of every settled slip, stamped with the slip's created_at."""
    return [
        CalibrationSample(
            predicted=leg.p_chosen,
            outcome=outcome_from_result(leg.result),
            source=leg.probability_source,
            timestamp=slip.created_at,
        )
        for slip in _settled(slips)
        for leg in slip.legs
    ]


def slip_samples(slips: Iterable[Slip]) -> List[CalibrationSample]:
    """One sample per settled slip.  Slips carry no single source."""
    return [
        CalibrationSample(
            predicted=slip.p_slip,
            outcome=outcome_from_result(slip.slip_result),
            timestamp=slip.created_at,
        )
        for slip in _settled(slips)
    ]


def _with_source(slips: Iterable[Slip], source: Optional[str]) -> List[Slip]:
    """Slips having at least one leg priced from *source*."""
    if not source or source == SOURCE_ALL:
        return list(slips)
    return [s for s in slips if any(leg.probability_source == source for leg in s.legs)]


def _section(samples: Sequence[CalibrationSample], edges: Sequence[float]) -> Dict:
    return {
        "summary": asdict(summary_stats(samples)),
        "bins": [asdict(b) for b in bin_by_probability(samples, edges)],
    }


# ---------------------------------------------------------------------------
# calibration_report
# ---------------------------------------------------------------------------

def calibration_report(
    db: Session,
    username: str,
    source: Optional[str] = None,
    date_range_days: Optional[int] = None,
    edges: Sequence[float] = DEFAULT_BIN_EDGES,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Leg-level and slip-level calibration for *username*'s settled slips.

    The source filter applies to legs directly and to slips by "any leg
    from this source".  The date window applies to both by slip created_at.
    """
    slips = load_slips(db, username)

    legs = filter_by_segments(
        leg_samples(slips), source=source, date_range_days=date_range_days, now=now,
    )
    slip_level = filter_by_segments(
        slip_samples(_with_source(slips, source)), date_range_days=date_range_days, now=now,
    )

    logger.info(
        "Calibration report for %s: %d legs, %d slips (source=%s, days=%s)",
        username, len(legs), len(slip_level), source or SOURCE_ALL, date_range_days,
    )
    return {
        "filters": {"source": source or SOURCE_ALL, "date_range_days": date_range_days},
        "leg": _section(legs, edges),
        "slip": _section(slip_level, edges),
    }


# ---------------------------------------------------------------------------
# journal_summary
# ---------------------------------------------------------------------------

def journal_summary(db: Session, username: str) -> Dict:
    """Counts and realized profit (units) across *username*'s slips."""
    slips = load_slips(db, username)
    settled = [s for s in slips if s.status == STATUS_SETTLED]
    wins = sum(1 for s in settled if s.slip_result == SLIP_WIN)
    total_profit = sum(s.realized_profit or 0.0 for s in settled)

    return {
        "total_slips": len(slips),
        "pending": len(slips) - len(settled),
        "settled": len(settled),
        "wins": wins,
        "losses": len(settled) - wins,
        "total_realized_profit": round(total_profit, 4),
        "avg_realized_profit": round(total_profit / len(settled), 4) if settled else 0.0,
    }
