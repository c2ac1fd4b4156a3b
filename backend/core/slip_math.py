"""Slip pricing and settlement mathematics.

All stakes are **1 unit**.  A payout multiplier ``m`` is the total return
on a win, stake included: ``m = 3.0`` means a winning 1-unit slip pays
back 3 units (2 units profit).

Multi-leg slips are priced as a single Bernoulli bet on the joint win
probability, with legs assumed **independent**.  Correlated legs (same
game, same player) are priced incorrectly by construction; there is no
partial-hit payout tier.

Undefined inputs never raise; they produce
:data:`~backend.core.odds_math.UNDEFINED`.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Dict, List, Optional, Sequence, Tuple

from backend.core.odds_math import (
    UNDEFINED,
    is_probability,
    is_undefined,
    normalize_probability,
)
from backend.core.slip_config import (
    DEFAULT_CONFIG,
    LEG_HIT,
    LEG_MISS,
    SLIP_LOSS,
    SLIP_WIN,
    SlipConfig,
)


def _valid_payout(payout_multiplier) -> bool:
    return not is_undefined(payout_multiplier) and payout_multiplier >= 0


# ---------------------------------------------------------------------------
# Single-leg EV / RTP
# ---------------------------------------------------------------------------


def expected_value_single(p_win: float, payout_multiplier: float) -> float:
    """EV per unit staked: ``p × (m − 1) − (1 − p)``.

    ``expected_value_single(0.5, 2.0) == 0.0`` (break-even).
    """
    if not is_probability(p_win) or not _valid_payout(payout_multiplier):
        return UNDEFINED
    return p_win * (payout_multiplier - 1.0) - (1.0 - p_win)


def rtp_single(p_win: float, payout_multiplier: float) -> float:
    """Return-to-player ``p × m``; 1.0 is break-even."""
    if not is_probability(p_win) or not _valid_payout(payout_multiplier):
        return UNDEFINED
    return p_win * payout_multiplier


# ---------------------------------------------------------------------------
# Multi-leg combination
# ---------------------------------------------------------------------------


def combine_independent(p_a: float, p_b: float) -> float:
    """Joint probability of two independent legs both hitting."""
    if not (is_probability(p_a) and is_probability(p_b)):
        return UNDEFINED
    return p_a * p_b


def slip_win_probability(probabilities: Sequence[float]) -> float:
    """Fold leg probabilities pairwise, left to right.

    ``[p1, p2, p3]`` → ``combine(combine(p1, p2), p3)``.  Fewer than two
    legs is not a slip and returns undefined.
    """
    if len(probabilities) < 2:
        return UNDEFINED
    return reduce(combine_independent, probabilities)


def expected_value_slip(p_slip: float, payout_multiplier: float) -> float:
    return expected_value_single(p_slip, payout_multiplier)


def rtp_slip(p_slip: float, payout_multiplier: float) -> float:
    return rtp_single(p_slip, payout_multiplier)


@dataclass(frozen=True)
class SlipResult:
    leg_probabilities: Tuple[float, ...]
    combined_probability: float
    ev: float
    rtp: float
    payout_multiplier: float


def price_slip(
    leg_probabilities: Sequence[float],
    payout_multiplier: float,
    config: SlipConfig = DEFAULT_CONFIG,
) -> SlipResult:
    """Combined probability, EV and RTP for a 2- or 3-leg slip.

    Raises:
        ValueError: If the leg count is not one of
            ``config.allowed_leg_counts``.  Undefined leg probabilities do
            *not* raise; they make every output undefined.
    """
    if len(leg_probabilities) not in config.allowed_leg_counts:
        raise ValueError(
            f"Slip must have {' or '.join(map(str, config.allowed_leg_counts))} "
            f"legs, got {len(leg_probabilities)}"
        )
    combined = slip_win_probability(leg_probabilities)
    return SlipResult(
        leg_probabilities=tuple(leg_probabilities),
        combined_probability=combined,
        ev=expected_value_slip(combined, payout_multiplier),
        rtp=rtp_slip(combined, payout_multiplier),
        payout_multiplier=payout_multiplier,
    )


def ev_sensitivity(
    p_win: float,
    payout_multiplier: float,
    adjustments: Optional[Sequence[float]] = None,
    config: SlipConfig = DEFAULT_CONFIG,
) -> List[Dict[str, float]]:
    """How EV moves if the win probability is off by a few points.

    Each row is ``{"adjustment_pct", "p_win", "ev"}`` where ``p_win`` is
    the clamped ``p + adjustment``.  Empty when ``p_win`` is undefined or
    the payout is below ``config.min_sensitivity_payout``.
    """
    if adjustments is None:
        adjustments = config.sensitivity_adjustments
    if is_undefined(p_win) or is_undefined(payout_multiplier):
        return []
    if payout_multiplier < config.min_sensitivity_payout:
        return []

    rows = []
    for adj in adjustments:
        adjusted = normalize_probability(p_win + adj)
        rows.append({
            "adjustment_pct": round(adj * 100, 6),
            "p_win": adjusted,
            "ev": expected_value_single(adjusted, payout_multiplier),
        })
    return rows


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Settlement:
    leg_results: Tuple[str, ...]
    slip_result: str           # "win" | "loss"
    realized_return: float     # m on a win, 0 otherwise
    realized_profit: float     # realized_return − 1 stake


def settle(leg_results: Sequence[str], payout_multiplier: float) -> Settlement:
    """Settle a slip: win iff every leg hit.

    Raises:
        ValueError: If *leg_results* is empty or contains anything other
            than ``"hit"`` / ``"miss"``.
    """
    if not leg_results:
        raise ValueError("leg_results must not be empty")
    unknown = [r for r in leg_results if r not in (LEG_HIT, LEG_MISS)]
    if unknown:
        raise ValueError(f"Unknown leg result(s): {unknown!r}")

    won = all(r == LEG_HIT for r in leg_results)
    realized_return = float(payout_multiplier) if won else 0.0
    return Settlement(
        leg_results=tuple(leg_results),
        slip_result=SLIP_WIN if won else SLIP_LOSS,
        realized_return=realized_return,
        realized_profit=realized_return - 1.0,
    )
