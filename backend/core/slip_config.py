"""Slip-level configuration — all journal constants in one place.

Nowhere else in the codebase should leg-count limits, calibration bin
edges, reporting windows or sensitivity steps be hard-coded.

:class:`SlipConfig` is a frozen dataclass; override single constants with
:func:`dataclasses.replace`::

    from dataclasses import replace
    from backend.core.slip_config import DEFAULT_CONFIG

    fine_bins = replace(DEFAULT_CONFIG, bin_step=0.025)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Tuple

#: Probability sources, in precedence order (highest first).
SOURCE_OVERRIDE: Final[str] = "override"
SOURCE_DEVIG_PAIR: Final[str] = "devigPair"
SOURCE_SINGLE_ODDS: Final[str] = "singleOdds"
PROBABILITY_SOURCES: Final[Tuple[str, ...]] = (
    SOURCE_OVERRIDE,
    SOURCE_DEVIG_PAIR,
    SOURCE_SINGLE_ODDS,
)

#: Filter value meaning "no source filter".
SOURCE_ALL: Final[str] = "all"

SIDE_OVER: Final[str] = "over"
SIDE_UNDER: Final[str] = "under"

STATUS_PENDING: Final[str] = "pending"
STATUS_SETTLED: Final[str] = "settled"

LEG_HIT: Final[str] = "hit"
LEG_MISS: Final[str] = "miss"
SLIP_WIN: Final[str] = "win"
SLIP_LOSS: Final[str] = "loss"


@dataclass(frozen=True)
class SlipConfig:
    """Immutable configuration bundle for slip pricing and reporting.

    Attributes:
        allowed_leg_counts: Leg counts a multi-leg slip may carry.  Two- and
            three-leg pick'em slips are the only products priced.
        bin_step: Width of each default calibration bin.  0.05 gives
            21 edges and 20 bins over ``[0, 1]``.
        date_range_windows: Look-back windows (days) accepted by the
            segment filter.
        sensitivity_adjustments: Absolute probability shifts used by the
            EV sensitivity table (±1, ±2, ±3 percentage points and 0).
        min_sensitivity_payout: Payout multipliers below this produce an
            empty sensitivity table.
    """

    allowed_leg_counts: Tuple[int, ...] = (2, 3)
    bin_step: float = 0.05
    date_range_windows: Tuple[int, ...] = (7, 30, 90)
    sensitivity_adjustments: Tuple[float, ...] = (
        -0.03, -0.02, -0.01, 0.0, 0.01, 0.02, 0.03,
    )
    min_sensitivity_payout: float = 1.0

    def bin_edges(self) -> Tuple[float, ...]:
        """Ascending edges from 0.0 to 1.0 in ``bin_step`` increments.

        Edges are built as ``i * step`` and rounded so the last edge is
        exactly 1.0.
        """
        n_bins = int(round(1.0 / self.bin_step))
        return tuple(round(i * self.bin_step, 10) for i in range(n_bins + 1))


DEFAULT_CONFIG: Final[SlipConfig] = SlipConfig()
