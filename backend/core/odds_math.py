"""Fundamental odds mathematics — the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services or routes.

The pillars exposed are:

1. **Odds conversion** — American odds → implied probability.
2. **Normalisation** — clamp a user-supplied probability into ``[0, 1]``.
3. **Vig removal** — proportional two-way de-vig with overround reporting.

Design decisions
----------------
* Invalid input never raises.  Zero odds, NaN, strings or ``None`` all map
  to :data:`UNDEFINED` (IEEE NaN), which propagates through every
  downstream formula.  Callers render it as a placeholder instead of
  crashing on every keystroke.
* Two-way de-vig is proportional (``p_i / Σ p``).  Slips are priced for
  player-prop style over/under markets where both sides carry roughly the
  same margin, so no favourite-longshot correction is applied.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Any, Final, NamedTuple, Optional

# ---------------------------------------------------------------------------
# Undefined-numeric marker
# ---------------------------------------------------------------------------

#: Marker for any out-of-domain or undefined numeric result.  NaN compares
#: unequal to everything (itself included), so always test with
#: :func:`is_undefined`.
UNDEFINED: Final[float] = math.nan


def is_undefined(value: Any) -> bool:
    """True when *value* is not a usable real number (None, non-numeric, NaN)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return True
    return math.isnan(value)


def defined_or_none(value: Any) -> Optional[float]:
    """``None`` for undefined values, the float otherwise (JSON boundary)."""
    return None if is_undefined(value) else float(value)


def is_probability(value: Any) -> bool:
    """True when *value* is a defined number inside ``[0, 1]``."""
    return not is_undefined(value) and 0.0 <= value <= 1.0


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_implied_prob(odds: Any) -> float:
    """Raw implied probability from American odds (vig-inclusive).

    Args:
        odds: American odds.  Negative = favourite, positive = underdog.

    Returns:
        Implied probability.  ``(0, 0.5)`` for positive odds above +100,
        ``(0.5, 1)`` for negative odds below −100, :data:`UNDEFINED` for
        zero or non-numeric input.

    Examples::

        american_to_implied_prob(-110) → 0.5238
        american_to_implied_prob(+150) → 0.4000
        american_to_implied_prob(0)    → nan
    """
    if is_undefined(odds) or odds == 0:
        return UNDEFINED
    if odds > 0:
        return 100.0 / (odds + 100.0)
    magnitude = abs(odds)
    return magnitude / (magnitude + 100.0)


def normalize_probability(prob: Any) -> float:
    """Clamp a probability into ``[0, 1]``.

    Non-numeric input stays undefined; clamping never "fixes" garbage.
    Idempotent: ``normalize_probability(normalize_probability(x))`` equals
    ``normalize_probability(x)``.
    """
    if is_undefined(prob):
        return UNDEFINED
    return max(0.0, min(1.0, float(prob)))


# ---------------------------------------------------------------------------
# Vig removal — proportional two-way
# ---------------------------------------------------------------------------


class DevigResult(NamedTuple):
    """Output of :func:`devig_two_way`.

    Attributes:
        overround: ``p_over + p_under − 1`` (0.0476 for a −110/−110 market).
        vig_percent: ``overround × 100``.
        fair_over: No-vig probability for the over side.
        fair_under: No-vig probability for the under side.
    """

    overround: float
    vig_percent: float
    fair_over: float
    fair_under: float


def devig_two_way(p_over_implied: Any, p_under_implied: Any) -> DevigResult:
    """Overround, vig percentage and de-vigged fair probabilities.

    Both inputs must already be implied probabilities in ``[0, 1]``; any
    other value yields a fully undefined result.  When the market is
    degenerate (both sides zero, or overround ≤ −1) the overround and vig
    are still reported but the fair probabilities are undefined.

    Returns:
        :class:`DevigResult`.  Whenever defined, ``fair_over + fair_under``
        equals 1.0 up to floating-point rounding.
    """
    if not (is_probability(p_over_implied) and is_probability(p_under_implied)):
        return DevigResult(UNDEFINED, UNDEFINED, UNDEFINED, UNDEFINED)

    total = p_over_implied + p_under_implied
    overround = total - 1.0
    vig_percent = overround * 100.0

    if total == 0 or overround <= -1.0:
        return DevigResult(overround, vig_percent, UNDEFINED, UNDEFINED)

    return DevigResult(
        overround,
        vig_percent,
        p_over_implied / total,
        p_under_implied / total,
    )
