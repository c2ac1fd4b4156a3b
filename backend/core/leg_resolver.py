"""Resolve one leg's win probability from raw, user-typed strings.

Precedence is strict: **override > de-vig pair > single odds**.

Parsing follows browser ``parseFloat`` semantics: surrounding whitespace
is ignored and the longest leading decimal literal wins, so ``"+150"``,
``" -110 "`` and ``"150abc"`` all parse while ``"abc"`` and ``""`` do not.
A string that does not parse is never an exception; it either falls
through (override) or is reported on :attr:`ResolvedLeg.error` (odds).

Typical usage::

    from backend.core.leg_resolver import LegInput, resolve_leg

    leg = resolve_leg(LegInput(side="over", over_odds="-120", under_odds="+100"))
    leg.chosen_probability   # 0.5238...
    leg.source               # "devigPair"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final, Optional

from backend.core.odds_math import (
    UNDEFINED,
    american_to_implied_prob,
    devig_two_way,
    is_undefined,
    normalize_probability,
)
from backend.core.slip_config import (
    SIDE_OVER,
    SOURCE_DEVIG_PAIR,
    SOURCE_OVERRIDE,
    SOURCE_SINGLE_ODDS,
)

_LEADING_NUMBER: Final = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

ERR_PAIR_FORMAT: Final[str] = "Invalid Over/Under odds format."
ERR_PAIR_FAIR: Final[str] = "Cannot calculate fair probability from provided odds."
ERR_SINGLE_FORMAT: Final[str] = "Invalid single American odds format."
ERR_NO_INPUT: Final[str] = "No valid probability input provided."


@dataclass(frozen=True)
class LegInput:
    """Raw inputs for one leg exactly as typed.  ``None`` and ``""`` mean absent."""

    side: str = SIDE_OVER
    probability_override: Optional[str] = None
    single_odds: Optional[str] = None
    over_odds: Optional[str] = None
    under_odds: Optional[str] = None


@dataclass(frozen=True)
class ResolvedLeg:
    """Canonical probability for a leg plus provenance.

    ``chosen_probability`` is :data:`~backend.core.odds_math.UNDEFINED`
    exactly when ``error`` is set.
    """

    source: str
    chosen_probability: float = UNDEFINED
    implied_probability: Optional[float] = None
    fair_probability: Optional[float] = None
    vig_percent: Optional[float] = None
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.error is None


def parse_number(text: Optional[str]) -> float:
    """Leading-decimal parse; :data:`UNDEFINED` when nothing numeric leads."""
    if text is None:
        return UNDEFINED
    match = _LEADING_NUMBER.match(text)
    if not match:
        return UNDEFINED
    return float(match.group(1))


def _present(text: Optional[str]) -> bool:
    return text is not None and text != ""


def _failed(source: str, error: str) -> ResolvedLeg:
    return ResolvedLeg(source=source, error=error)


def resolve_leg(leg: LegInput) -> ResolvedLeg:
    """Resolve *leg* under override > de-vig pair > single-odds precedence.

    1. A parseable override wins, clamped into ``[0, 1]``.  An unparseable
       override is ignored and evaluation continues.
    2. When both over and under odds are non-empty, the chosen side's
       fair probability is used.  Parse or de-vig failures are reported
       as errors and do not fall through to single odds.
    3. Otherwise a non-empty single-odds string gives the raw implied
       probability, or a format error.
    4. Nothing usable → ``singleOdds`` provenance with a no-input error.
    """
    # 1. Override
    if _present(leg.probability_override):
        parsed = parse_number(leg.probability_override)
        if not is_undefined(parsed):
            return ResolvedLeg(
                source=SOURCE_OVERRIDE,
                chosen_probability=normalize_probability(parsed),
            )

    # 2. De-vig pair: both sides required
    if _present(leg.over_odds) and _present(leg.under_odds):
        over = parse_number(leg.over_odds)
        under = parse_number(leg.under_odds)
        if is_undefined(over) or is_undefined(under):
            return _failed(SOURCE_DEVIG_PAIR, ERR_PAIR_FORMAT)

        p_over = american_to_implied_prob(over)
        p_under = american_to_implied_prob(under)
        if is_undefined(p_over) or is_undefined(p_under):
            return _failed(SOURCE_DEVIG_PAIR, ERR_PAIR_FORMAT)

        devigged = devig_two_way(p_over, p_under)
        is_over = leg.side == SIDE_OVER
        fair = devigged.fair_over if is_over else devigged.fair_under
        if is_undefined(fair):
            return _failed(SOURCE_DEVIG_PAIR, ERR_PAIR_FAIR)

        return ResolvedLeg(
            source=SOURCE_DEVIG_PAIR,
            chosen_probability=fair,
            implied_probability=p_over if is_over else p_under,
            fair_probability=fair,
            vig_percent=devigged.vig_percent,
        )

    # 3. Single odds
    if _present(leg.single_odds):
        implied = american_to_implied_prob(parse_number(leg.single_odds))
        if is_undefined(implied):
            return _failed(SOURCE_SINGLE_ODDS, ERR_SINGLE_FORMAT)
        return ResolvedLeg(
            source=SOURCE_SINGLE_ODDS,
            chosen_probability=implied,
            implied_probability=implied,
        )

    # 4. Nothing usable
    return _failed(SOURCE_SINGLE_ODDS, ERR_NO_INPUT)
