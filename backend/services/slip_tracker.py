"""
Slip lifecycle management.

  quote_slip()   - pure: resolve legs, price the slip, build the sensitivity table
  create_slip()  - quote + persist as a pending slip
  settle()       - pending -> settled, one-way
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from backend.core.leg_resolver import LegInput, ResolvedLeg, resolve_leg
from backend.core.odds_math import is_undefined
from backend.core.slip_math import SlipResult, ev_sensitivity, price_slip, settle as settle_legs
from backend.models import Leg, Slip
from backend.services import slip_store

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Quoting (pure functions, no DB)
# ---------------------------------------------------------------------------

@dataclass
class SlipQuote:
    legs: List[ResolvedLeg]
    result: SlipResult
    sensitivity: List[Dict[str, float]]

    @property
    def errors(self) -> Dict[int, str]:
        """Leg index -> error string for every leg that failed to resolve."""
        return {i: leg.error for i, leg in enumerate(self.legs) if leg.error}

    @property
    def is_priced(self) -> bool:
        return not self.errors and not is_undefined(self.result.combined_probability)


def quote_slip(legs: Sequence[LegInput], payout_multiplier: float) -> SlipQuote:
    """
    Resolve each leg and price the slip under independence.

    A leg with an error contributes an undefined probability, which makes
    the combined probability, EV and RTP undefined too.

    Raises ValueError for an unsupported leg count.
    """
    resolved = [resolve_leg(leg) for leg in legs]
    result = price_slip([r.chosen_probability for r in resolved], payout_multiplier)
    return SlipQuote(
        legs=resolved,
        result=result,
        sensitivity=ev_sensitivity(result.combined_probability, payout_multiplier),
    )


def _leg_record(index: int, raw: LegInput, resolved: ResolvedLeg, description: Optional[str]) -> Leg:
    return Leg(
        leg_index=index,
        description=description or None,
        chosen_side=raw.side,
        probability_source=resolved.source,
        p_chosen=resolved.chosen_probability,
        p_imp=resolved.implied_probability,
        p_fair=resolved.fair_probability,
        vig_percent=resolved.vig_percent,
        probability_override_input=raw.probability_override or None,
        single_odds_input=raw.single_odds or None,
        over_odds_input=raw.over_odds or None,
        under_odds_input=raw.under_odds or None,
    )


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def create_slip(
    db: Session,
    username: str,
    legs: Sequence[LegInput],
    payout_multiplier: float,
    descriptions: Optional[Sequence[Optional[str]]] = None,
) -> Slip:
    """
    Quote and store a new pending slip.

    Raises ValueError when any leg fails to resolve or the slip cannot be
    priced; nothing is written in that case.
    """
    quote = quote_slip(legs, payout_multiplier)
    if not quote.is_priced:
        details = "; ".join(f"leg {i + 1}: {err}" for i, err in quote.errors.items())
        raise ValueError(details or "Slip probability is undefined")

    descriptions = list(descriptions or [])
    descriptions += [None] * (len(legs) - len(descriptions))

    slip = Slip(
        payout_multiplier=payout_multiplier,
        p_slip=quote.result.combined_probability,
        ev=quote.result.ev,
        rtp=quote.result.rtp,
    )
    leg_rows = [
        _leg_record(i, raw, resolved, descriptions[i])
        for i, (raw, resolved) in enumerate(zip(legs, quote.legs))
    ]
    return slip_store.save_slip(db, username, slip, leg_rows)


def settle(db: Session, username: str, slip_id: int, leg_results: Sequence[str]) -> Slip:
    """
    Settle a pending slip from per-leg hit/miss results.

    win iff every leg hit; realized_return = payout on a win else 0;
    realized_profit = realized_return - 1.
    """
    slip = slip_store.get_owned_slip(db, username, slip_id)
    if len(leg_results) != len(slip.legs):
        raise ValueError(
            f"Results required for all {len(slip.legs)} legs, got {len(leg_results)}"
        )
    settlement = settle_legs(leg_results, slip.payout_multiplier)
    return slip_store.settle_slip(db, username, slip_id, settlement)
