"""
Pydantic request/response schemas for the slip EV journal API.

Leg inputs are accepted as raw strings, exactly as typed; numeric parsing
is the leg resolver's job, not the schema's.  Undefined numeric results
are serialised as ``null``.
"""

from __future__ import annotations

from typing import Dict, List, Literal, Optional
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from backend.core.leg_resolver import LegInput, ResolvedLeg
from backend.core.odds_math import defined_or_none


# ---------------------------------------------------------------------------
# Leg inputs
# ---------------------------------------------------------------------------

class LegInputPayload(BaseModel):
    """
    Raw inputs for one leg.

    Precedence when several are filled in:
    probability_override > (over_odds + under_odds) > single_odds.
    """

    side: Literal["over", "under"] = Field("over", description="Side taken on the de-vig pair")
    probability_override: Optional[str] = Field(None, max_length=32, description='e.g. "0.55"')
    single_odds: Optional[str] = Field(None, max_length=32, description='e.g. "-110"')
    over_odds: Optional[str] = Field(None, max_length=32, description='e.g. "-120"')
    under_odds: Optional[str] = Field(None, max_length=32, description='e.g. "+100"')
    description: Optional[str] = Field(None, max_length=200, description='e.g. "Tatum o27.5 pts"')

    @field_validator("description")
    @classmethod
    def blank_description_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        return v or None

    def to_leg_input(self) -> LegInput:
        return LegInput(
            side=self.side,
            probability_override=self.probability_override,
            single_odds=self.single_odds,
            over_odds=self.over_odds,
            under_odds=self.under_odds,
        )


class ResolvedLegResponse(BaseModel):
    source: Literal["override", "devigPair", "singleOdds"]
    chosen_probability: Optional[float]
    implied_probability: Optional[float] = None
    fair_probability: Optional[float] = None
    vig_percent: Optional[float] = None
    error: Optional[str] = None

    @classmethod
    def from_resolved(cls, leg: ResolvedLeg) -> "ResolvedLegResponse":
        return cls(
            source=leg.source,
            chosen_probability=defined_or_none(leg.chosen_probability),
            implied_probability=defined_or_none(leg.implied_probability),
            fair_probability=defined_or_none(leg.fair_probability),
            vig_percent=defined_or_none(leg.vig_percent),
            error=leg.error,
        )


# ---------------------------------------------------------------------------
# Quoting
# ---------------------------------------------------------------------------

class SlipQuoteRequest(BaseModel):
    """
    Payload for POST /api/price/slip.

    payout_multiplier is the total return on a winning 1-unit slip
    (stake included).  When omitted the server default is used.
    """

    legs: List[LegInputPayload] = Field(..., min_length=2, max_length=3)
    payout_multiplier: Optional[float] = Field(None, description="e.g. 3.0 for a 2-pick power play")

    model_config = {
        "json_schema_extra": {
            "example": {
                "legs": [
                    {"side": "over", "over_odds": "-130", "under_odds": "+100"},
                    {"single_odds": "-115"},
                ],
                "payout_multiplier": 3.0,
            }
        }
    }


class SensitivityRow(BaseModel):
    adjustment_pct: float
    p_win: Optional[float]
    ev: Optional[float]


class SlipQuoteResponse(BaseModel):
    legs: List[ResolvedLegResponse]
    errors: Dict[int, str]
    combined_probability: Optional[float]
    ev: Optional[float]
    rtp: Optional[float]
    payout_multiplier: float
    sensitivity: List[SensitivityRow]


# ---------------------------------------------------------------------------
# Slips
# ---------------------------------------------------------------------------

class SlipCreate(SlipQuoteRequest):
    """Payload for POST /api/slips.  Only fully priced slips are stored."""

    payout_multiplier: float = Field(..., ge=1.0, le=1000.0)


class SettleRequest(BaseModel):
    """
    Payload for PUT /api/slips/{slip_id}/settle.

    One result per leg, in leg order.  The slip wins only if every leg hit.
    """

    leg_results: List[Literal["hit", "miss"]] = Field(..., min_length=2, max_length=3)

    model_config = {"json_schema_extra": {"example": {"leg_results": ["hit", "miss"]}}}


class LegResponse(BaseModel):
    leg_index: int
    description: Optional[str]
    chosen_side: str
    probability_source: str
    p_chosen: float
    p_imp: Optional[float]
    p_fair: Optional[float]
    vig_percent: Optional[float]
    probability_override_input: Optional[str]
    single_odds_input: Optional[str]
    over_odds_input: Optional[str]
    under_odds_input: Optional[str]
    result: Optional[str]

    model_config = {"from_attributes": True}


class SlipResponse(BaseModel):
    id: int
    created_at: datetime
    payout_multiplier: float
    p_slip: Optional[float]
    ev: Optional[float]
    rtp: Optional[float]
    status: Literal["pending", "settled"]
    slip_result: Optional[Literal["win", "loss"]]
    realized_return: Optional[float]
    realized_profit: Optional[float]
    settled_at: Optional[datetime]
    legs: List[LegResponse]

    model_config = {"from_attributes": True}


class DeleteResponse(BaseModel):
    message: str
    slip_id: int


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class SummaryStatsResponse(BaseModel):
    count: int
    hit_rate: Optional[float]
    avg_predicted: Optional[float]
    delta: Optional[float]
    brier: Optional[float]


class BinResponse(BaseModel):
    range_label: str
    count: int
    avg_predicted: Optional[float]
    hit_rate: Optional[float]
    delta: Optional[float]


class CalibrationSection(BaseModel):
    summary: SummaryStatsResponse
    bins: List[BinResponse]


class CalibrationFilters(BaseModel):
    source: str
    date_range_days: Optional[int]


class CalibrationReportResponse(BaseModel):
    filters: CalibrationFilters
    leg: CalibrationSection
    slip: CalibrationSection


class JournalSummaryResponse(BaseModel):
    total_slips: int
    pending: int
    settled: int
    wins: int
    losses: int
    total_realized_profit: float
    avg_realized_profit: float

