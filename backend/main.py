"""
FastAPI application for the slip EV journal
Leg/slip pricing, per-user slip journal, calibration reports
"""

from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Literal, Optional
import logging
import os

from backend.models import Base, engine, get_db
from backend.auth import get_username
from backend.core.leg_resolver import resolve_leg
from backend.core.odds_math import defined_or_none
from backend.services import slip_tracker
from backend.services.reports import calibration_report, journal_summary
from backend.services.slip_store import (
    SlipAlreadySettled,
    SlipNotFound,
    SlipOwnershipError,
    SlipStoreError,
    delete_slip,
    load_slips,
)
from backend.schemas import (
    CalibrationReportResponse,
    DeleteResponse,
    JournalSummaryResponse,
    LegInputPayload,
    ResolvedLegResponse,
    SensitivityRow,
    SettleRequest,
    SlipCreate,
    SlipQuoteRequest,
    SlipQuoteResponse,
    SlipResponse,
)

# Logging setup
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

DEFAULT_PAYOUT_MULTIPLIER = float(os.getenv("DEFAULT_PAYOUT_MULTIPLIER", "2.0"))
CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if o.strip()
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    logger.info("🚀 Starting Slip EV Journal")
    Base.metadata.create_all(bind=engine)
    yield
    logger.info("👋 Shutting down Slip EV Journal")


app = FastAPI(
    title="Slip EV Journal",
    description="Slip probability, EV/RTP pricing and calibration reports",
    version="1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _store_error(exc: Exception) -> HTTPException:
    """Translate slip store / validation errors into HTTP errors."""
    if isinstance(exc, SlipNotFound):
        return HTTPException(status_code=404, detail="Slip not found")
    if isinstance(exc, SlipOwnershipError):
        return HTTPException(status_code=403, detail="Unauthorized")
    if isinstance(exc, SlipAlreadySettled):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValueError):
        return HTTPException(status_code=422, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/")
async def root():
    """Health check"""
    return {
        "app": "Slip EV Journal",
        "version": "1.0",
        "status": "operational",
        "timestamp": datetime.utcnow().isoformat(),
    }


@app.get("/health")
async def health_check(db: Session = Depends(get_db)):
    """Health check endpoint"""
    health = {"status": "healthy", "database": "connected"}

    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error("Health check database error: %s", e)
        health["status"] = "degraded"
        health["database"] = f"error: {str(e)}"

    return health


# ============================================================================
# PRICING (no persistence)
# ============================================================================

@app.post("/api/price/leg", response_model=ResolvedLegResponse)
async def price_leg(payload: LegInputPayload):
    """Resolve one leg: override > de-vig pair > single odds."""
    return ResolvedLegResponse.from_resolved(resolve_leg(payload.to_leg_input()))


@app.post("/api/price/slip", response_model=SlipQuoteResponse)
async def price_slip(payload: SlipQuoteRequest):
    """
    Resolve 2-3 legs and price the slip under independence.

    Leg errors are returned inline; the slip fields are null when any leg
    is unresolved.
    """
    payout = (
        payload.payout_multiplier
        if payload.payout_multiplier is not None
        else DEFAULT_PAYOUT_MULTIPLIER
    )
    try:
        quote = slip_tracker.quote_slip([leg.to_leg_input() for leg in payload.legs], payout)
    except ValueError as exc:
        raise _store_error(exc)

    return SlipQuoteResponse(
        legs=[ResolvedLegResponse.from_resolved(leg) for leg in quote.legs],
        errors=quote.errors,
        combined_probability=defined_or_none(quote.result.combined_probability),
        ev=defined_or_none(quote.result.ev),
        rtp=defined_or_none(quote.result.rtp),
        payout_multiplier=payout,
        sensitivity=[
            SensitivityRow(
                adjustment_pct=row["adjustment_pct"],
                p_win=defined_or_none(row["p_win"]),
                ev=defined_or_none(row["ev"]),
            )
            for row in quote.sensitivity
        ],
    )


# ============================================================================
# SLIP JOURNAL
# ============================================================================

@app.get("/api/slips", response_model=List[SlipResponse])
async def list_slips(
    user: str = Depends(get_username),
    db: Session = Depends(get_db),
):
    """The caller's slips, newest first."""
    return load_slips(db, user)


@app.post("/api/slips", response_model=SlipResponse, status_code=201)
async def create_slip(
    payload: SlipCreate,
    user: str = Depends(get_username),
    db: Session = Depends(get_db),
):
    """Price and store a pending slip.  Rejected with 422 if any leg fails to resolve."""
    try:
        slip = slip_tracker.create_slip(
            db,
            user,
            [leg.to_leg_input() for leg in payload.legs],
            payload.payout_multiplier,
            descriptions=[leg.description for leg in payload.legs],
        )
    except (ValueError, SlipStoreError) as exc:
        raise _store_error(exc)
    return slip


@app.put("/api/slips/{slip_id}/settle", response_model=SlipResponse)
async def settle_slip(
    slip_id: int,
    payload: SettleRequest,
    user: str = Depends(get_username),
    db: Session = Depends(get_db),
):
    """Settle a pending slip.  win iff every leg hit; pending -> settled is final."""
    try:
        return slip_tracker.settle(db, user, slip_id, payload.leg_results)
    except (ValueError, SlipStoreError) as exc:
        raise _store_error(exc)


@app.delete("/api/slips/{slip_id}", response_model=DeleteResponse)
async def remove_slip(
    slip_id: int,
    user: str = Depends(get_username),
    db: Session = Depends(get_db),
):
    """Delete one of the caller's slips together with its legs."""
    try:
        delete_slip(db, user, slip_id)
    except (ValueError, SlipStoreError) as exc:
        raise _store_error(exc)
    return DeleteResponse(message="Slip deleted", slip_id=slip_id)


# ============================================================================
# REPORTS
# ============================================================================

@app.get("/api/reports/calibration", response_model=CalibrationReportResponse)
async def get_calibration_report(
    source: Literal["all", "override", "devigPair", "singleOdds"] = Query(default="all"),
    date_range_days: Optional[int] = Query(default=None),
    user: str = Depends(get_username),
    db: Session = Depends(get_db),
):
    """Leg-level and slip-level calibration over the caller's settled slips."""
    try:
        return calibration_report(db, user, source=source, date_range_days=date_range_days)
    except ValueError as exc:
        raise _store_error(exc)


@app.get("/api/reports/journal", response_model=JournalSummaryResponse)
async def get_journal_summary(
    user: str = Depends(get_username),
    db: Session = Depends(get_db),
):
    """Slip counts and realized profit in units."""
    return journal_summary(db, user)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler"""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
