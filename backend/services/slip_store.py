"""
Per-user slip persistence.

Every operation takes an explicit ``username``; it is lower-cased before
it is stored or compared.  There is no authentication, only ownership:
a slip can be settled or deleted only by the username that saved it.

Reads never raise (errors are logged and an empty list returned).  Writes
raise :class:`SlipStoreError` subclasses that the API maps to HTTP codes.
"""

import logging
from datetime import datetime
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from backend.core.slip_config import STATUS_PENDING, STATUS_SETTLED
from backend.core.slip_math import Settlement
from backend.models import Leg, Slip

logger = logging.getLogger(__name__)


class SlipStoreError(Exception):
    """A write could not be completed."""


class SlipNotFound(SlipStoreError):
    pass


class SlipOwnershipError(SlipStoreError):
    pass


class SlipAlreadySettled(SlipStoreError):
    pass


def _require_username(username: str) -> str:
    if not username or not username.strip():
        raise ValueError("Username is required")
    return username.strip().lower()


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------

def load_slips(db: Session, username: str) -> List[Slip]:
    """Return *username*'s slips newest-first with legs loaded; [] on any failure."""
    if not username or not username.strip():
        return []
    try:
        return (
            db.query(Slip)
            .options(selectinload(Slip.legs))
            .filter(Slip.username == username.strip().lower())
            .order_by(Slip.created_at.desc(), Slip.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.error("Error loading slips for %s: %s", username, exc)
        db.rollback()
        return []


def get_owned_slip(db: Session, username: str, slip_id: int) -> Slip:
    """Fetch a slip and verify *username* owns it."""
    owner = _require_username(username)
    slip = db.query(Slip).filter(Slip.id == slip_id).first()
    if slip is None:
        raise SlipNotFound(f"Slip {slip_id} not found")
    if slip.username.lower() != owner:
        logger.warning("User %s attempted to modify slip %d owned by %s", owner, slip_id, slip.username)
        raise SlipOwnershipError("Unauthorized")
    return slip


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

def save_slip(db: Session, username: str, slip: Slip, legs: List[Leg]) -> Slip:
    """
    Insert a pending slip, then its legs.

    The two inserts commit separately.  If the legs insert fails the slip
    row is deleted again so no leg-less slip is left behind.
    """
    slip.username = _require_username(username)
    slip.status = STATUS_PENDING
    if slip.created_at is None:
        slip.created_at = datetime.utcnow()

    try:
        db.add(slip)
        db.commit()
        db.refresh(slip)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error saving slip for %s: %s", slip.username, exc)
        raise SlipStoreError("Failed to save slip") from exc

    slip_id = slip.id
    try:
        for leg in legs:
            leg.slip_id = slip_id
        slip.legs.extend(legs)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error saving legs for slip %d, removing slip: %s", slip_id, exc)
        db.query(Slip).filter(Slip.id == slip_id).delete(synchronize_session=False)
        db.commit()
        raise SlipStoreError("Failed to save slip legs") from exc

    db.refresh(slip)
    logger.info(
        "Slip %d saved for %s: %d legs, p=%.4f, %.2fx",
        slip.id, slip.username, len(legs), slip.p_slip, slip.payout_multiplier,
    )
    return slip


# ---------------------------------------------------------------------------
# Update / delete
# ---------------------------------------------------------------------------

def settle_slip(db: Session, username: str, slip_id: int, settlement: Settlement) -> Slip:
    """Apply settlement fields to a pending slip owned by *username*."""
    slip = get_owned_slip(db, username, slip_id)
    if slip.status != STATUS_PENDING:
        raise SlipAlreadySettled(f"Slip {slip_id} is already settled")
    if len(settlement.leg_results) != len(slip.legs):
        raise ValueError(
            f"Slip {slip_id} has {len(slip.legs)} legs, "
            f"got {len(settlement.leg_results)} results"
        )

    for leg, result in zip(slip.legs, settlement.leg_results):
        leg.result = result
    slip.slip_result = settlement.slip_result
    slip.realized_return = settlement.realized_return
    slip.realized_profit = settlement.realized_profit
    slip.status = STATUS_SETTLED
    slip.settled_at = datetime.utcnow()

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error updating slip %d: %s", slip_id, exc)
        raise SlipStoreError("Failed to update slip") from exc

    logger.info(
        "Slip %d settled: %s, profit %.2fu",
        slip_id, settlement.slip_result.upper(), settlement.realized_profit,
    )
    return slip


def delete_slip(db: Session, username: str, slip_id: int) -> None:
    """Delete a slip owned by *username*; legs go with it."""
    slip = get_owned_slip(db, username, slip_id)
    try:
        db.delete(slip)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Error deleting slip %d: %s", slip_id, exc)
        raise SlipStoreError("Failed to delete slip") from exc
    logger.info("Slip %d deleted by %s", slip_id, username)
