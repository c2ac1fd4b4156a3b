"""
Database models for the slip EV journal
SQLAlchemy ORM; SQLite by default, any SQLAlchemy URL via DATABASE_URL
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Float,
    DateTime,
    Text,
    ForeignKey,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, sessionmaker, relationship
from datetime import datetime
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./slip_journal.db")

# SQLite connections are thread-bound unless told otherwise; FastAPI runs
# sync dependencies in a thread pool.
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, echo=False, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class Slip(Base):
    """A priced multi-leg slip owned by one username"""

    __tablename__ = "slips"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, nullable=False, index=True)  # always lower-case
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    # Pricing at creation
    payout_multiplier = Column(Float, nullable=False)  # total return on a win, stake included
    p_slip = Column(Float)  # joint win probability (independent legs)
    ev = Column(Float)  # per 1-unit stake
    rtp = Column(Float)

    # Lifecycle
    status = Column(String, nullable=False, default="pending", index=True)  # "pending" | "settled"
    slip_result = Column(String)  # "win" | "loss", null while pending
    realized_return = Column(Float)  # payout_multiplier on a win, else 0
    realized_profit = Column(Float)  # realized_return - 1
    settled_at = Column(DateTime)

    legs = relationship(
        "Leg",
        back_populates="slip",
        cascade="all, delete-orphan",
        order_by="Leg.leg_index",
    )


class Leg(Base):
    """One leg of a slip, with the raw inputs that produced its probability"""

    __tablename__ = "legs"

    id = Column(Integer, primary_key=True, index=True)
    slip_id = Column(Integer, ForeignKey("slips.id", ondelete="CASCADE"), nullable=False, index=True)
    leg_index = Column(Integer, nullable=False)  # 0-based

    description = Column(Text)
    chosen_side = Column(String, nullable=False)  # "over" | "under"
    probability_source = Column(String, nullable=False)  # "override" | "devigPair" | "singleOdds"
    p_chosen = Column(Float, nullable=False)
    p_imp = Column(Float)
    p_fair = Column(Float)
    vig_percent = Column(Float)

    # Inputs used, verbatim
    probability_override_input = Column(String)
    single_odds_input = Column(String)
    over_odds_input = Column(String)
    under_odds_input = Column(String)

    # Outcome (filled on settlement)
    result = Column(String)  # "hit" | "miss"

    slip = relationship("Slip", back_populates="legs")

    __table_args__ = (UniqueConstraint("slip_id", "leg_index", name="_slip_leg_index_uc"),)


# Create all tables
def init_db():
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine)
    print("✅ Database tables created")


if __name__ == "__main__":
    init_db()
