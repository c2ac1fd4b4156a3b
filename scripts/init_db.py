#!/usr/bin/env python3
"""
Database initialization script
Creates the slip/leg tables and optionally seeds a demo journal
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Load .env file
from dotenv import load_dotenv
load_dotenv()

from backend.models import Base, engine, SessionLocal
from backend.core.leg_resolver import LegInput
from backend.services import slip_tracker
import logging
from sqlalchemy import text, inspect

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init_database(drop_existing: bool = False):
    """
    Initialize database tables

    Args:
        drop_existing: If True, drops all tables first (DANGER: data loss!)
    """
    logger.info("🔧 Initializing slip journal database...")

    if drop_existing:
        logger.warning("⚠️  Dropping all existing tables!")
        response = input("Are you sure? This will delete all data. Type 'yes' to confirm: ")
        if response.lower() != 'yes':
            logger.info("Aborted.")
            return

        Base.metadata.drop_all(bind=engine)
        logger.info("✅ Existing tables dropped")

    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database tables created successfully")

    inspector = inspect(engine)
    tables = inspector.get_table_names()
    logger.info("📋 Tables: %s", ", ".join(tables))

    return True


def seed_test_data(username: str = "demo"):
    """Add a pending and a settled demo slip for development"""
    logger.info("🌱 Seeding demo slips for %s...", username)

    db = SessionLocal()

    try:
        pending = slip_tracker.create_slip(
            db,
            username,
            [
                LegInput(side="over", over_odds="-125", under_odds="+105"),
                LegInput(single_odds="-115"),
            ],
            payout_multiplier=3.0,
            descriptions=["Points o24.5", "Rebounds u8.5"],
        )
        settled = slip_tracker.create_slip(
            db,
            username,
            [
                LegInput(probability_override="0.58"),
                LegInput(side="under", over_odds="-110", under_odds="-110"),
                LegInput(single_odds="+120"),
            ],
            payout_multiplier=6.0,
        )
        slip_tracker.settle(db, username, settled.id, ["hit", "hit", "miss"])

        logger.info("✅ Demo slips seeded (pending=%d, settled=%d)", pending.id, settled.id)

    except Exception as e:
        logger.error("❌ Error seeding data: %s", e)
        db.rollback()

    finally:
        db.close()


def check_connection():
    """Test database connection"""
    try:
        db = SessionLocal()
        db.execute(text("SELECT 1"))
        db.close()
        logger.info("✅ Database connection successful")
        return True
    except Exception as e:
        logger.error("❌ Database connection failed: %s", e)
        return False


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Initialize slip journal database")
    parser.add_argument("--drop", action="store_true", help="Drop existing tables (DANGER!)")
    parser.add_argument("--seed", action="store_true", help="Seed demo slips")
    parser.add_argument("--user", default="demo", help="Username for seeded slips")
    parser.add_argument("--check", action="store_true", help="Only check connection")

    args = parser.parse_args()

    if args.check:
        check_connection()
    else:
        if check_connection():
            init_database(drop_existing=args.drop)

            if args.seed:
                seed_test_data(args.user)

            logger.info("🎉 Database initialization complete!")
        else:
            logger.error("Cannot initialize database - connection failed")
            sys.exit(1)
