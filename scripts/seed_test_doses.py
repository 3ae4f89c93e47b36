#!/usr/bin/env python3
"""
Seed Test Doses

Inserts a handful of pending doses in the next few hours for one medicine,
so reminders and the "upcoming" list can be exercised without waiting for
the regular schedule.

Usage:
    python scripts/seed_test_doses.py --user-id USER --medicine-id MEDICINE
"""

import argparse
import logging
import os
import sys
from datetime import datetime, timedelta, timezone

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from medreminder.core.exceptions import RecordStoreError  # noqa: E402
from medreminder.database import SessionLocal  # noqa: E402
from medreminder.models.medicine import DoseStatus  # noqa: E402
from medreminder.services.record_store import DOSES, SqlAlchemyRecordStore  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SEED_OFFSETS = [
    timedelta(minutes=2),
    timedelta(minutes=30),
    timedelta(hours=2),
    timedelta(hours=4),
    timedelta(hours=6),
]


def seed_test_doses(store, user_id: str, medicine_id: str, now: datetime):
    doses = [
        {
            "user_id": user_id,
            "medicine_id": medicine_id,
            "scheduled_time": now + offset,
            "status": DoseStatus.pending.value,
        }
        for offset in SEED_OFFSETS
    ]
    return store.insert_many(DOSES, doses)


def main():
    parser = argparse.ArgumentParser(description="Seed near-future pending doses")
    parser.add_argument("--user-id", required=True)
    parser.add_argument("--medicine-id", required=True)
    args = parser.parse_args()

    db = SessionLocal()
    try:
        created = seed_test_doses(
            SqlAlchemyRecordStore(db), args.user_id, args.medicine_id, datetime.now(timezone.utc)
        )
        logger.info(f"Successfully created {len(created)} test doses")
    except RecordStoreError as e:
        logger.error(f"Error seeding doses: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
