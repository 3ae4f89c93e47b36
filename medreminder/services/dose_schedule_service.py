"""
Dose Schedule Service
=====================

Materializes pending dose records for a user's active medicines over a
bounded future window.

- Bulk pass: skip every medicine that already has a dose at or after "now",
  generate for the rest
- Single-medicine pass: walk the window day by day, one dose per
  interpreted hour, never in the past and never outside the medicine's
  start/end dates
- "now" is captured once per pass and threaded through every decision
- Storage failures are logged and degrade to "fewer doses this pass"; the
  next triggering load retries anything still uncovered
"""

import logging
import threading
import weakref
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Union

import pytz
from pydantic import ValidationError

from medreminder.config import settings
from medreminder.core.exceptions import RecordStoreError
from medreminder.models.medicine import DoseStatus
from medreminder.schemas.medicine_schemas import MedicineRecord
from medreminder.services.frequency_interpreter import interpret
from medreminder.services.record_store import (
    DOSES,
    MEDICINES,
    RecordStore,
    eq,
    gte,
    to_utc,
)

logger = logging.getLogger(__name__)

DEFAULT_HORIZON_DAYS = settings.DOSE_HORIZON_DAYS

# Entries live only while some pass holds a reference to the lock
_user_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
_user_locks_guard = threading.Lock()


def _lock_for(user_id: str) -> threading.Lock:
    with _user_locks_guard:
        lock = _user_locks.get(user_id)
        if lock is None:
            lock = threading.Lock()
            _user_locks[user_id] = lock
        return lock


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DoseScheduleService:
    """Generates future dose records for active medicines"""

    def __init__(
        self,
        store: RecordStore,
        tz: Optional[Union[str, pytz.BaseTzInfo]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        tz = tz or settings.DEFAULT_TIMEZONE
        self.tz = pytz.timezone(tz) if isinstance(tz, str) else tz
        self.clock = clock

    def generate_for_all_active_medicines(self, user_id: str, now: Optional[datetime] = None) -> int:
        """
        Generate doses for every active medicine that has no future dose.

        Returns:
            Number of dose records inserted
        """
        now = to_utc(now or self.clock())

        with _lock_for(user_id):
            try:
                medicines = self.store.query(MEDICINES, [eq("user_id", user_id), eq("active", True)])
            except RecordStoreError as e:
                logger.error(f"Error fetching medicines for user {user_id}: {str(e)}")
                return 0

            covered = self._medicines_with_future_doses(user_id, now)

            inserted = 0
            for row in medicines:
                if row["id"] in covered:
                    continue
                try:
                    medicine = MedicineRecord.model_validate(row)
                except ValidationError as e:
                    logger.warning(f"Skipping malformed medicine {row.get('id')}: {e.error_count()} error(s)")
                    continue
                inserted += self.generate_for_medicine(user_id, medicine, now=now)

        if inserted:
            logger.info(f"Generated {inserted} dose(s) for user {user_id}")
        return inserted

    def generate_for_medicine(
        self,
        user_id: str,
        medicine: Union[MedicineRecord, Dict[str, Any]],
        horizon_days: int = DEFAULT_HORIZON_DAYS,
        now: Optional[datetime] = None,
    ) -> int:
        """
        Insert the pending doses of one medicine for the next horizon_days.

        Returns:
            Number of dose records inserted
        """
        if not isinstance(medicine, MedicineRecord):
            medicine = MedicineRecord.model_validate(medicine)

        now = to_utc(now or self.clock())
        scheduled_times = self.schedule_times(medicine, now, horizon_days)
        if not scheduled_times:
            return 0

        doses = [
            {
                "user_id": user_id,
                "medicine_id": medicine.id,
                "scheduled_time": scheduled_time,
                "status": DoseStatus.pending.value,
            }
            for scheduled_time in scheduled_times
        ]

        try:
            written = self.store.insert_many(DOSES, doses)
        except RecordStoreError as e:
            logger.error(f"Error generating doses for medicine {medicine.id}: {str(e)}")
            return 0

        return len(written)

    def schedule_times(
        self,
        medicine: MedicineRecord,
        now: datetime,
        horizon_days: int = DEFAULT_HORIZON_DAYS,
    ) -> List[datetime]:
        """Compute the ascending UTC instants at which doses fall due"""
        now = to_utc(now)
        today = now.astimezone(self.tz).date()

        window_end = today + timedelta(days=horizon_days)
        if medicine.end_date is not None and medicine.end_date < window_end:
            window_end = medicine.end_date
        window_start = max(medicine.start_date, today)

        hours = interpret(medicine.frequency)
        times = []
        day = window_start
        while day <= window_end:
            for hour in hours:
                scheduled = self._localize(day, hour)
                if scheduled >= now:
                    times.append(scheduled)
            day += timedelta(days=1)
        return times

    def _localize(self, day: date, hour: int) -> datetime:
        local = self.tz.localize(datetime.combine(day, time(hour=hour)))
        return local.astimezone(timezone.utc)

    def _medicines_with_future_doses(self, user_id: str, now: datetime) -> Set[str]:
        try:
            doses = self.store.query(DOSES, [eq("user_id", user_id), gte("scheduled_time", now)])
        except RecordStoreError as e:
            logger.error(f"Error fetching future doses for user {user_id}: {str(e)}")
            return set()
        return {dose["medicine_id"] for dose in doses}
