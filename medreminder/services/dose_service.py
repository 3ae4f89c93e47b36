"""
Dose Service
============

Read and update side of scheduled doses:
- Today's doses and the next upcoming ones, annotated with medicine details
- Marking a dose taken (status + taken_at, scheduled_time untouched)
- Removing a dose
- Home dashboard counts
"""

import logging
from datetime import datetime, time, timedelta
from typing import Any, Dict, List, Optional

from medreminder.config import settings
from medreminder.core.exceptions import DoseNotFoundError
from medreminder.core.logging import log_audit
from medreminder.models.medicine import DoseStatus
from medreminder.services.dose_schedule_service import DoseScheduleService
from medreminder.services.record_store import (
    DOSES,
    MEDICINES,
    RecordStore,
    eq,
    gte,
    is_in,
    lt,
    to_utc,
)

logger = logging.getLogger(__name__)


class DoseService:
    """Queries and status changes for scheduled doses"""

    def __init__(self, store: RecordStore, scheduler: DoseScheduleService):
        self.store = store
        self.scheduler = scheduler

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_utc(now or self.scheduler.clock())

    def _day_bounds(self, now: datetime):
        """UTC bounds of the local calendar day containing now"""
        tz = self.scheduler.tz
        today = now.astimezone(tz).date()
        start = tz.localize(datetime.combine(today, time.min))
        end = tz.localize(datetime.combine(today + timedelta(days=1), time.min))
        return to_utc(start), to_utc(end)

    def get_dose(self, user_id: str, dose_id: str) -> Dict[str, Any]:
        rows = self.store.query(DOSES, [eq("id", dose_id), eq("user_id", user_id)], limit=1)
        if not rows:
            raise DoseNotFoundError(f"Dose {dose_id} not found")
        return rows[0]

    def today_doses(self, user_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
        now = self._now(now)
        start, end = self._day_bounds(now)
        doses = self.store.query(
            DOSES,
            [eq("user_id", user_id), gte("scheduled_time", start), lt("scheduled_time", end)],
            order_by="scheduled_time",
        )
        return self._with_medicine_details(doses)

    def upcoming_doses(
        self,
        user_id: str,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        now = self._now(now)
        doses = self.store.query(
            DOSES,
            [eq("user_id", user_id), gte("scheduled_time", now)],
            order_by="scheduled_time",
            limit=limit or settings.UPCOMING_DOSE_LIMIT,
        )
        return self._with_medicine_details(doses)

    def mark_taken(self, user_id: str, dose_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Mark a dose taken; a dose already taken keeps its original taken_at"""
        now = self._now(now)
        dose = self.get_dose(user_id, dose_id)
        if dose["status"] == DoseStatus.taken.value:
            return dose

        self.store.update_one(DOSES, dose_id, {
            "status": DoseStatus.taken.value,
            "taken_at": now,
        })
        log_audit("dose_taken", user_id, {"dose_id": dose_id, "medicine_id": dose["medicine_id"]})
        return self.get_dose(user_id, dose_id)

    def remove_dose(self, user_id: str, dose_id: str) -> None:
        dose = self.get_dose(user_id, dose_id)
        self.store.delete_one(DOSES, dose_id)
        log_audit("dose_removed", user_id, {"dose_id": dose_id, "medicine_id": dose["medicine_id"]})

    def dashboard(self, user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Home screen summary, computed after a generation pass"""
        now = self._now(now)
        self.scheduler.generate_for_all_active_medicines(user_id, now=now)

        active = self.store.query(MEDICINES, [eq("user_id", user_id), eq("active", True)])
        today = self.today_doses(user_id, now=now)
        upcoming = self.upcoming_doses(user_id, now=now)

        return {
            "active_medicines": len(active),
            "today_taken": sum(1 for dose in today if dose["status"] == DoseStatus.taken.value),
            "today_total": len(today),
            "upcoming_count": len(upcoming),
            "upcoming": upcoming,
        }

    def _with_medicine_details(self, doses: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        if not doses:
            return doses

        medicine_ids = {dose["medicine_id"] for dose in doses}
        medicines = {
            m["id"]: m for m in self.store.query(MEDICINES, [is_in("id", medicine_ids)])
        }
        for dose in doses:
            medicine = medicines.get(dose["medicine_id"], {})
            dose["medicine_name"] = medicine.get("medicine_name")
            dose["dosage"] = medicine.get("dosage")
        return doses
