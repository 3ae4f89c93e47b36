"""
Medicine Service
================

Registration and maintenance of a user's medicines:
- Manual add with default 30-day course
- Import of AI-extracted prescription candidates
- Edits, deactivation and deletion

Every mutation that can leave a medicine without future doses ends with a
generation pass, so the dose list is ready on the next read.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from medreminder.config import settings
from medreminder.core.exceptions import MedicineNotFoundError
from medreminder.core.logging import log_audit
from medreminder.models.medicine import DoseStatus
from medreminder.schemas.medicine_schemas import (
    ExtractedMedicine,
    MedicineCreate,
    MedicineUpdate,
)
from medreminder.services.dose_schedule_service import DoseScheduleService
from medreminder.services.record_store import (
    DOSES,
    MEDICINES,
    RecordStore,
    eq,
    gte,
    to_utc,
)

logger = logging.getLogger(__name__)

# Fields whose change invalidates already generated future doses
SCHEDULE_FIELDS = {"frequency", "start_date", "end_date", "active"}

# Editable fields backed by NOT NULL columns
NOT_NULL_FIELDS = {"medicine_name", "dosage", "frequency", "start_date", "active"}


class MedicineService:
    """CRUD over the medicines collection, kept in step with dose generation"""

    def __init__(self, store: RecordStore, scheduler: DoseScheduleService):
        self.store = store
        self.scheduler = scheduler

    def _now(self, now: Optional[datetime]) -> datetime:
        return to_utc(now or self.scheduler.clock())

    def _today(self, now: datetime):
        return now.astimezone(self.scheduler.tz).date()

    def get_medicine(self, user_id: str, medicine_id: str) -> Dict[str, Any]:
        rows = self.store.query(MEDICINES, [eq("id", medicine_id), eq("user_id", user_id)], limit=1)
        if not rows:
            raise MedicineNotFoundError(f"Medicine {medicine_id} not found")
        return rows[0]

    def list_medicines(
        self,
        user_id: str,
        search: Optional[str] = None,
        active_only: bool = False,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """List medicines newest first, after topping up the dose schedule"""
        now = self._now(now)
        self.scheduler.generate_for_all_active_medicines(user_id, now=now)

        filters = [eq("user_id", user_id)]
        if active_only:
            filters.append(eq("active", True))
        medicines = self.store.query(MEDICINES, filters, order_by="-created_at")

        if search:
            needle = search.strip().lower()
            medicines = [m for m in medicines if needle in (m["medicine_name"] or "").lower()]
        return medicines

    def add_medicine(
        self,
        user_id: str,
        payload: MedicineCreate,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Register a manually entered medicine and schedule its doses"""
        now = self._now(now)
        today = self._today(now)

        start_date = payload.start_date or today
        end_date = payload.end_date or today + timedelta(days=settings.DEFAULT_MEDICINE_DURATION_DAYS)
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")

        record = {
            "user_id": user_id,
            "prescription_id": None,
            "medicine_name": payload.medicine_name,
            "dosage": payload.dosage,
            "frequency": payload.frequency,
            "instructions": payload.instructions or "",
            "duration_days": (end_date - start_date).days,
            "start_date": start_date,
            "end_date": end_date,
            "active": True,
        }
        created = self.store.insert_many(MEDICINES, [record])[0]
        logger.info(f"Medicine {created['id']} added for user {user_id}")

        self.scheduler.generate_for_all_active_medicines(user_id, now=now)
        return created

    def import_extracted_medicines(
        self,
        user_id: str,
        medicines: List[ExtractedMedicine],
        prescription_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[Dict[str, Any]]:
        """
        Store medicines read off a prescription.

        Each course starts today and runs for its extracted duration, or the
        default course length when the prescription gives none.
        """
        if not medicines:
            return []

        now = self._now(now)
        today = self._today(now)

        records = []
        for med in medicines:
            duration = med.duration_days or settings.DEFAULT_MEDICINE_DURATION_DAYS
            records.append({
                "user_id": user_id,
                "prescription_id": prescription_id,
                "medicine_name": med.medicine_name,
                "dosage": med.dosage,
                "frequency": med.frequency,
                "instructions": med.instructions or "",
                "duration_days": duration,
                "start_date": today,
                "end_date": today + timedelta(days=duration),
                "active": True,
            })

        created = self.store.insert_many(MEDICINES, records)
        logger.info(f"Imported {len(created)} medicine(s) for user {user_id}")

        self.scheduler.generate_for_all_active_medicines(user_id, now=now)
        return created

    def update_medicine(
        self,
        user_id: str,
        medicine_id: str,
        payload: MedicineUpdate,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Apply an edit. Changing the schedule (frequency, dates, active)
        drops the medicine's future pending doses and regenerates them.
        """
        now = self._now(now)
        current = self.get_medicine(user_id, medicine_id)

        fields = payload.model_dump(exclude_unset=True)
        if not fields:
            return current

        cleared = sorted(NOT_NULL_FIELDS.intersection(k for k, v in fields.items() if v is None))
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")

        start_date = fields.get("start_date", current["start_date"])
        end_date = fields.get("end_date", current["end_date"])
        if end_date is not None and end_date < start_date:
            raise ValueError("end_date must not be before start_date")
        if "start_date" in fields or "end_date" in fields:
            fields["duration_days"] = (end_date - start_date).days if end_date else None

        self.store.update_one(MEDICINES, medicine_id, fields)
        updated = self.get_medicine(user_id, medicine_id)

        if SCHEDULE_FIELDS & fields.keys():
            removed = self.store.delete_many(DOSES, [
                eq("medicine_id", medicine_id),
                eq("status", DoseStatus.pending.value),
                gte("scheduled_time", now),
            ])
            logger.info(f"Cleared {removed} future dose(s) of medicine {medicine_id} after schedule change")
            # A future taken dose would make the bulk pass skip this medicine
            if updated["active"]:
                self.scheduler.generate_for_medicine(user_id, updated, now=now)

        return updated

    def delete_medicine(self, user_id: str, medicine_id: str) -> None:
        """Delete a medicine together with all of its doses"""
        self.get_medicine(user_id, medicine_id)

        removed = self.store.delete_many(DOSES, [eq("medicine_id", medicine_id), eq("user_id", user_id)])
        self.store.delete_one(MEDICINES, medicine_id)

        log_audit("medicine_deleted", user_id, {"medicine_id": medicine_id, "doses_removed": removed})
