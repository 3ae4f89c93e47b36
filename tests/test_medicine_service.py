"""
Medicine service: add, import, edit and delete keep the dose schedule in step
"""

from datetime import timedelta

import pytest

from medreminder.core.exceptions import MedicineNotFoundError
from medreminder.schemas.medicine_schemas import (
    ExtractedMedicine,
    MedicineCreate,
    MedicineUpdate,
)
from medreminder.services.record_store import DOSES, MEDICINES, eq

from conftest import NOW, TODAY, USER_ID, OTHER_USER_ID


def _doses_of(store, medicine_id):
    return store.query(DOSES, [eq("medicine_id", medicine_id)], order_by="scheduled_time")


class TestAddMedicine:

    def test_defaults_to_thirty_day_course_from_today(self, medicine_service, store):
        created = medicine_service.add_medicine(
            USER_ID,
            MedicineCreate(medicine_name="Paracetamol", dosage="500mg", frequency="twice daily"),
            now=NOW,
        )

        assert created["start_date"] == TODAY
        assert created["end_date"] == TODAY + timedelta(days=30)
        assert created["duration_days"] == 30
        assert created["active"] is True

        doses = _doses_of(store, created["id"])
        assert len(doses) == 15
        assert all(d["status"] == "pending" for d in doses)
        assert all(d["scheduled_time"] >= NOW for d in doses)

    def test_explicit_dates_are_kept(self, medicine_service):
        created = medicine_service.add_medicine(
            USER_ID,
            MedicineCreate(
                medicine_name="Ibuprofen",
                dosage="200mg",
                frequency="once",
                start_date=TODAY + timedelta(days=1),
                end_date=TODAY + timedelta(days=4),
            ),
            now=NOW,
        )

        assert created["start_date"] == TODAY + timedelta(days=1)
        assert created["duration_days"] == 3

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            MedicineCreate(
                medicine_name="Ibuprofen",
                dosage="200mg",
                frequency="once",
                start_date=TODAY,
                end_date=TODAY - timedelta(days=1),
            )

    def test_past_end_date_alone_rejected(self, medicine_service, store):
        """start_date defaults to today, so an end_date already past is an inverted range"""
        with pytest.raises(ValueError):
            medicine_service.add_medicine(
                USER_ID,
                MedicineCreate(
                    medicine_name="Ibuprofen",
                    dosage="200mg",
                    frequency="once",
                    end_date=TODAY - timedelta(days=5),
                ),
                now=NOW,
            )

        assert store.query(MEDICINES) == []

    def test_end_date_today_allowed(self, medicine_service):
        created = medicine_service.add_medicine(
            USER_ID,
            MedicineCreate(medicine_name="Ibuprofen", dosage="200mg", frequency="at bedtime", end_date=TODAY),
            now=NOW,
        )

        assert created["duration_days"] == 0


class TestImportExtracted:

    def test_duration_sets_course_length(self, medicine_service, store):
        created = medicine_service.import_extracted_medicines(
            USER_ID,
            [ExtractedMedicine(medicine_name="Amoxicillin", dosage="250mg", frequency="3 times daily", duration_days=5)],
            prescription_id="rx-1",
            now=NOW,
        )

        assert len(created) == 1
        medicine = created[0]
        assert medicine["prescription_id"] == "rx-1"
        assert medicine["start_date"] == TODAY
        assert medicine["end_date"] == TODAY + timedelta(days=5)
        assert _doses_of(store, medicine["id"])

    def test_missing_duration_uses_default(self, medicine_service):
        created = medicine_service.import_extracted_medicines(
            USER_ID,
            [ExtractedMedicine(medicine_name="Cetirizine", dosage="10mg", frequency="at bedtime")],
            now=NOW,
        )

        assert created[0]["duration_days"] == 30
        assert created[0]["end_date"] == TODAY + timedelta(days=30)

    def test_several_medicines_each_get_doses(self, medicine_service, store):
        created = medicine_service.import_extracted_medicines(
            USER_ID,
            [
                ExtractedMedicine(medicine_name="A", frequency="once"),
                ExtractedMedicine(medicine_name="B", frequency="every 8 hours"),
            ],
            now=NOW,
        )

        assert len(created) == 2
        for medicine in created:
            assert _doses_of(store, medicine["id"])

    def test_empty_list(self, medicine_service):
        assert medicine_service.import_extracted_medicines(USER_ID, [], now=NOW) == []


class TestListMedicines:

    def test_lists_own_medicines_and_tops_up_doses(self, medicine_service, store, make_medicine):
        mine = make_medicine(medicine_name="Metformin", end_date=TODAY + timedelta(days=30))
        make_medicine(medicine_name="Other", user_id=OTHER_USER_ID)

        rows = medicine_service.list_medicines(USER_ID, now=NOW)

        assert [r["id"] for r in rows] == [mine["id"]]
        assert _doses_of(store, mine["id"])

    def test_search_is_case_insensitive(self, medicine_service, make_medicine):
        make_medicine(medicine_name="Metformin")
        make_medicine(medicine_name="Lisinopril")

        rows = medicine_service.list_medicines(USER_ID, search="METF", now=NOW)

        assert [r["medicine_name"] for r in rows] == ["Metformin"]

    def test_active_only(self, medicine_service, make_medicine):
        make_medicine(medicine_name="Current")
        make_medicine(medicine_name="Stopped", active=False)

        rows = medicine_service.list_medicines(USER_ID, active_only=True, now=NOW)

        assert [r["medicine_name"] for r in rows] == ["Current"]


class TestUpdateMedicine:

    def test_frequency_change_regenerates_future_doses(self, medicine_service, store, make_medicine):
        medicine = make_medicine(frequency="once", end_date=TODAY + timedelta(days=30))
        medicine_service.scheduler.generate_for_all_active_medicines(USER_ID, now=NOW)
        assert {d["scheduled_time"].hour for d in _doses_of(store, medicine["id"])} == {9}

        medicine_service.update_medicine(USER_ID, medicine["id"], MedicineUpdate(frequency="at bedtime"), now=NOW)

        hours = {d["scheduled_time"].hour for d in _doses_of(store, medicine["id"])}
        assert hours == {21}

    def test_taken_doses_survive_schedule_change(self, medicine_service, store, make_medicine):
        medicine = make_medicine(frequency="once", end_date=TODAY + timedelta(days=30))
        medicine_service.scheduler.generate_for_all_active_medicines(USER_ID, now=NOW)
        first = _doses_of(store, medicine["id"])[0]
        store.update_one(DOSES, first["id"], {"status": "taken", "taken_at": NOW})

        medicine_service.update_medicine(USER_ID, medicine["id"], MedicineUpdate(frequency="twice"), now=NOW)

        taken = store.query(DOSES, [eq("id", first["id"])])
        assert taken and taken[0]["status"] == "taken"
        # New schedule is generated around the taken dose, same instant written once
        doses = _doses_of(store, medicine["id"])
        assert {d["scheduled_time"].hour for d in doses} == {9, 21}
        assert len(doses) == len({d["scheduled_time"] for d in doses}) == 15

    def test_deactivation_clears_future_pending_doses(self, medicine_service, store, make_medicine):
        medicine = make_medicine(frequency="twice", end_date=TODAY + timedelta(days=30))
        medicine_service.scheduler.generate_for_all_active_medicines(USER_ID, now=NOW)
        assert _doses_of(store, medicine["id"])

        updated = medicine_service.update_medicine(USER_ID, medicine["id"], MedicineUpdate(active=False), now=NOW)

        assert updated["active"] is False
        assert _doses_of(store, medicine["id"]) == []

    def test_cosmetic_edit_keeps_doses(self, medicine_service, store, make_medicine):
        medicine = make_medicine(frequency="twice", end_date=TODAY + timedelta(days=30))
        medicine_service.scheduler.generate_for_all_active_medicines(USER_ID, now=NOW)
        before = [d["id"] for d in _doses_of(store, medicine["id"])]

        updated = medicine_service.update_medicine(
            USER_ID, medicine["id"], MedicineUpdate(instructions="with food"), now=NOW
        )

        assert updated["instructions"] == "with food"
        assert [d["id"] for d in _doses_of(store, medicine["id"])] == before

    def test_shortened_course_recomputes_duration(self, medicine_service, store, make_medicine):
        medicine = make_medicine(frequency="once", end_date=TODAY + timedelta(days=30))

        updated = medicine_service.update_medicine(
            USER_ID, medicine["id"], MedicineUpdate(end_date=TODAY + timedelta(days=2)), now=NOW
        )

        assert updated["duration_days"] == 2
        assert len(_doses_of(store, medicine["id"])) == 2

    def test_invalid_range_rejected(self, medicine_service, make_medicine):
        medicine = make_medicine(start_date=TODAY)

        with pytest.raises(ValueError):
            medicine_service.update_medicine(
                USER_ID, medicine["id"], MedicineUpdate(end_date=TODAY - timedelta(days=3)), now=NOW
            )

    @pytest.mark.parametrize("field", ["start_date", "frequency", "dosage", "medicine_name", "active"])
    def test_null_for_required_field_rejected(self, medicine_service, store, make_medicine, field):
        medicine = make_medicine(frequency="twice", end_date=TODAY + timedelta(days=30))

        with pytest.raises(ValueError):
            medicine_service.update_medicine(
                USER_ID, medicine["id"], MedicineUpdate.model_validate({field: None}), now=NOW
            )

        unchanged = medicine_service.get_medicine(USER_ID, medicine["id"])
        assert unchanged["frequency"] == "twice"
        assert unchanged["start_date"] == TODAY
        assert unchanged["active"] is True

    def test_null_end_date_makes_course_open_ended(self, medicine_service, make_medicine):
        medicine = make_medicine(frequency="once", end_date=TODAY + timedelta(days=30))

        updated = medicine_service.update_medicine(
            USER_ID, medicine["id"], MedicineUpdate(end_date=None), now=NOW
        )

        assert updated["end_date"] is None
        assert updated["duration_days"] is None

    def test_other_users_medicine_not_found(self, medicine_service, make_medicine):
        medicine = make_medicine(user_id=OTHER_USER_ID)

        with pytest.raises(MedicineNotFoundError):
            medicine_service.update_medicine(USER_ID, medicine["id"], MedicineUpdate(dosage="1g"), now=NOW)


class TestDeleteMedicine:

    def test_delete_removes_all_doses(self, medicine_service, store, make_medicine):
        medicine = make_medicine(frequency="twice", end_date=TODAY + timedelta(days=30))
        medicine_service.scheduler.generate_for_all_active_medicines(USER_ID, now=NOW)
        assert _doses_of(store, medicine["id"])

        medicine_service.delete_medicine(USER_ID, medicine["id"])

        assert _doses_of(store, medicine["id"]) == []
        with pytest.raises(MedicineNotFoundError):
            medicine_service.get_medicine(USER_ID, medicine["id"])

    def test_delete_missing(self, medicine_service):
        with pytest.raises(MedicineNotFoundError):
            medicine_service.delete_medicine(USER_ID, "does-not-exist")

    def test_delete_other_users_medicine(self, medicine_service, make_medicine):
        medicine = make_medicine(user_id=OTHER_USER_ID)

        with pytest.raises(MedicineNotFoundError):
            medicine_service.delete_medicine(USER_ID, medicine["id"])

        assert medicine_service.get_medicine(OTHER_USER_ID, medicine["id"])
