from datetime import datetime, time, timedelta

import pytest

from clinic.core.results import Rejection
from clinic.models.appointment import AppointmentStatus
from clinic.services.availability import AvailabilityCalculator, free_slots, slot_key
from tests.conftest import TOMORROW, at, make_appointment, make_doctor, make_patient


class TestSlotKey:

    @pytest.mark.parametrize("value", [
        "09:00", "09:00:00", "9:00", " 09:00 ", "09:00-10:00", "09:00:00.000",
        time(9, 0, 59), datetime(2030, 1, 8, 9, 0, 30),
    ])
    def test_equivalent_forms_share_a_key(self, value):
        assert slot_key(value) == time(9, 0)

    @pytest.mark.parametrize("value", ["", "morning", "25:00", None, 900])
    def test_unparseable_values(self, value):
        assert slot_key(value) is None


class TestFreeSlots:

    def test_booked_slot_removed_in_template_order(self):
        template = ["09:00", "09:30", "10:00"]
        assert free_slots(template, [datetime(2030, 1, 8, 9, 30)]) == ["09:00", "10:00"]

    def test_granularity_mismatch_still_matches(self):
        template = ["09:00:00", "09:30:00", "10:00:00"]
        booked = [datetime(2030, 1, 8, 9, 0, 45), time(10, 0)]
        assert free_slots(template, booked) == ["09:30:00"]

    def test_template_strings_are_returned_as_authored(self):
        template = ["14:00", "09:00:00", "11:00-12:00"]
        assert free_slots(template, []) == template

    def test_empty_template(self):
        assert free_slots([], [datetime(2030, 1, 8, 9, 0)]) == []
        assert free_slots(None, []) == []

    def test_unparseable_entries_are_never_offered(self):
        assert free_slots(["09:00", "lunch", "13:00"], []) == ["09:00", "13:00"]


class TestAvailabilityCalculator:

    def test_scenario_one_booking(self, db):
        """Template 09:00/09:30/10:00 with 09:30 booked leaves 09:00 and 10:00."""
        doctor = make_doctor(db, available_times=["09:00", "09:30", "10:00"])
        patient = make_patient(db)
        make_appointment(db, doctor, patient, at(9, 30))

        result = AvailabilityCalculator(db).compute_free_slots(doctor.id, TOMORROW)
        assert result.ok
        assert result.value == ["09:00", "10:00"]

    def test_no_bookings_returns_full_template(self, db):
        doctor = make_doctor(db, available_times=["09:00", "09:30", "10:00"])

        result = AvailabilityCalculator(db).compute_free_slots(doctor.id, TOMORROW)
        assert result.value == ["09:00", "09:30", "10:00"]

    def test_empty_template_is_not_an_error(self, db):
        doctor = make_doctor(db, available_times=[])

        result = AvailabilityCalculator(db).compute_free_slots(doctor.id, TOMORROW)
        assert result.ok
        assert result.value == []

    def test_only_scheduled_bookings_on_that_day_count(self, db):
        doctor = make_doctor(db, available_times=["09:00", "10:00", "14:00"])
        patient = make_patient(db)
        make_appointment(db, doctor, patient, at(9), status=AppointmentStatus.CANCELLED)
        make_appointment(db, doctor, patient, at(10), status=AppointmentStatus.COMPLETED)
        make_appointment(db, doctor, patient, at(14, day=TOMORROW + timedelta(days=1)))

        result = AvailabilityCalculator(db).compute_free_slots(doctor.id, TOMORROW)
        assert result.value == ["09:00", "14:00"]

    def test_other_doctors_bookings_do_not_count(self, db):
        doctor = make_doctor(db, available_times=["09:00"])
        other = make_doctor(db, email="wilson@clinic.test", available_times=["09:00"])
        patient = make_patient(db)
        make_appointment(db, other, patient, at(9))

        result = AvailabilityCalculator(db).compute_free_slots(doctor.id, TOMORROW)
        assert result.value == ["09:00"]

    def test_seconds_in_template_match_minute_bookings(self, db):
        doctor = make_doctor(db, available_times=["09:00:00", "09:30:00"])
        patient = make_patient(db)
        make_appointment(db, doctor, patient, at(9, 0))

        result = AvailabilityCalculator(db).compute_free_slots(doctor.id, TOMORROW)
        assert result.value == ["09:30:00"]

    def test_unknown_doctor(self, db):
        result = AvailabilityCalculator(db).compute_free_slots(999, TOMORROW)
        assert not result.ok
        assert result.reason == Rejection.DOCTOR_NOT_FOUND
