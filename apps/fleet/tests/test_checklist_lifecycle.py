"""
Tests for the checklist trip lifecycle.

Validates:
- Departure preconditions (cutoff hour, odometer ordering, one open trip)
- Status derivation at departure and arrival
- Arrival corrections (admin-only mileage, wholesale refueling replacement)
- Vehicle odometer kept in step, atomically
- Post-commit diagnosis for trips flagged at departure
"""

from datetime import date
from unittest import mock

import pytest
from django.core.exceptions import PermissionDenied, ValidationError
from django.db import DatabaseError

from apps.fleet.exceptions import DiagnosisUnavailable, InvalidMileage, SubmissionWindowClosed
from apps.fleet.models import DailyChecklist, Vehicle
from apps.fleet.services import checklist_service
from tests.factories import DailyChecklistFactory, local_datetime, values_with

MORNING = local_datetime(2024, 3, 11, 8, 30)


def depart(actor, vehicle, mileage=None, values=None, now=MORNING, **kwargs):
    return checklist_service.create_departure(
        actor=actor,
        vehicle_id=vehicle.pk,
        driver_name=kwargs.pop('driver_name', 'Carlos Driver'),
        departure_mileage=vehicle.mileage if mileage is None else mileage,
        checklist_values=values or values_with(),
        now=now,
        **kwargs,
    )


@pytest.mark.django_db
class TestDeparture:

    def test_clean_departure_is_pending_arrival(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle, mileage=15200, notes="  Route A  ")

        assert checklist.status == DailyChecklist.STATUS_PENDING_ARRIVAL
        assert checklist.date == date(2024, 3, 11)
        assert checklist.driver == collaborator
        assert checklist.notes == "Route A"
        assert checklist.arrival_timestamp is None
        vehicle.refresh_from_db()
        assert vehicle.mileage == 15200

    def test_driver_name_defaults_to_actor(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle, driver_name='')
        assert checklist.driver_name == "Carlos Driver"

    def test_date_is_local_calendar_day(self, collaborator, vehicle):
        # 21:30 in Sao Paulo is already the next day in UTC
        checklist = depart(collaborator, vehicle, now=local_datetime(2024, 3, 10, 21, 30))
        assert checklist.date == date(2024, 3, 10)

    def test_departure_below_odometer_rejected_without_writes(self, collaborator, vehicle):
        with pytest.raises(InvalidMileage):
            depart(collaborator, vehicle, mileage=14999)

        assert DailyChecklist.objects.count() == 0
        vehicle.refresh_from_db()
        assert vehicle.mileage == 15000

    def test_cutoff_hour_closes_submissions(self, collaborator, vehicle):
        with pytest.raises(SubmissionWindowClosed):
            depart(collaborator, vehicle, now=local_datetime(2024, 3, 11, 22, 0))
        assert DailyChecklist.objects.count() == 0

    def test_last_minute_before_cutoff_accepted(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle, now=local_datetime(2024, 3, 11, 21, 59))
        assert checklist.pk is not None

    def test_incomplete_inspection_rejected(self, collaborator, vehicle):
        values = values_with()
        del values['documentation']
        with pytest.raises(ValidationError):
            depart(collaborator, vehicle, values=values)

    def test_unknown_vehicle(self, collaborator):
        with pytest.raises(Vehicle.DoesNotExist):
            checklist_service.create_departure(
                actor=collaborator, vehicle_id=424242, departure_mileage=10,
                checklist_values=values_with(), now=MORNING,
            )

    def test_one_open_trip_per_vehicle(self, collaborator, admin_user, vehicle):
        first = depart(collaborator, vehicle)
        with pytest.raises(ValidationError):
            depart(admin_user, vehicle, now=local_datetime(2024, 3, 11, 14, 0))

        checklist_service.record_arrival(actor=collaborator, checklist_id=first.pk, arrival_mileage=15100)
        second = depart(admin_user, vehicle, mileage=15100, now=local_datetime(2024, 3, 11, 14, 0))
        assert second.status == DailyChecklist.STATUS_PENDING_ARRIVAL

    def test_inactive_user_cannot_record(self, collaborator, vehicle):
        collaborator.is_active = False
        collaborator.save()
        with pytest.raises(PermissionDenied):
            depart(collaborator, vehicle)

    def test_vehicle_odometer_and_checklist_written_together(self, collaborator, vehicle):
        with mock.patch.object(Vehicle, 'save', side_effect=DatabaseError("disk full")):
            with pytest.raises(DatabaseError):
                depart(collaborator, vehicle, mileage=15500)

        assert DailyChecklist.objects.count() == 0
        vehicle.refresh_from_db()
        assert vehicle.mileage == 15000


@pytest.mark.django_db
class TestDiagnosis:

    def test_problem_departure_is_flagged_and_diagnosed(self, collaborator, vehicle, django_capture_on_commit_callbacks):
        with mock.patch(
            'apps.fleet.services.diagnosis_service.diagnose_vehicle_problems',
            return_value="Refuel before leaving",
        ) as diagnose:
            with django_capture_on_commit_callbacks(execute=True):
                checklist = depart(
                    collaborator, vehicle,
                    values=values_with(fuel_level='empty'),
                    notes="Gauge light on",
                )

        assert checklist.status == DailyChecklist.STATUS_PROBLEM
        diagnose.assert_called_once()
        kwargs = diagnose.call_args.kwargs
        assert kwargs['vehicle_info'] == "Toyota Corolla 2023"
        assert "Fuel Level" in kwargs['checklist_responses']
        assert "Gauge light on" in kwargs['checklist_responses']

        checklist.refresh_from_db()
        assert checklist.ai_diagnosis == "Refuel before leaving"

    def test_diagnosis_failure_does_not_block_departure(self, collaborator, vehicle, django_capture_on_commit_callbacks):
        with mock.patch(
            'apps.fleet.services.diagnosis_service.diagnose_vehicle_problems',
            side_effect=DiagnosisUnavailable("service down"),
        ):
            with django_capture_on_commit_callbacks(execute=True):
                checklist = depart(collaborator, vehicle, values=values_with(documentation='missing'))

        checklist.refresh_from_db()
        assert checklist.status == DailyChecklist.STATUS_PROBLEM
        assert checklist.ai_diagnosis == ""
        vehicle.refresh_from_db()
        assert vehicle.mileage == checklist.departure_mileage

    def test_clean_departure_queues_nothing(self, collaborator, vehicle, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks() as callbacks:
            depart(collaborator, vehicle)
        assert callbacks == []


@pytest.mark.django_db
class TestArrival:

    def test_arrival_completes_clean_trip(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle)
        arrived_at = local_datetime(2024, 3, 11, 18, 0)

        checklist = checklist_service.record_arrival(
            actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15250,
            refuelings=[{'price_per_liter': 6.0, 'liters': 20, 'type': 'gasolina'}],
            now=arrived_at,
        )

        assert checklist.status == DailyChecklist.STATUS_COMPLETED
        assert checklist.arrival_timestamp == arrived_at
        assert checklist.distance == 250
        assert checklist.refuelings == [{'amount': 120.0, 'liters': 20.0, 'type': 'gasolina'}]
        assert checklist.ledger.efficiency() == 12.5
        vehicle.refresh_from_db()
        assert vehicle.mileage == 15250

    def test_arrival_after_departure_cutoff_accepted(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle)
        late = local_datetime(2024, 3, 11, 23, 15)

        checklist = checklist_service.record_arrival(
            actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15080, now=late,
        )

        assert checklist.status == DailyChecklist.STATUS_COMPLETED
        assert checklist.arrival_timestamp == late

    def test_trip_flagged_at_departure_stays_problem(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle, values=values_with(tire_condition='worn'))
        checklist = checklist_service.record_arrival(
            actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15010,
        )
        assert checklist.status == DailyChecklist.STATUS_PROBLEM
        assert checklist.arrival_timestamp is not None

    def test_arrival_below_departure_rejected_without_mutation(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle, mileage=15100)

        with pytest.raises(InvalidMileage):
            checklist_service.record_arrival(actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15099)

        checklist.refresh_from_db()
        assert checklist.arrival_mileage is None
        assert checklist.status == DailyChecklist.STATUS_PENDING_ARRIVAL
        vehicle.refresh_from_db()
        assert vehicle.mileage == 15100

    def test_first_arrival_requires_mileage(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle)
        with pytest.raises(ValidationError):
            checklist_service.record_arrival(actor=collaborator, checklist_id=checklist.pk)

    def test_collaborator_can_only_touch_refuelings_after_arrival(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle)
        checklist_service.record_arrival(
            actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15300,
            refuelings=[{'amount': 50, 'liters': 8, 'type': 'diesel'}],
        )
        first_arrival = DailyChecklist.objects.get(pk=checklist.pk).arrival_timestamp

        updated = checklist_service.record_arrival(
            actor=collaborator, checklist_id=checklist.pk, arrival_mileage=16000,
            refuelings=[{'amount': 90, 'liters': 15, 'type': 'gasolina'}],
        )

        assert updated.arrival_mileage == 15300
        assert updated.arrival_timestamp == first_arrival
        assert updated.status == DailyChecklist.STATUS_COMPLETED
        assert updated.refuelings == [{'amount': 90.0, 'liters': 15.0, 'type': 'gasolina'}]
        vehicle.refresh_from_db()
        assert vehicle.mileage == 15300

    def test_admin_corrects_arrival_mileage(self, collaborator, admin_user, vehicle):
        checklist = depart(collaborator, vehicle)
        checklist_service.record_arrival(actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15300)

        corrected = checklist_service.record_arrival(
            actor=admin_user, checklist_id=checklist.pk, arrival_mileage=15280,
        )

        assert corrected.arrival_mileage == 15280
        assert corrected.status == DailyChecklist.STATUS_COMPLETED
        vehicle.refresh_from_db()
        assert vehicle.mileage == 15280

    def test_admin_correction_still_ordered(self, collaborator, admin_user, vehicle):
        checklist = depart(collaborator, vehicle)
        checklist_service.record_arrival(actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15300)

        with pytest.raises(InvalidMileage):
            checklist_service.record_arrival(actor=admin_user, checklist_id=checklist.pk, arrival_mileage=14000)

        assert DailyChecklist.objects.get(pk=checklist.pk).arrival_mileage == 15300

    def test_refuelings_untouched_when_not_supplied(self, collaborator, admin_user, vehicle):
        checklist = depart(collaborator, vehicle)
        checklist_service.record_arrival(
            actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15300,
            refuelings=[{'amount': 50, 'liters': 8, 'type': 'diesel'}],
        )
        updated = checklist_service.record_arrival(actor=admin_user, checklist_id=checklist.pk, arrival_mileage=15310)
        assert len(updated.refuelings) == 1

    def test_arrival_and_odometer_written_together(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle)

        with mock.patch(
            'apps.fleet.services.vehicle_service.record_odometer',
            side_effect=DatabaseError("connection lost"),
        ):
            with pytest.raises(DatabaseError):
                checklist_service.record_arrival(actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15300)

        checklist.refresh_from_db()
        assert checklist.is_awaiting_arrival
        assert checklist.status == DailyChecklist.STATUS_PENDING_ARRIVAL

    def test_arrival_of_orphaned_trip(self, collaborator, vehicle):
        checklist = depart(collaborator, vehicle)
        Vehicle.objects.filter(pk=vehicle.pk).delete()

        checklist = checklist_service.record_arrival(actor=collaborator, checklist_id=checklist.pk, arrival_mileage=15100)
        assert checklist.status == DailyChecklist.STATUS_COMPLETED

    def test_round_trip_reload(self, collaborator, vehicle):
        created = depart(collaborator, vehicle, values=values_with(lights_status='some_issues'))
        checklist_service.record_arrival(
            actor=collaborator, checklist_id=created.pk, arrival_mileage=15080,
            refuelings=[{'amount': 75.5, 'liters': 12.5, 'type': 'diesel'}],
        )

        reloaded = checklist_service.get_checklist(created.pk)

        assert reloaded.checklist_items == created.checklist_items
        assert reloaded.checklist_items['lights_status'] == 'problem'
        assert reloaded.refuelings == [{'amount': 75.5, 'liters': 12.5, 'type': 'diesel'}]
        assert reloaded.status == DailyChecklist.STATUS_PROBLEM


@pytest.mark.django_db
class TestQueriesAndDeletion:

    def test_today_checklist_for_vehicle(self, vehicle):
        DailyChecklistFactory(vehicle=vehicle, departure_timestamp=local_datetime(2024, 3, 10, 9), finished=True)
        latest = DailyChecklistFactory(vehicle=vehicle, departure_timestamp=local_datetime(2024, 3, 11, 9))

        found = checklist_service.get_today_checklist_for_vehicle(vehicle.pk, today=date(2024, 3, 11))
        assert found == latest
        assert checklist_service.get_today_checklist_for_vehicle(vehicle.pk, today=date(2024, 3, 12)) is None

    def test_list_checklists_filters(self, vehicle):
        other = DailyChecklistFactory(departure_timestamp=local_datetime(2024, 3, 9, 9), finished=True)
        mine = DailyChecklistFactory(vehicle=vehicle, departure_timestamp=local_datetime(2024, 3, 11, 9))

        assert list(checklist_service.list_checklists(vehicle_id=vehicle.pk)) == [mine]
        assert list(checklist_service.list_checklists(status=DailyChecklist.STATUS_COMPLETED)) == [other]
        assert list(checklist_service.list_checklists(date_from=date(2024, 3, 10))) == [mine]
        assert list(checklist_service.list_checklists()) == [mine, other]

    def test_only_admins_delete_checklists(self, collaborator, admin_user, vehicle):
        checklist = DailyChecklistFactory(vehicle=vehicle)

        with pytest.raises(PermissionDenied):
            checklist_service.delete_checklist(actor=collaborator, checklist_id=checklist.pk)

        checklist_service.delete_checklist(actor=admin_user, checklist_id=checklist.pk)
        assert not DailyChecklist.objects.filter(pk=checklist.pk).exists()
