"""
Checklist trip lifecycle.

    departure ──► pending_arrival ──arrival──► completed
        │                          └─arrival──► problem (defect found at departure)
        └──(defect found)──► problem ──arrival──► problem

Once the arrival is stamped the status is final; only refuelings (anyone) and
the arrival mileage (admins) can still be corrected.
"""

import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.accounts.permissions import Action, can_perform, ensure_can_perform
from apps.fleet import catalog, tasks
from apps.fleet.exceptions import InvalidMileage, SubmissionWindowClosed
from apps.fleet.models import DailyChecklist, Vehicle
from apps.fleet.services import vehicle_service
from apps.fleet.services.fuel_ledger import normalize_refuelings

logger = logging.getLogger(__name__)


def ensure_submission_window_open(now=None):
    local_now = timezone.localtime(now or timezone.now())
    cutoff = settings.CHECKLIST_SUBMISSION_CUTOFF_HOUR
    if local_now.hour >= cutoff:
        raise SubmissionWindowClosed(
            f"Checklists can only be submitted before {cutoff:02d}:00."
        )


def derive_status(checklist_values):
    if catalog.problem_keys(checklist_values):
        return DailyChecklist.STATUS_PROBLEM
    return DailyChecklist.STATUS_PENDING_ARRIVAL


@transaction.atomic
def create_departure(*, actor, vehicle_id, departure_mileage, checklist_values,
                     driver_name="", notes="", now=None) -> DailyChecklist:
    """
    Record a vehicle departure.

    Rules:
    - Refused at or after the configured cutoff hour (local time).
    - Departure mileage may not be below the vehicle's current odometer.
    - A vehicle with a trip still awaiting arrival cannot depart again.
    - Any defective item flags the checklist as `problem` right away and
      queues a diagnosis once the transaction commits.
    """
    ensure_can_perform(actor, Action.RECORD_CHECKLIST)
    now = now or timezone.now()
    ensure_submission_window_open(now)

    driver_name = (driver_name or "").strip() or actor.display_name
    departure_mileage = vehicle_service.clean_mileage(departure_mileage, "departure_mileage")
    catalog.validate_values(checklist_values)

    vehicle = Vehicle.objects.select_for_update().get(pk=vehicle_id)

    if departure_mileage < vehicle.mileage:
        raise InvalidMileage({
            "departure_mileage": f"Departure mileage must be at least the current odometer ({vehicle.mileage} km)."
        })

    if DailyChecklist.objects.filter(vehicle_id=vehicle.pk, arrival_timestamp__isnull=True).exists():
        raise ValidationError({"vehicle": "This vehicle already has a trip awaiting arrival."})

    checklist = DailyChecklist(
        vehicle=vehicle,
        driver=actor,
        driver_name=driver_name,
        departure_timestamp=now,
        departure_mileage=departure_mileage,
        checklist_values=dict(checklist_values),
        notes=(notes or "").strip(),
        status=derive_status(checklist_values),
        date=timezone.localdate(now),
    )
    checklist.full_clean()
    checklist.save()

    vehicle.mileage = departure_mileage
    vehicle.save(update_fields=["mileage", "updated_at"])

    if checklist.status == DailyChecklist.STATUS_PROBLEM:
        checklist_id = checklist.pk
        transaction.on_commit(lambda: tasks.diagnose_checklist.delay(checklist_id))

    logger.info(
        "Departure recorded: checklist %s vehicle %s status %s by user %s",
        checklist.pk, vehicle.pk, checklist.status, actor.pk,
    )
    return checklist


@transaction.atomic
def record_arrival(*, actor, checklist_id, arrival_mileage=None, refuelings=None,
                   now=None) -> DailyChecklist:
    """
    Record (or correct) the arrival of a trip.

    First arrival stamps the arrival time, sets the arrival mileage and
    finalises the status from the stored inspection values. After that only
    admins may change the arrival mileage; other callers' mileage is ignored
    and only their refuelings are applied. `refuelings`, when given, replace
    the stored list.
    """
    ensure_can_perform(actor, Action.RECORD_CHECKLIST)
    checklist = DailyChecklist.objects.select_for_update().get(pk=checklist_id)

    new_refuelings = normalize_refuelings(refuelings) if refuelings is not None else None
    mileage_changed = False
    update_fields = ["updated_at"]

    if checklist.is_awaiting_arrival:
        if arrival_mileage is None:
            raise ValidationError({"arrival_mileage": "Arrival mileage is required."})
        arrival_mileage = vehicle_service.clean_mileage(arrival_mileage, "arrival_mileage")
        if arrival_mileage < checklist.departure_mileage:
            raise InvalidMileage({
                "arrival_mileage": f"Arrival mileage must be at least the departure mileage ({checklist.departure_mileage} km)."
            })
        checklist.arrival_mileage = arrival_mileage
        checklist.arrival_timestamp = now or timezone.now()
        checklist.status = (
            DailyChecklist.STATUS_PROBLEM if checklist.has_problem else DailyChecklist.STATUS_COMPLETED
        )
        mileage_changed = True
        update_fields += ["arrival_mileage", "arrival_timestamp", "status"]

    elif arrival_mileage is not None:
        arrival_mileage = vehicle_service.clean_mileage(arrival_mileage, "arrival_mileage")
        if arrival_mileage != checklist.arrival_mileage:
            if can_perform(actor, Action.CORRECT_ARRIVAL_MILEAGE, checklist):
                if arrival_mileage < checklist.departure_mileage:
                    raise InvalidMileage({
                        "arrival_mileage": f"Arrival mileage must be at least the departure mileage ({checklist.departure_mileage} km)."
                    })
                logger.info(
                    "Arrival mileage of checklist %s corrected from %s to %s by user %s",
                    checklist.pk, checklist.arrival_mileage, arrival_mileage, actor.pk,
                )
                checklist.arrival_mileage = arrival_mileage
                mileage_changed = True
                update_fields.append("arrival_mileage")
            else:
                logger.info(
                    "Ignoring arrival mileage change on finished checklist %s from non-admin user %s",
                    checklist.pk, actor.pk,
                )

    if new_refuelings is not None:
        checklist.refuelings = new_refuelings
        update_fields.append("refuelings")

    checklist.save(update_fields=update_fields)

    if mileage_changed:
        vehicle_service.record_odometer(checklist.vehicle_id, checklist.arrival_mileage)

    logger.info("Arrival recorded: checklist %s status %s by user %s", checklist.pk, checklist.status, actor.pk)
    return checklist


@transaction.atomic
def delete_checklist(*, actor, checklist_id):
    ensure_can_perform(actor, Action.DELETE_CHECKLIST)
    checklist = DailyChecklist.objects.get(pk=checklist_id)
    checklist.delete()
    logger.info("Checklist %s deleted by user %s", checklist_id, actor.pk)


def get_checklist(checklist_id) -> DailyChecklist:
    return DailyChecklist.objects.get(pk=checklist_id)


def list_checklists(*, vehicle_id=None, status=None, date_from=None, date_to=None):
    qs = DailyChecklist.objects.all()
    if vehicle_id is not None:
        qs = qs.filter(vehicle_id=vehicle_id)
    if status:
        qs = qs.filter(status=status)
    if date_from:
        qs = qs.filter(date__gte=date_from)
    if date_to:
        qs = qs.filter(date__lte=date_to)
    return qs.order_by("-departure_timestamp")


def get_today_checklist_for_vehicle(vehicle_id, today=None):
    """Latest checklist of the vehicle dated today (local), or None."""
    today = today or timezone.localdate()
    return (
        DailyChecklist.objects
        .filter(vehicle_id=vehicle_id, date=today)
        .order_by("-departure_timestamp")
        .first()
    )
