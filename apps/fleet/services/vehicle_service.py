import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from apps.accounts.permissions import Action, ensure_can_perform
from apps.fleet.models import Vehicle

logger = logging.getLogger(__name__)

VEHICLE_FIELDS = ("brand", "model", "year", "license_plate", "color", "mileage")
REQUIRED_FIELDS = ("brand", "model", "year", "license_plate")


def clean_mileage(value, field="mileage"):
    try:
        mileage = int(value)
    except (TypeError, ValueError):
        raise ValidationError({field: "Mileage must be a whole number."}) from None
    if mileage < 0:
        raise ValidationError({field: "Mileage cannot be negative."})
    return mileage


def list_vehicles():
    return list(Vehicle.objects.all())


def get_vehicle(vehicle_id) -> Vehicle:
    """Raises Vehicle.DoesNotExist for unknown ids."""
    return Vehicle.objects.get(pk=vehicle_id)


def _clean_payload(data):
    payload = {}
    for field in VEHICLE_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if isinstance(value, str):
            value = value.strip()
        payload[field] = value
    if "license_plate" in payload and payload["license_plate"]:
        payload["license_plate"] = payload["license_plate"].upper()
    return payload


@transaction.atomic
def save_vehicle(*, actor, data, vehicle_id=None) -> Vehicle:
    """
    Insert a vehicle when `vehicle_id` is None, otherwise merge `data` into it.

    Rules:
    - On insert, blank `color` and zero `mileage` are left at their defaults
      instead of being written.
    - On update only the supplied fields change.
    - Lowering `mileage` through an edit is allowed as an explicit correction
      and logged.
    """
    ensure_can_perform(actor, Action.MANAGE_VEHICLES)
    payload = _clean_payload(data or {})

    if vehicle_id is None:
        missing = [f for f in REQUIRED_FIELDS if not payload.get(f)]
        if missing:
            raise ValidationError({f: "This field is required." for f in missing})
        if not payload.get("color"):
            payload.pop("color", None)
        if not payload.get("mileage"):
            payload.pop("mileage", None)
        vehicle = Vehicle(**payload)
    else:
        vehicle = Vehicle.objects.select_for_update().get(pk=vehicle_id)
        if payload.get("mileage") is not None:
            payload["mileage"] = clean_mileage(payload["mileage"])
        new_mileage = payload.get("mileage")
        if new_mileage is not None and new_mileage < vehicle.mileage:
            logger.warning(
                "Vehicle %s mileage corrected downwards from %s to %s by user %s",
                vehicle.pk, vehicle.mileage, new_mileage, actor.pk,
            )
        for field, value in payload.items():
            if field == "mileage" and value is None:
                continue
            setattr(vehicle, field, value)

    if Vehicle.objects.filter(license_plate=vehicle.license_plate).exclude(pk=vehicle.pk).exists():
        raise ValidationError({"license_plate": "A vehicle with this license plate already exists."})

    vehicle.full_clean()
    vehicle.save()
    logger.info("Vehicle %s saved by user %s", vehicle.pk, actor.pk)
    return vehicle


@transaction.atomic
def delete_vehicle(*, actor, vehicle_id):
    """Hard delete. Checklists pointing at the vehicle are left in place."""
    ensure_can_perform(actor, Action.MANAGE_VEHICLES)
    vehicle = Vehicle.objects.get(pk=vehicle_id)
    vehicle.delete()
    logger.info("Vehicle %s deleted by user %s", vehicle_id, actor.pk)


def record_odometer(vehicle_id, mileage):
    """Set the vehicle's current odometer; called inside checklist transactions."""
    vehicle = Vehicle.objects.select_for_update().filter(pk=vehicle_id).first()
    if vehicle is None:
        logger.warning("Odometer update skipped: vehicle %s not found", vehicle_id)
        return None
    vehicle.mileage = mileage
    vehicle.save(update_fields=["mileage", "updated_at"])
    return vehicle
