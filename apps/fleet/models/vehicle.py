"""
Vehicle model for the fleet checklist system.
"""

from django.db import models
from simple_history.models import HistoricalRecords
from auditlog.registry import auditlog


class Vehicle(models.Model):
    """
    A fleet vehicle.

    **Business Rules:**
    - License plate is unique
    - `mileage` is the last known odometer reading; it follows checklist
      departures and arrivals (see apps.fleet.services.checklist_service)
    - Deleting a vehicle does not touch its checklists
    """

    brand = models.CharField(max_length=100)
    model = models.CharField(max_length=100)
    year = models.PositiveIntegerField(help_text="Year of manufacture")

    license_plate = models.CharField(
        max_length=20,
        unique=True,
        help_text="License plate number"
    )

    color = models.CharField(max_length=50, blank=True)

    mileage = models.PositiveIntegerField(
        default=0,
        help_text="Last recorded odometer reading (km)"
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    # History Tracking
    history = HistoricalRecords()

    class Meta:
        verbose_name = 'Vehicle'
        verbose_name_plural = 'Vehicles'
        ordering = ['brand', 'model']

    def __str__(self):
        return f"{self.brand} {self.model} ({self.license_plate})"

    @property
    def label(self):
        return f"{self.brand} {self.model}"

    @property
    def description(self):
        """Brand, model and year; what the diagnosis service gets to see."""
        return f"{self.brand} {self.model} {self.year}"


# Register for audit logging
auditlog.register(Vehicle)
