"""
Daily checklist: one record per vehicle trip.

Lifecycle: a departure creates the record (`pending_arrival`, or `problem`
when any inspected item is defective); the arrival completes it
(`completed` or `problem`). Transitions live in
apps.fleet.services.checklist_service.
"""

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from simple_history.models import HistoricalRecords
from auditlog.registry import auditlog

from apps.fleet import catalog


class DailyChecklist(models.Model):

    STATUS_PENDING_ARRIVAL = 'pending_arrival'
    STATUS_COMPLETED = 'completed'
    STATUS_PROBLEM = 'problem'

    STATUS_CHOICES = [
        (STATUS_PENDING_ARRIVAL, 'Pending arrival'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_PROBLEM, 'Problem'),
    ]

    FINISHED_STATUSES = (STATUS_COMPLETED, STATUS_PROBLEM)

    FUEL_GASOLINE = 'gasolina'
    FUEL_DIESEL = 'diesel'
    FUEL_TYPES = (FUEL_GASOLINE, FUEL_DIESEL)

    # Orphans are tolerated: deleting a vehicle leaves its trips in place.
    vehicle = models.ForeignKey(
        'fleet.Vehicle',
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name='checklists',
    )

    driver_name = models.CharField(max_length=150)
    driver = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='checklists',
        help_text="User who recorded the departure"
    )

    departure_timestamp = models.DateTimeField(db_index=True)
    arrival_timestamp = models.DateTimeField(null=True, blank=True)
    departure_mileage = models.PositiveIntegerField()
    arrival_mileage = models.PositiveIntegerField(null=True, blank=True)

    # Raw inspection values keyed by catalog item key; ok/problem is derived.
    checklist_values = models.JSONField(default=dict)

    notes = models.TextField(blank=True)

    status = models.CharField(
        max_length=20,
        choices=STATUS_CHOICES,
        default=STATUS_PENDING_ARRIVAL,
        db_index=True,
    )

    # Local calendar day of the departure; set once at creation.
    date = models.DateField(db_index=True)

    ai_diagnosis = models.TextField(blank=True)

    # [{"amount": 250.0, "liters": 42.5, "type": "diesel"}, ...]
    refuelings = models.JSONField(default=list, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords()

    class Meta:
        verbose_name = 'Daily checklist'
        verbose_name_plural = 'Daily checklists'
        ordering = ['-departure_timestamp']
        indexes = [
            models.Index(fields=['vehicle', 'date'], name='fleet_chk_vehicle_date_idx'),
            models.Index(fields=['status', 'date'], name='fleet_chk_status_date_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(arrival_mileage__isnull=True) | Q(arrival_mileage__gte=F('departure_mileage')),
                name='arrival_mileage_not_below_departure',
            ),
            models.CheckConstraint(
                condition=Q(status__in=['pending_arrival', 'completed', 'problem']),
                name='checklist_status_valid',
            ),
            models.UniqueConstraint(
                fields=['vehicle'],
                condition=Q(arrival_timestamp__isnull=True),
                name='one_open_trip_per_vehicle',
            ),
        ]

    def __str__(self):
        return f"Checklist {self.pk} - vehicle {self.vehicle_id} on {self.date}"

    @property
    def checklist_items(self):
        return catalog.classify(self.checklist_values or {})

    @property
    def problem_items(self):
        return catalog.problem_keys(self.checklist_values or {})

    @property
    def has_problem(self):
        return bool(self.problem_items)

    @property
    def is_awaiting_arrival(self):
        return self.arrival_timestamp is None

    @property
    def is_finished(self):
        return self.status in self.FINISHED_STATUSES

    @property
    def distance(self):
        if self.arrival_mileage is None or self.departure_mileage is None:
            return None
        return self.arrival_mileage - self.departure_mileage

    @property
    def ledger(self):
        from apps.fleet.services.fuel_ledger import FuelLedger
        return FuelLedger(self.refuelings or [], distance=self.distance)


auditlog.register(DailyChecklist)
