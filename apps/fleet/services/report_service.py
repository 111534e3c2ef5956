"""
Derived fleet statistics.

The aggregation functions take already-fetched checklists (and vehicles) and
do no I/O of their own; `dashboard_summary`, `consumption_report` and
`monthly_report` fetch a snapshot and feed it to them. Calendar logic uses the
local day stored on each checklist.
"""

import calendar
import math
from dataclasses import dataclass, field
from datetime import MAXYEAR, MINYEAR, date, datetime, time, timedelta
from decimal import Decimal

from django.conf import settings
from django.template.loader import render_to_string
from django.utils import timezone

from apps.fleet import catalog
from apps.fleet.models import DailyChecklist, Vehicle
from apps.fleet.services.fuel_ledger import FuelLedger, efficiency_rating, format_efficiency

VEHICLE_NOT_FOUND = "Vehicle not found"

# One year of slack on each side keeps local-to-UTC conversion in range.
MIN_YEAR = MINYEAR + 1
MAX_YEAR = MAXYEAR - 1


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def _vehicle_label(vehicle_map, vehicle_id):
    vehicle = vehicle_map.get(vehicle_id)
    return vehicle.label if vehicle else VEHICLE_NOT_FOUND


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------

def checklist_score(checklist):
    """Percentage of inspected items that are ok; 100 for an empty inspection."""
    items = checklist.checklist_items
    if not items:
        return 100
    ok = sum(1 for state in items.values() if state == catalog.ITEM_OK)
    return _round_half_up(ok / len(items) * 100)


def weekly_average(checklists, *, today=None, window_days=None):
    """
    Share of ok items over finished checklists dated within the last
    `window_days` days (today included), as a rounded percentage.

    With nothing to measure the fleet is considered fully compliant (100).
    """
    today = today or timezone.localdate()
    window_days = window_days or settings.CHECKLIST_WEEKLY_WINDOW_DAYS
    start = today - timedelta(days=window_days - 1)

    ok_items = 0
    total_items = 0
    for checklist in checklists:
        if checklist.status not in DailyChecklist.FINISHED_STATUSES:
            continue
        if not (start <= checklist.date <= today):
            continue
        items = checklist.checklist_items
        total_items += len(items)
        ok_items += sum(1 for state in items.values() if state == catalog.ITEM_OK)

    if total_items == 0:
        return 100
    return _round_half_up(ok_items / total_items * 100)


def consecutive_day_streak(checklists, *, today=None, max_days=None):
    """Number of consecutive days, counting back from today, with at least one checklist."""
    today = today or timezone.localdate()
    max_days = max_days or settings.CHECKLIST_STREAK_MAX_DAYS
    days = {checklist.date for checklist in checklists}

    streak = 0
    day = today
    while streak < max_days and day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


# ---------------------------------------------------------------------------
# Consumption
# ---------------------------------------------------------------------------

@dataclass
class TripRow:
    checklist_id: int
    vehicle_id: int
    vehicle_label: str
    driver_name: str
    date: object
    departure_timestamp: datetime
    distance: int
    liters: float
    cost: Decimal
    efficiency: float = None
    rating: str = None

    @property
    def efficiency_display(self):
        return format_efficiency(self.efficiency)


def is_measurable_trip(checklist):
    return (
        checklist.status in DailyChecklist.FINISHED_STATUSES
        and checklist.arrival_timestamp is not None
        and checklist.arrival_mileage is not None
        and checklist.departure_mileage is not None
        and (checklist.distance or 0) > 0
    )


def consumption_trips(checklists, vehicles):
    """One row per finished trip with a positive distance, newest first."""
    vehicle_map = {v.pk: v for v in vehicles}
    rows = []
    for checklist in checklists:
        if not is_measurable_trip(checklist):
            continue
        ledger = FuelLedger(checklist.refuelings, distance=checklist.distance)
        value = ledger.efficiency()
        rows.append(TripRow(
            checklist_id=checklist.pk,
            vehicle_id=checklist.vehicle_id,
            vehicle_label=_vehicle_label(vehicle_map, checklist.vehicle_id),
            driver_name=checklist.driver_name,
            date=checklist.date,
            departure_timestamp=checklist.departure_timestamp,
            distance=checklist.distance,
            liters=ledger.total_liters(),
            cost=ledger.total_cost(),
            efficiency=value,
            rating=efficiency_rating(value),
        ))
    rows.sort(key=lambda row: row.departure_timestamp, reverse=True)
    return rows


def consumption_report(*, vehicle_id=None):
    qs = DailyChecklist.objects.filter(status__in=DailyChecklist.FINISHED_STATUSES)
    if vehicle_id is not None:
        qs = qs.filter(vehicle_id=vehicle_id)
    return consumption_trips(qs, Vehicle.objects.all())


# ---------------------------------------------------------------------------
# Monthly report
# ---------------------------------------------------------------------------

@dataclass
class DefectLine:
    item_key: str
    title: str
    value: str
    label: str


@dataclass
class MonthlyEntry:
    checklist: DailyChecklist
    defects: list = field(default_factory=list)

    @property
    def notes(self):
        return self.checklist.notes


@dataclass
class MonthlyReport:
    vehicle: Vehicle
    year: int
    month: int
    entries: list
    generated_at: datetime

    @property
    def total(self):
        return len(self.entries)

    @property
    def with_problems(self):
        return sum(1 for e in self.entries if e.checklist.status == DailyChecklist.STATUS_PROBLEM)

    @property
    def period_label(self):
        return f"{calendar.month_name[self.month]} {self.year}"


def month_bounds(year, month):
    """Aware local datetimes for the first and last instant of the month."""
    if not 1 <= int(month) <= 12:
        raise ValueError(f"Invalid month: {month}")
    if not MIN_YEAR <= int(year) <= MAX_YEAR:
        raise ValueError(f"Invalid year: {year}")
    last_day = calendar.monthrange(year, month)[1]
    tz = timezone.get_current_timezone()
    start = timezone.make_aware(datetime(year, month, 1), tz)
    end = timezone.make_aware(datetime.combine(date(year, month, last_day), time.max), tz)
    return start, end


def defect_lines(checklist):
    states = checklist.checklist_items
    lines = []
    for key, value in (checklist.checklist_values or {}).items():
        if states.get(key) != catalog.ITEM_PROBLEM:
            continue
        lines.append(DefectLine(
            item_key=key,
            title=catalog.item_title(key),
            value=value,
            label=catalog.option_label(key, value),
        ))
    return lines


def build_monthly_report(vehicle, checklists, *, year, month, now=None):
    start, end = month_bounds(year, month)
    selected = [
        c for c in checklists
        if c.vehicle_id == vehicle.pk and start <= c.departure_timestamp <= end
    ]
    selected.sort(key=lambda c: c.departure_timestamp, reverse=True)
    return MonthlyReport(
        vehicle=vehicle,
        year=year,
        month=month,
        entries=[MonthlyEntry(checklist=c, defects=defect_lines(c)) for c in selected],
        generated_at=now or timezone.now(),
    )


def monthly_report(*, vehicle_id, year, month, now=None) -> MonthlyReport:
    vehicle = Vehicle.objects.get(pk=vehicle_id)
    start, end = month_bounds(year, month)
    checklists = DailyChecklist.objects.filter(
        vehicle_id=vehicle.pk,
        departure_timestamp__gte=start,
        departure_timestamp__lte=end,
    )
    return build_monthly_report(vehicle, checklists, year=year, month=month, now=now)


def render_monthly_report(report):
    return render_to_string("fleet/monthly_report.html", {"report": report})


def render_checklist(checklist):
    vehicle = Vehicle.objects.filter(pk=checklist.vehicle_id).first()
    items = []
    for item in catalog.items():
        value = (checklist.checklist_values or {}).get(item.key)
        items.append({
            "title": item.title,
            "label": item.label_for(value) if value is not None else "-",
            "problem": value is not None and item.is_problem(value),
        })
    ledger = checklist.ledger
    return render_to_string("fleet/checklist_print.html", {
        "checklist": checklist,
        "vehicle": vehicle,
        "vehicle_label": vehicle.label if vehicle else VEHICLE_NOT_FOUND,
        "items": items,
        "ledger": ledger,
        "efficiency": ledger.efficiency_display(),
        "generated_at": timezone.now(),
    })


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def vehicle_day_status(vehicles, checklists, *, today=None):
    """Per vehicle, the status of its latest checklist dated today (None if none)."""
    today = today or timezone.localdate()
    latest = {}
    for checklist in checklists:
        if checklist.date != today:
            continue
        current = latest.get(checklist.vehicle_id)
        if current is None or checklist.departure_timestamp > current.departure_timestamp:
            latest[checklist.vehicle_id] = checklist
    result = []
    for vehicle in vehicles:
        checklist = latest.get(vehicle.pk)
        result.append({
            "vehicle_id": vehicle.pk,
            "vehicle_label": vehicle.label,
            "license_plate": vehicle.license_plate,
            "status": checklist.status if checklist else None,
            "checklist_id": checklist.pk if checklist else None,
        })
    return result


def recent_checklists(checklists, vehicles, *, limit=5):
    """Latest checklists with their score and the trend against the vehicle's previous one."""
    vehicle_map = {v.pk: v for v in vehicles}
    ordered = sorted(checklists, key=lambda c: c.departure_timestamp, reverse=True)

    previous_score = {}
    by_vehicle = {}
    for checklist in ordered:
        by_vehicle.setdefault(checklist.vehicle_id, []).append(checklist)
    for vehicle_checklists in by_vehicle.values():
        for current, older in zip(vehicle_checklists, vehicle_checklists[1:]):
            previous_score[current.pk] = checklist_score(older)

    rows = []
    for checklist in ordered[:limit]:
        score = checklist_score(checklist)
        previous = previous_score.get(checklist.pk)
        if previous is None or previous == score:
            trend = "flat"
        else:
            trend = "up" if score > previous else "down"
        rows.append({
            "checklist_id": checklist.pk,
            "vehicle_label": _vehicle_label(vehicle_map, checklist.vehicle_id),
            "driver_name": checklist.driver_name,
            "date": checklist.date,
            "status": checklist.status,
            "score": score,
            "trend": trend,
        })
    return rows


def dashboard_summary(*, today=None):
    today = today or timezone.localdate()
    vehicles = list(Vehicle.objects.all())
    checklists = list(DailyChecklist.objects.all())

    problems_since = today - timedelta(days=30)
    return {
        "vehicle_count": len(vehicles),
        "checklists_this_month": sum(
            1 for c in checklists if c.date.year == today.year and c.date.month == today.month
        ),
        "in_transit_today": sum(
            1 for c in checklists
            if c.status == DailyChecklist.STATUS_PENDING_ARRIVAL and c.date == today
        ),
        "problems_last_30_days": sum(
            1 for c in checklists
            if c.status == DailyChecklist.STATUS_PROBLEM and c.date >= problems_since
        ),
        "weekly_average": weekly_average(checklists, today=today),
        "streak": consecutive_day_streak(checklists, today=today),
        "vehicle_status": vehicle_day_status(vehicles, checklists, today=today),
        "recent_checklists": recent_checklists(checklists, vehicles),
    }
