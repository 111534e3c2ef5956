"""
Fuel ledger derived from a checklist's refuelings.

Refuelings are embedded in the checklist as a list of
``{"amount": <currency>, "liters": <float>, "type": "gasolina" | "diesel"}``;
``amount`` is the flat total (price per liter times liters) computed when the
refueling is entered. Nothing here writes to the database.
"""

from decimal import Decimal, ROUND_HALF_UP

from django.core.exceptions import ValidationError

FUEL_TYPES = ('gasolina', 'diesel')

RATING_EXCELLENT = 'excellent'
RATING_GOOD = 'good'
RATING_FAIR = 'fair'
RATING_POOR = 'poor'

NOT_AVAILABLE = 'N/A'

_CENT = Decimal('0.01')


def normalize_refuelings(refuelings):
    """
    Validate and normalize a list of refueling entries.

    Each entry needs ``liters`` > 0 and a known ``type``. ``amount`` may be
    omitted when ``price_per_liter`` is given; it is then stored as the
    product. The per-liter price itself is not kept.
    """
    if refuelings is None:
        return []
    if not isinstance(refuelings, (list, tuple)):
        raise ValidationError({"refuelings": "Expected a list of refuelings."})

    normalized = []
    for index, entry in enumerate(refuelings):
        if not isinstance(entry, dict):
            raise ValidationError({"refuelings": f"Entry {index} must be an object."})

        fuel_type = entry.get("type")
        if fuel_type not in FUEL_TYPES:
            raise ValidationError({"refuelings": f"Entry {index}: fuel type must be one of {', '.join(FUEL_TYPES)}."})

        try:
            liters = float(entry.get("liters"))
        except (TypeError, ValueError):
            raise ValidationError({"refuelings": f"Entry {index}: liters must be a number."}) from None
        if liters <= 0:
            raise ValidationError({"refuelings": f"Entry {index}: liters must be greater than zero."})

        amount = entry.get("amount")
        if amount is None and entry.get("price_per_liter") is not None:
            try:
                amount = float(entry["price_per_liter"]) * liters
            except (TypeError, ValueError):
                raise ValidationError({"refuelings": f"Entry {index}: price per liter must be a number."}) from None
        try:
            amount = float(amount)
        except (TypeError, ValueError):
            raise ValidationError({"refuelings": f"Entry {index}: amount is required."}) from None
        if amount < 0:
            raise ValidationError({"refuelings": f"Entry {index}: amount cannot be negative."})

        normalized.append({
            "amount": round(amount, 2),
            "liters": liters,
            "type": fuel_type,
        })
    return normalized


def efficiency(distance, liters):
    """Kilometers per liter, or None when either side is not positive."""
    if distance is None or liters is None:
        return None
    if distance <= 0 or liters <= 0:
        return None
    return distance / liters


def efficiency_rating(value):
    # 12 km/l and up is "excellent"; the lower buckets are strict, so exactly 8.0 is "fair".
    if value is None:
        return None
    if value >= 12:
        return RATING_EXCELLENT
    if value > 8:
        return RATING_GOOD
    if value > 5:
        return RATING_FAIR
    return RATING_POOR


def format_efficiency(value):
    if value is None:
        return NOT_AVAILABLE
    return f"{value:.2f} km/l"


class FuelLedger:
    """Totals over one trip's refuelings, optionally combined with its distance."""

    def __init__(self, refuelings, distance=None):
        self.refuelings = list(refuelings or [])
        self.distance = distance

    def __len__(self):
        return len(self.refuelings)

    def total_liters(self):
        return sum(float(r.get("liters") or 0) for r in self.refuelings)

    def total_cost(self):
        total = sum((Decimal(str(r.get("amount") or 0)) for r in self.refuelings), Decimal('0'))
        return total.quantize(_CENT, rounding=ROUND_HALF_UP)

    def efficiency(self):
        return efficiency(self.distance, self.total_liters())

    def rating(self):
        return efficiency_rating(self.efficiency())

    def efficiency_display(self):
        return format_efficiency(self.efficiency())

    def liters_by_type(self):
        totals = {fuel_type: 0.0 for fuel_type in FUEL_TYPES}
        for r in self.refuelings:
            totals[r.get("type")] = totals.get(r.get("type"), 0.0) + float(r.get("liters") or 0)
        return totals
