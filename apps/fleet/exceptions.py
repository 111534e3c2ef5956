"""
Domain errors of the fleet app.

Validation failures stay Django ValidationErrors so forms, serializers and
the API error handler treat them uniformly.
"""

from django.core.exceptions import ValidationError


class InvalidMileage(ValidationError):
    """An odometer reading is lower than the one it must follow."""


class SubmissionWindowClosed(ValidationError):
    """Departures are not accepted after the daily cutoff hour."""


class UnknownItem(LookupError):
    """No checklist catalog item has the requested key."""


class DiagnosisUnavailable(Exception):
    """The external diagnosis service failed or is not configured."""
