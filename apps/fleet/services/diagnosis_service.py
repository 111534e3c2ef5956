"""
Client for the external vehicle diagnosis service.

The service takes a short vehicle description plus a free-text summary of the
defects found at departure and answers with a free-text list of potential
problems:

    POST {DIAGNOSIS_SERVICE_URL}
    {"vehicleInfo": "...", "checklistResponses": "..."}
    -> {"potentialProblems": "..."}

Every failure is raised as DiagnosisUnavailable; callers decide whether that
matters (the checklist flow only logs it).
"""

import logging

import requests
from django.conf import settings

from apps.fleet import catalog
from apps.fleet.exceptions import DiagnosisUnavailable

logger = logging.getLogger(__name__)


def build_problem_summary(checklist_values, notes=""):
    """'Items with problems: Fuel Level, Documentation. <notes>'"""
    titles = [catalog.item_title(key) for key in catalog.problem_keys(checklist_values or {})]
    summary = f"Items with problems: {', '.join(titles) if titles else 'none'}."
    notes = (notes or "").strip()
    if notes:
        summary = f"{summary} {notes}"
    return summary


def diagnose_vehicle_problems(*, vehicle_info, checklist_responses) -> str:
    url = getattr(settings, "DIAGNOSIS_SERVICE_URL", "")
    if not url:
        raise DiagnosisUnavailable("Diagnosis service is not configured")

    headers = {"Accept": "application/json"}
    api_key = getattr(settings, "DIAGNOSIS_SERVICE_API_KEY", "")
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"

    payload = {
        "vehicleInfo": vehicle_info,
        "checklistResponses": checklist_responses,
    }

    try:
        response = requests.post(
            url,
            json=payload,
            headers=headers,
            timeout=getattr(settings, "DIAGNOSIS_SERVICE_TIMEOUT", 20),
        )
        response.raise_for_status()
        body = response.json()
    except requests.RequestException as exc:
        raise DiagnosisUnavailable(f"Diagnosis request failed: {exc}") from exc
    except ValueError as exc:
        raise DiagnosisUnavailable("Diagnosis service returned invalid JSON") from exc

    problems = body.get("potentialProblems") if isinstance(body, dict) else None
    if not isinstance(problems, str):
        raise DiagnosisUnavailable("Diagnosis response has no 'potentialProblems' text")

    logger.debug("Diagnosis received for %s (%d chars)", vehicle_info, len(problems))
    return problems.strip()
