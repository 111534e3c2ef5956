import logging

from celery import shared_task

from apps.fleet.exceptions import DiagnosisUnavailable
from apps.fleet.models import DailyChecklist, Vehicle
from apps.fleet.services import diagnosis_service

logger = logging.getLogger(__name__)


@shared_task(bind=True, ignore_result=True)
def diagnose_checklist(self, checklist_id):
    """Ask the diagnosis service about a checklist flagged at departure.

    Runs after the departure has been committed; a failure here leaves the
    checklist without a diagnosis and nothing else.
    """
    checklist = DailyChecklist.objects.filter(pk=checklist_id).first()
    if checklist is None:
        logger.warning("Diagnosis skipped: checklist %s no longer exists", checklist_id)
        return
    if not checklist.has_problem:
        return

    vehicle = Vehicle.objects.filter(pk=checklist.vehicle_id).first()
    vehicle_info = vehicle.description if vehicle else f"Vehicle {checklist.vehicle_id}"
    summary = diagnosis_service.build_problem_summary(checklist.checklist_values, checklist.notes)

    try:
        diagnosis = diagnosis_service.diagnose_vehicle_problems(
            vehicle_info=vehicle_info,
            checklist_responses=summary,
        )
    except DiagnosisUnavailable as e:
        logger.warning("Diagnosis for checklist %s failed: %s", checklist_id, e)
        return

    checklist.ai_diagnosis = diagnosis
    checklist.save(update_fields=["ai_diagnosis", "updated_at"])
    logger.info("Diagnosis stored for checklist %s", checklist_id)
