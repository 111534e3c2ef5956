import logging

from django.db import transaction

from apps.accounts.permissions import Action, ensure_can_perform
from .models import DeletionReport

logger = logging.getLogger(__name__)


def list_deletion_reports(*, actor):
    ensure_can_perform(actor, Action.VIEW_DELETION_REPORTS)
    return list(DeletionReport.objects.order_by('-timestamp'))


@transaction.atomic
def delete_deletion_report(*, actor, report_id) -> None:
    """Irreversibly remove one report."""
    ensure_can_perform(actor, Action.DELETE_DELETION_REPORTS)
    report = DeletionReport.objects.get(pk=report_id)
    report.delete()
    logger.info("Deletion report %s removed by user %s", report_id, actor.pk)


@transaction.atomic
def delete_all_deletion_reports(*, actor) -> int:
    ensure_can_perform(actor, Action.DELETE_DELETION_REPORTS)
    count, _ = DeletionReport.objects.all().delete()
    logger.info("All %s deletion reports cleared by user %s", count, actor.pk)
    return count
