import uuid

from django.db import models
from django.utils import timezone


class DeletionReport(models.Model):
    """Audit record written whenever an admin removes a user account.

    Ids and names are copied rather than linked: the deleted user is gone and
    the acting admin may be removed later, but the report must stay readable.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    deleted_user_id = models.BigIntegerField(db_index=True)
    deleted_user_name = models.CharField(max_length=150)
    admin_id = models.BigIntegerField(db_index=True)
    admin_name = models.CharField(max_length=150)
    reason = models.TextField()
    timestamp = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ['-timestamp']
        verbose_name = 'Deletion report'
        verbose_name_plural = 'Deletion reports'

    def __str__(self):
        return f"{self.deleted_user_name} removed by {self.admin_name}"
