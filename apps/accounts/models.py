"""
Custom User model for the fleet checklist system.

Every person using the system is a User with one of two roles:
Admin (manages vehicles, users and audit reports) or Collaborator
(drivers recording departure/arrival checklists).
"""

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.core.exceptions import ValidationError
from simple_history.models import HistoricalRecords


class User(AbstractUser):
    """
    Custom User model extending Django's AbstractUser.

    **Business Rules:**
    - Role is either 'admin' or 'collaborator'
    - The system must never be left without an active admin
      (enforced by the authorization policy, see apps.accounts.permissions)
    - History tracked for role changes
    """

    ROLE_ADMIN = 'admin'
    ROLE_COLLABORATOR = 'collaborator'

    ROLE_CHOICES = [
        (ROLE_ADMIN, 'Admin'),
        (ROLE_COLLABORATOR, 'Collaborator'),
    ]

    name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Display name shown on checklists and reports"
    )

    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_COLLABORATOR,
        db_index=True,
        help_text="Access level within the fleet"
    )

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    must_change_password = models.BooleanField(
        default=False,
        db_index=True,
        help_text="If true, user must set a new password before using the system",
    )

    password_last_reset_at = models.DateTimeField(null=True, blank=True)

    # History tracking
    history = HistoricalRecords()

    class Meta:
        ordering = ['name', 'username']
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['role', 'is_active'], name='accounts_user_role_act_idx'),
            models.Index(fields=['email'], name='accounts_user_email_idx'),
        ]

    def __str__(self):
        return f"{self.display_name} ({self.get_role_display()})"

    def clean(self):
        super().clean()
        valid_roles = {r for (r, _) in self.ROLE_CHOICES}
        if self.role not in valid_roles:
            raise ValidationError({'role': 'Invalid role.'})

    @property
    def display_name(self):
        return self.name or self.get_full_name() or self.username

    @property
    def is_admin(self):
        return self.role == self.ROLE_ADMIN

    @property
    def is_collaborator(self):
        return self.role == self.ROLE_COLLABORATOR

    @classmethod
    def active_admin_count(cls):
        return cls.objects.filter(role=cls.ROLE_ADMIN, is_active=True).count()
