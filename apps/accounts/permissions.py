"""
Single authorization policy for the fleet system.

Every entry point (API views, services, management commands) asks the same
question through `can_perform` / `ensure_can_perform`; API permission classes
are thin wrappers around it. Client-side role checks are advisory only.
"""

import enum

from django.core.exceptions import PermissionDenied
from rest_framework.permissions import BasePermission


class Action(enum.Enum):
    MANAGE_VEHICLES = 'manage_vehicles'
    RECORD_CHECKLIST = 'record_checklist'
    CORRECT_ARRIVAL_MILEAGE = 'correct_arrival_mileage'
    DELETE_CHECKLIST = 'delete_checklist'
    MANAGE_USERS = 'manage_users'
    CHANGE_ROLE = 'change_role'
    DELETE_USER = 'delete_user'
    RESET_PASSWORD = 'reset_password'
    VIEW_DELETION_REPORTS = 'view_deletion_reports'
    DELETE_DELETION_REPORTS = 'delete_deletion_reports'


# Actions open to every active user; everything else needs the admin role.
COLLABORATOR_ACTIONS = frozenset({Action.RECORD_CHECKLIST})


def _denial_reason(actor, action, target=None, *, new_role=None):
    """Return why `actor` may not perform `action`, or None when allowed."""
    from apps.accounts.models import User

    if actor is None or not getattr(actor, 'is_authenticated', False):
        return "Authentication required."
    if not getattr(actor, 'is_active', False):
        return "Inactive users cannot perform this action."

    if action in COLLABORATOR_ACTIONS:
        return None

    if getattr(actor, 'role', None) != User.ROLE_ADMIN:
        return "Only admins can perform this action."

    if action == Action.DELETE_USER:
        if target is not None and target.pk == actor.pk:
            return "You cannot delete your own account."

    if action == Action.CHANGE_ROLE:
        demoting = (
            target is not None
            and target.role == User.ROLE_ADMIN
            and target.is_active
            and new_role is not None
            and new_role != User.ROLE_ADMIN
        )
        if demoting and User.active_admin_count() <= 1:
            return "The last remaining admin cannot be demoted."

    return None


def can_perform(actor, action, target=None, **context):
    """Advisory check: True when `actor` may perform `action` on `target`."""
    return _denial_reason(actor, action, target, **context) is None


def ensure_can_perform(actor, action, target=None, **context):
    """Mandatory check: raise PermissionDenied when the action is not allowed."""
    reason = _denial_reason(actor, action, target, **context)
    if reason is not None:
        raise PermissionDenied(reason)


class IsFleetUser(BasePermission):
    """Any active, authenticated user."""

    def has_permission(self, request, view):
        return can_perform(request.user, Action.RECORD_CHECKLIST)


class IsFleetAdmin(BasePermission):
    """Admin users only; `required_action` on the view narrows the question."""

    def has_permission(self, request, view):
        action = getattr(view, 'required_action', None) or Action.MANAGE_VEHICLES
        return can_perform(request.user, action)
