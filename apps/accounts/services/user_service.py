import logging

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils.crypto import get_random_string

from apps.accounts.permissions import Action, ensure_can_perform
from apps.audit.models import DeletionReport

logger = logging.getLogger(__name__)


def list_users():
    User = get_user_model()
    return sorted(User.objects.all(), key=lambda u: u.display_name.lower())


@transaction.atomic
def create_user(*, created_by, username, email="", name="", role=None, password=None, is_active=True):
    """Create a fleet user.

    Only admins can create users. When no password is given a random one is
    generated and attached in-memory as `_raw_password` so the caller can show
    it once; it is never persisted in clear text.
    """
    User = get_user_model()
    ensure_can_perform(created_by, Action.MANAGE_USERS)

    username = (username or "").strip()
    email = (email or "").strip()
    name = (name or "").strip()
    role = role or User.ROLE_COLLABORATOR

    if not username:
        raise ValidationError({"username": "Username is required."})
    if role not in {User.ROLE_ADMIN, User.ROLE_COLLABORATOR}:
        raise ValidationError({"role": "Invalid role."})
    if User.objects.filter(username=username).exists():
        raise ValidationError({"username": "A user with this username already exists."})

    raw_password = password or get_random_string(12)
    user = User.objects.create_user(
        username=username,
        email=email,
        password=raw_password,
        name=name,
        role=role,
        is_active=bool(is_active),
        must_change_password=password is None,
    )
    user._raw_password = raw_password
    logger.info("User %s created with role %s by user %s", user.pk, role, created_by.pk)
    return user


@transaction.atomic
def change_role(*, actor, target_user, new_role, reason=""):
    """Promote or demote a user.

    Rules:
    - Only admins can change roles (re-checked here, never trusted from the client)
    - The last remaining admin cannot be demoted
    - A demotion requires a reason
    """
    User = get_user_model()

    if new_role not in {User.ROLE_ADMIN, User.ROLE_COLLABORATOR}:
        raise ValidationError({"role": "Invalid role."})

    # Lock admin rows so two concurrent demotions cannot both pass the count check
    list(User.objects.select_for_update().filter(role=User.ROLE_ADMIN))
    target_user = User.objects.select_for_update().get(pk=target_user.pk)

    ensure_can_perform(actor, Action.CHANGE_ROLE, target_user, new_role=new_role)

    if target_user.role == new_role:
        return target_user

    reason = (reason or "").strip()
    if target_user.role == User.ROLE_ADMIN and not reason:
        raise ValidationError({"reason": "A reason is required to demote an admin."})

    previous = target_user.role
    target_user.role = new_role
    target_user._change_reason = reason or None
    target_user.save(update_fields=["role", "updated_at"])

    logger.info(
        "User %s role changed from %s to %s by user %s",
        target_user.pk, previous, new_role, actor.pk,
    )
    return target_user


@transaction.atomic
def delete_user(*, actor, target_user, reason) -> DeletionReport:
    """Delete a user and write its deletion report as one all-or-nothing unit.

    Checklists recorded by the user keep their driver name; the driver link
    is cleared by the foreign key.
    """
    User = get_user_model()

    ensure_can_perform(actor, Action.DELETE_USER, target_user)

    reason = (reason or "").strip()
    if not reason:
        raise ValidationError({"reason": "A reason is required to delete a user."})

    target_user = User.objects.select_for_update().get(pk=target_user.pk)
    report = DeletionReport.objects.create(
        deleted_user_id=target_user.pk,
        deleted_user_name=target_user.display_name,
        admin_id=actor.pk,
        admin_name=actor.display_name,
        reason=reason,
    )
    deleted_id = target_user.pk
    target_user.delete()

    logger.info("User %s deleted by user %s (report %s)", deleted_id, actor.pk, report.pk)
    return report
