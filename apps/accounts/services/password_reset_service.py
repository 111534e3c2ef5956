import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from django.contrib.auth.tokens import default_token_generator
from django.core.exceptions import ValidationError
from django.core.mail import send_mail
from django.db import transaction
from django.utils import timezone
from django.utils.crypto import get_random_string
from django.utils.encoding import force_bytes, force_str
from django.utils.http import urlsafe_base64_decode, urlsafe_base64_encode

from apps.accounts.permissions import Action, ensure_can_perform

logger = logging.getLogger(__name__)


@transaction.atomic
def force_reset_password(*, actor, target_user, reason="") -> str:
    """Admin-triggered reset of another user's password.

    Returns the temporary password; the target must change it on next login.
    """
    ensure_can_perform(actor, Action.RESET_PASSWORD, target_user)

    temp_password = get_random_string(12)

    target_user.set_password(temp_password)
    target_user.must_change_password = True
    target_user.password_last_reset_at = timezone.now()
    target_user._change_reason = (reason or "").strip() or None
    target_user.save(update_fields=["password", "must_change_password", "password_last_reset_at", "updated_at"])

    logger.info("Password of user %s reset by admin %s", target_user.pk, actor.pk)
    return temp_password


@transaction.atomic
def change_password(*, user, old_password, new_password):
    if not getattr(user, "is_authenticated", False):
        raise ValidationError({"__all__": "Authentication required."})
    if not user.check_password(old_password or ""):
        raise ValidationError({"old_password": "Current password is incorrect."})

    validate_password(new_password, user=user)

    user.set_password(new_password)
    user.must_change_password = False
    user.save(update_fields=["password", "must_change_password", "updated_at"])
    return user


def send_password_reset_email(*, email) -> bool:
    """Email a reset link to the active user owning `email`.

    Returns False when no such user exists; callers should not reveal that to
    the requester.
    """
    User = get_user_model()
    email = (email or "").strip()
    if not email:
        raise ValidationError({"email": "Email is required."})

    user = User.objects.filter(email__iexact=email, is_active=True).first()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return False

    uid = urlsafe_base64_encode(force_bytes(user.pk))
    token = default_token_generator.make_token(user)
    link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password/{uid}/{token}"

    send_mail(
        subject="Password reset",
        message=(
            f"Hello {user.display_name},\n\n"
            f"Use the link below to choose a new password:\n{link}\n\n"
            "If you did not request this, ignore this email."
        ),
        from_email=settings.DEFAULT_FROM_EMAIL,
        recipient_list=[user.email],
    )
    return True


@transaction.atomic
def confirm_password_reset(*, uidb64, token, new_password):
    """Set a new password from an emailed reset link.

    The token is bound to the current password hash, so it stops working
    once it has been used.
    """
    User = get_user_model()
    try:
        uid = force_str(urlsafe_base64_decode(uidb64 or ""))
        user = User.objects.select_for_update().get(pk=uid, is_active=True)
    except (TypeError, ValueError, OverflowError, User.DoesNotExist):
        user = None

    if user is None or not default_token_generator.check_token(user, token):
        raise ValidationError({"token": "The reset link is invalid or has expired."})

    validate_password(new_password, user=user)

    user.set_password(new_password)
    user.must_change_password = False
    user.save(update_fields=["password", "must_change_password", "updated_at"])
    logger.info("Password of user %s reset through emailed link", user.pk)
    return user
