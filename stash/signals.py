import logging

from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver

from .invites import accept_invites
from .scope import ScopeCache

logger = logging.getLogger(__name__)


@receiver(user_logged_in)
def accept_pending_invites(sender, request, user, **kwargs):
    """
    Turn pending invites into memberships on every sign-in, then drop the
    cached scope so the next catalog call sees the new membership.
    """
    result = accept_invites(user.email, user.pk)
    for warning in result.warnings:
        logger.warning(f"Invite acceptance for user {user.pk}: {warning}")

    ScopeCache().invalidate(user.pk)
