"""
Membership / invite ledger.

Owners invite collaborators by email; the invitee's first sign-in turns every
pending invite for their address into a membership. Invite problems are logged
and reported as warnings so they never block the inviter or the sign-in.
"""

import logging
from dataclasses import dataclass, field

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import ValidationError
from .models import InventoryInvite, InventoryMember, MemberRole

logger = logging.getLogger(__name__)


@dataclass
class InviteResult:
    invite: InventoryInvite
    created: bool


@dataclass
class AcceptResult:
    accepted: int
    # Memberships actually written; self-invites and failed upserts are not counted.
    joined: int = 0
    warnings: list[str] = field(default_factory=list)


def normalize_email(email: str) -> str:
    """Lowercase and validate an invite address."""
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationError("Valid email is required")
    try:
        validate_email(email)
    except DjangoValidationError:
        raise ValidationError("Valid email is required")
    return email


def create_invite(owner_scope: int, email: str, role=MemberRole.EDITOR, inviter=None) -> InviteResult:
    """
    Record a pending invite for `email` into `owner_scope`.
    Re-inviting a pending or already accepted address returns the existing row unchanged.
    """
    email = normalize_email(email)

    if inviter is not None and (inviter.email or "").strip().lower() == email:
        raise ValidationError("You cannot invite yourself.")

    invite, created = InventoryInvite.objects.get_or_create(
        owner_id=owner_scope,
        email=email,
        defaults={"role": MemberRole.normalize(role), "accepted_at": None},
    )

    if created:
        logger.info(f"Invite created: owner={owner_scope} email={email} role={invite.role}")
    else:
        logger.info(f"Invite already recorded: owner={owner_scope} email={email} status={invite.status}")

    return InviteResult(invite=invite, created=created)


def accept_invites(user_email: str, user_id: int) -> AcceptResult:
    """
    Turn every pending invite for `user_email` into a membership for `user_id`.
    Safe to call repeatedly: a second call finds nothing pending.
    """
    email = (user_email or "").strip().lower()
    if not email:
        return AcceptResult(accepted=0)

    try:
        invites = list(
            InventoryInvite.objects
            .filter(email=email, accepted_at__isnull=True)
            .values("owner_id", "role")
        )
    except DatabaseError:
        # Fail open: a broken lookup must not block sign-in.
        logger.warning(f"Invite lookup failed for {email}", exc_info=True)
        return AcceptResult(accepted=0)

    if not invites:
        return AcceptResult(accepted=0)

    warnings = []
    joined = 0
    for inv in invites:
        if inv["owner_id"] == user_id:
            continue
        role = MemberRole.normalize(inv["role"])
        try:
            with transaction.atomic():
                InventoryMember.objects.update_or_create(
                    owner_id=inv["owner_id"],
                    member_id=user_id,
                    defaults={"member_email": email, "role": role},
                )
            joined += 1
        except DatabaseError as e:
            logger.warning(f"Membership upsert failed (owner={inv['owner_id']}, member={user_id}): {e}")
            warnings.append(f"Could not join inventory {inv['owner_id']}: {e}")

    try:
        InventoryInvite.objects.filter(email=email, accepted_at__isnull=True).update(accepted_at=timezone.now())
    except DatabaseError as e:
        logger.warning(f"Marking invites accepted failed for {email}: {e}")
        warnings.append(f"Could not mark invites accepted: {e}")

    logger.info(f"Accepted {len(invites)} invite(s) for user {user_id}; {joined} membership(s) written")
    return AcceptResult(accepted=len(invites), joined=joined, warnings=warnings)
