"""
Token-authenticated invite endpoints and session-side token/scope helpers.

`/api/invite` and `/api/accept-invite` authenticate with a bearer token (not
the session cookie) and are exempt from CSRF.
"""

import logging
from urllib.parse import urlencode

from django.contrib.auth.decorators import login_required
from django.core.mail import send_mail
from django.db import DatabaseError
from django.http import HttpRequest, JsonResponse
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from ..exceptions import StashError
from ..invites import accept_invites, create_invite, normalize_email
from ..models import ApiToken, MemberRole
from ..scope import ScopeCache, require_editor, resolve_access
from ..utils import get_effective_config
from .helpers import bearer_user, error_response, get_access, json_err, json_ok, read_payload

logger = logging.getLogger(__name__)


@login_required
@require_GET
def scope_info(request: HttpRequest) -> JsonResponse:
    """Which inventory the signed-in user works in, and with which role."""
    try:
        access = get_access(request)
        return json_ok(**access.as_dict())
    except StashError as e:
        return error_response(e)


@login_required
@require_POST
def issue_token(request: HttpRequest) -> JsonResponse:
    """Create a bearer token for the session user."""
    try:
        token = ApiToken.objects.create(user=request.user)
        logger.info(f"API token issued for user {request.user.pk}")
        return json_ok(token=token.key)
    except Exception as e:
        logger.exception("Error issuing API token")
        return json_err(f"Failed to issue token: {str(e)}", status=500)


def _send_invite_email(request: HttpRequest, email: str, link: str) -> str | None:
    """Send the sign-up link; returns a warning string instead of raising."""
    config = get_effective_config()
    inviter = request.user.get_username() if request.user.is_authenticated else "Someone"
    try:
        send_mail(
            subject=f"You're invited to {config.site_name}",
            message=(
                f"{inviter} invited you to share their {config.site_name} inventory.\n\n"
                f"Sign up or sign in with this address to join:\n{link}\n"
            ),
            from_email=config.default_from_email or None,
            recipient_list=[email],
        )
    except Exception as e:
        logger.warning(f"Invite email to {email} failed: {e}")
        return f"Invite saved, but the email could not be sent: {e}"
    return None


@csrf_exempt
@require_POST
def api_invite(request: HttpRequest) -> JsonResponse:
    """
    POST /api/invite  {"email": "...", "role": "editor|viewer"}

    Records an invite into the caller's inventory scope and returns a sign-up
    link. Problems after validation come back as `warning`, never as errors.
    """
    try:
        user = bearer_user(request)
        request.user = user

        payload = read_payload(request)
        email = normalize_email(payload.get("email"))
        role = MemberRole.normalize(payload.get("role"))

        scope_cache = ScopeCache()
        access = resolve_access(user, scope_cache)
        require_editor(access)
    except StashError as e:
        return error_response(e)

    link = request.build_absolute_uri(reverse("account_signup")) + "?" + urlencode({"email": email})

    try:
        result = create_invite(access.owner_id, email, role=role, inviter=user)
    except StashError as e:
        return error_response(e)
    except DatabaseError as e:
        logger.warning(f"Invite upsert failed for {email}: {e}")
        return json_ok(warning=f"Invite could not be recorded: {e}")

    data = {"link": link, "created": result.created, "status": result.invite.status}
    warning = _send_invite_email(request, email, link) if result.created else None
    if warning:
        data["warning"] = warning
    return json_ok(**data)


@csrf_exempt
@require_POST
def api_accept_invite(request: HttpRequest) -> JsonResponse:
    """
    POST /api/accept-invite

    Accepts every pending invite for the token owner's email and drops their
    cached scope. Safe to call repeatedly.
    """
    try:
        user = bearer_user(request)
    except StashError as e:
        return error_response(e)

    result = accept_invites(user.email, user.pk)
    ScopeCache().invalidate(user.pk)

    data = {"accepted": result.accepted}
    if result.warnings:
        data["warnings"] = result.warnings
    return json_ok(**data)
