"""
Shared helper functions for the JSON views.
"""

import json
from typing import Any

from django.db import DatabaseError
from django.http import HttpRequest, JsonResponse

from ..exceptions import HasDependents, StashError, Unauthenticated
from ..models import ApiToken, Box, BoxDeletion, Item, Location
from ..scope import ScopeAccess, require_editor, resolve_access


# -------------------------------------------------------------------------------------------------
# JSON Response Helpers
# -------------------------------------------------------------------------------------------------

def json_ok(**payload: Any) -> JsonResponse:
    """Return a successful JSON response with ok=True."""
    data = {"ok": True}
    data.update(payload)
    return JsonResponse(data)


def json_err(msg: str, status: int = 400, **extra: Any) -> JsonResponse:
    """Return an error JSON response with ok=False."""
    data = {"ok": False, "error": msg}
    data.update(extra)
    return JsonResponse(data, status=status)


def error_response(exc: StashError) -> JsonResponse:
    """Map a StashError onto its JSON error response."""
    if isinstance(exc, HasDependents):
        return json_err(exc.message, status=exc.status_code, box_count=exc.count)
    return json_err(exc.message, status=exc.status_code)


def read_payload(request: HttpRequest) -> dict:
    """Request data from a JSON body or, failing that, form fields."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except (ValueError, UnicodeDecodeError):
            return {}
        return data if isinstance(data, dict) else {}
    return request.POST.dict()


# -------------------------------------------------------------------------------------------------
# Scope & Permission Helpers
# -------------------------------------------------------------------------------------------------

def get_access(request: HttpRequest) -> ScopeAccess:
    """Scope and role of the signed-in user, memoized in the request's scope cache."""
    return resolve_access(request.user, getattr(request, "scope_cache", None))


def get_editor_access(request: HttpRequest) -> ScopeAccess:
    """Like get_access, but raises Forbidden for view-only members."""
    access = get_access(request)
    require_editor(access)
    return access


def bearer_user(request: HttpRequest):
    """
    Resolve `Authorization: Bearer <token>` to an active user.
    Raises Unauthenticated for a missing, unknown or revoked token.
    """
    header = request.headers.get("Authorization", "")
    scheme, _, key = header.partition(" ")
    key = key.strip()
    if scheme.lower() != "bearer" or not key:
        raise Unauthenticated("Missing bearer token")

    try:
        token = ApiToken.objects.select_related("user").get(key=key, is_active=True)
    except (ApiToken.DoesNotExist, DatabaseError):
        raise Unauthenticated("Invalid token")

    if not token.user.is_active:
        raise Unauthenticated("Invalid token")

    token.touch()
    return token.user


# -------------------------------------------------------------------------------------------------
# Serializers
# -------------------------------------------------------------------------------------------------

def _iso(value) -> str | None:
    return value.isoformat() if value else None


def serialize_location(location: Location) -> dict:
    data = {
        "id": location.pk,
        "name": location.name,
        "created_at": _iso(location.created_at),
    }
    if hasattr(location, "box_count"):
        data["box_count"] = location.box_count
    return data


def serialize_box(box: Box) -> dict:
    data = {
        "id": box.pk,
        "code": box.code,
        "name": box.name,
        "location_id": box.location_id,
        "location": box.location.name if box.location_id else None,
        "created_at": _iso(box.created_at),
    }
    if hasattr(box, "item_count"):
        data["item_count"] = box.item_count
    return data


def serialize_item(item: Item) -> dict:
    return {
        "id": item.pk,
        "box_id": item.box_id,
        "name": item.name,
        "description": item.description,
        "quantity": item.quantity,
        "photo_url": item.photo_url,
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def serialize_search_hit(item: Item) -> dict:
    data = serialize_item(item)
    data["box_code"] = item.box.code
    data["location"] = item.box.location.name if item.box.location_id else None
    return data


def serialize_deletion(job: BoxDeletion) -> dict:
    return {
        "id": job.pk,
        "box_code": job.box_code,
        "step": job.step,
        "attempts": job.attempts,
        "completed_at": _iso(job.completed_at),
    }
