"""
Item views. Every mutation goes through the lifecycle controller, so a
quantity of 0 answers with state "pending_delete" instead of being saved.
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, JsonResponse
from django.urls import reverse
from django.views.decorators.http import require_POST

from .. import catalog, lifecycle
from ..exceptions import StashError
from ..forms import ItemForm, QuantityForm, first_error
from .helpers import error_response, get_editor_access, json_err, json_ok, serialize_item

logger = logging.getLogger(__name__)


def _lifecycle_payload(result: lifecycle.LifecycleResult) -> dict:
    data = {
        "state": result.state.value,
        "item": serialize_item(result.item) if result.item is not None else None,
        "warnings": result.warnings,
    }
    if result.state is lifecycle.ItemState.PENDING_DELETE:
        data["requested_quantity"] = result.requested_quantity
        data["confirm_url"] = reverse("stash:item_delete", args=[result.item.pk])
        data["cancel_url"] = reverse("stash:item_delete_cancel", args=[result.item.pk])
    return data


@login_required
@require_POST
def item_create(request: HttpRequest, code: str) -> JsonResponse:
    """Create an item in box `code`, optionally with a photo (multipart)."""
    try:
        access = get_editor_access(request)
        box = catalog.get_box_by_code(access.owner_id, code)

        form = ItemForm(request.POST, request.FILES)
        if not form.is_valid():
            return json_err(first_error(form))

        data = form.cleaned_data
        result = lifecycle.create_item_with_photo(
            access.owner_id,
            box.pk,
            data["name"],
            description=data.get("description"),
            quantity=data.get("quantity") or 1,
            photo=data.get("photo"),
        )
        return json_ok(**_lifecycle_payload(result))
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error creating item")
        return json_err(f"Failed to create item: {str(e)}", status=500)


@login_required
@require_POST
def item_edit(request: HttpRequest, pk: int) -> JsonResponse:
    """Full edit (name, description, quantity, optional new photo)."""
    try:
        access = get_editor_access(request)

        form = ItemForm(request.POST, request.FILES)
        if not form.is_valid():
            return json_err(first_error(form))

        data = form.cleaned_data
        result = lifecycle.save_item_edit(
            access.owner_id,
            pk,
            name=data["name"],
            description=data.get("description"),
            quantity=data.get("quantity"),
            photo=data.get("photo"),
        )
        return json_ok(**_lifecycle_payload(result))
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error updating item")
        return json_err(f"Failed to update item: {str(e)}", status=500)


@login_required
@require_POST
def item_quantity(request: HttpRequest, pk: int) -> JsonResponse:
    """Adjust quantity by `delta` or set it to `quantity`."""
    try:
        access = get_editor_access(request)

        form = QuantityForm(request.POST)
        if not form.is_valid():
            return json_err(first_error(form))

        data = form.cleaned_data
        if data.get("quantity"):
            result = lifecycle.adjust_quantity(access.owner_id, pk, value=data["quantity"])
        else:
            result = lifecycle.adjust_quantity(access.owner_id, pk, delta=data["delta"])
        return json_ok(**_lifecycle_payload(result))
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error adjusting quantity")
        return json_err(f"Failed to update quantity: {str(e)}", status=500)


@login_required
@require_POST
def item_delete(request: HttpRequest, pk: int) -> JsonResponse:
    """Confirmed delete: photo first (best-effort), then the row."""
    try:
        access = get_editor_access(request)
        result = lifecycle.confirm_delete(access.owner_id, pk)
        return json_ok(deleted=pk, **_lifecycle_payload(result))
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error deleting item")
        return json_err(f"Failed to delete item: {str(e)}", status=500)


@login_required
@require_POST
def item_delete_cancel(request: HttpRequest, pk: int) -> JsonResponse:
    """Cancel a pending delete; returns the item as persisted."""
    try:
        access = get_editor_access(request)
        result = lifecycle.cancel_delete(access.owner_id, pk)
        return json_ok(**_lifecycle_payload(result))
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error cancelling delete")
        return json_err(f"Failed to reload item: {str(e)}", status=500)
