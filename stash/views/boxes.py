"""
Box views: listing, creation, the box page (items + totals), cascade delete and search.
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .. import catalog
from ..constants import SEARCH_RESULT_LIMIT
from ..deletion import delete_box
from ..exceptions import StashError
from ..forms import BoxForm, first_error
from .helpers import (
    error_response,
    get_access,
    get_editor_access,
    json_err,
    json_ok,
    serialize_box,
    serialize_deletion,
    serialize_item,
    serialize_search_hit,
)

logger = logging.getLogger(__name__)


@login_required
@require_GET
def box_list(request: HttpRequest) -> JsonResponse:
    """All boxes in scope plus the next auto-generated code."""
    try:
        access = get_access(request)
        boxes = list(catalog.list_boxes(access.owner_id))
        return json_ok(
            boxes=[serialize_box(b) for b in boxes],
            next_code=catalog.next_box_code(b.code for b in boxes),
            can_edit=access.can_edit,
        )
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error in box_list view")
        return json_err(f"Failed to load boxes: {str(e)}", status=500)


@login_required
@require_POST
def box_create(request: HttpRequest) -> JsonResponse:
    try:
        access = get_editor_access(request)
        form = BoxForm(request.POST)
        if not form.is_valid():
            return json_err(first_error(form))

        data = form.cleaned_data
        box = catalog.create_box(
            access.owner_id,
            data.get("code"),
            name=data.get("name"),
            location_id=data.get("location"),
            auto=bool(data.get("auto")),
        )
        return json_ok(box=serialize_box(box))
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error creating box")
        return json_err(f"Failed to create box: {str(e)}", status=500)


@login_required
@require_GET
def box_detail(request: HttpRequest, code: str) -> JsonResponse:
    """The box page: box, its items (newest first), totals and move destinations."""
    try:
        access = get_access(request)
        box = catalog.get_box_by_code(access.owner_id, code)
        items = list(catalog.list_items(access.owner_id, box.pk))
        destinations = [
            {"id": b.pk, "code": b.code, "name": b.name}
            for b in catalog.list_boxes(access.owner_id)
            if b.pk != box.pk
        ]
        return json_ok(
            box=serialize_box(box),
            items=[serialize_item(i) for i in items],
            totals=catalog.box_totals(items),
            destinations=destinations,
            can_edit=access.can_edit,
        )
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error in box_detail view")
        return json_err(f"Failed to load box: {str(e)}", status=500)


@login_required
@require_POST
def box_delete(request: HttpRequest, code: str) -> JsonResponse:
    """Delete a box with its items and their photos; photo failures come back as warnings."""
    try:
        access = get_editor_access(request)
        box = catalog.get_box_by_code(access.owner_id, code)
        job = delete_box(access.owner_id, box.pk)
        return json_ok(deletion=serialize_deletion(job), warnings=job.warnings)
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error deleting box")
        return json_err(f"Failed to delete box: {str(e)}", status=500)


@login_required
@require_GET
def search(request: HttpRequest) -> JsonResponse:
    try:
        access = get_access(request)
        query = request.GET.get("q", "").strip()
        hits = catalog.search_items(access.owner_id, query, limit=SEARCH_RESULT_LIMIT)
        return json_ok(query=query, results=[serialize_search_hit(i) for i in hits])
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error in search view")
        return json_err(f"Search failed: {str(e)}", status=500)
