"""
Bulk move endpoints. The move state for the box being viewed is kept in the
session; opening another box starts over.
"""

import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_POST

from .. import catalog
from ..exceptions import StashError, ValidationError
from ..moves import MoveSession, load_move_session, save_move_session
from ..reducers import ItemsMoved, settle
from .helpers import error_response, get_editor_access, json_err, json_ok, serialize_item

logger = logging.getLogger(__name__)

MOVE_OPS = ("enter", "exit", "toggle", "select_all", "clear", "destination")


def _state(move: MoveSession) -> dict:
    data = move.to_dict()
    data["count"] = len(move.selected)
    return data


@login_required
@require_POST
def move_state(request: HttpRequest, code: str) -> JsonResponse:
    """Apply one move-mode operation (`op`) and return the resulting state."""
    try:
        access = get_editor_access(request)
        box = catalog.get_box_by_code(access.owner_id, code)
        move = load_move_session(request.session, box.pk)

        op = request.POST.get("op", "")
        if op not in MOVE_OPS:
            raise ValidationError(f"Unknown move operation: {op or '(none)'}")

        if op == "enter":
            move.enter()
        elif op == "exit":
            move.exit()
        elif op == "toggle":
            item = catalog.get_item(access.owner_id, request.POST.get("item"))
            if item.box_id != box.pk:
                raise ValidationError("Item is not in this box.")
            move.toggle_select(item.pk)
        elif op == "select_all":
            move.select_all(catalog.list_items(access.owner_id, box.pk).values_list("pk", flat=True))
        elif op == "clear":
            move.clear()
        elif op == "destination":
            move.set_destination(request.POST.get("box") or None)

        save_move_session(request.session, move)
        return json_ok(move=_state(move))
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error updating move state")
        return json_err(f"Failed to update move selection: {str(e)}", status=500)


@login_required
@require_POST
def move_request(request: HttpRequest, code: str) -> JsonResponse:
    """Validate the pending move and summarize it for confirmation."""
    try:
        access = get_editor_access(request)
        box = catalog.get_box_by_code(access.owner_id, code)
        move = load_move_session(request.session, box.pk)

        plan = move.request_move(access.owner_id)
        return json_ok(
            count=plan.count,
            item_ids=plan.item_ids,
            destination={"id": plan.destination.pk, "code": plan.destination.code},
            message=f"Move {plan.count} item(s) to {plan.destination.code}?",
        )
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error validating move")
        return json_err(f"Failed to validate move: {str(e)}", status=500)


@login_required
@require_POST
def move_confirm(request: HttpRequest, code: str) -> JsonResponse:
    """
    Move the selected items. Returns the source box's remaining items; the
    selection is only cleared when the move succeeded.
    """
    try:
        access = get_editor_access(request)
        box = catalog.get_box_by_code(access.owner_id, code)
        move = load_move_session(request.session, box.pk)

        before = [serialize_item(i) for i in catalog.list_items(access.owner_id, box.pk)]
        plan = move.confirm_move(access.owner_id)
        save_move_session(request.session, move)

        items = settle(
            before,
            box.pk,
            ItemsMoved(item_ids=tuple(plan.item_ids), destination_box_id=plan.destination.pk),
            refetch=lambda: [serialize_item(i) for i in catalog.list_items(access.owner_id, box.pk)],
        )
        return json_ok(
            moved=plan.count,
            destination={"id": plan.destination.pk, "code": plan.destination.code},
            items=items,
            move=_state(move),
        )
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error moving items")
        return json_err(f"Failed to move items: {str(e)}", status=500)
