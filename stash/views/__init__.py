"""
Views package for the stash application (JSON only).

- locations / boxes / items: catalog CRUD through the lifecycle controller
- moves: bulk move selection and confirmation
- api: bearer-token invite endpoints, token issuing, scope info
- health: probes and metrics
- helpers: response, permission and serialization helpers
"""

from .api import api_accept_invite, api_invite, issue_token, scope_info
from .boxes import box_create, box_delete, box_detail, box_list, search
from .errors import error_404, error_500
from .items import item_create, item_delete, item_delete_cancel, item_edit, item_quantity
from .locations import location_create, location_delete, location_list
from .moves import move_confirm, move_request, move_state

__all__ = [
    # API
    "api_invite",
    "api_accept_invite",
    "issue_token",
    "scope_info",
    # Locations
    "location_list",
    "location_create",
    "location_delete",
    # Boxes
    "box_list",
    "box_create",
    "box_detail",
    "box_delete",
    "search",
    # Items
    "item_create",
    "item_edit",
    "item_quantity",
    "item_delete",
    "item_delete_cancel",
    # Moves
    "move_state",
    "move_request",
    "move_confirm",
    # Errors
    "error_404",
    "error_500",
]
