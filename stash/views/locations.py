import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpRequest, JsonResponse
from django.views.decorators.http import require_GET, require_POST

from .. import catalog
from ..exceptions import StashError
from ..forms import LocationForm, first_error
from .helpers import error_response, get_access, get_editor_access, json_err, json_ok, serialize_location

logger = logging.getLogger(__name__)


@login_required
@require_GET
def location_list(request: HttpRequest) -> JsonResponse:
    try:
        access = get_access(request)
        locations = catalog.list_locations(access.owner_id)
        return json_ok(locations=[serialize_location(loc) for loc in locations])
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error in location_list view")
        return json_err(f"Failed to load locations: {str(e)}", status=500)


@login_required
@require_POST
def location_create(request: HttpRequest) -> JsonResponse:
    try:
        access = get_editor_access(request)
        form = LocationForm(request.POST)
        if not form.is_valid():
            return json_err(first_error(form))

        location = catalog.create_location(access.owner_id, form.cleaned_data["name"])
        return json_ok(location=serialize_location(location))
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error creating location")
        return json_err(f"Failed to create location: {str(e)}", status=500)


@login_required
@require_POST
def location_delete(request: HttpRequest, pk: int) -> JsonResponse:
    """Delete a location; answers 409 with `box_count` while boxes still reference it."""
    try:
        access = get_editor_access(request)
        catalog.delete_location(access.owner_id, pk)
        return json_ok(deleted=pk)
    except StashError as e:
        return error_response(e)
    except Exception as e:
        logger.exception("Error deleting location")
        return json_err(f"Failed to delete location: {str(e)}", status=500)
