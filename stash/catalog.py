"""
Catalog store: locations -> boxes -> items, isolated per inventory scope.

Every function takes the scope (owner id) first and filters by it, so rows of
one inventory are never visible to or writable from another.
"""

import logging
import re

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import Count, Q

from .constants import BOX_CODE_MAX_LENGTH, BOX_CODE_PATTERN, BOX_CODE_PREFIX, ITEM_NAME_MAX_LENGTH, SEARCH_RESULT_LIMIT
from .exceptions import HasDependents, NotFound, PersistenceFailure, ValidationError
from .models import Box, Item, Location
from .utils import coerce_quantity, sanitize_text

logger = logging.getLogger(__name__)

_UNSET = object()
_BOX_CODE_RE = re.compile(BOX_CODE_PATTERN, re.IGNORECASE)


def _django_error_message(exc: DjangoValidationError) -> str:
    if hasattr(exc, "message_dict"):
        return "; ".join(f"{k}: {' '.join(v)}" for k, v in exc.message_dict.items())
    return " ".join(exc.messages)


# -------------------------------------------------------------------------------------------------
# Box codes
# -------------------------------------------------------------------------------------------------

def parse_box_number(code: str) -> int | None:
    """BOX-007 -> 7; anything not matching the strict pattern -> None."""
    match = _BOX_CODE_RE.match((code or "").strip())
    return int(match.group(1)) if match else None


def next_box_code(codes) -> str:
    """Next auto code after the highest BOX-### in `codes`; other codes are ignored."""
    highest = 0
    for code in codes:
        number = parse_box_number(code)
        if number is not None and number > highest:
            highest = number
    return f"{BOX_CODE_PREFIX}{highest + 1:03d}"


def next_code_for_scope(scope: int) -> str:
    return next_box_code(Box.objects.filter(owner_id=scope).values_list("code", flat=True))


# -------------------------------------------------------------------------------------------------
# Locations
# -------------------------------------------------------------------------------------------------

def list_locations(scope: int):
    return (
        Location.objects
        .filter(owner_id=scope)
        .annotate(box_count=Count("boxes"))
        .order_by("name", "id")
    )


def get_location(scope: int, location_id) -> Location:
    try:
        return Location.objects.get(owner_id=scope, pk=location_id)
    except (Location.DoesNotExist, ValueError, TypeError):
        raise NotFound("Location not found.")


def create_location(scope: int, name: str) -> Location:
    name = sanitize_text(name, max_length=255)
    if not name:
        raise ValidationError("Location name is required.")

    try:
        location = Location.objects.create(owner_id=scope, name=name)
    except DatabaseError as e:
        logger.exception("Location insert failed")
        raise PersistenceFailure(f"Failed to create location: {e}")

    logger.info(f"Location created: owner={scope} id={location.pk} name={name!r}")
    return location


def delete_location(scope: int, location_id) -> None:
    """Delete a location, refusing while any box still references it."""
    location = get_location(scope, location_id)

    box_count = Box.objects.filter(owner_id=scope, location_id=location.pk).count()
    if box_count > 0:
        raise HasDependents(
            f'"{location.name}" still holds {box_count} box(es). Move or delete them first.',
            count=box_count,
        )

    try:
        Location.objects.filter(owner_id=scope, pk=location.pk).delete()
    except DatabaseError as e:
        logger.exception("Location delete failed")
        raise PersistenceFailure(f"Failed to delete location: {e}")

    logger.info(f"Location deleted: owner={scope} id={location.pk}")


# -------------------------------------------------------------------------------------------------
# Boxes
# -------------------------------------------------------------------------------------------------

def list_boxes(scope: int):
    return (
        Box.objects
        .filter(owner_id=scope)
        .select_related("location")
        .annotate(item_count=Count("items"))
        .order_by("code", "id")
    )


def get_box(scope: int, box_id) -> Box:
    try:
        return Box.objects.select_related("location").get(owner_id=scope, pk=box_id)
    except (Box.DoesNotExist, ValueError, TypeError):
        raise NotFound("Box not found.")


def get_box_by_code(scope: int, code: str) -> Box:
    try:
        return Box.objects.select_related("location").get(owner_id=scope, code=(code or "").strip())
    except Box.DoesNotExist:
        raise NotFound(f"Box {code} not found.")


def create_box(scope: int, code: str | None, name: str | None = None, location_id=None,
               auto: bool = False) -> Box:
    """
    Create a box. With `auto=True` the code is the next BOX-### in this scope;
    otherwise `code` is required and taken as typed (free-form codes are allowed).
    """
    if auto:
        code = next_code_for_scope(scope)
    else:
        code = sanitize_text(code or "", max_length=BOX_CODE_MAX_LENGTH)
        if not code:
            raise ValidationError("Box code is required (e.g. BOX-001).")

    location = get_location(scope, location_id) if location_id not in (None, "") else None

    if Box.objects.filter(owner_id=scope, code=code).exists():
        raise ValidationError(f"Box code {code} already exists.")

    try:
        with transaction.atomic():
            box = Box.objects.create(
                owner_id=scope,
                code=code,
                name=sanitize_text(name or "", max_length=255) or None,
                location=location,
            )
    except IntegrityError:
        raise ValidationError(f"Box code {code} already exists.")
    except DatabaseError as e:
        logger.exception("Box insert failed")
        raise PersistenceFailure(f"Failed to create box: {e}")

    logger.info(f"Box created: owner={scope} code={code}")
    return box


# -------------------------------------------------------------------------------------------------
# Items
# -------------------------------------------------------------------------------------------------

def list_items(scope: int, box_id):
    """Items of one box, newest first (ties broken by id)."""
    return Item.objects.filter(owner_id=scope, box_id=box_id).order_by("-created_at", "-id")


def get_item(scope: int, item_id) -> Item:
    try:
        return Item.objects.select_related("box").get(owner_id=scope, pk=item_id)
    except (Item.DoesNotExist, ValueError, TypeError):
        raise NotFound("Item not found.")


def _clean_name(name) -> str:
    name = sanitize_text(name or "", max_length=ITEM_NAME_MAX_LENGTH)
    if not name:
        raise ValidationError("Item name is required.")
    return name


def create_item(scope: int, box_id, name: str, description: str | None = None, quantity=1) -> Item:
    """Insert an item row (photo_url empty). Quantity is floored and clamped at 1."""
    box = get_box(scope, box_id)
    try:
        item = Item(
            owner_id=scope,
            box=box,
            name=_clean_name(name),
            description=sanitize_text(description or "") or None,
            quantity=coerce_quantity(quantity, minimum=1, default=1),
            photo_url=None,
        )
        item.save()
    except DjangoValidationError as e:
        raise ValidationError(_django_error_message(e))
    except DatabaseError as e:
        logger.exception("Item insert failed")
        raise PersistenceFailure(f"Failed to create item: {e}")

    logger.info(f"Item created: owner={scope} box={box.code} id={item.pk}")
    return item


def update_item(scope: int, item_id, *, name=_UNSET, description=_UNSET, quantity=_UNSET,
                photo_url=_UNSET) -> Item:
    """
    Persist changed fields of an item. A quantity below 1 is refused here:
    reaching zero is the lifecycle controller's delete-confirmation path.
    """
    item = get_item(scope, item_id)
    changes = {}

    if name is not _UNSET:
        changes["name"] = _clean_name(name)
    if description is not _UNSET:
        changes["description"] = sanitize_text(description or "") or None
    if quantity is not _UNSET:
        qty = coerce_quantity(quantity, minimum=0)
        if qty < 1:
            raise ValidationError("Quantity must be at least 1; delete the item instead.")
        changes["quantity"] = qty
    if photo_url is not _UNSET:
        changes["photo_url"] = photo_url or None

    if not changes:
        return item

    try:
        updated = Item.objects.filter(owner_id=scope, pk=item.pk).update(**changes)
    except DatabaseError as e:
        logger.exception("Item update failed")
        raise PersistenceFailure(f"Failed to update item: {e}")

    if updated != 1:
        raise NotFound("Item not found.")

    item.refresh_from_db()
    return item


def delete_item(scope: int, item_id) -> None:
    """Delete an item row only; photo cleanup belongs to the lifecycle controller."""
    try:
        deleted, _ = Item.objects.filter(owner_id=scope, pk=item_id).delete()
    except DatabaseError as e:
        logger.exception("Item delete failed")
        raise PersistenceFailure(f"Failed to delete item: {e}")

    if not deleted:
        raise NotFound("Item not found.")


def move_items(scope: int, item_ids, dest_box_id, source_box_id=None) -> int:
    """
    Re-parent items to `dest_box_id`, all or nothing.
    Any id that is missing from the scope (or the source box) aborts the whole move.
    """
    try:
        ids = {int(i) for i in item_ids}
    except (TypeError, ValueError):
        raise ValidationError("Invalid item id in selection.")
    if not ids:
        raise ValidationError("Select at least one item.")

    dest = get_box(scope, dest_box_id)
    if source_box_id is not None and int(source_box_id) == dest.pk:
        raise ValidationError("Destination must be a different box.")

    queryset = Item.objects.filter(owner_id=scope, pk__in=ids)
    if source_box_id is not None:
        queryset = queryset.filter(box_id=source_box_id)

    try:
        with transaction.atomic():
            updated = queryset.update(box=dest)
            if updated != len(ids):
                raise PersistenceFailure(
                    f"Move aborted: only {updated} of {len(ids)} item(s) could be moved."
                )
    except DatabaseError as e:
        logger.exception("Item move failed")
        raise PersistenceFailure(f"Failed to move items: {e}")

    logger.info(f"Moved {updated} item(s) to box {dest.code} (owner={scope})")
    return updated


def search_items(scope: int, query: str, limit: int = SEARCH_RESULT_LIMIT):
    """Case-insensitive name search across the whole inventory."""
    query = (query or "").strip()
    if not query:
        return Item.objects.none()

    return (
        Item.objects
        .filter(owner_id=scope)
        .filter(Q(name__icontains=query))
        .select_related("box", "box__location")
        .order_by("name", "id")[:limit]
    )


def box_totals(items) -> dict:
    items = list(items)
    return {
        "unique": len(items),
        "total": sum(i.quantity or 0 for i in items),
    }
