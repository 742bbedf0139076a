"""
Item lifecycle: Active -> PendingDeleteConfirmation -> Deleted.

A quantity change that would land on 0 is intercepted here and turned into a
pending delete; the 0 is never written. Creating an item with a photo inserts
the row first, then uploads the photo keyed by the new id, and deletes the row
again if the photo cannot be stored.
"""

import enum
import logging
from dataclasses import dataclass, field

from . import catalog
from .exceptions import PersistenceFailure, StashError, StorageError
from .models import Item
from .photos import PhotoStore, get_photo_store, prepare_photo
from .utils import coerce_quantity

logger = logging.getLogger(__name__)


class ItemState(enum.Enum):
    ACTIVE = "active"
    PENDING_DELETE = "pending_delete"
    DELETED = "deleted"


@dataclass
class LifecycleResult:
    state: ItemState
    item: Item | None = None
    # Value the caller asked for; only meaningful while PENDING_DELETE.
    requested_quantity: int | None = None
    warnings: list[str] = field(default_factory=list)


def _photo_warning(action: str, exc: Exception) -> str:
    logger.warning(f"Photo {action} failed: {exc}")
    return f"Warning: photo could not be {action}d ({exc})."


def create_item_with_photo(scope: int, box_id, name: str, description: str | None = None,
                           quantity=1, photo=None, photos: PhotoStore | None = None) -> LifecycleResult:
    """
    Create an item, optionally with a photo.

    The row is inserted with no photo; the photo is then compressed, uploaded
    under a key containing the new id and finally patched onto the row. Any
    failure after the insert deletes the row before the error propagates.
    """
    item = catalog.create_item(scope, box_id, name, description=description, quantity=quantity)

    if photo is None:
        return LifecycleResult(state=ItemState.ACTIVE, item=item)

    photos = photos or get_photo_store()
    uploaded_key = None
    try:
        prepared = prepare_photo(photo)
        key = PhotoStore.build_key(scope, item.pk, prepared.filename)
        url = photos.upload(key, prepared)
        uploaded_key = photos.key_from_url(url) or key
        item = catalog.update_item(scope, item.pk, photo_url=url)
    except Exception as e:
        _rollback_created_item(scope, item, photos, uploaded_key)
        if isinstance(e, StashError):
            raise
        if isinstance(e, StorageError):
            raise PersistenceFailure(f"Photo upload failed; item was not saved. {e}")
        logger.exception(f"Unexpected photo failure for item {item.pk}")
        raise PersistenceFailure(f"Photo could not be processed; item was not saved. {e}")

    logger.info(f"Item {item.pk} created with photo {uploaded_key}")
    return LifecycleResult(state=ItemState.ACTIVE, item=item)


def _rollback_created_item(scope: int, item: Item, photos: PhotoStore, uploaded_key: str | None) -> None:
    if uploaded_key:
        try:
            photos.remove([uploaded_key])
        except StorageError as e:
            logger.warning(f"Rollback could not remove photo {uploaded_key}: {e}")
    try:
        catalog.delete_item(scope, item.pk)
    except StashError:
        logger.exception(f"Rollback of item {item.pk} failed")
        raise
    logger.info(f"Rolled back item {item.pk} after photo failure")


def _target_quantity(current: int, delta=None, value=None) -> int:
    if value is not None:
        return coerce_quantity(value, minimum=0)
    step = coerce_quantity(delta, minimum=-(10 ** 9), default=0) if delta is not None else 0
    return max(0, current + step)


def adjust_quantity(scope: int, item_id, delta=None, value=None) -> LifecycleResult:
    """Increment/decrement (`delta`) or direct-set (`value`) an item's quantity."""
    item = catalog.get_item(scope, item_id)
    target = _target_quantity(item.quantity, delta=delta, value=value)

    if target == 0:
        logger.debug(f"Item {item.pk} quantity would reach 0; awaiting delete confirmation")
        return LifecycleResult(state=ItemState.PENDING_DELETE, item=item, requested_quantity=0)

    if target != item.quantity:
        item = catalog.update_item(scope, item.pk, quantity=target)
    return LifecycleResult(state=ItemState.ACTIVE, item=item)


def save_item_edit(scope: int, item_id, name: str, description: str | None, quantity,
                   photo=None, photos: PhotoStore | None = None) -> LifecycleResult:
    """
    Full edit of an item.

    Quantity 0 stops before anything is written and asks for delete
    confirmation. A new photo is uploaded before the record changes; only once
    the record points at the new object is the old one removed (best-effort).
    """
    item = catalog.get_item(scope, item_id)
    qty = coerce_quantity(quantity, minimum=0, default=item.quantity)
    if qty == 0:
        return LifecycleResult(state=ItemState.PENDING_DELETE, item=item, requested_quantity=0)

    warnings = []
    changes = {"name": name, "description": description, "quantity": qty}

    new_key = None
    if photo is not None:
        photos = photos or get_photo_store()
        prepared = prepare_photo(photo)
        key = PhotoStore.build_key(scope, item.pk, prepared.filename)
        try:
            url = photos.upload(key, prepared)
        except StorageError as e:
            raise PersistenceFailure(f"Photo upload failed; item was not changed. {e}")
        new_key = photos.key_from_url(url) or key
        changes["photo_url"] = url

    old_url = item.photo_url
    try:
        item = catalog.update_item(scope, item.pk, **changes)
    except StashError:
        if new_key:
            try:
                photos.remove([new_key])
            except StorageError as e:
                logger.warning(f"Could not remove orphaned upload {new_key}: {e}")
        raise

    if new_key and old_url:
        old_key = photos.key_from_url(old_url)
        if old_key and old_key != new_key:
            try:
                photos.remove([old_key])
            except StorageError as e:
                warnings.append(_photo_warning("delete", e))

    return LifecycleResult(state=ItemState.ACTIVE, item=item, warnings=warnings)


def confirm_delete(scope: int, item_id, photos: PhotoStore | None = None) -> LifecycleResult:
    """Remove the photo object (best-effort), then the row."""
    item = catalog.get_item(scope, item_id)
    warnings = []

    if item.photo_url:
        photos = photos or get_photo_store()
        key = photos.key_from_url(item.photo_url)
        if key:
            try:
                photos.remove([key])
            except StorageError as e:
                warnings.append(_photo_warning("delete", e))

    catalog.delete_item(scope, item.pk)
    logger.info(f"Item {item.pk} deleted (owner={scope})")
    return LifecycleResult(state=ItemState.DELETED, item=None, warnings=warnings)


def cancel_delete(scope: int, item_id) -> LifecycleResult:
    """Back to Active with the last persisted quantity."""
    item = catalog.get_item(scope, item_id)
    return LifecycleResult(state=ItemState.ACTIVE, item=item)
