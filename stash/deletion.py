"""
Box deletion as a replayable step log.

Deleting a box removes its item photos (best-effort), then its items, then the
box itself. Progress is recorded on a BoxDeletion row after every step, and
every step is idempotent, so a deletion interrupted by a persistence failure
can be resumed later from where it stopped.
"""

import logging

from django.db import DatabaseError
from django.utils import timezone

from . import catalog
from .exceptions import PersistenceFailure, StorageError
from .models import Box, BoxDeletion, Item
from .photos import PhotoStore, get_photo_store

logger = logging.getLogger(__name__)

PHOTO_WARNING = "Warning: some photos could not be deleted"

_NEXT_STEP = {
    BoxDeletion.STEP_PHOTOS: BoxDeletion.STEP_ITEMS,
    BoxDeletion.STEP_ITEMS: BoxDeletion.STEP_BOX,
    BoxDeletion.STEP_BOX: BoxDeletion.STEP_DONE,
}


def delete_box(scope: int, box_id, photos: PhotoStore | None = None) -> BoxDeletion:
    """Start (and run to completion if possible) the deletion of a box in `scope`."""
    box = catalog.get_box(scope, box_id)
    photos = photos or get_photo_store()

    urls = Item.objects.filter(owner_id=scope, box_id=box.pk).values_list("photo_url", flat=True)
    keys = [k for k in (photos.key_from_url(u) for u in urls) if k]

    job = BoxDeletion.objects.create(
        owner_id=scope,
        box_id=box.pk,
        box_code=box.code,
        photo_keys=keys,
    )
    logger.info(f"Deleting box {box.code} (owner={scope}, {len(keys)} photo(s))")
    return run_deletion(job, photos)


def run_deletion(job: BoxDeletion, photos: PhotoStore | None = None) -> BoxDeletion:
    """Execute the remaining steps of `job`, saving progress after each."""
    if job.is_done:
        return job

    job.attempts += 1
    job.save(update_fields=["attempts", "updated_at"])

    while not job.is_done:
        try:
            _run_step(job, photos)
        except DatabaseError as e:
            job.last_error = str(e)
            job.save(update_fields=["last_error", "updated_at"])
            logger.exception(f"Box deletion {job.pk} stopped at step '{job.step}'")
            raise PersistenceFailure(f"Deleting box {job.box_code} failed at step '{job.step}': {e}")

        job.step = _NEXT_STEP[job.step]
        if job.is_done:
            job.completed_at = timezone.now()
            job.last_error = ""
        job.save()

    logger.info(f"Box {job.box_code} deleted (owner={job.owner_id})")
    return job


def _run_step(job: BoxDeletion, photos: PhotoStore | None) -> None:
    if job.step == BoxDeletion.STEP_PHOTOS:
        if not job.photo_keys:
            return
        photos = photos or get_photo_store()
        try:
            photos.remove(job.photo_keys)
        except StorageError as e:
            logger.warning(f"Box {job.box_code}: {e}")
            if PHOTO_WARNING not in job.warnings:
                job.warnings = job.warnings + [PHOTO_WARNING]

    elif job.step == BoxDeletion.STEP_ITEMS:
        Item.objects.filter(owner_id=job.owner_id, box_id=job.box_id).delete()

    elif job.step == BoxDeletion.STEP_BOX:
        Box.objects.filter(owner_id=job.owner_id, pk=job.box_id).delete()


def pending_deletions():
    return BoxDeletion.objects.exclude(step=BoxDeletion.STEP_DONE).order_by("created_at", "id")


def resume_deletion(job: BoxDeletion, photos: PhotoStore | None = None) -> BoxDeletion:
    """Replay an interrupted deletion. Completed jobs are returned untouched."""
    logger.info(f"Resuming deletion of box {job.box_code} from step '{job.step}'")
    return run_deletion(job, photos)
