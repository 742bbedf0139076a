"""
Item photo handling: Pillow-based compression and an object-store adapter.

Photos are stored in the "photos" storage backend under a bucket prefix. The
public URL of an object contains "/<bucket>/" followed by the object key; that
key is what gets removed when the item is deleted or its photo replaced.
"""

import io
import logging
import os
import time
from dataclasses import dataclass

from django.core.files.base import ContentFile
from django.core.files.storage import storages
from PIL import Image, ImageOps, UnidentifiedImageError

from .constants import (
    PHOTO_FALLBACK_FILENAME,
    PHOTO_MAX_DIMENSION,
    PHOTO_SOFT_TARGET_BYTES,
    PHOTO_START_QUALITY,
)
from .exceptions import StorageError, ValidationError
from .utils import get_effective_config, safe_file_name

logger = logging.getLogger(__name__)

# (longest side px, JPEG quality), tried in order until the soft target is met.
COMPRESSION_LADDER = [
    (PHOTO_MAX_DIMENSION, PHOTO_START_QUALITY),
    (1152, 70),
    (1024, 60),
    (896, 50),
    (768, 40),
    (640, 35),
    (512, 30),
    (512, 20),
]


@dataclass(frozen=True)
class PreparedPhoto:
    content: bytes
    content_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.content)


def _encode(image: Image.Image, max_dim: int, quality: int) -> bytes:
    resized = image.copy()
    resized.thumbnail((max_dim, max_dim))
    buf = io.BytesIO()
    resized.save(buf, format="JPEG", quality=quality, optimize=True)
    return buf.getvalue()


def prepare_photo(upload, max_bytes: int | None = None,
                  soft_target: int = PHOTO_SOFT_TARGET_BYTES) -> PreparedPhoto:
    """
    Decode an uploaded image, fix EXIF orientation, shrink and re-encode as JPEG.

    Walks COMPRESSION_LADDER until the soft target is met and keeps the smallest
    result. Raises ValidationError when the input is not an image or the best
    encoding still exceeds `max_bytes`.
    """
    if max_bytes is None:
        max_bytes = get_effective_config().photo_max_upload_bytes

    original_name = getattr(upload, "name", None) or PHOTO_FALLBACK_FILENAME
    source = io.BytesIO(upload) if isinstance(upload, (bytes, bytearray)) else upload
    if hasattr(source, "seek"):
        source.seek(0)

    try:
        image = Image.open(source)
        image.load()
    except Image.DecompressionBombError as e:
        raise ValidationError(f"Photo dimensions are too large: {e}")
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError(f"Unsupported image file: {e}")

    image = ImageOps.exif_transpose(image)
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    best = None
    for max_dim, quality in COMPRESSION_LADDER:
        data = _encode(image, max_dim, quality)
        if best is None or len(data) < len(best):
            best = data
        if len(data) <= soft_target:
            break

    if len(best) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ValidationError(f"Upload blocked: photo exceeds {limit_mb:g} MB after compression.")

    stem = os.path.splitext(os.path.basename(original_name))[0] or "photo"
    return PreparedPhoto(content=best, content_type="image/jpeg", filename=f"{stem}.jpg")


class PhotoStore:
    """Thin adapter over a Django storage backend addressed by bucket + key."""

    def __init__(self, storage=None, bucket: str | None = None):
        self.storage = storage if storage is not None else storages["photos"]
        self.bucket = bucket or get_effective_config().photo_bucket

    @property
    def marker(self) -> str:
        return f"/{self.bucket}/"

    def object_name(self, key: str) -> str:
        return f"{self.bucket}/{key}"

    @staticmethod
    def build_key(owner_id, item_id, filename: str) -> str:
        millis = int(time.time() * 1000)
        return f"{owner_id}/{item_id}/{millis}-{safe_file_name(filename)}"

    def key_from_url(self, url: str | None) -> str | None:
        """Object key = everything after the bucket marker, or None."""
        if not url:
            return None
        idx = url.find(self.marker)
        if idx == -1:
            return None
        return url[idx + len(self.marker):] or None

    def public_url(self, key: str) -> str:
        return self.storage.url(self.object_name(key))

    def upload(self, key: str, photo: PreparedPhoto) -> str:
        """Store `photo` under `key` and return its public URL."""
        content = ContentFile(photo.content, name=photo.filename)
        try:
            saved_name = self.storage.save(self.object_name(key), content)
        except Exception as e:
            raise StorageError(f"Photo upload failed: {e}") from e

        prefix = f"{self.bucket}/"
        saved_key = saved_name[len(prefix):] if saved_name.startswith(prefix) else key
        logger.debug(f"Uploaded photo {saved_name} ({photo.size} bytes)")
        return self.public_url(saved_key)

    def remove(self, keys) -> None:
        """Delete objects; raises StorageError naming every key that failed."""
        failed = []
        for key in keys:
            if not key:
                continue
            try:
                self.storage.delete(self.object_name(key))
            except Exception as e:
                logger.warning(f"Photo removal failed for {key}: {e}")
                failed.append(key)

        if failed:
            raise StorageError(f"Could not remove {len(failed)} photo(s): {', '.join(failed)}")


def get_photo_store() -> PhotoStore:
    return PhotoStore()
