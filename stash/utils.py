import math
import re

import bleach
from django.conf import settings

from .constants import PHOTO_DEFAULT_BUCKET, PHOTO_FALLBACK_FILENAME, SCOPE_CACHE_TTL_DEFAULT
from .models import AppConfig


def sanitize_text(text: str, max_length: int = 10000) -> str:
    """
    Strip all markup from user-entered text.

    Args:
        text: The text to sanitize
        max_length: Hard cap applied after cleaning

    Returns:
        Sanitized, whitespace-trimmed string ("" for None)
    """
    if not text:
        return ""

    cleaned = bleach.clean(str(text), tags=[], attributes={}, strip=True)

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    return cleaned.strip()


def coerce_quantity(value, minimum: int = 0, default: int | None = None) -> int:
    """
    Floor any numeric-ish input to an int and clamp it at `minimum`.
    Unparseable input becomes `default` (or `minimum` when no default is given).
    """
    fallback = minimum if default is None else default
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return max(minimum, fallback)

    if math.isnan(number) or math.isinf(number):
        return max(minimum, fallback)

    return max(minimum, math.floor(number))


def safe_file_name(name: str) -> str:
    """Collapse anything outside [A-Za-z0-9_.-] to underscores."""
    cleaned = re.sub(r"[^\w.\-]+", "_", name or "", flags=re.ASCII)
    return cleaned or PHOTO_FALLBACK_FILENAME


class EffectiveConfig:
    def __init__(self, db: AppConfig | None):
        """
        Build a nil-safe configuration by combining the AppConfig singleton
        with Django settings. DB values take precedence; settings are defaults.
        """

        def _db(field: str):
            return getattr(db, field, None) if db is not None else None

        def _first_non_empty(*vals, fallback=None):
            for v in vals:
                if v is not None and v != "":
                    return v
            return fallback

        # --- Branding -------------------------------------------------------
        self.site_name = _first_non_empty(
            _db("site_name"),
            getattr(settings, "SITE_NAME", None),
            fallback="BoxStash",
        )

        # --- Auth -----------------------------------------------------------
        allow_reg = _db("allow_registration")
        if allow_reg is None:
            allow_reg = getattr(settings, "ALLOW_REGISTRATION", True)
        self.allow_registration = bool(allow_reg)

        # --- Email ----------------------------------------------------------
        self.default_from_email = _first_non_empty(
            _db("default_from_email"),
            getattr(settings, "DEFAULT_FROM_EMAIL", None),
            fallback="",
        )

        # --- Photos ---------------------------------------------------------
        self.photo_bucket = _first_non_empty(
            getattr(settings, "PHOTO_BUCKET", None),
            fallback=PHOTO_DEFAULT_BUCKET,
        )
        max_mb = _first_non_empty(
            _db("photo_max_upload_mb"),
            getattr(settings, "PHOTO_MAX_UPLOAD_MB", None),
            fallback=1,
        )
        self.photo_max_upload_bytes = int(float(max_mb) * 1024 * 1024)

        # --- Scope cache ----------------------------------------------------
        self.scope_cache_ttl = int(
            _first_non_empty(getattr(settings, "SCOPE_CACHE_TTL", None), fallback=SCOPE_CACHE_TTL_DEFAULT)
        )


def get_effective_config() -> EffectiveConfig:
    return EffectiveConfig(AppConfig.get_cached())
