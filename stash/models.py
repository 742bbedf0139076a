import logging
import secrets

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .constants import API_TOKEN_BYTES, APPCONFIG_CACHE_TTL, BOX_CODE_MAX_LENGTH, ITEM_NAME_MAX_LENGTH

logger = logging.getLogger(__name__)


# --- CATALOG: locations -> boxes -> items -----------------------------------

class Location(models.Model):
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="locations")
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name", "id"]
        indexes = [
            models.Index(fields=["owner", "name"], name="location_owner_name_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=~Q(name=""), name="location_name_not_empty"),
        ]

    def __str__(self):
        return self.name


class Box(models.Model):
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="boxes")
    code = models.CharField(max_length=BOX_CODE_MAX_LENGTH)
    name = models.CharField(max_length=255, null=True, blank=True)
    # Deleting a location with boxes is refused in the catalog layer first; PROTECT is the backstop.
    location = models.ForeignKey(
        Location, on_delete=models.PROTECT, null=True, blank=True, related_name="boxes"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "boxes"
        ordering = ["code", "id"]
        indexes = [
            models.Index(fields=["owner", "location"], name="box_owner_location_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["owner", "code"], name="unique_owner_box_code"),
            models.CheckConstraint(condition=~Q(code=""), name="box_code_not_empty"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}" if self.name else self.code


class Item(models.Model):
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="items")
    box = models.ForeignKey(Box, on_delete=models.CASCADE, related_name="items")
    name = models.CharField(max_length=ITEM_NAME_MAX_LENGTH)
    description = models.TextField(null=True, blank=True)
    quantity = models.IntegerField(default=1, validators=[MinValueValidator(0)])
    photo_url = models.CharField(max_length=1024, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["owner", "box"], name="item_owner_box_idx"),
            models.Index(fields=["owner", "name"], name="item_owner_name_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=0), name="item_quantity_non_negative"),
        ]

    def clean(self):
        """Items always live in a box of the same inventory."""
        super().clean()
        if self.box_id and self.owner_id and self.box.owner_id != self.owner_id:
            raise ValidationError({"box": "Box belongs to a different inventory."})

        if self.quantity is not None and self.quantity < 0:
            raise ValidationError({"quantity": "Quantity cannot be negative."})

    def save(self, *args, **kwargs):
        """Override save to ensure clean() is called."""
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} x{self.quantity}"


# --- MEMBERSHIP / INVITES ---------------------------------------------------

class MemberRole(models.TextChoices):
    EDITOR = "editor", "Editor"
    VIEWER = "viewer", "Viewer"

    @classmethod
    def normalize(cls, value) -> "MemberRole":
        """
        Map any stored or submitted role string onto the closed set.
        Anything other than 'viewer' (case-insensitive) is an editor.
        """
        raw = str(value or "").strip().lower()
        return cls.VIEWER if raw == cls.VIEWER.value else cls.EDITOR


class InventoryMember(models.Model):
    """
    Grants `member` access to `owner`'s inventory.
    Append-only: rows are created when an invite is accepted and never revoked.
    """
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="members")
    member = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="memberships")
    member_email = models.EmailField()
    role = models.CharField(max_length=16, choices=MemberRole.choices, default=MemberRole.EDITOR)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["member", "created_at"], name="member_member_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["owner", "member"], name="unique_owner_member"),
        ]

    def __str__(self):
        return f"{self.member_email} -> {self.owner} [{self.role}]"


class InventoryInvite(models.Model):
    """
    A pending (accepted_at is NULL) or accepted offer of membership, keyed by email.
    Acceptance is terminal.
    """
    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="invites")
    email = models.EmailField()
    role = models.CharField(max_length=16, choices=MemberRole.choices, default=MemberRole.EDITOR)
    created_at = models.DateTimeField(auto_now_add=True)
    accepted_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "id"]
        indexes = [
            models.Index(fields=["email", "accepted_at"], name="invite_email_accepted_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=["owner", "email"], name="unique_owner_invite_email"),
        ]

    @property
    def status(self) -> str:
        return "accepted" if self.accepted_at else "pending"

    def __str__(self):
        return f"{self.owner} -> {self.email} [{self.status}]"


# --- API TOKENS --------------------------------------------------------------

def _token_key():
    return secrets.token_urlsafe(API_TOKEN_BYTES)


class ApiToken(models.Model):
    """Bearer token used by the privileged invite endpoints."""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="api_tokens")
    key = models.CharField(max_length=128, unique=True, default=_token_key)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    last_used_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["key", "is_active"], name="apitoken_key_active_idx"),
        ]

    def touch(self):
        self.last_used_at = timezone.now()
        self.save(update_fields=["last_used_at"])

    def __str__(self):
        return f"Token({self.user_id}, active={self.is_active})"


# --- BOX DELETION STEP LOG ---------------------------------------------------

class BoxDeletion(models.Model):
    """
    Step log for a box delete: photos -> items -> box -> done.
    Every step is idempotent, so an interrupted deletion can be replayed.
    """
    STEP_PHOTOS = "photos"
    STEP_ITEMS = "items"
    STEP_BOX = "box"
    STEP_DONE = "done"
    STEP_CHOICES = [
        (STEP_PHOTOS, "Remove photos"),
        (STEP_ITEMS, "Delete items"),
        (STEP_BOX, "Delete box"),
        (STEP_DONE, "Done"),
    ]

    owner = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="box_deletions")
    box_id = models.BigIntegerField()
    box_code = models.CharField(max_length=BOX_CODE_MAX_LENGTH)
    photo_keys = models.JSONField(default=list, blank=True)
    step = models.CharField(max_length=16, choices=STEP_CHOICES, default=STEP_PHOTOS)
    warnings = models.JSONField(default=list, blank=True)
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["step", "created_at"], name="boxdel_step_created_idx"),
        ]

    @property
    def is_done(self) -> bool:
        return self.step == self.STEP_DONE

    def __str__(self):
        return f"Delete {self.box_code} [{self.step}]"


# === Singleton AppConfig (site-wide admin settings) ===

class AppConfig(models.Model):
    """
    Singleton-style site configuration editable from the admin.
    Empty fields fall back to Django settings (see utils.EffectiveConfig).
    """
    singleton_id = models.PositiveSmallIntegerField(default=1, unique=True, editable=False)

    site_name = models.CharField(max_length=80, blank=True)
    allow_registration = models.BooleanField(null=True, blank=True)
    default_from_email = models.EmailField(blank=True)
    photo_max_upload_mb = models.FloatField(null=True, blank=True)

    class Meta:
        verbose_name = "App configuration"
        verbose_name_plural = "App configuration"

    def __str__(self):
        return "Site configuration"

    @classmethod
    def get_solo(cls):
        obj, _ = cls.objects.get_or_create(singleton_id=1)
        return obj

    @classmethod
    def get_cached(cls):
        cfg = cache.get("appconfig_solo")
        if cfg is None:
            cfg = cls.get_solo()
            cache.set("appconfig_solo", cfg, APPCONFIG_CACHE_TTL)
        return cfg

    def save(self, *args, **kwargs):
        super().save(*args, **kwargs)
        cache.delete("appconfig_solo")
