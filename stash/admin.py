from django.contrib import admin
from django.contrib.auth import get_user_model
from auditlog.registry import auditlog

from .models import ApiToken, AppConfig, Box, BoxDeletion, InventoryInvite, InventoryMember, Item, Location

# Audit trail for catalog and membership changes
auditlog.register(get_user_model(), exclude_fields=["password", "last_login"])
auditlog.register(Location)
auditlog.register(Box)
auditlog.register(Item, exclude_fields=["created_at", "updated_at"])
auditlog.register(InventoryMember, exclude_fields=["created_at"])
auditlog.register(InventoryInvite, exclude_fields=["created_at"])
auditlog.register(AppConfig)


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ("name", "owner", "created_at")
    list_filter = ("owner",)
    search_fields = ("name", "owner__username")


@admin.register(Box)
class BoxAdmin(admin.ModelAdmin):
    list_display = ("code", "name", "location", "owner", "created_at")
    list_filter = ("owner",)
    list_select_related = ("location", "owner")
    search_fields = ("code", "name", "location__name")


@admin.register(Item)
class ItemAdmin(admin.ModelAdmin):
    list_display = ("name", "box", "quantity", "owner", "updated_at")
    list_filter = ("owner", "created_at")
    list_select_related = ("box", "owner")
    search_fields = ("name", "description", "box__code")
    readonly_fields = ("created_at", "updated_at")


@admin.register(InventoryMember)
class InventoryMemberAdmin(admin.ModelAdmin):
    list_display = ("owner", "member", "member_email", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("member_email", "owner__username", "member__username")
    readonly_fields = ("created_at",)


@admin.register(InventoryInvite)
class InventoryInviteAdmin(admin.ModelAdmin):
    list_display = ("owner", "email", "role", "status", "created_at", "accepted_at")
    search_fields = ("email", "owner__username")
    readonly_fields = ("created_at", "accepted_at")


@admin.register(ApiToken)
class ApiTokenAdmin(admin.ModelAdmin):
    list_display = ("user", "is_active", "created_at", "last_used_at")
    list_filter = ("is_active",)
    readonly_fields = ("key", "created_at", "last_used_at")


@admin.register(BoxDeletion)
class BoxDeletionAdmin(admin.ModelAdmin):
    list_display = ("box_code", "owner", "step", "attempts", "created_at", "completed_at")
    list_filter = ("step",)
    readonly_fields = ("photo_keys", "warnings", "last_error", "created_at", "updated_at", "completed_at")


@admin.register(AppConfig)
class AppConfigAdmin(admin.ModelAdmin):
    list_display = ("site_name", "allow_registration", "default_from_email", "photo_max_upload_mb")

    def has_add_permission(self, request):
        # Singleton: only allow creating the first row
        return not AppConfig.objects.exists()
