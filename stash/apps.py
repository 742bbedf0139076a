from django.apps import AppConfig as DjangoAppConfig


class StashConfig(DjangoAppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "stash"
    verbose_name = "Storage inventory"

    def ready(self):
        # Connect sign-in and cache invalidation receivers.
        from . import signals  # noqa: F401
