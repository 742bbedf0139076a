"""
Probes for load balancers and monitoring.

`/health/` runs every entry of HEALTH_CHECKS. Each check returns a dict with a
"status" of "ok", "degraded" or "error"; only "error" turns the response into
a 503. The cache only memoizes scope lookups, so a broken cache is "degraded".
"""

import logging
import time
from typing import Any, Callable

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.base import ContentFile
from django.db import connection
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from django.views.decorators.cache import never_cache
from django.views.decorators.http import require_GET

from ..models import Box, BoxDeletion, InventoryInvite, Item
from ..photos import get_photo_store

logger = logging.getLogger(__name__)

SLOW_QUERY_MS = 100
PROBE_KEY = "_health/probe.txt"


def _now() -> str:
    return timezone.now().isoformat()


def _ping_database() -> float:
    """Run a trivial query; returns its latency in ms."""
    started = time.perf_counter()
    with connection.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()
    return (time.perf_counter() - started) * 1000


def check_database() -> dict[str, Any]:
    try:
        latency_ms = _ping_database()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "error", "error": str(e)}

    if latency_ms > SLOW_QUERY_MS:
        logger.warning(f"Database latency is high: {latency_ms:.2f}ms")
    return {"status": "ok", "latency_ms": round(latency_ms, 2)}


def check_cache() -> dict[str, Any]:
    key = "health_check_probe"
    try:
        cache.set(key, "ok", timeout=10)
        echoed = cache.get(key)
        cache.delete(key)
    except Exception as e:
        logger.warning(f"Cache health check failed: {e}")
        return {"status": "degraded", "error": str(e)}

    if echoed != "ok":
        return {"status": "degraded", "error": "Cache set/get mismatch"}
    return {"status": "ok"}


def check_photo_storage() -> dict[str, Any]:
    """Write, find and delete a probe object inside the photo bucket."""
    store = get_photo_store()
    result = {"bucket": store.bucket}
    try:
        saved = store.storage.save(store.object_name(PROBE_KEY), ContentFile(b"ok"))
        found = store.storage.exists(saved)
        store.storage.delete(saved)
    except Exception as e:
        logger.error(f"Photo storage health check failed: {e}")
        return {"status": "error", **result, "error": str(e)}

    if not found:
        return {"status": "error", **result, "error": "Probe object missing after save"}
    return {"status": "ok", **result}


HEALTH_CHECKS: dict[str, Callable[[], dict[str, Any]]] = {
    "database": check_database,
    "cache": check_cache,
    "photo_storage": check_photo_storage,
}


def _run_checks() -> dict[str, dict[str, Any]]:
    results = {}
    for name, check in HEALTH_CHECKS.items():
        try:
            results[name] = check()
        except Exception as e:
            logger.exception(f"Health check: {name} check crashed")
            results[name] = {"status": "error", "error": str(e)}
    return results


@require_GET
@never_cache
def health_check(request: HttpRequest) -> JsonResponse:
    """
    Full check of database, cache and photo storage.

    200 with "healthy", or 503 with "unhealthy" when any check reports "error".
    """
    checks = _run_checks()
    healthy = all(c["status"] != "error" for c in checks.values())
    return JsonResponse(
        {
            "status": "healthy" if healthy else "unhealthy",
            "timestamp": _now(),
            "checks": checks,
            "version": getattr(settings, "VERSION", "1.0.0"),
        },
        status=200 if healthy else 503,
    )


@require_GET
@never_cache
def liveness_check(request: HttpRequest) -> JsonResponse:
    """The process answers; nothing else is touched."""
    return JsonResponse({"status": "alive", "timestamp": _now()})


@require_GET
@never_cache
def readiness_check(request: HttpRequest) -> JsonResponse:
    """Ready once the database answers."""
    try:
        _ping_database()
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        return JsonResponse(
            {"status": "not_ready", "timestamp": _now(), "reason": "database_unavailable"},
            status=503,
        )
    return JsonResponse({"status": "ready", "timestamp": _now()})


@require_GET
@never_cache
def metrics(request: HttpRequest) -> JsonResponse:
    """Row counts for dashboards."""
    try:
        data = {
            "active_users": get_user_model().objects.filter(is_active=True).count(),
            "total_boxes": Box.objects.count(),
            "total_items": Item.objects.count(),
            "pending_invites": InventoryInvite.objects.filter(accepted_at__isnull=True).count(),
            "unfinished_box_deletions": BoxDeletion.objects.exclude(step=BoxDeletion.STEP_DONE).count(),
        }
    except Exception as e:
        logger.exception("Metrics endpoint failed")
        return JsonResponse({"error": "Failed to collect metrics", "detail": str(e)}, status=500)

    data["timestamp"] = _now()
    return JsonResponse(data)
