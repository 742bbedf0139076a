from django.urls import path

from . import views
from .views.health import health_check, liveness_check, metrics, readiness_check

app_name = "stash"

urlpatterns = [
    # Health checks (for load balancers and monitoring)
    path("health/", health_check, name="health"),
    path("health/liveness/", liveness_check, name="liveness"),
    path("health/readiness/", readiness_check, name="readiness"),
    path("health/metrics/", metrics, name="metrics"),

    # Scope + tokens
    path("scope/", views.scope_info, name="scope"),
    path("api/token/", views.issue_token, name="issue_token"),

    # Locations
    path("locations/", views.location_list, name="location_list"),
    path("locations/new/", views.location_create, name="location_create"),
    path("locations/<int:pk>/delete/", views.location_delete, name="location_delete"),

    # Boxes
    path("boxes/", views.box_list, name="box_list"),
    path("boxes/new/", views.box_create, name="box_create"),
    path("boxes/<str:code>/", views.box_detail, name="box_detail"),
    path("boxes/<str:code>/delete/", views.box_delete, name="box_delete"),
    path("boxes/<str:code>/items/new/", views.item_create, name="item_create"),

    # Bulk move
    path("boxes/<str:code>/move/", views.move_state, name="move_state"),
    path("boxes/<str:code>/move/request/", views.move_request, name="move_request"),
    path("boxes/<str:code>/move/confirm/", views.move_confirm, name="move_confirm"),

    # Items
    path("items/<int:pk>/edit/", views.item_edit, name="item_edit"),
    path("items/<int:pk>/quantity/", views.item_quantity, name="item_quantity"),
    path("items/<int:pk>/delete/", views.item_delete, name="item_delete"),
    path("items/<int:pk>/delete/cancel/", views.item_delete_cancel, name="item_delete_cancel"),

    # Search
    path("search/", views.search, name="search"),
]
