from django.contrib import admin
from django.urls import include, path
from django.views.generic import RedirectView

from stash import views as stash_views

urlpatterns = [
    path("admin/", admin.site.urls),
    # allauth (login, signup, logout)
    path("accounts/", include("allauth.urls")),
    # Bearer-token invite endpoints
    path("api/invite", stash_views.api_invite, name="api_invite"),
    path("api/accept-invite", stash_views.api_accept_invite, name="api_accept_invite"),
    # App
    path("", RedirectView.as_view(pattern_name="stash:box_list", permanent=False)),
    path("stash/", include("stash.urls")),
]

handler404 = "stash.views.error_404"
handler500 = "stash.views.error_500"
