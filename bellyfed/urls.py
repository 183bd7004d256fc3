"""URL configuration for the bellyfed project."""

from django.conf import settings
from django.contrib import admin
from django.urls import include, path


urlpatterns = [
    path(settings.ADMIN_URL, admin.site.urls),
    path("api/", include("rankings.urls")),
    path("ht/", include("health_check.urls")),
]
