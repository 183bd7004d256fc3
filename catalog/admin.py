"""Admin interface for restaurants and dishes."""

from typing import ClassVar

from django.contrib import admin
from django.db.models import Count, QuerySet
from django.http import HttpRequest
from django.utils.translation import gettext_lazy as _

from .models import Dish, Restaurant


@admin.register(Restaurant)
class RestaurantAdmin(admin.ModelAdmin):
    """Admin configuration for the Restaurant model."""

    list_display = ("name", "slug", "country_code", "ranking_count")
    list_filter = ("country_code",)
    search_fields = ("name", "slug", "address")
    prepopulated_fields: ClassVar[dict[str, tuple[str, ...]]] = {"slug": ("name",)}

    def get_queryset(self, request: HttpRequest) -> QuerySet[Restaurant]:
        """Annotate restaurants with the number of rankings made there."""
        return super().get_queryset(request).annotate(rankings_total=Count("rankings"))

    @admin.display(description=_("Rankings"), ordering="rankings_total")
    def ranking_count(self, obj: Restaurant) -> int:
        """Show how many rankings were made at the restaurant."""
        return getattr(obj, "rankings_total", 0)


@admin.register(Dish)
class DishAdmin(admin.ModelAdmin):
    """Admin configuration for the Dish model."""

    list_display = ("name", "slug", "dish_type", "ranking_count")
    list_filter = ("dish_type",)
    search_fields = ("name", "slug", "dish_type")
    prepopulated_fields: ClassVar[dict[str, tuple[str, ...]]] = {"slug": ("name",)}

    def get_queryset(self, request: HttpRequest) -> QuerySet[Dish]:
        """Annotate dishes with the number of rankings they received."""
        return super().get_queryset(request).annotate(rankings_total=Count("rankings"))

    @admin.display(description=_("Rankings"), ordering="rankings_total")
    def ranking_count(self, obj: Dish) -> int:
        """Show how many rankings the dish received."""
        return getattr(obj, "rankings_total", 0)
