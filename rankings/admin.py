"""
Admin configuration for rankings.

Rankings only change through the engine, which keeps the One-Best rule and the history trail
consistent. The admin is therefore a read-only window onto rankings, their history and the cached
dish statistics.
"""

from typing import Any

from django.contrib import admin, messages
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.translation import gettext_lazy as _

from .models import DishStat, Ranking, RankingHistory
from .stats import rebuild_dish_stat


# Constants
NOTES_PREVIEW_LENGTH = 50


class ReadOnlyAdminMixin:
    """Disable adding, changing and deleting objects through the admin."""

    def has_add_permission(self, request: HttpRequest, obj: Any = None) -> bool:  # noqa: ARG002
        """Disallow adding objects."""
        return False

    def has_change_permission(self, request: HttpRequest, obj: Any = None) -> bool:  # noqa: ARG002
        """Disallow changing objects."""
        return False

    def has_delete_permission(self, request: HttpRequest, obj: Any = None) -> bool:  # noqa: ARG002
        """Disallow deleting objects."""
        return False


class RankingHistoryInline(ReadOnlyAdminMixin, admin.TabularInline):
    """Inline display of a ranking's history entries."""

    model = RankingHistory
    fk_name = "ranking"
    extra = 0
    fields = (
        "created_at",
        "reason",
        "previous_rank",
        "new_rank",
        "previous_taste_status",
        "new_taste_status",
    )
    readonly_fields = fields
    ordering = ("created_at", "id")


@admin.register(Ranking)
class RankingAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for the Ranking model.

    Attributes:
        list_display: Fields to display in the admin list view.
        list_filter: Fields to filter by in the admin list view.
        search_fields: Fields to search by in the admin list view.

    """

    list_display = (
        "user",
        "dish",
        "restaurant",
        "dish_type",
        "rank",
        "taste_status",
        "notes_preview",
        "updated_at",
    )
    list_filter = ("rank", "taste_status", "dish_type")
    search_fields = ("user__email", "dish__name", "restaurant__name", "notes")
    list_select_related = ("user", "dish", "restaurant")
    date_hierarchy = "updated_at"
    inlines = (RankingHistoryInline,)

    fieldsets = (
        (
            None,
            {
                "fields": ("user", "dish", "restaurant", "dish_type", "rank", "taste_status"),
            },
        ),
        (
            _("Review"),
            {
                "fields": ("notes", "photo_refs"),
            },
        ),
        (
            _("Metadata"),
            {
                "fields": ("created_at", "updated_at"),
                "classes": ("collapse",),
            },
        ),
    )

    @admin.display(description=_("Notes"))
    def notes_preview(self, obj: Ranking) -> str:
        """Return a truncated preview of the notes."""
        if len(obj.notes) > NOTES_PREVIEW_LENGTH:
            return f"{obj.notes[:NOTES_PREVIEW_LENGTH]}..."
        return obj.notes


@admin.register(RankingHistory)
class RankingHistoryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    """Admin configuration for the append-only ranking history."""

    list_display = (
        "ranking",
        "user",
        "dish",
        "restaurant",
        "reason",
        "previous_rank",
        "new_rank",
        "previous_taste_status",
        "new_taste_status",
        "created_at",
    )
    list_filter = ("reason", "dish_type", "created_at")
    search_fields = ("user__email", "dish__name", "restaurant__name")
    list_select_related = ("ranking", "user", "dish", "restaurant")


@admin.register(DishStat)
class DishStatAdmin(admin.ModelAdmin):
    """Admin configuration for the cached per-user dish statistics."""

    list_display = (
        "user",
        "dish",
        "total_rankings",
        "total_restaurants_ranked",
        "first_ranked_at",
        "last_ranked_at",
    )
    search_fields = ("user__email", "dish__name")
    list_select_related = ("user", "dish")
    readonly_fields = (
        "user",
        "dish",
        "total_rankings",
        "total_restaurants_ranked",
        "first_ranked_at",
        "last_ranked_at",
    )
    actions = ("rebuild_selected",)

    def has_add_permission(self, request: HttpRequest) -> bool:  # noqa: ARG002
        """Dish statistics are derived, never entered by hand."""
        return False

    @admin.action(description=_("Rebuild selected statistics from rankings"))
    def rebuild_selected(self, request: HttpRequest, queryset: QuerySet[DishStat]) -> None:
        """Recompute the selected rows from the rankings they summarize."""
        pairs = list(queryset.values_list("user_id", "dish_id"))
        for user_id, dish_id in pairs:
            rebuild_dish_stat(user_id, dish_id)
        self.message_user(
            request,
            _("Rebuilt %(count)d statistic(s).") % {"count": len(pairs)},
            messages.SUCCESS,
        )
