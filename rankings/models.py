"""
Dish ranking storage.

This module provides the current-state ``Ranking`` table, the append-only ``RankingHistory`` trail
and the ``DishStat`` per-user rollup cache. Writes go through :mod:`rankings.engine`; the models
only guard the invariants the database can express.
"""

from typing import Any, ClassVar

from django.conf import settings
from django.db import models
from django.db.models import Q, QuerySet
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from catalog.models import MAX_DISH_TYPE_LENGTH, Dish, Restaurant

from .types import BEST_RANK, MAX_RANK, MIN_RANK, RankingValue, TasteStatus, join_ranking_value


# Constants
TASTE_STATUS_LENGTH = 20


class RankingQuerySet(models.QuerySet):
    """Custom QuerySet for Ranking model with additional methods."""

    def for_user(self, user_id: int) -> QuerySet:
        """Return the rankings owned by one user."""
        return self.filter(user_id=user_id)

    def best(self) -> QuerySet:
        """Return only rank-1 rankings."""
        return self.filter(rank=BEST_RANK)

    def in_scope(self, user_id: int, restaurant_id: int, dish_type: str) -> QuerySet:
        """Return the rankings sharing one One-Best scope."""
        return self.filter(user_id=user_id, restaurant_id=restaurant_id, dish_type=dish_type)

    def numeric(self) -> QuerySet:
        """Return rankings with a numeric rank."""
        return self.filter(rank__isnull=False)


class Ranking(models.Model):
    """A user's current verdict on one dish at one restaurant."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="rankings",
        help_text=_("The user who ranked the dish"),
    )

    dish = models.ForeignKey(
        Dish,
        on_delete=models.PROTECT,
        related_name="rankings",
        help_text=_("The ranked dish"),
    )

    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.PROTECT,
        related_name="rankings",
        help_text=_("Where the dish was eaten"),
    )

    dish_type = models.CharField(
        max_length=MAX_DISH_TYPE_LENGTH,
        help_text=_("Dish-type bucket scoping the One-Best rule"),
    )

    rank = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        help_text=_("Rank from 1 (best) to 5; empty when a taste status is set"),
    )

    taste_status = models.CharField(
        max_length=TASTE_STATUS_LENGTH,
        choices=TasteStatus.choices,
        null=True,
        blank=True,
        help_text=_("Taste status; empty when a rank is set"),
    )

    notes = models.TextField(
        help_text=_("What the user thought about the dish"),
    )

    photo_refs = models.JSONField(
        default=list,
        help_text=_("References to the uploaded photos of the dish"),
    )

    created_at = models.DateTimeField(
        default=timezone.now,
        help_text=_("When the dish was first ranked"),
    )

    updated_at = models.DateTimeField(
        default=timezone.now,
        help_text=_("When the ranking last changed"),
    )

    objects = RankingQuerySet.as_manager()

    class Meta:
        """Metadata for the Ranking model."""

        verbose_name = _("Ranking")
        verbose_name_plural = _("Rankings")
        ordering: ClassVar[list[str]] = ["-updated_at", "-id"]
        indexes: ClassVar[list[models.Index]] = [
            models.Index(fields=["user", "-updated_at"], name="ranking_user_updated_idx"),
            models.Index(fields=["dish", "restaurant"], name="ranking_dish_restaurant_idx"),
        ]
        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(
                fields=["user", "dish", "restaurant"],
                name="unique_user_dish_restaurant_ranking",
            ),
            models.UniqueConstraint(
                fields=["user", "restaurant", "dish_type"],
                condition=Q(rank=BEST_RANK),
                name="one_best_per_user_restaurant_dish_type",
            ),
            models.CheckConstraint(
                condition=(
                    Q(rank__isnull=False, taste_status__isnull=True)
                    | Q(rank__isnull=True, taste_status__isnull=False)
                ),
                name="ranking_rank_xor_taste_status",
            ),
            models.CheckConstraint(
                condition=Q(rank__isnull=True) | Q(rank__gte=MIN_RANK, rank__lte=MAX_RANK),
                name="ranking_rank_range",
            ),
        ]

    def __str__(self) -> str:
        """Return a string representation of the ranking."""
        return f"{self.user} ranked {self.dish} at {self.restaurant}: {self.display_value}"

    @property
    def value(self) -> RankingValue | None:
        """Return the stored rank or taste status as a RankingValue."""
        return join_ranking_value(self.rank, self.taste_status)

    @property
    def display_value(self) -> str:
        """Return the rank as "n/5" or the taste status label."""
        if self.rank is not None:
            return f"{self.rank}/{MAX_RANK}"
        if self.taste_status:
            return str(TasteStatus(self.taste_status).label)
        return "-"

    def to_dict(self) -> dict[str, Any]:
        """Serialize the ranking in the shape the API returns."""
        return {
            "id": self.pk,
            "userId": self.user_id,
            "userName": self.user.public_name,
            "dishId": self.dish_id,
            "restaurantId": self.restaurant_id,
            "dishType": self.dish_type,
            "rank": self.rank,
            "tasteStatus": self.taste_status,
            "notes": self.notes,
            "photoUrls": list(self.photo_refs),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class AppendOnlyError(Exception):
    """Raised when code tries to change or remove a history entry."""


class RankingHistoryQuerySet(models.QuerySet):
    """QuerySet for history entries that refuses bulk changes."""

    def update(self, **kwargs: Any) -> int:
        """Refuse bulk updates; history entries are immutable."""
        msg = "Ranking history entries cannot be updated"
        raise AppendOnlyError(msg)

    def delete(self) -> tuple[int, dict[str, int]]:
        """Refuse bulk deletes; history entries are immutable."""
        msg = "Ranking history entries cannot be deleted"
        raise AppendOnlyError(msg)

    def demotions(self) -> QuerySet:
        """Return only entries produced by automatic demotion."""
        return self.filter(reason=RankingHistory.Reason.DEMOTED)


class RankingHistory(models.Model):
    """One transition of a ranking, written once and never changed."""

    class Reason(models.TextChoices):
        """Why the transition happened."""

        SUBMITTED = "submitted", _("Submitted by the user")
        DEMOTED = "demoted", _("Demoted by a new best dish")

    ranking = models.ForeignKey(
        Ranking,
        on_delete=models.PROTECT,
        related_name="history",
        help_text=_("The ranking that changed"),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="ranking_history",
    )

    dish = models.ForeignKey(
        Dish,
        on_delete=models.PROTECT,
        related_name="ranking_history",
    )

    restaurant = models.ForeignKey(
        Restaurant,
        on_delete=models.PROTECT,
        related_name="ranking_history",
    )

    dish_type = models.CharField(max_length=MAX_DISH_TYPE_LENGTH)

    previous_rank = models.PositiveSmallIntegerField(null=True, blank=True)
    new_rank = models.PositiveSmallIntegerField(null=True, blank=True)

    previous_taste_status = models.CharField(
        max_length=TASTE_STATUS_LENGTH,
        choices=TasteStatus.choices,
        null=True,
        blank=True,
    )
    new_taste_status = models.CharField(
        max_length=TASTE_STATUS_LENGTH,
        choices=TasteStatus.choices,
        null=True,
        blank=True,
    )

    notes = models.TextField(help_text=_("Notes at the time of the change"))
    photo_refs = models.JSONField(
        default=list,
        help_text=_("Photo references at the time of the change"),
    )

    reason = models.CharField(
        max_length=10,
        choices=Reason.choices,
        default=Reason.SUBMITTED,
    )

    created_at = models.DateTimeField(default=timezone.now)

    objects = RankingHistoryQuerySet.as_manager()

    class Meta:
        """Metadata for the RankingHistory model."""

        verbose_name = _("Ranking history entry")
        verbose_name_plural = _("Ranking history")
        ordering: ClassVar[list[str]] = ["created_at", "id"]
        indexes: ClassVar[list[models.Index]] = [
            models.Index(fields=["ranking", "created_at"], name="history_ranking_created_idx"),
            models.Index(fields=["user", "reason"], name="history_user_reason_idx"),
        ]

    def __str__(self) -> str:
        """Return a string representation of the transition."""
        before = self.previous_rank or self.previous_taste_status or "new"
        after = self.new_rank or self.new_taste_status
        return f"Ranking {self.ranking_id}: {before} -> {after} ({self.reason})"

    def save(self, *args: Any, **kwargs: Any) -> None:
        """Insert the entry; saving an already stored entry is refused."""
        if not self._state.adding:
            msg = "Ranking history entries cannot be updated"
            raise AppendOnlyError(msg)
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any) -> tuple[int, dict[str, int]]:
        """Refuse deletion; history entries are immutable."""
        msg = "Ranking history entries cannot be deleted"
        raise AppendOnlyError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entry in the shape the API returns."""
        return {
            "id": self.pk,
            "rankingId": self.ranking_id,
            "userId": self.user_id,
            "dishId": self.dish_id,
            "restaurantId": self.restaurant_id,
            "dishType": self.dish_type,
            "previousRank": self.previous_rank,
            "newRank": self.new_rank,
            "previousTasteStatus": self.previous_taste_status,
            "newTasteStatus": self.new_taste_status,
            "notes": self.notes,
            "photoUrls": list(self.photo_refs),
            "reason": self.reason,
            "createdAt": self.created_at.isoformat(),
        }


class DishStat(models.Model):
    """
    Per user and dish rollup of rankings across restaurants.

    A cache only: every row can be rebuilt from ``Ranking`` with
    :func:`rankings.stats.rebuild_dish_stat`.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="dish_stats",
    )

    dish = models.ForeignKey(
        Dish,
        on_delete=models.PROTECT,
        related_name="dish_stats",
    )

    total_rankings = models.PositiveIntegerField(default=0)
    total_restaurants_ranked = models.PositiveIntegerField(default=0)
    first_ranked_at = models.DateTimeField(null=True, blank=True)
    last_ranked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        """Metadata for the DishStat model."""

        verbose_name = _("Dish statistic")
        verbose_name_plural = _("Dish statistics")
        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(fields=["user", "dish"], name="unique_user_dish_stat"),
        ]

    def __str__(self) -> str:
        """Return a string representation of the rollup."""
        return f"{self.user} / {self.dish}: {self.total_rankings} ranking(s)"

    def to_dict(self) -> dict[str, Any]:
        """Serialize the rollup in the shape the API returns."""
        return {
            "totalRankings": self.total_rankings,
            "totalRestaurantsRanked": self.total_restaurants_ranked,
            "firstRankedAt": self.first_ranked_at.isoformat() if self.first_ranked_at else None,
            "lastRankedAt": self.last_ranked_at.isoformat() if self.last_ranked_at else None,
        }
