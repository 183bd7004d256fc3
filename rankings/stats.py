"""
Statistics derived from current rankings.

Every figure here is recomputed from ``Ranking`` on demand, so it can never drift from the rows it
describes. ``DishStat`` is the one materialized rollup and it is rebuilt from ``Ranking`` as well.
"""

from dataclasses import dataclass, field
from typing import Any

import structlog
from django.db.models import Avg, Count, F, Max, Min, Q, QuerySet

from .models import DishStat, Ranking
from .types import MAX_RANK, MIN_RANK, TasteStatus


logger = structlog.get_logger(__name__)

RANK_VALUES = tuple(range(MIN_RANK, MAX_RANK + 1))
DEFAULT_TOP_RESTAURANTS = 5


def _count_aggregates() -> dict[str, Count]:
    aggregates = {f"rank_{rank}": Count("id", filter=Q(rank=rank)) for rank in RANK_VALUES}
    for status in TasteStatus:
        aggregates[f"status_{status.value}"] = Count("id", filter=Q(taste_status=status.value))
    aggregates["total"] = Count("id")
    return aggregates


def _split_counts(row: dict[str, Any]) -> tuple[dict[int, int], dict[str, int]]:
    rank_counts = {rank: row[f"rank_{rank}"] or 0 for rank in RANK_VALUES}
    taste_status_counts = {status.value: row[f"status_{status.value}"] or 0 for status in TasteStatus}
    return rank_counts, taste_status_counts


@dataclass(frozen=True)
class DishRankingSummary:
    """How one dish is ranked across all users."""

    dish_id: int
    total_rankings: int
    average_rank: float | None
    rank_counts: dict[int, int]
    taste_status_counts: dict[str, int]

    def as_dict(self) -> dict[str, Any]:
        """Serialize the summary in the shape the API returns."""
        return {
            "dishId": self.dish_id,
            "totalRankings": self.total_rankings,
            "averageRank": self.average_rank,
            "rankCounts": {str(rank): count for rank, count in self.rank_counts.items()},
            "tasteStatusCounts": dict(self.taste_status_counts),
        }


@dataclass(frozen=True)
class UserRankingStats:
    """Counters and lists describing one user's rankings."""

    user_id: int
    total_rankings: int
    rank_counts: dict[int, int]
    taste_status_counts: dict[str, int]
    rankings: list[Ranking] = field(default_factory=list)
    top_rankings: list[Ranking] = field(default_factory=list)

    def as_response(self) -> dict[str, Any]:
        """Serialize the stats in the shape the API returns."""
        return {
            "userId": self.user_id,
            "totalRankings": self.total_rankings,
            "rankCounts": {str(rank): count for rank, count in self.rank_counts.items()},
            "tasteStatusCounts": dict(self.taste_status_counts),
            "rankings": [ranking.to_dict() for ranking in self.rankings],
            "topRankings": [ranking.to_dict() for ranking in self.top_rankings],
        }


@dataclass(frozen=True)
class RestaurantStanding:
    """How a dish fares at one restaurant."""

    restaurant_id: int
    name: str
    ranking_count: int
    average_rank: float | None

    def as_dict(self) -> dict[str, Any]:
        """Serialize the standing in the shape the API returns."""
        return {
            "id": self.restaurant_id,
            "name": self.name,
            "rankingCount": self.ranking_count,
            "averageRank": self.average_rank,
        }


def get_user_ranking_stats(user_id: int) -> UserRankingStats:
    """
    Count a user's rankings by rank and by taste status.

    Users without rankings get zeroed counters and empty lists. ``top_rankings`` holds the rank-1
    rankings, most recently updated first.
    """
    rankings = Ranking.objects.for_user(user_id).select_related("user", "dish", "restaurant")
    row = rankings.aggregate(**_count_aggregates())
    rank_counts, taste_status_counts = _split_counts(row)

    ordered = rankings.order_by("-updated_at", "-id")
    return UserRankingStats(
        user_id=user_id,
        total_rankings=row["total"] or 0,
        rank_counts=rank_counts,
        taste_status_counts=taste_status_counts,
        rankings=list(ordered),
        top_rankings=list(ordered.best()),
    )


def get_dish_ranking_summary(dish_id: int) -> DishRankingSummary:
    """
    Aggregate the rankings of one dish across all users.

    ``average_rank`` covers numeric ranks only; taste statuses are counted separately. It is None
    when nobody gave the dish a numeric rank.
    """
    row = Ranking.objects.filter(dish_id=dish_id).aggregate(
        average=Avg("rank"),
        **_count_aggregates(),
    )
    rank_counts, taste_status_counts = _split_counts(row)
    average = row["average"]
    return DishRankingSummary(
        dish_id=dish_id,
        total_rankings=row["total"] or 0,
        average_rank=round(float(average), 2) if average is not None else None,
        rank_counts=rank_counts,
        taste_status_counts=taste_status_counts,
    )


def get_top_restaurants_for_dish(
    dish_id: int,
    limit: int = DEFAULT_TOP_RESTAURANTS,
) -> list[RestaurantStanding]:
    """
    Return the restaurants where a dish ranks best.

    Restaurants are ordered by average rank (lower is better), then by number of rankings.
    Restaurants whose rankings are all taste statuses have no average and sort last.
    """
    rows = (
        Ranking.objects.filter(dish_id=dish_id)
        .values("restaurant_id", name=F("restaurant__name"))
        .annotate(ranking_count=Count("id"), average_rank=Avg("rank"))
        .order_by(F("average_rank").asc(nulls_last=True), "-ranking_count", "restaurant_id")
    )[:limit]
    return [
        RestaurantStanding(
            restaurant_id=row["restaurant_id"],
            name=row["name"],
            ranking_count=row["ranking_count"],
            average_rank=(
                round(float(row["average_rank"]), 2) if row["average_rank"] is not None else None
            ),
        )
        for row in rows
    ]


def get_user_dish_rankings(user_id: int, dish_id: int) -> tuple[QuerySet[Ranking], DishStat | None]:
    """Return a user's rankings of one dish across restaurants, with the cached rollup."""
    rankings = (
        Ranking.objects.for_user(user_id)
        .filter(dish_id=dish_id)
        .select_related("user", "restaurant")
        .order_by(F("rank").asc(nulls_last=True), "-updated_at")
    )
    dish_stat = DishStat.objects.filter(user_id=user_id, dish_id=dish_id).first()
    return rankings, dish_stat


def rebuild_dish_stat(user_id: int, dish_id: int) -> DishStat | None:
    """
    Recompute the DishStat rollup of one user and dish from their rankings.

    The row is removed when the user has no ranking of the dish left.
    """
    row = Ranking.objects.filter(user_id=user_id, dish_id=dish_id).aggregate(
        total=Count("id"),
        restaurants=Count("restaurant", distinct=True),
        first=Min("created_at"),
        last=Max("updated_at"),
    )
    if not row["total"]:
        DishStat.objects.filter(user_id=user_id, dish_id=dish_id).delete()
        return None

    dish_stat, _ = DishStat.objects.update_or_create(
        user_id=user_id,
        dish_id=dish_id,
        defaults={
            "total_rankings": row["total"],
            "total_restaurants_ranked": row["restaurants"],
            "first_ranked_at": row["first"],
            "last_ranked_at": row["last"],
        },
    )
    return dish_stat


def rebuild_all_dish_stats() -> int:
    """Rebuild every DishStat row from scratch and return how many were written."""
    pairs = list(Ranking.objects.values_list("user_id", "dish_id").distinct().order_by())
    DishStat.objects.all().delete()
    written = 0
    for user_id, dish_id in pairs:
        if rebuild_dish_stat(user_id, dish_id) is not None:
            written += 1
    logger.info("dish_stats_rebuilt", rows=written)
    return written
