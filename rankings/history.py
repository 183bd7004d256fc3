"""
Append-only ranking history.

The history log is the only record of what was demoted and when; ``Ranking`` only reflects the
current state. Entries are appended by the engine inside its transaction and never changed.
"""

from django.db.models import QuerySet

from .models import Ranking, RankingHistory


def record_transition(
    ranking: Ranking,
    *,
    previous_rank: int | None,
    previous_taste_status: str | None,
    reason: str = RankingHistory.Reason.SUBMITTED,
) -> RankingHistory:
    """
    Append one history entry describing the ranking's move to its current state.

    The notes and photos are snapshotted from the ranking as it is now.
    """
    return RankingHistory.objects.create(
        ranking=ranking,
        user_id=ranking.user_id,
        dish_id=ranking.dish_id,
        restaurant_id=ranking.restaurant_id,
        dish_type=ranking.dish_type,
        previous_rank=previous_rank,
        new_rank=ranking.rank,
        previous_taste_status=previous_taste_status,
        new_taste_status=ranking.taste_status,
        notes=ranking.notes,
        photo_refs=list(ranking.photo_refs),
        reason=reason,
    )


def get_history(ranking_id: int) -> QuerySet[RankingHistory]:
    """Return the transitions of one ranking, oldest first."""
    return RankingHistory.objects.filter(ranking_id=ranking_id).order_by("created_at", "id")


def get_demotions(user_id: int) -> QuerySet[RankingHistory]:
    """Return the automatic demotions a user's rankings went through, newest first."""
    return (
        RankingHistory.objects.filter(user_id=user_id)
        .demotions()
        .select_related("dish", "restaurant")
        .order_by("-created_at", "-id")
    )
