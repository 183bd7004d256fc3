"""
The dish ranking engine.

``submit_ranking`` is the only way rankings change. It validates the request, then in a single
transaction takes the scope lock, demotes the previous best dish of the same scope when the new
ranking claims rank 1, writes the ranking, appends the history entries and refreshes the DishStat
rollup. Either all of that is committed or none of it is.

Downstream notification is sent only after commit through the ``ranking_changed`` signal.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import partial
from typing import Any

import structlog
from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from django.utils import timezone

from catalog.models import MAX_DISH_TYPE_LENGTH, Dish, Restaurant

from . import history, stats
from .exceptions import ConflictAbort, NotFoundError, RankingError, StoreUnavailable, ValidationError
from .locks import lock_ranking_scope
from .models import Ranking, RankingHistory
from .signals import ranking_changed
from .types import (
    BEST_RANK,
    DEMOTED_RANK,
    Rank,
    RankingValue,
    TasteStatus,
    parse_ranking_value,
    split_ranking_value,
)


logger = structlog.get_logger(__name__)

# SQLSTATE codes meaning "another transaction got in the way, try again"
RETRYABLE_SQLSTATES = frozenset(
    {
        "40001",  # serialization_failure
        "40P01",  # deadlock_detected
        "55P03",  # lock_not_available (lock_timeout)
        "57014",  # query_canceled (statement_timeout)
    },
)


@dataclass(frozen=True)
class RankingResult:
    """Outcome of a submission."""

    ranking: Ranking
    created: bool
    changed: bool
    demoted: Ranking | None
    summary: stats.DishRankingSummary

    def as_response(self) -> dict[str, Any]:
        """Serialize the result in the shape the API returns."""
        summary = self.summary.as_dict()
        return {
            "success": True,
            "rankingId": self.ranking.pk,
            "dishId": self.ranking.dish_id,
            "created": self.created,
            "demotedRankingId": self.demoted.pk if self.demoted else None,
            "totalRankings": summary["totalRankings"],
            "averageRank": summary["averageRank"],
            "ranks": summary["rankCounts"],
            "tasteStatuses": summary["tasteStatusCounts"],
        }


@dataclass(frozen=True)
class _CleanSubmission:
    dish_type: str
    rank: int | None
    taste_status: str | None
    notes: str
    photo_refs: list[str]


def _clean(
    value: RankingValue,
    dish_type: str,
    notes: str,
    photo_refs: Sequence[str],
) -> _CleanSubmission:
    """Check every precondition of a submission without touching the database."""
    if not isinstance(dish_type, str) or not dish_type.strip():
        msg = "Dish type is required"
        raise ValidationError(msg, field="dish_type")
    if len(dish_type.strip()) > MAX_DISH_TYPE_LENGTH:
        msg = f"Dish type must be at most {MAX_DISH_TYPE_LENGTH} characters"
        raise ValidationError(msg, field="dish_type")

    rank, taste_status, notes, photos = _clean_content(value, notes, photo_refs)
    return _CleanSubmission(
        dish_type=dish_type.strip(),
        rank=rank,
        taste_status=taste_status,
        notes=notes,
        photo_refs=photos,
    )


def _clean_content(
    value: RankingValue,
    notes: str,
    photo_refs: Sequence[str],
) -> tuple[int | None, str | None, str, list[str]]:
    if not isinstance(value, Rank | TasteStatus):
        msg = "A ranking must have either a rank or a taste status"
        raise ValidationError(msg, field="rank")

    if not isinstance(notes, str) or not notes.strip():
        msg = "Notes are required"
        raise ValidationError(msg, field="notes")

    if isinstance(photo_refs, str) or not isinstance(photo_refs, Sequence):
        msg = "Photos must be a list of references"
        raise ValidationError(msg, field="photo_refs")
    cleaned_photos = [ref.strip() for ref in photo_refs if isinstance(ref, str) and ref.strip()]
    if not cleaned_photos or len(cleaned_photos) != len(photo_refs):
        msg = "At least one photo is required and every photo reference must be non-empty"
        raise ValidationError(msg, field="photo_refs")

    rank, taste_status = split_ranking_value(value)
    return rank, taste_status, notes.strip(), cleaned_photos


def _ensure_identities_exist(user_id: int, dish_id: int, restaurant_id: int) -> None:
    if not get_user_model().objects.filter(pk=user_id).exists():
        raise NotFoundError("user", user_id)
    if not Dish.objects.filter(pk=dish_id).exists():
        raise NotFoundError("dish", dish_id)
    if not Restaurant.objects.filter(pk=restaurant_id).exists():
        raise NotFoundError("restaurant", restaurant_id)


def _is_unchanged(ranking: Ranking, submission: _CleanSubmission) -> bool:
    return (
        ranking.rank == submission.rank
        and ranking.taste_status == submission.taste_status
        and ranking.notes == submission.notes
        and list(ranking.photo_refs) == submission.photo_refs
        and ranking.dish_type == submission.dish_type
    )


def _demote_current_best(
    user_id: int,
    restaurant_id: int,
    dish_type: str,
    exclude_pk: int | None,
) -> Ranking | None:
    """
    Move the current rank-1 holder of a scope to rank 2 and record the demotion.

    Only the exact ``(user, restaurant, dish_type)`` scope is searched.
    """
    holders = Ranking.objects.select_for_update().in_scope(user_id, restaurant_id, dish_type).best()
    if exclude_pk is not None:
        holders = holders.exclude(pk=exclude_pk)
    holder = holders.first()
    if holder is None:
        return None

    holder.rank = DEMOTED_RANK
    holder.updated_at = timezone.now()
    holder.save(update_fields=["rank", "updated_at"])
    history.record_transition(
        holder,
        previous_rank=BEST_RANK,
        previous_taste_status=None,
        reason=RankingHistory.Reason.DEMOTED,
    )
    logger.info(
        "ranking_demoted",
        ranking_id=holder.pk,
        user_id=user_id,
        dish_id=holder.dish_id,
        restaurant_id=restaurant_id,
        dish_type=dish_type,
    )
    return holder


def _notify(ranking: Ranking, *, created: bool, demoted: Ranking | None) -> None:
    ranking_changed.send(sender=Ranking, ranking=ranking, created=created, demoted=demoted)


def _apply(
    user_id: int,
    dish_id: int,
    restaurant_id: int,
    submission: _CleanSubmission,
) -> RankingResult:
    """Run the submission algorithm; the caller provides the transaction and the scope lock."""
    existing = (
        Ranking.objects.select_for_update()
        .filter(user_id=user_id, dish_id=dish_id, restaurant_id=restaurant_id)
        .first()
    )

    if existing is not None and _is_unchanged(existing, submission):
        logger.info("ranking_unchanged", ranking_id=existing.pk, user_id=user_id)
        return RankingResult(
            ranking=existing,
            created=False,
            changed=False,
            demoted=None,
            summary=stats.get_dish_ranking_summary(dish_id),
        )

    demoted = None
    if submission.rank == BEST_RANK:
        demoted = _demote_current_best(
            user_id,
            restaurant_id,
            submission.dish_type,
            exclude_pk=existing.pk if existing is not None else None,
        )

    now = timezone.now()
    if existing is None:
        previous_rank, previous_taste_status = None, None
        ranking = Ranking.objects.create(
            user_id=user_id,
            dish_id=dish_id,
            restaurant_id=restaurant_id,
            dish_type=submission.dish_type,
            rank=submission.rank,
            taste_status=submission.taste_status,
            notes=submission.notes,
            photo_refs=submission.photo_refs,
            created_at=now,
            updated_at=now,
        )
    else:
        previous_rank, previous_taste_status = existing.rank, existing.taste_status
        ranking = existing
        ranking.dish_type = submission.dish_type
        ranking.rank = submission.rank
        ranking.taste_status = submission.taste_status
        ranking.notes = submission.notes
        ranking.photo_refs = submission.photo_refs
        ranking.updated_at = now
        ranking.save(
            update_fields=["dish_type", "rank", "taste_status", "notes", "photo_refs", "updated_at"],
        )

    history.record_transition(
        ranking,
        previous_rank=previous_rank,
        previous_taste_status=previous_taste_status,
    )

    stats.rebuild_dish_stat(user_id, dish_id)
    if demoted is not None and demoted.dish_id != dish_id:
        stats.rebuild_dish_stat(user_id, demoted.dish_id)

    created = existing is None
    transaction.on_commit(partial(_notify, ranking, created=created, demoted=demoted))

    logger.info(
        "ranking_submitted",
        ranking_id=ranking.pk,
        user_id=user_id,
        dish_id=dish_id,
        restaurant_id=restaurant_id,
        dish_type=submission.dish_type,
        rank=submission.rank,
        taste_status=submission.taste_status,
        created=created,
        demoted_ranking_id=demoted.pk if demoted else None,
    )
    return RankingResult(
        ranking=ranking,
        created=created,
        changed=True,
        demoted=demoted,
        summary=stats.get_dish_ranking_summary(dish_id),
    )


def _sqlstate(exc: BaseException) -> str | None:
    cause = exc.__cause__
    # psycopg 3 exposes ``sqlstate``, psycopg2 ``pgcode``
    return getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)


def _is_retryable(exc: DatabaseError) -> bool:
    if isinstance(exc, IntegrityError):
        return True
    if _sqlstate(exc) in RETRYABLE_SQLSTATES:
        return True
    return isinstance(exc, OperationalError) and "locked" in str(exc).lower()


def submit_ranking(
    *,
    user_id: int,
    dish_id: int,
    restaurant_id: int,
    dish_type: str,
    value: RankingValue,
    notes: str,
    photo_refs: Sequence[str],
) -> RankingResult:
    """
    Create or update a user's ranking of a dish at a restaurant.

    Args:
        user_id: Id of the ranking user
        dish_id: Id of the ranked dish
        restaurant_id: Id of the restaurant where the dish was eaten
        dish_type: Bucket scoping the One-Best rule
        value: Either a Rank or a TasteStatus
        notes: Non-blank notes about the dish
        photo_refs: Non-empty list of photo references

    Returns:
        RankingResult: The written ranking, the demoted ranking if any and the refreshed dish
        summary

    Raises:
        ValidationError: A precondition failed; nothing was read or written
        NotFoundError: The user, dish or restaurant does not exist
        ConflictAbort: A concurrent submission for the same scope got in the way; retry
        StoreUnavailable: The database failed; nothing was written

    """
    submission = _clean(value, dish_type, notes, photo_refs)

    try:
        with transaction.atomic():
            lock_ranking_scope(user_id, restaurant_id, submission.dish_type)
            _ensure_identities_exist(user_id, dish_id, restaurant_id)
            return _apply(user_id, dish_id, restaurant_id, submission)
    except RankingError:
        raise
    except DatabaseError as exc:
        context = {
            "user_id": user_id,
            "dish_id": dish_id,
            "restaurant_id": restaurant_id,
            "dish_type": submission.dish_type,
        }
        if _is_retryable(exc):
            logger.warning("ranking_conflict", error=str(exc), **context)
            msg = "The ranking could not be saved because of a concurrent change. Please retry."
            raise ConflictAbort(msg) from exc
        logger.exception("ranking_store_unavailable", **context)
        msg = "The ranking store is unavailable"
        raise StoreUnavailable(msg) from exc


def update_ranking(
    *,
    ranking_id: int,
    user_id: int,
    value: RankingValue,
    notes: str,
    photo_refs: Sequence[str],
) -> RankingResult:
    """
    Change an existing ranking identified by its id.

    Only the owner may update a ranking; anybody else gets NotFoundError so ranking ids of other
    users are not disclosed.
    """
    _clean_content(value, notes, photo_refs)

    ranking = Ranking.objects.filter(pk=ranking_id, user_id=user_id).first()
    if ranking is None:
        raise NotFoundError("ranking", ranking_id)

    return submit_ranking(
        user_id=user_id,
        dish_id=ranking.dish_id,
        restaurant_id=ranking.restaurant_id,
        dish_type=ranking.dish_type,
        value=value,
        notes=notes,
        photo_refs=photo_refs,
    )


def _require_id(payload: Mapping[str, Any], key: str) -> int:
    raw = payload.get(key)
    if isinstance(raw, bool) or raw in (None, ""):
        msg = f"{key} is required"
        raise ValidationError(msg, field=key)
    try:
        return int(raw)
    except (TypeError, ValueError):
        msg = f"{key} must be an integer id"
        raise ValidationError(msg, field=key) from None


def submit_ranking_payload(user_id: int, payload: Mapping[str, Any]) -> RankingResult:
    """
    Submit a ranking from a decoded API request body.

    Expects the keys ``dishId``, ``restaurantId``, ``dishType``, ``rank`` or ``tasteStatus``,
    ``notes`` and ``photoUrls``.
    """
    dish_id = _require_id(payload, "dishId")
    restaurant_id = _require_id(payload, "restaurantId")
    value = parse_ranking_value(payload.get("rank"), payload.get("tasteStatus"))
    return submit_ranking(
        user_id=user_id,
        dish_id=dish_id,
        restaurant_id=restaurant_id,
        dish_type=payload.get("dishType") or "",
        value=value,
        notes=payload.get("notes") or "",
        photo_refs=payload.get("photoUrls") or [],
    )


def update_ranking_payload(
    user_id: int,
    ranking_id: int,
    payload: Mapping[str, Any],
) -> RankingResult:
    """Update a ranking from a decoded API request body (``rank``/``tasteStatus``, notes, photos)."""
    value = parse_ranking_value(payload.get("rank"), payload.get("tasteStatus"))
    return update_ranking(
        ranking_id=ranking_id,
        user_id=user_id,
        value=value,
        notes=payload.get("notes") or "",
        photo_refs=payload.get("photoUrls") or [],
    )
