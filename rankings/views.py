"""
JSON endpoints for dish rankings.

The views are a thin layer over :mod:`rankings.engine`, :mod:`rankings.history` and
:mod:`rankings.stats`: they decode the request, call the engine with the authenticated user and map
engine errors onto HTTP status codes.
"""

import json
from http import HTTPStatus
from typing import Any

import structlog
from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.http import HttpRequest, JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from catalog.models import Dish

from . import engine, history, stats
from .exceptions import ConflictAbort, NotFoundError, RankingError, StoreUnavailable, ValidationError
from .models import Ranking


logger = structlog.get_logger(__name__)

ERROR_STATUSES: dict[type[RankingError], HTTPStatus] = {
    ValidationError: HTTPStatus.BAD_REQUEST,
    NotFoundError: HTTPStatus.NOT_FOUND,
    ConflictAbort: HTTPStatus.CONFLICT,
    StoreUnavailable: HTTPStatus.SERVICE_UNAVAILABLE,
}


def error_response(exc: RankingError) -> JsonResponse:
    """Translate an engine error into a JSON error response."""
    status = next(
        (status for error_type, status in ERROR_STATUSES.items() if isinstance(exc, error_type)),
        HTTPStatus.INTERNAL_SERVER_ERROR,
    )
    body: dict[str, Any] = {"error": str(exc)}
    if isinstance(exc, ValidationError) and exc.field:
        body["field"] = exc.field
    return JsonResponse(body, status=status)


def _decode_body(request: HttpRequest) -> dict[str, Any]:
    try:
        payload = json.loads(request.body or b"{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        msg = "Request body must be valid JSON"
        raise ValidationError(msg) from None
    if not isinstance(payload, dict):
        msg = "Request body must be a JSON object"
        raise ValidationError(msg)
    return payload


@login_required
@require_POST
@transaction.non_atomic_requests
def submit_ranking(request: HttpRequest) -> JsonResponse:
    """
    Create or update the current user's ranking of a dish at a restaurant.

    The engine runs its own transaction so the scope lock is held only as long as needed.
    """
    try:
        payload = _decode_body(request)
        result = engine.submit_ranking_payload(request.user.pk, payload)
    except RankingError as exc:
        logger.info("ranking_request_rejected", error=str(exc), error_type=type(exc).__name__)
        return error_response(exc)

    status = HTTPStatus.CREATED if result.created else HTTPStatus.OK
    return JsonResponse(result.as_response(), status=status)


@login_required
@require_http_methods(["PUT"])
@transaction.non_atomic_requests
def update_ranking(request: HttpRequest, ranking_id: int) -> JsonResponse:
    """Update one of the current user's rankings by id."""
    try:
        payload = _decode_body(request)
        result = engine.update_ranking_payload(request.user.pk, ranking_id, payload)
    except RankingError as exc:
        logger.info("ranking_request_rejected", error=str(exc), error_type=type(exc).__name__)
        return error_response(exc)

    return JsonResponse(result.as_response())


@login_required
@require_GET
def ranking_history(request: HttpRequest, ranking_id: int) -> JsonResponse:
    """Return the transitions of one of the current user's rankings, oldest first."""
    ranking = get_object_or_404(Ranking, pk=ranking_id, user=request.user)
    entries = history.get_history(ranking.pk)
    return JsonResponse(
        {
            "rankingId": ranking.pk,
            "history": [entry.to_dict() for entry in entries],
        },
    )


@login_required
@require_GET
def user_ranking_stats(request: HttpRequest, user_id: int) -> JsonResponse:  # noqa: ARG001
    """Return the ranking counters and lists of a user."""
    return JsonResponse(stats.get_user_ranking_stats(user_id).as_response())


@login_required
@require_GET
def dish_ranking_summary(request: HttpRequest, dish_id: int) -> JsonResponse:  # noqa: ARG001
    """Return how a dish is ranked across all users and where it ranks best."""
    dish = get_object_or_404(Dish, pk=dish_id)
    summary = stats.get_dish_ranking_summary(dish.pk).as_dict()
    summary["dishName"] = dish.name
    summary["dishType"] = dish.dish_type
    summary["topRestaurants"] = [
        standing.as_dict() for standing in stats.get_top_restaurants_for_dish(dish.pk)
    ]
    return JsonResponse(summary)


@login_required
@require_GET
def my_dish_rankings(request: HttpRequest, dish_id: int) -> JsonResponse:
    """Return the current user's rankings of one dish across restaurants."""
    dish = get_object_or_404(Dish, pk=dish_id)
    rankings, dish_stat = stats.get_user_dish_rankings(request.user.pk, dish.pk)
    return JsonResponse(
        {
            "dishId": dish.pk,
            "dishName": dish.name,
            "rankings": [ranking.to_dict() for ranking in rankings],
            "dishStat": dish_stat.to_dict() if dish_stat else None,
        },
    )
