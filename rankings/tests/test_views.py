"""Tests for the ranking JSON endpoints."""

# ruff: noqa: PLR2004

import json
from collections.abc import Callable
from http import HTTPStatus
from typing import Any
from unittest.mock import patch

import pytest
from django.db import OperationalError
from django.test.client import Client
from django.urls import reverse, reverse_lazy

from catalog.models import Dish, Restaurant
from rankings import engine
from rankings.exceptions import ConflictAbort
from rankings.models import Ranking
from rankings.types import Rank
from users.models import CustomUser

from .conftest import PHOTO


Submit = Callable[..., engine.RankingResult]


def ranking_payload(dish: Dish, restaurant: Restaurant, **overrides: Any) -> dict[str, Any]:
    """Return a valid request body for submitting a ranking."""
    payload: dict[str, Any] = {
        "dishId": dish.pk,
        "restaurantId": restaurant.pk,
        "dishType": dish.dish_type,
        "rank": 2,
        "notes": "Springy noodles",
        "photoUrls": [PHOTO],
    }
    payload.update(overrides)
    return payload


def post_json(client: Client, url: str, payload: Any) -> Any:
    """POST a JSON body."""
    return client.post(url, data=json.dumps(payload), content_type="application/json")


# ---------------------------------------------------------------------------
# POST /api/rankings/
# ---------------------------------------------------------------------------
@pytest.mark.django_db
class TestSubmitRankingView:
    """Tests for the ranking submission endpoint."""

    url = reverse_lazy("ranking_submit")

    def test_login_required(self, client: Client, ramen: Dish, restaurant: Restaurant) -> None:
        """Anonymous users are redirected to the login page."""
        response = post_json(client, self.url, ranking_payload(ramen, restaurant))

        assert response.status_code == HTTPStatus.FOUND
        assert "login" in response.headers.get("Location", "")
        assert not Ranking.objects.exists()

    def test_get_not_allowed(self, client: Client, user: CustomUser) -> None:
        """Only POST is accepted."""
        client.force_login(user)
        response = client.get(self.url)
        assert response.status_code == HTTPStatus.METHOD_NOT_ALLOWED

    def test_create(
        self,
        client: Client,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Create a ranking for the logged-in user and return the dish summary."""
        client.force_login(user)
        response = post_json(client, self.url, ranking_payload(ramen, restaurant))

        assert response.status_code == HTTPStatus.CREATED
        data = response.json()
        ranking = Ranking.objects.get()
        assert ranking.user == user
        assert data["success"] is True
        assert data["rankingId"] == ranking.pk
        assert data["created"] is True
        assert data["totalRankings"] == 1
        assert data["averageRank"] == 2.0
        assert data["ranks"]["2"] == 1

    def test_update_returns_ok(
        self,
        client: Client,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """A second submission for the same dish and restaurant answers 200."""
        client.force_login(user)
        post_json(client, self.url, ranking_payload(ramen, restaurant))
        response = post_json(client, self.url, ranking_payload(ramen, restaurant, rank=1))

        assert response.status_code == HTTPStatus.OK
        assert response.json()["created"] is False

    def test_demotion_reported(
        self,
        client: Client,
        user: CustomUser,
        ramen: Dish,
        pho: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Report which ranking lost rank 1."""
        client.force_login(user)
        first = post_json(client, self.url, ranking_payload(ramen, restaurant, rank=1)).json()
        second = post_json(client, self.url, ranking_payload(pho, restaurant, rank=1)).json()

        assert second["demotedRankingId"] == first["rankingId"]
        assert Ranking.objects.get(pk=first["rankingId"]).rank == 2

    @pytest.mark.parametrize(
        ("overrides", "field"),
        [
            ({"rank": 6}, "rank"),
            ({"rank": None}, "rank"),
            ({"tasteStatus": "ACCEPTABLE"}, "rank"),
            ({"rank": None, "tasteStatus": "YUMMY"}, "taste_status"),
            ({"notes": ""}, "notes"),
            ({"photoUrls": []}, "photo_refs"),
            ({"dishType": ""}, "dish_type"),
        ],
    )
    def test_validation_errors(
        self,
        client: Client,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
        overrides: dict[str, Any],
        field: str,
    ) -> None:
        """Answer 400 with the offending field and write nothing."""
        client.force_login(user)
        response = post_json(client, self.url, ranking_payload(ramen, restaurant, **overrides))

        assert response.status_code == HTTPStatus.BAD_REQUEST
        assert response.json()["field"] == field
        assert "error" in response.json()
        assert not Ranking.objects.exists()

    def test_invalid_json(self, client: Client, user: CustomUser) -> None:
        """Answer 400 for a body that is not JSON."""
        client.force_login(user)
        response = client.post(self.url, data="not json", content_type="application/json")

        assert response.status_code == HTTPStatus.BAD_REQUEST
        assert response.json() == {"error": "Request body must be valid JSON"}

    def test_body_must_be_object(self, client: Client, user: CustomUser) -> None:
        """Answer 400 for JSON that is not an object."""
        client.force_login(user)
        response = post_json(client, self.url, [1, 2])

        assert response.status_code == HTTPStatus.BAD_REQUEST

    def test_unknown_dish(self, client: Client, user: CustomUser, restaurant: Restaurant) -> None:
        """Answer 404 for a dish that does not exist."""
        client.force_login(user)
        payload = ranking_payload(Dish(pk=999_999, dish_type="noodle"), restaurant)
        response = post_json(client, self.url, payload)

        assert response.status_code == HTTPStatus.NOT_FOUND
        assert response.json()["error"] == "Dish not found: 999999"

    def test_conflict(
        self,
        client: Client,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Answer 409 when a concurrent change aborted the submission."""
        client.force_login(user)
        with patch(
            "rankings.engine.submit_ranking_payload",
            side_effect=ConflictAbort("Please retry."),
        ):
            response = post_json(client, self.url, ranking_payload(ramen, restaurant))

        assert response.status_code == HTTPStatus.CONFLICT
        assert response.json() == {"error": "Please retry."}

    def test_store_unavailable(
        self,
        client: Client,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Answer 503 when the database fails."""
        client.force_login(user)
        with patch("rankings.engine._apply", side_effect=OperationalError("server closed")):
            response = post_json(client, self.url, ranking_payload(ramen, restaurant))

        assert response.status_code == HTTPStatus.SERVICE_UNAVAILABLE


# ---------------------------------------------------------------------------
# PUT /api/rankings/<id>/
# ---------------------------------------------------------------------------
@pytest.mark.django_db
class TestUpdateRankingView:
    """Tests for the ranking update endpoint."""

    def test_update(
        self,
        client: Client,
        submit: Submit,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Update an owned ranking."""
        created = submit(user, ramen, restaurant, Rank(3))
        client.force_login(user)

        response = client.put(
            reverse("ranking_update", args=[created.ranking.pk]),
            data=json.dumps({"tasteStatus": "ACCEPTABLE", "notes": "Fine", "photoUrls": [PHOTO]}),
            content_type="application/json",
        )

        assert response.status_code == HTTPStatus.OK
        assert response.json()["created"] is False
        created.ranking.refresh_from_db()
        assert created.ranking.taste_status == "ACCEPTABLE"
        assert created.ranking.rank is None

    def test_other_users_ranking(
        self,
        client: Client,
        submit: Submit,
        user: CustomUser,
        other_user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Answer 404 for somebody else's ranking."""
        created = submit(user, ramen, restaurant, Rank(3))
        client.force_login(other_user)

        response = client.put(
            reverse("ranking_update", args=[created.ranking.pk]),
            data=json.dumps({"rank": 1, "notes": "Mine", "photoUrls": [PHOTO]}),
            content_type="application/json",
        )

        assert response.status_code == HTTPStatus.NOT_FOUND
        created.ranking.refresh_from_db()
        assert created.ranking.rank == 3

    def test_post_not_allowed(self, client: Client, user: CustomUser) -> None:
        """Only PUT is accepted."""
        client.force_login(user)
        response = client.post(reverse("ranking_update", args=[1]))
        assert response.status_code == HTTPStatus.METHOD_NOT_ALLOWED


# ---------------------------------------------------------------------------
# Read endpoints
# ---------------------------------------------------------------------------
@pytest.mark.django_db
class TestReadViews:
    """Tests for the history and statistics endpoints."""

    def test_history(
        self,
        client: Client,
        submit: Submit,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Return the ranking's transitions oldest first."""
        created = submit(user, ramen, restaurant, Rank(3))
        submit(user, ramen, restaurant, Rank(2))
        client.force_login(user)

        response = client.get(reverse("ranking_history", args=[created.ranking.pk]))

        assert response.status_code == HTTPStatus.OK
        data = response.json()
        assert data["rankingId"] == created.ranking.pk
        assert [entry["newRank"] for entry in data["history"]] == [3, 2]
        assert data["history"][1]["previousRank"] == 3

    def test_history_of_other_user_hidden(
        self,
        client: Client,
        submit: Submit,
        user: CustomUser,
        other_user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Answer 404 for somebody else's ranking history."""
        created = submit(user, ramen, restaurant, Rank(3))
        client.force_login(other_user)

        response = client.get(reverse("ranking_history", args=[created.ranking.pk]))

        assert response.status_code == HTTPStatus.NOT_FOUND

    def test_user_stats(
        self,
        client: Client,
        submit: Submit,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Return the user's counters and rankings."""
        submit(user, ramen, restaurant, Rank(1))
        client.force_login(user)

        response = client.get(reverse("user_ranking_stats", args=[user.pk]))

        assert response.status_code == HTTPStatus.OK
        data = response.json()
        assert data["totalRankings"] == 1
        assert data["rankCounts"] == {"1": 1, "2": 0, "3": 0, "4": 0, "5": 0}
        assert len(data["topRankings"]) == 1

    def test_user_stats_for_user_without_rankings(self, client: Client, user: CustomUser) -> None:
        """Return zeroed counters for a user without rankings."""
        client.force_login(user)

        response = client.get(reverse("user_ranking_stats", args=[user.pk]))

        assert response.status_code == HTTPStatus.OK
        assert response.json()["totalRankings"] == 0
        assert response.json()["rankings"] == []

    def test_dish_summary(
        self,
        client: Client,
        submit: Submit,
        user: CustomUser,
        other_user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Return the dish aggregate with its best restaurants."""
        submit(user, ramen, restaurant, Rank(1))
        submit(other_user, ramen, restaurant, Rank(2))
        client.force_login(user)

        response = client.get(reverse("dish_ranking_summary", args=[ramen.pk]))

        assert response.status_code == HTTPStatus.OK
        data = response.json()
        assert data["dishId"] == ramen.pk
        assert data["dishName"] == "Ramen"
        assert data["dishType"] == "noodle"
        assert data["totalRankings"] == 2
        assert data["averageRank"] == 1.5
        assert data["topRestaurants"][0]["id"] == restaurant.pk

    def test_dish_summary_unknown_dish(self, client: Client, user: CustomUser) -> None:
        """Answer 404 for a dish that does not exist."""
        client.force_login(user)
        response = client.get(reverse("dish_ranking_summary", args=[999_999]))
        assert response.status_code == HTTPStatus.NOT_FOUND

    def test_my_dish_rankings(
        self,
        client: Client,
        submit: Submit,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
        other_restaurant: Restaurant,
    ) -> None:
        """Return the user's rankings of a dish with the rollup."""
        submit(user, ramen, restaurant, Rank(3))
        submit(user, ramen, other_restaurant, Rank(1))
        client.force_login(user)

        response = client.get(reverse("my_dish_rankings", args=[ramen.pk]))

        assert response.status_code == HTTPStatus.OK
        data = response.json()
        assert [r["rank"] for r in data["rankings"]] == [1, 3]
        assert data["dishStat"]["totalRankings"] == 2
        assert data["dishStat"]["totalRestaurantsRanked"] == 2

    def test_my_dish_rankings_empty(self, client: Client, user: CustomUser, ramen: Dish) -> None:
        """Return no rankings and no rollup for an unranked dish."""
        client.force_login(user)

        response = client.get(reverse("my_dish_rankings", args=[ramen.pk]))

        assert response.json()["rankings"] == []
        assert response.json()["dishStat"] is None
