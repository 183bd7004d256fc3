"""Shared test fixtures for the rankings app."""

from collections.abc import Callable
from typing import Any

import pytest
from model_bakery import baker

from catalog.models import Dish, Restaurant
from rankings import engine
from rankings.types import Rank, RankingValue
from users.models import CustomUser


PHOTO = "https://cdn.example.com/photos/1.jpg"


@pytest.fixture()
def user() -> CustomUser:
    """Create a regular user for testing."""
    return baker.make(CustomUser, email="diner@example.com")


@pytest.fixture()
def other_user() -> CustomUser:
    """Create another user for testing."""
    return baker.make(CustomUser, email="other@example.com")


@pytest.fixture()
def restaurant() -> Restaurant:
    """Create a restaurant for testing."""
    return baker.make(Restaurant, name="Noodle Bar", slug="noodle-bar")


@pytest.fixture()
def other_restaurant() -> Restaurant:
    """Create a second restaurant for testing."""
    return baker.make(Restaurant, name="Rice House", slug="rice-house")


@pytest.fixture()
def ramen() -> Dish:
    """Create a noodle dish."""
    return baker.make(Dish, name="Ramen", slug="ramen", dish_type="noodle")


@pytest.fixture()
def pho() -> Dish:
    """Create a second noodle dish."""
    return baker.make(Dish, name="Pho", slug="pho", dish_type="noodle")


@pytest.fixture()
def mochi() -> Dish:
    """Create a dessert dish."""
    return baker.make(Dish, name="Mochi", slug="mochi", dish_type="dessert")


@pytest.fixture()
def submit() -> Callable[..., engine.RankingResult]:
    """Return a helper that submits a ranking with sensible defaults."""

    def _submit(
        user: CustomUser,
        dish: Dish,
        restaurant: Restaurant,
        value: RankingValue | None = None,
        **overrides: Any,
    ) -> engine.RankingResult:
        kwargs: dict[str, Any] = {
            "user_id": user.pk,
            "dish_id": dish.pk,
            "restaurant_id": restaurant.pk,
            "dish_type": dish.dish_type,
            "value": value if value is not None else Rank(3),
            "notes": "Tasty",
            "photo_refs": [PHOTO],
        }
        kwargs.update(overrides)
        return engine.submit_ranking(**kwargs)

    return _submit
