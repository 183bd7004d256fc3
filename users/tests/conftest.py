"""Shared test fixtures for the users app."""

from typing import Any

import pytest
from django.contrib.auth import get_user_model


@pytest.fixture()
def user_model() -> type[Any]:
    """Return the user model being used by the application."""
    return get_user_model()
