"""
Restaurant and dish catalog.

These models are the identities rankings point at. The ranking engine only reads them; they are
maintained through the admin or by the restaurant import pipeline.
"""

from typing import ClassVar

from django.db import models
from django.utils.translation import gettext_lazy as _


# Constants
COUNTRY_CODE_LENGTH = 2
MAX_ADDRESS_LENGTH = 300
MAX_DISH_NAME_LENGTH = 200
MAX_DISH_TYPE_LENGTH = 50
MAX_RESTAURANT_NAME_LENGTH = 200
MAX_SLUG_LENGTH = 100


class Restaurant(models.Model):
    """A place where dishes are eaten and ranked."""

    name = models.CharField(
        max_length=MAX_RESTAURANT_NAME_LENGTH,
        help_text=_("Name of the restaurant"),
    )

    slug = models.SlugField(
        max_length=MAX_SLUG_LENGTH,
        unique=True,
        help_text=_("Name used in URLs"),
    )

    address = models.CharField(
        max_length=MAX_ADDRESS_LENGTH,
        blank=True,
        help_text=_("Street address of the restaurant"),
    )

    country_code = models.CharField(
        max_length=COUNTRY_CODE_LENGTH,
        blank=True,
        help_text=_("ISO 3166-1 alpha-2 country code"),
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Metadata for the Restaurant model."""

        verbose_name = _("Restaurant")
        verbose_name_plural = _("Restaurants")
        ordering: ClassVar[list[str]] = ["name"]

    def __str__(self) -> str:
        """Return the restaurant name."""
        return self.name


class Dish(models.Model):
    """
    A dish that can be ranked at any restaurant serving it.

    ``dish_type`` is the default bucket for the One-Best rule (e.g. "noodle", "dessert"). A ranking
    stores its own bucket, so a submission may still override it.
    """

    name = models.CharField(
        max_length=MAX_DISH_NAME_LENGTH,
        help_text=_("Name of the dish"),
    )

    slug = models.SlugField(
        max_length=MAX_SLUG_LENGTH,
        unique=True,
        help_text=_("Name used in URLs"),
    )

    dish_type = models.CharField(
        max_length=MAX_DISH_TYPE_LENGTH,
        db_index=True,
        help_text=_("Dish-type bucket, e.g. noodle or dessert"),
    )

    description = models.TextField(
        blank=True,
        help_text=_("Short description of the dish"),
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Metadata for the Dish model."""

        verbose_name = _("Dish")
        verbose_name_plural = _("Dishes")
        ordering: ClassVar[list[str]] = ["name"]

    def __str__(self) -> str:
        """Return the dish name with its bucket."""
        return f"{self.name} ({self.dish_type})"
