"""Defines the configuration for the catalog app."""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Configuration class for the catalog app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
