"""Defines the configuration for the rankings app."""

from django.apps import AppConfig


class RankingsConfig(AppConfig):
    """Configuration class for the rankings app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "rankings"

    def ready(self) -> None:
        """Django app initialization hook: connect signal handlers."""
        from . import signals  # noqa: F401, PLC0415

        return super().ready()
