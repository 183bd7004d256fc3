"""
Management command for rebuilding the DishStat cache from current rankings.

DishStat rows are maintained by the ranking engine; this command recomputes them from scratch, e.g.
after a data import or to verify that the cache has not drifted.
"""

from typing import Any

from django.core.management.base import BaseCommand, CommandParser
from django.db import transaction

from rankings.models import DishStat, Ranking
from rankings.stats import rebuild_all_dish_stats, rebuild_dish_stat


class Command(BaseCommand):
    """Rebuild per-user dish statistics from rankings."""

    help = "Rebuild per-user dish statistics from rankings."

    def add_arguments(self, parser: CommandParser) -> None:
        """Add command line arguments."""
        parser.add_argument(
            "--user",
            type=int,
            help="Only rebuild statistics of this user id",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report the rows that would be rebuilt without changing the database",
        )

    def _pairs(self, user_id: int | None) -> list[tuple[int, int]]:
        rankings = Ranking.objects.all()
        if user_id is not None:
            rankings = rankings.filter(user_id=user_id)
        return list(rankings.values_list("user_id", "dish_id").distinct().order_by())

    @transaction.atomic
    def handle(self, *args: Any, **options: Any) -> None:  # noqa: ARG002
        """Execute the command."""
        user_id = options.get("user")
        dry_run = options.get("dry_run", False)

        if dry_run:
            self.stdout.write(self.style.NOTICE("DRY RUN: No database changes will be made"))
            pairs = self._pairs(user_id)
            self.stdout.write(f"Would rebuild {len(pairs)} dish statistic(s)")
            return

        if user_id is None:
            written = rebuild_all_dish_stats()
        else:
            DishStat.objects.filter(user_id=user_id).delete()
            written = sum(
                1
                for pair_user_id, dish_id in self._pairs(user_id)
                if rebuild_dish_stat(pair_user_id, dish_id) is not None
            )

        self.stdout.write(self.style.SUCCESS(f"Rebuilt {written} dish statistic(s)"))
