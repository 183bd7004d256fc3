"""
Notification hook for ranking changes.

``ranking_changed`` is sent by the engine once the submission's transaction has committed, never
from inside it. Receivers hand the change to downstream consumers (analytics, feeds); delivery
guarantees are theirs to provide.

Signal arguments:
    ranking: The ranking that was written
    created: Whether the ranking was created by this submission
    demoted: The ranking that lost rank 1 because of it, or None
"""

from typing import Any

import structlog
from django.dispatch import Signal, receiver


logger = structlog.get_logger(__name__)

ranking_changed = Signal()


@receiver(ranking_changed)
def log_ranking_changed(
    sender: type[Any],
    ranking: Any,
    created: bool,
    demoted: Any | None,
    **_kwargs: Any,
) -> None:
    """Log every committed ranking change."""
    del sender, _kwargs
    logger.info(
        "ranking_changed",
        ranking_id=ranking.pk,
        user_id=ranking.user_id,
        dish_id=ranking.dish_id,
        restaurant_id=ranking.restaurant_id,
        created=created,
        demoted_ranking_id=getattr(demoted, "pk", None),
    )
