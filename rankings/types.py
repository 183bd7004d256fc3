"""
Value types for dish rankings.

A ranking carries either a numeric rank or a taste status, never both. ``RankingValue`` models this
as a union of :class:`Rank` and :class:`TasteStatus`, so code that holds a value cannot express the
"both" or "neither" states.
"""

from dataclasses import dataclass
from typing import Any

from django.db import models
from django.utils.translation import gettext_lazy as _

from .exceptions import ValidationError


MIN_RANK = 1
MAX_RANK = 5
BEST_RANK = MIN_RANK
DEMOTED_RANK = BEST_RANK + 1


class TasteStatus(models.TextChoices):
    """Non-numeric verdict for diners who don't want to rank competitively."""

    ACCEPTABLE = "ACCEPTABLE", _("Acceptable")
    SECOND_CHANCE = "SECOND_CHANCE", _("Second chance")
    DISSATISFIED = "DISSATISFIED", _("Dissatisfied")


@dataclass(frozen=True, slots=True)
class Rank:
    """Numeric rank, 1 (best) to 5."""

    value: int

    def __post_init__(self) -> None:
        """Reject ranks outside the 1-5 range."""
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            msg = f"Rank must be an integer, got {self.value!r}"
            raise ValidationError(msg, field="rank")
        if not MIN_RANK <= self.value <= MAX_RANK:
            msg = f"Rank must be between {MIN_RANK} and {MAX_RANK}"
            raise ValidationError(msg, field="rank")

    @property
    def is_best(self) -> bool:
        """Return True for the top rank, which falls under the One-Best rule."""
        return self.value == BEST_RANK


RankingValue = Rank | TasteStatus


def parse_ranking_value(rank: Any = None, taste_status: Any = None) -> RankingValue:
    """
    Build a RankingValue from the raw ``rank`` / ``taste_status`` pair of a request.

    Exactly one of them must be given. Integral strings are accepted for the rank since form posts
    deliver them that way.
    """
    if (rank is None) == (taste_status is None):
        msg = "A ranking must have either a rank or a taste status, but not both"
        raise ValidationError(msg, field="rank")

    if rank is not None:
        if isinstance(rank, str):
            try:
                rank = int(rank.strip())
            except ValueError:
                msg = f"Invalid rank value: {rank!r}"
                raise ValidationError(msg, field="rank") from None
        return Rank(rank)

    try:
        return TasteStatus(taste_status)
    except ValueError:
        allowed = ", ".join(TasteStatus.values)
        msg = f"Taste status must be one of: {allowed}"
        raise ValidationError(msg, field="taste_status") from None


def split_ranking_value(value: RankingValue) -> tuple[int | None, str | None]:
    """Return the ``(rank, taste_status)`` column pair for a value."""
    if isinstance(value, Rank):
        return value.value, None
    return None, TasteStatus(value).value


def join_ranking_value(rank: int | None, taste_status: str | None) -> RankingValue | None:
    """Return the value stored in a ``(rank, taste_status)`` column pair, if any."""
    if rank is not None:
        return Rank(rank)
    if taste_status:
        return TasteStatus(taste_status)
    return None
