"""Tests for the ranking models and the constraints the database enforces."""

# ruff: noqa: PLR2004

import pytest
from django.db import IntegrityError, transaction
from model_bakery import baker

from catalog.models import Dish, Restaurant
from rankings.models import AppendOnlyError, DishStat, Ranking, RankingHistory
from rankings.types import Rank, TasteStatus
from users.models import CustomUser


def make_ranking(user: CustomUser, dish: Dish, restaurant: Restaurant, **fields: object) -> Ranking:
    """Create a ranking row directly, bypassing the engine."""
    defaults: dict[str, object] = {
        "dish_type": dish.dish_type,
        "rank": 3,
        "taste_status": None,
        "notes": "Tasty",
        "photo_refs": ["p1"],
    }
    defaults.update(fields)
    return Ranking.objects.create(user=user, dish=dish, restaurant=restaurant, **defaults)


# ---------------------------------------------------------------------------
# Ranking
# ---------------------------------------------------------------------------
@pytest.mark.django_db
class TestRankingModel:
    """Tests for the Ranking model."""

    def test_str_with_rank(self, user: CustomUser, ramen: Dish, restaurant: Restaurant) -> None:
        """Show the rank out of five."""
        ranking = make_ranking(user, ramen, restaurant, rank=2)
        assert str(ranking) == f"{user} ranked {ramen} at {restaurant}: 2/5"

    def test_str_with_taste_status(
        self,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Show the taste status label."""
        ranking = make_ranking(user, ramen, restaurant, rank=None, taste_status="SECOND_CHANCE")
        assert str(ranking).endswith(": Second chance")

    def test_value(self, user: CustomUser, ramen: Dish, restaurant: Restaurant, pho: Dish) -> None:
        """Expose the stored columns as a RankingValue."""
        numeric = make_ranking(user, ramen, restaurant, rank=4)
        status = make_ranking(user, pho, restaurant, rank=None, taste_status="ACCEPTABLE")
        assert numeric.value == Rank(4)
        assert status.value is TasteStatus.ACCEPTABLE

    def test_to_dict(self, user: CustomUser, ramen: Dish, restaurant: Restaurant) -> None:
        """Serialize with the API field names."""
        ranking = make_ranking(user, ramen, restaurant, rank=1)
        data = ranking.to_dict()
        assert data["id"] == ranking.pk
        assert data["userId"] == user.pk
        assert data["dishId"] == ramen.pk
        assert data["restaurantId"] == restaurant.pk
        assert data["dishType"] == "noodle"
        assert data["rank"] == 1
        assert data["tasteStatus"] is None
        assert data["photoUrls"] == ["p1"]
        assert data["createdAt"] == ranking.created_at.isoformat()
        assert data["userName"] == "diner@example.com"

    def test_to_dict_uses_display_name(
        self,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Show the diner's display name next to the ranking when one is set."""
        user.display_name = "Noodle Fan"
        user.save()
        ranking = make_ranking(user, ramen, restaurant, rank=2)
        assert ranking.to_dict()["userName"] == "Noodle Fan"

    def test_unique_per_user_dish_restaurant(
        self,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Enforce one ranking per user, dish and restaurant."""
        make_ranking(user, ramen, restaurant)
        with pytest.raises(IntegrityError), transaction.atomic():
            make_ranking(user, ramen, restaurant, rank=4)

    def test_one_best_per_scope(
        self,
        user: CustomUser,
        ramen: Dish,
        pho: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Reject a second rank-1 row in the same user, restaurant and dish type."""
        make_ranking(user, ramen, restaurant, rank=1)
        with pytest.raises(IntegrityError), transaction.atomic():
            make_ranking(user, pho, restaurant, rank=1)

    def test_one_best_allows_other_scopes(
        self,
        user: CustomUser,
        other_user: CustomUser,
        ramen: Dish,
        pho: Dish,
        mochi: Dish,
        restaurant: Restaurant,
        other_restaurant: Restaurant,
    ) -> None:
        """Allow rank 1 once per scope: other dish types, restaurants and users are separate."""
        make_ranking(user, ramen, restaurant, rank=1)
        make_ranking(user, mochi, restaurant, rank=1)
        make_ranking(user, pho, other_restaurant, rank=1)
        make_ranking(other_user, pho, restaurant, rank=1)
        assert Ranking.objects.best().count() == 4

    def test_one_best_ignores_other_ranks(
        self,
        user: CustomUser,
        ramen: Dish,
        pho: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Several rank-2 rows may share a scope."""
        make_ranking(user, ramen, restaurant, rank=2)
        make_ranking(user, pho, restaurant, rank=2)
        assert Ranking.objects.in_scope(user.pk, restaurant.pk, "noodle").count() == 2

    def test_rejects_both_rank_and_taste_status(
        self,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """A row cannot carry a rank and a taste status at once."""
        with pytest.raises(IntegrityError), transaction.atomic():
            make_ranking(user, ramen, restaurant, rank=2, taste_status="ACCEPTABLE")

    def test_rejects_neither_rank_nor_taste_status(
        self,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """A row must carry a rank or a taste status."""
        with pytest.raises(IntegrityError), transaction.atomic():
            make_ranking(user, ramen, restaurant, rank=None, taste_status=None)

    @pytest.mark.parametrize("rank", [0, 6])
    def test_rejects_out_of_range_rank(
        self,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
        rank: int,
    ) -> None:
        """Ranks outside 1-5 are rejected by the database."""
        with pytest.raises(IntegrityError), transaction.atomic():
            make_ranking(user, ramen, restaurant, rank=rank)

    def test_dish_cannot_be_deleted_while_ranked(
        self,
        user: CustomUser,
        ramen: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Ranked dishes are protected from deletion."""
        from django.db.models import ProtectedError  # noqa: PLC0415

        make_ranking(user, ramen, restaurant)
        with pytest.raises(ProtectedError):
            ramen.delete()

    def test_queryset_helpers(
        self,
        user: CustomUser,
        other_user: CustomUser,
        ramen: Dish,
        pho: Dish,
        restaurant: Restaurant,
    ) -> None:
        """Filter by owner, best rank and numeric rank."""
        make_ranking(user, ramen, restaurant, rank=1)
        make_ranking(user, pho, restaurant, rank=None, taste_status="DISSATISFIED")
        make_ranking(other_user, ramen, restaurant, rank=5)

        assert Ranking.objects.for_user(user.pk).count() == 2
        assert Ranking.objects.for_user(user.pk).best().count() == 1
        assert Ranking.objects.for_user(user.pk).numeric().count() == 1


# ---------------------------------------------------------------------------
# RankingHistory
# ---------------------------------------------------------------------------
@pytest.mark.django_db
class TestRankingHistoryModel:
    """Tests for the append-only RankingHistory model."""

    @pytest.fixture()
    def entry(self, user: CustomUser, ramen: Dish, restaurant: Restaurant) -> RankingHistory:
        """Create a history entry."""
        ranking = make_ranking(user, ramen, restaurant, rank=2)
        return RankingHistory.objects.create(
            ranking=ranking,
            user=user,
            dish=ramen,
            restaurant=restaurant,
            dish_type="noodle",
            previous_rank=None,
            new_rank=2,
            notes="Tasty",
            photo_refs=["p1"],
        )

    def test_defaults_to_submitted(self, entry: RankingHistory) -> None:
        """New entries are user submissions unless told otherwise."""
        assert entry.reason == RankingHistory.Reason.SUBMITTED

    def test_str(self, entry: RankingHistory) -> None:
        """Describe the transition."""
        assert str(entry) == f"Ranking {entry.ranking_id}: new -> 2 (submitted)"

    def test_save_existing_entry_refused(self, entry: RankingHistory) -> None:
        """Stored entries cannot be saved again."""
        entry.notes = "Changed"
        with pytest.raises(AppendOnlyError):
            entry.save()

    def test_delete_refused(self, entry: RankingHistory) -> None:
        """Entries cannot be deleted one by one."""
        with pytest.raises(AppendOnlyError):
            entry.delete()
        assert RankingHistory.objects.filter(pk=entry.pk).exists()

    def test_bulk_update_refused(self, entry: RankingHistory) -> None:
        """Entries cannot be updated in bulk."""
        with pytest.raises(AppendOnlyError):
            RankingHistory.objects.filter(pk=entry.pk).update(notes="Changed")

    def test_bulk_delete_refused(self, entry: RankingHistory) -> None:
        """Entries cannot be deleted in bulk."""
        with pytest.raises(AppendOnlyError):
            RankingHistory.objects.all().delete()

    def test_ranking_protected_by_history(self, entry: RankingHistory) -> None:
        """A ranking with history cannot be deleted."""
        from django.db.models import ProtectedError  # noqa: PLC0415

        with pytest.raises(ProtectedError):
            entry.ranking.delete()

    def test_to_dict(self, entry: RankingHistory) -> None:
        """Serialize with the API field names."""
        data = entry.to_dict()
        assert data["rankingId"] == entry.ranking_id
        assert data["previousRank"] is None
        assert data["newRank"] == 2
        assert data["reason"] == "submitted"


# ---------------------------------------------------------------------------
# DishStat
# ---------------------------------------------------------------------------
@pytest.mark.django_db
class TestDishStatModel:
    """Tests for the DishStat rollup model."""

    def test_unique_per_user_and_dish(self, user: CustomUser, ramen: Dish) -> None:
        """Keep one rollup row per user and dish."""
        baker.make(DishStat, user=user, dish=ramen)
        with pytest.raises(IntegrityError), transaction.atomic():
            baker.make(DishStat, user=user, dish=ramen)

    def test_to_dict_without_dates(self, user: CustomUser, ramen: Dish) -> None:
        """Serialize missing dates as None."""
        stat = baker.make(DishStat, user=user, dish=ramen, total_rankings=0)
        assert stat.to_dict() == {
            "totalRankings": 0,
            "totalRestaurantsRanked": 0,
            "firstRankedAt": None,
            "lastRankedAt": None,
        }
