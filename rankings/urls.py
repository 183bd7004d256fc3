"""URL configuration for the rankings app."""

from django.urls import path

from .views import (
    dish_ranking_summary,
    my_dish_rankings,
    ranking_history,
    submit_ranking,
    update_ranking,
    user_ranking_stats,
)


urlpatterns = [
    path("rankings/", submit_ranking, name="ranking_submit"),
    path("rankings/<int:ranking_id>/", update_ranking, name="ranking_update"),
    path("rankings/<int:ranking_id>/history/", ranking_history, name="ranking_history"),
    path("users/<int:user_id>/ranking-stats/", user_ranking_stats, name="user_ranking_stats"),
    path(
        "dishes/<int:dish_id>/ranking-summary/",
        dish_ranking_summary,
        name="dish_ranking_summary",
    ),
    path("dishes/<int:dish_id>/my-rankings/", my_dish_rankings, name="my_dish_rankings"),
]
