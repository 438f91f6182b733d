from django.contrib import admin
from django.urls import path

from tafel.core import views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/boards/", views.board_list, name="board_list"),
    path(
        "api/boards/<int:board_id>/updates/",
        views.board_updates,
        name="board_updates",
    ),
    path(
        "api/boards/<int:board_id>/cards/<int:card_id>/discussion/",
        views.discussion_updates,
        name="discussion_updates",
    ),
    path(
        "api/boards/<int:board_id>/cards/<int:card_id>/history/",
        views.history_updates,
        name="history_updates",
    ),
    path(
        "api/boards/<int:board_id>/<slug:action>/",
        views.board_change,
        name="board_change",
    ),
]
