"""Incremental catch-up for polling clients.

A client remembers the ``timestamp`` of the last ``common`` patch it received
and sends it back on the next poll. Everything modified after that cursor is
returned as ``put`` patches, in the same format the ``BoardManager`` uses for
live changes. Deletions that happened while a client was away are not
reported; such a client only notices them on a full reload (cursor ``0``).
"""

import logging
from collections import defaultdict

from django.conf import settings
from django.contrib.auth import get_user_model

from tafel.core.models import Card, Column, HistoryEntry
from tafel.core.models.base import now_timestamp
from tafel.core.serializers import (
    board_fields,
    card_fields,
    column_fields,
    discussion_fields,
    history_fields,
    user_fields,
)
from tafel.core.updates import UpdateFormatter

logger = logging.getLogger(__name__)


def common_fields(board, timestamp, user=None):
    return {
        "id": board.pk,
        "timestamp": timestamp,
        "userid": user.pk if user is not None else None,
        "liveupdate": settings.TAFEL_LIVE_UPDATE,
    }


def get_updates(board, timestamp=0, user=None):
    """All patches a client with cursor ``timestamp`` is missing."""
    timestamp = timestamp or 0
    # Taken before querying, so rows changed during the query are sent again.
    # A transaction that stamped its rows before this point but commits after
    # the query is missed until the next full reload.
    cursor = now_timestamp()
    formatter = UpdateFormatter()
    formatter.put("common", common_fields(board, cursor, user))

    board.refresh_from_db()
    if board.timemodified > timestamp:
        formatter.put("board", board_fields(board))

    for column in Column.objects.filter(board=board, timemodified__gt=timestamp):
        formatter.put("columns", column_fields(column))

    cards = list(Card.objects.filter(board=board, timemodified__gt=timestamp))
    assignees = defaultdict(list)
    through = Card.assignees.through.objects.filter(card__in=cards).order_by("user_id")
    for card_id, user_id in through.values_list("card_id", "user_id"):
        assignees[card_id].append(user_id)
    user_ids = set()
    for card in cards:
        formatter.put("cards", card_fields(card, user, assignees[card.pk]))
        user_ids.update(assignees[card.pk])

    for assignee in get_user_model().objects.filter(pk__in=user_ids).order_by("pk"):
        formatter.put("users", user_fields(assignee))

    logger.debug(
        "Board %s: %s patches since %s", board.pk, len(formatter), timestamp
    )
    return formatter.formatted()


def get_discussion_updates(card, timestamp=0, user=None):
    """Messages of a card posted after ``timestamp``.

    No ``common`` patch is sent: the board cursor of the client must not move.
    """
    timestamp = timestamp or 0
    formatter = UpdateFormatter()
    messages = card.messages.filter(timecreated__gt=timestamp).select_related("author")
    for message in messages:
        formatter.put("discussions", discussion_fields(message, user))
    return formatter.formatted()


def get_history_updates(card, timestamp=0):
    timestamp = timestamp or 0
    formatter = UpdateFormatter()
    entries = HistoryEntry.objects.filter(
        board_id=card.board_id, card_id=card.pk, timestamp__gt=timestamp
    )
    for entry in entries:
        formatter.put("history", history_fields(entry))
    return formatter.formatted()
