import logging
from contextlib import contextmanager

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils.dateparse import parse_datetime

from tafel.core import sequence
from tafel.core.exceptions import BoardLocked, ColumnLocked, InvalidChange
from tafel.core.models import Board, Card, Column, DiscussionMessage, HistoryEntry
from tafel.core.options import CardOptions, ColumnOptions
from tafel.core.serializers import (
    assignee_ids,
    assignment_fields,
    card_fields,
    column_fields,
    discussion_fields,
    user_fields,
)
from tafel.core.updates import UpdateFormatter

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = [
    ("Todo", {}),
    ("Doing", {}),
    ("Done", {"autoclose": True}),
]
COLUMN_FIELDS = {"title", "locked", "options"}
CARD_FIELDS = {"title", "description", "completed", "options", "due_date"}
BOARD_FIELDS = {"name", "description", "locked", "template", "user", "group_name"}
# History parameters only describe the change, not the row
HISTORY_SKIP = {"id", "timemodified", "canedit", "selfassigned", "fullname"}


def check_fields(fields, allowed):
    unknown = set(fields) - allowed
    if unknown:
        raise InvalidChange(f"Unknown fields: {', '.join(sorted(unknown))}")
    return fields


def to_options(value, options_class):
    if isinstance(value, options_class):
        return value
    if not isinstance(value, dict):
        raise InvalidChange("Options must be an object")
    return options_class.from_dict(value)


def to_datetime(value):
    if value in (None, "", 0):
        return None
    if isinstance(value, str):
        result = parse_datetime(value)
        if result is None:
            raise InvalidChange(f"Invalid date: {value}")
        return result
    return value


class BoardManager:
    """Applies changes to one board and records the resulting patches.

    A manager lives for one request. Every operation runs in its own
    transaction, and the patches it emitted are dropped again if it fails, so
    ``get_formatted_updates`` only ever reports changes that were committed.
    """

    def __init__(self, board=None, user=None):
        self.board = board
        self.user = user
        self.formatter = UpdateFormatter()

    @contextmanager
    def _change(self):
        mark = self.formatter.mark()
        try:
            with transaction.atomic():
                if self.board is not None:
                    self.board.refresh_from_db()
                yield
        except Exception:
            self.formatter.rollback(mark)
            raise

    def get_formatted_updates(self):
        return self.formatter.formatted()

    def get_column(self, column_id):
        return Column.objects.get(pk=column_id, board=self.board)

    def get_card(self, card_id):
        return Card.objects.select_related("column").get(pk=card_id, board=self.board)

    def _put_board(self, *keys):
        fields = {"id": self.board.pk}
        for key in keys:
            fields[key] = getattr(self.board, key)
        fields["timemodified"] = self.board.timemodified
        self.formatter.put("board", fields)

    def _put_column(self, column, *keys):
        fields = {"id": column.pk}
        for key in keys:
            fields[key] = getattr(column, key)
        fields["timemodified"] = column.timemodified
        self.formatter.put("columns", fields)

    def _put_card(self, card, **fields):
        self.formatter.put(
            "cards", {"id": card.pk, **fields, "timemodified": card.timemodified}
        )

    def add_column(self, after=None, **fields):
        check_fields(fields, COLUMN_FIELDS)
        with self._change():
            if self.board.locked:
                raise BoardLocked()
            options = to_options(fields.pop("options", {}), ColumnOptions)
            fields.setdefault("title", "New column")
            column = Column(board=self.board, **fields)
            column.column_options = options
            column.save()
            self.board.sequence = sequence.insert_after(
                self.board.sequence, after, column.pk
            )
            self.board.save(update_fields=["sequence"])
            self.formatter.create("columns", column_fields(column))
            self._put_board("sequence")
            self.write_history("added", "column", {"title": column.title}, column.pk)
        logger.debug("Added column %s to board %s", column.pk, self.board.pk)
        return column

    def add_card(self, column_id, after=None, **fields):
        check_fields(fields, CARD_FIELDS)
        with self._change():
            column = self.get_column(column_id)
            options = to_options(fields.pop("options", {}), CardOptions)
            fields.setdefault("title", "New card")
            if "due_date" in fields:
                fields["due_date"] = to_datetime(fields["due_date"])
            card = Card(board=self.board, column=column, created_by=self.user, **fields)
            card.card_options = options
            card.save()
            column.sequence = sequence.insert_after(column.sequence, after, card.pk)
            column.save(update_fields=["sequence"])
            self.formatter.create("cards", card_fields(card, self.user, []))
            self._put_column(column, "sequence")
            self.write_history(
                "added", "card", {"title": card.title, "columnname": column.title},
                column.pk, card.pk,
            )
        return card

    def move_column(self, column_id, after):
        with self._change():
            column = self.get_column(column_id)
            if self.board.locked or column.locked:
                logger.debug("Not moving locked column %s", column.pk)
                return
            self.board.sequence = sequence.move_after(
                self.board.sequence, after, column.pk
            )
            self.board.save(update_fields=["sequence"])
            self._put_board("sequence")

    def move_card(self, card_id, after, column_id=None):
        """Move a card behind ``after``, into ``column_id`` if given.

        Moving into another column touches the source column, the target
        column and the card; the three patches are emitted in that order.
        """
        with self._change():
            card = self.get_card(card_id)
            source = card.column
            if column_id is None or column_id == source.pk:
                source.sequence = sequence.move_after(source.sequence, after, card.pk)
                source.save(update_fields=["sequence"])
                self._put_column(source, "sequence")
                return

            target = self.get_column(column_id)
            source.sequence = sequence.remove(source.sequence, card.pk)
            source.save(update_fields=["sequence"])
            target.sequence = sequence.insert_after(target.sequence, after, card.pk)
            target.save(update_fields=["sequence"])

            card.column = target
            changed = {"column": target.pk, "title": card.title}
            update_fields = ["column"]
            autoclosed = target.column_options.autoclose and not card.completed
            if autoclosed:
                card.completed = True
                changed["completed"] = True
                update_fields.append("completed")
            card.save(update_fields=update_fields)

            self._put_column(source, "sequence")
            self._put_column(target, "sequence")
            self._put_card(card, **changed)
            if autoclosed:
                self.write_history("completed", "card", {}, target.pk, card.pk)
            self.write_history(
                "moved", "card", {"columnname": target.title}, source.pk, card.pk
            )

    def _delete_card(self, card, update_column=True):
        card_id = card.pk
        if update_column:
            column = card.column
            column.sequence = sequence.remove(column.sequence, card_id)
            column.save(update_fields=["sequence"])
            self._put_column(column, "sequence")
        # Assignments and discussion messages go with the card
        card.delete()
        HistoryEntry.objects.filter(board=self.board, card_id=card_id).delete()
        self.formatter.delete("cards", {"id": card_id})

    def delete_card(self, card_id):
        with self._change():
            self._delete_card(self.get_card(card_id))

    def delete_column(self, column_id):
        with self._change():
            if self.board.locked:
                raise BoardLocked()
            column = self.get_column(column_id)
            if column.locked:
                raise ColumnLocked()
            cards = {card.pk: card for card in column.cards.all()}
            ordered = [cards.pop(pk) for pk in column.sequence if pk in cards]
            # Cards missing from the sequence are deleted as well
            ordered.extend(cards.values())
            for card in ordered:
                self._delete_card(card, update_column=False)
            column.delete()
            self.formatter.delete("columns", {"id": column_id})
            self.board.sequence = sequence.remove(self.board.sequence, column_id)
            self.board.save(update_fields=["sequence"])
            self._put_board("sequence")
            self.write_history("deleted", "column", {}, column_id)
        logger.info("Deleted column %s with %s cards", column_id, len(ordered))

    def _put_assignees(self, card):
        self._put_card(card, **assignment_fields(card, self.user, assignee_ids(card)))

    def assign_user(self, card_id, user_id):
        with self._change():
            card = self.get_card(card_id)
            user = get_user_model().objects.get(pk=user_id)
            card.assignees.add(user)
            card.touch()
            self._put_assignees(card)
            self.formatter.put("users", user_fields(user))
            self.write_history(
                "assigned", "card", {"user_id": user.pk}, card.column_id, card.pk
            )

    def unassign_user(self, card_id, user_id):
        with self._change():
            card = self.get_card(card_id)
            card.assignees.remove(user_id)
            card.touch()
            self._put_assignees(card)
            self.write_history(
                "unassigned", "card", {"user_id": user_id}, card.column_id, card.pk
            )

    def set_card_complete(self, card_id, state):
        with self._change():
            card = self.get_card(card_id)
            card.completed = bool(state)
            card.save(update_fields=["completed"])
            self._put_card(card, completed=card.completed)
            self.write_history(
                "completed" if card.completed else "reopened",
                "card",
                {},
                card.column_id,
                card.pk,
            )

    def set_column_locked(self, column_id, state):
        with self._change():
            column = self.get_column(column_id)
            column.locked = bool(state)
            column.save(update_fields=["locked"])
            self._put_column(column, "locked")

    def set_board_columns_locked(self, state):
        with self._change():
            self.board.locked = bool(state)
            self.board.save(update_fields=["locked"])
            self._put_board("locked")
            for column in self.board.columns.all():
                column.locked = self.board.locked
                column.save(update_fields=["locked"])
                self._put_column(column, "locked")

    def add_discussion_message(self, card_id, message):
        if not message or not message.strip():
            raise InvalidChange("Empty message")
        with self._change():
            card = self.get_card(card_id)
            discussion = DiscussionMessage.objects.create(
                card=card, author=self.user, content=message
            )
            self.formatter.put("discussions", discussion_fields(discussion, self.user))
            if not card.discussion:
                card.discussion = True
                card.save(update_fields=["discussion"])
                self._put_card(card, discussion=True)
            self.write_history(
                "added", "discussion", {"content": message}, card.column_id, card.pk
            )
        return discussion

    def delete_discussion_message(self, message_id, card_id):
        with self._change():
            card = self.get_card(card_id)
            card.messages.get(pk=message_id).delete()
            self.formatter.delete("discussions", {"id": message_id})
            self.write_history("deleted", "discussion", {}, card.column_id, card.pk)
            if not card.messages.exists():
                card.discussion = False
                card.save(update_fields=["discussion"])
                self._put_card(card, discussion=False)

    def update_card(self, card_id, data):
        """Partial update of a card.

        ``assignees`` replaces the full list of assigned users, ``color`` is a
        shortcut for the background option.
        """
        check_fields(data, CARD_FIELDS | {"color", "assignees"})
        with self._change():
            card = self.get_card(card_id)
            changed = {}
            for key in ("title", "description", "completed", "due_date"):
                if key not in data:
                    continue
                value = data[key]
                if key == "completed":
                    value = bool(value)
                elif key == "due_date":
                    value = to_datetime(value)
                if getattr(card, key) != value:
                    setattr(card, key, value)
                    changed[key] = value

            options = card.card_options
            if "options" in data:
                options = to_options(data["options"], CardOptions)
            if data.get("color"):
                options.background = data["color"]
            if options.to_dict() != card.options:
                card.card_options = options
                changed["options"] = options

            added_users = []
            assignees_changed = False
            if "assignees" in data:
                added_users, removed = self._replace_assignees(card, data["assignees"])
                assignees_changed = bool(added_users or removed)
                for user_id in removed:
                    self.write_history(
                        "unassigned", "card", {"user_id": user_id}, card.column_id, card.pk
                    )

            if changed:
                card.save(update_fields=list(changed))
            elif assignees_changed:
                card.touch()
            self._put_card(
                card, **changed, **assignment_fields(card, self.user, assignee_ids(card))
            )
            for user in added_users:
                self.formatter.put("users", user_fields(user))
                self.write_history(
                    "assigned", "card", {"user_id": user.pk}, card.column_id, card.pk
                )
            if changed:
                self.write_history(
                    "updated", "card", {"title": card.title, **changed}, card.column_id, card.pk
                )

    def _replace_assignees(self, card, user_ids):
        try:
            wanted = {int(user_id) for user_id in user_ids}
        except (TypeError, ValueError):
            raise InvalidChange("Assignees must be a list of user ids") from None
        current = set(assignee_ids(card))
        users = list(get_user_model().objects.filter(pk__in=wanted - current))
        if len(users) != len(wanted - current):
            raise get_user_model().DoesNotExist("Unknown user in assignees")
        removed = sorted(current - wanted)
        card.assignees.remove(*removed)
        card.assignees.add(*users)
        return users, removed

    def update_column(self, column_id, data):
        check_fields(data, {"title", "autoclose", "autohide"})
        with self._change():
            column = self.get_column(column_id)
            old_title = column.title
            options = column.column_options
            for key in ("autoclose", "autohide"):
                if key in data:
                    setattr(options, key, bool(data[key]))
            column.title = data.get("title", column.title)
            column.column_options = options
            column.save(update_fields=["title", "options"])
            self.formatter.put(
                "columns",
                {
                    "id": column.pk,
                    "title": column.title,
                    "options": column.column_options,
                    "timemodified": column.timemodified,
                },
            )
            if column.title != old_title:
                self.write_history("updated", "column", {"title": column.title}, column.pk)

    def push_card_copy(self, card_id, board_ids=None):
        """Copy a card into the first column of other boards.

        Without ``board_ids`` every board that is not a template receives the
        copy. Boards that already have a copy get it updated instead, boards
        without columns are skipped. Assignees, discussion and history are not
        copied.
        """
        with self._change():
            card = self.get_card(card_id)
            boards = Board.objects.exclude(pk=card.board_id)
            if board_ids:
                boards = boards.filter(pk__in=board_ids)
            else:
                boards = boards.filter(template=False)
            copied = []
            for board in boards:
                values = {
                    "title": card.title,
                    "description": card.description,
                    "options": card.options,
                    "due_date": card.due_date,
                }
                existing = Card.objects.filter(board=board, original_id=card.pk).first()
                if existing:
                    for key, value in values.items():
                        setattr(existing, key, value)
                    existing.save(update_fields=list(values))
                    self.write_history(
                        "updated", "card", {"title": existing.title},
                        existing.column_id, existing.pk, board=board,
                    )
                    copied.append(existing)
                    continue
                column = (
                    Column.objects.filter(board=board, pk=board.sequence[0]).first()
                    if board.sequence
                    else None
                )
                if column is None:
                    logger.debug("Board %s has no column, not copying card", board.pk)
                    continue
                new_card = Card.objects.create(
                    board=board, column=column, original_id=card.pk, **values
                )
                column.sequence = sequence.insert_after(column.sequence, None, new_card.pk)
                column.save(update_fields=["sequence"])
                self.write_history(
                    "added", "card", {"title": new_card.title, "columnname": column.title},
                    column.pk, new_card.pk, board=board,
                )
                copied.append(new_card)
        logger.info("Pushed card %s to %s boards", card_id, len(copied))
        return copied

    def get_template_board(self):
        return Board.objects.filter(template=True).order_by("-created_at", "-pk").first()

    def create_board(self, **data):
        return self.create_board_from_template(self.get_template_board(), **data)

    def create_board_from_template(self, source=None, **data):
        """Create a new board, copying columns and cards of ``source``.

        Without a source board the board gets the default columns. Assignees,
        discussions and history of the source are not copied.
        """
        check_fields(data, BOARD_FIELDS)
        with transaction.atomic():
            if source is None:
                board = Board.objects.create(**data)
                columns = [
                    Column.objects.create(
                        board=board, title=title, options=ColumnOptions.from_dict(options).to_dict()
                    )
                    for title, options in DEFAULT_COLUMNS
                ]
                board.sequence = [column.pk for column in columns]
                board.save(update_fields=["sequence"])
                logger.info("Created board %s with default columns", board.pk)
                return board

            board = Board.objects.create(
                **{"name": source.name, "description": source.description, **data}
            )
            column_map = {}
            source_columns = list(source.columns.all())
            for column in source_columns:
                column_map[column.pk] = Column.objects.create(
                    board=board,
                    title=column.title,
                    locked=column.locked,
                    options=column.options,
                )
            card_map = {}
            for card in source.cards.all():
                card_map[card.pk] = Card.objects.create(
                    board=board,
                    column=column_map[card.column_id],
                    title=card.title,
                    description=card.description,
                    completed=card.completed,
                    options=card.options,
                    due_date=card.due_date,
                    original_id=card.pk,
                )
            card_ids = {old: new.pk for old, new in card_map.items()}
            for column in source_columns:
                new_column = column_map[column.pk]
                new_column.sequence = sequence.remap(column.sequence, card_ids)
                new_column.save(update_fields=["sequence"])
            board.sequence = sequence.remap(
                source.sequence, {old: new.pk for old, new in column_map.items()}
            )
            board.save(update_fields=["sequence"])
        logger.info("Created board %s from board %s", board.pk, source.pk)
        return board

    def create_user_board(self, user):
        if user is None:
            raise InvalidChange("A user board needs a user")
        return self.create_board(user=user)

    def create_group_board(self, group_name):
        if not group_name:
            raise InvalidChange("A group board needs a group name")
        return self.create_board(group_name=group_name)

    def create_template(self):
        """Save the current board as a new template."""
        with self._change():
            template = self.create_board_from_template(self.board, template=True)
            self.formatter.put("common", {"id": self.board.pk, "template": template.pk})
        return template

    def delete_board(self):
        with self._change():
            board_id = self.board.pk
            # Columns, cards, messages and history are removed by the cascade
            self.board.delete()
            self.formatter.delete("board", {"id": board_id})
        logger.info("Deleted board %s", board_id)

    def write_history(self, action, type, data=None, column_id=None, card_id=None, board=None):
        if not settings.TAFEL_HISTORY:
            return
        data = dict(data or {})
        affected_user_id = data.pop("user_id", None)
        for key in HISTORY_SKIP:
            data.pop(key, None)
        HistoryEntry.objects.create(
            board=board or self.board,
            column_id=column_id,
            card_id=card_id,
            user_id=self.user.pk if self.user else None,
            affected_user_id=affected_user_id,
            action=action,
            type=type,
            parameters=self.formatter.format_fields(data),
        )
