import pytest

from tafel.core.board_manager import BoardManager
from tafel.core.exceptions import BoardLocked, ColumnLocked, InvalidChange
from tafel.core.models import Board, Card, Column, DiscussionMessage, HistoryEntry


def names(manager):
    return [(patch["name"], patch["action"]) for patch in manager.get_formatted_updates()]


def reload(instance):
    return instance.__class__.objects.get(pk=instance.pk)


@pytest.fixture
def manager(board, columns, user):
    return BoardManager(board, user)


@pytest.fixture
def scenario_board(db, user):
    """Board with the columns 10, 20 and 30, the next card id is 40."""
    board = Board.objects.create(name="Scenario")
    for pk in (10, 20, 30):
        Column.objects.create(pk=pk, board=board, title=f"Column {pk}")
    Column.objects.filter(pk=30).update(options={"autoclose": True})
    board.sequence = [10, 20, 30]
    board.save()

    other = Board.objects.create(name="Other")
    Card.objects.create(
        pk=39, board=other, column=Column.objects.create(pk=99, board=other)
    )
    return board


def test_end_to_end_scenario(scenario_board, user):
    manager = BoardManager(scenario_board, user)

    first = manager.add_card(20, None, title="x")
    assert first.pk == 40
    assert Column.objects.get(pk=20).sequence == [40]

    second = manager.add_card(20, 40, title="y")
    assert second.pk == 41
    assert Column.objects.get(pk=20).sequence == [40, 41]

    manager = BoardManager(scenario_board, user)
    manager.move_card(40, None, 30)
    assert Column.objects.get(pk=20).sequence == [41]
    assert Column.objects.get(pk=30).sequence == [40]
    assert Card.objects.get(pk=40).column_id == 30

    patches = manager.get_formatted_updates()
    assert patches[0] == {
        "name": "columns",
        "action": "put",
        "fields": {"id": 20, "sequence": "41", "timemodified": patches[0]["fields"]["timemodified"]},
    }
    assert patches[1]["fields"]["id"] == 30
    assert patches[1]["fields"]["sequence"] == "40"
    assert patches[2]["name"] == "cards"
    assert patches[2]["fields"]["column"] == 30
    assert patches[2]["fields"]["completed"] is True


def test_add_column(manager, board, columns):
    column = manager.add_column(columns[0].pk, title="Review")

    assert reload(board).sequence == [columns[0].pk, column.pk, columns[1].pk, columns[2].pk]
    assert column.sequence == []
    assert names(manager) == [("columns", "create"), ("board", "put")]
    created = manager.get_formatted_updates()[0]["fields"]
    assert created["title"] == "Review"
    assert created["board"] == board.pk


def test_add_column_at_start(manager, board, columns):
    column = manager.add_column(None)
    assert reload(board).sequence[0] == column.pk
    assert column.title == "New column"


def test_add_column_to_locked_board(manager, board):
    board.locked = True
    board.save()
    with pytest.raises(BoardLocked):
        manager.add_column()
    assert len(manager.get_formatted_updates()) == 0
    assert board.columns.count() == 3


def test_add_column_unknown_field(manager):
    with pytest.raises(InvalidChange):
        manager.add_column(color="red")


def test_add_card(manager, column, user):
    card = manager.add_card(column.pk, None, title="First", description="Text")

    assert reload(column).sequence == [card.pk]
    assert card.created_by == user
    assert card.assignees.count() == 0
    assert names(manager) == [("cards", "create"), ("columns", "put")]
    created = manager.get_formatted_updates()[0]["fields"]
    assert created["assignees"] == []
    assert created["canedit"] is True
    assert created["column"] == column.pk


def test_add_card_unknown_column(manager):
    with pytest.raises(Column.DoesNotExist):
        manager.add_card(12345)
    assert len(manager.get_formatted_updates()) == 0


def test_add_card_column_of_other_board(manager, user):
    other = Board.objects.create(name="Other")
    other_column = Column.objects.create(board=other)
    with pytest.raises(Column.DoesNotExist):
        manager.add_card(other_column.pk)


def test_add_card_after_stale_anchor_appends(manager, column, cards):
    card = manager.add_card(column.pk, 999999)
    assert reload(column).sequence == [*[c.pk for c in cards], card.pk]


def test_move_column(manager, board, columns):
    manager.move_column(columns[0].pk, columns[2].pk)
    assert reload(board).sequence == [columns[1].pk, columns[2].pk, columns[0].pk]
    assert names(manager) == [("board", "put")]


def test_move_locked_column_is_noop(manager, board, columns):
    columns[0].locked = True
    columns[0].save()
    manager.move_column(columns[0].pk, columns[2].pk)
    assert reload(board).sequence == [column.pk for column in columns]
    assert names(manager) == []


def test_move_column_on_locked_board_is_noop(manager, board, columns):
    board.locked = True
    board.save()
    manager.move_column(columns[0].pk, columns[2].pk)
    assert names(manager) == []


def test_move_card_within_column(manager, column, cards):
    manager.move_card(cards[0].pk, cards[2].pk)
    assert reload(column).sequence == [cards[1].pk, cards[2].pk, cards[0].pk]
    assert names(manager) == [("columns", "put")]


def test_move_card_same_column_id(manager, column, cards):
    manager.move_card(cards[2].pk, None, column.pk)
    assert reload(column).sequence == [cards[2].pk, cards[0].pk, cards[1].pk]
    assert names(manager) == [("columns", "put")]


def test_move_card_to_other_column(manager, columns, cards):
    manager.move_card(cards[1].pk, None, columns[1].pk)

    assert reload(columns[0]).sequence == [cards[0].pk, cards[2].pk]
    assert reload(columns[1]).sequence == [cards[1].pk]
    card = reload(cards[1])
    assert card.column_id == columns[1].pk
    assert card.completed is False
    assert names(manager) == [("columns", "put"), ("columns", "put"), ("cards", "put")]
    fields = manager.get_formatted_updates()[2]["fields"]
    assert fields["column"] == columns[1].pk
    assert fields["title"] == "Card 1"
    assert "completed" not in fields


def test_move_card_into_autoclose_column(manager, columns, cards):
    manager.move_card(cards[0].pk, None, columns[2].pk)
    assert reload(cards[0]).completed is True
    assert manager.get_formatted_updates()[2]["fields"]["completed"] is True


def test_move_completed_card_into_autoclose_column(manager, columns, cards):
    Card.objects.filter(pk=cards[0].pk).update(completed=True)
    manager.move_card(cards[0].pk, None, columns[2].pk)
    assert "completed" not in manager.get_formatted_updates()[2]["fields"]


def test_move_card_to_unknown_column(manager, column, cards):
    with pytest.raises(Column.DoesNotExist):
        manager.move_card(cards[0].pk, None, 12345)
    assert reload(column).sequence == [card.pk for card in cards]
    assert names(manager) == []


def test_delete_card(manager, column, cards):
    DiscussionMessage.objects.create(card=cards[1], content="Hi")
    manager.delete_card(cards[1].pk)

    assert reload(column).sequence == [cards[0].pk, cards[2].pk]
    assert not Card.objects.filter(pk=cards[1].pk).exists()
    assert not DiscussionMessage.objects.exists()
    assert names(manager) == [("columns", "put"), ("cards", "delete")]


def test_delete_card_removes_its_history(manager, column, cards):
    manager.set_card_complete(cards[0].pk, True)
    assert HistoryEntry.objects.filter(card_id=cards[0].pk).exists()
    manager.delete_card(cards[0].pk)
    assert not HistoryEntry.objects.filter(card_id=cards[0].pk).exists()


def test_delete_column(manager, board, columns, cards):
    manager.delete_column(columns[0].pk)

    assert reload(board).sequence == [columns[1].pk, columns[2].pk]
    assert not Card.objects.exists()
    assert names(manager) == [
        ("cards", "delete"),
        ("cards", "delete"),
        ("cards", "delete"),
        ("columns", "delete"),
        ("board", "put"),
    ]
    deleted = [patch["fields"]["id"] for patch in manager.get_formatted_updates()[:3]]
    assert deleted == [card.pk for card in cards]


def test_delete_column_with_card_missing_from_sequence(manager, board, columns, cards):
    Column.objects.filter(pk=columns[0].pk).update(sequence=str(cards[0].pk))
    manager.delete_column(columns[0].pk)
    assert not Card.objects.exists()
    assert names(manager).count(("cards", "delete")) == 3


def test_delete_locked_column(manager, columns):
    columns[0].locked = True
    columns[0].save()
    with pytest.raises(ColumnLocked):
        manager.delete_column(columns[0].pk)
    assert Column.objects.filter(pk=columns[0].pk).exists()


def test_delete_column_of_locked_board(manager, board, columns):
    board.locked = True
    board.save()
    with pytest.raises(BoardLocked):
        manager.delete_column(columns[0].pk)


def test_assign_user(manager, card, user, other_user):
    manager.assign_user(card.pk, other_user.pk)
    manager.assign_user(card.pk, other_user.pk)

    assert list(card.assignees.all()) == [other_user]
    assert names(manager) == [("cards", "put"), ("users", "put")] * 2
    fields = manager.get_formatted_updates()[0]["fields"]
    assert fields["assignees"] == [other_user.pk]
    assert fields["selfassigned"] is False
    assert fields["canedit"] is True
    assert manager.get_formatted_updates()[1]["fields"] == {"id": other_user.pk, "fullname": "bob"}


def test_assign_self(manager, card, user):
    manager.assign_user(card.pk, user.pk)
    fields = manager.get_formatted_updates()[0]["fields"]
    assert fields["selfassigned"] is True
    assert manager.get_formatted_updates()[1]["fields"]["fullname"] == "Alice Doe"


def test_assign_unknown_user(manager, card):
    from django.contrib.auth import get_user_model

    with pytest.raises(get_user_model().DoesNotExist):
        manager.assign_user(card.pk, 12345)
    assert card.assignees.count() == 0


def test_unassign_user(manager, card, user, other_user):
    card.assignees.add(user, other_user)
    manager.unassign_user(card.pk, user.pk)
    manager.unassign_user(card.pk, user.pk)

    assert list(card.assignees.all()) == [other_user]
    assert names(manager) == [("cards", "put"), ("cards", "put")]
    fields = manager.get_formatted_updates()[1]["fields"]
    assert fields["assignees"] == [other_user.pk]
    assert fields["selfassigned"] is False


def test_set_card_complete(manager, card):
    manager.set_card_complete(card.pk, True)
    assert reload(card).completed is True
    manager.set_card_complete(card.pk, False)
    assert reload(card).completed is False
    actions = list(HistoryEntry.objects.values_list("action", flat=True))
    assert actions == ["completed", "reopened"]


def test_set_column_locked(manager, column):
    manager.set_column_locked(column.pk, True)
    assert reload(column).locked is True
    assert manager.get_formatted_updates()[0]["fields"]["locked"] is True


def test_set_board_columns_locked(manager, board, columns):
    manager.set_board_columns_locked(True)
    assert reload(board).locked is True
    assert all(column.locked for column in Column.objects.filter(board=board))
    assert names(manager) == [("board", "put")] + [("columns", "put")] * 3


def test_discussion(manager, card, user):
    first = manager.add_discussion_message(card.pk, "Hello")
    second = manager.add_discussion_message(card.pk, "World")

    assert reload(card).discussion is True
    assert names(manager) == [("discussions", "put"), ("cards", "put"), ("discussions", "put")]
    fields = manager.get_formatted_updates()[0]["fields"]
    assert fields["content"] == "Hello"
    assert fields["author"] == user.pk
    assert fields["candelete"] is True

    manager = BoardManager(card.board, user)
    manager.delete_discussion_message(first.pk, card.pk)
    assert reload(card).discussion is True
    manager.delete_discussion_message(second.pk, card.pk)
    assert reload(card).discussion is False
    assert names(manager) == [
        ("discussions", "delete"),
        ("discussions", "delete"),
        ("cards", "put"),
    ]


def test_empty_discussion_message(manager, card):
    with pytest.raises(InvalidChange):
        manager.add_discussion_message(card.pk, "   ")


def test_update_card(manager, card, user, other_user):
    manager.update_card(
        card.pk,
        {
            "title": "New title",
            "description": "More",
            "due_date": "2030-01-02T10:00:00+00:00",
            "color": "#00ff00",
            "assignees": [other_user.pk],
        },
    )

    card = reload(card)
    assert card.title == "New title"
    assert card.due_date.year == 2030
    assert card.card_options.background == "#00ff00"
    assert list(card.assignees.all()) == [other_user]
    assert names(manager) == [("cards", "put"), ("users", "put")]
    fields = manager.get_formatted_updates()[0]["fields"]
    assert fields["title"] == "New title"
    assert fields["options"] == {"background": "#00ff00"}
    assert fields["assignees"] == [other_user.pk]


def test_update_card_replaces_assignees(manager, card, user, other_user):
    card.assignees.add(user)
    manager.update_card(card.pk, {"assignees": [other_user.pk]})
    assert list(card.assignees.all()) == [other_user]
    assert set(HistoryEntry.objects.values_list("action", flat=True)) == {
        "assigned",
        "unassigned",
    }


def test_update_card_without_changes(manager, card):
    before = card.timemodified
    manager.update_card(card.pk, {"title": card.title})
    assert reload(card).timemodified == before
    assert "title" not in manager.get_formatted_updates()[0]["fields"]


def test_update_card_unknown_field(manager, card):
    with pytest.raises(InvalidChange):
        manager.update_card(card.pk, {"column": 1})


def test_update_column(manager, column):
    manager.update_column(column.pk, {"title": "Later", "autohide": True})
    column = reload(column)
    assert column.title == "Later"
    assert column.column_options.autohide is True
    fields = manager.get_formatted_updates()[0]["fields"]
    assert fields["options"] == {"autoclose": False, "autohide": True}


def test_push_card_copy(manager, board, card, user):
    target = BoardManager(user=user).create_board(name="Target")
    empty = Board.objects.create(name="Empty")
    BoardManager(user=user).create_board(name="Template", template=True)

    copies = manager.push_card_copy(card.pk)

    assert len(copies) == 1
    copy = copies[0]
    assert copy.board == target
    assert copy.original_id == card.pk
    assert copy.column_id == target.sequence[0]
    assert reload(copy.column).sequence == [copy.pk]
    assert not empty.cards.exists()

    Card.objects.filter(pk=card.pk).update(title="Changed")
    copies = manager.push_card_copy(card.pk, [target.pk])
    assert [c.pk for c in copies] == [copy.pk]
    assert reload(copy).title == "Changed"


def test_create_board_without_template(db, user):
    board = BoardManager(user=user).create_board(name="Fresh")
    columns = [Column.objects.get(pk=pk) for pk in board.sequence]
    assert [column.title for column in columns] == ["Todo", "Doing", "Done"]
    assert columns[2].column_options.autoclose is True


def test_create_board_from_template(board, columns, cards, user):
    BoardManager(board, user).create_template()
    new_board = BoardManager(user=user).create_board(name="Copy")

    assert new_board.template is False
    assert new_board.name == "Copy"
    new_columns = [Column.objects.get(pk=pk) for pk in new_board.sequence]
    assert [column.title for column in new_columns] == ["Todo", "Doing", "Done"]
    assert all(column.board_id == new_board.pk for column in new_columns)
    new_cards = [Card.objects.get(pk=pk) for pk in new_columns[0].sequence]
    assert [card.title for card in new_cards] == ["Card 0", "Card 1", "Card 2"]
    assert all(card.board_id == new_board.pk for card in new_cards)


def test_clone_board_as_template(board, columns, cards, user):
    template = BoardManager(user=user).create_board_from_template(board, template=True)

    assert template.template is True
    assert template.name == board.name
    assert len(template.sequence) == len(columns)
    assert BoardManager(user=user).get_template_board() == template


def test_create_template_emits_common(manager, board):
    template = manager.create_template()
    assert template.template is True
    assert manager.get_formatted_updates() == [
        {"name": "common", "action": "put", "fields": {"id": board.pk, "template": template.pk}}
    ]


def test_create_user_and_group_board(db, user):
    manager = BoardManager(user=user)
    assert manager.create_user_board(user).user == user
    assert manager.create_group_board("Team").group_name == "Team"
    with pytest.raises(InvalidChange):
        manager.create_group_board("")


def test_delete_board(manager, board, card):
    board_id = board.pk
    manager.delete_board()
    assert not Board.objects.filter(pk=board_id).exists()
    assert not Card.objects.exists()
    assert manager.get_formatted_updates() == [
        {"name": "board", "action": "delete", "fields": {"id": board_id}}
    ]


def test_history_can_be_disabled(manager, card, settings):
    settings.TAFEL_HISTORY = False
    manager.set_card_complete(card.pk, True)
    assert not HistoryEntry.objects.exists()


def test_history_records_affected_user(manager, card, user, other_user):
    manager.assign_user(card.pk, other_user.pk)
    entry = HistoryEntry.objects.get()
    assert entry.action == "assigned"
    assert entry.user_id == user.pk
    assert entry.affected_user_id == other_user.pk
    assert entry.parameters == {}
