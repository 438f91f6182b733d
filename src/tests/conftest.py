import pytest
from django.contrib.auth import get_user_model

from tafel.core.models import Board, Card, Column


@pytest.fixture
def user(db):
    return get_user_model().objects.create_user(
        username="alice", password="secret", first_name="Alice", last_name="Doe"
    )


@pytest.fixture
def other_user(db):
    return get_user_model().objects.create_user(username="bob", password="secret")


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="admin", password="secret", is_staff=True
    )


@pytest.fixture
def board(db):
    return Board.objects.create(name="Test Board", description="Test description")


@pytest.fixture
def columns(db, board):
    columns = [
        Column.objects.create(board=board, title="Todo"),
        Column.objects.create(board=board, title="Doing"),
        Column.objects.create(board=board, title="Done", options={"autoclose": True}),
    ]
    board.sequence = [column.pk for column in columns]
    board.save()
    return columns


@pytest.fixture
def column(columns):
    return columns[0]


@pytest.fixture
def card(db, board, column, user):
    card = Card.objects.create(
        board=board, column=column, title="Test Card", created_by=user
    )
    column.sequence = [card.pk]
    column.save()
    return card


@pytest.fixture
def cards(db, board, column):
    cards = [
        Card.objects.create(board=board, column=column, title=f"Card {number}")
        for number in range(3)
    ]
    column.sequence = [card.pk for card in cards]
    column.save()
    return cards
