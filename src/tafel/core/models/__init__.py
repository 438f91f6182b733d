from .board import Board
from .card import Card
from .column import Column
from .discussion import DiscussionMessage
from .history import HistoryEntry

__all__ = ["Board", "Column", "Card", "DiscussionMessage", "HistoryEntry"]
