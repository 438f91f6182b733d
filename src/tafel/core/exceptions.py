class BoardError(Exception):
    """A change that cannot be applied to the board."""

    code = "invalid"

    def __init__(self, message=None, code=None):
        super().__init__(message or self.__doc__)
        if code:
            self.code = code


class BoardLocked(BoardError):
    """The board is locked."""

    code = "board_locked"


class ColumnLocked(BoardError):
    """The column is locked."""

    code = "column_locked"


class InvalidChange(BoardError):
    """The change is not valid."""

    code = "invalid_change"
