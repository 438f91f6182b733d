import logging

from .api import BoardClient
from .components import BoardComponent
from .poller import BoardPoller
from .state import StateManager

logger = logging.getLogger(__name__)


class BoardSession:
    """A board opened in a client: state, render tree and poller together.

    The change methods send one change to the server and apply the patches it
    answers with right away, without waiting for the next poll.
    """

    def __init__(self, base_url, board_id, session=None, timeout=10, interval=None):
        self.client = BoardClient(base_url, board_id, session=session, timeout=timeout)
        self.state = StateManager()
        self.component = BoardComponent(self.state)
        self.interval = interval
        self.poller = None

    def load(self):
        """Fetch the full board and start polling.

        Without an explicit interval the server's ``liveupdate`` is used, ``0``
        disables polling.
        """
        self.state.apply_patches(self.client.get_updates(0))
        interval = self.interval
        if interval is None:
            interval = self.state.common.get("liveupdate", 10)
        if interval:
            self.poller = BoardPoller(self.client, self.state, interval)
            self.poller.start()
        return self

    def close(self):
        if self.poller is not None:
            self.poller.stop()
            self.poller = None
        self.component.destroy()
        logger.debug("Closed board %s", self.client.board_id)

    def __enter__(self):
        return self.load()

    def __exit__(self, *args):
        self.close()

    def send(self, action, **data):
        patches = self.client.change(action, **data)
        self.state.apply_patches(patches)
        return patches

    def add_column(self, after=None, **fields):
        return self.send("add_column", after=after, data=fields)

    def add_card(self, column_id, after=None, **fields):
        return self.send("add_card", column_id=column_id, after=after, data=fields)

    def move_column(self, column_id, after=None):
        return self.send("move_column", column_id=column_id, after=after)

    def move_card(self, card_id, after=None, column_id=None):
        return self.send("move_card", card_id=card_id, after=after, column_id=column_id)

    def delete_column(self, column_id):
        return self.send("delete_column", column_id=column_id)

    def delete_card(self, card_id):
        return self.send("delete_card", card_id=card_id)

    def assign_user(self, card_id, user_id):
        return self.send("assign_user", card_id=card_id, user_id=user_id)

    def unassign_user(self, card_id, user_id):
        return self.send("unassign_user", card_id=card_id, user_id=user_id)

    def set_card_complete(self, card_id, state):
        return self.send("set_card_complete", card_id=card_id, state=state)

    def set_column_locked(self, column_id, state):
        return self.send("set_column_locked", column_id=column_id, state=state)

    def set_board_columns_locked(self, state):
        return self.send("set_board_columns_locked", state=state)

    def add_discussion_message(self, card_id, message):
        return self.send("add_discussion_message", card_id=card_id, message=message)

    def delete_discussion_message(self, message_id, card_id):
        return self.send(
            "delete_discussion_message", message_id=message_id, card_id=card_id
        )

    def update_card(self, card_id, **data):
        return self.send("update_card", card_id=card_id, data=data)

    def update_column(self, column_id, **data):
        return self.send("update_column", column_id=column_id, data=data)

    def push_card_copy(self, card_id, board_ids=None):
        return self.send("push_card_copy", card_id=card_id, board_ids=board_ids)

    def save_as_template(self):
        return self.send("save_as_template")

    def delete_board(self):
        return self.send("delete_board")

    def load_discussion(self, card_id):
        patches = self.client.get_discussion_updates(card_id)
        self.state.apply_patches(patches)
        return [
            message for message in self.state.discussions.values()
            if message.get("card") == card_id
        ]

    def load_history(self, card_id):
        patches = self.client.get_history_updates(card_id)
        self.state.apply_patches(patches)
        return [entry for entry in self.state.history.values() if entry.get("card") == card_id]
