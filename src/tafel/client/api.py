import logging

import requests

logger = logging.getLogger(__name__)


class ChangeRejected(Exception):
    """The server did not apply a change or did not answer a poll."""

    def __init__(self, status_code, message, code=None):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message
        self.code = code


class BoardClient:
    """Thin wrapper around the board API of one board.

    Every call returns the list of patches the server sent, ready to be fed to
    ``StateManager.apply_patches``.
    """

    def __init__(self, base_url, board_id, session=None, timeout=10):
        self.base_url = base_url.rstrip("/")
        self.board_id = board_id
        self.session = session or requests.Session()
        self.timeout = timeout

    def url(self, *parts):
        path = "/".join(str(part) for part in parts)
        return f"{self.base_url}/api/boards/{self.board_id}/{path}/"

    def _handle(self, response):
        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("error") or response.reason or "Request failed"
            logger.warning("Board %s: %s %s", self.board_id, response.status_code, message)
            raise ChangeRejected(response.status_code, message, body.get("code"))
        return response.json()

    def _get(self, *parts, timestamp=0):
        response = self.session.get(
            self.url(*parts), params={"timestamp": timestamp or 0}, timeout=self.timeout
        )
        return self._handle(response)

    def get_updates(self, timestamp=0):
        return self._get("updates", timestamp=timestamp)

    def get_discussion_updates(self, card_id, timestamp=0):
        return self._get("cards", card_id, "discussion", timestamp=timestamp)

    def get_history_updates(self, card_id, timestamp=0):
        return self._get("cards", card_id, "history", timestamp=timestamp)

    def change(self, action, **data):
        # None travels as 0, the "no anchor" value of the API
        payload = {key: 0 if value is None else value for key, value in data.items()}
        response = self.session.post(self.url(action), json=payload, timeout=self.timeout)
        return self._handle(response)
