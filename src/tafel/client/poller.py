import logging
import threading

import requests

from .api import ChangeRejected

logger = logging.getLogger(__name__)


class BoardPoller:
    """Fetches board updates every ``interval`` seconds in a daemon thread.

    Each tick asks for everything newer than the state's current cursor and
    applies the answer before the next tick is scheduled. ``stop`` cancels the
    timer; a response that arrives after ``stop`` is thrown away.
    """

    def __init__(self, client, state, interval=10):
        self.client = client
        self.state = state
        self.interval = interval
        self._stopped = threading.Event()
        self._thread = None

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        if self.running:
            return
        self._stopped.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"board-poller-{self.client.board_id}", daemon=True
        )
        self._thread.start()
        logger.debug("Polling board %s every %ss", self.client.board_id, self.interval)

    def stop(self, timeout=None):
        self._stopped.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
        self._thread = None

    def _run(self):
        while not self._stopped.wait(self.interval):
            self.tick()

    def tick(self):
        """Run one poll, returns whether updates were applied."""
        try:
            patches = self.client.get_updates(self.state.timestamp)
        except (requests.RequestException, ChangeRejected) as e:
            logger.warning("Polling board %s failed: %s", self.client.board_id, e)
            return False
        if self._stopped.is_set():
            logger.debug("Discarding updates for stopped poller")
            return False
        try:
            self.state.apply_patches(patches)
        except Exception:
            logger.exception("Applying updates for board %s failed", self.client.board_id)
            return False
        return True
