import logging
import threading
from collections import defaultdict

from tafel.core import sequence

logger = logging.getLogger(__name__)

SINGLE = ("common", "board")
COLLECTIONS = ("columns", "cards", "users", "discussions", "history")
MISSING = object()


class StateManager:
    """Client side copy of a board, kept current by applying patches.

    ``apply_patches`` is the only way to change the state. It is used for the
    answers to the user's own changes as well as for poll results, and
    applying the same patches twice changes nothing the second time.

    Watchers are called with ``(element, changed)`` for these events:

    * ``{name}:created`` when an element is seen for the first time
    * ``{name}[{id}]:updated`` and ``{name}:updated`` when fields changed
    * ``{name}[{id}]:deleted`` and ``{name}:deleted`` when it was removed

    ``common`` and ``board`` only exist once, so they only have the events
    without an id.
    """

    def __init__(self):
        self.lock = threading.RLock()
        self.common = {}
        self.board = {}
        self.columns = {}
        self.cards = {}
        self.users = {}
        self.discussions = {}
        self.history = {}
        self.watchers = defaultdict(list)

    @property
    def timestamp(self):
        return self.common.get("timestamp", 0)

    def watch(self, event, handler):
        self.watchers[event].append(handler)

        def unwatch():
            if handler in self.watchers[event]:
                self.watchers[event].remove(handler)

        return unwatch

    def publish(self, event, element, changed):
        for handler in list(self.watchers.get(event, ())):
            handler(element, changed)

    def apply_patches(self, patches):
        with self.lock:
            for patch in patches:
                self.apply_patch(patch)

    def apply_patch(self, patch):
        name = patch.get("name")
        action = patch.get("action")
        fields = dict(patch.get("fields") or {})
        if "sequence" in fields:
            fields["sequence"] = sequence.decode(fields["sequence"])
        if action not in ("create", "put", "delete"):
            logger.debug("Ignoring patch with unknown action %r", action)
            return
        if name in SINGLE:
            self._apply_single(name, action, fields)
        elif name in COLLECTIONS:
            self._apply_element(name, action, fields)
        else:
            logger.debug("Ignoring patch for unknown kind %r", name)

    def _apply_single(self, name, action, fields):
        element = getattr(self, name)
        if action == "delete":
            if element:
                removed = dict(element)
                element.clear()
                self.publish(f"{name}:deleted", removed, {})
            return
        changed = {
            key: value for key, value in fields.items() if element.get(key, MISSING) != value
        }
        if not changed:
            return
        created = not element
        element.update(changed)
        self.publish(f"{name}:{'created' if created else 'updated'}", element, changed)

    def _apply_element(self, name, action, fields):
        if "id" not in fields:
            logger.debug("Ignoring %s patch without id", name)
            return
        elements = getattr(self, name)
        element_id = fields["id"]
        if action == "delete":
            element = elements.pop(element_id, None)
            if element is not None:
                self.publish(f"{name}[{element_id}]:deleted", element, {})
                self.publish(f"{name}:deleted", element, {})
            return

        element = elements.get(element_id)
        if element is None:
            element = dict(fields)
            elements[element_id] = element
            self.publish(f"{name}:created", element, dict(fields))
            return
        changed = {
            key: value for key, value in fields.items() if element.get(key, MISSING) != value
        }
        if not changed:
            return
        element.update(changed)
        self.publish(f"{name}[{element_id}]:updated", element, changed)
        self.publish(f"{name}:updated", element, changed)
