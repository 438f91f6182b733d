from .api import BoardClient, ChangeRejected
from .poller import BoardPoller
from .session import BoardSession
from .state import StateManager

__all__ = ["BoardClient", "BoardPoller", "BoardSession", "ChangeRejected", "StateManager"]
