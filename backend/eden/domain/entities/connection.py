"""Connection status of the homelab API integration."""

import logging
from collections.abc import Callable
from enum import Enum

from eden.domain.exceptions import InvalidTransitionError

logger = logging.getLogger(__name__)


class ConnectionStatus(str, Enum):
    """Reachability of the remote homelab API — one value per integration."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    MOCK = "mock"
    ERROR = "error"


StatusListener = Callable[[ConnectionStatus, ConnectionStatus], None]

_ALLOWED: dict[ConnectionStatus, frozenset[ConnectionStatus]] = {
    ConnectionStatus.DISCONNECTED: frozenset({ConnectionStatus.CONNECTING}),
    ConnectionStatus.CONNECTING: frozenset({
        ConnectionStatus.CONNECTED,
        ConnectionStatus.MOCK,
        ConnectionStatus.ERROR,
        ConnectionStatus.DISCONNECTED,
    }),
    ConnectionStatus.CONNECTED: frozenset({
        ConnectionStatus.ERROR,
        ConnectionStatus.CONNECTING,
        ConnectionStatus.DISCONNECTED,
    }),
    ConnectionStatus.ERROR: frozenset({
        ConnectionStatus.CONNECTED,
        ConnectionStatus.CONNECTING,
        ConnectionStatus.DISCONNECTED,
    }),
    ConnectionStatus.MOCK: frozenset({
        ConnectionStatus.CONNECTED,
        ConnectionStatus.ERROR,
        ConnectionStatus.CONNECTING,
        ConnectionStatus.DISCONNECTED,
    }),
}


class ConnectionStateMachine:
    """Tracks the process-wide connection status and validates transitions.

    ``connecting`` is only observed while ``initialize()`` is in flight.
    ``error`` is temporary: the next successful fetch or an explicit retest
    moves back to ``connected``. ``mock`` is a supported steady state.
    Re-entering the current status is a no-op.
    """

    def __init__(self, initial: ConnectionStatus = ConnectionStatus.DISCONNECTED):
        self._status = initial
        self._listeners: list[StatusListener] = []

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    def can_transition(self, target: ConnectionStatus) -> bool:
        return target == self._status or target in _ALLOWED[self._status]

    def transition(self, target: ConnectionStatus) -> bool:
        """Move to ``target``. Returns True if the status actually changed."""
        if target == self._status:
            return False
        if target not in _ALLOWED[self._status]:
            raise InvalidTransitionError(self._status.value, target.value)

        previous = self._status
        self._status = target
        logger.info("Homelab connection: %s → %s", previous.value, target.value)

        for listener in list(self._listeners):
            try:
                listener(previous, target)
            except Exception:
                logger.exception("Connection status listener failed")
        return True

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def reset(self) -> None:
        self.transition(ConnectionStatus.DISCONNECTED)

    @property
    def is_connected(self) -> bool:
        return self._status is ConnectionStatus.CONNECTED

    @property
    def is_mock(self) -> bool:
        return self._status is ConnectionStatus.MOCK
