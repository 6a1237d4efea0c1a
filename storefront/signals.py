"""
In-process broadcast signal used as the notification transport.

Providers publish a signal whenever a notification is persisted, and live
sessions subscribe to hear about it. The bus behaves like a shared browser
storage event: every subscriber hears every signal of the type it asked for,
and old signals can be replayed.

Design decisions:
- Synchronous delivery in registration order
- Type-based subscriptions
- The most recent signals (SIGNAL_LOG_SIZE) are kept in a log so they can
  be replayed; older ones are dropped
- Delivery is at-least-once: consumers must deduplicate on their own

A handler that raises is logged and does not stop the other handlers.
"""

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from storefront.config import settings as default_settings

logger = logging.getLogger("signal_bus")


class SignalTypes:
    """Constants for signal type names."""
    NOTIFICATION_ADDED = "UserNotificationAdded"


@dataclass
class Signal:
    """
    A record of something that happened, broadcast to subscribers.

    Attributes:
        signal_type: Name used for routing
        payload: Signal-specific data
        source: Which component published it
        signal_id: Unique id of this publication
        timestamp: When it was published
    """
    signal_type: str
    payload: dict[str, Any]
    source: str
    signal_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return f"Signal({self.signal_type}, id={self.signal_id[:8]}, source={self.source})"


SignalHandler = Callable[[Signal], None]


class SignalBus:
    """
    Simple in-memory pub/sub with a replayable log.

    Example:
        bus = SignalBus()
        bus.subscribe(SignalTypes.NOTIFICATION_ADDED, handler)
        bus.publish(Signal(signal_type=SignalTypes.NOTIFICATION_ADDED, source="store", payload={...}))
        bus.replay()  # redelivers everything still in the log
    """

    def __init__(self, max_log: Optional[int] = None):
        """
        Args:
            max_log: How many signals to keep for replay (SIGNAL_LOG_SIZE if None)
        """
        if max_log is None:
            max_log = default_settings.signal_log_size
        self._subscribers: dict[str, list[SignalHandler]] = defaultdict(list)
        self._log: deque[Signal] = deque(maxlen=max_log)

    def subscribe(self, signal_type: str, handler: SignalHandler) -> None:
        self._subscribers[signal_type].append(handler)
        logger.debug(f"Subscribed handler to '{signal_type}' signals")

    def unsubscribe(self, signal_type: str, handler: SignalHandler) -> bool:
        """
        Remove a handler.

        Returns:
            True if the handler was found and removed, False otherwise
        """
        try:
            self._subscribers[signal_type].remove(handler)
            logger.debug(f"Unsubscribed handler from '{signal_type}' signals")
            return True
        except ValueError:
            return False

    def publish(self, signal: Signal) -> int:
        """
        Publish a signal to every subscriber of its type.

        Returns:
            Number of handlers that received the signal
        """
        self._log.append(signal)
        logger.debug(f"Publishing: {signal}")
        return self._dispatch(signal)

    def replay(self, signal_type: Optional[str] = None) -> int:
        """
        Redeliver logged signals, oldest first.

        Args:
            signal_type: Only replay signals of this type (all types if None)

        Returns:
            Number of handler invocations made
        """
        delivered = 0
        for signal in list(self._log):
            if signal_type is None or signal.signal_type == signal_type:
                delivered += self._dispatch(signal)
        logger.info(f"Replayed signal log: {delivered} deliveries")
        return delivered

    def _dispatch(self, signal: Signal) -> int:
        handlers_called = 0
        # Copy so handlers may unsubscribe while being called
        for handler in list(self._subscribers.get(signal.signal_type, [])):
            handlers_called += 1
            try:
                handler(signal)
            except Exception as e:
                logger.error(f"Handler raised exception for {signal}: {e}")
        return handlers_called

    def get_subscriber_count(self, signal_type: str) -> int:
        return len(self._subscribers.get(signal_type, []))

    def get_log(self) -> list[Signal]:
        return list(self._log)

    def clear_log(self) -> None:
        self._log.clear()
