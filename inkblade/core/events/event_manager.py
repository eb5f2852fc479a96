"""
Event management system for decoupled system communication.

This module provides the central event bus that lets the feel engine, the
combat engine and outside collaborators (progression, narrative, rendering)
communicate through events instead of direct dependencies, following the
publisher-subscriber pattern.

Delivery is synchronous. An event published from inside a subscriber is not
delivered recursively; it joins a FIFO pending queue that the outermost
publish drains once the current delivery has finished, so dispatch proceeds
level by level and stack depth stays bounded.
"""

import itertools
import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from ..exceptions import BusShutdownError, UnknownEventError
from .events import EVENT_CLASSES, EventType, GameEvent

logger = logging.getLogger(__name__)


WILDCARD = "*"

EventSubscriber = Callable[[GameEvent], None]
SubscriptionKey = Union[EventType, str]


@dataclass(frozen=True)
class SubscriptionHandle:
    """Token returned by subscribe(); pass it to unsubscribe()."""
    key: SubscriptionKey
    sequence: int
    subscriber: EventSubscriber = field(compare=False)
    subscriber_name: str = field(default="anonymous", compare=False)


@dataclass
class DispatchRecord:
    """A delivered event with metadata, kept for debugging."""
    event: GameEvent
    source: str
    depth: int  # 0 for top-level publishes, n for events queued n levels deep
    delivered_to: int = 0
    failures: int = 0


class EventManager:
    """Central event bus for combat and feel system communication."""

    def __init__(self, enable_debug_logging: bool = False, history_size: int = 1000):
        """Initialize the event manager.

        Args:
            enable_debug_logging: Whether to enable detailed event logging
            history_size: Number of delivered events kept for get_recent_events()
        """
        self.enable_debug_logging = enable_debug_logging

        # Subscriptions by event type, plus WILDCARD for universal subscribers
        self._subscriptions: dict[SubscriptionKey, list[SubscriptionHandle]] = defaultdict(list)
        self._sequence = itertools.count()

        # Events published during a dispatch, waiting for the next level
        self._pending: deque[tuple[GameEvent, str, int]] = deque()
        self._dispatching = False
        self._current_depth = 0
        self._shut_down = False

        # Statistics and debugging
        self._events_published = 0
        self._events_processed = 0
        self._subscriber_failures = 0
        self._max_depth = 0
        self._event_history: deque[DispatchRecord] = deque(maxlen=history_size)

        # Debug callback for logging
        self._debug_callback: Optional[Callable[[str], None]] = None

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def set_debug_callback(self, callback: Optional[Callable[[str], None]]) -> None:
        """Set a callback function for debug logging."""
        self._debug_callback = callback

    def _debug_log(self, message: str) -> None:
        """Log a debug message if debug logging is enabled."""
        if not self.enable_debug_logging:
            return
        logger.debug(message)
        if self._debug_callback:
            self._debug_callback(f"[EVENT] {message}")

    def subscribe(
        self,
        event_type: SubscriptionKey,
        subscriber: EventSubscriber,
        subscriber_name: Optional[str] = None
    ) -> SubscriptionHandle:
        """Subscribe to events of a specific type, or to every event with WILDCARD.

        Args:
            event_type: The type of events to subscribe to, or WILDCARD
            subscriber: Callback function to handle events
            subscriber_name: Optional name for debugging

        Returns:
            Handle that can be passed to unsubscribe()

        Raises:
            BusShutdownError: If the bus has been torn down
            UnknownEventError: If event_type is neither an EventType nor WILDCARD
        """
        if self._shut_down:
            raise BusShutdownError("Cannot subscribe to a bus that has been shut down")
        if not isinstance(event_type, EventType) and event_type != WILDCARD:
            raise UnknownEventError(f"Cannot subscribe to unknown event kind {event_type!r}")

        subscriber_display = subscriber_name or getattr(subscriber, '__name__', 'anonymous')
        handle = SubscriptionHandle(
            key=event_type,
            sequence=next(self._sequence),
            subscriber=subscriber,
            subscriber_name=subscriber_display,
        )
        self._subscriptions[event_type].append(handle)

        kind = "ALL" if event_type == WILDCARD else event_type.name
        self._debug_log(f"Subscribed {subscriber_display} to {kind} events")
        return handle

    def subscribe_all(
        self,
        subscriber: EventSubscriber,
        subscriber_name: Optional[str] = None
    ) -> SubscriptionHandle:
        """Subscribe to all events (universal subscriber)."""
        return self.subscribe(WILDCARD, subscriber, subscriber_name)

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        """Remove a subscription.

        Safe to call from inside a subscriber: a delivery that is already in
        progress keeps the subscriber list it started with.

        Returns:
            True if the subscription was found and removed
        """
        handles = self._subscriptions.get(handle.key)
        if not handles:
            return False
        try:
            handles.remove(handle)
        except ValueError:
            return False
        self._debug_log(f"Unsubscribed {handle.subscriber_name}")
        return True

    def publish(self, event: GameEvent, source: Optional[str] = None) -> None:
        """Publish an event to every matching subscriber.

        Called from outside a dispatch, the event is delivered immediately and
        any events published by its subscribers are delivered afterwards, in
        the order they were published. Called from inside a subscriber, the
        event is queued behind the events already pending.

        Args:
            event: The event to publish
            source: Optional source identifier for debugging

        Raises:
            BusShutdownError: If the bus has been torn down
            UnknownEventError: If the event is not a well-formed catalog event
        """
        if self._shut_down:
            raise BusShutdownError(f"Cannot publish {event.__class__.__name__} after shutdown")
        self._validate(event)

        self._events_published += 1
        source = source or "unknown"

        if self._dispatching:
            # Depth is assigned relative to the record being delivered right now
            depth = self._current_depth + 1
            self._pending.append((event, source, depth))
            self._debug_log(
                f"Queued {event.__class__.__name__} from {source} (depth {depth})"
            )
            return

        self._dispatching = True
        self._pending.append((event, source, 0))
        try:
            while self._pending:
                queued_event, queued_source, depth = self._pending.popleft()
                self._current_depth = depth
                self._max_depth = max(self._max_depth, depth)
                self._process_event(queued_event, queued_source, depth)
        finally:
            self._dispatching = False
            self._current_depth = 0
            # Only reached with a non-empty queue if the loop itself raised
            self._pending.clear()

    def _validate(self, event: Any) -> None:
        """Reject anything that is not a catalog event with a matching tag."""
        if not isinstance(event, GameEvent):
            raise UnknownEventError(f"Cannot publish non-event object {event!r}")
        event_type = getattr(event, 'event_type', None)
        expected_class = EVENT_CLASSES.get(event_type) if isinstance(event_type, EventType) else None
        if expected_class is None or not isinstance(event, expected_class):
            raise UnknownEventError(
                f"Malformed event {event.__class__.__name__} with kind {event_type!r}"
            )

    def _process_event(self, event: GameEvent, source: str, depth: int) -> None:
        """Deliver a single event to its subscribers in subscription order."""
        record = DispatchRecord(event=event, source=source, depth=depth)
        self._event_history.append(record)
        self._events_processed += 1

        self._debug_log(
            f"Processing {event.__class__.__name__} from {source} "
            f"(timestamp: {event.timestamp}, depth: {depth})"
        )

        # Snapshot so that (un)subscribing inside a handler does not affect this pass
        handles = sorted(
            self._subscriptions.get(event.event_type, []) + self._subscriptions.get(WILDCARD, []),
            key=lambda h: h.sequence,
        )

        for handle in handles:
            try:
                handle.subscriber(event)
                record.delivered_to += 1
            except Exception:
                record.failures += 1
                self._subscriber_failures += 1
                logger.exception(
                    "Subscriber %s failed while handling %s",
                    handle.subscriber_name,
                    event.event_type.name,
                )
                self._debug_log(
                    f"Error in subscriber {handle.subscriber_name} for {event.event_type.name}"
                )

    def has_pending_events(self) -> bool:
        """Check if events are waiting for the current dispatch to finish."""
        return len(self._pending) > 0

    def subscriber_count(self, event_type: Optional[SubscriptionKey] = None) -> int:
        """Count subscriptions for one kind, or all subscriptions when None."""
        if event_type is None:
            return sum(len(handles) for handles in self._subscriptions.values())
        return len(self._subscriptions.get(event_type, []))

    def get_statistics(self) -> dict[str, Any]:
        """Get event processing statistics.

        Returns:
            Dictionary with statistics
        """
        return {
            'events_published': self._events_published,
            'events_processed': self._events_processed,
            'events_pending': len(self._pending),
            'subscriber_failures': self._subscriber_failures,
            'max_dispatch_depth': self._max_depth,
            'subscribers_count': sum(
                len(handles) for key, handles in self._subscriptions.items() if key != WILDCARD
            ),
            'universal_subscribers_count': len(self._subscriptions.get(WILDCARD, [])),
            'event_history_size': len(self._event_history)
        }

    def get_recent_events(self, count: int = 10) -> list[dict[str, Any]]:
        """Get recent events for debugging.

        Args:
            count: Number of recent events to return

        Returns:
            List of event information dictionaries
        """
        if count <= 0:
            return []
        recent = list(self._event_history)[-count:]

        return [
            {
                'event_type': record.event.event_type.name,
                'timestamp': record.event.timestamp,
                'source': record.source,
                'depth': record.depth,
                'delivered_to': record.delivered_to,
                'failures': record.failures,
            }
            for record in recent
        ]

    def shutdown(self) -> None:
        """Shutdown the event manager and clear all data."""
        self._subscriptions.clear()
        self._pending.clear()
        self._event_history.clear()
        self._shut_down = True
        self._debug_log("Event manager shutdown complete")
