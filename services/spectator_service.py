"""
Spectator synchronisation

Server side: SpectatorHub fans full-state events out to subscribers. Each
subscriber owns a one-slot mailbox holding only the newest undelivered state,
so a slow reader skips intermediate states instead of blocking the writer.

Client side: SpectatorClient follows any event source (the hub in-process or
the HTTP event stream), reconnecting with exponential backoff and discarding
stale updates by revision.
"""
import asyncio
import json
import logging
from typing import AsyncIterator, Callable, Dict, Optional, Set

from pydantic import ValidationError

from config import get_config
from exceptions import APIException, TransportError
from models.draft_session import DraftSession
from models.events import SyncEvent, SyncEventKind
from services.session_store import SessionStore

logger = logging.getLogger(f'{__name__}.SpectatorHub')
client_logger = logging.getLogger(f'{__name__}.SpectatorClient')

EventSource = Callable[[str], AsyncIterator[SyncEvent]]


def encode_sse(event: SyncEvent) -> str:
    """
    Encode an event as a text/event-stream frame.

    Examples:
        >>> encode_sse(SyncEvent.not_found("abc"))
        'event: not_found\\ndata: {"key": "abc"}\\n\\n'
    """
    payload = event.data if event.data is not None else {"key": event.key}
    return f"event: {SyncEventKind(event.kind).value}\ndata: {json.dumps(payload)}\n\n"


class Subscription:
    """
    One spectator's view of a session.

    Async iterator over SyncEvents; ends after a not_found event or close().
    """

    def __init__(self, hub: 'SpectatorHub', key: str):
        self.hub = hub
        self.key = key
        self._pending: Optional[SyncEvent] = None
        self._ready = asyncio.Event()
        self._closed = False
        self._terminal = False

    @property
    def closed(self) -> bool:
        return self._closed

    def offer(self, event: SyncEvent) -> None:
        """Replace the undelivered event with a newer one. Never blocks."""
        if self._closed or self._terminal:
            return

        pending = self._pending
        if event.kind == SyncEventKind.NOT_FOUND:
            self._terminal = True
        elif pending is not None:
            if pending.revision > event.revision:
                # Keep the newer state; an undelivered snapshot stays a snapshot
                if event.kind == SyncEventKind.SNAPSHOT and pending.kind != SyncEventKind.SNAPSHOT:
                    self._pending = pending.model_copy(update={'kind': SyncEventKind.SNAPSHOT})
                return
            if pending.kind == SyncEventKind.SNAPSHOT and event.kind == SyncEventKind.UPDATE:
                event = event.model_copy(update={'kind': SyncEventKind.SNAPSHOT})

        self._pending = event
        self._ready.set()

    def __aiter__(self):
        return self

    async def __anext__(self) -> SyncEvent:
        while True:
            if self._pending is not None:
                event, self._pending = self._pending, None
                self._ready.clear()
                if event.kind == SyncEventKind.NOT_FOUND:
                    self.close()
                return event
            if self._closed:
                raise StopAsyncIteration
            await self._ready.wait()

    def close(self) -> None:
        """Release this subscriber's slot."""
        if self._closed:
            return
        self._closed = True
        self.hub._unsubscribe(self)
        self._ready.set()

    async def __aenter__(self) -> 'Subscription':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.close()


class SpectatorHub:
    """Fan-out of session state to spectators."""

    def __init__(self, store: SessionStore):
        self.store = store
        self._subscribers: Dict[str, Set[Subscription]] = {}

    async def subscribe(self, key: str) -> Subscription:
        """
        Subscribe to a session.

        The first event is a snapshot of the stored state, or not_found when the
        session does not exist, after which the subscription ends.
        """
        subscription = Subscription(self, key)
        # Register before loading so an update published meanwhile is not lost
        self._subscribers.setdefault(key, set()).add(subscription)

        try:
            session = await self.store.load(key)
        except Exception:
            self._unsubscribe(subscription)
            raise
        if session is None:
            logger.debug(f"Subscribe to unknown session {key}")
            subscription.offer(SyncEvent.not_found(key))
            self._unsubscribe(subscription)
        else:
            subscription.offer(SyncEvent.snapshot(session))
            logger.debug(f"Spectator joined {key} ({self.subscriber_count(key)} watching)")
        return subscription

    async def stream(self, key: str) -> AsyncIterator[SyncEvent]:
        """Event source over the hub, for SpectatorClient."""
        async with await self.subscribe(key) as subscription:
            async for event in subscription:
                yield event

    def publish(self, session: DraftSession) -> int:
        """
        Deliver the session's full state to every subscriber of its key.

        Returns:
            Number of subscribers offered the update
        """
        subscribers = list(self._subscribers.get(session.key, ()))
        if not subscribers:
            return 0
        event = SyncEvent.update(session)
        for subscription in subscribers:
            subscription.offer(event)
        logger.debug(f"Published rev {session.revision} of {session.key} to {len(subscribers)} spectator(s)")
        return len(subscribers)

    def expire(self, key: str) -> int:
        """Tell every subscriber the session is gone and release them."""
        subscribers = self._subscribers.pop(key, set())
        event = SyncEvent.not_found(key)
        for subscription in subscribers:
            subscription.offer(event)
        if subscribers:
            logger.info(f"Session {key} expired for {len(subscribers)} spectator(s)")
        return len(subscribers)

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, ()))

    def _unsubscribe(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.key)
        if subscribers is None:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.key]


class SpectatorClient:
    """
    Subscriber-side protocol handling.

    - every snapshot is applied
    - updates not newer than the last applied revision are dropped
    - not_found ends the stream
    - transport errors trigger exponential backoff and a reconnect, which
      starts over with a fresh snapshot
    """

    def __init__(
        self,
        key: str,
        source: EventSource,
        initial_delay: Optional[float] = None,
        max_delay: Optional[float] = None,
        max_retries: Optional[int] = None,
        sleep: Callable[[float], object] = asyncio.sleep
    ):
        """
        Args:
            key: Session key to follow
            source: Callable returning an async iterator of events for a key
            initial_delay: First reconnect delay in seconds
            max_delay: Reconnect delay ceiling in seconds
            max_retries: Give up after this many consecutive failures (None retries forever)
            sleep: Awaitable sleep function
        """
        config = get_config()
        self.key = key
        self.source = source
        self.initial_delay = initial_delay if initial_delay is not None else config.sync_retry_initial_seconds
        self.max_delay = max_delay if max_delay is not None else config.sync_retry_max_seconds
        self.max_retries = max_retries
        self._sleep = sleep

        self.reconnecting = False
        self.last_revision = -1
        self.session: Optional[DraftSession] = None
        self.not_found = False

    def _accept(self, event: SyncEvent) -> bool:
        if event.kind == SyncEventKind.UPDATE and event.revision <= self.last_revision:
            client_logger.debug(f"Dropping stale update rev {event.revision} for {self.key}")
            return False
        try:
            session = event.session()
        except ValidationError as e:
            client_logger.warning(f"Dropping malformed {event.kind} rev {event.revision} for {self.key}: {e}")
            return False
        if session is None:
            client_logger.warning(f"Dropping {event.kind} without state for {self.key}")
            return False
        self.last_revision = event.revision
        self.session = session
        return True

    async def states(self) -> AsyncIterator[DraftSession]:
        """
        Yield every accepted session state until the session disappears.

        Raises:
            TransportError: If max_retries consecutive reconnects fail
        """
        delay = self.initial_delay
        failures = 0

        while True:
            try:
                async for event in self.source(self.key):
                    if self.reconnecting:
                        client_logger.info(f"Reconnected to {self.key}")
                    self.reconnecting = False
                    delay, failures = self.initial_delay, 0

                    if event.kind == SyncEventKind.NOT_FOUND:
                        self.not_found = True
                        self.session = None
                        return
                    if self._accept(event):
                        yield self.session
                raise TransportError(f"Event source for {self.key} ended")

            except (TransportError, APIException) as e:
                failures += 1
                self.reconnecting = True
                if self.max_retries is not None and failures > self.max_retries:
                    client_logger.error(f"Giving up on {self.key} after {failures - 1} retries")
                    raise TransportError(f"Could not reconnect to {self.key}: {e}") from e
                client_logger.warning(f"Stream for {self.key} interrupted ({e}); retrying in {delay:.1f}s")
                await self._sleep(delay)
                delay = min(delay * 2, self.max_delay)
