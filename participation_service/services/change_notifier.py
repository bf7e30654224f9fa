# participation_service/services/change_notifier.py
"""
Change notifier: broadcasts capacity snapshots after participation changes.

Delivery is best-effort. A missed notification is corrected the next time a
reader asks the aggregator directly, so publishing never raises into the
write path. Snapshots go to:
- in-process subscribers (sync listeners and async streams), and
- a Redis pub/sub channel per session for other services and UI gateways.
"""

import asyncio
import logging
import queue
import threading
from collections import defaultdict
from typing import AsyncIterator, Callable, Dict, List, Optional

from redis import Redis
from redis.exceptions import RedisError

from participation_service.core.config import settings
from participation_service.schemas.participation import CapacitySnapshot

logger = logging.getLogger(__name__)

Subscriber = Callable[[CapacitySnapshot], None]


class CapacitySubscription:
    """
    Blocking listener for one session's snapshots.

    Holds at most `maxsize` undelivered snapshots; when full the oldest is
    dropped, since only the newest count matters to a reader.
    """

    def __init__(self, notifier: "ChangeNotifier", session_id: str, maxsize: int):
        self.session_id = session_id
        self._queue: "queue.Queue[CapacitySnapshot]" = queue.Queue(maxsize=maxsize)
        self._last_version = -1
        self._unsubscribe = notifier.subscribe(session_id, self._deliver)

    def _deliver(self, snapshot: CapacitySnapshot) -> None:
        while True:
            try:
                self._queue.put_nowait(snapshot)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def get(self, timeout: Optional[float] = None) -> Optional[CapacitySnapshot]:
        """Next snapshot newer than the last one returned, or None on timeout."""
        while True:
            try:
                snapshot = self._queue.get(timeout=timeout)
            except queue.Empty:
                return None
            if snapshot.version > self._last_version:
                self._last_version = snapshot.version
                return snapshot

    def close(self) -> None:
        self._unsubscribe()

    def __enter__(self) -> "CapacitySubscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class ChangeNotifier:
    def __init__(
        self,
        redis_client: Optional[Redis] = None,
        *,
        channel_prefix: Optional[str] = None,
        queue_size: Optional[int] = None,
    ):
        self.redis = redis_client
        self.channel_prefix = channel_prefix or settings.CAPACITY_CHANNEL_PREFIX
        self.queue_size = queue_size or settings.NOTIFIER_QUEUE_SIZE
        self._subscribers: Dict[str, List[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def channel_for(self, session_id: str) -> str:
        return f"{self.channel_prefix}.{session_id}"

    def subscribe(self, session_id: str, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for a session's snapshots. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers[session_id].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(session_id)
                if callbacks and callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(session_id, None)

        return unsubscribe

    def subscriber_count(self, session_id: str) -> int:
        with self._lock:
            return len(self._subscribers.get(session_id, []))

    def publish(self, session_id: str, snapshot: CapacitySnapshot) -> int:
        """
        Fire-and-forget broadcast of a snapshot.

        Returns the number of in-process subscribers that accepted it.
        """
        with self._lock:
            callbacks = list(self._subscribers.get(session_id, []))

        delivered = 0
        for callback in callbacks:
            try:
                callback(snapshot)
                delivered += 1
            except Exception:
                logger.warning(
                    f"Capacity subscriber failed for session {session_id}", exc_info=True
                )

        if self.redis is not None:
            try:
                self.redis.publish(self.channel_for(session_id), snapshot.model_dump_json())
            except RedisError as e:
                logger.warning(
                    f"Failed to publish capacity snapshot for session {session_id}: {e}",
                    extra={"session_id": session_id, "version": snapshot.version},
                )

        logger.debug(
            f"Published capacity snapshot v{snapshot.version} for session {session_id} "
            f"({snapshot.used}/{snapshot.capacity}) to {delivered} local subscribers"
        )
        return delivered

    def listen(self, session_id: str) -> CapacitySubscription:
        """Blocking subscription; use as a context manager."""
        return CapacitySubscription(self, session_id, self.queue_size)

    async def stream(
        self,
        session_id: str,
        initial: Optional[CapacitySnapshot] = None,
    ) -> AsyncIterator[CapacitySnapshot]:
        """
        Async feed of a session's snapshots for live UI updates.

        Yields `initial` first when given, then every newer published
        snapshot. Publishers may run on worker threads, so deliveries hop onto
        the consumer's event loop.
        """
        loop = asyncio.get_running_loop()
        pending: "asyncio.Queue[CapacitySnapshot]" = asyncio.Queue(maxsize=self.queue_size)

        def put_latest(snapshot: CapacitySnapshot) -> None:
            if pending.full():
                pending.get_nowait()
            pending.put_nowait(snapshot)

        def deliver(snapshot: CapacitySnapshot) -> None:
            loop.call_soon_threadsafe(put_latest, snapshot)

        unsubscribe = self.subscribe(session_id, deliver)
        last_version = -1
        try:
            if initial is not None:
                last_version = initial.version
                yield initial
            while True:
                snapshot = await pending.get()
                if snapshot.version <= last_version:
                    continue
                last_version = snapshot.version
                yield snapshot
        finally:
            unsubscribe()


def _default_redis_client() -> Optional[Redis]:
    if not settings.NOTIFIER_REDIS_ENABLED:
        return None
    from participation_service.db.redis import redis_client

    return redis_client


# Shared instance used by the API and GraphQL surfaces
change_notifier = ChangeNotifier(_default_redis_client())
