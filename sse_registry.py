"""
Server-Sent Events subscribers and the bounded registry that fans out stats.

Every push carries the full stats snapshot as one `data:` event. Writes never
block: a subscriber whose queue is full or that has been closed is evicted,
and the remaining subscribers still receive the event.
"""
import json
import logging
import queue
import threading

from errors import CapacityExceeded, TransportWriteFailure

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLIENTS = 10
DEFAULT_QUEUE_SIZE = 64
KEEPALIVE_EVENT = ': keepalive\n\n'


def format_event(snapshot) -> str:
    """Frame a stats snapshot as a single SSE event."""
    return f"data: {json.dumps(snapshot)}\n\n"


class SSEClient:
    """One open event stream, backed by a bounded queue of pending events."""

    def __init__(self, max_pending: int = DEFAULT_QUEUE_SIZE, name: str | None = None):
        self._queue: queue.Queue[str | None] = queue.Queue(maxsize=max_pending)
        self._closed = False
        self.name = name or f"sse-{id(self):x}"

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, event: str) -> None:
        """Queue an event without blocking.

        Raises:
            TransportWriteFailure: if the stream is closed or not draining.
        """
        if self._closed:
            raise TransportWriteFailure(f"{self.name} is closed")
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            raise TransportWriteFailure(f"{self.name} has {self._queue.maxsize} undelivered events")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Wake a reader blocked in events(); a full queue is drained first anyway
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            pass

    def events(self, keepalive: float | None = None):
        """Yield queued events until the client is closed and drained.

        When nothing arrives for `keepalive` seconds a comment line is yielded
        so a dead connection is noticed by the server on the next write.
        """
        while not (self._closed and self._queue.empty()):
            try:
                event = self._queue.get(timeout=keepalive)
            except queue.Empty:
                if self._closed:
                    break
                yield KEEPALIVE_EVENT
                continue
            if event is None:
                break
            yield event


def _current(snapshot):
    """Accept either a snapshot dict or a callable returning one."""
    return snapshot() if callable(snapshot) else snapshot


class SubscriberRegistry:
    """Bounded set of SSE clients receiving stats broadcasts.

    Snapshots passed to subscribe() and broadcast() may be callables (e.g.
    StatsCache.snapshot); they are read under the registry lock, so a new
    subscriber's first event is never older than a broadcast it also receives.
    """

    def __init__(self, max_clients: int = DEFAULT_MAX_CLIENTS):
        self.max_clients = max_clients
        self._clients: set[SSEClient] = set()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._clients)

    def __contains__(self, client):
        with self._lock:
            return client in self._clients

    def subscribe(self, client: SSEClient, snapshot) -> None:
        """Register a client and send it the current snapshot as its first event.

        Raises:
            CapacityExceeded: if max_clients streams are already open.
        """
        with self._lock:
            if len(self._clients) >= self.max_clients:
                raise CapacityExceeded(f"Too many SSE connections ({self.max_clients} max)")
            # Queued before the client is visible to broadcast()
            try:
                client.write(format_event(_current(snapshot)))
            except TransportWriteFailure as e:
                logger.warning(f"Dropping SSE client {client.name}: {e}")
                client.close()
                return
            self._clients.add(client)
            count = len(self._clients)

        logger.info(f"SSE client {client.name} subscribed ({count}/{self.max_clients})")

    def unsubscribe(self, client: SSEClient) -> None:
        """Remove a client; safe to call more than once."""
        with self._lock:
            removed = client in self._clients
            self._clients.discard(client)
        client.close()
        if removed:
            logger.info(f"SSE client {client.name} unsubscribed")

    def broadcast(self, snapshot) -> int:
        """Push a snapshot to every subscriber, evicting the ones that fail.

        Returns the number of subscribers the event was delivered to.
        """
        with self._lock:
            event = format_event(_current(snapshot))
            clients = list(self._clients)

        delivered = 0
        for client in clients:
            try:
                client.write(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Evicting SSE client {client.name}: {e}")
                self.unsubscribe(client)
        return delivered

    def close_all(self) -> None:
        with self._lock:
            clients = list(self._clients)
            self._clients.clear()
        for client in clients:
            client.close()
        if clients:
            logger.info(f"Closed {len(clients)} SSE client(s)")
