"""HTTP forwarding of debug events for remote progress feeds."""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx

from ..research.events import DebugEvent, DebugEventBus

logger = logging.getLogger(__name__)

_STOP = object()


def _default_url() -> str:
    from ..settings import EVENT_WEBHOOK_URL

    return EVENT_WEBHOOK_URL or ""


@dataclass
class WebhookConfig:
    """Configuration for the webhook forwarder."""

    url: str = field(default_factory=_default_url)
    timeout: float = 10.0
    max_queue: int = 1000  # Events beyond this are dropped

    @property
    def is_configured(self) -> bool:
        """Check if a webhook endpoint is set."""
        return bool(self.url)


class WebhookForwarder:
    """Bus subscriber that POSTs event envelopes to an HTTP endpoint.

    Delivery happens on a background thread so the emitting research call is
    never blocked by the network. Delivery is best effort: a failed POST is
    logged and counted, never retried.

    Usage:
        with WebhookForwarder(WebhookConfig(url="http://localhost:8000/events")) as forwarder:
            forwarder.attach(bus)
            await orchestrator.conduct_research(query, context, debug_enabled=True)
    """

    def __init__(self, config: WebhookConfig | None = None, client: httpx.Client | None = None):
        """Initialize the forwarder.

        Args:
            config: Webhook configuration. If None, loads from environment.
            client: HTTP client to use instead of creating one
        """
        self.config = config or WebhookConfig()
        self._client = client
        self._owns_client = client is None
        self._queue: queue.Queue = queue.Queue(maxsize=self.config.max_queue)
        self._thread: threading.Thread | None = None
        self._detach: list[Callable[[], None]] = []
        self.sent = 0
        self.failed = 0
        self.dropped = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the delivery thread."""
        if not self.config.is_configured:
            logger.warning("Webhook URL not set, event forwarding disabled")
            return
        if self.running:
            return

        if self._client is None:
            self._client = httpx.Client(
                timeout=httpx.Timeout(self.config.timeout),
                headers={"Content-Type": "application/json"},
            )

        self._thread = threading.Thread(target=self._deliver_loop, name="marginalia-webhook", daemon=True)
        self._thread.start()
        logger.info(f"Forwarding debug events to {self.config.url}")

    def stop(self, timeout: float | None = None) -> None:
        """Detach from buses, deliver what is queued and stop the thread.

        Args:
            timeout: Seconds to wait for queued events. Events still queued
                when it runs out are dropped.
        """
        for detach in self._detach:
            detach()
        self._detach.clear()

        thread, self._thread = self._thread, None
        if thread is not None:
            deadline = None if timeout is None else time.monotonic() + timeout
            try:
                self._queue.put(_STOP, timeout=timeout)
            except queue.Full:
                self._drop_pending()
                self._queue.put_nowait(_STOP)

            thread.join(None if deadline is None else max(0.0, deadline - time.monotonic()))
            if thread.is_alive():
                # A POST is still in flight; the daemon thread exits after it
                logger.warning(f"Webhook delivery still busy after {timeout}s, not waiting")
                return

        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

        logger.info(f"Webhook forwarder stopped (sent={self.sent}, failed={self.failed}, dropped={self.dropped})")

    def __enter__(self) -> WebhookForwarder:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def attach(self, bus: DebugEventBus) -> Callable[[], None]:
        """Subscribe to *bus*. Returns the unsubscribe function."""
        unsubscribe = bus.subscribe(self)
        self._detach.append(unsubscribe)
        return unsubscribe

    def __call__(self, event: DebugEvent) -> None:
        """Queue *event* for delivery."""
        if not self.running:
            return
        try:
            self._queue.put_nowait(event.to_dict())
        except queue.Full:
            self.dropped += 1
            logger.warning(f"Webhook queue full, dropping {event.type.value} event")

    def _drop_pending(self) -> None:
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
            self.dropped += 1

    def _deliver_loop(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            self._post(item)

    def _post(self, envelope: dict) -> None:
        try:
            response = self._client.post(self.config.url, json=envelope)
            response.raise_for_status()
            self.sent += 1
        except httpx.HTTPStatusError as e:
            self.failed += 1
            logger.error(f"Webhook rejected {envelope['type']} event: {e.response.status_code}")
        except httpx.HTTPError as e:
            self.failed += 1
            logger.error(f"Webhook delivery error: {e}")
