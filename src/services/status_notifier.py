"""Document status notifications with callback-based listeners.

Records the latest :class:`~src.models.document.StatusEvent` per document
and broadcasts every event to registered listeners.  This is the push
alternative to polling the status listing: the ingestion service emits an
event when a run starts and when it reaches ``ready`` or ``failed``.

# ─── HOW STATUS NOTIFICATION WORKS ─────────────────────────────────────
#
# Observer pattern:
#
#   IngestionService ──notify()──→ StatusNotifier ──callback(event)──→ listener
#
#   - Listeners registered with a document_id only see that document.
#   - Listeners registered without one see every document.
#   - Listener errors are caught and logged; a broken listener never
#     changes the outcome of an ingestion run.
#   - Both sync and async callbacks are supported.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import structlog

from src.models.document import StatusEvent
from src.utils.logging import get_logger

_ALL_DOCUMENTS = "*"


class StatusNotifier:
    """Tracks the last status event per document and broadcasts new ones."""

    def __init__(self) -> None:
        self._latest: dict[str, StatusEvent] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def notify(self, event: StatusEvent) -> None:
        """Record *event* and invoke every matching listener."""
        self._latest[event.document_id] = event
        self._logger.debug(
            "status_event",
            document_id=event.document_id,
            status=event.status.value,
            chunk_count=event.chunk_count,
        )

        listeners = [
            *self._listeners.get(event.document_id, []),
            *self._listeners.get(_ALL_DOCUMENTS, []),
        ]
        for callback in listeners:
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    document_id=event.document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )

    def register_listener(self, callback: Callable, document_id: str | None = None) -> None:
        """Register *callback* for one document, or for all when *document_id* is None.

        The callback receives a single :class:`StatusEvent` and may be sync
        or async.
        """
        key = document_id or _ALL_DOCUMENTS
        listeners = self._listeners.setdefault(key, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug("listener_registered", key=key, total_listeners=len(listeners))

    def unregister_listener(self, callback: Callable, document_id: str | None = None) -> None:
        key = document_id or _ALL_DOCUMENTS
        listeners = self._listeners.get(key, [])
        if callback in listeners:
            listeners.remove(callback)
            if not listeners:
                del self._listeners[key]

    def get_latest(self, document_id: str) -> StatusEvent | None:
        """Return the most recent event for *document_id*, if any."""
        return self._latest.get(document_id)

    def forget(self, document_id: str) -> None:
        """Drop state and listeners for a deleted document."""
        self._latest.pop(document_id, None)
        self._listeners.pop(document_id, None)
