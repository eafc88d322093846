"""
Inbound sync: applies verified Stripe events to local documents.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from ..connectors.base import DocumentStore
from ..exceptions import SyncHandlerError
from ..models.config import SyncRule
from ..models.events import HandlerResult, HandlerStatus, SyncEvent
from .registry import SyncRegistry
from .transforms import FieldMapper

logger = logging.getLogger(__name__)

# Provider timestamp of the last event applied to a document
EVENT_CREATED_FIELD = "stripe_event_created"


class _KeyQueue:
    """Ticket counters for one key; waiters are served in ticket order."""

    def __init__(self, guard: threading.Lock):
        self.issued = 0
        self.serving = 0
        self.turn = threading.Condition(guard)


class KeyedLock:
    """
    One FIFO lock per key, created on demand and dropped when no longer held.

    Events for the same Stripe object are served strictly in the order they
    ask for the lock; events for different objects never wait on each other.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._queues: Dict[str, _KeyQueue] = {}

    @contextmanager
    def hold(self, key: Optional[str]) -> Iterator[None]:
        if key is None:
            yield
            return

        with self._guard:
            queue = self._queues.get(key)
            if queue is None:
                queue = self._queues[key] = _KeyQueue(self._guard)
            ticket = queue.issued
            queue.issued += 1
            while queue.serving != ticket:
                queue.turn.wait()
        try:
            yield
        finally:
            with self._guard:
                queue.serving += 1
                if queue.serving == queue.issued:
                    del self._queues[key]
                else:
                    queue.turn.notify_all()

    def queued(self, key: str) -> int:
        """Number of holders and waiters for a key."""
        with self._guard:
            queue = self._queues.get(key)
            return queue.issued - queue.serving if queue else 0

    def __len__(self) -> int:
        with self._guard:
            return len(self._queues)


class InboundSyncHandler:
    """
    Dispatches verified events to the built-in resource sync and to custom
    webhook handlers.

    For each sync rule, ``<singular>.created`` and ``<singular>.updated``
    events upsert the local document found by Stripe ID. A custom handler
    bound to the event type then runs with ``(payload, store)``. Failures are
    returned as a FAILED result carrying a SyncHandlerError, never raised.

    Args:
        registry: Frozen sync registry
        store: Local document store
        remote_id_field: Local field holding the Stripe ID
        skip_sync_field: Flag set on engine writes so they are not pushed back out
        logs: Log every applied event at info level
    """

    def __init__(
        self,
        registry: SyncRegistry,
        store: DocumentStore,
        remote_id_field: str = "stripe_id",
        skip_sync_field: str = "skip_sync",
        logs: bool = False,
    ):
        self.registry = registry
        self.store = store
        self.remote_id_field = remote_id_field
        self.skip_sync_field = skip_sync_field
        self.logs = logs
        self._locks = KeyedLock()

    def handle(self, event: SyncEvent) -> HandlerResult:
        """
        Apply one event.

        Events for the same remote ID are applied one at a time in the order
        they arrive here.

        Args:
            event: Verified event

        Returns:
            HandlerResult describing what ran
        """
        with self._locks.hold(event.remote_id):
            return self._dispatch(event)

    def _dispatch(self, event: SyncEvent) -> HandlerResult:
        rule = self.registry.rule_for_event(event.type)
        handler = self.registry.get_handler(event.type)

        if rule is None and handler is None:
            logger.debug(f"No handler for event type {event.type}, ignoring event {event.id}")
            return HandlerResult(
                status=HandlerStatus.IGNORED,
                event_type=event.type,
                remote_id=event.remote_id,
                message="No handler registered for this event type",
            )

        handlers_run: List[str] = []
        try:
            if rule is not None:
                if not self._sync_resource(rule, event):
                    return HandlerResult(
                        status=HandlerStatus.SKIPPED,
                        event_type=event.type,
                        remote_id=event.remote_id,
                        message="A newer event was already applied",
                    )
                handlers_run.append(f"sync:{rule.collection}")

            if handler is not None:
                handler(event.payload, self.store)
                handlers_run.append(getattr(handler, "__name__", repr(handler)))

        except Exception as e:
            error = SyncHandlerError(
                f"Handler failed for {event.type} ({event.remote_id}): {e}",
                event_type=event.type,
                remote_id=event.remote_id,
            )
            logger.error(f"Webhook event {event.id} failed: {error}")
            return HandlerResult(
                status=HandlerStatus.FAILED,
                event_type=event.type,
                remote_id=event.remote_id,
                handlers=handlers_run,
                message=str(error),
                error=error,
            )

        if self.logs:
            logger.info(f"Applied {event.type} for {event.remote_id} with {handlers_run}")
        return HandlerResult(
            status=HandlerStatus.HANDLED,
            event_type=event.type,
            remote_id=event.remote_id,
            handlers=handlers_run,
        )

    def _sync_resource(self, rule: SyncRule, event: SyncEvent) -> bool:
        """
        Upsert the local document for a created/updated Stripe object.

        Returns:
            False if the event is older than the one already applied
        """
        if not event.remote_id:
            raise ValueError(f"Event {event.id} payload has no object id")

        existing = self.store.find_by_remote_id(rule.collection, self.remote_id_field, event.remote_id)
        if existing is not None and event.created is not None:
            last_applied = existing.get(EVENT_CREATED_FIELD)
            if last_applied is not None and event.created < last_applied:
                logger.warning(
                    f"Skipping stale {event.type} for {event.remote_id}: "
                    f"event created {event.created}, document at {last_applied}"
                )
                return False

        data = FieldMapper.to_local(event.payload, rule.field_mappings)
        data[self.remote_id_field] = event.remote_id
        data[self.skip_sync_field] = True
        if event.created is not None:
            data[EVENT_CREATED_FIELD] = event.created

        if existing is None:
            doc = self.store.create(rule.collection, data)
            if self.logs:
                logger.info(f"Created {rule.collection} document {doc.get('id')} from {event.remote_id}")
        else:
            self.store.update(rule.collection, existing["id"], data)
            if self.logs:
                logger.info(f"Updated {rule.collection} document {existing['id']} from {event.remote_id}")
        return True
