"""
Outbox of snapshot sync tasks.

The ledger mutates memory synchronously and enqueues a SyncTask describing
the customer's new state. Tasks are delivered to every snapshot store by a
background worker thread, or synchronously through drain().

Delivery is best effort: a failing store is retried up to max_attempts and
then the task is dead-lettered. A retry is dropped once a newer task for the
same customer has been queued, since that task carries the later state to
every store. Nothing here ever rolls back or blocks the in-memory ledger.
"""

import itertools
import logging
import queue
import threading
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Sequence
from uuid import UUID

from core.models import Customer
from core.persistence import SnapshotStore

logger = logging.getLogger(__name__)


class SyncAction(Enum):
    """What a sync task does to the stored customer document."""

    UPSERT = "upsert"
    DELETE = "delete"


@dataclass(frozen=True)
class SyncTask:
    """
    One pending write, addressed to the stores still owed it.

    `pending` holds store names; it shrinks as stores succeed so a retry
    never repeats a write that already landed. `seq` orders tasks for the
    same customer.
    """

    user_id: UUID
    customer_id: UUID
    action: SyncAction
    customer: Customer | None = None
    pending: frozenset[str] = frozenset()
    attempts: int = 0
    seq: int = 0
    last_error: str | None = field(default=None, compare=False)


class SyncOutbox:
    """
    FIFO of sync tasks with retry and dead-lettering.

    Usage:
        outbox = SyncOutbox([local_store, remote_store])
        outbox.start()                       # background delivery
        outbox.enqueue_upsert(user_id, customer)
        ...
        outbox.stop()

    Tests and shutdown paths call drain() to deliver synchronously.
    """

    def __init__(
        self,
        stores: Sequence[SnapshotStore],
        max_attempts: int = 3,
        retry_delay_seconds: float = 0.0,
    ):
        self._stores = {store.name: store for store in stores}
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay_seconds
        self._queue: "queue.Queue[SyncTask]" = queue.Queue()
        self._dead_letters: list[SyncTask] = []
        self._dead_lock = threading.Lock()
        self._seq = itertools.count(1)
        self._latest: dict[tuple[UUID, UUID], int] = {}
        self._latest_lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._stopping = threading.Event()

    # -------------------------------------------------------------------------
    # Enqueue
    # -------------------------------------------------------------------------

    def enqueue_upsert(self, user_id: UUID, customer: Customer) -> SyncTask:
        return self._enqueue(SyncTask(
            user_id=user_id,
            customer_id=customer.id,
            action=SyncAction.UPSERT,
            customer=customer,
            pending=frozenset(self._stores),
        ))

    def enqueue_delete(self, user_id: UUID, customer_id: UUID) -> SyncTask:
        return self._enqueue(SyncTask(
            user_id=user_id,
            customer_id=customer_id,
            action=SyncAction.DELETE,
            pending=frozenset(self._stores),
        ))

    def _enqueue(self, task: SyncTask) -> SyncTask:
        with self._latest_lock:
            task = replace(task, seq=next(self._seq))
            self._latest[(task.user_id, task.customer_id)] = task.seq
            self._queue.put(task)
        return task

    def _superseded(self, task: SyncTask) -> bool:
        """True once a newer task for the same customer is queued. Hold _latest_lock."""
        return self._latest.get((task.user_id, task.customer_id), 0) > task.seq

    def _settle(self, task: SyncTask) -> None:
        with self._latest_lock:
            key = (task.user_id, task.customer_id)
            if self._latest.get(key) == task.seq:
                del self._latest[key]

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dead_letters(self) -> list[SyncTask]:
        with self._dead_lock:
            return list(self._dead_letters)

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def _deliver(self, task: SyncTask) -> SyncTask | None:
        """
        Attempt a task against every store still owed it.

        Returns:
            The task to retry (with failed stores only), or None when done
        """
        failed = set()
        last_error = None

        for name in sorted(task.pending):
            store = self._stores.get(name)
            if store is None:
                continue
            try:
                if task.action == SyncAction.UPSERT:
                    store.save_customer(task.user_id, task.customer)
                else:
                    store.delete_customer(task.user_id, task.customer_id)
            except Exception as e:
                logger.exception(
                    "Sync %s of customer %s to %s store failed (attempt %d)",
                    task.action.value,
                    task.customer_id,
                    name,
                    task.attempts + 1,
                )
                failed.add(name)
                last_error = str(e)

        if not failed:
            return None

        return replace(
            task,
            pending=frozenset(failed),
            attempts=task.attempts + 1,
            last_error=last_error,
        )

    def _process(self, task: SyncTask) -> None:
        retry = self._deliver(task)
        if retry is None:
            self._settle(task)
            return

        with self._latest_lock:
            superseded = self._superseded(retry)
        if superseded:
            logger.info(
                "Dropping retry of sync %s for customer %s: superseded by a newer task",
                retry.action.value,
                retry.customer_id,
            )
            return

        if retry.attempts >= self._max_attempts:
            logger.error(
                "Dead-lettering sync %s of customer %s after %d attempts: %s",
                retry.action.value,
                retry.customer_id,
                retry.attempts,
                retry.last_error,
            )
            with self._dead_lock:
                self._dead_letters.append(retry)
            self._settle(retry)
            return

        if self._retry_delay:
            time.sleep(self._retry_delay)
        with self._latest_lock:
            # a newer task may have arrived during the delay
            if not self._superseded(retry):
                self._queue.put(retry)

    def drain(self) -> int:
        """
        Deliver queued tasks on the calling thread until the queue is empty.

        Retries are processed in the same call. Returns the number of
        delivery attempts made.
        """
        processed = 0
        while True:
            try:
                task = self._queue.get_nowait()
            except queue.Empty:
                return processed
            try:
                self._process(task)
            finally:
                self._queue.task_done()
            processed += 1

    # -------------------------------------------------------------------------
    # Background worker
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start the background delivery thread. Idempotent."""
        if self._worker is not None and self._worker.is_alive():
            return
        self._stopping.clear()
        self._worker = threading.Thread(target=self._run, name="sync-outbox", daemon=True)
        self._worker.start()
        logger.info("Sync outbox started with stores: %s", ", ".join(sorted(self._stores)))

    def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                task = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                self._process(task)
            except Exception:
                logger.exception("Sync outbox worker error for customer %s", task.customer_id)
            finally:
                self._queue.task_done()

    def stop(self, flush: bool = True) -> None:
        """
        Stop the background thread.

        Args:
            flush: Deliver whatever is still queued before returning
        """
        self._stopping.set()
        if self._worker is not None:
            self._worker.join()
            self._worker = None
        if flush:
            self.drain()
        logger.info("Sync outbox stopped")
