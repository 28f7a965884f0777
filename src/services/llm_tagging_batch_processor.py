"""
LLM Batch Tagging Processor Module

Drives the tagging engine over many items with bounded concurrency, request
pacing, optional confirmation, cooperative cancellation and progress updates.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from typing import Callable, Iterable, List, Optional, Sequence

from models.library_item import LibraryItem
from models.tagging import BatchProgress, BatchState, SuggestionRecord, TaggingSettings

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BatchProgress], None]
ConfirmCallback = Callable[[SuggestionRecord], Optional[Sequence[str]]]


class BatchRun:
    """
    Handle for one batch run.

    Returned immediately by `LLMTaggingBatchProcessor.run`; the work continues
    on worker threads. All counters are guarded by one lock.

    Usage Example:
        run = processor.run(items, on_progress=print)
        ...
        run.cancel()
        report = run.result()
    """

    def __init__(self, total: int):
        self._total = total
        self._lock = threading.Lock()
        # Serializes snapshot creation and callback delivery
        self._progress_lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._future: concurrent.futures.Future = concurrent.futures.Future()

        self._state = BatchState.PENDING
        self._current = 0
        self._skipped = 0
        self._results: List[SuggestionRecord] = []
        self._dispatched = 0
        self._in_flight = 0
        self._max_in_flight = 0

    # ========== Public API ==========

    def cancel(self) -> None:
        """Stop dispatching new items. In-flight requests are allowed to finish."""
        if not self._cancel_event.is_set():
            logger.info("Batch cancellation requested")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def state(self) -> BatchState:
        with self._lock:
            return self._state

    @property
    def max_in_flight(self) -> int:
        """Highest number of simultaneous suggestion calls observed"""
        with self._lock:
            return self._max_in_flight

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> BatchProgress:
        """
        Wait for the final report.

        Raises:
            concurrent.futures.TimeoutError: If the run is still going after `timeout`
            Exception: Only for internal faults, never for per-item errors
        """
        return self._future.result(timeout=timeout)

    def snapshot(self) -> BatchProgress:
        with self._lock:
            return self._snapshot_locked()

    # ========== Scheduler bookkeeping ==========

    def _snapshot_locked(self) -> BatchProgress:
        return BatchProgress(
            total=self._total,
            current=self._current,
            skipped=self._skipped,
            results=tuple(self._results),
            cancelled=self._cancel_event.is_set(),
        )

    def _start(self) -> None:
        with self._lock:
            self._state = BatchState.RUNNING

    def _claim_dispatch(self) -> bool:
        """Count a dispatch; True if it is the very first one of the run."""
        with self._lock:
            first = self._dispatched == 0
            self._dispatched += 1
            return first

    def _enter_flight(self) -> None:
        with self._lock:
            self._in_flight += 1
            self._max_in_flight = max(self._max_in_flight, self._in_flight)

    def _exit_flight(self) -> None:
        with self._lock:
            self._in_flight -= 1

    def _record_skip(self) -> None:
        with self._lock:
            self._skipped += 1

    def _record_result(
        self, record: SuggestionRecord, on_progress: Optional[ProgressCallback]
    ) -> None:
        with self._progress_lock:
            with self._lock:
                self._current += 1
                self._results.append(record)
                snapshot = self._snapshot_locked()
            if on_progress is None:
                return
            try:
                on_progress(snapshot)
            except Exception:
                logger.exception("Progress callback failed")

    def _finish(self, error: Optional[BaseException] = None) -> None:
        with self._lock:
            self._state = (
                BatchState.CANCELLED if self._cancel_event.is_set() else BatchState.COMPLETED
            )
            final = self._snapshot_locked()

        if error is not None:
            self._future.set_exception(error)
            return

        logger.info(
            "Batch finished: %d/%d completed, %d skipped, %d errors%s",
            final.current, final.total, final.skipped, final.error_count,
            " (cancelled)" if final.cancelled else "",
        )
        self._future.set_result(final)


class LLMTaggingBatchProcessor:
    """
    LLM Batch Tagging Processor

    A thread pool of `concurrency` workers is the admission gate: items are
    taken in submission order as workers free up. Before every suggestion call
    except the first one of the run, a worker waits `request_interval_ms`.
    """

    def __init__(self, engine, settings: TaggingSettings):
        """
        Initialize the batch processor.

        Args:
            engine: Tagging engine (suggest/apply)
            settings: Tagging settings (concurrency and pacing)
        """
        self._engine = engine
        self._settings = settings

    @property
    def engine(self):
        return self._engine

    def run(
        self,
        items: Iterable[LibraryItem],
        on_progress: Optional[ProgressCallback] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> BatchRun:
        """
        Start tagging a list of items.

        Args:
            items: Items to tag
            on_progress: Called with a fresh snapshot after every completed item
            confirm: Optional per-item confirmation; returns the tags to apply,
                     or None/empty to decline. Without it all suggestions are applied.

        Returns:
            BatchRun handle with cancel() and result()
        """
        items = list(items)
        batch = BatchRun(len(items))
        batch._start()

        if not items:
            batch._finish()
            return batch

        workers = max(1, min(self._settings.concurrency, len(items)))
        logger.info(
            "Starting batch of %d item(s): concurrency=%d, interval=%dms",
            len(items), workers, self._settings.request_interval_ms,
        )

        executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="AITagger"
        )
        remaining = [len(items)]
        faults: List[BaseException] = []
        done_lock = threading.Lock()

        def on_item_done(future: concurrent.futures.Future) -> None:
            error = future.exception()
            with done_lock:
                if error is not None:
                    faults.append(error)
                remaining[0] -= 1
                finished = remaining[0] == 0
            if error is not None:
                logger.error("Internal batch fault: %r", error)
            if finished:
                batch._finish(faults[0] if faults else None)

        futures = [
            executor.submit(self._process_item, batch, item, on_progress, confirm)
            for item in items
        ]
        for future in futures:
            future.add_done_callback(on_item_done)
        executor.shutdown(wait=False)

        return batch

    def _process_item(
        self,
        batch: BatchRun,
        item: LibraryItem,
        on_progress: Optional[ProgressCallback],
        confirm: Optional[ConfirmCallback],
    ) -> None:
        if batch.cancelled:
            batch._record_skip()
            return

        interval = self._settings.request_interval_seconds
        first = batch._claim_dispatch()
        if not first and interval > 0:
            # Returns early (True) when the batch is cancelled during the wait
            if batch._cancel_event.wait(interval):
                batch._record_skip()
                return

        if batch.cancelled:
            batch._record_skip()
            return

        batch._enter_flight()
        try:
            record = self._engine.suggest(item)
        finally:
            batch._exit_flight()

        if not batch.cancelled and not record.error and record.suggested_tags:
            record = self._confirm_and_apply(record, confirm)

        batch._record_result(record, on_progress)

    def _confirm_and_apply(
        self, record: SuggestionRecord, confirm: Optional[ConfirmCallback]
    ) -> SuggestionRecord:
        try:
            if confirm is not None:
                accepted = confirm(record)
                tags = list(accepted) if accepted else []
                if not tags:
                    logger.info("Tags declined for item %s", record.item_id)
                    return record
            else:
                tags = list(record.suggested_tags)

            self._engine.apply(record.item_id, tags)
            return record.with_applied(tags)
        except Exception as e:
            logger.warning("Applying tags to item %s failed: %s", record.item_id, e)
            return record.with_error(f"Failed to apply tags: {e}")
