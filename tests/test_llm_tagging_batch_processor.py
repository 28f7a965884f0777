"""
LLM Batch Tagging Processor Tests

Scheduling behavior: concurrency bound, pacing, cancellation, confirmation
and progress snapshots. The engine is a thread-safe fake.
"""

from __future__ import annotations

import threading
import time

import pytest

from models.library_item import LibraryItem
from models.tagging import BatchState, SuggestionRecord, TaggingSettings
from services.llm_tagging_batch_processor import LLMTaggingBatchProcessor


class _FakeEngine:
    """Records calls and in-flight peaks; optional per-call hook."""

    def __init__(self, tags=("Quantum", "Materials"), delay=0.0, failing_ids=(), hook=None):
        self._tags = tuple(tags)
        self._delay = delay
        self._failing_ids = set(failing_ids)
        self._hook = hook
        self._lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []
        self.applied = []
        self.apply_error = None

    def suggest(self, item):
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            self.calls.append((item.id, time.monotonic()))
        try:
            if self._hook is not None:
                self._hook(item)
            if self._delay:
                time.sleep(self._delay)
        finally:
            with self._lock:
                self.in_flight -= 1

        if item.id in self._failing_ids:
            return SuggestionRecord.failure(item.id, item.display_title, "HTTP 500: boom")
        return SuggestionRecord(item_id=item.id, title=item.display_title, suggested_tags=self._tags)

    def apply(self, item_id, tags):
        if self.apply_error is not None:
            raise self.apply_error
        with self._lock:
            self.applied.append((item_id, list(tags)))
        return len(tags)


def _items(count):
    return [LibraryItem(id=i, title=f"Paper {i}") for i in range(1, count + 1)]


def _settings(concurrency=3, interval_ms=0):
    return TaggingSettings(concurrency=concurrency, request_interval_ms=interval_ms)


class TestBatchScheduling:

    def test_all_items_processed_and_applied(self):
        engine = _FakeEngine()
        processor = LLMTaggingBatchProcessor(engine, _settings())

        report = processor.run(_items(4)).result(timeout=10)

        assert report.total == 4
        assert report.current == 4
        assert report.skipped == 0
        assert not report.cancelled
        assert report.applied_tag_count == 8
        assert sorted(item_id for item_id, _ in engine.applied) == [1, 2, 3, 4]
        assert all(r.status == "applied" for r in report.results)
        assert report.summary() == "Done: 8 tags added across 4 items"

    def test_concurrency_limit_is_never_exceeded(self):
        engine = _FakeEngine(delay=0.05)
        processor = LLMTaggingBatchProcessor(engine, _settings(concurrency=2))

        run = processor.run(_items(5))
        report = run.result(timeout=10)

        assert report.current == 5
        assert engine.max_in_flight <= 2
        assert run.max_in_flight <= 2

    def test_sequential_run_completes_in_input_order(self):
        engine = _FakeEngine(delay=0.01)
        processor = LLMTaggingBatchProcessor(engine, _settings(concurrency=1))

        report = processor.run(_items(4)).result(timeout=10)

        assert [r.item_id for r in report.results] == [1, 2, 3, 4]
        assert [item_id for item_id, _ in engine.calls] == [1, 2, 3, 4]

    def test_requests_after_the_first_are_paced(self):
        engine = _FakeEngine()
        processor = LLMTaggingBatchProcessor(engine, _settings(concurrency=1, interval_ms=50))

        processor.run(_items(3)).result(timeout=10)

        times = [t for _, t in engine.calls]
        gaps = [b - a for a, b in zip(times, times[1:])]
        assert all(gap >= 0.045 for gap in gaps)

    def test_empty_batch_completes_immediately(self):
        processor = LLMTaggingBatchProcessor(_FakeEngine(), _settings())

        run = processor.run([])
        report = run.result(timeout=1)

        assert report.total == 0
        assert report.current == 0
        assert run.state == BatchState.COMPLETED


class TestCancellation:

    def test_cancel_after_two_of_five_started(self):
        started = threading.Semaphore(0)
        release = threading.Event()

        def hook(item):
            started.release()
            release.wait(timeout=10)

        engine = _FakeEngine(hook=hook)
        processor = LLMTaggingBatchProcessor(engine, _settings(concurrency=2))

        run = processor.run(_items(5))
        assert started.acquire(timeout=5)
        assert started.acquire(timeout=5)
        assert run.state == BatchState.RUNNING

        run.cancel()
        release.set()
        report = run.result(timeout=10)

        assert report.cancelled
        assert run.state == BatchState.CANCELLED
        assert report.current == 2
        assert report.skipped == 3
        assert report.current + report.skipped == report.total
        assert sorted(r.item_id for r in report.results) == [1, 2]
        # Suggestions that return after cancellation are not applied
        assert engine.applied == []
        assert report.summary() == "Cancelled: processed 2 of 5"

    def test_cancel_during_pacing_wait_skips_remaining(self):
        first_done = threading.Event()
        engine = _FakeEngine()
        processor = LLMTaggingBatchProcessor(engine, _settings(concurrency=1, interval_ms=10000))

        run = processor.run(_items(3), on_progress=lambda p: first_done.set())
        assert first_done.wait(timeout=5)
        run.cancel()
        report = run.result(timeout=5)

        assert report.current == 1
        assert report.skipped == 2
        assert len(engine.calls) == 1


class TestConfirmation:

    def test_declined_suggestions_are_not_applied(self):
        engine = _FakeEngine()
        seen = []

        def decline(record):
            seen.append(record.item_id)
            return None

        processor = LLMTaggingBatchProcessor(engine, _settings())
        report = processor.run(_items(2), confirm=decline).result(timeout=10)

        assert sorted(seen) == [1, 2]
        assert engine.applied == []
        assert all(r.status == "suggested" for r in report.results)
        assert report.applied_tag_count == 0

    def test_confirm_can_narrow_the_tags(self):
        engine = _FakeEngine()
        processor = LLMTaggingBatchProcessor(engine, _settings())

        report = processor.run(_items(1), confirm=lambda r: ["Quantum"]).result(timeout=10)

        assert engine.applied == [(1, ["Quantum"])]
        assert report.results[0].applied_tags == ("Quantum",)

    def test_confirm_not_asked_for_errors_or_empty_suggestions(self):
        engine = _FakeEngine(failing_ids={1})
        asked = []
        processor = LLMTaggingBatchProcessor(engine, _settings())

        processor.run(_items(1), confirm=lambda r: asked.append(r) or None).result(timeout=10)

        assert asked == []

    def test_confirm_failure_is_recorded(self):
        def broken(record):
            raise RuntimeError("terminal closed")

        processor = LLMTaggingBatchProcessor(_FakeEngine(), _settings())
        report = processor.run(_items(1), confirm=broken).result(timeout=10)

        assert report.results[0].error == "Failed to apply tags: terminal closed"


class TestErrorsAndProgress:

    def test_item_errors_do_not_stop_the_batch(self):
        engine = _FakeEngine(failing_ids={2})
        processor = LLMTaggingBatchProcessor(engine, _settings(concurrency=1))

        report = processor.run(_items(3)).result(timeout=10)

        assert report.current == 3
        assert report.error_count == 1
        assert [r.item_id for r in report.errors()] == [2]
        assert sorted(item_id for item_id, _ in engine.applied) == [1, 3]
        assert report.summary() == "Done: 4 tags added across 3 items (1 errors)"

    def test_apply_error_is_captured_on_the_record(self):
        engine = _FakeEngine()
        engine.apply_error = RuntimeError("database is locked")
        processor = LLMTaggingBatchProcessor(engine, _settings())

        report = processor.run(_items(2)).result(timeout=10)

        assert report.current == 2
        assert all(r.error == "Failed to apply tags: database is locked" for r in report.results)
        assert all(r.suggested_tags for r in report.results)

    def test_progress_snapshots_are_ordered_and_independent(self):
        snapshots = []
        processor = LLMTaggingBatchProcessor(_FakeEngine(), _settings(concurrency=3))

        report = processor.run(_items(5), on_progress=snapshots.append).result(timeout=10)

        assert [s.current for s in snapshots] == [1, 2, 3, 4, 5]
        assert all(len(s.results) == s.current for s in snapshots)
        assert all(s.total == 5 for s in snapshots)
        assert len(snapshots[0].results) == 1
        assert snapshots[-1].results == report.results

    def test_failing_progress_callback_does_not_stop_batch(self):
        def explode(progress):
            raise ValueError("ui gone")

        processor = LLMTaggingBatchProcessor(_FakeEngine(), _settings())
        report = processor.run(_items(3), on_progress=explode).result(timeout=10)

        assert report.current == 3
        assert report.error_count == 0


@pytest.mark.parametrize("concurrency", [1, 3, 20])
def test_record_count_plus_skipped_equals_total(concurrency):
    processor = LLMTaggingBatchProcessor(_FakeEngine(), _settings(concurrency=concurrency))

    report = processor.run(_items(7)).result(timeout=10)

    assert len(report.results) + report.skipped == report.total == 7
