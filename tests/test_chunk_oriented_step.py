"""Tests for the chunk-oriented step engine."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import pytest

from batchstep import (
    Chunk,
    ChunkOrientedStep,
    ChunkSink,
    ChunkSource,
    ExitStatus,
    RepeatStatus,
    StepContribution,
    StepState,
)
from tests.helpers import RecordingSink, RecordingSource


class SingleItemSource(ChunkSource):
    """Supplies up to ``limit`` one-item chunks, then returns None."""

    def __init__(self, limit: int = 3):
        self.limit = limit
        self.calls = 0

    def provide(self, contribution):
        if self.calls >= self.limit:
            return None
        self.calls += 1
        contribution.increment_read_count()
        return Chunk(["foo"])

    def post_process(self, contribution, chunk):
        pass


class FailingSource(ChunkSource):
    def __init__(self, reads_before_failure: int = 0):
        self.reads_before_failure = reads_before_failure
        self.post_processed = False

    def provide(self, contribution):
        for _ in range(self.reads_before_failure):
            contribution.increment_read_count()
        raise RuntimeError("Foo!")

    def post_process(self, contribution, chunk):
        self.post_processed = True


class TestExecute:
    """Tests for a single execute call."""

    def test_processes_one_chunk(self, contribution, context):
        """One-item chunk is read, written and reported continuable."""
        sink = RecordingSink()
        step = ChunkOrientedStep(RecordingSource([Chunk(["foo"])]), sink)

        status = step.execute(contribution, context)

        assert status is RepeatStatus.CONTINUABLE
        assert contribution.read_count == 1
        assert contribution.write_count == 1
        assert sink.written == ["foo"]
        assert context.attribute_names() == []

    def test_leaves_existing_context_attributes_alone(self, contribution, context):
        context.set_attribute("run_id", "2025-01-15")
        step = ChunkOrientedStep(RecordingSource([Chunk(["a", "b"])]), RecordingSink())

        step.execute(contribution, context)

        assert context.attribute_names() == ["run_id"]
        assert context.get_attribute("run_id") == "2025-01-15"

    def test_post_process_follows_sink(self, contribution, context):
        order = []
        source = MagicMock(spec=ChunkSource)
        sink = MagicMock(spec=ChunkSink)
        chunk = Chunk(["foo"])
        source.provide.side_effect = lambda c: order.append("provide") or chunk
        sink.process.side_effect = lambda c, ch: order.append("process")
        source.post_process.side_effect = lambda c, ch: order.append("post_process")

        ChunkOrientedStep(source, sink).execute(contribution, context)

        assert order == ["provide", "process", "post_process"]
        sink.process.assert_called_once_with(contribution, chunk)
        source.post_process.assert_called_once_with(contribution, chunk)

    def test_empty_chunk_is_continuable(self, contribution, context):
        sink = RecordingSink()
        step = ChunkOrientedStep(RecordingSource([Chunk()]), sink)

        assert step.execute(contribution, context) is RepeatStatus.CONTINUABLE
        assert len(sink.chunks) == 1
        assert contribution.write_count == 0


class TestTerminal:
    """Tests for end-of-input handling."""

    def test_end_marked_chunk_skips_sink(self, contribution, context):
        """The engine does not change the exit status on exhaustion."""
        sink = MagicMock(spec=ChunkSink)
        source = RecordingSource([Chunk(["foo"], end=True)])
        expected = contribution.exit_status

        status = ChunkOrientedStep(source, sink).execute(contribution, context)

        assert status is RepeatStatus.TERMINAL
        assert contribution.exit_status == expected
        sink.process.assert_not_called()
        assert source.post_processed == []

    def test_absent_chunk_is_terminal(self, contribution, context):
        sink = MagicMock(spec=ChunkSink)
        step = ChunkOrientedStep(RecordingSource([]), sink)

        assert step.execute(contribution, context) is RepeatStatus.TERMINAL
        sink.process.assert_not_called()
        assert step.state is StepState.TERMINAL

    def test_state_leaves_terminal_after_processing_chunk(self, contribution, context):
        step = ChunkOrientedStep(RecordingSource([None, Chunk(["late"])]), RecordingSink())

        assert step.execute(contribution, context) is RepeatStatus.TERMINAL
        assert step.state is StepState.TERMINAL
        assert step.execute(contribution, context) is RepeatStatus.CONTINUABLE
        assert step.state is StepState.READY

    def test_preserves_exit_status_set_by_driver(self, contribution, context):
        contribution.exit_status = ExitStatus.COMPLETED.add_exit_description("seeded")
        step = ChunkOrientedStep(RecordingSource([Chunk(end=True)]), RecordingSink())

        step.execute(contribution, context)

        assert contribution.exit_status == ExitStatus("COMPLETED", "seeded")

    def test_drains_until_terminal(self, contribution, context):
        sink = RecordingSink()
        source = RecordingSource([Chunk([1, 2]), Chunk([3]), Chunk(end=True)])
        step = ChunkOrientedStep(source, sink)

        statuses = []
        while True:
            status = step.execute(contribution, context)
            statuses.append(status)
            if not status.is_continuable():
                break

        assert statuses == [
            RepeatStatus.CONTINUABLE,
            RepeatStatus.CONTINUABLE,
            RepeatStatus.TERMINAL,
        ]
        assert sink.written == [1, 2, 3]
        assert contribution.read_count == 3
        assert contribution.write_count == 3
        assert len(source.post_processed) == 2


class TestFailures:
    """Upstream faults reach the caller unchanged."""

    def test_provide_failure_propagates(self, contribution, context):
        sink = MagicMock(spec=ChunkSink)
        source = FailingSource()
        step = ChunkOrientedStep(source, sink)

        with pytest.raises(RuntimeError, match="^Foo!$"):
            step.execute(contribution, context)

        assert contribution.read_count == 0
        assert contribution.write_count == 0
        sink.process.assert_not_called()
        assert source.post_processed is False
        assert step.state is StepState.READY

    def test_provide_failure_keeps_partial_reads(self, contribution, context):
        sink = MagicMock(spec=ChunkSink)
        step = ChunkOrientedStep(FailingSource(reads_before_failure=2), sink)

        with pytest.raises(RuntimeError):
            step.execute(contribution, context)

        assert contribution.read_count == 2
        sink.process.assert_not_called()

    def test_same_exception_object_is_raised(self, contribution, context):
        error = KeyError("missing")
        source = MagicMock(spec=ChunkSource)
        source.provide.side_effect = error
        step = ChunkOrientedStep(source, MagicMock(spec=ChunkSink))

        with pytest.raises(KeyError) as excinfo:
            step.execute(contribution, context)

        assert excinfo.value is error

    def test_sink_failure_skips_post_process(self, contribution, context):
        source = RecordingSource([Chunk(["foo"])])
        sink = MagicMock(spec=ChunkSink)
        sink.process.side_effect = ValueError("disk full")

        with pytest.raises(ValueError, match="disk full"):
            ChunkOrientedStep(source, sink).execute(contribution, context)

        assert contribution.read_count == 1
        assert contribution.write_count == 0
        assert source.post_processed == []

    def test_post_process_failure_propagates(self, contribution, context):
        source = MagicMock(spec=ChunkSource)
        source.provide.return_value = Chunk(["foo"])
        source.post_process.side_effect = OSError("checkpoint dir gone")
        sink = RecordingSink()

        with pytest.raises(OSError, match="checkpoint dir gone"):
            ChunkOrientedStep(source, sink).execute(contribution, context)

        assert sink.written == ["foo"]
        assert contribution.write_count == 1


class TestStop:
    """Tests for cooperative stop handling."""

    def test_stop_after_first_chunk(self, contribution, context):
        source = SingleItemSource(limit=3)
        step = ChunkOrientedStep(source, RecordingSink())

        while step.execute(contribution, context) is RepeatStatus.CONTINUABLE:
            step.request_stop()

        assert contribution.exit_status == ExitStatus.STOPPED
        assert source.calls == 1
        assert contribution.read_count == 1
        assert contribution.write_count == 1

    def test_stop_before_first_execute(self, contribution, context):
        source = MagicMock(spec=ChunkSource)
        sink = MagicMock(spec=ChunkSink)
        step = ChunkOrientedStep(source, sink)

        step.request_stop()
        status = step.execute(contribution, context)

        assert status is RepeatStatus.TERMINAL
        assert contribution.exit_status == ExitStatus.STOPPED
        source.provide.assert_not_called()
        sink.process.assert_not_called()

    def test_request_stop_is_idempotent(self, context):
        once, twice = StepContribution("once"), StepContribution("twice")
        step_once = ChunkOrientedStep(SingleItemSource(), RecordingSink())
        step_twice = ChunkOrientedStep(SingleItemSource(), RecordingSink())

        step_once.execute(once, context)
        step_twice.execute(twice, context)
        step_once.request_stop()
        step_twice.request_stop()
        step_twice.request_stop()

        assert step_once.execute(once, context) is step_twice.execute(twice, context)
        assert once.exit_status == twice.exit_status == ExitStatus.STOPPED
        assert (once.read_count, once.write_count) == (twice.read_count, twice.write_count)
        assert step_twice.stop_requested

    def test_stop_flag_is_not_reset(self, contribution, context):
        step = ChunkOrientedStep(SingleItemSource(), RecordingSink())
        step.request_stop()

        assert step.execute(contribution, context) is RepeatStatus.TERMINAL
        assert step.execute(contribution, context) is RepeatStatus.TERMINAL
        assert contribution.read_count == 0

    def test_stop_from_another_thread(self, contribution, context):
        source = SingleItemSource(limit=10)
        step = ChunkOrientedStep(source, RecordingSink())
        assert step.execute(contribution, context) is RepeatStatus.CONTINUABLE

        stopper = threading.Thread(target=step.request_stop)
        stopper.start()
        stopper.join()

        assert step.state is StepState.STOPPING
        assert step.execute(contribution, context) is RepeatStatus.TERMINAL
        assert contribution.exit_status == ExitStatus.STOPPED
        assert source.calls == 1
        assert step.state is StepState.TERMINAL


def test_counts_never_decrease(contribution, context):
    source = RecordingSource([Chunk([1]), Chunk(), Chunk([2, 3, 4]), Chunk([5])])
    step = ChunkOrientedStep(source, RecordingSink())

    history = [(contribution.read_count, contribution.write_count)]
    while step.execute(contribution, context).is_continuable():
        history.append((contribution.read_count, contribution.write_count))

    reads = [r for r, _ in history]
    writes = [w for _, w in history]
    assert reads == sorted(reads)
    assert writes == sorted(writes)
    assert history[-1] == (5, 5)


def test_repeat_status_continue_if():
    assert RepeatStatus.continue_if(True) is RepeatStatus.CONTINUABLE
    assert RepeatStatus.continue_if(False) is RepeatStatus.TERMINAL
    assert not RepeatStatus.TERMINAL.is_continuable()
