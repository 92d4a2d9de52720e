"""Chunk-oriented step engine.

One ``execute`` call reads one chunk from a ``ChunkSource`` and hands it
to a ``ChunkSink``. An outer driver calls ``execute`` until it returns
``RepeatStatus.TERMINAL``:

    step = ChunkOrientedStep(source, sink)
    contribution = StepContribution("orders.load")
    context = ChunkContext("orders.load")
    while step.execute(contribution, context).is_continuable():
        pass

Faults raised by the source or sink propagate to the caller untouched:
this module never catches, wraps, retries or logs them. Counts already
recorded stay recorded.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Generic, TypeVar

from batchstep.context import ChunkContext
from batchstep.contribution import ExitStatus, StepContribution
from batchstep.sink import ChunkSink
from batchstep.source import ChunkSource

logger = logging.getLogger(__name__)

__all__ = ["RepeatStatus", "StepState", "ChunkOrientedStep"]

T = TypeVar("T")


class RepeatStatus(Enum):
    """Whether the driver should call ``execute`` again."""

    CONTINUABLE = "continuable"
    TERMINAL = "terminal"

    def is_continuable(self) -> bool:
        return self is RepeatStatus.CONTINUABLE

    @classmethod
    def continue_if(cls, continuable: bool) -> "RepeatStatus":
        return cls.CONTINUABLE if continuable else cls.TERMINAL


class StepState(Enum):
    READY = "ready"
    STOPPING = "stopping"
    TERMINAL = "terminal"


class ChunkOrientedStep(Generic[T]):
    """Pair one chunk source with one chunk sink.

    ``execute`` must be called sequentially; ``request_stop`` may be
    called from any thread and takes effect at the start of the next
    ``execute``.
    """

    def __init__(self, source: ChunkSource[T], sink: ChunkSink[T]) -> None:
        self.source = source
        self.sink = sink
        self._stop = threading.Event()
        self._terminal = False

    def request_stop(self) -> None:
        """Ask the step to stop before acquiring its next chunk."""
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    @property
    def state(self) -> StepState:
        """Outcome of the most recent ``execute`` call.

        TERMINAL is not sticky: a later call that processes a chunk puts
        the step back to READY (or STOPPING once a stop was requested).
        """
        if self._terminal:
            return StepState.TERMINAL
        if self._stop.is_set():
            return StepState.STOPPING
        return StepState.READY

    def execute(
        self, contribution: StepContribution, context: ChunkContext
    ) -> RepeatStatus:
        """Process at most one chunk.

        Args:
            contribution: Caller-owned progress metrics, updated in place
            context: Caller-owned execution context (read-only here)

        Returns:
            ``RepeatStatus.CONTINUABLE`` after a chunk was processed,
            ``RepeatStatus.TERMINAL`` when stopped or out of input.
        """
        if self._stop.is_set():
            contribution.exit_status = ExitStatus.STOPPED
            self._terminal = True
            logger.debug(
                "Stop requested; %s not acquiring another chunk", contribution.step_name
            )
            return RepeatStatus.TERMINAL

        chunk = self.source.provide(contribution)

        if chunk is None or chunk.is_end():
            self._terminal = True
            logger.debug(
                "Input exhausted for %s after %d reads",
                contribution.step_name,
                contribution.read_count,
            )
            return RepeatStatus.TERMINAL

        logger.debug(
            "Acquired chunk of %d items for %s", len(chunk), contribution.step_name
        )
        self.sink.process(contribution, chunk)
        self.source.post_process(contribution, chunk)
        self._terminal = False

        logger.debug(
            "Completed chunk for %s: read=%d written=%d",
            contribution.step_name,
            contribution.read_count,
            contribution.write_count,
        )
        return RepeatStatus.CONTINUABLE
