"""Chunk sinks: the processing side of a chunk-oriented step."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Generic, List, Optional, Protocol, TypeVar, Union

from batchstep.chunk import Chunk
from batchstep.contribution import StepContribution

logger = logging.getLogger(__name__)

__all__ = [
    "ChunkSink",
    "ItemWriter",
    "ItemWriterChunkSink",
]

T = TypeVar("T")
R = TypeVar("R")


class ChunkSink(ABC, Generic[T]):
    """Consumes a chunk and records how many items were written."""

    @abstractmethod
    def process(self, contribution: StepContribution, chunk: Chunk[T]) -> None:
        """Process ``chunk``, incrementing the write count per item written."""
        raise NotImplementedError()


class ItemWriter(Protocol[R]):
    def write(self, items: List[R]) -> None:
        ...


class ItemWriterChunkSink(ChunkSink[T], Generic[T, R]):
    """Transform each item, then write the survivors in one call.

    The optional ``processor`` maps an input item to an output item; a
    ``None`` result filters the item out and bumps the filter count. The
    ``writer`` receives the remaining outputs as a single list and the
    write count grows by that list's length once it returns. Exceptions
    from either collaborator propagate unchanged.

    Example:
        sink = ItemWriterChunkSink(rows.extend, processor=str.upper)
    """

    def __init__(
        self,
        writer: Union[ItemWriter[R], Callable[[List[R]], object]],
        processor: Optional[Callable[[T], Optional[R]]] = None,
    ) -> None:
        write = getattr(writer, "write", None)
        if not callable(write):
            write = writer
        self._write: Callable[[List[R]], object] = write
        self.processor = processor

    def _transform(self, contribution: StepContribution, chunk: Chunk[T]) -> List[R]:
        if self.processor is None:
            return list(chunk)  # type: ignore[arg-type]

        outputs: List[R] = []
        for item in chunk:
            output = self.processor(item)
            if output is None:
                contribution.increment_filter_count()
                continue
            outputs.append(output)
        return outputs

    def process(self, contribution: StepContribution, chunk: Chunk[T]) -> None:
        outputs = self._transform(contribution, chunk)
        if not outputs:
            logger.debug("Nothing to write; all %d items filtered", len(chunk))
            return

        self._write(outputs)
        contribution.increment_write_count(len(outputs))
