"""Chunk sources: the acquisition side of a chunk-oriented step.

``ChunkSource`` is the capability the step engine consumes.
``ItemReaderChunkSource`` is the stock implementation that pulls
items one at a time from an item reader until the chunk is full.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import (
    TYPE_CHECKING,
    Generic,
    Iterable,
    Iterator,
    Optional,
    Protocol,
    TypeVar,
    Union,
)

from batchstep.checkpoint import CheckpointManager
from batchstep.chunk import Chunk
from batchstep.contribution import StepContribution
from batchstep.observability import get_step_logger
from batchstep.sizing import MEGABYTE, item_size

if TYPE_CHECKING:
    from batchstep.config import ChunkSettings

__all__ = [
    "ChunkSource",
    "ItemReader",
    "IterableItemReader",
    "ItemReaderChunkSource",
]

T = TypeVar("T")


class ChunkSource(ABC, Generic[T]):
    """Produces the next chunk of input for a step.

    Implementations increment the read count once per item they include
    and mark the final chunk with ``Chunk.set_end()``.
    """

    @abstractmethod
    def provide(self, contribution: StepContribution) -> Optional[Chunk[T]]:
        """Acquire the next chunk.

        Returns:
            A chunk (possibly empty), an end-marked chunk once input is
            exhausted, or ``None`` which callers treat the same as an
            end-marked chunk.
        """
        raise NotImplementedError()

    @abstractmethod
    def post_process(self, contribution: StepContribution, chunk: Chunk[T]) -> None:
        """Bookkeeping once ``chunk`` has been fully handed to the sink."""
        raise NotImplementedError()


class ItemReader(Protocol[T]):
    def read(self) -> Optional[T]:
        """Return the next item, or ``None`` when input is exhausted."""
        ...


class IterableItemReader(Generic[T]):
    """Adapt any iterable to the ``ItemReader`` protocol.

    ``None`` values inside the iterable are indistinguishable from the end
    of input, so they terminate reading.
    """

    def __init__(self, items: Iterable[T]) -> None:
        self._iterator: Iterator[T] = iter(items)

    def read(self) -> Optional[T]:
        return next(self._iterator, None)


def _as_reader(source: Union[ItemReader[T], Iterable[T]]) -> ItemReader[T]:
    if callable(getattr(source, "read", None)):
        return source  # type: ignore[return-value]
    return IterableItemReader(source)  # type: ignore[arg-type]


class ItemReaderChunkSource(ChunkSource[T]):
    """Build chunks by reading items until a count or size limit is hit.

    Each successful ``read()`` increments the read count. When the reader
    runs dry mid-chunk the partial chunk is returned unmarked so its items
    still reach the sink; the following call returns an empty end-marked
    chunk. This source never returns ``None``.

    With a checkpoint and ``resume=True`` the chunks recorded as done are
    read again, discarded and not counted, so the sink only sees the rest.
    Chunk boundaries are reproduced as long as the reader yields the same
    items in the same order.

    Example:
        source = ItemReaderChunkSource(range(1, 11), chunk_size=4)
        step = ChunkOrientedStep(source, sink)
    """

    def __init__(
        self,
        reader: Union[ItemReader[T], Iterable[T]],
        chunk_size: int = 100,
        *,
        max_chunk_size_mb: Optional[float] = None,
        checkpoint: Optional[CheckpointManager] = None,
        checkpoint_name: str = "chunks",
        resume: bool = False,
    ) -> None:
        """Initialize the source.

        Args:
            reader: Object with ``read()`` or any iterable of items
            chunk_size: Maximum items per chunk
            max_chunk_size_mb: Close the chunk once its approximate payload
                reaches this many megabytes (None = no limit)
            checkpoint: Optional manager that records each completed chunk
            checkpoint_name: Name under which checkpoints are stored
            resume: Skip the chunks the existing checkpoint marks as done
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
        if max_chunk_size_mb is not None and max_chunk_size_mb <= 0:
            raise ValueError(
                f"max_chunk_size_mb must be positive, got {max_chunk_size_mb}"
            )

        self.reader = _as_reader(reader)
        self.chunk_size = chunk_size
        self.max_chunk_size_mb = max_chunk_size_mb
        self.checkpoint = checkpoint
        self.checkpoint_name = checkpoint_name
        self._max_bytes = max_chunk_size_mb * MEGABYTE if max_chunk_size_mb else None
        self._exhausted = False
        self._chunk_number = 0
        self._resume_after = 0

        self.log = get_step_logger(__name__)
        self.log.set_context(checkpoint_name=checkpoint_name)

        if resume and checkpoint is not None:
            self._resume_after = checkpoint.last_chunk(checkpoint_name)
            self.log.info(
                "Resuming %s after chunk %d", checkpoint_name, self._resume_after
            )

    @classmethod
    def from_settings(
        cls,
        settings: "ChunkSettings",
        reader: Union[ItemReader[T], Iterable[T]],
        *,
        resume: bool = False,
    ) -> "ItemReaderChunkSource[T]":
        checkpoint = None
        if settings.checkpoint_enabled:
            checkpoint = CheckpointManager(settings.checkpoint_dir, enabled=True)
        return cls(
            reader,
            settings.chunk_size,
            max_chunk_size_mb=settings.max_chunk_size_mb,
            checkpoint=checkpoint,
            checkpoint_name=settings.checkpoint_name,
            resume=resume,
        )

    @property
    def chunk_number(self) -> int:
        """Number of chunks completed so far, including any skipped on resume."""
        return self._chunk_number

    def _read_chunk(self, contribution: Optional[StepContribution]) -> Chunk[T]:
        chunk: Chunk[T] = Chunk()
        payload = 0

        while len(chunk) < self.chunk_size:
            item = self.reader.read()
            if item is None:
                self._exhausted = True
                break
            if contribution is not None:
                contribution.increment_read_count()
            chunk.add(item)

            if self._max_bytes is not None:
                payload += item_size(item)
                if payload >= self._max_bytes:
                    self.log.debug(
                        "Chunk reached %d bytes after %d items", payload, len(chunk)
                    )
                    break

        return chunk

    def _skip_completed_chunks(self) -> None:
        while self._chunk_number < self._resume_after and not self._exhausted:
            skipped = self._read_chunk(None)
            if skipped.is_empty():
                break
            self._chunk_number += 1
            self.log.info(
                "Skipping chunk %d (%d items) due to checkpoint",
                self._chunk_number,
                len(skipped),
            )

    def provide(self, contribution: StepContribution) -> Chunk[T]:
        self._skip_completed_chunks()

        if self._exhausted:
            return Chunk(end=True)

        chunk = self._read_chunk(contribution)
        if self._exhausted and chunk.is_empty():
            chunk.set_end()
        return chunk

    def post_process(self, contribution: StepContribution, chunk: Chunk[T]) -> None:
        self._chunk_number += 1
        if self.checkpoint is not None:
            self.checkpoint.save_checkpoint(
                self.checkpoint_name,
                last_chunk=self._chunk_number,
                read_count=contribution.read_count,
                write_count=contribution.write_count,
                metadata={"items": len(chunk), "skips": len(chunk.skips)},
            )
        self.log.progress(contribution, chunk=self._chunk_number)
