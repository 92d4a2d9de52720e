"""Recording chunk sources and sinks shared by the step tests."""

from __future__ import annotations

from typing import Any, List, Optional

from batchstep import Chunk, ChunkSink, ChunkSource


class RecordingSource(ChunkSource):
    """Serves a fixed list of chunks, then ``None``; records every call."""

    def __init__(self, chunks: List[Optional[Chunk]]):
        self.chunks = list(chunks)
        self.provided: List[Optional[Chunk]] = []
        self.post_processed: List[Chunk] = []

    def provide(self, contribution):
        if not self.chunks:
            self.provided.append(None)
            return None
        chunk = self.chunks.pop(0)
        if chunk is not None:
            for _ in chunk:
                contribution.increment_read_count()
        self.provided.append(chunk)
        return chunk

    def post_process(self, contribution, chunk):
        self.post_processed.append(chunk)


class RecordingSink(ChunkSink):
    """Writes every item of every chunk into ``written``."""

    def __init__(self):
        self.written: List[Any] = []
        self.chunks: List[Chunk] = []

    def process(self, contribution, chunk):
        self.chunks.append(chunk)
        self.written.extend(chunk)
        contribution.increment_write_count(len(chunk))
