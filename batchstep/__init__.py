"""Chunk-oriented batch step engine.

A step reads one bounded chunk of items per ``execute`` call from a
``ChunkSource``, hands it to a ``ChunkSink`` and reports whether more
work remains.
"""

from batchstep.checkpoint import CheckpointManager
from batchstep.chunk import Chunk, SkippedItem
from batchstep.config import (
    ChunkEnvironment,
    ChunkSettings,
    expand_env_vars,
    expand_options,
    load_chunk_settings,
    load_env_file,
)
from batchstep.context import ChunkContext
from batchstep.contribution import ExitStatus, StepContribution
from batchstep.engine import ChunkOrientedStep, RepeatStatus, StepState
from batchstep.errors import CheckpointError, ConfigurationError, StepError
from batchstep.observability import (
    JSONFormatter,
    StepLogger,
    get_step_logger,
    setup_logging,
)
from batchstep.sink import ChunkSink, ItemWriter, ItemWriterChunkSink
from batchstep.sizing import item_size, payload_size
from batchstep.source import (
    ChunkSource,
    ItemReader,
    ItemReaderChunkSource,
    IterableItemReader,
)

__all__ = [
    # Engine
    "ChunkOrientedStep",
    "RepeatStatus",
    "StepState",
    # Values
    "Chunk",
    "SkippedItem",
    "ChunkContext",
    "ExitStatus",
    "StepContribution",
    # Capabilities
    "ChunkSource",
    "ChunkSink",
    "ItemReader",
    "ItemWriter",
    "IterableItemReader",
    "ItemReaderChunkSource",
    "ItemWriterChunkSink",
    "item_size",
    "payload_size",
    # Checkpoints
    "CheckpointManager",
    # Settings
    "ChunkSettings",
    "ChunkEnvironment",
    "load_chunk_settings",
    "load_env_file",
    "expand_env_vars",
    "expand_options",
    # Errors
    "StepError",
    "ConfigurationError",
    "CheckpointError",
    # Logging
    "JSONFormatter",
    "StepLogger",
    "get_step_logger",
    "setup_logging",
]
