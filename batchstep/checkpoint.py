"""Checkpoint metadata for resumable chunked steps.

Tracks the last completed chunk per step so a restarted run can tell
how far the previous one got.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

from batchstep.errors import CheckpointError

logger = logging.getLogger(__name__)

__all__ = ["CheckpointManager"]


class CheckpointManager:
    """Manage checkpoint state for chunked steps."""

    def __init__(self, output_dir: Union[str, Path], enabled: bool = True):
        """Initialize checkpoint manager.

        Args:
            output_dir: Base directory; checkpoints live in ``_checkpoints/``
            enabled: Whether checkpointing is enabled
        """
        self.output_dir = Path(output_dir)
        self.enabled = enabled
        self.checkpoint_dir = self.output_dir / "_checkpoints"

        if self.enabled:
            self.checkpoint_dir.mkdir(parents=True, exist_ok=True)

    def get_checkpoint_path(self, name: str) -> Path:
        """Get checkpoint file path for a step.

        Args:
            name: Checkpoint name (typically the step name)

        Returns:
            Path to checkpoint JSON file
        """
        return self.checkpoint_dir / f"{name}.json"

    def save_checkpoint(
        self,
        name: str,
        last_chunk: int,
        read_count: int,
        write_count: int,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Save checkpoint state.

        Args:
            name: Checkpoint name
            last_chunk: Last chunk number fully handed to the sink
            read_count: Cumulative items read so far
            write_count: Cumulative items written so far
            metadata: Additional metadata to store

        Raises:
            CheckpointError: If the checkpoint file cannot be written
        """
        if not self.enabled:
            return

        checkpoint_data = {
            "name": name,
            "last_chunk": last_chunk,
            "read_count": read_count,
            "write_count": write_count,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "metadata": metadata or {},
        }

        checkpoint_path = self.get_checkpoint_path(name)
        try:
            with open(checkpoint_path, "w", encoding="utf-8") as f:
                json.dump(checkpoint_data, f, indent=2, default=str)
        except OSError as exc:
            raise CheckpointError(
                f"Failed to save checkpoint for {name}",
                path=str(checkpoint_path),
                cause=exc,
            ) from exc
        logger.debug("Saved checkpoint for %s: chunk %d", name, last_chunk)

    def load_checkpoint(self, name: str) -> Optional[Dict[str, Any]]:
        """Load checkpoint state.

        Args:
            name: Checkpoint name

        Returns:
            Checkpoint data dict or None if not found/disabled

        Raises:
            CheckpointError: If the file exists but cannot be parsed
        """
        if not self.enabled:
            return None

        checkpoint_path = self.get_checkpoint_path(name)
        if not checkpoint_path.exists():
            return None

        try:
            with open(checkpoint_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            raise CheckpointError(
                f"Failed to load checkpoint for {name}",
                path=str(checkpoint_path),
                cause=exc,
            ) from exc

        logger.info(
            "Loaded checkpoint for %s: last_chunk=%s, read_count=%s",
            name,
            data.get("last_chunk"),
            data.get("read_count"),
        )
        return data

    def last_chunk(self, name: str) -> int:
        """Last completed chunk number, or 0 when there is no checkpoint."""
        checkpoint = self.load_checkpoint(name)
        if not checkpoint:
            return 0
        return int(checkpoint.get("last_chunk", 0))

    def clear_checkpoint(self, name: str) -> None:
        """Clear checkpoint for a step (e.g., on successful completion)."""
        if not self.enabled:
            return

        checkpoint_path = self.get_checkpoint_path(name)
        if checkpoint_path.exists():
            checkpoint_path.unlink()
            logger.debug("Cleared checkpoint for %s", name)

    def clear_all_checkpoints(self) -> None:
        """Clear all checkpoints in the directory."""
        if not self.enabled or not self.checkpoint_dir.exists():
            return

        for checkpoint_file in self.checkpoint_dir.glob("*.json"):
            checkpoint_file.unlink()
        logger.info("Cleared all checkpoints in %s", self.checkpoint_dir)
