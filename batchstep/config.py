"""Chunk settings and their YAML loader.

Example YAML (orders_step.yaml):
    chunking:
      chunk_size: 500
      max_chunk_size_mb: 16
      checkpoint_enabled: true
      checkpoint_dir: "${STEP_STATE_DIR}/orders"
      checkpoint_name: orders

Usage:
    from batchstep.config import load_chunk_settings
    settings = load_chunk_settings("./orders_step.yaml")
    source = ItemReaderChunkSource.from_settings(settings, reader)

``${VAR}`` and ``$VAR`` references in string values are expanded from the
environment; call ``load_env_file()`` first to pull them from a ``.env``.
Validation is done by pydantic; failures surface as ``ConfigurationError``.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from batchstep.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "ChunkSettings",
    "ChunkEnvironment",
    "load_chunk_settings",
    "load_env_file",
    "expand_env_vars",
    "expand_options",
]

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load environment variables from a .env file.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str, *, strict: bool = False) -> str:
    """Expand ``${VAR}`` / ``$VAR`` references in ``value``.

    Unset variables are left as written unless ``strict`` is set, in which
    case a ConfigurationError names the missing variable.
    """

    def substitute(match: "re.Match[str]") -> str:
        name = match.group(1) or match.group(2)
        if name in os.environ:
            return os.environ[name]
        if strict:
            raise ConfigurationError(
                f"Environment variable not set: {name}", field=name
            )
        return match.group(0)

    return ENV_VAR_PATTERN.sub(substitute, value)


def expand_options(options: Mapping[str, Any], *, strict: bool = False) -> Dict[str, Any]:
    """Recursively expand environment references in string values."""

    def expand(value: Any) -> Any:
        if isinstance(value, str):
            return expand_env_vars(value, strict=strict)
        if isinstance(value, Mapping):
            return {k: expand(v) for k, v in value.items()}
        if isinstance(value, list):
            return [expand(item) for item in value]
        return value

    return {key: expand(value) for key, value in options.items()}


class ChunkSettings(BaseModel):
    """Limits and checkpointing options for ``ItemReaderChunkSource``.

    Example:
        >>> settings = ChunkSettings(chunk_size="500", checkpoint_enabled="yes",
        ...                          checkpoint_dir="/var/lib/steps")
        >>> source = ItemReaderChunkSource.from_settings(settings, reader)
    """

    model_config = ConfigDict(extra="forbid")

    chunk_size: int = Field(default=100, ge=1, description="Maximum items per chunk")
    max_chunk_size_mb: Optional[float] = Field(
        default=None, gt=0, description="Approximate payload limit per chunk"
    )
    checkpoint_enabled: bool = Field(
        default=False, description="Record a checkpoint after every chunk"
    )
    checkpoint_dir: Optional[Path] = Field(
        default=None, description="Directory holding the _checkpoints folder"
    )
    checkpoint_name: str = Field(
        default="chunks", min_length=1, description="Checkpoint file name"
    )

    @field_validator("chunk_size", "max_chunk_size_mb", mode="before")
    @classmethod
    def reject_booleans(cls, v: Any) -> Any:
        """YAML ``yes``/``true`` must not silently become a size of 1."""
        if isinstance(v, bool):
            raise ValueError("must be a number, not a boolean")
        return v

    @model_validator(mode="after")
    def require_checkpoint_dir(self) -> "ChunkSettings":
        if self.checkpoint_enabled and self.checkpoint_dir is None:
            raise ValueError("checkpoint_dir is required when checkpoint_enabled is true")
        return self

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChunkSettings":
        """Build settings from a plain mapping, ignoring ``None`` values.

        Raises:
            ConfigurationError: Naming the first offending setting
        """
        values = {k: v for k, v in data.items() if v is not None}
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise _configuration_error(exc) from exc

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ChunkEnvironment(BaseSettings):
    """Chunk setting overrides read from ``STEP_*`` environment variables.

    Values stay strings here; ``ChunkSettings`` validates them.

    Example:
        >>> # STEP_CHUNK_SIZE=250 STEP_CHECKPOINT_ENABLED=false
        >>> ChunkEnvironment().overrides()
        {'chunk_size': '250', 'checkpoint_enabled': 'false'}
    """

    chunk_size: Optional[str] = None
    max_chunk_size_mb: Optional[str] = None
    checkpoint_enabled: Optional[str] = None
    checkpoint_dir: Optional[str] = None
    checkpoint_name: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="STEP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def overrides(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)


def _configuration_error(exc: ValidationError) -> ConfigurationError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or None
    suggestion = None
    if first["type"] == "extra_forbidden":
        suggestion = f"Valid settings: {', '.join(sorted(ChunkSettings.model_fields))}"
    label = field or "chunk settings"
    return ConfigurationError(
        f"Invalid {label}: {first['msg']}",
        field=field,
        value=first.get("input") if field else None,
        suggestion=suggestion,
    )


def load_chunk_settings(
    path: Union[str, Path],
    *,
    strict_env: bool = False,
    env_overrides: bool = False,
) -> ChunkSettings:
    """Load ``ChunkSettings`` from a YAML file.

    The settings may sit at the top level of the document or under a
    ``chunking:`` key. With ``env_overrides`` set, ``STEP_*`` variables
    (see ``ChunkEnvironment``) replace the values from the file.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            f"Settings file not found: {path}", field="path", value=path
        )

    try:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigurationError(
            f"Invalid YAML in {path}: {exc}", field="path", value=path
        ) from exc

    if document is None:
        document = {}
    if not isinstance(document, Mapping):
        raise ConfigurationError(
            f"Settings file must contain a mapping: {path}", field="path", value=path
        )

    block = document.get("chunking", document)
    if not isinstance(block, Mapping):
        raise ConfigurationError(
            "'chunking' must be a mapping", field="chunking", value=block
        )

    values = expand_options(block, strict=strict_env)
    if env_overrides:
        overrides = ChunkEnvironment().overrides()
        if overrides:
            logger.debug("Environment overrides chunk settings: %s", sorted(overrides))
        values.update(overrides)

    settings = ChunkSettings.from_dict(values)
    logger.debug("Loaded chunk settings from %s: %s", path, settings.to_dict())
    return settings
