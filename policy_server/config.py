"""Configuration for the policy server.

Two layers:
- Settings: process settings read from the environment (.env supported)
- DocumentSetConfig: the validated file set handed to the engine, built by
  load_config() from a policies.json manifest, inline JSON, or a glob
"""

import glob
import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .engine.core.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_TOKENS = 10000
DEFAULT_POLICY_CONFIG = "./policies.json"


class Settings(BaseSettings):
    """Process settings.

    Values come from environment variables (or .env), matched by alias.
    """

    policy_config: str = Field(
        default=DEFAULT_POLICY_CONFIG,
        alias="MCP_POLICY_CONFIG",
        description="Path to policies.json, inline JSON manifest, or a glob pattern",
    )
    max_chunk_tokens: int = Field(
        default=DEFAULT_MAX_CHUNK_TOKENS,
        gt=0,
        alias="MAX_CHUNK_TOKENS",
        description="Approximate token budget per response chunk (1 token ~ 4 chars)",
    )
    rebuild_debounce_ms: int = Field(
        default=300,
        ge=0,
        alias="REBUILD_DEBOUNCE_MS",
        description="Quiet period after a file change before the index is marked stale",
    )
    watch_files: bool = Field(
        default=True,
        alias="WATCH_FILES",
        description="Watch policy files for changes",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    host: str = Field(default="127.0.0.1", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    debug: bool = Field(default=False, alias="DEBUG")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    sentry_dsn: str | None = Field(
        default=None,
        alias="SENTRY_DSN",
        description="Sentry DSN for HTTP error tracking; disabled when unset",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )


settings = Settings()


class DocumentSetConfig(BaseModel):
    """Validated document set consumed by the engine."""

    files: list[str] = Field(..., description="Absolute paths of all policy files")
    base_dir: str = Field(..., description="Absolute directory used for relative names")
    max_chunk_tokens: int = Field(
        default=DEFAULT_MAX_CHUNK_TOKENS,
        gt=0,
        description="Approximate token budget per response chunk",
    )

    @field_validator("files")
    @classmethod
    def _files_not_empty(cls, value: list[str]) -> list[str]:
        if not value:
            raise ValueError("files array is empty")
        return value

    @field_validator("base_dir")
    @classmethod
    def _base_dir_not_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("baseDir must be a non-empty path")
        return value


def expand_globs(patterns: list[str], base_dir: str) -> list[str]:
    """Expand glob patterns to absolute, deduplicated file paths.

    Relative patterns resolve against base_dir. Patterns that match
    nothing are logged and skipped.

    Raises:
        ConfigError: If no files remain after expansion
    """
    all_files: list[str] = []

    for pattern in patterns:
        if not isinstance(pattern, str) or not pattern:
            raise ConfigError(f"Invalid file pattern: {pattern!r}")
        resolved = pattern if os.path.isabs(pattern) else os.path.join(base_dir, pattern)
        resolved = os.path.normpath(resolved)

        if glob.has_magic(resolved):
            matches = sorted(glob.glob(resolved, recursive=True))
        else:
            matches = [resolved] if os.path.exists(resolved) else []

        matches = [os.path.abspath(m) for m in matches if os.path.isfile(m)]
        if not matches:
            logger.warning(f"Pattern '{pattern}' matched 0 files")
        all_files.extend(matches)

    unique_files = list(dict.fromkeys(all_files))
    duplicate_count = len(all_files) - len(unique_files)
    if duplicate_count:
        logger.info(f"Removed {duplicate_count} duplicate paths after expansion")

    if not unique_files:
        raise ConfigError(
            f"No policy files found after glob expansion. Patterns: {', '.join(patterns)}"
        )
    return unique_files


def validate_files(files: list[str]) -> None:
    """Check every file exists, is a regular readable file, and ends in .md.

    Raises:
        ConfigError: On the first file that fails a check
    """
    for file_path in files:
        path = Path(file_path)
        if not path.exists():
            raise ConfigError(f"Policy file does not exist: {file_path}")
        if not path.is_file():
            raise ConfigError(f"Policy file is not a regular file: {file_path}")
        if path.suffix != ".md":
            raise ConfigError(f"Policy file must have .md extension: {file_path}")
        if not os.access(file_path, os.R_OK):
            raise ConfigError(f"Policy file is not readable: {file_path}")


def _read_manifest(data: object, source: str) -> list[str]:
    if not isinstance(data, dict) or not isinstance(data.get("files"), list):
        raise ConfigError(f"{source}: expected an object with a 'files' array")
    return data["files"]


def load_config(
    config_value: str | None = None,
    cwd: str | None = None,
    max_chunk_tokens: int | None = None,
) -> DocumentSetConfig:
    """Build the document set from a manifest, inline JSON, or a glob.

    Detection order:
    1. Ends with .json -> manifest file, base dir is the manifest's directory
    2. Wrapped in { } -> inline JSON manifest, base dir is cwd
    3. Anything else -> a single glob pattern, base dir is cwd

    Args:
        config_value: Overrides settings.policy_config (MCP_POLICY_CONFIG)
        cwd: Working directory for relative paths (defaults to os.getcwd())
        max_chunk_tokens: Overrides settings.max_chunk_tokens

    Raises:
        ConfigError: If the manifest is missing or malformed, or any file
            fails validation
    """
    value = (config_value or settings.policy_config).strip()
    working_dir = os.path.abspath(cwd or os.getcwd())

    if value.endswith(".json"):
        manifest_path = value if os.path.isabs(value) else os.path.join(working_dir, value)
        manifest_path = os.path.abspath(manifest_path)
        if not os.path.exists(manifest_path):
            raise ConfigError(f"Policy configuration file not found: {manifest_path}")
        try:
            with open(manifest_path, encoding="utf-8") as f:
                patterns = _read_manifest(json.load(f), manifest_path)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to parse policies manifest at {manifest_path}: {e}") from e
        base_dir = os.path.dirname(manifest_path)
        source = manifest_path
    elif value.startswith("{") and value.endswith("}"):
        try:
            patterns = _read_manifest(json.loads(value), "inline JSON configuration")
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse inline JSON configuration: {e}") from e
        base_dir = working_dir
        source = "MCP_POLICY_CONFIG (inline JSON)"
    else:
        patterns = [value]
        base_dir = working_dir
        source = f'MCP_POLICY_CONFIG (direct glob: "{value}")'

    logger.info(f"Policy configuration source: {source}")
    logger.info(f"Base directory: {base_dir}, patterns: {len(patterns)}")

    files = expand_globs(patterns, base_dir)
    logger.info(f"Files: {len(files)} total after expansion")
    validate_files(files)

    try:
        return DocumentSetConfig(
            files=files,
            base_dir=base_dir,
            max_chunk_tokens=max_chunk_tokens or settings.max_chunk_tokens,
        )
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
