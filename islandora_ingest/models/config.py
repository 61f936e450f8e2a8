"""
Run configuration and context for an ingest batch.

Contains:
    - ConfigurationError: Fatal problem detected before ingestion starts
    - IngestConfig: Validated run configuration
    - IngestContext: Explicit context handed to every component
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from islandora_ingest.models.objects import ObjectState
from islandora_ingest.utils.validators import is_valid_namespace, is_valid_pid

DEFAULT_ENDPOINT = "http://localhost/islandora/rest/v1"
DEFAULT_RELATIONSHIP = "isMemberOfCollection"
DEFAULT_CHECKSUM_TYPE = "SHA-1"
DEFAULT_LOG_PATH = Path("./ingester.log")

# Fedora checksum names mapped to hashlib algorithm names
CHECKSUM_ALGORITHMS = {
    "MD5": "md5",
    "SHA-1": "sha1",
    "SHA-256": "sha256",
    "SHA-384": "sha384",
    "SHA-512": "sha512",
}
CHECKSUM_NONE = "none"


class ConfigurationError(Exception):
    """Raised when the run cannot start (bad content model, parent missing)."""

    pass


class IngestConfig(BaseModel):
    """Validated configuration for one ingest run."""

    model_config = ConfigDict(frozen=True)

    input_dir: Path
    parent: str
    owner: str
    user: str
    token: str
    content_model: str | None = None
    namespace: str | None = None
    relationship: str = DEFAULT_RELATIONSHIP
    checksum_type: str = DEFAULT_CHECKSUM_TYPE
    endpoint: str = DEFAULT_ENDPOINT
    log: Path = DEFAULT_LOG_PATH
    state: ObjectState = ObjectState.ACTIVE
    plugins: list[str] = Field(default_factory=list)
    delete_input: bool = False
    max_file_size: float | None = None
    classmap: Path | None = None
    timeout: float = 60.0

    @field_validator("parent")
    @classmethod
    def _check_parent(cls, value: str) -> str:
        if not is_valid_pid(value):
            raise ValueError(f"Parent is not a valid PID: {value}")
        return value

    @field_validator("namespace")
    @classmethod
    def _check_namespace(cls, value: str | None) -> str | None:
        if value is None:
            return value
        if ":" in value:
            if not is_valid_pid(value):
                raise ValueError(f"Namespace is not a valid PID: {value}")
        elif not is_valid_namespace(value):
            raise ValueError(f"Invalid namespace: {value}")
        return value

    @field_validator("checksum_type")
    @classmethod
    def _check_checksum_type(cls, value: str) -> str:
        if value.lower() == CHECKSUM_NONE:
            return CHECKSUM_NONE
        normalized = value.upper()
        if normalized not in CHECKSUM_ALGORITHMS:
            supported = ", ".join([*CHECKSUM_ALGORITHMS, CHECKSUM_NONE])
            raise ValueError(f"Unsupported checksum type {value} (use one of {supported})")
        return normalized

    @field_validator("state", mode="before")
    @classmethod
    def _parse_state(cls, value: Any) -> ObjectState:
        return ObjectState.parse(value)

    @field_validator("max_file_size")
    @classmethod
    def _check_max_file_size(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("max_file_size must be greater than zero")
        return value

    @field_validator("endpoint")
    @classmethod
    def _strip_endpoint(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def max_file_size_bytes(self) -> int | None:
        if self.max_file_size is None:
            return None
        return int(self.max_file_size * 1024 * 1024)

    @property
    def checksums_enabled(self) -> bool:
        return self.checksum_type != CHECKSUM_NONE

    @property
    def explicit_pid(self) -> str | None:
        """Full PID given through the namespace option, if any."""
        if self.namespace and ":" in self.namespace:
            return self.namespace
        return None

    @property
    def bare_namespace(self) -> str | None:
        if self.namespace is None:
            return None
        return self.namespace.split(":", 1)[0]


@dataclass
class IngestContext:
    """
    Per-run state shared by every component.

    Attributes:
        config: Run configuration
        client: REST client used for every repository call
        logger: Log sink
        registry: Content model to ingester lookup table
        plugins: Loaded post-ingest callables
        had_errors: Set whenever an error or failed step is recorded
    """

    config: IngestConfig
    client: Any
    logger: logging.Logger = field(
        default_factory=lambda: logging.getLogger("islandora_ingest")
    )
    registry: Any = None
    plugins: list[Any] = field(default_factory=list)
    had_errors: bool = False

    def warning(self, message: str) -> None:
        """Log a recoverable problem and flag the run."""
        self.had_errors = True
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log a failure and flag the run."""
        self.had_errors = True
        self.logger.error(message)
