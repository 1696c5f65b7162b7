"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range


class QueueSourceType(str, Enum):
    """Supported message sources."""

    JSONL = "jsonl"
    MEMORY = "memory"


class TransportType(str, Enum):
    """Supported notification transports."""

    SIMULATED = "simulated"
    SMTP = "smtp"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class QueueConfig(BaseModel):
    """Where wishlist messages are read from and how often."""

    source: QueueSourceType = Field(
        QueueSourceType.JSONL, description="Message source type (jsonl or memory)"
    )
    path: str = Field(
        "./data/qstacks.jsonl",
        min_length=1,
        description="Spool file for the jsonl source, one JSON payload per line",
    )
    poll_interval: str = Field("30s", description="Polling interval in daemon mode")
    batch_size: int = Field(
        100, ge=1, le=10000, description="Maximum messages drained per poll"
    )

    # Computed field
    poll_interval_seconds: Optional[int] = None

    @field_validator("poll_interval")
    @classmethod
    def validate_poll_interval(cls, v: str) -> str:
        """Validate the poll interval parses and is within range."""
        try:
            validate_duration_range(parse_duration(v))
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def compute_poll_interval_seconds(self):
        self.poll_interval_seconds = parse_duration(self.poll_interval)
        return self

    model_config = {"use_enum_values": True}


class EmailConfig(BaseModel):
    """Notification delivery settings."""

    transport: TransportType = Field(
        TransportType.SIMULATED, description="simulated (log only) or smtp"
    )
    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        0, ge=0, le=10, description="Retry attempts after a failed send (0 = no retry)"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: float = Field(
        1.0, ge=0.0, le=60.0, description="Initial retry delay in seconds"
    )
    simulated_delay_ms: int = Field(
        100, ge=0, le=10000, description="Artificial latency of the simulated transport"
    )
    send_timeout_seconds: int = Field(
        30, ge=1, le=300, description="SMTP connection timeout"
    )

    model_config = {"use_enum_values": True}


class PipelineConfig(BaseModel):
    """Notification pipeline behavior."""

    skip_already_notified: bool = Field(
        True, description="Skip dispatch when the wishlist is already notified"
    )
    lock_timeout_seconds: float = Field(
        30.0, gt=0, le=600, description="Wait for the per-wishlist lock"
    )


class DeadLetterConfig(BaseModel):
    """Optional spool for messages that failed processing."""

    enabled: bool = Field(False, description="Write failed messages to the dead-letter file")
    path: str = Field(
        "./data/qstacks.dead.jsonl", min_length=1, description="Dead-letter spool file"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AdvancedConfig(BaseModel):
    """Advanced runtime settings."""

    database_timeout_seconds: int = Field(
        30, ge=1, le=300, description="Wait for SQLite locks before failing (seconds)"
    )


class AppConfig(BaseModel):
    """Root configuration object for the wishlist notifier."""

    queue: QueueConfig = Field(default_factory=QueueConfig, description="Message intake")
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    pipeline: PipelineConfig = Field(
        default_factory=PipelineConfig, description="Pipeline behavior"
    )
    dead_letter: DeadLetterConfig = Field(
        default_factory=DeadLetterConfig, description="Dead-letter spool"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    advanced: AdvancedConfig = Field(
        default_factory=AdvancedConfig, description="Advanced runtime settings"
    )

    @model_validator(mode="after")
    def validate_spool_paths(self):
        """The dead-letter spool must not be the intake spool."""
        if (
            self.dead_letter.enabled
            and self.queue.source == QueueSourceType.JSONL.value
            and self.dead_letter.path == self.queue.path
        ):
            raise ValueError("dead_letter.path must differ from queue.path")
        return self
