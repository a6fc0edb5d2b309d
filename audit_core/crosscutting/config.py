"""
Name: Audit Core Configuration (Settings)

Responsibilities:
  - Centralized, typed configuration using pydantic-settings
  - Validate environment variables at startup
  - Expose monitor / anomaly / metadata limits as explicit configuration

Collaborators:
  - container.py: builds store, monitor and services from these values
  - crosscutting/logger.py: log_level / log_json
  - infrastructure/db/pool.py: statement timeout

Constraints:
  - Pure configuration, no business logic
  - Thresholds here are defaults; callers can still override per call

Notes:
  - Env vars use the AUDIT_ prefix (AUDIT_LOG_LEVEL, AUDIT_BURST_THRESHOLD, ...)
  - Singleton via lru_cache
"""

from functools import lru_cache

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_STORE_BACKENDS = {"memory", "postgres"}


class Settings(BaseSettings):
    """
    Audit core settings loaded from environment variables.

    Attributes:
        log_level: Operational log level (default: INFO)
        log_json: Emit JSON log lines (default: True)
        store_backend: memory|postgres (default: memory)
        database_url: PostgreSQL connection string (required for postgres)
        db_pool_min_size / db_pool_max_size: Connection pool bounds
        db_statement_timeout_ms: Per-connection statement timeout
        db_slow_query_seconds: Slow query warning threshold (default: 0.25)
        db_healthcheck_on_acquire: SELECT 1 before handing out a connection
        real_time_buffer_size: Monitor ring buffer capacity (default: 1000)
        burst_window_seconds / burst_threshold: Burst detector (120s / 10)
        failure_window_seconds / failure_threshold: Failure streak (60s / 5)
        suspicious_window_seconds / suspicious_threshold: Pull check (60s / 10)
        anomaly_window_hours: Current window for anomaly detection (default: 1)
        anomaly_lookback_days: Historical lookback (default: 7)
        anomaly_threshold_multiplier: Multiple of the average (default: 3.0)
        anomaly_absolute_threshold: Optional absolute count threshold
        dashboard_trend_days: Trend series width (default: 30)
        metadata_max_bytes: Max serialized metadata size (default: 1 MiB)
    """

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Store
    store_backend: str = "memory"
    database_url: str = ""

    # Database - Connection Pool
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    db_statement_timeout_ms: int = 30000  # 30 seconds
    db_slow_query_seconds: float = 0.25
    db_healthcheck_on_acquire: bool = False

    # Real-time monitor
    real_time_buffer_size: int = 1000
    burst_window_seconds: int = 120
    burst_threshold: int = 10
    failure_window_seconds: int = 60
    failure_threshold: int = 5
    suspicious_window_seconds: int = 60
    suspicious_threshold: int = 10

    # Analytics
    anomaly_window_hours: int = 1
    anomaly_lookback_days: int = 7
    anomaly_threshold_multiplier: float = 3.0
    anomaly_absolute_threshold: int | None = None
    dashboard_trend_days: int = 30

    # Metadata
    metadata_max_bytes: int = 1024 * 1024  # 1 MiB

    @field_validator("log_level")
    @classmethod
    def log_level_valid(cls, v: str) -> str:
        level = (v or "INFO").strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be DEBUG, INFO, WARNING, ERROR or CRITICAL")
        return level

    @field_validator("store_backend")
    @classmethod
    def store_backend_valid(cls, v: str) -> str:
        backend = (v or "memory").strip().lower()
        if backend not in _STORE_BACKENDS:
            raise ValueError("store_backend must be memory or postgres")
        return backend

    @field_validator(
        "real_time_buffer_size",
        "burst_window_seconds",
        "burst_threshold",
        "failure_window_seconds",
        "failure_threshold",
        "suspicious_window_seconds",
        "suspicious_threshold",
        "anomaly_window_hours",
        "anomaly_lookback_days",
        "dashboard_trend_days",
        "metadata_max_bytes",
    )
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be greater than 0")
        return v

    @field_validator("anomaly_threshold_multiplier")
    @classmethod
    def multiplier_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("anomaly_threshold_multiplier must be greater than 0")
        return v

    @model_validator(mode="after")
    def validate_store_requirements(self):
        if self.store_backend == "postgres" and not self.database_url.strip():
            raise ValueError("AUDIT_DATABASE_URL is required when AUDIT_STORE_BACKEND=postgres")
        if self.db_pool_min_size > self.db_pool_max_size:
            raise ValueError(
                f"db_pool_min_size ({self.db_pool_min_size}) must be <= "
                f"db_pool_max_size ({self.db_pool_max_size})"
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="AUDIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Ignore unknown env vars
    )


@lru_cache
def get_settings() -> Settings:
    """
    Get singleton Settings instance.

    Raises:
        ValidationError: If env vars are invalid
    """
    return Settings()
