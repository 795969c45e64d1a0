"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Secure defaults (no credentials in code)
"""

import logging
import os
from functools import lru_cache
from typing import Literal, cast

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

TimeRangeName = Literal["today", "weekly", "monthly"]


class FirebaseConfig(BaseModel):
    """Firebase project settings and the paths this service reads and writes."""

    database_url: str = Field(..., description="Realtime Database URL")
    credentials_path: str | None = Field(
        None, description="Service account JSON; application default credentials when unset"
    )

    # Realtime Database tree: {users_root}/{uid}/Reports/{date}/...
    users_root: str = Field(default="Users", min_length=1)

    # Firestore collections: {profile_collection}/{uid}/{history_collection}/...
    profile_collection: str = Field(default="users", min_length=1)
    history_collection: str = Field(default="healthData", min_length=1)
    notifications_collection: str = Field(default="notifications", min_length=1)

    @field_validator("database_url")
    def validate_database_url(cls, v):
        if not v or v == "https://your-project-default-rtdb.firebaseio.com":
            raise ValueError("Firebase database URL must be set in environment or .env file")
        if not v.startswith("https://"):
            raise ValueError("Firebase database URL must start with 'https://'")
        return v.rstrip("/")


class MonitoringConfig(BaseModel):
    """Health monitoring behaviour."""

    poll_interval_seconds: float = Field(
        default=30.0, gt=0.0, description="Interval between report tree fetches"
    )
    default_time_range: TimeRangeName = Field(
        default="weekly", description="Window used when listing health records"
    )
    notification_limit: int = Field(
        default=20, gt=0, description="Number of notifications shown to the user"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    firebase: FirebaseConfig
    monitoring: MonitoringConfig
    logging: LoggingConfig

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _time_range_to_literal(val: str) -> TimeRangeName:
        v = val.strip().lower()
        return cast(TimeRangeName, v if v in {"today", "weekly", "monthly"} else "weekly")

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    firebase_config = FirebaseConfig(
        database_url=os.getenv("FIREBASE_DATABASE_URL", ""),
        credentials_path=os.getenv("FIREBASE_CREDENTIALS_PATH")
        or os.getenv("GOOGLE_APPLICATION_CREDENTIALS")
        or None,
        users_root=os.getenv("FIREBASE_USERS_ROOT", "Users"),
    )

    monitoring_config = MonitoringConfig(
        poll_interval_seconds=float(os.getenv("POLL_INTERVAL_SECONDS", "30.0")),
        default_time_range=_time_range_to_literal(os.getenv("DEFAULT_TIME_RANGE", "weekly")),
        notification_limit=int(os.getenv("NOTIFICATION_LIMIT", "20")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        firebase=firebase_config,
        monitoring=monitoring_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def reset_config_cache() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment."""
    get_config.cache_clear()


def configure_logging(config: LoggingConfig) -> None:
    """Configure structlog for the whole process."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, config.level))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if config.format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configuration validation and helpers
def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"✅ Configuration loaded for {config.environment} environment")

        if config.firebase.credentials_path:
            print("✅ Firebase service account configured")
        else:
            print("ℹ️  Using application default credentials for Firebase")

    except Exception as e:
        print(f"❌ Configuration validation failed: {e}")
        raise


# Development helpers
def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\n🔧 CONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\n🔥 FIREBASE CONFIGURATION")
    print(f"Database URL: {config.firebase.database_url}")
    print(f"Users Root: {config.firebase.users_root}")
    print(f"History Collection: {config.firebase.history_collection}")

    print("\n📊 MONITORING CONFIGURATION")
    print(f"Poll Interval: {config.monitoring.poll_interval_seconds}s")
    print(f"Default Time Range: {config.monitoring.default_time_range}")


if __name__ == "__main__":
    # Test configuration loading
    validate_config()
    print_config_summary()
