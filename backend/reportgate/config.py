from typing import Literal

from pydantic import ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings

from reportgate.services.pow_service import MAX_WORK_FACTOR


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    database_url: str = "sqlite:///./reports.db"
    # When set, points the service at a local test backend instead of DATABASE_URL
    test_database_url: str | None = None
    database_busy_timeout_seconds: float = 5.0
    transaction_max_attempts: int = Field(default=5, ge=1)

    # Proof of Work
    pow_work_factor: int = 20  # ~1M hashes on average
    pow_difficulty_policy: Literal["fixed", "adaptive"] = "fixed"
    pow_adaptive_step: int = Field(default=100, ge=1)
    pow_adaptive_max_bonus: int = Field(default=4, ge=0)
    pow_challenge_ttl_seconds: int = Field(default=300, gt=0)  # 5 minutes
    pow_max_solution_bytes: int = Field(default=32, ge=1)

    # Limits
    max_report_size: int = 65_536

    # Transport
    require_https: bool = True

    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_challenges: str = "30/minute"
    rate_limit_reports: str = "10/minute"

    # CORS
    cors_origins: list[str] | str = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    # Alerts
    discord_alerts_webhook_url: str | None = None

    # Retention
    challenge_cleanup_enabled: bool = False
    cleanup_interval_hours: int = 1

    @field_validator("pow_work_factor")
    @classmethod
    def validate_work_factor(cls, v: int) -> int:
        if v < 1 or v > MAX_WORK_FACTOR:
            raise ValueError(f"pow_work_factor must be between 1 and {MAX_WORK_FACTOR}")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @property
    def effective_database_url(self) -> str:
        """The database the service should talk to, honoring the test backend toggle."""
        return self.test_database_url or self.database_url

    @property
    def using_test_database(self) -> bool:
        return self.test_database_url is not None


settings = Settings()
