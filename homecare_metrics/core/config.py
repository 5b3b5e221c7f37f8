"""Application configuration using Pydantic Settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = Field(default="Home-Care Metrics API", alias="APP_NAME")
    env: str = Field(default="dev", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")

    # Record store
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/homecare",
        alias="DATABASE_URL"
    )

    # Monitoring
    prometheus_enabled: bool = Field(default=False, alias="PROMETHEUS_ENABLED")

    # Reporting
    commission_rate: float = Field(default=0.20, alias="COMMISSION_RATE")
    active_patient_window_days: int = Field(default=30, alias="ACTIVE_PATIENT_WINDOW_DAYS")
    analytics_top_n: int = Field(default=10, alias="ANALYTICS_TOP_N")
    pending_provider_statuses: list[str] = Field(
        default=["pending", "document_pending", "pending_approval"],
        alias="PENDING_PROVIDER_STATUSES"
    )
    pending_patient_status: str = Field(default="pending", alias="PENDING_PATIENT_STATUS")
    pending_payout_status: str = Field(default="Pending", alias="PENDING_PAYOUT_STATUS")

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        case_sensitive = False
        populate_by_name = True

    @field_validator("database_url")
    @classmethod
    def use_async_driver(cls, value: str) -> str:
        """Ensure the async driver is used for Postgres URLs."""
        if value.startswith("postgresql://"):
            return value.replace("postgresql://", "postgresql+asyncpg://", 1)
        return value

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.env.lower() in ("dev", "development")


# Global settings instance
settings = Settings()
