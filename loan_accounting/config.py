"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


NON_PRODUCTION_ENVIRONMENTS = ("development", "test", "local")


class LoanAccountingConfig(BaseSettings):
    """Loan accounting engine configuration"""

    model_config = SettingsConfigDict(
        env_prefix="LOANBOOK_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Deployment
    environment: str = "production"  # production, development, test, local

    # Database configuration
    database_url: str = "sqlite:///loanbook.db"

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Security configuration
    cron_secret: Optional[str] = None  # Bearer secret for the interest trigger

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Business rules configuration
    currency: str = "INR"
    interest_rate_pct: str = "3.0"  # Quarterly rate on subscription total
    interest_sanity_cap: str = "1000000"

    # Batch job configuration
    per_customer_timeout_seconds: float = 30.0
    job_max_workers: int = 4
    notification_sample_size: int = 5

    @property
    def is_production(self) -> bool:
        """Anything not explicitly marked non-production counts as production"""
        return self.environment.strip().lower() not in NON_PRODUCTION_ENVIRONMENTS


# Global configuration instance
config = LoanAccountingConfig()


def get_config() -> LoanAccountingConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> LoanAccountingConfig:
    """Reload configuration from environment"""
    global config
    config = LoanAccountingConfig()
    return config
