from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    # ==========================================================================
    # ENVIRONMENT
    # ==========================================================================
    environment: str = "dev"  # "dev", "prod"
    debug: bool = True
    log_level: Optional[str] = None  # Overrides the environment default
    log_file: Optional[str] = None  # JSON log file; parent directories are created
    host: str = "0.0.0.0"
    port: int = 8000

    # ==========================================================================
    # DATABASE
    # ==========================================================================
    database_url: str = "sqlite:///./upishield.db"

    # ==========================================================================
    # API SECURITY
    # ==========================================================================
    api_token: str = ""  # Required in production, optional in dev
    api_token_header: str = "X-API-Key"

    # ==========================================================================
    # RATE LIMITING
    # ==========================================================================
    rate_limit_requests: int = 60  # Max requests per window
    rate_limit_window: int = 60  # Window in seconds (60 = per minute)

    # ==========================================================================
    # CORS
    # ==========================================================================
    cors_origins: str = "*"  # Comma-separated origins, or "*" for all

    # ==========================================================================
    # TRANSACTION ANALYSIS
    # ==========================================================================
    recent_transaction_limit: int = 50  # History rows handed to the analyzer
    max_transaction_amount: float = 10_000_000  # Upper bound for one payment
    typical_hours_limit: int = 10  # Distinct hours kept on a behavior profile
    similarity_threshold: float = 0.7  # Contact look-alike threshold (exclusive)

    # ==========================================================================
    # BLACKLISTS
    # ==========================================================================
    blacklist_critical_report_count: int = 3  # Reports before severity -> critical
    auto_blacklist_critical_domains: bool = False  # Add critical scans to domain list

    # ==========================================================================
    # URL SCANNING
    # ==========================================================================
    max_url_length: int = 2048

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="UPISHIELD_",
        extra="ignore",
    )

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "prod"

    @property
    def cors_origins_list(self) -> List[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]


settings = Settings()
