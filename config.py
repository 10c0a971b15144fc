"""
Configuration management for the draft session engine
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# Draft family tags (static, not configurable)
HSR_FAMILY = "hsr"
ZZZ_FAMILY = "zzz"
SUPPORTED_FAMILIES = {HSR_FAMILY, ZZZ_FAMILY}
SUPPORTED_TEAM_SIZES = {2, 3}


class DraftConfig(BaseSettings):
    """Application configuration with environment variable support."""

    # Catalog / persistence API settings
    api_url: str = ""
    api_token: str = ""

    # API Constants
    api_version: str = "v1"
    default_timeout: int = 10
    max_retries: int = 3

    # Cost limits
    zzz_cost_limit_2v2: float = 6.0
    zzz_cost_limit_3v3: float = 9.0
    hsr_cost_limit: float = 0.0          # 0 means display only, no limit enforced

    # Penalty settings
    penalty_per_point: int = 2500        # Deducted per quarter point over the limit
    penalty_step: float = 0.25
    cycle_breakpoint: int = 4            # Team cost divisor for the cycle penalty term

    # Timer settings
    grace_window_seconds: int = 30       # Per-move grace before reserve burns
    default_reserve_seconds: int = 480   # 8 minutes per side

    # Session lifecycle
    session_retention_hours: int = 24
    live_window_hours: int = 2

    # Score bounds
    hsr_score_max: int = 15
    zzz_score_max: int = 65000

    # Spectator reconnect backoff
    sync_retry_initial_seconds: float = 1.0
    sync_retry_max_seconds: float = 30.0

    # Application settings
    log_level: str = "INFO"
    environment: str = "development"
    testing: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing

    @property
    def session_retention_seconds(self) -> int:
        """Retention window in seconds (derived value)."""
        return self.session_retention_hours * 3600

    def cost_limit_for(self, family: str, team_size: int) -> float:
        """
        Get the default team cost limit for a draft format.

        Args:
            family: Draft family tag ("hsr" or "zzz")
            team_size: Players per side (2 or 3)

        Returns:
            Cost limit for one side
        """
        if family == ZZZ_FAMILY:
            return self.zzz_cost_limit_3v3 if team_size == 3 else self.zzz_cost_limit_2v2
        return self.hsr_cost_limit

    def score_max_for(self, family: str) -> int:
        """Get the per-player score ceiling for a draft family."""
        if family == ZZZ_FAMILY:
            return self.zzz_score_max
        return self.hsr_score_max


# Global configuration instance - lazily initialized to avoid import-time errors
_config: Optional[DraftConfig] = None


def get_config() -> DraftConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = DraftConfig()
    return _config
