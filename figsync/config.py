"""Sync service configuration.

Uses pydantic-settings to load from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class FigSyncSettings(BaseSettings):
    """Configuration for the FIG reference-data sync service."""

    # FIG registry endpoints
    registry_base_url: str = "https://www.gymnastics.sport/api"
    athletes_endpoint: str = "/athletes.php"
    coaches_endpoint: str = "/coaches.php"
    judges_endpoint: str = "/judges.php"
    image_base_url: str = "https://www.gymnastics.sport/asset.php?id=bpic_"
    user_agent: str = "PanamericanGymnastics/1.0"

    # Per-call upstream timeout
    request_timeout_s: float = 30.0

    # Cache lifetimes
    roster_cache_ttl_s: float = 3600.0  # 1 hour
    image_cache_ttl_s: float = 86400.0  # 24 hours
    max_image_bytes: int = 5 * 1024 * 1024

    # Image preloading during warmup
    image_preload_limit: int = 50
    image_preload_batch_size: int = 5
    image_preload_pause_s: float = 0.1

    # Warmup scheduling
    warmup_enabled: bool = True
    warmup_interval_s: float = 12 * 3600.0

    # Local override storage
    database_url: str = "sqlite+aiosqlite:///./figsync.db"

    # HTTP
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = {"env_prefix": "FIGSYNC_"}

    def endpoint_for(self, kind: str) -> str:
        """Return the registry endpoint path for a person kind value."""
        return {
            "athletes": self.athletes_endpoint,
            "coaches": self.coaches_endpoint,
            "judges": self.judges_endpoint,
        }[kind]


@lru_cache
def get_settings() -> FigSyncSettings:
    """Return a cached settings instance."""
    return FigSyncSettings()
