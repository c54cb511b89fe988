"""
Central configuration.
Navigation constants are fixed at import time; service settings (LLM endpoint,
API host, logging) come from environment variables with sensible defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache


@dataclass(frozen=True)
class NavigationConfig:
    # Globe spinning: one revolution every 4 minutes
    seconds_per_revolution: float = 240.0
    max_spin_zoom: float = 5.0   # at or above this zoom the globe does not rotate
    slow_spin_zoom: float = 3.0  # rotation slows linearly between slow and max
    spin_interval: float = 1.0   # seconds between rotation ticks
    spin_window: float = 1.0     # each tick eases over this many seconds
    # Fly-to a city
    fly_zoom: float = 12.0
    fly_duration: float = 2.5
    # Reset to overview
    overview_center: tuple[float, float] = (30.0, 15.0)
    overview_zoom: float = 1.0
    reset_duration: float = 2.0
    # Interaction handling
    interaction_debounce: float = 0.1
    click_max_distance: float = 0.5  # degrees
    frame_interval: float = 0.05


@dataclass(frozen=True)
class ChatConfig:
    api_url: str = os.getenv("LLM_API_URL", "https://api.openai.com/v1")
    api_key: str = os.getenv("LLM_API_KEY", "")
    model: str = os.getenv("LLM_MODEL", "gpt-3.5-turbo")
    temperature: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    request_timeout: float = float(os.getenv("LLM_TIMEOUT", "30"))
    max_retries: int = int(os.getenv("LLM_MAX_RETRIES", "3"))
    backoff_base: float = float(os.getenv("LLM_BACKOFF_BASE", "2.0"))


@dataclass(frozen=True)
class SchedulerConfig:
    enabled: bool = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"


@dataclass(frozen=True)
class APIConfig:
    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: str = os.getenv("API_CORS_ORIGINS", "*")
    max_search_results: int = int(os.getenv("API_MAX_SEARCH_RESULTS", "10"))


@dataclass(frozen=True)
class Settings:
    navigation: NavigationConfig = field(default_factory=NavigationConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    env: str = os.getenv("APP_ENV", "development")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
