from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file.

    Built once at startup and shared by reference; instances are frozen.
    """

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "UPWATCH_",
        "extra": "ignore",
        "frozen": True,
    }

    # Targets (comma-separated URLs, parsed by TargetRegistry)
    targets: str = "https://1.1.1.1,https://google.com,https://github.com"
    targets_file: str = ""  # optional YAML file with a `targets:` list; wins over `targets`

    # Health checks
    check_interval: int = Field(30, gt=0)  # seconds between check ticks
    probe_timeout: float = Field(10.0, gt=0)  # seconds per HEAD probe
    expected_status: int = 200

    # Retention
    retention_days: int = Field(90, gt=0)
    speedtest_retention_days: int = Field(365, ge=0)  # 0 = keep forever
    prune_interval: int = Field(86_400, gt=0)  # seconds

    # Aggregation
    recent_minutes: int = Field(60, gt=0)
    latency_threshold_ms: int = Field(250, ge=0)
    status_page_size: int = Field(500, gt=0)
    speedtest_page_size: int = Field(100, gt=0)

    # Speed tests
    speedtest_interval: int = Field(3600, gt=0)  # seconds
    speedtest_bytes: int = Field(25_000_000, gt=0)
    speedtest_upload_bytes: int = Field(10 * 1024 * 1024, gt=0)
    speedtest_timeout: float = Field(120.0, gt=0)  # seconds per phase
    speedtest_download_url: str = "https://speed.cloudflare.com/__down"
    speedtest_upload_url: str = "https://speed.cloudflare.com/__up"
    speedtest_latency_url: str = "https://1.1.1.1"

    # Shutdown
    shutdown_grace: float = Field(5.0, ge=0)  # seconds running ticks get to finish

    # Storage
    db_path: str = "data/uptime.db"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Logging
    log_level: str = "INFO"


settings = Settings()
