"""
Process configuration.

Read from ``PEERLINK_*`` environment variables (optionally a ``.env`` file):

    PEERLINK_TOPOLOGY_PATH     path to the mutual-peers YAML (default: config.yaml)
    PEERLINK_REDIS_URL         registry store (default: redis://localhost:6379/0)
    PEERLINK_REGISTRY_TIMEOUT  seconds per registry call (default: 30)
    PEERLINK_COMMAND_TIMEOUT   seconds per in-node command (default: 60)
    PEERLINK_METRICS_ENABLED   run the observability publisher (default: true)
    PEERLINK_METRICS_INTERVAL  seconds between observations (default: 15)
    PEERLINK_LOG_LEVEL / PEERLINK_LOG_FORMAT  (INFO / json)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PEERLINK_", env_file=".env", extra="ignore")

    topology_path: Path = Path("config.yaml")
    redis_url: str = "redis://localhost:6379/0"
    registry_timeout: float = Field(default=30.0, gt=0)
    command_timeout: float = Field(default=60.0, gt=0)

    metrics_enabled: bool = True
    metrics_interval: float = Field(default=15.0, gt=0)
    consensus_rpc_port: int = 26657

    kubectl: str = "kubectl"

    host: str = "0.0.0.0"
    port: int = 8080

    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
