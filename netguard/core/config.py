from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        protected_namespaces=("settings_",),
    )

    app_name: str = Field(default="NetGuard Threat Engine")
    app_env: str = Field(default="dev")
    app_host: str = Field(default="0.0.0.0")
    app_port: int = Field(default=8000)
    log_level: str = Field(default="INFO")

    rf_num_trees: int = Field(default=50, ge=1)
    rf_max_depth: int = Field(default=10, ge=0)
    rf_min_samples: int = Field(default=2, ge=1)

    if_num_trees: int = Field(default=50, ge=1)
    if_sample_size: int = Field(default=128, ge=2)
    anomaly_threshold: float = Field(default=0.6)

    bootstrap_normal_samples: int = Field(default=200, ge=0)
    bootstrap_threat_samples: int = Field(default=50, ge=0)
    training_capacity: int = Field(default=1000)
    training_retain: int = Field(default=800)
    retrain_interval: int = Field(default=50, ge=1)
    feature_history_seconds: float = Field(default=300.0)
    random_seed: int | None = Field(default=None)

    event_buffer_size: int = Field(default=100, ge=1)
    domain_request_threshold: int = Field(default=100)
    domain_client_error_threshold: int = Field(default=5)
    slow_response_ms: float = Field(default=10_000.0)
    memory_usage_threshold: float = Field(default=90.0)
    rapid_click_threshold: int = Field(default=10)
    rapid_click_window_seconds: float = Field(default=1.0)
    navigation_threshold: int = Field(default=20)
    large_transfer_bytes: int = Field(default=10 * 1024 * 1024)

    realtime_push_interval_seconds: float = Field(default=2.0)
    resource_sample_interval_seconds: float = Field(default=30.0)
    resource_sampling_enabled: bool = Field(default=True)

    model_dir: str = Field(default="./artifacts")
    metrics_enabled: bool = Field(default=True)

    @property
    def model_path(self) -> Path:
        path = Path(self.model_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
