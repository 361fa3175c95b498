"""Configuration management using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "SPACE-ODYSSEY"
    debug: bool = False

    # Server (controllers connect to ws://<host>:<port>/)
    host: str = "0.0.0.0"
    port: int = 8080

    # Simulation engine
    simulation_enabled: bool = True
    viewport_width: float = 1280.0
    viewport_height: float = 720.0
    tick_ms: float = 16.0            # nominal fixed step, also passed as dt
    aim_sensitivity: float = 4.0     # multiplier on aim.dx
    snapshot_every_tick: bool = True  # publish sim_snapshot on the EventBus


settings = Settings()
