from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Blockhunt API"
    debug: bool = True
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    log_level: str = "INFO"

    database_url: str | None = None
    redis_url: str | None = None

    min_players_to_start: int = 1
    build_duration_seconds: int = 60
    discussion_duration_seconds: int = 30
    voting_duration_seconds: int = 0
    timer_tick_seconds: float = 1.0
    sabotage_radius: float = 3.0
    sabotage_cooldown_seconds: float = 5.0
    floor_y: float = -1.0
    objective_words: list[str] = Field(
        default_factory=lambda: [
            "Castle",
            "Spaceship",
            "Pyramid",
            "Treehouse",
            "Bridge",
            "Robot",
            "Lighthouse",
            "Cathedral",
            "Submarine",
            "Windmill",
            "Igloo",
            "Volcano",
        ]
    )

    max_room_id_length: int = 32
    max_name_length: int = 24
    max_chat_length: int = 240

    rate_limit_enabled: bool = True
    rate_limit_api_limit: int = 120
    rate_limit_api_window_seconds: int = 60
    websocket_connect_limit: int = 20
    websocket_connect_window_seconds: int = 60
    websocket_event_limit: int = 180
    websocket_move_limit: int = 1800
    websocket_event_window_seconds: int = 60

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
