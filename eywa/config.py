from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    google_places_api_key: str = ""
    log_level: str = "INFO"
    provider_timeout: float = 30.0

    sync_interval_hours: int = 24
    inter_hotel_delay: float = 0.1
    max_hotels_per_run: int = 100

    scheduler_enabled: bool = True
    daily_sync_hour: int = 3
    daily_sync_minute: int = 0
    health_check_minute: int = 0
