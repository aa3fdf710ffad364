from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "dailies"
    environment: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    database_url: str = "sqlite:///./dailies.db"

    storage_root: str = "/data/storage"
    public_base_url: str = "http://localhost:8000/files"
    public_buckets: list[str] = ["thumbnails"]
    signing_secret: str = "change-me"
    presign_ttl_seconds: int = 86400

    media_max_size_mb: int = 2048
    thumbnail_max_size_mb: int = 5
    attachment_max_size_mb: int = 100

    thumbnail_width: int = 320
    thumbnail_height: int = 180
    thumbnail_quality: int = 75
    thumbnail_max_source_mb: int = 64
    thumbnail_max_pixels: int = 80_000_000

    default_status_code: str = "wip"

    notification_backend: str = "inline"
    slack_enabled: bool = False
    slack_bot_token: str | None = None
    slack_default_channel: str = "#dailies"
    slack_api_url: str = "https://slack.com/api/chat.postMessage"
    slack_timeout_seconds: float = 5.0

    redis_url: str = "redis://redis:6379/0"
    rq_default_timeout: int = 120
    rate_limit_per_min: int = 120

    log_level: str = "INFO"

    @property
    def is_dev(self) -> bool:
        return self.environment.lower() == "dev"


settings = Settings()
