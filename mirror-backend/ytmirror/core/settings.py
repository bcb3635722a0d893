from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    database_url: str = Field(alias="DATABASE_URL")
    redis_url: str = Field(alias="REDIS_URL")
    rq_queue_name: str = Field(default="sync", alias="RQ_QUEUE_NAME")

    youtube_api_key: str = Field(alias="YOUTUBE_API_KEY")
    youtube_api_base_url: str = Field(
        default="https://www.googleapis.com/youtube/v3", alias="YOUTUBE_API_BASE_URL"
    )
    youtube_http_timeout_seconds: float = Field(default=10, alias="YOUTUBE_HTTP_TIMEOUT_SECONDS")
    youtube_http_max_attempts: int = Field(default=3, alias="YOUTUBE_HTTP_MAX_ATTEMPTS")
    youtube_max_pages: int = Field(default=1000, alias="YOUTUBE_MAX_PAGES")
    youtube_comment_max_pages: int = Field(default=5, alias="YOUTUBE_COMMENT_MAX_PAGES")
    # videos.list accepts at most 50 ids per call
    youtube_id_batch_size: int = Field(default=50, ge=1, le=50, alias="YOUTUBE_ID_BATCH_SIZE")

    short_max_seconds: int = Field(default=180, alias="SHORT_MAX_SECONDS")
    short_rule_version: str = Field(default="duration-lte-180s", alias="SHORT_RULE_VERSION")

    sync_job_timeout_seconds: int = Field(default=1800, alias="SYNC_JOB_TIMEOUT_SECONDS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_structured: bool = Field(default=False, alias="LOG_STRUCTURED")

    class Config:
        env_file = ".env"
        extra = "ignore"

settings = Settings()
