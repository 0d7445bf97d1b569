import os

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = os.environ.get("ENV_FILE", ".env")

# Vendor tokens are read from os.environ on every request, so the env file is
# pushed into the process environment rather than only into Settings.
load_dotenv(ENV_FILE, override=False)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Listen
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(10000, alias="PORT")

    # Upstream vendors
    printful_base_url: str = Field("https://api.printful.com", alias="PRINTFUL_BASE_URL")
    printify_base_url: str = Field("https://api.printify.com/v1", alias="PRINTIFY_BASE_URL")

    # Rate limiting (fixed window)
    rate_limit_per_minute: int = Field(60, alias="RATE_LIMIT_PER_MINUTE")
    rate_limit_window_seconds: int = Field(60, alias="RATE_LIMIT_WINDOW_SECONDS")

    # Timeouts
    request_timeout_seconds: float = Field(30.0, alias="REQUEST_TIMEOUT_SECONDS")
    connect_timeout_seconds: float = Field(5.0, alias="CONNECT_TIMEOUT_SECONDS")

    # Inbound JSON body limit
    max_body_bytes: int = Field(1024 * 1024, alias="MAX_BODY_BYTES")

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: str = Field("json", alias="LOG_FORMAT")
    log_capacity: int = Field(1000, alias="LOG_CAPACITY")


settings = Settings()
