from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")

    # Kept as the raw string; handlers parse it per request.
    duration: str | None = Field(default=None, alias="DURATION")

    storage_backend: Literal["s3", "local"] = Field(default="s3", alias="STORAGE_BACKEND")
    local_storage_dir: Path = Field(default=Path("./storage"), alias="LOCAL_STORAGE_DIR")

    aws_profile: str | None = Field(default=None, alias="AWS_PROFILE")
    s3_endpoint: HttpUrl | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_region: str | None = Field(default=None, alias="S3_REGION")
    s3_access_key: str | None = Field(default=None, alias="S3_ACCESS_KEY")
    s3_secret_key: str | None = Field(default=None, alias="S3_SECRET_KEY")
    s3_addressing_style: Literal["auto", "path", "virtual"] = Field(
        default="auto", alias="S3_ADDRESSING_STYLE"
    )

    multipart_threshold: int = Field(default=5 * 1024 * 1024, alias="S3_MULTIPART_THRESHOLD")
    multipart_chunksize: int = Field(default=5 * 1024 * 1024, alias="S3_MULTIPART_CHUNKSIZE")
    max_concurrency: int = Field(default=5, alias="S3_MAX_CONCURRENCY")

    download_dir: Path = Field(default=Path("."), alias="DOWNLOAD_DIR")
    download_file_mode: int = Field(default=0o755, alias="DOWNLOAD_FILE_MODE")

    @field_validator("download_file_mode", mode="before")
    @classmethod
    def _parse_octal_mode(cls, value: object) -> object:
        # "0755" and "755" both mean rwxr-xr-x
        if isinstance(value, str):
            return int(value, 8)
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
