from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    port: int = Field(alias="PORT")
    debug_port: int = Field(alias="DEBUG_PORT")
    host: str = Field(default="0.0.0.0", alias="HOST")

    service_name: str = Field(default="test-graphql", alias="SERVICE_NAME")
    zipkin_endpoint: str = Field(default="http://localhost:9411/api/v2/spans", alias="ZIPKIN_ENDPOINT")

    upstream_url: str = Field(default="http://example.com", alias="UPSTREAM_URL")
    # None keeps the outbound client unbounded.
    upstream_timeout: float | None = Field(default=None, alias="UPSTREAM_TIMEOUT")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["logfmt", "json"] = Field(default="logfmt", alias="LOG_FORMAT")

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def debug_address(self) -> str:
        return f"{self.host}:{self.debug_port}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
