from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    project_url: str = ""
    project_anon_key: str = ""

    # Row caps per read. Results that hit a cap are flagged as possibly truncated.
    product_limit: int = 10_000
    header_limit: int = 20_000
    line_limit: int = 200_000
    investment_limit: int = 50_000

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
