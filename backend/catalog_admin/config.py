import os
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

_CONFIG_PATH = os.getenv("CATALOG_ADMIN_CONFIG", "config.toml")
_ENV_PATH = os.getenv("CATALOG_ADMIN_ENV", ".env")


class JWTSettings(BaseModel):
    secret_key: str
    algorithm: str = "HS256"


class AniListSettings(BaseModel):
    endpoint: str = "https://graphql.anilist.co"
    source_name: str = "anilist"
    page_size: int = Field(default=20, ge=1, le=50)
    timeout_seconds: float = 10.0
    # AniList allows 90 requests per minute
    min_request_interval: float = 0.7


class CronSettings(BaseModel):
    autostart: bool = True
    genres: list[str] = ["Action", "Romance", "Comedy", "Thriller", "Fantasy"]
    misfire_grace_time: int = 300


class TrendSettings(BaseModel):
    rating_weight: float = 0.5
    popularity_weight: float = 1.5
    recency_weight: float = 2.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        toml_file=_CONFIG_PATH,
        env_file=_ENV_PATH,
    )

    database_url: str = "sqlite:///catalog_admin.db"
    database_echo: bool = False
    master_token: str
    jwt: JWTSettings
    anilist: AniListSettings = Field(default_factory=AniListSettings)
    cron: CronSettings = Field(default_factory=CronSettings)
    trend: TrendSettings = Field(default_factory=TrendSettings)

    host: str = "127.0.0.1"
    port: int = 5678
    logs_dir: Path = Field(default=Path("logs"))

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Source order: init args > OS env > .env > config.toml > secrets
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()  # type: ignore We want the app to fail if the settings are not loaded correctly
