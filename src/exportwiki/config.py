"""Application configuration."""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_FILE_ENV = "EXPORTWIKI_CONFIG_FILE"
DEFAULT_CONFIG_FILE = "exportwiki.yaml"


class Features(BaseModel):
    """Independently switchable features. All default to on."""

    search: bool = True
    breadcrumbs: bool = True
    image_gallery: bool = True
    heading_anchors: bool = True
    icons: bool = True


class Settings(BaseSettings):
    """Application settings.

    Sources, highest priority first: constructor arguments, environment
    variables, ``.env``, then the YAML config file.
    """

    markdown_root: Path = Path("workspace/markdown")
    html_root: Path | None = None
    default_table_variant: Literal["all", "filtered"] = "all"
    features: Features = Features()
    debug: bool = False
    app_title: str = "ExportWiki"

    model_config = SettingsConfigDict(
        env_prefix="EXPORTWIKI_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        yaml_file = os.environ.get(CONFIG_FILE_ENV, DEFAULT_CONFIG_FILE)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=yaml_file),
        )


settings = Settings()
