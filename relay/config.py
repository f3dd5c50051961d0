import json
from pathlib import Path
from typing import List, Optional

from dotenv import find_dotenv, load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.media_types import MediaAllowList

load_dotenv(find_dotenv(), override=False)

DEFAULT_SUPPORTED_TYPES = [
    "image/",
    "video/",
    "audio/",
    "application/vnd.apple.mpegurl",
    "application/x-mpegurl",
]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/142.0.0.0 Safari/537.36"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RELAY_", populate_by_name=True)

    host: str = "0.0.0.0"
    port: int = Field(5000, validation_alias=AliasChoices("RELAY_PORT", "PORT"))
    log_level: str = "INFO"

    # --- MEDIA TYPES ---
    supported_types: List[str] = Field(default_factory=lambda: list(DEFAULT_SUPPORTED_TYPES))
    supported_types_file: Optional[Path] = None
    buffered_types: List[str] = Field(default_factory=lambda: ["image/"])

    # --- UPSTREAM ---
    upstream_timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    default_origin: Optional[str] = None

    # Keep-alive pool shared by segment fetches
    segment_max_connections: int = Field(100, gt=0)
    segment_max_keepalive: int = Field(20, ge=0)
    segment_keepalive_expiry: float = 30.0

    # --- RELAY URLS ---
    public_scheme: str = "https"
    cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"])

    def allow_list(self) -> MediaAllowList:
        """Build the allow-list once; the file, when configured, wins over the env list."""
        if self.supported_types_file is not None:
            prefixes = json.loads(self.supported_types_file.read_text(encoding="utf-8"))
            if not isinstance(prefixes, list) or not all(isinstance(p, str) for p in prefixes):
                raise ValueError(f"{self.supported_types_file} must hold a JSON list of strings")
            return MediaAllowList.of(prefixes)
        return MediaAllowList.of(self.supported_types)


def get_settings() -> Settings:
    return Settings()
