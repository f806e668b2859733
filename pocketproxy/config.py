# pocketproxy/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from pocketproxy.core.errors import ConfigError

load_dotenv()

DEFAULT_OMNIVORE_API_URL = "https://api-prod.omnivore.app/api/graphql"


@dataclass
class Settings:
    fallback_token: Optional[str] = field(default_factory=lambda: os.getenv("FALLBACK_TOKEN") or None)
    omnivore_api_url: str = field(
        default_factory=lambda: os.getenv("OMNIVORE_API_URL", DEFAULT_OMNIVORE_API_URL).rstrip("/")
    )
    page_size: int = field(default_factory=lambda: int(os.getenv("OMNIVORE_PAGE_SIZE", "100")))
    search_query: str = field(default_factory=lambda: os.getenv("OMNIVORE_SEARCH_QUERY", "in:inbox"))
    backend_timeout: float = field(default_factory=lambda: float(os.getenv("BACKEND_TIMEOUT", "30")))
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("PORT", "80")))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    root_path: str = field(default_factory=lambda: os.getenv("ROOT_PATH", ""))

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()

    def require_fallback_token(self) -> str:
        if not self.fallback_token:
            raise ConfigError("FALLBACK_TOKEN is not set; requests without access_token cannot be served")
        return self.fallback_token


settings = Settings()
