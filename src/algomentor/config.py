"""Configuration and credential lookup."""

import os
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv

load_dotenv()

# The client-side adapter and the edge proxy use separate secrets.
CLIENT_CREDENTIAL = "TUTOR_GEMINI_API_KEY"
PROXY_CREDENTIAL = "GEMINI_API_KEY"


class ConfigProvider(ABC):
    """Source of credentials for the model provider."""

    @abstractmethod
    def get_credential(self, name: str) -> Optional[str]:
        """Return the named credential, or None when it is not configured."""
        pass


class EnvironmentConfig(ConfigProvider):
    """Reads credentials from the process environment (and ``.env``)."""

    def get_credential(self, name: str) -> Optional[str]:
        return os.getenv(name) or None


class StaticConfig(ConfigProvider):
    """Credentials from a fixed mapping."""

    def __init__(self, values: Optional[Mapping[str, str]] = None) -> None:
        self._values = dict(values or {})

    def get_credential(self, name: str) -> Optional[str]:
        return self._values.get(name) or None


class Settings:
    """Non-secret settings loaded from environment variables."""

    def __init__(self) -> None:
        self.tutor_profile: str = os.getenv("TUTOR_PROFILE", "socratic")
        self.tutor_model: str = os.getenv("TUTOR_GEMINI_MODEL", "gemini-2.5-flash")
        self.proxy_model: str = os.getenv("PROXY_GEMINI_MODEL", "gemini-1.5-flash")
        self.proxy_timeout: float = float(os.getenv("PROXY_TIMEOUT_SECONDS", "60"))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
