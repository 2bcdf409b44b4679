# fims/config.py
from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve to the project root (one level up from fims/)
BASE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_QR_ENDPOINT = "https://api.qrserver.com/v1/create-qr-code/"


class Settings(BaseSettings):
    """Process-level settings, read from FIMS_* environment variables or .env."""

    model_config = SettingsConfigDict(env_prefix="FIMS_", env_file=".env", extra="ignore")

    database_url: str = f"sqlite:///{(BASE_DIR / 'fims.db').as_posix()}"
    app_url: str = "http://localhost:3000"
    qr_mode: Literal["local", "remote"] = "local"
    qr_endpoint: str = DEFAULT_QR_ENDPOINT
    qr_timeout_seconds: float = 5.0
    logo_path: Optional[str] = str(BASE_DIR / "public" / "ccsa-logo.png")
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()


class CertificateConfig(BaseModel):
    """Everything the certificate builder needs to know about its environment.

    Passed explicitly so the builder never reads process state.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = "http://localhost:3000"
    organization_name: str = "Centre for Climate-Smart Agriculture"
    organization_short_name: str = "CCSA"
    university_name: str = "Cosmopolitan University Abuja"
    contact_line: str = (
        "Tel: +234-806-224-9834 | Email: ccsa@cosmopolitan.edu.ng | "
        "Website: ccsa.cosmopolitan.edu.ng"
    )
    ceo_name: str = "DR. RISLAN ABDULAZIZ KANYA"
    logo_path: Optional[str] = None
    qr_timeout_seconds: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "CertificateConfig":
        return cls(
            base_url=settings.app_url,
            logo_path=settings.logo_path,
            qr_timeout_seconds=settings.qr_timeout_seconds,
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
