import logging
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# Force-load .env (Windows-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")

MODES = ("sandbox", "live")


class Settings(BaseModel):
    """Process-wide configuration, read once at startup and never mutated."""

    model_config = ConfigDict(frozen=True)

    client_id: str = ""
    client_secret: str = ""
    mode: str = "sandbox"
    port: int = 3000
    public_base_url: str = ""
    brand_name: str = "Your Business Name"
    cors_origins: str = "*"
    log_level: str = "INFO"

    @field_validator("mode")
    @classmethod
    def check_mode(cls, value: str) -> str:
        value = value.strip().lower() or "sandbox"
        if value not in MODES:
            raise ValueError(f"PAYPAL_MODE must be one of {', '.join(MODES)}")
        return value

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            client_id=os.getenv("PAYPAL_CLIENT_ID", ""),
            client_secret=os.getenv("PAYPAL_CLIENT_SECRET", ""),
            mode=os.getenv("PAYPAL_MODE", "sandbox"),
            port=int(os.getenv("PORT", "3000")),
            public_base_url=os.getenv("PUBLIC_BASE_URL", ""),
            brand_name=os.getenv("BRAND_NAME", "Your Business Name"),
            cors_origins=os.getenv("CORS_ORIGINS", "*"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def is_live(self) -> bool:
        return self.mode == "live"

    @property
    def base_url(self) -> str:
        return (self.public_base_url or f"http://localhost:{self.port}").rstrip("/")

    @property
    def return_url(self) -> str:
        return f"{self.base_url}/success.html"

    @property
    def cancel_url(self) -> str:
        return f"{self.base_url}/cancel.html"

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def configure_logging(settings: Settings):
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
