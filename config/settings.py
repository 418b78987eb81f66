# config/settings.py
import os
import sys
from typing import Optional
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")

MIB = 1024 * 1024


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")
    PERSISTENCE_TTL_SECONDS: int = Field(
        default=24 * 3600, validation_alias="PERSISTENCE_TTL_SECONDS"
    )

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(default=60, validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(default=60, validation_alias="RATE_LIMIT_SECONDS")
    MAX_ARCHIVE_MB: int = Field(default=50, validation_alias="MAX_ARCHIVE_MB")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Preview server
    PREVIEW_PREFIX: str = Field(default="preview", validation_alias="PREVIEW_PREFIX")
    LIVE_RELOAD_DEBOUNCE_MS: int = Field(
        default=500, validation_alias="LIVE_RELOAD_DEBOUNCE_MS"
    )

    # Export ceilings (bytes). None disables the check for that network.
    EXPORT_CEILING_MINTEGRAL_BYTES: Optional[int] = Field(
        default=5 * MIB, validation_alias="EXPORT_CEILING_MINTEGRAL_BYTES"
    )
    EXPORT_CEILING_APPLOVIN_BYTES: Optional[int] = Field(
        default=None, validation_alias="EXPORT_CEILING_APPLOVIN_BYTES"
    )

    # Logging knobs
    LOGGER_NAME: str = "homa-playables"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")

    @property
    def max_archive_bytes(self) -> int:
        return self.MAX_ARCHIVE_MB * MIB

    @property
    def live_reload_debounce_seconds(self) -> float:
        return max(0, self.LIVE_RELOAD_DEBOUNCE_MS) / 1000.0


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
