import os
from typing import Optional
from pydantic import BaseModel, Field, model_validator


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_optional_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


class Settings(BaseModel):
    # Oracle
    ORACLE_HEARTBEAT_SECONDS: int = Field(4 * 3600, gt=0, description="Default maximum age of a price update.")
    TWAP_FAST_WINDOW_SECONDS: int = Field(120, ge=0, description="Prior samples younger than this return the raw price.")
    TWAP_WINDOW_SECONDS: int = Field(300, gt=0, description="Averaging window for the recency-weighted price.")
    PRICE_HISTORY_SIZE: int = Field(10, ge=1, description="Samples kept per fingerprint.")

    # OCO
    OCO_CANCELLATION_DELAY_SECONDS: int = Field(30, ge=0)
    OCO_MAX_CANCELLATION_DELAY_SECONDS: int = Field(86400, ge=0)

    # Keepers
    KEEPER_MAX_ACTIONS_PER_CALL: int = Field(20, ge=1)
    KEEPER_OPEN_ACCESS: bool = False
    KEEPER_POLL_INTERVAL_SECONDS: float = Field(5.0, gt=0)
    KEEPER_MAX_FEE: Optional[int] = Field(None, ge=0, description="Global fee ceiling for cancellation processing.")

    # Iceberg
    PERMISSIONLESS_REVEAL: bool = False

    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/superorder.log"

    @model_validator(mode='after')
    def validate_windows(self):
        if self.TWAP_FAST_WINDOW_SECONDS >= self.TWAP_WINDOW_SECONDS:
            raise ValueError(
                f"TWAP_FAST_WINDOW_SECONDS ({self.TWAP_FAST_WINDOW_SECONDS}) must be shorter than "
                f"TWAP_WINDOW_SECONDS ({self.TWAP_WINDOW_SECONDS})"
            )
        if self.OCO_CANCELLATION_DELAY_SECONDS > self.OCO_MAX_CANCELLATION_DELAY_SECONDS:
            raise ValueError("OCO_CANCELLATION_DELAY_SECONDS exceeds OCO_MAX_CANCELLATION_DELAY_SECONDS")
        return self

    @classmethod
    def load_from_env(cls):
        defaults = cls.model_fields
        return cls(
            ORACLE_HEARTBEAT_SECONDS=int(os.getenv("ORACLE_HEARTBEAT_SECONDS", defaults["ORACLE_HEARTBEAT_SECONDS"].default)),
            TWAP_FAST_WINDOW_SECONDS=int(os.getenv("TWAP_FAST_WINDOW_SECONDS", defaults["TWAP_FAST_WINDOW_SECONDS"].default)),
            TWAP_WINDOW_SECONDS=int(os.getenv("TWAP_WINDOW_SECONDS", defaults["TWAP_WINDOW_SECONDS"].default)),
            PRICE_HISTORY_SIZE=int(os.getenv("PRICE_HISTORY_SIZE", defaults["PRICE_HISTORY_SIZE"].default)),
            OCO_CANCELLATION_DELAY_SECONDS=int(
                os.getenv("OCO_CANCELLATION_DELAY_SECONDS", defaults["OCO_CANCELLATION_DELAY_SECONDS"].default)
            ),
            OCO_MAX_CANCELLATION_DELAY_SECONDS=int(
                os.getenv("OCO_MAX_CANCELLATION_DELAY_SECONDS", defaults["OCO_MAX_CANCELLATION_DELAY_SECONDS"].default)
            ),
            KEEPER_MAX_ACTIONS_PER_CALL=int(
                os.getenv("KEEPER_MAX_ACTIONS_PER_CALL", defaults["KEEPER_MAX_ACTIONS_PER_CALL"].default)
            ),
            KEEPER_OPEN_ACCESS=_env_bool("KEEPER_OPEN_ACCESS", False),
            KEEPER_POLL_INTERVAL_SECONDS=float(
                os.getenv("KEEPER_POLL_INTERVAL_SECONDS", defaults["KEEPER_POLL_INTERVAL_SECONDS"].default)
            ),
            KEEPER_MAX_FEE=_env_optional_int("KEEPER_MAX_FEE"),
            PERMISSIONLESS_REVEAL=_env_bool("PERMISSIONLESS_REVEAL", False),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
            LOG_FILE_PATH=os.getenv("LOG_FILE_PATH", defaults["LOG_FILE_PATH"].default),
        )

# Load settings immediately so a bad environment fails fast at import time.
settings = Settings.load_from_env()
