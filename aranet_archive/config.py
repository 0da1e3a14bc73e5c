import contextlib
import os
from enum import StrEnum
from typing import Final

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .aranet4.protocol import DEFAULT_BUSY_STATUS


class LogLevel(StrEnum):
    CRITICAL = "CRITICAL"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"
    DEBUG = "DEBUG"


class OutputFormat(StrEnum):
    CSV = "csv"
    PARQUET = "parquet"
    BOTH = "both"


class Settings(BaseModel):
    device_name_pattern: str = Field(default="Aranet4", validation_alias="DEVICE_NAME_PATTERN")
    device_address: str | None = Field(default=None, validation_alias="DEVICE_ADDRESS")
    scan_timeout_secs: float = Field(default=5.0, gt=0, validation_alias="SCAN_TIMEOUT_SECS")
    connect_timeout_secs: float = Field(default=20.0, gt=0, validation_alias="CONNECT_TIMEOUT_SECS")

    # Connection-level retry for every GATT read/write
    io_retries: int = Field(default=3, ge=1, validation_alias="IO_RETRIES")
    io_retry_backoff_secs: float = Field(default=2.0, ge=0, validation_alias="IO_RETRY_BACKOFF_SECS")

    # History pagination; busy code and delay are pinned against real hardware
    busy_status: int = Field(default=DEFAULT_BUSY_STATUS, ge=0, le=0xFF, validation_alias="BUSY_STATUS")
    busy_retry_delay_secs: float = Field(default=1.0, ge=0, validation_alias="BUSY_RETRY_DELAY_SECS")
    max_busy_polls: int = Field(default=30, ge=1, validation_alias="MAX_BUSY_POLLS")
    history_start_index: int = Field(default=1, ge=0, le=0xFFFF, validation_alias="HISTORY_START_INDEX")

    output_dir: str = Field(default=".", validation_alias="OUTPUT_DIR")
    output_format: OutputFormat = Field(default=OutputFormat.CSV, validation_alias="OUTPUT_FORMAT")
    log_level: LogLevel = Field(default=LogLevel.INFO, validation_alias="LOG_LEVEL")


ENV_KEYS: Final[tuple[str, ...]] = (
    "DEVICE_NAME_PATTERN",
    "DEVICE_ADDRESS",
    "SCAN_TIMEOUT_SECS",
    "CONNECT_TIMEOUT_SECS",
    "IO_RETRIES",
    "IO_RETRY_BACKOFF_SECS",
    "BUSY_STATUS",
    "BUSY_RETRY_DELAY_SECS",
    "MAX_BUSY_POLLS",
    "HISTORY_START_INDEX",
    "OUTPUT_DIR",
    "OUTPUT_FORMAT",
    "LOG_LEVEL",
)


def load_settings() -> Settings:
    # Load .env if present (does nothing if file missing)
    load_dotenv()
    data: dict[str, str] = {}
    for key in ENV_KEYS:
        if key in os.environ:
            data[key] = os.environ[key]

    # Protocol bytes may be given in hex
    for key in ("BUSY_STATUS", "HISTORY_START_INDEX"):
        if key in data:
            val = data[key]
            with contextlib.suppress(ValueError):
                data[key] = str(int(val, 0))
    if "OUTPUT_FORMAT" in data:
        data["OUTPUT_FORMAT"] = data["OUTPUT_FORMAT"].lower()
    if "LOG_LEVEL" in data:
        data["LOG_LEVEL"] = data["LOG_LEVEL"].upper()

    try:
        return Settings.model_validate(data)
    except ValidationError as e:
        invalid = sorted({str(err["loc"][0]) for err in e.errors() if err["loc"]})
        raise RuntimeError(f"Invalid configuration: {', '.join(invalid)}") from e
