from enum import IntEnum
from typing import Final, NamedTuple

# GATT characteristics (Aranet4 firmware >= 1.2)
HISTORY_CONTROL_ATTRIBUTE: Final[str] = "f0cd1402-95da-4f4b-9ac8-aa55d312af0c"
LOG_DATA_ATTRIBUTE: Final[str] = "f0cd2005-95da-4f4b-9ac8-aa55d312af0c"
TOTAL_READINGS_ATTRIBUTE: Final[str] = "f0cd2001-95da-4f4b-9ac8-aa55d312af0c"
UPDATE_INTERVAL_ATTRIBUTE: Final[str] = "f0cd2002-95da-4f4b-9ac8-aa55d312af0c"
SINCE_UPDATE_ATTRIBUTE: Final[str] = "f0cd2004-95da-4f4b-9ac8-aa55d312af0c"
CURRENT_READINGS_ATTRIBUTE: Final[str] = "f0cd3001-95da-4f4b-9ac8-aa55d312af0c"

START_HISTORY_COMMAND: Final[int] = 0x61
DEFAULT_BUSY_STATUS: Final[int] = 0x00
HEADER_SIZE: Final[int] = 10
MAX_LOG_INDEX: Final[int] = 0xFFFF


class ParameterKind(IntEnum):
    """Logged quantity; the value is the code the device uses on the wire."""

    CO2 = 4
    TEMPERATURE = 1
    HUMIDITY = 2
    PRESSURE = 3

    @property
    def width(self) -> int:
        return _ENCODINGS[self].width

    @property
    def signed(self) -> bool:
        return _ENCODINGS[self].signed

    @property
    def sample_format(self) -> str:
        return _ENCODINGS[self].sample_format

    @property
    def label(self) -> str:
        return _ENCODINGS[self].label

    @property
    def column(self) -> str:
        return _ENCODINGS[self].column


class _Encoding(NamedTuple):
    width: int
    signed: bool
    divisor: int
    label: str
    column: str

    @property
    def sample_format(self) -> str:
        code = {1: "b", 2: "h"}[self.width]
        return "<" + (code if self.signed else code.upper())


# Raw-to-physical table. Physical value = raw / divisor.
_ENCODINGS: Final[dict[ParameterKind, _Encoding]] = {
    ParameterKind.CO2: _Encoding(2, False, 1, "CO₂ (ppm)", "co2"),
    ParameterKind.TEMPERATURE: _Encoding(2, True, 20, "Temperature (°C)", "temperature"),
    ParameterKind.PRESSURE: _Encoding(2, False, 10, "Pressure (mbar)", "pressure"),
    ParameterKind.HUMIDITY: _Encoding(1, False, 1, "Humidity (%)", "humidity"),
}


def physical(kind: ParameterKind, raw: int) -> float:
    return raw / _ENCODINGS[kind].divisor
