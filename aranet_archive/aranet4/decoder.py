import struct
from dataclasses import dataclass
from typing import Final, NamedTuple

from .errors import DecodeError
from .protocol import (
    DEFAULT_BUSY_STATUS,
    HEADER_SIZE,
    START_HISTORY_COMMAND,
    ParameterKind,
    physical,
)

_HEADER: Final[struct.Struct] = struct.Struct("<BHHHHB")
_REQUEST: Final[struct.Struct] = struct.Struct("<BBH")
_CURRENT: Final[struct.Struct] = struct.Struct("<HhHBBBHH")


@dataclass(frozen=True)
class BatchHeader:
    interval_seconds: int
    elapsed_batches: int
    offset_seconds: int
    start_index: int
    record_count: int


class RawSample(NamedTuple):
    index: int
    value: int


@dataclass(frozen=True)
class Batch:
    header: BatchHeader
    samples: tuple[RawSample, ...]


@dataclass(frozen=True)
class InProgress:
    status: int


@dataclass(frozen=True)
class CurrentReading:
    co2: float
    temperature: float
    pressure: float
    humidity: float
    battery: int
    status: int
    interval_seconds: int
    ago_seconds: int


def encode_history_request(kind: ParameterKind, start_index: int) -> bytes:
    return _REQUEST.pack(START_HISTORY_COMMAND, int(kind), start_index)


def decode_batch(buf: bytes, kind: ParameterKind, busy_status: int = DEFAULT_BUSY_STATUS) -> Batch | InProgress:
    """Decode one read of the log attribute for ``kind``.

    The device echoes the requested kind's code once the page is ready and
    answers with the busy code while the page is still being assembled.
    """
    if not buf:
        raise DecodeError(f"empty {kind.name} history response")
    status = buf[0]
    if status != kind:
        if status == busy_status:
            return InProgress(status)
        raise DecodeError(f"unexpected status 0x{status:02X} in {kind.name} history response")
    if len(buf) < HEADER_SIZE:
        raise DecodeError(f"{kind.name} history response too short for header: {len(buf)} bytes")

    _, interval, elapsed, offset, start, count = _HEADER.unpack_from(buf)
    header = BatchHeader(
        interval_seconds=interval,
        elapsed_batches=elapsed,
        offset_seconds=offset,
        start_index=start,
        record_count=count,
    )
    end = HEADER_SIZE + count * kind.width
    if len(buf) < end:
        raise DecodeError(f"{kind.name} history response truncated: expected {end} bytes, got {len(buf)}")

    samples: list[RawSample] = []
    for i, (value,) in enumerate(struct.iter_unpack(kind.sample_format, buf[HEADER_SIZE:end])):
        # Zero after the first slot marks a slot with no logged reading
        if value == 0 and i > 0:
            continue
        samples.append(RawSample(i, value))
    return Batch(header, tuple(samples))


def decode_u16(buf: bytes) -> int:
    if len(buf) != 2:
        raise DecodeError(f"expected a 2 byte value, got {len(buf)} bytes")
    (value,) = struct.unpack("<H", buf)
    return int(value)


def decode_current_reading(buf: bytes) -> CurrentReading:
    if len(buf) < _CURRENT.size:
        raise DecodeError(f"current readings response too short: {len(buf)} bytes")
    co2, temperature, pressure, humidity, battery, status, interval, ago = _CURRENT.unpack_from(buf)
    return CurrentReading(
        co2=physical(ParameterKind.CO2, co2),
        temperature=physical(ParameterKind.TEMPERATURE, temperature),
        pressure=physical(ParameterKind.PRESSURE, pressure),
        humidity=physical(ParameterKind.HUMIDITY, humidity),
        battery=battery,
        status=status,
        interval_seconds=interval,
        ago_seconds=ago,
    )
