import struct

from aranet_archive.aranet4.protocol import (
    DEFAULT_BUSY_STATUS,
    HISTORY_CONTROL_ATTRIBUTE,
    LOG_DATA_ATTRIBUTE,
    START_HISTORY_COMMAND,
    ParameterKind,
)

NOW = 1738621029


def make_batch(
    kind: ParameterKind,
    samples: list[int],
    interval: int = 300,
    elapsed: int = 0,
    offset: int = 0,
    start: int = 1,
    status: int | None = None,
    count: int | None = None,
) -> bytes:
    status = int(kind) if status is None else status
    count = len(samples) if count is None else count
    body = b"".join(struct.pack(kind.sample_format, v) for v in samples)
    return struct.pack("<BHHHHB", status, interval, elapsed, offset, start, count) + body


class FakeAranet:
    """Serves per-kind logs the way the device pages them over GATT.

    ``ago`` is the per-kind offset in seconds, ``busy_reads`` the number of busy
    responses after each request, ``intervals`` overrides the logging interval of
    single kinds and ``truncate_at`` maps a kind to the start
    index of the page that comes back one byte short.
    """

    def __init__(
        self,
        logs: dict[ParameterKind, list[int]],
        interval: int = 300,
        ago: dict[ParameterKind, int] | None = None,
        page_size: int = 3,
        busy_reads: int = 0,
        truncate_at: dict[ParameterKind, int] | None = None,
        intervals: dict[ParameterKind, int] | None = None,
    ) -> None:
        self.logs = logs
        self.interval = interval
        self.ago = ago or {}
        self.page_size = page_size
        self.busy_reads = busy_reads
        self.truncate_at = truncate_at or {}
        self.intervals = intervals or {}
        self.writes: list[bytes] = []
        self.reads = 0
        self._kind: ParameterKind | None = None
        self._start = 0
        self._busy_left = 0

    def write(self, attribute_id: str, data: bytes) -> None:
        assert attribute_id == HISTORY_CONTROL_ATTRIBUTE
        command, code, start = struct.unpack("<BBH", data)
        assert command == START_HISTORY_COMMAND
        self._kind = ParameterKind(code)
        self._start = start
        self._busy_left = self.busy_reads
        self.writes.append(data)

    def read(self, attribute_id: str) -> bytes:
        assert attribute_id == LOG_DATA_ATTRIBUTE
        assert self._kind is not None, "read before any history request"
        self.reads += 1
        if self._busy_left > 0:
            self._busy_left -= 1
            return bytes([DEFAULT_BUSY_STATUS])
        kind = self._kind
        values = self.logs.get(kind, [])
        page = values[self._start - 1 : self._start - 1 + self.page_size]
        buf = make_batch(
            kind,
            page,
            interval=self.intervals.get(kind, self.interval),
            elapsed=len(values),
            offset=self.ago.get(kind, 0),
            start=self._start,
        )
        if page and self.truncate_at.get(kind) == self._start:
            return buf[:-1]
        return buf

    def expected_timestamp(self, kind: ParameterKind, index: int) -> int:
        """Timestamp of 1-based log ``index`` as the client reconstructs it at NOW."""
        total = len(self.logs[kind])
        return NOW - self.ago.get(kind, 0) - (total - index) * self.intervals.get(kind, self.interval)


# Six logged occasions; every kind's log started a few seconds apart
LOGS = {
    ParameterKind.CO2: [400, 410, 420, 430, 440, 450],
    ParameterKind.TEMPERATURE: [440, 442, 444, 446, 448, 450],
    ParameterKind.HUMIDITY: [40, 41, 42, 43, 44, 45],
    ParameterKind.PRESSURE: [10130, 10131, 10132, 10133, 10134, 10135],
}
AGO = {
    ParameterKind.CO2: 50,
    ParameterKind.TEMPERATURE: 52,
    ParameterKind.HUMIDITY: 48,
    ParameterKind.PRESSURE: 51,
}
