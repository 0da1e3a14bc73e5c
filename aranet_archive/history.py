import logging
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from .aranet4.errors import DecodeError
from .aranet4.pagination import HistoryTransport, PaginationOptions, iter_parameter_history
from .aranet4.protocol import ParameterKind, physical


class DuplicateSampleError(RuntimeError):
    pass


class RecordTable:
    """Timestamp-indexed readings, one optional slot per parameter kind."""

    def __init__(self) -> None:
        self._rows: dict[int, dict[ParameterKind, float]] = {}

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, timestamp: object) -> bool:
        return timestamp in self._rows

    def set(self, timestamp: int, kind: ParameterKind, value: float) -> None:
        row = self._rows.setdefault(timestamp, {})
        if kind in row:
            raise DuplicateSampleError(f"{kind.name} already recorded at {timestamp}")
        row[kind] = value

    def get(self, timestamp: int) -> dict[ParameterKind, float]:
        return dict(self._rows.get(timestamp, {}))

    def timestamps(self, kind: ParameterKind | None = None) -> list[int]:
        return sorted(ts for ts, row in self._rows.items() if kind is None or kind in row)

    def complete_rows(self) -> Iterator[tuple[int, dict[ParameterKind, float]]]:
        """Rows holding all four kinds, oldest first."""
        for ts in sorted(self._rows):
            row = self._rows[ts]
            if len(row) == len(ParameterKind):
                yield ts, dict(row)


class PhaseAligner:
    """Snaps timestamps onto the grid of the first kind seen.

    Each kind's log starts at its own offset, so the same measurement occasion
    can be a few seconds apart between kinds. Timestamps are moved to the
    nearest grid point ``reference_phase + n * interval``, which pairs kinds
    whose drift from the reference is under half an interval either way. A kind
    logged at a different interval cannot share the grid and is rejected.
    """

    def __init__(self) -> None:
        self.reference_kind: ParameterKind | None = None
        self.reference_phase: int | None = None
        self.interval: int | None = None

    def align(self, kind: ParameterKind, timestamp: int, interval: int) -> int:
        if interval <= 0:
            raise DecodeError(f"{kind.name} history reports interval {interval}s")
        if self.reference_phase is None or self.interval is None:
            self.reference_kind = kind
            self.interval = interval
            self.reference_phase = timestamp % interval
            return timestamp
        if interval != self.interval:
            reference = self.reference_kind.name if self.reference_kind else "reference"
            raise DecodeError(f"{kind.name} logged every {interval}s but {reference} every {self.interval}s")
        offset = (timestamp - self.reference_phase) % self.interval
        if offset * 2 > self.interval:
            return timestamp - offset + self.interval
        return timestamp - offset


@dataclass
class HistoryResult:
    table: RecordTable
    failed_kinds: list[ParameterKind] = field(default_factory=list)
    sample_counts: dict[ParameterKind, int] = field(default_factory=dict)


def fetch_history(
    transport: HistoryTransport,
    options: PaginationOptions | None = None,
    cancel: threading.Event | None = None,
    kinds: Iterable[ParameterKind] = tuple(ParameterKind),
) -> HistoryResult:
    """Fetch every kind's log, one after another, into a single RecordTable.

    A DecodeError loses only the rest of that kind's history. TransportError and
    FetchCancelled abort the whole fetch.
    """
    result = HistoryResult(table=RecordTable())
    aligner = PhaseAligner()
    for kind in kinds:
        count = 0
        try:
            for sample in iter_parameter_history(transport, kind, options, cancel):
                ts = aligner.align(kind, sample.timestamp, sample.interval_seconds)
                result.table.set(ts, kind, physical(kind, sample.raw))
                count += 1
        except DecodeError as exc:
            logging.warning("%s history aborted after %s samples: %s", kind.name, count, exc)
            result.failed_kinds.append(kind)
        else:
            logging.info("Fetched %s %s samples", count, kind.name)
        result.sample_counts[kind] = count
    return result
