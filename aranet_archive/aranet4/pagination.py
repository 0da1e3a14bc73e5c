import logging
import threading
import time
from collections.abc import Iterator
from dataclasses import dataclass
from typing import NamedTuple, Protocol

from .decoder import Batch, decode_batch, encode_history_request
from .errors import DecodeError, FetchCancelled, TransportError
from .protocol import (
    DEFAULT_BUSY_STATUS,
    HISTORY_CONTROL_ATTRIBUTE,
    LOG_DATA_ATTRIBUTE,
    MAX_LOG_INDEX,
    ParameterKind,
)
from .timeutil import sample_timestamp


class HistoryTransport(Protocol):
    def read(self, attribute_id: str) -> bytes: ...

    def write(self, attribute_id: str, data: bytes) -> None: ...


@dataclass(frozen=True)
class PaginationOptions:
    start_index: int = 1
    busy_status: int = DEFAULT_BUSY_STATUS
    busy_delay_secs: float = 1.0
    max_busy_polls: int = 30


class HistorySample(NamedTuple):
    timestamp: int
    raw: int
    interval_seconds: int


def _read_page(transport: HistoryTransport, kind: ParameterKind, options: PaginationOptions) -> tuple[Batch, int]:
    """Read the log attribute until the device has the page ready.

    Returns the batch and the wall clock captured right before the read that
    produced it.
    """
    polls = 0
    while True:
        now = int(time.time())
        result = decode_batch(transport.read(LOG_DATA_ATTRIBUTE), kind, options.busy_status)
        if isinstance(result, Batch):
            return result, now
        polls += 1
        if polls >= options.max_busy_polls:
            raise TransportError(f"device still busy after {polls} polls of {kind.name} history")
        logging.debug("%s history busy (status 0x%02X); retrying in %ss", kind.name, result.status, options.busy_delay_secs)
        time.sleep(options.busy_delay_secs)


def iter_parameter_history(
    transport: HistoryTransport,
    kind: ParameterKind,
    options: PaginationOptions | None = None,
    cancel: threading.Event | None = None,
) -> Iterator[HistorySample]:
    """Page through the on-device log of one parameter kind.

    Samples are yielded page by page. A DecodeError stops the iteration after
    the samples of earlier pages have been yielded; transport failures propagate.
    Cancellation is only honored before a page is requested.
    """
    options = options or PaginationOptions()
    index = options.start_index
    while True:
        if cancel is not None and cancel.is_set():
            raise FetchCancelled(f"{kind.name} history fetch cancelled at index {index}")

        transport.write(HISTORY_CONTROL_ATTRIBUTE, encode_history_request(kind, index))
        batch, now = _read_page(transport, kind, options)
        header = batch.header
        logging.debug(
            "%s page: start=%s count=%s interval=%ss",
            kind.name,
            header.start_index,
            header.record_count,
            header.interval_seconds,
        )
        if header.record_count == 0:
            return

        for sample in batch.samples:
            yield HistorySample(sample_timestamp(header, now, sample.index), sample.value, header.interval_seconds)
        index += header.record_count
        if index > MAX_LOG_INDEX:
            raise DecodeError(f"{kind.name} history runs past log index {MAX_LOG_INDEX}")
