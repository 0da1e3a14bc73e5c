from datetime import UTC, datetime

from .decoder import BatchHeader


def log_origin(header: BatchHeader, now: int) -> int:
    """Absolute time of log index 0, anchored on the client clock at read time."""
    return now - (header.offset_seconds + header.elapsed_batches * header.interval_seconds)


def sample_timestamp(header: BatchHeader, now: int, i: int) -> int:
    return log_origin(header, now) + (header.start_index + i) * header.interval_seconds


def format_timestamp(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
