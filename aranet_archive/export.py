import logging
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Final

import pandas as pd
import pyarrow as pa
import pyarrow.parquet as pq

from .aranet4.protocol import ParameterKind
from .config import OutputFormat
from .models import ArchiveRecord

# Column order of the exported archive
COLUMN_KINDS: Final[tuple[ParameterKind, ...]] = (
    ParameterKind.TEMPERATURE,
    ParameterKind.HUMIDITY,
    ParameterKind.PRESSURE,
    ParameterKind.CO2,
)
PARQUET_DTYPES: Final[dict[str, str]] = {
    "timestamp": "int64",
    "temperature": "float32",
    "humidity": "int32",
    "pressure": "float32",
    "co2": "int32",
}
PARQUET_COMPRESSION_LEVEL: Final[int] = 1


def archive_frame(records: Iterable[ArchiveRecord]) -> pd.DataFrame:
    columns = ["timestamp"] + [kind.column for kind in COLUMN_KINDS]
    rows = [record.model_dump() for record in records]
    if not rows:
        dtypes = {col: "float64" for col in columns}
        dtypes["timestamp"] = "int64"
        return pd.DataFrame(columns=columns).astype(dtypes)
    return pd.DataFrame(rows, columns=columns)


def history_filename(device_name: str, suffix: str, now: datetime | None = None) -> str:
    now = now or datetime.now().astimezone()
    return f"{now.isoformat(timespec='seconds')}_{device_name.replace(' ', '_')}_history.{suffix}"


def write_csv(frame: pd.DataFrame, path: Path) -> None:
    out = frame.rename(columns={kind.column: kind.label for kind in COLUMN_KINDS})
    out.to_csv(path, index=False)


def write_parquet(frame: pd.DataFrame, path: Path) -> None:
    out = frame.copy()
    for col in ("humidity", "co2"):
        out[col] = out[col].round()
    table = pa.Table.from_pandas(out.astype(PARQUET_DTYPES), preserve_index=False)
    metadata = dict(table.schema.metadata or {})
    metadata[b"timestamp_unit"] = b"UNIX time"
    for kind in COLUMN_KINDS:
        metadata[f"{kind.column}_unit".encode()] = kind.label.encode()
    table = table.replace_schema_metadata(metadata)
    pq.write_table(table, path, compression="zstd", compression_level=PARQUET_COMPRESSION_LEVEL)


def export_archive(
    records: Iterable[ArchiveRecord],
    device_name: str,
    output_dir: str | Path,
    output_format: OutputFormat = OutputFormat.CSV,
    now: datetime | None = None,
) -> list[Path]:
    """Write the archive in the requested format(s) and return the written paths."""
    frame = archive_frame(records)
    out_dir = Path(output_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    now = now or datetime.now().astimezone()

    paths: list[Path] = []
    if output_format in (OutputFormat.CSV, OutputFormat.BOTH):
        path = out_dir / history_filename(device_name, "csv", now)
        write_csv(frame, path)
        paths.append(path)
    if output_format in (OutputFormat.PARQUET, OutputFormat.BOTH):
        path = out_dir / history_filename(device_name, "parquet", now)
        write_parquet(frame, path)
        paths.append(path)
    for path in paths:
        logging.info("Wrote %s records to %s", len(frame), path)
    return paths
