from collections.abc import Iterator

from .aranet4.protocol import ParameterKind
from .history import RecordTable
from .models import ArchiveRecord


def iter_archive_records(table: RecordTable) -> Iterator[ArchiveRecord]:
    """Complete records in ascending timestamp order; incomplete rows are dropped."""
    for ts, row in table.complete_rows():
        yield ArchiveRecord(
            timestamp=ts,
            temperature=row[ParameterKind.TEMPERATURE],
            humidity=row[ParameterKind.HUMIDITY],
            pressure=row[ParameterKind.PRESSURE],
            co2=row[ParameterKind.CO2],
        )
