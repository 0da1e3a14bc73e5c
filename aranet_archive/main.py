import logging
import signal
import sys
import threading
from types import FrameType

from .archive import iter_archive_records
from .aranet4.errors import FetchCancelled, TransportError
from .aranet4.pagination import PaginationOptions
from .aranet4.timeutil import format_timestamp
from .aranet4.transport import BleakTransport
from .config import Settings, load_settings
from .export import export_archive
from .history import fetch_history


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )


def _install_cancel_handler(cancel: threading.Event) -> None:
    # First Ctrl+C stops between pages; a second one interrupts immediately
    def _on_sigint(_signum: int, _frame: FrameType | None) -> None:
        logging.warning("Interrupt received; stopping after the current page")
        cancel.set()
        signal.signal(signal.SIGINT, signal.default_int_handler)

    signal.signal(signal.SIGINT, _on_sigint)


def pagination_options(settings: Settings) -> PaginationOptions:
    return PaginationOptions(
        start_index=settings.history_start_index,
        busy_status=settings.busy_status,
        busy_delay_secs=settings.busy_retry_delay_secs,
        max_busy_polls=settings.max_busy_polls,
    )


def make_transport(settings: Settings) -> BleakTransport:
    return BleakTransport(
        settings.device_name_pattern,
        address=settings.device_address,
        scan_timeout_secs=settings.scan_timeout_secs,
        connect_timeout_secs=settings.connect_timeout_secs,
        io_retries=settings.io_retries,
        io_retry_backoff_secs=settings.io_retry_backoff_secs,
    )


def main() -> None:
    settings = load_settings()
    _setup_logging(settings.log_level)

    cancel = threading.Event()
    _install_cancel_handler(cancel)

    transport = make_transport(settings)
    try:
        transport.connect()
        result = fetch_history(transport, pagination_options(settings), cancel)
    except FetchCancelled as exc:
        logging.warning("Archive cancelled: %s", exc)
        sys.exit(130)
    except TransportError as exc:
        logging.error("Archive failed: %s", exc)
        sys.exit(1)
    finally:
        transport.disconnect()

    if result.failed_kinds:
        logging.warning(
            "History incomplete for %s; archive holds fewer records",
            ", ".join(kind.name for kind in result.failed_kinds),
        )
    if len(result.table) == 0:
        logging.error("Device returned no history")
        sys.exit(1)
    span = result.table.timestamps()
    logging.info("History spans %s to %s", format_timestamp(span[0]), format_timestamp(span[-1]))

    paths = export_archive(
        iter_archive_records(result.table),
        device_name=transport.device_name,
        output_dir=settings.output_dir,
        output_format=settings.output_format,
    )
    for path in paths:
        print(path)


if __name__ == "__main__":
    main()
