import logging
import sys

from ..config import load_settings
from ..main import make_transport
from .decoder import decode_current_reading, decode_u16
from .errors import DecodeError, TransportError
from .protocol import (
    CURRENT_READINGS_ATTRIBUTE,
    SINCE_UPDATE_ATTRIBUTE,
    TOTAL_READINGS_ATTRIBUTE,
    UPDATE_INTERVAL_ATTRIBUTE,
)


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    logging.info("Looking for %s", settings.device_address or settings.device_name_pattern)

    transport = make_transport(settings)
    try:
        with transport:
            total = decode_u16(transport.read(TOTAL_READINGS_ATTRIBUTE))
            interval = decode_u16(transport.read(UPDATE_INTERVAL_ATTRIBUTE))
            since_update = decode_u16(transport.read(SINCE_UPDATE_ATTRIBUTE))
            current = decode_current_reading(transport.read(CURRENT_READINGS_ATTRIBUTE))
    except (TransportError, DecodeError) as exc:
        print(f"Aranet4 check failed: {exc}", file=sys.stderr)
        sys.exit(1)

    print(f"{transport.device_name}\n{'=' * len(transport.device_name)}")
    print(f"Logged readings: {total} every {interval} s (last {since_update} s ago)")
    print(
        "Current: "
        f"co2={current.co2:.0f}ppm "
        f"temperature={current.temperature:.2f}C "
        f"pressure={current.pressure:.1f}mbar "
        f"humidity={current.humidity:.0f}% "
        f"battery={current.battery}%"
    )
    sys.exit(0)


if __name__ == "__main__":
    main()
