import asyncio
import logging
import re
import time
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

from bleak import BleakClient, BleakScanner
from bleak.backends.device import BLEDevice
from bleak.exc import BleakError

from .errors import DeviceNotFoundError, TransportError

T = TypeVar("T")

_IO_ERRORS = (BleakError, asyncio.TimeoutError, OSError)


class BleakTransport:
    """Blocking GATT read/write on one Aranet4, driven by a private event loop.

    Reads and writes are retried ``io_retries`` times, reconnecting when the
    link dropped. Exhausted retries raise TransportError.
    """

    def __init__(
        self,
        name_pattern: str,
        address: str | None = None,
        scan_timeout_secs: float = 5.0,
        connect_timeout_secs: float = 20.0,
        io_retries: int = 3,
        io_retry_backoff_secs: float = 2.0,
    ) -> None:
        self._name_pattern = re.compile(name_pattern)
        self._address = address
        self._scan_timeout = float(scan_timeout_secs)
        self._connect_timeout = float(connect_timeout_secs)
        self._io_retries = max(1, int(io_retries))
        self._io_backoff = max(0.0, float(io_retry_backoff_secs))
        self._loop = asyncio.new_event_loop()
        self._device: BLEDevice | None = None
        self._client: BleakClient | None = None

    @property
    def device_name(self) -> str:
        if self._device is None:
            return self._address or "unknown"
        return self._device.name or self._device.address

    def __enter__(self) -> "BleakTransport":
        self.connect()
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.disconnect()

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        return self._loop.run_until_complete(coro)

    async def _discover(self) -> BLEDevice:
        if self._address:
            device = await BleakScanner.find_device_by_address(self._address, timeout=self._scan_timeout)
            if device is None:
                raise DeviceNotFoundError(f"No device with address {self._address}")
            return device
        devices = await BleakScanner.discover(timeout=self._scan_timeout)
        for device in devices:
            if device.name and self._name_pattern.search(device.name):
                return device
        raise DeviceNotFoundError(f"No device matching {self._name_pattern.pattern!r} among {len(devices)} found")

    async def _connect(self) -> None:
        if self._device is None:
            self._device = await self._discover()
            logging.info("Found %s (%s)", self._device.name, self._device.address)
        self._client = BleakClient(self._device, timeout=self._connect_timeout)
        await self._client.connect()
        logging.info("Connected to %s", self.device_name)

    def connect(self) -> None:
        self._with_retries("connect", self._connect)

    def _with_retries(self, what: str, op: Callable[[], Coroutine[Any, Any, T]]) -> T:
        last: Exception | None = None
        for attempt in range(1, self._io_retries + 1):
            try:
                return self._run(op())
            except _IO_ERRORS as exc:
                last = exc
                logging.warning("%s failed (attempt %s/%s): %s", what, attempt, self._io_retries, exc)
                if attempt < self._io_retries:
                    time.sleep(self._io_backoff)
        raise TransportError(f"{what} failed after {self._io_retries} attempts: {last}") from last

    async def _ensure_connected(self) -> BleakClient:
        if self._client is None or not self._client.is_connected:
            await self._connect()
        assert self._client is not None
        return self._client

    def read(self, attribute_id: str) -> bytes:
        async def _read() -> bytes:
            client = await self._ensure_connected()
            return bytes(await client.read_gatt_char(attribute_id))

        return self._with_retries(f"read {attribute_id}", _read)

    def write(self, attribute_id: str, data: bytes) -> None:
        async def _write() -> None:
            client = await self._ensure_connected()
            await client.write_gatt_char(attribute_id, data, response=True)

        self._with_retries(f"write {attribute_id}", _write)

    def disconnect(self) -> None:
        """Best effort; never raises."""
        if self._loop.is_closed():
            return
        if self._client is not None:
            try:
                self._run(self._client.disconnect())
            except Exception as exc:  # noqa: BLE001
                logging.debug("Disconnect failed: %s", exc)
            self._client = None
        self._loop.close()
