class TransportError(RuntimeError):
    """Connection or I/O failure that survived the transport's retries."""


class DeviceNotFoundError(TransportError):
    pass


class DecodeError(ValueError):
    """History response that is truncated or carries an unknown status byte."""


class FetchCancelled(Exception):
    pass
