"""Custom exception hierarchy for pytasmota."""

from __future__ import annotations


class TasmotaError(Exception):
    """Base exception for all pytasmota errors."""


class TasmotaConfigError(TasmotaError):
    """Invalid or missing connection settings."""


class TasmotaTransportError(TasmotaError):
    """Broker-level failure (connect refused, auth failure, forced close).

    Never raised out of the event path: the client records it as
    ``last_error`` and hands it to the ``on_error`` callback.
    """

    def __init__(
        self,
        message: str,
        *,
        host: str = "",
        port: int | None = None,
        reason_code: int | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.reason_code = reason_code
        super().__init__(message)
