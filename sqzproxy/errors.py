"""Errors raised by the proxy and their HTTP representation."""

from __future__ import annotations

from enum import Enum

from starlette.responses import JSONResponse

from .store import RecordNotFound, StoreError


class ErrorKind(Enum):
    """The categories of proxy error, with their HTTP status and label."""

    UPSTREAM = ("upstream_error", 502, "upstream error")
    DESERIALIZATION = ("deserialization_error", 400, "deserialization error")
    COMPRESSION = ("compression_error", 500, "compression error")
    STORE = ("store_error", 500, "store error")
    CONFIG = ("config_error", 500, "config error")
    NOT_FOUND = ("not_found", 404, "not found")
    INTERNAL = ("internal_error", 500, "internal error")

    def __init__(self, type_name: str, status: int, label: str) -> None:
        self.type_name = type_name
        self.status = status
        self.label = label


class ProxyError(Exception):
    """An error that is reported to the client as a JSON error body."""

    def __init__(self, kind: ErrorKind, detail: str = "") -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.kind is ErrorKind.NOT_FOUND:
            return self.kind.label
        return f"{self.kind.label}: {self.detail}"

    @property
    def status(self) -> int:
        return self.kind.status

    @classmethod
    def from_store_error(cls, err: StoreError) -> "ProxyError":
        """Map a store failure; a missing record becomes ``NOT_FOUND``."""
        if isinstance(err, RecordNotFound):
            return cls(ErrorKind.NOT_FOUND)
        return cls(ErrorKind.STORE, str(err))

    def to_response(self) -> JSONResponse:
        body = {"error": {"message": str(self), "type": self.kind.type_name}}
        return JSONResponse(body, status_code=self.kind.status)