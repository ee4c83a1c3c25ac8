import json

import pytest

from sqzproxy.errors import ErrorKind, ProxyError
from sqzproxy.store import RecordNotFound, StoreError


@pytest.mark.parametrize(
    "kind, status, type_name",
    [
        (ErrorKind.UPSTREAM, 502, "upstream_error"),
        (ErrorKind.DESERIALIZATION, 400, "deserialization_error"),
        (ErrorKind.COMPRESSION, 500, "compression_error"),
        (ErrorKind.STORE, 500, "store_error"),
        (ErrorKind.CONFIG, 500, "config_error"),
        (ErrorKind.NOT_FOUND, 404, "not_found"),
        (ErrorKind.INTERNAL, 500, "internal_error"),
    ],
)
def test_response_status_and_type(kind, status, type_name):
    response = ProxyError(kind, "detail").to_response()
    assert response.status_code == status
    body = json.loads(response.body)
    assert body["error"]["type"] == type_name


def test_message_includes_detail():
    err = ProxyError(ErrorKind.UPSTREAM, "boom")
    assert str(err) == "upstream error: boom"
    body = json.loads(err.to_response().body)
    assert body["error"]["message"] == "upstream error: boom"


def test_not_found_message():
    assert str(ProxyError(ErrorKind.NOT_FOUND)) == "not found"


def test_from_store_not_found():
    err = ProxyError.from_store_error(RecordNotFound())
    assert err.kind is ErrorKind.NOT_FOUND
    assert err.status == 404


def test_from_other_store_error():
    err = ProxyError.from_store_error(StoreError("SQLite error: locked"))
    assert err.kind is ErrorKind.STORE
    assert err.detail == "SQLite error: locked"
    assert str(err) == "store error: SQLite error: locked"


def test_proxy_error_is_raisable():
    err = ProxyError(ErrorKind.CONFIG, "bad rules")
    assert err.status == 500
    assert err.kind.type_name == "config_error"
    with pytest.raises(ProxyError, match="config error: bad rules") as info:
        raise err
    assert info.value.detail == "bad rules"