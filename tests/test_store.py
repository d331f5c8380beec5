"""Tests for the redis-py adapter in rudis.store.

The redis client is replaced with a MagicMock; these tests only check
that calls are forwarded correctly and that redis errors come back as
TransportError.
"""

from __future__ import annotations

import json
import unittest.mock as mock

import pytest
import redis

from rudis.store import (
    EndpointConfig,
    StoreConnection,
    StoreError,
    TransportError,
    open_connection,
)


@pytest.fixture()
def client():
    return mock.MagicMock(spec=redis.Redis)


@pytest.fixture()
def conn(client):
    return StoreConnection(client, name="test")


class TestScanPage:
    def test_forwards_cursor_pattern_and_count(self, conn, client):
        client.scan.return_value = (42, ["a", "b"])
        assert conn.scan_page(0, "user:*", 100) == (42, ["a", "b"])
        client.scan.assert_called_once_with(cursor=0, match="user:*", count=100)

    def test_cursor_coerced_to_int(self, conn, client):
        client.scan.return_value = ("0", [])
        assert conn.scan_page(17, "*") == (0, [])

    def test_error_translated(self, conn, client):
        client.scan.side_effect = redis.exceptions.ConnectionError("Connection reset by peer")
        with pytest.raises(TransportError) as excinfo:
            conn.scan_page(0, "*")
        assert excinfo.value.operation == "SCAN"
        assert "Connection reset by peer" in str(excinfo.value)
        assert isinstance(excinfo.value, StoreError)


class TestLookups:
    @pytest.mark.parametrize("reply,expected", [(120, 120), (-1, None), (-2, None)])
    def test_ttl(self, conn, client, reply, expected):
        client.ttl.return_value = reply
        assert conn.ttl("k") == expected

    def test_ttl_timeout(self, conn, client):
        client.ttl.side_effect = redis.exceptions.TimeoutError()
        with pytest.raises(TransportError) as excinfo:
            conn.ttl("k")
        assert "TimeoutError" in str(excinfo.value)

    def test_missing_key_type(self, conn, client):
        client.type.return_value = "none"
        assert conn.value_type("gone") is None

    def test_memory_usage(self, conn, client):
        client.memory_usage.return_value = 72
        assert conn.memory_usage("k") == 72
        client.memory_usage.return_value = None
        assert conn.memory_usage("k") is None


class TestFetchValue:
    def test_string(self, conn, client):
        client.type.return_value = "string"
        client.get.return_value = '{"a": 1}'
        assert conn.fetch_value("k") == '{"a": 1}'

    def test_missing(self, conn, client):
        client.type.return_value = "none"
        assert conn.fetch_value("k") is None
        client.get.assert_not_called()

    def test_hash(self, conn, client):
        client.type.return_value = "hash"
        client.hgetall.return_value = {"f": "v"}
        assert json.loads(conn.fetch_value("k")) == {"f": "v"}

    def test_list(self, conn, client):
        client.type.return_value = "list"
        client.lrange.return_value = ["x", "y"]
        assert json.loads(conn.fetch_value("k")) == ["x", "y"]
        client.lrange.assert_called_once_with("k", 0, -1)

    def test_set_is_sorted(self, conn, client):
        client.type.return_value = "set"
        client.smembers.return_value = {"b", "a"}
        assert json.loads(conn.fetch_value("k")) == ["a", "b"]

    def test_zset_keeps_scores(self, conn, client):
        client.type.return_value = "zset"
        client.zrange.return_value = [("m1", 1.0), ("m2", 2.5)]
        assert json.loads(conn.fetch_value("k")) == [["m1", 1.0], ["m2", 2.5]]

    def test_unsupported_type(self, conn, client):
        client.type.return_value = "stream"
        assert conn.fetch_value("k") == "<stream value cannot be displayed>"

    def test_read_error(self, conn, client):
        client.type.return_value = "string"
        client.get.side_effect = redis.exceptions.ResponseError("WRONGTYPE")
        with pytest.raises(TransportError) as excinfo:
            conn.fetch_value("k")
        assert excinfo.value.operation == "GET"


class TestBinaryData:
    """Replies arrive as bytes; names and values need not be UTF-8."""

    def test_non_utf8_key_from_scan(self, conn, client):
        client.scan.return_value = (0, [b"k\xff", b"plain"])
        assert conn.scan_page(0, "*") == (0, ["k\\xff", "plain"])

    def test_non_utf8_key_looked_up_by_raw_name(self, conn, client):
        client.scan.return_value = (0, [b"k\xff"])
        client.ttl.return_value = 30
        client.type.return_value = b"string"
        client.get.return_value = b"v"
        conn.scan_page(0, "*")
        assert conn.ttl("k\\xff") == 30
        client.ttl.assert_called_once_with(b"k\xff")
        assert conn.fetch_value("k\\xff") == "v"
        client.get.assert_called_once_with(b"k\xff")

    def test_non_utf8_string_value(self, conn, client):
        client.type.return_value = b"string"
        client.get.return_value = b"\x80\x81\xff"
        assert conn.fetch_value("blob") == "\\x80\\x81\\xff"

    def test_utf8_value_decoded(self, conn, client):
        client.type.return_value = b"string"
        client.get.return_value = "café".encode()
        assert conn.fetch_value("k") == "café"

    def test_binary_hash_fields(self, conn, client):
        client.type.return_value = b"hash"
        client.hgetall.return_value = {b"f\xfe": b"\xff", b"name": b"bob"}
        assert json.loads(conn.fetch_value("h")) == {"f\\xfe": "\\xff", "name": "bob"}

    def test_binary_set_and_zset(self, conn, client):
        client.type.return_value = b"set"
        client.smembers.return_value = {b"b", b"a\xff"}
        assert json.loads(conn.fetch_value("s")) == ["a\\xff", "b"]
        client.type.return_value = b"zset"
        client.zrange.return_value = [(b"m\xff", 1.0)]
        assert json.loads(conn.fetch_value("z")) == [["m\\xff", 1.0]]

    def test_type_reply_decoded(self, conn, client):
        client.type.return_value = b"list"
        assert conn.value_type("l") == "list"
        client.type.return_value = b"none"
        assert conn.value_type("gone") is None


class TestClose:
    def test_close(self, conn, client):
        conn.close()
        client.close.assert_called_once()

    def test_close_error_ignored(self, conn, client):
        client.close.side_effect = redis.exceptions.ConnectionError("gone")
        conn.close()


class TestOpenConnection:
    def test_builds_client_and_pings(self):
        endpoint = EndpointConfig(name="cache", host="10.0.0.1", port=6380,
                                  username="reader", password="pw", db=3)
        with mock.patch("rudis.store.redis.Redis") as redis_cls:
            conn = open_connection(endpoint, socket_timeout=2.0)
        kwargs = redis_cls.call_args.kwargs
        assert kwargs["host"] == "10.0.0.1"
        assert kwargs["port"] == 6380
        assert kwargs["db"] == 3
        assert kwargs["username"] == "reader"
        assert kwargs["password"] == "pw"
        assert kwargs["decode_responses"] is False
        assert kwargs["socket_timeout"] == 2.0
        redis_cls.return_value.ping.assert_called_once()
        assert conn.name == "cache"

    def test_refused(self):
        endpoint = EndpointConfig(name="down", host="127.0.0.1", port=1)
        with mock.patch("rudis.store.redis.Redis") as redis_cls:
            redis_cls.return_value.ping.side_effect = redis.exceptions.ConnectionError(
                "Error 111 connecting to 127.0.0.1:1. Connection refused."
            )
            with pytest.raises(TransportError) as excinfo:
                open_connection(endpoint)
        assert excinfo.value.operation == "CONNECT"
        assert "Connection refused" in str(excinfo.value)
        redis_cls.return_value.close.assert_called_once()
