"""
Socket-level tests: a real server on a loopback port, raw bytes in and out.
"""

import json
import logging
import socket

import pytest

from simplehttp import HTTPServer, ServerConfig, create_app, ProtocolVersion, VersionError
from simplehttp.http import NOT_FOUND_PAGE


class TestExchanges:
    """Every test here runs once with pool dispatch and once sequentially."""

    def test_serves_file(self, test_server):
        response = test_server.request(b"GET /readme.txt HTTP/1.1\r\nHost: x\r\n\r\n")

        assert response == (
            b"HTTP/1.1 200 OK\n"
            b"accept-ranges:bytes\n"
            b"content-length: 2\r\n"
            b"\r\n"
            b"hi"
        )

    def test_root_not_found(self, test_server):
        response = test_server.request(b"GET / HTTP/1.1\r\n\r\n")

        assert response.startswith(b"HTTP/1.1 404 Not Found\naccept-ranges:none\n")
        assert response.endswith(NOT_FOUND_PAGE.encode())

    def test_directory_not_found(self, test_server):
        response = test_server.request(b"GET /somedir HTTP/2\r\n\r\n")
        length = len(NOT_FOUND_PAGE.encode())

        assert response.startswith(b"HTTP/2 404 Not Found\n")
        assert f"content-length: {length}\r\n".encode() in response
        assert response.endswith(NOT_FOUND_PAGE.encode())

    def test_post_with_body(self, test_server):
        raw = b"POST /readme.txt HTTP/1.1\r\nContent-Length: 3\r\n\r\nabc"
        assert test_server.request(raw).endswith(b"\r\n\r\nhi")

    def test_missing_version_gets_no_response(self, test_server):
        assert test_server.request(b"GET /readme.txt\r\n\r\n") == b""

    def test_empty_connection_gets_no_response(self, test_server):
        assert test_server.request(b"") == b""

    def test_traversal_refused(self, test_server):
        response = test_server.request(b"GET /../../../../etc/passwd HTTP/1.1\r\n\r\n")
        assert response.startswith(b"HTTP/1.1 404 Not Found\n")

    def test_many_connections(self, test_server):
        for _ in range(10):
            assert test_server.request(b"GET /readme.txt HTTP/1.1\r\n\r\n").endswith(b"hi")

        assert test_server.server.served == 10

    def test_truncated_headers_still_answered(self, test_server):
        """Exactly buffer_size bytes: the tail of the headers is cut off."""
        head = b"GET /readme.txt HTTP/1.1\r\nX-Big: "
        raw = head + b"a" * (1024 - len(head))

        assert test_server.request(raw).endswith(b"hi")


class TestStalledClient:

    def test_unterminated_request_answered(self, config, make_server):
        """Client sends headers without the blank line and waits for a reply."""
        config.timeout = 0.5
        test_srv = make_server(config)

        with socket.create_connection(("127.0.0.1", test_srv.port), timeout=5.0) as s:
            s.sendall(b"GET /readme.txt HTTP/1.1\r\nHost: x\r\n")
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)

        response = b"".join(chunks)
        assert response.startswith(b"HTTP/1.1 200 OK\n")
        assert response.endswith(b"hi")


class TestAccessLog:

    def test_records_exchange(self, test_server, caplog):
        caplog.set_level(logging.INFO, logger="simplehttp.access")

        test_server.request(b"GET /readme.txt HTTP/1.1\r\n\r\n")

        records = [r for r in caplog.records if r.name == "simplehttp.access"]
        assert len(records) == 1
        assert '"GET readme.txt HTTP/1.1" 200 2' in records[0].getMessage()

    def test_records_aborted_exchange(self, test_server, caplog):
        caplog.set_level(logging.INFO, logger="simplehttp.access")

        test_server.request(b"GET /readme.txt\r\n\r\n")

        records = [r for r in caplog.records if r.name == "simplehttp.access"]
        assert len(records) == 1
        assert records[0].levelno == logging.WARNING
        assert "(VersionError)" in records[0].getMessage()

    @pytest.mark.parametrize("test_server", ["sequential"], indirect=True)
    def test_json_format(self, test_server, caplog):
        test_server.server.config.log_format = "json"
        caplog.set_level(logging.INFO, logger="simplehttp.access")

        test_server.request(b"GET /nope HTTP/2\r\n\r\n")

        record = next(r for r in caplog.records if r.name == "simplehttp.access")
        data = json.loads(record.getMessage())
        assert data["status_code"] == 404
        assert data["path"] == "nope"
        assert data["version"] == "HTTP/2"
        assert data["outcome"] == "ok"


class TestServerLifecycle:

    def test_binds_free_port(self, test_server):
        host, port = test_server.server.address

        assert host == "127.0.0.1"
        assert port != 0

    def test_fixed_port(self, config, free_port, make_server):
        config.port = free_port
        test_srv = make_server(config)

        assert test_srv.port == free_port
        assert test_srv.request(b"GET /readme.txt HTTP/1.1\r\n\r\n").endswith(b"hi")

    def test_shutdown_stops_accepting(self, config, make_server):
        test_srv = make_server(config)
        port = test_srv.port

        assert test_srv.server.wait_for_shutdown(timeout=0.1) is False
        test_srv.stop()
        assert test_srv.server.wait_for_shutdown(timeout=5.0) is True

        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0)

    def test_invalid_config_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            HTTPServer(ServerConfig(root_dir=str(tmp_path / "missing")))


class TestRespond:
    """HTTPServer.respond(): the full pipeline without sockets."""

    def test_respond(self, config):
        server = HTTPServer(config)
        assert server.respond(b"GET /readme.txt HTTP/2.0\r\n\r\n").startswith(b"HTTP/2 200 OK\n")

    def test_respond_version_error(self, config):
        with pytest.raises(VersionError):
            HTTPServer(config).respond(b"GET / HTTP/9\r\n\r\n")

    def test_pinned_version(self, config):
        config.response_version = ProtocolVersion.V2_0
        response = HTTPServer(config).respond(b"GET /readme.txt HTTP/1.1\r\n\r\n")

        assert response.startswith(b"HTTP/2 200 OK\n")

    def test_create_app_overrides(self, site):
        server = create_app(root_dir=str(site), dispatch="sequential", port=0)

        assert server.config.dispatch == "sequential"
        assert server.respond(b"GET /readme.txt HTTP/1.1\r\n\r\n").endswith(b"hi")

    def test_create_app_unknown_option(self, site):
        with pytest.raises(TypeError):
            create_app(root_dir=str(site), keep_alive=True)
