"""
Unit tests for the static file handler.
"""

import logging
import os
from pathlib import Path

import pytest

from simplehttp.handlers import StaticFileHandler, serve_static
from simplehttp.http import (
    ProtocolVersion,
    ResponseStatus,
    AcceptRanges,
    NOT_FOUND_PAGE,
    parse_request,
)


def respond(handler: StaticFileHandler, raw: bytes):
    return handler.handle(parse_request(raw))


class TestScenarios:
    """End-to-end request → response without sockets."""

    def test_root_is_not_found(self, site: Path):
        response = respond(StaticFileHandler(str(site)), b"GET / HTTP/1.1\r\n\r\n")
        text = response.serialize()

        assert "404 Not Found" in text.split("\n", 1)[0]
        assert "hi" not in response.body
        assert response.body == NOT_FOUND_PAGE

    def test_existing_file(self, site: Path):
        response = respond(StaticFileHandler(str(site)), b"GET /readme.txt HTTP/1.1\r\n\r\n")
        text = response.serialize()

        assert "200 OK" in text
        assert "content-length: 2" in text
        assert text.endswith("hi")
        assert response.accept_ranges == AcceptRanges.BYTES

    def test_directory_is_not_found_with_page(self, site: Path):
        response = respond(StaticFileHandler(str(site)), b"GET /somedir HTTP/1.1\r\n\r\n")

        assert response.status == ResponseStatus.NOT_FOUND
        assert response.content_length == len(NOT_FOUND_PAGE.encode("utf-8"))
        assert response.serialize().endswith(NOT_FOUND_PAGE)

    def test_unknown_method_served_as_root(self, site: Path):
        response = respond(StaticFileHandler(str(site)), b"DELETE / HTTP/1.1\r\n\r\n")

        assert response.status == ResponseStatus.NOT_FOUND
        assert response.path == ""

    def test_missing_file(self, site: Path):
        response = respond(StaticFileHandler(str(site)), b"GET /nope.txt HTTP/1.1\r\n\r\n")

        assert response.status == ResponseStatus.NOT_FOUND
        assert response.accept_ranges == AcceptRanges.NONE

    def test_nested_file(self, site: Path):
        response = respond(StaticFileHandler(str(site)), b"POST /somedir/nested.txt HTTP/2\r\n\r\n")

        assert response.status == ResponseStatus.OK
        assert response.body == "nested"


class TestBehaviour:
    """Version policy, idempotence, file reading."""

    def test_idempotent(self, site: Path):
        handler = StaticFileHandler(str(site))
        raw = b"GET /readme.txt HTTP/1.1\r\nHost: x\r\n\r\n"

        assert respond(handler, raw).to_bytes() == respond(handler, raw).to_bytes()

    @pytest.mark.parametrize("token,version", [
        ("HTTP/1.1", ProtocolVersion.V1_1),
        ("HTTP/2", ProtocolVersion.V2_0),
        ("HTTP/2.0", ProtocolVersion.V2_0),
    ])
    def test_version_echoed(self, site: Path, token, version):
        raw = f"GET /readme.txt {token}\r\n\r\n".encode()
        assert respond(StaticFileHandler(str(site)), raw).version == version

    def test_version_pinned(self, site: Path):
        handler = StaticFileHandler(str(site), response_version=ProtocolVersion.V2_0)
        response = respond(handler, b"GET /readme.txt HTTP/1.1\r\n\r\n")

        assert response.serialize().startswith("HTTP/2 200 OK\n")

    def test_newlines_preserved(self, site: Path):
        (site / "crlf.txt").write_bytes(b"a\r\nb\n")
        response = respond(StaticFileHandler(str(site)), b"GET /crlf.txt HTTP/1.1\r\n\r\n")

        assert response.body == "a\r\nb\n"
        assert response.content_length == 5

    def test_multibyte_content_length(self, site: Path):
        (site / "euro.txt").write_text("€", encoding="utf-8")
        response = respond(StaticFileHandler(str(site)), b"GET /euro.txt HTTP/1.1\r\n\r\n")

        assert response.content_length == 3

    def test_non_utf8_file_raises(self, site: Path):
        (site / "binary.bin").write_bytes(b"\xff\xfe\x00")

        with pytest.raises(UnicodeDecodeError):
            respond(StaticFileHandler(str(site)), b"GET /binary.bin HTTP/1.1\r\n\r\n")

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="root can read any file",
    )
    def test_unreadable_file_raises(self, site: Path):
        secret = site / "secret.txt"
        secret.write_text("x")
        secret.chmod(0)

        try:
            with pytest.raises(PermissionError):
                respond(StaticFileHandler(str(site)), b"GET /secret.txt HTTP/1.1\r\n\r\n")
        finally:
            secret.chmod(0o644)

    @pytest.mark.parametrize("confine", [True, False])
    @pytest.mark.parametrize("raw", [
        b"GET /a\x00b HTTP/1.1\r\n\r\n",
        b"GET /" + b"a" * 300 + b" HTTP/1.1\r\n\r\n",
        b"GET /somedir/" + b"a" * 300 + b"/x.txt HTTP/1.1\r\n\r\n",
    ])
    def test_impossible_path_is_not_found(self, site: Path, raw, confine):
        handler = StaticFileHandler(str(site), confine_to_root=confine)
        response = respond(handler, raw)

        assert response.status == ResponseStatus.NOT_FOUND
        assert response.body == NOT_FOUND_PAGE

    def test_root_must_exist(self, tmp_path: Path):
        with pytest.raises(ValueError):
            StaticFileHandler(str(tmp_path / "missing"))

    def test_serve_static_factory(self, site: Path):
        handler = serve_static(str(site), confine_to_root=False)

        assert isinstance(handler, StaticFileHandler)
        assert handler.confine_to_root is False


class TestConfinement:
    """Targets escaping the root."""

    @pytest.fixture
    def outside(self, tmp_path: Path) -> Path:
        """A file next to (not inside) the served root."""
        root = tmp_path / "www"
        root.mkdir()
        (tmp_path / "outside.txt").write_text("secret")
        return root

    def test_dotdot_refused(self, outside: Path, caplog):
        handler = StaticFileHandler(str(outside))

        with caplog.at_level(logging.WARNING, logger="simplehttp.handlers.static"):
            response = respond(handler, b"GET /../outside.txt HTTP/1.1\r\n\r\n")

        assert response.status == ResponseStatus.NOT_FOUND
        assert "secret" not in response.body
        assert "Path traversal attempt" in caplog.text

    def test_absolute_path_refused(self, outside: Path):
        target = (outside.parent / "outside.txt").as_posix()
        raw = f"GET /{target} HTTP/1.1\r\n\r\n".encode()

        response = respond(StaticFileHandler(str(outside)), raw)

        assert response.status == ResponseStatus.NOT_FOUND

    def test_symlink_out_refused(self, outside: Path):
        link = outside / "link.txt"
        try:
            link.symlink_to(outside.parent / "outside.txt")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        response = respond(StaticFileHandler(str(outside)), b"GET /link.txt HTTP/1.1\r\n\r\n")

        assert response.status == ResponseStatus.NOT_FOUND

    def test_dotdot_inside_root_allowed(self, site: Path):
        response = respond(
            StaticFileHandler(str(site)), b"GET /somedir/../readme.txt HTTP/1.1\r\n\r\n",
        )
        assert response.body == "hi"

    def test_unconfined_join(self, outside: Path):
        handler = StaticFileHandler(str(outside), confine_to_root=False)
        response = respond(handler, b"GET /../outside.txt HTTP/1.1\r\n\r\n")

        assert response.status == ResponseStatus.OK
        assert response.body == "secret"
