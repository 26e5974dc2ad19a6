"""A small web server that prints the bodies of operator event callbacks."""

from __future__ import annotations

import argparse
import json
import re
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any
from urllib.parse import unquote_plus

DEFAULT_PORT = 18080

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass
class Response:
    """JSON reply of the webhook server."""

    ret_code: str
    err_msg: str

    def to_json(self) -> str:
        """Return the reply as compact JSON."""
        return json.dumps(
            {"retCode": self.ret_code, "errMsg": self.err_msg}, separators=(",", ":")
        )


def ok_response(data: Any = None) -> Response:
    """Return the success reply."""
    return Response(ret_code="0", err_msg="OK")


def err_response(error: BaseException | str, code: str) -> Response:
    """Return an error reply carrying the error text."""
    return Response(ret_code=code, err_msg=str(error))


def content_escape(content: str) -> str:
    """Drop line feeds and carriage returns from content."""
    return content.replace("\n", "").replace("\r", "")


def _query_unescape(text: str) -> str:
    match = _BAD_ESCAPE.search(text)
    if match:
        bad = text[match.start():match.start() + 3]
        raise ValueError(f'invalid URL escape "{bad}"')
    return unquote_plus(text, errors="replace")


def handle_body(body: bytes) -> Response:
    """Unescape a callback body, print it, and return the reply to send."""
    try:
        content = _query_unescape(body.decode("utf-8", errors="replace"))
    except ValueError as exc:
        return err_response(exc, "-1")
    print(f"query content: {content_escape(content)} ")
    return ok_response("OK")


class WebhookHandler(BaseHTTPRequestHandler):
    """Answers every method on every path with the webhook reply."""

    def _handle(self) -> None:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        body = self.rfile.read(length) if length > 0 else b""
        payload = handle_body(body).to_json().encode("utf-8")
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_PATCH = _handle
    do_DELETE = _handle
    do_HEAD = _handle
    do_OPTIONS = _handle
    do_CONNECT = _handle
    do_TRACE = _handle


def create_server(host: str = "", port: int = DEFAULT_PORT) -> ThreadingHTTPServer:
    """Create the webhook server bound to host and port."""
    return ThreadingHTTPServer((host, port), WebhookHandler)


def main(argv: list[str] | None = None) -> int:
    """Run the webhook server until interrupted."""
    parser = argparse.ArgumentParser(description="Print operator event callbacks.")
    parser.parse_args(argv)
    server = create_server("", DEFAULT_PORT)
    print(f"server start at:{DEFAULT_PORT}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())