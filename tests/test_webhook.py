import json
import threading
import urllib.request

import pytest

from eventmesh.webhook import (
    Response,
    content_escape,
    create_server,
    err_response,
    handle_body,
    ok_response,
)


def test_ok_response():
    response = ok_response("OK")
    assert response.ret_code == "0"
    assert response.err_msg == "OK"


def test_err_response_carries_message():
    response = err_response(ValueError("broken"), "-1")
    assert response == Response(ret_code="-1", err_msg="broken")


def test_response_json_round_trip():
    response = Response(ret_code="-1", err_msg="bad input")
    assert json.loads(response.to_json()) == {"retCode": "-1", "errMsg": "bad input"}


def test_content_escape_removes_line_breaks():
    assert content_escape("a\r\nb\nc\r") == "abc"
    assert content_escape("plain") == "plain"


def test_handle_body_prints_unescaped_content(capsys):
    response = handle_body(b"name%3Dvalue+x%0D%0Ay")
    assert response == ok_response()
    out = capsys.readouterr().out
    assert out == "query content: name=value xy \n"


def test_handle_body_rejects_bad_escape(capsys):
    response = handle_body(b"abc%zz")
    assert response.ret_code == "-1"
    assert response.err_msg == 'invalid URL escape "%zz"'
    assert capsys.readouterr().out == ""


def test_handle_body_rejects_truncated_escape():
    response = handle_body(b"abc%4")
    assert response.ret_code == "-1"
    assert response.err_msg == 'invalid URL escape "%4"'


@pytest.fixture
def server():
    srv = create_server("127.0.0.1", 0)
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    try:
        yield srv
    finally:
        srv.shutdown()
        srv.server_close()
        thread.join(timeout=5)


def _post(srv, path, body, method="POST"):
    host, port = srv.server_address[:2]
    request = urllib.request.Request(
        f"http://{host}:{port}{path}", data=body, method=method
    )
    with urllib.request.urlopen(request, timeout=5) as reply:
        return reply.status, json.loads(reply.read().decode("utf-8"))


def test_server_answers_any_path(server):
    status, payload = _post(server, "/any/where", b"hello")
    assert status == 200
    assert payload == {"retCode": "0", "errMsg": "OK"}


def test_server_answers_put(server):
    status, payload = _post(server, "/", b"x=1", method="PUT")
    assert status == 200
    assert payload["retCode"] == "0"


def test_server_reports_bad_escape(server):
    status, payload = _post(server, "/cb", b"%zz")
    assert status == 200
    assert payload["retCode"] == "-1"
    assert payload["errMsg"] == 'invalid URL escape "%zz"'