from starlette.requests import Request

from upload_server import config
from upload_server.pages import html_message_page, request_dump


def make_request(headers):
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": "/upload",
        "query_string": b"debug=1",
        "headers": [(k.encode(), v.encode()) for k, v in headers],
        "server": ("testserver", 80),
        "client": ("10.0.0.7", 51000),
    }
    return Request(scope)


def test_request_dump_has_network_line_and_headers():
    dump = request_dump(make_request([("content-type", "multipart/form-data; boundary=x")]))

    assert dump.startswith("Network(http://testserver/upload?debug=1): testserver:80 <- 10.0.0.7:51000")
    assert "POST /upload?debug=1 HTTP/1.1" in dump
    assert "content-type: multipart/form-data; boundary=x" in dump


def test_request_dump_is_truncated():
    dump = request_dump(make_request([("x-padding", "a" * (config.MAX_DEBUG_DUMP * 2))]))

    assert len(dump) == config.MAX_DEBUG_DUMP


def test_message_page_escapes_everything():
    page = html_message_page("<b>msg</b>", "<i>title</i>", "<dump>", 'javascript:"x"')

    assert "<b>msg</b>" not in page
    assert "&lt;b&gt;msg&lt;/b&gt;" in page
    assert "&lt;dump&gt;" in page
    assert 'href="javascript:&quot;x&quot;"' in page


def test_message_page_defaults():
    page = html_message_page("hello")

    assert "<title>backend message</title>" in page
    assert '<a href="/">Return</a>' in page
