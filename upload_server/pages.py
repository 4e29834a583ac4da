"""HTML pages returned to browsers by the upload endpoints."""
import html
from typing import Mapping

from fastapi import Request

from upload_server import config


def text2html(text: str) -> str:
    """Escape text and convert newlines to '<br />'."""
    return html.escape(text).replace("\n", "<br />")


def network_line(request: Request) -> str:
    server = request.scope.get("server")
    local = f"{server[0]}:{server[1]}" if server else "unknown-local-addr"
    remote = f"{request.client.host}:{request.client.port}" if request.client else "unknown-remote-addr"
    return f"Network({request.url}): {local} <- {remote}"


def request_dump(request: Request) -> str:
    """Readable dump of the request line and headers for the debug section."""
    lines = [network_line(request), ""]
    target = request.url.path
    if request.url.query:
        target += f"?{request.url.query}"
    lines.append(f"{request.method} {target} HTTP/{request.scope.get('http_version', '1.1')}")
    for key, value in request.headers.items():
        lines.append(f"{key}: {value}")
    dump = "\n".join(lines) + "\n"
    return dump[:config.MAX_DEBUG_DUMP]


def format_headers(headers: Mapping[str, str]) -> str:
    return "\n".join(f"{key}: {value}" for key, value in headers.items())


def html_message_page(message: str, title: str = "", addon: str = "", back_url: str = "") -> str:
    """Return an html page with a message, a title and a go back link.

    `addon` is shown in a debug section at the bottom of the page.
    """
    title = title or "backend message"
    back_url = back_url or "/"
    return f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <meta http-equiv="X-UA-Compatible" content="ie=edge" />
    <title>{html.escape(title)}</title>
  </head>
  <body>
    <h1>{text2html(title)}</h1>
    <h2>{text2html(message)}</h2>
    <p>
      <a href="{html.escape(back_url, quote=True)}">Return</a>
    </p>
    <h1>DEBUG INFORMATION</h1>
    <hr>
    <pre>{html.escape(addon)}</pre>
    <hr>
  </body>
</html>
"""
