"""WSGI handlers that publish the OpenAPI specification and its UI."""

from __future__ import annotations

import html
import json
import logging
import mimetypes
import os
from collections.abc import Callable, Iterable, Sequence
from email.utils import formatdate
from http import HTTPStatus
from typing import Any

from kangal.config import OpenAPIConfig

MIME_JSON = "application/json; charset=utf-8"

StartResponse = Callable[..., Any]
WSGIApp = Callable[[dict, StartResponse], Iterable[bytes]]

_log = logging.getLogger(__name__)

_TOKEN_CHARS = frozenset(
    "!#$%&'*+-.^_`|~0123456789"
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
)
_DEFAULT_ALLOWED_HEADERS = ("Origin", "Accept", "Content-Type", "X-Requested-With")
_ALLOWED_METHODS = ("OPTIONS", "HEAD", "GET")
_EXPOSED_HEADERS = ("*",)


def _status(code: int) -> str:
    return f"{code} {HTTPStatus(code).phrase}"


def _is_head(environ: dict) -> bool:
    return environ.get("REQUEST_METHOD", "GET").upper() == "HEAD"


def _error(start_response: StartResponse, code: int, message: str) -> list[bytes]:
    body = (message + "\n").encode("utf-8")
    start_response(
        _status(code),
        [
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
            ("Content-Length", str(len(body))),
        ],
    )
    return [body]


def _error_app(code: int, message: str, log_message: str, **details: Any) -> WSGIApp:
    def app(environ: dict, start_response: StartResponse) -> list[bytes]:
        _log.error("%s %s", log_message, details)
        return _error(start_response, code, message)

    return app


def _serve_file(path: str, environ: dict, start_response: StartResponse) -> list[bytes]:
    try:
        with open(path, "rb") as handle:
            content = handle.read()
            modified = os.fstat(handle.fileno()).st_mtime
    except (FileNotFoundError, NotADirectoryError):
        return _error(start_response, 404, "404 page not found")
    except PermissionError:
        return _error(start_response, 403, "403 Forbidden")
    except OSError:
        return _error(start_response, 500, "500 Internal Server Error")

    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    start_response(
        _status(200),
        [
            ("Content-Type", content_type),
            ("Content-Length", str(len(content))),
            ("Last-Modified", formatdate(modified, usegmt=True)),
            ("Accept-Ranges", "bytes"),
        ],
    )
    return [] if _is_head(environ) else [content]


def _set_path(node: Any, keys: Sequence[str], value: Any) -> Any:
    """Return *node* with *value* stored under the dotted path *keys*."""
    if not keys:
        return value
    key, rest = keys[0], keys[1:]
    numeric = key.isascii() and key.isdigit()

    if isinstance(node, dict):
        updated = dict(node)
        updated[key] = _set_path(node.get(key), rest, value)
        return updated
    if isinstance(node, list) and numeric:
        index = int(key)
        items = list(node)
        if index >= len(items):
            items.extend([None] * (index + 1 - len(items)))
        items[index] = _set_path(items[index], rest, value)
        return items
    return _set_path([] if numeric else {}, keys, value)


def openapi_spec_app(config: OpenAPIConfig) -> WSGIApp:
    """Return a WSGI app serving the OpenAPI spec, optionally with its server overridden."""
    spec_path = os.path.join(config.spec_path, config.spec_file)

    if not config.server_url:
        def static_app(environ: dict, start_response: StartResponse) -> list[bytes]:
            return _serve_file(spec_path, environ, start_response)

        return static_app

    try:
        os.stat(spec_path)
    except FileNotFoundError as exc:
        return _error_app(404, "OpenAPI spec file not found",
                          "Can not read OpenAPI spec file", error=str(exc), path=spec_path)
    except PermissionError as exc:
        return _error_app(403, "OpenAPI spec file is not accessible",
                          "Can not read OpenAPI spec file", error=str(exc), path=spec_path)
    except OSError as exc:
        return _error_app(500, "Can not read OpenAPI spec file",
                          "Can not read OpenAPI spec file", error=str(exc), path=spec_path)

    try:
        with open(spec_path, "rb") as handle:
            raw = handle.read()
    except OSError as exc:
        return _error_app(500, "Failed to read OpenAPI spec file",
                          "Failed to read OpenAPI spec file", error=str(exc), path=spec_path)

    try:
        document = _set_path(json.loads(raw), ["servers", "0", "url"], config.server_url)
    except (ValueError, TypeError) as exc:
        return _error_app(500, "Could not set custom server URL",
                          "Could not set custom server URL", error=str(exc))

    if config.server_description:
        document = _set_path(document, ["servers", "0", "description"], config.server_description)

    body = json.dumps(document, ensure_ascii=False).encode("utf-8")

    def spec_app(environ: dict, start_response: StartResponse) -> list[bytes]:
        start_response(
            _status(200),
            [("Content-Type", MIME_JSON), ("Content-Length", str(len(body)))],
        )
        return [] if _is_head(environ) else [body]

    return spec_app


def openapi_ui_app(config: OpenAPIConfig) -> WSGIApp:
    """Return a WSGI app redirecting to the configured OpenAPI UI."""
    if not config.ui_url:
        def missing_app(environ: dict, start_response: StartResponse) -> list[bytes]:
            return _error(
                start_response,
                404,
                "OpenAPI UI URL is not set, check service configuration if you "
                "maintain it or contact maintainers otherwise",
            )

        return missing_app

    location = config.ui_url

    def redirect_app(environ: dict, start_response: StartResponse) -> list[bytes]:
        headers = [("Location", location)]
        body = b""
        if environ.get("REQUEST_METHOD", "GET").upper() in ("GET", "HEAD"):
            text = f'<a href="{html.escape(location)}">Found</a>.\n\n'
            body = text.encode("utf-8")
            headers.append(("Content-Type", "text/html; charset=utf-8"))
        headers.append(("Content-Length", str(len(body))))
        start_response(_status(302), headers)
        return [] if _is_head(environ) else [body]

    return redirect_app


def _canonical_header(name: str) -> str:
    if not name or any(char not in _TOKEN_CHARS for char in name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


class CORSMiddleware:
    """Answer CORS requests for GET, HEAD and OPTIONS, passing every request on."""

    def __init__(
        self,
        app: WSGIApp,
        allowed_origins: Sequence[str],
        allowed_headers: Sequence[str],
    ) -> None:
        self.app = app

        self._all_origins = not allowed_origins
        self._origins: set[str] = set()
        self._wildcards: list[tuple[str, str]] = []
        for origin in (o.lower() for o in allowed_origins):
            if origin == "*":
                self._all_origins = True
                self._origins.clear()
                self._wildcards.clear()
                break
            head, star, tail = origin.partition("*")
            if star:
                self._wildcards.append((head, tail))
            else:
                self._origins.add(origin)

        self._all_headers = "*" in allowed_headers
        if not allowed_headers:
            self._headers = set(_DEFAULT_ALLOWED_HEADERS)
        elif self._all_headers:
            self._headers = set()
        else:
            self._headers = {_canonical_header(h) for h in [*allowed_headers, "Origin"]}

    def _origin_allowed(self, origin: str) -> bool:
        if self._all_origins:
            return True
        origin = origin.lower()
        if origin in self._origins:
            return True
        return any(
            len(origin) >= len(head) + len(tail)
            and origin.startswith(head)
            and origin.endswith(tail)
            for head, tail in self._wildcards
        )

    @staticmethod
    def _method_allowed(method: str) -> bool:
        method = method.upper()
        return method == "OPTIONS" or method in _ALLOWED_METHODS

    def _headers_allowed(self, requested: list[str]) -> bool:
        if self._all_headers or not requested:
            return True
        return all(header in self._headers for header in requested)

    def _allow_origin_value(self, origin: str) -> str:
        return "*" if self._all_origins else origin

    def _preflight(self, environ: dict) -> list[tuple[str, str]]:
        headers = [
            ("Vary", "Origin"),
            ("Vary", "Access-Control-Request-Method"),
            ("Vary", "Access-Control-Request-Headers"),
        ]
        origin = environ.get("HTTP_ORIGIN", "")
        if not origin or not self._origin_allowed(origin):
            return headers
        method = environ.get("HTTP_ACCESS_CONTROL_REQUEST_METHOD", "")
        if not self._method_allowed(method):
            return headers
        requested = [
            _canonical_header(part.strip())
            for part in environ.get("HTTP_ACCESS_CONTROL_REQUEST_HEADERS", "").split(",")
            if part.strip()
        ]
        if not self._headers_allowed(requested):
            return headers
        headers.append(("Access-Control-Allow-Origin", self._allow_origin_value(origin)))
        headers.append(("Access-Control-Allow-Methods", method.upper()))
        if requested:
            headers.append(("Access-Control-Allow-Headers", ", ".join(requested)))
        headers.append(("Access-Control-Allow-Credentials", "true"))
        return headers

    def _actual(self, environ: dict) -> list[tuple[str, str]]:
        method = environ.get("REQUEST_METHOD", "GET")
        if method.upper() == "OPTIONS":
            return []
        headers = [("Vary", "Origin")]
        origin = environ.get("HTTP_ORIGIN", "")
        if not origin or not self._origin_allowed(origin) or not self._method_allowed(method):
            return headers
        headers.append(("Access-Control-Allow-Origin", self._allow_origin_value(origin)))
        headers.append(("Access-Control-Expose-Headers", ", ".join(_EXPOSED_HEADERS)))
        headers.append(("Access-Control-Allow-Credentials", "true"))
        return headers

    def __call__(self, environ: dict, start_response: StartResponse) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET").upper()
        if method == "OPTIONS" and environ.get("HTTP_ACCESS_CONTROL_REQUEST_METHOD"):
            cors_headers = self._preflight(environ)
        else:
            cors_headers = self._actual(environ)

        def wrapped(status: str, headers: list[tuple[str, str]], exc_info: Any = None) -> Any:
            overridden = {name.lower() for name, _ in headers} - {"vary"}
            merged = [(n, v) for n, v in cors_headers if n.lower() not in overridden]
            merged.extend(headers)
            return start_response(status, merged, exc_info)

        return self.app(environ, wrapped)


def openapi_spec_cors_middleware(config: OpenAPIConfig) -> Callable[[WSGIApp], CORSMiddleware]:
    """Return a decorator wrapping a WSGI app with the configured CORS policy."""

    def wrap(app: WSGIApp) -> CORSMiddleware:
        return CORSMiddleware(
            app,
            config.access_control_allow_origin,
            config.access_control_allow_headers,
        )

    return wrap