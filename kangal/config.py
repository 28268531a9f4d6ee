"""Service configuration read from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TypeVar

from kangal.durations import parse_duration

T = TypeVar("T")

_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})
_OCTAL = re.compile(r"0_?[0-7][0-7_]*")

# Text settings of the report storage: (attribute, environment variable).
_REPORT_TEXT_VARS = (
    ("aws_access_key_id", "AWS_ACCESS_KEY_ID"),
    ("aws_secret_access_key", "AWS_SECRET_ACCESS_KEY"),
    ("aws_region", "AWS_DEFAULT_REGION"),
    ("aws_endpoint_url", "AWS_ENDPOINT_URL"),
    ("aws_bucket_name", "AWS_BUCKET_NAME"),
    ("aws_presigned_expires", "AWS_PRESIGNED_EXPIRES"),
)


class ConfigError(ValueError):
    """An environment variable holds a value that cannot be used."""


@dataclass
class OpenAPIConfig:
    """Where the OpenAPI specification lives and how it is served."""

    spec_path: str = "/etc/kangal"
    spec_file: str = "openapi.json"
    server_url: str = ""
    server_description: str = ""
    ui_url: str = ""
    access_control_allow_origin: list[str] = field(default_factory=lambda: ["*"])
    access_control_allow_headers: list[str] = field(
        default_factory=lambda: ["Content-Type", "api_key", "Authorization"]
    )


@dataclass
class ReportConfig:
    """Access to the S3-compatible storage that keeps load test reports."""

    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = ""
    aws_endpoint_url: str = ""
    aws_bucket_name: str = ""
    aws_use_https: bool = False
    aws_presigned_expires: str = ""


@dataclass
class ProxyConfig:
    """Settings of the proxy API server."""

    http_port: int = 8080
    openapi: OpenAPIConfig = field(default_factory=OpenAPIConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    max_load_tests_run: int = 0
    max_list_limit: int = 50
    master_url: str = ""
    allowed_custom_images: bool = False
    kube_client_timeout: timedelta = timedelta(seconds=5)


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError("not a boolean")


def _parse_int(text: str) -> int:
    sign = -1 if text.startswith("-") else 1
    body = text[1:] if text[:1] in "+-" else text
    if _OCTAL.fullmatch(body):
        number = sign * int(body, 8)
    else:
        number = int(text, 0)
    if not -(2**63) <= number < 2**63:
        raise ValueError("value out of range")
    return number


def _parse_list(text: str) -> list[str]:
    if not text.strip():
        return []
    return text.split(",")


def _read(
    environ: Mapping[str, str],
    key: str,
    default: str,
    parse: Callable[[str], T],
    zero: T,
) -> T:
    value = environ.get(key)
    if value is None:
        if default == "":
            return zero
        value = default
    try:
        return parse(value)
    except ValueError as exc:
        raise ConfigError(f"invalid value {value!r} for {key}: {exc}") from exc


def _environ(environ: Mapping[str, str] | None) -> Mapping[str, str]:
    return os.environ if environ is None else environ


def load_openapi_config(environ: Mapping[str, str] | None = None) -> OpenAPIConfig:
    """Build the OpenAPI settings from *environ* (the process environment by default)."""
    env = _environ(environ)
    return OpenAPIConfig(
        spec_path=_read(env, "OPEN_API_SPEC_PATH", "/etc/kangal", str, ""),
        spec_file=_read(env, "OPEN_API_SPEC_FILE", "openapi.json", str, ""),
        server_url=_read(env, "OPEN_API_SERVER_URL", "", str, ""),
        server_description=_read(env, "OPEN_API_SERVER_DESCRIPTION", "", str, ""),
        ui_url=_read(env, "OPEN_API_UI_URL", "", str, ""),
        access_control_allow_origin=_read(env, "OPEN_API_CORS_ALLOW_ORIGIN", "*", _parse_list, []),
        access_control_allow_headers=_read(
            env,
            "OPEN_API_CORS_ALLOW_HEADERS",
            "Content-Type,api_key,Authorization",
            _parse_list,
            [],
        ),
    )


def load_report_config(environ: Mapping[str, str] | None = None) -> ReportConfig:
    """Build the report storage settings from *environ*."""
    env = _environ(environ)
    values = {attr: _read(env, var, "", str, "") for attr, var in _REPORT_TEXT_VARS}
    return ReportConfig(
        **values,
        aws_use_https=_read(env, "AWS_USE_HTTPS", "false", _parse_bool, False),
    )


def load_proxy_config(environ: Mapping[str, str] | None = None) -> ProxyConfig:
    """Build the complete proxy settings from *environ*."""
    env = _environ(environ)
    return ProxyConfig(
        http_port=_read(env, "WEB_HTTP_PORT", "8080", _parse_int, 0),
        openapi=load_openapi_config(env),
        report=load_report_config(env),
        max_load_tests_run=_read(env, "MAXLOADTESTSRUN", "", _parse_int, 0),
        max_list_limit=_read(env, "MAX_LIST_LIMIT", "50", _parse_int, 0),
        master_url=_read(env, "MASTERURL", "", str, ""),
        allowed_custom_images=_read(env, "ALLOWED_CUSTOM_IMAGES", "false", _parse_bool, False),
        kube_client_timeout=_read(env, "KUBE_CLIENT_TIMEOUT", "5s", parse_duration, timedelta(0)),
    )