"""Form handling and validation of load test creation requests."""

from __future__ import annotations

import csv
import email
import posixpath
import re
from dataclasses import dataclass, field
from datetime import timedelta
from email.message import Message
from urllib.parse import parse_qs, urlsplit

from kangal.durations import parse_duration
from kangal.envs import _records, read_envs

BACKEND_TYPE = "type"
OVERWRITE = "overwrite"
MASTER_IMAGE = "masterImage"
WORKER_IMAGE = "workerImage"
DISTRIBUTED_PODS = "distributedPods"
TAGS = "tags"
TEST_FILE = "testFile"
TEST_DATA = "testData"
ENV_VARS = "envVars"
TARGET_URL = "targetURL"
DURATION = "duration"

TEST_FILE_FORMATS = frozenset({"jmx", "py", "json", "toml", "js"})
TEST_DATA_FILE_FORMATS = frozenset({"csv", "protoset"})

_DOCKER_IMAGE = re.compile(r"[^\n]*:[^\n]*")
_INTEGER = re.compile(r"[+-]?[0-9]+")
_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


class RequestError(ValueError):
    """A request carries a missing or invalid value."""

    default_message = "invalid request"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class MissingFileError(RequestError):
    default_message = "no such file"


class FileEmptyError(RequestError):
    default_message = "file is empty"


class WrongFileFormatError(RequestError):
    default_message = "file format is not supported"


class WrongURLFormatError(RequestError):
    default_message = "invalid URL format"


class WrongImageFormatError(RequestError):
    default_message = "invalid image format"


class EmptyTypeError(RequestError):
    default_message = "loadtest type is empty"


@dataclass(frozen=True)
class FormFile:
    """An uploaded file of a form."""

    filename: str
    content: bytes


@dataclass
class Form:
    """Values and files submitted with a request."""

    values: dict[str, list[str]] = field(default_factory=dict)
    files: dict[str, list[FormFile]] = field(default_factory=dict)

    def value(self, name: str) -> str:
        """Return the first value of *name*, or an empty string."""
        values = self.values.get(name)
        return values[0] if values else ""

    def file(self, name: str) -> FormFile:
        """Return the first file uploaded as *name*."""
        uploads = self.files.get(name)
        if not uploads:
            raise MissingFileError(f"no such file: {name}")
        return uploads[0]


@dataclass(frozen=True)
class ImageDetails:
    """A container image split into name and tag."""

    image: str = ""
    tag: str = ""


def _base_name(filename: str) -> str:
    stripped = filename.rstrip("/")
    if not stripped:
        return "/" if filename else filename
    return posixpath.basename(stripped)


def _parts(body: bytes, boundary: str):
    delimiter = b"\r\n--" + boundary.encode("latin-1")
    chunks = (b"\r\n" + body).split(delimiter)
    if len(chunks) < 2:
        raise RequestError("multipart body has no parts")
    for chunk in chunks[1:]:
        if chunk.startswith(b"--"):
            return
        chunk = chunk.lstrip(b" \t")
        if not chunk.startswith(b"\r\n"):
            raise RequestError("malformed multipart boundary line")
        rest = chunk[2:]
        if rest.startswith(b"\r\n"):
            head, content = b"", rest[2:]
        else:
            head, sep, content = rest.partition(b"\r\n\r\n")
            if not sep:
                raise RequestError("malformed multipart part headers")
        yield email.message_from_bytes(head + b"\r\n\r\n"), content
    raise RequestError("multipart body is not terminated")


def parse_multipart(body: bytes, content_type: str) -> Form:
    """Parse a form body sent as multipart or URL-encoded data."""
    header = Message()
    header["Content-Type"] = content_type
    media_type = header.get_content_type()

    if media_type == "application/x-www-form-urlencoded":
        return Form(values=parse_qs(body.decode("utf-8", "replace"), keep_blank_values=True))
    if media_type != "multipart/form-data":
        raise RequestError("request Content-Type isn't multipart/form-data")

    boundary = header.get_param("boundary")
    if not boundary or not isinstance(boundary, str):
        raise RequestError("no multipart boundary param in Content-Type")

    form = Form()
    for headers, content in _parts(body, boundary):
        name = headers.get_param("name", header="content-disposition")
        if isinstance(name, tuple):
            name = email.utils.collapse_rfc2231_value(name)
        if not name:
            continue
        filename = headers.get_filename()
        if filename:
            upload = FormFile(_base_name(filename), content)
            form.files.setdefault(name, []).append(upload)
        else:
            form.values.setdefault(name, []).append(content.decode("utf-8", "replace"))
    return form


def get_type_from_name(filename: str) -> str:
    """Return the text after the last dot of *filename*, or ``""``."""
    parts = filename.split(".")
    if len(parts) < 2:
        return ""
    return parts[-1]


def check_csv_file(text: str) -> None:
    """Raise ``RequestError`` unless *text* is well-formed CSV."""
    try:
        for _ in _records(text):
            pass
    except csv.Error as exc:
        raise RequestError(str(exc)) from exc


def _read_file(form: Form, name: str) -> tuple[str, str]:
    upload = form.file(name)
    text = upload.content.decode("utf-8", "replace")
    if not text:
        raise FileEmptyError()
    return text, get_type_from_name(upload.filename)


def get_overwrite(form: Form) -> bool:
    """Return the overwrite flag; missing means ``False``."""
    text = form.value(OVERWRITE)
    if not text:
        return False
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise RequestError(f"bad {OVERWRITE} value: should be boolean")


def get_load_test_type(form: Form) -> str:
    """Return the requested load test type."""
    load_test_type = form.value(BACKEND_TYPE)
    if not load_test_type:
        raise EmptyTypeError()
    return load_test_type


def get_distributed_pods(form: Form) -> int:
    """Return the number of distributed pods as a 32-bit integer."""
    text = form.value(DISTRIBUTED_PODS)
    if not _INTEGER.fullmatch(text):
        raise RequestError(f"bad {DISTRIBUTED_PODS} value: should be integer")
    number = int(text)
    if not -(2**31) <= number < 2**31:
        raise RequestError(f"bad {DISTRIBUTED_PODS} value: out of range")
    return number


def get_target_url(form: Form) -> str:
    """Return the target URL, which must have a scheme and a host."""
    target = form.value(TARGET_URL)
    if not target:
        return ""
    try:
        parts = urlsplit(target)
    except ValueError as exc:
        raise RequestError(str(exc)) from exc
    host = parts.netloc.rpartition("@")[2]
    if not parts.scheme or not host:
        raise WrongURLFormatError()
    return target


def get_duration(form: Form) -> timedelta:
    """Return the requested duration; missing means zero."""
    text = form.value(DURATION)
    if not text:
        return timedelta(0)
    try:
        return parse_duration(text)
    except ValueError as exc:
        raise RequestError(str(exc)) from exc


def get_image(form: Form, role: str) -> ImageDetails:
    """Split the image given for *role* into name and tag."""
    image = form.value(role)
    if image and not _DOCKER_IMAGE.fullmatch(image):
        raise WrongImageFormatError()

    structure = "".join(char for char in image if char in ":/")
    pieces = image.split(":")

    if structure in ("", "/", "://"):
        # image, registry/image, host:port/registry/image
        return ImageDetails(image, "")
    if structure in (":", "/:", "//:"):
        # image:tag, registry/image:tag, host/registry/image:tag
        return ImageDetails(pieces[0], pieces[1])
    if structure == "://:":
        # host:port/registry/image:tag
        return ImageDetails(f"{pieces[0]}:{pieces[1]}", pieces[2])
    return ImageDetails()


def get_test_file(form: Form) -> str:
    """Return the content of the mandatory test file."""
    content, file_type = _read_file(form, TEST_FILE)
    if file_type not in TEST_FILE_FORMATS:
        raise WrongFileFormatError()
    return content


def get_test_data(form: Form) -> str:
    """Return the content of the optional test data file, or ``""``."""
    try:
        content, file_type = _read_file(form, TEST_DATA)
    except MissingFileError:
        return ""
    if file_type not in TEST_DATA_FILE_FORMATS:
        raise WrongFileFormatError()
    if file_type == "csv":
        check_csv_file(content)
    return content


def get_env_vars(form: Form) -> dict[str, str] | None:
    """Return the optional environment variables, or ``None`` if absent."""
    try:
        content, file_type = _read_file(form, ENV_VARS)
    except MissingFileError:
        return None
    if file_type != "csv":
        raise WrongFileFormatError()
    try:
        return read_envs(content)
    except csv.Error as exc:
        raise RequestError(str(exc)) from exc