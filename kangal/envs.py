"""Reading of environment variables given as a two-column CSV document."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterator


class InvalidCSVFormatError(ValueError):
    """Raised when a record does not have exactly a key and a value."""

    def __init__(
        self,
        message: str = "invalid csv format for environment variables, expecting: key, value",
    ) -> None:
        super().__init__(message)


def _records(text: str) -> Iterator[list[str]]:
    """Yield the non-empty CSV records of *text*.

    Every record must have as many fields as the first one; otherwise
    ``csv.Error`` is raised.
    """
    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    expected = None
    for record in reader:
        if not record:
            continue
        if expected is None:
            expected = len(record)
        elif len(record) != expected:
            raise csv.Error(f"record on line {reader.line_num}: wrong number of fields")
        yield record


def read_envs(text: str) -> dict[str, str]:
    """Read ``key,value`` lines into a mapping; later keys win."""
    envs: dict[str, str] = {}
    for record in _records(text):
        if len(record) != 2:
            raise InvalidCSVFormatError()
        key, value = record
        envs[key] = value
    return envs