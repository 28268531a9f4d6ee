"""Object storage seen as a read-only file system for serving reports."""

from __future__ import annotations

import io
import itertools
import stat as stat_module
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import BinaryIO

PATH_SEPARATOR = "/"
_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata of a stored object or of a directory-like prefix."""

    key: str
    size: int = 0
    last_modified: datetime = field(default_factory=_now)
    content_type: str = ""
    is_dir: bool = False
    prefix: str = ""

    @property
    def name(self) -> str:
        return self.key

    @property
    def mode(self) -> int:
        return stat_module.S_IFDIR if self.is_dir else 0o644


class ObjectStore(ABC):
    """A bucket of objects addressed by key."""

    @abstractmethod
    def stat(self, key: str) -> ObjectInfo:
        """Return metadata of *key*; raise ``FileNotFoundError`` if absent."""

    @abstractmethod
    def get_object(self, key: str) -> BinaryIO:
        """Return a readable, seekable stream of *key*."""

    @abstractmethod
    def list_objects(self, prefix: str) -> Iterator[ObjectInfo]:
        """Yield objects and common prefixes directly below *prefix*."""


class MemoryObjectStore(ObjectStore):
    """An object store kept in memory."""

    def __init__(self) -> None:
        self._objects: dict[str, tuple[bytes, ObjectInfo]] = {}

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream") -> ObjectInfo:
        """Store *data* under *key* and return its metadata."""
        info = ObjectInfo(key=key, size=len(data), content_type=content_type)
        self._objects[key] = (bytes(data), info)
        return info

    def stat(self, key: str) -> ObjectInfo:
        try:
            return self._objects[key][1]
        except KeyError:
            raise FileNotFoundError(key) from None

    def get_object(self, key: str) -> BinaryIO:
        try:
            data = self._objects[key][0]
        except KeyError:
            raise FileNotFoundError(key) from None
        return io.BytesIO(data)

    def list_objects(self, prefix: str = "") -> Iterator[ObjectInfo]:
        entries: dict[str, ObjectInfo] = {}
        for key, (_, info) in self._objects.items():
            if not key.startswith(prefix):
                continue
            rest = key[len(prefix):]
            separator = rest.find(PATH_SEPARATOR)
            if separator >= 0:
                common = prefix + rest[: separator + 1]
                entries.setdefault(common, ObjectInfo(key=common, last_modified=_ZERO_TIME))
            else:
                entries[key] = info
        for key in sorted(entries):
            yield entries[key]


class MemoryFile:
    """A file whose content comes from a reader; seeking only tracks a position."""

    def __init__(
        self,
        name: str,
        reader: BinaryIO,
        size: int,
        mod_time: datetime | None = None,
        children: Iterable[ObjectInfo] = (),
    ) -> None:
        self.name = name
        self._reader = reader
        self.size = size
        self.mod_time = mod_time or _now()
        self._children = tuple(children)
        self._at = 0
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        return self._reader.read(size)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            self._at = offset
        elif whence == io.SEEK_CUR:
            self._at += offset
        elif whence == io.SEEK_END:
            self._at = self.size + offset
        return self._at

    def stat(self) -> ObjectInfo:
        return ObjectInfo(key=self.name, size=self.size, last_modified=self.mod_time)

    def readdir(self, count: int = -1) -> list[ObjectInfo]:
        """Return the entries below this file, none unless some were given."""
        entries = list(self._children)
        return entries if count <= 0 else entries[:count]

    def close(self) -> None:
        """Mark the file closed; the reader stays with its owner."""
        self.closed = True

    def __enter__(self) -> MemoryFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ObjectFile:
    """An object, or a prefix treated as a directory, opened from a store."""

    def __init__(
        self,
        store: ObjectStore,
        prefix: str,
        *,
        is_dir: bool = False,
        stream: BinaryIO | None = None,
    ) -> None:
        self._store = store
        self.prefix = prefix
        self.is_dir = is_dir
        self._stream = stream

    def _require_stream(self) -> BinaryIO:
        if self._stream is None:
            raise IsADirectoryError(self.prefix)
        return self._stream

    def read(self, size: int = -1) -> bytes:
        return self._require_stream().read(size)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        return self._require_stream().seek(offset, whence)

    def readdir(self, count: int = -1) -> list[ObjectInfo]:
        """List entries below this prefix.

        A *count* of two or more yields at most ``count - 2`` entries.
        """
        limit = count - 2 if count >= 2 else None
        try:
            objects = list(itertools.islice(self._store.list_objects(self.prefix), limit))
        except OSError as exc:
            raise FileNotFoundError(self.prefix) from exc

        entries = []
        for info in objects:
            if info.key.endswith(PATH_SEPARATOR):
                key = info.key[: -len(PATH_SEPARATOR)]
                entries.append(
                    ObjectInfo(key=key, last_modified=info.last_modified, prefix=key, is_dir=True)
                )
            else:
                entries.append(info)
        return entries

    def stat(self) -> ObjectInfo:
        if self.is_dir:
            return ObjectInfo(key=self.prefix, prefix=self.prefix, is_dir=True)
        try:
            return self._store.stat(self.prefix)
        except OSError:
            raise FileNotFoundError(self.prefix) from None

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()

    def __enter__(self) -> ObjectFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class ObjectFileSystem:
    """Resolves request paths to objects of a store."""

    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def open(self, name: str) -> ObjectFile:
        """Open *name*; a trailing slash opens a directory, a bare name its index page."""
        if name.endswith(PATH_SEPARATOR):
            return ObjectFile(self.store, name[: -len(PATH_SEPARATOR)], is_dir=True)

        parts = name.removeprefix(PATH_SEPARATOR).split(PATH_SEPARATOR)
        if len(parts) == 1:
            parts.append("index.html")
        key = PATH_SEPARATOR.join(parts)

        try:
            self.store.stat(key)
            stream = self.store.get_object(key)
        except OSError:
            raise FileNotFoundError(key) from None
        return ObjectFile(self.store, key, stream=stream)