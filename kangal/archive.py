"""Unpacking of uncompressed tar archives holding load test reports."""

from __future__ import annotations

import io
import os
import shutil
import tarfile
from typing import BinaryIO


def untar(prefix: str | os.PathLike, stream: BinaryIO) -> None:
    """Unpack the tar archive read from *stream* below *prefix*.

    Nothing is done when *prefix* already exists. Directories and regular
    files are written; other entry types are skipped.
    """
    prefix = os.fspath(prefix)
    if os.path.exists(prefix):
        return

    data = stream.read()
    if not data:
        return

    with tarfile.open(fileobj=io.BytesIO(data), mode="r:") as archive:
        for member in archive:
            target = f"{prefix}/{member.name.strip('./')}"
            if member.isdir():
                if not os.path.exists(target):
                    os.makedirs(target, 0o755, exist_ok=True)
            elif member.isreg():
                source = archive.extractfile(member)
                parent = os.path.dirname(target)
                if parent:
                    os.makedirs(parent, exist_ok=True)
                descriptor = os.open(target, os.O_CREAT | os.O_RDWR, member.mode & 0o7777)
                with os.fdopen(descriptor, "wb") as target_file:
                    shutil.copyfileobj(source, target_file)