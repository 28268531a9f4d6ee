import io
import stat

import pytest

from kangal.objectstore import (
    MemoryFile,
    MemoryObjectStore,
    ObjectFile,
    ObjectFileSystem,
    ObjectInfo,
)

INDEX = b"<html>report</html>"
STYLE = b"body { color: black; }"


@pytest.fixture
def store():
    objects = MemoryObjectStore()
    objects.put("report/index.html", INDEX, "text/html")
    objects.put("report/css/site.css", STYLE, "text/css")
    objects.put("other.txt", b"other")
    return objects


def test_put_and_stat(store):
    info = store.stat("report/index.html")
    assert info.key == "report/index.html"
    assert info.size == len(INDEX)
    assert info.content_type == "text/html"
    assert info.is_dir is False


def test_stat_missing(store):
    with pytest.raises(FileNotFoundError):
        store.stat("nope")


def test_get_object_round_trip(store):
    assert store.get_object("report/css/site.css").read() == STYLE


def test_get_object_missing(store):
    with pytest.raises(FileNotFoundError):
        store.get_object("nope")


def test_list_objects_non_recursive(store):
    keys = [info.key for info in store.list_objects("report/")]
    assert keys == ["report/css/", "report/index.html"]


def test_open_bare_name_serves_index(store):
    fs = ObjectFileSystem(store)
    with fs.open("/report") as handle:
        assert handle.read() == INDEX
        assert handle.stat().key == "report/index.html"


def test_open_nested_file(store):
    fs = ObjectFileSystem(store)
    with fs.open("/report/css/site.css") as handle:
        handle.seek(5)
        assert handle.read() == STYLE[5:]


def test_open_missing(store):
    with pytest.raises(FileNotFoundError):
        ObjectFileSystem(store).open("/report/missing.html")


def test_open_directory(store):
    handle = ObjectFileSystem(store).open("/report/")
    info = handle.stat()
    assert info.is_dir is True
    assert info.name == "/report"
    assert info.mode == stat.S_IFDIR
    with pytest.raises(IsADirectoryError):
        handle.read()


def test_readdir_lists_entries(store):
    entries = ObjectFile(store, "report/", is_dir=True).readdir(-1)
    assert [(e.name, e.is_dir) for e in entries] == [
        ("report/css", True),
        ("report/index.html", False),
    ]
    assert entries[1].mode == 0o644


def test_readdir_count_limit(store):
    directory = ObjectFile(store, "report/", is_dir=True)
    everything = directory.readdir(-1)
    assert directory.readdir(3) == everything[:1]
    assert directory.readdir(2) == []
    assert directory.readdir(1) == everything


def test_memory_file_seek_tracks_position_only():
    data = b"memory report"
    handle = MemoryFile("report.html", io.BytesIO(data), len(data))
    assert handle.seek(0, io.SEEK_END) == len(data)
    assert handle.seek(-3, io.SEEK_CUR) == len(data) - 3
    assert handle.seek(4) == 4
    assert handle.read() == data


def test_memory_file_stat_and_readdir():
    data = b"content"
    with MemoryFile("page.html", io.BytesIO(data), len(data)) as handle:
        info = handle.stat()
        assert (info.name, info.size, info.is_dir) == ("page.html", len(data), False)
        assert handle.readdir(10) == []


def test_object_info_defaults():
    info = ObjectInfo(key="a/b")
    assert info.name == "a/b"
    assert info.size == 0
    assert info.last_modified.tzinfo is not None