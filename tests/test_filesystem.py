import os
from dataclasses import dataclass

import pytest

from terralsp.document import Document, DocumentChange, DocumentMetadata, path_to_uri
from terralsp.errors import DocumentNotOpenError, UnknownDocumentError
from terralsp.filesystem import DirEntry, Filesystem
from terralsp.position import Pos, Range


@dataclass
class _Handler:
    uri: str
    full_path: str = ""
    dir: str = ""
    filename: str = ""
    version: int = 0


def _from_path(path):
    return _Handler(uri=path_to_uri(str(path)), full_path=str(path))


def _rng(l1, c1, l2, c2):
    return Range(Pos(l1, c1), Pos(l2, c2))


def _names(entries):
    return [entry.name for entry in entries]


def test_apply_change_full_update():
    fs = Filesystem()
    dh = _Handler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", b"hello world")
    fs.change_document(dh, [DocumentChange("something else")])
    assert fs.get_document(dh).text() == b"something else"


@pytest.mark.parametrize(
    "content,change,expected",
    [
        ("hello world", DocumentChange("terraform", _rng(0, 6, 0, 11)), "hello terraform"),
        ("hello world", DocumentChange("earth", _rng(0, 6, 0, 11)), "hello earth"),
        ("hello world", DocumentChange("HCL", _rng(0, 6, 0, 11)), "hello HCL"),
        ("hello world", DocumentChange("abc ", _rng(0, 6, 0, 6)), "hello abc world"),
        ("hello world", DocumentChange("𐐀𐐀 ", _rng(0, 6, 0, 6)), "hello 𐐀𐐀 world"),
        ("hello 𐐀𐐀 world", DocumentChange("aa𐐀", _rng(0, 8, 0, 10)), "hello 𐐀aa𐐀 world"),
    ],
)
def test_apply_change_partial_update(content, change, expected):
    fs = Filesystem()
    dh = _Handler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", content.encode("utf-8"))
    fs.change_document(dh, [change])
    assert fs.get_document(dh).text().decode("utf-8") == expected


def test_apply_change_partial_update_multiple_changes():
    content = """variable "service_host" {
  default = "blah"
}

module "app" {
  source = "./sub"
  service_listeners = [
    {
      hosts    = [var.service_host]
      listener = ""
    }
  ]
}
"""
    expected = """variable "service_host" {
  default = "blah"
}

module "app" {
  source = "./sub"
  service_listeners = [
    {
      hosts    = [
        var.service_host]
      listener = ""
    }
  ]
}
"""
    changes = [
        DocumentChange("\n", _rng(8, 18, 8, 18)),
        DocumentChange("      ", _rng(9, 0, 9, 0)),
        DocumentChange("  ", _rng(9, 6, 9, 6)),
    ]
    fs = Filesystem()
    dh = _Handler(uri="file:///test.tf", version=3)
    fs.create_and_open_document(dh, "test", content.encode())
    fs.change_document(dh, changes)
    doc = fs.get_document(dh)
    assert doc.text().decode() == expected
    assert doc.version == 3


def test_change_not_open_unknown():
    fs = Filesystem()
    h = _Handler(uri="file:///doesnotexist")
    with pytest.raises(UnknownDocumentError) as info:
        fs.change_document(h, [DocumentChange("")])
    assert str(info.value) == "unknown document: file:///doesnotexist"


def test_change_closed():
    fs = Filesystem()
    fh = _Handler(uri="file:///doesnotexist")
    fs.create_and_open_document(fh, "test", b"")
    fs.close_and_remove_document(fh)
    with pytest.raises(UnknownDocumentError) as info:
        fs.change_document(fh, [DocumentChange("")])
    assert str(info.value) == "unknown document: file:///doesnotexist"


def test_remove_unknown():
    fs = Filesystem()
    fh = _Handler(uri="file:///doesnotexist")
    fs.create_and_open_document(fh, "test", b"")
    fs.close_and_remove_document(fh)
    with pytest.raises(UnknownDocumentError) as info:
        fs.close_and_remove_document(fh)
    assert str(info.value) == "unknown document: file:///doesnotexist"


def test_close_closed():
    fs = Filesystem()
    fh = _Handler(uri="file:///isnotopen")
    fs.create_document(fh, "test", b"")
    with pytest.raises(DocumentNotOpenError) as info:
        fs.close_and_remove_document(fh)
    assert str(info.value) == "document is not open: file:///isnotopen"


def test_change_no_changes():
    fs = Filesystem()
    fh = _Handler(uri="file:///test.tf", version=5)
    fs.create_and_open_document(fh, "test", b"")
    fs.change_document(fh, [])
    doc = fs.get_document(fh)
    assert doc.text() == b""
    assert doc.version == 0


def test_change_multiple_changes():
    fs = Filesystem()
    fh = _Handler(uri="file:///test.tf")
    fs.create_and_open_document(fh, "test", b"")
    fs.change_document(
        fh,
        [
            DocumentChange("ahoy"),
            DocumentChange(""),
            DocumentChange("quick brown fox jumped over\nthe lazy dog"),
            DocumentChange("bye"),
        ],
    )
    assert fs.get_document(fh).text() == b"bye"


def test_get_document_success():
    fs = Filesystem()
    dh = _Handler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", b"hello world")
    doc = fs.get_document(dh)

    content = b"hello world"
    meta = DocumentMetadata(dh, "test", content)
    meta.set_open(True)
    expected = Document(meta, lambda _path: content)

    assert doc == expected
    assert doc.language_id == "test"
    assert doc.is_open is True
    assert doc.text() == content


def test_get_document_unknown():
    fs = Filesystem()
    fh = _Handler(uri="file:///test.tf")
    with pytest.raises(UnknownDocumentError) as info:
        fs.get_document(fh)
    assert str(info.value) == "unknown document: file:///test.tf"


def test_read_file_os_only(tmp_path):
    (tmp_path / "testfile").write_text("lorem ipsum")
    fs = Filesystem()
    assert fs.read_file(str(tmp_path / "testfile")) == b"lorem ipsum"
    with pytest.raises(FileNotFoundError):
        fs.read_file(str(tmp_path / "not-existing"))


def test_read_file_mem_only(tmp_path):
    fs = Filesystem()
    fh = _from_path(tmp_path / "mem" / "test.tf")
    fs.create_document(fh, "test", b"test content")
    assert fs.read_file(fh.full_path) == b"test content"
    with pytest.raises(FileNotFoundError):
        fs.read_file(str(tmp_path / "mem" / "not-existing"))


def test_read_file_mem_and_os(tmp_path):
    test_path = tmp_path / "testfile"
    test_path.write_text("os content")
    fs = Filesystem()
    fh = _from_path(test_path)
    fs.create_document(fh, "test", b"in-mem content")
    assert fs.read_file(fh.full_path) == b"in-mem content"
    with pytest.raises(FileNotFoundError):
        fs.read_file(str(tmp_path / "not-existing"))


def test_read_dir(tmp_path):
    (tmp_path / "osfile").write_bytes(b"")
    fs = Filesystem()
    fs.create_document(_from_path(tmp_path / "memfile"), "test", b"test")
    assert _names(fs.read_dir(str(tmp_path))) == ["memfile", "osfile"]


def test_read_dir_mem_fs_only(tmp_path):
    fs = Filesystem()
    fs.create_document(_from_path(tmp_path / "memfile"), "test", b"test")
    entries = fs.read_dir(str(tmp_path))
    assert entries == [DirEntry("memfile", False, 4)]


def test_read_dir_prefers_memory_entry(tmp_path):
    (tmp_path / "shared").write_text("on disk")
    fs = Filesystem()
    fs.create_document(_from_path(tmp_path / "shared"), "test", b"mem")
    assert fs.read_dir(str(tmp_path)) == [DirEntry("shared", False, 3)]


def test_read_dir_missing_everywhere(tmp_path):
    fs = Filesystem()
    assert fs.read_dir(str(tmp_path / "absent")) == []


def test_open_os_only(tmp_path):
    (tmp_path / "testfile").write_text("lorem ipsum")
    fs = Filesystem()
    with fs.open(str(tmp_path / "testfile")) as handle:
        assert handle.read() == b"lorem ipsum"
    with pytest.raises(FileNotFoundError):
        fs.open(str(tmp_path / "not-existing"))


def test_open_mem_only(tmp_path):
    fs = Filesystem()
    fh = _from_path(tmp_path / "test.tf")
    fs.create_document(fh, "test", b"test content")
    with fs.open(fh.full_path) as handle:
        assert handle.read() == b"test content"
    with pytest.raises(FileNotFoundError):
        fs.open(str(tmp_path / "not-existing"))


def test_open_mem_and_os(tmp_path):
    test_path = tmp_path / "testfile"
    test_path.write_text("os content")
    fs = Filesystem()
    fh = _from_path(test_path)
    fs.create_document(fh, "test", b"in-mem content")
    with fs.open(fh.full_path) as handle:
        assert len(handle.read()) == len(b"in-mem content")
    assert fs.stat(fh.full_path).size == len(b"in-mem content")
    with pytest.raises(FileNotFoundError):
        fs.open(str(tmp_path / "not-existing"))


def test_create_mem_only(tmp_path):
    fs = Filesystem()
    fs.create_document(_from_path(tmp_path / "test.tf"), "test", b"test content")
    assert _names(fs.read_dir(str(tmp_path))) == ["test.tf"]


def test_create_document_missing_parent_dir(tmp_path):
    fs = Filesystem()
    test_path = tmp_path / "foo" / "bar" / "test.tf"
    fs.create_document(_from_path(test_path), "test", b"test")

    assert not (tmp_path / "foo").exists()
    foo = fs.stat(str(tmp_path / "foo"))
    assert foo.is_dir is True
    bar = fs.stat(str(tmp_path / "foo" / "bar"))
    assert bar.is_dir is True
    assert fs.stat(str(test_path)) == DirEntry("test.tf", False, 4)


def test_stat_falls_back_to_os(tmp_path):
    (tmp_path / "disk.txt").write_text("abc")
    fs = Filesystem()
    assert fs.stat(str(tmp_path / "disk.txt")) == DirEntry("disk.txt", False, 3)
    with pytest.raises(FileNotFoundError):
        fs.stat(str(tmp_path / "missing"))


def test_has_open_files(tmp_path):
    fs = Filesystem()
    directory = str(tmp_path)

    fs.create_document(_from_path(os.path.join(directory, "not-open.tf")), "test", b"test1")
    assert fs.has_open_files(directory) is False

    open_handler = _from_path(os.path.join(directory, "open.tf"))
    fs.create_and_open_document(open_handler, "test", b"test2")
    assert fs.has_open_files(directory) is True

    fs.close_and_remove_document(open_handler)
    assert fs.has_open_files(directory) is False


def test_change_out_of_range_position():
    fs = Filesystem()
    dh = _Handler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", b"one line")
    with pytest.raises(ValueError, match="invalid position: 5:0"):
        fs.change_document(dh, [DocumentChange("x", _rng(5, 0, 5, 0))])
    assert fs.get_document(dh).text() == b"one line"