import stat

import pytest

from azlsp.documents import (
    Document,
    DocumentChange,
    DocumentHandler,
    DocumentMetadata,
    DocumentNotOpenError,
    InvalidPosError,
    MetadataAlreadyExistsError,
    Pos,
    Range,
    UnknownDocumentError,
)
from azlsp.filesystem import Filesystem


def _rng(sl, sc, el, ec):
    return Range(Pos(sl, sc), Pos(el, ec))


def test_apply_change_full_update():
    fs = Filesystem()
    dh = DocumentHandler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", b"hello world")
    fs.change_document(dh, [DocumentChange(text="something else")])
    assert fs.get_document(dh).text() == b"something else"


@pytest.mark.parametrize(
    "content, change, expected",
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
    dh = DocumentHandler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", content.encode())
    fs.change_document(dh, [change])
    assert fs.get_document(dh).text().decode() == expected


MULTI_CONTENT = """variable "service_host" {
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

MULTI_EXPECTED = """variable "service_host" {
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


def test_apply_change_partial_update_multiple_changes():
    fs = Filesystem()
    dh = DocumentHandler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", MULTI_CONTENT.encode())
    changes = [
        DocumentChange("\n", _rng(8, 18, 8, 18)),
        DocumentChange("      ", _rng(9, 0, 9, 0)),
        DocumentChange("  ", _rng(9, 6, 9, 6)),
    ]
    fs.change_document(dh, changes)
    assert fs.get_document(dh).text().decode() == MULTI_EXPECTED


def test_change_sets_version_and_lines():
    fs = Filesystem()
    fs.create_and_open_document(DocumentHandler(uri="file:///v.tf"), "test", b"a")
    versioned = DocumentHandler(uri="file:///v.tf", version=3)
    fs.change_document(versioned, [DocumentChange("a\nb\n")])
    doc = fs.get_document(versioned)
    assert doc.version == 3
    assert len(doc.lines) == 2


def test_change_invalid_position():
    fs = Filesystem()
    dh = DocumentHandler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", b"hello")
    with pytest.raises(InvalidPosError):
        fs.change_document(dh, [DocumentChange("x", _rng(5, 0, 5, 0))])
    assert fs.get_document(dh).text() == b"hello"


def test_change_not_open_unknown():
    fs = Filesystem()
    h = DocumentHandler(uri="file:///doesnotexist")
    with pytest.raises(UnknownDocumentError) as info:
        fs.change_document(h, [DocumentChange("")])
    assert str(info.value) == str(UnknownDocumentError(h))


def test_change_closed():
    fs = Filesystem()
    fh = DocumentHandler(uri="file:///doesnotexist")
    fs.create_and_open_document(fh, "test", b"")
    fs.close_and_remove_document(fh)
    with pytest.raises(UnknownDocumentError) as info:
        fs.change_document(fh, [DocumentChange("")])
    assert str(info.value) == str(UnknownDocumentError(fh))


def test_remove_unknown():
    fs = Filesystem()
    fh = DocumentHandler(uri="file:///doesnotexist")
    fs.create_and_open_document(fh, "test", b"")
    fs.close_and_remove_document(fh)
    with pytest.raises(UnknownDocumentError) as info:
        fs.close_and_remove_document(fh)
    assert str(info.value) == str(UnknownDocumentError(fh))


def test_close_closed():
    fs = Filesystem()
    fh = DocumentHandler(uri="file:///isnotopen")
    fs.create_document(fh, "test", b"")
    with pytest.raises(DocumentNotOpenError) as info:
        fs.close_and_remove_document(fh)
    assert str(info.value) == str(DocumentNotOpenError(fh))


def test_change_not_open_document():
    fs = Filesystem()
    fh = DocumentHandler(uri="file:///isnotopen")
    fs.create_document(fh, "test", b"abc")
    with pytest.raises(DocumentNotOpenError):
        fs.change_document(fh, [DocumentChange("x")])


def test_create_twice_raises():
    fs = Filesystem()
    fh = DocumentHandler(uri="file:///dup.tf")
    fs.create_document(fh, "test", b"one")
    with pytest.raises(MetadataAlreadyExistsError):
        fs.create_document(fh, "test", b"two")


def test_change_no_changes():
    fs = Filesystem()
    fh = DocumentHandler(uri="file:///test.tf")
    fs.create_and_open_document(fh, "test", b"")
    fs.change_document(fh, [])
    assert fs.get_document(fh).text() == b""


def test_change_multiple_changes():
    fs = Filesystem()
    fh = DocumentHandler(uri="file:///test.tf")
    fs.create_and_open_document(fh, "test", b"")
    changes = [
        DocumentChange("ahoy"),
        DocumentChange(""),
        DocumentChange("quick brown fox jumped over\nthe lazy dog"),
        DocumentChange("bye"),
    ]
    fs.change_document(fh, changes)
    assert fs.get_document(fh).text() == b"bye"


def test_get_document_success():
    fs = Filesystem()
    dh = DocumentHandler(uri="file:///test.tf")
    fs.create_and_open_document(dh, "test", b"hello world")
    doc = fs.get_document(dh)

    content = b"hello world"
    meta = DocumentMetadata(dh, "test", content)
    meta.set_open(True)
    expected = Document(meta, lambda _path: content)
    assert doc == expected
    assert doc.language_id == "test"


def test_get_document_unknown():
    fs = Filesystem()
    fh = DocumentHandler(uri="file:///test.tf")
    with pytest.raises(UnknownDocumentError) as info:
        fs.get_document(fh)
    assert str(info.value) == str(UnknownDocumentError(fh))


def test_read_file_os_only(tmp_path):
    (tmp_path / "testfile").write_text("lorem ipsum")
    fs = Filesystem()
    assert fs.read_file(str(tmp_path / "testfile")) == b"lorem ipsum"
    with pytest.raises(FileNotFoundError):
        fs.read_file(str(tmp_path / "not-existing"))


def test_read_file_mem_only(tmp_path):
    fs = Filesystem()
    fh = DocumentHandler.from_path(str(tmp_path / "test.tf"))
    fs.create_document(fh, "test", b"test content")
    assert fs.read_file(fh.full_path) == b"test content"
    assert not (tmp_path / "test.tf").exists()
    with pytest.raises(FileNotFoundError):
        fs.read_file(str(tmp_path / "not-existing"))


def test_read_file_mem_and_os(tmp_path):
    path = tmp_path / "testfile"
    path.write_text("os content")
    fs = Filesystem()
    fh = DocumentHandler.from_path(str(path))
    fs.create_document(fh, "test", b"in-mem content")
    assert fs.read_file(fh.full_path) == b"in-mem content"
    with pytest.raises(FileNotFoundError):
        fs.read_file(str(tmp_path / "not-existing"))


def test_read_dir(tmp_path):
    (tmp_path / "osfile").touch()
    fs = Filesystem()
    fs.create_document(DocumentHandler.from_path(str(tmp_path / "memfile")), "test", b"test")
    assert fs.read_dir(str(tmp_path)) == ["memfile", "osfile"]


def test_read_dir_mem_fs_only(tmp_path):
    fs = Filesystem()
    fs.create_document(DocumentHandler.from_path(str(tmp_path / "memfile")), "test", b"test")
    assert fs.read_dir(str(tmp_path)) == ["memfile"]


def test_read_dir_missing_is_empty(tmp_path):
    assert Filesystem().read_dir(str(tmp_path / "nothing-here")) == []


def test_open_os_only(tmp_path):
    (tmp_path / "testfile").write_text("lorem ipsum")
    fs = Filesystem()
    with fs.open(str(tmp_path / "testfile")) as handle:
        assert handle.read() == b"lorem ipsum"
    with pytest.raises(FileNotFoundError):
        fs.open(str(tmp_path / "not-existing"))


def test_open_mem_only(tmp_path):
    fs = Filesystem()
    fh = DocumentHandler.from_path(str(tmp_path / "test.tf"))
    fs.create_document(fh, "test", b"test content")
    with fs.open(fh.full_path) as handle:
        assert handle.read() == b"test content"
    with pytest.raises(FileNotFoundError):
        fs.open(str(tmp_path / "not-existing"))


def test_open_mem_and_os(tmp_path):
    path = tmp_path / "testfile"
    path.write_text("os content")
    fs = Filesystem()
    fh = DocumentHandler.from_path(str(path))
    fs.create_document(fh, "test", b"in-mem content")
    with fs.open(fh.full_path) as handle:
        assert len(handle.read()) == len(b"in-mem content")
    assert fs.stat(fh.full_path).st_size == len(b"in-mem content")
    with pytest.raises(FileNotFoundError):
        fs.open(str(tmp_path / "not-existing"))


def test_create_mem_only(tmp_path):
    fs = Filesystem()
    fs.create_document(DocumentHandler.from_path(str(tmp_path / "test.tf")), "test", b"x")
    assert fs.read_dir(str(tmp_path)) == ["test.tf"]


def test_create_document_missing_parent_dir(tmp_path):
    fs = Filesystem()
    path = tmp_path / "foo" / "bar" / "test.tf"
    fs.create_document(DocumentHandler.from_path(str(path)), "test", b"test")
    assert stat.S_ISDIR(fs.stat(str(tmp_path / "foo")).st_mode)
    assert stat.S_ISDIR(fs.stat(str(tmp_path / "foo" / "bar")).st_mode)
    assert not (tmp_path / "foo").exists()


def test_has_open_files(tmp_path):
    fs = Filesystem()
    fs.create_document(DocumentHandler.from_path(str(tmp_path / "not-open.tf")), "test", b"t1")
    assert fs.has_open_files(str(tmp_path)) is False

    ofh = DocumentHandler.from_path(str(tmp_path / "open.tf"))
    fs.create_and_open_document(ofh, "test", b"t2")
    assert fs.has_open_files(str(tmp_path)) is True

    fs.close_and_remove_document(ofh)
    assert fs.has_open_files(str(tmp_path)) is False