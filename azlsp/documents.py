"""In-memory documents as seen by the language server.

Documents are created from content sent by the language client. They can be
updated through diffs expressed in LSP positions, and they carry metadata
such as version and whether the client has them open.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from typing import Callable, Iterator, Optional
from urllib.parse import quote


def uri_from_path(path: str) -> str:
    """Return the ``file://`` URI for a filesystem path."""
    posix = path.replace(os.sep, "/")
    if not posix.startswith("/"):
        posix = "/" + posix
    return "file://" + quote(posix, safe="/:")


def _dir(path: str) -> str:
    if not path:
        return "."
    head = os.path.dirname(path.rstrip(os.sep) or os.sep) if path.rstrip(os.sep) else os.sep
    return head or "."


def _base(path: str) -> str:
    if not path:
        return "."
    stripped = path.rstrip(os.sep)
    if not stripped:
        return os.sep
    return os.path.basename(stripped)


@dataclass(frozen=True)
class Pos:
    """An LSP-style zero-indexed position; the column counts UTF-16 code units."""

    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Range:
    """An LSP-style range between two positions."""

    start: Pos
    end: Pos


@dataclass(frozen=True)
class Line:
    """One line of a source buffer, its line ending included, with its byte span."""

    content: bytes
    start: int
    end: int


def split_lines(content: bytes) -> list[Line]:
    """Split ``content`` into lines, each keeping its trailing newline."""
    lines: list[Line] = []
    offset = 0
    for chunk in content.splitlines(keepends=True):
        # splitlines also breaks on \r and other separators; only \n ends a line here
        if lines and not lines[-1].content.endswith(b"\n"):
            previous = lines.pop()
            merged = previous.content + chunk
            lines.append(Line(merged, previous.start, previous.start + len(merged)))
        else:
            lines.append(Line(chunk, offset, offset + len(chunk)))
        offset += len(chunk)
    return _rejoin_on_newline(content) if any(b"\r" in ln.content for ln in lines) else lines


def _rejoin_on_newline(content: bytes) -> list[Line]:
    lines: list[Line] = []
    offset = 0
    while offset < len(content):
        newline = content.find(b"\n", offset)
        end = len(content) if newline == -1 else newline + 1
        lines.append(Line(content[offset:end], offset, end))
        offset = end
    return lines


def _utf8_sequences(data: bytes) -> Iterator[tuple[int, int]]:
    """Yield (byte length, UTF-16 unit count) for each UTF-8 sequence in ``data``."""
    position = 0
    while position < len(data):
        lead = data[position]
        if lead < 0x80:
            size = 1
        elif 0xC0 <= lead < 0xE0:
            size = 2
        elif 0xE0 <= lead < 0xF0:
            size = 3
        elif 0xF0 <= lead < 0xF8:
            size = 4
        else:
            size = 1
        try:
            char = data[position:position + size].decode("utf-8")
        except UnicodeDecodeError:
            size, units = 1, 1
        else:
            units = 2 if ord(char) > 0xFFFF else 1
        yield size, units
        position += size


def _byte_offset_for_column(line: Line, column: int) -> int:
    if column < 0:
        return line.start
    byte_count = 0
    utf16_count = 0
    sequences = _utf8_sequences(line.content)
    while True:
        if byte_count >= len(line.content):
            return line.end
        if utf16_count >= column:
            return line.start + byte_count
        size, units = next(sequences)
        byte_count += size
        utf16_count += units


def byte_offset_for_pos(lines: list[Line], pos: Pos) -> int:
    """Return the byte offset in the whole buffer that ``pos`` points at."""
    if pos.line < 0 or pos.line + 1 > len(lines):
        raise InvalidPosError(pos)
    return _byte_offset_for_column(lines[pos.line], pos.column)


@dataclass(frozen=True)
class DocumentHandler:
    """Identifies a document by URI and path; ``version`` comes with client changes."""

    uri: str
    full_path: str = ""
    version: int = 0

    @property
    def dir(self) -> str:
        return _dir(self.full_path)

    @property
    def filename(self) -> str:
        return _base(self.full_path)

    @classmethod
    def from_path(cls, path: str) -> "DocumentHandler":
        return cls(uri=uri_from_path(path), full_path=path)


@dataclass(frozen=True)
class DocumentChange:
    """New text for a range of a document, or for all of it when the range is None."""

    text: str
    range: Optional[Range] = None


class DocumentMetadata:
    """Version, open state, language and line index of one document."""

    def __init__(self, dh: DocumentHandler, lang_id: str, content: bytes) -> None:
        self.dh = dh
        self.lang_id = lang_id
        self._lock = threading.RLock()
        self._is_open = False
        self._version = 0
        self._lines = split_lines(content)

    def set_open(self, is_open: bool) -> None:
        with self._lock:
            self._is_open = is_open

    def set_version(self, version: int) -> None:
        with self._lock:
            self._version = version

    def update_lines(self, content: bytes) -> None:
        lines = split_lines(content)
        with self._lock:
            self._lines = lines

    @property
    def lines(self) -> list[Line]:
        with self._lock:
            return self._lines

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    @property
    def is_open(self) -> bool:
        with self._lock:
            return self._is_open


class Document:
    """A document's metadata together with access to its current content."""

    def __init__(self, meta: DocumentMetadata, read: Callable[[str], bytes]) -> None:
        self.meta = meta
        self._read = read

    def text(self) -> bytes:
        return self._read(self.full_path)

    @property
    def full_path(self) -> str:
        return self.meta.dh.full_path

    @property
    def dir(self) -> str:
        return _dir(self.full_path)

    @property
    def filename(self) -> str:
        return _base(self.full_path)

    @property
    def uri(self) -> str:
        return uri_from_path(self.full_path)

    @property
    def lines(self) -> list[Line]:
        return self.meta.lines

    @property
    def version(self) -> int:
        return self.meta.version

    @property
    def language_id(self) -> str:
        return self.meta.lang_id

    @property
    def is_open(self) -> bool:
        return self.meta.is_open

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        if (self.uri, self.is_open, self.version) != (other.uri, other.is_open, other.version):
            return False
        try:
            return self.text() == other.text()
        except OSError:
            return False

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Document(uri={self.uri!r}, version={self.version}, is_open={self.is_open})"


class DocumentError(Exception):
    """Base class of errors raised for documents."""


class DocumentNotOpenError(DocumentError):
    def __init__(self, dh: DocumentHandler) -> None:
        super().__init__(f"document is not open: {dh.uri}")
        self.document_handler = dh


class MetadataAlreadyExistsError(DocumentError):
    def __init__(self, dh: DocumentHandler) -> None:
        super().__init__(f"document metadata already exists: {dh.uri}")
        self.document_handler = dh


class UnknownDocumentError(DocumentError):
    def __init__(self, dh: DocumentHandler) -> None:
        super().__init__(f"unknown document: {dh.uri}")
        self.document_handler = dh


class InvalidPosError(DocumentError, ValueError):
    def __init__(self, pos: Pos) -> None:
        super().__init__(f"invalid position: {pos}")
        self.pos = pos