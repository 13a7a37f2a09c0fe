"""A virtual filesystem: in-memory documents layered over the read-only OS filesystem."""

from __future__ import annotations

import errno
import io
import logging
import os
import stat as stat_mod
import threading
import time
from typing import BinaryIO, Iterable

from .documents import (
    Document,
    DocumentChange,
    DocumentHandler,
    DocumentMetadata,
    DocumentNotOpenError,
    MetadataAlreadyExistsError,
    UnknownDocumentError,
    byte_offset_for_pos,
    split_lines,
    uri_from_path,
)


def _clean(path: str) -> str:
    return os.path.normpath(path) if path else ""


def _not_found(path: str) -> FileNotFoundError:
    return FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)


def _apply_change(buf: bytes, change: DocumentChange) -> bytes:
    if change.range is None:
        return change.text.encode("utf-8")
    lines = split_lines(buf)
    start = byte_offset_for_pos(lines, change.range.start)
    end = byte_offset_for_pos(lines, change.range.end)
    return buf[:start] + change.text.encode("utf-8") + buf[end:]


class Filesystem:
    """Documents kept in memory, with reads falling back to the OS filesystem."""

    def __init__(self) -> None:
        self._files: dict[str, bytes] = {}
        self._mtimes: dict[str, float] = {}
        self._dirs: set[str] = set()
        self._mem_lock = threading.RLock()
        self._doc_meta: dict[str, DocumentMetadata] = {}
        self._meta_lock = threading.RLock()
        self._logger = logging.getLogger(__name__)

    def set_logger(self, logger: logging.Logger) -> None:
        self._logger = logger

    # in-memory layer

    def _mkdir_all(self, path: str) -> None:
        current = _clean(path)
        with self._mem_lock:
            while current and current not in self._dirs:
                self._dirs.add(current)
                parent = os.path.dirname(current)
                if parent == current:
                    break
                current = parent

    def _mem_write(self, path: str, data: bytes) -> None:
        key = _clean(path)
        with self._mem_lock:
            self._files[key] = bytes(data)
            self._mtimes[key] = time.time()

    def _mem_read(self, path: str) -> bytes:
        key = _clean(path)
        with self._mem_lock:
            if key in self._files:
                return self._files[key]
            if key in self._dirs:
                raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), path)
        raise _not_found(path)

    def _mem_remove(self, path: str) -> None:
        key = _clean(path)
        with self._mem_lock:
            if key not in self._files:
                raise _not_found(path)
            del self._files[key]
            self._mtimes.pop(key, None)

    def _mem_list(self, name: str) -> list[str]:
        key = _clean(name)
        with self._mem_lock:
            if key in self._files:
                raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), name)
            if key not in self._dirs:
                raise _not_found(name)
            children = {os.path.basename(f) for f in self._files if os.path.dirname(f) == key}
            children.update(
                os.path.basename(d) for d in self._dirs if d != key and os.path.dirname(d) == key
            )
        return sorted(children)

    # document storage

    def create_document(self, dh: DocumentHandler, lang_id: str, text: bytes) -> None:
        self._mkdir_all(dh.dir)
        self._mem_write(dh.full_path, text)
        self._create_document_metadata(dh, lang_id, text)

    def create_and_open_document(self, dh: DocumentHandler, lang_id: str, text: bytes) -> None:
        self.create_document(dh, lang_id, text)
        self._mark_document_as_open(dh)

    def change_document(self, dh: DocumentHandler, changes: Iterable[DocumentChange]) -> None:
        """Apply ``changes`` in order to an open document and take ``dh``'s version."""
        changes = list(changes)
        if not changes:
            return
        if not self._is_document_open(dh):
            raise DocumentNotOpenError(dh)
        with self._mem_lock:
            buf = self._mem_read(dh.full_path)
            for change in changes:
                buf = _apply_change(buf, change)
            self._mem_write(dh.full_path, buf)
        self._update_document_metadata_lines(dh, buf)

    def close_and_remove_document(self, dh: DocumentHandler) -> None:
        if not self._is_document_open(dh):
            raise DocumentNotOpenError(dh)
        self._mem_remove(dh.full_path)
        self._remove_document_metadata(dh)

    def get_document(self, dh: DocumentHandler) -> Document:
        return Document(self._get_document_metadata(dh), self._mem_read)

    # direct filesystem access

    def read_file(self, name: str) -> bytes:
        try:
            return self._mem_read(name)
        except FileNotFoundError:
            with open(name, "rb") as handle:
                return handle.read()

    def read_dir(self, name: str) -> list[str]:
        """Names in a directory: in-memory entries first, then OS entries not already listed."""
        try:
            names = self._mem_list(name)
        except FileNotFoundError:
            names = []
        try:
            os_names = sorted(os.listdir(name))
        except FileNotFoundError:
            os_names = []
        seen = set(names)
        names.extend(entry for entry in os_names if entry not in seen)
        return names

    def open(self, name: str) -> BinaryIO:
        try:
            return io.BytesIO(self._mem_read(name))
        except FileNotFoundError:
            return open(name, "rb")

    def stat(self, name: str) -> os.stat_result:
        key = _clean(name)
        with self._mem_lock:
            if key in self._files:
                mtime = self._mtimes.get(key, 0.0)
                mode = stat_mod.S_IFREG | 0o644
                size = len(self._files[key])
                return os.stat_result((mode, 0, 0, 1, 0, 0, size, mtime, mtime, mtime))
            if key in self._dirs:
                mode = stat_mod.S_IFDIR | 0o755
                return os.stat_result((mode, 0, 0, 1, 0, 0, 0, 0, 0, 0))
        return os.stat(name)

    def has_open_files(self, dir_path: str) -> bool:
        names = self.read_dir(dir_path)
        with self._meta_lock:
            for entry in names:
                meta = self._doc_meta.get(uri_from_path(os.path.join(dir_path, entry)))
                if meta is not None and meta.is_open:
                    return True
        return False

    # metadata

    def _mark_document_as_open(self, dh: DocumentHandler) -> None:
        with self._meta_lock:
            meta = self._doc_meta.get(dh.uri)
            if meta is None:
                raise UnknownDocumentError(dh)
            meta.set_open(True)

    def _create_document_metadata(self, dh: DocumentHandler, lang_id: str, text: bytes) -> None:
        with self._meta_lock:
            if dh.uri in self._doc_meta:
                raise MetadataAlreadyExistsError(dh)
            self._doc_meta[dh.uri] = DocumentMetadata(dh, lang_id, text)

    def _remove_document_metadata(self, dh: DocumentHandler) -> None:
        with self._meta_lock:
            self._doc_meta.pop(dh.uri, None)

    def _is_document_open(self, dh: DocumentHandler) -> bool:
        return self._get_document_metadata(dh).is_open

    def _update_document_metadata_lines(self, dh: DocumentHandler, content: bytes) -> None:
        with self._meta_lock:
            meta = self._doc_meta.get(dh.uri)
            if meta is None:
                raise UnknownDocumentError(dh)
            meta.update_lines(content)
            meta.set_version(dh.version)

    def _get_document_metadata(self, dh: DocumentHandler) -> DocumentMetadata:
        with self._meta_lock:
            meta = self._doc_meta.get(dh.uri)
        if meta is None:
            raise UnknownDocumentError(dh)
        return meta